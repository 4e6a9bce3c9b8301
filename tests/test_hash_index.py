"""Tests for the prompt hash indices."""

import json
import os

from bundle_patcher.hash_index import (
    APPLIED_HASHES_FILE,
    ORIGINAL_HASHES_FILE,
    clear_all_applied_hashes,
    compute_md5_hash,
    get_original_hash,
    has_unapplied_system_prompt_changes,
    read_applied_hashes,
    set_applied_hashes,
    store_original_hashes,
)
from bundle_patcher.prompt_sync import PromptDescriptor


def _descriptor(prompt_id="p1", version="1.0.0"):
    return PromptDescriptor(prompt_id=prompt_id, content="x", pieces=["Hello ", "!"],
                            identifier_positions=[0], identifier_map={"0": "NAME"},
                            version=version)


class TestComputeHash:
    def test_trimmed(self):
        assert compute_md5_hash("  abc\n") == compute_md5_hash("abc")

    def test_known_value(self):
        assert compute_md5_hash("abc") == "900150983cd24fb0d6963f7d28e17f72"


class TestOriginalHashes:
    def test_stored_once_per_version(self, tmp_path):
        config_dir = str(tmp_path)
        assert store_original_hashes(config_dir, [_descriptor()]) == 1
        assert store_original_hashes(config_dir, [_descriptor()]) == 0
        assert store_original_hashes(config_dir, [_descriptor(version="1.0.1")]) == 1

        assert get_original_hash(config_dir, "p1", "1.0.0") == compute_md5_hash("Hello NAME!")

        with open(os.path.join(config_dir, ORIGINAL_HASHES_FILE), encoding="utf-8") as f:
            assert sorted(json.load(f)) == ["p1-1.0.0", "p1-1.0.1"]


class TestAppliedHashes:
    def test_merge_and_clear(self, tmp_path):
        config_dir = str(tmp_path)
        set_applied_hashes(config_dir, {"a": "h1"})
        set_applied_hashes(config_dir, {"b": "h2"})
        assert read_applied_hashes(config_dir) == {"a": "h1", "b": "h2"}

        clear_all_applied_hashes(config_dir)
        assert read_applied_hashes(config_dir) == {"a": None, "b": None}

    def test_file_is_sorted_and_indented(self, tmp_path):
        set_applied_hashes(str(tmp_path), {"b": "2", "a": "1"})
        with open(tmp_path / APPLIED_HASHES_FILE, encoding="utf-8") as f:
            assert f.read() == '{\n  "a": "1",\n  "b": "2"\n}'

    def test_clear_without_index(self, tmp_path):
        clear_all_applied_hashes(str(tmp_path))
        assert read_applied_hashes(str(tmp_path)) == {}


class TestUnappliedChanges:
    def _setup(self, tmp_path, body):
        prompts_dir = tmp_path / "prompts"
        prompts_dir.mkdir()
        (prompts_dir / "p1.md").write_text(f"<!--\nname: p1\n-->\n{body}\n", encoding="utf-8")
        return str(tmp_path), str(prompts_dir)

    def test_unchanged(self, tmp_path):
        config_dir, prompts_dir = self._setup(tmp_path, "Body")
        set_applied_hashes(config_dir, {"p1": compute_md5_hash("Body")})
        assert not has_unapplied_system_prompt_changes(config_dir, prompts_dir)

    def test_edited(self, tmp_path):
        config_dir, prompts_dir = self._setup(tmp_path, "Edited body")
        set_applied_hashes(config_dir, {"p1": compute_md5_hash("Body")})
        assert has_unapplied_system_prompt_changes(config_dir, prompts_dir)

    def test_restored_prompts_ignored(self, tmp_path):
        config_dir, prompts_dir = self._setup(tmp_path, "Edited body")
        set_applied_hashes(config_dir, {"p1": None})
        assert not has_unapplied_system_prompt_changes(config_dir, prompts_dir)

    def test_nothing_applied(self, tmp_path):
        config_dir, prompts_dir = self._setup(tmp_path, "Body")
        assert not has_unapplied_system_prompt_changes(config_dir, prompts_dir)
