"""End-to-end apply / restore cycles against a bundle on disk."""

import json
import os

import pytest

from bundle_patcher import ApplyReport, PatchContext, apply_customizations, restore_original
from bundle_patcher.config import BACKUP_FILENAME, Settings
from bundle_patcher.editing.metrics import read_apply_stats
from bundle_patcher.hash_index import APPLIED_HASHES_FILE, read_applied_hashes
from bundle_patcher.prompt_sync import PromptDescriptor


@pytest.fixture
def workspace(tmp_path, sample_bundle):
    target = tmp_path / "cli.js"
    target.write_text(sample_bundle, encoding="utf-8")
    config_dir = tmp_path / "config"
    return target, str(config_dir)


def _ctx(config_dir, **kwargs):
    return PatchContext(settings=Settings(), config_dir=config_dir, **kwargs)


class TestApplyCustomizations:
    def test_writes_target_and_backup(self, workspace, sample_bundle):
        target, config_dir = workspace
        report = apply_customizations(str(target), _ctx(config_dir))

        assert isinstance(report, ApplyReport)
        assert report.written
        assert "context_limit" in report.applied
        assert "CLAUDE_CODE_CONTEXT_LIMIT" in target.read_text(encoding="utf-8")
        backup = os.path.join(config_dir, BACKUP_FILENAME)
        with open(backup, encoding="utf-8") as f:
            assert f.read() == sample_bundle

    def test_second_cycle_does_not_stack(self, workspace):
        target, config_dir = workspace
        apply_customizations(str(target), _ctx(config_dir))
        first = target.read_text(encoding="utf-8")

        report = apply_customizations(str(target), _ctx(config_dir))
        assert not report.written
        assert target.read_text(encoding="utf-8") == first

    def test_settings_change_reapplied_from_pristine(self, workspace):
        target, config_dir = workspace
        apply_customizations(str(target), _ctx(config_dir))

        settings = Settings.from_dict({"thinkingVerbs": {"verbs": ["Hacking"]}})
        apply_customizations(str(target), PatchContext(settings=settings, config_dir=config_dir))
        text = target.read_text(encoding="utf-8")
        assert 'Sv=["Hacking"]' in text
        assert text.count("if(process.env.CLAUDE_CODE_CONTEXT_LIMIT)") == 1

    def test_dry_run_writes_nothing(self, workspace, sample_bundle):
        target, config_dir = workspace
        report = apply_customizations(str(target), _ctx(config_dir), dry_run=True)

        assert not report.written
        assert report.diff is not None
        assert "+++ b/cli.js" in report.diff
        assert target.read_text(encoding="utf-8") == sample_bundle
        assert not os.path.exists(os.path.join(config_dir, BACKUP_FILENAME))

    def test_metrics_logged(self, workspace):
        target, config_dir = workspace
        apply_customizations(str(target), _ctx(config_dir, target_version="1.0.100"))

        stats = read_apply_stats(config_dir)
        assert stats["total_cycles"] == 1
        with open(os.path.join(config_dir, "apply_history.jsonl"), encoding="utf-8") as f:
            entry = json.loads(f.readline())
        assert entry["target_version"] == "1.0.100"
        assert entry["written"] is True

    def test_applied_prompt_hashes_persisted(self, workspace, sample_bundle):
        target, config_dir = workspace
        target.write_text(sample_bundle + 'var h="Say hello to the user";', encoding="utf-8")
        prompt = PromptDescriptor(prompt_id="greeting", content="Say hi",
                                  pieces=["Say hello to the user"], identifier_positions=[],
                                  identifier_map={}, version="1.0.100")

        report = apply_customizations(str(target), _ctx(config_dir, prompts=[prompt]))

        assert report.prompts_matched == ["greeting"]
        assert 'var h="Say hi";' in target.read_text(encoding="utf-8")
        assert set(read_applied_hashes(config_dir)) == {"greeting"}
        assert os.path.isfile(os.path.join(config_dir, "systemPromptOriginalHashes.json"))


class TestRestoreOriginal:
    def test_restore_after_apply(self, workspace, sample_bundle):
        target, config_dir = workspace
        apply_customizations(str(target), _ctx(config_dir))
        assert restore_original(str(target), config_dir)
        assert target.read_text(encoding="utf-8") == sample_bundle

    def test_restore_clears_applied_hashes(self, workspace):
        target, config_dir = workspace
        os.makedirs(config_dir)
        with open(os.path.join(config_dir, APPLIED_HASHES_FILE), "w", encoding="utf-8") as f:
            json.dump({"greeting": "abc"}, f)
        apply_customizations(str(target), _ctx(config_dir))

        restore_original(str(target), config_dir)
        assert read_applied_hashes(config_dir) == {"greeting": None}

    def test_nothing_to_restore(self, workspace):
        target, config_dir = workspace
        assert not restore_original(str(target), config_dir)


class TestLineEndings:
    TAIL = 'var t=`line1\r\nline2\rline3`;\r\n'

    def test_apply_and_restore_keep_raw_bytes(self, tmp_path, sample_bundle):
        pristine = (sample_bundle + self.TAIL).encode("utf-8")
        target = tmp_path / "cli.js"
        target.write_bytes(pristine)
        config_dir = str(tmp_path / "config")

        report = apply_customizations(str(target), _ctx(config_dir))
        assert report.written
        assert target.read_bytes().endswith(self.TAIL.encode("utf-8"))
        with open(os.path.join(config_dir, BACKUP_FILENAME), "rb") as f:
            assert f.read() == pristine

        assert restore_original(str(target), config_dir)
        assert target.read_bytes() == pristine

    def test_second_cycle_sees_no_change(self, tmp_path, sample_bundle):
        target = tmp_path / "cli.js"
        target.write_bytes((sample_bundle + self.TAIL).encode("utf-8"))
        config_dir = str(tmp_path / "config")

        apply_customizations(str(target), _ctx(config_dir))
        assert not apply_customizations(str(target), _ctx(config_dir)).written


class TestReinstalledTarget:
    def _last_metric(self, config_dir):
        with open(os.path.join(config_dir, "apply_history.jsonl"), encoding="utf-8") as f:
            return json.loads(f.read().splitlines()[-1])

    def test_upgrade_takes_fresh_backup(self, workspace, sample_bundle):
        target, config_dir = workspace
        apply_customizations(str(target), _ctx(config_dir, target_version="1.0.0"))
        upgraded = sample_bundle + "var NEW_IN_V2=1;"
        target.write_text(upgraded, encoding="utf-8")

        report = apply_customizations(str(target), _ctx(config_dir, target_version="2.0.0"))

        assert report.written
        text = target.read_text(encoding="utf-8")
        assert "NEW_IN_V2" in text
        assert text.count("if(process.env.CLAUDE_CODE_CONTEXT_LIMIT)") == 1
        with open(os.path.join(config_dir, BACKUP_FILENAME), encoding="utf-8") as f:
            assert f.read() == upgraded
        assert self._last_metric(config_dir)["backup_refreshed"] is True

        assert restore_original(str(target), config_dir)
        assert target.read_text(encoding="utf-8") == upgraded

    def test_reinstall_detected_without_version(self, workspace, sample_bundle):
        target, config_dir = workspace
        apply_customizations(str(target), _ctx(config_dir))
        target.write_text(sample_bundle + "var NEW_IN_V2=1;", encoding="utf-8")

        apply_customizations(str(target), _ctx(config_dir))
        assert "NEW_IN_V2" in target.read_text(encoding="utf-8")

    def test_patched_target_keeps_backup_when_version_label_changes(self, workspace,
                                                                    sample_bundle):
        target, config_dir = workspace
        apply_customizations(str(target), _ctx(config_dir, target_version="1.0.0"))

        apply_customizations(str(target), _ctx(config_dir, target_version="2.0.0"))

        with open(os.path.join(config_dir, BACKUP_FILENAME), encoding="utf-8") as f:
            assert f.read() == sample_bundle
        assert self._last_metric(config_dir)["backup_refreshed"] is False

    def test_restore_then_apply_reuses_backup(self, workspace, sample_bundle):
        target, config_dir = workspace
        apply_customizations(str(target), _ctx(config_dir))
        restore_original(str(target), config_dir)

        report = apply_customizations(str(target), _ctx(config_dir))
        assert report.written
        assert self._last_metric(config_dir)["backup_refreshed"] is False

    def test_dry_run_after_upgrade_previews_installed_text(self, workspace, sample_bundle):
        target, config_dir = workspace
        apply_customizations(str(target), _ctx(config_dir, target_version="1.0.0"))
        upgraded = sample_bundle + "var NEW_IN_V2=1;"
        target.write_text(upgraded, encoding="utf-8")

        report = apply_customizations(str(target), _ctx(config_dir, target_version="2.0.0"),
                                      dry_run=True)

        assert "-var NEW_IN_V2=1;" not in report.diff
        assert target.read_text(encoding="utf-8") == upgraded
        with open(os.path.join(config_dir, BACKUP_FILENAME), encoding="utf-8") as f:
            assert f.read() == sample_bundle
