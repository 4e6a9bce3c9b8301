"""Tests for the apply history log."""

import json

from bundle_patcher.editing.metrics import log_apply_metric, read_apply_stats


class TestLogApplyMetric:
    def test_appends_timestamped_entries(self, tmp_path):
        config_dir = str(tmp_path / "cfg")
        log_apply_metric({"applied": 3}, config_dir)
        log_apply_metric({"applied": 1}, config_dir)

        lines = (tmp_path / "cfg" / "apply_history.jsonl").read_text(encoding="utf-8").splitlines()
        assert len(lines) == 2
        entry = json.loads(lines[0])
        assert entry["applied"] == 3
        assert "timestamp" in entry


class TestReadApplyStats:
    def test_no_history(self, tmp_path):
        assert read_apply_stats(str(tmp_path)) == {"total_cycles": 0}

    def test_averages_and_failures(self, tmp_path):
        config_dir = str(tmp_path)
        log_apply_metric({"applied": 4, "skipped": 1, "failed": ["themes"]}, config_dir)
        log_apply_metric({"applied": 2, "skipped": 2, "failed": ["themes", "toolsets"]},
                         config_dir)

        stats = read_apply_stats(config_dir)
        assert stats["total_cycles"] == 2
        assert stats["avg_applied"] == 3.0
        assert stats["avg_skipped"] == 1.5
        assert stats["frequently_failing"] == {"themes": 2, "toolsets": 1}

    def test_last_n_and_corrupt_lines(self, tmp_path):
        config_dir = str(tmp_path)
        for applied in range(5):
            log_apply_metric({"applied": applied}, config_dir)
        with open(tmp_path / "apply_history.jsonl", "a", encoding="utf-8") as f:
            f.write("not json\n")

        stats = read_apply_stats(config_dir, last_n=2)
        assert stats["total_cycles"] == 2
        assert stats["avg_applied"] == 3.5
