"""Unit tests for run counters and report helpers."""

from __future__ import annotations

import json

from regional_games.shared import MAX_WARNINGS, RunCounters, build_run_report, write_run_report


class TestRunCounters:
    def test_attach_completed(self):
        c = RunCounters(attach_succeeded=3, attach_already_attached=1, attach_failed=2)
        assert c.attach_completed == 6
        assert c.to_dict()["attach_completed"] == 6

    def test_warnings_bounded(self):
        c = RunCounters()
        for i in range(MAX_WARNINGS + 10):
            c.warn(f"w{i}")
        assert len(c.warnings) == MAX_WARNINGS
        assert c.warnings[0] == "w0"


class TestReports:
    def test_text_report_includes_group_and_warnings(self):
        c = RunCounters(attach_failed=1)
        c.warn("attach failed user_id=u1 game_id=g1")
        report = build_run_report(c, "group", "grp1")
        assert "group            : grp1" in report
        assert "failed           : 1" in report
        assert "attach failed user_id=u1" in report

    def test_cron_report_has_no_group_line(self):
        assert "group            :" not in build_run_report(RunCounters(), "cron")

    def test_write_run_report(self, tmp_path):
        path = write_run_report(
            tmp_path / "reports", "abc", "2026-01-01T00:00:00+00:00", "cron", None,
            RunCounters(pages_fetched=3),
        )
        assert path == tmp_path / "reports" / "abc.json"
        data = json.loads(path.read_text())
        assert data["run_id"] == "abc"
        assert data["counters"]["pages_fetched"] == 3
        assert data["error"] is None
