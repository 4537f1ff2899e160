"""regional_games.shared

Run accounting shared by the cron and group modes: RunCounters, the text
run report and the JSON report writer.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

MAX_WARNINGS = 50


# ---------------------------------------------------------------------------
# RunCounters
# ---------------------------------------------------------------------------

@dataclass
class RunCounters:
    # Resolution
    regional_games: int = 0
    zip_codes: int = 0
    records_built: int = 0
    records_dropped_no_address: int = 0
    records_with_groups: int = 0
    records_without_groups: int = 0
    # Pagination
    group_walks: int = 0
    group_walks_failed: int = 0
    pages_fetched: int = 0
    users_seen: int = 0
    # Attachment
    attach_dispatched: int = 0
    attach_succeeded: int = 0
    attach_already_attached: int = 0
    attach_failed: int = 0
    warnings: list[str] = field(default_factory=list)

    def warn(self, message: str) -> None:
        if len(self.warnings) < MAX_WARNINGS:
            self.warnings.append(message)

    @property
    def attach_completed(self) -> int:
        return self.attach_succeeded + self.attach_already_attached + self.attach_failed

    def to_dict(self) -> dict[str, Any]:
        d = {k: v for k, v in self.__dict__.items() if k != "warnings"}
        d["attach_completed"] = self.attach_completed
        d["warnings"] = list(self.warnings)
        return d


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

def build_run_report(counters: RunCounters, mode: str, group: str | None = None) -> str:
    lines = [
        "=== Regional Games Run Report ===",
        f"mode             : {mode}",
    ]
    if group:
        lines.append(f"group            : {group}")
    lines += [
        "",
        "--- Resolution ---",
        f"regional_games   : {counters.regional_games}",
        f"zip_codes        : {counters.zip_codes}",
        f"records_built    : {counters.records_built}",
        f"dropped(no addr) : {counters.records_dropped_no_address}",
        f"with_groups      : {counters.records_with_groups}",
        f"without_groups   : {counters.records_without_groups}",
        "",
        "--- Pagination ---",
        f"group_walks      : {counters.group_walks}",
        f"walks_failed     : {counters.group_walks_failed}",
        f"pages_fetched    : {counters.pages_fetched}",
        f"users_seen       : {counters.users_seen}",
        "",
        "--- Attachment ---",
        f"dispatched       : {counters.attach_dispatched}",
        f"attached         : {counters.attach_succeeded}",
        f"already_attached : {counters.attach_already_attached}",
        f"failed           : {counters.attach_failed}",
    ]
    if counters.warnings:
        lines += ["", "--- Warnings (first 10) ---"]
        lines += [f"  {w}" for w in counters.warnings[:10]]
    return "\n".join(lines)


def write_run_report(
    report_dir: Path,
    run_id: str,
    started_at: str,
    mode: str,
    group: str | None,
    counters: RunCounters,
    error: str | None = None,
) -> Path:
    report = {
        "run_id": run_id,
        "mode": mode,
        "group": group,
        "started_at": started_at,
        "finished_at": datetime.now(timezone.utc).isoformat(),
        "error": error,
        "counters": counters.to_dict(),
    }
    report_path = report_dir / f"{run_id}.json"
    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_text(json.dumps(report, indent=2, default=str))
    return report_path
