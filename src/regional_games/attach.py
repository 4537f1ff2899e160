"""regional_games.attach

Attach one game to one user.

Status policy for ``POST user/{user_id}/game/{game_id}``:
  - 2xx                 → attached
  - 409 Conflict        → already attached (idempotent success, INFO log)
  - any other status    → failed (WARNING log, run continues)
  - transport / timeout → failed (WARNING log, run continues)

attach_game never raises for API failures; every task ends in a terminal
outcome so the run can wait on all of them.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from regional_games.api import ApiError
from regional_games.resolvers import Api
from regional_games.shared import RunCounters

log = logging.getLogger(__name__)

ALREADY_ATTACHED_STATUSES = frozenset({409})


class AttachOutcome(str, enum.Enum):
    ATTACHED = "attached"
    ALREADY_ATTACHED = "already_attached"
    FAILED = "failed"


@dataclass(frozen=True)
class AttachTask:
    user_id: str
    game_id: str
    group_id: str
    page: int

    @property
    def path(self) -> str:
        return f"user/{self.user_id}/game/{self.game_id}"


def classify_status(status: int) -> AttachOutcome:
    if 200 <= status < 300:
        return AttachOutcome.ATTACHED
    if status in ALREADY_ATTACHED_STATUSES:
        return AttachOutcome.ALREADY_ATTACHED
    return AttachOutcome.FAILED


async def attach_game(api: Api, task: AttachTask, counters: RunCounters) -> AttachOutcome:
    log.info("Saving game %s to user %s", task.game_id, task.user_id)
    try:
        result = await api.post(task.path, {})
    except ApiError as exc:
        return _record_failure(task, counters, str(exc))

    outcome = classify_status(result.status)
    if outcome is AttachOutcome.FAILED:
        return _record_failure(task, counters, f"status {result.status}")

    if outcome is AttachOutcome.ALREADY_ATTACHED:
        counters.attach_already_attached += 1
        log.info("Game %s already attached to user %s", task.game_id, task.user_id)
    else:
        counters.attach_succeeded += 1
    return outcome


def _record_failure(task: AttachTask, counters: RunCounters, error: str) -> AttachOutcome:
    counters.attach_failed += 1
    counters.warn(
        f"attach failed user_id={task.user_id} game_id={task.game_id} "
        f"group_id={task.group_id} page={task.page}: {error}"
    )
    log.warning(
        "Failed to attach game %s to user %s (group=%s page=%s): %s",
        task.game_id, task.user_id, task.group_id, task.page, error,
    )
    return AttachOutcome.FAILED
