"""regional_games.pagination

Group pagination walk + the per-run task spawner.

Walk state per (group_id, game_ids), starting at page 1:
  1. Fetch page N of the group's users.
  2. Spawn one attachment task per user × game (not awaited here).
  3. If the page carries ``_links.next`` fetch page N+1, otherwise stop.

Pages of one group are strictly sequential; attachments from page N run
while page N+1 is being fetched. Nothing from earlier pages is retained.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine, Iterable
from dataclasses import dataclass
from typing import Any

from regional_games.api import ApiError
from regional_games.attach import AttachTask, attach_game
from regional_games.resolvers import PER_PAGE, Api, fetch_group_users_page
from regional_games.shared import RunCounters

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class GroupWalk:
    group_id: str
    game_ids: tuple[str, ...]


# ---------------------------------------------------------------------------
# Task spawner
# ---------------------------------------------------------------------------

class TaskSpawner:
    """Owns every task spawned during one run.

    Finished tasks are released as soon as they complete, so only tasks
    still in flight are held. ``join()`` returns once all tasks, including
    ones spawned while joining, have finished. Failures are collected rather
    than cancelling siblings; the first one is re-raised after everything
    has settled.
    """

    def __init__(self) -> None:
        self._pending: set[asyncio.Task[Any]] = set()
        self._errors: list[BaseException] = []
        self.spawned = 0

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str | None = None) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._pending.add(task)
        task.add_done_callback(self._on_done)
        self.spawned += 1
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._errors.append(exc)

    @property
    def pending(self) -> int:
        return len(self._pending)

    @property
    def errors(self) -> list[BaseException]:
        return list(self._errors)

    async def join(self) -> None:
        while self._pending:
            await asyncio.wait(set(self._pending))
            # done callbacks run on the next loop iteration
            await asyncio.sleep(0)
        if self._errors:
            raise self._errors[0]


# ---------------------------------------------------------------------------
# Walk
# ---------------------------------------------------------------------------

def dispatch_page(
    api: Api,
    spawner: TaskSpawner,
    counters: RunCounters,
    group_id: str,
    page: int,
    user_ids: Iterable[str],
    game_ids: Iterable[str],
) -> int:
    """Spawn one attachment per (user, game); returns the number spawned."""
    games = list(game_ids)
    dispatched = 0
    for user_id in user_ids:
        for game_id in games:
            task = AttachTask(user_id=user_id, game_id=game_id, group_id=group_id, page=page)
            spawner.spawn(attach_game(api, task, counters))
            dispatched += 1
    counters.attach_dispatched += dispatched
    return dispatched


async def walk_group(
    api: Api,
    spawner: TaskSpawner,
    counters: RunCounters,
    walk: GroupWalk,
    per_page: int = PER_PAGE,
) -> int:
    """Walk every page of ``walk.group_id``; returns the number of pages fetched.

    Only the page fetch is awaited. Attachment completion is awaited by
    whoever joins ``spawner``.
    """
    log.info("Walking group %s with games %s", walk.group_id, list(walk.game_ids))
    counters.group_walks += 1
    page = 1
    while True:
        log.debug("processing page %s for group %s", page, walk.group_id)
        try:
            user_page = await fetch_group_users_page(api, walk.group_id, page, per_page=per_page)
        except ApiError:
            counters.group_walks_failed += 1
            log.error("Failed fetching page %s for group %s", page, walk.group_id)
            raise
        counters.pages_fetched += 1
        counters.users_seen += len(user_page.user_ids)

        dispatch_page(
            api, spawner, counters, walk.group_id, page,
            user_page.user_ids, walk.game_ids,
        )

        if not user_page.has_next:
            break
        page += 1

    log.info("Done walking group %s after %s page(s)", walk.group_id, page)
    return page
