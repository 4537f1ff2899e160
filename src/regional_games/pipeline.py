"""regional_games.pipeline

Resolution pipeline shared by the cron and group modes.

Processing order:
  1. Fetch regional games (games with at least one zip code).
  2. Invert them into a zip → games index.
  3. Per zip code, resolve address ids concurrently     → barrier
  4. Drop records without addresses.
  5. Per (record, address), resolve group ids concurrently → barrier
     Each address yields its own copy of the record carrying that
     address's groups.
  6. Fan records out to group walks:
       cron : every group of every record
       group: only the requested group, from records that contain it
     Walks for one group are merged into a single walk over the union of
     the contributing records' games.
  7. Walk every group concurrently and wait for every spawned attachment.
"""

from __future__ import annotations

import asyncio
import dataclasses
import enum
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from regional_games.pagination import GroupWalk, TaskSpawner, walk_group
from regional_games.resolvers import (
    PER_PAGE,
    Api,
    game_zip_codes,
    resolve_address_ids,
    resolve_group_ids,
    resolve_regional_games,
)
from regional_games.shared import RunCounters

log = logging.getLogger(__name__)


class JobMode(str, enum.Enum):
    CRON = "cron"
    GROUP = "group"


@dataclass(frozen=True)
class GameHash:
    games: frozenset[str]
    addresses: tuple[str, ...]
    zip_code: str
    groups: tuple[str, ...] | None = None

    def with_groups(self, groups: Iterable[str]) -> GameHash:
        return dataclasses.replace(self, groups=tuple(groups))


# ---------------------------------------------------------------------------
# Stage helpers
# ---------------------------------------------------------------------------

def build_zip_index(regional_games: Iterable[dict[str, Any]]) -> dict[str, set[str]]:
    """Map each zip code to the set of game ids that list it."""
    index: dict[str, set[str]] = {}
    for game in regional_games:
        game_id = str(game["game_id"])
        for zip_code in game_zip_codes(game):
            index.setdefault(zip_code, set()).add(game_id)
    return index


async def resolve_addresses_for_zips(
    api: Api,
    zip_index: dict[str, set[str]],
) -> list[GameHash]:
    async def one(zip_code: str, games: set[str]) -> GameHash:
        addresses = await resolve_address_ids(api, zip_code)
        return GameHash(games=frozenset(games), addresses=tuple(addresses), zip_code=zip_code)

    return list(await asyncio.gather(*(one(z, g) for z, g in zip_index.items())))


def drop_records_without_addresses(records: Iterable[GameHash]) -> list[GameHash]:
    return [r for r in records if r.addresses]


async def resolve_groups_for_addresses(api: Api, records: Iterable[GameHash]) -> list[GameHash]:
    async def one(record: GameHash, address_id: str) -> GameHash:
        groups = await resolve_group_ids(api, address_id)
        return record.with_groups(groups)

    coros = [one(record, address_id) for record in records for address_id in record.addresses]
    return list(await asyncio.gather(*coros))


async def resolve_game_hashes(api: Api, counters: RunCounters | None = None) -> list[GameHash]:
    """Run resolution stages 1–5 and return the group-bearing records."""
    counters = counters if counters is not None else RunCounters()

    regional_games = await resolve_regional_games(api)
    counters.regional_games = len(regional_games)

    zip_index = build_zip_index(regional_games)
    counters.zip_codes = len(zip_index)
    log.debug("Zip index: %s", zip_index)

    records = await resolve_addresses_for_zips(api, zip_index)
    counters.records_built = len(records)

    with_addresses = drop_records_without_addresses(records)
    counters.records_dropped_no_address = len(records) - len(with_addresses)

    resolved = await resolve_groups_for_addresses(api, with_addresses)
    counters.records_with_groups = sum(1 for r in resolved if r.groups)
    counters.records_without_groups = len(resolved) - counters.records_with_groups
    log.info(
        "Resolved %s record(s) over %s zip code(s) from %s regional game(s)",
        len(resolved), counters.zip_codes, counters.regional_games,
    )
    return resolved


# ---------------------------------------------------------------------------
# Fan-out planning
# ---------------------------------------------------------------------------

def _merge_walks(pairs: Iterable[tuple[str, Iterable[str]]]) -> list[GroupWalk]:
    games_by_group: dict[str, set[str]] = {}
    for group_id, games in pairs:
        games_by_group.setdefault(group_id, set()).update(games)
    return [
        GroupWalk(group_id=group_id, game_ids=tuple(sorted(games)))
        for group_id, games in games_by_group.items()
        if games
    ]


def plan_cron_walks(records: Iterable[GameHash]) -> list[GroupWalk]:
    return _merge_walks(
        (group_id, record.games)
        for record in records
        for group_id in (record.groups or ())
    )


def plan_group_walks(records: Iterable[GameHash], group_id: str) -> list[GroupWalk]:
    """Empty or missing ``groups`` never match."""
    return _merge_walks(
        (group_id, record.games)
        for record in records
        if group_id in (record.groups or ())
    )


def plan_walks(
    records: Iterable[GameHash],
    mode: JobMode,
    group_id: str | None = None,
) -> list[GroupWalk]:
    if mode is JobMode.GROUP:
        if not group_id:
            raise ValueError("group mode requires a group id")
        return plan_group_walks(records, group_id)
    return plan_cron_walks(records)


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

async def run_walks(
    api: Api,
    walks: Iterable[GroupWalk],
    counters: RunCounters,
    per_page: int = PER_PAGE,
) -> None:
    """Walk every group concurrently; return when all attachments are done."""
    spawner = TaskSpawner()
    for walk in walks:
        spawner.spawn(
            walk_group(api, spawner, counters, walk, per_page=per_page),
            name=f"walk:{walk.group_id}",
        )
    await spawner.join()


async def run_pipeline(
    api: Api,
    mode: JobMode | str,
    group_id: str | None = None,
    counters: RunCounters | None = None,
    per_page: int = PER_PAGE,
) -> RunCounters:
    mode = JobMode(mode)
    counters = counters if counters is not None else RunCounters()

    records = await resolve_game_hashes(api, counters)
    walks = plan_walks(records, mode, group_id)
    if mode is JobMode.GROUP and not walks:
        log.info("Group %s is not served by any regional game", group_id)

    await run_walks(api, walks, counters, per_page=per_page)
    log.info(
        "Done processing %s: %s walk(s), %s attachment(s) dispatched",
        mode.value, counters.group_walks, counters.attach_dispatched,
    )
    return counters


async def cron(
    api: Api,
    counters: RunCounters | None = None,
    per_page: int = PER_PAGE,
) -> RunCounters:
    return await run_pipeline(api, JobMode.CRON, counters=counters, per_page=per_page)


async def group(
    api: Api,
    group_id: str,
    counters: RunCounters | None = None,
    per_page: int = PER_PAGE,
) -> RunCounters:
    return await run_pipeline(api, JobMode.GROUP, group_id, counters=counters, per_page=per_page)
