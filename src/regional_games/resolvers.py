"""regional_games.resolvers

One coroutine per API resource. Each issues a single GET with
``per_page=100`` plus its filters, then projects one ``_embedded`` field into
a flat list. A missing field is an empty list; API errors propagate.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from regional_games.api import PostResult

PER_PAGE = 100


class Api(Protocol):
    async def get(self, path: str, query: dict[str, Any] | None = None) -> Any: ...

    async def post(self, path: str, data: dict[str, Any] | None = None) -> PostResult: ...


@dataclass(frozen=True)
class UserPage:
    group_id: str
    page: int
    user_ids: list[str]
    has_next: bool


# ---------------------------------------------------------------------------
# JSON projection helpers
# ---------------------------------------------------------------------------

def embedded_items(body: Any, resource: str) -> list[Any]:
    """Return ``body['_embedded'][resource]`` as a list, or [] if absent."""
    if not isinstance(body, dict):
        return []
    embedded = body.get("_embedded")
    if not isinstance(embedded, dict):
        return []
    items = embedded.get(resource)
    return list(items) if isinstance(items, list) else []


def project_ids(items: list[Any], key: str) -> list[str]:
    """Collect ``item[key]`` as strings, skipping items without the key."""
    ids: list[str] = []
    for item in items:
        if isinstance(item, dict) and item.get(key) is not None:
            ids.append(str(item[key]))
    return ids


def game_zip_codes(game: dict[str, Any]) -> list[str]:
    meta = game.get("meta")
    if not isinstance(meta, dict):
        return []
    zips = meta.get("zipcodes")
    if not zips:
        return []
    if isinstance(zips, str):
        return [zips]
    return [str(z) for z in zips]


def has_next_link(body: Any) -> bool:
    if not isinstance(body, dict):
        return False
    links = body.get("_links")
    return isinstance(links, dict) and "next" in links


# ---------------------------------------------------------------------------
# Resolvers
# ---------------------------------------------------------------------------

async def resolve_regional_games(api: Api) -> list[dict[str, Any]]:
    """Fetch games and keep only those restricted to at least one zip code."""
    body = await api.get("game", {"per_page": PER_PAGE})
    return [
        game
        for game in embedded_items(body, "game")
        if isinstance(game, dict) and game.get("game_id") is not None and game_zip_codes(game)
    ]


async def resolve_address_ids(api: Api, zip_code: str) -> list[str]:
    body = await api.get(
        "address",
        {"postal_code": zip_code, "filter": "group", "per_page": PER_PAGE},
    )
    return project_ids(embedded_items(body, "address"), "address_id")


async def resolve_group_ids(api: Api, address_id: str) -> list[str]:
    body = await api.get(f"address/{address_id}/group", {"per_page": PER_PAGE})
    return project_ids(embedded_items(body, "group"), "group_id")


async def fetch_group_users_page(
    api: Api,
    group_id: str,
    page: int,
    per_page: int = PER_PAGE,
) -> UserPage:
    """Fetch one page of a group's users."""
    body = await api.get(f"group/{group_id}/users", {"per_page": per_page, "page": page})
    return UserPage(
        group_id=group_id,
        page=page,
        user_ids=project_ids(embedded_items(body, "items"), "user_id"),
        has_next=has_next_link(body),
    )
