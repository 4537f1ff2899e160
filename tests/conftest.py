"""Shared fixtures: an in-memory stand-in for the games API.

FakeApi serves canned bodies per path and records every call, so tests can
assert on request ordering, fan-out and pagination without a network.
"""

from __future__ import annotations

import asyncio
import math
from typing import Any, Callable

import pytest

from regional_games.api import ApiStatusError, PostResult


class FakeApi:
    """Route table keyed by path.

    A route value may be a JSON body, an exception instance (raised), or a
    callable ``(query) -> body``.
    """

    def __init__(
        self,
        routes: dict[str, Any] | None = None,
        post_status: dict[str, int] | None = None,
        post_errors: dict[str, Exception] | None = None,
        default_post_status: int = 200,
    ) -> None:
        self.routes = dict(routes or {})
        self.post_status = dict(post_status or {})
        self.post_errors = dict(post_errors or {})
        self.default_post_status = default_post_status
        self.get_calls: list[tuple[str, dict[str, Any]]] = []
        self.post_calls: list[str] = []
        self.events: list[str] = []

    async def get(self, path: str, query: dict[str, Any] | None = None) -> Any:
        query = dict(query or {})
        self.get_calls.append((path, query))
        self.events.append(f"get:{path}:{query.get('page', '')}")
        await asyncio.sleep(0)
        if path not in self.routes:
            raise ApiStatusError(path, 404)
        route = self.routes[path]
        if isinstance(route, Exception):
            raise route
        if callable(route):
            route = route(query)
            if isinstance(route, Exception):
                raise route
        return route

    async def post(self, path: str, data: dict[str, Any] | None = None) -> PostResult:
        self.post_calls.append(path)
        self.events.append(f"post:{path}")
        await asyncio.sleep(0)
        if path in self.post_errors:
            raise self.post_errors[path]
        status = self.post_status.get(path, self.default_post_status)
        return PostResult(url=path, status=status, body=b"")

    def get_paths(self) -> list[str]:
        return [path for path, _ in self.get_calls]


def paged_users_route(user_ids: list[str], per_page: int = 100) -> Callable[[dict[str, Any]], Any]:
    """Serve ``user_ids`` as HAL pages with ``_links.next`` on all but the last."""
    pages = max(1, math.ceil(len(user_ids) / per_page))

    def route(query: dict[str, Any]) -> dict[str, Any]:
        page = int(query.get("page", 1))
        size = int(query.get("per_page", per_page))
        chunk = user_ids[(page - 1) * size: page * size]
        body: dict[str, Any] = {
            "_embedded": {"items": [{"user_id": u} for u in chunk]},
            "_links": {"self": {"href": f"?page={page}"}},
            "page": page,
        }
        if page < pages:
            body["_links"]["next"] = {"href": f"?page={page + 1}"}
        return body

    return route


def games_body(games: dict[str, list[str] | None]) -> dict[str, Any]:
    items = []
    for game_id, zips in games.items():
        item: dict[str, Any] = {"game_id": game_id}
        if zips is not None:
            item["meta"] = {"zipcodes": zips}
        items.append(item)
    return {"_embedded": {"game": items}}


def addresses_body(address_ids: list[str]) -> dict[str, Any]:
    return {"_embedded": {"address": [{"address_id": a} for a in address_ids]}, "count": len(address_ids)}


def groups_body(group_ids: list[str]) -> dict[str, Any]:
    return {"_embedded": {"group": [{"group_id": g} for g in group_ids]}, "count": len(group_ids)}


@pytest.fixture
def make_api() -> type[FakeApi]:
    return FakeApi


@pytest.fixture
def paged_users() -> Callable[..., Callable[[dict[str, Any]], Any]]:
    return paged_users_route


@pytest.fixture
def bodies() -> Any:
    class Bodies:
        games = staticmethod(games_body)
        addresses = staticmethod(addresses_body)
        groups = staticmethod(groups_body)

    return Bodies
