"""Integration fixtures.

Serves an in-process HAL-style games API with aiohttp's TestServer so the
real ApiClient, resolvers, walker and executor run end to end over HTTP.
"""

from __future__ import annotations

import math
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator

import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

API_USER = "svc-user"
API_PASS = "svc-pass"


@dataclass
class DirectoryState:
    games: dict[str, list[str] | None] = field(default_factory=dict)
    addresses: dict[str, list[str]] = field(default_factory=dict)
    groups: dict[str, list[str]] = field(default_factory=dict)
    users: dict[str, list[str]] = field(default_factory=dict)
    post_status: dict[tuple[str, str], int] = field(default_factory=dict)
    gets: list[tuple[str, dict[str, str]]] = field(default_factory=list)
    posts: list[tuple[str, str]] = field(default_factory=list)

    def user_page_requests(self, group_id: str) -> list[int]:
        path = f"/group/{group_id}/users"
        return [int(q["page"]) for p, q in self.gets if p == path]


def build_directory_app(state: DirectoryState) -> web.Application:
    expected_auth = aiohttp.BasicAuth(API_USER, API_PASS).encode()

    @web.middleware
    async def auth_and_record(request: web.Request, handler: Any) -> web.StreamResponse:
        if request.headers.get("Authorization") != expected_auth:
            return web.json_response({"error": "unauthorized"}, status=401)
        if request.method == "GET":
            state.gets.append((request.path, dict(request.query)))
        return await handler(request)

    async def games(request: web.Request) -> web.Response:
        items = []
        for game_id, zips in state.games.items():
            item: dict[str, Any] = {"game_id": game_id, "title": f"Game {game_id}"}
            if zips is not None:
                item["meta"] = {"zipcodes": zips}
            items.append(item)
        return web.json_response({"_embedded": {"game": items}, "total_items": len(items)})

    async def addresses(request: web.Request) -> web.Response:
        ids = state.addresses.get(request.query.get("postal_code", ""), [])
        return web.json_response({
            "_embedded": {"address": [{"address_id": a} for a in ids]},
            "total_items": len(ids),
        })

    async def address_groups(request: web.Request) -> web.Response:
        ids = state.groups.get(request.match_info["address_id"], [])
        return web.json_response({
            "_embedded": {"group": [{"group_id": g} for g in ids]},
            "total_items": len(ids),
        })

    async def group_users(request: web.Request) -> web.Response:
        group_id = request.match_info["group_id"]
        if group_id not in state.users:
            return web.json_response({"error": "not found"}, status=404)
        users = state.users[group_id]
        page = int(request.query.get("page", "1"))
        per_page = int(request.query.get("per_page", "100"))
        pages = max(1, math.ceil(len(users) / per_page))
        chunk = users[(page - 1) * per_page: page * per_page]
        links: dict[str, Any] = {"self": {"href": f"{request.path}?page={page}"}}
        if page < pages:
            links["next"] = {"href": f"{request.path}?page={page + 1}"}
        return web.json_response({
            "_embedded": {"items": [{"user_id": u} for u in chunk]},
            "_links": links,
            "page": page,
            "page_count": pages,
            "total_items": len(users),
        })

    async def attach(request: web.Request) -> web.Response:
        user_id = request.match_info["user_id"]
        game_id = request.match_info["game_id"]
        state.posts.append((user_id, game_id))
        status = state.post_status.get((user_id, game_id), 201)
        return web.json_response({"user_id": user_id, "game_id": game_id}, status=status)

    app = web.Application(middlewares=[auth_and_record])
    app.router.add_get("/game", games)
    app.router.add_get("/address", addresses)
    app.router.add_get("/address/{address_id}/group", address_groups)
    app.router.add_get("/group/{group_id}/users", group_users)
    app.router.add_post("/user/{user_id}/game/{game_id}", attach)
    return app


@asynccontextmanager
async def serve(app: web.Application) -> AsyncIterator[str]:
    async with TestServer(app) as server:
        yield str(server.make_url("/"))


@pytest.fixture
def directory() -> DirectoryState:
    return DirectoryState()


@pytest.fixture
def serve_directory():
    def factory(state: DirectoryState):
        return serve(build_directory_app(state))

    return factory


@pytest.fixture
def serve_app():
    return serve
