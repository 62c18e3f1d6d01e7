"""Tests for the HTTP route handlers."""

from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from functools import partial
from typing import Any
from unittest.mock import AsyncMock, Mock

import aiohttp
import pytest
from multidict import MultiDict

from moya.application.use_cases import CaptureBridge
from moya.domain.entities import MISC_TAG, GroupBy, Item, StatusFilter
from moya.infrastructure.http import MoyaServer
from moya.presentation import parse_filter_criteria, register_routes


@pytest.fixture
async def controller(make_controller):
    """Started controller with a configured backend (guest session)."""
    controller = make_controller()
    await controller.start()
    yield controller
    await controller.stop()


@pytest.fixture
async def client(
    controller, notifications, blob_store
) -> AsyncGenerator[aiohttp.ClientSession, None]:
    """Run the server on any free port and yield a client bound to it."""
    server = MoyaServer(
        partial(
            register_routes,
            controller=controller,
            bridge=CaptureBridge(controller),
            notifications=notifications,
            blob_store=blob_store,
            tz=timezone.utc,
        ),
        port=0,
    )
    await server.start()
    async with aiohttp.ClientSession(base_url=f"http://127.0.0.1:{server.port}") as session:
        yield session
    await server.stop()


async def add(client: aiohttp.ClientSession, text: str, **extra: Any) -> str:
    async with client.post("/items", json={"text": text, **extra}) as resp:
        assert resp.status == 201
        return (await resp.json())["id"]


async def view(client: aiohttp.ClientSession, **params: str) -> dict[str, Any]:
    async with client.get("/items", params=params) as resp:
        assert resp.status == 200
        return await resp.json()


def first_items(data: dict[str, Any]) -> list[dict[str, Any]]:
    return data["groups"][0]["items"] if data["groups"] else []


class TestParseFilterCriteria:
    """parse_filter_criteria tests."""

    def test_defaults(self) -> None:
        criteria = parse_filter_criteria(MultiDict())

        assert criteria.search_query == ""
        assert criteria.status is StatusFilter.ALL
        assert criteria.selected_tags == ()
        assert criteria.selected_date is None
        assert criteria.group_by is GroupBy.NONE

    def test_all_parameters(self) -> None:
        criteria = parse_filter_criteria(
            MultiDict(
                [
                    ("q", "hook"),
                    ("status", "solved"),
                    ("tags", "React,CSS"),
                    ("tags", "React"),
                    ("date", "2024-05-01"),
                    ("group_by", "date"),
                ]
            )
        )

        assert criteria.search_query == "hook"
        assert criteria.status is StatusFilter.SOLVED
        assert criteria.selected_tags == ("React", "CSS")
        assert criteria.selected_date.isoformat() == "2024-05-01"
        assert criteria.group_by is GroupBy.DATE

    @pytest.mark.parametrize(
        "params", [{"status": "maybe"}, {"group_by": "tag"}, {"date": "yesterday"}]
    )
    def test_invalid_values(self, params: dict[str, str]) -> None:
        with pytest.raises(ValueError):
            parse_filter_criteria(MultiDict(params))


class TestView:
    """List view tests."""

    async def test_live(self, client: aiohttp.ClientSession) -> None:
        async with client.get("/live") as resp:
            assert resp.status == 200
            assert await resp.json() == {"status": "alive", "state": "guest"}

    async def test_empty_view(self, client: aiohttp.ClientSession) -> None:
        data = await view(client)

        assert data["state"] == "guest"
        assert data["configured"] is True
        assert data["user"] is None
        assert data["groups"] == [{"key": "all", "items": []}]
        assert data["tags"][:2] == ["HTML", "CSS"]
        assert set(data["tagColors"]) == set(data["tags"])

    async def test_item_serialisation(self, client: aiohttp.ClientSession) -> None:
        await add(client, "Why #CSS grid?", description="see https://a.io")

        item = first_items(await view(client))[0]

        assert item["text"] == "Why #CSS grid?"
        assert item["categories"] == ["CSS"]
        assert item["status"] == "unsolved"
        assert item["isNew"] is False
        assert [s["kind"] for s in item["textSegments"]] == ["text", "hashtag", "text"]
        assert item["descriptionSegments"][1] == {"kind": "link", "value": "https://a.io"}

    async def test_usage_order_of_tags(self, client: aiohttp.ClientSession) -> None:
        await add(client, "a #React")
        await add(client, "b #React")

        assert (await view(client))["tags"][0] == "React"

    async def test_filtering(self, client: aiohttp.ClientSession) -> None:
        await add(client, "first #CSS")
        await add(client, "second #HTML")

        data = await view(client, tags="HTML", group_by="status")

        assert data["groups"][0]["key"] == "unsolved"
        assert [i["text"] for i in first_items(data)] == ["second #HTML"]

    async def test_invalid_filter(self, client: aiohttp.ClientSession) -> None:
        async with client.get("/items", params={"status": "maybe"}) as resp:
            assert resp.status == 400

    async def test_filter_on_deleted_tag_shows_all(
        self, client: aiohttp.ClientSession
    ) -> None:
        await add(client, "first #CSS")
        await add(client, "second #HTML")
        async with client.delete("/tags/HTML") as resp:
            assert resp.status == 204

        data = await view(client, tags="HTML")

        assert data["selectedTags"] == []
        assert sorted(i["text"] for i in first_items(data)) == [
            "first #CSS",
            "second #HTML",
        ]

    async def test_deleted_tag_dropped_from_selection(
        self, client: aiohttp.ClientSession
    ) -> None:
        await add(client, "first #CSS")
        await add(client, "second #HTML")
        async with client.delete("/tags/HTML") as resp:
            assert resp.status == 204

        data = await view(client, tags="CSS,HTML")

        assert data["selectedTags"] == ["CSS"]
        assert [i["text"] for i in first_items(data)] == ["first #CSS"]


class TestCapture:
    """Capture URL and extension message tests."""

    async def test_capture_url_redirects(self, client: aiohttp.ClientSession) -> None:
        params = {"text": "from page #HTML", "url": "https://a.io/p"}
        async with client.get("/", params=params, allow_redirects=False) as resp:
            assert resp.status == 303
            assert resp.headers["Location"] == "/"

        item = first_items(await view(client))[0]
        assert item["categories"] == ["HTML"]
        assert item["description"] == "출처: https://a.io/p"

    async def test_index_without_text_is_view(
        self, client: aiohttp.ClientSession
    ) -> None:
        async with client.get("/") as resp:
            assert resp.status == 200
            assert (await resp.json())["state"] == "guest"

    async def test_extension_message(self, client: aiohttp.ClientSession) -> None:
        async with client.post(
            "/messages", json={"type": "MOYA_ADD_TEXT", "text": "selected"}
        ) as resp:
            assert resp.status == 202
            assert await resp.json() == {"accepted": True, "queued": False}

        assert first_items(await view(client))[0]["text"] == "selected"

    async def test_unknown_message_ignored(self, client: aiohttp.ClientSession) -> None:
        async with client.post("/messages", json={"type": "PING"}) as resp:
            assert resp.status == 204

    async def test_undecodable_message_ignored(
        self, client: aiohttp.ClientSession
    ) -> None:
        async with client.post(
            "/messages",
            data=b"\xff\xfe{",
            headers={"Content-Type": "application/json"},
        ) as resp:
            assert resp.status == 204

        assert first_items(await view(client)) == []


class TestItems:
    """Item route tests."""

    async def test_blank_text(self, client: aiohttp.ClientSession) -> None:
        async with client.post("/items", json={"text": "  "}) as resp:
            assert resp.status == 204

    async def test_malformed_body(self, client: aiohttp.ClientSession) -> None:
        async with client.post(
            "/items", data="{nope", headers={"Content-Type": "application/json"}
        ) as resp:
            assert resp.status == 400

    async def test_toggle_and_describe(self, client: aiohttp.ClientSession) -> None:
        item_id = await add(client, "text")

        async with client.post(f"/items/{item_id}/toggle") as resp:
            assert (await resp.json()) == {"status": "solved"}
        async with client.patch(f"/items/{item_id}", json={"description": "n"}) as resp:
            assert (await resp.json()) == {"description": "n"}

        item = first_items(await view(client))[0]
        assert item["status"] == "solved"
        assert item["description"] == "n"

    async def test_unknown_item(self, client: aiohttp.ClientSession) -> None:
        async with client.post("/items/missing/toggle") as resp:
            assert resp.status == 404

    async def test_delete_requires_confirmation(
        self, client: aiohttp.ClientSession
    ) -> None:
        item_id = await add(client, "text")

        async with client.delete(f"/items/{item_id}") as resp:
            assert resp.status == 400
        async with client.delete(f"/items/{item_id}?confirm=true") as resp:
            assert resp.status == 204

        assert first_items(await view(client)) == []

    async def test_images(self, client: aiohttp.ClientSession) -> None:
        item_id = await add(client, "with image")

        async with client.post(
            f"/items/{item_id}/images",
            data=b"png-bytes",
            headers={"Content-Type": "image/png"},
        ) as resp:
            assert resp.status == 201
            ref = (await resp.json())["ref"]

        async with client.get(f"/blobs/{ref}") as resp:
            assert resp.status == 200
            assert resp.content_type == "image/png"
            assert await resp.read() == b"png-bytes"

        async with client.delete(f"/items/{item_id}/images/{ref}") as resp:
            assert resp.status == 204
        assert first_items(await view(client))[0]["images"] == []

    async def test_missing_blob(self, client: aiohttp.ClientSession) -> None:
        async with client.get("/blobs/" + "0" * 64) as resp:
            assert resp.status == 404


class TestTags:
    """Tag and settings route tests."""

    async def test_rename_and_delete(self, client: aiohttp.ClientSession) -> None:
        item_id = await add(client, "q #CSS")

        async with client.patch("/tags/CSS", json={"name": "Styles"}) as resp:
            assert resp.status == 204
        async with client.delete("/tags/Styles") as resp:
            assert resp.status == 204

        data = await view(client)
        item = first_items(data)[0]
        assert item["id"] == item_id
        assert item["categories"] == ["기타"]
        assert "Styles" not in data["tags"]

    async def test_unknown_tag(self, client: aiohttp.ClientSession) -> None:
        async with client.delete("/tags/nope") as resp:
            assert resp.status == 404

    async def test_add_tag_and_color(self, client: aiohttp.ClientSession) -> None:
        async with client.post("/tags", json={"name": "Python"}) as resp:
            assert resp.status == 204
        async with client.put("/tags/Python/color", json={"color": "#000000"}) as resp:
            assert resp.status == 204

        data = await view(client)
        assert "Python" in data["tags"]
        assert data["tagColors"]["Python"] == "#000000"

    async def test_sort_order(self, client: aiohttp.ClientSession) -> None:
        async with client.put(
            "/settings/tag-sort", json={"sortOrder": "alphabetical"}
        ) as resp:
            assert resp.status == 204

        data = await view(client)
        assert data["tagSortOrder"] == "alphabetical"
        assert data["tags"] == sorted(data["tags"], key=str.casefold)

    async def test_invalid_sort_order(self, client: aiohttp.ClientSession) -> None:
        async with client.put("/settings/tag-sort", json={"sortOrder": "x"}) as resp:
            assert resp.status == 400

    async def test_custom_order(self, client: aiohttp.ClientSession) -> None:
        async with client.put("/settings/tag-order", json={"order": ["CSS"]}) as resp:
            assert resp.status == 204
        async with client.put(
            "/settings/tag-sort", json={"sortOrder": "custom"}
        ) as resp:
            assert resp.status == 204

        assert (await view(client))["tags"][0] == "CSS"

    async def test_invalid_custom_order(self, client: aiohttp.ClientSession) -> None:
        async with client.put("/settings/tag-order", json={"order": "CSS"}) as resp:
            assert resp.status == 400


class TestAuth:
    """Auth route tests."""

    async def test_sign_in_and_out(self, client: aiohttp.ClientSession) -> None:
        await add(client, "guest item")

        async with client.post(
            "/auth/sign-in", json={"id": "u1", "displayName": "Kim"}
        ) as resp:
            assert resp.status == 200
            body = await resp.json()
        assert body["state"] == "authenticated"
        assert body["migration"] == {
            "total": 1,
            "imported": 1,
            "failedIds": [],
            "declined": False,
        }

        data = await view(client)
        assert data["user"]["displayName"] == "Kim"
        assert [i["text"] for i in first_items(data)] == ["guest item"]

        async with client.post("/auth/sign-out") as resp:
            assert (await resp.json()) == {"state": "guest"}

    async def test_sign_in_without_id(self, client: aiohttp.ClientSession) -> None:
        async with client.post("/auth/sign-in", json={"displayName": "x"}) as resp:
            assert resp.status == 400

    async def test_remote_failure_echoes_input(
        self, client: aiohttp.ClientSession, remote
    ) -> None:
        async with client.post("/auth/sign-in", json={"id": "u1"}) as resp:
            assert resp.status == 200
        remote.failing_operations.add("add_item")

        async with client.post("/items", json={"text": "unsaved"}) as resp:
            assert resp.status == 502
            assert (await resp.json())["text"] == "unsaved"

        async with client.get("/notifications") as resp:
            notifications = (await resp.json())["notifications"]
        assert notifications[-1]["level"] == "error"
        assert notifications[-1]["details"]["text"] == "unsaved"

        async with client.get("/notifications") as resp:
            assert (await resp.json())["notifications"] == []


async def test_guest_only_sign_in_conflict(make_controller, notifications) -> None:
    controller = make_controller(configured=False)
    await controller.start()
    server = MoyaServer(
        partial(
            register_routes,
            controller=controller,
            bridge=CaptureBridge(controller),
            notifications=notifications,
        ),
        port=0,
    )
    await server.start()
    try:
        async with aiohttp.ClientSession() as session:
            async with session.post(
                f"http://127.0.0.1:{server.port}/auth/sign-in", json={"id": "u1"}
            ) as resp:
                assert resp.status == 409
    finally:
        await server.stop()


async def test_failed_sign_in_reports_error(
    make_controller, local, notifications
) -> None:
    await local.save_items(
        [
            Item(
                id="1",
                text="kept",
                categories=[MISC_TAG],
                created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
            )
        ]
    )
    prompt = Mock()
    prompt.confirm_import = AsyncMock(side_effect=RuntimeError("prompt closed"))
    controller = make_controller(migration_prompt=prompt)
    await controller.start()
    server = MoyaServer(
        partial(
            register_routes,
            controller=controller,
            bridge=CaptureBridge(controller),
            notifications=notifications,
        ),
        port=0,
    )
    await server.start()
    try:
        async with aiohttp.ClientSession(
            base_url=f"http://127.0.0.1:{server.port}"
        ) as session:
            async with session.post("/auth/sign-in", json={"id": "u1"}) as resp:
                assert resp.status == 500
                assert (await resp.json())["userId"] == "u1"
            async with session.get("/live") as resp:
                assert (await resp.json())["state"] == "guest"
            data = await view(session)
            assert [i["text"] for i in first_items(data)] == ["kept"]
    finally:
        await server.stop()
        await controller.stop()
