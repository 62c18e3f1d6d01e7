"""HTTP route handlers."""

import json
import logging
from datetime import date, tzinfo
from typing import Any

from aiohttp import web

from moya.application.services import NotificationCenter, SyncController
from moya.application.use_cases import CaptureBridge
from moya.domain.entities import (
    FilterCriteria,
    GroupBy,
    Item,
    StatusFilter,
    TagSortOrder,
    UserIdentity,
    item_to_record,
)
from moya.domain.exceptions import (
    BackendNotConfiguredError,
    ItemNotFoundError,
    RemoteOperationError,
    SessionChangeError,
    SessionNotReadyError,
    TagNotFoundError,
)
from moya.domain.repositories import BlobStore
from moya.domain.services import (
    colors_for,
    known_tags,
    select_and_group,
    sort_tags,
    split_hashtags,
    split_links,
)

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 5 * 1024 * 1024


def _error(status: int, message: str, **extra: Any) -> web.Response:
    return web.json_response({"error": message, **extra}, status=status)


@web.middleware
async def error_middleware(request: web.Request, handler: Any) -> web.StreamResponse:
    """Map domain exceptions to HTTP responses."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except (ItemNotFoundError, TagNotFoundError) as e:
        return _error(404, str(e))
    except SessionNotReadyError as e:
        return _error(409, str(e), state=e.state)
    except BackendNotConfiguredError as e:
        return _error(409, str(e))
    except SessionChangeError as e:
        return _error(500, str(e), userId=e.user_id)
    except RemoteOperationError as e:
        return _error(502, str(e), operation=e.operation)
    except ValueError as e:
        return _error(400, str(e))


def parse_filter_criteria(query: Any) -> FilterCriteria:
    """Build filter criteria from query parameters.

    Recognised parameters: ``q``, ``status``, ``tags`` (comma separated,
    may repeat), ``date`` (YYYY-MM-DD), ``group_by``.

    Raises:
        ValueError: A parameter has an unknown value.
    """
    tags: list[str] = []
    for raw in query.getall("tags", []):
        tags.extend(tag for tag in raw.split(",") if tag)

    selected_date = None
    if query.get("date"):
        selected_date = date.fromisoformat(query["date"])

    return FilterCriteria(
        search_query=query.get("q", ""),
        status=StatusFilter(query.get("status", "all")),
        selected_tags=tuple(dict.fromkeys(tags)),
        selected_date=selected_date,
        group_by=GroupBy(query.get("group_by", "none")),
    )


def serialize_item(item: Item, recently_added_id: str | None) -> dict[str, Any]:
    return {
        **item_to_record(item),
        "isNew": item.id == recently_added_id,
        "textSegments": [
            {"kind": s.kind.value, "value": s.value} for s in split_hashtags(item.text)
        ],
        "descriptionSegments": [
            {"kind": s.kind.value, "value": s.value}
            for s in split_links(item.description)
        ],
    }


async def _read_json(request: web.Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except json.JSONDecodeError as e:
        raise web.HTTPBadRequest(reason="Malformed JSON body") from e
    if not isinstance(body, dict):
        raise web.HTTPBadRequest(reason="JSON body must be an object")
    return body


def register_routes(
    app: web.Application,
    controller: SyncController,
    bridge: CaptureBridge,
    notifications: NotificationCenter,
    blob_store: BlobStore | None = None,
    tz: tzinfo | None = None,
) -> None:
    """Register HTTP routes.

    Args:
        app: Application to register on.
        controller: Sync controller owning the write path.
        bridge: Capture bridge for URL and extension captures.
        notifications: Notification center drained by clients.
        blob_store: Image blob store.
        tz: Zone for calendar dates (None uses the local zone).
    """
    store = controller.item_store

    def build_view(criteria: FilterCriteria) -> dict[str, Any]:
        items = store.items
        settings = store.settings
        available = known_tags(settings.categories, items)
        # A selected tag that no longer exists drops out of the filter
        for tag in criteria.selected_tags:
            if tag not in available:
                criteria = criteria.without_tag(tag)
        tags = sort_tags(
            available,
            items,
            settings.tag_sort_order,
            settings.custom_tag_order,
        )
        groups = select_and_group(items, criteria, tz)
        user = controller.user
        return {
            "state": controller.state.value,
            "configured": controller.is_configured,
            "user": user.to_dict() if user else None,
            "groups": [
                {
                    "key": group.key,
                    "items": [
                        serialize_item(item, store.recently_added_id)
                        for item in group.items
                    ],
                }
                for group in groups
            ],
            "tags": tags,
            "selectedTags": list(criteria.selected_tags),
            "tagColors": colors_for(tags, settings.tag_colors),
            "tagSortOrder": settings.tag_sort_order.value,
            "pendingCaptures": len(controller.pending_captures),
        }

    async def handle_index(request: web.Request) -> web.Response:
        """Serve the view; ingest a capture first when ``text`` is present."""
        if "text" in request.query:
            try:
                await bridge.ingest_query(request.query)
            except RemoteOperationError as e:
                return _error(
                    502,
                    str(e),
                    text=request.query.get("text"),
                    url=request.query.get("url"),
                )
            # Drop the parameters so a reload does not submit again
            raise web.HTTPSeeOther(location="/")
        return web.json_response(build_view(parse_filter_criteria(request.query)))

    async def handle_list_items(request: web.Request) -> web.Response:
        return web.json_response(build_view(parse_filter_criteria(request.query)))

    async def handle_add_item(request: web.Request) -> web.Response:
        body = await _read_json(request)
        text = body.get("text")
        description = body.get("description")
        if not isinstance(text, str):
            return web.Response(status=204)
        try:
            item_id = await controller.add_item(
                text, description if isinstance(description, str) else None
            )
        except RemoteOperationError as e:
            # Echo the input back so the client can offer a retry
            return _error(502, str(e), text=text, description=description)
        if item_id is None:
            return web.Response(status=204)
        return web.json_response({"id": item_id}, status=201)

    async def handle_message(request: web.Request) -> web.Response:
        try:
            message = await request.json()
        except ValueError:
            # Undecodable bodies are ignored like unknown messages
            return web.Response(status=204)
        payload = await bridge.ingest_message(message)
        if payload is None:
            return web.Response(status=204)
        return web.json_response(
            {"accepted": True, "queued": not controller.state.is_terminal},
            status=202,
        )

    async def handle_toggle(request: web.Request) -> web.Response:
        status = await controller.toggle_status(request.match_info["item_id"])
        return web.json_response({"status": status.value})

    async def handle_update_item(request: web.Request) -> web.Response:
        body = await _read_json(request)
        description = body.get("description")
        if description is not None and not isinstance(description, str):
            raise ValueError("description must be a string")
        stored = await controller.update_description(
            request.match_info["item_id"], description
        )
        return web.json_response({"description": stored})

    async def handle_delete_item(request: web.Request) -> web.Response:
        if request.query.get("confirm") != "true":
            return _error(400, "Deletion requires confirm=true")
        await controller.delete_item(request.match_info["item_id"])
        return web.Response(status=204)

    async def handle_attach_image(request: web.Request) -> web.Response:
        data = await request.read()
        if not data:
            raise ValueError("Image body cannot be empty")
        if len(data) > MAX_IMAGE_BYTES:
            return _error(413, "Image too large")
        ref = await controller.attach_image(
            request.match_info["item_id"],
            data,
            request.content_type or "application/octet-stream",
        )
        return web.json_response({"ref": ref}, status=201)

    async def handle_remove_image(request: web.Request) -> web.Response:
        await controller.remove_image(
            request.match_info["item_id"], request.match_info["ref"]
        )
        return web.Response(status=204)

    async def handle_get_blob(request: web.Request) -> web.Response:
        if blob_store is None:
            raise web.HTTPNotFound()
        blob = await blob_store.get(request.match_info["ref"])
        if blob is None:
            raise web.HTTPNotFound()
        data, content_type = blob
        return web.Response(body=data, content_type=content_type)

    async def handle_add_tag(request: web.Request) -> web.Response:
        body = await _read_json(request)
        await controller.add_category(str(body.get("name", "")))
        return web.Response(status=204)

    async def handle_rename_tag(request: web.Request) -> web.Response:
        body = await _read_json(request)
        await controller.rename_tag(
            request.match_info["name"], str(body.get("name", ""))
        )
        return web.Response(status=204)

    async def handle_delete_tag(request: web.Request) -> web.Response:
        await controller.delete_tag(request.match_info["name"])
        return web.Response(status=204)

    async def handle_tag_color(request: web.Request) -> web.Response:
        body = await _read_json(request)
        color = body.get("color")
        if color is not None and not isinstance(color, str):
            raise ValueError("color must be a string or null")
        await controller.set_tag_color(request.match_info["name"], color)
        return web.Response(status=204)

    async def handle_tag_order(request: web.Request) -> web.Response:
        body = await _read_json(request)
        order = body.get("order")
        if not isinstance(order, list) or not all(isinstance(t, str) for t in order):
            raise ValueError("order must be a list of tag names")
        await controller.set_custom_tag_order(order)
        return web.Response(status=204)

    async def handle_tag_sort(request: web.Request) -> web.Response:
        body = await _read_json(request)
        await controller.set_tag_sort_order(TagSortOrder(body.get("sortOrder")))
        return web.Response(status=204)

    async def handle_sign_in(request: web.Request) -> web.Response:
        body = await _read_json(request)
        identity = UserIdentity.from_dict(body)
        await controller.sign_in(identity)
        return web.json_response(
            {
                "state": controller.state.value,
                "migration": _migration_summary(controller),
            }
        )

    async def handle_sign_out(request: web.Request) -> web.Response:
        await controller.sign_out()
        return web.json_response({"state": controller.state.value})

    async def handle_notifications(request: web.Request) -> web.Response:
        return web.json_response(
            {"notifications": [n.to_dict() for n in notifications.drain()]}
        )

    async def handle_live(request: web.Request) -> web.Response:
        return web.json_response({"status": "alive", "state": controller.state.value})

    app.router.add_get("/", handle_index)
    app.router.add_get("/live", handle_live)
    app.router.add_get("/items", handle_list_items)
    app.router.add_post("/items", handle_add_item)
    app.router.add_patch("/items/{item_id}", handle_update_item)
    app.router.add_delete("/items/{item_id}", handle_delete_item)
    app.router.add_post("/items/{item_id}/toggle", handle_toggle)
    app.router.add_post("/items/{item_id}/images", handle_attach_image)
    app.router.add_delete("/items/{item_id}/images/{ref}", handle_remove_image)
    app.router.add_get("/blobs/{ref}", handle_get_blob)
    app.router.add_post("/messages", handle_message)
    app.router.add_post("/tags", handle_add_tag)
    app.router.add_patch("/tags/{name}", handle_rename_tag)
    app.router.add_delete("/tags/{name}", handle_delete_tag)
    app.router.add_put("/tags/{name}/color", handle_tag_color)
    app.router.add_put("/settings/tag-order", handle_tag_order)
    app.router.add_put("/settings/tag-sort", handle_tag_sort)
    app.router.add_post("/auth/sign-in", handle_sign_in)
    app.router.add_post("/auth/sign-out", handle_sign_out)
    app.router.add_get("/notifications", handle_notifications)


def _migration_summary(controller: SyncController) -> dict[str, Any] | None:
    result = controller.last_migration
    if result is None:
        return None
    return {
        "total": result.total,
        "imported": result.imported,
        "failedIds": result.failed_ids,
        "declined": result.declined,
    }
