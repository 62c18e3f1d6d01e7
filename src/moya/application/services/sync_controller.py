"""Routing of reads and writes between local and cloud storage."""

import asyncio
import logging
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from functools import partial
from typing import Any, TypeVar

from moya.application.services.item_store import ItemStore
from moya.domain.entities import (
    MAX_IMAGES,
    CapturePayload,
    Item,
    ItemStatus,
    NotificationLevel,
    Settings,
    Subscription,
    SyncState,
    TagSortOrder,
    UserIdentity,
)
from moya.domain.entities.item import (
    categories_or_misc,
    dedupe,
    item_from_record,
    item_to_record,
    truncate_description,
)
from moya.domain.entities.settings import (
    CATEGORIES_FIELD,
    CUSTOM_TAG_ORDER_FIELD,
    TAG_COLORS_FIELD,
    TAG_SORT_ORDER_FIELD,
    settings_from_document,
    settings_to_document,
)
from moya.domain.exceptions import (
    BackendNotConfiguredError,
    ItemNotFoundError,
    RemoteOperationError,
    SessionChangeError,
    SessionNotReadyError,
    TagNotFoundError,
)
from moya.domain.repositories import BlobStore, LocalPersistence, RemoteStore
from moya.domain.services import (
    AuthGateway,
    MigrationPrompt,
    Notifier,
    extract_hashtags,
    known_tags,
)
from moya.domain.services.tag_cascade import (
    add_categories,
    delete_tag_from_item,
    delete_tag_from_settings,
    rename_tag_in_item,
    rename_tag_in_settings,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Capture keys remembered for duplicate detection
RECENT_CAPTURE_KEYS = 256


@dataclass(frozen=True)
class Configured:
    """A remote backend is available."""

    store: RemoteStore
    auth: AuthGateway


@dataclass(frozen=True)
class Unconfigured:
    """No remote backend; the session is guest-only."""


RemoteBackend = Configured | Unconfigured


@dataclass(frozen=True)
class MigrationResult:
    """Outcome of offering guest items to a newly signed-in account.

    Attributes:
        total: Guest items found.
        imported: Items written to the account.
        failed_ids: Guest ids whose write failed.
        declined: The user chose not to import.
    """

    total: int
    imported: int = 0
    failed_ids: list[str] = field(default_factory=list)
    declined: bool = False

    @property
    def succeeded(self) -> bool:
        return not self.declined and not self.failed_ids


_TRANSITIONS: dict[SyncState, frozenset[SyncState]] = {
    SyncState.UNINITIALIZED: frozenset({SyncState.GUEST, SyncState.AUTH_PENDING}),
    SyncState.AUTH_PENDING: frozenset({SyncState.GUEST, SyncState.AUTHENTICATED}),
    SyncState.GUEST: frozenset({SyncState.GUEST, SyncState.AUTH_PENDING}),
    SyncState.AUTHENTICATED: frozenset({SyncState.GUEST, SyncState.AUTH_PENDING}),
}


class SyncController:
    """Single authority over where item and settings writes go.

    In guest state every change is applied to the item store and then
    persisted locally. In authenticated state changes are sent to the
    remote store only, and the store snapshots that follow are the sole
    source of truth for the item store.

    State changes are driven by the auth gateway's identity stream:
    ``None`` leads to GUEST, a concrete identity leads through
    AUTH_PENDING (guest import, subscriptions) to AUTHENTICATED.
    Captures arriving before a terminal state are held and submitted once
    the session settles; other operations are rejected meanwhile.
    """

    def __init__(
        self,
        local: LocalPersistence,
        backend: RemoteBackend,
        item_store: ItemStore,
        notifier: Notifier,
        migration_prompt: MigrationPrompt,
        blob_store: BlobStore | None = None,
        default_categories: list[str] | None = None,
        remote_timeout: float = 10.0,
        highlight_seconds: float = 0.0,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialise the controller.

        Args:
            local: Guest-mode persistence.
            backend: Remote backend, or Unconfigured for guest-only use.
            item_store: In-memory store this controller owns.
            notifier: Sink for user-visible messages.
            migration_prompt: Asks whether guest items should be imported.
            blob_store: Storage for image attachments.
            default_categories: Category list used when none is stored.
            remote_timeout: Seconds before a remote call is abandoned.
            highlight_seconds: How long a new cloud item stays highlighted.
            clock: Returns the current time (UTC).
        """
        self._local = local
        self._backend = backend
        self._store = item_store
        self._notifier = notifier
        self._migration_prompt = migration_prompt
        self._blob_store = blob_store
        self._default_categories = list(default_categories or [])
        self._remote_timeout = remote_timeout
        self._highlight_seconds = highlight_seconds
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        self._state = SyncState.UNINITIALIZED
        self._user: UserIdentity | None = None
        self._lock = asyncio.Lock()
        self._auth_subscription: Subscription | None = None
        self._remote_subscriptions: list[Subscription] = []
        self._generation = 0
        self._pending: dict[str, CapturePayload] = {}
        self._submitted_keys: OrderedDict[str, None] = OrderedDict()
        self._last_migration: MigrationResult | None = None
        self._session_error: Exception | None = None
        self._last_guest_id = 0

    # --- Properties ---

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def user(self) -> UserIdentity | None:
        return self._user

    @property
    def item_store(self) -> ItemStore:
        return self._store

    @property
    def is_configured(self) -> bool:
        return isinstance(self._backend, Configured)

    @property
    def pending_captures(self) -> list[CapturePayload]:
        return list(self._pending.values())

    @property
    def last_migration(self) -> MigrationResult | None:
        return self._last_migration

    # --- Lifecycle ---

    async def start(self) -> None:
        """Leave UNINITIALIZED and start following the session."""
        if self._state is not SyncState.UNINITIALIZED:
            return

        if isinstance(self._backend, Unconfigured):
            logger.info("No remote backend configured; using local storage")
            async with self._lock:
                await self._enter_guest()
            await self._flush_pending()
            return

        self._transition(SyncState.AUTH_PENDING)
        self._auth_subscription = await self._backend.auth.subscribe(
            self._on_identity_changed
        )

    async def stop(self) -> None:
        """Tear down every subscription."""
        if self._auth_subscription is not None:
            self._auth_subscription.unsubscribe()
            self._auth_subscription = None
        self._teardown_remote()
        logger.info("Sync controller stopped")

    async def sign_in(self, identity: UserIdentity) -> None:
        """Sign in through the auth gateway.

        Raises:
            BackendNotConfiguredError: Running guest-only.
            SessionChangeError: Opening the account failed; the session
                fell back to guest state.
        """
        if not isinstance(self._backend, Configured):
            raise BackendNotConfiguredError()
        self._session_error = None
        await self._backend.auth.sign_in(identity)
        error, self._session_error = self._session_error, None
        if error is not None:
            raise SessionChangeError(identity.id, str(error)) from error

    async def sign_out(self) -> None:
        """Sign out; the session falls back to local storage.

        Raises:
            BackendNotConfiguredError: Running guest-only.
        """
        if not isinstance(self._backend, Configured):
            raise BackendNotConfiguredError()
        await self._backend.auth.sign_out()

    # --- State machine ---

    def _transition(self, target: SyncState) -> None:
        if target not in _TRANSITIONS[self._state]:
            raise RuntimeError(
                f"Invalid sync state transition: {self._state.value} -> {target.value}"
            )
        if target is not self._state:
            logger.info("Sync state: %s -> %s", self._state.value, target.value)
        self._state = target

    async def _on_identity_changed(self, identity: UserIdentity | None) -> None:
        async with self._lock:
            try:
                if identity is None:
                    if self._state is SyncState.GUEST:
                        return
                    await self._enter_guest()
                else:
                    if (
                        self._state is SyncState.AUTHENTICATED
                        and self._user is not None
                        and self._user.id == identity.id
                    ):
                        self._user = identity
                        return
                    await self._enter_authenticated(identity)
            except Exception as e:
                await self._recover_from_failed_change(identity, e)
        await self._flush_pending()

    async def _recover_from_failed_change(
        self, identity: UserIdentity | None, error: Exception
    ) -> None:
        """Settle in GUEST after a session change failed part way."""
        logger.error("Session change failed: %s", error, exc_info=error)
        self._session_error = error
        self._notifier.notify(
            NotificationLevel.ERROR,
            "Could not open your account; continuing with local storage.",
            {"userId": identity.id if identity else None},
        )
        try:
            await self._enter_guest()
        except Exception:
            logger.exception("Failed to load local storage")
            self._teardown_remote()
            self._user = None
            self._store.clear()
            self._transition(SyncState.GUEST)

    async def _enter_guest(self) -> None:
        self._teardown_remote()
        self._user = None
        # A later sign-in offers the guest items again
        await self._local.set_migration_done(False)
        items = await self._local.load_items()
        settings = await self._local.load_settings(self._default_categories)
        self._store.replace(items, settings)
        self._transition(SyncState.GUEST)
        logger.info("Loaded %d item(s) from local storage", len(items))

    async def _enter_authenticated(self, identity: UserIdentity) -> None:
        assert isinstance(self._backend, Configured)
        self._teardown_remote()
        if self._state is not SyncState.AUTH_PENDING:
            self._transition(SyncState.AUTH_PENDING)
        self._user = identity

        self._last_migration = await self._migrate_guest_items(identity)

        self._store.clear()
        generation = self._generation
        store = self._backend.store
        try:
            self._remote_subscriptions.append(
                await self._remote_call(
                    "subscribe_items",
                    store.subscribe_items(
                        identity.id,
                        partial(self._on_items_snapshot, generation),
                        partial(self._on_snapshot_error, generation),
                    ),
                )
            )
            self._remote_subscriptions.append(
                await self._remote_call(
                    "subscribe_settings",
                    store.subscribe_settings(
                        identity.id,
                        partial(self._on_settings_snapshot, generation),
                        partial(self._on_snapshot_error, generation),
                    ),
                )
            )
        except RemoteOperationError as e:
            logger.error("Failed to subscribe to remote data: %s", e)
            self._notifier.notify(
                NotificationLevel.ERROR, "Could not load your saved items."
            )
        self._transition(SyncState.AUTHENTICATED)

    def _teardown_remote(self) -> None:
        # Bumping the generation turns late callbacks into no-ops
        self._generation += 1
        for subscription in self._remote_subscriptions:
            subscription.unsubscribe()
        self._remote_subscriptions.clear()

    # --- Snapshots ---

    def _on_items_snapshot(self, generation: int, records: list[dict[str, Any]]) -> None:
        if generation != self._generation:
            logger.debug("Ignoring stale item snapshot")
            return
        items = []
        for record in records:
            item = item_from_record(record, fallback_id=record.get("id"))
            if item is not None:
                items.append(item)
        self._store.replace_items(items)

    def _on_settings_snapshot(
        self, generation: int, document: dict[str, Any] | None
    ) -> None:
        if generation != self._generation:
            logger.debug("Ignoring stale settings snapshot")
            return
        self._store.replace_settings(
            settings_from_document(document, self._default_categories)
        )

    def _on_snapshot_error(self, generation: int, error: Exception) -> None:
        if generation != self._generation:
            return
        # Keep the last good contents
        logger.error("Remote snapshot error: %s", error)
        self._notifier.notify(
            NotificationLevel.ERROR, "Sync error; showing the last loaded data."
        )

    # --- Guest import ---

    async def _migrate_guest_items(
        self, identity: UserIdentity
    ) -> MigrationResult | None:
        assert isinstance(self._backend, Configured)
        if await self._local.is_migration_done():
            return None
        guest_items = await self._local.load_items()
        if not guest_items:
            return None

        if not await self._migration_prompt.confirm_import(len(guest_items)):
            await self._local.clear_items()
            await self._local.set_migration_done(True)
            logger.info("Guest import declined; discarded %d item(s)", len(guest_items))
            return MigrationResult(total=len(guest_items), declined=True)

        store = self._backend.store
        results = await asyncio.gather(
            *(
                self._remote_call(
                    "add_item",
                    store.add_item(
                        identity.id,
                        item_to_record(item, include_id=False),
                        created_at=item.created_at,
                    ),
                )
                for item in guest_items
            ),
            return_exceptions=True,
        )
        failed_ids = [
            item.id
            for item, result in zip(guest_items, results)
            if isinstance(result, BaseException)
        ]
        imported = len(guest_items) - len(failed_ids)

        if failed_ids:
            logger.error(
                "Guest import failed for %d of %d item(s): %s",
                len(failed_ids),
                len(guest_items),
                failed_ids,
            )
            self._notifier.notify(
                NotificationLevel.ERROR,
                "Some items could not be moved to your account. "
                "They are still stored on this device.",
                {"failedIds": failed_ids},
            )
            return MigrationResult(
                total=len(guest_items), imported=imported, failed_ids=failed_ids
            )

        await self._local.clear_items()
        await self._local.set_migration_done(True)
        logger.info("Imported %d guest item(s) for user %s", imported, identity.id)
        self._notifier.notify(
            NotificationLevel.INFO, f"Moved {imported} item(s) to your account."
        )
        return MigrationResult(total=len(guest_items), imported=imported)

    # --- Captures ---

    async def submit_capture(self, payload: CapturePayload) -> str | None:
        """Submit a captured text exactly once.

        Before the session settles the payload is held and submitted when a
        terminal state is reached.

        Returns:
            The new item id, or None when held, duplicate, or blank.

        Raises:
            RemoteOperationError: The cloud write failed.
        """
        if payload.key in self._submitted_keys or payload.key in self._pending:
            logger.debug("Ignoring duplicate capture %s", payload.key)
            return None
        if not self._state.is_terminal:
            self._pending[payload.key] = payload
            logger.info("Holding capture until the session is ready")
            return None
        return await self._submit(payload)

    async def _submit(self, payload: CapturePayload) -> str | None:
        self._submitted_keys[payload.key] = None
        while len(self._submitted_keys) > RECENT_CAPTURE_KEYS:
            self._submitted_keys.popitem(last=False)
        return await self.add_item(payload.text, payload.seed_description)

    async def _flush_pending(self) -> None:
        while self._pending and self._state.is_terminal:
            key = next(iter(self._pending))
            payload = self._pending.pop(key)
            try:
                await self._submit(payload)
            except RemoteOperationError:
                # The failure notification carries the text for a retry
                continue
            except SessionNotReadyError:
                self._submitted_keys.pop(key, None)
                self._pending[key] = payload
                break

    # --- Items ---

    async def add_item(self, text: str, description: str | None = None) -> str | None:
        """Create an item from text.

        Hashtags in the text become the item's categories (misc when none).
        Blank text is ignored.

        Returns:
            The new item id, or None for blank text.

        Raises:
            SessionNotReadyError: The session is not settled.
            RemoteOperationError: The cloud write failed.
        """
        if not text or not text.strip():
            return None

        async with self._lock:
            self._require_ready()
            categories = categories_or_misc(extract_hashtags(text))
            description = truncate_description(description)

            if self._state is SyncState.GUEST:
                item = Item(
                    id=self._new_guest_id(),
                    text=text,
                    categories=categories,
                    description=description,
                    created_at=self._clock(),
                )
                self._store.replace_items([item, *self._store.items])
                await self._local.save_items(self._store.items)
                await self._remember_categories(categories)
                return item.id

            draft = Item(
                id="",
                text=text,
                categories=categories,
                description=description,
                created_at=self._clock(),
            )
            fields = item_to_record(draft, include_id=False)
            del fields["createdAt"]
            item_id = await self._remote_write(
                "add_item",
                self._remote_store.add_item(self._user_id, fields),
                {"text": text, "description": description},
            )
            self._store.mark_recent(item_id, self._highlight_seconds)
            await self._remember_categories(categories)
            return item_id

    async def toggle_status(self, item_id: str) -> ItemStatus:
        """Flip an item between unsolved and solved.

        Returns:
            The new status.
        """
        async with self._lock:
            self._require_ready()
            item = self._find(item_id)
            status = item.status.toggled()
            await self._apply_item_update(
                replace(item, status=status), {"status": status.value}
            )
            return status

    async def update_description(self, item_id: str, description: str | None) -> str:
        """Replace an item's description (cut to the maximum length).

        Returns:
            The stored description.
        """
        async with self._lock:
            self._require_ready()
            item = self._find(item_id)
            description = truncate_description(description)
            await self._apply_item_update(
                replace(item, description=description), {"description": description}
            )
            return description

    async def attach_image(self, item_id: str, data: bytes, content_type: str) -> str:
        """Store an image and reference it from an item.

        Returns:
            The blob reference.

        Raises:
            ValueError: The item already holds the maximum number of images.
        """
        if self._blob_store is None:
            raise RuntimeError("No blob store configured")
        async with self._lock:
            self._require_ready()
            item = self._find(item_id)
            if len(item.images) >= MAX_IMAGES:
                raise ValueError(f"Maximum {MAX_IMAGES} images allowed per item")
            ref = await self._blob_store.put(data, content_type)
            if ref in item.images:
                return ref
            images = [*item.images, ref]
            await self._apply_item_update(
                replace(item, images=images), {"images": images}
            )
            return ref

    async def remove_image(self, item_id: str, ref: str) -> None:
        async with self._lock:
            self._require_ready()
            item = self._find(item_id)
            if ref not in item.images:
                return
            images = [r for r in item.images if r != ref]
            await self._apply_item_update(
                replace(item, images=images), {"images": images}
            )

    async def delete_item(self, item_id: str) -> None:
        """Delete an item permanently."""
        async with self._lock:
            self._require_ready()
            self._find(item_id)
            if self._state is SyncState.GUEST:
                self._store.replace_items(
                    [item for item in self._store.items if item.id != item_id]
                )
                await self._local.save_items(self._store.items)
                return
            await self._remote_write(
                "delete_item",
                self._remote_store.delete_item(self._user_id, item_id),
                {"itemId": item_id},
            )

    # --- Tags and settings ---

    async def add_category(self, name: str) -> None:
        name = name.strip().lstrip("#")
        if not name:
            raise ValueError("Tag name cannot be empty")
        async with self._lock:
            self._require_ready()
            await self._remember_categories([name])

    async def rename_tag(self, old: str, new: str) -> None:
        """Rename a tag everywhere it is used.

        Renaming onto an existing tag merges the two.

        Raises:
            TagNotFoundError: The tag is unknown.
            ValueError: The new name is blank.
        """
        new = new.strip().lstrip("#")
        if not new:
            raise ValueError("Tag name cannot be empty")
        async with self._lock:
            self._require_ready()
            self._require_tag(old)
            if old == new:
                return
            await self._cascade(
                lambda item: rename_tag_in_item(item, old, new),
                rename_tag_in_settings(self._store.settings, old, new),
            )
            logger.info("Renamed tag %r to %r", old, new)

    async def delete_tag(self, tag: str) -> None:
        """Remove a tag from every item and from the settings.

        Items are kept; one left without tags falls back to misc.

        Raises:
            TagNotFoundError: The tag is unknown.
        """
        async with self._lock:
            self._require_ready()
            self._require_tag(tag)
            await self._cascade(
                lambda item: delete_tag_from_item(item, tag),
                delete_tag_from_settings(self._store.settings, tag),
            )
            logger.info("Deleted tag %r", tag)

    async def set_tag_color(self, tag: str, color: str | None) -> None:
        """Set or clear (with None) a tag's color override."""
        async with self._lock:
            self._require_ready()
            tag_colors = dict(self._store.settings.tag_colors)
            if color:
                tag_colors[tag] = color
            else:
                tag_colors.pop(tag, None)
            await self._save_settings(
                replace(self._store.settings, tag_colors=tag_colors),
                [TAG_COLORS_FIELD],
            )

    async def set_custom_tag_order(self, order: list[str]) -> None:
        async with self._lock:
            self._require_ready()
            await self._save_settings(
                replace(self._store.settings, custom_tag_order=dedupe(order)),
                [CUSTOM_TAG_ORDER_FIELD],
            )

    async def set_tag_sort_order(self, order: TagSortOrder) -> None:
        async with self._lock:
            self._require_ready()
            await self._save_settings(
                replace(self._store.settings, tag_sort_order=order),
                [TAG_SORT_ORDER_FIELD],
            )

    # --- Internals ---

    def _require_ready(self) -> None:
        if not self._state.is_terminal:
            raise SessionNotReadyError(self._state.value)

    def _require_tag(self, tag: str) -> None:
        if tag not in known_tags(self._store.settings.categories, self._store.items):
            raise TagNotFoundError(tag)

    def _find(self, item_id: str) -> Item:
        item = self._store.get(item_id)
        if item is None:
            raise ItemNotFoundError(item_id)
        return item

    @property
    def _remote_store(self) -> RemoteStore:
        assert isinstance(self._backend, Configured)
        return self._backend.store

    @property
    def _user_id(self) -> str:
        assert self._user is not None
        return self._user.id

    def _new_guest_id(self) -> str:
        # Millisecond timestamp, bumped to stay unique within the store
        candidate = max(int(time.time() * 1000), self._last_guest_id + 1)
        while str(candidate) in self._store:
            candidate += 1
        self._last_guest_id = candidate
        return str(candidate)

    async def _remote_call(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self._remote_timeout)
        except asyncio.TimeoutError as e:
            raise RemoteOperationError(
                operation, f"Remote operation '{operation}' timed out"
            ) from e
        except RemoteOperationError:
            raise
        except Exception as e:
            raise RemoteOperationError(
                operation, f"Remote operation '{operation}' failed: {e}"
            ) from e

    async def _remote_write(
        self,
        operation: str,
        awaitable: Awaitable[T],
        details: dict[str, Any] | None = None,
    ) -> T:
        try:
            return await self._remote_call(operation, awaitable)
        except RemoteOperationError as e:
            logger.error("%s", e)
            self._notifier.notify(
                NotificationLevel.ERROR,
                "Could not save your changes. Please try again.",
                {"operation": operation, **(details or {})},
            )
            raise

    async def _apply_item_update(self, updated: Item, fields: dict[str, Any]) -> None:
        if self._state is SyncState.GUEST:
            self._store.replace_items(
                [updated if item.id == updated.id else item for item in self._store.items]
            )
            await self._local.save_items(self._store.items)
            return
        await self._remote_write(
            "update_item",
            self._remote_store.update_item(self._user_id, updated.id, fields),
            {"itemId": updated.id},
        )

    async def _cascade(
        self, transform: Callable[[Item], Item], settings: Settings
    ) -> None:
        changed = []
        for item in self._store.items:
            updated = transform(item)
            if updated != item:
                changed.append(updated)
        fields = [CATEGORIES_FIELD, TAG_COLORS_FIELD, CUSTOM_TAG_ORDER_FIELD]

        if self._state is SyncState.GUEST:
            by_id = {item.id: item for item in changed}
            self._store.replace_items(
                [by_id.get(item.id, item) for item in self._store.items]
            )
            await self._local.save_items(self._store.items)
            await self._save_settings(settings, fields)
            return

        results = await asyncio.gather(
            *(
                self._remote_call(
                    "update_item",
                    self._remote_store.update_item(
                        self._user_id, item.id, {"categories": item.categories}
                    ),
                )
                for item in changed
            ),
            return_exceptions=True,
        )
        failed_ids = [
            item.id
            for item, result in zip(changed, results)
            if isinstance(result, BaseException)
        ]

        # Settings are merged even when items failed; an item still carrying
        # the old tag keeps it known, so the operation can be repeated
        settings_saved = True
        try:
            await self._remote_call(
                "merge_settings",
                self._remote_store.merge_settings(
                    self._user_id, _settings_patch(settings, fields)
                ),
            )
        except RemoteOperationError as e:
            logger.error("%s", e)
            settings_saved = False

        if not failed_ids and settings_saved:
            return
        logger.error(
            "Tag update failed for %d of %d item(s): %s",
            len(failed_ids),
            len(changed),
            failed_ids,
        )
        self._notifier.notify(
            NotificationLevel.ERROR,
            "Some changes could not be saved. Please try again.",
            {
                "operation": "update_tags",
                "failedIds": failed_ids,
                "settingsSaved": settings_saved,
            },
        )
        raise RemoteOperationError(
            "update_tags",
            f"{len(failed_ids)} of {len(changed)} item(s) could not be updated"
            + ("" if settings_saved else "; tag settings were not saved"),
        )

    async def _remember_categories(self, tags: list[str]) -> None:
        settings = add_categories(self._store.settings, tags)
        if settings is not self._store.settings:
            await self._save_settings(settings, [CATEGORIES_FIELD])

    async def _save_settings(self, settings: Settings, fields: list[str]) -> None:
        """Persist changed settings fields.

        Guests overwrite the matching local keys; signed-in users get a
        merge-write of just those fields.
        """
        if self._state is SyncState.GUEST:
            self._store.replace_settings(settings)
            for name in fields:
                if name == CATEGORIES_FIELD:
                    await self._local.save_categories(settings.categories)
                elif name == TAG_COLORS_FIELD:
                    await self._local.save_tag_colors(settings.tag_colors)
                elif name == CUSTOM_TAG_ORDER_FIELD:
                    await self._local.save_custom_tag_order(settings.custom_tag_order)
                elif name == TAG_SORT_ORDER_FIELD:
                    await self._local.save_tag_sort_order(settings.tag_sort_order.value)
            return

        await self._remote_write(
            "merge_settings",
            self._remote_store.merge_settings(
                self._user_id, _settings_patch(settings, fields)
            ),
        )


def _settings_patch(settings: Settings, fields: list[str]) -> dict[str, Any]:
    document = settings_to_document(settings)
    return {name: document[name] for name in fields}
