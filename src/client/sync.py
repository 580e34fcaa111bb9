"""
Client-side list state with optimistic updates and refresh-on-change.

A SavedItemsView holds one user's items for a screen. It stays fresh two ways:

- Sibling views publish SavedItemsChanged on the EventBus after a successful
  mutation; mounted views for the same owner re-fetch.
- While mounted, each view re-polls the list endpoint every poll_interval
  seconds regardless of mutations.

Mutations are applied locally first. On failure the item is put back exactly
as it was before the mutation and the error is re-raised for the caller to
show. There is no ordering guarantee between a local change and a poll that
lands while the request is in flight.
"""
import asyncio
import contextlib
import copy
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from client.api_client import ApiError, SavedItemsClient
from client.events import EventBus, SavedItemsChanged

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 30.0


class SavedItemsView:
    """List state for one owner's saved items."""

    def __init__(
        self,
        api: SavedItemsClient,
        bus: EventBus,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self.api = api
        self.bus = bus
        self.poll_interval = poll_interval
        self.items: list[dict[str, Any]] = []
        self.error: str | None = None
        self._unsubscribe: Callable[[], None] | None = None
        self._poll_task: asyncio.Task | None = None

    @property
    def owner_id(self) -> str:
        """The user whose items this view shows."""
        return self.api.user_id

    @property
    def mounted(self) -> bool:
        """Whether the view is subscribed and polling."""
        return self._unsubscribe is not None

    async def mount(self) -> None:
        """Subscribe to change events, load the list and start polling."""
        if self.mounted:
            return
        self._unsubscribe = self.bus.subscribe(SavedItemsChanged, self._on_items_changed)
        await self.refresh()
        self._poll_task = asyncio.create_task(self._poll())

    async def unmount(self) -> None:
        """Stop polling and unsubscribe."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._poll_task is not None:
            self._poll_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._poll_task
            self._poll_task = None

    async def refresh(self) -> None:
        """Replace local state with the server's list."""
        try:
            self.items = await self.api.list_saved_items()
        except ApiError as e:
            logger.warning("Failed to refresh saved items for %s: %s", self.owner_id, e)
            self.error = e.message
            raise
        self.error = None

    async def _poll(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            # Failures are recorded in self.error; the next tick retries
            with contextlib.suppress(ApiError):
                await self.refresh()

    async def _on_items_changed(self, event: SavedItemsChanged) -> None:
        if event.owner_id != self.owner_id or event.source is self:
            return
        await self.refresh()

    def _find(self, item_id: str) -> int:
        for index, item in enumerate(self.items):
            if item["id"] == item_id:
                return index
        raise KeyError(item_id)

    def _replace(self, item_id: str, record: dict[str, Any]) -> None:
        with contextlib.suppress(KeyError):
            self.items[self._find(item_id)] = record

    async def _mutate(
        self,
        item_id: str,
        changes: dict[str, Any],
        call: Callable[[], Awaitable[dict[str, Any]]],
    ) -> dict[str, Any]:
        index = self._find(item_id)
        snapshot = copy.deepcopy(self.items[index])
        self.items[index] = {**snapshot, **changes}

        try:
            record = await call()
        except ApiError as e:
            self._replace(item_id, snapshot)
            self.error = e.message
            raise

        self._replace(item_id, record)
        self.error = None
        await self.bus.publish(SavedItemsChanged(owner_id=self.owner_id, source=self))
        return record

    async def toggle_completion(self, item_id: str) -> dict[str, Any]:
        """Flip an item's completed flag."""
        completed = not self.items[self._find(item_id)]["completed"]
        return await self._mutate(
            item_id,
            {"completed": completed},
            lambda: self.api.toggle_completion(item_id, completed),
        )

    async def rename(self, item_id: str, title: str) -> dict[str, Any]:
        """Change an item's title."""
        return await self._mutate(
            item_id,
            {"title": title},
            lambda: self.api.update_title(item_id, title),
        )

    async def save_notification_settings(
        self, item_id: str, notifications: dict[str, Any],
    ) -> dict[str, Any]:
        """Store an item's reminder settings."""
        return await self._mutate(
            item_id,
            {"notifications": notifications},
            lambda: self.api.update_notification_settings(item_id, notifications),
        )

    async def save_content(self, content: Any, content_type: str) -> dict[str, Any]:
        """Save new content and show it at the top of the list."""
        try:
            record = await self.api.process_content(content, content_type)
        except ApiError as e:
            self.error = e.message
            raise
        self.items.insert(0, record)
        self.error = None
        await self.bus.publish(SavedItemsChanged(owner_id=self.owner_id, source=self))
        return record
