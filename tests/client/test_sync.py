"""Tests for SavedItemsView: optimistic updates, revert on failure, and refresh triggers."""
import asyncio
import copy
from collections.abc import Callable
from typing import Any

import httpx
import pytest
import respx
from httpx import Response

from client.api_client import NotFoundError, SavedItemsClient, ServerError
from client.events import EventBus, SavedItemsChanged
from client.sync import SavedItemsView

USER_ID = "user-123"


def make_item(item_id: str, title: str, completed: bool = False) -> dict[str, Any]:
    return {
        "id": item_id,
        "userId": USER_ID,
        "title": title,
        "completed": completed,
        "notifications": None,
        "tags": ["a"],
    }


async def wait_until(predicate: Callable[[], bool], timeout: float = 2) -> None:
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.001)


class FakeApi:
    """
    In-memory stand-in for SavedItemsClient.

    `gate`, when set, holds mutation calls until the test releases it so the
    optimistic state can be observed mid-flight. `fail_with` makes the next
    call raise.
    """

    def __init__(self, user_id: str = USER_ID, items: list[dict] | None = None) -> None:
        self.user_id = user_id
        self.server_items = items if items is not None else [
            make_item("1", "First"),
            make_item("2", "Second"),
        ]
        self.list_calls = 0
        self.listed = asyncio.Event()
        self.gate: asyncio.Event | None = None
        self.fail_with: Exception | None = None

    async def _maybe_wait_or_fail(self) -> None:
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_with is not None:
            error, self.fail_with = self.fail_with, None
            raise error

    def _server_item(self, item_id: str) -> dict:
        return next(item for item in self.server_items if item["id"] == item_id)

    async def list_saved_items(self) -> list[dict]:
        self.list_calls += 1
        self.listed.set()
        await self._maybe_wait_or_fail()
        return copy.deepcopy(self.server_items)

    async def toggle_completion(self, item_id: str, completed: bool) -> dict:
        await self._maybe_wait_or_fail()
        item = self._server_item(item_id)
        item["completed"] = completed
        return {**item, "updatedAt": "server-time"}

    async def update_title(self, item_id: str, title: str) -> dict:
        await self._maybe_wait_or_fail()
        item = self._server_item(item_id)
        item["title"] = title.strip()
        return dict(item)

    async def update_notification_settings(self, item_id: str, notifications: dict) -> dict:
        await self._maybe_wait_or_fail()
        item = self._server_item(item_id)
        item["notifications"] = notifications
        return dict(item)

    async def process_content(self, content: Any, content_type: str) -> dict:
        await self._maybe_wait_or_fail()
        item = make_item(str(len(self.server_items) + 1), str(content))
        item["contentType"] = content_type
        self.server_items.insert(0, item)
        return dict(item)


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
async def view(bus: EventBus):
    """Mounted view with polling effectively disabled."""
    view = SavedItemsView(FakeApi(), bus, poll_interval=3600)
    await view.mount()
    yield view
    await view.unmount()


class TestMount:
    """Tests for mount/unmount."""

    async def test__mount__loads_items_and_subscribes(self, bus: EventBus) -> None:
        view = SavedItemsView(FakeApi(), bus, poll_interval=3600)
        await view.mount()

        assert view.mounted
        assert [item["title"] for item in view.items] == ["First", "Second"]
        assert bus.subscriber_count(SavedItemsChanged) == 1

        await view.unmount()
        assert not view.mounted
        assert bus.subscriber_count(SavedItemsChanged) == 0

    async def test__mount__twice_is_noop(self, bus: EventBus) -> None:
        api = FakeApi()
        view = SavedItemsView(api, bus, poll_interval=3600)
        await view.mount()
        await view.mount()

        assert api.list_calls == 1
        assert bus.subscriber_count(SavedItemsChanged) == 1
        await view.unmount()

    async def test__refresh__failure_records_error(self, view: SavedItemsView) -> None:
        view.api.fail_with = ServerError("Failed to fetch saved items", 500)

        with pytest.raises(ServerError):
            await view.refresh()
        assert view.error == "Failed to fetch saved items"
        assert len(view.items) == 2

        await view.refresh()
        assert view.error is None


class TestOptimisticUpdates:
    """Mutations apply locally first and revert exactly on failure."""

    async def test__toggle_completion__optimistic_then_server_record(
        self, view: SavedItemsView,
    ) -> None:
        view.api.gate = asyncio.Event()

        task = asyncio.create_task(view.toggle_completion("1"))
        await asyncio.sleep(0)

        # Applied locally while the request is in flight
        assert view.items[0]["completed"] is True

        view.api.gate.set()
        record = await task

        assert record["completed"] is True
        assert view.items[0] == record
        assert view.items[0]["updatedAt"] == "server-time"

    async def test__toggle_completion__failure_reverts(self, view: SavedItemsView) -> None:
        before = copy.deepcopy(view.items)
        view.api.fail_with = ServerError("Failed to update item completion status", 500)

        with pytest.raises(ServerError):
            await view.toggle_completion("1")

        assert view.items == before
        assert view.error == "Failed to update item completion status"

    async def test__rename__not_found_reverts(self, view: SavedItemsView) -> None:
        before = copy.deepcopy(view.items[1])
        view.api.fail_with = NotFoundError("Item not found or access denied", 404)

        with pytest.raises(NotFoundError):
            await view.rename("2", "Renamed")

        assert view.items[1] == before

    async def test__rename__success(self, view: SavedItemsView) -> None:
        record = await view.rename("2", "  Renamed  ")
        assert record["title"] == "Renamed"
        assert view.items[1]["title"] == "Renamed"
        assert view.error is None

    async def test__save_notification_settings__failure_restores_nested_state(
        self, view: SavedItemsView,
    ) -> None:
        """The snapshot is a deep copy, so nested values are restored too."""
        await view.save_notification_settings("1", {"enabled": True, "time": "09:00"})
        before = copy.deepcopy(view.items[0])

        view.api.fail_with = ServerError("Failed to update notification settings", 500)
        with pytest.raises(ServerError):
            await view.save_notification_settings("1", {"enabled": False})

        assert view.items[0] == before
        assert view.items[0]["notifications"] == {"enabled": True, "time": "09:00"}

    async def test__mutation__unknown_item(self, view: SavedItemsView) -> None:
        with pytest.raises(KeyError):
            await view.toggle_completion("missing")

    async def test__save_content__prepends(self, view: SavedItemsView) -> None:
        record = await view.save_content("https://example.com/a", "url")

        assert view.items[0] == record
        assert len(view.items) == 3

    async def test__save_content__failure_leaves_list(self, view: SavedItemsView) -> None:
        view.api.fail_with = ServerError("Failed to process content", 500)

        with pytest.raises(ServerError):
            await view.save_content("note", "text")

        assert len(view.items) == 2
        assert view.error == "Failed to process content"


class TestChangeEvents:
    """Successful mutations make sibling views re-fetch."""

    async def test__mutation__sibling_view_refreshes(self, bus: EventBus) -> None:
        api = FakeApi()
        list_view = SavedItemsView(api, bus, poll_interval=3600)
        profile_view = SavedItemsView(api, bus, poll_interval=3600)
        await list_view.mount()
        await profile_view.mount()
        calls_after_mount = api.list_calls

        await list_view.toggle_completion("1")

        # Only the sibling re-fetched; the source view already has the server record
        assert api.list_calls == calls_after_mount + 1
        assert profile_view.items[0]["completed"] is True

        await list_view.unmount()
        await profile_view.unmount()

    async def test__mutation__other_owner_not_refreshed(self, bus: EventBus) -> None:
        mine = SavedItemsView(FakeApi(), bus, poll_interval=3600)
        other_api = FakeApi(user_id="user-456")
        theirs = SavedItemsView(other_api, bus, poll_interval=3600)
        await mine.mount()
        await theirs.mount()

        await mine.rename("1", "New")

        assert other_api.list_calls == 1

        await mine.unmount()
        await theirs.unmount()

    async def test__failed_mutation__publishes_nothing(self, bus: EventBus) -> None:
        api = FakeApi()
        view = SavedItemsView(api, bus, poll_interval=3600)
        sibling = SavedItemsView(api, bus, poll_interval=3600)
        await view.mount()
        await sibling.mount()
        calls_after_mount = api.list_calls

        api.fail_with = ServerError("boom", 500)
        with pytest.raises(ServerError):
            await view.toggle_completion("1")

        assert api.list_calls == calls_after_mount

        await view.unmount()
        await sibling.unmount()

    async def test__unmounted_view__ignores_events(self, bus: EventBus) -> None:
        api = FakeApi()
        view = SavedItemsView(api, bus, poll_interval=3600)
        sibling = SavedItemsView(api, bus, poll_interval=3600)
        await view.mount()
        await sibling.mount()
        await sibling.unmount()
        calls = api.list_calls

        await view.toggle_completion("1")

        assert api.list_calls == calls


class TestPolling:
    """Mounted views re-fetch on an interval."""

    async def test__poll__refreshes_periodically(self, bus: EventBus) -> None:
        api = FakeApi()
        view = SavedItemsView(api, bus, poll_interval=0.01)
        await view.mount()
        api.listed.clear()

        api.server_items.append(make_item("3", "Added elsewhere"))
        await asyncio.wait_for(api.listed.wait(), timeout=2)
        await asyncio.sleep(0)

        assert api.list_calls >= 2
        assert [item["id"] for item in view.items] == ["1", "2", "3"]

        await view.unmount()

    async def test__poll__failure_keeps_polling(self, bus: EventBus) -> None:
        api = FakeApi()
        view = SavedItemsView(api, bus, poll_interval=0.01)
        await view.mount()

        api.fail_with = ServerError("Failed to fetch saved items", 500)
        api.listed.clear()
        await asyncio.wait_for(api.listed.wait(), timeout=2)
        await asyncio.sleep(0)
        assert view.error == "Failed to fetch saved items"

        # The next tick succeeds and clears the error
        api.listed.clear()
        await asyncio.wait_for(api.listed.wait(), timeout=2)
        await asyncio.sleep(0)
        assert view.error is None

        await view.unmount()

    async def test__unmount__stops_polling(self, bus: EventBus) -> None:
        api = FakeApi()
        view = SavedItemsView(api, bus, poll_interval=0.01)
        await view.mount()
        await view.unmount()
        calls = api.list_calls

        await asyncio.sleep(0.05)

        assert api.list_calls == calls


class TestNonJsonResponses:
    """A 2xx body that is not JSON behaves like any other server failure."""

    BASE_URL = "http://localhost:8000"

    @pytest.fixture
    def mock_api(self):
        with respx.mock(base_url=self.BASE_URL) as respx_mock:
            respx_mock.get("/saved-items").mock(
                return_value=Response(
                    200, json={"success": True, "data": [make_item("1", "First")], "count": 1},
                ),
            )
            yield respx_mock

    @pytest.fixture
    async def http_view(self, mock_api: respx.MockRouter, bus: EventBus):
        async with httpx.AsyncClient(base_url=self.BASE_URL) as http_client:
            view = SavedItemsView(SavedItemsClient(http_client, USER_ID), bus, poll_interval=3600)
            await view.mount()
            yield view
            await view.unmount()

    async def test__toggle_completion__html_body_reverts(
        self, mock_api: respx.MockRouter, http_view: SavedItemsView,
    ) -> None:
        before = copy.deepcopy(http_view.items)
        mock_api.patch("/toggle-completion").mock(
            return_value=Response(200, text="<html>gateway</html>"),
        )

        with pytest.raises(ServerError):
            await http_view.toggle_completion("1")

        assert http_view.items == before
        assert http_view.error == "Invalid JSON in response"

    async def test__poll__html_body_keeps_polling(self, bus: EventBus) -> None:
        responses = [
            Response(200, json={"success": True, "data": [], "count": 0}),
            Response(200, text="<html>gateway</html>"),
        ]
        recovered = Response(
            200, json={"success": True, "data": [make_item("1", "First")], "count": 1},
        )

        def respond(request: httpx.Request) -> Response:
            return responses.pop(0) if responses else recovered

        with respx.mock(base_url=self.BASE_URL) as mock_api:
            mock_api.get("/saved-items").mock(side_effect=respond)

            async with httpx.AsyncClient(base_url=self.BASE_URL) as http_client:
                view = SavedItemsView(
                    SavedItemsClient(http_client, USER_ID), bus, poll_interval=0.01,
                )
                await view.mount()

                await wait_until(lambda: view.error == "Invalid JSON in response")
                # The poller survived and the next tick recovers
                await wait_until(lambda: view.error is None and len(view.items) == 1)

                await view.unmount()
