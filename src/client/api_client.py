"""HTTP client for the saved items API."""
from typing import Any

import httpx


class ApiError(Exception):
    """An API call failed; message is the server's error text when available."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class InvalidRequestError(ApiError):
    """400 - missing or malformed fields."""


class AccessDeniedError(ApiError):
    """401/403 - missing token, or a token for another user."""


class NotFoundError(ApiError):
    """404 - the item does not exist or belongs to someone else."""


class ServerError(ApiError):
    """5xx, or the server could not be reached."""


def parse_error(response: httpx.Response) -> ApiError:
    """Map an error response onto an ApiError subclass."""
    try:
        body = response.json()
        message = body.get("error") if isinstance(body, dict) else None
    except ValueError:
        message = None
    message = message or f"HTTP {response.status_code}"

    status = response.status_code
    if status == 400:
        return InvalidRequestError(message, status)
    if status in (401, 403):
        return AccessDeniedError(message, status)
    if status == 404:
        return NotFoundError(message, status)
    if status >= 500:
        return ServerError(message, status)
    return ApiError(message, status)


class SavedItemsClient:
    """
    Calls the saved items endpoints on behalf of one user.

    The caller owns the httpx.AsyncClient (base_url, timeouts, transport).
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        user_id: str,
        token: str | None = None,
    ) -> None:
        self.client = client
        self.user_id = user_id
        self.token = token

    def _headers(self) -> dict[str, str]:
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}

    async def _request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        try:
            response = await self.client.request(
                method, path, json=json, params=params, headers=self._headers(),
            )
        except httpx.RequestError as e:
            raise ServerError(f"Request failed: {e}") from e
        if not response.is_success:
            raise parse_error(response)
        try:
            return response.json()
        except ValueError as e:
            # e.g. a proxy's HTML page served with a 2xx status
            raise ServerError("Invalid JSON in response", response.status_code) from e

    async def process_content(self, content: Any, content_type: str) -> dict[str, Any]:
        """Save new content; returns the persisted item."""
        body = await self._request(
            "POST",
            "/process-content",
            json={"content": content, "contentType": content_type, "userId": self.user_id},
        )
        return body["data"]

    async def list_saved_items(
        self,
        q: str | None = None,
        category: str | None = None,
        status: str = "all",
        sort_by: str = "newest",
    ) -> list[dict[str, Any]]:
        """The user's items, newest first unless `sort_by` says otherwise."""
        params: dict[str, Any] = {"userId": self.user_id, "status": status, "sortBy": sort_by}
        if q:
            params["q"] = q
        if category:
            params["category"] = category
        body = await self._request("GET", "/saved-items", params=params)
        return body["data"]

    async def toggle_completion(self, item_id: str, completed: bool) -> dict[str, Any]:
        """Set an item's completed flag; returns the updated item."""
        body = await self._request(
            "PATCH",
            "/toggle-completion",
            json={"itemId": item_id, "completed": completed, "userId": self.user_id},
        )
        return body["data"]

    async def update_title(self, item_id: str, title: str) -> dict[str, Any]:
        """Rename an item; returns the updated item."""
        body = await self._request(
            "PATCH",
            "/update-title",
            json={"itemId": item_id, "title": title, "userId": self.user_id},
        )
        return body["data"]

    async def update_notification_settings(
        self, item_id: str, notifications: dict[str, Any],
    ) -> dict[str, Any]:
        """Save an item's reminder settings; returns the updated item."""
        body = await self._request(
            "PATCH",
            "/notification-settings",
            json={"itemId": item_id, "notifications": notifications, "userId": self.user_id},
        )
        return body["data"]

    async def get_user_stats(self) -> dict[str, Any]:
        """Totals for the user's items."""
        body = await self._request("GET", "/user-stats", params={"userId": self.user_id})
        return body["data"]
