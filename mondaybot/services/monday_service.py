"""Monday.com GraphQL API client."""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from ..config import MondayConfig
from ..errors import UpstreamError

logger = logging.getLogger(__name__)

GET_ITEM_QUERY = """
query ($itemId: [ID!]) {
  items (ids: $itemId) {
    id
    name
    board {
      id
      name
    }
    column_values {
      id
      text
      value
      column {
        title
      }
    }
  }
}
"""

CREATE_UPDATE_MUTATION = """
mutation ($itemId: ID!, $body: String!) {
  create_update (item_id: $itemId, body: $body) {
    id
    text_body
    created_at
  }
}
"""

CHANGE_COLUMN_MUTATION = """
mutation ($boardId: ID!, $itemId: ID!, $columnId: String!, $value: String) {
  change_simple_column_value (
    board_id: $boardId,
    item_id: $itemId,
    column_id: $columnId,
    value: $value
  ) {
    id
  }
}
"""

ADD_FILE_MUTATION = """
mutation ($file: File!) {
  add_file_to_update (update_id: %s, file: $file) {
    id
  }
}
"""


@dataclass
class ColumnValue:
    """One column of a Monday item."""

    id: str
    title: str
    text: str = ""
    value: Optional[str] = None


@dataclass
class MondayItem:
    """A Monday item with its board and current column values."""

    id: str
    name: str
    board_id: str
    columns: list[ColumnValue] = field(default_factory=list)

    def field_snapshot(self) -> dict[str, str]:
        """Column title -> display text."""
        return {col.title: col.text for col in self.columns}

    def find_status_column(self) -> Optional[ColumnValue]:
        """Column titled "status", or whose id mentions status."""
        for col in self.columns:
            if col.title.strip().lower() == "status" or "status" in col.id.lower():
                return col
        return None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "MondayItem":
        columns = []
        for col in data.get("column_values") or []:
            title = (col.get("column") or {}).get("title") or col.get("title") or col["id"]
            columns.append(
                ColumnValue(id=col["id"], title=title, text=col.get("text") or "", value=col.get("value"))
            )
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "Unknown Project",
            board_id=str((data.get("board") or {}).get("id", "")),
            columns=columns,
        )


class MondayService:
    """Monday.com API interactions. Every failure surfaces as UpstreamError."""

    def __init__(
        self,
        config: MondayConfig,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Monday service.

        Args:
            config: API endpoint and token settings.
            timeout: Seconds allowed per HTTP request.
            transport: Optional httpx transport (tests inject a MockTransport).
        """
        self.config = config
        self.timeout = timeout
        self._transport = transport

    @property
    def configured(self) -> bool:
        return self.config.api_token is not None and bool(self.config.api_token.get_secret_value())

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    def _headers(self, operation: str) -> dict[str, str]:
        if not self.configured:
            raise UpstreamError("monday", operation, "MONDAY API token not configured")
        return {
            "Authorization": self.config.api_token.get_secret_value(),
            "API-Version": self.config.api_version,
        }

    @staticmethod
    def _unwrap(operation: str, response: httpx.Response) -> dict[str, Any]:
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            raise UpstreamError("monday", operation, f"unexpected response: {data!r}")
        if data.get("errors"):
            raise UpstreamError("monday", operation, f"API error: {json.dumps(data['errors'])}")
        return data.get("data") or {}

    async def _request(
        self, operation: str, query: str, variables: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]:
        headers = self._headers(operation)
        async with self._client() as client:
            try:
                response = await client.post(
                    self.config.api_url,
                    headers=headers,
                    json={"query": query, "variables": variables or {}},
                )
                return self._unwrap(operation, response)
            except httpx.HTTPStatusError as e:
                logger.error(
                    "Monday %s failed (HTTP %d): %s",
                    operation,
                    e.response.status_code,
                    e.response.text,
                )
                raise UpstreamError("monday", operation, f"HTTP {e.response.status_code}") from e
            except (httpx.HTTPError, ValueError) as e:
                logger.error("Monday %s failed: %s", operation, e)
                raise UpstreamError("monday", operation, str(e) or type(e).__name__) from e

    async def get_item(self, item_id: str) -> Optional[MondayItem]:
        """Fetch an item with its board and columns. None if it doesn't exist."""
        data = await self._request("get_item", GET_ITEM_QUERY, {"itemId": [str(item_id)]})
        items = data.get("items") or []
        if not items:
            return None
        try:
            return MondayItem.from_api(items[0])
        except (KeyError, TypeError, AttributeError) as e:
            raise UpstreamError("monday", "get_item", f"malformed item: {e!r}") from e

    async def add_update(self, item_id: str, body: str) -> dict[str, Any]:
        """Post an update (comment) on an item."""
        data = await self._request(
            "add_update", CREATE_UPDATE_MUTATION, {"itemId": str(item_id), "body": body}
        )
        logger.info("Added update to Monday item %s", item_id)
        return data.get("create_update") or {}

    async def change_column_value(
        self, board_id: str, item_id: str, column_id: str, value: str
    ) -> dict[str, Any]:
        """Set a column to a plain-text value (status label, text, ...)."""
        data = await self._request(
            "change_column_value",
            CHANGE_COLUMN_MUTATION,
            {"boardId": str(board_id), "itemId": str(item_id), "columnId": column_id, "value": value},
        )
        logger.info("Updated column %s on Monday item %s", column_id, item_id)
        return data.get("change_simple_column_value") or {}

    async def upload_file(self, item_id: str, file_url: str, file_name: str) -> dict[str, Any]:
        """Attach a remote file to an item.

        Monday only accepts files on updates, so this downloads the file,
        opens a short update naming it, and uploads the bytes onto that update.
        """
        operation = "upload_file"
        headers = self._headers(operation)

        async with self._client() as client:
            try:
                download = await client.get(file_url, follow_redirects=True)
                download.raise_for_status()
            except httpx.HTTPError as e:
                logger.error("Could not download %s from %s: %s", file_name, file_url, e)
                raise UpstreamError("discord", "download_attachment", str(e) or type(e).__name__) from e

        update = await self.add_update(item_id, f"📎 {file_name}")
        update_id = update.get("id")
        if not update_id:
            raise UpstreamError("monday", operation, "create_update returned no id")

        async with self._client() as client:
            try:
                response = await client.post(
                    self.config.file_api_url,
                    headers=headers,
                    data={"query": ADD_FILE_MUTATION % json.dumps(str(update_id))},
                    files={"variables[file]": (file_name, download.content)},
                )
                data = self._unwrap(operation, response)
            except (httpx.HTTPError, ValueError) as e:
                logger.error("Monday file upload of %s failed: %s", file_name, e)
                raise UpstreamError("monday", operation, str(e) or type(e).__name__) from e

        logger.info("Uploaded file %r to Monday item %s", file_name, item_id)
        return data.get("add_file_to_update") or {}
