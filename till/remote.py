"""HTTP client for the spreadsheet web-app backend (menu and order storage)."""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Callable

import requests

from till.config import REMOTE_ENDPOINT, REMOTE_TIMEOUT_SECONDS
from till.exceptions import RemoteError
from till.models import MenuItem, Order
from till.serialization import menu_item_from_dict, order_to_dict

logger = logging.getLogger(__name__)

MENU_ACTIONS = frozenset(
    {"addMenuItem", "updateMenuItem", "deleteMenuItem", "addCategory", "deleteCategory"}
)


class RemoteClient:
    """
    Thin wrapper over the backend's single endpoint.

    ``GET ?action=getMenu`` returns the menu; every write is a ``POST`` of a
    JSON body carrying an ``action`` field. Any failure surfaces as
    ``RemoteError`` so callers can record it and retry later.

    Calls arrive from worker threads, so each thread gets its own session.
    """

    def __init__(
        self,
        endpoint: str = REMOTE_ENDPOINT,
        timeout: float = REMOTE_TIMEOUT_SECONDS,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ) -> None:
        self.endpoint = (endpoint or "").strip()
        self.timeout = timeout
        self.session_factory = session_factory
        self._local = threading.local()

    @property
    def session(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._local.session = self.session_factory()
        return session

    @property
    def is_configured(self) -> bool:
        return self.endpoint.startswith(("https://", "http://"))

    def _decode(self, response: requests.Response) -> dict[str, Any]:
        try:
            response.raise_for_status()
            result = response.json()
        except requests.exceptions.HTTPError as exc:
            raise RemoteError(f"HTTP error! status: {response.status_code}") from exc
        except ValueError as exc:
            raise RemoteError(f"Backend returned a non-JSON body: {exc}") from exc
        if not isinstance(result, dict) or result.get("status") != "success":
            message = result.get("message") if isinstance(result, dict) else None
            raise RemoteError(message or "Unknown backend error")
        return result

    def _get(self, params: dict[str, str]) -> dict[str, Any]:
        if not self.is_configured:
            raise RemoteError("Remote endpoint is not configured")
        try:
            response = self.session.get(self.endpoint, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as exc:
            raise RemoteError(f"Failed to reach backend: {exc}") from exc
        return self._decode(response)

    def _post(self, body: dict[str, Any]) -> dict[str, Any]:
        if not self.is_configured:
            raise RemoteError("Remote endpoint is not configured")
        try:
            response = self.session.post(
                self.endpoint,
                data=json.dumps(body, ensure_ascii=False).encode("utf-8"),
                headers={"Content-Type": "text/plain;charset=utf-8"},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as exc:
            raise RemoteError(f"Failed to reach backend: {exc}") from exc
        return self._decode(response)

    def get_menu(self) -> tuple[list[MenuItem], list[str]]:
        result = self._get({"action": "getMenu"})
        try:
            items = [menu_item_from_dict(raw) for raw in result.get("menuItems", [])]
        except (KeyError, TypeError, ValueError) as exc:
            raise RemoteError(f"Malformed menu item in backend response: {exc}") from exc
        categories = [str(name) for name in result.get("categories", [])]
        logger.info("Fetched %d menu items in %d categories", len(items), len(categories))
        return items, categories

    def save_order(self, order: Order) -> dict[str, Any]:
        """Upsert one order, keyed by its id on the backend."""
        return self._post({"action": "saveOrder", "order": order_to_dict(order)})

    def push_menu_change(self, action: str, payload: dict[str, Any]) -> dict[str, Any]:
        if action not in MENU_ACTIONS:
            raise ValueError(f"unknown menu action: {action!r}")
        result = self._post({"action": action, **payload})
        logger.info("Backend accepted %s", action)
        return result
