"""Menu catalog: cached remote menu, favorites and optimistic admin edits."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable

from till.config import MENU_CACHE_TTL_SECONDS
from till.exceptions import CategoryNotEmpty, DuplicateCategory, RemoteError, ValidationError
from till.models import MenuCache, MenuItem
from till.money import local_now
from till.notifications import Notifier
from till.persistence import LocalStorage
from till.remote import RemoteClient
from till.serialization import menu_item_from_dict, menu_item_to_dict

logger = logging.getLogger(__name__)

FAVORITES_CATEGORY = "Favorites"


@dataclass(frozen=True)
class MenuState:
    items: tuple[MenuItem, ...] = ()
    categories: tuple[str, ...] = ()


Patch = Callable[[MenuState], MenuState]


def _replace_item(item_id: int, new: MenuItem) -> Patch:
    def patch(state: MenuState) -> MenuState:
        return replace(state, items=tuple(new if i.id == item_id else i for i in state.items))

    return patch


def _remove_item(item_id: int) -> Patch:
    def patch(state: MenuState) -> MenuState:
        return replace(state, items=tuple(i for i in state.items if i.id != item_id))

    return patch


def _insert_item(index: int, item: MenuItem) -> Patch:
    def patch(state: MenuState) -> MenuState:
        items = list(state.items)
        items.insert(min(index, len(items)), item)
        return replace(state, items=tuple(items))

    return patch


def _insert_category(index: int, name: str) -> Patch:
    def patch(state: MenuState) -> MenuState:
        categories = list(state.categories)
        categories.insert(min(index, len(categories)), name)
        return replace(state, categories=tuple(categories))

    return patch


def _remove_category(name: str) -> Patch:
    def patch(state: MenuState) -> MenuState:
        return replace(state, categories=tuple(c for c in state.categories if c != name))

    return patch


class MenuCatalog:
    """
    Owns the menu shown at the till.

    Admin edits are two-phase: the tentative change is applied locally
    first, then pushed; if the backend refuses it, the inverse patch
    captured before the change is applied. Inverse patches touch only the
    edited entry, so other edits made meanwhile survive a rollback.
    """

    def __init__(
        self,
        storage: LocalStorage,
        client: RemoteClient,
        notifier: Notifier,
        log_action: Callable[[str], None],
        clock: Callable[[], datetime] = local_now,
        cache_ttl: float = MENU_CACHE_TTL_SECONDS,
    ) -> None:
        self.storage = storage
        self.client = client
        self.notifier = notifier
        self.log_action = log_action
        self.clock = clock
        self.cache_ttl = cache_ttl
        self.state = MenuState()
        self.favorite_ids: set[int] = set()
        self.error: str | None = None
        self.is_loading = False

    @property
    def items(self) -> tuple[MenuItem, ...]:
        return self.state.items

    @property
    def categories(self) -> tuple[str, ...]:
        return self.state.categories

    @property
    def nav_categories(self) -> list[str]:
        return [FAVORITES_CATEGORY, *self.state.categories]

    def find(self, item_id: int) -> MenuItem | None:
        for item in self.state.items:
            if item.id == item_id:
                return item
        return None

    def load_favorites(self) -> None:
        self.favorite_ids = self.storage.load_favorites()

    def toggle_favorite(self, item_id: int) -> bool:
        """Flip an item's favorite flag; returns the new flag."""
        if item_id in self.favorite_ids:
            self.favorite_ids.discard(item_id)
            is_favorite = False
        else:
            self.favorite_ids.add(item_id)
            is_favorite = True
        self.storage.save_favorites(self.favorite_ids)
        return is_favorite

    def filtered(self, category: str, query: str = "") -> list[MenuItem]:
        q = query.strip().lower()
        if q:
            return [item for item in self.state.items if q in item.name.lower()]
        if category == FAVORITES_CATEGORY:
            return [item for item in self.state.items if item.id in self.favorite_ids]
        return [item for item in self.state.items if item.category == category]

    def _use_cache(self, cache: MenuCache) -> None:
        self.state = MenuState(items=cache.menu_items, categories=cache.categories)

    def _cache_is_fresh(self, cache: MenuCache) -> bool:
        return (self.clock() - cache.timestamp).total_seconds() < self.cache_ttl

    async def fetch(self, force: bool = False) -> bool:
        """Load the menu. Returns ``True`` when a menu (fresh or cached) is usable."""
        self.is_loading = True
        self.error = None
        try:
            cache = self.storage.load_menu_cache()
            if not force and cache is not None and self._cache_is_fresh(cache):
                self._use_cache(cache)
                self.log_action("Loaded menu from cache")
                return True

            try:
                items, categories = await asyncio.to_thread(self.client.get_menu)
            except RemoteError as exc:
                self.error = f"Could not load menu: {exc}"
                self.log_action(f"Menu load failed: {exc}")
                if cache is not None:
                    self._use_cache(cache)
                    return True
                return False

            fresh = MenuCache(timestamp=self.clock(), menu_items=tuple(items), categories=tuple(categories))
            self.storage.save_menu_cache(fresh)
            self._use_cache(fresh)
            self.log_action("Loaded menu from backend and refreshed the cache")
            return True
        finally:
            self.is_loading = False

    async def _push(self, action: str, payload: dict[str, Any]) -> dict[str, Any] | None:
        try:
            result = await asyncio.to_thread(self.client.push_menu_change, action, payload)
        except RemoteError as exc:
            self.log_action(f"Menu sync failed: {action} - {exc}")
            self.notifier.notify(
                f"Could not save to the backend: {exc}. The change was rolled back.",
                "error",
            )
            return None
        self.log_action(f"Menu sync ok: {action}")
        return result

    async def _two_phase(self, action: str, payload: dict[str, Any], forward: Patch, inverse: Patch):
        self.state = forward(self.state)
        result = await self._push(action, payload)
        if result is None:
            self.state = inverse(self.state)
        return result

    async def save_item(self, item: MenuItem) -> MenuItem | None:
        """Add (``item.id <= 0``) or update a menu item; returns the stored item or ``None``."""
        if item.id <= 0:
            return await self._add_item(item)

        original = self.find(item.id)
        if original is None:
            raise ValidationError(f"Menu item {item.id} not found")
        self.log_action(f"Edited item '{item.name}' (ID: {item.id})")
        result = await self._two_phase(
            "updateMenuItem",
            {"item": menu_item_to_dict(item)},
            forward=_replace_item(item.id, item),
            inverse=_replace_item(item.id, original),
        )
        if result is None:
            self.log_action(f"Failed to edit item '{item.name}'")
            return None
        self.notifier.notify(f"Saved changes to '{item.name}'", "success")
        return item

    async def _add_item(self, item: MenuItem) -> MenuItem | None:
        # Negative temporary ids never collide with server-assigned ones.
        temp_id = -int(self.clock().timestamp() * 1000)
        tentative = replace(item, id=temp_id)
        self.log_action(f"Added item '{item.name}' (awaiting confirmation)")
        payload = {"item": {k: v for k, v in menu_item_to_dict(item).items() if k != "id"}}
        result = await self._two_phase(
            "addMenuItem",
            payload,
            forward=_insert_item(len(self.state.items), tentative),
            inverse=_remove_item(temp_id),
        )
        if result is None:
            self.log_action(f"Failed to add item '{item.name}'")
            return None
        try:
            final = menu_item_from_dict(result["item"])
        except (KeyError, TypeError, ValueError):
            self.state = _remove_item(temp_id)(self.state)
            self.log_action(f"Failed to add item '{item.name}': backend did not return it")
            self.notifier.notify(f"Backend did not confirm '{item.name}'", "error")
            return None
        self.state = _replace_item(temp_id, final)(self.state)
        self.log_action(f"Confirmed item '{final.name}' (ID: {final.id})")
        self.notifier.notify(f"Added '{final.name}'", "success")
        return final

    async def delete_item(self, item_id: int) -> bool:
        original = self.find(item_id)
        if original is None:
            return False
        index = self.state.items.index(original)
        self.log_action(f"Deleted item '{original.name}' (ID: {item_id})")
        result = await self._two_phase(
            "deleteMenuItem",
            {"itemId": item_id},
            forward=_remove_item(item_id),
            inverse=_insert_item(index, original),
        )
        if result is None:
            self.log_action(f"Failed to delete item '{original.name}'")
            return False
        self.notifier.notify(f"Deleted '{original.name}'", "success")
        return True

    async def add_category(self, name: str) -> bool:
        name = name.strip()
        if not name:
            raise ValidationError("Category name is required")
        if name in self.state.categories or name == FAVORITES_CATEGORY:
            raise DuplicateCategory(name)
        self.log_action(f"Added category '{name}'")
        result = await self._two_phase(
            "addCategory",
            {"category": name},
            forward=_insert_category(len(self.state.categories), name),
            inverse=_remove_category(name),
        )
        if result is None:
            self.log_action(f"Failed to add category '{name}'")
            return False
        self.notifier.notify(f"Added category '{name}'", "success")
        return True

    async def delete_category(self, name: str) -> bool:
        if name not in self.state.categories:
            return False
        in_use = [item for item in self.state.items if item.category == name]
        if in_use:
            raise CategoryNotEmpty(name, len(in_use))
        index = self.state.categories.index(name)
        self.log_action(f"Deleted category '{name}'")
        result = await self._two_phase(
            "deleteCategory",
            {"category": name},
            forward=_remove_category(name),
            inverse=_insert_category(index, name),
        )
        if result is None:
            self.log_action(f"Failed to delete category '{name}'")
            return False
        self.notifier.notify(f"Deleted category '{name}'", "success")
        return True
