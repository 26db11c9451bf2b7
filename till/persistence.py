"""SQLite-backed durable local storage for ledger snapshots and settings."""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from till.config import (
    ADMIN_PASSWORD_KEY,
    DAILY_DATA_KEY_PREFIX,
    DB_PATH,
    FAVORITES_KEY,
    MENU_CACHE_KEY,
    OFFLINE_LOGO_KEY,
    OFFLINE_PROMO_KEY,
    SHIFT_HISTORY_KEY,
    SHOP_SETTINGS_KEY,
)
from till.models import DailyData, MenuCache, Shift, ShopSettings
from till.serialization import (
    daily_data_from_dict,
    daily_data_to_dict,
    menu_cache_from_dict,
    menu_cache_to_dict,
    settings_from_dict,
    settings_to_dict,
    shift_from_dict,
    shift_to_dict,
)

logger = logging.getLogger(__name__)

# Errors that mean a stored value no longer decodes into the model.
_DECODE_ERRORS = (ValueError, KeyError, TypeError, ArithmeticError)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def daily_key(date: str) -> str:
    return f"{DAILY_DATA_KEY_PREFIX}{date}"


class LocalStorage:
    """Key/value store of JSON documents in a single SQLite table."""

    def __init__(self, db_path: str | Path = DB_PATH) -> None:
        self.db_path = Path(db_path)

    def _connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        return sqlite3.connect(self.db_path)

    def bootstrap_schema(self) -> None:
        """Create persistence schema if it does not already exist."""
        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );
                """
            )

    def get_raw(self, key: str) -> str | None:
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def set_raw(self, key: str, value: str) -> None:
        with self._connect() as conn:
            with conn:
                conn.execute(
                    """
                    INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                    """,
                    (key, value, _utc_now_iso()),
                )

    def delete(self, key: str) -> None:
        with self._connect() as conn:
            with conn:
                conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))

    def keys(self, prefix: str = "") -> list[str]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT key FROM kv_store WHERE substr(key, 1, ?) = ? ORDER BY key",
                (len(prefix), prefix),
            ).fetchall()
        return [row[0] for row in rows]

    def get_json(self, key: str) -> Any | None:
        """Return the decoded document, or ``None`` when missing or unparseable."""
        raw = self.get_raw(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.exception("Discarding unparseable value stored under %s", key)
            return None

    def set_json(self, key: str, value: Any) -> None:
        self.set_raw(key, json.dumps(value, ensure_ascii=False))

    # Daily ledger snapshots.

    def load_daily(self, date: str) -> DailyData | None:
        raw = self.get_json(daily_key(date))
        if raw is None:
            return None
        try:
            return daily_data_from_dict(raw, date)
        except _DECODE_ERRORS:
            logger.exception("Corrupt ledger snapshot for %s; starting from an empty day", date)
            return None

    def save_daily(self, data: DailyData) -> None:
        self.set_json(daily_key(data.date), daily_data_to_dict(data))

    def purge_daily_except(self, date: str) -> list[str]:
        """Delete every stored day snapshot other than ``date``'s."""
        keep = daily_key(date)
        removed = [key for key in self.keys(DAILY_DATA_KEY_PREFIX) if key != keep]
        for key in removed:
            self.delete(key)
        if removed:
            logger.info("Purged stale ledger snapshots: %s", ", ".join(removed))
        return removed

    # Shift history.

    def load_shift_history(self) -> tuple[Shift, ...]:
        raw = self.get_json(SHIFT_HISTORY_KEY)
        if not raw:
            return ()
        try:
            return tuple(shift_from_dict(item) for item in raw)
        except _DECODE_ERRORS:
            logger.exception("Corrupt shift history; starting with an empty history")
            return ()

    def save_shift_history(self, history: tuple[Shift, ...]) -> None:
        self.set_json(SHIFT_HISTORY_KEY, [shift_to_dict(shift) for shift in history])

    # Menu, favorites and settings.

    def load_favorites(self) -> set[int]:
        raw = self.get_json(FAVORITES_KEY) or []
        try:
            return {int(item_id) for item_id in raw}
        except _DECODE_ERRORS:
            logger.exception("Corrupt favorites list; ignoring it")
            return set()

    def save_favorites(self, favorite_ids: set[int]) -> None:
        self.set_json(FAVORITES_KEY, sorted(favorite_ids))

    def load_menu_cache(self) -> MenuCache | None:
        raw = self.get_json(MENU_CACHE_KEY)
        if raw is None:
            return None
        try:
            return menu_cache_from_dict(raw)
        except _DECODE_ERRORS:
            logger.exception("Corrupt menu cache; ignoring it")
            return None

    def save_menu_cache(self, cache: MenuCache) -> None:
        self.set_json(MENU_CACHE_KEY, menu_cache_to_dict(cache))

    def load_settings(self) -> ShopSettings:
        raw = self.get_json(SHOP_SETTINGS_KEY)
        if not isinstance(raw, dict):
            return ShopSettings()
        try:
            return settings_from_dict(raw)
        except _DECODE_ERRORS:
            logger.exception("Corrupt shop settings; using defaults")
            return ShopSettings()

    def save_settings(self, settings: ShopSettings) -> None:
        self.set_json(SHOP_SETTINGS_KEY, settings_to_dict(settings))

    def load_admin_password(self) -> str | None:
        return self.get_raw(ADMIN_PASSWORD_KEY)

    def save_admin_password(self, password: str) -> None:
        self.set_raw(ADMIN_PASSWORD_KEY, password)

    def load_offline_image(self, kind: str) -> str | None:
        """Return the stored data URL for the ``logo`` or ``promo`` receipt image."""
        return self.get_raw(_image_key(kind))

    def save_offline_image(self, kind: str, data_url: str | None) -> None:
        if data_url is None:
            self.delete(_image_key(kind))
        else:
            self.set_raw(_image_key(kind), data_url)


def _image_key(kind: str) -> str:
    if kind == "logo":
        return OFFLINE_LOGO_KEY
    if kind == "promo":
        return OFFLINE_PROMO_KEY
    raise ValueError(f"unknown receipt image kind: {kind!r}")
