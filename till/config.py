"""Runtime configuration defaults for persistence, remote sync and the drawer."""

from __future__ import annotations

import os
from decimal import Decimal

DB_PATH = os.environ.get("TILL_DB_PATH", "data/till.db")
LOG_PATH = os.environ.get("TILL_LOG_PATH", "/tmp/till-debug.log")

# Spreadsheet web-app endpoint; empty means "not configured" and keeps the till offline.
REMOTE_ENDPOINT = os.environ.get("TILL_REMOTE_ENDPOINT", "").strip()
REMOTE_TIMEOUT_SECONDS = float(os.environ.get("TILL_REMOTE_TIMEOUT", "15"))

ADMIN_PASSWORD = os.environ.get("TILL_ADMIN_PASSWORD", "1111")

TAX_RATE = Decimal("0.07")
MAX_SHIFTS_PER_DAY = 3
ACTIVITY_LOG_LIMIT = 200

SYNC_INTERVAL_SECONDS = 60
SYNC_DRAIN_SECONDS = 1.0
MENU_CACHE_TTL_SECONDS = 60 * 60

DAILY_DATA_KEY_PREFIX = "daily_data_"
SHIFT_HISTORY_KEY = "shift_history"
FAVORITES_KEY = "favorites"
SHOP_SETTINGS_KEY = "shop_settings"
MENU_CACHE_KEY = "menu_cache"
ADMIN_PASSWORD_KEY = "admin_password"
OFFLINE_LOGO_KEY = "offline_logo"
OFFLINE_PROMO_KEY = "offline_promo"

DRAWER_USB_VENDOR_ID = int(os.environ.get("TILL_DRAWER_VENDOR_ID", "0x28E9"), 16)
DRAWER_USB_PRODUCT_ID = int(os.environ.get("TILL_DRAWER_PRODUCT_ID", "0x0289"), 16)
DRAWER_KICK_PIN = 2
