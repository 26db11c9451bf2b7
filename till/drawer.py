"""Cash drawer kick through the receipt printer's ESC/POS drawer port."""

from __future__ import annotations

import logging

from till.config import DRAWER_KICK_PIN, DRAWER_USB_PRODUCT_ID, DRAWER_USB_VENDOR_ID
from till.exceptions import TillError

logger = logging.getLogger(__name__)


class DrawerError(TillError):
    pass


def check_drawer_dependencies() -> tuple[bool, str]:
    """Check whether the ESC/POS driver is importable."""
    try:
        from escpos.printer import Usb  # noqa: F401
    except Exception as exc:
        return (False, f"Drawer deps unavailable: {exc}")
    return (True, "Drawer ready")


def kick_drawer(pin: int = DRAWER_KICK_PIN) -> None:
    """Pulse the drawer solenoid. Raises ``DrawerError`` if the device is unreachable."""
    try:
        from escpos.printer import Usb

        printer = Usb(DRAWER_USB_VENDOR_ID, DRAWER_USB_PRODUCT_ID)
        try:
            printer.cashdraw(pin)
        finally:
            printer.close()
    except Exception as exc:
        logger.warning("Drawer kick failed: %r", exc)
        raise DrawerError(f"Could not open cash drawer: {exc}") from exc
    logger.info("Drawer kicked on pin %d", pin)
