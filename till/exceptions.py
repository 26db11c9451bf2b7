"""Error taxonomy for the till."""

from __future__ import annotations


class TillError(Exception):
    """Base class for every error raised by the till."""


class ValidationError(TillError):
    """A command was rejected before touching state; the message is user-facing."""


class EmptyCart(ValidationError):
    def __init__(self) -> None:
        super().__init__("Cart is empty")


class NoOpenShift(ValidationError):
    def __init__(self) -> None:
        super().__init__("No shift is open. Start a shift first.")


class ShiftAlreadyOpen(ValidationError):
    def __init__(self, shift_id: str) -> None:
        super().__init__(f"Shift {shift_id} is already open")
        self.shift_id = shift_id


class ShiftLimitReached(ValidationError):
    def __init__(self, limit: int) -> None:
        super().__init__(f"All {limit} shifts for today have been used")
        self.limit = limit


class OrderNotFound(ValidationError):
    def __init__(self, order_id: str) -> None:
        super().__init__(f"Bill #{order_id} not found")
        self.order_id = order_id


class InsufficientCash(ValidationError):
    pass


class DuplicateCategory(ValidationError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Category '{name}' already exists")


class CategoryNotEmpty(ValidationError):
    def __init__(self, name: str, count: int) -> None:
        super().__init__(f"Cannot delete category '{name}': it still has {count} item(s)")


class PasswordMismatch(ValidationError):
    pass


class RemoteError(TillError):
    """Recoverable failure talking to the remote backend."""
