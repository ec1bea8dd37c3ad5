from __future__ import annotations

from typing import Any


class BookingError(Exception):
    """Base class for booking domain errors."""


class NotFound(BookingError):
    pass


class ConfigError(BookingError):
    def __init__(self, message: str, *, caller_correctable: bool = False) -> None:
        super().__init__(message)
        self.caller_correctable = caller_correctable


class GatewayRejected(BookingError):
    """The payment provider declined the request. `body` keeps the raw provider error."""

    def __init__(self, status_code: int, body: Any, *, order_id: str | None = None) -> None:
        super().__init__(f"payment provider rejected the request ({status_code})")
        self.status_code = status_code
        self.body = body
        self.order_id = order_id


class SignatureInvalid(BookingError):
    pass


class PersistenceError(BookingError):
    pass


class OrderBackendError(BookingError):
    def __init__(self, message: str, *, status_code: int | None = None, body: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class CatalogUnavailable(BookingError):
    """The CMS holding items and weekly rules could not be reached."""


class InvalidCheckoutRequest(BookingError):
    pass
