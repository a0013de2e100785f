"""Shared pieces of the function handlers."""

from typing import Any


class FunctionError(Exception):
    """Request-level failure reported to the caller as ``{"error": message}``."""

    def __init__(self, message: str, status_code: int = 400, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or {}


def js_number(value: Any) -> str:
    """Render a number the way a JavaScript template string does.

    Integral floats lose their fractional part (``1500.0`` -> ``"1500"``).
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
