"""LLM gateway client for finplan."""

from finplan.clients.gateway import (
    CreditsExhaustedError,
    EmptyResponseError,
    GatewayClient,
    GatewayError,
    GatewayResponse,
    GatewayTimeoutError,
    RateLimitError,
)

__all__ = [
    "GatewayClient",
    "GatewayResponse",
    "GatewayError",
    "RateLimitError",
    "CreditsExhaustedError",
    "GatewayTimeoutError",
    "EmptyResponseError",
]
