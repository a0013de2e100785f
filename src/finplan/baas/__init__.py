"""BaaS (auth, tables) client for finplan."""

from finplan.baas.client import (
    AuthenticationError,
    BaaSClient,
    BaaSError,
    NotFoundError,
    Query,
)

__all__ = [
    "BaaSClient",
    "Query",
    "BaaSError",
    "AuthenticationError",
    "NotFoundError",
]
