"""HTTP surface of the transcript bridge."""

from transcript_bridge.api.routes import (
    ErrorResponse,
    HealthResponse,
    callback_path,
    create_app,
    register_routes,
)

__all__ = [
    "ErrorResponse",
    "HealthResponse",
    "callback_path",
    "create_app",
    "register_routes",
]
