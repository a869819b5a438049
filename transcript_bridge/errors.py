"""Error hierarchy for the transcript bridge.

Every exception carries an HTTP status classification so the webhook
handler can answer with a designated code instead of a blanket 500.

Exception Hierarchy:
    BridgeError (base, 500)
    ├── AudioServiceError - Remote service call failed
    ├── DownloadError - Transcript download failed
    ├── MalformedCallbackError - Authentic callback missing required fields
    └── ConfigurationError - Required settings are missing
"""

from typing import Any


class BridgeError(Exception):
    """Base exception for all transcript bridge errors.

    Attributes:
        message: Human-readable error message.
        status_code: HTTP status the failure should be answered with.
        details: Additional error details.
    """

    default_status_code = 500

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code or self.default_status_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "status_code": self.status_code,
            "details": self.details,
        }

    def to_response(self) -> dict[str, Any]:
        """Body returned to the webhook caller."""
        return {"code": self.status_code, "err": self.message}


class AudioServiceError(BridgeError):
    """Remote audio service call failed.

    Attributes:
        status: Status reported by the remote service (0 for transport errors).
        method: RPC method that failed.
    """

    default_status_code = 502

    def __init__(self, status: int, message: str, *, method: str | None = None) -> None:
        self.status = status
        self.method = method
        prefix = f"{method}: " if method else ""
        super().__init__(
            f"Audio service error {status}: {prefix}{message}",
            status_code=status if status >= 400 else None,
            details={"method": method, "status": status},
        )


class DownloadError(BridgeError):
    """Transcript download failed.

    Attributes:
        url: URL that was being fetched.
        response_status: HTTP status of the link, if one was received.
    """

    default_status_code = 502

    def __init__(
        self,
        message: str,
        *,
        url: str,
        response_status: int | None = None,
    ) -> None:
        super().__init__(
            message,
            details={"url": url, "response_status": response_status},
        )
        self.url = url
        self.response_status = response_status


class MalformedCallbackError(BridgeError):
    """An authenticated callback body is missing required fields."""

    default_status_code = 400


class ConfigurationError(BridgeError):
    """Required settings are missing."""
