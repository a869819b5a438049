"""Async client for the remote audio service.

Every remote operation is an RPC call:
``POST {api_url}/{service}/{version}/{resource}/{method}`` with a JSON body,
authenticated with an OAuth2 client-credentials bearer token.
"""

import time
from typing import Any

import httpx
import structlog

from transcript_bridge.config import Settings
from transcript_bridge.errors import AudioServiceError, ConfigurationError

logger = structlog.get_logger(__name__)

TOKEN_PATH = "/oauth2/v1/token"
SCOPES = ("oauth2", "callcenter", "operation", "storage", "webhook")

# Refresh the token this many seconds before it expires
TOKEN_EXPIRY_MARGIN_SECONDS = 60


class AudioServiceClient:
    """Async client for the remote audio service.

    Provides the calls the bridge needs:
    - audio creation and upload-from-URL
    - transcript classification
    - document link resolution
    - webhook listing and creation

    Example:
        client = AudioServiceClient(Settings.from_env())
        result = await client.add_audio({"name": "call.wav", "owner": "me"})
        print(result["audio"]["_id"])
    """

    def __init__(
        self,
        settings: Settings,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Application settings with credentials and API URL.
            http_client: Optional pre-built client (tests pass a mock transport).
            timeout: Request timeout in seconds.
        """
        self._settings = settings
        self._base_url = settings.api_url.rstrip("/")
        self._timeout = timeout
        self._client = http_client
        self._access_token: str | None = None
        self._token_expires_at = 0.0
        self._logger = logger.bind(component="audio_service_client")

    @property
    def is_configured(self) -> bool:
        """Check if client credentials are configured."""
        return bool(self._settings.client_id and self._settings.client_secret)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "AudioServiceClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _get_token(self) -> str:
        """Return a cached access token, fetching a new one when needed.

        Raises:
            ConfigurationError: If credentials are missing.
            AudioServiceError: If the token request fails.
        """
        if self._access_token and time.monotonic() < self._token_expires_at:
            return self._access_token

        if not self.is_configured:
            raise ConfigurationError("SE_CLIENT_ID and SE_CLIENT_SECRET must be set")

        client = await self._get_client()
        try:
            response = await client.post(
                f"{self._base_url}{TOKEN_PATH}",
                data={
                    "grant_type": "client_credentials",
                    "client_id": self._settings.client_id,
                    "client_secret": self._settings.client_secret,
                    "scope": " ".join(SCOPES),
                },
            )
        except httpx.RequestError as e:
            self._logger.error("token_request_failed", error=str(e))
            raise AudioServiceError(0, str(e), method="oauth2.token") from e

        if response.status_code != 200:
            raise AudioServiceError(response.status_code, response.text, method="oauth2.token")

        data = response.json()
        self._access_token = data["access_token"]
        expires_in = float(data.get("expires_in", 3600))
        self._token_expires_at = time.monotonic() + max(
            expires_in - TOKEN_EXPIRY_MARGIN_SECONDS, 0
        )
        self._logger.debug("token_acquired", expires_in=expires_in)
        return self._access_token

    async def call(self, method: str, body: dict[str, Any]) -> dict[str, Any]:
        """Make an authenticated RPC call.

        Args:
            method: Dotted RPC name (e.g. "storage.v2.audio.add").
            body: JSON request body.

        Returns:
            JSON response data.

        Raises:
            AudioServiceError: For transport errors and non-2xx responses.
        """
        token = await self._get_token()
        client = await self._get_client()
        url = f"{self._base_url}/{method.replace('.', '/')}"

        self._logger.debug("service_request", method=method)

        try:
            response = await client.post(
                url,
                json=body,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.RequestError as e:
            self._logger.error("service_client_error", method=method, error=str(e))
            raise AudioServiceError(0, str(e), method=method) from e

        if response.status_code == 401:
            # Token revoked early; the next call fetches a new one
            self._access_token = None

        if not response.is_success:
            raise AudioServiceError(response.status_code, _error_message(response), method=method)

        self._logger.debug(
            "service_response",
            method=method,
            status=response.status_code,
        )
        return response.json()

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    async def add_audio(self, audio: dict[str, Any]) -> dict[str, Any]:
        """Create an audio entity. Returns ``{"audio": {...}}``."""
        return await self.call("storage.v2.audio.add", {"audio": audio})

    async def upload_audio_from_url(
        self,
        audio: dict[str, Any],
        url: str,
        operation: dict[str, Any],
    ) -> dict[str, Any]:
        """Start a transload of ``url`` into an audio. Returns ``{"operation": {...}}``."""
        return await self.call(
            "storage.v2.audio.uploadFromUrl",
            {"audio": audio, "url": url, "operation": operation},
        )

    async def get_document_link(self, document: Any) -> dict[str, Any]:
        """Resolve a document reference. Returns ``{"document": {"link": ...}}``."""
        return await self.call("storage.v2.document.getLink", {"document": document})

    # ------------------------------------------------------------------
    # Call center
    # ------------------------------------------------------------------

    async def classify_transcript(
        self,
        audio: dict[str, Any],
        operation: dict[str, Any],
    ) -> dict[str, Any]:
        """Start a classify-transcript operation. Returns ``{"operation": {...}}``."""
        return await self.call(
            "callcenter.v2.transcript.classify",
            {"audio": audio, "operation": operation},
        )

    # ------------------------------------------------------------------
    # Webhooks
    # ------------------------------------------------------------------

    async def list_webhooks(self, webhook: dict[str, Any]) -> dict[str, Any]:
        """List webhooks matching a filter. Returns ``{"webhooks": [...]}``."""
        return await self.call("webhook.v1.list", {"webhook": webhook})

    async def add_webhook(self, webhook: dict[str, Any]) -> dict[str, Any]:
        """Create a webhook. Returns ``{"webhook": {...}}``."""
        return await self.call("webhook.v1.add", {"webhook": webhook})


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text
    if isinstance(data, dict):
        for key in ("err", "message", "error"):
            if isinstance(data.get(key), str):
                return data[key]
    return response.text
