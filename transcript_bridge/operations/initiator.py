"""Submission of remote operations.

Both operations return as soon as the remote service has accepted the
work. Completion is reported later through the webhook callback.
"""

from __future__ import annotations

from typing import Any, Protocol
from urllib.parse import urlparse

import structlog
from pydantic import BaseModel, ConfigDict, Field

from transcript_bridge.config import Settings

logger = structlog.get_logger(__name__)

# Two-channel recordings: agent on the left channel, customer on the right
SPEAKERS: tuple[dict[str, str], ...] = (
    {"_id": "speakerCh0", "role": "agent"},
    {"_id": "speakerCh1", "role": "customer"},
)


class SubmissionService(Protocol):
    """Remote calls the initiator needs."""

    async def add_audio(self, audio: dict[str, Any]) -> dict[str, Any]: ...

    async def upload_audio_from_url(
        self, audio: dict[str, Any], url: str, operation: dict[str, Any]
    ) -> dict[str, Any]: ...

    async def classify_transcript(
        self, audio: dict[str, Any], operation: dict[str, Any]
    ) -> dict[str, Any]: ...


class EntityRef(BaseModel):
    """Reference to a remote entity by identifier."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="_id")


class UploadResult(BaseModel):
    """Identifiers produced by an upload."""

    audio: EntityRef
    operation: EntityRef

    def to_output(self) -> dict[str, Any]:
        """JSON shape printed by the upload command."""
        return self.model_dump(by_alias=True)


def audio_name_from_url(url: str) -> str:
    """Name an audio after the last path segment of its source URL."""
    path = urlparse(url).path.rstrip("/")
    return path.rsplit("/", 1)[-1] or url


class OperationInitiator:
    """Submits classification and upload operations."""

    def __init__(self, service: SubmissionService, settings: Settings) -> None:
        self._service = service
        self._settings = settings
        self._logger = logger.bind(component="operation_initiator")

    def classification_config(self) -> dict[str, Any]:
        """Operation config for classify-transcript."""
        return {
            "transcribe-audio": {
                "redact": self._settings.redact_pii,
                "languageCode": self._settings.language_code,
            }
        }

    async def analyze_audio(self, audio_id: str) -> str:
        """Submit a classify-transcript operation for an audio.

        Args:
            audio_id: Audio to classify.

        Returns:
            Identifier of the new operation.
        """
        result = await self._service.classify_transcript(
            {"_id": audio_id, "owner": self._settings.owner},
            {
                "config": self.classification_config(),
                "tags": [f"audio._id={audio_id}"],
            },
        )
        operation_id = result["operation"]["_id"]

        self._logger.info(
            "classify_transcript_created",
            operation_id=operation_id,
            audio_id=audio_id,
        )
        return operation_id

    async def upload(self, url: str, tags: list[str] | None = None) -> UploadResult:
        """Register an audio and start transloading it from ``url``.

        Args:
            url: Source URL of the recording.
            tags: Extra tags for the upload operation.

        Returns:
            Identifiers of the new audio and upload operation.
        """
        added = await self._service.add_audio(
            {
                "name": audio_name_from_url(url),
                "owner": self._settings.owner,
                "metadata": {"speakers": [dict(speaker) for speaker in SPEAKERS]},
            }
        )
        audio_id = added["audio"]["_id"]

        uploaded = await self._service.upload_audio_from_url(
            {"_id": audio_id, "owner": self._settings.owner},
            url,
            {"tags": [f"audio_id={audio_id}", *(tags or [])]},
        )
        operation_id = uploaded["operation"]["_id"]

        self._logger.info(
            "upload_started",
            audio_id=audio_id,
            operation_id=operation_id,
            url=url,
        )
        return UploadResult(
            audio=EntityRef(id=audio_id),
            operation=EntityRef(id=operation_id),
        )
