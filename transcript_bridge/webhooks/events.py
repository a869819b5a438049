"""Callback event types and payload models.

This module defines the structure of the callbacks the remote audio
service sends when asynchronous work finishes.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from transcript_bridge.errors import MalformedCallbackError

# "Already exists" on resubmission; treated as success
CONFLICT_CODE = 409


class EventType(str, Enum):
    """Callback event types the bridge understands."""

    OPERATION_COMPLETE = "operation.complete"


class OperationType(str, Enum):
    """Remote operation types the bridge acts on.

    - transload-audio: audio was fetched from a URL into storage
    - classify-transcript: transcription and classification finished
    """

    TRANSLOAD_AUDIO = "transload-audio"
    CLASSIFY_TRANSCRIPT = "classify-transcript"


class OperationError(BaseModel):
    """Error reported on a completed operation."""

    model_config = ConfigDict(extra="allow")

    code: int | str | None = Field(default=None, description="Error code, numeric or symbolic")
    message: str | None = Field(default=None, description="Error message")

    @property
    def is_conflict(self) -> bool:
        """True for the tolerated "already exists" outcome."""
        return self.code == CONFLICT_CODE


class Operation(BaseModel):
    """A unit of asynchronous remote work, as reported by a callback."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str = Field(..., alias="_id", description="Operation identifier")
    type: str = Field(..., description="Operation type")
    parameters: dict[str, Any] = Field(
        default_factory=dict,
        description="Operation parameters, including audio_id",
    )
    result: dict[str, Any] | None = Field(
        default=None,
        description="Result, present only on success",
    )
    error: OperationError | None = Field(
        default=None,
        description="Error, present when the operation failed",
    )

    @property
    def kind(self) -> OperationType | None:
        """Known operation type, or None for types the bridge ignores."""
        try:
            return OperationType(self.type)
        except ValueError:
            return None

    @property
    def audio_id(self) -> str | None:
        """Audio the operation was run against."""
        value = self.parameters.get("audio_id")
        return str(value) if value is not None else None

    @property
    def transcript_document(self) -> Any:
        """Document reference of the classified transcript, if any."""
        document = (self.result or {}).get("document") or {}
        if not isinstance(document, dict):
            return None
        return document.get("transcript")


class CallbackEvent(BaseModel):
    """Event header of a callback."""

    model_config = ConfigDict(extra="allow")

    type: str = Field(..., description="Event type, e.g. operation.complete")


class CallbackEnvelope(BaseModel):
    """Body of an inbound webhook callback."""

    model_config = ConfigDict(extra="allow")

    event: CallbackEvent
    data: Any = Field(default=None, description="Event-specific data")

    @property
    def is_operation_complete(self) -> bool:
        return self.event.type == EventType.OPERATION_COMPLETE.value

    def operation(self) -> Operation:
        """Parse the nested operation of an operation.complete event.

        Raises:
            MalformedCallbackError: If the operation is missing or invalid.
        """
        raw = self.data.get("operation") if isinstance(self.data, dict) else None
        if not isinstance(raw, dict):
            raise MalformedCallbackError("Callback data has no operation")
        try:
            return Operation.model_validate(raw)
        except ValidationError as e:
            raise MalformedCallbackError(
                "Callback operation is invalid",
                details={"errors": e.errors(include_url=False)},
            ) from e


def parse_envelope(body: bytes | str) -> CallbackEnvelope:
    """Parse a raw callback body.

    Args:
        body: Raw request body.

    Returns:
        Parsed envelope.

    Raises:
        MalformedCallbackError: If the body is not a valid callback.
    """
    try:
        return CallbackEnvelope.model_validate_json(body)
    except ValidationError as e:
        raise MalformedCallbackError(
            "Callback body is not a valid event",
            details={"errors": e.errors(include_url=False)},
        ) from e
