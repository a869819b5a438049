"""Inbound webhook callback dispatcher.

Handles one callback at a time, with no state kept between requests:

1. verify the HMAC signature over the raw body
2. echo the challenge header
3. classify the callback into a CallbackOutcome
4. route: start classification after a transload, download the transcript
   after a classification, log everything else

Business non-events (bad signature, unknown event or operation type, a
failed operation) are answered with 200 so the remote service does not
retry them. Only internal failures produce an error status.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

import structlog

from transcript_bridge.config import Settings
from transcript_bridge.errors import BridgeError, MalformedCallbackError
from transcript_bridge.webhooks.events import (
    CallbackEnvelope,
    Operation,
    OperationType,
    parse_envelope,
)
from transcript_bridge.webhooks.security import (
    CHALLENGE_HEADER,
    SIGNATURE_HEADER,
    verify_payload,
)

logger = structlog.get_logger(__name__)

SIGNATURE_MISMATCH_MESSAGE = "Signature mismatch. Received invalid webhook."


class CallbackOutcome(str, Enum):
    """What the dispatcher decided to do with a callback."""

    IGNORE_UNAUTHENTICATED = "ignore-unauthenticated"
    IGNORE_UNKNOWN_EVENT = "ignore-unknown-event"
    IGNORE_UNKNOWN_OPERATION = "ignore-unknown-operation"
    IGNORE_CONFLICT = "ignore-conflict"
    REPORT_FAILURE = "report-failure"
    DISPATCH_TRANSLOAD = "dispatch-transload"
    DISPATCH_CLASSIFY = "dispatch-classify"


@dataclass(frozen=True)
class CallbackDecision:
    """Classification of a single callback.

    Attributes:
        outcome: Action to take.
        event_type: Event type of the callback, if it was parsed.
        operation: Operation carried by an operation.complete event.
        conflict: The operation reported 409 and is being treated as success.
    """

    outcome: CallbackOutcome
    event_type: str | None = None
    operation: Operation | None = None
    conflict: bool = False

    @property
    def outcomes(self) -> tuple[CallbackOutcome, ...]:
        """All outcomes of the decision, in the order they are carried out.

        A tolerated 409 is logged as ``IGNORE_CONFLICT`` and then falls
        through to the outcome for its operation type.
        """
        if self.conflict:
            return (CallbackOutcome.IGNORE_CONFLICT, self.outcome)
        return (self.outcome,)


@dataclass
class DispatchResult:
    """HTTP answer for a callback."""

    status_code: int = 200
    content: str = ""
    json_body: dict[str, Any] | None = None
    headers: dict[str, str] = field(default_factory=dict)
    outcome: CallbackOutcome | None = None


class Classifier(Protocol):
    async def analyze_audio(self, audio_id: str) -> str: ...


class TranscriptFetcher(Protocol):
    async def download_transcript(self, operation: Operation) -> Path | None: ...


def classify_callback(envelope: CallbackEnvelope) -> CallbackDecision:
    """Decide what an authenticated callback means.

    Args:
        envelope: Parsed callback body.

    Returns:
        Decision for the callback.

    Raises:
        MalformedCallbackError: If an operation.complete event has no
            valid operation.
    """
    event_type = envelope.event.type
    if not envelope.is_operation_complete:
        return CallbackDecision(CallbackOutcome.IGNORE_UNKNOWN_EVENT, event_type=event_type)

    operation = envelope.operation()
    conflict = False

    if operation.error is not None:
        if not operation.error.is_conflict:
            return CallbackDecision(
                CallbackOutcome.REPORT_FAILURE,
                event_type=event_type,
                operation=operation,
            )
        conflict = True

    kind = operation.kind
    if kind is OperationType.TRANSLOAD_AUDIO:
        outcome = CallbackOutcome.DISPATCH_TRANSLOAD
    elif kind is OperationType.CLASSIFY_TRANSCRIPT:
        outcome = CallbackOutcome.DISPATCH_CLASSIFY
    else:
        outcome = CallbackOutcome.IGNORE_UNKNOWN_OPERATION

    return CallbackDecision(
        outcome,
        event_type=event_type,
        operation=operation,
        conflict=conflict,
    )


class WebhookDispatcher:
    """Verifies inbound callbacks and routes them.

    Features:
    - Constant-time HMAC verification over the raw body
    - Challenge header echo
    - Explicit outcome classification
    - Error classification into HTTP status codes
    """

    def __init__(
        self,
        settings: Settings,
        initiator: Classifier,
        downloader: TranscriptFetcher,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            settings: Application settings holding the shared secret.
            initiator: Starts classification for transloaded audio.
            downloader: Fetches finished transcripts.
        """
        self._secret = settings.webhook_secret
        self._initiator = initiator
        self._downloader = downloader
        self._logger = logger.bind(component="webhook_dispatcher")

    async def handle(self, body: bytes, headers: Mapping[str, str]) -> DispatchResult:
        """Handle one inbound callback.

        Args:
            body: Raw request body, exactly as received.
            headers: Request headers.

        Returns:
            Status, body and headers to answer with.
        """
        if not verify_payload(body, headers.get(SIGNATURE_HEADER), self._secret):
            self._logger.warning("webhook_ignored_unauthenticated")
            return DispatchResult(
                content=SIGNATURE_MISMATCH_MESSAGE,
                outcome=CallbackOutcome.IGNORE_UNAUTHENTICATED,
            )

        response_headers: dict[str, str] = {}
        challenge = headers.get(CHALLENGE_HEADER)
        if challenge is not None:
            response_headers[CHALLENGE_HEADER] = challenge

        try:
            decision = classify_callback(parse_envelope(body))
            await self.route(decision)

        except BridgeError as e:
            self._logger.error("webhook_handling_failed", **e.to_dict())
            return DispatchResult(
                status_code=e.status_code,
                json_body=e.to_response(),
                headers=response_headers,
            )

        except Exception as e:
            self._logger.exception("webhook_handling_crashed", error=str(e))
            return DispatchResult(
                status_code=500,
                json_body={"code": 500, "err": str(e)},
                headers=response_headers,
            )

        return DispatchResult(headers=response_headers, outcome=decision.outcome)

    async def route(self, decision: CallbackDecision) -> None:
        """Carry out a decision.

        Args:
            decision: Result of classify_callback.
        """
        outcome = decision.outcome
        operation = decision.operation

        if outcome is CallbackOutcome.IGNORE_UNKNOWN_EVENT:
            self._logger.warning("unhandleable_event_type", event_type=decision.event_type)
            return

        if operation is None:
            raise MalformedCallbackError("Callback decision carries no operation")

        if outcome is CallbackOutcome.REPORT_FAILURE:
            self._logger.error(
                "operation_failed",
                operation_id=operation.id,
                operation_type=operation.type,
                audio_id=operation.audio_id,
                error=operation.error.model_dump() if operation.error else None,
            )
            return

        if decision.conflict:
            self._logger.warning(
                "operation_conflict_tolerated",
                outcome=CallbackOutcome.IGNORE_CONFLICT.value,
                operation_id=operation.id,
                operation_type=operation.type,
                audio_id=operation.audio_id,
            )

        if outcome is CallbackOutcome.DISPATCH_TRANSLOAD:
            audio_id = operation.audio_id
            if audio_id is None:
                raise MalformedCallbackError(
                    f"Operation {operation.id} has no audio_id parameter"
                )
            await self._initiator.analyze_audio(audio_id)

        elif outcome is CallbackOutcome.DISPATCH_CLASSIFY:
            await self._downloader.download_transcript(operation)

        else:
            self._logger.warning(
                "unhandleable_operation_type",
                operation_id=operation.id,
                operation_type=operation.type,
            )
