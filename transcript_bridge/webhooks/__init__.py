"""Inbound webhook handling for remote operation callbacks.

This module provides:
- Callback models: CallbackEnvelope, Operation, OperationType
- WebhookRegistrar: idempotent subscription setup
- WebhookDispatcher: verification, classification and routing of callbacks
- HMAC-SHA1 signing and constant-time verification
"""

from transcript_bridge.webhooks.dispatcher import (
    CallbackDecision,
    CallbackOutcome,
    DispatchResult,
    WebhookDispatcher,
    classify_callback,
)
from transcript_bridge.webhooks.events import (
    CONFLICT_CODE,
    CallbackEnvelope,
    CallbackEvent,
    EventType,
    Operation,
    OperationError,
    OperationType,
    parse_envelope,
)
from transcript_bridge.webhooks.registrar import WebhookRegistrar, WebhookSubscription
from transcript_bridge.webhooks.security import (
    CHALLENGE_HEADER,
    SIGNATURE_HEADER,
    sign,
    verify,
    verify_from_headers,
    verify_payload,
)

__all__ = [
    # Events
    "CONFLICT_CODE",
    "CallbackEnvelope",
    "CallbackEvent",
    "EventType",
    "Operation",
    "OperationError",
    "OperationType",
    "parse_envelope",
    # Registrar
    "WebhookRegistrar",
    "WebhookSubscription",
    # Dispatcher
    "CallbackDecision",
    "CallbackOutcome",
    "DispatchResult",
    "WebhookDispatcher",
    "classify_callback",
    # Security
    "CHALLENGE_HEADER",
    "SIGNATURE_HEADER",
    "sign",
    "verify",
    "verify_from_headers",
    "verify_payload",
]
