"""Client for the remote audio service RPC surface."""

from transcript_bridge.service.client import AudioServiceClient

__all__ = ["AudioServiceClient"]
