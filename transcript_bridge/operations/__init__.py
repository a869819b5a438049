"""Remote operation submission and transcript download.

This module provides:
- OperationInitiator: fire-and-forget classification and upload submissions
- ArtifactDownloader: streamed download of classified transcripts
"""

from transcript_bridge.operations.downloader import ArtifactDownloader, transcript_filename
from transcript_bridge.operations.initiator import (
    SPEAKERS,
    EntityRef,
    OperationInitiator,
    UploadResult,
)

__all__ = [
    # Initiator
    "EntityRef",
    "OperationInitiator",
    "SPEAKERS",
    "UploadResult",
    # Downloader
    "ArtifactDownloader",
    "transcript_filename",
]
