"""Tests for the operation initiator."""

from unittest.mock import AsyncMock

import pytest

from transcript_bridge.config import Settings
from transcript_bridge.operations.initiator import (
    SPEAKERS,
    OperationInitiator,
    UploadResult,
    audio_name_from_url,
)

# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def service():
    """Mock remote service."""
    mock = AsyncMock()
    mock.classify_transcript.return_value = {"operation": {"_id": "op-classify"}}
    mock.add_audio.return_value = {"audio": {"_id": "audio-1"}}
    mock.upload_audio_from_url.return_value = {"operation": {"_id": "op-upload"}}
    return mock


@pytest.fixture
def settings():
    """Settings with an owner."""
    return Settings(owner="owner-1")


@pytest.fixture
def initiator(service, settings):
    """Create test initiator."""
    return OperationInitiator(service, settings)


# ============================================================================
# analyze_audio Tests
# ============================================================================


class TestAnalyzeAudio:
    """Tests for classification submission."""

    @pytest.mark.asyncio
    async def test_returns_operation_id(self, initiator):
        """Test the new operation id is returned."""
        assert await initiator.analyze_audio("audio-9") == "op-classify"

    @pytest.mark.asyncio
    async def test_request_shape(self, initiator, service):
        """Test the submitted audio, config and tags."""
        await initiator.analyze_audio("audio-9")

        service.classify_transcript.assert_awaited_once_with(
            {"_id": "audio-9", "owner": "owner-1"},
            {
                "config": {
                    "transcribe-audio": {"redact": False, "languageCode": "en-US"},
                },
                "tags": ["audio._id=audio-9"],
            },
        )

    @pytest.mark.asyncio
    async def test_redaction_and_language_configurable(self, service):
        """Test redaction and language follow settings."""
        initiator = OperationInitiator(
            service, Settings(owner="owner-1", redact_pii=True, language_code="fr-FR")
        )

        await initiator.analyze_audio("audio-9")

        operation = service.classify_transcript.await_args.args[1]
        assert operation["config"]["transcribe-audio"] == {
            "redact": True,
            "languageCode": "fr-FR",
        }


# ============================================================================
# upload Tests
# ============================================================================


class TestUpload:
    """Tests for audio upload submission."""

    @pytest.mark.asyncio
    async def test_upload_result(self, initiator):
        """Test identifiers are returned in output shape."""
        result = await initiator.upload("https://cdn.example.com/calls/call-1.wav")

        assert isinstance(result, UploadResult)
        assert result.to_output() == {
            "audio": {"_id": "audio-1"},
            "operation": {"_id": "op-upload"},
        }

    @pytest.mark.asyncio
    async def test_audio_registration(self, initiator, service):
        """Test audio is created with name, owner and speaker roles."""
        await initiator.upload("https://cdn.example.com/calls/call-1.wav")

        service.add_audio.assert_awaited_once_with(
            {
                "name": "call-1.wav",
                "owner": "owner-1",
                "metadata": {
                    "speakers": [
                        {"_id": "speakerCh0", "role": "agent"},
                        {"_id": "speakerCh1", "role": "customer"},
                    ]
                },
            }
        )

    @pytest.mark.asyncio
    async def test_upload_tags(self, initiator, service):
        """Test upload is tagged with the audio id and caller tags."""
        url = "https://cdn.example.com/calls/call-1.wav"

        await initiator.upload(url, ["batch=7", "team=support"])

        service.upload_audio_from_url.assert_awaited_once_with(
            {"_id": "audio-1", "owner": "owner-1"},
            url,
            {"tags": ["audio_id=audio-1", "batch=7", "team=support"]},
        )

    @pytest.mark.asyncio
    async def test_upload_not_attempted_when_add_fails(self, initiator, service):
        """Test a failed audio creation propagates and stops the upload."""
        service.add_audio.side_effect = RuntimeError("denied")

        with pytest.raises(RuntimeError, match="denied"):
            await initiator.upload("https://cdn.example.com/a.wav")

        service.upload_audio_from_url.assert_not_called()


class TestHelpers:
    """Tests for module helpers."""

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://cdn.example.com/calls/call-1.wav", "call-1.wav"),
            ("https://cdn.example.com/call.mp3?sig=abc", "call.mp3"),
            ("https://cdn.example.com/dir/", "dir"),
        ],
    )
    def test_audio_name_from_url(self, url, expected):
        """Test audio names come from the URL basename."""
        assert audio_name_from_url(url) == expected

    def test_speakers(self):
        """Test the fixed two-channel speaker mapping."""
        assert [s["role"] for s in SPEAKERS] == ["agent", "customer"]
