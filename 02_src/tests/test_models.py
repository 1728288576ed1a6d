"""Tests for data models."""

from datetime import datetime, timezone

from chat_session.models import (
    ALLOWED_TRANSITIONS,
    Attachment,
    Author,
    LifecycleState,
    Message,
    QuotaState,
    RawFile,
    ResponseMetadata,
    UploadProgress,
)


class TestLifecycle:
    """Tests for lifecycle transitions."""

    def test_failed_is_terminal(self):
        assert ALLOWED_TRANSITIONS[LifecycleState.FAILED] == frozenset()

    def test_nothing_returns_to_pending(self):
        assert all(
            LifecycleState.PENDING not in targets for targets in ALLOWED_TRANSITIONS.values()
        )


class TestRawFile:
    """Tests for RawFile."""

    def test_size_and_image_flag(self):
        image = RawFile(name="a.jpg", media_type="image/jpeg", data=b"1234")
        doc = RawFile(name="a.pdf", media_type="application/pdf", data=b"")

        assert image.byte_size == 4
        assert image.is_image
        assert not doc.is_image


class TestMessage:
    """Tests for Message."""

    def test_defaults(self):
        message = Message(
            id="m1", content="Hi", author=Author.REQUESTER, created_at=datetime.now(timezone.utc)
        )
        assert message.lifecycle_state is LifecycleState.PENDING
        assert message.attachments == []
        assert message.is_requester

    def test_to_dict(self):
        ts = datetime(2026, 1, 1, tzinfo=timezone.utc)
        message = Message(
            id="m2",
            content="Answer",
            author=Author.ASSISTANT,
            created_at=ts,
            lifecycle_state=LifecycleState.DELIVERED,
            response_metadata=ResponseMetadata(model_name="m", token_count=3, latency_ms=9),
        )

        data = message.to_dict()
        assert data["author"] == "assistant"
        assert data["created_at"] == ts.isoformat()
        assert data["lifecycle_state"] == "delivered"
        assert data["response_metadata"] == {"model_name": "m", "token_count": 3, "latency_ms": 9}


class TestAttachment:
    """Tests for Attachment."""

    def test_descriptor_excludes_preview(self):
        attachment = Attachment(
            id="a1",
            display_name="x.png",
            byte_size=10,
            media_type="image/png",
            preview_ref="preview://local",
            remote_ref="https://files/x",
        )
        assert attachment.descriptor() == {
            "id": "a1",
            "name": "x.png",
            "type": "image/png",
            "url": "https://files/x",
        }


class TestSmallModels:
    """Tests for quota and progress payloads."""

    def test_quota_state_to_dict(self):
        assert QuotaState().to_dict() == {
            "plan_tier": "free",
            "messages_used": 0,
            "message_limit": 50,
            "attachments_used": 0,
            "attachment_limit": 5,
        }

    def test_upload_progress_to_dict(self):
        progress = UploadProgress("f1", "a.png", 40, "transferring", preview_ref="preview://p")
        assert progress.to_dict()["percent"] == 40
        assert progress.to_dict()["remote_ref"] is None
