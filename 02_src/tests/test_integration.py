"""Integration tests for the chat session end-to-end flow."""

import json

import pytest

from chat_session.app import Application
from chat_session.config import Settings
from chat_session.models import Identity, LifecycleState, RawFile
from chat_session.uploads import SimulatedFileTransport


@pytest.fixture
async def app(tmp_path):
    """Create and start a test application backed by a file database."""
    settings = Settings(
        db_path=tmp_path / "chat_session.db",
        simulated_delay_s=(0, 0),
        export_dir=tmp_path / "exports",
    )
    app = Application(settings, transport=SimulatedFileTransport(step_delay_s=0))
    await app.start()

    yield app

    await app.stop()


@pytest.mark.asyncio
async def test_full_flow(app: Application):
    """Test end-to-end flow: open, send with files, retry, export."""
    session = await app.open_session(Identity(id="test_user_001", email="test@example.com"))

    # Attachment-only turn
    result = await session.send_turn(
        "", [RawFile(name="diagram.png", media_type="image/png", data=b"\x89PNG" * 10)]
    )
    assert result.request.lifecycle_state is LifecycleState.DELIVERED
    assert "diagram.png" in result.reply.content

    # Retry replaces the pair at the end of the transcript
    retried = await session.retry(result.request.id)
    assert session.transcript.all()[-2:] == (retried.request, retried.reply)

    path = await session.export()
    document = json.loads(path.read_text(encoding="utf-8"))
    assert document["identity"] == "test@example.com"
    assert document["messageCount"] == len(session.transcript)

    quota = session.quota.snapshot()
    assert quota.messages_used == 2
    assert quota.attachments_used == 1

    # Check trace events
    events = await app.storage.get_trace_events(limit=1000)
    event_types = {e.event_type for e in events}
    assert "session_opened" in event_types
    assert "transcript_changed" in event_types
    assert "upload_progress" in event_types
    assert "turn_state_changed" in event_types
    assert "quota_changed" in event_types


@pytest.mark.asyncio
async def test_usage_survives_between_sessions_only_via_store(app: Application):
    """Quota comes from the subscription store, not from earlier sessions."""
    first = await app.open_session(Identity(id="user1"))
    await first.send_turn("Hello")
    await app.close_session(first.session_id)

    second = await app.open_session(Identity(id="user1"))
    assert second.quota.snapshot().messages_used == 0
