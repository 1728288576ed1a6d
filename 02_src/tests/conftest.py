"""Pytest configuration and fixtures."""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest_asyncio.fixture
async def storage():
    """Create in-memory storage for testing."""
    from chat_session.storage import Storage

    st = Storage(":memory:")
    await st.init()
    yield st
    await st.close()


@pytest.fixture
def event_bus(storage):
    """Create EventBus with storage."""
    from chat_session.event_bus import EventBus

    return EventBus(storage)


@pytest.fixture
def tracker(storage, event_bus):
    """Create Tracker with storage and event bus."""
    from chat_session.tracker import Tracker

    return Tracker(event_bus=event_bus, storage=storage)


@pytest.fixture
def identity():
    """The signed-in test user."""
    from chat_session.models import Identity

    return Identity(id="user1", email="user1@example.com", name="User One")


@pytest.fixture
def mock_assistant():
    """Create mock assistant client that always answers."""
    from chat_session.assistant import AssistantReply

    assistant = Mock()
    assistant.request = AsyncMock(
        return_value=AssistantReply(
            text="Test response",
            conversation_id="conv-1",
            model_name="test-model",
            token_count=42,
            latency_ms=120,
        )
    )
    assistant.close = AsyncMock()
    return assistant


@pytest.fixture
def online_probe():
    from chat_session.assistant import StaticConnectivityProbe
    from chat_session.models import Connectivity

    return StaticConnectivityProbe(Connectivity.ONLINE)


@pytest.fixture
def quota_source():
    """Free plan with zero usage."""
    from chat_session.quota import StaticQuotaSource

    return StaticQuotaSource()


@pytest.fixture
def fast_transport():
    from chat_session.uploads import SimulatedFileTransport

    return SimulatedFileTransport(step_delay_s=0)


@pytest.fixture
def exporter(tmp_path):
    from chat_session.session import TranscriptExporter

    return TranscriptExporter(tmp_path / "exports")


@pytest.fixture
def make_coordinator(
    mock_assistant, online_probe, quota_source, fast_transport, event_bus, exporter, identity
):
    """Factory for coordinators; keyword overrides replace the default collaborators."""
    from chat_session.session import SessionCoordinator

    def factory(**overrides):
        kwargs = {
            "assistant": mock_assistant,
            "probe": online_probe,
            "quota_source": quota_source,
            "transport": fast_transport,
            "event_bus": event_bus,
            "exporter": exporter,
            "identity": identity,
            "request_timeout_s": 1.0,
        }
        kwargs.update(overrides)
        return SessionCoordinator(**kwargs)

    return factory


@pytest_asyncio.fixture
async def coordinator(make_coordinator):
    """Started coordinator for user1 with the welcome message removed."""
    session = make_coordinator()
    await session.start()
    await session.clear()
    yield session
    await session.stop()
