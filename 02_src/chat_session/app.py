"""Application bootstrap and lifecycle management."""

from typing import Protocol

from .assistant import (
    AnthropicAssistantClient,
    HttpAssistantClient,
    HttpConnectivityProbe,
    IAssistantClient,
    IConnectivityProbe,
    SimulatedAssistantClient,
    StaticConnectivityProbe,
)
from .config import Settings, resolve_db_path
from .event_bus import EventBus
from .logging_config import get_logger
from .models import Identity
from .quota import IQuotaSource, SubscriptionQuotaSource
from .session import SessionCoordinator, TranscriptExporter
from .storage import IStorage, Storage
from .tracker import ITracker, Tracker
from .uploads import HttpFileTransport, IFileTransport, SimulatedFileTransport

logger = get_logger(__name__)


class IApplication(Protocol):
    """Bootstrap and lifecycle."""

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        ...

    async def reset(self) -> None:
        """Close every session and clear stored data."""
        ...

    async def open_session(self, identity: Identity) -> SessionCoordinator:
        """Create and start a session for a user."""
        ...

    def get_session(self, session_id: str) -> SessionCoordinator | None:
        """Look up a live session."""
        ...

    async def close_session(self, session_id: str) -> bool:
        """Stop and forget a session."""
        ...

    @property
    def storage(self) -> IStorage:
        ...


class Application:
    """Main application bootstrap.

    Owns the shared infrastructure (storage, event bus, tracker, assistant
    strategy) and any number of independent SessionCoordinators.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        db_path: str | None = None,
        assistant: IAssistantClient | None = None,
        probe: IConnectivityProbe | None = None,
        transport: IFileTransport | None = None,
    ):
        self._settings = settings or Settings.from_env()
        if db_path is not None:
            self._settings.db_path = resolve_db_path(db_path)

        # Explicit strategies win over the ones derived from settings
        self._assistant: IAssistantClient | None = assistant
        self._probe: IConnectivityProbe | None = probe
        self._transport: IFileTransport | None = transport

        # Components (will be initialized in start())
        self._storage: IStorage | None = None
        self._event_bus: EventBus | None = None
        self._tracker: ITracker | None = None
        self._quota_source: IQuotaSource | None = None
        self._exporter: TranscriptExporter | None = None
        self._sessions: dict[str, SessionCoordinator] = {}

    def _build_strategies(self) -> None:
        mode = self._settings.assistant_mode
        url = self._settings.assistant_api_url

        if self._assistant is None:
            if mode == "http":
                self._assistant = HttpAssistantClient(url, timeout=self._settings.request_timeout_s)
            elif mode == "anthropic":
                self._assistant = AnthropicAssistantClient(
                    api_key=self._settings.anthropic_api_key,
                    model=self._settings.anthropic_model,
                )
            else:
                self._assistant = SimulatedAssistantClient(delay_s=self._settings.simulated_delay_s)

        if self._probe is None:
            self._probe = HttpConnectivityProbe(url) if mode == "http" else StaticConnectivityProbe()

        if self._transport is None:
            self._transport = HttpFileTransport(url) if mode == "http" else SimulatedFileTransport()

    async def start(self) -> None:
        """Initialize components in dependency order."""
        logger.info("Starting application (%s mode)", self._settings.assistant_mode)

        # 1. Storage (no dependencies)
        self._storage = Storage(self._settings.db_path)
        await self._storage.init()
        logger.info("Storage initialized")

        # 2. EventBus (depends on Storage for persistence)
        self._event_bus = EventBus(self._storage)

        # 3. Tracker (depends on EventBus + Storage)
        self._tracker = Tracker(self._event_bus, self._storage)
        await self._tracker.start()

        # 4. Assistant, probe and file transport (no internal dependencies)
        self._build_strategies()
        logger.info("Assistant strategy: %s", type(self._assistant).__name__)

        # 5. Quota source and exporter
        self._quota_source = SubscriptionQuotaSource(self._storage)
        self._exporter = TranscriptExporter(self._settings.export_dir)
        logger.info("All components initialized successfully")

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        for session_id in list(self._sessions):
            await self.close_session(session_id)
        for component in (self._transport, self._probe, self._assistant):
            close = getattr(component, "close", None)
            if close:
                await close()
        if self._tracker:
            await self._tracker.stop()
        if self._storage:
            await self._storage.close()
            logger.info("Storage closed")

    async def reset(self) -> None:
        """Close every session and clear stored data."""
        for session_id in list(self._sessions):
            await self.close_session(session_id)

        if self._storage:
            await self._storage.clear()
            logger.info("Reset complete")

    async def open_session(self, identity: Identity) -> SessionCoordinator:
        """Create and start a session for a user."""
        if not self._storage:
            raise RuntimeError("Application not started")

        session = SessionCoordinator(
            assistant=self._assistant,
            probe=self._probe,
            quota_source=self._quota_source,
            transport=self._transport,
            event_bus=self._event_bus,
            exporter=self._exporter,
            identity=identity,
            request_timeout_s=self._settings.request_timeout_s,
            max_file_bytes=self._settings.max_attachment_bytes,
            max_concurrent_transfers=self._settings.max_concurrent_transfers,
        )
        await session.start()
        self._sessions[session.session_id] = session
        await self._tracker.track(
            event_type="session_opened",
            actor=session.session_id,
            data={"user_id": identity.id, "connectivity": session.context.connectivity.value},
        )
        return session

    def get_session(self, session_id: str) -> SessionCoordinator | None:
        """Look up a live session."""
        return self._sessions.get(session_id)

    async def close_session(self, session_id: str) -> bool:
        """Stop and forget a session."""
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        await session.stop()
        if self._tracker:
            await self._tracker.track(event_type="session_closed", actor=session_id, data={})
        return True

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def sessions(self) -> dict[str, SessionCoordinator]:
        return dict(self._sessions)

    @property
    def storage(self) -> IStorage:
        """Get storage instance."""
        if not self._storage:
            raise RuntimeError("Application not started")
        return self._storage

    @property
    def event_bus(self) -> EventBus:
        """Get event bus instance."""
        if not self._event_bus:
            raise RuntimeError("Application not started")
        return self._event_bus
