"""Local preview references for image attachments."""

import uuid

from ..logging_config import get_logger

logger = get_logger(__name__)

PREVIEW_SCHEME = "preview://"


class PreviewRegistry:
    """Holds preview bytes behind opaque local references.

    A reference stays resolvable until released. Each session owns its own
    registry, so releasing a session's previews never touches another's.
    """

    def __init__(self):
        self._previews: dict[str, tuple[str, bytes]] = {}

    def create(self, data: bytes, media_type: str) -> str:
        ref = f"{PREVIEW_SCHEME}{uuid.uuid4()}"
        self._previews[ref] = (media_type, data)
        return ref

    def resolve(self, ref: str) -> tuple[str, bytes] | None:
        """Media type and bytes for a live reference."""
        return self._previews.get(ref)

    def release(self, ref: str | None) -> bool:
        if ref is None:
            return False
        released = self._previews.pop(ref, None) is not None
        if released:
            logger.debug("Released preview %s", ref)
        return released

    def __contains__(self, ref: object) -> bool:
        return ref in self._previews

    def __len__(self) -> int:
        return len(self._previews)
