from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from .config import ARTIFACT_TTL_SECONDS
from .security import normalize_artifact_id
from .workspace import delete_file


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Artifact:
    path: Path
    download_name: str
    media_type: str
    expires_at: float


class ArtifactRegistry:
    """In-memory id -> Artifact map with one-time retrieval and TTL eviction.

    Entries disappear on the first ``pop`` or once ``expires_at`` has passed,
    whichever comes first. Evicting an entry deletes its backing file; popping
    hands ownership of the file to the caller.
    """

    def __init__(
        self,
        name: str,
        ttl_seconds: float = ARTIFACT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, Artifact] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def register(self, artifact_id: str, path: Path, download_name: str, media_type: str) -> Artifact:
        artifact = Artifact(
            path=path,
            download_name=download_name,
            media_type=media_type,
            expires_at=self._clock() + self.ttl_seconds,
        )
        with self._lock:
            self._entries[artifact_id] = artifact
        logger.debug("Registered %s artifact %s", self.name, download_name)
        return artifact

    def pop(self, artifact_id: str) -> Optional[Artifact]:
        """Remove and return a live entry; the caller must delete the file."""
        try:
            aid = normalize_artifact_id(artifact_id)
        except ValueError:
            return None
        with self._lock:
            artifact = self._entries.pop(aid, None)
        if artifact is None:
            return None
        if artifact.expires_at <= self._clock():
            delete_file(artifact.path)
            return None
        if not artifact.path.is_file():
            return None
        return artifact

    def evict_expired(self) -> int:
        """Drop every expired entry and delete its file. Returns the count."""
        now = self._clock()
        with self._lock:
            expired_ids = [aid for aid, a in self._entries.items() if a.expires_at <= now]
            expired = [self._entries.pop(aid) for aid in expired_ids]
        for artifact in expired:
            delete_file(artifact.path)
        if expired:
            logger.debug("Evicted %d expired %s artifact(s)", len(expired), self.name)
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()
        for artifact in entries:
            delete_file(artifact.path)

    def paths(self) -> set[Path]:
        with self._lock:
            return {a.path.resolve() for a in self._entries.values()}
