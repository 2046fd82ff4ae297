"""
Session registry: the table of live transcode sessions.

Owned by one orchestrator instance. Every operation holds the registry lock,
so concurrent publish events for different ids never interleave inside the
table. The registry also refuses two live sessions writing to the same
output directory.

A publish-start first reserves its id, then registers the session once the
output directory is free. Reserved sessions are visible to ``in`` and
``find`` so a publish-stop arriving in between is not lost; they are
not returned by ``get`` or ``list`` and do not own a directory yet.
"""

import threading
from pathlib import Path
from typing import Dict, List, Optional

from .session import TranscodeSession
from ..errors import DuplicateSessionError, OutputDirectoryBusyError, SessionNotFoundError


class SessionRegistry:
    """Thread-safe mapping of session id to TranscodeSession."""

    def __init__(self):
        self._sessions: Dict[str, TranscodeSession] = {}
        self._pending: Dict[str, TranscodeSession] = {}
        self._lock = threading.Lock()

    def reserve(self, session_id: str, session: TranscodeSession):
        """
        Claim a session id ahead of registration.

        Raises:
            DuplicateSessionError: if the id is registered or already reserved
        """
        with self._lock:
            if session_id in self._sessions or session_id in self._pending:
                raise DuplicateSessionError(session_id)
            self._pending[session_id] = session

    def release(self, session_id: str, session: TranscodeSession) -> bool:
        """Drop a reservation held by ``session``. Returns whether one was dropped."""
        with self._lock:
            if self._pending.get(session_id) is not session:
                return False
            del self._pending[session_id]
            return True

    def find(self, session_id: str) -> Optional[TranscodeSession]:
        """Registered or reserved session for an id, or None."""
        with self._lock:
            return self._sessions.get(session_id) or self._pending.get(session_id)

    def insert(self, session_id: str, session: TranscodeSession):
        """
        Register a session, consuming its reservation if it holds one.

        Raises:
            DuplicateSessionError: if the id is registered or reserved by another session
            OutputDirectoryBusyError: if another session owns the output directory
        """
        with self._lock:
            reserved = self._pending.get(session_id)
            if session_id in self._sessions or (reserved is not None and reserved is not session):
                raise DuplicateSessionError(session_id)
            owner = self._owner_of(Path(session.output_directory))
            if owner is not None:
                raise OutputDirectoryBusyError(session.output_directory, owner.session_id)
            self._pending.pop(session_id, None)
            self._sessions[session_id] = session

    def get(self, session_id: str) -> TranscodeSession:
        """Raises SessionNotFoundError if absent."""
        with self._lock:
            try:
                return self._sessions[session_id]
            except KeyError:
                raise SessionNotFoundError(session_id) from None

    def remove(self, session_id: str) -> TranscodeSession:
        """Remove and return a session. Raises SessionNotFoundError if absent."""
        with self._lock:
            try:
                return self._sessions.pop(session_id)
            except KeyError:
                raise SessionNotFoundError(session_id) from None

    def discard(self, session_id: str, session: Optional[TranscodeSession] = None) -> bool:
        """
        Remove an entry if present, returning whether anything was removed.

        When ``session`` is given the entry is removed only if it is that exact
        session, so a late exit never evicts a newer session reusing the id.
        """
        with self._lock:
            current = self._sessions.get(session_id)
            if current is None or (session is not None and current is not session):
                return False
            del self._sessions[session_id]
            return True

    def find_by_output_directory(self, output_directory: Path) -> Optional[TranscodeSession]:
        with self._lock:
            return self._owner_of(Path(output_directory))

    def list(self) -> List[TranscodeSession]:
        """Snapshot of registered sessions."""
        with self._lock:
            return list(self._sessions.values())

    def _owner_of(self, output_directory: Path) -> Optional[TranscodeSession]:
        for session in self._sessions.values():
            if Path(session.output_directory) == output_directory:
                return session
        return None

    def __contains__(self, session_id) -> bool:
        with self._lock:
            return session_id in self._sessions or session_id in self._pending

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
