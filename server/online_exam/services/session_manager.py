"""
In-memory registry of online-test sessions, one engine per principal.
"""
import logging
from typing import Callable, Dict, Optional

from online_exam.errors import OnlineExamError
from online_exam.schemas import Session
from online_exam.services.backend_client import BackendClient
from online_exam.services.engine import ExamSessionEngine
from online_exam.services.identity import normalize_email

logger = logging.getLogger(__name__)


class SessionNotFound(KeyError):
    pass


class SessionManager:
    """Owns the shared backend client and the active engines."""
    
    def __init__(self, backend_factory: Callable[[], BackendClient] = BackendClient):
        # Map normalized principal -> engine
        self.active_sessions: Dict[str, ExamSessionEngine] = {}
        self._backend_factory = backend_factory
        self._backend: Optional[BackendClient] = None

    @property
    def backend(self) -> BackendClient:
        if self._backend is None:
            self._backend = self._backend_factory()
        return self._backend

    async def open(self, principal: str) -> ExamSessionEngine:
        """Start (or restart discovery for) the principal's session."""
        key = normalize_email(principal)
        engine = self.active_sessions.get(key)
        created = engine is None
        if created:
            engine = ExamSessionEngine(Session(principal=principal), self.backend)
            # registered before start() so concurrent opens share one engine
            self.active_sessions[key] = engine
        try:
            await engine.start()
        except OnlineExamError:
            if created and self.active_sessions.get(key) is engine and engine.student is None:
                del self.active_sessions[key]
            raise
        return engine

    def get(self, principal: str) -> ExamSessionEngine:
        key = normalize_email(principal)
        if key not in self.active_sessions:
            raise SessionNotFound(principal)
        return self.active_sessions[key]

    def close(self, principal: str) -> None:
        """Discard a session together with any in-flight results."""
        engine = self.active_sessions.pop(normalize_email(principal), None)
        if engine is not None:
            engine.deselect()
            logger.info("Closed online-test session for %s", principal)

    async def shutdown(self) -> None:
        self.active_sessions.clear()
        if self._backend is not None:
            await self._backend.aclose()
            self._backend = None


# Global manager instance
session_manager = SessionManager()
