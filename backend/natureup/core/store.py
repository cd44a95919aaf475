"""In-memory persistence for sessions, message logs, profiles and excursions."""

from __future__ import annotations

import uuid
from typing import Dict, List, Optional

from .errors import SessionNotFoundError
from .phases import fresh_metadata
from .types import (
    AssistantRole,
    ConversationSession,
    ExcursionRecord,
    MessageRole,
    Phase,
    StoredMessage,
    UserProfile,
    utcnow,
)


class InMemoryStore:
    """Single-process stand-in for the managed data store."""

    def __init__(self) -> None:
        self._sessions: Dict[str, ConversationSession] = {}
        self._messages: Dict[str, List[StoredMessage]] = {}
        self._profiles: Dict[str, UserProfile] = {}
        self._excursions: Dict[str, ExcursionRecord] = {}

    # -- sessions -----------------------------------------------------------

    def create_session(self, user_id: Optional[str] = None, phase: Phase = Phase.initial_chat) -> ConversationSession:
        session = ConversationSession(
            id=str(uuid.uuid4()),
            user_id=user_id,
            phase=phase,
            metadata=fresh_metadata(phase),
        )
        self._sessions[session.id] = session
        self._messages[session.id] = []
        return session

    def get_session(self, session_id: str) -> ConversationSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def find_session(self, session_id: str) -> Optional[ConversationSession]:
        return self._sessions.get(session_id)

    def save_session(self, session: ConversationSession) -> ConversationSession:
        if session.id not in self._sessions:
            raise SessionNotFoundError(session.id)
        session = session.model_copy(update={"updated_at": utcnow()})
        self._sessions[session.id] = session
        return session

    def latest_session(self, user_id: Optional[str], role: AssistantRole) -> Optional[ConversationSession]:
        """Most recently updated session owned by ``user_id`` (None = anonymous) in ``role``."""
        owned = [s for s in self._sessions.values() if s.user_id == user_id and s.role == role]
        if not owned:
            return None
        return max(owned, key=lambda s: s.updated_at)

    # -- messages -----------------------------------------------------------

    def append_message(
        self,
        session_id: str,
        role: MessageRole,
        content: str,
        **voice: object,
    ) -> StoredMessage:
        session = self.get_session(session_id)
        message = StoredMessage(
            id=str(uuid.uuid4()),
            session_id=session_id,
            role=role,
            content=content,
            **voice,
        )
        self._messages[session_id].append(message)
        self.save_session(session)
        return message

    def messages(self, session_id: str) -> List[StoredMessage]:
        self.get_session(session_id)
        return list(self._messages[session_id])

    def delete_messages(self, session_id: str) -> None:
        self.get_session(session_id)
        self._messages[session_id] = []

    # -- profiles -----------------------------------------------------------

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        return self._profiles.get(user_id)

    def save_profile(self, profile: UserProfile) -> UserProfile:
        self._profiles[profile.user_id] = profile
        return profile

    # -- excursions ---------------------------------------------------------

    def save_excursion(self, record: ExcursionRecord) -> ExcursionRecord:
        self._excursions[record.id] = record
        return record

    def get_excursion(self, excursion_id: str) -> Optional[ExcursionRecord]:
        return self._excursions.get(excursion_id)
