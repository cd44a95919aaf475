from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError

from natureup.agents.responder import Responder
from natureup.agents_llm.instructions import next_planning_step, select_instructions
from natureup.agents_llm.responder_llm import LLMResponder
from natureup.core.config import USE_LLM
from natureup.core.errors import ErrorInfo, MalformedReplyError, NatureUpError
from natureup.core.logger import SessionLogger
from natureup.core.nlu import detect_duration, detect_excursion_intent, detect_location_preference
from natureup.core.phases import fresh_metadata, merge_metadata, transition
from natureup.core.store import InMemoryStore
from natureup.core.types import (
    PHASE_TO_ROLE,
    AssistantReply,
    AssistantRole,
    CompletionRequest,
    ConversationSession,
    Message,
    Phase,
    PhaseChangeResult,
    PlanningMetadata,
    PlanningStep,
    SessionMetadata,
    TurnResult,
)
from natureup.llm.provider import CompletionProvider, run_completion

PROFILE_CONTEXT_KEYS = (
    "activity_preferences",
    "therapy_preferences",
    "health_goals",
    "fitness_level",
    "mobility_level",
)

# Phases from which an excursion request in chat starts planning.
PLANNING_ENTRY_PHASES = (Phase.initial_chat, Phase.post_excursion_followup)


class DialogueOrchestrator:
    """Runs one chat turn: persist, pick instructions, call the model, update the session."""

    def __init__(self, store: InMemoryStore) -> None:
        self.store = store
        self._loggers: Dict[str, SessionLogger] = {}

    def get_logger(self, session_id: str) -> SessionLogger:
        if session_id not in self._loggers:
            self._loggers[session_id] = SessionLogger(session_id)
        return self._loggers[session_id]

    def _get_provider(self, logger: SessionLogger) -> CompletionProvider:
        if USE_LLM:
            return LLMResponder(logger)
        return Responder(logger)

    # -- sessions -----------------------------------------------------------

    def get_or_create_session(
        self, user_id: Optional[str] = None, role: AssistantRole = AssistantRole.health_coach
    ) -> ConversationSession:
        """Most recent session for (user, role), or a new one.

        Anonymous callers always get a fresh session.
        """
        if user_id is not None:
            existing = self.store.latest_session(user_id, role)
            if existing is not None:
                return existing
        phase = Phase.initial_chat if role == AssistantRole.health_coach else Phase.excursion_planning
        session = self.store.create_session(user_id=user_id, phase=phase)
        self.get_logger(session.id).info("session created", role=role.value, phase=phase.value)
        return session

    def clear_session(self, session_id: str) -> ConversationSession:
        session = self.store.get_session(session_id)
        self.store.delete_messages(session_id)
        session = session.model_copy(
            update={
                "title": "New Conversation",
                "metadata": fresh_metadata(session.phase, session.linked_excursion_id),
            }
        )
        session = self.store.save_session(session)
        self.get_logger(session_id).info("session cleared", phase=session.phase.value)
        return session

    def change_phase(
        self, session_id: str, to_phase: Phase, excursion_id: Optional[str] = None
    ) -> PhaseChangeResult:
        logger = self.get_logger(session_id)
        try:
            session = self.store.get_session(session_id)
            moved = transition(session, to_phase, excursion_id=excursion_id)
        except NatureUpError as ex:
            info = ex.to_info()
            logger.error(info.code.value, info.message, to_phase=to_phase.value)
            return PhaseChangeResult(ok=False, error=info)
        moved = self.store.save_session(moved)
        logger.phase_transition(
            session.phase.value,
            moved.phase.value,
            role=moved.role.value,
            linked_excursion_id=moved.linked_excursion_id,
        )
        return PhaseChangeResult(ok=True, session=moved)

    def update_metadata(self, session_id: str, updates: Mapping[str, Any]) -> ConversationSession:
        session = self.store.get_session(session_id)
        session = session.model_copy(update={"metadata": merge_metadata(session.metadata, updates)})
        return self.store.save_session(session)

    def begin_planning_if_requested(self, session_id: str, message: str) -> bool:
        session = self.store.get_session(session_id)
        if session.phase not in PLANNING_ENTRY_PHASES or not detect_excursion_intent(message):
            return False
        return self.change_phase(session_id, Phase.excursion_planning).ok

    # -- turns --------------------------------------------------------------

    def build_context(
        self,
        session: ConversationSession,
        metadata: SessionMetadata,
        context_metadata: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        context: Dict[str, Any] = {
            "phase": session.phase.value,
            "session_metadata": metadata.model_dump(mode="json"),
        }
        profile = self.store.get_profile(session.user_id) if session.user_id else None
        if profile is not None:
            for key in PROFILE_CONTEXT_KEYS:
                context[key] = getattr(profile, key)
        # Caller-supplied keys win.
        if context_metadata:
            context.update(context_metadata)
        return context

    def _capture_slots(self, metadata: SessionMetadata, message: str) -> Dict[str, Any]:
        if not isinstance(metadata, PlanningMetadata):
            return {}
        # Only the slot the assistant is currently asking about is filled.
        captured: Dict[str, Any] = {}
        step = next_planning_step(metadata)
        if step == PlanningStep.ask_duration:
            minutes = detect_duration(message)
            if minutes:
                captured["duration_minutes"] = minutes
        elif step == PlanningStep.ask_location:
            preference = detect_location_preference(message).as_metadata_value()
            if preference:
                captured["location_preference"] = preference
        return captured

    def send_message(
        self,
        session_id: str,
        message: str,
        conversation_history: Optional[List[Message]] = None,
        role: Optional[AssistantRole] = None,
        context_metadata: Optional[Mapping[str, Any]] = None,
    ) -> TurnResult:
        history = conversation_history
        if history is None:
            history = [Message(role=m.role, content=m.content) for m in self.store.messages(session_id)]
        # The user's message is stored before anything can fail.
        self.store.append_message(session_id, "user", message)
        self.get_logger(session_id).user_message(message)
        return self._run_turn(session_id, message, history, role, context_metadata)

    def retry(
        self,
        session_id: str,
        role: Optional[AssistantRole] = None,
        context_metadata: Optional[Mapping[str, Any]] = None,
    ) -> TurnResult:
        """Re-run the last user message that never got an assistant reply."""
        stored = self.store.messages(session_id)
        if not stored or stored[-1].role != "user":
            raise ValueError(f"Session {session_id} has no unanswered message to retry")
        last = stored[-1]
        history = [Message(role=m.role, content=m.content) for m in stored[:-1]]
        self.get_logger(session_id).info("retrying turn", message=last.content)
        return self._run_turn(session_id, last.content, history, role, context_metadata)

    def _fail(self, logger: SessionLogger, session: ConversationSession, error: ErrorInfo) -> TurnResult:
        logger.error(error.code.value, error.message, phase=session.phase.value)
        return TurnResult(ok=False, session_id=session.id, phase=session.phase, error=error)

    def _run_turn(
        self,
        session_id: str,
        message: str,
        history: List[Message],
        role: Optional[AssistantRole],
        context_metadata: Optional[Mapping[str, Any]],
    ) -> TurnResult:
        logger = self.get_logger(session_id)
        session = self.store.get_session(session_id)
        effective_role = role or PHASE_TO_ROLE[session.phase]

        # Slots go into a working copy; nothing is saved until the reply is good.
        captured = self._capture_slots(session.metadata, message)
        working = merge_metadata(session.metadata, captured) if captured else session.metadata

        context = self.build_context(session, working, context_metadata)
        instructions = select_instructions(effective_role, session.phase, working, context)
        request = CompletionRequest(
            role_or_action=instructions.action,
            input={"message": message},
            context=context,
            conversation_history=history,
        )
        logger.step(
            "instructions",
            {"role": effective_role.value, "phase": session.phase.value, "captured": captured},
            {"action": instructions.action, "planning_step": instructions.planning_step},
        )

        response = run_completion(self._get_provider(logger), request, instructions)
        if not response.ok or response.result is None:
            error = response.error or MalformedReplyError("Completion returned no result").to_info()
            return self._fail(logger, session, error)
        try:
            reply = AssistantReply.model_validate(response.result)
        except ValidationError as ex:
            error = MalformedReplyError(f"Reply does not match the expected shape: {ex.errors()[0]['msg']}")
            return self._fail(logger, session, error.to_info())

        self.store.append_message(session_id, "assistant", reply.reply)
        logger.assistant_message(reply.reply)

        updates = dict(captured)
        if reply.asked_confirmation is not None:
            updates["asked_confirmation"] = reply.asked_confirmation
        if updates:
            session = self.update_metadata(session_id, updates)

        return TurnResult(
            ok=True,
            session_id=session_id,
            reply=reply.reply,
            ready_to_create=reply.ready_to_create,
            phase=session.phase,
            planning_step=instructions.planning_step,
        )
