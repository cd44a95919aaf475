from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, FrozenSet, Mapping, Optional

from .errors import InvalidTransitionError
from .types import (
    PHASE_TO_ROLE,
    AssistantRole,
    ConversationSession,
    CreationMetadata,
    FollowupMetadata,
    GuidingMetadata,
    InitialChatMetadata,
    Phase,
    PlanningMetadata,
    SessionMetadata,
    utcnow,
)

TRANSITIONS: Dict[Phase, FrozenSet[Phase]] = {
    Phase.initial_chat: frozenset({Phase.excursion_planning}),
    Phase.excursion_planning: frozenset({Phase.excursion_creation, Phase.initial_chat}),
    Phase.excursion_creation: frozenset({Phase.excursion_guiding, Phase.initial_chat}),
    Phase.excursion_guiding: frozenset({Phase.post_excursion_followup}),
    Phase.post_excursion_followup: frozenset({Phase.initial_chat, Phase.excursion_planning}),
}

# Phases whose metadata is built around an excursion.
EXCURSION_PHASES: FrozenSet[Phase] = frozenset(
    {Phase.excursion_creation, Phase.excursion_guiding, Phase.post_excursion_followup}
)


def can_transition(from_phase: Phase, to_phase: Phase) -> bool:
    return to_phase in TRANSITIONS.get(from_phase, frozenset())


def role_for_phase(phase: Phase) -> AssistantRole:
    return PHASE_TO_ROLE[phase]


def fresh_metadata(
    phase: Phase, excursion_id: Optional[str] = None, now: Optional[datetime] = None
) -> SessionMetadata:
    """Metadata a session carries right after entering ``phase``."""
    now = now or utcnow()
    if phase == Phase.initial_chat:
        return InitialChatMetadata()
    if phase == Phase.excursion_planning:
        return PlanningMetadata()
    if excursion_id is None:
        raise ValueError(f"{phase.value} metadata needs an excursion_id")
    if phase == Phase.excursion_creation:
        return CreationMetadata(excursion_id=excursion_id)
    if phase == Phase.excursion_guiding:
        return GuidingMetadata(excursion_id=excursion_id, start_time=now)
    return FollowupMetadata(excursion_id=excursion_id, completed_at=now)


def transition(
    session: ConversationSession,
    to_phase: Phase,
    excursion_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ConversationSession:
    """Return ``session`` moved to ``to_phase`` with its metadata replaced.

    Raises InvalidTransitionError for pairs outside TRANSITIONS, or when an
    excursion phase is entered without any excursion to point at. The input
    session is never modified.
    """
    if not can_transition(session.phase, to_phase):
        raise InvalidTransitionError(session.phase.value, to_phase.value)

    now = now or utcnow()
    linked: Optional[str] = None
    if to_phase in EXCURSION_PHASES:
        linked = excursion_id or session.linked_excursion_id
        if not linked:
            raise InvalidTransitionError(session.phase.value, to_phase.value, "no excursion to link")

    return session.model_copy(
        update={
            "phase": to_phase,
            "metadata": fresh_metadata(to_phase, linked, now),
            "linked_excursion_id": linked,
            "updated_at": now,
        }
    )


def merge_metadata(metadata: SessionMetadata, updates: Mapping[str, Any]) -> SessionMetadata:
    """Shallow-merge ``updates`` onto the current variant; a ``phase`` key is ignored."""
    merged = {**metadata.model_dump(), **{k: v for k, v in updates.items() if k != "phase"}}
    return type(metadata).model_validate(merged)
