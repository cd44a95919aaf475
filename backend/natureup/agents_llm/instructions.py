from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel

from natureup.core.types import AssistantRole, Phase, PlanningMetadata, PlanningStep, SessionMetadata


class InstructionSet(BaseModel):
    action: str
    role: AssistantRole
    phase: Phase
    system_prompt: str
    planning_step: Optional[PlanningStep] = None


ROLE_ACTIONS: Dict[AssistantRole, str] = {
    AssistantRole.health_coach: "health_coach_message",
    AssistantRole.excursion_creator: "excursion_creator_message",
}

JSON_REPLY_RULE = 'Always answer with valid JSON: {"reply": "<your short message>"}'

COACH_PROMPT = (
    "You are NatureUP, a calm companion that helps people use time outdoors to feel better.\n"
    "Answer in one or two short, conversational sentences with no lists.\n"
    "Offer at most one simple nature practice (a breathing exercise, noticing sounds, a short walk) "
    "or ask one gentle question.\n"
    "Do not diagnose or give therapy. If the user sounds in crisis, encourage them to contact "
    "emergency services.\n"
)

FOLLOWUP_PROMPT = (
    COACH_PROMPT
    + "The user just finished an excursion. Ask how it felt and what they noticed, and keep it light.\n"
)

CREATOR_PROMPT = "You help people plan short nature excursions. Keep replies short.\n"

REFINEMENT_PROMPT = (
    "You help the user adjust the excursion they just created.\n"
    "Answer questions about it, or confirm requested changes to duration, difficulty, destination "
    "or steps in two or three short sentences.\n"
    "When a change is requested, add \"requires_excursion_update\": true and describe it in "
    "\"update_suggestions\".\n"
)

GUIDING_PROMPT = (
    "The user is out on their excursion right now.\n"
    "Give one short, encouraging, present-moment prompt: a sensory check-in, pacing advice or a rest "
    "suggestion.\n"
)

PLANNING_QUESTIONS: Dict[PlanningStep, str] = {
    PlanningStep.ask_duration: "Ask how much time they have. Ask nothing else.",
    PlanningStep.ask_location: (
        "Ask whether they have a place in mind or would like you to suggest some options."
    ),
    PlanningStep.ask_confirmation: (
        'Ask "Can I show you some options?" and include "askedConfirmation": true.'
    ),
    PlanningStep.await_go_ahead: (
        'If the user\'s message is a clear yes, include "readyToCreate": true. '
        "Otherwise ask again whether they would like to see options."
    ),
}


def next_planning_step(metadata: PlanningMetadata) -> PlanningStep:
    """Strict order: duration, then location preference, then confirmation."""
    if not metadata.duration_minutes:
        return PlanningStep.ask_duration
    if not metadata.location_preference:
        return PlanningStep.ask_location
    if not metadata.asked_confirmation:
        return PlanningStep.ask_confirmation
    return PlanningStep.await_go_ahead


def preferences_section(context: Dict[str, Any]) -> str:
    lines: List[str] = []
    for key, label in (
        ("activity_preferences", "Activity preferences"),
        ("therapy_preferences", "Therapeutic goals"),
        ("health_goals", "Health goals"),
    ):
        values = context.get(key) or []
        if values:
            lines.append(f"- {label}: {', '.join(str(v) for v in values)}")
    for key, label in (("fitness_level", "Fitness level"), ("mobility_level", "Mobility level")):
        if context.get(key):
            lines.append(f"- {label}: {context[key]}")
    if not lines:
        return ""
    return "\nUSER PREFERENCES:\n" + "\n".join(lines) + "\nTailor suggestions to these when relevant.\n"


def _coach(role: AssistantRole, phase: Phase, metadata: SessionMetadata, context: Dict[str, Any]) -> InstructionSet:
    base = FOLLOWUP_PROMPT if phase == Phase.post_excursion_followup else COACH_PROMPT
    return InstructionSet(
        action=ROLE_ACTIONS[role],
        role=role,
        phase=phase,
        system_prompt=base + preferences_section(context) + JSON_REPLY_RULE,
    )


def _creator(role: AssistantRole, phase: Phase, metadata: SessionMetadata, context: Dict[str, Any]) -> InstructionSet:
    return InstructionSet(
        action=ROLE_ACTIONS[role],
        role=role,
        phase=phase,
        system_prompt=CREATOR_PROMPT + preferences_section(context) + JSON_REPLY_RULE,
    )


def _planning(role: AssistantRole, phase: Phase, metadata: SessionMetadata, context: Dict[str, Any]) -> InstructionSet:
    planning = metadata if isinstance(metadata, PlanningMetadata) else PlanningMetadata()
    step = next_planning_step(planning)

    collected: List[str] = []
    if planning.duration_minutes:
        collected.append(f"- Duration: {planning.duration_minutes} minutes")
    if planning.location_preference:
        collected.append(f"- Location preference: {planning.location_preference}")
    if planning.asked_confirmation:
        collected.append("- Already asked for confirmation")

    prompt = (
        "You are helping someone plan a nature excursion.\n"
        "Write one short, friendly sentence. No hiking instructions or wellness tips yet.\n"
        "Collect, in this order: duration, location preference, confirmation to show options.\n"
    )
    if collected:
        prompt += "COLLECTED SO FAR:\n" + "\n".join(collected) + "\n"
    prompt += f"NEXT: {PLANNING_QUESTIONS[step]}\n"
    prompt += preferences_section(context)
    prompt += (
        'Answer with valid JSON: {"reply": "...", "readyToCreate": false} and add '
        '"askedConfirmation" only when you ask for confirmation.'
    )
    return InstructionSet(
        action=ROLE_ACTIONS[role],
        role=role,
        phase=phase,
        system_prompt=prompt,
        planning_step=step,
    )


def _refinement(role: AssistantRole, phase: Phase, metadata: SessionMetadata, context: Dict[str, Any]) -> InstructionSet:
    return InstructionSet(
        action=ROLE_ACTIONS[role],
        role=role,
        phase=phase,
        system_prompt=REFINEMENT_PROMPT + preferences_section(context) + JSON_REPLY_RULE,
    )


def _guiding(role: AssistantRole, phase: Phase, metadata: SessionMetadata, context: Dict[str, Any]) -> InstructionSet:
    return InstructionSet(
        action=ROLE_ACTIONS[role],
        role=role,
        phase=phase,
        system_prompt=GUIDING_PROMPT + preferences_section(context) + JSON_REPLY_RULE,
    )


InstructionBuilder = Callable[[AssistantRole, Phase, SessionMetadata, Dict[str, Any]], InstructionSet]

INSTRUCTION_TABLE: Dict[Tuple[AssistantRole, Phase], InstructionBuilder] = {
    (AssistantRole.health_coach, Phase.initial_chat): _coach,
    (AssistantRole.health_coach, Phase.excursion_planning): _coach,
    (AssistantRole.health_coach, Phase.excursion_creation): _coach,
    (AssistantRole.health_coach, Phase.excursion_guiding): _coach,
    (AssistantRole.health_coach, Phase.post_excursion_followup): _coach,
    (AssistantRole.excursion_creator, Phase.initial_chat): _creator,
    (AssistantRole.excursion_creator, Phase.excursion_planning): _planning,
    (AssistantRole.excursion_creator, Phase.excursion_creation): _refinement,
    (AssistantRole.excursion_creator, Phase.excursion_guiding): _guiding,
    (AssistantRole.excursion_creator, Phase.post_excursion_followup): _creator,
}


def select_instructions(
    role: AssistantRole,
    phase: Phase,
    metadata: SessionMetadata,
    context: Dict[str, Any],
) -> InstructionSet:
    return INSTRUCTION_TABLE[(role, phase)](role, phase, metadata, context)
