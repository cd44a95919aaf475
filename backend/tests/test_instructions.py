from itertools import product

import pytest

from natureup.agents_llm.instructions import (
    INSTRUCTION_TABLE,
    ROLE_ACTIONS,
    next_planning_step,
    preferences_section,
    select_instructions,
)
from natureup.core.types import AssistantRole, InitialChatMetadata, Phase, PlanningMetadata, PlanningStep


def test_table_covers_every_role_and_phase():
    assert set(INSTRUCTION_TABLE) == set(product(AssistantRole, Phase))


@pytest.mark.parametrize("role,phase", list(product(AssistantRole, Phase)))
def test_every_pair_builds_an_instruction_set(role, phase):
    metadata = PlanningMetadata() if phase == Phase.excursion_planning else InitialChatMetadata()
    instructions = select_instructions(role, phase, metadata, {})
    assert instructions.action == ROLE_ACTIONS[role]
    assert instructions.system_prompt.strip()
    assert "JSON" in instructions.system_prompt


@pytest.mark.parametrize(
    "metadata,step",
    [
        (PlanningMetadata(), PlanningStep.ask_duration),
        (PlanningMetadata(location_preference="suggestions"), PlanningStep.ask_duration),
        (PlanningMetadata(duration_minutes=60), PlanningStep.ask_location),
        (PlanningMetadata(duration_minutes=60, asked_confirmation=True), PlanningStep.ask_location),
        (PlanningMetadata(duration_minutes=60, location_preference="suggestions"), PlanningStep.ask_confirmation),
        (
            PlanningMetadata(duration_minutes=60, location_preference="suggestions", asked_confirmation=True),
            PlanningStep.await_go_ahead,
        ),
    ],
)
def test_planning_steps_follow_strict_order(metadata, step):
    assert next_planning_step(metadata) == step
    instructions = select_instructions(AssistantRole.excursion_creator, Phase.excursion_planning, metadata, {})
    assert instructions.planning_step == step


def test_collected_slots_are_listed_in_planning_prompt():
    metadata = PlanningMetadata(duration_minutes=60, location_preference="suggestions")
    prompt = select_instructions(AssistantRole.excursion_creator, Phase.excursion_planning, metadata, {}).system_prompt
    assert "Duration: 60 minutes" in prompt
    assert "Location preference: suggestions" in prompt
    assert "Can I show you some options?" in prompt


def test_followup_prompt_differs_from_initial_coach_prompt():
    initial = select_instructions(AssistantRole.health_coach, Phase.initial_chat, InitialChatMetadata(), {})
    followup = select_instructions(AssistantRole.health_coach, Phase.post_excursion_followup, InitialChatMetadata(), {})
    assert initial.system_prompt != followup.system_prompt
    assert initial.planning_step is None


def test_preferences_section():
    assert preferences_section({}) == ""
    section = preferences_section({"activity_preferences": ["Walking", "Meditation"], "fitness_level": "low"})
    assert "Activity preferences: Walking, Meditation" in section
    assert "Fitness level: low" in section
