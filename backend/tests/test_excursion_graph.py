from datetime import timedelta

import pytest

from natureup.core.config import USE_LLM
from natureup.core.errors import ErrorCode, ProviderError
from natureup.core.location import preload
from natureup.core.types import (
    AssistantRole,
    Candidate,
    Coordinates,
    CreationMetadata,
    ExcursionRequest,
    Phase,
    PlanPreferences,
    UserProfile,
    WeatherSnapshot,
    utcnow,
)
from natureup.graph import excursion_graph
from natureup.graph.excursion_graph import ExcursionCreator

pytestmark = pytest.mark.skipif(USE_LLM, reason="Graph tests use the rule-based planner")

HERE = Coordinates(lat=47.6205, lng=-122.3493)
SPOTS = [
    Candidate(name="Kerry Park", lat=47.6295, lng=-122.3599, type="viewpoint", distance_m=1300),
    Candidate(name="Myrtle Edwards Park", lat=47.6190, lng=-122.3620, type="park", distance_m=1000),
]


@pytest.fixture
def collaborators(monkeypatch):
    calls = {"weather": 0, "places": 0}

    def _weather(lat, lng):
        calls["weather"] += 1
        return WeatherSnapshot(temperature=55, description="Overcast")

    def _places(lat, lng):
        calls["places"] += 1
        return list(SPOTS)

    monkeypatch.setattr(excursion_graph, "get_current_weather", _weather)
    monkeypatch.setattr(excursion_graph, "search_nearby", _places)
    return calls


@pytest.fixture
def creator(orchestrator):
    return ExcursionCreator(orchestrator)


def _planning_session(orchestrator, user_id="u1", duration=None):
    session = orchestrator.get_or_create_session(user_id, AssistantRole.health_coach)
    orchestrator.change_phase(session.id, Phase.excursion_planning)
    if duration:
        orchestrator.update_metadata(session.id, {"duration_minutes": duration})
    return session.id


def test_creates_excursion_and_moves_session_to_creation(creator, orchestrator, store, collaborators):
    sid = _planning_session(orchestrator, duration=45)

    outcome = creator.create(ExcursionRequest(session_id=sid, location=HERE))

    assert outcome.ok
    assert outcome.plan.duration_minutes == 45
    assert outcome.plan.destination.name in {s.name for s in SPOTS}
    assert outcome.weather.description == "Overcast"
    record = store.get_excursion(outcome.excursion_id)
    assert record.session_id == sid
    assert record.user_id == "u1"
    assert len(record.route_data.waypoints) == 9
    session = store.get_session(sid)
    assert session.phase == Phase.excursion_creation
    assert session.linked_excursion_id == outcome.excursion_id
    assert session.metadata == CreationMetadata(excursion_id=outcome.excursion_id)
    assert collaborators == {"weather": 1, "places": 1}


def test_duration_defaults_to_thirty_minutes(creator, collaborators):
    outcome = creator.create(ExcursionRequest(location=HERE))
    assert outcome.plan.duration_minutes == 30


def test_request_duration_wins(creator, orchestrator, collaborators):
    sid = _planning_session(orchestrator, duration=45)
    outcome = creator.create(ExcursionRequest(session_id=sid, location=HERE, duration_minutes=20))
    assert outcome.plan.duration_minutes == 20


def test_no_candidates_is_reported_distinctly(creator, orchestrator, store, monkeypatch, collaborators):
    monkeypatch.setattr(excursion_graph, "search_nearby", lambda lat, lng: [])
    sid = _planning_session(orchestrator)

    outcome = creator.create(ExcursionRequest(session_id=sid, location=HERE))

    assert not outcome.ok
    assert outcome.error.code == ErrorCode.no_candidates
    assert store.get_session(sid).phase == Phase.excursion_planning


def test_place_search_failure_is_network_error(creator, monkeypatch, collaborators):
    def _boom(lat, lng):
        raise ProviderError("Place search failed: timeout")

    monkeypatch.setattr(excursion_graph, "search_nearby", _boom)
    outcome = creator.create(ExcursionRequest(location=HERE))
    assert not outcome.ok
    assert outcome.error.code == ErrorCode.network


def test_weather_failure_does_not_block(creator, monkeypatch, collaborators):
    monkeypatch.setattr(excursion_graph, "get_current_weather", lambda lat, lng: None)
    outcome = creator.create(ExcursionRequest(location=HERE))
    assert outcome.ok
    assert outcome.weather is None


def test_fresh_preloaded_spots_skip_the_search(creator, collaborators):
    preloaded = preload(HERE.lat, HERE.lng, SPOTS)
    outcome = creator.create(ExcursionRequest(preloaded=preloaded))
    assert outcome.ok
    assert outcome.plan.start_location == HERE
    assert collaborators["places"] == 0


def test_stale_preload_without_location_fails(creator, collaborators):
    stale = preload(HERE.lat, HERE.lng, SPOTS, now=utcnow() - timedelta(minutes=30))
    outcome = creator.create(ExcursionRequest(preloaded=stale))
    assert not outcome.ok
    assert outcome.error.code == ErrorCode.no_candidates
    assert collaborators == {"weather": 0, "places": 0}


def test_profile_and_messages_shape_preferences(creator, orchestrator, store, collaborators):
    store.save_profile(UserProfile(user_id="u9", activity_preferences=["Meditation"], therapy_preferences=["relax"], risk_tolerance="low"))
    sid = _planning_session(orchestrator, user_id="u9")
    store.append_message(sid, "user", "somewhere quiet")
    store.append_message(sid, "assistant", "Sure")

    prefs = creator.resolve_preferences(ExcursionRequest(session_id=sid, location=HERE))

    assert prefs.activities == ["Meditation"]
    assert prefs.therapeutic_goals == ["relax"]
    assert prefs.risk_tolerance == "low"
    assert prefs.additional_notes == "somewhere quiet"


def test_request_preferences_win_over_profile(creator, orchestrator, store):
    store.save_profile(UserProfile(user_id="u8", activity_preferences=["Meditation"], risk_tolerance="low"))
    request = ExcursionRequest(
        user_id="u8",
        location=HERE,
        preferences=PlanPreferences(activities=["Running"], risk_tolerance="high", additional_notes="fast"),
    )
    prefs = creator.resolve_preferences(request)
    assert prefs.activities == ["Running"]
    assert prefs.risk_tolerance == "high"
    assert prefs.additional_notes == "fast"


def test_session_that_cannot_enter_creation_is_left_alone(creator, orchestrator, store, collaborators):
    session = orchestrator.get_or_create_session("u7", AssistantRole.health_coach)
    outcome = creator.create(ExcursionRequest(session_id=session.id, location=HERE))
    assert outcome.ok
    assert store.get_session(session.id).phase == Phase.initial_chat
    assert store.get_excursion(outcome.excursion_id) is not None
