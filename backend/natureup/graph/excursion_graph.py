from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional, TypedDict

from langgraph.graph import END, START, StateGraph

from natureup.agents.planner import PlanGenerator
from natureup.agents_llm.planner_llm import LLMPlanGenerator
from natureup.core.config import DEFAULT_EXCURSION_MINUTES, USE_LLM
from natureup.core.errors import ErrorInfo, NatureUpError, NoCandidatesError
from natureup.core.location import fresh_or_none
from natureup.core.logger import SessionLogger
from natureup.core.phases import can_transition
from natureup.core.pipeline import DialogueOrchestrator
from natureup.core.types import (
    Candidate,
    Coordinates,
    ExcursionOutcome,
    ExcursionPlan,
    ExcursionRecord,
    ExcursionRequest,
    Phase,
    PlanningMetadata,
    PlanPreferences,
    PlanRequest,
    RouteData,
    WeatherSnapshot,
)
from natureup.tools.places import search_nearby
from natureup.tools.weather import get_current_weather

LEVELS = ("low", "medium", "high")


class ExcursionState(TypedDict, total=False):
    request: ExcursionRequest
    start: Coordinates
    preloaded_spots: List[Candidate]
    weather: Optional[WeatherSnapshot]
    candidates: List[Candidate]
    plan: ExcursionPlan
    excursion_id: str
    error: ErrorInfo


class ExcursionCreator:
    """Location, then weather and places side by side, then plan, then persist."""

    def __init__(self, orchestrator: DialogueOrchestrator) -> None:
        self.orchestrator = orchestrator
        self.store = orchestrator.store
        self.graph = build_excursion_graph(self).compile()

    def _logger(self, request: ExcursionRequest) -> Optional[SessionLogger]:
        if request.session_id is None:
            return None
        return self.orchestrator.get_logger(request.session_id)

    def _get_planner(self, logger: Optional[SessionLogger]):
        if USE_LLM:
            return LLMPlanGenerator(logger)
        return PlanGenerator(logger)

    # -- inputs -------------------------------------------------------------

    def resolve_duration(self, request: ExcursionRequest) -> int:
        if request.duration_minutes:
            return request.duration_minutes
        session = self.store.find_session(request.session_id) if request.session_id else None
        if session is not None and isinstance(session.metadata, PlanningMetadata):
            if session.metadata.duration_minutes:
                return session.metadata.duration_minutes
        return DEFAULT_EXCURSION_MINUTES

    def resolve_preferences(self, request: ExcursionRequest) -> PlanPreferences:
        prefs = request.preferences.model_copy(deep=True)
        user_id = request.user_id
        if user_id is None and request.session_id:
            session = self.store.find_session(request.session_id)
            user_id = session.user_id if session else None
        profile = self.store.get_profile(user_id) if user_id else None
        if profile is not None:
            if not prefs.activities:
                prefs.activities = list(profile.activity_preferences)
            if not prefs.therapeutic_goals:
                prefs.therapeutic_goals = list(profile.therapy_preferences)
            if profile.risk_tolerance in LEVELS and "risk_tolerance" not in request.preferences.model_fields_set:
                prefs.risk_tolerance = profile.risk_tolerance
        if not prefs.additional_notes and request.session_id and self.store.find_session(request.session_id):
            notes = [m.content for m in self.store.messages(request.session_id) if m.role == "user"]
            prefs.additional_notes = " ".join(notes)
        return prefs

    # -- nodes --------------------------------------------------------------

    def locate(self, state: ExcursionState) -> Dict[str, Any]:
        request = state["request"]
        preloaded = fresh_or_none(request.preloaded)
        if request.location is not None:
            spots = preloaded.nearby_spots if preloaded else []
            return {"start": request.location, "preloaded_spots": spots}
        if preloaded is not None:
            return {"start": Coordinates(lat=preloaded.lat, lng=preloaded.lng), "preloaded_spots": preloaded.nearby_spots}
        error = NoCandidatesError("No location available; share your location or name a place")
        return {"error": error.to_info()}

    def weather(self, state: ExcursionState) -> Dict[str, Any]:
        start = state["start"]
        return {"weather": get_current_weather(start.lat, start.lng)}

    def places(self, state: ExcursionState) -> Dict[str, Any]:
        if state.get("preloaded_spots"):
            return {"candidates": list(state["preloaded_spots"])}
        start = state["start"]
        try:
            return {"candidates": search_nearby(start.lat, start.lng)}
        except NatureUpError as ex:
            return {"error": ex.to_info()}

    def plan(self, state: ExcursionState) -> Dict[str, Any]:
        if "error" in state:
            return {}
        request = state["request"]
        preferences = self.resolve_preferences(request)
        preferences.weather = state.get("weather")
        plan_request = PlanRequest(
            start=state["start"],
            duration_minutes=self.resolve_duration(request),
            preferences=preferences,
            candidates=state.get("candidates") or [],
        )
        try:
            return {"plan": self._get_planner(self._logger(request)).run(plan_request)}
        except NatureUpError as ex:
            return {"error": ex.to_info()}

    def persist(self, state: ExcursionState) -> Dict[str, Any]:
        request = state["request"]
        plan = state["plan"]
        session = self.store.find_session(request.session_id) if request.session_id else None
        record = ExcursionRecord(
            id=str(uuid.uuid4()),
            user_id=request.user_id or (session.user_id if session else None),
            session_id=request.session_id,
            title=plan.title,
            description=plan.description,
            route_data=RouteData(
                steps=plan.steps,
                start_location=plan.start_location,
                destination=plan.destination,
                waypoints=plan.waypoints,
            ),
            duration_minutes=plan.duration_minutes,
            distance_km=plan.distance_km,
            difficulty=plan.difficulty,
        )
        self.store.save_excursion(record)
        if session is not None and can_transition(session.phase, Phase.excursion_creation):
            self.orchestrator.change_phase(session.id, Phase.excursion_creation, excursion_id=record.id)
        return {"excursion_id": record.id}

    # -- entry point --------------------------------------------------------

    def create(self, request: ExcursionRequest) -> ExcursionOutcome:
        final: ExcursionState = self.graph.invoke({"request": request})
        logger = self._logger(request)
        if "error" in final:
            if logger:
                logger.error(final["error"].code.value, final["error"].message, step="excursion")
            return ExcursionOutcome(ok=False, weather=final.get("weather"), error=final["error"])
        if logger:
            logger.info("excursion created", excursion_id=final["excursion_id"], title=final["plan"].title)
        return ExcursionOutcome(
            ok=True,
            excursion_id=final["excursion_id"],
            plan=final["plan"],
            weather=final.get("weather"),
        )


def _after_locate(state: ExcursionState) -> List[str] | str:
    if "error" in state:
        return END
    return ["weather", "places"]


def _after_plan(state: ExcursionState) -> str:
    return END if "error" in state else "persist"


def build_excursion_graph(creator: ExcursionCreator) -> StateGraph:
    g = StateGraph(ExcursionState)

    g.add_node("locate", creator.locate)
    g.add_node("weather", creator.weather)
    g.add_node("places", creator.places)
    g.add_node("plan", creator.plan)
    g.add_node("persist", creator.persist)

    g.add_edge(START, "locate")
    g.add_conditional_edges("locate", _after_locate, ["weather", "places", END])
    # plan runs once both lookups have finished.
    g.add_edge(["weather", "places"], "plan")
    g.add_conditional_edges("plan", _after_plan, ["persist", END])
    g.add_edge("persist", END)
    return g
