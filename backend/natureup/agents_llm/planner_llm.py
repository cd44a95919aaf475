from __future__ import annotations

import json
from typing import Optional

from langchain_aws import ChatBedrock
from pydantic import ValidationError

from natureup.agents.planner import PlanGenerator, candidate_distance_m, plan_difficulty
from natureup.agents.reviewer import PlanReviewer
from natureup.core.errors import MalformedReplyError, ProviderError
from natureup.core.geo import haversine_m, interpolate_waypoints
from natureup.core.logger import SessionLogger
from natureup.core.types import Coordinates, Destination, ExcursionPlan, PlanRequest
from natureup.llm.bedrock import call_llm_json, get_bedrock_client


PLANNER_PROMPT = (
    "You design short therapeutic nature excursions.\n"
    "Pick exactly ONE destination from the candidate list and copy its name, lat and lng unchanged.\n"
    "Return compact JSON: {title: string, description: string, steps: string[], "
    "destination: {name, lat, lng}, difficulty: easy|moderate|challenging}.\n"
    "Steps are short, practical and in order. Include at least one step.\n"
)


class LLMPlanGenerator:
    """Asks the model for the itinerary and falls back to the rule-based plan when
    the call fails or the reply breaks the contract (unknown destination, no steps, bad JSON)."""

    def __init__(self, logger: Optional[SessionLogger] = None, llm: Optional[ChatBedrock] = None) -> None:
        self.logger = logger
        self.llm = llm or get_bedrock_client()
        self.fallback = PlanGenerator(logger)
        self.reviewer = PlanReviewer(logger)

    def _prompt(self, request: PlanRequest) -> str:
        candidates = [
            {
                "name": c.name,
                "lat": c.lat,
                "lng": c.lng,
                "type": c.type,
                "difficulty": c.difficulty,
                "star_rating": c.star_rating,
                "distance_m": round(candidate_distance_m(request.start, c)),
            }
            for c in request.candidates
        ]
        return (
            PLANNER_PROMPT
            + f"\nDuration: {request.duration_minutes} minutes"
            + f"\nPreferences: {request.preferences.model_dump_json()}"
            + f"\nCandidates: {json.dumps(candidates)}\nJSON:"
        )

    def run(self, request: PlanRequest) -> ExcursionPlan:
        # Empty candidate lists fail the same way as the rule-based generator.
        baseline = self.fallback.run(request)
        try:
            raw = call_llm_json([{"role": "user", "content": self._prompt(request)}], self.llm)
            destination = Destination.model_validate(raw.get("destination") or {})
            chosen = next(
                (
                    c
                    for c in request.candidates
                    if (c.name, c.lat, c.lng) == (destination.name, destination.lat, destination.lng)
                ),
                None,
            )
            one_way_m = haversine_m(request.start.lat, request.start.lng, destination.lat, destination.lng)
            plan = ExcursionPlan(
                title=str(raw.get("title") or baseline.title),
                description=str(raw.get("description") or baseline.description),
                steps=[str(s) for s in raw.get("steps") or []],
                destination=destination,
                start_location=request.start,
                duration_minutes=request.duration_minutes,
                distance_km=round(2 * one_way_m / 1000, 2),
                difficulty=raw.get("difficulty")
                or (plan_difficulty(chosen, request.preferences) if chosen else baseline.difficulty),
                waypoints=interpolate_waypoints(request.start, Coordinates(lat=destination.lat, lng=destination.lng)),
            )
        except (MalformedReplyError, ProviderError, ValidationError) as ex:
            if self.logger:
                self.logger.info("LLM plan rejected, using rule-based plan", reason=str(ex))
            return baseline

        review = self.reviewer.review_plan(plan, request.candidates)
        if not review.approved:
            if self.logger:
                self.logger.info("LLM plan failed review, using rule-based plan", issues=review.issues)
            return baseline

        if self.logger:
            self.logger.step("planner_llm", {"candidates": len(request.candidates)}, {"destination": destination.name})
        return plan

    generate_plan = run
