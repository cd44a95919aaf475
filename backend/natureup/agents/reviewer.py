from __future__ import annotations

from typing import List, Optional

from natureup.core.geo import WAYPOINT_SEGMENTS
from natureup.core.logger import SessionLogger
from natureup.core.types import Candidate, ExcursionPlan, Review


def destination_is_candidate(plan: ExcursionPlan, candidates: List[Candidate]) -> bool:
    dest = plan.destination
    return any(c.name == dest.name and c.lat == dest.lat and c.lng == dest.lng for c in candidates)


class PlanReviewer:
    """Checks a generated plan against the candidates it was built from."""

    def __init__(self, logger: Optional[SessionLogger] = None) -> None:
        self.logger = logger

    def review_plan(self, plan: ExcursionPlan, candidates: List[Candidate]) -> Review:
        issues: List[str] = []

        if not destination_is_candidate(plan, candidates):
            issues.append(f"Destination {plan.destination.name!r} is not one of the candidates")
        if not plan.steps or any(not s.strip() for s in plan.steps):
            issues.append("Plan has empty steps")
        if plan.duration_minutes < 1:
            issues.append("Duration must be at least one minute")
        if len(plan.waypoints) != WAYPOINT_SEGMENTS + 1:
            issues.append(f"Expected {WAYPOINT_SEGMENTS + 1} waypoints, got {len(plan.waypoints)}")
        elif (
            plan.waypoints[0] != plan.start_location
            or (plan.waypoints[-1].lat, plan.waypoints[-1].lng) != (plan.destination.lat, plan.destination.lng)
        ):
            issues.append("Waypoints do not start at the start location and end at the destination")

        score = round(max(0.0, 1.0 - 0.25 * len(issues)), 2)
        review = Review(approved=not issues, issues=issues, score=score)
        if self.logger:
            self.logger.step("reviewer", {"plan": plan.title}, review.model_dump())
        return review
