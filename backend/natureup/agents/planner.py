from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from natureup.core.config import WALKING_SPEED_KMH
from natureup.core.errors import NoCandidatesError
from natureup.core.geo import haversine_m, interpolate_waypoints
from natureup.core.logger import SessionLogger
from natureup.core.types import (
    Candidate,
    Coordinates,
    Destination,
    ExcursionPlan,
    PlanDifficulty,
    PlanPreferences,
    PlanRequest,
)

WEIGHT_RATING = 0.35
WEIGHT_DIFFICULTY = 0.35
WEIGHT_PROXIMITY = 0.2
WEIGHT_CATEGORY = 0.1

DIFFICULTY_RANK: Dict[PlanDifficulty, int] = {"easy": 0, "moderate": 1, "challenging": 2}
LEVEL_RANK = {"low": 0, "medium": 1, "high": 2}
ENERGY_TO_DIFFICULTY: Dict[str, PlanDifficulty] = {"low": "easy", "medium": "moderate", "high": "challenging"}

_DIFFICULTY_ALIASES: Dict[str, PlanDifficulty] = {
    "easy": "easy",
    "gentle": "easy",
    "medium": "moderate",
    "moderate": "moderate",
    "hard": "challenging",
    "difficult": "challenging",
    "strenuous": "challenging",
    "challenging": "challenging",
}

# Place categories that suit each activity label from the intent parser.
ACTIVITY_PLACE_TYPES: Dict[str, set[str]] = {
    "Hiking": {"trail", "nature_reserve", "peak", "park"},
    "Walking": {"park", "garden", "trail", "beach", "water"},
    "Meditation": {"garden", "park", "water", "beach", "nature_reserve"},
    "Biking": {"trail", "park"},
    "Running": {"park", "trail", "track"},
}

UNRATED_STARS = 3.0


def normalize_difficulty(value: Optional[str]) -> Optional[PlanDifficulty]:
    if not value:
        return None
    return _DIFFICULTY_ALIASES.get(value.strip().lower())


def candidate_distance_m(start: Coordinates, candidate: Candidate) -> float:
    if candidate.distance_m is not None:
        return candidate.distance_m
    return haversine_m(start.lat, start.lng, candidate.lat, candidate.lng)


def plan_difficulty(candidate: Candidate, preferences: PlanPreferences) -> PlanDifficulty:
    return normalize_difficulty(candidate.difficulty) or ENERGY_TO_DIFFICULTY[preferences.energy_level]


def score_candidate(candidate: Candidate, request: PlanRequest) -> float:
    prefs = request.preferences

    rating = (candidate.star_rating if candidate.star_rating is not None else UNRATED_STARS) / 5.0
    rating = max(0.0, min(1.0, rating))

    known = normalize_difficulty(candidate.difficulty)
    if known is None:
        alignment = 0.5
    else:
        target = (LEVEL_RANK[prefs.risk_tolerance] + LEVEL_RANK[prefs.energy_level]) / 2
        alignment = 1.0 - abs(DIFFICULTY_RANK[known] - target) / 2

    # Out and back within the time available.
    walkable_m = WALKING_SPEED_KMH * 1000 * (request.duration_minutes / 60) / 2
    proximity = max(0.0, 1.0 - candidate_distance_m(request.start, candidate) / walkable_m)

    if prefs.activities:
        fits = any(candidate.type in ACTIVITY_PLACE_TYPES.get(a, set()) for a in prefs.activities)
        category = 1.0 if fits else 0.0
    else:
        category = 0.5

    return (
        WEIGHT_RATING * rating
        + WEIGHT_DIFFICULTY * alignment
        + WEIGHT_PROXIMITY * proximity
        + WEIGHT_CATEGORY * category
    )


def select_destination(request: PlanRequest) -> Tuple[Candidate, float]:
    """Highest scoring candidate; ties keep the earlier one."""
    if not request.candidates:
        raise NoCandidatesError("No nearby places to build an excursion around")
    best = request.candidates[0]
    best_score = score_candidate(best, request)
    for candidate in request.candidates[1:]:
        score = score_candidate(candidate, request)
        if score > best_score:
            best, best_score = candidate, score
    return best, best_score


def build_steps(destination: Candidate, request: PlanRequest, one_way_km: float) -> List[str]:
    prefs = request.preferences
    half = max(1, request.duration_minutes // 2)
    steps = [f"Head out toward {destination.name}, about {one_way_km:.1f} km from your starting point."]
    if prefs.weather is not None:
        steps.append(
            f"Dress for {prefs.weather.description.lower()} at around {prefs.weather.temperature:.0f}°."
        )
    if "Meditation" in prefs.activities:
        steps.append(f"Find a quiet spot at {destination.name} and take five minutes of slow breathing.")
    else:
        steps.append("Keep an easy, steady pace and notice the sounds around you.")
    for goal in prefs.therapeutic_goals:
        steps.append(f"Pause for a moment and check in with your goal to {goal}.")
    steps.append(f"Turn back after about {half} minutes and return the way you came.")
    return steps


class PlanGenerator:
    def __init__(self, logger: Optional[SessionLogger] = None) -> None:
        self.logger = logger

    def run(self, request: PlanRequest) -> ExcursionPlan:
        destination, score = select_destination(request)
        one_way_m = haversine_m(request.start.lat, request.start.lng, destination.lat, destination.lng)
        difficulty = plan_difficulty(destination, request.preferences)
        activity = request.preferences.activities[0].lower() if request.preferences.activities else "nature"

        target = Destination(name=destination.name, lat=destination.lat, lng=destination.lng)
        plan = ExcursionPlan(
            title=f"{request.duration_minutes}-minute {activity} excursion to {destination.name}",
            description=(
                f"A {difficulty} out-and-back outing to {destination.name}"
                f" sized for {request.duration_minutes} minutes."
            ),
            steps=build_steps(destination, request, one_way_m / 1000),
            destination=target,
            start_location=request.start,
            duration_minutes=request.duration_minutes,
            distance_km=round(2 * one_way_m / 1000, 2),
            difficulty=difficulty,
            waypoints=interpolate_waypoints(request.start, Coordinates(lat=target.lat, lng=target.lng)),
        )
        if self.logger:
            self.logger.step(
                "planner",
                {"candidates": len(request.candidates), "duration_minutes": request.duration_minutes},
                {"destination": destination.name, "score": round(score, 3)},
            )
        return plan

    generate_plan = run
