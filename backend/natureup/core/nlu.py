from __future__ import annotations

import math
import re
from typing import Callable, Dict, List, Optional, Pattern, Tuple

from .types import LocationPreference, ParsedIntent, ProximityBias

# Numbers must not continue a longer number ("1.5 hours" is not "5 hours").
_NUM_START = r"(?<![\d.])"

DURATION_PATTERNS: List[Tuple[Pattern[str], Callable[[re.Match], int]]] = [
    (
        re.compile(_NUM_START + r"(\d+)\s*(hour|hours|hr|hrs)\b", re.I),
        lambda m: int(m.group(1)) * 60,
    ),
    (
        re.compile(_NUM_START + r"(\d+)\s*(minute|minutes|min|mins)\b", re.I),
        lambda m: int(m.group(1)),
    ),
    (
        re.compile(_NUM_START + r"(\d+(?:\.\d+)?)\s*(hour|hours|hr|hrs)\b", re.I),
        lambda m: _round_half_up(float(m.group(1)) * 60),
    ),
]

WITHIN_DISTANCE_RE = re.compile(
    r"\bwithin\s*(\d+(?:\.\d+)?)\s*(km|kilometers|kilometres|mi|miles)\b", re.I
)
KM_PER_MILE = 1.60934

PROXIMITY_PATTERNS: List[Tuple[Pattern[str], ProximityBias]] = [
    (re.compile(r"\bnear here\b", re.I), "near_here"),
    (re.compile(r"\bnearby\b", re.I), "nearby"),
    (re.compile(r"\bclose by\b", re.I), "nearby"),
]

ACTIVITY_KEYWORDS: Dict[str, List[str]] = {
    "Hiking": ["hike", "hiking", "trail", "trek"],
    "Walking": ["walk", "walking", "stroll"],
    "Meditation": ["meditate", "meditation", "breathing", "mindfulness"],
    "Biking": ["bike", "biking", "cycle", "cycling"],
    "Running": ["run", "running", "jog"],
}

# Checked in this order; the first tier with a hit wins.
DIFFICULTY_KEYWORDS: Dict[str, List[str]] = {
    "easy": ["easy", "gentle", "simple", "relaxing", "calm"],
    "medium": ["moderate", "medium", "regular"],
    "hard": ["challenging", "hard", "difficult", "intense", "strenuous"],
}

THERAPEUTIC_GOAL_KEYWORDS: Dict[str, List[str]] = {
    "reduce stress": ["stress", "stressed", "tense", "tension"],
    "improve mood": ["anxious", "anxiety", "sad", "mood", "depression"],
    "boost energy": ["tired", "fatigue", "energy", "energize"],
    "improve sleep": ["sleep", "insomnia", "rest"],
    "increase focus": ["focus", "concentration", "distracted"],
    "relax": ["relax", "relaxation", "unwind", "decompress"],
}

WEIGHT_DURATION = 0.5
WEIGHT_PROXIMITY = 0.25
WEIGHT_ACTIVITY = 0.2
WEIGHT_DIFFICULTY = 0.1
WEIGHT_GOAL = 0.15


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _word_pattern(words: List[str]) -> Pattern[str]:
    return re.compile(r"\b(?:" + "|".join(re.escape(w) for w in words) + r")\b", re.I)


_ACTIVITY_RES = {k: _word_pattern(v) for k, v in ACTIVITY_KEYWORDS.items()}
_DIFFICULTY_RES = {k: _word_pattern(v) for k, v in DIFFICULTY_KEYWORDS.items()}
_GOAL_RES = {k: _word_pattern(v) for k, v in THERAPEUTIC_GOAL_KEYWORDS.items()}


def _extract_duration(text: str) -> Tuple[Optional[int], Optional[str]]:
    for pattern, to_minutes in DURATION_PATTERNS:
        m = pattern.search(text)
        if m:
            return to_minutes(m), m.group(0)
    return None, None


def parse_intent(raw_text: str) -> ParsedIntent:
    """Pull duration, proximity, activities, difficulty and goals out of one utterance.

    Each category that matches adds its weight to ``confidence``; the total is
    clamped to 1.0 rather than normalized.
    """
    text = (raw_text or "").strip()
    matches: Dict[str, str] = {}
    confidence = 0.0

    duration_minutes, duration_match = _extract_duration(text)
    if duration_minutes is not None and duration_match is not None:
        matches["duration"] = duration_match
        confidence += WEIGHT_DURATION

    proximity_bias: ProximityBias = "none"
    proximity_distance_km: Optional[float] = None
    within = WITHIN_DISTANCE_RE.search(text)
    if within:
        value = float(within.group(1))
        unit = within.group(2).lower()
        proximity_distance_km = value * KM_PER_MILE if unit.startswith("mi") else value
        proximity_bias = "within_distance"
        matches["proximity"] = within.group(0)
        confidence += WEIGHT_PROXIMITY
    else:
        for pattern, bias in PROXIMITY_PATTERNS:
            m = pattern.search(text)
            if m:
                proximity_bias = bias
                matches["proximity"] = m.group(0)
                confidence += WEIGHT_PROXIMITY
                break

    activities = [name for name, pattern in _ACTIVITY_RES.items() if pattern.search(text)]
    if activities:
        matches["activities"] = ", ".join(activities)
        confidence += WEIGHT_ACTIVITY

    difficulty = None
    for level, pattern in _DIFFICULTY_RES.items():
        if pattern.search(text):
            difficulty = level
            matches["difficulty"] = level
            confidence += WEIGHT_DIFFICULTY
            break

    goals = [goal for goal, pattern in _GOAL_RES.items() if pattern.search(text)]
    if goals:
        matches["therapeutic_goals"] = ", ".join(goals)
        confidence += WEIGHT_GOAL

    return ParsedIntent(
        raw_text=text,
        duration_minutes=duration_minutes,
        proximity_bias=proximity_bias,
        proximity_distance_km=proximity_distance_km,
        activities=activities,
        difficulty=difficulty,
        therapeutic_goals=goals,
        confidence=max(0.0, min(1.0, confidence)),
        matches=matches,
    )


# ---------------------------------------------------------------------------
# Conversation detectors used while a plan is being collected
# ---------------------------------------------------------------------------

EXCURSION_KEYWORDS = [
    "hike",
    "walk",
    "excursion",
    "trail",
    "nature spot",
    "outdoor",
    "explore",
    "get outside",
    "go outside",
    "nature walk",
    "nature experience",
]

# Phrase fallbacks for planning answers; "half an hour" must come before "an hour".
DURATION_WORDS = {"half an hour": 30, "an hour": 60, "quick": 15, "short": 20, "long": 90}

SUGGESTION_PHRASES = [
    "surprise me",
    "you choose",
    "you pick",
    "give me options",
    "show me options",
    "suggest",
    "suggestions",
    "recommend",
    "anywhere",
    "don't care",
    "whatever",
]

SPECIFIC_PLACE_RE = re.compile(
    r"\b(i know a place|specific place|trail called|park called|near)\b\s+\S", re.I
)

AFFIRMATIVES = [
    "yes",
    "yeah",
    "sure",
    "ok",
    "okay",
    "please",
    "go ahead",
    "show me",
    "let me see",
    "sounds good",
    "perfect",
    "great",
    "yep",
    "yup",
    "absolutely",
    "definitely",
    "of course",
]


def detect_excursion_intent(text: str) -> bool:
    t = text.lower()
    return any(re.search(r"\b" + re.escape(k), t) for k in EXCURSION_KEYWORDS)


def detect_duration(text: str) -> Optional[int]:
    minutes, _ = _extract_duration(text)
    if minutes is not None:
        return minutes
    for word, fallback in DURATION_WORDS.items():
        if re.search(rf"\b{word}\b", text, re.I):
            return fallback
    return None


def detect_location_preference(text: str) -> LocationPreference:
    t = text.lower()
    if any(re.search(r"\b" + re.escape(p) + r"\b", t) for p in SUGGESTION_PHRASES):
        return LocationPreference(wants_suggestions=True)
    if SPECIFIC_PLACE_RE.search(text):
        return LocationPreference(specific_location=text.strip())
    return LocationPreference()


def detect_confirmation(text: str) -> bool:
    t = re.sub(r"[!.,]+$", "", text.lower().strip())
    return any(t == a or t.startswith(a + " ") or t.startswith(a + ",") for a in AFFIRMATIVES)
