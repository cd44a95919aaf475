import pytest

from natureup.core.nlu import (
    detect_confirmation,
    detect_duration,
    detect_excursion_intent,
    detect_location_preference,
    parse_intent,
)


@pytest.mark.parametrize(
    "text,minutes",
    [
        ("1 hour", 60),
        ("90 min", 90),
        ("1.5 hours", 90),
        ("2 hrs", 120),
        ("I have 45 minutes", 45),
        ("maybe 2.25 hours", 135),
        ("0.75 hr walk", 45),
    ],
)
def test_duration_table(text, minutes):
    assert parse_intent(text).duration_minutes == minutes


def test_no_duration_phrase_leaves_duration_unset():
    intent = parse_intent("somewhere green please")
    assert intent.duration_minutes is None
    assert "duration" not in intent.matches


def test_fractional_hours_are_not_truncated():
    intent = parse_intent("I have 1.5 hours free")
    assert intent.duration_minutes == 90
    assert intent.matches["duration"] == "1.5 hours"


def test_within_distance_takes_precedence_over_qualitative_phrase():
    intent = parse_intent("within 3 miles hiking nearby")
    assert intent.proximity_bias == "within_distance"
    assert intent.proximity_distance_km == pytest.approx(4.828, abs=1e-3)
    assert "Hiking" in intent.activities


def test_within_km_is_used_as_is():
    intent = parse_intent("a walk within 2 km")
    assert intent.proximity_distance_km == pytest.approx(2.0)


def test_qualitative_proximity():
    assert parse_intent("somewhere near here").proximity_bias == "near_here"
    assert parse_intent("a park close by").proximity_bias == "nearby"
    assert parse_intent("a park nearby").proximity_distance_km is None


@pytest.mark.parametrize("text", ["the brunch was great", "a truncated list", "prune the roses", "scrunch"])
def test_running_keyword_needs_word_boundary(text):
    assert "Running" not in parse_intent(text).activities


def test_running_matches_whole_words():
    assert parse_intent("a short run").activities == ["Running"]
    assert parse_intent("I like running").activities == ["Running"]


def test_all_activities_collected_in_table_order():
    intent = parse_intent("walk then meditate and maybe hike")
    assert intent.activities == ["Hiking", "Walking", "Meditation"]


def test_difficulty_first_tier_wins():
    assert parse_intent("an easy but challenging route").difficulty == "easy"
    assert parse_intent("something moderate or hard").difficulty == "medium"
    assert parse_intent("an intense climb").difficulty == "hard"


def test_therapeutic_goals_accumulate():
    intent = parse_intent("I'm stressed and tired and can't sleep")
    assert intent.therapeutic_goals == ["reduce stress", "boost energy", "improve sleep"]


def test_confidence_is_clamped_when_everything_matches():
    intent = parse_intent("an easy 1 hour hike nearby to reduce stress")
    assert intent.confidence == 1.0


def test_confidence_sums_weights():
    assert parse_intent("1 hour").confidence == pytest.approx(0.5)
    assert parse_intent("a walk nearby").confidence == pytest.approx(0.45)


@pytest.mark.parametrize("text", ["", "   ", "\n\t"])
def test_empty_input(text):
    intent = parse_intent(text)
    assert intent.duration_minutes is None
    assert intent.proximity_bias == "none"
    assert intent.activities == []
    assert intent.therapeutic_goals == []
    assert intent.difficulty is None
    assert intent.confidence == 0
    assert intent.matches == {}


def test_parse_is_deterministic():
    text = "an easy 1.5 hours hike within 3 miles to relax"
    assert parse_intent(text) == parse_intent(text)


def test_serializes_with_camel_case_aliases():
    data = parse_intent("1 hour walk").model_dump(by_alias=True)
    assert data["durationMinutes"] == 60
    assert data["rawText"] == "1 hour walk"
    assert data["proximityBias"] == "none"


def test_detect_excursion_intent():
    assert detect_excursion_intent("I want to plan a hike")
    assert detect_excursion_intent("let's go outside for a bit")
    assert not detect_excursion_intent("I feel a bit down today")


def test_detect_duration_falls_back_to_words():
    assert detect_duration("just a quick one") == 15
    assert detect_duration("something short") == 20
    assert detect_duration("a long afternoon") == 90
    assert detect_duration("1 hour") == 60
    assert detect_duration("about an hour") == 60
    assert detect_duration("half an hour or so") == 30
    assert detect_duration("no idea") is None


def test_detect_location_preference():
    assert detect_location_preference("surprise me").as_metadata_value() == "suggestions"
    assert detect_location_preference("you choose").wants_suggestions
    specific = detect_location_preference("I know a place by the river")
    assert specific.specific_location == "I know a place by the river"
    assert detect_location_preference("I want to plan a hike").as_metadata_value() is None
    assert detect_location_preference("starting at noon").as_metadata_value() is None
    assert detect_location_preference("somewhere near the lake").specific_location == "somewhere near the lake"


@pytest.mark.parametrize("text", ["yes", "Yes please", "sure!", "ok", "go ahead", "show me"])
def test_detect_confirmation_affirmatives(text):
    assert detect_confirmation(text)


@pytest.mark.parametrize("text", ["maybe", "I guess", "not yet", "no thanks", "yesterday was nice"])
def test_detect_confirmation_rejects_ambiguous(text):
    assert not detect_confirmation(text)
