"""Encoding of a UserProfile into flat persisted keys, and decoding back.

Every field is decoded on its own: a missing key or a value that fails
validation falls back to that field's default, so one corrupted entry never
prevents the rest of the profile from loading.
"""

from collections.abc import Iterable
from typing import Any

import structlog
from pydantic import StrictBool, StrictStr, TypeAdapter, ValidationError

from edugame_progress.models.progress import (
    ExperienceLevel,
    FavoriteColor,
    UserProfile,
)

logger = structlog.get_logger()

# Persisted key names
USER_NAME = "userName"
USER_AGE = "userAge"
FAVORITE_COLOR = "favoriteColor"
COMPLETED_GAMES = "completedGames"
MINI_GAME_SCORES = "miniGameScores"
MINI_GAME_PERCENTAGES = "miniGamePercentages"
ACHIEVEMENTS = "achievements"
GAME_EXPERIENCE_LEVELS = "gameExperienceLevels"
AUTO_ADJUST_EXPERIENCE_LEVEL = "autoAdjustExperienceLevel"
GAME_PERFORMANCE_PERCENTAGES = "gamePerformancePercentages"
HAS_LAUNCHED_BEFORE = "hasLaunchedBefore"

PROFILE_KEYS = frozenset({
    USER_NAME,
    USER_AGE,
    FAVORITE_COLOR,
    COMPLETED_GAMES,
    MINI_GAME_SCORES,
    MINI_GAME_PERCENTAGES,
    ACHIEVEMENTS,
    GAME_EXPERIENCE_LEVELS,
    AUTO_ADJUST_EXPERIENCE_LEVEL,
    GAME_PERFORMANCE_PERCENTAGES,
    HAS_LAUNCHED_BEFORE,
})

_string = TypeAdapter(StrictStr)
_flag = TypeAdapter(StrictBool)
_completed = TypeAdapter(dict[str, bool])
_scores = TypeAdapter(dict[str, int])
_fractions = TypeAdapter(dict[str, float])
_labels = TypeAdapter(list[str])
_levels = TypeAdapter(dict[str, ExperienceLevel])


def decode_field(
    raw: Any,
    adapter: TypeAdapter,
    default: Any,
    *,
    key: str,
    json_text: bool = False,
) -> Any:
    """Decode one persisted value, or substitute its default.

    Args:
        raw: Value read from the store, ``None`` when the key is absent.
        adapter: Validator for the decoded type.
        default: Value returned when the key is absent or undecodable.
        key: Persisted key name, for logging.
        json_text: Whether ``raw`` is a JSON document held in a string.

    Returns:
        The validated value, or ``default``.
    """
    if raw is None:
        return default
    try:
        if json_text:
            if not isinstance(raw, str):
                raise TypeError(f"expected JSON text, got {type(raw).__name__}")
            return adapter.validate_json(raw)
        return adapter.validate_python(raw)
    except (ValidationError, TypeError) as e:
        logger.warning("field_decode_failed", key=key, error=str(e))
        return default


def _dump(adapter: TypeAdapter, value: Any) -> str:
    return adapter.dump_json(value).decode()


def encode_profile(profile: UserProfile) -> tuple[dict[str, Any], list[str]]:
    """Build the key updates and deletions that persist ``profile``.

    An empty achievement list is persisted as an absent key rather than an
    empty array.
    """
    updates: dict[str, Any] = {
        USER_NAME: profile.user_name,
        USER_AGE: profile.user_age,
        FAVORITE_COLOR: profile.favorite_color.value,
        COMPLETED_GAMES: _dump(_completed, profile.completed_games),
        MINI_GAME_SCORES: _dump(_scores, profile.scores),
        MINI_GAME_PERCENTAGES: _dump(_fractions, profile.percentages),
        GAME_EXPERIENCE_LEVELS: _dump(_levels, profile.experience_levels),
        AUTO_ADJUST_EXPERIENCE_LEVEL: profile.auto_adjust_enabled,
        GAME_PERFORMANCE_PERCENTAGES: _dump(_fractions, profile.performance_history),
        HAS_LAUNCHED_BEFORE: profile.first_launch_done,
    }
    deletions: list[str] = []
    if profile.achievements:
        updates[ACHIEVEMENTS] = _dump(_labels, profile.achievements)
    else:
        deletions.append(ACHIEVEMENTS)
    return updates, deletions


def decode_profile(
    values: dict[str, Any],
    *,
    auto_adjust_default: bool = True,
    bootstrap_games: Iterable[str] = (),
) -> UserProfile:
    """Rebuild a profile from persisted keys, field by field."""
    color_token = decode_field(
        values.get(FAVORITE_COLOR), _string, None, key=FAVORITE_COLOR
    )
    levels = decode_field(
        values.get(GAME_EXPERIENCE_LEVELS), _levels, None,
        key=GAME_EXPERIENCE_LEVELS, json_text=True,
    )
    if levels is None:
        levels = {game_id: ExperienceLevel.ROOKIE for game_id in bootstrap_games}

    return UserProfile(
        user_name=decode_field(values.get(USER_NAME), _string, "", key=USER_NAME),
        user_age=decode_field(values.get(USER_AGE), _string, "", key=USER_AGE),
        favorite_color=FavoriteColor.from_token(color_token),
        completed_games=decode_field(
            values.get(COMPLETED_GAMES), _completed, {},
            key=COMPLETED_GAMES, json_text=True,
        ),
        scores=decode_field(
            values.get(MINI_GAME_SCORES), _scores, {},
            key=MINI_GAME_SCORES, json_text=True,
        ),
        percentages=decode_field(
            values.get(MINI_GAME_PERCENTAGES), _fractions, {},
            key=MINI_GAME_PERCENTAGES, json_text=True,
        ),
        achievements=decode_field(
            values.get(ACHIEVEMENTS), _labels, [],
            key=ACHIEVEMENTS, json_text=True,
        ),
        experience_levels=levels,
        auto_adjust_enabled=decode_field(
            values.get(AUTO_ADJUST_EXPERIENCE_LEVEL), _flag, auto_adjust_default,
            key=AUTO_ADJUST_EXPERIENCE_LEVEL,
        ),
        performance_history=decode_field(
            values.get(GAME_PERFORMANCE_PERCENTAGES), _fractions, {},
            key=GAME_PERFORMANCE_PERCENTAGES, json_text=True,
        ),
        first_launch_done=decode_field(
            values.get(HAS_LAUNCHED_BEFORE), _flag, False,
            key=HAS_LAUNCHED_BEFORE,
        ),
    )
