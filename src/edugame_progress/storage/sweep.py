"""Removal of mini-game state keys written by other components.

Games persist their own transient phase state under loosely named keys that
the progress store does not own. On a full reset these are removed by a
fixed list of well-known names plus a name-pattern scan of every key.

The pattern scan can hit unrelated keys that happen to match; components
should prefer registering their exact keys with the store.
"""

from collections.abc import Iterable

import structlog

logger = structlog.get_logger()

KNOWN_GAME_STATE_KEYS = (
    "BinaryGamePhase",
    "PixelGamePhase",
    "ColorGamePhase",
    "currentGamePhases",
    "BinaryGameCurrentPhase",
    "PixelGameCurrentPhase",
    "ColorGameCurrentPhase",
)

_STATE_MARKERS = ("Phase", "Progress", "State", "Completed")


def is_game_state_key(key: str) -> bool:
    """Whether ``key`` looks like per-game state (case-sensitive)."""
    return "Game" in key and any(marker in key for marker in _STATE_MARKERS)


def sweep_game_state(
    kv,
    extra_keys: Iterable[str] = (),
    protected: Iterable[str] = (),
) -> list[str]:
    """Delete game state keys from ``kv``.

    Args:
        kv: Key-value store to sweep.
        extra_keys: Exact keys registered by other components.
        protected: Keys that must survive even if they match the pattern.

    Returns:
        Sorted list of keys that were present and got deleted.
    """
    protected = set(protected)
    existing = set(kv.keys())
    targets = set(KNOWN_GAME_STATE_KEYS) | set(extra_keys)
    targets |= {key for key in existing if is_game_state_key(key)}
    targets -= protected

    kv.delete(*sorted(targets))
    removed = sorted(targets & existing)
    logger.info("game_state_swept", removed=removed)
    return removed
