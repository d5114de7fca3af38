"""Authoritative store for a player's mini-game progress."""

import math
import threading
from collections.abc import Iterable

import structlog

from edugame_progress.models.progress import (
    ExperienceLevel,
    FavoriteColor,
    UserProfile,
    achievement_label,
)
from edugame_progress.progress.events import (
    ProgressCallback,
    ProgressEvent,
    ProgressNotifier,
)
from edugame_progress.storage.codec import PROFILE_KEYS, decode_profile, encode_profile
from edugame_progress.storage.key_value import (
    JsonKeyValueStore,
    MemoryKeyValueStore,
    StorageError,
)
from edugame_progress.storage.sweep import sweep_game_state

logger = structlog.get_logger()

DEFAULT_BOOTSTRAP_GAMES = ("Binary Game", "Pixel Art Game", "Color Game")


def _finite_percentage(game_id: str, percentage: float) -> float:
    """Replace NaN or infinite samples with 0.0, which JSON cannot hold."""
    if math.isfinite(percentage):
        return percentage
    logger.warning("non_finite_percentage", game_id=game_id, percentage=str(percentage))
    return 0.0


class ProgressStore:
    """In-memory progress record mirrored to a key-value backend.

    Every mutation updates memory, persists the whole profile and then
    notifies subscribers, as one unit under a re-entrant lock. Persistence is
    best effort: backend failures are logged and the in-memory state stays
    authoritative for the rest of the session.

    Args:
        kv: Key-value backend (``JsonKeyValueStore`` or ``MemoryKeyValueStore``).
        auto_adjust_default: Auto-adjust setting for a profile that never
            persisted one.
        bootstrap_games: Game ids seeded as ``ROOKIE`` when no experience
            levels are persisted.
    """

    def __init__(
        self,
        kv: JsonKeyValueStore | MemoryKeyValueStore,
        auto_adjust_default: bool = True,
        bootstrap_games: Iterable[str] = DEFAULT_BOOTSTRAP_GAMES,
    ):
        self._kv = kv
        self._auto_adjust_default = auto_adjust_default
        self._bootstrap_games = tuple(bootstrap_games)
        self._lock = threading.RLock()
        self._notifier = ProgressNotifier()
        self._registered_state_keys: set[str] = set()
        self._profile = UserProfile(auto_adjust_enabled=auto_adjust_default)
        self.load()

    def load(self) -> None:
        """Replace in-memory state with the persisted profile."""
        try:
            values = self._kv.read_all()
        except StorageError as e:
            logger.warning("progress_load_failed", error=str(e))
            values = {}
        profile = decode_profile(
            values,
            auto_adjust_default=self._auto_adjust_default,
            bootstrap_games=self._bootstrap_games,
        )
        with self._lock:
            self._profile = profile
        logger.info(
            "progress_loaded",
            completed=len(profile.completed_games),
            achievements=len(profile.achievements),
        )

    def save(self) -> bool:
        """Persist the full profile. Returns False if the write failed."""
        with self._lock:
            updates, deletions = encode_profile(self._profile)
            try:
                self._kv.write_batch(updates, deletions)
            except StorageError as e:
                logger.warning("progress_persist_failed", error=str(e))
                return False
            return True

    def _commit(self) -> None:
        self.save()
        self._notifier.emit(ProgressEvent.PROGRESS_UPDATED)

    def subscribe(self, callback: ProgressCallback):
        """Register a callback for ``ProgressEvent`` notifications.

        Returns:
            Callable that removes the subscription.
        """
        with self._lock:
            return self._notifier.subscribe(callback)

    def snapshot(self) -> UserProfile:
        """Deep copy of the current profile."""
        with self._lock:
            return self._profile.model_copy(deep=True)

    def is_first_launch(self) -> bool:
        return not self._profile.first_launch_done

    def is_game_completed(self, game_id: str) -> bool:
        return self._profile.completed_games.get(game_id, False)

    def get_score(self, game_id: str) -> int:
        return self._profile.scores.get(game_id, 0)

    def get_percentage(self, game_id: str) -> float:
        return self._profile.percentages.get(game_id, 0.0)

    def get_experience_level(self, game_id: str) -> ExperienceLevel:
        return self._profile.experience_levels.get(game_id, ExperienceLevel.ROOKIE)

    def get_performance(self, game_id: str) -> float | None:
        return self._profile.performance_history.get(game_id)

    @property
    def achievements(self) -> list[str]:
        return list(self._profile.achievements)

    @property
    def auto_adjust_enabled(self) -> bool:
        return self._profile.auto_adjust_enabled

    @property
    def user_name(self) -> str:
        return self._profile.user_name

    @property
    def user_age(self) -> str:
        return self._profile.user_age

    @property
    def favorite_color(self) -> FavoriteColor:
        return self._profile.favorite_color

    def set_first_launch_completed(self) -> None:
        """Mark onboarding as done. Does nothing once already set."""
        with self._lock:
            if self._profile.first_launch_done:
                return
            self._profile.first_launch_done = True
            self._commit()

    def save_user_info(
        self,
        name: str,
        age: str,
        favorite_color: FavoriteColor = FavoriteColor.GAME_PURPLE,
    ) -> None:
        with self._lock:
            self._profile.user_name = name
            self._profile.user_age = age
            self._profile.favorite_color = favorite_color
            self._commit()

    def complete_mini_game(self, game_id: str, score: int, percentage: float) -> None:
        """Record a finished round of ``game_id``.

        Score and percentage overwrite the previous round. The completion
        achievement is granted only the first time, and the experience level
        follows the new percentage when auto-adjust is on.
        """
        percentage = _finite_percentage(game_id, percentage)
        with self._lock:
            profile = self._profile
            profile.completed_games[game_id] = True
            profile.scores[game_id] = score
            profile.percentages[game_id] = percentage

            label = achievement_label(game_id)
            if label not in profile.achievements:
                profile.achievements.append(label)
                logger.info("achievement_granted", game_id=game_id, achievement=label)

            self._apply_performance(game_id, percentage)
            logger.info(
                "mini_game_completed",
                game_id=game_id,
                score=score,
                percentage=percentage,
            )
            self._commit()

    def update_game_performance(self, game_id: str, percentage: float) -> None:
        """Record an accuracy sample and re-derive the experience level."""
        percentage = _finite_percentage(game_id, percentage)
        with self._lock:
            self._apply_performance(game_id, percentage)
            self._commit()

    def _apply_performance(self, game_id: str, percentage: float) -> None:
        profile = self._profile
        profile.performance_history[game_id] = percentage
        if not profile.auto_adjust_enabled:
            return
        new_level = ExperienceLevel.from_percentage(percentage)
        old_level = profile.experience_levels.get(game_id)
        profile.experience_levels[game_id] = new_level
        if old_level != new_level:
            logger.info(
                "experience_level_adjusted",
                game_id=game_id,
                old_level=old_level.value if old_level else None,
                new_level=new_level.value,
                percentage=percentage,
            )

    def set_experience_level(self, game_id: str, level: ExperienceLevel) -> None:
        with self._lock:
            self._profile.experience_levels[game_id] = level
            self._commit()

    def set_auto_adjust_experience_level(self, enabled: bool) -> None:
        """Toggle auto-adjust. Existing levels are left as they are."""
        with self._lock:
            self._profile.auto_adjust_enabled = enabled
            self._commit()

    def register_game_state_key(self, key: str) -> None:
        """Register a key another component persists, to be removed on reset."""
        with self._lock:
            self._registered_state_keys.add(key)

    def reset_progress(self) -> None:
        """Clear all game progress and remove persisted game state.

        Profile fields, the auto-adjust switch and the first-launch flag are
        kept. Experience level entries keep their keys but drop to ROOKIE.
        Emits PROGRESS_UPDATED once the cleared profile is persisted, then
        PROGRESS_RESET after the game state sweep.
        """
        with self._lock:
            profile = self._profile
            profile.completed_games.clear()
            profile.scores.clear()
            profile.percentages.clear()
            profile.achievements.clear()
            for game_id in profile.experience_levels:
                profile.experience_levels[game_id] = ExperienceLevel.ROOKIE
            profile.performance_history.clear()

            self._commit()

            try:
                sweep_game_state(
                    self._kv,
                    extra_keys=self._registered_state_keys,
                    protected=PROFILE_KEYS,
                )
            except StorageError as e:
                logger.warning("game_state_sweep_failed", error=str(e))

            logger.info("progress_reset")
            self._notifier.emit(ProgressEvent.PROGRESS_RESET)
