"""REST API routes over the progress store."""

import structlog
from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from edugame_progress.models.progress import ExperienceLevel, FavoriteColor
from edugame_progress.progress.store import ProgressStore

logger = structlog.get_logger()
router = APIRouter(prefix="/api")


class CompletionRequest(BaseModel):
    score: int = Field(ge=0)
    percentage: float = Field(ge=0.0, le=1.0)


class ExperienceLevelRequest(BaseModel):
    level: ExperienceLevel


class AutoAdjustRequest(BaseModel):
    enabled: bool


class UserInfoRequest(BaseModel):
    user_name: str
    user_age: str = ""
    favorite_color: FavoriteColor = FavoriteColor.GAME_PURPLE


class GameStateKeyRequest(BaseModel):
    key: str = Field(min_length=1)


def get_store(request: Request) -> ProgressStore:
    return request.app.state.store


def _game_status(store: ProgressStore, game_id: str) -> dict:
    return {
        "game_id": game_id,
        "completed": store.is_game_completed(game_id),
        "score": store.get_score(game_id),
        "percentage": store.get_percentage(game_id),
        "experience_level": store.get_experience_level(game_id).value,
    }


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}


@router.get("/progress")
async def get_progress(request: Request) -> dict:
    """Full progress snapshot."""
    return get_store(request).snapshot().model_dump(mode="json")


@router.get("/games/{game_id}")
async def get_game(game_id: str, request: Request) -> dict:
    return _game_status(get_store(request), game_id)


@router.post("/games/{game_id}/complete")
async def complete_game(game_id: str, body: CompletionRequest, request: Request) -> dict:
    """Record a finished round and return the game's updated status."""
    store = get_store(request)
    store.complete_mini_game(game_id, body.score, body.percentage)
    return _game_status(store, game_id)


@router.put("/games/{game_id}/experience-level")
async def set_experience_level(
    game_id: str, body: ExperienceLevelRequest, request: Request
) -> dict:
    store = get_store(request)
    store.set_experience_level(game_id, body.level)
    return _game_status(store, game_id)


@router.put("/settings/auto-adjust")
async def set_auto_adjust(body: AutoAdjustRequest, request: Request) -> dict:
    store = get_store(request)
    store.set_auto_adjust_experience_level(body.enabled)
    return {"auto_adjust_enabled": store.auto_adjust_enabled}


@router.put("/profile")
async def save_user_info(body: UserInfoRequest, request: Request) -> dict:
    store = get_store(request)
    store.save_user_info(body.user_name, body.user_age, body.favorite_color)
    return {
        "user_name": store.user_name,
        "user_age": store.user_age,
        "favorite_color": store.favorite_color.value,
    }


@router.post("/first-launch")
async def complete_first_launch(request: Request) -> dict:
    store = get_store(request)
    store.set_first_launch_completed()
    return {"first_launch": store.is_first_launch()}


@router.post("/progress/reset")
async def reset_progress(request: Request) -> dict:
    """Clear all game progress for the profile."""
    store = get_store(request)
    store.reset_progress()
    logger.info("progress_reset_requested")
    return store.snapshot().model_dump(mode="json")


@router.post("/game-state-keys")
async def register_game_state_key(body: GameStateKeyRequest, request: Request) -> dict:
    """Register a persisted key to be removed on reset."""
    get_store(request).register_game_state_key(body.key)
    return {"registered": body.key}
