"""Progress data models."""

from enum import StrEnum

from pydantic import BaseModel, Field

PRO_THRESHOLD = 0.75


class ExperienceLevel(StrEnum):
    """Per-game difficulty tier."""

    ROOKIE = "rookie"
    PRO = "pro"

    @classmethod
    def from_percentage(cls, percentage: float) -> "ExperienceLevel":
        """Determine experience level from a 0-1 accuracy fraction."""
        if percentage >= PRO_THRESHOLD:
            return cls.PRO
        return cls.ROOKIE


class FavoriteColor(StrEnum):
    """App colour tokens a player can pick on onboarding."""

    GAME_PURPLE = "gamePurple"
    GAME_BLUE = "gameBlue"
    GAME_GREEN = "gameGreen"
    GAME_ORANGE = "gameOrange"
    GAME_PINK = "gamePink"
    GAME_YELLOW = "gameYellow"

    @classmethod
    def from_token(cls, token: str | None) -> "FavoriteColor":
        """Map a stored token back to a colour, defaulting to purple."""
        try:
            return cls(token)
        except ValueError:
            return cls.GAME_PURPLE


def achievement_label(game_id: str) -> str:
    return f"Completed {game_id}"


class UserProfile(BaseModel):
    user_name: str = ""
    user_age: str = ""
    favorite_color: FavoriteColor = FavoriteColor.GAME_PURPLE
    completed_games: dict[str, bool] = Field(default_factory=dict)
    scores: dict[str, int] = Field(default_factory=dict)
    percentages: dict[str, float] = Field(default_factory=dict)
    achievements: list[str] = Field(default_factory=list)  # display order
    experience_levels: dict[str, ExperienceLevel] = Field(default_factory=dict)
    auto_adjust_enabled: bool = True
    performance_history: dict[str, float] = Field(default_factory=dict)
    first_launch_done: bool = False
