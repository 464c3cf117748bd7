"""
Game rule configuration and validation.
"""

from pydantic import BaseModel, Field, field_validator

from .constants import CLOCKWISE, COUNTERCLOCKWISE


class RuleConfig(BaseModel):
    """Configuration for game rules and settings."""

    min_players: int = Field(
        default=2,
        ge=2,
        le=8,
        description="Minimum number of players required to start"
    )
    max_players: int = Field(
        default=4,
        ge=2,
        le=8,
        description="Maximum number of players allowed in a room"
    )
    direction: str = Field(
        default=CLOCKWISE,
        description="Direction cards travel and turns rotate"
    )
    finish_on_deal: bool = Field(
        default=True,
        description="End the game at deal time when a hand is dealt a complete set"
    )
    turn_timeout: float = Field(
        default=30,
        gt=0,
        le=300,
        description="Seconds a networked player has before a card is passed for them"
    )
    dealing_delay: float = Field(
        default=1.0,
        ge=0,
        le=10,
        description="Pause before dealing in the local game, purely for pacing"
    )
    enable_bots: bool = Field(
        default=True,
        description="Whether to allow bot players"
    )
    bot_delay: float = Field(
        default=0.8,
        ge=0,
        le=10,
        description="Seconds a networked bot waits before acting"
    )
    max_commit_attempts: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Optimistic write attempts before a conflict is reported"
    )
    commit_backoff: float = Field(
        default=0.01,
        ge=0,
        le=1,
        description="Base delay in seconds between write attempts, doubled each retry"
    )

    @field_validator('direction')
    @classmethod
    def validate_direction(cls, v):
        if v not in (CLOCKWISE, COUNTERCLOCKWISE):
            raise ValueError(f'direction must be {CLOCKWISE} or {COUNTERCLOCKWISE}, got {v!r}')
        return v

    @field_validator('max_players')
    @classmethod
    def validate_max_players(cls, v, info):
        """Validate maximum players doesn't go below minimum."""
        min_players = info.data.get('min_players', 2)
        if v < min_players:
            raise ValueError(f'max_players ({v}) must be >= min_players ({min_players})')
        return v

    def validate_player_count(self, player_count: int) -> bool:
        """Check if a player count is valid for this configuration."""
        return self.min_players <= player_count <= self.max_players

    def backoff_delay(self, attempt: int) -> float:
        return self.commit_backoff * (2 ** attempt)


# Default configuration instance
default_rules = RuleConfig()


def create_rules(**overrides) -> RuleConfig:
    """Create a RuleConfig with optional overrides."""
    config_dict = default_rules.model_dump()
    config_dict.update(overrides)
    return RuleConfig(**config_dict)
