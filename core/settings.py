"""Typed character settings loaded from runtime configuration."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class AISettings(BaseModel):
    """Tunable constants of one character's cognition loop."""

    self_id: str = "self"
    perception_frequency: int = Field(default=10, ge=1)
    perception_frequency_offset: int = Field(default=0, ge=0)
    perception_memory_time: int = Field(default=120, ge=0)
    question_patience_timer: int = Field(default=1200, ge=0)
    conversation_timeout: int = Field(default=3600, ge=0)
    max_answers_at_once: int = Field(default=3, ge=1)
    performative_memory_size: int = Field(default=50, ge=1)
    request_memory_size: int = Field(default=20, ge=1)
    player_ids: list[str] = Field(default_factory=lambda: ["player"])
    talk_cooldown: int = Field(default=0, ge=0)
    resolution_max_depth: int = Field(default=8, ge=1)
    resolution_max_steps: int = Field(default=2000, ge=1)

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> AISettings:
        return cls(**dict(config.get("ai", {})))
