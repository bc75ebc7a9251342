from pydantic import BaseModel, ConfigDict, Field, AliasChoices
from pydantic.alias_generators import to_camel
from typing import List, Literal, Optional
from datetime import datetime

from utils.sm2 import MAX_INTERVAL_DAYS

ContentType = Literal["article", "course", "entity"]

# Wire bounds. Stored values are additionally clamped to the configured ceiling.
WIRE_EASE_FACTOR_MIN = 1.3
WIRE_EASE_FACTOR_MAX = 2.6


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class CardFace(CamelModel):
    front: str = Field(min_length=1, max_length=200)
    back: str = Field(min_length=1, max_length=1000)


class CardCreate(CamelModel):
    content_id: str = Field(min_length=1)
    content_type: ContentType
    category: Optional[str] = None
    cards: List[CardFace] = Field(min_length=1, max_length=50)


class Card(CamelModel):
    id: int
    user_id: str
    content_id: str
    content_type: ContentType
    front: str
    back: str
    category: Optional[str] = None
    interval_days: int = Field(default=0, ge=0)
    repetitions: int = Field(default=0, ge=0)
    ease_factor: float = Field(default=2.5, ge=WIRE_EASE_FACTOR_MIN, le=WIRE_EASE_FACTOR_MAX)
    due_at: datetime
    last_reviewed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    mastery_status: str = "new"
    stage: str = "learning"


class CardStateUpdate(CamelModel):
    """New review state for one card, as persisted by the store."""

    interval_days: int = Field(
        ge=0,
        le=MAX_INTERVAL_DAYS,
        validation_alias=AliasChoices("intervalDays", "interval_days", "interval"),
    )
    repetitions: int = Field(ge=0)
    ease_factor: float = Field(ge=WIRE_EASE_FACTOR_MIN, le=WIRE_EASE_FACTOR_MAX)
    due_at: datetime
    last_reviewed_at: datetime


class FlashcardStats(CamelModel):
    due: int = 0
    total: int = 0
    mastered: int = 0
    mastery_percent: float = 0.0
