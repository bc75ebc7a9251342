from pydantic import Field, field_validator
from typing import Optional, Union

from .card import CamelModel, Card
from utils.sm2 import map_rating_to_quality


class ReviewCreate(CamelModel):
    """A quality rating for one card: 0-5 or a button name ('again', 'hard', 'good', 'easy')."""

    quality: Union[int, str]

    @field_validator('quality')
    @classmethod
    def validate_quality(cls, v):
        # InvalidArgument is a ValueError, so pydantic reports it as a field error
        return map_rating_to_quality(v)


class SessionAnswer(ReviewCreate):
    card_id: int


class SessionCreate(CamelModel):
    user_id: str = Field(min_length=1)
    limit: Optional[int] = Field(default=None, ge=1, le=200)


class SessionProgress(CamelModel):
    reviewed: int = 0
    correct: int = 0
    streak: int = 0


class SessionSnapshot(CamelModel):
    session_id: str
    user_id: str
    current: Optional[Card] = None
    remaining: int
    total: int
    complete: bool
    stats: SessionProgress


class ReviewOutcomeOut(CamelModel):
    card: Card
    quality: int
    session: SessionSnapshot
