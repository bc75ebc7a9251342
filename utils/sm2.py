"""SM-2 scheduling.

Canonical SuperMemo-2 with one documented choice: intervals are rounded half
up, so 2.5 days becomes 3 rather than Python's banker's rounding of 2.
The ease factor is only floored here; the product ceiling is applied by
callers through ``clamp_ease_factor``. Intervals are capped at
MAX_INTERVAL_DAYS.
"""
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from utils.errors import InvalidArgument

MIN_QUALITY = 0
MAX_QUALITY = 5
PASSING_QUALITY = 3
EASE_FACTOR_FLOOR = 1.3
RELEARN_INTERVAL_DAYS = 1
# Hundred years; keeps due dates well inside datetime range
MAX_INTERVAL_DAYS = 36500
FIRST_INTERVAL_DAYS = 1
SECOND_INTERVAL_DAYS = 6

RATING_QUALITY = {
    'again': 1,
    'hard': 3,
    'good': 4,
    'easy': 5,
    'perfect': 5,
}


@dataclass(frozen=True)
class CardState:
    interval_days: int
    repetitions: int
    ease_factor: float


def _require_int(name: str, value, minimum: int, maximum: Optional[int] = None) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgument(f"{name} must be an integer, got {value!r}")
    if value < minimum or (maximum is not None and value > maximum):
        bounds = f"{minimum}..{maximum}" if maximum is not None else f">= {minimum}"
        raise InvalidArgument(f"{name} must be {bounds}, got {value}")


def validate_quality(quality) -> int:
    _require_int("quality", quality, MIN_QUALITY, MAX_QUALITY)
    return quality


def map_rating_to_quality(rating: Union[str, int]) -> int:
    """Map a review button name ('again', 'good', ...) or a raw 0-5 score to SM-2 quality."""
    if isinstance(rating, str):
        key = rating.strip().lower()
        if key in RATING_QUALITY:
            return RATING_QUALITY[key]
        if key.isdigit():
            return validate_quality(int(key))
        raise InvalidArgument(f"Unknown rating {rating!r}")
    return validate_quality(rating)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def ease_factor_delta(quality: int) -> float:
    miss = MAX_QUALITY - quality
    return 0.1 - miss * (0.08 + miss * 0.02)


def calculate_sm2(
    quality: int,
    repetitions: int,
    ease_factor: float,
    interval_days: int,
) -> CardState:
    """Compute the next SM-2 state for one review.

    Args:
        quality: 0 (blackout) to 5 (perfect recall).
        repetitions: consecutive successful reviews so far.
        ease_factor: current ease factor, at least 1.3.
        interval_days: interval that led to this review.

    Returns:
        A new CardState. Inputs are never modified.

    Raises:
        InvalidArgument: any input outside its documented bounds.
    """
    validate_quality(quality)
    _require_int("repetitions", repetitions, 0)
    _require_int("interval_days", interval_days, 0, MAX_INTERVAL_DAYS)
    if isinstance(ease_factor, bool) or not isinstance(ease_factor, (int, float)) \
            or not math.isfinite(ease_factor):
        raise InvalidArgument(f"ease_factor must be a finite number, got {ease_factor!r}")
    if ease_factor < EASE_FACTOR_FLOOR:
        raise InvalidArgument(f"ease_factor must be >= {EASE_FACTOR_FLOOR}, got {ease_factor}")

    new_ef = max(EASE_FACTOR_FLOOR, ease_factor + ease_factor_delta(quality))
    if quality < PASSING_QUALITY:
        return CardState(
            interval_days=RELEARN_INTERVAL_DAYS,
            repetitions=0,
            ease_factor=new_ef,
        )

    new_repetitions = repetitions + 1
    if new_repetitions == 1:
        new_interval = FIRST_INTERVAL_DAYS
    elif new_repetitions == 2:
        new_interval = SECOND_INTERVAL_DAYS
    else:
        new_interval = min(MAX_INTERVAL_DAYS, round_half_up(interval_days * new_ef))
    return CardState(
        interval_days=new_interval,
        repetitions=new_repetitions,
        ease_factor=new_ef,
    )


def clamp_ease_factor(
    ease_factor: float,
    floor: float = EASE_FACTOR_FLOOR,
    ceiling: float = 2.5,
) -> float:
    """Apply the product-level ease factor bounds on top of SM-2's floor."""
    return min(ceiling, max(floor, ease_factor))


def get_next_review_date(interval_days: int, from_: Optional[datetime] = None) -> datetime:
    """Return ``from_`` (default: now, UTC) shifted by ``interval_days`` days."""
    _require_int("interval_days", interval_days, 0, MAX_INTERVAL_DAYS)
    anchor = from_ or datetime.now(timezone.utc)
    try:
        return anchor + timedelta(days=interval_days)
    except OverflowError as e:
        raise InvalidArgument(f"Review date out of range: {anchor} + {interval_days} days") from e
