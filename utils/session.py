from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Protocol

from fastapi.concurrency import run_in_threadpool

from config import SchedulerSettings
from models.card import Card, CardStateUpdate
from utils.errors import InvalidArgument, NotFound
from utils.sm2 import (
    PASSING_QUALITY,
    calculate_sm2,
    clamp_ease_factor,
    get_next_review_date,
    validate_quality,
)

logger = logging.getLogger(__name__)


class CardStore(Protocol):
    def load_due_cards(self, user_id: str, limit: int) -> List[Card]: ...

    def update_card(self, card_id: int, user_id: str, state: CardStateUpdate) -> Card: ...


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def schedule_review(
    card: Card,
    quality: int,
    settings: SchedulerSettings,
    now: Optional[datetime] = None,
) -> CardStateUpdate:
    """Run SM-2 for ``card`` and apply the configured ease and interval bounds."""
    validate_quality(quality)
    result = calculate_sm2(quality, card.repetitions, card.ease_factor, card.interval_days)
    ease_factor = clamp_ease_factor(
        result.ease_factor,
        floor=settings.ease_factor_min,
        ceiling=settings.ease_factor_max,
    )
    interval_days = result.interval_days
    if settings.max_interval_days:
        interval_days = min(interval_days, settings.max_interval_days)
    reviewed_at = now or _utc_now()
    return CardStateUpdate(
        interval_days=interval_days,
        repetitions=result.repetitions,
        ease_factor=ease_factor,
        due_at=get_next_review_date(interval_days, reviewed_at),
        last_reviewed_at=reviewed_at,
    )


@dataclass
class SessionStats:
    reviewed: int = 0
    correct: int = 0
    streak: int = 0


@dataclass(frozen=True)
class ReviewOutcome:
    card: Card
    quality: int
    next_card: Optional[Card]
    complete: bool


class ReviewSession:
    """Walks a user's due cards, scheduling and persisting one review at a time.

    The pointer only moves after the store confirms the write. If persistence
    fails or the awaiting request is cancelled, the current card keeps its
    pre-review state and can be submitted again.
    """

    def __init__(
        self,
        store: CardStore,
        user_id: str,
        cards: List[Card],
        settings: Optional[SchedulerSettings] = None,
        clock: Callable[[], datetime] = _utc_now,
        session_id: Optional[str] = None,
    ):
        self.store = store
        self.user_id = user_id
        self.cards = list(cards)
        self.settings = settings or SchedulerSettings()
        self.clock = clock
        self.session_id = session_id or uuid.uuid4().hex
        self.position = 0
        self.stats = SessionStats()
        self._lock = asyncio.Lock()

    @classmethod
    async def start(
        cls,
        store: CardStore,
        user_id: str,
        limit: Optional[int] = None,
        settings: Optional[SchedulerSettings] = None,
        **kwargs,
    ) -> "ReviewSession":
        settings = settings or SchedulerSettings()
        limit = limit or settings.due_limit
        cards = await run_in_threadpool(store.load_due_cards, user_id, limit)
        session = cls(store, user_id, cards, settings=settings, **kwargs)
        logger.info("Started review session %s for user %s with %d due cards",
                    session.session_id, user_id, len(cards))
        return session

    @property
    def current(self) -> Optional[Card]:
        if self.position < len(self.cards):
            return self.cards[self.position]
        return None

    @property
    def remaining(self) -> int:
        return max(0, len(self.cards) - self.position)

    @property
    def is_complete(self) -> bool:
        return self.position >= len(self.cards)

    def find_card(self, card_id: int) -> Card:
        for card in self.cards:
            if card.id == card_id:
                return card
        raise NotFound(f"Card {card_id} is not part of review session {self.session_id}")

    async def submit_review(self, card: Card, quality: int) -> ReviewOutcome:
        validate_quality(quality)
        # One review in flight per session; a second answer for the same card
        # waits here and then fails the current-card check.
        async with self._lock:
            current = self.current
            if current is None:
                raise InvalidArgument(f"Review session {self.session_id} is already complete")
            if card.id != current.id:
                raise InvalidArgument(
                    f"Card {card.id} is not the current card (expected {current.id})"
                )

            update = schedule_review(current, quality, self.settings, now=self.clock())
            # Store errors propagate unchanged; state below is untouched until the write lands
            updated = await run_in_threadpool(self.store.update_card, current.id, self.user_id, update)

            self.cards[self.position] = updated
            self.position += 1
            self.stats.reviewed += 1
            if quality >= PASSING_QUALITY:
                self.stats.correct += 1
                self.stats.streak += 1
            else:
                self.stats.streak = 0
            logger.info(
                "Session %s reviewed card %s: quality=%d interval=%d reps=%d ease=%.2f",
                self.session_id, updated.id, quality, updated.interval_days,
                updated.repetitions, updated.ease_factor,
            )
            if self.is_complete:
                logger.info("Review session %s complete (%d reviewed)", self.session_id, self.stats.reviewed)
            return ReviewOutcome(
                card=updated,
                quality=quality,
                next_card=self.current,
                complete=self.is_complete,
            )


@dataclass
class SessionRegistry:
    """In-process review sessions, keyed by session id."""

    sessions: Dict[str, ReviewSession] = field(default_factory=dict)

    def add(self, session: ReviewSession) -> ReviewSession:
        self.sessions[session.session_id] = session
        return session

    def get(self, session_id: str) -> ReviewSession:
        session = self.sessions.get(session_id)
        if session is None:
            raise NotFound(f"Review session {session_id} not found")
        return session

    def remove(self, session_id: str) -> None:
        if self.sessions.pop(session_id, None) is None:
            raise NotFound(f"Review session {session_id} not found")

    def clear(self) -> None:
        self.sessions.clear()


registry = SessionRegistry()
