import logging
from fastapi import APIRouter, Depends, Query, Response, status
from typing import List, Optional

from config import SchedulerSettings, get_scheduler_settings, load_config
from db.flashcards import FlashcardStore
from models.card import Card, CardCreate, CardStateUpdate, ContentType, FlashcardStats
from models.review import ReviewCreate
from utils.session import schedule_review
from utils.sm2 import clamp_ease_factor

logger = logging.getLogger(__name__)

router = APIRouter()


def get_store() -> FlashcardStore:
    config = load_config()
    return FlashcardStore(mastery_rules=config["mastery"])


def get_settings() -> SchedulerSettings:
    return get_scheduler_settings()


@router.get("", response_model=List[Card])
async def list_flashcards(
    user_id: str = Query(..., min_length=1),
    content_id: Optional[str] = None,
    content_type: Optional[ContentType] = None,
    due_only: bool = False,
    store: FlashcardStore = Depends(get_store),
):
    """List a user's cards, optionally filtered to one piece of content or to due cards."""
    return store.list_cards(user_id, content_id=content_id, content_type=content_type, due_only=due_only)


@router.get("/due", response_model=List[Card])
async def due_flashcards(
    user_id: str = Query(..., min_length=1),
    limit: Optional[int] = Query(None, ge=1, le=200),
    store: FlashcardStore = Depends(get_store),
    settings: SchedulerSettings = Depends(get_settings),
):
    return store.load_due_cards(user_id, limit or settings.due_limit)


@router.get("/stats", response_model=FlashcardStats)
async def flashcard_stats(
    user_id: str = Query(..., min_length=1),
    store: FlashcardStore = Depends(get_store),
):
    return store.get_stats(user_id)


@router.post("", response_model=List[Card], status_code=status.HTTP_201_CREATED)
async def create_flashcards(
    payload: CardCreate,
    user_id: str = Query(..., min_length=1),
    store: FlashcardStore = Depends(get_store),
):
    """Add cards for a piece of content. New cards start due now with default SM-2 state."""
    return store.create_cards(
        user_id,
        payload.content_id,
        payload.content_type,
        payload.cards,
        category=payload.category,
    )


@router.get("/{card_id}", response_model=Card)
async def get_flashcard(
    card_id: int,
    user_id: str = Query(..., min_length=1),
    store: FlashcardStore = Depends(get_store),
):
    return store.get_card(card_id, user_id)


@router.patch("/{card_id}", response_model=Card)
async def update_flashcard(
    card_id: int,
    payload: CardStateUpdate,
    user_id: str = Query(..., min_length=1),
    store: FlashcardStore = Depends(get_store),
    settings: SchedulerSettings = Depends(get_settings),
):
    """Store review state computed by the client. Ease factor is clamped to the configured ceiling."""
    ease_factor = clamp_ease_factor(
        payload.ease_factor,
        floor=settings.ease_factor_min,
        ceiling=settings.ease_factor_max,
    )
    if ease_factor != payload.ease_factor:
        logger.debug("Clamped ease factor %.2f to %.2f for card %s", payload.ease_factor, ease_factor, card_id)
    state = payload.model_copy(update={"ease_factor": ease_factor})
    return store.update_card(card_id, user_id, state)


@router.post("/{card_id}/review", response_model=Card)
async def review_flashcard(
    card_id: int,
    payload: ReviewCreate,
    user_id: str = Query(..., min_length=1),
    store: FlashcardStore = Depends(get_store),
    settings: SchedulerSettings = Depends(get_settings),
):
    """Schedule one review server-side and persist the result."""
    card = store.get_card(card_id, user_id)
    state = schedule_review(card, payload.quality, settings)
    updated = store.update_card(card_id, user_id, state)
    logger.info("Card %s reviewed with quality %d, next due %s", card_id, payload.quality, updated.due_at)
    return updated


@router.delete("/{card_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_flashcard(
    card_id: int,
    user_id: str = Query(..., min_length=1),
    store: FlashcardStore = Depends(get_store),
):
    store.delete_card(card_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
