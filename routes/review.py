from fastapi import APIRouter, Depends, Response, status

from config import SchedulerSettings
from db.flashcards import FlashcardStore
from models.review import ReviewOutcomeOut, SessionAnswer, SessionCreate, SessionProgress, SessionSnapshot
from routes.flashcards import get_settings, get_store
from utils.session import ReviewSession, registry

router = APIRouter()


def snapshot(session: ReviewSession) -> SessionSnapshot:
    return SessionSnapshot(
        session_id=session.session_id,
        user_id=session.user_id,
        current=session.current,
        remaining=session.remaining,
        total=len(session.cards),
        complete=session.is_complete,
        stats=SessionProgress.model_validate(session.stats),
    )


@router.post("/sessions", response_model=SessionSnapshot, status_code=status.HTTP_201_CREATED)
async def start_session(
    payload: SessionCreate,
    store: FlashcardStore = Depends(get_store),
    settings: SchedulerSettings = Depends(get_settings),
):
    """Load the user's due cards into a new review session."""
    session = await ReviewSession.start(store, payload.user_id, payload.limit, settings=settings)
    registry.add(session)
    return snapshot(session)


@router.get("/sessions/{session_id}", response_model=SessionSnapshot)
async def get_session(session_id: str):
    return snapshot(registry.get(session_id))


@router.post("/sessions/{session_id}/answer", response_model=ReviewOutcomeOut)
async def answer_card(session_id: str, payload: SessionAnswer):
    """Grade the current card. On a storage error the card stays current so the client can retry."""
    session = registry.get(session_id)
    card = session.find_card(payload.card_id)
    outcome = await session.submit_review(card, payload.quality)
    return ReviewOutcomeOut(card=outcome.card, quality=outcome.quality, session=snapshot(session))


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def end_session(session_id: str):
    registry.remove(session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
