from datetime import datetime, timedelta, timezone

import pytest

from db import database
from db.flashcards import FlashcardStore
from models.card import CardFace, CardStateUpdate
from utils.errors import NotFound, PersistenceFailure


def _faces(count: int):
    return [CardFace(front=f"Q{i}", back=f"A{i}") for i in range(1, count + 1)]


def _state(due_at: datetime, **overrides) -> CardStateUpdate:
    fields = {
        "interval_days": 1,
        "repetitions": 1,
        "ease_factor": 2.5,
        "due_at": due_at,
        "last_reviewed_at": due_at - timedelta(days=1),
    }
    fields.update(overrides)
    return CardStateUpdate(**fields)


def test_create_cards_uses_default_state(flashdeck_env):
    store = FlashcardStore()
    cards = store.create_cards("user-1", "article-9", "article", _faces(2), category="llm")
    assert [card.front for card in cards] == ["Q1", "Q2"]
    for card in cards:
        assert card.user_id == "user-1"
        assert card.category == "llm"
        assert card.interval_days == 0
        assert card.repetitions == 0
        assert card.ease_factor == 2.5
        assert card.last_reviewed_at is None
        assert card.mastery_status == "new"
        assert card.due_at <= datetime.now(timezone.utc)


def test_load_due_cards_orders_and_limits(flashdeck_env):
    store = FlashcardStore()
    cards = store.create_cards("user-1", "course-1", "course", _faces(4))
    now = datetime.now(timezone.utc)
    store.update_card(cards[0].id, "user-1", _state(now - timedelta(hours=1)))
    store.update_card(cards[1].id, "user-1", _state(now - timedelta(days=3)))
    store.update_card(cards[2].id, "user-1", _state(now + timedelta(days=2)))
    store.update_card(cards[3].id, "user-1", _state(now - timedelta(days=1)))

    due = store.load_due_cards("user-1", 10)
    assert [card.id for card in due] == [cards[1].id, cards[3].id, cards[0].id]
    assert [card.id for card in store.load_due_cards("user-1", 2)] == [cards[1].id, cards[3].id]
    assert store.load_due_cards("user-2", 10) == []


def test_load_due_cards_respects_reference_time(flashdeck_env):
    store = FlashcardStore()
    store.create_cards("user-1", "course-1", "course", _faces(1))
    past = datetime.now(timezone.utc) - timedelta(minutes=5)
    assert store.load_due_cards("user-1", 10, now=past) == []


def test_update_card_round_trips_timestamps(flashdeck_env):
    store = FlashcardStore()
    card = store.create_cards("user-1", "article-1", "article", _faces(1))[0]
    due_at = datetime(2027, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    updated = store.update_card(card.id, "user-1", _state(due_at, interval_days=6, repetitions=2))
    assert updated.due_at == due_at
    assert updated.last_reviewed_at == due_at - timedelta(days=1)
    assert updated.interval_days == 6
    assert updated.mastery_status == "learning"
    assert updated.stage == "second"
    assert store.get_card(card.id, "user-1") == updated


def test_update_card_is_scoped_to_owner(flashdeck_env):
    store = FlashcardStore()
    card = store.create_cards("user-1", "article-1", "article", _faces(1))[0]
    with pytest.raises(NotFound):
        store.update_card(card.id, "intruder", _state(datetime.now(timezone.utc)))
    with pytest.raises(NotFound):
        store.get_card(card.id, "intruder")
    assert store.get_card(card.id, "user-1").repetitions == 0


def test_list_cards_filters(flashdeck_env):
    store = FlashcardStore()
    article_cards = store.create_cards("user-1", "article-1", "article", _faces(2))
    store.create_cards("user-1", "course-1", "course", _faces(1))
    future = datetime.now(timezone.utc) + timedelta(days=5)
    store.update_card(article_cards[0].id, "user-1", _state(future))

    assert len(store.list_cards("user-1")) == 3
    assert len(store.list_cards("user-1", content_type="course")) == 1
    due_article = store.list_cards("user-1", content_id="article-1", due_only=True)
    assert [card.id for card in due_article] == [article_cards[1].id]


def test_delete_card(flashdeck_env):
    store = FlashcardStore()
    card = store.create_cards("user-1", "article-1", "article", _faces(1))[0]
    with pytest.raises(NotFound):
        store.delete_card(card.id, "user-2")
    store.delete_card(card.id, "user-1")
    with pytest.raises(NotFound):
        store.get_card(card.id, "user-1")


def test_stats_counts_due_and_mastered(flashdeck_env):
    store = FlashcardStore()
    cards = store.create_cards("user-1", "article-1", "article", _faces(3))
    future = datetime.now(timezone.utc) + timedelta(days=30)
    store.update_card(cards[0].id, "user-1", _state(future, repetitions=5, interval_days=30))
    store.update_card(cards[1].id, "user-1", _state(future, repetitions=6, ease_factor=2.2))

    stats = store.get_stats("user-1")
    assert (stats.total, stats.due, stats.mastered) == (3, 1, 1)
    assert stats.mastery_percent == 33.3
    empty = store.get_stats("nobody")
    assert (empty.total, empty.due, empty.mastered, empty.mastery_percent) == (0, 0, 0, 0.0)


def test_storage_errors_become_persistence_failures(flashdeck_env, monkeypatch):
    monkeypatch.setattr(database, "DB_PATH", flashdeck_env / "missing" / "flashdeck.db")
    store = FlashcardStore()
    with pytest.raises(PersistenceFailure):
        store.load_due_cards("user-1", 10)
