from .card import Card, CardCreate, CardFace, CardStateUpdate, FlashcardStats
from .review import ReviewCreate, SessionAnswer, SessionCreate, SessionSnapshot, SessionProgress, ReviewOutcomeOut

__all__ = [
    'Card', 'CardCreate', 'CardFace', 'CardStateUpdate', 'FlashcardStats',
    'ReviewCreate', 'SessionAnswer', 'SessionCreate', 'SessionSnapshot', 'SessionProgress',
    'ReviewOutcomeOut',
]
