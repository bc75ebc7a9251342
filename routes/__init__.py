# Routes package __init__.py - re-exports routers for main.py convenience
from .flashcards import router as flashcards_router
from .review import router as review_router

__all__ = ['flashcards_router', 'review_router']
