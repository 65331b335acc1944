"""LingoCards: language flashcards with separate reading, listening and speaking schedules."""

__version__ = "0.1.0"

from .core import Card, Category, Channel, ChannelScheduler, ReviewResult, days_for_level, schedule
from .database import CardStore, FlashcardDatabase, InMemoryCardStore
from .selection import CategoryFilter, due_cards, get_due
from .session import FAILURE_POLICIES, FailurePolicy, ReviewSession
from .translate import TranslationService, TranslationServiceFactory

__all__ = [
    "Card",
    "Category",
    "Channel",
    "ChannelScheduler",
    "ReviewResult",
    "days_for_level",
    "schedule",
    "CardStore",
    "FlashcardDatabase",
    "InMemoryCardStore",
    "CategoryFilter",
    "due_cards",
    "get_due",
    "FAILURE_POLICIES",
    "FailurePolicy",
    "ReviewSession",
    "TranslationService",
    "TranslationServiceFactory",
]
