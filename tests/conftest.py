"""Shared fixtures for the LingoCards tests."""

from typing import Callable, Optional

import pytest

from lingocards.core import Card
from lingocards.database import InMemoryCardStore

TODAY = "2024-01-10"


@pytest.fixture
def store() -> InMemoryCardStore:
    return InMemoryCardStore()


@pytest.fixture
def make_card() -> Callable[..., Card]:
    """Builds a card with every channel at ``level`` due on ``due``."""

    def _make_card(
        text: str,
        level: int = 0,
        due: str = TODAY,
        category_id: Optional[str] = None,
        **overrides,
    ) -> Card:
        fields = dict(
            text=text,
            translation=f"{text} (en)",
            category_id=category_id,
            reading_review_level=level,
            reading_next_review_date=due,
            listening_review_level=level,
            listening_next_review_date=due,
            speaking_review_level=level,
            speaking_next_review_date=due,
            review_level=level,
            next_review_date=due,
        )
        fields.update(overrides)
        return Card(**fields)

    return _make_card
