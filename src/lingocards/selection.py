"""Selection of cards that are due for review on a channel."""

import logging
from typing import TYPE_CHECKING, Iterable, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, model_validator

from .core import Card, Channel, DateLike, as_date_string

if TYPE_CHECKING:
    from .database import CardStore

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "all"
NO_CATEGORY = "none"


class CategoryFilter(BaseModel):
    """Three-way category filter: every card, uncategorized cards, or one category."""

    mode: Literal["all", "none", "category"] = "all"
    category_id: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_category_id(self) -> "CategoryFilter":
        if self.mode == "category" and not self.category_id:
            raise ValueError("a category filter needs a category_id")
        if self.mode != "category" and self.category_id is not None:
            raise ValueError(f"category_id is not allowed with mode {self.mode!r}")
        return self

    @classmethod
    def all(cls) -> "CategoryFilter":
        return cls(mode="all")

    @classmethod
    def none(cls) -> "CategoryFilter":
        return cls(mode="none")

    @classmethod
    def for_category(cls, category_id: str) -> "CategoryFilter":
        return cls(mode="category", category_id=category_id)

    @classmethod
    def parse(cls, value: Optional[str]) -> "CategoryFilter":
        """Builds a filter from ``"all"``/None, ``"none"`` or a category id."""
        if value is None or value == ALL_CATEGORIES:
            return cls.all()
        if value == NO_CATEGORY:
            return cls.none()
        return cls.for_category(value)

    def matches(self, card: Card) -> bool:
        if self.mode == "all":
            return True
        if self.mode == "none":
            return not card.category_id
        return card.category_id == self.category_id

    def apply(self, cards: Iterable[Card]) -> List[Card]:
        return [card for card in cards if self.matches(card)]


def is_due(card: Card, channel: Union[Channel, str], reference_date: Optional[DateLike] = None) -> bool:
    """Tells whether a card is eligible for review on a channel.

    Level 0 cards are always due. Other cards are due once their next review
    date is on or before the reference date; both sides are ``YYYY-MM-DD``
    strings, so plain string comparison orders them by date.
    """
    reference = as_date_string(reference_date)
    level, next_date = card.channel_state(channel, reference)
    if level == 0:
        return True
    return next_date <= reference


def due_cards(
    cards: Iterable[Card],
    channel: Union[Channel, str],
    reference_date: Optional[DateLike] = None,
    category_filter: Optional[CategoryFilter] = None,
) -> List[Card]:
    """Returns the cards due on ``channel``, keeping their original order.

    Args:
        cards: The full card collection.
        channel: The channel to select for.
        reference_date: The day to select for. Defaults to today (UTC).
        category_filter: Optional category restriction. Defaults to all cards.

    Returns:
        The due subset of ``cards``.
    """
    channel = Channel(channel)
    reference = as_date_string(reference_date)
    category_filter = category_filter or CategoryFilter.all()
    selected = [
        card
        for card in cards
        if is_due(card, channel, reference) and category_filter.matches(card)
    ]
    logger.debug("Found %d cards due for %s review on %s", len(selected), channel.value, reference)
    return selected


def get_due(
    store: "CardStore",
    channel: Union[Channel, str],
    reference_date: Optional[DateLike] = None,
    category_filter: Optional[CategoryFilter] = None,
) -> List[Card]:
    """Loads the collection from ``store`` and returns the cards due on ``channel``.

    Legacy records missing channel fields are backfilled and written back
    before selection.
    """
    reference = as_date_string(reference_date)
    cards = store.read_all()
    backfilled = [card.backfill_channels(reference) for card in cards]
    if any(backfilled):
        logger.info("Backfilled channel fields on %d legacy cards", sum(backfilled))
        store.write_all(cards)
    return due_cards(cards, channel, reference, category_filter)
