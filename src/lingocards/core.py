"""Core classes for the LingoCards multi-channel spaced repetition system."""

import logging
import uuid
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

if TYPE_CHECKING:
    from .database import CardStore

logger = logging.getLogger(__name__)

MIN_LEVEL = 0
MAX_LEVEL = 5

# Review delay in days for each mastery level. Shared by every channel.
LEVEL_INTERVAL_DAYS: Dict[int, int] = {
    0: 0,
    1: 1,
    2: 3,
    3: 5,
    4: 10,
    5: 24,
}

DATE_FORMAT = "%Y-%m-%d"
DEFAULT_CATEGORY_COLOR = "#2563eb"

DateLike = Union[date, datetime, str]


class Channel(str, Enum):
    """A skill dimension scheduled independently for every card."""

    READING = "reading"
    LISTENING = "listening"
    SPEAKING = "speaking"

    @property
    def level_field(self) -> str:
        return f"{self.value}_review_level"

    @property
    def date_field(self) -> str:
        return f"{self.value}_next_review_date"


def today_utc() -> date:
    """Returns the current calendar date in UTC."""
    return datetime.now(timezone.utc).date()


def as_date_string(value: Optional[DateLike] = None) -> str:
    """Normalizes a date, datetime or ISO string to ``YYYY-MM-DD``.

    Args:
        value: The value to normalize. None means today (UTC).

    Returns:
        The calendar date part, with any time-of-day component dropped.

    Raises:
        ValueError: If a string value does not start with a valid date.
    """
    if value is None:
        return today_utc().strftime(DATE_FORMAT)
    if isinstance(value, datetime):
        return value.date().strftime(DATE_FORMAT)
    if isinstance(value, date):
        return value.strftime(DATE_FORMAT)
    head = str(value).strip()[:10]
    return datetime.strptime(head, DATE_FORMAT).strftime(DATE_FORMAT)


def days_for_level(level: Optional[int]) -> int:
    """Returns the review delay for a mastery level.

    Levels outside 0-5 (and unset levels) fall back to 0 days, the same
    delay as a brand new card.
    """
    return LEVEL_INTERVAL_DAYS.get(level, 0) if level is not None else 0


def next_level(level: Optional[int], success: bool) -> int:
    """Computes the level that follows a review outcome.

    Args:
        level: The current level. None counts as level 0.
        success: Whether the card was recalled.

    Returns:
        1 after a success from level 0, ``min(level + 1, 5)`` after any other
        success, and 0 after any failure.
    """
    if not success:
        return MIN_LEVEL
    current = level or MIN_LEVEL
    if current == MIN_LEVEL:
        return 1
    return min(current + 1, MAX_LEVEL)


def next_review_date(level: Optional[int], reference_date: Optional[DateLike] = None) -> str:
    """Returns the reference date shifted by the delay of ``level``."""
    start = datetime.strptime(as_date_string(reference_date), DATE_FORMAT).date()
    return (start + timedelta(days=days_for_level(level))).strftime(DATE_FORMAT)


def schedule(
    level: Optional[int], success: bool, reference_date: Optional[DateLike] = None
) -> Tuple[int, str]:
    """Transitions one channel's (level, next review date) pair."""
    new_level = next_level(level, success)
    return new_level, next_review_date(new_level, reference_date)


class _CamelModel(BaseModel):
    """Base model that reads and writes camelCase keys for stored records."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )


class Category(_CamelModel):
    """A user-defined group of cards.

    Attributes:
        id: Unique identifier for the category.
        name: Display name.
        color: Display color as a hex string.
    """

    id: str = Field(
        default_factory=lambda: uuid.uuid4().hex,
        description="Unique identifier for the category",
    )
    name: str = Field(..., min_length=1, description="Display name")
    color: str = Field(default=DEFAULT_CATEGORY_COLOR, description="Display color")

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("category name must not be blank")
        return value


class Card(_CamelModel):
    """Represents a flashcard scheduled on three independent channels.

    Per-channel fields are optional so that records written before the
    listening and speaking channels existed still load; use
    :meth:`backfill_channels` to fill them in. The legacy ``review_level`` and
    ``next_review_date`` pair mirrors the reading channel.

    Attributes:
        id: Unique identifier for the card.
        text: Foreign-language text to learn.
        translation: Translation of ``text``.
        category_id: Optional reference to a :class:`Category`.
        created_at: ISO timestamp of creation.
    """

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Unique identifier for the card",
    )
    text: str = Field(..., description="Foreign-language text")
    translation: str = Field(default="", description="Translation of the text")
    category_id: Optional[str] = Field(default=None, description="Category reference")

    reading_review_level: Optional[int] = Field(default=None, ge=MIN_LEVEL, le=MAX_LEVEL)
    reading_next_review_date: Optional[str] = None
    listening_review_level: Optional[int] = Field(default=None, ge=MIN_LEVEL, le=MAX_LEVEL)
    listening_next_review_date: Optional[str] = None
    speaking_review_level: Optional[int] = Field(default=None, ge=MIN_LEVEL, le=MAX_LEVEL)
    speaking_next_review_date: Optional[str] = None

    review_level: int = Field(default=MIN_LEVEL, ge=MIN_LEVEL, le=MAX_LEVEL)
    next_review_date: Optional[str] = None

    created_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
        description="Card creation timestamp",
    )

    @field_validator(
        "reading_next_review_date",
        "listening_next_review_date",
        "speaking_next_review_date",
        "next_review_date",
        mode="before",
    )
    @classmethod
    def _normalize_date(cls, value: Any) -> Optional[str]:
        if value is None or value == "":
            return None
        return as_date_string(value)

    @field_validator("category_id", mode="before")
    @classmethod
    def _empty_category_is_none(cls, value: Any) -> Optional[str]:
        return value or None

    @classmethod
    def new(
        cls,
        text: str,
        translation: str = "",
        category_id: Optional[str] = None,
        today: Optional[DateLike] = None,
    ) -> "Card":
        """Creates a card with every channel at level 0, due today."""
        due = as_date_string(today)
        return cls(
            text=text,
            translation=translation,
            category_id=category_id,
            reading_review_level=MIN_LEVEL,
            reading_next_review_date=due,
            listening_review_level=MIN_LEVEL,
            listening_next_review_date=due,
            speaking_review_level=MIN_LEVEL,
            speaking_next_review_date=due,
            review_level=MIN_LEVEL,
            next_review_date=due,
        )

    @property
    def normalized_text(self) -> str:
        return self.text.strip().lower()

    def channel_state(
        self, channel: Union[Channel, str], today: Optional[DateLike] = None
    ) -> Tuple[int, str]:
        """Returns the (level, next review date) pair for a channel.

        Missing values are inherited without modifying the card: reading
        falls back to the legacy pair, listening and speaking fall back to
        reading, and anything still unset becomes level 0 due ``today``.
        """
        channel = Channel(channel)
        reading_level = self.reading_review_level
        if reading_level is None:
            reading_level = self.review_level
        reading_date = self.reading_next_review_date or self.next_review_date
        if reading_date is None:
            reading_date = as_date_string(today)

        if channel is Channel.READING:
            return reading_level, reading_date

        level = getattr(self, channel.level_field)
        next_date = getattr(self, channel.date_field)
        return (
            reading_level if level is None else level,
            reading_date if next_date is None else next_date,
        )

    def backfill_channels(self, today: Optional[DateLike] = None) -> bool:
        """Fills in channel fields missing from legacy records.

        Returns:
            True if any field was filled in and the card should be persisted.
        """
        changed = False
        for channel in Channel:
            level, next_date = self.channel_state(channel, today)
            if getattr(self, channel.level_field) is None:
                setattr(self, channel.level_field, level)
                changed = True
            if getattr(self, channel.date_field) is None:
                setattr(self, channel.date_field, next_date)
                changed = True
        return changed

    def set_channel_state(self, channel: Union[Channel, str], level: int, next_date: str) -> None:
        """Stores a channel's level and date, mirroring reading into the legacy pair."""
        channel = Channel(channel)
        setattr(self, channel.level_field, level)
        setattr(self, channel.date_field, next_date)
        if channel is Channel.READING:
            self.review_level = level
            self.next_review_date = next_date


class ReviewResult(BaseModel):
    """Outcome of recording a review on one channel.

    Attributes:
        card_id: The ID of the card that was judged.
        channel: The channel the review was recorded on.
        success: Whether the card was recalled.
        previous_level: Level before the review, None if the card was not found.
        level: Level after the review, None if the card was not found.
        next_review_date: Next eligible date, None if the card was not found.
        applied: False when nothing was written (unknown id or a failed write).
    """

    card_id: str
    channel: Channel
    success: bool
    previous_level: Optional[int] = None
    level: Optional[int] = None
    next_review_date: Optional[str] = None
    applied: bool = False


class ChannelScheduler:
    """Records review outcomes for any channel against an injected card store."""

    def __init__(self, store: "CardStore"):
        self.store = store

    def record_outcome(
        self,
        channel: Union[Channel, str],
        card_id: str,
        success: bool,
        today: Optional[DateLike] = None,
    ) -> ReviewResult:
        """Applies a pass/fail outcome to one channel of a stored card.

        The whole collection is read, the card updated in memory, and the
        collection written back. An unknown ``card_id`` is not an error: the
        store is left untouched and the result reports ``applied=False``.

        Args:
            channel: The channel being reviewed.
            card_id: ID of the judged card.
            success: Whether the card was recalled.
            today: Reference date for the next review. Defaults to today (UTC).

        Returns:
            A :class:`ReviewResult` describing the transition.
        """
        channel = Channel(channel)
        reference = as_date_string(today)
        cards = self.store.read_all()
        card = next((c for c in cards if c.id == card_id), None)
        if card is None:
            logger.warning("Could not find flashcard %s to record a %s review", card_id, channel.value)
            return ReviewResult(card_id=card_id, channel=channel, success=success)

        card.backfill_channels(reference)
        previous_level, _ = card.channel_state(channel, reference)
        level, next_date = schedule(previous_level, success, reference)
        card.set_channel_state(channel, level, next_date)
        applied = self.store.write_all(cards)

        logger.debug(
            "Updated card %r %s level %s -> %s, next review on %s",
            card.text,
            channel.value,
            previous_level,
            level,
            next_date,
        )
        return ReviewResult(
            card_id=card_id,
            channel=channel,
            success=success,
            previous_level=previous_level,
            level=level,
            next_review_date=next_date,
            applied=applied,
        )
