"""Storage for cards and categories."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Tuple

import duckdb
from pydantic import ValidationError

from .core import DEFAULT_CATEGORY_COLOR, Card, Category, Channel, DateLike, as_date_string, next_review_date
from .selection import CategoryFilter, due_cards

logger = logging.getLogger(__name__)

_CARD_COLUMNS: Tuple[str, ...] = (
    "id",
    "text",
    "translation",
    "category_id",
    "reading_review_level",
    "reading_next_review_date",
    "listening_review_level",
    "listening_next_review_date",
    "speaking_review_level",
    "speaking_next_review_date",
    "review_level",
    "next_review_date",
    "created_at",
)
_CATEGORY_COLUMNS: Tuple[str, ...] = ("id", "name", "color")


class CardStore(ABC):
    """Whole-collection store for cards and categories.

    Subclasses only implement the four read/write primitives. Every other
    operation reads the full collection, changes it in memory and writes it
    back, so the last writer wins.
    """

    @abstractmethod
    def read_all(self) -> List[Card]:
        """Returns every stored card, or an empty list if the store cannot be read."""

    @abstractmethod
    def write_all(self, cards: Sequence[Card]) -> bool:
        """Replaces the stored cards. Returns False if the write failed."""

    @abstractmethod
    def read_all_categories(self) -> List[Category]:
        """Returns every stored category, or an empty list if the store cannot be read."""

    @abstractmethod
    def write_all_categories(self, categories: Sequence[Category]) -> bool:
        """Replaces the stored categories. Returns False if the write failed."""

    def add_flashcard(self, card: Card) -> bool:
        """Adds a card unless one with the same text already exists.

        Texts are compared after stripping whitespace and ignoring case.

        Returns:
            True if the card was stored, False for a duplicate or a failed write.
        """
        cards = self.read_all()
        if any(existing.normalized_text == card.normalized_text for existing in cards):
            logger.info("A flashcard with the text %r already exists", card.text)
            return False
        cards.append(card)
        return self.write_all(cards)

    def get_flashcard(self, card_id: str) -> Optional[Card]:
        return next((card for card in self.read_all() if card.id == card_id), None)

    def update_flashcard(self, updated_card: Card) -> bool:
        """Replaces the stored card that has the same id.

        Returns:
            False if no card has that id (nothing is written) or the write failed.
        """
        cards = self.read_all()
        for index, card in enumerate(cards):
            if card.id == updated_card.id:
                cards[index] = updated_card
                return self.write_all(cards)
        logger.error("Could not find flashcard to update: %s", updated_card.id)
        return False

    def edit_flashcard(
        self,
        card_id: str,
        *,
        text: Optional[str] = None,
        translation: Optional[str] = None,
        category_id: Optional[str] = None,
        clear_category: bool = False,
        levels: Optional[Dict[Channel, int]] = None,
        today: Optional[DateLike] = None,
    ) -> Optional[Card]:
        """Applies a manual edit to a card.

        Each channel given in ``levels`` gets that level and a next review date
        recomputed from today. Editing reading also updates the legacy pair.

        Returns:
            The edited card, or None if the id is unknown or the write failed.
        """
        card = self.get_flashcard(card_id)
        if card is None:
            logger.error("Could not find flashcard to edit: %s", card_id)
            return None

        reference = as_date_string(today)
        card.backfill_channels(reference)
        if text is not None:
            card.text = text
        if translation is not None:
            card.translation = translation
        if clear_category:
            card.category_id = None
        elif category_id is not None:
            card.category_id = category_id
        for channel, level in (levels or {}).items():
            channel = Channel(channel)
            card.set_channel_state(channel, level, next_review_date(level, reference))

        return card if self.update_flashcard(card) else None

    def delete_flashcard(self, card_id: str) -> bool:
        cards = self.read_all()
        remaining = [card for card in cards if card.id != card_id]
        if len(remaining) == len(cards):
            return False
        return self.write_all(remaining)

    def get_flashcards_by_category(self, category_filter: CategoryFilter) -> List[Card]:
        return category_filter.apply(self.read_all())

    def search_flashcards(
        self, term: str = "", category_filter: Optional[CategoryFilter] = None
    ) -> List[Card]:
        """Finds cards whose text or translation contains ``term``, newest first."""
        needle = term.strip().lower()
        cards = (category_filter or CategoryFilter.all()).apply(self.read_all())
        matches = [
            card
            for card in cards
            if needle in card.text.lower() or needle in card.translation.lower()
        ]
        return sorted(matches, key=lambda card: card.created_at, reverse=True)

    def add_category(self, name: str, color: str = DEFAULT_CATEGORY_COLOR) -> Optional[Category]:
        category = Category(name=name, color=color)
        categories = self.read_all_categories()
        categories.append(category)
        return category if self.write_all_categories(categories) else None

    def get_category(self, category_id: str) -> Optional[Category]:
        return next(
            (category for category in self.read_all_categories() if category.id == category_id),
            None,
        )

    def find_category_by_name(self, name: str) -> Optional[Category]:
        wanted = name.strip().lower()
        return next(
            (category for category in self.read_all_categories() if category.name.lower() == wanted),
            None,
        )

    def update_category(self, updated_category: Category) -> bool:
        categories = self.read_all_categories()
        for index, category in enumerate(categories):
            if category.id == updated_category.id:
                categories[index] = updated_category
                return self.write_all_categories(categories)
        return False

    def delete_category(self, category_id: str) -> bool:
        """Deletes a category and makes its cards uncategorized.

        Cards are never deleted along with their category.
        """
        categories = self.read_all_categories()
        remaining = [category for category in categories if category.id != category_id]
        if len(remaining) == len(categories):
            return False
        if not self.write_all_categories(remaining):
            return False

        cards = self.read_all()
        orphaned = [card for card in cards if card.category_id == category_id]
        for card in orphaned:
            card.category_id = None
        if orphaned:
            return self.write_all(cards)
        return True

    def export_all_data(self) -> Dict[str, List[Dict[str, Any]]]:
        """Returns all cards and categories as camelCase JSON-ready dicts."""
        return {
            "flashcards": [card.model_dump(by_alias=True) for card in self.read_all()],
            "categories": [category.model_dump(by_alias=True) for category in self.read_all_categories()],
        }

    def import_all_data(self, data: Dict[str, Any]) -> Tuple[int, int]:
        """Merges an export into the store.

        Categories with an id already present and cards whose text duplicates
        an existing card are skipped.

        Returns:
            The number of (cards, categories) added.

        Raises:
            pydantic.ValidationError: If a record in ``data`` is malformed.
        """
        incoming_categories = [Category.model_validate(item) for item in data.get("categories", [])]
        incoming_cards = [Card.model_validate(item) for item in data.get("flashcards", [])]

        categories = self.read_all_categories()
        known_ids = {category.id for category in categories}
        new_categories = [category for category in incoming_categories if category.id not in known_ids]
        if new_categories:
            self.write_all_categories(categories + new_categories)

        cards = self.read_all()
        seen = {card.normalized_text for card in cards}
        new_cards = []
        for card in incoming_cards:
            if card.normalized_text in seen:
                continue
            seen.add(card.normalized_text)
            new_cards.append(card)
        if new_cards:
            self.write_all(cards + new_cards)

        return len(new_cards), len(new_categories)

    def get_stats(self, today: Optional[DateLike] = None) -> Dict[str, Any]:
        """Returns collection totals and the number of due cards per channel."""
        reference = as_date_string(today)
        cards = self.read_all()
        stats: Dict[str, Any] = {
            "total_cards": len(cards),
            "total_categories": len(self.read_all_categories()),
            "uncategorized_cards": len(CategoryFilter.none().apply(cards)),
        }
        for channel in Channel:
            stats[f"due_{channel.value}"] = len(due_cards(cards, channel, reference))
        return stats


class InMemoryCardStore(CardStore):
    """A card store held in process memory.

    Records are copied on every read and write, so callers only see changes
    once they are written back.
    """

    def __init__(
        self,
        cards: Optional[Sequence[Card]] = None,
        categories: Optional[Sequence[Category]] = None,
    ):
        self._cards: List[Card] = [card.model_copy(deep=True) for card in cards or []]
        self._categories: List[Category] = [category.model_copy(deep=True) for category in categories or []]

    def read_all(self) -> List[Card]:
        return [card.model_copy(deep=True) for card in self._cards]

    def write_all(self, cards: Sequence[Card]) -> bool:
        self._cards = [card.model_copy(deep=True) for card in cards]
        return True

    def read_all_categories(self) -> List[Category]:
        return [category.model_copy(deep=True) for category in self._categories]

    def write_all_categories(self, categories: Sequence[Category]) -> bool:
        self._categories = [category.model_copy(deep=True) for category in categories]
        return True


class FlashcardDatabase(CardStore):
    """Manages a DuckDB database holding cards and categories.

    The database keeps the order in which cards were written, so reads return
    the collection exactly as it was last saved.
    """

    def __init__(self, db_path: Optional[str] = None):
        """Initializes the FlashcardDatabase connection.

        Args:
            db_path: Optional path to a DuckDB file. If None, an in-memory database is used.
        """
        self.db_path = db_path or ":memory:"
        self.connection = duckdb.connect(self.db_path)
        self._create_tables()

    def _create_tables(self) -> None:
        """Creates the flashcards and categories tables if they do not exist."""
        self.connection.execute(
            """
            CREATE TABLE IF NOT EXISTS flashcards (
                position INTEGER NOT NULL,
                id VARCHAR NOT NULL,
                text VARCHAR NOT NULL,
                translation VARCHAR NOT NULL DEFAULT '',
                category_id VARCHAR,
                reading_review_level INTEGER,
                reading_next_review_date VARCHAR,
                listening_review_level INTEGER,
                listening_next_review_date VARCHAR,
                speaking_review_level INTEGER,
                speaking_next_review_date VARCHAR,
                review_level INTEGER NOT NULL DEFAULT 0,
                next_review_date VARCHAR,
                created_at VARCHAR NOT NULL
            )
        """
        )

        self.connection.execute(
            """
            CREATE TABLE IF NOT EXISTS categories (
                position INTEGER NOT NULL,
                id VARCHAR NOT NULL,
                name VARCHAR NOT NULL,
                color VARCHAR NOT NULL
            )
        """
        )

    def read_all(self) -> List[Card]:
        try:
            rows = self.connection.execute(
                f"SELECT {', '.join(_CARD_COLUMNS)} FROM flashcards ORDER BY position"
            ).fetchall()
            return [Card(**dict(zip(_CARD_COLUMNS, row))) for row in rows]
        except (duckdb.Error, ValidationError):
            logger.exception("Could not read flashcards from %s", self.db_path)
            return []

    def write_all(self, cards: Sequence[Card]) -> bool:
        rows = [
            (position, *(getattr(card, column) for column in _CARD_COLUMNS))
            for position, card in enumerate(cards)
        ]
        placeholders = ", ".join("?" for _ in range(len(_CARD_COLUMNS) + 1))
        return self._replace_table(
            "flashcards",
            f"INSERT INTO flashcards (position, {', '.join(_CARD_COLUMNS)}) VALUES ({placeholders})",
            rows,
        )

    def read_all_categories(self) -> List[Category]:
        try:
            rows = self.connection.execute(
                f"SELECT {', '.join(_CATEGORY_COLUMNS)} FROM categories ORDER BY position"
            ).fetchall()
            return [Category(**dict(zip(_CATEGORY_COLUMNS, row))) for row in rows]
        except (duckdb.Error, ValidationError):
            logger.exception("Could not read categories from %s", self.db_path)
            return []

    def write_all_categories(self, categories: Sequence[Category]) -> bool:
        rows = [
            (position, category.id, category.name, category.color)
            for position, category in enumerate(categories)
        ]
        return self._replace_table(
            "categories",
            "INSERT INTO categories (position, id, name, color) VALUES (?, ?, ?, ?)",
            rows,
        )

    def _replace_table(self, table: str, insert_sql: str, rows: List[Tuple[Any, ...]]) -> bool:
        """Replaces every row of ``table`` inside a single transaction."""
        try:
            self.connection.begin()
            self.connection.execute(f"DELETE FROM {table}")
            if rows:
                self.connection.executemany(insert_sql, rows)
            self.connection.commit()
            return True
        except duckdb.Error:
            logger.exception("Could not write %s to %s", table, self.db_path)
            try:
                self.connection.rollback()
            except duckdb.Error:
                logger.debug("No transaction to roll back on %s", self.db_path)
            return False

    def close(self) -> None:
        """Closes the database connection."""
        self.connection.close()

    def __enter__(self) -> "FlashcardDatabase":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
