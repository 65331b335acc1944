"""Unit tests for due-card selection and category filters."""

import pytest
from pydantic import ValidationError

from lingocards.core import Card, Channel
from lingocards.database import InMemoryCardStore
from lingocards.selection import CategoryFilter, due_cards, get_due, is_due

TODAY = "2024-01-05"


class TestIsDue:
    def test_level_zero_is_due_for_any_date(self, make_card) -> None:
        card = make_card("baru", level=0, due="2099-12-31")
        for reference in ("1999-01-01", "2024-01-05", "2099-12-31"):
            assert is_due(card, Channel.READING, reference)

    def test_past_and_same_day_dates_are_due(self, make_card) -> None:
        assert is_due(make_card("a", level=3, due="2024-01-01"), Channel.READING, TODAY)
        assert is_due(make_card("b", level=3, due=TODAY), Channel.READING, TODAY)

    def test_future_date_with_nonzero_level_is_not_due(self, make_card) -> None:
        assert not is_due(make_card("c", level=1, due="2024-01-06"), Channel.READING, TODAY)

    def test_channels_are_independent(self, make_card) -> None:
        card = make_card(
            "d",
            level=2,
            due="2024-02-01",
            listening_review_level=2,
            listening_next_review_date="2024-01-02",
        )
        assert not is_due(card, Channel.READING, TODAY)
        assert is_due(card, Channel.LISTENING, TODAY)
        assert not is_due(card, Channel.SPEAKING, TODAY)


class TestDueCards:
    def test_level_zero_and_date_rule_both_select(self, make_card) -> None:
        card_a = make_card("A", level=0, due="2030-06-01")
        card_b = make_card("B", level=3, due="2024-01-01")
        card_c = make_card("C", level=2, due="2024-01-09")

        due = due_cards([card_a, card_b, card_c], Channel.READING, TODAY)

        assert [card.text for card in due] == ["A", "B"]

    def test_none_filter_returns_only_uncategorized(self, make_card) -> None:
        cards = [
            make_card("x", category_id="food"),
            make_card("y"),
            make_card("z", category_id="travel"),
            make_card("w"),
        ]

        due = due_cards(cards, Channel.SPEAKING, TODAY, CategoryFilter.none())

        assert [card.text for card in due] == ["y", "w"]

    def test_specific_category_filter(self, make_card) -> None:
        cards = [make_card("x", category_id="food"), make_card("y"), make_card("z", category_id="food")]

        due = due_cards(cards, Channel.LISTENING, TODAY, CategoryFilter.for_category("food"))

        assert [card.text for card in due] == ["x", "z"]


class TestCategoryFilter:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (None, CategoryFilter(mode="all")),
            ("all", CategoryFilter(mode="all")),
            ("none", CategoryFilter(mode="none")),
            ("abc", CategoryFilter(mode="category", category_id="abc")),
        ],
    )
    def test_parse(self, value, expected) -> None:
        assert CategoryFilter.parse(value) == expected

    def test_category_mode_requires_an_id(self) -> None:
        with pytest.raises(ValidationError):
            CategoryFilter(mode="category")


class TestGetDue:
    def test_backfills_and_persists_legacy_cards(self) -> None:
        legacy = Card(text="lama", review_level=2, next_review_date="2024-01-01")
        store = InMemoryCardStore([legacy])

        due = get_due(store, Channel.LISTENING, TODAY)

        assert [card.text for card in due] == ["lama"]
        stored = store.get_flashcard(legacy.id)
        assert stored.listening_review_level == 2
        assert stored.listening_next_review_date == "2024-01-01"
        assert stored.speaking_review_level == 2

    def test_does_not_write_when_nothing_changes(self, make_card) -> None:
        store = InMemoryCardStore([make_card("a")])
        original_write = store.write_all
        calls = []
        store.write_all = lambda cards: calls.append(cards) or original_write(cards)

        get_due(store, Channel.READING, TODAY)

        assert calls == []

    def test_unreadable_store_yields_no_cards(self) -> None:
        class BrokenStore(InMemoryCardStore):
            def read_all(self):
                return []

        assert get_due(BrokenStore(), Channel.READING, TODAY) == []
