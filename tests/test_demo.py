"""Unit tests for the demo module."""

from unittest.mock import MagicMock

import pytest

from lingocards.config import Settings
from lingocards.core import Card, Channel
from lingocards.database import InMemoryCardStore
from lingocards.demo import CHOICE_ALL, CHOICE_NONE, LingoCardsDemo
from lingocards.session import LISTENING_PROMPT
from lingocards.translate import Translation


class TestLingoCardsDemo:
    """Test suite for the LingoCardsDemo class."""

    @pytest.fixture
    def demo(self) -> LingoCardsDemo:
        """Fixture to create a LingoCardsDemo backed by an in-memory store."""
        translator = MagicMock()
        translator.translate.side_effect = lambda text: Translation(text=text, translation=f"<{text}>")
        demo_instance = LingoCardsDemo(
            store=InMemoryCardStore(),
            settings=Settings(shuffle=False),
            translator=translator,
        )
        yield demo_instance
        demo_instance.close()

    def test_translate_text(self, demo: LingoCardsDemo) -> None:
        assert demo.translate_text("halo") == "<halo>"
        assert demo.translate_text("  ") == "Please enter text to translate"

    def test_add_card_successfully(self, demo: LingoCardsDemo) -> None:
        result = demo.add_card(" rumah ", "house", CHOICE_NONE)

        assert result == "Added card: rumah\nTranslation: house"
        card = demo.db.read_all()[0]
        assert card.category_id is None
        for channel in Channel:
            assert card.channel_state(channel)[0] == 0

    def test_add_card_rejects_duplicates(self, demo: LingoCardsDemo) -> None:
        demo.add_card("rumah", "house")

        assert demo.add_card("Rumah", "home") == 'A flashcard with the text "Rumah" already exists.'
        assert len(demo.db.read_all()) == 1

    def test_add_card_with_category(self, demo: LingoCardsDemo) -> None:
        demo.add_category("Home")
        demo.add_card("rumah", "house", "Home")

        category = demo.db.find_category_by_name("Home")
        assert demo.db.read_all()[0].category_id == category.id
        assert demo.category_choices() == [CHOICE_ALL, CHOICE_NONE, "Home"]

    def test_reading_review_flow(self, demo: LingoCardsDemo) -> None:
        demo.add_card("rumah", "house")

        prompt, answer, status = demo.start_review(Channel.READING, CHOICE_ALL)
        assert (prompt, answer) == ("rumah", "")
        assert "Card 1 of 1" in status

        assert demo.reveal("reading")[1] == "house"

        prompt, answer, status = demo.judge(Channel.READING, True)
        assert prompt == ""
        assert status.startswith("All done! No more cards due for reading review.")
        assert "You reviewed 1 cards." in status
        assert demo.db.read_all()[0].reading_review_level == 1

    def test_channels_have_separate_sessions(self, demo: LingoCardsDemo) -> None:
        demo.add_card("rumah", "house")
        demo.start_review(Channel.READING)
        demo.judge(Channel.READING, True)

        prompt, _, _ = demo.start_review(Channel.LISTENING)
        assert prompt == LISTENING_PROMPT
        assert demo.reveal(Channel.LISTENING)[1] == "rumah - house"

        prompt, _, _ = demo.start_review(Channel.SPEAKING)
        assert prompt == "house"

    def test_start_review_filters_by_category(self, demo: LingoCardsDemo) -> None:
        demo.add_category("Home")
        demo.add_card("rumah", "house", "Home")
        demo.add_card("mobil", "car")

        prompt, _, _ = demo.start_review(Channel.READING, CHOICE_NONE)
        assert prompt == "mobil"
        assert demo.sessions[Channel.READING].remaining == 1

        prompt, _, _, choice = demo.review_all(Channel.READING)
        assert choice == CHOICE_ALL
        assert demo.sessions[Channel.READING].remaining == 2

    def test_poll_reading_picks_up_new_cards(self, demo: LingoCardsDemo) -> None:
        demo.start_review(Channel.READING)
        demo.add_card("baru", "new")

        prompt, _, _ = demo.poll_reading()

        assert prompt == "baru"

    def test_close_stops_polling(self, demo: LingoCardsDemo) -> None:
        demo.start_review(Channel.READING)
        demo.close()
        demo.add_card("baru", "new")

        prompt, _, status = demo.poll_reading()

        assert prompt == ""
        assert status.startswith("All done!")

    def test_review_after_unload_polls_again(self, demo: LingoCardsDemo) -> None:
        demo.start_review(Channel.READING)
        demo.close()
        demo.start_review(Channel.READING)
        demo.add_card("baru", "new")

        prompt, _, _ = demo.poll_reading()

        assert prompt == "baru"

    def test_list_cards(self, demo: LingoCardsDemo) -> None:
        demo.db.write_all(
            [
                Card.new("rumah", "house", today="2024-01-10"),
                Card.new("mobil", "car", today="2024-01-10"),
            ]
        )

        rows = demo.list_cards("car", CHOICE_ALL)

        assert rows == [
            [rows[0][0], "mobil", "car", CHOICE_NONE, "L0 (2024-01-10)", "L0 (2024-01-10)", "L0 (2024-01-10)", rows[0][-1]]
        ]

    def test_categories(self, demo: LingoCardsDemo) -> None:
        assert demo.add_category("  ") == "Please enter a category name."
        assert demo.add_category("Food") == "Added category: Food"
        assert demo.add_category("food") == "A category named food already exists."

        demo.add_card("nasi", "rice", "Food")
        assert demo.delete_category("Food") == "Deleted category Food. Its flashcards are now uncategorized."
        assert demo.db.read_all()[0].category_id is None
        assert demo.delete_category(CHOICE_NONE) == "Please choose a category to delete."

    def test_get_stats(self, demo: LingoCardsDemo) -> None:
        demo.add_card("rumah", "house")

        stats = demo.get_stats()

        assert stats.startswith("=== Flashcard Statistics ===")
        assert "Total cards: 1" in stats
        assert "Due for speaking: 1" in stats

    def test_edit_card(self, demo: LingoCardsDemo) -> None:
        demo.add_category("Home")
        demo.add_card("rumah", "house")
        card = demo.db.read_all()[0]

        result = demo.edit_card(card.id, "", " home ", "Home", None, 4, None)

        assert result == "Updated card: rumah"
        edited = demo.db.get_flashcard(card.id)
        assert edited.translation == "home"
        assert edited.category_id == demo.db.find_category_by_name("Home").id
        assert edited.listening_review_level == 4
        assert edited.reading_review_level == 0

        demo.edit_card(card.id, category_choice=CHOICE_NONE)
        assert demo.db.get_flashcard(card.id).category_id is None

    def test_edit_card_rejects_bad_input(self, demo: LingoCardsDemo) -> None:
        demo.add_card("rumah", "house")
        card_id = demo.db.read_all()[0].id

        assert demo.edit_card("  ") == "Please enter the ID of the card to edit."
        assert demo.edit_card(card_id, reading_level=7) == "The reading level must be a whole number from 0 to 5."
        assert demo.edit_card("missing", text="x") == "Could not update flashcard missing."

    def test_delete_card(self, demo: LingoCardsDemo) -> None:
        demo.add_card("rumah", "house")
        card_id = demo.db.read_all()[0].id

        assert demo.delete_card(card_id) == f"Deleted card {card_id}"
        assert demo.db.read_all() == []
        assert demo.delete_card(card_id) == f"Could not delete flashcard {card_id}."

    def test_export_and_import(self, demo: LingoCardsDemo, tmp_path) -> None:
        demo.add_category("Home")
        demo.add_card("rumah", "house", "Home")

        path = demo.export_data()

        other = LingoCardsDemo(store=InMemoryCardStore(), settings=Settings(), translator=MagicMock())
        assert other.import_data(path) == "Imported 1 cards and 1 categories"
        assert other.import_data(path) == "Imported 0 cards and 0 categories"
        assert [card.text for card in other.db.read_all()] == ["rumah"]

        bad = tmp_path / "bad.json"
        bad.write_text("[]", encoding="utf-8")
        assert other.import_data(str(bad)) == "That file is not a flashcard export."
        assert other.import_data(None) == "Please choose an export file to import."
