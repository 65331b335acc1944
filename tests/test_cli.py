"""Unit tests for the command-line interface."""

import argparse
import json
from typing import List

import pytest

from lingocards.cli import main, manage_categories
from lingocards.core import Category, Channel
from lingocards.database import FlashcardDatabase, InMemoryCardStore

ENV_VARS = (
    "LINGOCARDS_DB_PATH",
    "LINGOCARDS_TRANSLATOR",
    "LINGOCARDS_LANGPAIR",
    "LINGOCARDS_SHUFFLE",
    "LINGOCARDS_POLL_SECONDS",
    "LOG_LEVEL",
)


@pytest.fixture
def db_path(tmp_path, monkeypatch) -> str:
    monkeypatch.chdir(tmp_path)
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return str(tmp_path / "cards.duckdb")


def _answers(monkeypatch, answers: List[str]) -> None:
    replies = iter(answers)
    monkeypatch.setattr("builtins.input", lambda prompt="": next(replies))


def _cards(db_path: str):
    with FlashcardDatabase(db_path) as db:
        return db.read_all()


class TestCli:
    def test_no_command_prints_help(self, db_path, capsys) -> None:
        with pytest.raises(SystemExit) as exc:
            main([])
        assert exc.value.code == 1
        assert "usage" in capsys.readouterr().out

    def test_add_card(self, db_path, capsys) -> None:
        main(["--db", db_path, "add", "rumah", "--translation", "house"])

        out = capsys.readouterr().out
        assert "Added card: rumah" in out
        assert "Translation: house" in out
        assert [card.text for card in _cards(db_path)] == ["rumah"]

    def test_add_duplicate_fails(self, db_path, capsys) -> None:
        main(["--db", db_path, "add", "rumah", "--translation", "house"])

        with pytest.raises(SystemExit):
            main(["--db", db_path, "add", "Rumah", "--no-translate"])

        assert 'A flashcard with the text "Rumah" already exists.' in capsys.readouterr().out

    def test_review_success_and_failure(self, db_path, monkeypatch, capsys) -> None:
        main(["--db", db_path, "add", "rumah", "--translation", "house"])
        main(["--db", db_path, "add", "mobil", "--translation", "car"])
        _answers(monkeypatch, ["", "y", "", "n", "", "q"])

        main(["--db", db_path, "review", "--channel", "speaking", "--no-shuffle"])

        out = capsys.readouterr().out
        assert "Found 2 cards due for speaking review" in out
        assert "Answer: rumah" in out
        assert "Reviewed 2 cards, 1 still in the queue." in out
        levels = {card.text: card.channel_state(Channel.SPEAKING)[0] for card in _cards(db_path)}
        assert levels == {"rumah": 1, "mobil": 0}
        assert all(card.reading_review_level == 0 for card in _cards(db_path))

    def test_review_with_nothing_due(self, db_path, capsys) -> None:
        main(["--db", db_path, "review"])
        assert "No cards due for review!" in capsys.readouterr().out

    def test_categories_and_list(self, db_path, capsys) -> None:
        main(["--db", db_path, "categories", "add", "Home"])
        main(["--db", db_path, "add", "rumah", "--translation", "house", "--category", "home"])
        main(["--db", db_path, "add", "mobil", "--translation", "car"])
        capsys.readouterr()

        main(["--db", db_path, "list", "--category", "Home"])
        out = capsys.readouterr().out
        assert "rumah = house  [R0 L0 S0]  (Home)" in out
        assert "mobil" not in out

        main(["--db", db_path, "categories", "delete", "Home"])
        main(["--db", db_path, "list", "--category", "none"])
        out = capsys.readouterr().out
        assert "rumah" in out
        assert "mobil" in out

    def test_unknown_category_fails(self, db_path, capsys) -> None:
        with pytest.raises(SystemExit):
            main(["--db", db_path, "list", "--category", "nowhere"])
        assert "Error: Unknown category: nowhere" in capsys.readouterr().out

    def test_edit_and_delete(self, db_path, capsys) -> None:
        main(["--db", db_path, "add", "rumah", "--translation", "house"])
        card_id = _cards(db_path)[0].id

        main(["--db", db_path, "edit", card_id, "--translation", "home", "--listening-level", "4"])
        card = _cards(db_path)[0]
        assert card.translation == "home"
        assert card.listening_review_level == 4
        assert card.reading_review_level == 0

        main(["--db", db_path, "delete", card_id])
        assert _cards(db_path) == []
        assert f"Deleted card {card_id}" in capsys.readouterr().out

    def test_export_and_import(self, db_path, tmp_path, capsys) -> None:
        main(["--db", db_path, "add", "rumah", "--translation", "house"])
        export_path = str(tmp_path / "export.json")
        main(["--db", db_path, "export", export_path])

        with open(export_path, encoding="utf-8") as handle:
            data = json.load(handle)
        assert data["flashcards"][0]["text"] == "rumah"

        other_db = str(tmp_path / "other.duckdb")
        main(["--db", other_db, "import", export_path])
        main(["--db", other_db, "import", export_path])

        out = capsys.readouterr().out
        assert "Imported 1 cards and 0 categories" in out
        assert "Imported 0 cards and 0 categories" in out

    def test_import_rejects_non_export(self, db_path, tmp_path, capsys) -> None:
        path = tmp_path / "bad.json"
        path.write_text("[1, 2, 3]", encoding="utf-8")

        with pytest.raises(SystemExit):
            main(["--db", db_path, "import", str(path)])
        assert "is not a flashcard export" in capsys.readouterr().out

    def test_stats_and_due(self, db_path, capsys) -> None:
        main(["--db", db_path, "add", "rumah", "--translation", "house"])
        capsys.readouterr()

        main(["--db", db_path, "stats"])
        main(["--db", db_path, "due"])

        out = capsys.readouterr().out
        assert "Total cards: 1" in out
        assert "Listening: 1 cards due" in out


class ReadOnlyCategoryStore(InMemoryCardStore):
    def write_all_categories(self, categories) -> bool:
        return False


class TestManageCategories:
    def test_rename(self, db_path, capsys) -> None:
        main(["--db", db_path, "categories", "add", "Home"])
        main(["--db", db_path, "categories", "rename", "home", "Rumah"])

        assert "Renamed category to Rumah" in capsys.readouterr().out
        with FlashcardDatabase(db_path) as db:
            assert [category.name for category in db.read_all_categories()] == ["Rumah"]

    def test_rename_reports_failed_write(self, capsys) -> None:
        store = ReadOnlyCategoryStore()
        InMemoryCardStore.write_all_categories(store, [Category(name="Home")])

        with pytest.raises(SystemExit):
            manage_categories(store, argparse.Namespace(action="rename", category="Home", name="Rumah"))

        out = capsys.readouterr().out
        assert "Error: Could not save the category" in out
        assert "Renamed" not in out
        assert store.read_all_categories()[0].name == "Home"
