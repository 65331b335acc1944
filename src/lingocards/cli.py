"""Command-line interface for LingoCards."""

import argparse
import json
import sys
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from .config import Settings, configure_logging
from .core import Card, Channel
from .database import CardStore, FlashcardDatabase
from .selection import ALL_CATEGORIES, NO_CATEGORY, CategoryFilter, due_cards
from .session import ReviewSession, card_sides
from .translate import TranslationServiceFactory


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="LingoCards: flashcards with separate reading, listening and speaking schedules"
    )
    parser.add_argument("--db", help="Path to the DuckDB file (default: LINGOCARDS_DB_PATH)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Add card command
    add_parser = subparsers.add_parser("add", help="Add a new card")
    add_parser.add_argument("text", help="Foreign-language text to learn")
    add_parser.add_argument("--translation", help="Translation (skips the translation service)")
    add_parser.add_argument("--category", help="Category id or name")
    add_parser.add_argument("--no-translate", action="store_true", help="Store the card without a translation")

    # Review command
    review_parser = subparsers.add_parser("review", help="Review due cards on one channel")
    review_parser.add_argument(
        "--channel", choices=[channel.value for channel in Channel], default=Channel.READING.value
    )
    review_parser.add_argument("--category", default=ALL_CATEGORIES, help="'all', 'none', or a category id or name")
    review_parser.add_argument("--no-shuffle", action="store_true", help="Keep stored order")

    # Due command
    subparsers.add_parser("due", help="Show how many cards are due on each channel")

    # List command
    list_parser = subparsers.add_parser("list", help="List cards, newest first")
    list_parser.add_argument("--search", default="", help="Filter by text or translation")
    list_parser.add_argument("--category", default=ALL_CATEGORIES, help="'all', 'none', or a category id or name")

    # Edit command
    edit_parser = subparsers.add_parser("edit", help="Edit a card")
    edit_parser.add_argument("card_id")
    edit_parser.add_argument("--text")
    edit_parser.add_argument("--translation")
    edit_parser.add_argument("--category", help="Category id or name, or 'none' to clear it")
    for channel in Channel:
        edit_parser.add_argument(f"--{channel.value}-level", type=int, choices=range(0, 6))

    # Delete command
    delete_parser = subparsers.add_parser("delete", help="Delete a card")
    delete_parser.add_argument("card_id")

    # Categories command
    categories_parser = subparsers.add_parser("categories", help="Manage categories")
    categories_sub = categories_parser.add_subparsers(dest="action")
    categories_sub.add_parser("list", help="List categories")
    cat_add = categories_sub.add_parser("add", help="Add a category")
    cat_add.add_argument("name")
    cat_add.add_argument("--color", default="#2563eb")
    cat_rename = categories_sub.add_parser("rename", help="Rename a category")
    cat_rename.add_argument("category")
    cat_rename.add_argument("name")
    cat_delete = categories_sub.add_parser("delete", help="Delete a category, keeping its cards")
    cat_delete.add_argument("category")

    # Stats command
    subparsers.add_parser("stats", help="Show collection statistics")

    # Export / import commands
    export_parser = subparsers.add_parser("export", help="Export cards and categories as JSON")
    export_parser.add_argument("path")
    import_parser = subparsers.add_parser("import", help="Import cards and categories from JSON")
    import_parser.add_argument("path")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    load_dotenv()
    settings = Settings.from_env()
    configure_logging(settings.log_level)

    db = FlashcardDatabase(args.db or settings.db_path)

    try:
        if args.command == "add":
            add_card(db, settings, args.text, args.translation, args.category, args.no_translate)
        elif args.command == "review":
            category_filter = resolve_category_filter(db, args.category)
            review_cards(db, Channel(args.channel), category_filter, shuffle=not args.no_shuffle and settings.shuffle)
        elif args.command == "due":
            show_due(db)
        elif args.command == "list":
            list_cards(db, args.search, resolve_category_filter(db, args.category))
        elif args.command == "edit":
            edit_card(db, args)
        elif args.command == "delete":
            delete_card(db, args.card_id)
        elif args.command == "categories":
            manage_categories(db, args)
        elif args.command == "stats":
            show_stats(db)
        elif args.command == "export":
            export_data(db, args.path)
        elif args.command == "import":
            import_data(db, args.path)
        else:
            parser.print_help()
            sys.exit(1)
    finally:
        db.close()


def _fail(message: str) -> None:
    print(f"Error: {message}")
    sys.exit(1)


def resolve_category_id(db: CardStore, value: str) -> str:
    """Finds a category by id or by name, exiting if there is none."""
    category = db.get_category(value) or db.find_category_by_name(value)
    if category is None:
        _fail(f"Unknown category: {value}")
    return category.id


def resolve_category_filter(db: CardStore, value: Optional[str]) -> CategoryFilter:
    if value in (None, ALL_CATEGORIES, NO_CATEGORY):
        return CategoryFilter.parse(value)
    return CategoryFilter.for_category(resolve_category_id(db, value))


def add_card(
    db: CardStore,
    settings: Settings,
    text: str,
    translation: Optional[str],
    category: Optional[str],
    no_translate: bool,
) -> None:
    """Add a new card to the database."""
    if not text.strip():
        _fail("Please enter text to translate")

    category_id = resolve_category_id(db, category) if category else None

    if translation is None and not no_translate:
        service = TranslationServiceFactory.create_service(
            settings.translator,
            api_key=settings.api_key_for(settings.translator),
            langpair=settings.langpair,
        )
        result = service.translate(text)
        translation = result.translation
        if not result.succeeded:
            print("Warning: translation failed, storing the card anyway")

    card = Card.new(text.strip(), translation or "", category_id=category_id)
    if not db.add_flashcard(card):
        _fail(f'A flashcard with the text "{text}" already exists.')

    print(f"Added card: {card.text}")
    print(f"Translation: {card.translation}")
    print(f"ID: {card.id}")


def review_cards(
    db: CardStore, channel: Channel, category_filter: CategoryFilter, shuffle: bool = True
) -> None:
    """Review due cards on one channel."""
    session = ReviewSession(db, channel, category_filter=category_filter, shuffle=shuffle)
    session.start()

    if session.finished:
        print("No cards due for review!")
        return

    print(f"Found {session.remaining} cards due for {channel.value} review")

    while not session.finished:
        card = session.current_card
        prompt, answer = card_sides(card, channel)

        print(f"\n--- {channel.value.title()} ({session.remaining} left) ---")
        print(prompt)
        if input("Press Enter to show the answer (q to quit): ").strip().lower() == "q":
            break

        session.reveal()
        print(f"Answer: {answer}")

        while True:
            choice = input("Did you get it? (y = Got it, n = Again, q = quit): ").strip().lower()
            if choice in ("y", "n", "q"):
                break
            print("Please answer y, n or q")
        if choice == "q":
            break

        result = session.judge(choice == "y")
        print(f"Level {result.level}, next review on {result.next_review_date}")

    session.close()
    print(f"\nReviewed {session.reviewed_count} cards, {session.remaining} still in the queue.")


def show_due(db: CardStore) -> None:
    cards = db.read_all()
    for channel in Channel:
        print(f"{channel.value.title()}: {len(due_cards(cards, channel))} cards due")


def list_cards(db: CardStore, search: str, category_filter: CategoryFilter) -> None:
    cards = db.search_flashcards(search, category_filter)
    if not cards:
        print("No flashcards found.")
        return
    names = {category.id: category.name for category in db.read_all_categories()}
    for card in cards:
        levels = " ".join(
            f"{channel.value[0].upper()}{card.channel_state(channel)[0]}" for channel in Channel
        )
        category = names.get(card.category_id, "-") if card.category_id else "-"
        print(f"{card.id}  {card.text} = {card.translation}  [{levels}]  ({category})")


def edit_card(db: CardStore, args: argparse.Namespace) -> None:
    levels = {}
    for channel in Channel:
        level = getattr(args, f"{channel.value}_level")
        if level is not None:
            levels[channel] = level

    clear_category = args.category == NO_CATEGORY
    category_id = None
    if args.category and not clear_category:
        category_id = resolve_category_id(db, args.category)

    card = db.edit_flashcard(
        args.card_id,
        text=args.text,
        translation=args.translation,
        category_id=category_id,
        clear_category=clear_category,
        levels=levels,
    )
    if card is None:
        _fail(f"Could not update flashcard {args.card_id}")
    print(f"Updated card: {card.text}")
    for channel in Channel:
        level, next_date = card.channel_state(channel)
        print(f"  {channel.value}: level {level}, next review on {next_date}")


def delete_card(db: CardStore, card_id: str) -> None:
    if not db.delete_flashcard(card_id):
        _fail(f"Could not delete flashcard {card_id}")
    print(f"Deleted card {card_id}")


def manage_categories(db: CardStore, args: argparse.Namespace) -> None:
    if args.action in (None, "list"):
        categories = db.read_all_categories()
        if not categories:
            print("No categories yet.")
        for category in categories:
            print(f"{category.id}  {category.name}  {category.color}")
    elif args.action == "add":
        category = db.add_category(args.name, args.color)
        if category is None:
            _fail("Could not save the category")
        print(f"Added category {category.name} ({category.id})")
    elif args.action == "rename":
        category = db.get_category(resolve_category_id(db, args.category))
        category.name = args.name
        if not db.update_category(category):
            _fail("Could not save the category")
        print(f"Renamed category to {category.name}")
    elif args.action == "delete":
        category_id = resolve_category_id(db, args.category)
        if not db.delete_category(category_id):
            _fail("Could not delete the category")
        print("Deleted category. Its flashcards are now uncategorized.")


def show_stats(db: CardStore) -> None:
    """Show collection statistics."""
    stats = db.get_stats()

    print("=== Flashcard Statistics ===")
    print(f"Total cards: {stats['total_cards']}")
    print(f"Categories: {stats['total_categories']}")
    print(f"Uncategorized cards: {stats['uncategorized_cards']}")
    for channel in Channel:
        print(f"Due for {channel.value}: {stats[f'due_{channel.value}']}")


def export_data(db: CardStore, path: str) -> None:
    data = db.export_all_data()
    with open(path, "w", encoding="utf-8") as handle:
        json.dump(data, handle, ensure_ascii=False, indent=2)
    print(f"Exported {len(data['flashcards'])} cards and {len(data['categories'])} categories to {path}")


def import_data(db: CardStore, path: str) -> None:
    try:
        with open(path, encoding="utf-8") as handle:
            data = json.load(handle)
        if not isinstance(data, dict):
            _fail(f"{path} is not a flashcard export")
        added_cards, added_categories = db.import_all_data(data)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        _fail(f"Could not import {path}: {e}")
    print(f"Imported {added_cards} cards and {added_categories} categories")


if __name__ == "__main__":
    main()
