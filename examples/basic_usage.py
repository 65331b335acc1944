#!/usr/bin/env python3
"""Basic usage example for LingoCards."""

from lingocards import CategoryFilter, Channel, FlashcardDatabase, ReviewSession
from lingocards.core import Card
from lingocards.session import card_sides


def main() -> None:
    """Demonstrate basic LingoCards functionality."""
    print("🎯 LingoCards Basic Usage Example")
    print("=" * 50)

    db = FlashcardDatabase()

    try:
        print("\n📝 Creating sample cards...")
        food = db.add_category("Food")

        cards_data = [
            ("nasi goreng", "fried rice", food.id),
            ("terima kasih", "thank you", None),
            ("selamat pagi", "good morning", None),
        ]
        for text, translation, category_id in cards_data:
            db.add_flashcard(Card.new(text, translation, category_id=category_id))
            print(f"   ✅ Added: {text} = {translation}")

        print("\n📊 Initial statistics:")
        stats = db.get_stats()
        print(f"   Total cards: {stats['total_cards']}")
        for channel in Channel:
            print(f"   Due for {channel.value}: {stats[f'due_{channel.value}']}")

        # Reading: recall the first card, fail the second
        print("\n📖 Reading review (all categories)")
        session = ReviewSession(db, Channel.READING, shuffle=False)
        session.start()
        for success in (True, False):
            prompt, answer = card_sides(session.current_card, Channel.READING)
            result = session.judge(success)
            print(f"   {prompt} -> {answer}: {'got it' if success else 'again'}")
            print(f"   Level {result.level}, next review on {result.next_review_date}")
        print(f"   {session.remaining} cards left in the session")
        session.close()

        # Speaking only sees the Food category here
        print("\n🗣️  Speaking review (Food only)")
        session = ReviewSession(
            db, Channel.SPEAKING, category_filter=CategoryFilter.for_category(food.id), shuffle=False
        )
        session.start()
        prompt, answer = card_sides(session.current_card, Channel.SPEAKING)
        result = session.judge(True)
        print(f"   {prompt} -> {answer}: level {result.level}, next review on {result.next_review_date}")
        session.close()

        print("\n📊 Final statistics:")
        stats = db.get_stats()
        for channel in Channel:
            print(f"   Due for {channel.value}: {stats[f'due_{channel.value}']}")

        print("\n🎉 Example completed successfully!")

    finally:
        db.close()


if __name__ == "__main__":
    main()
