"""Web interface for LingoCards using Gradio."""

import json
import logging
import tempfile
from functools import partial
from typing import Any, Dict, List, Optional, Tuple, Union

import gradio as gr
from dotenv import load_dotenv
from pydantic import ValidationError

from .config import Settings, configure_logging
from .core import DEFAULT_CATEGORY_COLOR, Card, Channel
from .database import CardStore, FlashcardDatabase
from .selection import CategoryFilter
from .session import ReviewSession, card_sides
from .translate import TranslationService, TranslationServiceFactory

CHOICE_ALL = "All categories"
CHOICE_NONE = "Uncategorized"
CARD_TABLE_HEADERS = ["ID", "Text", "Translation", "Category", "Reading", "Listening", "Speaking", "Created"]

ReviewView = Tuple[str, str, str]

logger = logging.getLogger(__name__)


class LingoCardsDemo:
    """Backend for the Gradio interface.

    Holds one review session per channel and exposes plain methods that
    return display strings, so the interface wiring stays trivial.
    """

    def __init__(
        self,
        store: Optional[CardStore] = None,
        settings: Optional[Settings] = None,
        translator: Optional[TranslationService] = None,
    ) -> None:
        """Initializes the LingoCardsDemo instance.

        Args:
            store: Card store to use. Defaults to the DuckDB file from settings.
            settings: Settings to use. Defaults to ``Settings.from_env()``.
            translator: Translation service. Defaults to the configured one.
        """
        if settings is None:
            load_dotenv()
            settings = Settings.from_env()
        self.settings = settings
        self.db = store if store is not None else FlashcardDatabase(settings.db_path)
        self.translator = translator or TranslationServiceFactory.create_service(
            settings.translator,
            api_key=settings.api_key_for(settings.translator),
            langpair=settings.langpair,
        )
        self.sessions = {
            channel: ReviewSession(self.db, channel, shuffle=settings.shuffle) for channel in Channel
        }

    def category_choices(self) -> List[str]:
        return [CHOICE_ALL, CHOICE_NONE] + [category.name for category in self.db.read_all_categories()]

    def _filter_for_choice(self, choice: Optional[str]) -> CategoryFilter:
        if not choice or choice == CHOICE_ALL:
            return CategoryFilter.all()
        if choice == CHOICE_NONE:
            return CategoryFilter.none()
        category = self.db.find_category_by_name(choice)
        if category is None:
            return CategoryFilter.all()
        return CategoryFilter.for_category(category.id)

    def _category_id_for_choice(self, choice: Optional[str]) -> Optional[str]:
        if not choice or choice in (CHOICE_ALL, CHOICE_NONE):
            return None
        category = self.db.find_category_by_name(choice)
        return category.id if category else None

    def translate_text(self, text: str) -> str:
        """Translates the text entered on the Create tab."""
        if not text.strip():
            return "Please enter text to translate"
        return self.translator.translate(text).translation

    def add_card(self, text: str, translation: str, category_choice: Optional[str] = None) -> str:
        """Creates a flashcard with all channels due today.

        Returns:
            A string message indicating success or failure.
        """
        if not text.strip():
            return "Please enter text to translate"

        card = Card.new(
            text.strip(),
            (translation or "").strip(),
            category_id=self._category_id_for_choice(category_choice),
        )
        if not self.db.add_flashcard(card):
            return f'A flashcard with the text "{text.strip()}" already exists.'
        return f"Added card: {card.text}\nTranslation: {card.translation}"

    def render(self, channel: Union[Channel, str]) -> ReviewView:
        """Returns the (prompt, answer, status) texts for a channel's session."""
        session = self.sessions[Channel(channel)]
        card = session.current_card
        if session.finished or card is None:
            status = f"All done! No more cards due for {session.channel.value} review."
            if session.reviewed_count:
                status += f" You reviewed {session.reviewed_count} cards."
            return "", "", status

        prompt, answer = card_sides(card, session.channel)
        status = (
            f"Card {session.cursor + 1} of {session.remaining}"
            f" | reviewed {session.reviewed_count}"
            f" | level {card.channel_state(session.channel)[0]}"
        )
        return prompt, answer if session.show_answer else "", status

    def start_review(self, channel: Union[Channel, str], category_choice: Optional[str] = None) -> ReviewView:
        session = self.sessions[Channel(channel)]
        session.set_category_filter(self._filter_for_choice(category_choice))
        return self.render(channel)

    def review_all(self, channel: Union[Channel, str]) -> Tuple[str, str, str, str]:
        """Resets the category filter to all categories and restarts the session."""
        self.sessions[Channel(channel)].review_all()
        return (*self.render(channel), CHOICE_ALL)

    def reveal(self, channel: Union[Channel, str]) -> ReviewView:
        self.sessions[Channel(channel)].reveal()
        return self.render(channel)

    def judge(self, channel: Union[Channel, str], success: bool) -> ReviewView:
        self.sessions[Channel(channel)].judge(success)
        return self.render(channel)

    def poll_reading(self) -> ReviewView:
        """Timer callback: reloads a finished reading session when cards become due."""
        self.sessions[Channel.READING].poll()
        return self.render(Channel.READING)

    def list_cards(self, search: str = "", category_choice: Optional[str] = None) -> List[List[Any]]:
        """Returns table rows for the Manage tab, newest cards first."""
        names = {category.id: category.name for category in self.db.read_all_categories()}
        rows = []
        for card in self.db.search_flashcards(search, self._filter_for_choice(category_choice)):
            row: List[Any] = [card.id, card.text, card.translation, names.get(card.category_id or "", CHOICE_NONE)]
            for channel in Channel:
                level, next_date = card.channel_state(channel)
                row.append(f"L{level} ({next_date})")
            row.append(card.created_at[:10])
            rows.append(row)
        return rows

    def edit_card(
        self,
        card_id: str,
        text: str = "",
        translation: str = "",
        category_choice: Optional[str] = None,
        reading_level: Optional[float] = None,
        listening_level: Optional[float] = None,
        speaking_level: Optional[float] = None,
    ) -> str:
        """Applies the Manage tab's edit form to one card.

        Blank fields keep their current value. A level resets that channel's
        next review date from today; channels without a level are untouched.
        """
        card_id = (card_id or "").strip()
        if not card_id:
            return "Please enter the ID of the card to edit."

        levels: Dict[Channel, int] = {}
        for channel, value in zip(Channel, (reading_level, listening_level, speaking_level)):
            if value is None:
                continue
            if not 0 <= value <= 5 or int(value) != value:
                return f"The {channel.value} level must be a whole number from 0 to 5."
            levels[channel] = int(value)

        card = self.db.edit_flashcard(
            card_id,
            text=text.strip() or None,
            translation=translation.strip() or None,
            category_id=self._category_id_for_choice(category_choice),
            clear_category=category_choice == CHOICE_NONE,
            levels=levels,
        )
        if card is None:
            return f"Could not update flashcard {card_id}."
        return f"Updated card: {card.text}"

    def delete_card(self, card_id: str) -> str:
        card_id = (card_id or "").strip()
        if not card_id or not self.db.delete_flashcard(card_id):
            return f"Could not delete flashcard {card_id}."
        return f"Deleted card {card_id}"

    def export_data(self) -> str:
        """Writes every card and category to a JSON file and returns its path."""
        data = self.db.export_all_data()
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", suffix=".json", prefix="lingocards-", delete=False
        ) as handle:
            json.dump(data, handle, ensure_ascii=False, indent=2)
        logger.info("Exported %d cards to %s", len(data["flashcards"]), handle.name)
        return handle.name

    def import_data(self, path: Optional[str]) -> str:
        """Merges a JSON export into the store, skipping duplicates."""
        if not path:
            return "Please choose an export file to import."
        try:
            with open(path, encoding="utf-8") as handle:
                data = json.load(handle)
            if not isinstance(data, dict):
                return "That file is not a flashcard export."
            added_cards, added_categories = self.db.import_all_data(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.error("Could not import %s: %s", path, e)
            return f"Could not import the file: {e}"
        return f"Imported {added_cards} cards and {added_categories} categories"

    def add_category(self, name: str, color: str = DEFAULT_CATEGORY_COLOR) -> str:
        if not name.strip():
            return "Please enter a category name."
        if self.db.find_category_by_name(name):
            return f"A category named {name.strip()} already exists."
        category = self.db.add_category(name, color or DEFAULT_CATEGORY_COLOR)
        if category is None:
            return "Could not save the category."
        return f"Added category: {category.name}"

    def delete_category(self, choice: Optional[str]) -> str:
        category_id = self._category_id_for_choice(choice)
        if category_id is None or not self.db.delete_category(category_id):
            return "Please choose a category to delete."
        return f"Deleted category {choice}. Its flashcards are now uncategorized."

    def get_stats(self) -> str:
        """Retrieves and formats collection statistics from the database."""
        stats = self.db.get_stats()

        result = "=== Flashcard Statistics ===\n"
        result += f"Total cards: {stats['total_cards']}\n"
        result += f"Categories: {stats['total_categories']}\n"
        result += f"Uncategorized cards: {stats['uncategorized_cards']}"
        for channel in Channel:
            result += f"\nDue for {channel.value}: {stats[f'due_{channel.value}']}"
        return result

    def close(self) -> None:
        """Tears down every review session, which stops reading polls."""
        for session in self.sessions.values():
            session.close()


def create_demo_interface(demo: Optional[LingoCardsDemo] = None) -> gr.Blocks:
    """Creates and configures the Gradio web interface for LingoCards.

    Returns:
        A Gradio Blocks object ready to be launched.
    """
    demo = demo or LingoCardsDemo()
    choices = demo.category_choices()

    with gr.Blocks(title="LingoCards", theme=gr.themes.Soft()) as interface:
        gr.Markdown("# LingoCards")
        gr.Markdown("Flashcards with separate reading, listening and speaking schedules")

        with gr.Tab("Create"):
            gr.Markdown("### Create New Flashcard")
            text_input = gr.Textbox(label="Text", placeholder="Enter text to translate")
            translate_btn = gr.Button("Translate")
            translation_input = gr.Textbox(label="Translation")
            category_input = gr.Dropdown(choices=choices[1:], value=CHOICE_NONE, label="Category")
            add_btn = gr.Button("Create Flashcard", variant="primary")
            add_output = gr.Textbox(label="Result", interactive=False)

            translate_btn.click(demo.translate_text, inputs=text_input, outputs=translation_input)
            add_btn.click(
                demo.add_card,
                inputs=[text_input, translation_input, category_input],
                outputs=add_output,
            )

        for channel in Channel:
            with gr.Tab(channel.value.title()):
                gr.Markdown(f"### {channel.value.title()} Review")
                if channel is Channel.LISTENING:
                    gr.Markdown(
                        "Audio playback is not available in this app. Have the text read to you "
                        "by another tool or a partner, then show the answer to check yourself."
                    )
                with gr.Row():
                    category_select = gr.Dropdown(choices=choices, value=CHOICE_ALL, label="Category")
                    start_btn = gr.Button("Start Review", variant="primary")
                    all_btn = gr.Button("Review All Categories")

                prompt_box = gr.Textbox(label="Prompt", interactive=False)
                answer_box = gr.Textbox(label="Answer", interactive=False)
                status_box = gr.Textbox(label="Status", interactive=False)

                with gr.Row():
                    reveal_btn = gr.Button("Show Answer")
                    again_btn = gr.Button("Again")
                    got_btn = gr.Button("Got It", variant="primary")

                outputs = [prompt_box, answer_box, status_box]
                start_btn.click(partial(demo.start_review, channel), inputs=category_select, outputs=outputs)
                all_btn.click(partial(demo.review_all, channel), outputs=outputs + [category_select])
                reveal_btn.click(partial(demo.reveal, channel), outputs=outputs)
                again_btn.click(partial(demo.judge, channel, False), outputs=outputs)
                got_btn.click(partial(demo.judge, channel, True), outputs=outputs)

                if channel is Channel.READING:
                    timer = gr.Timer(demo.settings.poll_seconds)
                    timer.tick(demo.poll_reading, outputs=outputs)

        with gr.Tab("Manage"):
            gr.Markdown("### Manage Flashcards")
            with gr.Row():
                search_input = gr.Textbox(label="Search", placeholder="Search text or translation")
                manage_category = gr.Dropdown(choices=choices, value=CHOICE_ALL, label="Category")
                search_btn = gr.Button("Search")
            cards_table = gr.Dataframe(headers=CARD_TABLE_HEADERS, interactive=False)

            gr.Markdown("### Edit or Delete a Card")
            edit_id = gr.Textbox(label="Card ID", placeholder="Copy the ID from the table")
            with gr.Row():
                edit_text = gr.Textbox(label="New text")
                edit_translation = gr.Textbox(label="New translation")
                edit_category = gr.Dropdown(choices=choices[1:], value=None, label="New category")
            with gr.Row():
                level_inputs = [
                    gr.Number(value=None, precision=0, minimum=0, maximum=5, label=f"{channel.value.title()} level")
                    for channel in Channel
                ]
            with gr.Row():
                edit_btn = gr.Button("Save Changes", variant="primary")
                delete_btn = gr.Button("Delete Card", variant="stop")
            edit_output = gr.Textbox(label="Result", interactive=False)

            gr.Markdown("### Import / Export")
            with gr.Row():
                export_btn = gr.Button("Export All Data")
                export_file = gr.File(label="Export file", interactive=False)
            with gr.Row():
                import_file = gr.File(label="Export file to import", file_types=[".json"], type="filepath")
                import_btn = gr.Button("Import")
            import_output = gr.Textbox(label="Result", interactive=False)

            gr.Markdown("### Categories")
            with gr.Row():
                category_name = gr.Textbox(label="Name")
                category_color = gr.ColorPicker(value=DEFAULT_CATEGORY_COLOR, label="Color")
                add_category_btn = gr.Button("Add Category")
            with gr.Row():
                delete_choice = gr.Dropdown(choices=choices[2:], label="Category to delete")
                delete_category_btn = gr.Button("Delete Category", variant="stop")
            category_output = gr.Textbox(label="Result", interactive=False)

            stats_btn = gr.Button("Get Statistics")
            stats_output = gr.Textbox(label="Statistics", interactive=False)

            search_btn.click(demo.list_cards, inputs=[search_input, manage_category], outputs=cards_table)
            edit_btn.click(
                demo.edit_card,
                inputs=[edit_id, edit_text, edit_translation, edit_category] + level_inputs,
                outputs=edit_output,
            )
            delete_btn.click(demo.delete_card, inputs=edit_id, outputs=edit_output)
            export_btn.click(demo.export_data, outputs=export_file)
            import_btn.click(demo.import_data, inputs=import_file, outputs=import_output)
            add_category_btn.click(
                demo.add_category, inputs=[category_name, category_color], outputs=category_output
            )
            delete_category_btn.click(demo.delete_category, inputs=delete_choice, outputs=category_output)
            stats_btn.click(demo.get_stats, outputs=stats_output)

        interface.unload(demo.close)

    return interface


def main() -> None:
    """Runs the LingoCards web interface."""
    load_dotenv()
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    interface = create_demo_interface(LingoCardsDemo(settings=settings))
    interface.launch(share=False, server_name="0.0.0.0", server_port=7860)


if __name__ == "__main__":
    main()
