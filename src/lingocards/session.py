"""Review session state machine shared by the reading, listening and speaking channels."""

import logging
import random
from enum import Enum
from typing import TYPE_CHECKING, Dict, FrozenSet, List, Optional, Set, Tuple, Union

from .core import Card, Channel, ChannelScheduler, DateLike, ReviewResult, as_date_string
from .selection import CategoryFilter, get_due

if TYPE_CHECKING:
    from .database import CardStore

logger = logging.getLogger(__name__)


class FailurePolicy(str, Enum):
    """What happens to a card in the session queue after a failed review.

    Attributes:
        REQUEUE_REFRESHED: Remove the card and append its freshly persisted
            state to the back of the queue.
        ADVANCE: Leave the card where it is and move on to the next card.
        MOVE_TO_BACK: Move the card, as held by the session, to the back.
    """

    REQUEUE_REFRESHED = "requeue_refreshed"
    ADVANCE = "advance"
    MOVE_TO_BACK = "move_to_back"


FAILURE_POLICIES: Dict[Channel, FailurePolicy] = {
    Channel.READING: FailurePolicy.REQUEUE_REFRESHED,
    Channel.LISTENING: FailurePolicy.ADVANCE,
    Channel.SPEAKING: FailurePolicy.MOVE_TO_BACK,
}

# Channels whose finished sessions re-check the due set on a timer.
POLLING_CHANNELS: FrozenSet[Channel] = frozenset({Channel.READING})

LISTENING_PROMPT = "(no audio playback here: recall what the card says, then show the answer)"


def card_sides(card: Card, channel: Union[Channel, str]) -> Tuple[str, str]:
    """Returns the (prompt, answer) pair shown for a card on a channel.

    Speaking works in reverse of reading. Listening hides the text until the
    answer is revealed.
    """
    channel = Channel(channel)
    if channel is Channel.READING:
        return card.text, card.translation
    if channel is Channel.SPEAKING:
        return card.translation or card.text, card.text
    answer = f"{card.text} - {card.translation}" if card.translation else card.text
    return LISTENING_PROMPT, answer


class ReviewSession:
    """An ordered, session-scoped queue of due cards for one channel.

    Attributes:
        queue: Cards still to be mastered in this session.
        cursor: Index of the card currently presented.
        reviewed: IDs of the cards judged at least once this session.
        finished: True once the queue is empty, or once a listening pass
            has stepped past its last card.
        show_answer: Whether the current card's answer is revealed.
    """

    def __init__(
        self,
        store: "CardStore",
        channel: Union[Channel, str],
        category_filter: Optional[CategoryFilter] = None,
        shuffle: bool = True,
        today: Optional[DateLike] = None,
        rng: Optional[random.Random] = None,
    ):
        """Initializes an empty session. Call :meth:`start` to load due cards.

        Args:
            store: Card store used for selection and persistence.
            channel: The channel this session reviews.
            category_filter: Initial category filter. Defaults to all cards.
            shuffle: Whether to randomize presentation order on (re)start.
            today: Fixed reference date. None means the current UTC date at
                each call.
            rng: Random generator used for shuffling.
        """
        self.store = store
        self.channel = Channel(channel)
        self.category_filter = category_filter or CategoryFilter.all()
        self.shuffle = shuffle
        self.today = today
        self.scheduler = ChannelScheduler(store)
        self._random = rng or random.Random()

        self.queue: List[Card] = []
        self.cursor = 0
        self.reviewed: Set[str] = set()
        self.finished = True
        self.show_answer = False
        self.closed = False

    @property
    def failure_policy(self) -> FailurePolicy:
        return FAILURE_POLICIES[self.channel]

    @property
    def polls(self) -> bool:
        return self.channel in POLLING_CHANNELS

    @property
    def current_card(self) -> Optional[Card]:
        if not self.finished and 0 <= self.cursor < len(self.queue):
            return self.queue[self.cursor]
        return None

    @property
    def remaining(self) -> int:
        return len(self.queue)

    @property
    def reviewed_count(self) -> int:
        return len(self.reviewed)

    def reference_date(self) -> str:
        return as_date_string(self.today)

    def start(self) -> None:
        """Loads the due set into a fresh queue, shuffled if enabled.

        Starting also reopens a session that was closed, so its polling resumes.
        """
        cards = get_due(self.store, self.channel, self.reference_date(), self.category_filter)
        if self.shuffle:
            self._random.shuffle(cards)
        self.queue = cards
        self.cursor = 0
        self.reviewed = set()
        self.show_answer = False
        self.finished = not self.queue
        self.closed = False
        logger.info("Started %s session with %d due cards", self.channel.value, len(self.queue))

    def set_category_filter(self, category_filter: CategoryFilter) -> None:
        self.category_filter = category_filter
        self.start()

    def review_all(self) -> None:
        """Drops any category restriction and restarts the session."""
        self.set_category_filter(CategoryFilter.all())

    def reveal(self) -> None:
        self.show_answer = True

    def judge(self, success: bool) -> Optional[ReviewResult]:
        """Records the outcome for the current card and updates the queue.

        A recalled card leaves the queue. A failed card is handled according
        to the channel's :class:`FailurePolicy`. Either way the outcome is
        persisted through the scheduler first.

        Args:
            success: Whether the current card was recalled.

        Returns:
            The scheduler's result, or None when there is no current card.
        """
        card = self.current_card
        if card is None:
            return None

        result = self.scheduler.record_outcome(self.channel, card.id, success, self.reference_date())
        self.reviewed.add(card.id)

        if success:
            self._remove_current()
        elif self.failure_policy is FailurePolicy.REQUEUE_REFRESHED:
            self._requeue_refreshed(card)
        elif self.failure_policy is FailurePolicy.ADVANCE:
            self._advance()
        else:
            self._move_to_back()

        self.show_answer = False
        return result

    def poll(self) -> bool:
        """Restarts a finished session when new cards have become due.

        Meant to be called from a periodic timer. Does nothing once the
        session is closed, while cards remain, or on channels that do not poll.

        Returns:
            True if the session was restarted.
        """
        if self.closed or not self.finished or not self.polls:
            return False
        due = get_due(self.store, self.channel, self.reference_date(), self.category_filter)
        if not due:
            return False
        logger.info("Found %d new cards to review, refreshing %s session", len(due), self.channel.value)
        self.start()
        return True

    def close(self) -> None:
        """Tears the session down; later :meth:`poll` calls are no-ops."""
        self.closed = True

    def _remove_current(self) -> None:
        del self.queue[self.cursor]
        if not self.queue:
            self.cursor = 0
            self.finished = True
        elif self.cursor >= len(self.queue):
            self.cursor = len(self.queue) - 1

    def _requeue_refreshed(self, card: Card) -> None:
        refreshed = self.store.get_flashcard(card.id)
        if refreshed is None:
            logger.error("Could not find card %s in the store, skipping it", card.id)
            self._remove_current()
            return
        was_last = self.cursor >= len(self.queue) - 1
        del self.queue[self.cursor]
        self.queue.append(refreshed)
        if was_last:
            self.cursor = 0

    def _advance(self) -> None:
        if self.cursor < len(self.queue) - 1:
            self.cursor += 1
        else:
            # failed cards wait for the next due-set reload
            self.finished = True

    def _move_to_back(self) -> None:
        if len(self.queue) <= 1:
            return
        was_last = self.cursor >= len(self.queue) - 1
        self.queue.append(self.queue.pop(self.cursor))
        if was_last:
            self.cursor = 0
