"""Single-player session engine: flashcard, quiz and speed-round modes."""

import asyncio
import logging
import random
import time
from typing import Callable

from .config import DEFAULT_OPTION_COUNT, REVEAL_DELAY_MS, SPEED_ROUND_DURATION_MS
from .distractors import generate_options, needs_generation
from .errors import EmptyDeckError
from .interfaces import AIProvider
from .models import CardDeck, FlashCard, GameMode, GameResult, GameSession
from .scoring import calculate_points, is_correct_answer
from .timer import SpeedRoundTimer

logger = logging.getLogger(__name__)


class GameEngine:
    """Drives one GameSession from start to completion.

    Each card goes AwaitingAnswer -> Revealed -> advance. Deferred work (option
    generation, the reveal delay, the speed-round countdown) is tagged with the
    generation counter current when it was scheduled, and dropped if the
    engine has moved on since.
    """

    def __init__(self, provider: AIProvider = None,
                 on_complete: Callable[[GameResult], None] = None,
                 user_id: str = "default", rng: random.Random = None, clock=time.time,
                 reveal_delay_ms: int = REVEAL_DELAY_MS,
                 timer_duration_ms: int = SPEED_ROUND_DURATION_MS,
                 option_count: int = DEFAULT_OPTION_COUNT):
        self.provider = provider
        self.on_complete = on_complete
        self.user_id = user_id
        self.rng = rng or random.Random()
        self.clock = clock
        self.reveal_delay_ms = reveal_delay_ms
        self.timer_duration_ms = timer_duration_ms
        self.option_count = option_count

        self.session: GameSession | None = None
        self.result: GameResult | None = None
        self.timer: SpeedRoundTimer | None = None
        self._generation = 0
        self._options_task: asyncio.Task | None = None
        self._advance_handle: asyncio.TimerHandle | None = None
        self._reset_card_state()

    def _reset_card_state(self) -> None:
        self.options: list[str] = []
        self.selected_answer: str | None = None
        self.revealed = False
        self.answered = False
        self.last_answer_correct: bool | None = None
        self.last_points = 0

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    @property
    def mode(self) -> GameMode | None:
        return self.session.mode if self.session else None

    @property
    def current_card(self) -> FlashCard | None:
        return self.session.current_card if self.session else None

    @property
    def time_left_ms(self) -> int:
        if self.timer is None:
            return 0
        return self.timer.remaining_ms

    @property
    def is_complete(self) -> bool:
        return self.session is not None and self.session.is_complete

    def _active(self, action: str) -> bool:
        if self.session is None or self.session.is_complete:
            logger.warning(f"{action} ignored: no active card")
            return False
        return True

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, deck: CardDeck, mode: GameMode) -> GameSession:
        """Start a new session on a shuffled copy of the deck."""
        if mode == GameMode.FRIEND:
            raise ValueError("Friend mode is played with FriendModeEngine")
        if not deck.cards:
            raise EmptyDeckError(f"Deck '{deck.name}' has no cards")

        self.stop()
        cards = list(deck.cards)
        self.rng.shuffle(cards)
        self.session = GameSession(deck.id, deck.name, mode, cards, self._now_ms())
        self.result = None
        self._reset_card_state()
        logger.info(f"Started {mode.name} session {self.session.id} on deck '{deck.name}' "
                    f"({len(cards)} cards)")
        self._prepare_card()
        return self.session

    def stop(self) -> None:
        """Abandon pending work: the countdown, the reveal delay and in-flight options."""
        self._generation += 1
        self._cancel_timer()
        if self._advance_handle is not None:
            self._advance_handle.cancel()
            self._advance_handle = None

    def _prepare_card(self) -> None:
        if self.session.mode.has_options:
            self._load_options()
        if self.session.mode == GameMode.SPEED_ROUND:
            self._start_timer()

    def _complete(self) -> None:
        session = self.session
        session.is_complete = True
        session.end_time = self._now_ms()
        self.options = []
        self.selected_answer = None
        self.result = GameResult(
            deck_id=session.deck_id,
            mode=session.mode,
            score=session.score,
            correct_answers=session.correct_answers,
            total_cards=session.total_cards,
            max_streak=session.max_streak,
            time_taken_ms=session.end_time - session.start_time,
            user_id=self.user_id,
            card_outcomes=session.card_outcomes
        )
        logger.info(f"Session {session.id} complete: score={session.score}, "
                    f"correct={session.correct_answers}/{session.total_cards}, "
                    f"max_streak={session.max_streak}")
        if self.on_complete:
            self.on_complete(self.result)

    # ------------------------------------------------------------------
    # Options
    # ------------------------------------------------------------------

    def _load_options(self) -> None:
        card = self.current_card
        all_answers = [c.answer for c in self.session.cards]

        loop = None
        if needs_generation(card.answer, all_answers, self.option_count):
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                loop = None
        if loop is None:
            self.options = generate_options(card.answer, all_answers, self.option_count,
                                            self.provider, self.rng)
            return

        # Provider call goes to a worker thread so the loop keeps ticking
        self._options_task = loop.create_task(
            self._load_options_async(self._generation, card.answer, all_answers)
        )

    async def _load_options_async(self, generation: int, answer: str, all_answers: list[str]) -> None:
        options = await asyncio.to_thread(
            generate_options, answer, all_answers, self.option_count, self.provider, self.rng
        )
        if generation != self._generation:
            logger.warning("Discarding options generated for a card that is no longer current")
            return
        self.options = options

    async def wait_for_options(self) -> None:
        """Wait for in-flight option generation for the current card, if any."""
        task = self._options_task
        if task is not None and not task.done():
            await task

    # ------------------------------------------------------------------
    # Timer
    # ------------------------------------------------------------------

    def _start_timer(self) -> None:
        generation = self._generation
        self.timer = SpeedRoundTimer(
            on_expire=lambda: self._on_timer_expired(generation),
            duration_ms=self.timer_duration_ms
        )
        self.timer.start()

    def _cancel_timer(self) -> None:
        if self.timer is not None:
            self.timer.cancel()

    def _on_timer_expired(self, generation: int) -> None:
        if generation != self._generation or self.answered:
            logger.warning("Ignoring expiry of a timer for a card that is no longer current")
            return
        logger.info("Time's up, submitting as incorrect")
        self.submit_answer(None)

    # ------------------------------------------------------------------
    # Answers
    # ------------------------------------------------------------------

    def select_answer(self, answer: str) -> None:
        """Record a tentative choice in quiz modes. No scoring."""
        if not self._active("select_answer"):
            return
        if not self.session.mode.has_options:
            logger.warning(f"select_answer ignored in {self.session.mode.name} mode")
            return
        if self.revealed:
            return
        self.selected_answer = answer

    def submit_answer(self, answer: str | None) -> bool | None:
        """Judge an answer for the current card.

        None (timer expiry) is always incorrect. Returns whether the answer was
        correct, or None when there was nothing to answer.
        """
        if not self._active("submit_answer"):
            return None
        if self.answered:
            logger.warning("submit_answer ignored: card already answered")
            return None

        seconds_remaining = self.timer.seconds_remaining if self.timer else None
        self._cancel_timer()

        card = self.current_card
        correct = is_correct_answer(answer, card.answer)
        if answer is not None:
            self.selected_answer = answer
        self._apply_answer(card, correct, seconds_remaining)
        self._schedule_advance()
        return correct

    def mark_card(self, known: bool) -> bool | None:
        """Flashcard mode: the player says whether they knew the answer."""
        if not self._active("mark_card"):
            return None
        if self.session.mode != GameMode.FLASHCARD:
            logger.warning(f"mark_card ignored in {self.session.mode.name} mode")
            return None
        if self.answered:
            logger.warning("mark_card ignored: card already answered")
            return None

        self._apply_answer(self.current_card, known, None)
        self.advance()
        return known

    def flip_card(self) -> bool:
        """Flashcard mode: toggle whether the answer is shown."""
        if not self._active("flip_card"):
            return self.revealed
        if self.session.mode != GameMode.FLASHCARD:
            logger.warning(f"flip_card ignored in {self.session.mode.name} mode")
            return self.revealed
        self.revealed = not self.revealed
        return self.revealed

    def _apply_answer(self, card: FlashCard, correct: bool, seconds_remaining: float | None) -> None:
        session = self.session
        # Bonus uses the streak entering this card
        points = calculate_points(card.difficulty, session.streak, session.mode, correct, seconds_remaining)

        if correct:
            session.correct_answers += 1
            session.streak += 1
        else:
            session.incorrect_answers += 1
            session.streak = 0
        session.score += points
        session.card_outcomes[card.id] = correct
        session.max_streak = max(session.max_streak, session.streak)

        self.answered = True
        self.revealed = True
        self.last_answer_correct = correct
        self.last_points = points

    # ------------------------------------------------------------------
    # Advancing
    # ------------------------------------------------------------------

    def _schedule_advance(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop: the caller advances when its feedback is done
            return
        self._advance_handle = loop.call_later(
            self.reveal_delay_ms / 1000, self._advance_if_current, self._generation
        )

    def _advance_if_current(self, generation: int) -> None:
        self._advance_handle = None
        if generation != self._generation:
            return
        self.advance()

    def advance(self) -> bool:
        """Move past an answered card. Returns False if nothing moved."""
        if not self._active("advance"):
            return False
        if not self.answered:
            logger.warning("advance ignored: current card has not been answered")
            return False

        self.stop()
        self.session.current_index += 1
        if self.session.current_index >= self.session.total_cards:
            self._complete()
            return True

        self._reset_card_state()
        self._prepare_card()
        return True

    def snapshot(self) -> dict:
        """Current state for display. The answer is only included once revealed."""
        card = self.current_card
        card_view = None
        if card is not None:
            card_view = {
                'id': card.id,
                'question': card.question,
                'hint': card.hint,
                'category': card.category,
                'difficulty': card.difficulty.name,
                'answer': card.answer if self.revealed else None
            }
        return {
            'session': self.session.to_dict() if self.session else None,
            'card': card_view,
            'options': list(self.options),
            'selected_answer': self.selected_answer,
            'revealed': self.revealed,
            'answered': self.answered,
            'last_answer_correct': self.last_answer_correct,
            'last_points': self.last_points,
            'time_left_ms': self.time_left_ms,
            'result': self.result.to_dict() if self.result else None
        }
