"""Friend mode: two people sharing one device, one asks and one answers."""

import logging
from enum import Enum
from typing import Callable

from .config import FRIEND_CORRECT_POINTS
from .errors import BlankInputError, InvalidPhaseError

logger = logging.getLogger(__name__)


class FriendModePhase(Enum):
    QUIZ_MASTER_TURN = 'quiz_master_turn'                # Quiz master types a question
    WAITING_FOR_PLAYER = 'waiting_for_player'            # Device handed to the player
    PLAYER_TURN = 'player_turn'                          # Player answers
    WAITING_FOR_QUIZ_MASTER = 'waiting_for_quiz_master'  # Device handed back
    JUDGING = 'judging'                                  # Quiz master judges the answer
    FEEDBACK = 'feedback'


class FriendModeState:
    """Scorekeeping for one friend-mode game."""

    def __init__(self):
        self.question_number = 1
        self.current_question = ''
        self.player_answer = ''
        self.score = 0
        self.correct_answers = 0
        self.streak = 0
        self.max_streak = 0
        self.last_answer_correct = None

    def to_dict(self) -> dict:
        return {
            'question_number': self.question_number,
            'current_question': self.current_question,
            'player_answer': self.player_answer,
            'score': self.score,
            'correct_answers': self.correct_answers,
            'streak': self.streak,
            'max_streak': self.max_streak,
            'last_answer_correct': self.last_answer_correct
        }


class FriendModeEngine:
    """Hot-seat turn cycle.

    The two hand-off phases are explicit: nothing moves past them until a
    person confirms the device changed hands, so neither side sees the other's
    text too early.
    """

    def __init__(self, on_end: Callable[[dict], None] = None):
        self.on_end = on_end
        self.phase = FriendModePhase.QUIZ_MASTER_TURN
        self.state = FriendModeState()
        self.result: dict | None = None

    @property
    def is_ended(self) -> bool:
        return self.result is not None

    def _require(self, *phases: FriendModePhase) -> None:
        if self.is_ended:
            raise InvalidPhaseError("Friend mode game has ended")
        if self.phase not in phases:
            expected = ', '.join(p.name for p in phases)
            raise InvalidPhaseError(f"Expected phase {expected}, currently {self.phase.name}")

    @staticmethod
    def _require_text(text: str, what: str) -> str:
        if text is None or not text.strip():
            raise BlankInputError(f"{what} cannot be blank")
        return text.strip()

    def submit_question(self, text: str) -> None:
        self._require(FriendModePhase.QUIZ_MASTER_TURN)
        self.state.current_question = self._require_text(text, "Question")
        self.phase = FriendModePhase.WAITING_FOR_PLAYER

    def confirm_handoff_to_player(self) -> None:
        self._require(FriendModePhase.WAITING_FOR_PLAYER)
        self.phase = FriendModePhase.PLAYER_TURN

    def submit_answer(self, text: str) -> None:
        self._require(FriendModePhase.PLAYER_TURN)
        self.state.player_answer = self._require_text(text, "Answer")
        self.phase = FriendModePhase.WAITING_FOR_QUIZ_MASTER

    def confirm_handoff_to_quiz_master(self) -> None:
        self._require(FriendModePhase.WAITING_FOR_QUIZ_MASTER)
        self.phase = FriendModePhase.JUDGING

    def judge(self, is_correct: bool) -> None:
        self._require(FriendModePhase.JUDGING)
        state = self.state
        state.last_answer_correct = is_correct
        if is_correct:
            state.score += FRIEND_CORRECT_POINTS
            state.correct_answers += 1
            state.streak += 1
            if state.streak > state.max_streak:
                state.max_streak = state.streak
        else:
            state.streak = 0
        self.phase = FriendModePhase.FEEDBACK

    def next(self) -> None:
        self._require(FriendModePhase.FEEDBACK)
        self._close_question()
        self.phase = FriendModePhase.QUIZ_MASTER_TURN

    def _close_question(self) -> None:
        self.state.question_number += 1
        self.state.current_question = ''
        self.state.player_answer = ''
        self.state.last_answer_correct = None

    def end(self) -> dict:
        """Finish the game, from FEEDBACK or between questions."""
        self._require(FriendModePhase.FEEDBACK, FriendModePhase.QUIZ_MASTER_TURN)
        if self.phase == FriendModePhase.QUIZ_MASTER_TURN and self.state.question_number <= 1:
            raise InvalidPhaseError("No question has been played yet")
        if self.phase == FriendModePhase.FEEDBACK:
            self._close_question()
            self.phase = FriendModePhase.QUIZ_MASTER_TURN

        state = self.state
        self.result = {
            'score': state.score,
            'correct_answers': state.correct_answers,
            'total_questions': state.question_number - 1,
            'max_streak': state.max_streak
        }
        logger.info(f"Friend mode ended: {self.result}")
        if self.on_end:
            self.on_end(self.result)
        return self.result

    def visible_state(self) -> dict:
        """What the person currently holding the device may see."""
        state = self.state
        show_question = self.phase in (
            FriendModePhase.QUIZ_MASTER_TURN, FriendModePhase.PLAYER_TURN,
            FriendModePhase.JUDGING, FriendModePhase.FEEDBACK
        )
        show_answer = self.phase in (FriendModePhase.JUDGING, FriendModePhase.FEEDBACK)
        return {
            'phase': self.phase.name,
            'question_number': state.question_number,
            'question': state.current_question if show_question else None,
            'answer': state.player_answer if show_answer else None,
            'score': state.score,
            'correct_answers': state.correct_answers,
            'streak': state.streak,
            'max_streak': state.max_streak,
            'last_answer_correct': state.last_answer_correct,
            'ended': self.is_ended,
            'result': self.result
        }
