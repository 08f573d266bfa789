"""Domain models for the memory game."""

import dataclasses
import uuid
from dataclasses import dataclass, field
from enum import Enum

from .config import EASY_POINTS, MEDIUM_POINTS, HARD_POINTS


class Difficulty(Enum):
    """Card difficulty. The value is the base points for a correct answer."""

    EASY = EASY_POINTS
    MEDIUM = MEDIUM_POINTS
    HARD = HARD_POINTS

    @property
    def points(self) -> int:
        return self.value

    @classmethod
    def parse(cls, value) -> 'Difficulty':
        """Parse a difficulty name, defaulting to MEDIUM for anything unknown."""
        if isinstance(value, Difficulty):
            return value
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            return cls.MEDIUM


class GameMode(Enum):
    FLASHCARD = ('Flashcards', 'Flip cards to reveal answers')
    QUIZ = ('Quiz Mode', 'Multiple choice questions')
    SPEED_ROUND = ('Speed Round', 'Answer quickly for bonus points')
    FRIEND = ('Play with Friend', 'A friend asks, you answer!')

    def __init__(self, title: str, description: str):
        self.title = title
        self.description = description

    @property
    def has_options(self) -> bool:
        """Whether the mode shows multiple-choice options."""
        return self in (GameMode.QUIZ, GameMode.SPEED_ROUND)


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class FlashCard:
    """A single question/answer card. Review counters belong to storage."""

    question: str
    answer: str
    hint: str | None = None
    category: str | None = None
    difficulty: Difficulty = Difficulty.MEDIUM
    id: str = field(default_factory=new_id)
    times_reviewed: int = 0
    times_correct: int = 0
    last_reviewed: int | None = None

    @property
    def success_rate(self) -> float:
        if self.times_reviewed > 0:
            return self.times_correct / self.times_reviewed
        return 0.0

    def reviewed(self, correct: bool, at_ms: int) -> 'FlashCard':
        """Copy of this card with one more review recorded."""
        return dataclasses.replace(
            self,
            times_reviewed=self.times_reviewed + 1,
            times_correct=self.times_correct + (1 if correct else 0),
            last_reviewed=at_ms
        )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'question': self.question,
            'answer': self.answer,
            'hint': self.hint,
            'category': self.category,
            'difficulty': self.difficulty.name,
            'times_reviewed': self.times_reviewed,
            'times_correct': self.times_correct,
            'last_reviewed': self.last_reviewed
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'FlashCard':
        return cls(
            question=data['question'],
            answer=data['answer'],
            hint=data.get('hint'),
            category=data.get('category'),
            difficulty=Difficulty.parse(data.get('difficulty')),
            id=data.get('id') or new_id(),
            times_reviewed=data.get('times_reviewed', 0),
            times_correct=data.get('times_correct', 0),
            last_reviewed=data.get('last_reviewed')
        )


@dataclass(frozen=True)
class CardDeck:
    """A named, ordered collection of flashcards owned by a user."""

    name: str
    cards: tuple[FlashCard, ...]
    user_id: str = 'default'
    description: str | None = None
    id: str = field(default_factory=new_id)
    created_at: str | None = None
    updated_at: str | None = None
    times_played: int = 0
    best_score: int = 0

    @property
    def card_count(self) -> int:
        return len(self.cards)

    def with_reviews(self, card_outcomes: dict[str, bool], at_ms: int) -> 'CardDeck':
        """Apply per-card outcomes of a finished game to the review counters."""
        cards = tuple(
            c.reviewed(card_outcomes[c.id], at_ms) if c.id in card_outcomes else c
            for c in self.cards
        )
        return dataclasses.replace(self, cards=cards)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'user_id': self.user_id,
            'name': self.name,
            'description': self.description,
            'cards': [c.to_dict() for c in self.cards],
            'created_at': self.created_at,
            'updated_at': self.updated_at,
            'times_played': self.times_played,
            'best_score': self.best_score
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'CardDeck':
        return cls(
            name=data['name'],
            cards=tuple(FlashCard.from_dict(c) for c in data.get('cards', [])),
            user_id=data.get('user_id', 'default'),
            description=data.get('description'),
            id=data.get('id') or new_id(),
            created_at=data.get('created_at'),
            updated_at=data.get('updated_at'),
            times_played=data.get('times_played', 0),
            best_score=data.get('best_score', 0)
        )


class GameSession:
    """One single-player play-through of a deck.

    Mutated only by GameEngine. The card order is fixed at construction.
    """

    def __init__(self, deck_id: str, deck_name: str, mode: GameMode,
                 cards: list[FlashCard], start_time: int, session_id: str = None):
        self.id = session_id or new_id()
        self.deck_id = deck_id
        self.deck_name = deck_name
        self.mode = mode
        self.cards = tuple(cards)
        self.start_time = start_time
        self.end_time = None
        self.current_index = 0
        self.correct_answers = 0
        self.incorrect_answers = 0
        self.score = 0
        self.streak = 0
        self.max_streak = 0
        self.is_complete = False
        self.card_outcomes: dict[str, bool] = {}  # card id -> answered correctly

    @property
    def total_cards(self) -> int:
        return len(self.cards)

    @property
    def answered(self) -> int:
        return self.correct_answers + self.incorrect_answers

    @property
    def progress(self) -> float:
        if self.total_cards > 0:
            return self.current_index / self.total_cards
        return 0.0

    @property
    def accuracy(self) -> float:
        if self.answered > 0:
            return self.correct_answers / self.answered
        return 0.0

    @property
    def current_card(self) -> FlashCard | None:
        if self.current_index < self.total_cards:
            return self.cards[self.current_index]
        return None

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'deck_id': self.deck_id,
            'deck_name': self.deck_name,
            'mode': self.mode.name,
            'start_time': self.start_time,
            'end_time': self.end_time,
            'current_index': self.current_index,
            'total_cards': self.total_cards,
            'correct_answers': self.correct_answers,
            'incorrect_answers': self.incorrect_answers,
            'score': self.score,
            'streak': self.streak,
            'max_streak': self.max_streak,
            'is_complete': self.is_complete,
            'progress': self.progress,
            'accuracy': self.accuracy
        }


class GameResult:
    """Terminal summary of a finished session, handed to storage."""

    def __init__(self, deck_id: str, mode: GameMode, score: int, correct_answers: int,
                 total_cards: int, max_streak: int, time_taken_ms: int,
                 user_id: str = 'default', result_id: str = None, played_at: str = None,
                 card_outcomes: dict[str, bool] = None):
        self.id = result_id or new_id()
        self.user_id = user_id
        self.deck_id = deck_id
        self.mode = mode
        self.score = score
        self.correct_answers = correct_answers
        self.total_cards = total_cards
        self.max_streak = max_streak
        self.time_taken_ms = time_taken_ms
        self.played_at = played_at
        # Per-card outcomes, used by storage to update review counters. Not persisted.
        self.card_outcomes = dict(card_outcomes or {})

    @property
    def accuracy(self) -> float:
        if self.total_cards > 0:
            return self.correct_answers / self.total_cards
        return 0.0

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'user_id': self.user_id,
            'deck_id': self.deck_id,
            'mode': self.mode.name,
            'score': self.score,
            'correct_answers': self.correct_answers,
            'total_cards': self.total_cards,
            'max_streak': self.max_streak,
            'time_taken_ms': self.time_taken_ms,
            'played_at': self.played_at
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'GameResult':
        return cls(
            deck_id=data['deck_id'],
            mode=GameMode[data['mode']],
            score=data['score'],
            correct_answers=data['correct_answers'],
            total_cards=data['total_cards'],
            max_streak=data['max_streak'],
            time_taken_ms=data['time_taken_ms'],
            user_id=data.get('user_id', 'default'),
            result_id=data.get('id'),
            played_at=data.get('played_at')
        )
