"""Abstract base classes for dependency injection."""

from abc import ABC, abstractmethod

from .models import CardDeck, GameResult


class AIProvider(ABC):
    """Abstract base class for the text-generation service."""

    @abstractmethod
    def generate_distractors(self, correct_answer: str, count: int) -> list[str]:
        """Generate `count` plausible wrong answers. May raise on failure."""
        pass

    @abstractmethod
    def parse_content(self, text: str) -> dict:
        """Extract question/answer pairs from free text.
        Returns {cards: [{question, answer, hint, difficulty}], suggested_name, suggested_category}."""
        pass


class Storage(ABC):
    """Abstract base class for config, deck and result storage."""

    @abstractmethod
    def load_config(self) -> dict:
        """Load configuration. Returns config dict."""
        pass

    @abstractmethod
    def get_decks(self, user_id: str = "default") -> list[CardDeck]:
        """Get all decks of a user, newest first."""
        pass

    @abstractmethod
    def get_deck(self, deck_id: str) -> CardDeck | None:
        """Get a deck by id. Returns None if not found."""
        pass

    @abstractmethod
    def create_deck(self, deck: CardDeck) -> CardDeck:
        """Store a new deck. Returns the stored deck (with timestamps)."""
        pass

    @abstractmethod
    def delete_deck(self, deck_id: str) -> bool:
        """Delete a deck. Returns True if it existed."""
        pass

    @abstractmethod
    def save_game_result(self, result: GameResult) -> GameResult:
        """Store a finished game and update the deck's play count and best score.
        Raises PersistenceFailure on error."""
        pass

    @abstractmethod
    def get_game_history(self, user_id: str = "default", limit: int = 10) -> list[GameResult]:
        """Get the most recent results of a user, newest first."""
        pass
