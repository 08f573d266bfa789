"""Mock implementations of the AI provider and storage for tests."""

import dataclasses
import time

from core.errors import PersistenceFailure
from core.interfaces import AIProvider, Storage
from core.models import CardDeck, GameResult


class MockAIProvider(AIProvider):
    """Mock AI provider for testing."""

    def __init__(self):
        self.distractor_responses = []
        self.parse_responses = []
        self.delays = {}  # correct_answer -> seconds to block
        self.generate_distractors_calls = []
        self.parse_content_calls = []

    def set_distractor_response(self, response):
        """Queue a distractor response. An Exception instance is raised instead."""
        self.distractor_responses.append(response)

    def set_parse_response(self, response):
        """Queue a parse response. An Exception instance is raised instead."""
        self.parse_responses.append(response)

    def generate_distractors(self, correct_answer: str, count: int) -> list[str]:
        self.generate_distractors_calls.append((correct_answer, count))
        if correct_answer in self.delays:
            time.sleep(self.delays[correct_answer])
        if self.distractor_responses:
            response = self.distractor_responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response
        return [f"{correct_answer} (wrong {i})" for i in range(1, count + 1)]

    def parse_content(self, text: str) -> dict:
        self.parse_content_calls.append(text)
        if self.parse_responses:
            response = self.parse_responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response
        return {
            'cards': [
                {'question': 'Capital of France?', 'answer': 'Paris', 'difficulty': 'easy'},
                {'question': 'Capital of Italy?', 'answer': 'Rome', 'difficulty': 'hard'}
            ],
            'suggested_name': 'Capitals',
            'suggested_category': 'Geography'
        }


class MockStorage(Storage):
    """In-memory storage for testing."""

    def __init__(self):
        self.config = {'gemini_api_key': 'test-api-key'}
        self.decks = {}
        self.results = []
        self.fail_saves = False

    def load_config(self) -> dict:
        return self.config

    def get_decks(self, user_id: str = "default") -> list[CardDeck]:
        return [d for d in self.decks.values() if d.user_id == user_id]

    def get_deck(self, deck_id: str) -> CardDeck | None:
        return self.decks.get(deck_id)

    def create_deck(self, deck: CardDeck) -> CardDeck:
        self.decks[deck.id] = deck
        return deck

    def delete_deck(self, deck_id: str) -> bool:
        return self.decks.pop(deck_id, None) is not None

    def save_game_result(self, result: GameResult) -> GameResult:
        if self.fail_saves:
            raise PersistenceFailure("database unavailable")
        self.results.append(result)
        deck = self.decks.get(result.deck_id)
        if deck:
            self.decks[deck.id] = dataclasses.replace(
                deck.with_reviews(result.card_outcomes, 0),
                times_played=deck.times_played + 1,
                best_score=max(deck.best_score, result.score)
            )
        return result

    def get_game_history(self, user_id: str = "default", limit: int = 10) -> list[GameResult]:
        results = [r for r in self.results if r.user_id == user_id]
        return list(reversed(results))[:limit]
