"""File-based storage implementation."""

import dataclasses
import json
import logging
import os
import time
from datetime import datetime, timezone

from core.errors import PersistenceFailure
from core.interfaces import Storage
from core.models import CardDeck, GameResult

logger = logging.getLogger(__name__)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class FileStorage(Storage):
    """File-based storage implementation: one JSON file for decks, one for results."""

    def __init__(self, config_file: str = None, data_dir: str = None):
        self.config_file = config_file or os.path.expanduser('~/.config/memorygame/config.json')
        # Project root is one level up from server/
        project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        self.data_dir = data_dir or os.environ.get('MEMORYGAME_DATA_DIR') or project_root

    def _decks_file(self) -> str:
        return os.path.join(self.data_dir, 'memorygame_decks.json')

    def _results_file(self) -> str:
        return os.path.join(self.data_dir, 'memorygame_results.json')

    def _load(self, path: str) -> list[dict]:
        """Rows in a JSON file. A missing file is empty; an unreadable one raises."""
        if not os.path.exists(path):
            return []
        try:
            with open(path, 'r') as f:
                rows = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceFailure(f"Could not read {path}: {e}") from e
        if not isinstance(rows, list):
            raise PersistenceFailure(f"Could not read {path}: expected a JSON array")
        return rows

    def _save(self, path: str, rows: list[dict]) -> None:
        os.makedirs(self.data_dir, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(rows, f, indent=2)

    def load_config(self) -> dict:
        if not os.path.exists(self.config_file):
            raise FileNotFoundError(
                f"Config file not found at {self.config_file}\n"
                f'Please create it with: {{"gemini_api_key": "YOUR_API_KEY_HERE"}}'
            )
        with open(self.config_file, 'r') as f:
            return json.load(f)

    def get_decks(self, user_id: str = "default") -> list[CardDeck]:
        try:
            rows = self._load(self._decks_file())
        except PersistenceFailure as e:
            logger.error(f"Error loading decks: {e}")
            return []

        decks = []
        for row in rows:
            if row.get('user_id') != user_id:
                continue
            try:
                decks.append(CardDeck.from_dict(row))
            except (KeyError, TypeError) as e:
                logger.warning(f"Skipping unreadable deck {row.get('id')}: {e}")
        decks.sort(key=lambda d: d.created_at or '', reverse=True)
        return decks

    def get_deck(self, deck_id: str) -> CardDeck | None:
        try:
            rows = self._load(self._decks_file())
        except PersistenceFailure as e:
            logger.error(f"Error loading deck {deck_id}: {e}")
            return None
        for row in rows:
            if row.get('id') == deck_id:
                return CardDeck.from_dict(row)
        return None

    def create_deck(self, deck: CardDeck) -> CardDeck:
        now = utc_now_iso()
        stored = dataclasses.replace(deck, created_at=deck.created_at or now, updated_at=now)
        rows = self._load(self._decks_file())
        rows.append(stored.to_dict())
        try:
            self._save(self._decks_file(), rows)
        except OSError as e:
            raise PersistenceFailure(f"Could not save deck: {e}") from e
        return stored

    def delete_deck(self, deck_id: str) -> bool:
        rows = self._load(self._decks_file())
        remaining = [r for r in rows if r.get('id') != deck_id]
        if len(remaining) == len(rows):
            return False
        try:
            self._save(self._decks_file(), remaining)
        except OSError as e:
            raise PersistenceFailure(f"Could not delete deck: {e}") from e
        return True

    def save_game_result(self, result: GameResult) -> GameResult:
        # Read both files first so a corrupt one is never overwritten
        results = self._load(self._results_file())
        decks = self._load(self._decks_file())

        if result.played_at is None:
            result.played_at = utc_now_iso()
        results.append(result.to_dict())

        # Bump play count, best score and card review counters on the deck
        for i, row in enumerate(decks):
            if row.get('id') != result.deck_id:
                continue
            deck = CardDeck.from_dict(row).with_reviews(result.card_outcomes, int(time.time() * 1000))
            deck = dataclasses.replace(
                deck,
                times_played=deck.times_played + 1,
                best_score=max(deck.best_score, result.score),
                updated_at=utc_now_iso()
            )
            decks[i] = deck.to_dict()

        try:
            self._save(self._results_file(), results)
            self._save(self._decks_file(), decks)
        except OSError as e:
            raise PersistenceFailure(f"Could not save game result: {e}") from e
        return result

    def get_game_history(self, user_id: str = "default", limit: int = 10) -> list[GameResult]:
        try:
            rows = self._load(self._results_file())
        except PersistenceFailure as e:
            logger.error(f"Error loading game history: {e}")
            return []
        rows = [r for r in rows if r.get('user_id') == user_id]
        rows.sort(key=lambda r: r.get('played_at') or '', reverse=True)
        return [GameResult.from_dict(r) for r in rows[:limit]]
