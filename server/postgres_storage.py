"""PostgreSQL storage implementation."""

import json
import logging
import os
import time
import psycopg2
from psycopg2.extras import RealDictCursor

from core.errors import PersistenceFailure
from core.interfaces import Storage
from core.models import CardDeck, FlashCard, GameMode, GameResult

logger = logging.getLogger(__name__)


def _iso(value) -> str | None:
    if value is None:
        return None
    return value.isoformat() if hasattr(value, 'isoformat') else str(value)


class PostgresStorage(Storage):
    """PostgreSQL-based storage implementation."""

    def __init__(self, config_file: str = None, db_url: str = None):
        self.config_file = config_file or os.path.expanduser('~/.config/memorygame/config.json')
        self.db_url = db_url or os.environ.get(
            'DATABASE_URL',
            'postgresql://localhost:5432/memorygame'
        )
        self._conn = None
        self._initialized = False

    @property
    def conn(self):
        """Lazy connection initialization."""
        if self._conn is None or self._conn.closed:
            self._conn = psycopg2.connect(self.db_url)
            if not self._initialized:
                self._init_db()
                self._initialized = True
        return self._conn

    def _init_db(self):
        """Create tables if they don't exist."""
        with self._conn.cursor() as cur:
            cur.execute("""
                CREATE TABLE IF NOT EXISTS card_decks (
                    id VARCHAR(64) PRIMARY KEY,
                    user_id VARCHAR(255) NOT NULL,
                    name VARCHAR(255) NOT NULL,
                    description TEXT,
                    cards JSONB NOT NULL,
                    times_played INTEGER NOT NULL DEFAULT 0,
                    best_score INTEGER NOT NULL DEFAULT 0,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            cur.execute("""
                CREATE INDEX IF NOT EXISTS idx_card_decks_user_id ON card_decks(user_id)
            """)
            cur.execute("""
                CREATE TABLE IF NOT EXISTS game_results (
                    id VARCHAR(64) PRIMARY KEY,
                    user_id VARCHAR(255) NOT NULL,
                    deck_id VARCHAR(64) NOT NULL,
                    mode VARCHAR(32) NOT NULL,
                    score INTEGER NOT NULL,
                    correct_answers INTEGER NOT NULL,
                    total_cards INTEGER NOT NULL,
                    max_streak INTEGER NOT NULL,
                    time_taken_ms BIGINT NOT NULL,
                    played_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            cur.execute("""
                CREATE INDEX IF NOT EXISTS idx_game_results_user_played
                ON game_results(user_id, played_at)
            """)
        self._conn.commit()

    def close(self):
        """Close the database connection."""
        if self._conn and not self._conn.closed:
            self._conn.close()

    def _rollback(self):
        """Roll back the open transaction without reconnecting."""
        if self._conn is None or self._conn.closed:
            return
        try:
            self._conn.rollback()
        except psycopg2.Error as e:
            logger.error(f"Rollback failed: {e}")

    def load_config(self) -> dict:
        if not os.path.exists(self.config_file):
            raise FileNotFoundError(
                f"Config file not found at {self.config_file}\n"
                f'Please create it with: {{"gemini_api_key": "YOUR_API_KEY_HERE"}}'
            )
        with open(self.config_file, 'r') as f:
            return json.load(f)

    @staticmethod
    def _row_to_deck(row: dict) -> CardDeck:
        cards = row['cards']
        if isinstance(cards, str):
            cards = json.loads(cards)
        return CardDeck(
            id=row['id'],
            user_id=row['user_id'],
            name=row['name'],
            description=row['description'],
            cards=tuple(FlashCard.from_dict(c) for c in cards),
            created_at=_iso(row['created_at']),
            updated_at=_iso(row['updated_at']),
            times_played=row['times_played'],
            best_score=row['best_score']
        )

    @staticmethod
    def _row_to_result(row: dict) -> GameResult:
        return GameResult(
            deck_id=row['deck_id'],
            mode=GameMode[row['mode']],
            score=row['score'],
            correct_answers=row['correct_answers'],
            total_cards=row['total_cards'],
            max_streak=row['max_streak'],
            time_taken_ms=row['time_taken_ms'],
            user_id=row['user_id'],
            result_id=row['id'],
            played_at=_iso(row['played_at'])
        )

    def get_decks(self, user_id: str = "default") -> list[CardDeck]:
        try:
            with self.conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    "SELECT * FROM card_decks WHERE user_id = %s ORDER BY created_at DESC",
                    (user_id,)
                )
                rows = cur.fetchall()
        except psycopg2.Error as e:
            logger.error(f"Error loading decks: {e}")
            self._rollback()
            return []

        decks = []
        for row in rows:
            try:
                decks.append(self._row_to_deck(row))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable deck {row.get('id')}: {e}")
        return decks

    def get_deck(self, deck_id: str) -> CardDeck | None:
        try:
            with self.conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute("SELECT * FROM card_decks WHERE id = %s", (deck_id,))
                row = cur.fetchone()
        except psycopg2.Error as e:
            logger.error(f"Error loading deck {deck_id}: {e}")
            self._rollback()
            return None
        return self._row_to_deck(row) if row else None

    def create_deck(self, deck: CardDeck) -> CardDeck:
        try:
            with self.conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute("""
                    INSERT INTO card_decks (id, user_id, name, description, cards)
                    VALUES (%s, %s, %s, %s, %s)
                    RETURNING *
                """, (deck.id, deck.user_id, deck.name, deck.description,
                      json.dumps([c.to_dict() for c in deck.cards])))
                row = cur.fetchone()
            self.conn.commit()
        except psycopg2.Error as e:
            logger.error(f"Error saving deck: {e}")
            self._rollback()
            raise PersistenceFailure(f"Could not save deck: {e}") from e
        return self._row_to_deck(row)

    def delete_deck(self, deck_id: str) -> bool:
        try:
            with self.conn.cursor() as cur:
                cur.execute("DELETE FROM card_decks WHERE id = %s", (deck_id,))
                deleted = cur.rowcount > 0
            self.conn.commit()
            return deleted
        except psycopg2.Error as e:
            logger.error(f"Error deleting deck: {e}")
            self._rollback()
            raise PersistenceFailure(f"Could not delete deck: {e}") from e

    def save_game_result(self, result: GameResult) -> GameResult:
        try:
            with self.conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute("""
                    INSERT INTO game_results
                        (id, user_id, deck_id, mode, score, correct_answers,
                         total_cards, max_streak, time_taken_ms)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                    RETURNING played_at
                """, (result.id, result.user_id, result.deck_id, result.mode.name, result.score,
                      result.correct_answers, result.total_cards, result.max_streak,
                      result.time_taken_ms))
                row = cur.fetchone()
                cur.execute("SELECT * FROM card_decks WHERE id = %s FOR UPDATE", (result.deck_id,))
                deck_row = cur.fetchone()
                if deck_row:
                    deck = self._row_to_deck(deck_row).with_reviews(
                        result.card_outcomes, int(time.time() * 1000)
                    )
                    cur.execute("""
                        UPDATE card_decks
                        SET times_played = times_played + 1,
                            best_score = GREATEST(best_score, %s),
                            cards = %s,
                            updated_at = CURRENT_TIMESTAMP
                        WHERE id = %s
                    """, (result.score, json.dumps([c.to_dict() for c in deck.cards]), result.deck_id))
            self.conn.commit()
        except psycopg2.Error as e:
            logger.error(f"Error saving game result: {e}")
            self._rollback()
            raise PersistenceFailure(f"Could not save game result: {e}") from e
        result.played_at = _iso(row['played_at'])
        return result

    def get_game_history(self, user_id: str = "default", limit: int = 10) -> list[GameResult]:
        try:
            with self.conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute("""
                    SELECT * FROM game_results
                    WHERE user_id = %s
                    ORDER BY played_at DESC
                    LIMIT %s
                """, (user_id, limit))
                rows = cur.fetchall()
        except psycopg2.Error as e:
            logger.error(f"Error loading game history: {e}")
            self._rollback()
            return []
        return [self._row_to_result(r) for r in rows]
