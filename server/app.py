"""FastAPI server for the memory game."""

import asyncio
import logging
import os

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel
from typing import Optional

logger = logging.getLogger(__name__)

from core.config import HISTORY_LIMIT
from core.errors import (
    BlankInputError, EmptyDeckError, GenerationFailure, InvalidPhaseError, PersistenceFailure
)
from core.friend import FriendModeEngine
from core.interfaces import AIProvider, Storage
from core.models import CardDeck, Difficulty, FlashCard, GameMode, GameResult
from core.session import GameEngine
from core.utils import cards_from_parsed

from server.gemini_provider import GeminiProvider
from server.file_storage import FileStorage
from server.postgres_storage import PostgresStorage

# Most recent games considered for aggregate stats
STATS_WINDOW = 1000


# Pydantic models for API
class CardInput(BaseModel):
    question: str
    answer: str
    hint: Optional[str] = None
    category: Optional[str] = None
    difficulty: str = 'MEDIUM'


class CreateDeckRequest(BaseModel):
    user_id: str = "default"
    name: Optional[str] = None
    description: Optional[str] = None
    content: Optional[str] = None  # Free text parsed into cards by the AI provider
    cards: Optional[list[CardInput]] = None  # Or explicit cards


class StartGameRequest(BaseModel):
    deck_id: str
    mode: str
    user_id: str = "default"


class UserRequest(BaseModel):
    user_id: str = "default"


class AnswerRequest(BaseModel):
    answer: Optional[str] = None
    card_id: Optional[str] = None  # Card the answer was given for
    user_id: str = "default"


class MarkRequest(BaseModel):
    known: bool
    user_id: str = "default"


class FriendTextRequest(BaseModel):
    text: str
    user_id: str = "default"


class JudgeRequest(BaseModel):
    is_correct: bool
    user_id: str = "default"


class DeckSummary(BaseModel):
    id: str
    name: str
    description: Optional[str]
    card_count: int
    times_played: int
    best_score: int
    created_at: Optional[str]


class StatsResponse(BaseModel):
    total_games: int
    total_score: int
    avg_accuracy: float
    best_streak: int


# Global state (in production, use proper DI)
storage: Storage = None
ai_provider: AIProvider = None

# Play sessions are ephemeral and live only as long as the process
game_engines: dict[str, GameEngine] = {}
friend_engines: dict[str, FriendModeEngine] = {}


app = FastAPI(title="Memory Game API", description="Flashcard, quiz, speed round and friend mode games")


@app.on_event("startup")
async def startup():
    """Initialize storage and AI provider on startup."""
    global storage, ai_provider

    # File storage by default, set MEMORYGAME_STORAGE=postgres to use PostgreSQL
    storage_type = os.environ.get('MEMORYGAME_STORAGE', 'file')
    if storage_type == 'postgres':
        storage = PostgresStorage()
        logger.info("Using PostgreSQL storage")
    else:
        storage = FileStorage()
        logger.info("Using file storage")

    # Get API key from environment variable first, then fall back to config file
    api_key = os.environ.get('GEMINI_API_KEY')
    if not api_key:
        try:
            config = storage.load_config()
            api_key = config.get('gemini_api_key')
        except FileNotFoundError:
            pass

    if api_key:
        ai_provider = GeminiProvider(api_key, model_name='gemini-2.0-flash')
        logger.info("AI provider initialized: gemini-2.0-flash")
    else:
        # Quizzes still work with in-deck or placeholder options
        logger.warning("GEMINI_API_KEY not set and no config file found; "
                       "content parsing is disabled")


@app.get("/")
async def root():
    """Health check."""
    return {"status": "ok", "ai_provider": ai_provider is not None}


def deck_summary(deck: CardDeck) -> DeckSummary:
    return DeckSummary(
        id=deck.id,
        name=deck.name,
        description=deck.description,
        card_count=deck.card_count,
        times_played=deck.times_played,
        best_score=deck.best_score,
        created_at=deck.created_at
    )


def get_deck_or_404(deck_id: str) -> CardDeck:
    deck = storage.get_deck(deck_id)
    if deck is None:
        raise HTTPException(status_code=404, detail="Deck not found")
    return deck


# Deck Endpoints
@app.get("/api/decks", response_model=list[DeckSummary])
async def list_decks(user_id: str = "default"):
    """List a user's decks, newest first."""
    return [deck_summary(d) for d in storage.get_decks(user_id)]


@app.get("/api/decks/{deck_id}")
async def get_deck(deck_id: str):
    """Get a deck with its cards."""
    return get_deck_or_404(deck_id).to_dict()


@app.post("/api/decks", response_model=DeckSummary)
async def create_deck(request: CreateDeckRequest):
    """Create a deck from explicit cards or by parsing free text."""
    suggested_name = None
    if request.cards:
        cards = [
            FlashCard(
                question=c.question.strip(),
                answer=c.answer.strip(),
                hint=c.hint,
                category=c.category,
                difficulty=Difficulty.parse(c.difficulty)
            )
            for c in request.cards
            if c.question.strip() and c.answer.strip()
        ]
        if not cards:
            raise HTTPException(status_code=422, detail="Cards need a question and an answer")
    elif request.content and request.content.strip():
        if ai_provider is None:
            raise HTTPException(status_code=503, detail="Content parsing is not configured")
        try:
            parsed = await asyncio.to_thread(ai_provider.parse_content, request.content)
            cards = cards_from_parsed(parsed)
        except GenerationFailure as e:
            raise HTTPException(status_code=502, detail=f"Failed to parse content: {e}. Please try again.")
        except Exception as e:
            logger.error(f"Error in parse_content: {type(e).__name__}: {e}")
            raise HTTPException(status_code=502, detail="Failed to parse content. Please try again.")
        suggested_name = parsed.get('suggested_name')
    else:
        raise HTTPException(status_code=422, detail="Provide either content or cards")

    deck = CardDeck(
        name=request.name or suggested_name or "Untitled deck",
        cards=tuple(cards),
        user_id=request.user_id,
        description=request.description
    )
    try:
        deck = storage.create_deck(deck)
    except PersistenceFailure as e:
        raise HTTPException(status_code=500, detail=str(e))
    logger.info(f"Created deck '{deck.name}' with {deck.card_count} cards for {request.user_id}")
    return deck_summary(deck)


@app.delete("/api/decks/{deck_id}")
async def delete_deck(deck_id: str):
    """Delete a deck."""
    try:
        deleted = storage.delete_deck(deck_id)
    except PersistenceFailure as e:
        raise HTTPException(status_code=500, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail="Deck not found")
    return {"success": True}


# Single-player Game Endpoints
def make_result_saver(user_id: str):
    """Completion callback: store the result without blocking the result screen."""
    def save(result: GameResult) -> None:
        try:
            storage.save_game_result(result)
            logger.info(f"Saved {result.mode.name} result for {user_id}: score={result.score}")
        except PersistenceFailure as e:
            logger.error(f"Could not save game result for {user_id}: {e}")
        except Exception as e:
            # The finished game is still shown when storage misbehaves
            logger.error(f"Unexpected error saving game result for {user_id}: {type(e).__name__}: {e}")
    return save


def get_engine(user_id: str) -> GameEngine:
    engine = game_engines.get(user_id)
    if engine is None:
        raise HTTPException(status_code=404, detail="No game in progress")
    return engine


async def engine_state(engine: GameEngine) -> dict:
    await engine.wait_for_options()
    return engine.snapshot()


@app.post("/api/games")
async def start_game(request: StartGameRequest):
    """Start a flashcard, quiz or speed-round game on a deck."""
    try:
        mode = GameMode[request.mode.upper()]
    except KeyError:
        raise HTTPException(status_code=422, detail=f"Unknown mode: {request.mode}")
    if mode == GameMode.FRIEND:
        raise HTTPException(status_code=422, detail="Use /api/friend/start for friend mode")

    deck = get_deck_or_404(request.deck_id)

    previous = game_engines.pop(request.user_id, None)
    if previous:
        previous.stop()

    engine = GameEngine(
        provider=ai_provider,
        on_complete=make_result_saver(request.user_id),
        user_id=request.user_id
    )
    try:
        engine.start(deck, mode)
    except EmptyDeckError as e:
        raise HTTPException(status_code=400, detail=str(e))
    game_engines[request.user_id] = engine
    return await engine_state(engine)


@app.get("/api/games/current")
async def get_game(user_id: str = "default"):
    """Current game state."""
    return await engine_state(get_engine(user_id))


@app.post("/api/games/select")
async def select_answer(request: AnswerRequest):
    engine = get_engine(request.user_id)
    if request.answer is not None:
        engine.select_answer(request.answer)
    return await engine_state(engine)


@app.post("/api/games/submit")
async def submit_answer(request: AnswerRequest):
    """Submit an answer. The game moves on by itself after a short delay."""
    engine = get_engine(request.user_id)
    card = engine.current_card
    if request.card_id and (card is None or card.id != request.card_id):
        # The game moved on (e.g. the speed-round timer ran out) before this arrived
        logger.info(f"Ignoring late answer from {request.user_id} for card {request.card_id}")
    else:
        engine.submit_answer(request.answer)
    return await engine_state(engine)


@app.post("/api/games/mark")
async def mark_card(request: MarkRequest):
    """Flashcard mode: mark the current card as known or not."""
    engine = get_engine(request.user_id)
    engine.mark_card(request.known)
    return await engine_state(engine)


@app.post("/api/games/flip")
async def flip_card(request: UserRequest):
    engine = get_engine(request.user_id)
    engine.flip_card()
    return await engine_state(engine)


@app.post("/api/games/next")
async def next_card(request: UserRequest):
    """Skip the reveal delay and move to the next card."""
    engine = get_engine(request.user_id)
    engine.advance()
    return await engine_state(engine)


@app.post("/api/games/stop")
async def stop_game(request: UserRequest):
    """Leave the current game."""
    engine = game_engines.pop(request.user_id, None)
    if engine:
        engine.stop()
    return {"success": True}


# Friend Mode Endpoints
def get_friend_engine(user_id: str) -> FriendModeEngine:
    engine = friend_engines.get(user_id)
    if engine is None:
        raise HTTPException(status_code=404, detail="No friend game in progress")
    return engine


def friend_action(user_id: str, action: str, *args) -> dict:
    engine = get_friend_engine(user_id)
    try:
        getattr(engine, action)(*args)
    except InvalidPhaseError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except BlankInputError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return engine.visible_state()


@app.post("/api/friend/start")
async def start_friend_mode(request: UserRequest):
    friend_engines[request.user_id] = FriendModeEngine()
    return friend_engines[request.user_id].visible_state()


@app.get("/api/friend/state")
async def get_friend_state(user_id: str = "default"):
    return get_friend_engine(user_id).visible_state()


@app.post("/api/friend/question")
async def submit_friend_question(request: FriendTextRequest):
    return friend_action(request.user_id, 'submit_question', request.text)


@app.post("/api/friend/handoff/player")
async def handoff_to_player(request: UserRequest):
    return friend_action(request.user_id, 'confirm_handoff_to_player')


@app.post("/api/friend/answer")
async def submit_friend_answer(request: FriendTextRequest):
    return friend_action(request.user_id, 'submit_answer', request.text)


@app.post("/api/friend/handoff/quiz-master")
async def handoff_to_quiz_master(request: UserRequest):
    return friend_action(request.user_id, 'confirm_handoff_to_quiz_master')


@app.post("/api/friend/judge")
async def judge_friend_answer(request: JudgeRequest):
    return friend_action(request.user_id, 'judge', request.is_correct)


@app.post("/api/friend/next")
async def next_friend_question(request: UserRequest):
    return friend_action(request.user_id, 'next')


@app.post("/api/friend/end")
async def end_friend_mode(request: UserRequest):
    state = friend_action(request.user_id, 'end')
    friend_engines.pop(request.user_id, None)
    return state


# History and Stats Endpoints
@app.get("/api/history")
async def get_history(user_id: str = "default", limit: int = HISTORY_LIMIT):
    """Most recent game results."""
    results = storage.get_game_history(user_id, limit)
    return {"results": [r.to_dict() for r in results]}


@app.get("/api/stats", response_model=StatsResponse)
async def get_stats(user_id: str = "default"):
    """Aggregate stats over a user's games."""
    results = storage.get_game_history(user_id, STATS_WINDOW)
    total_games = len(results)
    return StatsResponse(
        total_games=total_games,
        total_score=sum(r.score for r in results),
        avg_accuracy=round(sum(r.accuracy for r in results) / total_games, 3) if total_games else 0.0,
        best_streak=max((r.max_streak for r in results), default=0)
    )


@app.get("/api/provider-stats")
async def get_provider_stats():
    """AI provider usage statistics."""
    if ai_provider is None or not hasattr(ai_provider, 'get_stats'):
        return {"error": "AI provider not configured"}
    return ai_provider.get_stats()


def create_app():
    """Factory function for creating the app (useful for testing)."""
    return app
