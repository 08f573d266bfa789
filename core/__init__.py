from .models import Difficulty, GameMode, FlashCard, CardDeck, GameSession, GameResult
from .interfaces import AIProvider, Storage
from .errors import (
    GameError, EmptyDeckError, GenerationFailure, PersistenceFailure,
    InvalidPhaseError, BlankInputError
)
from .scoring import calculate_points, is_correct_answer
from .distractors import generate_options
from .timer import SpeedRoundTimer
from .session import GameEngine
from .friend import FriendModeEngine, FriendModePhase, FriendModeState
from .utils import extract_json, cards_from_parsed

__all__ = [
    'Difficulty', 'GameMode', 'FlashCard', 'CardDeck', 'GameSession', 'GameResult',
    'AIProvider', 'Storage',
    'GameError', 'EmptyDeckError', 'GenerationFailure', 'PersistenceFailure',
    'InvalidPhaseError', 'BlankInputError',
    'calculate_points', 'is_correct_answer',
    'generate_options',
    'SpeedRoundTimer',
    'GameEngine',
    'FriendModeEngine', 'FriendModePhase', 'FriendModeState',
    'extract_json', 'cards_from_parsed'
]
