"""Points awarded for a single answer."""

import math

from .config import STREAK_BONUS_THRESHOLD, SPEED_BONUS_PER_SECOND
from .models import Difficulty, GameMode


def calculate_points(difficulty: Difficulty, prior_streak: int, mode: GameMode,
                     correct: bool, seconds_remaining: float = None) -> int:
    """Score one answer.

    Args:
        difficulty: Difficulty of the card answered
        prior_streak: Streak entering this question, before the answer is applied
        mode: Game mode the answer was given in
        correct: Whether the answer was judged correct
        seconds_remaining: Countdown time left at submission (speed round only)
    """
    if not correct:
        return 0

    base = difficulty.points
    points = base
    if prior_streak >= STREAK_BONUS_THRESHOLD:
        points += base // 2
    if mode == GameMode.SPEED_ROUND and seconds_remaining:
        points += math.floor(max(seconds_remaining, 0)) * SPEED_BONUS_PER_SECOND
    return points


def is_correct_answer(candidate: str | None, answer: str) -> bool:
    """Case-insensitive, whitespace-trimmed comparison. None never matches."""
    if candidate is None:
        return False
    return candidate.strip().lower() == answer.strip().lower()
