"""Multiple-choice option generation."""

import logging
import random
import string

from .config import DEFAULT_OPTION_COUNT, PLACEHOLDER_PREFIX
from .interfaces import AIProvider

logger = logging.getLogger(__name__)


def _normalize(text: str) -> str:
    return text.strip().lower()


def _distinct(candidates, correct_answer: str) -> list[str]:
    """Drop blanks, duplicates and anything matching the correct answer."""
    seen = {_normalize(correct_answer)}
    result = []
    for candidate in candidates:
        if not isinstance(candidate, str) or not candidate.strip():
            continue
        key = _normalize(candidate)
        if key in seen:
            continue
        seen.add(key)
        result.append(candidate.strip())
    return result


def placeholder_options(count: int, exclude=()) -> list[str]:
    """Generic fallback options: "Option A", "Option B", ..."""
    taken = {_normalize(e) for e in exclude}
    placeholders = []
    for letter in string.ascii_uppercase:
        if len(placeholders) >= count:
            break
        option = f"{PLACEHOLDER_PREFIX} {letter}"
        if _normalize(option) not in taken:
            placeholders.append(option)
    return placeholders


def needs_generation(correct_answer: str, all_answers: list[str], count: int = DEFAULT_OPTION_COUNT) -> bool:
    """Whether the deck alone can't supply count - 1 distractors."""
    return len(_distinct(all_answers, correct_answer)) < count - 1


def generate_options(correct_answer: str, all_answers: list[str], count: int = DEFAULT_OPTION_COUNT,
                     provider: AIProvider = None, rng: random.Random = None) -> list[str]:
    """Build `count` shuffled options containing the correct answer exactly once.

    In-deck answers are used as distractors when there are enough of them.
    Otherwise the provider is asked once; any failure falls back to
    placeholders so the quiz stays playable.
    """
    if count < 1:
        raise ValueError(f"count must be at least 1, got {count}")
    rng = rng or random.Random()
    needed = count - 1

    in_deck = _distinct(all_answers, correct_answer)
    rng.shuffle(in_deck)

    if len(in_deck) >= needed:
        options = in_deck[:needed] + [correct_answer]
        rng.shuffle(options)
        return options

    distractors = []
    if provider is None:
        logger.info("No generation provider configured, using placeholder options")
    else:
        try:
            generated = provider.generate_distractors(correct_answer, needed)
            if not isinstance(generated, list):
                raise TypeError(f"expected a list of strings, got {type(generated).__name__}")
            distractors = _distinct(generated, correct_answer)[:needed]
            if not distractors:
                logger.warning(f"Provider returned no usable distractors for '{correct_answer}'")
        except Exception as e:
            logger.error(f"Distractor generation failed: {type(e).__name__}: {e}")
            distractors = []

    # Top up with whatever the deck has, then placeholders
    if len(distractors) < needed:
        distractors = _distinct(distractors + in_deck, correct_answer)[:needed]
    if len(distractors) < needed:
        distractors += placeholder_options(needed - len(distractors),
                                           exclude=distractors + [correct_answer])

    options = distractors + [correct_answer]
    rng.shuffle(options)
    return options
