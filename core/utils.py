"""Utility functions for the memory game."""

import json
import re

from .errors import GenerationFailure
from .models import Difficulty, FlashCard

CODE_BLOCK_PATTERN = re.compile(r'```(?:json)?\s*([\s\S]*?)```')


def extract_json(text: str) -> str:
    """Pull the JSON payload out of an LLM reply (fenced or bare)."""
    match = CODE_BLOCK_PATTERN.search(text)
    if match:
        return match.group(1).strip()

    starts = [i for i in (text.find('{'), text.find('[')) if i != -1]
    end = max(text.rfind('}'), text.rfind(']'))
    if starts and end > min(starts):
        return text[min(starts):end + 1]
    return text.strip()


def parse_json_reply(text: str):
    """Decode an LLM reply as JSON, raising GenerationFailure when it isn't."""
    payload = extract_json(text or '')
    try:
        return json.loads(payload)
    except json.JSONDecodeError as e:
        raise GenerationFailure(f"Malformed JSON in model reply: {e}") from e


def cards_from_parsed(parsed: dict) -> list[FlashCard]:
    """Build flashcards from a parsed-content reply.

    Expects {cards: [{question, answer, hint, difficulty}], suggested_category}.
    Pairs missing a question or an answer are skipped.
    """
    category = parsed.get('suggested_category')
    cards = []
    for item in parsed.get('cards') or []:
        if not isinstance(item, dict):
            continue
        question = str(item.get('question') or '').strip()
        answer = str(item.get('answer') or '').strip()
        if not question or not answer:
            continue
        cards.append(FlashCard(
            question=question,
            answer=answer,
            hint=item.get('hint') or None,
            category=category,
            difficulty=Difficulty.parse(item.get('difficulty'))
        ))
    if not cards:
        raise GenerationFailure("No questions found in the content")
    return cards
