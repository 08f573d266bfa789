"""Gemini AI provider implementation."""

import logging
import time
import google.generativeai as genai

from core.errors import GenerationFailure
from core.interfaces import AIProvider
from core.utils import parse_json_reply

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class GeminiProvider(AIProvider):
    """Gemini AI provider implementation."""

    def __init__(self, api_key: str, model_name: str = 'gemini-2.0-flash'):
        genai.configure(api_key=api_key)
        self.model = genai.GenerativeModel(model_name)
        self.model_name = model_name
        self.stats = {}

    def _execute(self, prompt: str, kind: str, temperature: float = 0.7,
                 max_output_tokens: int = 1024) -> tuple[str, int]:
        start_time = time.time()
        response = self.model.generate_content(
            prompt,
            generation_config=genai.GenerationConfig(
                temperature=temperature,
                max_output_tokens=max_output_tokens
            )
        )
        end_time = time.time()
        ms = int((end_time - start_time) * 1000)
        self._record_stats(kind, ms)
        return (response.text, ms)

    def _record_stats(self, kind: str, ms: int) -> None:
        entry = self.stats.setdefault(kind, {'calls': 0, 'total_ms': 0})
        entry['calls'] += 1
        entry['total_ms'] += ms

    def get_stats(self) -> dict:
        """Call counts and timings per request kind."""
        result = {}
        totals = {'calls': 0, 'total_ms': 0}
        for kind, entry in self.stats.items():
            calls = entry['calls']
            result[kind] = {
                **entry,
                'avg_ms': round(entry['total_ms'] / calls, 1) if calls > 0 else 0
            }
            totals['calls'] += calls
            totals['total_ms'] += entry['total_ms']
        result['total'] = {
            **totals,
            'avg_ms': round(totals['total_ms'] / totals['calls'], 1) if totals['calls'] > 0 else 0
        }
        return result

    def generate_distractors(self, correct_answer: str, count: int) -> list[str]:
        prompt = f"""
            Generate {count} plausible but incorrect answers for a quiz question.
            The correct answer is: "{correct_answer}"

            Return only a JSON array of strings with the wrong answers.
            Example: ["wrong1", "wrong2", "wrong3"]

            Make the wrong answers believable but clearly incorrect.
        """
        response, ms = self._execute(prompt, 'distractors', temperature=0.7, max_output_tokens=256)
        try:
            wrong_answers = parse_json_reply(response)
        except GenerationFailure:
            logger.error(f"Failed to parse distractors. Raw response:\n{response}")
            raise

        if not isinstance(wrong_answers, list):
            logger.warning(f"Distractor response is not a list: {type(wrong_answers)}")
            logger.warning(f"Raw response:\n{response}")
            raise GenerationFailure("Distractor response is not a JSON array")

        wrong_answers = [str(a).strip() for a in wrong_answers if str(a).strip()]
        if not wrong_answers:
            raise GenerationFailure("Model returned no distractors")
        logger.info(f"Generated {len(wrong_answers)} distractors in {ms}ms")
        return wrong_answers[:count]

    def parse_content(self, text: str) -> dict:
        logger.info(f"Parsing content of {len(text)} characters")
        prompt = f"""
            You are a helpful assistant that extracts question-answer pairs from text content.
            Parse the following content and extract all question-answer pairs.

            Return a JSON object with this structure:
            {{
                "cards": [
                    {{
                        "question": "The question text",
                        "answer": "The answer text",
                        "hint": "Optional hint for the question",
                        "difficulty": "easy" or "medium" or "hard"
                    }}
                ],
                "suggestedName": "A suggested name for this flashcard deck",
                "suggestedCategory": "A category like 'Science', 'History', etc."
            }}

            Content to parse:
            {text}

            Important:
            - Extract ALL question-answer pairs you can find
            - If the content is in Q&A format, parse directly
            - If it's study material, create questions from key facts
            - Keep questions clear and concise
            - Provide helpful hints when possible
            - Estimate difficulty based on complexity
            - Return valid JSON only
        """
        response, ms = self._execute(prompt, 'parse', temperature=0.3, max_output_tokens=4096)
        try:
            parsed = parse_json_reply(response)
        except GenerationFailure:
            logger.error(f"Failed to parse content reply. Raw response:\n{response}")
            raise

        if not isinstance(parsed, dict):
            logger.error(f"Content reply is not an object: {type(parsed)}")
            raise GenerationFailure("Content reply is not a JSON object")

        cards = parsed.get('cards')
        if not isinstance(cards, list):
            logger.warning(f"Content reply missing 'cards'. Raw response:\n{response}")
            cards = []
        logger.info(f"Extracted {len(cards)} candidate cards in {ms}ms")
        return {
            'cards': cards,
            'suggested_name': parsed.get('suggestedName') or parsed.get('suggested_name'),
            'suggested_category': parsed.get('suggestedCategory') or parsed.get('suggested_category')
        }
