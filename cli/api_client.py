"""REST API client for the memory game server."""

import requests


class MemoryGameAPIClient:
    """Client for communicating with the memory game REST API."""

    def __init__(self, base_url: str = "http://localhost:8000", user_id: str = "default"):
        self.base_url = base_url.rstrip('/')
        self.user_id = user_id
        self.session = requests.Session()

    def _get(self, endpoint: str, params: dict = None) -> dict:
        """Make a GET request."""
        if params is None:
            params = {}
        params['user_id'] = self.user_id
        response = self.session.get(f"{self.base_url}{endpoint}", params=params)
        response.raise_for_status()
        return response.json()

    def _post(self, endpoint: str, data: dict = None) -> dict:
        """Make a POST request."""
        data = dict(data or {})
        data['user_id'] = self.user_id
        response = self.session.post(f"{self.base_url}{endpoint}", json=data)
        response.raise_for_status()
        return response.json()

    def health_check(self) -> dict:
        """Check if the server is running."""
        response = self.session.get(f"{self.base_url}/")
        response.raise_for_status()
        return response.json()

    # Decks
    def list_decks(self) -> list[dict]:
        return self._get("/api/decks")

    def get_deck(self, deck_id: str) -> dict:
        return self._get(f"/api/decks/{deck_id}")

    def create_deck_from_content(self, content: str, name: str = None, description: str = None) -> dict:
        """Let the server extract question/answer pairs from free text."""
        return self._post("/api/decks", {
            'content': content,
            'name': name,
            'description': description
        })

    def delete_deck(self, deck_id: str) -> dict:
        response = self.session.delete(f"{self.base_url}/api/decks/{deck_id}")
        response.raise_for_status()
        return response.json()

    # Single-player games
    def start_game(self, deck_id: str, mode: str) -> dict:
        return self._post("/api/games", {'deck_id': deck_id, 'mode': mode})

    def get_game(self) -> dict:
        return self._get("/api/games/current")

    def submit_answer(self, answer: str | None, card_id: str = None) -> dict:
        return self._post("/api/games/submit", {'answer': answer, 'card_id': card_id})

    def mark_card(self, known: bool) -> dict:
        return self._post("/api/games/mark", {'known': known})

    def flip_card(self) -> dict:
        return self._post("/api/games/flip")

    def next_card(self) -> dict:
        return self._post("/api/games/next")

    def stop_game(self) -> dict:
        return self._post("/api/games/stop")

    # Friend mode
    def start_friend_mode(self) -> dict:
        return self._post("/api/friend/start")

    def submit_friend_question(self, text: str) -> dict:
        return self._post("/api/friend/question", {'text': text})

    def handoff_to_player(self) -> dict:
        return self._post("/api/friend/handoff/player")

    def submit_friend_answer(self, text: str) -> dict:
        return self._post("/api/friend/answer", {'text': text})

    def handoff_to_quiz_master(self) -> dict:
        return self._post("/api/friend/handoff/quiz-master")

    def judge_friend_answer(self, is_correct: bool) -> dict:
        return self._post("/api/friend/judge", {'is_correct': is_correct})

    def next_friend_question(self) -> dict:
        return self._post("/api/friend/next")

    def end_friend_mode(self) -> dict:
        return self._post("/api/friend/end")

    # Results
    def get_history(self, limit: int = 10) -> dict:
        return self._get("/api/history", {'limit': limit})

    def get_stats(self) -> dict:
        return self._get("/api/stats")
