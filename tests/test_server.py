"""Tests for the FastAPI server, with mock storage and provider."""

import unittest
from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

import server.app as app_module
from core.errors import GenerationFailure
from core.models import CardDeck, FlashCard, GameMode, GameResult

from tests.mocks import MockAIProvider, MockStorage

CAPITALS = [
    {'question': 'Capital of France?', 'answer': 'Paris', 'difficulty': 'easy'},
    {'question': 'Capital of the UK?', 'answer': 'London'},
    {'question': 'Capital of Germany?', 'answer': 'Berlin', 'difficulty': 'hard'},
    {'question': 'Capital of Spain?', 'answer': 'Madrid'}
]


class ServerTestCase(unittest.TestCase):

    def setUp(self):
        self.storage = MockStorage()
        self.provider = MockAIProvider()
        app_module.storage = self.storage
        app_module.ai_provider = self.provider
        app_module.game_engines.clear()
        app_module.friend_engines.clear()
        # No context manager: startup would replace the mocks
        self.client = TestClient(app_module.create_app())

    def tearDown(self):
        for engine in app_module.game_engines.values():
            engine.stop()
        app_module.game_engines.clear()
        app_module.friend_engines.clear()

    def create_deck(self, cards=None, name='Capitals'):
        response = self.client.post('/api/decks', json={'name': name, 'cards': cards or CAPITALS})
        self.assertEqual(response.status_code, 200)
        return response.json()

    def answer_for(self, state):
        question = state['card']['question']
        return next(c['answer'] for c in CAPITALS if c['question'] == question)


class TestDeckEndpoints(ServerTestCase):

    def test_health(self):
        response = self.client.get('/')
        self.assertEqual(response.json(), {'status': 'ok', 'ai_provider': True})

    def test_create_and_list(self):
        deck = self.create_deck()
        self.assertEqual(deck['card_count'], 4)
        self.assertEqual(deck['times_played'], 0)

        decks = self.client.get('/api/decks').json()
        self.assertEqual([d['id'] for d in decks], [deck['id']])
        self.assertEqual(self.client.get('/api/decks', params={'user_id': 'someone'}).json(), [])

    def test_get_deck(self):
        deck = self.create_deck()
        data = self.client.get(f"/api/decks/{deck['id']}").json()
        self.assertEqual(len(data['cards']), 4)
        self.assertEqual(data['cards'][2]['difficulty'], 'HARD')

    def test_get_missing_deck(self):
        self.assertEqual(self.client.get('/api/decks/nope').status_code, 404)

    def test_create_from_content(self):
        response = self.client.post('/api/decks', json={'content': 'Q: Capital of France? A: Paris'})
        self.assertEqual(response.status_code, 200)
        deck = response.json()
        self.assertEqual(deck['name'], 'Capitals')
        self.assertEqual(deck['card_count'], 2)
        self.assertEqual(self.provider.parse_content_calls, ['Q: Capital of France? A: Paris'])

        stored = self.storage.get_deck(deck['id'])
        self.assertEqual(stored.cards[0].category, 'Geography')

    def test_create_from_content_failure(self):
        self.provider.set_parse_response(GenerationFailure("model unavailable"))
        response = self.client.post('/api/decks', json={'content': 'Some notes'})
        self.assertEqual(response.status_code, 502)
        self.assertEqual(self.storage.decks, {})

    def test_create_from_content_without_questions(self):
        self.provider.set_parse_response({'cards': [], 'suggested_name': None, 'suggested_category': None})
        response = self.client.post('/api/decks', json={'content': 'Nothing to ask here'})
        self.assertEqual(response.status_code, 502)

    def test_create_from_content_without_provider(self):
        app_module.ai_provider = None
        response = self.client.post('/api/decks', json={'content': 'Some notes'})
        self.assertEqual(response.status_code, 503)

    def test_create_requires_content_or_cards(self):
        self.assertEqual(self.client.post('/api/decks', json={'name': 'Empty'}).status_code, 422)
        blank = [{'question': ' ', 'answer': 'x'}]
        self.assertEqual(self.client.post('/api/decks', json={'cards': blank}).status_code, 422)

    def test_delete_deck(self):
        deck = self.create_deck()
        self.assertEqual(self.client.delete(f"/api/decks/{deck['id']}").json(), {'success': True})
        self.assertEqual(self.client.delete(f"/api/decks/{deck['id']}").status_code, 404)


class TestGameEndpoints(ServerTestCase):

    def test_start_unknown_deck(self):
        response = self.client.post('/api/games', json={'deck_id': 'nope', 'mode': 'QUIZ'})
        self.assertEqual(response.status_code, 404)

    def test_start_empty_deck(self):
        deck = self.storage.create_deck(CardDeck('Empty', ()))
        response = self.client.post('/api/games', json={'deck_id': deck.id, 'mode': 'QUIZ'})
        self.assertEqual(response.status_code, 400)
        self.assertNotIn('default', app_module.game_engines)

    def test_start_bad_mode(self):
        deck = self.create_deck()
        for mode in ('MATCH', 'FRIEND'):
            response = self.client.post('/api/games', json={'deck_id': deck['id'], 'mode': mode})
            self.assertEqual(response.status_code, 422)

    def test_no_game_in_progress(self):
        self.assertEqual(self.client.get('/api/games/current').status_code, 404)

    def test_flashcard_game(self):
        deck = self.create_deck()
        state = self.client.post('/api/games', json={'deck_id': deck['id'], 'mode': 'flashcard'}).json()
        self.assertEqual(state['session']['mode'], 'FLASHCARD')
        self.assertIsNone(state['card']['answer'])
        self.assertEqual(state['options'], [])

        state = self.client.post('/api/games/flip', json={}).json()
        self.assertTrue(state['revealed'])
        self.assertIsNotNone(state['card']['answer'])

        for _ in range(4):
            state = self.client.post('/api/games/mark', json={'known': True}).json()

        self.assertTrue(state['session']['is_complete'])
        self.assertEqual(state['session']['correct_answers'], 4)
        self.assertEqual(state['result']['total_cards'], 4)
        # EASY + MEDIUM + HARD + MEDIUM
        self.assertEqual(state['result']['score'], 80)

        self.assertEqual(len(self.storage.results), 1)
        self.assertEqual(self.storage.get_deck(deck['id']).times_played, 1)
        self.assertEqual(self.storage.get_deck(deck['id']).best_score, 80)

    def test_quiz_game(self):
        deck = self.create_deck()
        state = self.client.post('/api/games', json={'deck_id': deck['id'], 'mode': 'QUIZ'}).json()
        self.assertEqual(len(state['options']), 4)

        for i in range(4):
            card_id = state['card']['id']
            answer = self.answer_for(state)
            self.assertIn(answer, state['options'])
            state = self.client.post('/api/games/submit',
                                     json={'answer': answer, 'card_id': card_id}).json()
            self.assertTrue(state['last_answer_correct'])
            self.assertEqual(state['card']['answer'], answer)
            state = self.client.post('/api/games/next', json={}).json()

        self.assertTrue(state['session']['is_complete'])
        self.assertEqual(state['result']['correct_answers'], 4)
        self.assertEqual(len(self.storage.results), 1)

    def test_quiz_wrong_answer(self):
        deck = self.create_deck()
        self.client.post('/api/games', json={'deck_id': deck['id'], 'mode': 'QUIZ'})
        state = self.client.post('/api/games/submit', json={'answer': 'Atlantis'}).json()
        self.assertFalse(state['last_answer_correct'])
        self.assertEqual(state['session']['incorrect_answers'], 1)
        self.assertEqual(state['session']['score'], 0)

    def test_late_answer_for_previous_card_is_ignored(self):
        deck = self.create_deck()
        self.client.post('/api/games', json={'deck_id': deck['id'], 'mode': 'QUIZ'})
        state = self.client.post('/api/games/submit',
                                 json={'answer': 'Paris', 'card_id': 'some-earlier-card'}).json()
        self.assertFalse(state['answered'])
        self.assertEqual(state['session']['correct_answers'] + state['session']['incorrect_answers'], 0)

    def test_select_answer(self):
        deck = self.create_deck()
        state = self.client.post('/api/games', json={'deck_id': deck['id'], 'mode': 'QUIZ'}).json()
        option = state['options'][0]
        state = self.client.post('/api/games/select', json={'answer': option}).json()
        self.assertEqual(state['selected_answer'], option)
        self.assertFalse(state['answered'])

    def test_result_shown_when_saving_fails(self):
        deck = self.create_deck(cards=CAPITALS[:1])
        self.storage.fail_saves = True
        self.client.post('/api/games', json={'deck_id': deck['id'], 'mode': 'FLASHCARD'})
        state = self.client.post('/api/games/mark', json={'known': True}).json()
        self.assertTrue(state['session']['is_complete'])
        self.assertEqual(state['result']['score'], 10)
        self.assertEqual(self.storage.results, [])

    def test_result_shown_when_database_is_unreachable(self):
        import psycopg2
        from server.postgres_storage import PostgresStorage
        deck = self.create_deck(cards=CAPITALS[:1])
        database = PostgresStorage(db_url='postgresql://127.0.0.1:1/nothing')
        self.storage.save_game_result = database.save_game_result

        self.client.post('/api/games', json={'deck_id': deck['id'], 'mode': 'FLASHCARD'})
        refused = psycopg2.OperationalError("connection refused")
        with patch('server.postgres_storage.psycopg2.connect', side_effect=refused):
            response = self.client.post('/api/games/mark', json={'known': True})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['session']['is_complete'])
        self.assertEqual(response.json()['result']['score'], 10)

    def test_result_shown_on_unexpected_storage_error(self):
        deck = self.create_deck(cards=CAPITALS[:1])
        self.storage.save_game_result = MagicMock(side_effect=RuntimeError("disk on fire"))
        self.client.post('/api/games', json={'deck_id': deck['id'], 'mode': 'FLASHCARD'})
        response = self.client.post('/api/games/mark', json={'known': False})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['result']['correct_answers'], 0)
        self.storage.save_game_result.assert_called_once()

    def test_finished_game_updates_card_reviews(self):
        deck = self.create_deck(cards=CAPITALS[:2])
        self.client.post('/api/games', json={'deck_id': deck['id'], 'mode': 'FLASHCARD'})
        self.client.post('/api/games/mark', json={'known': True})
        self.client.post('/api/games/mark', json={'known': False})
        cards = self.storage.get_deck(deck['id']).cards
        self.assertEqual([c.times_reviewed for c in cards], [1, 1])
        self.assertEqual(sum(c.times_correct for c in cards), 1)

    def test_stop_game(self):
        deck = self.create_deck()
        self.client.post('/api/games', json={'deck_id': deck['id'], 'mode': 'QUIZ'})
        self.assertEqual(self.client.post('/api/games/stop', json={}).json(), {'success': True})
        self.assertEqual(self.client.get('/api/games/current').status_code, 404)

    def test_games_are_per_user(self):
        deck = self.create_deck()
        self.client.post('/api/games', json={'deck_id': deck['id'], 'mode': 'QUIZ', 'user_id': 'ana'})
        self.assertEqual(self.client.get('/api/games/current').status_code, 404)
        self.assertEqual(self.client.get('/api/games/current', params={'user_id': 'ana'}).status_code, 200)


class TestFriendEndpoints(ServerTestCase):

    def test_full_game(self):
        state = self.client.post('/api/friend/start', json={}).json()
        self.assertEqual(state['phase'], 'QUIZ_MASTER_TURN')

        state = self.client.post('/api/friend/question', json={'text': 'Capital of Peru?'}).json()
        self.assertEqual(state['phase'], 'WAITING_FOR_PLAYER')
        self.assertIsNone(state['question'])

        state = self.client.post('/api/friend/handoff/player', json={}).json()
        self.assertEqual(state['question'], 'Capital of Peru?')

        self.client.post('/api/friend/answer', json={'text': 'Lima'})
        state = self.client.post('/api/friend/handoff/quiz-master', json={}).json()
        self.assertEqual(state['phase'], 'JUDGING')
        self.assertEqual(state['answer'], 'Lima')

        state = self.client.post('/api/friend/judge', json={'is_correct': True}).json()
        self.assertEqual(state['phase'], 'FEEDBACK')
        self.assertEqual(state['score'], 20)

        state = self.client.post('/api/friend/end', json={}).json()
        self.assertTrue(state['ended'])
        self.assertEqual(state['result'], {
            'score': 20, 'correct_answers': 1, 'total_questions': 1, 'max_streak': 1
        })
        self.assertEqual(self.client.get('/api/friend/state').status_code, 404)

    def test_wrong_phase(self):
        self.client.post('/api/friend/start', json={})
        response = self.client.post('/api/friend/judge', json={'is_correct': True})
        self.assertEqual(response.status_code, 409)
        self.assertEqual(self.client.get('/api/friend/state').json()['phase'], 'QUIZ_MASTER_TURN')

    def test_blank_question(self):
        self.client.post('/api/friend/start', json={})
        response = self.client.post('/api/friend/question', json={'text': '   '})
        self.assertEqual(response.status_code, 422)

    def test_no_friend_game(self):
        self.assertEqual(self.client.post('/api/friend/next', json={}).status_code, 404)


class TestHistoryEndpoints(ServerTestCase):

    def setUp(self):
        super().setUp()
        self.storage.save_game_result(GameResult('d1', GameMode.QUIZ, 60, 3, 4, 3, 20000))
        self.storage.save_game_result(GameResult('d1', GameMode.SPEED_ROUND, 100, 2, 2, 2, 9000))
        self.storage.save_game_result(GameResult('d2', GameMode.QUIZ, 5, 1, 1, 1, 100, user_id='bob'))

    def test_history(self):
        results = self.client.get('/api/history').json()['results']
        self.assertEqual([r['score'] for r in results], [100, 60])
        self.assertEqual(results[0]['mode'], 'SPEED_ROUND')
        limited = self.client.get('/api/history', params={'limit': 1}).json()['results']
        self.assertEqual(len(limited), 1)

    def test_stats(self):
        stats = self.client.get('/api/stats').json()
        self.assertEqual(stats['total_games'], 2)
        self.assertEqual(stats['total_score'], 160)
        self.assertAlmostEqual(stats['avg_accuracy'], 0.875)
        self.assertEqual(stats['best_streak'], 3)

    def test_stats_without_games(self):
        stats = self.client.get('/api/stats', params={'user_id': 'nobody'}).json()
        self.assertEqual(stats, {'total_games': 0, 'total_score': 0, 'avg_accuracy': 0.0, 'best_streak': 0})

    def test_provider_stats_without_support(self):
        self.assertEqual(self.client.get('/api/provider-stats').json(), {'error': 'AI provider not configured'})


if __name__ == '__main__':
    unittest.main()
