"""Console UI for the memory game."""

from pathlib import Path

import requests

from cli.api_client import MemoryGameAPIClient

MODES = ['FLASHCARD', 'QUIZ', 'SPEED_ROUND']


class ConsoleUI:
    """Console user interface for the memory game."""

    def __init__(self, client: MemoryGameAPIClient):
        self.client = client

    def print_decks(self, decks: list[dict]):
        print('\n' + '=' * 50)
        print('YOUR DECKS')
        print('=' * 50)
        if not decks:
            print('  No decks yet. Use "new <file>" to create one from your notes.')
        for i, deck in enumerate(decks, 1):
            print(f"  {i}. {deck['name']} ({deck['card_count']} cards) "
                  f"| played {deck['times_played']}x | best {deck['best_score']}")
        print('=' * 50)
        print('Commands: play <n> <mode>, new <file> [name], delete <n>, friend, history, stats, exit')
        print(f'Modes: {", ".join(m.lower() for m in MODES)}\n')

    def print_card(self, state: dict):
        session = state['session']
        card = state['card']
        print('\n' + '-' * 40)
        print(f"Card {session['current_index'] + 1}/{session['total_cards']} "
              f"| Score: {session['score']} | Streak: {session['streak']}")
        if session['mode'] == 'SPEED_ROUND':
            print(f"Time left: {state['time_left_ms'] / 1000:.1f}s")
        print(f"[{card['difficulty'].lower()}] {card['question']}")
        if card.get('hint'):
            print(f"  Hint: {card['hint']}")

    def print_feedback(self, state: dict, answer: str = None):
        correct = state['last_answer_correct']
        if correct:
            print(f"Correct! +{state['last_points']} points")
        elif answer is None:
            print("Time's up!")
        else:
            print('Incorrect.')
        if state['card'] and state['card'].get('answer'):
            print(f"Answer: {state['card']['answer']}")

    def print_result(self, result: dict):
        print('\n' + '=' * 40)
        print('GAME OVER')
        print('=' * 40)
        print(f"Score: {result['score']}")
        print(f"Correct: {result['correct_answers']}/{result['total_cards']}")
        print(f"Best streak: {result['max_streak']}")
        print(f"Time: {result['time_taken_ms'] / 1000:.1f}s")
        print('=' * 40 + '\n')

    def play_flashcards(self, state: dict):
        while not state['session']['is_complete']:
            self.print_card(state)
            if input('Press enter to reveal (or "exit"): ').strip().lower() == 'exit':
                self.client.stop_game()
                return
            state = self.client.flip_card()
            print(f"Answer: {state['card']['answer']}")
            known = input('Did you know it? [y/n] ').strip().lower().startswith('y')
            state = self.client.mark_card(known)
        self.print_result(state['result'])

    def play_quiz(self, state: dict):
        while not state['session']['is_complete']:
            self.print_card(state)
            card_id = state['card']['id']
            options = state['options']
            for i, option in enumerate(options, 1):
                print(f'  {i}. {option}')

            choice = input('==> ').strip()
            if choice.lower() == 'exit':
                self.client.stop_game()
                return
            if choice.isdigit() and 1 <= int(choice) <= len(options):
                answer = options[int(choice) - 1]
            else:
                answer = choice

            state = self.client.submit_answer(answer, card_id=card_id)
            if state['card'] and state['card']['id'] == card_id:
                self.print_feedback(state, answer if state['selected_answer'] == answer else None)
                if state['answered']:
                    state = self.client.next_card()
            else:
                print("Time's up! That card is gone.")
        self.print_result(state['result'])

    def create_deck(self, path: str, name: str = None):
        try:
            content = Path(path).read_text()
        except OSError as e:
            print(f'Cannot read {path}: {e}')
            return
        print('Extracting questions...')
        deck = self.client.create_deck_from_content(content, name=name)
        print(f"Created deck '{deck['name']}' with {deck['card_count']} cards")

    def play_friend_mode(self):
        state = self.client.start_friend_mode()
        print('\nPlay with a friend: the quiz master asks, the player answers.')
        while True:
            phase = state['phase']
            if phase == 'QUIZ_MASTER_TURN':
                print(f"\nQuestion {state['question_number']} | Score: {state['score']}")
                prompt = 'Quiz master, type a question'
                if state['question_number'] > 1:
                    prompt += ' (or "end")'
                text = input(f'{prompt}: ').strip()
                if text.lower() == 'end' and state['question_number'] > 1:
                    state = self.client.end_friend_mode()
                    break
                if text:
                    state = self.client.submit_friend_question(text)
            elif phase == 'WAITING_FOR_PLAYER':
                input('\n' * 30 + 'Pass the device to the player, then press enter...')
                state = self.client.handoff_to_player()
            elif phase == 'PLAYER_TURN':
                print(f"\nQuestion: {state['question']}")
                text = input('Your answer: ').strip()
                if text:
                    state = self.client.submit_friend_answer(text)
            elif phase == 'WAITING_FOR_QUIZ_MASTER':
                input('\n' * 30 + 'Pass the device back to the quiz master, then press enter...')
                state = self.client.handoff_to_quiz_master()
            elif phase == 'JUDGING':
                print(f"\nQuestion: {state['question']}")
                print(f"Answer: {state['answer']}")
                verdict = input('Is it correct? [y/n] ').strip().lower().startswith('y')
                state = self.client.judge_friend_answer(verdict)
            elif phase == 'FEEDBACK':
                print('Correct! +20' if state['last_answer_correct'] else 'Not quite.')
                if input('Next question? [y/n] ').strip().lower().startswith('n'):
                    state = self.client.end_friend_mode()
                    break
                state = self.client.next_friend_question()

        result = state['result']
        print('\n' + '=' * 40)
        print(f"Score: {result['score']}")
        print(f"Correct: {result['correct_answers']}/{result['total_questions']}")
        print(f"Best streak: {result['max_streak']}")
        print('=' * 40 + '\n')

    def print_history(self):
        results = self.client.get_history()['results']
        if not results:
            print('No games played yet.')
        for r in results:
            print(f"  {r['played_at'] or ''} {r['mode']:<12} score {r['score']:>4} "
                  f"({r['correct_answers']}/{r['total_cards']}, streak {r['max_streak']})")

    def print_stats(self):
        stats = self.client.get_stats()
        print(f"Games: {stats['total_games']} | Total score: {stats['total_score']} | "
              f"Accuracy: {stats['avg_accuracy'] * 100:.0f}% | Best streak: {stats['best_streak']}")

    def handle(self, command: str, decks: list[dict]) -> None:
        parts = command.split()
        action = parts[0].lower()

        if action in ('play', 'delete') and (len(parts) < 2 or not parts[1].isdigit()
                                             or not 1 <= int(parts[1]) <= len(decks)):
            print('Pick a deck by its number.')
            return

        if action == 'play':
            mode = parts[2].upper() if len(parts) > 2 else 'FLASHCARD'
            if mode not in MODES:
                print(f'Unknown mode: {mode.lower()}')
                return
            state = self.client.start_game(decks[int(parts[1]) - 1]['id'], mode)
            if mode == 'FLASHCARD':
                self.play_flashcards(state)
            else:
                self.play_quiz(state)
        elif action == 'delete':
            self.client.delete_deck(decks[int(parts[1]) - 1]['id'])
        elif action == 'new' and len(parts) > 1:
            self.create_deck(parts[1], ' '.join(parts[2:]) or None)
        elif action == 'friend':
            self.play_friend_mode()
        elif action == 'history':
            self.print_history()
        elif action == 'stats':
            self.print_stats()
        else:
            print('Unknown command.')

    def run(self):
        """Run the main application loop."""
        # Check server connection
        try:
            self.client.health_check()
        except requests.RequestException:
            print(f"Error: Cannot connect to server at {self.client.base_url}")
            print("Make sure the server is running: python run_server.py")
            return

        while True:
            decks = self.client.list_decks()
            self.print_decks(decks)
            command = input('==> ').strip()
            if not command:
                continue
            if command.lower() == 'exit':
                print('Goodbye!')
                return
            try:
                self.handle(command, decks)
            except requests.HTTPError as e:
                detail = e.response.json().get('detail') if e.response is not None else e
                print(f'Error: {detail}')
