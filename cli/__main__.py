"""Entry point for the memory game CLI client."""

import argparse
import sys

import requests

from cli.api_client import MemoryGameAPIClient
from cli.console import ConsoleUI


def main():
    parser = argparse.ArgumentParser(
        description='Memory game - flashcards, quizzes, speed rounds and friend mode',
        epilog='Examples: "python -m cli", "python -m cli stats", "python -m cli play 1 quiz"'
    )
    parser.add_argument('--server', default='http://localhost:8000',
                        help='Server URL (default: http://localhost:8000)')
    parser.add_argument('--user', default='default', help='User ID (default: default)')
    parser.add_argument('command', nargs='*',
                        help='Run a single command (e.g. "history") instead of the menu')
    args = parser.parse_args()

    ui = ConsoleUI(MemoryGameAPIClient(base_url=args.server, user_id=args.user))

    try:
        if args.command:
            ui.handle(' '.join(args.command), ui.client.list_decks())
        else:
            ui.run()
    except requests.RequestException as e:
        print(f'Error talking to {args.server}: {e}')
        sys.exit(1)
    except KeyboardInterrupt:
        print('\nGoodbye!')
        sys.exit(0)


if __name__ == '__main__':
    main()
