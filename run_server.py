#!/usr/bin/env python3
"""Run the memory game API server.

Storage and the Gemini key come from the environment, see server/app.py.
"""

import argparse

import uvicorn


def main():
    parser = argparse.ArgumentParser(description='Memory game API server')
    parser.add_argument('--host', default='0.0.0.0')
    parser.add_argument('--port', type=int, default=8000)
    parser.add_argument('--no-reload', action='store_true', help='Disable auto-reload on code changes')
    args = parser.parse_args()

    print(f"Starting Memory Game API server on port {args.port}...")
    print(f"API documentation available at: http://localhost:{args.port}/docs")
    uvicorn.run("server.app:app", host=args.host, port=args.port, reload=not args.no_reload)


if __name__ == "__main__":
    main()
