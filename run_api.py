#!/usr/bin/env python3
"""
Launch the LocalRadar HTTP API (localradar_ai.api.main:app) with uvicorn.
"""

import argparse
import sys

import uvicorn


def main():
    parser = argparse.ArgumentParser(description='LocalRadar API launcher')
    parser.add_argument('--host', default='0.0.0.0', help='Interface to bind')
    parser.add_argument('--port', type=int, default=8000, help='TCP port')
    parser.add_argument('--reload', action='store_true', help='Restart when source files change')
    args = parser.parse_args()

    print(f"📡 LocalRadar API listening on http://{args.host}:{args.port} (Ctrl+C to quit)")

    try:
        uvicorn.run("localradar_ai.api.main:app", host=args.host, port=args.port, reload=args.reload)
    except KeyboardInterrupt:
        print("\n👋 LocalRadar API stopped")
    except Exception as e:
        print(f"❌ Could not start the API: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
