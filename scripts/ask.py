#!/usr/bin/env python
"""
scripts/ask.py
────────────────────────────────────────────────────────────
Run one prompt through the full search pipeline and print the answer.

Run:
    python scripts/ask.py "red jacket near me"
"""

import argparse
import json
import sys

from localradar_ai.common.utils import setup_logging
from localradar_ai.config import load_settings
from localradar_ai.orchestrator_agent.agent import build_orchestrator


def main() -> int:
    parser = argparse.ArgumentParser(description="Search the LocalRadar catalog")
    parser.add_argument("prompt", help="free-text request")
    parser.add_argument("--json", action="store_true", help="print the raw result as JSON")
    args = parser.parse_args()

    settings = load_settings()
    setup_logging("WARNING" if args.json else settings.log_level, settings.log_file)

    orchestrator = build_orchestrator(settings)
    try:
        result = orchestrator.handle_prompt(args.prompt)
    finally:
        orchestrator.close()

    if args.json:
        print(json.dumps(result.model_dump(), indent=2, default=str))
        return 1 if result.error else 0

    print(f"\n💬 {result.message}\n")
    for rank, match in enumerate(result.items, start=1):
        distance = f", {match.distance_km} km away" if match.distance_km is not None else ""
        print(f"{rank}. [{match.category}] {match.item.get('attributes')} "
              f"(score {match.similarity:.3f}{distance})")
    return 1 if result.error else 0


if __name__ == "__main__":
    sys.exit(main())
