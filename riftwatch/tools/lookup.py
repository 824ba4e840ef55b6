#!/usr/bin/env python3
"""
tools/lookup.py
Résout un Riot ID puis affiche rang + historique récent en JSON.

    python -m riftwatch.tools.lookup "Player#NA1" --count 5
"""
import argparse
import asyncio
import json
import sys
from typing import Optional, Tuple

from riftwatch.app import build_resources
from riftwatch.config import settings
from riftwatch.logging_config import setup_logging
from riftwatch.riot.errors import RiotAPIError


def parse_riot_id(raw: str) -> Optional[Tuple[str, str]]:
    """``"Name#TAG"`` → ``(name, tag)``; None if the format or lengths are off."""
    text = raw.strip()
    name, sep, tag = text.rpartition("#")
    if not sep:
        return None
    name, tag = name.strip(), tag.strip()
    if not 3 <= len(name) <= 16 or not 2 <= len(tag) <= 5:
        return None
    return name, tag


async def lookup(game_name: str, tag_line: str, count: int, start: int) -> dict:
    resources = build_resources()
    try:
        account = await resources.get_account_by_riot_id(game_name, tag_line)
        ranked, history = await asyncio.gather(
            resources.get_ranked_by_puuid(account.puuid),
            resources.get_match_history(account.puuid, count=count, start=start),
        )
    finally:
        await resources.client.close()

    return {
        "account": account.model_dump(by_alias=True),
        "ranked": ranked.to_dict() if ranked else None,
        "history": history.to_dict(),
    }


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Riot ID lookup (rang + historique)")
    parser.add_argument("riot_id", help="Name#TAG, ex: Player#NA1")
    parser.add_argument("--count", type=int, default=10, help="nombre de parties")
    parser.add_argument("--start", type=int, default=0, help="décalage dans l'historique")
    args = parser.parse_args(argv)

    setup_logging(settings.LOG_LEVEL)

    parsed = parse_riot_id(args.riot_id)
    if parsed is None:
        print("Invalid Riot ID format. Use Name#TAG (e.g. Player#NA1)", file=sys.stderr)
        return 2

    try:
        result = asyncio.run(lookup(*parsed, count=args.count, start=args.start))
    except RiotAPIError as e:
        print(f"⛔  {e}", file=sys.stderr)
        return 1

    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
