#!/usr/bin/env python3
"""
simulate-traffic.py: Drive a running schemefeed API with reader traffic.

Fires a burst of concurrent reads at /api/schemes, optionally simulates a
government release through /api/schemes/force-update, then reads again
and prints what the cache reported at each step along with the refresh
status.

Usage:
    python scripts/simulate-traffic.py
    python scripts/simulate-traffic.py --api-url http://localhost:5000
    python scripts/simulate-traffic.py --readers 50 --rounds 3 --force-update
"""

import argparse
import json
import sys
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen


# ANSI color codes
class C:
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    CYAN = "\033[96m"
    BOLD = "\033[1m"
    DIM = "\033[2m"
    RESET = "\033[0m"


def get_json(url: str, timeout: int = 30) -> dict:
    """GET a URL and decode the JSON body."""
    req = Request(url, headers={"Accept": "application/json"}, method="GET")
    with urlopen(req, timeout=timeout) as resp:
        return json.loads(resp.read().decode("utf-8"))


def read_burst(api_url: str, readers: int) -> list[dict]:
    """Issue ``readers`` concurrent reads and return the decoded bodies."""
    url = f"{api_url}/api/schemes"
    with ThreadPoolExecutor(max_workers=readers) as pool:
        return list(pool.map(lambda _: get_json(url), range(readers)))


def print_burst(label: str, bodies: list[dict]) -> None:
    sources = Counter(body["source"] for body in bodies)
    timestamps = {body["timestamp"] for body in bodies}
    new_titles = sorted({s["title"] for body in bodies for s in body["newSchemes"]})

    print(f"  {C.BOLD}{label}{C.RESET}")
    for source, count in sources.most_common():
        color = C.YELLOW if source in ("stale_cache", "base_data") else C.GREEN
        print(f"    {color}{source:<12}{C.RESET} x{count}")
    print(f"    {C.DIM}distinct snapshots: {len(timestamps)}{C.RESET}")
    for title in new_titles:
        print(f"    {C.CYAN}new:{C.RESET} {title}")


def print_status(api_url: str) -> None:
    status = get_json(f"{api_url}/api/schemes/update-status")
    print(f"  {C.BOLD}Update status{C.RESET}")
    print(f"    counter:        {status['updateCheckCounter']}")
    print(f"    next check in:  {status['nextUpdateCheck']}")
    print(f"    cached schemes: {status['cachedSchemesCount']}")
    print(f"    last update:    {status['lastGovernmentUpdate'] or '-'}")
    print(f"    pending:        {'yes' if status['hasPendingUpdates'] else 'no'}")


def run(args: argparse.Namespace) -> None:
    api_url = args.api_url.rstrip("/")

    print(f"\n{C.BOLD}schemefeed traffic simulator{C.RESET}")
    print(f"{C.DIM}{'=' * 60}{C.RESET}\n")
    print(f"  {C.BOLD}API URL:{C.RESET}   {C.CYAN}{api_url}{C.RESET}")
    print(f"  {C.BOLD}Readers:{C.RESET}   {args.readers}")
    print(f"  {C.BOLD}Rounds:{C.RESET}    {args.rounds}")
    print()

    for n in range(1, args.rounds + 1):
        print_burst(f"Round {n}", read_burst(api_url, args.readers))
        print()

    if args.force_update:
        try:
            result = get_json(f"{api_url}/api/schemes/force-update")
        except HTTPError as exc:
            if exc.code != 429:
                raise
            print(f"  {C.YELLOW}Force update rate limited{C.RESET}\n")
        else:
            print(f"  {C.GREEN}{result['message']}{C.RESET}")
            for scheme in result["newSchemes"]:
                print(f"    {C.CYAN}new:{C.RESET} {scheme['title']}")
            print()
            print_burst("After force update", read_burst(api_url, args.readers))
            print()

    print_status(api_url)

    print(f"\n{C.DIM}{'=' * 60}{C.RESET}")
    print(f"  {C.GREEN}Simulation complete{C.RESET}")
    print(f"{C.DIM}{'=' * 60}{C.RESET}\n")


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Drive a running schemefeed API with concurrent reads"
    )
    parser.add_argument(
        "--api-url",
        type=str,
        default="http://localhost:5000",
        help="API base URL (default: http://localhost:5000)",
    )
    parser.add_argument(
        "--readers",
        type=int,
        default=20,
        help="Concurrent readers per round (default: 20)",
    )
    parser.add_argument(
        "--rounds",
        type=int,
        default=2,
        help="Number of read bursts before the optional force update (default: 2)",
    )
    parser.add_argument(
        "--force-update",
        action="store_true",
        help="Simulate a government release between bursts",
    )
    args = parser.parse_args()

    try:
        run(args)
    except (HTTPError, URLError) as exc:
        print(f"{C.RED}Error: could not reach {args.api_url}: {exc}{C.RESET}")
        sys.exit(1)


if __name__ == "__main__":
    main()
