"""Walk a player's upstream snapshot history and print what changed at each step."""
import argparse
import asyncio
import sys
import time
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from fnstats.env import load_env
from fnstats.raw_ops import modified_times
from fnstats.retriever import WindowedStatsRetriever
from fnstats.settings import Settings
from fnstats.stats_client import AsyncStatsClient, StatsAPIError
from fnstats.timeutils import format_time, parse_time


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Step back through upstream stat snapshots using lastmodified stamps."
    )
    parser.add_argument("player", help="Account id, or display name with --by-name")
    parser.add_argument("--by-name", action="store_true")
    parser.add_argument("--filters", nargs="*", default=[])
    parser.add_argument("--stop", default=None, help="Epoch seconds or ISO date")
    parser.add_argument("--max-steps", type=int, default=None)
    parser.add_argument("--delay", type=float, default=None)
    parser.add_argument("--show-modified", type=int, default=5)
    return parser.parse_args()


async def main() -> int:
    args = _parse_args()
    load_env()
    settings = Settings.from_env()

    stop_time = parse_time(args.stop) if args.stop else settings.history_stop
    start_total = time.perf_counter()

    async with AsyncStatsClient(
        access_token=settings.access_token,
        stats_url=settings.stats_api_url,
        account_url=settings.account_api_url,
        timeout=settings.request_timeout,
        debug_mode=settings.debug_mode,
    ) as client:
        try:
            account_id = args.player
            if args.by_name:
                account_id = await client.lookup_account_id(args.player)
                print(f"Found player: {args.player} ({account_id})")

            retriever = WindowedStatsRetriever(
                client.fetch_snapshot, history_origin=settings.history_origin
            )
            steps = await retriever.walk_snapshot_history(
                account_id,
                stop_time=stop_time,
                filters=args.filters,
                delay=settings.history_step_delay if args.delay is None else args.delay,
                max_steps=args.max_steps or settings.history_max_steps,
            )
        except StatsAPIError as exc:
            print(f"Error: {exc}")
            return 1

    print(f"Walking history until {format_time(stop_time)}")
    print("=" * 80)
    for index, step in enumerate(steps, start=1):
        print(
            f"Step {index}: snapshot up to {format_time(step.end_time)} | stats={len(step.stats)}"
        )
        for key, stamp in modified_times(step.stats, limit=args.show_modified).items():
            print(f"  {key}: {stamp}")
        if step.differences:
            print("  Changes relative to the previous step:")
            for key, value in step.differences.items():
                print(f"    {key}: {value}")

    print(
        f"Done. steps={len(steps)} | total_time={time.perf_counter() - start_total:.2f}s"
    )
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
