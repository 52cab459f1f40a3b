"""Operator commands for DVHL seasons, runnable without the HTTP API.

Usage:
    python -m dvhl.cli.dvhl_admin standings --season-id 3
    python -m dvhl.cli.dvhl_admin resolve-playoffs --season-id 3 --location "Rink A"
    python -m dvhl.cli.dvhl_admin pending-notifications --limit 20 [--mark-delivered]

Exit codes:
    0 - Success
    1 - Failure (check logs for details)
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime

from dvhl.models.schedule import PlayoffSlotOverride
from dvhl.services.errors import WorkflowError
from dvhl.services.notification_service import list_pending_notifications, mark_delivered
from dvhl.services.schedule_service import resolve_playoffs
from dvhl.services.standings_service import get_season_standings
from dvhl.utils.db_async import SessionLocal, dispose_engine

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("dvhl_admin")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="DVHL season operator commands")
    sub = parser.add_subparsers(dest="command", required=True)

    standings = sub.add_parser("standings", help="Print season standings")
    standings.add_argument("--season-id", type=int, required=True)

    playoffs = sub.add_parser("resolve-playoffs", help="Create week 8 games from semifinal results")
    playoffs.add_argument("--season-id", type=int, required=True)
    playoffs.add_argument("--starts-at", type=datetime.fromisoformat, default=None)
    playoffs.add_argument("--location", default=None)

    pending = sub.add_parser("pending-notifications", help="List undelivered notification requests")
    pending.add_argument("--limit", type=int, default=50)
    pending.add_argument("--mark-delivered", action="store_true")

    return parser


async def run_standings(season_id: int) -> None:
    async with SessionLocal() as db:
        records = await get_season_standings(db, season_id=season_id)
    print(f"{'Team':<24} {'GP':>3} {'W':>3} {'L':>3} {'T':>3} {'GF':>4} {'GA':>4} {'PTS':>4}")
    for r in records:
        print(
            f"{r.team_name:<24} {r.games_played:>3} {r.wins:>3} {r.losses:>3} {r.ties:>3} "
            f"{r.goals_for:>4} {r.goals_against:>4} {r.points:>4}"
        )


async def run_resolve_playoffs(season_id: int, starts_at: datetime | None, location: str | None) -> None:
    override = PlayoffSlotOverride(starts_at=starts_at, location=location)
    async with SessionLocal() as db:
        games = await resolve_playoffs(db, season_id=season_id, championship=override)
    for game in games:
        logger.info(
            "%s: team %s vs %s at %s (%s)",
            game.notes,
            game.team_id,
            game.opponent,
            game.starts_at,
            game.location,
        )


async def run_pending(limit: int, deliver: bool) -> None:
    async with SessionLocal() as db:
        pending = await list_pending_notifications(db, limit=limit)
        for row in pending:
            print(f"{row.id}\t{row.kind.value}\t{row.audience.value}\t{row.message}")
        if deliver and pending:
            count = await mark_delivered(db, ids=[row.id for row in pending if row.id is not None])
            logger.info("Marked %d notifications delivered", count)


async def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        if args.command == "standings":
            await run_standings(args.season_id)
        elif args.command == "resolve-playoffs":
            await run_resolve_playoffs(args.season_id, args.starts_at, args.location)
        elif args.command == "pending-notifications":
            await run_pending(args.limit, args.mark_delivered)
        return 0
    except WorkflowError as e:
        logger.error("%s failed: %s (%s)", args.command, e, e.code)
        return 1
    except Exception as e:
        logger.error(f"{args.command} failed: {e}", exc_info=True)
        return 1
    finally:
        await dispose_engine()


def cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
