import argparse
import asyncio
import json
from dataclasses import asdict
from typing import Any

from .autonomy.config import ConfigError, load_config
from .autonomy.runner import BotEngine, run_bot
from .autonomy.selection import fetch_candidate_posts, fetch_candidate_users
from .backend_client import BackendError


def print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, sort_keys=True, default=str))


def cmd_run(_: argparse.Namespace) -> None:
    """Run the bot until SIGINT/SIGTERM."""
    raise SystemExit(run_bot())


def cmd_whoami(_: argparse.Namespace) -> None:
    """Sign in once and show the session identity."""
    engine = BotEngine(load_config())
    asyncio.run(engine.client.authenticate())
    session = engine.client.auth.session
    print_json({"username": session.actor_identity, "id": session.actor_id})


def cmd_candidates(args: argparse.Namespace) -> None:
    """List who or what the bot would currently pick from, without acting.

    Examples:

        python -m botcop.cli candidates users
        python -m botcop.cli candidates posts
    """
    engine = BotEngine(load_config())

    async def _fetch():
        await engine.client.authenticate()
        if args.kind == "users":
            return await fetch_candidate_users(engine.client, engine.tracker)
        return await fetch_candidate_posts(engine.client, engine.tracker)

    print_json([asdict(item) for item in asyncio.run(_fetch())])


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Bot Cop: messages random users and comments on random posts, reporting to an observer.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # run
    p_run = subparsers.add_parser("run", help="Start the bot and its status server")
    p_run.set_defaults(func=cmd_run)

    # whoami
    p_me = subparsers.add_parser("whoami", help="Authenticate and show the bot identity")
    p_me.set_defaults(func=cmd_whoami)

    # candidates
    p_cand = subparsers.add_parser("candidates", help="Show eligible users or posts")
    p_cand.add_argument("kind", choices=["users", "posts"], help="Which candidate set to list")
    p_cand.set_defaults(func=cmd_candidates)

    return parser


def main() -> None:
    try:
        parser = build_parser()
        args = parser.parse_args()
        args.func(args)
    except ConfigError as e:
        raise SystemExit(f"Configuration error: {e}")
    except BackendError as e:
        raise SystemExit(str(e))
    except KeyboardInterrupt:
        raise SystemExit(0)


if __name__ == "__main__":
    main()
