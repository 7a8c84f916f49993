import argparse
import asyncio
import json
import logging
import sys
import threading
from pathlib import Path
from typing import Any

from audioguide.app_shell.context import ClientContext, resolve_data_dir
from audioguide.components.playback import PlaybackSignal
from audioguide.rules.loader import RulesError, load_rules, resolve_rules_path

logger = logging.getLogger("cli")


def get_context(args: argparse.Namespace) -> ClientContext:
    rules_path = resolve_rules_path(args.rules)
    try:
        rules = load_rules(rules_path)
    except (FileNotFoundError, RulesError) as e:
        logger.error(f"Cannot load rules: {e}")
        sys.exit(1)

    logging.getLogger().setLevel(rules.logging.level)
    return ClientContext.create(rules, resolve_data_dir(args.data_dir))


def print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


def handle_status(ctx: ClientContext, args: argparse.Namespace) -> None:
    print_json(
        {
            "entitlement": ctx.entitlements.status().to_dict(),
            "demosUsed": ctx.demo_gate.consumed_ids(),
        }
    )


def handle_subscribe(ctx: ClientContext, args: argparse.Namespace) -> None:
    try:
        outcome = ctx.access_service.subscribe(args.days, email=args.email)
    except ValueError as e:
        logger.error(f"Subscription failed: {e}")
        sys.exit(1)
    print_json(outcome.to_dict())


def handle_logout(ctx: ClientContext, args: argparse.Namespace) -> None:
    status = asyncio.run(ctx.logout())
    print_json(status.to_dict())


def handle_demo(ctx: ClientContext, args: argparse.Namespace) -> None:
    if not args.play:
        decision = ctx.demo_gate.decide(args.content_id)
        print_json({"contentId": args.content_id, "decision": decision.value})
        return

    finished = threading.Event()

    def on_signal(signal: PlaybackSignal, content_id: str) -> None:
        print(f"{content_id}: {signal.value}")
        finished.set()

    with ctx.new_player() as player:
        player.subscribe(on_signal)
        result = player.request(args.content_id)
        print_json(result.to_dict())
        if result.started and result.demo_seconds is not None:
            # Block until the demo window closes
            finished.wait(result.demo_seconds + 1)


def handle_reset_demos(ctx: ClientContext, args: argparse.Namespace) -> None:
    removed = ctx.demo_gate.reset(args.content_id)
    print(f"Reset {removed} demo(s).")


async def run_cache_command(ctx: ClientContext, args: argparse.Namespace) -> Any:
    manager = ctx.cache_manager
    await manager.restore()

    if args.cache_command == "install":
        return (await manager.install(args.version)).to_dict()

    async with ctx.cache_channel as channel:
        if args.cache_command == "activate":
            return await channel.skip_waiting()
        if args.cache_command == "stats":
            return await channel.status()
        if args.cache_command == "invalidate":
            return {"url": args.url, "removed": await channel.invalidate(args.url)}
        if args.cache_command == "clear":
            return {"success": await channel.clear()}
        if args.cache_command == "fetch":
            response = await channel.fetch(args.url)
            return {
                "url": response.url,
                "status": response.status,
                "ok": response.ok,
                "fromCache": response.from_cache,
                "contentType": response.content_type if response.status else None,
                "size": len(response.body),
                "error": response.error,
            }
    raise ValueError(f"Unknown cache command: {args.cache_command}")


def handle_cache(ctx: ClientContext, args: argparse.Namespace) -> None:
    print_json(asyncio.run(run_cache_command(ctx, args)))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Audio guide client CLI")
    parser.add_argument("--rules", type=Path, help="Rules file (default: $AUDIOGUIDE_RULES)")
    parser.add_argument("--data-dir", type=Path, help="Data dir (default: $AUDIOGUIDE_DATA_DIR)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # status
    subparsers.add_parser("status", help="Show entitlement and used demos")

    # subscribe
    subscribe_parser = subparsers.add_parser("subscribe", help="Grant full access")
    subscribe_parser.add_argument("--days", type=int, help="Subscription length in days")
    subscribe_parser.add_argument("--email", help="Send a receipt to this address")

    # logout
    subparsers.add_parser("logout", help="Revoke entitlement")

    # demo
    demo_parser = subparsers.add_parser("demo", help="Show the access decision for a content item")
    demo_parser.add_argument("content_id")
    demo_parser.add_argument(
        "--play", action="store_true", help="Request playback and wait for the demo to end"
    )

    # reset-demos
    reset_parser = subparsers.add_parser("reset-demos", help="Erase the demo ledger")
    reset_parser.add_argument("content_id", nargs="?", help="Only reset this item")

    # cache
    cache_parser = subparsers.add_parser("cache", help="Offline cache management")
    cache_sub = cache_parser.add_subparsers(dest="cache_command", required=True)
    install_parser = cache_sub.add_parser("install", help="Pre-cache the manifest")
    install_parser.add_argument("--version", help="Version tag (default: from rules)")
    cache_sub.add_parser("activate", help="Activate the waiting generation")
    cache_sub.add_parser("stats", help="Show generations and entry counts")
    invalidate_parser = cache_sub.add_parser("invalidate", help="Drop one URL from every cache")
    invalidate_parser.add_argument("url")
    cache_sub.add_parser("clear", help="Delete every cache")
    fetch_parser = cache_sub.add_parser("fetch", help="Request a URL through the cache worker")
    fetch_parser.add_argument("url")

    return parser


HANDLERS = {
    "status": handle_status,
    "subscribe": handle_subscribe,
    "logout": handle_logout,
    "demo": handle_demo,
    "reset-demos": handle_reset_demos,
    "cache": handle_cache,
}


def main(argv: list[str] | None = None) -> None:
    logging.basicConfig(level=logging.INFO)
    args = build_parser().parse_args(argv)
    ctx = get_context(args)
    HANDLERS[args.command](ctx, args)


if __name__ == "__main__":
    main()
