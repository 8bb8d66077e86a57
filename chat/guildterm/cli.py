from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys

from rich.console import Console

from guildterm.config import LOG_FILE, PLUGINS_DIR, ConfigError, ensure_config_dir, load_config
from guildterm.context import ClientContext
from guildterm.rest import is_network_error
from guildterm.surface import format_message


def setup_logging(debug: bool) -> None:
    level_name = "DEBUG" if debug else os.getenv("GUILDTERM_LOG_LEVEL", "WARNING").upper()
    ensure_config_dir()
    logging.basicConfig(
        filename=str(LOG_FILE),
        level=getattr(logging, level_name, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def cmd_tui(args: argparse.Namespace, ctx: ClientContext) -> None:
    from guildterm.tui import GuildtermApp
    ctx.startup()
    GuildtermApp(ctx).run(mouse=ctx.config.mouse)


def cmd_inbox(args: argparse.Namespace, ctx: ClientContext) -> None:
    if not ctx.config.token:
        print("No token configured. Set GUILDTERM_TOKEN or run the TUI once.")
        return

    async def _fetch():
        try:
            return await ctx.rest.fetch_messages(args.channel_id, args.limit)
        finally:
            await ctx.rest.close()

    try:
        messages = asyncio.run(_fetch())
    except Exception as e:
        if not is_network_error(e):
            raise
        print(f"Could not fetch messages: {e}")
        return

    ctx.tree.open_channel(args.channel_id, messages)
    console = Console()
    for message in reversed(ctx.tree.messages):
        _, replied = ctx.tree.find_message(message.reply_to) if message.reply_to else (-1, None)
        console.print(format_message(message, ctx.config.emote_color, replied))


def cmd_plugins(args: argparse.Namespace, ctx: ClientContext) -> None:
    ctx.startup()
    if not ctx.plugins.names:
        print(f"No plugins loaded from {PLUGINS_DIR}")
        return
    print(f"Plugins loaded from {PLUGINS_DIR}:")
    for name in ctx.plugins.names:
        print(f" - {name}")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="guildterm", description="Terminal client for guild-based chat")
    p.add_argument("--token", help="Account token (overrides config and GUILDTERM_TOKEN)")
    p.add_argument("--debug", action="store_true", help="Log at DEBUG level")
    sub = p.add_subparsers(dest="cmd", required=False)

    sp = sub.add_parser("tui", help="Launch the Textual TUI (default)")
    sp.set_defaults(func=cmd_tui)

    sp = sub.add_parser("inbox", help="Print the latest messages of a channel")
    sp.add_argument("--channel-id", type=int, required=True)
    sp.add_argument("--limit", type=int, default=None)
    sp.set_defaults(func=cmd_inbox)

    sp = sub.add_parser("plugins", help="Load the plugin directory and list what loaded")
    sp.set_defaults(func=cmd_plugins)

    return p


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    setup_logging(args.debug)
    try:
        config = load_config()
    except ConfigError as e:
        print(f"guildterm: {e}", file=sys.stderr)
        sys.exit(2)
    if args.token:
        config.token = args.token.strip()
    if getattr(args, "limit", None) is None and hasattr(args, "limit"):
        args.limit = config.messages_limit

    ctx = ClientContext(config)
    func = getattr(args, "func", None) or cmd_tui
    func(args, ctx)
