#!/usr/bin/env python3
"""
Command line entry point for the booking bot.

    python -m botapp.app run             long polling + background scheduler
    python -m botapp.app webhook         webhook server + background scheduler
    python -m botapp.app pull-updates    process pending updates once
    python -m botapp.app sync-polls      one poll tick
    python -m botapp.app sync-calendars  one calendar sync tick
    python -m botapp.app setup-menu      register the private-chat command menu
    python -m botapp.app clear-polls     drop every stored poll record
"""
from tracking import t

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

if __name__ == "__main__" and __package__ is None:
    sys.path.append(str(Path(__file__).resolve().parents[1]))
    __package__ = "botapp"

import tracking
from botapp.config import load_bot_config
from botapp.runtime import BotApplication
from infrastructure.errors import ConfigurationError, LockAcquisitionError
from infrastructure.logging_config import setup_logging
from infrastructure.settings import load_settings

ONE_SHOT_COMMANDS = {
    'pull-updates': 'pull_updates',
    'sync-polls': 'sync_polls',
    'sync-calendars': 'sync_calendars',
    'setup-menu': 'setup_menu',
    'clear-polls': 'clear_polls',
}


def build_parser() -> argparse.ArgumentParser:
    t('botapp.app.build_parser')
    parser = argparse.ArgumentParser(prog='botapp', description="Sport ground booking bot")
    parser.add_argument(
        'command',
        nargs='?',
        default='run',
        choices=['run', 'webhook', *ONE_SHOT_COMMANDS],
        help="what to do (default: run)",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point used by both CLI script and module execution."""
    t('botapp.app.main')

    args = build_parser().parse_args(argv)

    try:
        settings = load_settings()
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    # Long-running modes start with a fresh log directory; one-shot runs append.
    setup_logging(
        production_mode=settings.production_mode,
        log_dir=settings.log_directory,
        clear_previous=args.command in ('run', 'webhook'),
    )
    logger = logging.getLogger('Main')

    try:
        bot = BotApplication(load_bot_config(settings))
    except ConfigurationError as exc:
        logger.error("❌ Configuration error: %s", exc)
        return 2

    if args.command in ('run', 'webhook'):
        try:
            logger.info("🚀 Starting bot (%s)...", args.command)
            if args.command == 'webhook':
                bot.run_webhook()
            else:
                bot.run()
        except KeyboardInterrupt:
            logger.info("✅ Stopped by user (Ctrl+C)")
        finally:
            tracking.flush()
        return 0

    action = getattr(bot, ONE_SHOT_COMMANDS[args.command])
    try:
        result = asyncio.run(action())
    except LockAcquisitionError as exc:
        logger.error("❌ %s", exc)
        return 1
    logger.info("%s finished: %s", args.command, result)
    return 0


if __name__ == '__main__':
    sys.exit(main())
