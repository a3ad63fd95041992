#!/usr/bin/env python3
"""
daily_sender.py

Sends randomized ERC-20 transfers from one or more accounts on a daily
schedule: four sessions (20% / 10% / 50% / rest of the day's total) with
1h05m breaks, then sleep until 07:30 the next day. Failed sends are retried
on the alternative RPC after 10s and on the primary again after 2 minutes.

Usage:
  python3 daily_sender.py --env-file .env --recipients recipients.txt

Anything missing from the environment is asked for on the console unless
--no-prompt is given. Ctrl+C lets in-flight transfers finish, then exits.
"""

import argparse
import asyncio
import signal
import sys

from dotenv import load_dotenv

from clock import Clock
from config import load_config
from driver import run_accounts
from errors import ConfigurationError
from ledger import EndpointPool, Web3LedgerClient, check_endpoints
from log_setup import configure_logging, get_logger
from recipients import load_recipients
from records import log_record, print_record

log = get_logger(__name__)


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Scheduled daily ERC-20 batch sender")
    p.add_argument("--env-file", default=".env", help="dotenv file to load (default .env)")
    p.add_argument("--recipients", help="recipient address file (overrides RECIPIENTS_FILE)")
    p.add_argument("--no-prompt", action="store_true", help="fail instead of prompting for missing settings")
    p.add_argument("--log-level", default="INFO", help="DEBUG, INFO, WARNING, ERROR")
    p.add_argument("--json-logs", action="store_true", help="emit JSON log lines")
    return p.parse_args(argv)


def prepare(args, ledger):
    load_dotenv(args.env_file)
    config = load_config(ask=None if args.no_prompt else input)
    pool = EndpointPool(config.endpoints)
    log.info("endpoints", primary=pool.primary, alternative=pool.alternative)
    check_endpoints(pool, ledger)
    log.info("accounts_configured", accounts=len(config.accounts))
    recipients = load_recipients(args.recipients or config.recipients_file)
    return config, pool, recipients


async def serve(config, pool, recipients, ledger, report=print_record):
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows event loops
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(stop.set))
    await run_accounts(config, pool, recipients, ledger, Clock(), stop, report=report)


def main(argv=None):
    args = parse_args(argv)
    configure_logging(args.log_level, args.json_logs)
    ledger = Web3LedgerClient()
    try:
        config, pool, recipients = prepare(args, ledger)
    except ConfigurationError as e:
        log.error("startup_failed", error=str(e))
        return 1
    except (EOFError, KeyboardInterrupt):
        log.error("startup_aborted")
        return 1
    report = log_record if args.json_logs else print_record
    asyncio.run(serve(config, pool, recipients, ledger, report))
    return 0


if __name__ == "__main__":
    sys.exit(main())
