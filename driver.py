# driver.py
import asyncio
import random

from log_setup import get_logger
from records import print_record, shorten_address
from retry_ladder import RetryLadder
from scheduler import SessionScheduler

log = get_logger(__name__)


async def _guarded(scheduler: SessionScheduler, label: str):
    # one account blowing up must not take the others down
    try:
        await scheduler.run()
    except asyncio.CancelledError:
        raise
    except Exception:
        log.exception("account_crashed", account=label)


def build_schedulers(config, pool, recipients, ledger, clock, stop, report=print_record, seed=None):
    ladder = RetryLadder(pool, ledger, clock, stop)
    schedulers = []
    for i, account in enumerate(config.accounts):
        rng = random.Random(None if seed is None else seed + i)
        schedulers.append(SessionScheduler(
            account, config.settings, recipients, ladder, clock, stop,
            explorer_tx_url=config.explorer_tx_url, rng=rng, report=report,
            label=f"#{i + 1} {shorten_address(account.address)}",
        ))
    return schedulers


async def run_accounts(config, pool, recipients, ledger, clock, stop: asyncio.Event,
                       report=print_record, seed=None):
    schedulers = build_schedulers(config, pool, recipients, ledger, clock, stop, report, seed)
    log.info("starting_accounts", accounts=len(schedulers))
    tasks = [asyncio.create_task(_guarded(s, s.log_label), name=f"account-{i + 1}")
             for i, s in enumerate(schedulers)]
    await asyncio.gather(*tasks)
    log.info("all_accounts_stopped")
