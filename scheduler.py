# scheduler.py
import asyncio
import random
from dataclasses import dataclass
from datetime import datetime, timedelta

from log_setup import get_logger
from records import TransferRecord, print_record, shorten_address
from retry_ladder import TransferInstruction

log = get_logger(__name__)

# ====== SCHEDULE ======
SESSION_WEIGHTS = (0.2, 0.1, 0.5)    # session 4 takes the remainder
SESSION_REST = 3900                  # 1h05m between sessions
DAILY_START = (7, 30)                # next day's start, local time
# ======================


@dataclass(frozen=True)
class DailyPlan:
    total_tx: int
    sessions: tuple


def split_sessions(total_tx: int) -> tuple:
    counts = [int(total_tx * w) for w in SESSION_WEIGHTS]
    counts.append(total_tx - sum(counts))
    return tuple(counts)


def make_plan(rng, settings) -> DailyPlan:
    total = rng.randint(settings.min_tx, settings.max_tx)
    return DailyPlan(total, split_sessions(total))


def draw_amount(rng, settings) -> int:
    return rng.randint(settings.min_token, settings.max_token)


def draw_delay(rng, account) -> int:
    # upper bound is exclusive; equal bounds give exactly delay_min
    if account.delay_max <= account.delay_min:
        return account.delay_min
    return rng.randrange(account.delay_min, account.delay_max)


def seconds_until_next_start(now: datetime, start=DAILY_START) -> float:
    hour, minute = start
    nxt = (now + timedelta(days=1)).replace(hour=hour, minute=minute, second=0, microsecond=0)
    return (nxt - now).total_seconds()


class SessionScheduler:
    """Runs one account's day after day: four sessions, rests, overnight wait."""

    def __init__(self, account, settings, recipients, ladder, clock, stop: asyncio.Event,
                 explorer_tx_url="", rng=None, report=print_record, label=None):
        self.account = account
        self.settings = settings
        self.recipients = recipients
        self.ladder = ladder
        self.clock = clock
        self.stop = stop
        self.explorer_tx_url = explorer_tx_url
        self.rng = rng or random.Random()
        self.report = report
        self.address = account.address
        self.log_label = label or shorten_address(self.address)
        self.log = log.bind(account=self.log_label)
        self.success_count = 0

    @property
    def stopped(self) -> bool:
        return self.stop.is_set()

    async def run(self):
        while not self.stopped:
            await self.run_day()
            if self.stopped:
                break
            wait = seconds_until_next_start(self.clock.now())
            self.log.info("day_finished", success=self.success_count,
                          wait_minutes=round(wait / 60), resume="07:30 tomorrow")
            await self.clock.sleep(wait, self.stop)
        self.log.info("scheduler_stopped")

    async def run_day(self) -> int:
        plan = make_plan(self.rng, self.settings)
        self.success_count = 0
        self.log.info("day_started", total_tx=plan.total_tx, sessions=list(plan.sessions))
        tx_number = 1
        last = len(plan.sessions)
        for n, count in enumerate(plan.sessions, start=1):
            tx_number = await self.run_session(n, count, plan, tx_number)
            if self.stopped:
                break
            if n < last:
                self.log.info("session_rest", seconds=SESSION_REST)
                if await self.clock.sleep(SESSION_REST, self.stop):
                    break
        return self.success_count

    async def run_session(self, n, count, plan, tx_number) -> int:
        self.log.info("session_started", session=n, count=count)
        for _ in range(count):
            if self.stopped:
                return tx_number
            ins = TransferInstruction(
                recipient=self.rng.choice(self.recipients),
                amount=draw_amount(self.rng, self.settings),
                tx_number=tx_number,
                total_tx=plan.total_tx,
            )
            outcome = await self.ladder.attempt_transfer(self.account, ins)
            delay = draw_delay(self.rng, self.account)
            if outcome.ok:
                self.success_count += 1
                self.log.info("transfer_confirmed", success=self.success_count, tx_hash=outcome.tx_hash)
                self.report(TransferRecord(
                    timestamp=self.clock.now().strftime("%H:%M:%S"),
                    status="success",
                    tx_number=ins.tx_number,
                    total_tx=ins.total_tx,
                    account=self.address,
                    recipient=ins.recipient,
                    amount=ins.amount,
                    tx_link=self.explorer_tx_url + outcome.tx_hash,
                    delay=delay,
                ))
            tx_number += 1
            self.log.info("waiting", seconds=delay)
            if await self.clock.sleep(delay, self.stop):
                return tx_number
        self.log.info("session_finished", session=n)
        return tx_number
