import asyncio
import random
from datetime import datetime, timedelta

import pytest

from config import SenderAccount, TransferSettings
from conftest import ALTERNATIVE, KEY_A, PRIMARY, RECIPIENTS, TOKEN, FakeClock, FakeLedger, failing
from ledger import EndpointPool
from retry_ladder import RetryLadder
from scheduler import (SESSION_REST, SessionScheduler, draw_amount, draw_delay, make_plan,
                       seconds_until_next_start, split_sessions)


@pytest.mark.parametrize("total", list(range(0, 60)) + [99, 100, 101, 997, 1000])
def test_sessions_sum_to_total(total):
    counts = split_sessions(total)
    assert len(counts) == 4
    assert all(isinstance(c, int) and c >= 0 for c in counts)
    assert sum(counts) == total


def test_ten_transfers_split_2_1_5_2():
    assert split_sessions(10) == (2, 1, 5, 2)


def test_zero_total_gives_empty_sessions():
    assert split_sessions(0) == (0, 0, 0, 0)


def test_daily_total_within_bounds():
    rng = random.Random(7)
    settings = TransferSettings(min_tx=3, max_tx=9, min_token=1, max_token=1)
    totals = {make_plan(rng, settings).total_tx for _ in range(500)}
    assert totals <= set(range(3, 10))
    assert 3 in totals and 9 in totals


def test_fixed_daily_total_when_bounds_equal():
    settings = TransferSettings(min_tx=4, max_tx=4, min_token=1, max_token=1)
    assert make_plan(random.Random(), settings).sessions == split_sessions(4)


def test_amount_is_integer_within_inclusive_bounds():
    rng = random.Random(1)
    settings = TransferSettings(min_tx=1, max_tx=1, min_token=2, max_token=5)
    amounts = [draw_amount(rng, settings) for _ in range(500)]
    assert all(isinstance(a, int) and 2 <= a <= 5 for a in amounts)
    assert {2, 5} <= set(amounts)


def test_delay_upper_bound_exclusive():
    rng = random.Random(3)
    acct = SenderAccount(private_key=KEY_A, token_contract=TOKEN, delay_min=4, delay_max=7)
    delays = {draw_delay(rng, acct) for _ in range(500)}
    assert delays == {4, 5, 6}


def test_delay_equal_bounds():
    acct = SenderAccount(private_key=KEY_A, token_contract=TOKEN, delay_min=5, delay_max=5)
    assert draw_delay(random.Random(), acct) == 5


@pytest.mark.parametrize("now", [
    datetime(2026, 3, 2, 7, 29, 59),
    datetime(2026, 3, 2, 7, 30, 0),
    datetime(2026, 3, 2, 0, 0, 1),
    datetime(2026, 3, 2, 23, 59, 59),
    datetime(2026, 12, 31, 12, 0, 0),
])
def test_overnight_wait_targets_next_day_0730(now):
    wait = seconds_until_next_start(now)
    target = now + timedelta(seconds=wait)
    assert target.date() == (now + timedelta(days=1)).date()
    assert (target.hour, target.minute, target.second) == (7, 30, 0)


def run_one_day(account, settings, ledger, recipients=RECIPIENTS, seed=11):
    records = []

    async def go():
        stop = asyncio.Event()

        def on_sleep(seconds):
            if seconds > SESSION_REST:
                stop.set()

        clock = FakeClock(on_sleep=on_sleep)
        ladder = RetryLadder(EndpointPool([PRIMARY, ALTERNATIVE]), ledger, clock, stop)
        sched = SessionScheduler(account, settings, recipients, ladder, clock, stop,
                                 explorer_tx_url="https://explorer/tx/",
                                 rng=random.Random(seed), report=records.append)
        await sched.run()
        return clock, sched

    clock, sched = asyncio.run(go())
    return records, clock, sched


def test_one_day_end_to_end(account, settings):
    ledger = FakeLedger()
    records, clock, sched = run_one_day(account, settings, ledger)

    assert len(records) == 5
    assert [r.tx_number for r in records] == [1, 2, 3, 4, 5]
    assert all(r.total_tx == 5 for r in records)
    assert all(r.recipient in RECIPIENTS for r in records)
    assert all(r.amount == 1 for r in records)
    assert all(r.status == "success" for r in records)
    assert all(r.delay == 0 for r in records)
    assert all(r.account == account.address for r in records)
    assert records[0].tx_link == "https://explorer/tx/" + ledger.confirmed[0]

    rests = [s for s in clock.sleeps if s == SESSION_REST]
    assert len(rests) == 3
    # last sleep is the overnight wait
    assert clock.sleeps[-1] > SESSION_REST
    assert sched.success_count == 5


def test_zero_transfers_runs_rests_and_overnight(account):
    settings = TransferSettings(min_tx=0, max_tx=0, min_token=1, max_token=1)
    ledger = FakeLedger()
    records, clock, _ = run_one_day(account, settings, ledger)
    assert records == []
    assert ledger.calls == []
    assert clock.sleeps[:3] == [SESSION_REST] * 3
    assert len(clock.sleeps) == 4


def test_failed_transfers_are_skipped_not_reported(account, settings):
    # first transfer exhausts its ladder, the rest succeed
    ledger = FakeLedger(script=failing(3))
    records, clock, sched = run_one_day(account, settings, ledger)
    assert len(records) == 4
    assert [r.tx_number for r in records] == [2, 3, 4, 5]
    assert clock.sleeps[:2] == [10, 120]
    assert sched.success_count == 4


def test_every_transfer_failing_still_finishes_day(account, settings):
    ledger = FakeLedger(script=failing(100))
    records, clock, _ = run_one_day(account, settings, ledger)
    assert records == []
    assert len(ledger.calls) == 15
    assert clock.sleeps.count(SESSION_REST) == 3


def test_stop_after_first_delay_ends_scheduler(account, settings):
    ledger = FakeLedger()
    records = []

    async def go():
        stop = asyncio.Event()
        clock = FakeClock(on_sleep=lambda s: stop.set())
        ladder = RetryLadder(EndpointPool([PRIMARY, ALTERNATIVE]), ledger, clock, stop)
        sched = SessionScheduler(account, settings, RECIPIENTS, ladder, clock, stop,
                                 rng=random.Random(3), report=records.append)
        await sched.run()
        return clock

    clock = asyncio.run(go())
    assert len(ledger.calls) == 1
    assert len(records) == 1
    # no rest period and no overnight wait once stopped
    assert clock.sleeps == [0]
