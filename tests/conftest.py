"""Shared fakes and fixtures: no network, no real waiting."""

from datetime import datetime, timedelta

import pytest

from config import SenderAccount, TransferSettings
from errors import LedgerConnectionError, SubmissionError

PRIMARY = "http://primary.rpc"
ALTERNATIVE = "http://alternative.rpc"
KEY_A = "0x" + "11" * 32
KEY_B = "0x" + "22" * 32
TOKEN = "0x" + "cd" * 20
RECIPIENTS = ("0x" + "ab" * 20, "0x" + "ef" * 20)


class FakeClock:
    """Records requested sleeps and advances a virtual now."""

    def __init__(self, now=datetime(2026, 3, 2, 7, 30), on_sleep=None, park_over=None):
        self.current = now
        self.sleeps = []
        self.on_sleep = on_sleep
        # sleeps longer than this block until stop is set
        self.park_over = park_over

    def now(self):
        return self.current

    async def sleep(self, seconds, stop=None):
        self.sleeps.append(seconds)
        self.current += timedelta(seconds=seconds)
        if self.on_sleep:
            self.on_sleep(seconds)
        if self.park_over is not None and stop is not None and seconds > self.park_over:
            await stop.wait()
        return bool(stop is not None and stop.is_set())


class FakeLedger:
    """
    `script` is a list of outcomes consumed one per attempt: True succeeds,
    an exception instance is raised from submit. When exhausted every
    attempt succeeds.
    """

    def __init__(self, script=None, unreachable=()):
        self.script = list(script or [])
        self.unreachable = set(unreachable)
        self.calls = []
        self.confirmed = []
        self.counter = 0

    def resolve_endpoint(self, url):
        if url in self.unreachable:
            raise LedgerConnectionError(f"{url} unreachable")
        return FakeHandle(url)

    def submit_transfer(self, handle, private_key, token_contract, to, amount):
        self.calls.append((handle.url, to, amount))
        step = self.script.pop(0) if self.script else True
        if isinstance(step, Exception):
            raise step
        self.counter += 1
        return "0x%064x" % self.counter

    def confirm_transfer(self, handle, tx_hash):
        self.confirmed.append(tx_hash)
        return True


class FakeHandle:
    def __init__(self, url):
        self.url = url

    class eth:
        chain_id = 10218


def failing(n):
    return [SubmissionError(f"boom {i}") for i in range(n)]


@pytest.fixture
def account():
    return SenderAccount(private_key=KEY_A, token_contract=TOKEN, delay_min=0, delay_max=1)


@pytest.fixture
def settings():
    return TransferSettings(min_tx=5, max_tx=5, min_token=1, max_token=1)


@pytest.fixture
def clock():
    return FakeClock()
