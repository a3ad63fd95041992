# retry_ladder.py
import asyncio
from dataclasses import dataclass
from typing import Optional

from log_setup import get_logger
from records import shorten_address

log = get_logger(__name__)

# (endpoint index, seconds to wait before the attempt)
LADDER = (
    (0, 0),      # primary
    (1, 10),     # alternative
    (0, 120),    # primary again, last try
)


@dataclass(frozen=True)
class TransferInstruction:
    recipient: str
    amount: int
    tx_number: int
    total_tx: int


@dataclass(frozen=True)
class TransferOutcome:
    tx_hash: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.tx_hash is not None


class RetryLadder:
    def __init__(self, pool, ledger, clock, stop: asyncio.Event = None, ladder=LADDER):
        self.pool = pool
        self.ledger = ledger
        self.clock = clock
        self.stop = stop
        self.ladder = ladder

    def _send(self, url, account, ins):
        # fresh connection and signer per attempt
        w3 = self.ledger.resolve_endpoint(url)
        txh = self.ledger.submit_transfer(w3, account.private_key, account.token_contract,
                                          ins.recipient, ins.amount)
        self.ledger.confirm_transfer(w3, txh)
        return txh

    async def attempt_transfer(self, account, ins: TransferInstruction) -> TransferOutcome:
        blog = log.bind(account=shorten_address(account.address), tx=f"{ins.tx_number}/{ins.total_tx}")
        blog.info("sending", amount=ins.amount, recipient=ins.recipient)
        last_error = None
        tried = 0
        for attempt, (idx, wait) in enumerate(self.ladder, start=1):
            if attempt > 1:
                if self.stop is not None and self.stop.is_set():
                    blog.warning("retry_skipped_on_shutdown", attempt=attempt)
                    break
                blog.info("retry_wait", seconds=wait, endpoint=idx)
                if await self.clock.sleep(wait, self.stop):
                    blog.warning("retry_skipped_on_shutdown", attempt=attempt)
                    break
            url = self.pool.endpoint(idx)
            tried = attempt
            try:
                txh = await asyncio.to_thread(self._send, url, account, ins)
                return TransferOutcome(tx_hash=txh)
            except Exception as e:
                last_error = str(e) or repr(e)
                if attempt < len(self.ladder):
                    blog.warning("attempt_failed", attempt=attempt, endpoint=idx, error=last_error)
        blog.error("transfer_failed", attempts=tried, error=last_error)
        return TransferOutcome(error=last_error)
