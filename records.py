# records.py
from dataclasses import asdict, dataclass

from log_setup import get_logger

log = get_logger(__name__)

DIVIDER = "═" * 64


def shorten_address(address: str) -> str:
    if len(address) <= 10:
        return address
    return address[:6] + "...." + address[-4:]


@dataclass(frozen=True)
class TransferRecord:
    timestamp: str
    status: str
    tx_number: int
    total_tx: int
    account: str
    recipient: str
    amount: int
    tx_link: str
    delay: int

    def lines(self):
        return [
            DIVIDER,
            f"Timestamp  : {self.timestamp}",
            f"Status     : TX {self.status.upper()}",
            f"Tx No.     : {self.tx_number}/{self.total_tx}",
            f"Account    : {self.account}",
            f"Recipient  : {shorten_address(self.recipient)}",
            f"Amount     : {self.amount} TOKEN",
            f"Tx Link    : {self.tx_link}",
            f"Delay      : {self.delay} sec",
            DIVIDER,
        ]


def print_record(record: TransferRecord) -> None:
    print("\n".join(record.lines()), flush=True)


def log_record(record: TransferRecord) -> None:
    """JSON-log counterpart of print_record."""
    log.info("transfer_record", **asdict(record))
