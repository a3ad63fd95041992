# recipients.py
import os

from web3 import Web3

from errors import ConfigurationError, RecipientValidationError
from log_setup import get_logger

log = get_logger(__name__)


def load_recipients(path):
    """Read one address per line; refuse the whole file if any line is bad."""
    if not os.path.exists(path):
        raise ConfigurationError(f"Recipient file not found: {path}")
    log.info("loading_recipients", path=path)
    with open(path, "r", encoding="utf-8-sig") as f:
        addresses = [line.strip() for line in f if line.strip()]

    invalid = [a for a in addresses if not Web3.is_address(a)]
    if invalid:
        for a in invalid:
            log.error("invalid_recipient", address=a)
        raise RecipientValidationError(invalid, path)
    if not addresses:
        raise ConfigurationError(f"Recipient file is empty: {path}")

    log.info("recipients_loaded", count=len(addresses))
    return tuple(Web3.to_checksum_address(a) for a in addresses)
