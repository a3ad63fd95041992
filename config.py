# config.py
import os
import re
from dataclasses import dataclass, field
from typing import Callable, Mapping, Optional, Tuple

from eth_account import Account
from web3 import Web3

from errors import ConfigurationError

# ====== DEFAULTS ======
DEFAULT_RECIPIENTS_FILE = "recipients.txt"
DEFAULT_EXPLORER_TX_URL = "https://sepolia.tea.xyz/tx/"
# ======================

PRIVATE_KEY_RE = re.compile(r"^0x[a-fA-F0-9]{64}$")


@dataclass(frozen=True)
class SenderAccount:
    private_key: str = field(repr=False)
    token_contract: str
    delay_min: int
    delay_max: int
    address: str = field(default="", compare=False)

    def __post_init__(self):
        # derived once; raises for keys outside the secp256k1 range
        if not self.address:
            object.__setattr__(self, "address", Account.from_key(self.private_key).address)


@dataclass(frozen=True)
class TransferSettings:
    min_tx: int
    max_tx: int
    min_token: int
    max_token: int


@dataclass(frozen=True)
class BatchConfig:
    endpoints: Tuple[str, ...]
    accounts: Tuple[SenderAccount, ...]
    settings: TransferSettings
    recipients_file: str = DEFAULT_RECIPIENTS_FILE
    explorer_tx_url: str = DEFAULT_EXPLORER_TX_URL


def _split(raw):
    return [part.strip() for part in raw.split(",") if part.strip()]


def _to_int(name, raw):
    try:
        return int(str(raw).strip())
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None


def validate_endpoint(name, url):
    if not url or not url.startswith("http"):
        raise ConfigurationError(f"{name} is not a valid RPC endpoint (must start with 'http'): {url!r}")
    return url


def validate_account(index, private_key, token_contract, delay_min, delay_max):
    label = f"account {index + 1}"
    if not PRIVATE_KEY_RE.match(private_key or ""):
        raise ConfigurationError(f"{label}: private key must be 0x followed by 64 hex characters")
    try:
        address = Account.from_key(private_key).address
    except Exception:
        raise ConfigurationError(f"{label}: invalid private key") from None
    if not Web3.is_address(token_contract or ""):
        raise ConfigurationError(f"{label}: invalid token contract address {token_contract!r}")
    dmin = _to_int(f"{label} delay min", delay_min)
    dmax = _to_int(f"{label} delay max", delay_max)
    if dmin < 0 or dmax < dmin:
        raise ConfigurationError(f"{label}: delay bounds must satisfy 0 <= min <= max (got {dmin}, {dmax})")
    return SenderAccount(
        private_key=private_key,
        token_contract=Web3.to_checksum_address(token_contract),
        delay_min=dmin,
        delay_max=dmax,
        address=address,
    )


def validate_settings(min_tx, max_tx, min_token, max_token):
    min_tx, max_tx = _to_int("MIN_TX", min_tx), _to_int("MAX_TX", max_tx)
    min_token, max_token = _to_int("MIN_TOKEN", min_token), _to_int("MAX_TOKEN", max_token)
    if min_tx < 0 or max_tx < min_tx:
        raise ConfigurationError(f"daily tx bounds must satisfy 0 <= min <= max (got {min_tx}, {max_tx})")
    if min_token < 0 or max_token < min_token:
        raise ConfigurationError(f"token amount bounds must satisfy 0 <= min <= max (got {min_token}, {max_token})")
    return TransferSettings(min_tx, max_tx, min_token, max_token)


def _per_account(name, raw, count):
    values = _split(raw)
    if len(values) == 1:
        return values * count
    if len(values) != count:
        raise ConfigurationError(f"{name} has {len(values)} values for {count} accounts")
    return values


class _Source:
    """Environment lookup that falls back to a console prompt when allowed."""

    def __init__(self, env, ask):
        self.env = env
        self.ask = ask

    def get(self, key, question, default=None):
        value = (self.env.get(key) or "").strip()
        if value:
            return value
        if default is not None:
            return default
        if self.ask is None:
            raise ConfigurationError(f"Missing {key}")
        return self.ask(question).strip()


def load_config(env: Optional[Mapping[str, str]] = None,
                ask: Optional[Callable[[str], str]] = None) -> BatchConfig:
    """
    Build the immutable run configuration.

    `env` defaults to os.environ (call load_dotenv() first to pick up a .env
    file). When `ask` is given, missing values are requested interactively,
    one account at a time, the same questions the console tool used to ask.
    """
    src = _Source(os.environ if env is None else env, ask)

    primary = validate_endpoint("RPC_URL_PRIMARY", src.get("RPC_URL_PRIMARY", "Primary RPC endpoint: "))
    alternative = validate_endpoint("RPC_URL_ALTERNATIVE",
                                    src.get("RPC_URL_ALTERNATIVE", "Alternative RPC endpoint: "))

    keys = _split(src.env.get("PRIVATE_KEYS", ""))
    if keys:
        count = len(keys)
        declared = (src.env.get("ACCOUNT_COUNT") or "").strip()
        if declared and _to_int("ACCOUNT_COUNT", declared) != count:
            raise ConfigurationError(f"ACCOUNT_COUNT is {declared} but PRIVATE_KEYS has {count} entries")
        contracts = _split(src.get("TOKEN_CONTRACTS", "Token contracts (comma separated): "))
        if len(contracts) != count:
            raise ConfigurationError(f"TOKEN_CONTRACTS has {len(contracts)} entries for {count} private keys")
        delay_mins = _per_account("DELAY_MIN", src.get("DELAY_MIN", "Delay MIN (seconds): "), count)
        delay_maxs = _per_account("DELAY_MAX", src.get("DELAY_MAX", "Delay MAX (seconds): "), count)
        accounts = [validate_account(i, keys[i], contracts[i], delay_mins[i], delay_maxs[i])
                    for i in range(count)]
    else:
        if ask is None:
            raise ConfigurationError("Missing PRIVATE_KEYS")
        count = _to_int("account count", src.get("ACCOUNT_COUNT", "Number of accounts to run: "))
        if count <= 0:
            raise ConfigurationError("account count must be greater than zero")
        accounts = []
        for i in range(count):
            key = ask(f"Private key for account {i + 1}: ").strip()
            contract = ask(f"ERC-20 token contract for account {i + 1}: ").strip()
            dmin = ask(f"Delay MIN (seconds) for account {i + 1}: ")
            dmax = ask(f"Delay MAX (seconds) for account {i + 1}: ")
            accounts.append(validate_account(i, key, contract, dmin, dmax))

    settings = validate_settings(
        src.get("MIN_TX", "Minimum daily transactions per account: "),
        src.get("MAX_TX", "Maximum daily transactions per account: "),
        src.get("MIN_TOKEN", "Minimum tokens per transfer: "),
        src.get("MAX_TOKEN", "Maximum tokens per transfer: "),
    )

    return BatchConfig(
        endpoints=(primary, alternative),
        accounts=tuple(accounts),
        settings=settings,
        recipients_file=src.get("RECIPIENTS_FILE", "", default=DEFAULT_RECIPIENTS_FILE),
        explorer_tx_url=src.get("EXPLORER_TX_URL", "", default=DEFAULT_EXPLORER_TX_URL),
    )
