# ledger.py
from decimal import Decimal

from eth_account import Account
from web3 import Web3

from errors import ConfigurationError, ConfirmationError, LedgerConnectionError, SubmissionError
from log_setup import get_logger

log = get_logger(__name__)

# ====== SETTINGS ======
RPC_TIMEOUT = 30                     # seconds per HTTP request
RECEIPT_TIMEOUT = 300                # seconds to wait for a receipt
ASSUME_DECIMALS_IF_FAIL = 18         # fallback if decimals() fails
FALLBACK_GAS = 120_000
# ======================

ERC20_ABI = [
    {"name":"decimals","outputs":[{"type":"uint8"}],"inputs":[],"stateMutability":"view","type":"function"},
    {"name":"balanceOf","outputs":[{"type":"uint256"}],"inputs":[{"name":"a","type":"address"}],"stateMutability":"view","type":"function"},
    {"name":"transfer","outputs":[{"type":"bool"}],"inputs":[{"name":"to","type":"address"},{"name":"value","type":"uint256"}],"stateMutability":"nonpayable","type":"function"},
]


class EndpointPool:
    """Ordered RPC endpoints: index 0 is primary, index 1 the alternative."""

    def __init__(self, urls):
        self.urls = tuple(urls)
        if len(self.urls) < 2:
            raise ConfigurationError("need a primary and an alternative RPC endpoint")

    def endpoint(self, i: int) -> str:
        return self.urls[i]

    @property
    def primary(self):
        return self.urls[0]

    @property
    def alternative(self):
        return self.urls[1]

    def __len__(self):
        return len(self.urls)


def fees(w3: Web3):
    latest = w3.eth.get_block("latest")
    base = latest.get("baseFeePerGas", w3.eth.gas_price)
    tip  = w3.to_wei(1, "gwei")
    return {"maxFeePerGas": base + 2*tip, "maxPriorityFeePerGas": tip}


def safe_decimals(token):
    try:
        return token.functions.decimals().call()
    except Exception:
        log.warning("decimals_call_failed", assumed=ASSUME_DECIMALS_IF_FAIL)
        return ASSUME_DECIMALS_IF_FAIL


class Web3LedgerClient:
    """Submits ERC-20 transfers through web3.py. One Web3 instance per call to resolve_endpoint."""

    def __init__(self, rpc_timeout=RPC_TIMEOUT, receipt_timeout=RECEIPT_TIMEOUT):
        self.rpc_timeout = rpc_timeout
        self.receipt_timeout = receipt_timeout

    def resolve_endpoint(self, url: str) -> Web3:
        w3 = Web3(Web3.HTTPProvider(url, request_kwargs={"timeout": self.rpc_timeout}))
        try:
            w3.eth.chain_id
        except Exception as e:
            raise LedgerConnectionError(f"{url} unreachable: {e}") from e
        return w3

    def submit_transfer(self, w3: Web3, private_key: str, token_contract: str, to: str, amount: int) -> str:
        try:
            acct = Account.from_key(private_key)
            token = w3.eth.contract(Web3.to_checksum_address(token_contract), abi=ERC20_ABI)
            decimals = safe_decimals(token)
            value = int(Decimal(amount) * (10 ** decimals))
            fee = fees(w3)
            tx = token.functions.transfer(Web3.to_checksum_address(to), value).build_transaction({
                "chainId": w3.eth.chain_id,
                "from": acct.address,
                "nonce": w3.eth.get_transaction_count(acct.address, "pending"),
                "maxFeePerGas": fee["maxFeePerGas"],
                "maxPriorityFeePerGas": fee["maxPriorityFeePerGas"],
                "type": 2,
            })
            try:
                tx["gas"] = w3.eth.estimate_gas(tx)
            except Exception:
                tx["gas"] = FALLBACK_GAS
            signed = acct.sign_transaction(tx)
            raw = getattr(signed, "raw_transaction", None) or getattr(signed, "rawTransaction")
            txh = w3.eth.send_raw_transaction(raw)
        except Exception as e:
            raise SubmissionError(str(e) or repr(e)) from e
        return Web3.to_hex(txh)

    def confirm_transfer(self, w3: Web3, tx_hash: str) -> bool:
        try:
            rcpt = w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        except Exception as e:
            raise ConfirmationError(f"no receipt for {tx_hash}: {e}") from e
        if rcpt.status != 1:
            raise ConfirmationError(f"{tx_hash} reverted in block {rcpt.blockNumber}")
        return True


def check_endpoints(pool: EndpointPool, ledger: Web3LedgerClient):
    """Startup probe: return the first endpoint that answers, or fail."""
    for url in pool.urls:
        try:
            w3 = ledger.resolve_endpoint(url)
            log.info("rpc_connected", url=url, chain_id=w3.eth.chain_id)
            return url
        except LedgerConnectionError as e:
            log.error("rpc_unreachable", url=url, error=str(e))
    raise ConfigurationError("No responsive RPC endpoint")
