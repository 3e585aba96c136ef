"""
web3-backed submission sink and chain nonce source.

Transactions are legacy-priced: the gas price is a fixed share of the
expected profit spread over the fixed gas limit, so a mined transaction
never pays more in gas than the share of profit it was granted.
"""

from typing import Optional

from web3 import Web3

from ..interfaces import DirectRequest, FlashLoanRequest
from ..utils import get_logger, short_address
from .abi import ARBITRAGE_EXECUTOR_ABI

logger = get_logger(__name__)

DEFAULT_GAS_LIMIT = 1_500_000
DEFAULT_FLASH_GAS_PROFIT_SHARE = 0.6
DEFAULT_DIRECT_GAS_PROFIT_SHARE = 0.7


def gas_price_for(expected_profit: int, share: float, gas_limit: int) -> int:
    """Gas price (wei) spending `share` of the expected profit over `gas_limit`."""
    if expected_profit <= 0 or gas_limit <= 0:
        return 0
    permille = int(round(share * 1000))
    return expected_profit * permille // 1000 // gas_limit


class Web3NonceSource:
    """Reads the account's pending transaction count from the node."""

    def __init__(self, web3: Web3, account: str):
        self.web3 = web3
        self.account = Web3.to_checksum_address(account)

    def transaction_count(self) -> int:
        return self.web3.eth.get_transaction_count(self.account, "pending")

    __call__ = transaction_count


class Web3ArbitrageSubmitter:
    """
    Submission sink calling the on-chain arbitrage executor contract.

    Args:
        web3: Connected Web3 instance
        contract_address: Arbitrage executor contract
        account_address: Sending account
        private_key: Key used to sign locally; when omitted the node is
            asked to sign (unlocked account)
        gas_limit: Fixed gas limit for every transaction
        flash_gas_profit_share: Share of profit spent on gas for flash loans
        direct_gas_profit_share: Share of profit spent on gas for direct runs
        chain_id: Chain id to embed in signed transactions
    """

    def __init__(
        self,
        web3: Web3,
        contract_address: str,
        account_address: str,
        private_key: Optional[str] = None,
        gas_limit: int = DEFAULT_GAS_LIMIT,
        flash_gas_profit_share: float = DEFAULT_FLASH_GAS_PROFIT_SHARE,
        direct_gas_profit_share: float = DEFAULT_DIRECT_GAS_PROFIT_SHARE,
        chain_id: Optional[int] = None,
    ):
        self.web3 = web3
        self.account = Web3.to_checksum_address(account_address)
        self.private_key = private_key
        self.gas_limit = gas_limit
        self.flash_gas_profit_share = flash_gas_profit_share
        self.direct_gas_profit_share = direct_gas_profit_share
        self.chain_id = chain_id
        self.contract = web3.eth.contract(
            address=Web3.to_checksum_address(contract_address),
            abi=ARBITRAGE_EXECUTOR_ABI,
        )

    def submit_flash_loan(self, request: FlashLoanRequest) -> str:
        function = self.contract.functions.executeArbitrage(
            Web3.to_checksum_address(request.loan_pool),
            Web3.to_checksum_address(request.start_token),
            request.borrow_amount,
            [Web3.to_checksum_address(pool) for pool in request.path_pools],
            list(request.path_fees),
            request.repay_fee_bps,
        )
        gas_price = gas_price_for(
            request.expected_profit, self.flash_gas_profit_share, self.gas_limit
        )
        tx_hash = self._send(function, request.sequence, gas_price)
        logger.info(
            f"Flash loan tx {tx_hash} via {short_address(request.loan_pool)} "
            f"nonce={request.sequence} gas_price={gas_price}"
        )
        return tx_hash

    def submit_direct(self, request: DirectRequest) -> str:
        function = self.contract.functions.executeArbitrageDirect(
            Web3.to_checksum_address(request.start_token),
            request.start_amount,
            [Web3.to_checksum_address(pool) for pool in request.path_pools],
            list(request.path_fees),
        )
        gas_price = gas_price_for(
            request.expected_profit, self.direct_gas_profit_share, self.gas_limit
        )
        tx_hash = self._send(function, request.sequence, gas_price)
        logger.info(f"Direct tx {tx_hash} nonce={request.sequence} gas_price={gas_price}")
        return tx_hash

    def _send(self, function, nonce: int, gas_price: int) -> str:
        params = {
            "from": self.account,
            "nonce": nonce,
            "gas": self.gas_limit,
            "gasPrice": gas_price,
        }
        if self.chain_id is not None:
            params["chainId"] = self.chain_id
        tx = function.build_transaction(params)

        if self.private_key:
            signed = self.web3.eth.account.sign_transaction(tx, self.private_key)
            tx_hash = self.web3.eth.send_raw_transaction(signed.raw_transaction)
        else:
            tx_hash = self.web3.eth.send_transaction(tx)
        return self.web3.to_hex(tx_hash)
