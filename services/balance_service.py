"""
Balance Service
Handles balance queries and contract status reports
"""

import logging
from decimal import Decimal
from dataclasses import dataclass
from typing import Dict, Any

from .contract_service import ContractService
from .units import NATIVE_DECIMALS, from_base_units, tinybar_to_wei

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Balances:
    token: Decimal
    hbar: Decimal


@dataclass(frozen=True)
class ContractStatus:
    faucet_balance: Decimal
    drip_amount: Decimal
    buy_token_balance: Decimal
    token_price: Decimal
    min_purchase: Decimal
    max_purchase: Decimal
    sell_hbar_balance: Decimal
    min_sell: Decimal
    max_sell: Decimal


class BalanceService:
    """Reads wallet balances and contract liquidity"""

    def __init__(self, contract_service: ContractService, config: Dict[str, Any]):
        """
        Initialize Balance Service

        Args:
            contract_service: ContractService instance
            config: Bot configuration dictionary
        """
        self.contracts = contract_service
        self.config = config
        self.decimals = config['token']['decimals']

    def get_balances(self, address: str) -> Balances:
        """
        Get token and HBAR balances for an address

        Args:
            address: Wallet address

        Returns:
            Balances in display units
        """
        logger.info(f"Fetching balances for {address}")
        token_balance = self.contracts.get_token_balance(address)
        hbar_balance = self.contracts.get_native_balance(address)
        return Balances(
            token=from_base_units(token_balance, self.decimals),
            hbar=from_base_units(hbar_balance, NATIVE_DECIMALS)
        )

    def get_contract_status(self) -> ContractStatus:
        """Collect faucet, buy and sell contract figures for the status report"""
        call = self.contracts.call
        tokens = lambda value: from_base_units(value, self.decimals)

        return ContractStatus(
            faucet_balance=tokens(call('faucet', 'getFaucetBalance')),
            drip_amount=tokens(call('faucet', 'dripAmount')),
            buy_token_balance=tokens(call('buy', 'getTokenBalance')),
            token_price=from_base_units(call('buy', 'tokenPrice'), NATIVE_DECIMALS),
            min_purchase=tokens(call('buy', 'minPurchase')),
            max_purchase=tokens(call('buy', 'maxPurchase')),
            sell_hbar_balance=from_base_units(tinybar_to_wei(call('sell', 'getHBARBalance')), NATIVE_DECIMALS),
            min_sell=tokens(call('sell', 'minSell')),
            max_sell=tokens(call('sell', 'maxSell')),
        )
