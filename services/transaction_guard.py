"""
Transaction Guard Service
Read-only pre-flight checks before faucet claims, swaps and transfers

Every operation runs its checks in order and stops at the first failure,
so a doomed transaction never costs the user gas. The contracts remain the
final authority: state can change between the checks and the write, and an
on-chain revert is reported as a failure too.
"""

import html
import logging
from enum import Enum
from decimal import Decimal
from dataclasses import dataclass
from typing import Dict, Any, Optional, Union
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted

from .contract_service import ContractService
from .cooldown import cooldown_status, format_duration
from .units import (
    NATIVE_DECIMALS,
    from_base_units,
    to_base_units,
    tinybar_to_wei,
    format_amount
)

logger = logging.getLogger(__name__)

FAUCET_GAS_LIMIT = 300000
BUY_GAS_LIMIT = 500000
APPROVE_GAS_LIMIT = 200000
SELL_GAS_LIMIT = 1000000
TOKEN_TRANSFER_GAS_LIMIT = 100000
NATIVE_TRANSFER_GAS_LIMIT = 21000

# 21000 gas at the relay's fixed 430 gwei gas price
ESTIMATED_TRANSFER_FEE = 21000 * 430_000_000_000

Amount = Union[int, float, str, Decimal]


class FailureReason(Enum):
    NO_WALLET = 'no_wallet'
    VALIDATION = 'validation'
    INSUFFICIENT_GAS = 'insufficient_gas'
    INSUFFICIENT_BALANCE = 'insufficient_balance'
    COOLDOWN = 'cooldown'
    LIQUIDITY = 'liquidity'
    BOUNDS = 'bounds'
    REVERTED = 'reverted'
    APPROVAL = 'approval'
    TRANSPORT = 'transport'


@dataclass(frozen=True)
class TxResult:
    """Outcome of a write operation: either a mined transaction or a failure reason"""
    success: bool
    tx_hash: Optional[str] = None
    amount: Optional[str] = None
    recipient: Optional[str] = None
    reason: Optional[FailureReason] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, tx_hash: str, amount: Optional[str] = None, recipient: Optional[str] = None) -> 'TxResult':
        return cls(success=True, tx_hash=tx_hash, amount=amount, recipient=recipient)

    @classmethod
    def fail(cls, reason: FailureReason, error: str) -> 'TxResult':
        return cls(success=False, reason=reason, error=error)


GAS_HINT = "Use /hbarfaucet to get test HBAR."

# Revert reasons emitted by the contracts and provider error fragments
KNOWN_ERRORS = [
    ('Cooldown period not elapsed', FailureReason.COOLDOWN,
     "⏰ Cooldown period not elapsed!\n\nYou must wait between faucet claims."),
    ('Faucet is empty', FailureReason.LIQUIDITY,
     "❌ Faucet is empty!\n\nPlease contact the admin to refill the faucet."),
    ('Insufficient tokens in contract', FailureReason.LIQUIDITY,
     "❌ Buy contract is out of tokens!\n\nPlease contact the admin to refill."),
    ('Insufficient HBAR in contract', FailureReason.LIQUIDITY,
     "❌ Sell contract is out of HBAR!\n\nPlease contact the admin to refill."),
    ('Below minimum purchase amount', FailureReason.BOUNDS,
     "⚠️ Purchase amount is below minimum!\n\nTry buying with more HBAR."),
    ('Exceeds maximum purchase amount', FailureReason.BOUNDS,
     "⚠️ Purchase amount exceeds maximum!\n\nTry buying with less HBAR."),
    ('Below minimum sell amount', FailureReason.BOUNDS,
     "⚠️ Sell amount is below minimum!\n\nTry selling more tokens."),
    ('Exceeds maximum sell amount', FailureReason.BOUNDS,
     "⚠️ Sell amount exceeds maximum!\n\nTry selling fewer tokens."),
    ('insufficient funds', FailureReason.INSUFFICIENT_GAS,
     f"⚠️ Insufficient HBAR for this transaction + gas fees.\n\n{GAS_HINT}"),
    ('INSUFFICIENT_PAYER_BALANCE', FailureReason.INSUFFICIENT_GAS,
     f"⚠️ Insufficient HBAR for this transaction + gas fees.\n\n{GAS_HINT}"),
]


def classify_exception(exc: Exception) -> TxResult:
    """
    Map a provider or contract exception to a failure result

    Args:
        exc: Exception raised by web3 while reading, sending or waiting

    Returns:
        Failure TxResult with a user-facing message
    """
    message = html.escape(str(exc))
    lowered = message.lower()

    if isinstance(exc, TimeExhausted):
        return TxResult.fail(
            FailureReason.TRANSPORT,
            "⌛ Transaction was not confirmed in time.\n\nCheck your balance before trying again."
        )

    for fragment, reason, text in KNOWN_ERRORS:
        if fragment.lower() in lowered:
            return TxResult.fail(reason, text)

    if isinstance(exc, ContractLogicError):
        return TxResult.fail(
            FailureReason.REVERTED,
            f"❌ Smart contract rejected the transaction!\n\n{message}"
        )

    return TxResult.fail(FailureReason.TRANSPORT, f"⚠️ Transaction failed: {message or type(exc).__name__}")


def display(value: int, decimals: int = NATIVE_DECIMALS) -> str:
    """Render base units as a plain decimal string without exponent"""
    return format(from_base_units(value, decimals).normalize(), 'f')


def to_units(amount: Amount, decimals: int) -> int:
    """Base units for a user amount, or 0 when the amount cannot be represented"""
    try:
        return to_base_units(amount, decimals)
    except ValueError:
        return 0


class TransactionGuard:
    """Runs guard sequences and submits faucet, buy, sell and transfer transactions"""

    def __init__(self, contract_service: ContractService, config: Dict[str, Any]):
        """
        Initialize Transaction Guard

        Args:
            contract_service: ContractService instance
            config: Bot configuration dictionary
        """
        self.contracts = contract_service
        self.config = config
        self.symbol = config['token']['symbol']
        self.decimals = config['token']['decimals']
        self.cooldown = config['faucet']['cooldown']
        self.drip_amount = config['faucet']['drip_amount']

    def _tokens(self, value: int) -> str:
        return display(value, self.decimals)

    # ============================================================
    # FAUCET
    # ============================================================

    def claim_faucet(self, private_key: str, last_claim: Optional[str] = None) -> TxResult:
        """
        Claim one drip from the faucet

        Args:
            private_key: Claimer's private key
            last_claim: Locally recorded time of the user's last successful claim

        Returns:
            TxResult with the drip amount on success
        """
        try:
            address = self.contracts.get_account(private_key).address

            hbar_balance = self.contracts.get_native_balance(address)
            logger.info(f"Faucet claim for {address}: HBAR balance {hbar_balance}")
            if hbar_balance == 0:
                return TxResult.fail(
                    FailureReason.INSUFFICIENT_GAS,
                    f"⚠️ You need HBAR for gas fees!\n\n{GAS_HINT}"
                )

            status = cooldown_status(last_claim, self.cooldown)
            if not status.eligible:
                return TxResult.fail(
                    FailureReason.COOLDOWN,
                    f"⏰ Faucet cooldown active!\n\nYou can claim again in {format_duration(status.remaining_seconds)}"
                    f"\n\nThe faucet drips {self._tokens(self.drip_amount)} {self.symbol} every "
                    f"{format_duration(self.cooldown)}."
                )

            if not self.contracts.call('faucet', 'canRequestTokens', address):
                remaining = self.contracts.call('faucet', 'timeUntilNextDrip', address)
                return TxResult.fail(
                    FailureReason.COOLDOWN,
                    f"⏰ Faucet cooldown active!\n\nYou can claim again in {format_duration(remaining)}"
                )

            faucet_balance = self.contracts.call('faucet', 'getFaucetBalance')
            drip_amount = self.contracts.call('faucet', 'dripAmount')
            logger.info(f"Faucet balance: {self._tokens(faucet_balance)}, drip amount: {self._tokens(drip_amount)}")
            if faucet_balance < drip_amount:
                return TxResult.fail(
                    FailureReason.LIQUIDITY,
                    "❌ Faucet is empty!\n\nPlease contact the admin to refill the faucet."
                )

            receipt = self.contracts.send_contract_call(
                private_key, 'faucet', 'requestTokens', gas=FAUCET_GAS_LIMIT
            )
            if receipt['status'] == 0:
                return TxResult.fail(
                    FailureReason.REVERTED,
                    "❌ Transaction reverted!\n\nPossible reasons:\n"
                    "• Cooldown period not expired\n"
                    "• Faucet is empty\n"
                    "• Contract is paused\n\n"
                    "Please try again later."
                )

            return TxResult.ok(self.contracts.receipt_hash(receipt), amount=self._tokens(drip_amount))

        except Exception as e:
            logger.error(f"Faucet claim error: {e}", exc_info=True)
            return classify_exception(e)

    # ============================================================
    # BUY
    # ============================================================

    def buy_tokens(self, private_key: str, hbar_amount: Amount) -> TxResult:
        """
        Buy tokens by paying HBAR to the buy contract

        Args:
            private_key: Buyer's private key
            hbar_amount: HBAR to spend, in display units

        Returns:
            TxResult with the quoted token amount on success
        """
        try:
            value = to_units(hbar_amount, NATIVE_DECIMALS)
            if value <= 0:
                return TxResult.fail(FailureReason.VALIDATION, "❌ Invalid amount!\n\nPlease enter a positive number.")

            address = self.contracts.get_account(private_key).address

            balance = self.contracts.get_native_balance(address)
            logger.info(f"Buy with {hbar_amount} HBAR from {address}, balance {display(balance)} HBAR")
            if balance < value:
                return TxResult.fail(
                    FailureReason.INSUFFICIENT_BALANCE,
                    f"⚠️ Insufficient HBAR!\n\nYou need {hbar_amount} HBAR but only have "
                    f"{format_amount(from_base_units(balance), 4)} HBAR.\n\n{GAS_HINT}"
                )

            tokens_to_receive = self.contracts.call('buy', 'calculateTokenAmount', value)
            contract_balance = self.contracts.call('buy', 'getTokenBalance')
            logger.info(f"Tokens to receive: {self._tokens(tokens_to_receive)}, "
                        f"contract balance: {self._tokens(contract_balance)}")
            if contract_balance < tokens_to_receive:
                return TxResult.fail(
                    FailureReason.LIQUIDITY,
                    f"❌ Contract doesn't have enough tokens!\n\n"
                    f"Contract has: {self._tokens(contract_balance)} {self.symbol}\n"
                    f"Needed: {self._tokens(tokens_to_receive)} {self.symbol}\n\n"
                    f"Please contact the admin to refill the buy contract."
                )

            min_purchase = self.contracts.call('buy', 'minPurchase')
            max_purchase = self.contracts.call('buy', 'maxPurchase')
            if tokens_to_receive < min_purchase:
                min_hbar = self.contracts.call('buy', 'calculateHBARCost', min_purchase)
                return TxResult.fail(
                    FailureReason.BOUNDS,
                    f"⚠️ Purchase amount too small!\n\n"
                    f"Minimum purchase: {self._tokens(min_purchase)} {self.symbol}\n"
                    f"You would receive: {self._tokens(tokens_to_receive)} {self.symbol}\n\n"
                    f"Try buying with at least {display(min_hbar)} HBAR."
                )
            if tokens_to_receive > max_purchase:
                max_hbar = self.contracts.call('buy', 'calculateHBARCost', max_purchase)
                return TxResult.fail(
                    FailureReason.BOUNDS,
                    f"⚠️ Purchase amount too large!\n\n"
                    f"Maximum purchase: {self._tokens(max_purchase)} {self.symbol}\n"
                    f"You would receive: {self._tokens(tokens_to_receive)} {self.symbol}\n\n"
                    f"Try buying with at most {display(max_hbar)} HBAR."
                )

            receipt = self.contracts.send_contract_call(
                private_key, 'buy', 'buyTokens', gas=BUY_GAS_LIMIT, value=value
            )
            if receipt['status'] == 0:
                return TxResult.fail(
                    FailureReason.REVERTED,
                    "❌ Transaction reverted!\n\nPossible reasons:\n"
                    "• Buy contract may not have enough tokens\n"
                    "• Contract may be paused\n\n"
                    "Please contact the admin."
                )

            return TxResult.ok(self.contracts.receipt_hash(receipt), amount=self._tokens(tokens_to_receive))

        except Exception as e:
            logger.error(f"Buy tokens error: {e}", exc_info=True)
            return classify_exception(e)

    # ============================================================
    # SELL
    # ============================================================

    def sell_tokens(self, private_key: str, token_amount: Amount) -> TxResult:
        """
        Sell tokens to the sell contract for HBAR

        Args:
            private_key: Seller's private key
            token_amount: Tokens to sell, in display units

        Returns:
            TxResult with the quoted HBAR payout on success
        """
        try:
            amount = to_units(token_amount, self.decimals)
            if amount <= 0:
                return TxResult.fail(FailureReason.VALIDATION, "❌ Invalid amount!\n\nPlease enter a positive number.")

            address = self.contracts.get_account(private_key).address
            sell_address = self.contracts.addresses['sell']

            balance = self.contracts.get_token_balance(address)
            if balance < amount:
                return TxResult.fail(
                    FailureReason.INSUFFICIENT_BALANCE,
                    f"⚠️ Insufficient {self.symbol}!\n\nYou need {token_amount} {self.symbol} but only have "
                    f"{format_amount(from_base_units(balance, self.decimals))} {self.symbol}.\n\n"
                    f"Use /faucet or buy to get more!"
                )

            min_sell = self.contracts.call('sell', 'minSell')
            max_sell = self.contracts.call('sell', 'maxSell')
            logger.info(f"Sell {token_amount} {self.symbol}: min {self._tokens(min_sell)}, max {self._tokens(max_sell)}")
            if amount < min_sell:
                return TxResult.fail(
                    FailureReason.BOUNDS,
                    f"⚠️ Sell amount too small!\n\n"
                    f"Minimum sell: {self._tokens(min_sell)} {self.symbol}\n"
                    f"You're trying to sell: {token_amount} {self.symbol}\n\n"
                    f"Try selling more tokens."
                )
            if amount > max_sell:
                return TxResult.fail(
                    FailureReason.BOUNDS,
                    f"⚠️ Sell amount too large!\n\n"
                    f"Maximum sell: {self._tokens(max_sell)} {self.symbol}\n"
                    f"You're trying to sell: {token_amount} {self.symbol}\n\n"
                    f"Try selling fewer tokens."
                )

            if self.contracts.get_native_balance(address) == 0:
                return TxResult.fail(
                    FailureReason.INSUFFICIENT_GAS,
                    f"⚠️ You need HBAR for gas fees!\n\n{GAS_HINT}"
                )

            hbar_to_receive = self.contracts.call('sell', 'calculateHBARAmount', amount)
            contract_hbar = tinybar_to_wei(self.contracts.call('sell', 'getHBARBalance'))
            logger.info(f"HBAR to receive: {display(hbar_to_receive)}, contract HBAR balance: {display(contract_hbar)}")
            if contract_hbar < hbar_to_receive:
                return TxResult.fail(
                    FailureReason.LIQUIDITY,
                    f"❌ Contract doesn't have enough HBAR!\n\n"
                    f"Contract has: {display(contract_hbar)} HBAR\n"
                    f"Needed: {display(hbar_to_receive)} HBAR\n\n"
                    f"Please contact the admin to refill the sell contract at:\n{sell_address}"
                )

            approve_receipt = self.contracts.send_contract_call(
                private_key, 'token', 'approve', (sell_address, amount), gas=APPROVE_GAS_LIMIT
            )
            if approve_receipt['status'] == 0:
                return TxResult.fail(FailureReason.APPROVAL, "❌ Token approval failed!\n\nPlease try again.")

            allowance = self.contracts.get_allowance(address, sell_address)
            logger.info(f"Allowance after approval: {self._tokens(allowance)}")
            if allowance < amount:
                return TxResult.fail(
                    FailureReason.APPROVAL,
                    "❌ Approval verification failed!\n\n"
                    "The allowance was not set correctly. Please try again."
                )

            receipt = self.contracts.send_contract_call(
                private_key, 'sell', 'sellTokens', (amount,), gas=SELL_GAS_LIMIT
            )
            if receipt['status'] == 0:
                return TxResult.fail(
                    FailureReason.REVERTED,
                    "❌ Transaction reverted!\n\nPossible reasons:\n"
                    "• Sell contract may not have enough HBAR\n"
                    "• Contract may be paused\n\n"
                    "Please contact the admin."
                )

            return TxResult.ok(self.contracts.receipt_hash(receipt), amount=display(hbar_to_receive))

        except Exception as e:
            logger.error(f"Sell tokens error: {e}", exc_info=True)
            return classify_exception(e)

    # ============================================================
    # TRANSFERS
    # ============================================================

    def send_tokens(self, private_key: str, to_address: str, amount: Amount) -> TxResult:
        """Transfer tokens to another address"""
        try:
            if not self._is_address(to_address):
                return self._invalid_recipient()

            token_amount = to_units(amount, self.decimals)
            if token_amount <= 0:
                return TxResult.fail(FailureReason.VALIDATION, "❌ Invalid amount!\n\nPlease enter a positive number.")

            address = self.contracts.get_account(private_key).address
            balance = self.contracts.get_token_balance(address)
            if balance < token_amount:
                return TxResult.fail(
                    FailureReason.INSUFFICIENT_BALANCE,
                    f"⚠️ Insufficient {self.symbol}!\n\nYou need {amount} {self.symbol} but only have "
                    f"{format_amount(from_base_units(balance, self.decimals))} {self.symbol}."
                )

            logger.info(f"Sending {amount} {self.symbol} from {address} to {to_address}")
            receipt = self.contracts.send_contract_call(
                private_key, 'token', 'transfer', (self._checksum(to_address), token_amount),
                gas=TOKEN_TRANSFER_GAS_LIMIT
            )
            if receipt['status'] == 0:
                return TxResult.fail(FailureReason.REVERTED, "❌ Transaction reverted! Please try again.")

            return TxResult.ok(self.contracts.receipt_hash(receipt), amount=str(amount), recipient=to_address)

        except Exception as e:
            logger.error(f"Send {self.symbol} error: {e}", exc_info=True)
            return classify_exception(e)

    def send_hbar(self, private_key: str, to_address: str, amount: Amount) -> TxResult:
        """Transfer HBAR to another address"""
        try:
            if not self._is_address(to_address):
                return self._invalid_recipient()

            value = to_units(amount, NATIVE_DECIMALS)
            if value <= 0:
                return TxResult.fail(FailureReason.VALIDATION, "❌ Invalid amount!\n\nPlease enter a positive number.")

            address = self.contracts.get_account(private_key).address
            balance = self.contracts.get_native_balance(address)
            if balance < value + ESTIMATED_TRANSFER_FEE:
                return TxResult.fail(
                    FailureReason.INSUFFICIENT_BALANCE,
                    f"⚠️ Insufficient HBAR!\n\nYou need {amount} HBAR + gas but only have "
                    f"{format_amount(from_base_units(balance), 4)} HBAR.\n\n{GAS_HINT}"
                )

            logger.info(f"Sending {amount} HBAR from {address} to {to_address}")
            receipt = self.contracts.send_native(private_key, to_address, value, gas=NATIVE_TRANSFER_GAS_LIMIT)
            if receipt['status'] == 0:
                return TxResult.fail(FailureReason.REVERTED, "❌ Transaction reverted! Please try again.")

            return TxResult.ok(self.contracts.receipt_hash(receipt), amount=str(amount), recipient=to_address)

        except Exception as e:
            logger.error(f"Send HBAR error: {e}", exc_info=True)
            return classify_exception(e)

    @staticmethod
    def _is_address(address: str) -> bool:
        return Web3.is_address(address)

    @staticmethod
    def _checksum(address: str) -> str:
        return Web3.to_checksum_address(address)

    @staticmethod
    def _invalid_recipient() -> TxResult:
        return TxResult.fail(
            FailureReason.VALIDATION,
            "❌ Invalid recipient address!\n\nPlease check the address and try again."
        )
