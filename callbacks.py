"""
Callback Actions
Decodes inline-button callback data and send-flow text once, at the boundary
"""

from enum import Enum
from decimal import Decimal
from dataclasses import dataclass
from typing import Optional

from services.units import parse_positive_amount

SEND_FORMAT_ERROR = (
    "❌ Invalid format!\n\n"
    "Please use: <code>address amount</code>\n\n"
    "Example: <code>0x742d35...bEb 100</code>"
)
SEND_AMOUNT_ERROR = "❌ Invalid amount!\n\nPlease enter a positive number."


class InvalidCallback(ValueError):
    """Raised for callback data that does not name a known action"""


class SendFormatError(ValueError):
    """Raised when send-flow text is not '<address> <amount>'"""

    def __init__(self, message: str):
        super().__init__(message)
        self.user_message = message


class Action(Enum):
    MENU = 'menu'
    BALANCE = 'balance'
    FAUCET = 'faucet'
    BUY = 'buy'
    SELL = 'sell'
    WALLET = 'wallet'
    EXPORT_KEY = 'export_key'
    CONFIRM_EXPORT = 'confirm_export'
    HBAR_FAUCET = 'hbar_faucet'
    HBAR_REQUEST = 'hbar_request'
    HELP = 'help'
    SEND = 'send'
    SEND_TOKEN = 'send_hedgy'
    SEND_HBAR = 'send_hbar'
    BUY_AMOUNT = 'buy_'
    SELL_AMOUNT = 'sell_'


AMOUNT_ACTIONS = (Action.BUY_AMOUNT, Action.SELL_AMOUNT)


@dataclass(frozen=True)
class CallbackAction:
    action: Action
    amount: Optional[Decimal] = None

    def encode(self) -> str:
        if self.action in AMOUNT_ACTIONS:
            return f"{self.action.value}{self.amount}"
        return self.action.value


@dataclass(frozen=True)
class SendRequest:
    recipient: str
    amount: Decimal


def callback_data(action: Action, amount=None) -> str:
    """Encode an action for use as InlineKeyboardButton callback_data"""
    return CallbackAction(action, Decimal(str(amount)) if amount is not None else None).encode()


def parse_callback(data: Optional[str]) -> CallbackAction:
    """
    Decode callback data into a CallbackAction

    Raises:
        InvalidCallback: If the data is empty, unknown or carries a bad amount
    """
    if not data:
        raise InvalidCallback("Empty callback data")

    for action in Action:
        if action not in AMOUNT_ACTIONS and data == action.value:
            return CallbackAction(action)

    for action in AMOUNT_ACTIONS:
        if data.startswith(action.value):
            try:
                amount = parse_positive_amount(data[len(action.value):])
            except ValueError:
                raise InvalidCallback(f"Bad amount in callback data: {data!r}")
            return CallbackAction(action, amount)

    raise InvalidCallback(f"Unknown callback data: {data!r}")


def parse_send_input(text: Optional[str]) -> SendRequest:
    """
    Parse '<recipient address> <amount>'

    Raises:
        SendFormatError: If the text is not exactly two tokens or the amount is not positive
    """
    parts = (text or '').split()
    if len(parts) != 2:
        raise SendFormatError(SEND_FORMAT_ERROR)

    recipient, amount_text = parts
    try:
        amount = parse_positive_amount(amount_text)
    except ValueError:
        raise SendFormatError(SEND_AMOUNT_ERROR)

    return SendRequest(recipient=recipient, amount=amount)
