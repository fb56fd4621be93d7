"""
Inline Keyboards
Telegram keyboard layouts for HedgyBot menus
"""

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from callbacks import Action, callback_data

BUY_AMOUNTS = ['0.1', '0.5', '1', '5', '10']
SELL_AMOUNTS = ['10', '50', '100', '500', '1000']


def back_button() -> InlineKeyboardButton:
    return InlineKeyboardButton("🔙 Back to Menu", callback_data=callback_data(Action.MENU))


def main_menu(symbol: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([
        [
            InlineKeyboardButton("💰 Balance", callback_data=callback_data(Action.BALANCE)),
            InlineKeyboardButton("💧 Faucet", callback_data=callback_data(Action.FAUCET))
        ],
        [
            InlineKeyboardButton(f"🛒 Buy {symbol}", callback_data=callback_data(Action.BUY)),
            InlineKeyboardButton(f"💸 Sell {symbol}", callback_data=callback_data(Action.SELL))
        ],
        [
            InlineKeyboardButton("📤 Send", callback_data=callback_data(Action.SEND)),
            InlineKeyboardButton("👛 My Wallet", callback_data=callback_data(Action.WALLET))
        ],
        [
            InlineKeyboardButton("🌊 Get HBAR", callback_data=callback_data(Action.HBAR_FAUCET)),
            InlineKeyboardButton("🔑 Export Key", callback_data=callback_data(Action.EXPORT_KEY))
        ],
        [InlineKeyboardButton("ℹ️ Help", callback_data=callback_data(Action.HELP))]
    ])


def _amount_rows(action: Action, amounts, unit: str):
    buttons = [
        InlineKeyboardButton(f"{amount} {unit}", callback_data=callback_data(action, amount))
        for amount in amounts
    ]
    return [buttons[:3], buttons[3:]]


def buy_amounts() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(_amount_rows(Action.BUY_AMOUNT, BUY_AMOUNTS, 'HBAR') + [[back_button()]])


def sell_amounts(symbol: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(_amount_rows(Action.SELL_AMOUNT, SELL_AMOUNTS, symbol) + [[back_button()]])


def send_menu(symbol: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([
        [
            InlineKeyboardButton(f"💎 Send {symbol}", callback_data=callback_data(Action.SEND_TOKEN)),
            InlineKeyboardButton("💰 Send HBAR", callback_data=callback_data(Action.SEND_HBAR))
        ],
        [back_button()]
    ])


def hbar_faucet_menu() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([
        [InlineKeyboardButton("🤖 Request Automatically", callback_data=callback_data(Action.HBAR_REQUEST))],
        [back_button()]
    ])


def back_to_menu() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([[back_button()]])


def confirm_export() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([
        [
            InlineKeyboardButton("✅ Yes, Export", callback_data=callback_data(Action.CONFIRM_EXPORT)),
            InlineKeyboardButton("❌ Cancel", callback_data=callback_data(Action.MENU))
        ]
    ])
