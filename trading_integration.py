"""
Trading Integration Module for HedgyBot
Buy, sell and send flows built on the TransactionGuard service
"""

import asyncio
import logging
from telegram import Update
from telegram.ext import ContextTypes

import keyboards
from callbacks import Action, CallbackAction, SendFormatError, parse_send_input
from services.session_store import SendKind
from services.transaction_guard import TxResult

logger = logging.getLogger(__name__)

NO_WALLET_TEXT = "❌ No wallet found. Use /start to create one."


class TradingMixin:
    """Mixin class adding trading and transfer handlers to HedgyBot"""

    def format_tx_hash(self, tx_hash: str) -> str:
        return f"{tx_hash[:10]}...{tx_hash[-8:]}"

    # ============================================================
    # BUY
    # ============================================================

    async def show_buy_menu(self, update: Update, context: ContextTypes.DEFAULT_TYPE, action: CallbackAction = None):
        """Show HBAR amount buttons for buying tokens"""
        message = (
            f"🛒 <b>Buy {self.symbol} Tokens</b>\n\n"
            f"Select the amount of HBAR you want to spend:"
        )
        await self.reply(update, message, keyboards.buy_amounts())

    async def execute_buy(self, update: Update, context: ContextTypes.DEFAULT_TYPE, action: CallbackAction):
        """Run the buy guard sequence for the selected HBAR amount"""
        user_id = update.effective_user.id
        amount = action.amount

        private_key = self.wallet_manager.get_private_key(user_id)
        if not private_key:
            await self.reply(update, NO_WALLET_TEXT)
            return

        logger.info(f"User {user_id} buying with {amount} HBAR")
        target = await self.progress(update, f"⏳ Processing purchase of {amount} HBAR worth of {self.symbol}...")

        result: TxResult = await asyncio.to_thread(self.guard.buy_tokens, private_key, amount)

        if result.success:
            message = (
                f"✅ <b>Purchase Successful!</b>\n\n"
                f"You spent: {amount} HBAR\n"
                f"You received: ~{result.amount} {self.symbol}\n"
                f"📝 Transaction: <code>{self.format_tx_hash(result.tx_hash)}</code>\n\n"
                f"Check your balance with /balance"
            )
        else:
            logger.info(f"Buy rejected for user {user_id}: {result.reason}")
            message = f"❌ <b>Purchase Failed</b>\n\n{result.error}"

        await target.edit_text(message, parse_mode='HTML', reply_markup=keyboards.back_to_menu())

    # ============================================================
    # SELL
    # ============================================================

    async def show_sell_menu(self, update: Update, context: ContextTypes.DEFAULT_TYPE, action: CallbackAction = None):
        """Show token amount buttons for selling"""
        message = (
            f"💸 <b>Sell {self.symbol} Tokens</b>\n\n"
            f"Select the amount of {self.symbol} you want to sell:"
        )
        await self.reply(update, message, keyboards.sell_amounts(self.symbol))

    async def execute_sell(self, update: Update, context: ContextTypes.DEFAULT_TYPE, action: CallbackAction):
        """Run the sell guard sequence for the selected token amount"""
        user_id = update.effective_user.id
        amount = action.amount

        private_key = self.wallet_manager.get_private_key(user_id)
        if not private_key:
            await self.reply(update, NO_WALLET_TEXT)
            return

        logger.info(f"User {user_id} selling {amount} {self.symbol}")
        target = await self.progress(update, f"⏳ Processing sale of {amount} {self.symbol}...")

        result: TxResult = await asyncio.to_thread(self.guard.sell_tokens, private_key, amount)

        if result.success:
            message = (
                f"✅ <b>Sale Successful!</b>\n\n"
                f"You sold: {amount} {self.symbol}\n"
                f"You received: ~{result.amount} HBAR\n"
                f"📝 Transaction: <code>{self.format_tx_hash(result.tx_hash)}</code>\n\n"
                f"Check your balance with /balance"
            )
        else:
            logger.info(f"Sell rejected for user {user_id}: {result.reason}")
            message = f"❌ <b>Sale Failed</b>\n\n{result.error}"

        await target.edit_text(message, parse_mode='HTML', reply_markup=keyboards.back_to_menu())

    # ============================================================
    # SEND
    # ============================================================

    async def show_send_menu(self, update: Update, context: ContextTypes.DEFAULT_TYPE, action: CallbackAction = None):
        """Ask which asset to send"""
        user_id = update.effective_user.id
        if not self.wallet_manager.get_wallet_address(user_id):
            await self.reply(update, NO_WALLET_TEXT)
            return

        await self.reply(
            update,
            "📤 <b>Send Tokens</b>\n\nWhat would you like to send?",
            keyboards.send_menu(self.symbol)
        )

    async def prompt_send(self, update: Update, context: ContextTypes.DEFAULT_TYPE, action: CallbackAction):
        """Start a pending send and ask for '<address> <amount>'"""
        user_id = update.effective_user.id
        kind = SendKind.TOKEN if action.action is Action.SEND_TOKEN else SendKind.HBAR
        unit = self.symbol if kind is SendKind.TOKEN else 'HBAR'
        example_amount = 100 if kind is SendKind.TOKEN else 10

        message = (
            f"📤 <b>Send {unit}</b>\n\n"
            f"Please send the details in this format:\n"
            f"<code>recipient_address amount</code>\n\n"
            f"<b>Example:</b>\n"
            f"<code>0x742d35Cc6634C0532925a3b844Bc9e7595f0bEb {example_amount}</code>\n\n"
            f"This will send {example_amount} {unit} to the address."
        )
        await self.reply(update, message, keyboards.back_to_menu())

        self.pending_sends.put(user_id, kind, update.effective_chat.id)

    async def handle_send_input(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> bool:
        """
        Consume a pending send with the user's '<address> <amount>' message

        Returns:
            True if the message belonged to a send flow
        """
        user_id = update.effective_user.id
        if not self.pending_sends.peek(user_id):
            return False

        message = update.effective_message
        try:
            request = parse_send_input(message.text)
        except SendFormatError as e:
            # Keep the pending send so the user can correct the input
            await message.reply_text(e.user_message, parse_mode='HTML')
            return True

        intent = self.pending_sends.pop(user_id)
        if intent is None:
            return False

        private_key = self.wallet_manager.get_private_key(user_id)
        if not private_key:
            await message.reply_text(NO_WALLET_TEXT)
            return True

        loading = await message.reply_text("⏳ Processing transaction...")

        if intent.kind is SendKind.TOKEN:
            unit = self.symbol
            result = await asyncio.to_thread(
                self.guard.send_tokens, private_key, request.recipient, request.amount
            )
        else:
            unit = 'HBAR'
            result = await asyncio.to_thread(
                self.guard.send_hbar, private_key, request.recipient, request.amount
            )

        if result.success:
            message = (
                f"✅ <b>Send Successful!</b>\n\n"
                f"📤 Sent: {result.amount} {unit}\n"
                f"📍 To: <code>{result.recipient}</code>\n"
                f"🔗 TX: <code>{result.tx_hash}</code>\n\n"
                f"View on HashScan:\n{self.hedera_service.get_explorer_url(result.tx_hash)}"
            )
        else:
            logger.info(f"Send rejected for user {user_id}: {result.reason}")
            message = f"❌ <b>Send Failed</b>\n\n{result.error}"

        await loading.edit_text(message, parse_mode='HTML', disable_web_page_preview=True)
        return True
