"""
HedgyBot
Telegram bot for the HEDGY token, faucet, buy and sell contracts on Hedera testnet

Commands and inline buttons are routed to the service modules; every chain
write goes through TransactionGuard so a reply is always a checked outcome.
"""

import os
import asyncio
import logging
from telegram import Update
from telegram.error import TelegramError
from telegram.ext import Application, CommandHandler, CallbackQueryHandler, ContextTypes, MessageHandler, filters

import keyboards
from callbacks import Action, CallbackAction, InvalidCallback, parse_callback
from contract_config import load_config
from services import (
    DataManager,
    KeyVault,
    WalletManager,
    ContractService,
    TransactionGuard,
    BalanceService,
    HederaService,
    PendingSendStore,
    StorageError
)
from services.units import format_amount
from trading_integration import TradingMixin, NO_WALLET_TEXT

logger = logging.getLogger(__name__)

ERROR_TEXT = "❌ An error occurred. Please try again."
PURGE_INTERVAL = 300


class HedgyBot(TradingMixin):
    """HedgyBot command and callback router"""

    def __init__(self, config, contract_service: ContractService = None):
        """
        Initialize bot with all service modules

        Args:
            config: Configuration dictionary from contract_config.load_config()
            contract_service: Preconfigured ContractService (built from config if omitted)
        """
        logger.info("Initializing HedgyBot")
        self.config = config
        self.symbol = config['token']['symbol']
        self.token_name = config['token']['name']
        settings = config['settings']

        # Initialize services
        db_path = settings['db_path']
        self.data_manager = DataManager(db_path)
        logger.info(f"Loaded {len(self.data_manager.all_user_ids())} users from {db_path}")
        self.key_vault = KeyVault(settings['encryption_key'], db_path.with_name(db_path.stem + '.salt'))
        self.wallet_manager = WalletManager(self.data_manager, self.key_vault)
        self.contract_service = contract_service or ContractService(config)
        self.guard = TransactionGuard(self.contract_service, config)
        self.balance_service = BalanceService(self.contract_service, config)
        self.hedera_service = HederaService(config)

        # Text input the bot is waiting for, per user
        self.pending_sends = PendingSendStore(ttl_seconds=settings['pending_send_ttl'])
        self.key_message_ttl = settings['key_message_ttl']

        self.callback_routes = {
            Action.MENU: self.show_main_menu,
            Action.BALANCE: self.balance,
            Action.FAUCET: self.faucet,
            Action.BUY: self.show_buy_menu,
            Action.SELL: self.show_sell_menu,
            Action.WALLET: self.wallet,
            Action.EXPORT_KEY: self.export,
            Action.CONFIRM_EXPORT: self.confirm_export,
            Action.HBAR_FAUCET: self.hbar_faucet,
            Action.HBAR_REQUEST: self.request_hbar,
            Action.HELP: self.help,
            Action.SEND: self.show_send_menu,
            Action.SEND_TOKEN: self.prompt_send,
            Action.SEND_HBAR: self.prompt_send,
            Action.BUY_AMOUNT: self.execute_buy,
            Action.SELL_AMOUNT: self.execute_sell,
        }

        logger.info("All services initialized successfully")

    # ============================================================
    # HELPER METHODS
    # ============================================================

    async def reply(self, update: Update, text: str, reply_markup=None):
        """Edit the button's message for callbacks, otherwise send a new message"""
        if update.callback_query:
            return await update.callback_query.edit_message_text(
                text, parse_mode='HTML', reply_markup=reply_markup, disable_web_page_preview=True
            )
        return await update.effective_message.reply_text(
            text, parse_mode='HTML', reply_markup=reply_markup, disable_web_page_preview=True
        )

    async def progress(self, update: Update, text: str):
        """Show a loading message and return the message to edit with the result"""
        if update.callback_query:
            return await update.callback_query.edit_message_text(text)
        return await update.effective_message.reply_text(text)

    async def send_error(self, update: Update, context: ContextTypes.DEFAULT_TYPE, text: str = ERROR_TEXT):
        if update.effective_chat:
            await context.bot.send_message(chat_id=update.effective_chat.id, text=text)

    # ============================================================
    # COMMAND HANDLERS
    # ============================================================

    async def start(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Create the user's wallet on first contact and show the main menu"""
        user = update.effective_user
        logger.info(f"User {user.id} started the bot")

        try:
            wallet = self.wallet_manager.get_or_create_wallet(user.id, user.username)

            if wallet.is_new:
                message = (
                    f"🦔 <b>Welcome to HedgyBot!</b>\n\n"
                    f"I've created a new wallet for you on Hedera Testnet!\n\n"
                    f"🔑 <b>Your Wallet:</b>\n<code>{wallet.address}</code>\n\n"
                    f"⚠️ <b>Important:</b> This is a testnet wallet. Use /export to backup your private key!\n\n"
                    f"Choose an option below to get started:"
                )
            else:
                message = (
                    f"🦔 <b>Welcome back to HedgyBot!</b>\n\n"
                    f"👛 <b>Your Wallet:</b>\n<code>{wallet.address}</code>\n\n"
                    f"Choose an option below:"
                )

            await update.message.reply_text(
                message,
                parse_mode='HTML',
                reply_markup=keyboards.main_menu(self.symbol)
            )
        except Exception as e:
            logger.error(f"Error in start command: {e}", exc_info=True)
            await update.message.reply_text(ERROR_TEXT)

    async def show_main_menu(self, update: Update, context: ContextTypes.DEFAULT_TYPE, action: CallbackAction = None):
        """Show the main menu, cancelling any pending send"""
        self.pending_sends.clear(update.effective_user.id)
        await self.reply(
            update,
            "🦔 <b>HedgyBot Main Menu</b>\n\nChoose an option:",
            keyboards.main_menu(self.symbol)
        )

    async def balance(self, update: Update, context: ContextTypes.DEFAULT_TYPE, action: CallbackAction = None):
        """Show token and HBAR balances"""
        user_id = update.effective_user.id

        try:
            address = self.wallet_manager.get_wallet_address(user_id)
            if not address:
                await self.reply(update, NO_WALLET_TEXT)
                return

            target = await self.progress(update, "⏳ Fetching balances...")
            balances = await asyncio.to_thread(self.balance_service.get_balances, address)

            message = (
                f"💰 <b>Your Balances</b>\n\n"
                f"🦔 {self.symbol}: {format_amount(balances.token)}\n"
                f"💎 HBAR: {format_amount(balances.hbar, 4)}\n\n"
                f"👛 Wallet: <code>{self.wallet_manager.format_address(address)}</code>"
            )
            await target.edit_text(message, parse_mode='HTML', reply_markup=keyboards.back_to_menu())
        except Exception as e:
            logger.error(f"Error fetching balance for {user_id}: {e}", exc_info=True)
            await self.send_error(update, context, "❌ Error fetching balances. Please try again.")

    async def faucet(self, update: Update, context: ContextTypes.DEFAULT_TYPE, action: CallbackAction = None):
        """Claim tokens from the faucet contract"""
        user_id = update.effective_user.id

        try:
            private_key = self.wallet_manager.get_private_key(user_id)
            if not private_key:
                await self.reply(update, NO_WALLET_TEXT)
                return

            target = await self.progress(update, "⏳ Checking faucet eligibility...")
            last_claim = self.wallet_manager.get_last_faucet_claim(user_id)
            result = await asyncio.to_thread(self.guard.claim_faucet, private_key, last_claim)

            if result.success:
                try:
                    self.data_manager.update_last_faucet_claim(user_id)
                except StorageError as e:
                    # The claim is mined; the contract still enforces its own cooldown
                    logger.error(f"Could not record faucet claim for {user_id}: {e}", exc_info=True)
                message = (
                    f"✅ <b>Faucet Claim Successful!</b>\n\n"
                    f"You received {result.amount} {self.symbol}\n"
                    f"📝 Transaction: <code>{self.format_tx_hash(result.tx_hash)}</code>\n\n"
                    f"🔍 <a href=\"{self.hedera_service.get_explorer_url(result.tx_hash)}\">View on HashScan</a>"
                )
            else:
                logger.info(f"Faucet claim rejected for user {user_id}: {result.reason}")
                message = result.error

            await target.edit_text(
                message,
                parse_mode='HTML',
                reply_markup=keyboards.back_to_menu(),
                disable_web_page_preview=True
            )
        except Exception as e:
            logger.error(f"Error in faucet claim for {user_id}: {e}", exc_info=True)
            await self.send_error(update, context)

    async def wallet(self, update: Update, context: ContextTypes.DEFAULT_TYPE, action: CallbackAction = None):
        """Show the wallet address with an explorer link"""
        user_id = update.effective_user.id

        try:
            address = self.wallet_manager.get_wallet_address(user_id)
            if not address:
                await self.reply(update, NO_WALLET_TEXT)
                return

            message = (
                f"👛 <b>Your Wallet</b>\n\n"
                f"Address:\n<code>{address}</code>\n\n"
                f"🔍 <a href=\"{self.hedera_service.get_account_url(address)}\">View on Explorer</a>\n\n"
                f"⚠️ Use /export to backup your private key!"
            )
            await self.reply(update, message, keyboards.back_to_menu())
        except Exception as e:
            logger.error(f"Error displaying wallet for {user_id}: {e}", exc_info=True)
            await self.send_error(update, context, "❌ Error displaying wallet. Please try again.")

    async def export(self, update: Update, context: ContextTypes.DEFAULT_TYPE, action: CallbackAction = None):
        """Ask for confirmation before revealing the private key"""
        message = (
            "⚠️ <b>SECURITY WARNING</b>\n\n"
            "You are about to export your private key.\n\n"
            "<b>Never share your private key with anyone!</b>\n\n"
            "Anyone with your private key has full access to your wallet and funds.\n\n"
            "Are you sure you want to continue?"
        )
        await self.reply(update, message, keyboards.confirm_export())

    async def confirm_export(self, update: Update, context: ContextTypes.DEFAULT_TYPE, action: CallbackAction = None):
        """Send the private key in its own message and schedule its deletion"""
        user_id = update.effective_user.id

        try:
            private_key = self.wallet_manager.get_private_key(user_id)
            if not private_key:
                await self.reply(update, NO_WALLET_TEXT)
                return

            logger.info(f"User {user_id} exported their private key")
            key_message = await context.bot.send_message(
                chat_id=update.effective_chat.id,
                text=(
                    f"🔑 <b>Your Private Key:</b>\n\n"
                    f"<code>{private_key}</code>\n\n"
                    f"⚠️ This message will be deleted in {self.key_message_ttl} seconds.\n"
                    f"Save it somewhere safe!"
                ),
                parse_mode='HTML'
            )

            if context.job_queue:
                context.job_queue.run_once(
                    self._delete_message_job,
                    when=self.key_message_ttl,
                    data=key_message.message_id,
                    chat_id=update.effective_chat.id,
                    name=f"delete_key_{user_id}"
                )
            else:
                logger.warning("JobQueue unavailable - exported key message will not be deleted")

            await self.reply(
                update,
                "✅ Private key sent. Copy it before it disappears.",
                keyboards.back_to_menu()
            )
        except Exception as e:
            logger.error(f"Error exporting key for {user_id}: {e}", exc_info=True)
            await self.send_error(update, context, "❌ Error exporting private key.")

    async def _delete_message_job(self, context: ContextTypes.DEFAULT_TYPE):
        job = context.job
        try:
            await context.bot.delete_message(chat_id=job.chat_id, message_id=job.data)
        except TelegramError as e:
            logger.warning(f"Could not delete key message {job.data} in chat {job.chat_id}: {e}")

    async def hbar_faucet(self, update: Update, context: ContextTypes.DEFAULT_TYPE, action: CallbackAction = None):
        """Explain how to get test HBAR for gas"""
        address = self.wallet_manager.get_wallet_address(update.effective_user.id)
        if not address:
            await self.reply(update, NO_WALLET_TEXT)
            return

        message = (
            f"🌊 <b>Get Test HBAR</b>\n\n"
            f"To get test HBAR for transactions, visit:\n"
            f"🔗 <a href=\"https://portal.hedera.com/faucet\">Hedera Testnet Faucet</a>\n\n"
            f"Your wallet address:\n<code>{address}</code>\n\n"
            f"📋 <b>Instructions:</b>\n"
            f"1. Click the link above\n"
            f"2. Paste your wallet address\n"
            f"3. Complete the captcha\n"
            f"4. Receive test HBAR!\n\n"
            f"You'll need HBAR for gas fees to use the {self.symbol} faucet and trade tokens."
        )
        await self.reply(update, message, keyboards.hbar_faucet_menu())

    async def request_hbar(self, update: Update, context: ContextTypes.DEFAULT_TYPE, action: CallbackAction = None):
        """Try the automated Hedera faucet, falling back to the portal link"""
        address = self.wallet_manager.get_wallet_address(update.effective_user.id)
        if not address:
            await self.reply(update, NO_WALLET_TEXT)
            return

        target = await self.progress(update, "⏳ Requesting test HBAR...")
        result = await asyncio.to_thread(self.hedera_service.request_hbar_faucet, address)

        if result['success']:
            message = (
                f"✅ <b>HBAR Requested!</b>\n\n"
                f"Amount: {result['amount']}\n"
                f"📝 Transaction: <code>{result['tx_hash']}</code>"
            )
        else:
            message = (
                f"⚠️ {result['message']}\n\n"
                f"🔗 <a href=\"{result['manual_url']}\">Hedera Testnet Faucet</a>\n\n"
                f"Your wallet address:\n<code>{address}</code>"
            )

        await target.edit_text(
            message,
            parse_mode='HTML',
            reply_markup=keyboards.back_to_menu(),
            disable_web_page_preview=True
        )

    async def status(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Report faucet, buy and sell contract figures"""
        try:
            loading = await update.message.reply_text("⏳ Checking contract status...")
            status = await asyncio.to_thread(self.balance_service.get_contract_status)

            message = (
                f"📊 <b>Contract Status</b>\n\n"
                f"🚰 <b>Faucet Contract:</b>\n"
                f"Balance: {format_amount(status.faucet_balance)}\n"
                f"Per Claim: {format_amount(status.drip_amount)}\n\n"
                f"🛒 <b>Buy Contract:</b>\n"
                f"{self.symbol} Available: {format_amount(status.buy_token_balance)}\n"
                f"Price: {status.token_price.normalize():f} HBAR per token\n"
                f"Min/Max: {format_amount(status.min_purchase, 0)}-{format_amount(status.max_purchase, 0)} {self.symbol}\n\n"
                f"💸 <b>Sell Contract:</b>\n"
                f"HBAR Available: {format_amount(status.sell_hbar_balance)}\n"
                f"Min/Max: {format_amount(status.min_sell, 0)}-{format_amount(status.max_sell, 0)} {self.symbol}\n\n"
                f"✅ All contracts operational!"
            )
            await loading.edit_text(message, parse_mode='HTML', reply_markup=keyboards.back_to_menu())
        except Exception as e:
            logger.error(f"Error checking contract status: {e}", exc_info=True)
            await update.message.reply_text("❌ Error checking contract status. Please try again.")

    async def help(self, update: Update, context: ContextTypes.DEFAULT_TYPE, action: CallbackAction = None):
        """Show available commands"""
        message = (
            f"🦔 <b>HedgyBot Help</b>\n"
            f"Faucet and trading for {self.token_name} ({self.symbol})\n\n"
            f"<b>Available Commands:</b>\n\n"
            f"/start - Create wallet &amp; show menu\n"
            f"/balance - Check your balances\n"
            f"/faucet - Get free {self.symbol} tokens\n"
            f"/buy - Buy {self.symbol} with HBAR\n"
            f"/sell - Sell {self.symbol} for HBAR\n"
            f"/send - Send {self.symbol} or HBAR\n"
            f"/wallet - View your wallet\n"
            f"/export - Export private key\n"
            f"/hbarfaucet - Get test HBAR\n"
            f"/status - Check contract status\n"
            f"/help - Show this message\n\n"
            f"<b>Quick Start:</b>\n"
            f"1. Get test HBAR from /hbarfaucet\n"
            f"2. Claim {self.symbol} from /faucet\n"
            f"3. Trade using /buy or /sell\n\n"
            f"⚠️ This is Hedera Testnet - for testing only!"
        )
        await self.reply(update, message, keyboards.back_to_menu())

    # ============================================================
    # CALLBACKS AND TEXT
    # ============================================================

    async def button_handler(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle all button callbacks"""
        query = update.callback_query
        await query.answer()

        user_id = query.from_user.id
        logger.info(f"Button pressed by {user_id}: {query.data}")

        try:
            action = parse_callback(query.data)
        except InvalidCallback as e:
            logger.warning(f"Rejected callback from {user_id}: {e}")
            await query.edit_message_text("❌ Unknown action.", reply_markup=keyboards.back_to_menu())
            return

        try:
            await self.callback_routes[action.action](update, context, action)
        except Exception as e:
            logger.error(f"Error handling callback {query.data}: {e}", exc_info=True)
            await self.send_error(update, context)

    async def handle_message(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle free text, which is only meaningful during a send"""
        try:
            if await self.handle_send_input(update, context):
                return

            await update.effective_message.reply_text(
                "Use /start to open the menu or /help to see available commands."
            )
        except Exception as e:
            logger.error(f"Error handling message: {e}", exc_info=True)
            await update.effective_message.reply_text(ERROR_TEXT)

    async def purge_pending_sends(self, context: ContextTypes.DEFAULT_TYPE):
        removed = self.pending_sends.purge_expired()
        if removed:
            logger.info(f"Purged {removed} expired pending sends")

    async def error_handler(self, update: object, context: ContextTypes.DEFAULT_TYPE):
        """Log errors raised outside the handlers' own error handling"""
        logger.error(f"Unhandled error for update {update}: {context.error}", exc_info=context.error)


def main():
    """Start the bot"""
    logging.basicConfig(
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        level=os.getenv('LOG_LEVEL', 'INFO').upper()
    )
    # httpx logs request URLs, which contain the bot token
    logging.getLogger('httpx').setLevel(logging.WARNING)

    logger.info("Starting HedgyBot")

    bot_token = os.getenv('TELEGRAM_BOT_TOKEN')
    if not bot_token:
        logger.error("TELEGRAM_BOT_TOKEN not found in environment!")
        return

    bot = HedgyBot(load_config())

    application = Application.builder().token(bot_token).concurrent_updates(True).build()

    # Register command handlers
    application.add_handler(CommandHandler("start", bot.start))
    application.add_handler(CommandHandler("balance", bot.balance))
    application.add_handler(CommandHandler("faucet", bot.faucet))
    application.add_handler(CommandHandler("buy", bot.show_buy_menu))
    application.add_handler(CommandHandler("sell", bot.show_sell_menu))
    application.add_handler(CommandHandler("send", bot.show_send_menu))
    application.add_handler(CommandHandler("wallet", bot.wallet))
    application.add_handler(CommandHandler("export", bot.export))
    application.add_handler(CommandHandler("hbarfaucet", bot.hbar_faucet))
    application.add_handler(CommandHandler("status", bot.status))
    application.add_handler(CommandHandler("help", bot.help))

    # Register callback and message handlers
    application.add_handler(CallbackQueryHandler(bot.button_handler))
    application.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, bot.handle_message))
    application.add_error_handler(bot.error_handler)

    if application.job_queue:
        application.job_queue.run_repeating(bot.purge_pending_sends, interval=PURGE_INTERVAL)

    # Start polling
    logger.info("Bot is running! Press Ctrl+C to stop.")
    application.run_polling(allowed_updates=Update.ALL_TYPES)


if __name__ == '__main__':
    main()
