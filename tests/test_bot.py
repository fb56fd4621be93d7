"""
Tests for the HedgyBot router

Telegram objects are MagicMocks with AsyncMock reply methods; the contract
layer is the shared ContractService double.
"""

import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from telegram.error import TelegramError

from callbacks import Action
from hedgy_bot import HedgyBot
from services.session_store import SendKind
from conftest import ETHER, TX_HASH

USER_ID = 1001
CHAT_ID = 5005
RECIPIENT = "0x1111111111111111111111111111111111111111"


def make_update(text=None, data=None, user_id=USER_ID):
    """Build an Update double; the returned message is what reply/edit calls return"""
    sent = MagicMock()
    sent.edit_text = AsyncMock()

    update = MagicMock()
    update.effective_user.id = user_id
    update.effective_user.username = 'alice'
    update.effective_chat.id = CHAT_ID
    update.message.text = text
    update.message.reply_text = AsyncMock(return_value=sent)
    update.effective_message = update.message

    if data is None:
        update.callback_query = None
    else:
        update.callback_query.data = data
        update.callback_query.from_user.id = user_id
        update.callback_query.answer = AsyncMock()
        update.callback_query.edit_message_text = AsyncMock(return_value=sent)

    return update, sent


def make_context():
    context = MagicMock()
    context.bot.send_message = AsyncMock(return_value=MagicMock(message_id=77))
    context.bot.delete_message = AsyncMock()
    return context


def last_text(mock):
    return mock.call_args.args[0]


def hours_ago(hours):
    moment = datetime.datetime.now(datetime.timezone.utc) - datetime.timedelta(hours=hours)
    return moment.isoformat()


@pytest.fixture
def bot(config, contracts):
    return HedgyBot(config, contract_service=contracts)


@pytest.fixture
def faucet_chain(contracts):
    contracts.get_native_balance.return_value = 0
    contracts.views.update({
        ('faucet', 'canRequestTokens'): True,
        ('faucet', 'timeUntilNextDrip'): 0,
        ('faucet', 'getFaucetBalance'): 1000 * ETHER,
        ('faucet', 'dripAmount'): 100 * ETHER,
    })
    return contracts


def test_every_action_has_a_route(bot):
    assert set(bot.callback_routes) == set(Action)


class TestStart:

    @pytest.mark.asyncio
    async def test_start_creates_wallet_once(self, bot):
        update, _ = make_update('/start')
        await bot.start(update, make_context())
        assert 'Welcome to HedgyBot' in last_text(update.message.reply_text)
        address = bot.wallet_manager.get_wallet_address(USER_ID)

        update, _ = make_update('/start')
        await bot.start(update, make_context())
        assert 'Welcome back' in last_text(update.message.reply_text)
        assert bot.wallet_manager.get_wallet_address(USER_ID) == address


class TestFaucetScenario:

    @pytest.mark.asyncio
    async def test_start_then_faucet_lifecycle(self, bot, faucet_chain):
        """New user: no gas, then cooldown, then a successful claim"""
        update, _ = make_update('/start')
        await bot.start(update, make_context())
        assert bot.data_manager.get_user(USER_ID)['last_faucet_claim'] is None

        # No HBAR for gas
        update, sent = make_update('/faucet')
        await bot.faucet(update, make_context())
        assert 'HBAR for gas' in last_text(sent.edit_text)
        faucet_chain.send_contract_call.assert_not_called()

        # Funded, but claimed an hour ago
        faucet_chain.get_native_balance.return_value = 10 * ETHER
        bot.data_manager.update_last_faucet_claim(USER_ID, hours_ago(1))
        update, sent = make_update('/faucet')
        await bot.faucet(update, make_context())
        text = last_text(sent.edit_text)
        assert 'cooldown' in text.lower()
        assert '22h 59m' in text or '23h 0m' in text
        faucet_chain.send_contract_call.assert_not_called()

        # Cooldown elapsed
        old_claim = hours_ago(25)
        bot.data_manager.update_last_faucet_claim(USER_ID, old_claim)
        update, sent = make_update('/faucet')
        await bot.faucet(update, make_context())
        text = last_text(sent.edit_text)
        assert 'Successful' in text
        assert TX_HASH[:10] in text
        assert bot.data_manager.get_user(USER_ID)['last_faucet_claim'] != old_claim
        faucet_chain.send_contract_call.assert_called_once()

    @pytest.mark.asyncio
    async def test_faucet_without_wallet(self, bot, faucet_chain):
        update, _ = make_update('/faucet')
        await bot.faucet(update, make_context())

        assert 'No wallet found' in last_text(update.message.reply_text)
        faucet_chain.get_native_balance.assert_not_called()


class TestCallbacks:

    @pytest.mark.asyncio
    async def test_unknown_callback_is_rejected(self, bot):
        update, _ = make_update(data='drop_table')
        await bot.button_handler(update, make_context())

        assert 'Unknown action' in last_text(update.callback_query.edit_message_text)

    @pytest.mark.asyncio
    async def test_buy_amount_routes_to_guard(self, bot, contracts):
        bot.wallet_manager.get_or_create_wallet(USER_ID)
        contracts.get_native_balance.return_value = 0

        update, sent = make_update(data='buy_0.5')
        await bot.button_handler(update, make_context())

        assert 'Purchase Failed' in last_text(sent.edit_text)
        contracts.send_contract_call.assert_not_called()

    @pytest.mark.asyncio
    async def test_menu_cancels_pending_send(self, bot):
        bot.pending_sends.put(USER_ID, SendKind.TOKEN, CHAT_ID)

        update, _ = make_update(data='menu')
        await bot.button_handler(update, make_context())

        assert bot.pending_sends.peek(USER_ID) is None

    @pytest.mark.asyncio
    async def test_handler_error_is_reported(self, bot):
        bot.wallet_manager.get_or_create_wallet(USER_ID)
        bot.wallet_manager.get_private_key = MagicMock(side_effect=RuntimeError('boom'))
        context = make_context()

        update, _ = make_update(data='sell_10')
        await bot.button_handler(update, context)

        assert 'error occurred' in context.bot.send_message.call_args.kwargs['text']


class TestSendFlow:

    @pytest.mark.asyncio
    async def test_prompt_sets_pending_send(self, bot):
        bot.wallet_manager.get_or_create_wallet(USER_ID)

        update, _ = make_update(data='send_hbar')
        await bot.button_handler(update, make_context())

        assert bot.pending_sends.peek(USER_ID).kind is SendKind.HBAR

    @pytest.mark.asyncio
    async def test_malformed_input_keeps_intent_and_sends_nothing(self, bot, contracts):
        bot.wallet_manager.get_or_create_wallet(USER_ID)
        bot.pending_sends.put(USER_ID, SendKind.TOKEN, CHAT_ID)

        update, _ = make_update('send 100 tokens please')
        await bot.handle_message(update, make_context())

        assert 'Invalid format' in last_text(update.message.reply_text)
        assert bot.pending_sends.peek(USER_ID) is not None
        contracts.get_token_balance.assert_not_called()
        contracts.send_contract_call.assert_not_called()

    @pytest.mark.asyncio
    async def test_valid_input_consumes_intent_and_links_explorer(self, bot, contracts):
        bot.wallet_manager.get_or_create_wallet(USER_ID)
        bot.pending_sends.put(USER_ID, SendKind.TOKEN, CHAT_ID)
        contracts.get_token_balance.return_value = 100 * ETHER

        update, sent = make_update(f'{RECIPIENT} 10')
        await bot.handle_message(update, make_context())

        text = last_text(sent.edit_text)
        assert 'Send Successful' in text
        assert f'https://hashscan.io/testnet/transaction/{TX_HASH}' in text
        assert bot.pending_sends.peek(USER_ID) is None

    @pytest.mark.asyncio
    async def test_text_without_pending_send(self, bot, contracts):
        update, _ = make_update(f'{RECIPIENT} 10')
        await bot.handle_message(update, make_context())

        assert '/start' in last_text(update.message.reply_text)
        contracts.send_contract_call.assert_not_called()


class TestExport:

    @pytest.mark.asyncio
    async def test_confirm_export_schedules_deletion(self, bot):
        wallet = bot.wallet_manager.get_or_create_wallet(USER_ID)
        context = make_context()

        update, _ = make_update(data='confirm_export')
        await bot.button_handler(update, context)

        assert wallet.private_key in context.bot.send_message.call_args.kwargs['text']
        _, kwargs = context.job_queue.run_once.call_args
        assert kwargs['when'] == 60
        assert kwargs['data'] == 77
        assert kwargs['chat_id'] == CHAT_ID

    @pytest.mark.asyncio
    async def test_delete_job_tolerates_missing_message(self, bot):
        context = make_context()
        context.job.chat_id = CHAT_ID
        context.job.data = 77
        context.bot.delete_message.side_effect = TelegramError('message to delete not found')

        await bot._delete_message_job(context)

        context.bot.delete_message.assert_awaited_once_with(chat_id=CHAT_ID, message_id=77)


class TestHbarFaucet:

    @pytest.mark.asyncio
    async def test_request_falls_back_to_portal(self, bot):
        bot.wallet_manager.get_or_create_wallet(USER_ID)
        bot.hedera_service.request_hbar_faucet = MagicMock(return_value={
            'success': False,
            'message': 'Automated faucet unavailable. Please use the web faucet.',
            'manual_url': 'https://portal.hedera.com/faucet',
        })

        update, sent = make_update(data='hbar_request')
        await bot.button_handler(update, make_context())

        assert 'https://portal.hedera.com/faucet' in last_text(sent.edit_text)


class TestEditedMessage:

    @pytest.mark.asyncio
    async def test_edited_send_input_is_handled(self, bot, contracts):
        bot.wallet_manager.get_or_create_wallet(USER_ID)
        bot.pending_sends.put(USER_ID, SendKind.TOKEN, CHAT_ID)
        contracts.get_token_balance.return_value = 100 * ETHER

        update, sent = make_update(f'{RECIPIENT} 10')
        update.message = None
        await bot.handle_message(update, make_context())

        assert 'Send Successful' in last_text(sent.edit_text)
        assert bot.pending_sends.peek(USER_ID) is None

    @pytest.mark.asyncio
    async def test_edited_text_without_pending_send(self, bot):
        update, _ = make_update('hello')
        edited = update.message
        update.message = None
        await bot.handle_message(update, make_context())

        assert '/start' in last_text(edited.reply_text)


class TestHelp:

    @pytest.mark.asyncio
    async def test_help_names_the_token(self, bot):
        update, _ = make_update('/help')
        await bot.help(update, make_context())

        text = last_text(update.message.reply_text)
        assert 'HedgyToken (HEDGY)' in text
        assert '/hbarfaucet' in text
