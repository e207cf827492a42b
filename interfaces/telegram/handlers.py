from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

import telebot
from telebot.types import InlineKeyboardButton, InlineKeyboardMarkup

from application import services
from domain.models import ANON_MARKER
from domain.repositories import ContentModerator, DocumentStore
from infrastructure.leetcode.stats_client import LeetCodeClient
from interfaces.formatting import (
    HELP_TEXT,
    format_leaderboard,
    format_profile,
    format_result,
    parse_privacy,
)
from interfaces.telegram.callback_data import (
    PendingJoinPrompts,
    encode_join_prompt,
    parse_join_prompt,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")


def _token(message) -> str:
    """The caller token for a Telegram user is their numeric id."""

    return str(message.from_user.id)


def _args(message) -> list[str]:
    return message.text.split()[1:]


def create_telegram_bot(
    bot_token: str,
    store: DocumentStore,
    provider_factory: Callable[[], LeetCodeClient],
    moderator: ContentModerator,
) -> telebot.TeleBot:
    """
    Configure and return a TeleBot instance wired to the application layer.

    TeleBot handlers are synchronous, so each command that needs live
    statistics runs on its own event loop with a fresh LeetCode client.
    """

    bot = telebot.TeleBot(bot_token)
    # Join prompts waiting for a button press.
    pending_joins = PendingJoinPrompts()

    def with_provider(call: Callable[[LeetCodeClient], Awaitable[T]]) -> T:
        async def run() -> T:
            async with provider_factory() as provider:
                return await call(provider)

        return asyncio.run(run())

    def usage(message, text: str) -> None:
        bot.send_message(message.chat.id, f"Usage: {text}")

    @bot.message_handler(commands=["start", "help"])
    def handle_help(message):
        bot.send_message(message.chat.id, HELP_TEXT.format(p="/", id=_token(message)))

    @bot.message_handler(commands=["status"])
    def handle_status(message):
        if services.account_status(_token(message), store):
            bot.send_message(message.chat.id, "Your account is linked.")
        else:
            bot.send_message(
                message.chat.id, "Your account is not linked yet. Use /register <handle>."
            )

    @bot.message_handler(commands=["register"])
    def handle_register(message):
        args = _args(message)
        if len(args) != 1:
            usage(message, "/register <handle>")
            return

        result = with_provider(
            lambda provider: services.register_account(
                _token(message), args[0], store, provider
            )
        )
        bot.send_message(message.chat.id, format_result(result))

    @bot.message_handler(commands=["board"])
    def handle_board(message):
        args = _args(message)
        if len(args) not in (1, 2):
            usage(message, "/board <group> [code]")
            return

        group_name = args[0]
        code = args[1] if len(args) == 2 else None
        result = with_provider(
            lambda provider: services.fetch_leaderboard(
                group_name, _token(message), code, store, provider
            )
        )
        bot.send_message(message.chat.id, format_leaderboard(result))

        if result.group_secret:
            # Secrets only go to the member's private chat.
            bot.send_message(
                message.from_user.id,
                f"The secret for {result.group_name} is: {result.group_secret}",
            )

        if result.prompt_to_join and code is not None:
            markup = InlineKeyboardMarkup(row_width=1)
            markup.add(
                InlineKeyboardButton(
                    "Join",
                    callback_data=encode_join_prompt(
                        pending_joins.add(group_name, code, message.from_user.id)
                    ),
                )
            )
            bot.send_message(
                message.chat.id,
                f"You are not a member of {result.group_name} yet.",
                reply_markup=markup,
            )

    @bot.message_handler(commands=["join"])
    def handle_join(message):
        args = _args(message)
        if len(args) != 2:
            usage(message, "/join <group> <code>")
            return

        result = services.join_linked(_token(message), args[0], args[1], store)
        bot.send_message(message.chat.id, format_result(result))

    @bot.message_handler(commands=["joinanon"])
    def handle_join_anon(message):
        args = _args(message)
        if len(args) != 3:
            usage(message, "/joinanon <handle> <group> <code>")
            return

        handle, group_name, code = args
        result = with_provider(
            lambda provider: services.join_anonymous(
                handle, group_name, code, store, provider
            )
        )
        bot.send_message(message.chat.id, format_result(result))

    @bot.message_handler(commands=["leave"])
    def handle_leave(message):
        args = _args(message)
        if len(args) not in (1, 2):
            usage(message, "/leave <group> [handle]")
            return

        token = ANON_MARKER + args[1] if len(args) == 2 else _token(message)
        result = with_provider(
            lambda provider: services.leave(token, args[0], store, provider)
        )
        bot.send_message(message.chat.id, format_result(result))

    @bot.message_handler(commands=["create"])
    def handle_create(message):
        args = _args(message)
        if len(args) not in (2, 3):
            usage(message, "/create <group> <secret> [private]")
            return

        try:
            privacy = parse_privacy(args[2]) if len(args) == 3 else False
        except ValueError as exc:
            bot.send_message(message.chat.id, str(exc))
            return

        result = services.create_group(
            args[0], args[1], privacy, _token(message), store, moderator
        )
        bot.send_message(message.chat.id, format_result(result))

    @bot.message_handler(commands=["delete"])
    def handle_delete(message):
        args = _args(message)
        if len(args) != 1:
            usage(message, "/delete <group>")
            return

        result = services.delete_group(_token(message), args[0], store)
        bot.send_message(message.chat.id, format_result(result))

    @bot.message_handler(commands=["privacy", "secret"])
    def handle_group_settings(message):
        args = _args(message)
        op = message.text.split()[0][1:].split("@")[0]  # strip leading '/'
        if len(args) != 2:
            usage(message, f"/{op} <group> <value>")
            return

        group_name, value = args
        if not services.owns_group(_token(message), group_name, store):
            bot.send_message(message.chat.id, "Only the group owner can do that.")
            return

        if op == "privacy":
            try:
                privacy = parse_privacy(value)
            except ValueError as exc:
                bot.send_message(message.chat.id, str(exc))
                return
            result = services.change_privacy(group_name, privacy, store)
        else:
            result = services.change_secret(group_name, value, store)
        bot.send_message(message.chat.id, format_result(result))

    @bot.message_handler(commands=["profile"])
    def handle_profile(message):
        result = with_provider(
            lambda provider: services.user_profile(_token(message), store, provider)
        )
        bot.send_message(message.chat.id, format_profile(result))

    @bot.callback_query_handler(func=lambda call: call.data.startswith("join:"))
    def handle_join_prompt(call):
        """
        Handle the "Join" button shown under a leaderboard.
        """

        try:
            prompt_id = parse_join_prompt(call.data)
        except ValueError:
            bot.answer_callback_query(call.id, "Invalid selection.")
            return

        claimed = pending_joins.claim(prompt_id, call.from_user.id)
        if claimed is None:
            if pending_joins.is_known(prompt_id):
                bot.answer_callback_query(call.id, "This button is not for you.")
            else:
                bot.answer_callback_query(call.id, "This prompt has expired.")
            return

        group_name, code = claimed
        bot.answer_callback_query(call.id)
        try:
            result = services.join_linked(str(call.from_user.id), group_name, code, store)
            bot.send_message(call.message.chat.id, format_result(result))
        finally:
            bot.delete_message(call.message.chat.id, call.message.id)

    return bot
