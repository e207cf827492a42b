from __future__ import annotations

import logging
from typing import Dict, Optional, Tuple

import discord
from discord.ext import commands

from application import services
from domain.models import ANON_MARKER
from domain.repositories import ContentModerator, DocumentStore, StatisticsProvider
from interfaces.formatting import (
    HELP_TEXT,
    format_leaderboard,
    format_profile,
    format_result,
    parse_privacy,
)


logger = logging.getLogger(__name__)

JOIN_EMOJI = "✅"


def _token(user: discord.abc.User) -> str:
    """The caller token for a Discord user is their numeric id."""

    return str(user.id)


def create_discord_bot(
    store: DocumentStore,
    provider: StatisticsProvider,
    moderator: ContentModerator,
) -> commands.Bot:
    """
    Configure and return a Discord bot exposing the group operations as
    `!` commands.
    """

    intents = discord.Intents.default()
    intents.message_content = True
    intents.reactions = True

    # Disable the default help command so we can provide our own `!help`.
    bot = commands.Bot(command_prefix="!", intents=intents, help_command=None)

    # Join prompts waiting for a reaction, keyed by the prompt message ID.
    pending_joins: Dict[int, Tuple[str, str, int]] = {}
    # value: (group_name, code, discord_user_id)

    @bot.event
    async def on_ready():
        logger.info("Discord bot logged in as %s (id=%s)", bot.user, bot.user.id)

    @bot.command(name="help")
    async def help_cmd(ctx: commands.Context):
        await ctx.send(HELP_TEXT.format(p="!", id=_token(ctx.author)))

    @bot.command(name="status")
    async def status_cmd(ctx: commands.Context):
        if services.account_status(_token(ctx.author), store):
            await ctx.send("Your account is linked.")
        else:
            await ctx.send("Your account is not linked yet. Use !register <handle>.")

    @bot.command(name="register")
    async def register_cmd(ctx: commands.Context, handle: str):
        result = await services.register_account(
            _token(ctx.author), handle, store, provider
        )
        await ctx.send(format_result(result))

    @bot.command(name="board")
    async def board_cmd(
        ctx: commands.Context,
        group_name: str,
        code: Optional[str] = None,
    ):
        result = await services.fetch_leaderboard(
            group_name, _token(ctx.author), code, store, provider
        )
        await ctx.send(format_leaderboard(result))

        if result.group_secret:
            # Never post a secret in a shared channel.
            await ctx.author.send(
                f"The secret for {result.group_name} is: {result.group_secret}"
            )

        if result.prompt_to_join and code is not None:
            prompt = await ctx.send(
                f"{ctx.author.mention}, you are not a member of {result.group_name} yet.\n"
                f"React with {JOIN_EMOJI} to join."
            )
            await prompt.add_reaction(JOIN_EMOJI)
            pending_joins[prompt.id] = (group_name, code, ctx.author.id)

    @bot.command(name="join")
    async def join_cmd(ctx: commands.Context, group_name: str, code: str):
        result = services.join_linked(_token(ctx.author), group_name, code, store)
        await ctx.send(format_result(result))

    @bot.command(name="joinanon")
    async def join_anon_cmd(
        ctx: commands.Context,
        handle: str,
        group_name: str,
        code: str,
    ):
        result = await services.join_anonymous(
            handle, group_name, code, store, provider
        )
        await ctx.send(format_result(result))

    @bot.command(name="leave")
    async def leave_cmd(
        ctx: commands.Context,
        group_name: str,
        handle: Optional[str] = None,
    ):
        token = ANON_MARKER + handle if handle else _token(ctx.author)
        result = await services.leave(token, group_name, store, provider)
        await ctx.send(format_result(result))

    @bot.command(name="create")
    async def create_cmd(
        ctx: commands.Context,
        group_name: str,
        secret: str,
        visibility: str = "public",
    ):
        try:
            privacy = parse_privacy(visibility)
        except ValueError as exc:
            await ctx.send(str(exc))
            return

        result = services.create_group(
            group_name, secret, privacy, _token(ctx.author), store, moderator
        )
        await ctx.send(format_result(result))

    @bot.command(name="delete")
    async def delete_cmd(ctx: commands.Context, group_name: str):
        result = services.delete_group(_token(ctx.author), group_name, store)
        await ctx.send(format_result(result))

    @bot.command(name="privacy")
    async def privacy_cmd(ctx: commands.Context, group_name: str, visibility: str):
        if not services.owns_group(_token(ctx.author), group_name, store):
            await ctx.send("Only the group owner can change its privacy.")
            return
        try:
            privacy = parse_privacy(visibility)
        except ValueError as exc:
            await ctx.send(str(exc))
            return

        result = services.change_privacy(group_name, privacy, store)
        await ctx.send(format_result(result))

    @bot.command(name="secret")
    async def secret_cmd(ctx: commands.Context, group_name: str, new_secret: str):
        if not services.owns_group(_token(ctx.author), group_name, store):
            await ctx.send("Only the group owner can change its secret.")
            return

        result = services.change_secret(group_name, new_secret, store)
        await ctx.send(format_result(result))

    @bot.command(name="profile")
    async def profile_cmd(ctx: commands.Context):
        result = await services.user_profile(_token(ctx.author), store, provider)
        await ctx.send(format_profile(result))

    @bot.event
    async def on_reaction_add(reaction: discord.Reaction, user: discord.abc.User):
        # Ignore bot reactions and reactions not on tracked prompts.
        if user.bot:
            return

        message_id = reaction.message.id
        if message_id not in pending_joins:
            return

        group_name, code, discord_user_id = pending_joins[message_id]

        # Only the prompted user can accept.
        if user.id != discord_user_id or str(reaction.emoji) != JOIN_EMOJI:
            return

        pending_joins.pop(message_id, None)
        result = services.join_linked(_token(user), group_name, code, store)
        await reaction.message.channel.send(format_result(result))

    @bot.event
    async def on_command_error(ctx: commands.Context, error: commands.CommandError):
        if isinstance(
            error,
            (commands.CommandNotFound, commands.MissingRequiredArgument, commands.BadArgument),
        ):
            await ctx.send(f"{error}. Type !help to see available commands.")
            return
        logger.error("Command %s failed", ctx.command, exc_info=error)
        await ctx.send("Something went wrong, please try again later.")

    return bot
