"""
Contributor-Only License v1.0

This file is licensed under the Contributor-Only License. Usage is restricted to
non-commercial purposes. Distribution, sublicensing, and sharing of this file
are prohibited except by the original owner.

Modifications are allowed solely for contributing purposes and must not
misrepresent the original material. This license does not grant any
patent rights or trademark rights.

Full license terms are available in the LICENSE file at the root of the repository.
"""

from __future__ import annotations

import datetime
import logging
import os
import sys
import traceback
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Iterator, Optional, Tuple, TypeAlias, Union

import discord
from discord import app_commands
from discord.ext import commands

from .context import Context
from .errors import *

if TYPE_CHECKING:
    from bot import BeaconBot

__all__: Tuple[str, ...] = ('ErrorHandler',)

_log = logging.getLogger(__name__)

Target: TypeAlias = Union[Context, 'discord.Interaction[BeaconBot]']
Sender: TypeAlias = Callable[[str], Awaitable[Any]]

APOLOGY: str = 'Something went wrong on my end. It has been logged, sorry about that!'
CODE_BLOCK: str = '```py\n{}```'
EMBED_DESCRIPTION_LIMIT: int = 4096


def _chunk_traceback(text: str, *, size: int = EMBED_DESCRIPTION_LIMIT) -> Iterator[str]:
    usable = size - len(CODE_BLOCK) + 2
    for start in range(0, len(text), usable):
        yield CODE_BLOCK.format(text[start : start + usable])


def _describe(target: Optional[Target], event_name: Optional[str]) -> Dict[str, str]:
    details: Dict[str, str] = {'where': f'event {event_name}' if event_name else 'command'}
    if target is None:
        return details

    user = target.author if isinstance(target, Context) else target.user
    details['command'] = target.command.qualified_name if target.command else 'unknown'
    details['user'] = f'<@{user.id}> ({user.id})'
    if target.guild:
        details['guild'] = f'{target.guild.name} ({target.guild.id})'
    if target.channel:
        details['channel'] = f'<#{target.channel.id}>'

    return details


class ErrorReporter:
    """Writes unexpected errors to the log and, when ``EXCEPTION_WEBHOOK_URL`` is set,
    posts the traceback to that webhook as well.
    """

    __slots__: Tuple[str, ...] = ('bot', 'webhook')

    def __init__(self, bot: BeaconBot) -> None:
        self.bot: BeaconBot = bot

        self.webhook: Optional[discord.Webhook] = None
        url = os.environ.get('EXCEPTION_WEBHOOK_URL')
        if url:
            self.webhook = discord.Webhook.from_url(url, session=bot.session)

    async def _post(self, formatted: str, details: Dict[str, str]) -> None:
        assert self.webhook is not None

        identity: Dict[str, Any] = {}
        if self.bot.user:
            identity = {'username': self.bot.user.display_name, 'avatar_url': self.bot.user.display_avatar.url}

        first, *rest = _chunk_traceback(formatted)
        embed = discord.Embed(title='Unhandled error', description=first, timestamp=discord.utils.utcnow())
        embed.add_field(name='Details', value='\n'.join(f'**{key.title()}**: {value}' for key, value in details.items()))
        await self.webhook.send(embed=embed, **identity)

        # Webhooks take at most 10 embeds per message.
        for index in range(0, len(rest), 10):
            await self.webhook.send(embeds=[discord.Embed(description=chunk) for chunk in rest[index : index + 10]], **identity)

    async def report(self, error: BaseException, *, target: Optional[Target] = None, event_name: Optional[str] = None) -> None:
        """|coro|

        Log an error and forward it to the exception webhook, if one is set.

        Parameters
        ----------
        error: :class:`BaseException`
            The error.
        target: Optional[Union[:class:`Context`, :class:`discord.Interaction`]]
            What was being run when it was raised.
        event_name: Optional[:class:`str`]
            The event it was raised in, for errors outside of commands.
        """
        details = _describe(target, event_name)
        _log.error('Unhandled error in %s', details.get('command', details['where']), exc_info=error)

        if self.webhook is None:
            return

        formatted = ''.join(traceback.format_exception(type(error), error, error.__traceback__))
        try:
            await self._post(formatted, details)
        except discord.HTTPException as exc:
            _log.warning('Failed to send error to the exception webhook.', exc_info=exc)


def _explain(error: Exception) -> Optional[str]:
    """The message to show the user for an error they can act on, ``None`` otherwise."""
    if isinstance(error, BadArgument):
        return str(error)

    if isinstance(error, app_commands.TransformerError):
        return f'I couldn\'t understand `{error.value}` as a {error.type.name.lower()}.'

    if isinstance(error, app_commands.NoPrivateMessage):
        return str(error)

    if isinstance(error, app_commands.MissingRole):
        return f'You need the <@&{error.missing_role}> role to run this command.'

    if isinstance(error, (app_commands.MissingPermissions, app_commands.BotMissingPermissions)):
        who = 'I need' if isinstance(error, app_commands.BotMissingPermissions) else 'You need'
        permissions = ', '.join(permission.replace('_', ' ').title() for permission in error.missing_permissions)
        return f'{who} these permissions to run this command: {permissions}'

    if isinstance(error, (app_commands.CommandOnCooldown, commands.CommandOnCooldown)):
        ready = discord.utils.utcnow() + datetime.timedelta(seconds=error.retry_after)
        return f'This command is on cooldown, try again {discord.utils.format_dt(ready, "R")}.'

    if isinstance(error, app_commands.CommandSignatureMismatch):
        return 'My commands are out of date here, ask an admin to sync them again.'

    if isinstance(error, (app_commands.CheckFailure, commands.CheckFailure)):
        return str(error) or 'You can\'t use this command here.'

    return None


class ErrorHandler:
    """Hooks the command tree and the bot so every error ends up here. Errors the
    user can act on are explained to them privately, anything else is reported.

    Parameters
    ----------
    bot: :class:`BeaconBot`
        The bot instance.
    """

    def __init__(self, bot: BeaconBot) -> None:
        self.bot: BeaconBot = bot
        self.reporter: ErrorReporter = ErrorReporter(bot)
        self.inject()

    def inject(self) -> None:
        self.bot.tree.on_error = self.on_app_command_error
        self.bot.on_error = self.on_event_error
        self.bot.on_command_error = self.on_command_error  # type: ignore

    def eject(self) -> None:
        self.bot.tree.on_error = app_commands.CommandTree.on_error.__get__(self.bot.tree)  # type: ignore
        self.bot.on_error = commands.Bot.on_error.__get__(self.bot)  # type: ignore
        self.bot.on_command_error = commands.Bot.on_command_error.__get__(self.bot)  # type: ignore

    async def _sender(self, target: Target) -> Sender:
        if isinstance(target, Context):
            if target.interaction and not target.interaction.response.is_done():
                await target.defer(ephemeral=True)

            return lambda content: target.send(content, ephemeral=True)

        if not target.response.is_done():
            await target.response.defer(ephemeral=True)

        return lambda content: target.followup.send(content, ephemeral=True)

    async def handle(self, target: Target, error: Exception) -> None:
        """|coro|

        Explain or report an error raised while running a command.
        """
        while hasattr(error, 'original'):
            error = getattr(error, 'original')

        if isinstance(error, commands.CommandNotFound):
            return

        send = await self._sender(target)
        message = _explain(error)
        if message is not None:
            await send(message)
            return

        await send(APOLOGY)
        await self.reporter.report(error, target=target)

    async def on_app_command_error(self, interaction: discord.Interaction[BeaconBot], error: Exception) -> None:
        await self.handle(interaction, error)

    async def on_command_error(self, ctx: Context, error: Exception) -> None:
        await self.handle(ctx, error)

    async def on_event_error(self, event_method: str, *args: Any, **kwargs: Any) -> None:
        error = sys.exc_info()[1]
        if error is None:
            raise RuntimeError('on_error was called without an active exception.')

        await self.reporter.report(error, event_name=event_method)


async def setup(bot: BeaconBot) -> None:
    bot.error_handler = ErrorHandler(bot)


async def teardown(bot: BeaconBot) -> None:
    bot.error_handler.eject()
