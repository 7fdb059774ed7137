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

import logging
from typing import TYPE_CHECKING, Optional, Tuple, Union

import discord

from .emoji import is_complete
from .registry import ReactionRoleRegistry

if TYPE_CHECKING:
    from bot import BeaconBot

__all__: Tuple[str, ...] = ('ReactionDispatcher',)

_log = logging.getLogger(__name__)

REASON: str = 'Reaction roles'


class ReactionDispatcher:
    """Turns raw reaction events into role changes.

    Parameters
    ----------
    bot: :class:`BeaconBot`
        The bot instance.
    registry: :class:`ReactionRoleRegistry`
        The registry mappings are resolved from.
    """

    __slots__: Tuple[str, ...] = ('bot', 'registry')

    def __init__(self, bot: BeaconBot, registry: ReactionRoleRegistry) -> None:
        self.bot: BeaconBot = bot
        self.registry: ReactionRoleRegistry = registry

    async def _get_member(self, guild: discord.Guild, payload: discord.RawReactionActionEvent) -> Optional[discord.Member]:
        # Only REACTION_ADD payloads carry the member.
        if payload.member is not None:
            return payload.member

        member = guild.get_member(payload.user_id)
        if member is not None:
            return member

        try:
            return await guild.fetch_member(payload.user_id)
        except discord.HTTPException as exc:
            _log.debug('Could not fetch member %s in guild %s: %s', payload.user_id, guild.id, exc)
            return None

    async def _complete_emoji(
        self, payload: discord.RawReactionActionEvent
    ) -> Optional[Union[discord.PartialEmoji, discord.Emoji]]:
        emoji = payload.emoji
        if is_complete(emoji):
            return emoji

        # The gateway dropped the name of a custom emoji. Find the full emoji instead of
        # guessing, first in the cache and then on the message itself.
        if emoji.id is not None:
            cached = self.bot.get_emoji(emoji.id)
            if cached is not None:
                return cached

        channel = self.bot.get_partial_messageable(payload.channel_id, guild_id=payload.guild_id)
        try:
            message = await channel.fetch_message(payload.message_id)
        except discord.HTTPException as exc:
            _log.debug('Could not fetch message %s to complete a reaction: %s', payload.message_id, exc)
            return None

        for reaction in message.reactions:
            candidate = reaction.emoji
            if isinstance(candidate, str):
                continue

            if candidate.id == emoji.id and is_complete(candidate):
                return candidate

        return None

    async def dispatch(self, payload: discord.RawReactionActionEvent) -> None:
        """|coro|

        Grant or revoke the role mapped to a reaction, if there is one. Nothing here
        raises; failures are logged since there is nobody to show them to.

        Parameters
        ----------
        payload: :class:`discord.RawReactionActionEvent`
            The raw reaction add or remove event.
        """
        if payload.guild_id is None:
            return

        if payload.user_id == self.bot.user.id:
            return

        guild = self.bot.get_guild(payload.guild_id)
        if guild is None:
            return

        member = await self._get_member(guild, payload)
        if member is None or member.bot:
            return

        emoji = await self._complete_emoji(payload)
        if emoji is None:
            _log.debug('Dropping reaction on message %s with incomplete emoji %r', payload.message_id, payload.emoji)
            return

        role_id = await self.registry.resolve(payload.message_id, emoji)
        if role_id is None:
            return

        role = discord.Object(id=role_id)
        adding = payload.event_type == 'REACTION_ADD'
        try:
            if adding:
                await member.add_roles(role, reason=REASON)
            else:
                await member.remove_roles(role, reason=REASON)
        except discord.HTTPException as exc:
            _log.warning(
                'Failed to %s role %s for member %s in guild %s.',
                'add' if adding else 'remove',
                role_id,
                member.id,
                guild.id,
                exc_info=exc,
            )
            return

        _log.debug('%s role %s for member %s', 'Added' if adding else 'Removed', role_id, member.id)
