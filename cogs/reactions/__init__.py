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
from typing import TYPE_CHECKING, List, Optional

import discord
from discord import app_commands
from discord.ext import commands

from utils import BaseCog, parse_message_id

from .emoji import canonicalize as canonicalize
from .errors import *
from .events import ReactionDispatcher
from .operations import build_embed, build_listing, create_mapping, format_results, teardown_mapping
from .pairs import ReactionPair, ReactionPairsTransformer
from .registry import SCHEMA, ReactionRoleRegistry

if TYPE_CHECKING:
    from bot import BeaconBot

_log = logging.getLogger(__name__)

STORE_UNAVAILABLE: str = 'I can\'t reach the database right now, nothing was changed. Try again in a bit.'


class ReactionRoles(BaseCog):
    """Commands to create and tear down reaction role messages, and the listeners
    that hand out their roles.
    """

    __schema__ = SCHEMA

    reactionroles = app_commands.Group(
        name='reactionroles',
        description='Manage reaction role messages.',
        guild_only=True,
        default_permissions=discord.Permissions(manage_roles=True),
    )

    def __init__(self, bot: BeaconBot) -> None:
        super().__init__(bot)
        self.registry: ReactionRoleRegistry = ReactionRoleRegistry(bot)
        self.dispatcher: ReactionDispatcher = ReactionDispatcher(bot, self.registry)

    @reactionroles.command(name='create', description='Post a message that hands out roles through reactions.')
    @app_commands.describe(
        pairs='Emojis and roles separated by commas, like: ✅ @Gamer, 🎨 @Artist',
        text='The text shown above the list of roles.',
        channel='Where to post the message. Defaults to this channel.',
    )
    @app_commands.checks.bot_has_permissions(manage_roles=True, add_reactions=True)
    async def reactionroles_create(
        self,
        interaction: discord.Interaction[BeaconBot],
        pairs: app_commands.Transform[List[ReactionPair], ReactionPairsTransformer],
        text: Optional[app_commands.Range[str, 1, 2000]] = None,
        channel: Optional[discord.TextChannel] = None,
    ) -> discord.InteractionMessage:
        """|coro|

        Post a reaction role message. Every emoji is attached and saved on its own, and the
        invoker is told exactly which ones worked.

        Parameters
        ----------
        pairs: List[:class:`ReactionPair`]
            The validated emoji and role pairs.
        text: Optional[:class:`str`]
            The text above the role list.
        channel: Optional[:class:`discord.TextChannel`]
            The channel to post in.
        """
        assert interaction.guild is not None
        await interaction.response.defer(ephemeral=True)

        target = channel or interaction.channel
        if not isinstance(target, (discord.TextChannel, discord.Thread)):
            return await interaction.edit_original_response(content='I can only post reaction roles in text channels.')

        embed = build_embed(self.bot.Embed(), pairs, text)
        try:
            message = await target.send(embed=embed)
        except discord.HTTPException as exc:
            return await interaction.edit_original_response(
                content=f'I couldn\'t post in {target.mention}: {PlatformError("send the message", exc)}'
            )

        results = await create_mapping(self.registry, message, pairs)
        _log.info(
            'Created reaction role message %s in guild %s, %s/%s pairs set up.',
            message.id,
            interaction.guild.id,
            sum(result.ok for result in results),
            len(results),
        )
        return await interaction.edit_original_response(
            content=f'Posted in {message.jump_url}\n{format_results(results)}'
        )

    @reactionroles.command(name='teardown', description='Stop a reaction role message from handing out roles.')
    @app_commands.describe(
        message_id='The ID of the reaction role message.',
        delete_message='Whether to delete the message as well. Defaults to yes.',
    )
    async def reactionroles_teardown(
        self,
        interaction: discord.Interaction[BeaconBot],
        message_id: str,
        delete_message: bool = True,
    ) -> discord.InteractionMessage:
        """|coro|

        Remove every mapping on a reaction role message and optionally delete it.

        Parameters
        ----------
        message_id: :class:`str`
            The ID of the message. Slash commands can't take snowflakes as integers.
        delete_message: :class:`bool`
            Whether to delete the message too.
        """
        assert interaction.guild is not None
        await interaction.response.defer(ephemeral=True)

        parsed_id = parse_message_id(message_id)
        try:
            mappings = await self.registry.fetch_for_message(parsed_id)
            if any(mapping.guild_id not in (None, interaction.guild.id) for mapping in mappings):
                raise ValidationError('That reaction role message belongs to another server.')

            count = await teardown_mapping(self.registry, parsed_id)
        except StoreError:
            return await interaction.edit_original_response(content=STORE_UNAVAILABLE)

        if not count:
            return await interaction.edit_original_response(content='That message has no reaction roles.')

        _log.info('Tore down %s reaction roles on message %s in guild %s.', count, parsed_id, interaction.guild.id)

        content = f'Removed **{count}** reaction roles.'
        channel_id = next((mapping.channel_id for mapping in mappings if mapping.channel_id), None)
        if delete_message and channel_id is not None:
            partial = self.bot.get_partial_messageable(channel_id, guild_id=interaction.guild.id)
            try:
                await partial.get_partial_message(parsed_id).delete()
            except discord.HTTPException as exc:
                content += f' I couldn\'t delete the message though: {PlatformError("delete the message", exc)}'
            else:
                content += ' The message was deleted.'

        return await interaction.edit_original_response(content=content)

    @reactionroles.command(name='list', description='List the reaction role messages in this server.')
    async def reactionroles_list(self, interaction: discord.Interaction[BeaconBot]) -> discord.InteractionMessage:
        assert interaction.guild is not None
        await interaction.response.defer(ephemeral=True)

        try:
            mappings = await self.registry.fetch_for_guild(interaction.guild.id)
        except StoreError:
            return await interaction.edit_original_response(content=STORE_UNAVAILABLE)

        if not mappings:
            return await interaction.edit_original_response(content='There are no reaction role messages here.')

        embed = build_listing(self.bot.Embed(title='Reaction Roles'), interaction.guild.id, mappings)
        return await interaction.edit_original_response(embed=embed)

    @commands.Cog.listener('on_raw_reaction_add')
    @commands.Cog.listener('on_raw_reaction_remove')
    async def reaction_event_listener(self, payload: discord.RawReactionActionEvent) -> None:
        """|coro|

        A multiple event handler dedicated to handing out and taking away roles
        based upon reaction role reactions.

        Parameters
        ----------
        payload: :class:`RawReactionActionEvent`
            The raw payload given to the client from a reaction
            being pressed.
        """
        await self.dispatcher.dispatch(payload)


async def setup(bot: BeaconBot) -> None:
    await bot.add_cog(ReactionRoles(bot))
