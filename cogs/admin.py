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
from typing import TYPE_CHECKING, Awaitable, Callable

import discord
from discord import app_commands

from utils import BadArgument, BaseCog, parse_message_id, tick

if TYPE_CHECKING:
    from bot import BeaconBot

_log = logging.getLogger(__name__)


def _check_role_hierarchy(interaction: discord.Interaction[BeaconBot], role: discord.Role) -> None:
    assert interaction.guild is not None
    assert isinstance(interaction.user, discord.Member)

    if role.is_default() or role.managed:
        raise BadArgument(f'{role.mention} can\'t be assigned by hand.')

    if role.position >= interaction.guild.me.top_role.position:
        raise BadArgument(f'{role.mention} is above my highest role, I can\'t manage it.')

    if interaction.user.id != interaction.guild.owner_id and role.position >= interaction.user.top_role.position:
        raise BadArgument(f'{role.mention} is above your highest role, you can\'t manage it.')


class Admin(BaseCog):
    """Administrative message and role management."""

    admin = app_commands.Group(
        name='admin',
        description='Administrative message and role tools.',
        guild_only=True,
        default_permissions=discord.Permissions(manage_guild=True),
    )

    @admin.command(name='say', description='Make the bot post a message.')
    @app_commands.describe(channel='The channel to post in.', text='What to say.')
    async def admin_say(
        self,
        interaction: discord.Interaction[BeaconBot],
        channel: discord.TextChannel,
        text: app_commands.Range[str, 1, 2000],
    ) -> discord.InteractionMessage:
        await interaction.response.defer(ephemeral=True)

        try:
            message = await channel.send(text, allowed_mentions=discord.AllowedMentions(everyone=False, roles=False))
        except discord.HTTPException as exc:
            return await interaction.edit_original_response(content=tick(False, label=f'Failed to post: {exc.text}'))

        return await interaction.edit_original_response(content=tick(True, label=f'Posted {message.jump_url}'))

    @admin.command(name='edit', description='Edit a message the bot posted.')
    @app_commands.describe(
        channel='The channel the message is in.', message_id='The ID of the message.', text='The new content.'
    )
    async def admin_edit(
        self,
        interaction: discord.Interaction[BeaconBot],
        channel: discord.TextChannel,
        message_id: str,
        text: app_commands.Range[str, 1, 2000],
    ) -> discord.InteractionMessage:
        await interaction.response.defer(ephemeral=True)

        try:
            message = await channel.fetch_message(parse_message_id(message_id))
        except discord.NotFound:
            raise BadArgument('I couldn\'t find that message.') from None

        if message.author.id != self.bot.user.id:
            raise BadArgument('I can only edit my own messages.')

        await message.edit(content=text)
        return await interaction.edit_original_response(content=tick(True, label=f'Edited {message.jump_url}'))

    async def _change_role(
        self,
        interaction: discord.Interaction[BeaconBot],
        member: discord.Member,
        role: discord.Role,
        *,
        meth: Callable[..., Awaitable[None]],
        verb: str,
    ) -> discord.InteractionMessage:
        await interaction.response.defer(ephemeral=True)
        _check_role_hierarchy(interaction, role)

        try:
            await meth(role, reason=f'{verb} by {interaction.user} ({interaction.user.id})')
        except discord.HTTPException as exc:
            _log.info('Failed to change role %s for %s: %s', role.id, member.id, exc)
            return await interaction.edit_original_response(
                content=tick(False, label=f'{role.mention} for {member.mention}: {exc.__class__.__name__}')
            )

        return await interaction.edit_original_response(
            content=tick(True, label=f'{verb} {role.mention} for {member.mention}')
        )

    @admin.command(name='role-add', description='Give a member a role.')
    @app_commands.describe(member='The member to give the role to.', role='The role to give.')
    @app_commands.checks.bot_has_permissions(manage_roles=True)
    async def admin_role_add(
        self, interaction: discord.Interaction[BeaconBot], member: discord.Member, role: discord.Role
    ) -> discord.InteractionMessage:
        return await self._change_role(interaction, member, role, meth=member.add_roles, verb='Added')

    @admin.command(name='role-remove', description='Take a role from a member.')
    @app_commands.describe(member='The member to take the role from.', role='The role to take.')
    @app_commands.checks.bot_has_permissions(manage_roles=True)
    async def admin_role_remove(
        self, interaction: discord.Interaction[BeaconBot], member: discord.Member, role: discord.Role
    ) -> discord.InteractionMessage:
        return await self._change_role(interaction, member, role, meth=member.remove_roles, verb='Removed')


async def setup(bot: BeaconBot) -> None:
    await bot.add_cog(Admin(bot))
