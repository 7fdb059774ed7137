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
from typing import TYPE_CHECKING, List, Optional

import discord
from discord import app_commands

from utils import BaseCog

from .birthday import SCHEMA, Birthday, parse_birthday, upcoming

if TYPE_CHECKING:
    from bot import BeaconBot


class Birthdays(BaseCog):
    """Store and look up member birthdays."""

    __schema__ = SCHEMA

    birthday = app_commands.Group(name='birthday', description='Manage your birthday.')

    @birthday.command(name='set', description='Save your birthday.')
    @app_commands.describe(month='The month you were born in, 1 to 12.', day='The day of the month you were born on.')
    async def birthday_set(
        self,
        interaction: discord.Interaction[BeaconBot],
        month: app_commands.Range[int, 1, 12],
        day: app_commands.Range[int, 1, 31],
    ) -> discord.InteractionMessage:
        await interaction.response.defer(ephemeral=True)

        date = parse_birthday(month, day)
        birthday = await Birthday.set(interaction.user.id, date, bot=self.bot)
        return await interaction.edit_original_response(content=f'Saved your birthday as **{birthday.display}**.')

    @birthday.command(name='show', description='Show a member\'s birthday.')
    @app_commands.describe(member='The member to look up. Defaults to you.')
    async def birthday_show(
        self, interaction: discord.Interaction[BeaconBot], member: Optional[discord.Member] = None
    ) -> discord.InteractionMessage:
        await interaction.response.defer(ephemeral=True)

        target = member or interaction.user
        birthday = await Birthday.fetch(target.id, bot=self.bot)
        if birthday is None:
            return await interaction.edit_original_response(content=f'{target.mention} hasn\'t saved a birthday.')

        return await interaction.edit_original_response(content=f'{target.mention}\'s birthday is **{birthday.display}**.')

    @birthday.command(name='remove', description='Forget your birthday.')
    async def birthday_remove(self, interaction: discord.Interaction[BeaconBot]) -> discord.InteractionMessage:
        await interaction.response.defer(ephemeral=True)

        birthday = await Birthday.fetch(interaction.user.id, bot=self.bot)
        if birthday is None:
            return await interaction.edit_original_response(content='You don\'t have a birthday saved.')

        await birthday.delete()
        return await interaction.edit_original_response(content='Your birthday has been removed.')

    @birthday.command(name='upcoming', description='Show the next birthdays in this server.')
    @app_commands.guild_only()
    async def birthday_upcoming(self, interaction: discord.Interaction[BeaconBot]) -> discord.InteractionMessage:
        assert interaction.guild is not None
        await interaction.response.defer()

        birthdays = await Birthday.fetch_many((member.id for member in interaction.guild.members), bot=self.bot)
        if not birthdays:
            return await interaction.edit_original_response(content='Nobody here has saved a birthday yet.')

        today = discord.utils.utcnow().date()
        lines: List[str] = []
        for when, birthday in upcoming(birthdays, today):
            dt = datetime.datetime.combine(when, datetime.time(), tzinfo=datetime.timezone.utc)
            lines.append(f'{discord.utils.format_dt(dt, "D")}: <@{birthday.user_id}>')

        embed = self.bot.Embed(title='Upcoming Birthdays', description='\n'.join(lines))
        return await interaction.edit_original_response(embed=embed)


async def setup(bot: BeaconBot) -> None:
    await bot.add_cog(Birthdays(bot))
