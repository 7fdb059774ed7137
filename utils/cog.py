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

from typing import TYPE_CHECKING, Tuple

from discord.ext import commands

if TYPE_CHECKING:
    from bot import BeaconBot

__all__: Tuple[str, ...] = ('BaseCog',)


class BaseCog(commands.Cog):
    """Implementation for a base cog class. This class is meant to be inherited from,
    instead of directly inheriting :class:`commands.Cog`. This is so if you don't have a unique
    :meth:`__init__` you don't have you add it.

    Cogs that own database tables can set :attr:`__schema__` to the DDL that creates them. It is
    executed once when the cog is loaded, so a fresh database works without a separate migration step.

    Parameters
    ----------
    bot: :class:`BeaconBot`
        The bot instance.

    Attributes
    ----------
    bot: :class:`BeaconBot`
        The bot instance.
    """

    __schema__: str = ''

    def __init__(self, bot: BeaconBot) -> None:
        self.bot: BeaconBot = bot

    async def cog_load(self) -> None:
        if not self.__schema__:
            return

        async with self.bot.safe_connection() as connection:
            await connection.execute(self.__schema__)
