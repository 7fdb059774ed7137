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

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any, Callable, Coroutine, Optional, ParamSpec, Tuple, Type, TypeAlias, TypeVar, Union

import asyncpg
import discord
from discord.ext import commands
from typing_extensions import Concatenate, Self

from utils import (
    BYPASS_SETUP_HOOK,
    DATABASE_SSL,
    RUNNING_DEVELOPMENT,
    SYNC_GUILD_ID,
    Context,
    ErrorHandler,
    parse_initial_extensions,
)

if TYPE_CHECKING:
    import aiohttp

T = TypeVar("T")
P = ParamSpec("P")
PoolType: TypeAlias = "asyncpg.Pool[asyncpg.Record]"
ConnectionType: TypeAlias = "asyncpg.Connection[asyncpg.Record]"
ExtensionMethod: TypeAlias = Callable[Concatenate["BeaconBot", P], Coroutine[Any, Any, T]]

_log = logging.getLogger(__name__)
if RUNNING_DEVELOPMENT:
    _log.setLevel(logging.DEBUG)

ACQUIRE_TIMEOUT: float = 10.0
EMBED_COLOUR: discord.Colour = discord.Colour.blurple()

initial_extensions: Tuple[str, ...] = (
    "cogs.reactions",
    "cogs.birthdays",
    "cogs.admin",
    "jishaku",
    "utils.error_handler",
)


def timed_extension(method: ExtensionMethod[P, T]) -> ExtensionMethod[P, T]:
    """Log how long an extension operation took and re-raise the real error
    instead of discord.py's :class:`commands.ExtensionFailed` wrapper.
    """

    async def wrapped(self: BeaconBot, *args: P.args, **kwargs: P.kwargs) -> T:
        name = args[0]
        started = time.perf_counter()
        try:
            result = await method(self, *args, **kwargs)
        except commands.ExtensionFailed as exc:
            raise exc.original from exc

        _log.info('%s "%s" in %.2fs', method.__name__.replace('_', ' ').capitalize(), name, time.perf_counter() - started)
        return result

    return wrapped


class TransactionContext:
    """Acquires a connection from the pool and runs everything inside the
    ``async with`` block in one transaction. The transaction is rolled back when
    the block raises, committed otherwise.

    Attributes
    ----------
    pool: :class:`asyncpg.Pool`
        The pool to acquire from.
    timeout: Optional[:class:`float`]
        How long to wait for a free connection.
    """

    __slots__: Tuple[str, ...] = ("pool", "timeout", "_connection", "_transaction")

    def __init__(self, pool: PoolType, *, timeout: Optional[float] = ACQUIRE_TIMEOUT) -> None:
        self.pool: PoolType = pool
        self.timeout: Optional[float] = timeout
        self._connection: Optional[ConnectionType] = None
        self._transaction: Optional[Any] = None

    async def __aenter__(self) -> ConnectionType:
        connection: ConnectionType = await self.pool.acquire(timeout=self.timeout)  # type: ignore
        self._connection = connection
        self._transaction = connection.transaction()
        await self._transaction.start()
        return connection

    async def __aexit__(self, exc_type: Optional[Type[BaseException]], exc: Optional[BaseException], tb: Any) -> None:
        try:
            if self._transaction is not None:
                if exc is None:
                    await self._transaction.commit()
                else:
                    await self._transaction.rollback()
        finally:
            if self._connection is not None:
                await self.pool.release(self._connection)  # type: ignore
                self._connection = None


class BeaconBot(commands.Bot):
    """The bot. Holds the resources every cog shares.

    Parameters
    ----------
    loop: :class:`asyncio.AbstractEventLoop`
        The running event loop.
    session: :class:`aiohttp.ClientSession`
        HTTP session, used by the error webhook.
    pool: :class:`asyncpg.Pool`
        The Postgres pool, see :meth:`setup_pool`.
    """

    if TYPE_CHECKING:
        user: discord.ClientUser  # Only read after login.
        error_handler: ErrorHandler

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        session: aiohttp.ClientSession,
        pool: PoolType,
    ) -> None:
        self.loop: asyncio.AbstractEventLoop = loop
        self.session: aiohttp.ClientSession = session
        self.pool: PoolType = pool

        # Members are needed to resolve who removed a reaction.
        intents = discord.Intents.default()
        intents.members = True
        intents.message_content = True

        super().__init__(
            command_prefix=commands.when_mentioned,
            help_command=None,
            description="Reaction roles and community tools",
            intents=intents,
            allowed_mentions=discord.AllowedMentions.none(),
        )

    @classmethod
    async def setup_pool(cls: Type[Self], *, uri: str, **kwargs: Any) -> PoolType:
        """Create the Postgres pool.

        Parameters
        ----------
        uri: :class:`str`
            The Postgres connection URI.
        **kwargs:
            Passed on to :func:`asyncpg.create_pool`.
        """
        # Hosted Postgres providers hand out self-signed certificates.
        if DATABASE_SSL:
            kwargs.setdefault("ssl", "require")

        pool = await asyncpg.create_pool(uri, **kwargs)
        if pool is None:
            raise RuntimeError("asyncpg did not return a pool.")

        return pool

    @staticmethod
    def Embed(**kwargs: Any) -> discord.Embed:
        """A :class:`discord.Embed` in the bot's colour unless one is given."""
        if "colour" not in kwargs and "color" not in kwargs:
            kwargs["colour"] = EMBED_COLOUR

        return discord.Embed(**kwargs)

    async def on_ready(self) -> None:
        _log.info("Ready as %s in %s guilds.", self.user, len(self.guilds))

    async def get_context(self, origin: Union[discord.Message, discord.Interaction[Self]]) -> Context:
        return await super().get_context(origin, cls=Context)

    def safe_connection(self, *, timeout: Optional[float] = ACQUIRE_TIMEOUT) -> TransactionContext:
        """Borrow a pool connection wrapped in a transaction.

        .. code-block:: python3

            async with bot.safe_connection(timeout=5) as connection:
                await connection.execute('SELECT 1')
        """
        return TransactionContext(self.pool, timeout=timeout)

    @timed_extension
    async def load_extension(self, name: str, /, *, package: Optional[str] = None) -> None:
        return await super().load_extension(name, package=package)

    @timed_extension
    async def reload_extension(self, name: str, /, *, package: Optional[str] = None) -> None:
        return await super().reload_extension(name, package=package)

    @timed_extension
    async def unload_extension(self, name: str, /, *, package: Optional[str] = None) -> None:
        return await super().unload_extension(name, package=package)

    async def sync_application_commands(self) -> None:
        """|coro|

        Sync the command tree. When ``SYNC_GUILD_ID`` is set the global commands are copied
        to that guild and synced there only.
        """
        if SYNC_GUILD_ID is None:
            synced = await self.tree.sync()
            _log.info("Synced %s application commands globally.", len(synced))
            return

        guild = discord.Object(id=SYNC_GUILD_ID)
        self.tree.copy_global_to(guild=guild)
        synced = await self.tree.sync(guild=guild)
        _log.info("Synced %s application commands to guild %s.", len(synced), SYNC_GUILD_ID)

    async def setup_hook(self) -> None:
        if BYPASS_SETUP_HOOK:
            return

        # One at a time: cogs create their tables on load and concurrent DDL can deadlock.
        for extension in parse_initial_extensions(initial_extensions):
            await self.load_extension(extension)

        try:
            await self.sync_application_commands()
        except discord.HTTPException as exc:
            _log.warning("Failed to sync application commands.", exc_info=exc)
