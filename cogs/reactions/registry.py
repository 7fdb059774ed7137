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
import dataclasses
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, List, Mapping, Optional, Tuple, TypeVar

import asyncpg
from discord.backoff import ExponentialBackoff
from typing_extensions import Self

from .emoji import EmojiReference, canonicalize
from .errors import DuplicateMappingError, StoreError, TransientStoreError, ValidationError

if TYPE_CHECKING:
    from bot import BeaconBot, ConnectionType

__all__: Tuple[str, ...] = ('RoleMapping', 'ReactionRoleRegistry', 'SCHEMA')

T = TypeVar('T')

_log = logging.getLogger(__name__)

# Seconds any single store call, including acquiring a connection, may take.
STORE_TIMEOUT: float = 5.0
REGISTER_ATTEMPTS: int = 3

TRANSIENT_ERRORS: Tuple[type[BaseException], ...] = (
    asyncio.TimeoutError,
    OSError,
    asyncpg.PostgresConnectionError,
    asyncpg.InterfaceError,
)

SCHEMA: str = '''
CREATE SCHEMA IF NOT EXISTS reactions;
CREATE TABLE IF NOT EXISTS reactions.role_mapping (
    message_id BIGINT NOT NULL,
    emoji_key TEXT NOT NULL,
    role_id BIGINT NOT NULL,
    guild_id BIGINT,
    channel_id BIGINT,
    PRIMARY KEY (message_id, emoji_key)
);
CREATE INDEX IF NOT EXISTS role_mapping_guild_id_idx ON reactions.role_mapping (guild_id);
'''

INSERT_QUERY: str = '''
INSERT INTO reactions.role_mapping (message_id, emoji_key, role_id, guild_id, channel_id)
VALUES ($1, $2, $3, $4, $5)
ON CONFLICT (message_id, emoji_key) DO NOTHING
RETURNING role_id
'''

RESOLVE_QUERY: str = 'SELECT role_id FROM reactions.role_mapping WHERE message_id = $1 AND emoji_key = $2'

DELETE_QUERY: str = '''
WITH deleted AS (
    DELETE FROM reactions.role_mapping WHERE message_id = $1 RETURNING emoji_key
)
SELECT COUNT(*) FROM deleted
'''

FETCH_MESSAGE_QUERY: str = 'SELECT * FROM reactions.role_mapping WHERE message_id = $1'

FETCH_GUILD_QUERY: str = 'SELECT * FROM reactions.role_mapping WHERE guild_id = $1 ORDER BY message_id, emoji_key'


@dataclasses.dataclass(frozen=True)
class RoleMapping:
    """A single emoji on a message that grants a role."""

    message_id: int
    emoji_key: str
    role_id: int
    guild_id: Optional[int] = None
    channel_id: Optional[int] = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Self:
        return cls(
            message_id=record['message_id'],
            emoji_key=record['emoji_key'],
            role_id=record['role_id'],
            guild_id=record['guild_id'],
            channel_id=record['channel_id'],
        )

    @property
    def role_mention(self) -> str:
        return f'<@&{self.role_id}>'


class ReactionRoleRegistry:
    """The durable store of reaction role mappings, and the only thing that reads
    or writes the ``reactions.role_mapping`` table.

    Every emoji passed in is run through :func:`canonicalize` first, so the
    same emoji always lands on the same key whether it came from a command or a
    gateway event. Nothing is cached in process; every call hits the database.

    Parameters
    ----------
    bot: :class:`BeaconBot`
        The bot instance, used for its connection pool.
    timeout: :class:`float`
        The timeout applied to acquiring a connection and to each query.
    attempts: :class:`int`
        How many times :meth:`register` tries before giving up on a store that
        is timing out or refusing connections.
    backoff_base: :class:`int`
        The base of the exponential backoff between :meth:`register` attempts.
    """

    __slots__: Tuple[str, ...] = ('bot', 'timeout', 'attempts', 'backoff_base')

    def __init__(
        self,
        bot: BeaconBot,
        *,
        timeout: float = STORE_TIMEOUT,
        attempts: int = REGISTER_ATTEMPTS,
        backoff_base: int = 1,
    ) -> None:
        self.bot: BeaconBot = bot
        self.timeout: float = timeout
        self.attempts: int = attempts
        self.backoff_base: int = backoff_base

    async def _run(self, callback: Callable[[ConnectionType], Awaitable[T]]) -> T:
        try:
            async with self.bot.safe_connection(timeout=self.timeout) as connection:
                return await callback(connection)
        except TRANSIENT_ERRORS as exc:
            raise TransientStoreError(f'The database is unavailable: {exc.__class__.__name__}') from exc
        except asyncpg.PostgresError as exc:
            raise StoreError(f'The database refused the request: {exc.__class__.__name__}') from exc

    async def register(
        self,
        message_id: int,
        emoji: EmojiReference,
        role_id: int,
        *,
        guild_id: Optional[int] = None,
        channel_id: Optional[int] = None,
    ) -> RoleMapping:
        """|coro|

        Map an emoji on a message to a role. An emoji that is already mapped on the
        message is rejected, the existing mapping is never overwritten.

        Parameters
        ----------
        message_id: :class:`int`
            The message carrying the reaction.
        emoji: Union[:class:`str`, :class:`discord.PartialEmoji`, :class:`discord.Emoji`]
            The emoji, in any form :func:`canonicalize` accepts.
        role_id: :class:`int`
            The role to grant.
        guild_id: Optional[:class:`int`]
            The guild the message is in.
        channel_id: Optional[:class:`int`]
            The channel the message is in.

        Returns
        -------
        :class:`RoleMapping`
            The stored mapping.

        Raises
        ------
        ValidationError
            The emoji could not be canonicalized.
        DuplicateMappingError
            The emoji is already mapped on this message.
        TransientStoreError
            The store stayed unavailable for every attempt.
        StoreError
            The store rejected the insert. This is not retried.
        """
        emoji_key = canonicalize(emoji)

        async def insert(connection: ConnectionType) -> Optional[int]:
            return await connection.fetchval(
                INSERT_QUERY, message_id, emoji_key, role_id, guild_id, channel_id, timeout=self.timeout
            )

        backoff: ExponentialBackoff[bool] = ExponentialBackoff(base=self.backoff_base)
        attempt = 1
        while True:
            try:
                inserted = await self._run(insert)
            except TransientStoreError as exc:
                if attempt >= self.attempts:
                    _log.error('Giving up registering %s on message %s after %s attempts.', emoji_key, message_id, attempt)
                    raise

                delay = backoff.delay()
                _log.warning(
                    'Failed to register %s on message %s (attempt %s), retrying in %.2fs.',
                    emoji_key,
                    message_id,
                    attempt,
                    delay,
                    exc_info=exc,
                )
                await asyncio.sleep(delay)
                attempt += 1
                continue

            break

        if inserted is None:
            raise DuplicateMappingError(message_id, emoji_key, await self.resolve(message_id, emoji_key))

        _log.debug('Registered %s -> %s on message %s', emoji_key, role_id, message_id)
        return RoleMapping(
            message_id=message_id, emoji_key=emoji_key, role_id=role_id, guild_id=guild_id, channel_id=channel_id
        )

    async def resolve(self, message_id: int, emoji: EmojiReference) -> Optional[int]:
        """|coro|

        Look up the role an emoji on a message grants.

        This is called for every reaction in every guild, so anything that goes wrong
        is logged and treated as "no role" instead of raised.

        Parameters
        ----------
        message_id: :class:`int`
            The message that was reacted to.
        emoji: Union[:class:`str`, :class:`discord.PartialEmoji`, :class:`discord.Emoji`]
            The emoji that was used.

        Returns
        -------
        Optional[:class:`int`]
            The role ID, or ``None`` when the emoji grants nothing.
        """
        try:
            emoji_key = canonicalize(emoji)
        except ValidationError:
            return None

        async def lookup(connection: ConnectionType) -> Optional[int]:
            return await connection.fetchval(RESOLVE_QUERY, message_id, emoji_key, timeout=self.timeout)

        try:
            return await self._run(lookup)
        except StoreError as exc:
            _log.warning('Failed to resolve %s on message %s.', emoji_key, message_id, exc_info=exc)
            return None

    async def remove_by_message(self, message_id: int) -> int:
        """|coro|

        Delete every mapping on a message.

        Parameters
        ----------
        message_id: :class:`int`
            The message to clear.

        Returns
        -------
        :class:`int`
            The amount of mappings that were deleted.
        """

        async def delete(connection: ConnectionType) -> int:
            return await connection.fetchval(DELETE_QUERY, message_id, timeout=self.timeout) or 0

        count = await self._run(delete)
        _log.info('Removed %s reaction role mappings from message %s', count, message_id)
        return count

    async def fetch_for_message(self, message_id: int) -> List[RoleMapping]:
        async def fetch(connection: ConnectionType) -> List[RoleMapping]:
            records = await connection.fetch(FETCH_MESSAGE_QUERY, message_id, timeout=self.timeout)
            return [RoleMapping.from_record(record) for record in records]

        return await self._run(fetch)

    async def fetch_for_guild(self, guild_id: int) -> List[RoleMapping]:
        async def fetch(connection: ConnectionType) -> List[RoleMapping]:
            records = await connection.fetch(FETCH_GUILD_QUERY, guild_id, timeout=self.timeout)
            return [RoleMapping.from_record(record) for record in records]

        return await self._run(fetch)
