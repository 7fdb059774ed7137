"""
Shared fixtures for the test suite.

The registry talks to Postgres through ``bot.safe_connection()``. ``FakeStore``
stands in for that connection and understands exactly the queries the
registry issues, keyed on the query constants themselves.
"""

from __future__ import annotations

import contextlib
from typing import Any, Dict, List, Optional, Tuple
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from cogs.reactions import registry as registry_module
from cogs.reactions.registry import ReactionRoleRegistry


class FakeStore:
    """An in-memory ``reactions.role_mapping`` table."""

    def __init__(self) -> None:
        self.rows: Dict[Tuple[int, str], Dict[str, Any]] = {}
        self.failures: List[BaseException] = []
        self.calls: List[str] = []
        self.timeouts: List[Optional[float]] = []

    def fail_next(self, *errors: BaseException) -> None:
        self.failures.extend(errors)

    def _maybe_fail(self, query: str, timeout: Optional[float]) -> None:
        self.calls.append(query)
        self.timeouts.append(timeout)
        if self.failures:
            raise self.failures.pop(0)

    async def fetchval(self, query: str, *args: Any, timeout: Optional[float] = None) -> Any:
        self._maybe_fail(query, timeout)

        if query is registry_module.INSERT_QUERY:
            message_id, emoji_key, role_id, guild_id, channel_id = args
            if (message_id, emoji_key) in self.rows:
                return None

            self.rows[(message_id, emoji_key)] = {
                'message_id': message_id,
                'emoji_key': emoji_key,
                'role_id': role_id,
                'guild_id': guild_id,
                'channel_id': channel_id,
            }
            return role_id

        if query is registry_module.RESOLVE_QUERY:
            row = self.rows.get((args[0], args[1]))
            return row and row['role_id']

        if query is registry_module.DELETE_QUERY:
            keys = [key for key in self.rows if key[0] == args[0]]
            for key in keys:
                del self.rows[key]

            return len(keys)

        raise AssertionError(f'Unexpected query: {query}')

    async def fetch(self, query: str, *args: Any, timeout: Optional[float] = None) -> List[Dict[str, Any]]:
        self._maybe_fail(query, timeout)

        if query is registry_module.FETCH_MESSAGE_QUERY:
            return [row for key, row in self.rows.items() if key[0] == args[0]]

        if query is registry_module.FETCH_GUILD_QUERY:
            rows = [row for row in self.rows.values() if row['guild_id'] == args[0]]
            return sorted(rows, key=lambda row: (row['message_id'], row['emoji_key']))

        raise AssertionError(f'Unexpected query: {query}')


class FakeBot:
    """Just enough of ``BeaconBot`` for the registry and the reaction dispatcher."""

    def __init__(self, store: FakeStore) -> None:
        self.store: FakeStore = store
        self.acquire_timeouts: List[Optional[float]] = []

        self.user = MagicMock(id=1)
        self.get_guild = MagicMock(return_value=None)
        self.get_emoji = MagicMock(return_value=None)
        self.get_partial_messageable = MagicMock()

    @contextlib.asynccontextmanager
    async def _connection(self):
        yield self.store

    def safe_connection(self, *, timeout: Optional[float] = 10.0):
        self.acquire_timeouts.append(timeout)
        return self._connection()


def make_http_exception(status: int = 400, message: str = 'Unknown Emoji', code: int = 10014) -> discord.HTTPException:
    response = MagicMock(status=status, reason='Bad Request')
    return discord.HTTPException(response, {'code': code, 'message': message})


def make_role(role_id: int, name: str, *, position: int = 1, managed: bool = False, default: bool = False) -> MagicMock:
    role = MagicMock(spec=discord.Role)
    role.id = role_id
    role.name = name
    role.position = position
    role.managed = managed
    role.mention = f'<@&{role_id}>'
    role.is_default.return_value = default
    return role


def make_guild(*roles: MagicMock, top_position: int = 10) -> MagicMock:
    guild = MagicMock(spec=discord.Guild)
    guild.id = 4242
    guild.roles = list(roles)
    guild.get_role.side_effect = lambda role_id: discord.utils.get(roles, id=role_id)
    guild.me.top_role.position = top_position
    return guild


def make_member(member_id: int = 555, *, bot: bool = False) -> MagicMock:
    member = MagicMock(spec=discord.Member)
    member.id = member_id
    member.bot = bot
    member.add_roles = AsyncMock()
    member.remove_roles = AsyncMock()
    return member


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def fake_bot(store: FakeStore) -> FakeBot:
    return FakeBot(store)


@pytest.fixture
def registry(fake_bot: FakeBot) -> ReactionRoleRegistry:
    return ReactionRoleRegistry(fake_bot, backoff_base=0)  # type: ignore
