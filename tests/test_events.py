"""
Tests for cogs/reactions/events.py

Covers turning raw reaction events into role changes: granting, revoking,
ignoring bots, completing partial emoji payloads and absorbing API errors.
"""

from unittest.mock import AsyncMock, MagicMock

import discord
import pytest
import pytest_asyncio

from cogs.reactions.events import ReactionDispatcher

from .conftest import make_http_exception, make_member

GUILD_ID = 4242
CHANNEL_ID = 77
MESSAGE_ID = 9000
ROLE_A = 111
ROLE_B = 222
CUSTOM = discord.PartialEmoji(name='party', id=123456789012345678)


def make_payload(
    emoji: discord.PartialEmoji,
    *,
    event_type: str = 'REACTION_ADD',
    user_id: int = 555,
    member=None,
    guild_id=GUILD_ID,
) -> MagicMock:
    payload = MagicMock(spec=discord.RawReactionActionEvent)
    payload.emoji = emoji
    payload.event_type = event_type
    payload.user_id = user_id
    payload.member = member
    payload.guild_id = guild_id
    payload.channel_id = CHANNEL_ID
    payload.message_id = MESSAGE_ID
    return payload


@pytest.fixture
def guild(fake_bot):
    guild = MagicMock(spec=discord.Guild)
    guild.id = GUILD_ID
    guild.get_member.return_value = None
    guild.fetch_member = AsyncMock()
    fake_bot.get_guild.return_value = guild
    return guild


@pytest_asyncio.fixture
async def dispatcher(fake_bot, registry, guild):
    await registry.register(MESSAGE_ID, '✅', ROLE_A)
    await registry.register(MESSAGE_ID, CUSTOM, ROLE_B)
    return ReactionDispatcher(fake_bot, registry)


class TestGrantAndRevoke:
    """A mapped reaction grants on add and revokes on remove."""

    @pytest.mark.asyncio
    async def test_add_then_remove(self, dispatcher, guild):
        member = make_member()
        guild.get_member.return_value = member

        await dispatcher.dispatch(make_payload(discord.PartialEmoji(name='✅'), member=member))

        member.add_roles.assert_awaited_once()
        (role,) = member.add_roles.await_args.args
        assert role.id == ROLE_A
        member.remove_roles.assert_not_awaited()

        await dispatcher.dispatch(make_payload(discord.PartialEmoji(name='✅'), event_type='REACTION_REMOVE'))

        member.add_roles.assert_awaited_once()
        member.remove_roles.assert_awaited_once()
        (role,) = member.remove_roles.await_args.args
        assert role.id == ROLE_A

    @pytest.mark.asyncio
    async def test_custom_emoji_from_gateway(self, dispatcher):
        member = make_member()

        await dispatcher.dispatch(make_payload(CUSTOM, member=member))

        (role,) = member.add_roles.await_args.args
        assert role.id == ROLE_B

    @pytest.mark.asyncio
    async def test_unmapped_emoji_is_a_no_op(self, dispatcher):
        member = make_member()

        await dispatcher.dispatch(make_payload(discord.PartialEmoji(name='🎨'), member=member))

        member.add_roles.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_custom_emoji_with_same_name_but_other_id_is_a_no_op(self, dispatcher):
        member = make_member()
        impostor = discord.PartialEmoji(name='party', id=876543210987654321)

        await dispatcher.dispatch(make_payload(impostor, member=member))

        member.add_roles.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_removal_fetches_uncached_member(self, dispatcher, guild):
        member = make_member()
        guild.fetch_member.return_value = member

        await dispatcher.dispatch(make_payload(discord.PartialEmoji(name='✅'), event_type='REACTION_REMOVE'))

        guild.fetch_member.assert_awaited_once_with(555)
        member.remove_roles.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_platform_error_is_absorbed(self, dispatcher):
        member = make_member()
        member.add_roles.side_effect = make_http_exception(403, 'Missing Permissions', 50013)

        await dispatcher.dispatch(make_payload(discord.PartialEmoji(name='✅'), member=member))

        member.add_roles.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_store_outage_is_absorbed(self, dispatcher, store):
        member = make_member()
        store.fail_next(TimeoutError())

        await dispatcher.dispatch(make_payload(discord.PartialEmoji(name='✅'), member=member))

        member.add_roles.assert_not_awaited()


class TestFiltering:
    """Events that must never reach the registry."""

    @pytest.fixture
    def spy_registry(self):
        registry = MagicMock()
        registry.resolve = AsyncMock(return_value=ROLE_A)
        return registry

    @pytest.mark.asyncio
    async def test_own_reactions_are_ignored(self, fake_bot, guild, spy_registry):
        dispatcher = ReactionDispatcher(fake_bot, spy_registry)
        member = make_member(fake_bot.user.id, bot=True)

        await dispatcher.dispatch(make_payload(discord.PartialEmoji(name='✅'), user_id=fake_bot.user.id, member=member))

        spy_registry.resolve.assert_not_awaited()
        member.add_roles.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_other_bots_are_ignored(self, fake_bot, guild, spy_registry):
        dispatcher = ReactionDispatcher(fake_bot, spy_registry)
        member = make_member(999, bot=True)

        await dispatcher.dispatch(make_payload(discord.PartialEmoji(name='✅'), user_id=999, member=member))

        spy_registry.resolve.assert_not_awaited()
        member.add_roles.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_other_bots_are_ignored_on_removal(self, fake_bot, guild, spy_registry):
        dispatcher = ReactionDispatcher(fake_bot, spy_registry)
        guild.get_member.return_value = make_member(999, bot=True)

        await dispatcher.dispatch(make_payload(discord.PartialEmoji(name='✅'), user_id=999, event_type='REACTION_REMOVE'))

        spy_registry.resolve.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_direct_messages_are_ignored(self, fake_bot, guild, spy_registry):
        dispatcher = ReactionDispatcher(fake_bot, spy_registry)

        await dispatcher.dispatch(make_payload(discord.PartialEmoji(name='✅'), member=make_member(), guild_id=None))

        spy_registry.resolve.assert_not_awaited()


class TestIncompletePayloads:
    """Custom emojis the gateway sent without a name are completed, never guessed."""

    @pytest.mark.asyncio
    async def test_completed_from_emoji_cache(self, dispatcher, fake_bot):
        member = make_member()
        fake_bot.get_emoji.return_value = CUSTOM

        await dispatcher.dispatch(make_payload(discord.PartialEmoji(name=None, id=CUSTOM.id), member=member))  # type: ignore

        (role,) = member.add_roles.await_args.args
        assert role.id == ROLE_B

    @pytest.mark.asyncio
    async def test_completed_from_message_reactions(self, dispatcher, fake_bot):
        member = make_member()
        reaction = MagicMock(emoji=CUSTOM)
        message = MagicMock(reactions=[MagicMock(emoji='✅'), reaction])
        fake_bot.get_partial_messageable.return_value.fetch_message = AsyncMock(return_value=message)

        await dispatcher.dispatch(make_payload(discord.PartialEmoji(name=None, id=CUSTOM.id), member=member))  # type: ignore

        (role,) = member.add_roles.await_args.args
        assert role.id == ROLE_B

    @pytest.mark.asyncio
    async def test_dropped_when_it_cannot_be_completed(self, dispatcher, fake_bot, store):
        member = make_member()
        fake_bot.get_partial_messageable.return_value.fetch_message = AsyncMock(side_effect=make_http_exception(404))
        lookups_before = len(store.calls)

        await dispatcher.dispatch(make_payload(discord.PartialEmoji(name=None, id=CUSTOM.id), member=member))  # type: ignore

        member.add_roles.assert_not_awaited()
        assert len(store.calls) == lookups_before
