"""
Tests for cogs/reactions/pairs.py

Covers turning the create command's pairs argument into validated emoji and
role pairs.
"""

from unittest.mock import MagicMock

import pytest

from cogs.reactions.errors import ValidationError
from cogs.reactions.pairs import MAX_PAIRS, ReactionPairsTransformer, parse_pairs

from .conftest import make_guild, make_role

GAMER_ID = 300000000000000001
ARTIST_ID = 300000000000000002


@pytest.fixture
def gamer():
    return make_role(GAMER_ID, 'Gamer', position=2)


@pytest.fixture
def artist():
    return make_role(ARTIST_ID, 'Artist', position=3)


@pytest.fixture
def guild(gamer, artist):
    everyone = make_role(4242, '@everyone', position=0, default=True)
    managed = make_role(300000000000000003, 'Booster', position=4, managed=True)
    admin = make_role(300000000000000004, 'Admin', position=20)
    return make_guild(everyone, gamer, artist, managed, admin, top_position=10)


class TestParsePairs:
    """Tests for parse_pairs."""

    def test_mentions_separated_by_commas(self, guild, gamer, artist):
        pairs = parse_pairs(f'✅ <@&{GAMER_ID}>, <:art:123456789012345678> <@&{ARTIST_ID}>', guild)

        assert [(p.emoji_key, p.role) for p in pairs] == [('✅', gamer), ('art:123456789012345678', artist)]

    def test_new_lines_separate_entries(self, guild):
        pairs = parse_pairs(f'✅ <@&{GAMER_ID}>\n🎨 <@&{ARTIST_ID}>', guild)

        assert [p.emoji_key for p in pairs] == ['✅', '🎨']

    def test_mention_without_space(self, guild, gamer):
        (pair,) = parse_pairs(f'✅<@&{GAMER_ID}>', guild)

        assert pair.role is gamer

    def test_role_by_id_and_name(self, guild, gamer, artist):
        pairs = parse_pairs(f'✅ {GAMER_ID}, 🎨 @Artist', guild)

        assert [p.role for p in pairs] == [gamer, artist]

    def test_custom_emoji_keeps_its_id_for_reacting(self, guild):
        (pair,) = parse_pairs(f'<a:art:123456789012345678> <@&{ARTIST_ID}>', guild)

        assert pair.emoji.id == 123456789012345678
        assert pair.emoji.animated

    def test_blank_entries_are_skipped(self, guild):
        pairs = parse_pairs(f'✅ <@&{GAMER_ID}>,, ,\n', guild)

        assert len(pairs) == 1

    def test_nothing_given(self, guild):
        with pytest.raises(ValidationError):
            parse_pairs(' , ', guild)

    def test_too_many_pairs(self, guild):
        value = ', '.join(f'{chr(0x1F600 + i)} <@&{GAMER_ID}>' for i in range(MAX_PAIRS + 1))

        with pytest.raises(ValidationError, match=str(MAX_PAIRS)):
            parse_pairs(value, guild)

    def test_max_pairs_is_allowed(self, guild):
        value = ', '.join(f'{chr(0x1F600 + i)} <@&{GAMER_ID}>' for i in range(MAX_PAIRS))

        assert len(parse_pairs(value, guild)) == MAX_PAIRS

    def test_repeated_emoji_is_rejected(self, guild):
        with pytest.raises(ValidationError, match='more than once'):
            parse_pairs(f'✅ <@&{GAMER_ID}>, ✅ <@&{ARTIST_ID}>', guild)

    def test_repeated_custom_emoji_in_different_forms_is_rejected(self, guild):
        with pytest.raises(ValidationError):
            parse_pairs(
                f'<:art:123456789012345678> <@&{GAMER_ID}>, art:123456789012345678 <@&{ARTIST_ID}>',
                guild,
            )

    def test_missing_role(self, guild):
        with pytest.raises(ValidationError):
            parse_pairs('✅', guild)

    def test_missing_emoji(self, guild):
        with pytest.raises(ValidationError, match='missing an emoji'):
            parse_pairs(f'<@&{GAMER_ID}>', guild)

    def test_text_instead_of_emoji_is_rejected(self, guild):
        with pytest.raises(ValidationError, match='hello'):
            parse_pairs(f'hello <@&{GAMER_ID}>', guild)

    def test_unknown_role(self, guild):
        with pytest.raises(ValidationError, match='Nobody'):
            parse_pairs('✅ Nobody', guild)

    def test_text_after_mention(self, guild):
        with pytest.raises(ValidationError):
            parse_pairs(f'✅ <@&{GAMER_ID}> please', guild)

    def test_everyone_is_rejected(self, guild):
        with pytest.raises(ValidationError, match='everyone'):
            parse_pairs('✅ @everyone', guild)

    def test_managed_role_is_rejected(self, guild):
        with pytest.raises(ValidationError, match='managed'):
            parse_pairs('✅ Booster', guild)

    def test_role_above_the_bot_is_rejected(self, guild):
        with pytest.raises(ValidationError, match='above my highest role'):
            parse_pairs('✅ Admin', guild)


class TestReactionPairsTransformer:
    """Tests for ReactionPairsTransformer."""

    @pytest.mark.asyncio
    async def test_transform_in_guild(self, guild, gamer):
        interaction = MagicMock(guild=guild)

        (pair,) = await ReactionPairsTransformer().transform(interaction, f'✅ <@&{GAMER_ID}>')

        assert pair.role is gamer

    @pytest.mark.asyncio
    async def test_transform_outside_guild(self):
        interaction = MagicMock(guild=None)

        with pytest.raises(ValidationError):
            await ReactionPairsTransformer().transform(interaction, '✅ @Gamer')
