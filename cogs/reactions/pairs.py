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

import dataclasses
import re
from typing import TYPE_CHECKING, List, Optional, Set, Tuple

import discord
from discord import app_commands

from .emoji import canonicalize, parse_emoji
from .errors import ValidationError

if TYPE_CHECKING:
    from bot import BeaconBot

__all__: Tuple[str, ...] = ('MAX_PAIRS', 'ReactionPair', 'parse_pairs', 'ReactionPairsTransformer')

MAX_PAIRS: int = 12

ENTRY_SEPARATOR_RE = re.compile(r'[,\n]')
ROLE_MENTION_RE = re.compile(r'<@&(?P<id>[0-9]{15,20})>')
ROLE_ID_RE = re.compile(r'^[0-9]{15,20}$')


@dataclasses.dataclass(frozen=True)
class ReactionPair:
    """An emoji and the role it should grant, validated but not yet attached
    to any message.
    """

    emoji: discord.PartialEmoji
    role: discord.Role

    @property
    def emoji_key(self) -> str:
        return canonicalize(self.emoji)

    def __str__(self) -> str:
        return f'{self.emoji} → {self.role.mention}'


def _split_entry(entry: str) -> Tuple[str, str]:
    mention = ROLE_MENTION_RE.search(entry)
    if mention:
        if entry[mention.end() :].strip():
            raise ValidationError(f'I don\'t understand `{entry}`, put the role mention last.')

        return entry[: mention.start()].strip(), mention.group(0)

    parts = entry.split(None, 1)
    if len(parts) != 2:
        raise ValidationError(f'`{entry}` needs both an emoji and a role, like `✅ @Role`.')

    return parts[0], parts[1].strip()


def _resolve_role(guild: discord.Guild, reference: str) -> Optional[discord.Role]:
    mention = ROLE_MENTION_RE.fullmatch(reference)
    if mention:
        return guild.get_role(int(mention.group('id')))

    if ROLE_ID_RE.match(reference):
        return guild.get_role(int(reference))

    # Typing "@Name" without picking the mention leaves a plain "@" in front.
    return discord.utils.get(guild.roles, name=reference) or discord.utils.get(
        guild.roles, name=reference.removeprefix('@')
    )


def _check_assignable(guild: discord.Guild, role: discord.Role) -> None:
    if role.is_default():
        raise ValidationError('The @everyone role can\'t be handed out with reactions.')

    if role.managed:
        raise ValidationError(f'{role.mention} is managed by an integration, I can\'t assign it.')

    me = guild.me
    if me is not None and role.position >= me.top_role.position:
        raise ValidationError(f'{role.mention} is above my highest role, move my role above it first.')


def parse_pairs(value: str, guild: discord.Guild) -> List[ReactionPair]:
    """Parse the pairs argument of the create command.

    Entries are separated by commas or new lines, each one an emoji followed by a
    role mention, ID or name: ``✅ @Gamer, <:art:123456789012345678> Artist``.

    Parameters
    ----------
    value: :class:`str`
        The raw user input.
    guild: :class:`discord.Guild`
        The guild the roles are resolved in.

    Returns
    -------
    List[:class:`ReactionPair`]
        Between one and :data:`MAX_PAIRS` validated pairs, in input order.

    Raises
    ------
    ValidationError
        An entry is malformed, a role does not exist or can't be assigned, an
        emoji is repeated or the amount of pairs is out of range.
    """
    entries = [entry.strip() for entry in ENTRY_SEPARATOR_RE.split(value) if entry.strip()]
    if not entries:
        raise ValidationError('You need to give me at least one emoji and role, like `✅ @Role`.')

    if len(entries) > MAX_PAIRS:
        raise ValidationError(f'A reaction role message can have at most {MAX_PAIRS} emojis, you gave {len(entries)}.')

    pairs: List[ReactionPair] = []
    seen: Set[str] = set()
    for entry in entries:
        emoji_text, role_text = _split_entry(entry)
        if not emoji_text:
            raise ValidationError(f'`{entry}` is missing an emoji.')

        emoji = parse_emoji(emoji_text)
        emoji_key = canonicalize(emoji)
        if emoji_key in seen:
            raise ValidationError(f'{emoji} is used more than once, every emoji can only grant one role.')

        role = _resolve_role(guild, role_text)
        if role is None:
            raise ValidationError(f'I couldn\'t find a role matching `{role_text}`.')

        _check_assignable(guild, role)

        seen.add(emoji_key)
        pairs.append(ReactionPair(emoji=emoji, role=role))

    return pairs


class ReactionPairsTransformer(app_commands.Transformer):
    """Transforms the raw pairs string of the create command into a list of
    :class:`ReactionPair`.
    """

    async def transform(self, interaction: discord.Interaction[BeaconBot], value: str, /) -> List[ReactionPair]:
        """|coro|

        Parameters
        ----------
        interaction: :class:`discord.Interaction`
            The interaction that was created from the user invoking the command.
        value: :class:`str`
            The value the user typed.
        """
        guild = interaction.guild
        if guild is None:
            raise ValidationError('This command can only be used in a server.')

        return parse_pairs(value, guild)
