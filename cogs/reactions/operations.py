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
import itertools
import logging
from typing import List, Optional, Sequence, Tuple

import discord

from utils import tick

from .errors import PlatformError, ReactionRoleException
from .pairs import ReactionPair
from .registry import ReactionRoleRegistry, RoleMapping

__all__: Tuple[str, ...] = (
    'DEFAULT_TEXT',
    'PairResult',
    'build_embed',
    'build_listing',
    'create_mapping',
    'format_results',
    'teardown_mapping',
)

_log = logging.getLogger(__name__)

DEFAULT_TEXT: str = 'Choose your roles:'

MAX_EMBED_FIELDS: int = 25
MAX_EMBED_LENGTH: int = 6000
LISTING_FOOTER: str = 'Showing {shown} of {total} reaction role messages.'


@dataclasses.dataclass
class PairResult:
    """The outcome of setting up one emoji on a reaction role message.

    Attributes
    ----------
    pair: :class:`ReactionPair`
        The pair that was set up.
    reacted: :class:`bool`
        Whether the emoji was attached to the message.
    persisted: :class:`bool`
        Whether the mapping was saved. Never ``True`` when :attr:`reacted` is ``False``.
    error: Optional[:class:`str`]
        Why the pair failed, if it did.
    """

    pair: ReactionPair
    reacted: bool = False
    persisted: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.reacted and self.persisted

    def format(self) -> str:
        if self.ok:
            return tick(True, label=str(self.pair))

        stage = 'reacting' if not self.reacted else 'saving'
        return tick(False, label=f'{self.pair} (failed while {stage}: {self.error})')


def build_embed(embed: discord.Embed, pairs: Sequence[ReactionPair], text: Optional[str] = None) -> discord.Embed:
    lines = [str(pair) for pair in pairs]
    embed.description = f'{text or DEFAULT_TEXT}\n\n' + '\n'.join(lines)
    return embed


async def create_mapping(
    registry: ReactionRoleRegistry, message: discord.Message, pairs: Sequence[ReactionPair]
) -> List[PairResult]:
    """|coro|

    Attach every emoji to a freshly posted message and save a mapping for each one
    that was attached. Pairs are handled independently, one failing does not stop
    the ones after it.

    Parameters
    ----------
    registry: :class:`ReactionRoleRegistry`
        The registry to save the mappings in.
    message: :class:`discord.Message`
        The message that carries the reactions.
    pairs: Sequence[:class:`ReactionPair`]
        The validated pairs to set up.

    Returns
    -------
    List[:class:`PairResult`]
        One result per pair, in the same order.
    """
    guild_id = message.guild.id if message.guild else None
    results: List[PairResult] = []

    for pair in pairs:
        result = PairResult(pair=pair)
        results.append(result)

        try:
            await message.add_reaction(pair.emoji)
        except discord.HTTPException as exc:
            error = PlatformError('react', exc)
            _log.info('Failed to react with %s on message %s: %s', pair.emoji_key, message.id, error)
            result.error = str(error)
            continue

        result.reacted = True

        try:
            await registry.register(message.id, pair.emoji, pair.role.id, guild_id=guild_id, channel_id=message.channel.id)
        except ReactionRoleException as exc:
            _log.warning('Failed to save %s on message %s: %s', pair.emoji_key, message.id, exc)
            result.error = str(exc)
            continue

        result.persisted = True

    return results


async def teardown_mapping(registry: ReactionRoleRegistry, message_id: int) -> int:
    """|coro|

    Remove every mapping on a reaction role message.

    Returns
    -------
    :class:`int`
        How many mappings were removed.
    """
    return await registry.remove_by_message(message_id)


def format_results(results: Sequence[PairResult]) -> str:
    succeeded = sum(result.ok for result in results)
    header = f'**{succeeded}/{len(results)}** reaction roles are set up.'
    if succeeded != len(results):
        header += ' The ones that failed will not hand out roles.'

    return '\n'.join([header, '', *(result.format() for result in results)])


def build_listing(embed: discord.Embed, guild_id: int, mappings: Sequence[RoleMapping]) -> discord.Embed:
    """Add one field per reaction role message to ``embed``.

    ``mappings`` must be ordered by message. Messages that would push the embed past
    Discord's field or length limits are left out and counted in the footer instead.
    """
    groups = [(message_id, list(group)) for message_id, group in itertools.groupby(mappings, key=lambda m: m.message_id)]

    # Reserve room for the longest footer this listing could need.
    budget = MAX_EMBED_LENGTH - len(LISTING_FOOTER.format(shown=len(groups), total=len(groups)))

    shown = 0
    for message_id, entries in groups:
        if len(embed.fields) >= MAX_EMBED_FIELDS:
            break

        url = f'https://discord.com/channels/{guild_id}/{entries[0].channel_id}/{message_id}'
        name = str(message_id)
        value = f'[Jump]({url})\n' + '\n'.join(f'`{mapping.emoji_key}` → {mapping.role_mention}' for mapping in entries)
        if len(embed) + len(name) + len(value) > budget:
            break

        embed.add_field(name=name, value=value, inline=False)
        shown += 1

    if shown < len(groups):
        embed.set_footer(text=LISTING_FOOTER.format(shown=shown, total=len(groups)))

    return embed
