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

from typing import Any, Optional, Protocol, Tuple, Union

import discord
from emoji import is_emoji

from .errors import ValidationError

__all__: Tuple[str, ...] = ('canonicalize', 'is_complete', 'parse_emoji')

# Discord reports some emojis with the emoji presentation selector and some without,
# depending on where they were picked from.
VARIATION_SELECTOR: str = '\ufe0f'


class EmojiLike(Protocol):
    name: Optional[str]
    id: Optional[int]


EmojiReference = Union[str, discord.PartialEmoji, discord.Emoji, EmojiLike]


def _from_parts(name: Optional[str], emoji_id: Optional[Any]) -> str:
    if not name:
        raise ValidationError('That emoji is missing its name, I can\'t use it.')

    if emoji_id is None:
        return name.replace(VARIATION_SELECTOR, '')

    return f'{name}:{emoji_id}'


def is_complete(emoji: EmojiReference) -> bool:
    """Whether an emoji reference carries enough detail to be canonicalized.

    Gateway payloads for custom emojis sometimes only carry the ID.
    """
    if isinstance(emoji, str):
        return bool(emoji.strip())

    return bool(emoji.name)


def canonicalize(emoji: EmojiReference) -> str:
    """Reduce an emoji reference to the key it is stored and looked up under.

    Unicode emojis are keyed by their literal grapheme, custom emojis by
    ``name:id``. Strings accept every form a member can type or paste
    (``✅``, ``<:name:id>``, ``<a:name:id>``, ``name:id``), so the
    output of this function is itself a valid input and maps to itself.

    Parameters
    ----------
    emoji: Union[:class:`str`, :class:`discord.PartialEmoji`, :class:`discord.Emoji`]
        The emoji to canonicalize.

    Returns
    -------
    :class:`str`
        The canonical emoji key.

    Raises
    ------
    ValidationError
        The emoji is empty or a custom emoji without a name.
    """
    if isinstance(emoji, str):
        value = emoji.strip()
        if not value:
            raise ValidationError('You need to give me an emoji.')

        emoji = discord.PartialEmoji.from_str(value)

    return _from_parts(emoji.name, emoji.id)


def parse_emoji(text: str) -> discord.PartialEmoji:
    """Parse an emoji typed into a command.

    Custom emojis are accepted in any form :func:`canonicalize` accepts. Anything
    else has to be exactly one unicode emoji.

    Raises
    ------
    ValidationError
        The text is not an emoji.
    """
    value = text.strip()
    if not value:
        raise ValidationError('You need to give me an emoji.')

    parsed = discord.PartialEmoji.from_str(value)
    if parsed.id is not None:
        return parsed

    if not (is_emoji(value) or is_emoji(value + VARIATION_SELECTOR)):
        raise ValidationError(f'`{value}` isn\'t an emoji. Use a unicode emoji or a custom emoji like `<:name:id>`.')

    return parsed
