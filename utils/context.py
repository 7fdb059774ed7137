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

from typing import TYPE_CHECKING, Optional, Tuple

from discord.ext import commands

if TYPE_CHECKING:
    from bot import BeaconBot

__all__: Tuple[str, ...] = ('Context', 'tick')


TICKS = {True: '✅', False: '❌', None: '❔'}


def tick(status: Optional[bool], label: Optional[str] = None) -> str:
    """A status emoji, followed by ``label`` when one is given."""
    emoji = TICKS[status]
    return f'{emoji}: {label}' if label is not None else emoji


class Context(commands.Context['BeaconBot']):
    """The prefix command context. Only jishaku uses prefix commands."""
