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

import os
from typing import Iterable, List, Optional, Tuple

from .cog import *
from .context import *
from .error_handler import *
from .errors import *

__all__: Tuple[str, ...] = (
    'RUNNING_DEVELOPMENT',
    'BYPASS_SETUP_HOOK',
    'DATABASE_SSL',
    'SYNC_GUILD_ID',
    'parse_initial_extensions',
    'parse_message_id',
)


def _parse_environ_boolean(key: str, *, default: bool = False) -> bool:
    value = os.environ.get(key)
    if value is None:
        return default

    return value.strip().lower() in ('true', '1', 'yes')


def _parse_environ_int(key: str) -> Optional[int]:
    value = os.environ.get(key, '').strip()
    return int(value) if value.isdigit() else None


def _parse_environ_list(key: str) -> List[str]:
    return [item.strip() for item in os.environ.get(key, '').split(',') if item.strip()]


RUNNING_DEVELOPMENT: bool = _parse_environ_boolean('RUN_DEVELOPMENT')
BYPASS_SETUP_HOOK: bool = _parse_environ_boolean('BYPASS_SETUP_HOOK')
USE_CUSTOM_INITIAL_EXTENSIONS: bool = _parse_environ_boolean('USE_CUSTOM_INITIAL_EXTENSIONS')
DATABASE_SSL: bool = _parse_environ_boolean('DATABASE_SSL', default=True)

# When set, application commands are synced to this guild only, which is instant
# compared to a global sync.
SYNC_GUILD_ID: Optional[int] = _parse_environ_int('SYNC_GUILD_ID')

INITIAL_EXTENSIONS: List[str] = _parse_environ_list('INITIAL_EXTENSIONS')
IGNORE_EXTENSIONS: List[str] = _parse_environ_list('IGNORE_EXTENSIONS')


def parse_initial_extensions(extensions: Iterable[str]) -> Iterable[str]:
    """The extensions to load on startup. Outside of development this is ``extensions``
    unchanged. In development ``INITIAL_EXTENSIONS`` can replace the list, when
    ``USE_CUSTOM_INITIAL_EXTENSIONS`` is set, and ``IGNORE_EXTENSIONS`` can skip entries.
    """
    if not RUNNING_DEVELOPMENT:
        return extensions

    if USE_CUSTOM_INITIAL_EXTENSIONS:
        extensions = INITIAL_EXTENSIONS

    return tuple(extension for extension in extensions if extension not in IGNORE_EXTENSIONS)



def parse_message_id(value: str) -> int:
    """Parse a message ID given to a slash command as a string, since
    snowflakes don't fit the integer option type.

    Raises
    ------
    BadArgument
        The value is not a snowflake.
    """
    stripped = value.strip()
    # int() accepts every Unicode decimal digit but not digits like superscripts.
    if not stripped.isdecimal() or not 0 < int(stripped) < 2**63:
        raise BadArgument(f'`{value}` is not a message ID.')

    return int(stripped)
