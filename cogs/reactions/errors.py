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

from typing import Optional, Tuple

from utils import BadArgument

__all__: Tuple[str, ...] = (
    'ReactionRoleException',
    'ValidationError',
    'DuplicateMappingError',
    'StoreError',
    'TransientStoreError',
    'PlatformError',
)


class ReactionRoleException(Exception):
    """The base exception all reaction role exceptions inherit from."""


class ValidationError(BadArgument, ReactionRoleException):
    """Raised when the input of a reaction role command is malformed, such as an
    emoji that can not be parsed or a role that can not be resolved.

    The message is shown to the invoker as is.
    """


class DuplicateMappingError(ReactionRoleException):
    """Raised when an emoji on a message already grants a role.

    Attributes
    ----------
    message_id: :class:`int`
        The ID of the message.
    emoji_key: :class:`str`
        The canonical emoji key that is already mapped.
    existing_role_id: Optional[:class:`int`]
        The role the emoji already grants, if it could be read back.
    """

    def __init__(self, message_id: int, emoji_key: str, existing_role_id: Optional[int]) -> None:
        self.message_id: int = message_id
        self.emoji_key: str = emoji_key
        self.existing_role_id: Optional[int] = existing_role_id

        if existing_role_id is not None:
            fmt = f'{emoji_key} already grants <@&{existing_role_id}> on this message.'
        else:
            fmt = f'{emoji_key} is already mapped on this message.'

        super().__init__(fmt)


class StoreError(ReactionRoleException):
    """Raised when the database rejected a reaction role query."""


class TransientStoreError(StoreError):
    """Raised when the database timed out or the connection to it failed. Unlike a
    plain :class:`StoreError` this is worth retrying.
    """


class PlatformError(ReactionRoleException):
    """Wraps a failed Discord API call made while setting up or using a reaction role.

    Attributes
    ----------
    stage: :class:`str`
        What was being done when the call failed, e.g. ``react``.
    original: :class:`discord.HTTPException`
        The original exception.
    """

    def __init__(self, stage: str, original: Exception) -> None:
        self.stage: str = stage
        self.original: Exception = original
        super().__init__(f'Failed to {stage}: {getattr(original, "text", None) or original}')
