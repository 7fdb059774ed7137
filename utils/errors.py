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

from typing import Tuple

from discord import app_commands

__all__: Tuple[str, ...] = (
    'ApplicationCommandException',
    'BadArgument',
)


class ApplicationCommandException(app_commands.AppCommandError):
    """A custom exception raised when an operation fails in an application command's
    callback.

    This inherits :class:`discord.AppCommandError`.
    """

    __slots__: Tuple[str, ...] = ()


class BadArgument(ApplicationCommandException):
    """An exception raised when a command argument is invalid. The message
    of this exception is shown to the invoker as is.

    This inherits :class:`ApplicationCommandException`.
    """
