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

import asyncio
import logging
import os

import aiohttp
import asyncpg
import discord
import dotenv

# The environment flags in utils are read on import.
dotenv.load_dotenv()

from bot import BeaconBot  # noqa: E402
from utils import RUNNING_DEVELOPMENT  # noqa: E402

_log = logging.getLogger('beacon')

REQUIRED_ENVIRONMENT = ('DISCORD_TOKEN', 'DATABASE_URL')


def _configure_jishaku() -> None:
    os.environ.setdefault('JISHAKU_NO_UNDERSCORE', 'true')
    os.environ.setdefault('JISHAKU_NO_DM_TRACEBACK', 'true')
    os.environ.setdefault('JISHAKU_RETAIN', 'true')


async def main() -> None:
    discord.utils.setup_logging(level=logging.DEBUG if RUNNING_DEVELOPMENT else logging.INFO)

    missing = [name for name in REQUIRED_ENVIRONMENT if not os.environ.get(name)]
    if missing:
        return _log.error('Missing required environment variables: %s', ', '.join(missing))

    try:
        pool = await BeaconBot.setup_pool(uri=os.environ['DATABASE_URL'])
    except (OSError, asyncpg.PostgresError) as exc:
        return _log.error('Could not connect to Postgres.', exc_info=exc)

    async with aiohttp.ClientSession() as session, pool:
        bot = BeaconBot(loop=asyncio.get_running_loop(), session=session, pool=pool)
        async with bot:
            try:
                await bot.start(os.environ['DISCORD_TOKEN'])
            except discord.LoginFailure as exc:
                _log.error('Discord rejected the token.', exc_info=exc)


if __name__ == '__main__':
    _configure_jishaku()
    asyncio.run(main())
