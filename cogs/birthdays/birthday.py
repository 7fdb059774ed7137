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

import calendar
import datetime
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Tuple, Type

from typing_extensions import Self

from utils import BadArgument

if TYPE_CHECKING:
    from bot import BeaconBot

__all__: Tuple[str, ...] = ('Birthday', 'SCHEMA', 'parse_birthday', 'next_occurrence', 'upcoming')

# Birthdays are stored without a year. A leap year lets 29 February through.
STORAGE_YEAR: int = 2000

SCHEMA: str = '''
CREATE SCHEMA IF NOT EXISTS birthdays;
CREATE TABLE IF NOT EXISTS birthdays.birthdays (
    user_id BIGINT PRIMARY KEY,
    birthday DATE NOT NULL
);
'''


def parse_birthday(month: int, day: int) -> datetime.date:
    """Validate a month and day and turn them into the stored date.

    Raises
    ------
    BadArgument
        The month or day is out of range, e.g. 31 April.
    """
    if not 1 <= month <= 12:
        raise BadArgument(f'{month} is not a month, pick a number from 1 to 12.')

    try:
        return datetime.date(STORAGE_YEAR, month, day)
    except ValueError:
        raise BadArgument(f'{calendar.month_name[month]} doesn\'t have a day {day}.') from None


def next_occurrence(birthday: datetime.date, today: datetime.date) -> datetime.date:
    """The next date, today included, the birthday is celebrated on. Outside of
    leap years 29 February is celebrated on 28 February.
    """
    for year in (today.year, today.year + 1):
        day = birthday.day
        if birthday.month == 2 and day == 29 and not calendar.isleap(year):
            day = 28

        candidate = datetime.date(year, birthday.month, day)
        if candidate >= today:
            return candidate

    raise AssertionError('unreachable')


class Birthday:
    """A member's stored birthday."""

    __slots__: Tuple[str, ...] = ('bot', 'user_id', 'date')

    def __init__(self, *, data: Dict[str, Any], bot: BeaconBot) -> None:
        self.bot: BeaconBot = bot
        self.user_id: int = data['user_id']
        self.date: datetime.date = data['birthday']

    def __repr__(self) -> str:
        return f'<Birthday user_id={self.user_id} date={self.date!r}>'

    @property
    def display(self) -> str:
        return f'{calendar.month_name[self.date.month]} {self.date.day}'

    @classmethod
    async def set(cls: Type[Self], user_id: int, date: datetime.date, /, *, bot: BeaconBot) -> Self:
        async with bot.safe_connection() as connection:
            record = await connection.fetchrow(
                '''
                INSERT INTO birthdays.birthdays (user_id, birthday)
                VALUES ($1, $2)
                ON CONFLICT (user_id)
                DO UPDATE SET birthday = EXCLUDED.birthday
                RETURNING *
                ''',
                user_id,
                date,
            )

        assert record is not None
        return cls(data=dict(record), bot=bot)

    @classmethod
    async def fetch(cls: Type[Self], user_id: int, /, *, bot: BeaconBot) -> Optional[Self]:
        async with bot.safe_connection() as connection:
            record = await connection.fetchrow('SELECT * FROM birthdays.birthdays WHERE user_id = $1', user_id)

        if not record:
            return None

        return cls(data=dict(record), bot=bot)

    @classmethod
    async def fetch_many(cls: Type[Self], user_ids: Iterable[int], /, *, bot: BeaconBot) -> List[Self]:
        async with bot.safe_connection() as connection:
            records = await connection.fetch(
                'SELECT * FROM birthdays.birthdays WHERE user_id = ANY($1::BIGINT[])', list(user_ids)
            )

        return [cls(data=dict(record), bot=bot) for record in records]

    async def delete(self) -> None:
        async with self.bot.safe_connection() as connection:
            await connection.execute('DELETE FROM birthdays.birthdays WHERE user_id = $1', self.user_id)


def upcoming(birthdays: Iterable[Birthday], today: datetime.date, *, limit: int = 10) -> List[Tuple[datetime.date, Birthday]]:
    """Sort birthdays by how soon they come up, today first."""
    dated = [(next_occurrence(birthday.date, today), birthday) for birthday in birthdays]
    dated.sort(key=lambda item: (item[0], item[1].user_id))
    return dated[:limit]
