from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from dateutil import parser
from dateutil.relativedelta import relativedelta

from .errors import ConfigError


@dataclass(frozen=True)
class DateRange:
    """Sent-date bounds of a purge.

    `after` is inclusive (IMAP SENTSINCE). `before` is the last second of the
    --before-date day, the day itself is excluded by SENTBEFORE.
    """
    after: date
    before: datetime

    def criteria(self) -> list:
        "IMAP search criteria, skipping messages already flagged for deletion."
        return ["UNDELETED", "SENTSINCE", self.after, "SENTBEFORE", self.before.date()]

    def __str__(self) -> str:
        return "sent since %s and before %s" % (
            self.after.strftime("%d-%b-%Y"),
            self.before.strftime("%d-%b-%Y"),
        )


def end_of_day(day: date) -> datetime:
    return datetime(day.year, day.month, day.day, 23, 59, 59)


def parse_date(value: str) -> date:
    try:
        return parser.parse(value).date()
    except (ValueError, OverflowError) as e:
        raise ConfigError(f"invalid date {value!r}") from e


def make_range(
    before: date, after: Optional[date] = None, now: Optional[datetime] = None
) -> DateRange:
    "Build a DateRange, defaulting `after` to one year before `before`."
    if before is None:
        raise ConfigError("a before date is required")
    now = now or datetime.now()
    if after is None:
        after = before - relativedelta(years=1)
    end = end_of_day(before)
    if end >= now:
        raise ConfigError(f"before date {before.isoformat()} is not in the past")
    if after >= before:
        raise ConfigError(
            f"after date {after.isoformat()} must be earlier than before date {before.isoformat()}"
        )
    return DateRange(after=after, before=end)
