# src/weekly_planner/reminders/expression.py

"""
Cron-style schedule expressions.

Grammar: five fields (minute hour day-of-month month day-of-week) or six
fields with a leading seconds column (second minute hour day-of-month month
day-of-week).

parse_schedule() returns either a ParsedSchedule or an InvalidExpressionError
instead of raising, so callers have to look at the result. Occurrence math is
done by croniter on naive local datetimes: reminders follow the wall clock the
user sees, DST quirks included.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime

from croniter import CroniterBadDateError, croniter

_STEP_ZERO_RE = re.compile(r"/0+(?:,|$)")

# Anchor used only to let croniter validate field values and find a first
# occurrence (a leap year, so "29 Feb" counts as recurring).
_VALIDATION_ANCHOR = datetime(2000, 1, 1)


class InvalidExpressionError(ValueError):
    """A schedule expression that does not describe a recurring pattern."""

    def __init__(self, expression: str, reason: str) -> None:
        super().__init__(f"invalid schedule {expression!r}: {reason}")
        self.expression = expression
        self.reason = reason


@dataclass(slots=True, frozen=True)
class ParsedSchedule:
    expression: str
    fields: tuple[str, ...]
    has_seconds: bool

    @property
    def croniter_expression(self) -> str:
        # croniter expects seconds as the trailing sixth column.
        if self.has_seconds:
            return " ".join(self.fields[1:] + self.fields[:1])
        return " ".join(self.fields)

    def __str__(self) -> str:
        return " ".join(self.fields)


def parse_schedule(expression: str | None) -> ParsedSchedule | InvalidExpressionError:
    """
    Validate and normalize a cron expression.

    Never raises for bad input; the error is returned so that batch callers
    (reconciliation) can tell "skipped, invalid" apart from "scheduled".
    """
    raw = expression if isinstance(expression, str) else ""
    fields = tuple(raw.split())

    if not fields:
        return InvalidExpressionError(raw, "expression is empty")

    if len(fields) not in (5, 6):
        return InvalidExpressionError(raw, f"expected 5 or 6 fields, got {len(fields)}")

    for field in fields:
        if _STEP_ZERO_RE.search(field):
            return InvalidExpressionError(raw, f"step must be positive in {field!r}")

    parsed = ParsedSchedule(expression=raw, fields=fields, has_seconds=len(fields) == 6)

    try:
        # Syntactically fine but impossible dates ("30 Feb") never fire.
        croniter(parsed.croniter_expression, _VALIDATION_ANCHOR).get_next(datetime)
    except CroniterBadDateError:
        return InvalidExpressionError(raw, "schedule never occurs")
    except (ValueError, KeyError, IndexError, TypeError) as e:
        # croniter's own errors all derive from ValueError; the rest cover
        # malformed ranges it does not wrap.
        reason = str(e) or e.__class__.__name__
        return InvalidExpressionError(raw, reason)

    return parsed


def next_after(parsed: ParsedSchedule, after: datetime) -> datetime:
    """Smallest occurrence strictly later than `after`."""
    it = croniter(parsed.croniter_expression, after)
    nxt = it.get_next(datetime)
    while nxt <= after:
        nxt = it.get_next(datetime)
    return nxt


def next_n(parsed: ParsedSchedule, after: datetime, n: int) -> list[datetime]:
    """
    The next `n` occurrences after `after`, strictly increasing.

    Diagnostics only (the /crontest command); the trigger loop uses next_after().
    """
    out: list[datetime] = []
    cursor = after
    for _ in range(max(0, int(n))):
        cursor = next_after(parsed, cursor)
        out.append(cursor)
    return out
