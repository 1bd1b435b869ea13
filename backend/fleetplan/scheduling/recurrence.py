"""Recurrence calculator.

Turns a rule (frequency plus optional weekday / day-of-month anchor) and a
reference date into the next occurrence. The base step for the frequency is
applied first, the anchor afterwards and only ever forward, so a result is
never earlier than ``reference + base step``.

The calculator is stateless and relative to the reference date. Guaranteeing
that a cursor lands in the future is the caller's job, see
``first_occurrence_after`` and ``advance_cursor``.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Self

from fleetplan.models.enums import CursorPolicy, RecurringFrequency
from fleetplan.scheduling.calendar_math import add_days, add_months, clamp_day_of_month, days_until_weekday
from fleetplan.services.recurring.exceptions import InvalidRule

WEEKDAY_FREQUENCIES = frozenset({RecurringFrequency.WEEKLY, RecurringFrequency.BIWEEKLY})

BASE_STEP_DAYS = {
    RecurringFrequency.DAILY: 1,
    RecurringFrequency.WEEKLY: 7,
    RecurringFrequency.BIWEEKLY: 14,
}


@dataclass(frozen=True)
class RecurrenceRule:
    """Validated cadence of a template."""

    frequency: RecurringFrequency
    day_of_week: int | None = None
    day_of_month: int | None = None

    @classmethod
    def of(cls, frequency: RecurringFrequency, day_of_week: int | None, day_of_month: int | None) -> Self:
        """Build a rule, raising InvalidRule when the anchors don't fit the frequency."""
        frequency = RecurringFrequency(frequency)
        validate_rule(frequency, day_of_week, day_of_month)
        return cls(frequency=frequency, day_of_week=day_of_week, day_of_month=day_of_month)


def validate_rule(frequency: RecurringFrequency, day_of_week: int | None, day_of_month: int | None) -> None:
    """Check that anchors are present exactly when the frequency needs them.

    Raises:
        InvalidRule: on a missing, superfluous or out-of-range anchor
    """
    frequency = RecurringFrequency(frequency)
    if frequency in WEEKDAY_FREQUENCIES:
        if day_of_week is None:
            raise InvalidRule(f"day_of_week is required for {frequency.value} frequency")
        if not 0 <= day_of_week <= 6:
            raise InvalidRule(f"day_of_week must be between 0 and 6, got {day_of_week}")
    elif day_of_week is not None:
        raise InvalidRule(f"day_of_week is not allowed for {frequency.value} frequency")

    if frequency == RecurringFrequency.MONTHLY:
        if day_of_month is None:
            raise InvalidRule("day_of_month is required for MONTHLY frequency")
        if not 1 <= day_of_month <= 31:
            raise InvalidRule(f"day_of_month must be between 1 and 31, got {day_of_month}")
    elif day_of_month is not None:
        raise InvalidRule(f"day_of_month is not allowed for {frequency.value} frequency")


def next_occurrence(
    reference: datetime,
    frequency: RecurringFrequency,
    day_of_week: int | None = None,
    day_of_month: int | None = None,
) -> datetime:
    """Next occurrence strictly after ``reference``.

    The rule is assumed to be validated already (see validate_rule).
    """
    if frequency == RecurringFrequency.MONTHLY:
        result = add_months(reference, 1)
        if day_of_month is not None:
            result = clamp_day_of_month(result, day_of_month)
        return result

    result = add_days(reference, BASE_STEP_DAYS[frequency])
    if frequency in WEEKDAY_FREQUENCIES and day_of_week is not None:
        result = add_days(result, days_until_weekday(result, day_of_week))
    return result


def align_to_rule(value: datetime, rule: RecurrenceRule) -> datetime:
    """Move ``value`` forward (or keep it) so it satisfies the rule's anchor."""
    if rule.frequency in WEEKDAY_FREQUENCIES and rule.day_of_week is not None:
        return add_days(value, days_until_weekday(value, rule.day_of_week))

    if rule.frequency == RecurringFrequency.MONTHLY and rule.day_of_month is not None:
        candidate = clamp_day_of_month(value, rule.day_of_month)
        if candidate < value:
            # Anchor day already passed this month
            candidate = clamp_day_of_month(add_months(value, 1), rule.day_of_month)
        return candidate

    return value


def first_occurrence_after(start: datetime, rule: RecurrenceRule, now: datetime) -> datetime:
    """First occurrence of the rule on or after ``start`` that is strictly later than ``now``."""
    candidate = align_to_rule(start, rule)
    while candidate <= now:
        candidate = next_occurrence(candidate, rule.frequency, rule.day_of_week, rule.day_of_month)
    return candidate


def advance_cursor(
    current: datetime,
    rule: RecurrenceRule,
    now: datetime,
    policy: CursorPolicy = CursorPolicy.FUTURE_DATED,
) -> datetime:
    """New cursor after generating for ``current``.

    Always strictly later than ``current``. With FUTURE_DATED the cursor also
    skips every occurrence that is not strictly later than ``now``.
    """
    result = next_occurrence(current, rule.frequency, rule.day_of_week, rule.day_of_month)
    if policy == CursorPolicy.FUTURE_DATED:
        while result <= now:
            result = next_occurrence(result, rule.frequency, rule.day_of_week, rule.day_of_month)
    return result
