"""Calendar arithmetic and recurrence rules for recurring orders."""

from fleetplan.scheduling.calendar_math import (
    add_months,
    clamp_day_of_month,
    day_of_week,
    days_in_month,
    days_until_weekday,
)
from fleetplan.scheduling.recurrence import (
    RecurrenceRule,
    advance_cursor,
    align_to_rule,
    first_occurrence_after,
    next_occurrence,
    validate_rule,
)

__all__ = [
    "RecurrenceRule",
    "add_months",
    "advance_cursor",
    "align_to_rule",
    "clamp_day_of_month",
    "day_of_week",
    "days_in_month",
    "days_until_weekday",
    "first_occurrence_after",
    "next_occurrence",
    "validate_rule",
]
