"""Recurring order domain exceptions."""

from fleetplan.services.exceptions import ConflictError, NotFoundError, ValidationError


class RecurringOrderNotFound(NotFoundError):
    """Recurring order template not found for the tenant."""

    pass


class InvalidRule(ValidationError):
    """Frequency and day-of-week/day-of-month anchors do not fit together."""

    pass


class TemplateInactive(ValidationError):
    """Template was deactivated and cannot generate orders."""

    pass


class TemplateExpired(ValidationError):
    """Template end date has passed."""

    pass


class TemplateAdvanceConflict(ConflictError):
    """Template cursor was advanced by another generation in the meantime."""

    def __init__(self, template_id: str, expected_counter: int):
        self.template_id = template_id
        self.expected_counter = expected_counter
        super().__init__(f"Template {template_id} was advanced concurrently (expected counter {expected_counter})")


class TemplateNotDue(ValidationError):
    """Template's next occurrence is still in the future."""

    pass
