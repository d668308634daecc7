"""
Budget lifecycle rules and derived amounts.

Pure functions only: no session, no I/O. The services call these before
touching the store so the same rules apply to every caller.
"""
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional

from budgetflow.core.exceptions import ValidationError, InvalidStateError
from budgetflow.models.budget import BudgetStatus, BudgetPeriod
from budgetflow.models.timesheet import TimesheetStatus

BUDGET_TRANSITIONS = {
    BudgetStatus.DRAFT: {BudgetStatus.SUBMITTED, BudgetStatus.CANCELLED},
    BudgetStatus.SUBMITTED: {BudgetStatus.UNDER_REVIEW, BudgetStatus.CANCELLED},
    BudgetStatus.UNDER_REVIEW: {BudgetStatus.APPROVED, BudgetStatus.REJECTED, BudgetStatus.CANCELLED},
    BudgetStatus.APPROVED: {BudgetStatus.ACTIVE, BudgetStatus.CANCELLED},
    BudgetStatus.ACTIVE: {BudgetStatus.COMPLETED, BudgetStatus.CANCELLED},
    BudgetStatus.REJECTED: set(),
    BudgetStatus.COMPLETED: set(),
    BudgetStatus.CANCELLED: set(),
}

TERMINAL_STATUSES = frozenset(s for s, targets in BUDGET_TRANSITIONS.items() if not targets)

TIMESHEET_TRANSITIONS = {
    TimesheetStatus.DRAFT: {TimesheetStatus.SUBMITTED},
    TimesheetStatus.SUBMITTED: {TimesheetStatus.APPROVED, TimesheetStatus.REJECTED},
    TimesheetStatus.APPROVED: set(),
    TimesheetStatus.REJECTED: set(),
}

MAX_HOURS_PER_ENTRY = Decimal("24")

# (precision, scale) of the Numeric columns the values are stored in
MONEY_DIGITS = (18, 2)
RATE_DIGITS = (8, 2)
HOURS_DIGITS = (4, 2)


def remaining_amount(total_amount, spent_amount) -> Decimal:
    return to_decimal(total_amount) - to_decimal(spent_amount)


def total_cost(hours, hourly_rate) -> Decimal:
    return to_decimal(hours) * to_decimal(hourly_rate)


def to_decimal(value) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"'{value}' is not a valid amount", value=str(value))


def can_transition(current: BudgetStatus, target: BudgetStatus) -> bool:
    return target in BUDGET_TRANSITIONS.get(BudgetStatus(current), set())


def ensure_transition(current: BudgetStatus, target: BudgetStatus):
    if not can_transition(current, target):
        raise InvalidStateError(
            f"Budget cannot move from {BudgetStatus(current).value} to {BudgetStatus(target).value}",
            current=BudgetStatus(current).value, target=BudgetStatus(target).value)


def ensure_editable(status: BudgetStatus):
    """Budgets (and their items) may only be changed or deleted while in Draft"""
    if BudgetStatus(status) != BudgetStatus.DRAFT:
        raise InvalidStateError(
            f"Budget is {BudgetStatus(status).value}; only Draft budgets can be modified",
            current=BudgetStatus(status).value)


def ensure_timesheet_transition(current: TimesheetStatus, target: TimesheetStatus):
    if TimesheetStatus(target) not in TIMESHEET_TRANSITIONS.get(TimesheetStatus(current), set()):
        raise InvalidStateError(
            f"Timesheet entry cannot move from {TimesheetStatus(current).value} "
            f"to {TimesheetStatus(target).value}",
            current=TimesheetStatus(current).value, target=TimesheetStatus(target).value)


def parse_period(value) -> BudgetPeriod:
    if isinstance(value, BudgetPeriod):
        return value
    try:
        return BudgetPeriod(value)
    except ValueError:
        allowed = ", ".join(p.value for p in BudgetPeriod)
        raise ValidationError(f"Unknown period '{value}', expected one of: {allowed}", period=str(value))


def ensure_fits_column(value: Decimal, digits: tuple, field: str) -> Decimal:
    """
    Reject values the Numeric(precision, scale) column would round or overflow
    """
    precision, scale = digits
    if not value.is_finite():
        raise ValidationError(f"{field} must be a finite number", **{field: str(value)})
    if abs(value) >= Decimal(10) ** (precision - scale):
        raise ValidationError(f"{field} must be less than 10^{precision - scale}", **{field: str(value)})
    if value != value.quantize(Decimal(1).scaleb(-scale)):
        raise ValidationError(f"{field} allows at most {scale} decimal places", **{field: str(value)})
    return value


def validate_amount(total_amount) -> Decimal:
    amount = ensure_fits_column(to_decimal(total_amount), MONEY_DIGITS, "total_amount")
    if amount <= 0:
        raise ValidationError("Total amount must be greater than zero", total_amount=str(amount))
    return amount


def validate_dates(start_date: date, end_date: date):
    if start_date is None or end_date is None:
        raise ValidationError("Start date and end date are required")
    if end_date <= start_date:
        raise ValidationError("End date must be after start date",
                              start_date=start_date.isoformat(), end_date=end_date.isoformat())


def validate_budget_fields(total_amount, start_date: date, end_date: date, period) -> tuple:
    """Returns the normalised (amount, period) pair or raises ValidationError"""
    amount = validate_amount(total_amount)
    validate_dates(start_date, end_date)
    return amount, parse_period(period)


def validate_item_amount(amount) -> Decimal:
    value = ensure_fits_column(to_decimal(amount), MONEY_DIGITS, "amount")
    if value < 0:
        raise ValidationError("Item amount cannot be negative", amount=str(value))
    return value


def validate_hours(hours, hourly_rate: Optional[Decimal] = None) -> Decimal:
    value = ensure_fits_column(to_decimal(hours), HOURS_DIGITS, "hours")
    if value <= 0 or value > MAX_HOURS_PER_ENTRY:
        raise ValidationError(f"Hours must be greater than 0 and at most {MAX_HOURS_PER_ENTRY}",
                              hours=str(value))
    if hourly_rate is not None:
        validate_rate(hourly_rate)
    return value


def validate_rate(hourly_rate) -> Decimal:
    rate = ensure_fits_column(to_decimal(hourly_rate), RATE_DIGITS, "hourly_rate")
    if rate < 0:
        raise ValidationError("Hourly rate cannot be negative", hourly_rate=str(rate))
    return rate
