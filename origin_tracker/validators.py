"""
Input validation functions for admin and API parameters.

All validators raise ValidationError on invalid input.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional, Tuple

from origin_tracker.exceptions import ValidationError

VALID_PERIODS = {"today", "yesterday", "week", "last_week", "month", "last_month"}

# Maximum allowed values
MAX_RANGE_DAYS = 366
MAX_FILTER_VALUES = 100
MAX_FILTER_VALUE_LENGTH = 255


def validate_date_string(
    value: str,
    field: str = "date",
    format: str = "%Y-%m-%d"
) -> date:
    """
    Validate and parse a date string.

    Args:
        value: Date string to validate
        field: Field name for error messages
        format: Expected date format (default: YYYY-MM-DD)

    Returns:
        Parsed date object

    Raises:
        ValidationError: If date is invalid or in wrong format
    """
    if not value:
        raise ValidationError(field, "Date is required", value)

    if not isinstance(value, str):
        raise ValidationError(field, "Must be a string", value)

    try:
        return datetime.strptime(value, format).date()
    except ValueError:
        raise ValidationError(
            field,
            f"Invalid date format. Expected {format}",
            value
        )


def validate_date_range(
    start_date: str,
    end_date: str,
    max_days: int = MAX_RANGE_DAYS
) -> Tuple[date, date]:
    """
    Validate a report date range.

    Returns:
        Tuple of (start_date, end_date) as date objects

    Raises:
        ValidationError: If dates are invalid or range is too large
    """
    start = validate_date_string(start_date, "start_date")
    end = validate_date_string(end_date, "end_date")

    if start > end:
        raise ValidationError(
            "date_range",
            "Start date must be before or equal to end date",
            f"{start_date} to {end_date}"
        )

    days_diff = (end - start).days
    if days_diff > max_days:
        raise ValidationError(
            "date_range",
            f"Date range cannot exceed {max_days} days",
            f"{days_diff} days"
        )

    return start, end


def validate_period(value: Optional[str], field: str = "period") -> Optional[str]:
    """Validate a period shortcut; None means explicit dates or the default window."""
    if value is None:
        return None
    if value not in VALID_PERIODS:
        raise ValidationError(field, f"Must be one of {sorted(VALID_PERIODS)}", value)
    return value


def validate_date_override(value: Optional[str], field: str = "date_override") -> Optional[date]:
    """
    Validate the manual date override.

    Empty or whitespace-only input means "clear the override".

    Returns:
        Parsed date, or None when the override should be removed
    """
    if value is None or not str(value).strip():
        return None
    return validate_date_string(str(value).strip(), field)


def validate_ad_spend(value, field: str = "ad_spend") -> Decimal:
    """
    Validate a manually entered ad spend amount.

    Raises:
        ValidationError: If not a finite number >= 0
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(field, "Amount is required", value)

    if isinstance(value, bool):
        raise ValidationError(field, "Must be a number", value)

    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(field, "Must be a number", value)

    if not amount.is_finite():
        raise ValidationError(field, "Must be a finite number", value)

    if amount < 0:
        raise ValidationError(field, "Must be greater than or equal to 0", value)

    return amount


def validate_date_range_key(value: Optional[str], field: str = "date_range_key") -> str:
    """
    Validate an ad spend key of the form `YYYY-MM-DD_to_YYYY-MM-DD`.

    Raises:
        ValidationError: If the key is empty or malformed
    """
    if not value or not str(value).strip():
        raise ValidationError(field, "Date range key is required", value)

    key = str(value).strip()
    parts = key.split("_to_")
    if len(parts) != 2:
        raise ValidationError(field, "Expected format YYYY-MM-DD_to_YYYY-MM-DD", value)

    start = validate_date_string(parts[0], f"{field}.start")
    end = validate_date_string(parts[1], f"{field}.end")
    if start > end:
        raise ValidationError(field, "Start date must be before or equal to end date", value)
    return key


def validate_filter_values(values: Optional[Iterable[str]], field: str) -> List[str]:
    """
    Clean a per-dimension filter allow-list.

    Blank entries are dropped and duplicates removed, keeping order.
    """
    if values is None:
        return []

    if isinstance(values, str):
        raise ValidationError(field, "Must be a list of strings", values)

    cleaned: List[str] = []
    for item in values:
        if not isinstance(item, str):
            raise ValidationError(field, "Must be a list of strings", item)
        item = item.strip()
        if not item or item in cleaned:
            continue
        if len(item) > MAX_FILTER_VALUE_LENGTH:
            raise ValidationError(
                field,
                f"Values cannot exceed {MAX_FILTER_VALUE_LENGTH} characters",
                f"{len(item)} characters"
            )
        cleaned.append(item)

    if len(cleaned) > MAX_FILTER_VALUES:
        raise ValidationError(field, f"Cannot select more than {MAX_FILTER_VALUES} values", len(cleaned))

    return cleaned
