"""Input validation for records entering the local store."""

from __future__ import annotations

from datetime import date

from pantry_sync.errors import ValidationError


def parse_iso_date(value: str) -> date | None:
    """Parse a YYYY-MM-DD string. Returns None if it is not a valid date."""
    try:
        return date.fromisoformat(value.strip())
    except (ValueError, AttributeError):
        return None


def validate_record_input(
    name: str,
    quantity: str,
    category: str,
    expiry_date: str,
    owner_id: str,
) -> None:
    """
    Reject incomplete record input.

    Args:
        name: Product name
        quantity: Quantity text
        category: Category label
        expiry_date: Expiry date as YYYY-MM-DD
        owner_id: Owning user identity

    Raises:
        ValidationError: If any field is blank or the expiry date is malformed
    """
    values = {
        "name": name,
        "quantity": quantity,
        "category": category,
        "expiry_date": expiry_date,
        "owner_id": owner_id,
    }
    missing = [key for key, value in values.items() if not value or not value.strip()]
    if missing:
        raise ValidationError(f"All fields are required, missing: {', '.join(missing)}", missing)

    if parse_iso_date(expiry_date) is None:
        raise ValidationError(
            f"expiry_date must be YYYY-MM-DD, got {expiry_date!r}", ["expiry_date"]
        )


def validate_changes(changes: dict[str, str]) -> None:
    """Validate a partial edit: provided fields must be non-blank, dates well formed."""
    blank = [key for key, value in changes.items() if not value or not value.strip()]
    if blank:
        raise ValidationError(f"Fields cannot be blank: {', '.join(blank)}", blank)
    if "expiry_date" in changes and parse_iso_date(changes["expiry_date"]) is None:
        raise ValidationError(
            f"expiry_date must be YYYY-MM-DD, got {changes['expiry_date']!r}", ["expiry_date"]
        )
