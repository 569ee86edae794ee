"""Base Pydantic model for catalog entities."""

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

TWO_PLACES = Decimal("0.01")


class CatalogModel(BaseModel):
    """Base model with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        validate_assignment=True,
    )


def to_percentage(value: Any) -> Decimal:
    """Coerce a share value to a two-decimal ``Decimal``; blanks become zero."""
    if value is None or value == "":
        return Decimal("0.00")
    return Decimal(str(value)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def normalize_party_number(value: Any) -> Optional[str]:
    """
    Canonical interested-party number.

    Numeric identifiers lose their zero padding so that ``000012345`` and
    ``12345`` address the same shareholder; alphanumeric ones are upper-cased.
    """
    if value is None:
        return None
    text = str(value).strip().upper()
    if not text:
        return None
    if text.isdigit():
        return str(int(text)) if int(text) else None
    return text
