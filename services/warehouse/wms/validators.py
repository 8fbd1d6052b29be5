"""
Business-rule validation for the Warehouse service.

Runs before any store access. Every failure raises ValidationError naming
the offending field the way the client sent it (camelCase).
"""
from typing import Iterable, List, Set
from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from .exceptions import ValidationError

ITEM_REQUIRED_FIELDS = ("name", "category", "location", "condition")
SHIPMENT_REQUIRED_FIELDS = ("type", "partner_name", "eta")
STOCKTAKE_REQUIRED_FIELDS = ("zone", "shelf", "counter")
TASK_REQUIRED_FIELDS = ("title", "due_date")


def is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def require_fields(payload: BaseModel, fields: Iterable[str]) -> None:
    """
    Check that each named field is present and not blank.

    Args:
        payload: Parsed request body
        fields: Attribute names that must be set

    Raises:
        ValidationError: naming the first missing field
    """
    for field in fields:
        if is_blank(getattr(payload, field, None)):
            raise ValidationError(to_camel(field))


def validate_path_key(path_value: str, body_value, field: str) -> None:
    """A key repeated in the body must match the one in the URL."""
    if not is_blank(body_value) and body_value != path_value:
        raise ValidationError(field, f"The {field} in the body ({body_value}) does not match the URL ({path_value}).")


def validate_shipment_lines(lines: List, known_skus: Set[str]) -> None:
    """
    Validate shipment lines against business rules.

    Each sku must name an existing item and appear once per shipment.

    Args:
        lines: Requested shipment lines
        known_skus: SKUs of the items the lines refer to that exist in the store

    Raises:
        ValidationError: naming the offending line, e.g. "items[1].sku"
    """
    seen = set()
    for index, line in enumerate(lines):
        field = f"items[{index}].sku"
        if is_blank(line.sku):
            raise ValidationError(field)
        if line.sku in seen:
            raise ValidationError(field, f"Item {line.sku} appears more than once in the shipment.")
        if line.sku not in known_skus:
            raise ValidationError(field, f"Item {line.sku} does not exist.")
        seen.add(line.sku)
