"""
Base schemas with standardized field types for consistent API responses.

Monetary values are surfaced in major currency units as two-decimal strings;
times are ``HH:MM`` and dates ``YYYY-MM-DD``.
"""
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic_core import core_schema

from ..core.exceptions import ValidationException
from ..utils.time_utils import is_valid_date, is_valid_time, normalize_time_format


class StandardizedModel(BaseModel):
    """Response base: reads ORM attributes and emits enum values."""

    model_config = ConfigDict(use_enum_values=True, populate_by_name=True, from_attributes=True)


class StrictRequestModel(BaseModel):
    """Request DTO base that always forbids unexpected fields."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


class Money(Decimal):
    """Money field that always serializes as a two-decimal string"""

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: Any) -> core_schema.CoreSchema:
        def validate_money(value: Any) -> Decimal:
            try:
                if isinstance(value, Decimal):
                    return value
                return Decimal(str(value))
            except InvalidOperation:
                raise ValueError(f"Cannot convert {value!r} to Money")

        def serialize_money(value: Decimal) -> str:
            return str(Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))

        return core_schema.no_info_after_validator_function(
            validate_money,
            core_schema.union_schema(
                [
                    core_schema.int_schema(),
                    core_schema.float_schema(),
                    core_schema.str_schema(),
                    core_schema.is_instance_schema(Decimal),
                ]
            ),
            serialization=core_schema.plain_serializer_function_ser_schema(
                serialize_money,
                info_arg=False,
                return_schema=core_schema.str_schema(),
            ),
        )


def parse_time_field(value: object, field_name: str) -> str:
    """Accept ``H:MM`` or ``HH:MM`` and return the padded 24-hour form."""
    if not isinstance(value, str):
        raise ValueError(f"{field_name} must be in 24-hour format (HH:MM)")
    try:
        normalized = normalize_time_format(value)
    except ValidationException:
        raise ValueError(f"{field_name} must be in 24-hour format (HH:MM)")
    if not is_valid_time(normalized):
        raise ValueError(f"{field_name} must be in 24-hour format (HH:MM)")
    return normalized


def parse_date_field(value: object, field_name: str) -> object:
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not is_valid_date(value.strip()):
        raise ValueError(f"{field_name} must be in format YYYY-MM-DD")
    return value.strip()
