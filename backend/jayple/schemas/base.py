"""
Base schemas with standardized field types for consistent API responses.

Wire names are camelCase (bookingId, cityId...); Python attributes stay
snake_case.
"""
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from pydantic_core import core_schema


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    try:
        # str() first so 0.1 becomes Decimal("0.1"), not its binary expansion
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{value!r} is not a valid amount")


class StandardizedModel(BaseModel):  # type: ignore[misc]
    """Response base: camelCase on the wire, enums as values."""

    model_config = ConfigDict(use_enum_values=True, populate_by_name=True, alias_generator=to_camel)


class StrictRequestModel(BaseModel):  # type: ignore[misc]
    """Request DTO base that forbids unexpected fields."""

    model_config = ConfigDict(
        extra="forbid",
        validate_default=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


class Money(Decimal):
    """Decimal on the inside, JSON number on the wire."""

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: Any) -> core_schema.CoreSchema:
        return core_schema.no_info_after_validator_function(
            _to_decimal,
            core_schema.union_schema(
                [
                    core_schema.int_schema(),
                    core_schema.float_schema(),
                    core_schema.str_schema(),
                    core_schema.is_instance_schema(Decimal),
                ]
            ),
            serialization=core_schema.plain_serializer_function_ser_schema(
                float,
                info_arg=False,
                return_schema=core_schema.float_schema(),
            ),
        )
