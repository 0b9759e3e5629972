"""
Base schemas with standardized field types for consistent API responses.
"""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic_core import core_schema


class StandardizedModel(BaseModel):
    """Base model with standardized JSON encoding"""

    model_config = ConfigDict(use_enum_values=True, populate_by_name=True, from_attributes=True)


class StrictRequestModel(BaseModel):
    """Request DTO base that always forbids unexpected fields."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True, use_enum_values=True)


class Money(Decimal):
    """Money field that always serializes as a two-decimal string"""

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: Any) -> core_schema.CoreSchema:
        def validate_money(value: Any) -> Decimal:
            if isinstance(value, Decimal):
                amount = value
            elif isinstance(value, (int, float, str)):
                amount = Decimal(str(value))
            else:
                raise ValueError(f"Cannot convert {type(value)} to Money")
            if amount < 0:
                raise ValueError("Amount cannot be negative")
            return amount.quantize(Decimal("0.01"))

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
                lambda v: f"{v:.2f}",
                info_arg=False,
                return_schema=core_schema.str_schema(),
            ),
        )
