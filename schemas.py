import re
from typing import Optional

from pydantic import BaseModel, Field, constr, field_validator

# Plage des entiers SQLite (64 bits signés)
SQLITE_INT_MIN = -(2 ** 63)
SQLITE_INT_MAX = 2 ** 63 - 1

LEADING_INT = re.compile(r"\s*([+-]?\d+)")
WHOLE_INT = re.compile(r"\s*[+-]?\d+\s*")


def parse_leading_int(value):
    """Parse a form value the way browsers' parseInt does: "5abc" -> 5, "3.7" -> 3.

    Values with no leading integer are returned unchanged so the int
    field rejects them.
    """
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        match = LEADING_INT.match(value)
        if match:
            return int(match.group(1))
    return value


class ProductCreate(BaseModel):
    name: constr(min_length=1)  # Nom obligatoire et non vide
    quantity: int = Field(ge=SQLITE_INT_MIN, le=SQLITE_INT_MAX)

    @field_validator("quantity", mode="before")
    @classmethod
    def quantity_leading_int(cls, value):
        return parse_leading_int(value)

    @field_validator("quantity")
    @classmethod
    def quantity_present(cls, value: int) -> int:
        # 0 is treated as a missing quantity, like an empty form field
        if value == 0:
            raise ValueError("quantity is required")
        return value


class ProductDelete(BaseModel):
    # None: the id cannot match any row
    id: Optional[int]

    @field_validator("id", mode="before")
    @classmethod
    def id_present(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValueError("product id is required")
        if isinstance(value, str):
            value = int(value) if WHOLE_INT.fullmatch(value) else None
        if isinstance(value, int) and not SQLITE_INT_MIN <= value <= SQLITE_INT_MAX:
            return None
        return value
