from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, validator


class OrderLineCreate(BaseModel):
    # цена и количество приходят из UI как есть: строка, число или ничего
    id: Optional[Union[int, str]] = None
    name: Optional[str] = None
    price: Optional[Any] = None
    qty: Optional[Any] = None


class OrderCreate(BaseModel):
    order_name: Optional[str] = None
    phone: Optional[str] = None
    table_no: Optional[Union[int, str]] = None
    notes: Optional[str] = None
    items: List[OrderLineCreate] = []


class ReservationCreate(BaseModel):
    name: str
    phone: Optional[str] = None
    iso: str
    people: Optional[int] = None
    kind: str = "table"
    table: Union[int, str] = ""
    notes: Optional[str] = None
    duration_minutes: int = 90

    @validator("name")
    def validate_name(cls, v: str) -> str:
        if not v or len(v.strip()) == 0:
            raise ValueError("Name cannot be empty")
        return v.strip()

    @validator("kind")
    def validate_kind(cls, v: str) -> str:
        if v not in ["table", "other"]:
            raise ValueError("Kind must be either 'table' or 'other'")
        return v

    @validator("duration_minutes")
    def validate_duration(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Duration must be greater than 0")
        return v


class RatingCreate(BaseModel):
    item_id: int
    stars: int

    @validator("stars")
    def validate_stars(cls, v: int) -> int:
        if v < 1 or v > 5:
            raise ValueError("Stars must be between 1 and 5")
        return v


class CatalogResponse(BaseModel):
    categories: List[Dict[str, Any]]
    items: List[Dict[str, Any]]


class AdminSessionResponse(BaseModel):
    user_id: str
    expires_at: Optional[int] = None
