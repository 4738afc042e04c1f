"""
Database Schemas for the storefront

Each Pydantic model represents a MongoDB collection.
Collection name is the lowercase of the class name.

Fields are snake_case in Python and camelCase on the wire and in storage.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel


class Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, coerce_numbers_to_str=True)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class Product(Record):
    name: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    previous_price: Optional[float] = None
    image_url: str = Field(..., min_length=1)
    description: Optional[str] = None
    rating: float = 0
    rating_count: int = 0


class Review(Record):
    name: str = Field(..., min_length=1)
    rating: float
    comment: str = Field(..., min_length=1)
    image_url: str = Field(..., min_length=1)


class OrderItem(Record):
    product_name: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)


PaymentMethod = Literal["card", "cash_on_delivery"]


class Order(Record):
    first_name: str = Field(..., min_length=3)
    last_name: str = Field(..., min_length=3)
    email: str = Field(..., pattern=r".+@.+\..+")
    phone_number: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    post_office_branch: str = Field(..., min_length=1)
    total_price: float = Field(..., ge=0)
    order_items: List[OrderItem] = Field(..., min_length=1)
    payment_method: PaymentMethod
    is_paid: bool = False
    paid_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def collection_name(model: type) -> str:
    return model.__name__.lower()


def describe_errors(errors: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    """Flatten pydantic error entries into ``{field, message}`` pairs.

    Location segments that only say where the value came from (``body``,
    ``query``, ``form``) are dropped so the field path matches the record.
    """
    described = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "form")]
        described.append({"field": ".".join(loc) or "__root__", "message": err.get("msg", "Invalid value")})
    return described


def validation_details(exc: ValidationError) -> List[Dict[str, str]]:
    return describe_errors(exc.errors())
