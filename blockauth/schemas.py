from datetime import datetime
from typing import Optional

from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from pydantic.config import ConfigDict

# JSON bodies use camelCase keys (serialNumber, productId, ...)
camel_config = ConfigDict(from_attributes=True, populate_by_name=True, alias_generator=to_camel)


# Request bodies keep every field optional: crud decides what is missing so the
# HTTP API and the serverless adapter report the same 400 messages.

class UserCreate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ProductCreate(BaseModel):
    name: Optional[str] = None
    serial_number: Optional[str] = None
    description: Optional[str] = None
    manufacturing_date: Optional[str] = None

    model_config = camel_config


class SaleCreate(BaseModel):
    product_id: Optional[str] = None
    customer: Optional[str] = None

    model_config = camel_config


class UserPublic(BaseModel):
    id: str
    name: str
    email: str

    model_config = ConfigDict(from_attributes=True)


class UserRead(UserPublic):
    role: str


class LoginResponse(BaseModel):
    token: str
    role: str
    user: UserRead


class ProductRead(BaseModel):
    id: str
    name: str
    serial_number: str
    description: Optional[str] = None
    manufacturing_date: Optional[str] = None
    blockchain_hash: str
    created_at: datetime
    manufacturer: Optional[UserPublic] = None

    model_config = camel_config


class SaleRead(BaseModel):
    id: str
    product_id: str
    customer: str
    date: datetime
    transaction_hash: str
    retailer: Optional[UserPublic] = None

    model_config = camel_config
