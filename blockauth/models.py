from datetime import timezone

from sqlalchemy import Column, String, ForeignKey, DateTime, Text
from sqlalchemy.orm import relationship
from sqlalchemy.types import TypeDecorator
from .db import Base

# Identifiers are uuid4 hex strings assigned by crud, so both stores agree on them.
ROLES = ("customer", "retailer", "manufacturer")


class UTCDateTime(TypeDecorator):
    """Timestamps stored in UTC and always read back timezone-aware.

    SQLite drops the offset of DateTime(timezone=True) values.
    """
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


class User(Base):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True)
    name = Column(String, nullable=False)
    # Unique index backs the check-then-insert in crud.register_user
    email = Column(String, nullable=False, unique=True, index=True)
    password_hash = Column(String, nullable=False)
    # one of ROLES; fixed at registration
    role = Column(String, nullable=False, index=True)
    created_at = Column(UTCDateTime(), nullable=False)

    products = relationship("Product", back_populates="manufacturer")
    sales = relationship("Sale", back_populates="retailer")


class Product(Base):
    __tablename__ = "products"

    id = Column(String(32), primary_key=True)
    name = Column(String, nullable=False)
    serial_number = Column(String, nullable=False, unique=True, index=True)
    manufacturer_id = Column(String(32), ForeignKey("users.id"), nullable=False, index=True)
    description = Column(Text, nullable=True)
    manufacturing_date = Column(String, nullable=True)
    blockchain_hash = Column(String(42), nullable=False)
    created_at = Column(UTCDateTime(), nullable=False)

    manufacturer = relationship("User", back_populates="products")
    sales = relationship("Sale", back_populates="product")


class Sale(Base):
    __tablename__ = "sales"

    id = Column(String(32), primary_key=True)
    product_id = Column(String(32), ForeignKey("products.id"), nullable=False, index=True)
    retailer_id = Column(String(32), ForeignKey("users.id"), nullable=False, index=True)
    # free-text buyer name or email
    customer = Column(String, nullable=False)
    date = Column(UTCDateTime(), nullable=False, index=True)
    transaction_hash = Column(String(42), nullable=False)

    product = relationship("Product", back_populates="sales")
    retailer = relationship("User", back_populates="sales")
