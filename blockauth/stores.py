"""Storage backends for users, products and sales.

The API layer only talks to the :class:`Store` interface, so it runs unchanged
against :class:`SqlStore` (a SQLAlchemy session) or :class:`MemoryStore`.
Uniqueness of ``User.email`` and ``Product.serial_number`` is enforced by the
backend itself: a unique index for SQL, a lock around check-and-insert for
memory. Either way a violation surfaces as :class:`ConflictError`.
"""
import abc
import threading
from typing import Dict, Iterator, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from . import models
from .db import SessionLocal
from .errors import ConflictError


class Store(abc.ABC):
    @abc.abstractmethod
    def add_user(self, user: models.User) -> models.User: ...

    @abc.abstractmethod
    def get_user(self, user_id: str) -> Optional[models.User]: ...

    @abc.abstractmethod
    def find_user_by_email(self, email: str) -> Optional[models.User]: ...

    @abc.abstractmethod
    def add_product(self, product: models.Product) -> models.Product: ...

    @abc.abstractmethod
    def get_product(self, product_id: str) -> Optional[models.Product]: ...

    @abc.abstractmethod
    def find_product_by_serial(self, serial_number: str) -> Optional[models.Product]: ...

    @abc.abstractmethod
    def add_sale(self, sale: models.Sale) -> models.Sale: ...

    @abc.abstractmethod
    def sales_for_product(self, product_id: str) -> List[models.Sale]:
        """Sales for a product, most recent first."""


class SqlStore(Store):
    def __init__(self, session: Session):
        self.session = session

    def _insert(self, obj, conflict_message: str):
        self.session.add(obj)
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise ConflictError(conflict_message) from e
        self.session.refresh(obj)
        return obj

    def add_user(self, user):
        return self._insert(user, "User already exists")

    def get_user(self, user_id):
        return self.session.get(models.User, user_id)

    def find_user_by_email(self, email):
        return self.session.query(models.User).filter(models.User.email == email).first()

    def add_product(self, product):
        return self._insert(product, "Product with this serial number already exists.")

    def get_product(self, product_id):
        return (
            self.session.query(models.Product)
            .options(joinedload(models.Product.manufacturer))
            .filter(models.Product.id == product_id)
            .first()
        )

    def find_product_by_serial(self, serial_number):
        return (
            self.session.query(models.Product)
            .filter(models.Product.serial_number == serial_number)
            .first()
        )

    def add_sale(self, sale):
        # product_id is a foreign key; a dangling reference is a store error, not a conflict
        self.session.add(sale)
        self.session.commit()
        self.session.refresh(sale)
        return sale

    def sales_for_product(self, product_id):
        return (
            self.session.query(models.Sale)
            .options(joinedload(models.Sale.retailer))
            .filter(models.Sale.product_id == product_id)
            .order_by(models.Sale.date.desc())
            .all()
        )


class MemoryStore(Store):
    """In-process store for tests and for running the API without a database."""

    def __init__(self):
        self._lock = threading.Lock()
        self.users: Dict[str, models.User] = {}
        self.products: Dict[str, models.Product] = {}
        self.sales: List[models.Sale] = []

    def add_user(self, user):
        with self._lock:
            if any(u.email == user.email for u in self.users.values()):
                raise ConflictError("User already exists")
            self.users[user.id] = user
        return user

    def get_user(self, user_id):
        with self._lock:
            return self.users.get(user_id)

    def find_user_by_email(self, email):
        with self._lock:
            return next((u for u in self.users.values() if u.email == email), None)

    def add_product(self, product):
        with self._lock:
            if any(p.serial_number == product.serial_number for p in self.products.values()):
                raise ConflictError("Product with this serial number already exists.")
            product.manufacturer = self.users.get(product.manufacturer_id)
            self.products[product.id] = product
        return product

    def get_product(self, product_id):
        with self._lock:
            return self.products.get(product_id)

    def find_product_by_serial(self, serial_number):
        with self._lock:
            return next((p for p in self.products.values() if p.serial_number == serial_number), None)

    def add_sale(self, sale):
        with self._lock:
            sale.product = self.products.get(sale.product_id)
            sale.retailer = self.users.get(sale.retailer_id)
            self.sales.append(sale)
        return sale

    def sales_for_product(self, product_id):
        with self._lock:
            matching = [s for s in self.sales if s.product_id == product_id]
        return sorted(matching, key=lambda s: s.date, reverse=True)


# Dependency to get a store per request

def get_store() -> Iterator[Store]:
    db = SessionLocal()
    try:
        yield SqlStore(db)
    finally:
        db.close()
