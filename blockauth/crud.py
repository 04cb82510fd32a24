import logging
from datetime import datetime
from typing import List, Optional, Tuple

from . import models, schemas
from .auth import create_access_token, hash_password, verify_password
from .errors import AuthError, ConflictError, NotFoundError, ValidationError
from .stores import Store
from .utils import fake_chain_hash, new_id, sanitize_input, utcnow

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
# passlib refuses secrets over 4096 bytes; 1024 chars stays under it for any UTF-8
MAX_PASSWORD_LENGTH = 1024

# Business rule: the owner of a product or sale is always the authenticated
# caller, never a value taken from the request body.


def register_user(store: Store, payload: schemas.UserCreate) -> models.User:
    name = sanitize_input(payload.name)
    email = (payload.email or "").strip()
    password = payload.password or ""
    role = payload.role

    if not name or not email or not password or not role:
        raise ValidationError("All fields are required")
    if "@" not in email:
        raise ValidationError("A valid email is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password) > MAX_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_LENGTH} characters")
    if role not in models.ROLES:
        raise ValidationError("Invalid role")

    if store.find_user_by_email(email) is not None:
        raise ConflictError("User already exists")

    user = models.User(
        id=new_id(),
        name=name,
        email=email,
        password_hash=hash_password(password),
        role=role,
        created_at=utcnow(),
    )
    # the store re-checks atomically; a concurrent duplicate still ends in ConflictError
    user = store.add_user(user)
    logger.info(f"user registered: {user.id} role={user.role}")
    return user


def login(store: Store, email: Optional[str], password: Optional[str]) -> Tuple[str, models.User]:
    if not email or not password:
        raise ValidationError("Email and password are required")

    user = store.find_user_by_email(email.strip())
    # Same error for unknown email and wrong password: never reveal which accounts exist
    if user is None or len(password) > MAX_PASSWORD_LENGTH or not verify_password(password, user.password_hash):
        logger.warning("login failed: invalid credentials")
        raise AuthError("Invalid credentials")

    token = create_access_token(user.id, user.email, user.role)
    logger.info(f"login ok: {user.id}")
    return token, user


def register_product(store: Store, caller: models.User, payload: schemas.ProductCreate) -> models.Product:
    name = sanitize_input(payload.name)
    serial_number = (payload.serial_number or "").strip()
    if not name or not serial_number:
        raise ValidationError("Name and serial number are required.")

    if store.find_product_by_serial(serial_number) is not None:
        raise ConflictError("Product with this serial number already exists.")

    product = models.Product(
        id=new_id(),
        name=name,
        serial_number=serial_number,
        manufacturer_id=caller.id,
        description=sanitize_input(payload.description) or None,
        manufacturing_date=(payload.manufacturing_date or "").strip() or None,
        blockchain_hash=fake_chain_hash(),
        created_at=utcnow(),
    )
    product = store.add_product(product)
    logger.info(f"product registered: {product.id} serial={product.serial_number} by={caller.id}")
    return product


def get_product(store: Store, product_id: str) -> models.Product:
    product = store.get_product(product_id)
    if product is None:
        raise NotFoundError("Product not found.")
    return product


def record_sale(
    store: Store,
    caller: models.User,
    payload: schemas.SaleCreate,
    sold_at: Optional[datetime] = None,
) -> models.Sale:
    product_id = (payload.product_id or "").strip()
    customer = sanitize_input(payload.customer)
    if not product_id or not customer:
        raise ValidationError("Product ID and customer are required.")

    if store.get_product(product_id) is None:
        raise NotFoundError("Product not found.")

    sale = models.Sale(
        id=new_id(),
        product_id=product_id,
        retailer_id=caller.id,
        customer=customer,
        date=sold_at or utcnow(),
        transaction_hash=fake_chain_hash(),
    )
    sale = store.add_sale(sale)
    logger.info(f"sale recorded: {sale.id} product={product_id} by={caller.id}")
    return sale


def sales_history(store: Store, product_id: str) -> List[models.Sale]:
    # An unknown product simply has no sales
    return store.sales_for_product(product_id)
