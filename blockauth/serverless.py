"""Function-style deployment of the API (one handler per request event).

Runs the same crud/permissions core as ``blockauth.main``; only the request
and response plumbing differs. ``handle_request`` takes an explicit store so
it can be exercised without a database; ``handler`` is the deployable entry
point that opens a SQL session per event.
"""
import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from . import config, crud, schemas
from .db import SessionLocal
from .errors import BlockAuthError, InternalError, NotFoundError, ValidationError
from .permissions import authenticate, check_role
from .stores import SqlStore, Store

logger = logging.getLogger(__name__)

Response = Tuple[int, Any]


def _dump(model) -> dict:
    return model.model_dump(mode="json", by_alias=True)


def _parse(schema, body):
    try:
        return schema.model_validate(body or {})
    except PydanticValidationError as e:
        raise ValidationError("Invalid request body") from e


def _register_user(store, headers, body, params) -> Response:
    user = crud.register_user(store, _parse(schemas.UserCreate, body))
    return 201, _dump(schemas.UserRead.model_validate(user))


def _login(store, headers, body, params) -> Response:
    payload = _parse(schemas.LoginRequest, body)
    token, user = crud.login(store, payload.email, payload.password)
    return 200, _dump(schemas.LoginResponse(token=token, role=user.role, user=schemas.UserRead.model_validate(user)))


def _register_product(store, headers, body, params) -> Response:
    identity = check_role(authenticate(store, headers.get("authorization")), ("manufacturer",))
    product = crud.register_product(store, identity.user, _parse(schemas.ProductCreate, body))
    return 201, _dump(schemas.ProductRead.model_validate(product))


def _get_product(store, headers, body, params) -> Response:
    product = crud.get_product(store, params["product_id"])
    return 200, _dump(schemas.ProductRead.model_validate(product))


def _record_sale(store, headers, body, params) -> Response:
    identity = check_role(authenticate(store, headers.get("authorization")), ("retailer",))
    sale = crud.record_sale(store, identity.user, _parse(schemas.SaleCreate, body))
    return 200, _dump(schemas.SaleRead.model_validate(sale))


def _sales_history(store, headers, body, params) -> Response:
    sales = crud.sales_history(store, params["product_id"])
    return 200, [_dump(schemas.SaleRead.model_validate(s)) for s in sales]


Handler = Callable[[Store, Dict[str, str], Optional[dict], Dict[str, str]], Response]

# (path pattern, method, handler); fixed paths come before /{product_id}
ROUTES: List[Tuple[re.Pattern, str, Handler]] = [
    (re.compile(r"^/api/users/register$"), "POST", _register_user),
    (re.compile(r"^/api/users/login$"), "POST", _login),
    (re.compile(r"^/api/products/register$"), "POST", _register_product),
    (re.compile(r"^/api/products/(?P<product_id>[^/]+)$"), "GET", _get_product),
    (re.compile(r"^/api/sales/record$"), "POST", _record_sale),
    (re.compile(r"^/api/sales/history/(?P<product_id>[^/]+)$"), "GET", _sales_history),
]


def handle_request(
    store: Store,
    method: str,
    path: str,
    headers: Optional[Dict[str, str]] = None,
    body: Optional[dict] = None,
) -> Response:
    headers = {k.lower(): v for k, v in (headers or {}).items()}
    method = method.upper()
    path = path.rstrip("/") or "/"

    path_matched = False
    for pattern, route_method, route in ROUTES:
        match = pattern.match(path)
        if not match:
            continue
        path_matched = True
        if route_method != method:
            continue
        try:
            return route(store, headers, body, match.groupdict())
        except BlockAuthError as e:
            return e.status_code, e.to_body()
        except Exception as e:
            logger.exception(f"unhandled error on {method} {path}")
            payload = InternalError().to_body()
            if config.get_settings().debug:
                payload["error"] = str(e)
            return InternalError.status_code, payload

    if path_matched:
        return 405, {"message": "Method not allowed"}
    return NotFoundError.status_code, NotFoundError().to_body()


def handler(event: dict, context=None) -> dict:
    """Entry point for an API-gateway style event."""
    raw_body = event.get("body")
    if isinstance(raw_body, str) and raw_body:
        try:
            body = json.loads(raw_body)
        except ValueError:
            return {"statusCode": 400, "body": json.dumps({"message": "Invalid JSON body"})}
    else:
        body = raw_body

    session = SessionLocal()
    try:
        status, payload = handle_request(
            SqlStore(session),
            event.get("httpMethod", "GET"),
            event.get("path", "/"),
            event.get("headers"),
            body,
        )
    finally:
        session.close()
    return {
        "statusCode": status,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(payload),
    }
