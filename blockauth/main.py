import logging
import os
import time
from typing import List

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import config, crud, schemas
from .db import init_db
from .errors import BlockAuthError, InternalError, NotFoundError
from .permissions import Identity, require_role
from .ratelimit import FixedWindowRateLimiter
from .stores import Store, get_store

settings = config.get_settings()
logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
logger = logging.getLogger("blockauth")
config.warn_if_insecure()

# Create tables if not existing (for demo). In production, use a migration tool.
init_db()

app = FastAPI(title="BlockAuth API")
app.state.rate_limiter = FixedWindowRateLimiter(settings.rate_limit, settings.rate_limit_window)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

# UI setup
templates = Jinja2Templates(directory=os.path.join(os.path.dirname(__file__), "templates"))


def error_response(exc: BlockAuthError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


# -------------------- Middleware --------------------
# Registered last runs first: the request log wraps the rate limiter.

@app.middleware("http")
async def rate_limit(request: Request, call_next):
    client = request.client.host if request.client else "unknown"
    try:
        request.app.state.rate_limiter.hit(client)
    except BlockAuthError as e:
        logger.warning(f"rate limit exceeded: {client}")
        return error_response(e)
    return await call_next(request)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(f"{request.method} {request.url.path} {response.status_code} {elapsed_ms:.1f} ms")
    return response


# -------------------- Error handlers --------------------

@app.exception_handler(BlockAuthError)
async def handle_domain_error(request: Request, exc: BlockAuthError):
    return error_response(exc)


@app.exception_handler(RequestValidationError)
async def handle_request_validation(request: Request, exc: RequestValidationError):
    errors = [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in exc.errors()]
    return JSONResponse(status_code=400, content={"message": "Invalid request body", "errors": errors})


@app.exception_handler(StarletteHTTPException)
async def handle_http_exception(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"message": str(exc.detail)}, headers=exc.headers)


@app.exception_handler(Exception)
async def handle_unexpected(request: Request, exc: Exception):
    logger.exception(f"unhandled error on {request.method} {request.url.path}")
    body = InternalError().to_body()
    # Detail is withheld unless DEBUG is on
    if config.get_settings().debug:
        body["error"] = str(exc)
    return JSONResponse(status_code=InternalError.status_code, content=body)


# -------------------- API --------------------

@app.get("/")
async def index():
    return {"message": "BlockAuth Backend API is running"}


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.post("/api/users/register", response_model=schemas.UserRead, status_code=201)
def register_user(payload: schemas.UserCreate, store: Store = Depends(get_store)):
    user = crud.register_user(store, payload)
    return schemas.UserRead.model_validate(user)


@app.post("/api/users/login", response_model=schemas.LoginResponse)
def login(payload: schemas.LoginRequest, store: Store = Depends(get_store)):
    token, user = crud.login(store, payload.email, payload.password)
    return schemas.LoginResponse(token=token, role=user.role, user=schemas.UserRead.model_validate(user))


@app.post("/api/products/register", response_model=schemas.ProductRead, status_code=201)
def register_product(
    payload: schemas.ProductCreate,
    identity: Identity = Depends(require_role("manufacturer")),
    store: Store = Depends(get_store),
):
    product = crud.register_product(store, identity.user, payload)
    return schemas.ProductRead.model_validate(product)


@app.get("/api/products/{product_id}", response_model=schemas.ProductRead)
def get_product(product_id: str, store: Store = Depends(get_store)):
    # Resolve manufacturer while the store session is still open
    return schemas.ProductRead.model_validate(crud.get_product(store, product_id))


@app.post("/api/sales/record", response_model=schemas.SaleRead)
def record_sale(
    payload: schemas.SaleCreate,
    identity: Identity = Depends(require_role("retailer")),
    store: Store = Depends(get_store),
):
    sale = crud.record_sale(store, identity.user, payload)
    return schemas.SaleRead.model_validate(sale)


@app.get("/api/sales/history/{product_id}", response_model=List[schemas.SaleRead])
def sales_history(product_id: str, store: Store = Depends(get_store)):
    return [schemas.SaleRead.model_validate(s) for s in crud.sales_history(store, product_id)]


# -------------------- UI Views --------------------

@app.get("/verify/{product_id}", response_class=HTMLResponse)
def ui_verify_product(request: Request, product_id: str, store: Store = Depends(get_store)):
    """Customer-facing verification page; product QR codes point here."""
    try:
        product = crud.get_product(store, product_id)
    except NotFoundError as e:
        return templates.TemplateResponse(
            request,
            "verify.html",
            {"product": None, "sales": [], "error": e.message},
            status_code=404,
        )
    sales = crud.sales_history(store, product_id)
    return templates.TemplateResponse(
        request,
        "verify.html",
        {"product": product, "sales": sales, "error": None},
    )
