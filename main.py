from typing import List

from fastapi import APIRouter, Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

import config
import orders as order_service
from database import Store, get_store, init_db, table_names
from errors import BadRequest, Forbidden, NotFound, Unauthenticated, register_error_handlers
from logger import get_logger
from models import ROLE_ADMIN, ROLE_CUSTOMER, Address, Product, User, utcnow
from pagination import Page, pagination, parse_positive_int
from policy import POLICIES, check_owner, require
from schemas import (
    AddressOut,
    AdminRegistrationRequest,
    AuthResponse,
    CreateAddressRequest,
    CreateOrderRequest,
    CreateProductRequest,
    CustomerRegistrationRequest,
    LoginRequest,
    OrderListResponse,
    OrderOut,
    PatchProductRequest,
    ProductListResponse,
    ProductOut,
    UpdateOrderStatusRequest,
)
from security import hash_password, issue_tokens, load_auth_user, verify_password

log = get_logger("api")

app = FastAPI(title="E-Commerce API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)


@app.middleware("http")
async def log_server_errors(request: Request, call_next):
    response = await call_next(request)
    if response.status_code == 500:
        log.error(f"500 error: {request.method} {request.url.path}")
    return response


@app.on_event("startup")
def create_schema():
    init_db()


def _path_id(raw: str, what: str) -> int:
    value = parse_positive_int(raw)
    if value is None:
        raise BadRequest(f"Invalid {what} ID")
    return value


def owner_id_param(user_id: str) -> int:
    # resolved ahead of require() so a bad ID is reported before the 401
    return _path_id(user_id, "user")


@app.get("/")
def read_root():
    return {"message": "E-Commerce API Running"}


@app.get("/test")
def test_database(store: Store = Depends(get_store)):
    response = {
        "backend": "Running",
        "database": "Not Available",
        "tables": [],
    }
    try:
        response["tables"] = table_names(store.session.get_bind())
        response["database"] = "Connected"
    except SQLAlchemyError as e:
        response["database"] = f"Error: {str(e)[:80]}"
    return response


v1 = APIRouter(prefix="/v1", dependencies=[Depends(load_auth_user)])


# -----------------
# Auth Endpoints
# -----------------
def _register(store: Store, payload: CustomerRegistrationRequest, role: str, msg: str) -> dict:
    if store.find_one(User, email=str(payload.email)):
        raise BadRequest("User with this email already exists.")

    user = User(
        email=str(payload.email),
        first_name=payload.first_name,
        last_name=payload.last_name,
        password_hash=hash_password(payload.password),
        role=role,
    )
    try:
        with store.transaction():
            store.add(user)
    except IntegrityError:
        raise BadRequest("User with this email already exists.")
    log.info(f"Registered {role} {user.email}")

    access_token, refresh_token = "", ""
    if config.LOGIN_ON_REGISTRATION:
        access_token, refresh_token = issue_tokens(user)
    return {"msg": msg, "user": user, "access_token": access_token, "refresh_token": refresh_token}


@v1.post("/register", response_model=AuthResponse)
def register_customer(payload: CustomerRegistrationRequest, store: Store = Depends(get_store)):
    if payload.password != payload.password_confirm:
        raise BadRequest("Passwords do not match")
    return _register(store, payload, ROLE_CUSTOMER, "Account registered successfully")


@v1.post("/register/admin", response_model=AuthResponse)
def register_admin(payload: AdminRegistrationRequest, store: Store = Depends(get_store)):
    if payload.password != payload.password_confirm:
        raise BadRequest("Passwords do not match")
    if payload.secret_key != config.ADMIN_SECRET_KEY:
        raise Forbidden("Invalid secret key for admin registration")
    return _register(store, payload, ROLE_ADMIN, "Registration successful")


@v1.post("/login", response_model=AuthResponse)
def login(payload: LoginRequest, store: Store = Depends(get_store)):
    user = store.find_one(User, email=str(payload.email))
    if user is None or not verify_password(payload.password, user.password_hash):
        raise Unauthenticated("Invalid credentials")

    access_token, refresh_token = issue_tokens(user)

    try:
        with store.transaction():
            user.last_login = utcnow()
    except SQLAlchemyError as e:
        log.warning(f"Failed to update last_login for user {user.email}: {e}")

    return {
        "msg": "Login successful",
        "user": user,
        "access_token": access_token,
        "refresh_token": refresh_token,
    }


# -----------------
# Address Endpoints
# -----------------
@v1.get("/users/addresses", response_model=List[AddressOut])
def list_addresses(user: User = Depends(require("address:list")), store: Store = Depends(get_store)):
    return store.list(Address, user_id=user.id)


@v1.post("/addresses", response_model=AddressOut, status_code=201)
def create_address(
    payload: CreateAddressRequest,
    user: User = Depends(require("address:create")),
    store: Store = Depends(get_store),
):
    with store.transaction():
        address = store.add(Address(**payload.model_dump(), user_id=user.id))
    return address


# -----------------
# Products Endpoints
# -----------------
def _get_product(store: Store, raw_id: str) -> Product:
    product = store.get(Product, _path_id(raw_id, "product"))
    if product is None:
        raise NotFound("Product not found")
    return product


@v1.get("/products", response_model=ProductListResponse)
def list_products(page: Page = Depends(pagination), store: Store = Depends(get_store)):
    products = store.list(Product, offset=page.offset, limit=page.page_size)
    return {**page.envelope(store.count(Product)), "products": products}


@v1.get("/products/{product_id}", response_model=ProductOut)
def get_product(product_id: str, store: Store = Depends(get_store)):
    return _get_product(store, product_id)


@v1.post("/products", response_model=ProductOut, status_code=201)
def create_product(
    payload: CreateProductRequest,
    user: User = Depends(require("product:create")),
    store: Store = Depends(get_store),
):
    with store.transaction():
        product = store.add(Product(**payload.model_dump()))
    log.info(f"Product {product.id} created by admin {user.id}")
    return product


def _apply(store: Store, product: Product, fields: dict) -> Product:
    with store.transaction():
        for name, value in fields.items():
            setattr(product, name, value)
    return product


@v1.put("/products/{product_id}", response_model=ProductOut)
def update_product(
    product_id: str,
    payload: CreateProductRequest,
    user: User = Depends(require("product:update")),
    store: Store = Depends(get_store),
):
    product = _get_product(store, product_id)
    return _apply(store, product, payload.model_dump())


@v1.patch("/products/{product_id}", response_model=ProductOut)
def patch_product(
    product_id: str,
    payload: PatchProductRequest,
    user: User = Depends(require("product:patch")),
    store: Store = Depends(get_store),
):
    product = _get_product(store, product_id)
    return _apply(store, product, payload.model_dump(exclude_unset=True, exclude_none=True))


@v1.delete("/products/{product_id}", status_code=204)
def delete_product(
    product_id: str,
    user: User = Depends(require("product:delete")),
    store: Store = Depends(get_store),
):
    product = _get_product(store, product_id)
    try:
        with store.transaction():
            store.delete(product)
    except IntegrityError:
        raise BadRequest("Product cannot be deleted, it is referenced by existing orders")
    log.info(f"Product {product.id} deleted by admin {user.id}")
    return Response(status_code=204)


# --------------
# Orders Endpoints
# --------------
@v1.post("/orders", response_model=OrderOut, status_code=201)
def create_order(
    payload: CreateOrderRequest,
    user: User = Depends(require("order:create")),
    store: Store = Depends(get_store),
):
    return order_service.place_order(store, user, payload.address_id, payload.order_items)


@v1.get("/orders/{user_id}", response_model=OrderListResponse)
def list_orders(
    owner_id: int = Depends(owner_id_param),
    page: Page = Depends(pagination),
    user: User = Depends(require("order:list")),
    store: Store = Depends(get_store),
):
    check_owner(user, POLICIES["order:list"], owner_id)
    found, total = order_service.list_orders(store, owner_id, page)
    return {**page.envelope(total), "orders": found}


@v1.patch("/orders/{order_id}/cancel", response_model=OrderOut)
def cancel_order(
    order_id: str,
    user: User = Depends(require("order:cancel")),
    store: Store = Depends(get_store),
):
    return order_service.cancel_order(store, user, _path_id(order_id, "order"))


@v1.patch("/orders/{order_id}/status", response_model=OrderOut)
def update_order_status(
    order_id: str,
    payload: UpdateOrderStatusRequest,
    user: User = Depends(require("order:update_status")),
    store: Store = Depends(get_store),
):
    return order_service.update_order_status(store, _path_id(order_id, "order"), payload.status)


app.include_router(v1)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
