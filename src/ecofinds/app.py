# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Annotated, Optional

import aiosqlite
from fastapi import APIRouter, BackgroundTasks, Depends, FastAPI, Path, Request, WebSocket, WebSocketDisconnect
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ecofinds.auth import users
from ecofinds.auth.session import TokenService
from ecofinds.config import Settings
from ecofinds.core.logger import get_logger
from ecofinds.errors import AppError, AuthError
from ecofinds.infra.database import Database
from ecofinds.infra.store import MAX_ROW_ID
from ecofinds.permissions import Identity, ensure_profile_owner, get_conn, require_identity
from ecofinds.services import cart_service, listing_service
from ecofinds.services.notifier import Notifier

_logger = get_logger(__name__)

router = APIRouter(prefix="/api")
ws_router = APIRouter()

# Path ids outside the SQLite INTEGER range are rejected with a 400.
RowId = Annotated[int, Path(ge=1, le=MAX_ROW_ID)]


# ------------------ Request bodies ------------------
# Fields are optional at the schema level so that missing values produce the
# service's own 400 message instead of a generic validation dump.


class SignupIn(BaseModel):
    email: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None


class LoginIn(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ProfileIn(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None


class ProductIn(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    price: Optional[float] = None
    image_url: Optional[str] = None


class CartItemIn(BaseModel):
    product_id: Optional[int] = None
    quantity: Optional[int] = 1


# ------------------ Error rendering ------------------


async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
    return JSONResponse({"error": exc.message}, status_code=exc.status_code, headers=headers)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = (exc.errors() or [{}])[0]
    loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    msg = first.get("msg", "Invalid request")
    return JSONResponse({"error": f"{loc}: {msg}" if loc else msg}, status_code=400)


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    _logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse({"error": "Internal server error."}, status_code=500)


# ------------------ Routes ------------------


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.post("/auth/signup", status_code=201)
async def signup(data: SignupIn, conn: aiosqlite.Connection = Depends(get_conn)):
    user = await users.signup(conn, email=data.email or "", username=data.username or "", password=data.password or "")
    return {"message": "Registration successful!", "id": user.id}


@router.post("/auth/login")
async def login(data: LoginIn, request: Request, conn: aiosqlite.Connection = Depends(get_conn)):
    user = await users.authenticate(conn, email=data.email or "", password=data.password or "")
    token = request.app.state.tokens.issue(user.id)
    return {"message": "Login successful!", "token": token, "user": user.to_dict()}


@router.get("/users/me")
async def me(identity: Identity = Depends(require_identity), conn: aiosqlite.Connection = Depends(get_conn)):
    return (await users.get_profile(conn, identity.user_id)).to_dict()


@router.put("/users/me")
async def update_me(
    data: ProfileIn,
    identity: Identity = Depends(require_identity),
    conn: aiosqlite.Connection = Depends(get_conn),
):
    user = await users.update_profile(conn, identity.user_id, username=data.username, email=data.email)
    return {"message": "User updated successfully!", "user": user.to_dict()}


@router.get("/users/{user_id}")
async def get_user(
    user_id: RowId,
    identity: Identity = Depends(require_identity),
    conn: aiosqlite.Connection = Depends(get_conn),
):
    ensure_profile_owner(identity, user_id)
    return (await users.get_profile(conn, user_id)).to_dict()


@router.put("/users/{user_id}")
async def update_user(
    user_id: RowId,
    data: ProfileIn,
    identity: Identity = Depends(require_identity),
    conn: aiosqlite.Connection = Depends(get_conn),
):
    ensure_profile_owner(identity, user_id)
    user = await users.update_profile(conn, user_id, username=data.username, email=data.email)
    return {"message": "User updated successfully!", "user": user.to_dict()}


@router.get("/products")
async def list_products(
    q: str = "",
    category: str = "",
    identity: Identity = Depends(require_identity),
    conn: aiosqlite.Connection = Depends(get_conn),
):
    return {"items": await listing_service.search_listings(conn, q=q, category=category)}


@router.get("/products/{product_id}")
async def get_product(
    product_id: RowId,
    identity: Identity = Depends(require_identity),
    conn: aiosqlite.Connection = Depends(get_conn),
):
    return await listing_service.get_listing(conn, product_id)


@router.post("/products", status_code=201)
async def create_product(
    data: ProductIn,
    request: Request,
    background_tasks: BackgroundTasks,
    identity: Identity = Depends(require_identity),
    conn: aiosqlite.Connection = Depends(get_conn),
):
    product = await listing_service.create_listing(conn, identity, data.model_dump(exclude_unset=True))
    # Listeners are notified after the response is sent.
    background_tasks.add_task(request.app.state.notifier.broadcast, "newProduct", {"product": product})
    return product


@router.put("/products/{product_id}")
async def update_product(
    product_id: RowId,
    data: ProductIn,
    identity: Identity = Depends(require_identity),
    conn: aiosqlite.Connection = Depends(get_conn),
):
    return await listing_service.update_listing(conn, identity, product_id, data.model_dump(exclude_unset=True))


@router.delete("/products/{product_id}")
async def delete_product(
    product_id: RowId,
    identity: Identity = Depends(require_identity),
    conn: aiosqlite.Connection = Depends(get_conn),
):
    await listing_service.delete_listing(conn, identity, product_id)
    return {"message": "Deleted"}


@router.get("/my/listings")
async def my_listings(identity: Identity = Depends(require_identity), conn: aiosqlite.Connection = Depends(get_conn)):
    return {"items": await listing_service.my_listings(conn, identity)}


@router.get("/cart")
async def get_cart(identity: Identity = Depends(require_identity), conn: aiosqlite.Connection = Depends(get_conn)):
    return {"items": await cart_service.list_items(conn, identity)}


@router.post("/cart", status_code=201)
async def add_to_cart(
    data: CartItemIn,
    identity: Identity = Depends(require_identity),
    conn: aiosqlite.Connection = Depends(get_conn),
):
    return await cart_service.add_item(conn, identity, product_id=data.product_id, quantity=data.quantity)


@router.delete("/cart/{item_id}")
async def remove_from_cart(
    item_id: RowId,
    identity: Identity = Depends(require_identity),
    conn: aiosqlite.Connection = Depends(get_conn),
):
    await cart_service.remove_item(conn, identity, item_id)
    return {"message": "Removed"}


@router.post("/checkout")
async def checkout(identity: Identity = Depends(require_identity), conn: aiosqlite.Connection = Depends(get_conn)):
    count = await cart_service.checkout(conn, identity)
    return {"message": "Order placed", "count": count}


@router.get("/orders")
async def orders(identity: Identity = Depends(require_identity), conn: aiosqlite.Connection = Depends(get_conn)):
    return {"items": await cart_service.list_orders(conn, identity)}


@ws_router.websocket("/ws/notifications")
async def notifications(ws: WebSocket):
    notifier: Notifier = ws.app.state.notifier
    await notifier.connect(ws)
    try:
        while True:
            await ws.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        notifier.disconnect(ws)


# ------------------ Application ------------------


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await app.state.db.init()
        _logger.info(f"EcoFinds API ready (db={settings.db_path})")
        yield

    app = FastAPI(title="EcoFinds", lifespan=lifespan)
    app.state.settings = settings
    app.state.db = Database(settings.db_path)
    app.state.tokens = TokenService(
        settings.secret_key,
        ttl_seconds=settings.token_ttl_seconds,
        salt=settings.token_salt,
    )
    app.state.notifier = Notifier()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(AppError, _app_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    app.include_router(router)
    app.include_router(ws_router)
    return app
