from fastapi import FastAPI, Depends, HTTPException, Header, Body, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from functools import lru_cache
from typing import Any, Dict, Optional
import logging
import os
import uvicorn

import local_store
from auth import TokenAuth
from bridge import DEFAULT_LOGIN_PATH, DataBridge
from database import get_db, init_schema, wait_for_db
from local_store import LocalStoreError, RedisLocalStore
from remote import RemoteQueryError, SqlRemoteClient
from schemas import (
    AdminSessionResponse,
    CatalogResponse,
    OrderCreate,
    RatingCreate,
    ReservationCreate,
)

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger("BridgeAPI")

ADMIN_LOGIN_PATH = os.getenv("ADMIN_LOGIN_PATH", DEFAULT_LOGIN_PATH)

app = FastAPI(title="Restaurant Data Bridge")


origins = [
    "http://localhost",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:8080",
    "http://127.0.0.1:8080",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def startup_event():
    if wait_for_db():
        try:
            init_schema()
            logger.info("Таблицы удалённого хранилища готовы")
        except SQLAlchemyError as e:
            logger.error(f"Ошибка при создании таблиц: {e}")
    else:
        logger.error("Не удалось дождаться готовности базы данных при старте сервиса")


@app.exception_handler(RemoteQueryError)
async def remote_query_error_handler(request: Request, exc: RemoteQueryError):
    return JSONResponse(status_code=502, content={"detail": exc.message, "table": exc.table})


@app.exception_handler(LocalStoreError)
async def local_store_error_handler(request: Request, exc: LocalStoreError):
    return JSONResponse(status_code=503, content={"detail": str(exc), "key": exc.key})


class RedirectNavigator:
    """Запоминает адрес, на который охрана админки отправила пользователя."""

    def __init__(self):
        self.location: Optional[str] = None

    def replace(self, path: str) -> None:
        self.location = path


@lru_cache()
def get_local_store():
    return RedisLocalStore()


def get_bridge(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
    store=Depends(get_local_store),
) -> DataBridge:
    remote = SqlRemoteClient(db, auth=TokenAuth.from_header(authorization))
    return DataBridge(remote, store, navigator=RedirectNavigator())


def _login_redirect(bridge: DataBridge) -> RedirectResponse:
    return RedirectResponse(url=bridge.navigator.location or ADMIN_LOGIN_PATH, status_code=303)


@app.get("/health")
def health_check():
    return {"status": "ok", "message": "Data bridge is running"}


@app.get("/cache/info")
def get_cache_info(store=Depends(get_local_store)):
    """Получить информацию о состоянии локального зеркала"""
    return store.get_cache_info()


@app.get("/local/{key}")
def read_local(key: str, store=Depends(get_local_store)):
    if key not in local_store.MIRROR_KEYS:
        raise HTTPException(status_code=404, detail="Unknown mirror key")
    return store.get(key, [])


@app.post("/catalog/sync", response_model=CatalogResponse)
def sync_catalog(bridge: DataBridge = Depends(get_bridge)):
    return bridge.sync_public_catalog_to_local()


@app.post("/orders")
def create_order(order: OrderCreate, bridge: DataBridge = Depends(get_bridge)):
    return bridge.create_order(
        order_name=order.order_name,
        phone=order.phone,
        table_no=order.table_no,
        notes=order.notes,
        items=[item.dict() for item in order.items],
    )


@app.post("/reservations")
def create_reservation(reservation: ReservationCreate, bridge: DataBridge = Depends(get_bridge)):
    return bridge.create_reservation(**reservation.dict())


@app.patch("/reservations/{reservation_id}")
def update_reservation(
    reservation_id: int,
    fields: Dict[str, Any] = Body(...),
    bridge: DataBridge = Depends(get_bridge),
):
    if not fields:
        raise HTTPException(status_code=400, detail="Nothing to update")
    return bridge.update_reservation(reservation_id, fields)


@app.delete("/reservations/{reservation_id}")
def delete_reservation(reservation_id: int, bridge: DataBridge = Depends(get_bridge)):
    bridge.delete_reservation(reservation_id)
    return {"message": "Reservation deleted"}


@app.post("/ratings")
def create_rating(rating: RatingCreate, bridge: DataBridge = Depends(get_bridge)):
    return bridge.create_rating(item_id=rating.item_id, stars=rating.stars)


@app.get("/admin/session", response_model=AdminSessionResponse)
def admin_session(bridge: DataBridge = Depends(get_bridge)):
    session = bridge.require_admin_or_redirect(ADMIN_LOGIN_PATH)
    if session is None:
        return _login_redirect(bridge)
    return AdminSessionResponse(user_id=session.user_id, expires_at=session.expires_at)


@app.post("/admin/sync")
def admin_sync(bridge: DataBridge = Depends(get_bridge)):
    # охрана вызывается до любой админской операции
    if bridge.require_admin_or_redirect(ADMIN_LOGIN_PATH) is None:
        return _login_redirect(bridge)
    bridge.sync_admin_data_to_local()
    return {"synced": True}


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
