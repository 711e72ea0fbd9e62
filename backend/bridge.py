"""
Мост между удалённым хранилищем и локальным зеркалом.

Каждая операция сначала обращается к удалённым таблицам и только после
успешного ответа пишет в зеркало. Ошибка удалённого хранилища превращается в
RemoteQueryError; то, что уже записано удалённо, остаётся записанным.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol

import local_store
from local_store import LocalStore, LocalStoreError
from remote import QueryResult, RemoteClient, RemoteQueryError
from views import (
    DEFAULT_DURATION_MINUTES,
    admin_order_view,
    item_count,
    line_total,
    menu_item_view,
    order_notification,
    rating_view,
    reservation_view,
    to_number,
    to_quantity,
)

logger = logging.getLogger("DataBridge")

DEFAULT_LOGIN_PATH = "login.html"

PUBLIC_MENU_COLUMNS = 'id,name,"desc",price,img,cat_id,available,fresh,rating_avg,rating_count'
ORDER_COLUMNS = "id,order_name,phone,table_no,notes,total,created_at"


class Navigator(Protocol):
    def replace(self, path: str) -> None:
        ...


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _prepend(record: Dict[str, Any]):
    return lambda records: [record] + list(records or [])


def _check(result: QueryResult, table: str) -> Any:
    if result.error:
        logger.warning(f"Удалённое хранилище вернуло ошибку ({table}): {result.error}")
        raise RemoteQueryError(str(result.error), table=table)
    return result.data


class DataBridge:
    def __init__(self, remote: RemoteClient, store: LocalStore, navigator: Optional[Navigator] = None):
        self.remote = remote
        self.store = store
        self.navigator = navigator

    def _write(self, key: str, value: Any) -> None:
        if not self.store.set(key, value):
            logger.error(f"Зеркало не приняло запись {key}")
            raise LocalStoreError(key)

    def _update(self, key: str, fn) -> None:
        # чтение-изменение-запись списка под блокировкой хранилища
        if not self.store.update(key, fn, []):
            logger.error(f"Зеркало не приняло обновление {key}")
            raise LocalStoreError(key)

    # ========== Каталог ==========

    def _fetch_categories(self) -> List[Dict[str, Any]]:
        result = self.remote.table("categories").select("*").order("sort", ascending=True).execute()
        return _check(result, "categories") or []

    def sync_public_catalog_to_local(self) -> Dict[str, Any]:
        categories = self._fetch_categories()

        result = (
            self.remote.table("menu_items")
            .select(PUBLIC_MENU_COLUMNS)
            .eq("available", True)
            .order("created_at", ascending=False)
            .execute()
        )
        items = [menu_item_view(row) for row in _check(result, "menu_items") or []]

        self._write(local_store.CATEGORIES, categories)
        self._write(local_store.MENU_ITEMS, items)
        logger.info(f"Каталог синхронизирован: {len(categories)} категорий, {len(items)} блюд")
        return {"categories": categories, "items": items}

    # ========== Заказы ==========

    def create_order(self, order_name=None, phone=None, table_no=None, notes=None, items=None) -> Dict[str, Any]:
        items = list(items or [])
        total = line_total(items)
        if table_no is not None:
            table_no = str(table_no)

        result = (
            self.remote.table("orders")
            .insert([{"order_name": order_name, "phone": phone, "table_no": table_no, "notes": notes, "total": total}])
            .select()
            .single()
            .execute()
        )
        order = _check(result, "orders")

        # цена и название фиксируются на момент заказа
        rows = [
            {
                "order_id": order["id"],
                "item_id": it.get("id") or None,
                "name": it.get("name"),
                "price": to_number(it.get("price")),
                "qty": to_quantity(it.get("qty")),
            }
            for it in items
        ]
        if rows:
            # строка заказа уже записана; при ошибке здесь её никто не откатывает
            _check(self.remote.table("order_items").insert(rows).execute(), "order_items")

        self._update(local_store.ORDERS, _prepend({
            "id": order["id"],
            "total": total,
            "itemCount": item_count(items),
            "createdAt": _utc_now_iso(),
            "table": table_no,
            "orderName": order_name,
            "notes": notes,
        }))
        logger.info(f"Создан заказ #{order['id']} на сумму {total}")
        return order

    # ========== Брони ==========

    def create_reservation(self, name=None, phone=None, iso=None, people=None, kind="table", table="",
                           notes=None, duration_minutes=DEFAULT_DURATION_MINUTES) -> Dict[str, Any]:
        result = (
            self.remote.table("reservations")
            .insert([{
                "name": name,
                "phone": phone,
                "date": iso,
                "people": people,
                "kind": kind,
                "notes": notes,
                "duration_minutes": duration_minutes,
                "table_no": str(table) if table is not None else None,
            }])
            .select()
            .single()
            .execute()
        )
        reservation = _check(result, "reservations")

        record = reservation_view(reservation)
        record["createdAt"] = _utc_now_iso()
        self._update(local_store.RESERVATIONS, _prepend(record))
        return reservation

    def update_reservation(self, reservation_id, fields: Dict[str, Any]) -> Dict[str, Any]:
        result = (
            self.remote.table("reservations")
            .update(fields)
            .eq("id", reservation_id)
            .select()
            .single()
            .execute()
        )
        updated = _check(result, "reservations")

        if any(record.get("id") == reservation_id for record in self.store.get(local_store.RESERVATIONS, [])):
            stamp = _utc_now_iso()

            def merge(records):
                return [
                    {**record, **fields, "updatedAt": stamp} if record.get("id") == reservation_id else record
                    for record in records or []
                ]

            self._update(local_store.RESERVATIONS, merge)
        return updated

    def delete_reservation(self, reservation_id) -> bool:
        result = self.remote.table("reservations").delete().eq("id", reservation_id).execute()
        _check(result, "reservations")

        self._update(
            local_store.RESERVATIONS,
            lambda records: [record for record in records or [] if record.get("id") != reservation_id],
        )
        return True

    # ========== Оценки ==========

    def create_rating(self, item_id, stars) -> Dict[str, Any]:
        result = (
            self.remote.table("ratings")
            .insert([{"item_id": item_id, "stars": stars}])
            .select()
            .single()
            .execute()
        )
        return _check(result, "ratings")

    # ========== Полная синхронизация для админки ==========

    def sync_admin_data_to_local(self) -> bool:
        """
        Последовательно читает все таблицы и полностью перезаписывает зеркало.
        Первая же ошибка прерывает синхронизацию до любой локальной записи.
        Уведомления строятся только из заказов: прочие уведомления в зеркале
        затираются.
        """
        categories = self._fetch_categories()

        result = self.remote.table("menu_items").select("*").order("created_at", ascending=False).execute()
        menu_rows = _check(result, "menu_items") or []

        result = self.remote.table("orders").select(ORDER_COLUMNS).order("created_at", ascending=False).execute()
        order_rows = _check(result, "orders") or []

        order_ids = [row["id"] for row in order_rows]
        line_rows = []
        if order_ids:
            result = self.remote.table("order_items").select("*").in_("order_id", order_ids).execute()
            line_rows = _check(result, "order_items") or []

        lines_by_order: Dict[Any, List[Dict[str, Any]]] = {}
        for line in line_rows:
            lines_by_order.setdefault(line.get("order_id"), []).append(line)
        orders = [admin_order_view(row, lines_by_order.get(row["id"], [])) for row in order_rows]

        result = self.remote.table("ratings").select("*").order("created_at", ascending=False).execute()
        rating_rows = _check(result, "ratings") or []

        result = self.remote.table("reservations").select("*").order("date", ascending=True).execute()
        reservation_rows = _check(result, "reservations") or []

        self._write(local_store.CATEGORIES, categories)
        self._write(local_store.MENU_ITEMS, [menu_item_view(row) for row in menu_rows])
        self._write(local_store.ORDERS, orders)
        self._write(local_store.RATINGS, [rating_view(row) for row in rating_rows])
        self._write(local_store.RESERVATIONS, [reservation_view(row) for row in reservation_rows])
        self._write(local_store.NOTIFICATIONS, [order_notification(order) for order in orders])

        logger.info(
            f"Админские данные синхронизированы: {len(orders)} заказов, "
            f"{len(rating_rows)} оценок, {len(reservation_rows)} броней"
        )
        return True

    # ========== Охрана админских страниц ==========

    def _redirect(self, login_path: str) -> None:
        if self.navigator is not None:
            self.navigator.replace(login_path)
        return None

    def require_admin_or_redirect(self, login_path: str = DEFAULT_LOGIN_PATH):
        session = self.remote.auth.get_session()
        if not session:
            return self._redirect(login_path)

        user_id = getattr(session, "user_id", None)
        if not user_id:
            return self._redirect(login_path)

        result = self.remote.table("admins").select("user_id").eq("user_id", user_id).maybe_single().execute()
        if result.error or not result.data:
            logger.info(f"Пользователь {user_id} не найден среди администраторов")
            return self._redirect(login_path)
        return session
