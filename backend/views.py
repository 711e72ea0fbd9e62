"""
Преобразование строк удалённых таблиц в записи локального зеркала.

Все числовые поля проходят через to_number: пустое значение, мусорная строка
или NaN превращаются в 0, а не остаются текстом.
"""
import math
from decimal import Decimal
from typing import Any, Dict, Iterable, List

DEFAULT_DURATION_MINUTES = 90


def to_number(value: Any, default=0):
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, (float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return default
        try:
            number = float(text)
        except ValueError:
            return default
    else:
        return default

    if math.isnan(number) or math.isinf(number):
        return default
    return int(number) if number.is_integer() else number


def to_quantity(value: Any) -> int:
    """
    Количество: целое не меньше 1. Дробная часть отбрасывается, отсутствующее,
    нулевое, отрицательное и невалидное значение дают 1.
    """
    qty = int(to_number(value))
    return qty if qty >= 1 else 1


def line_total(items: Iterable[Dict[str, Any]]):
    return to_number(sum(to_number(it.get("price")) * to_quantity(it.get("qty")) for it in items))


def item_count(items: Iterable[Dict[str, Any]]):
    return sum(to_quantity(it.get("qty")) for it in items)


def menu_item_view(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": row.get("id"),
        "name": row.get("name"),
        "desc": row.get("desc"),
        "price": to_number(row.get("price")),
        "img": row.get("img"),
        "catId": row.get("cat_id"),
        "fresh": bool(row.get("fresh")),
        "available": bool(row.get("available")),
        "rating": {
            "avg": to_number(row.get("rating_avg")),
            "count": to_number(row.get("rating_count")),
        },
    }


def order_line_view(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": row.get("item_id"),
        "name": row.get("name"),
        "price": to_number(row.get("price")),
        "qty": to_quantity(row.get("qty")),
    }


def admin_order_view(row: Dict[str, Any], lines: List[Dict[str, Any]]) -> Dict[str, Any]:
    items = [order_line_view(line) for line in lines]
    return {
        "id": row.get("id"),
        "items": items,
        "itemCount": item_count(items),
        "total": to_number(row.get("total")),
        "createdAt": row.get("created_at"),
        "table": row.get("table_no"),
        "orderName": row.get("order_name"),
        "notes": row.get("notes"),
    }


def reservation_view(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": row.get("id"),
        "name": row.get("name"),
        "phone": row.get("phone"),
        "time": row.get("date"),
        "people": row.get("people"),
        "kind": row.get("kind"),
        "table": row.get("table_no") or "",
        "duration": row.get("duration_minutes") or DEFAULT_DURATION_MINUTES,
        "notes": row.get("notes") or "",
    }


def rating_view(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": row.get("id"),
        "itemId": row.get("item_id"),
        "stars": row.get("stars"),
        "time": row.get("created_at"),
    }


def order_notification(order: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": f"ord-{order['id']}",
        "type": "order",
        "title": f"طلب جديد #{order['id']}",
        "message": f"عدد العناصر: {order['itemCount']} | الإجمالي: {order['total']}",
        "time": order.get("createdAt"),
        "read": False,
    }
