"""
Удалённое хранилище: построитель запросов к таблицам и его реализация на SQLAlchemy.

Любой вызов ``execute()`` возвращает QueryResult, в котором заполнено либо
``data``, либо ``error``. Исключения наружу не выбрасываются: проверка ошибки
остаётся на вызывающей стороне (см. bridge.py).
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Protocol

from sqlalchemy import DateTime
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import models

logger = logging.getLogger("RemoteStore")


class RemoteQueryError(Exception):
    """Удалённое хранилище вернуло ошибку вместо данных."""

    def __init__(self, message: str, table: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.table = table


@dataclass
class QueryResult:
    data: Any = None
    error: Optional[str] = None


class AuthProvider(Protocol):
    def get_session(self) -> Any:
        ...


class RemoteClient(Protocol):
    auth: AuthProvider

    def table(self, name: str) -> "TableQuery":
        ...


class TableQuery:
    """
    Описание одного запроса к таблице.
    Хранит действие, фильтры, сортировку и требование к количеству строк;
    выполнение делегируется наследнику через execute().
    """

    def __init__(self, table: str):
        self.table = table
        self.action = "select"
        self.columns = "*"
        self.rows: List[Dict[str, Any]] = []
        self.fields: Dict[str, Any] = {}
        self.filters: List[tuple] = []
        self.orders: List[tuple] = []
        self.cardinality: Optional[str] = None
        self.returning = False

    # ========== Действия ==========

    def select(self, columns: str = "*") -> "TableQuery":
        # после insert/update/delete select() означает "вернуть затронутые строки"
        if self.action != "select":
            self.returning = True
        self.columns = columns
        return self

    def insert(self, rows) -> "TableQuery":
        self.action = "insert"
        self.rows = list(rows) if isinstance(rows, (list, tuple)) else [rows]
        return self

    def update(self, fields: Dict[str, Any]) -> "TableQuery":
        self.action = "update"
        self.fields = dict(fields)
        return self

    def delete(self) -> "TableQuery":
        self.action = "delete"
        return self

    # ========== Фильтры и сортировка ==========

    def eq(self, column: str, value: Any) -> "TableQuery":
        self.filters.append(("eq", column, value))
        return self

    def in_(self, column: str, values) -> "TableQuery":
        self.filters.append(("in", column, list(values)))
        return self

    def order(self, column: str, ascending: bool = True) -> "TableQuery":
        self.orders.append((column, ascending))
        return self

    def single(self) -> "TableQuery":
        self.cardinality = "single"
        return self

    def maybe_single(self) -> "TableQuery":
        self.cardinality = "maybe_single"
        return self

    def execute(self) -> QueryResult:
        raise NotImplementedError

    # ========== Общая постобработка ==========

    def projected_columns(self) -> Optional[List[str]]:
        """Разбирает строку вида 'id,name,"desc"'; None означает все колонки."""
        if not self.columns or self.columns.strip() == "*":
            return None
        return [c.strip().strip('"') for c in self.columns.split(",") if c.strip()]

    def shape(self, rows: List[Dict[str, Any]]) -> QueryResult:
        if self.action != "select" and not self.returning:
            return QueryResult(data=None)

        columns = self.projected_columns()
        if columns is not None:
            rows = [{c: row.get(c) for c in columns} for row in rows]

        if self.cardinality == "single":
            if len(rows) != 1:
                return QueryResult(error=f"JSON object requested, {len(rows)} rows returned from {self.table}")
            return QueryResult(data=rows[0])
        if self.cardinality == "maybe_single":
            if len(rows) > 1:
                return QueryResult(error=f"JSON object requested, {len(rows)} rows returned from {self.table}")
            return QueryResult(data=rows[0] if rows else None)
        return QueryResult(data=rows)


# ========== Реализация на SQLAlchemy ==========

TABLES = {
    model.__tablename__: model
    for model in (
        models.Category,
        models.MenuItem,
        models.Order,
        models.OrderItem,
        models.Reservation,
        models.Rating,
        models.Admin,
    )
}


def _jsonable(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def serialize_row(obj) -> Dict[str, Any]:
    return {c.name: _jsonable(getattr(obj, c.name)) for c in obj.__table__.columns}


class SqlTableQuery(TableQuery):
    def __init__(self, db: Session, table: str):
        super().__init__(table)
        self.db = db

    def _model(self):
        model = TABLES.get(self.table)
        if model is None:
            raise LookupError(f'relation "{self.table}" does not exist')
        return model

    def _column(self, model, name: str):
        if name not in model.__table__.c:
            raise LookupError(f'column {self.table}.{name} does not exist')
        return getattr(model, name)

    def _value(self, model, name: str, value: Any) -> Any:
        column = model.__table__.c[name]
        if isinstance(column.type, DateTime) and isinstance(value, str):
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        return value

    def _values(self, model, row: Dict[str, Any]) -> Dict[str, Any]:
        for name in row:
            self._column(model, name)
        return {name: self._value(model, name, value) for name, value in row.items()}

    def _query(self, model):
        query = self.db.query(model)
        for op, name, value in self.filters:
            column = self._column(model, name)
            if op == "eq":
                query = query.filter(column == self._value(model, name, value))
            else:
                query = query.filter(column.in_(value))
        for name, ascending in self.orders:
            column = self._column(model, name)
            query = query.order_by(column.asc() if ascending else column.desc())
        return query

    def execute(self) -> QueryResult:
        try:
            model = self._model()
            projection = self.projected_columns() or []
            for name in projection:
                self._column(model, name)

            if self.action == "select":
                objs = self._query(model).all()
            elif self.action == "insert":
                objs = [model(**self._values(model, row)) for row in self.rows]
                self.db.add_all(objs)
                self.db.commit()
                for obj in objs:
                    self.db.refresh(obj)
            elif self.action == "update":
                values = self._values(model, self.fields)
                objs = self._query(model).all()
                for obj in objs:
                    for key, value in values.items():
                        setattr(obj, key, value)
                self.db.commit()
                for obj in objs:
                    self.db.refresh(obj)
            else:
                objs = self._query(model).all()
                rows = [serialize_row(obj) for obj in objs]
                for obj in objs:
                    self.db.delete(obj)
                self.db.commit()
                return self.shape(rows)

            return self.shape([serialize_row(obj) for obj in objs])
        except (SQLAlchemyError, LookupError, ValueError) as e:
            self.db.rollback()
            logger.warning(f"Ошибка запроса {self.action} к {self.table}: {e}")
            return QueryResult(error=str(e))


class SqlRemoteClient:
    """Клиент удалённого хранилища поверх сессии SQLAlchemy."""

    def __init__(self, db: Session, auth: Optional[AuthProvider] = None):
        self.db = db
        self.auth = auth

    def table(self, name: str) -> SqlTableQuery:
        return SqlTableQuery(self.db, name)
