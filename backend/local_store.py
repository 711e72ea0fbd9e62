"""
Локальное зеркало данных: JSON-значения по строковым ключам.
Каждая запись полностью заменяет прежнее значение, TTL нет.
"""
import os
import json
import logging
import threading
from typing import Any, Callable, Dict, Optional, Protocol

import redis

logger = logging.getLogger("LocalStore")

# Ключи зеркала
CATEGORIES = "categories"
MENU_ITEMS = "menuItems"
ORDERS = "orders"
RESERVATIONS = "reservations"
RATINGS = "ratings"
NOTIFICATIONS = "notifications"

MIRROR_KEYS = (CATEGORIES, MENU_ITEMS, ORDERS, RESERVATIONS, RATINGS, NOTIFICATIONS)

# запись в зеркало под блокировкой не дольше этого времени, сек
LOCK_TIMEOUT = 10


class LocalStoreError(Exception):
    """Зеркало не приняло запись."""

    def __init__(self, key: str):
        super().__init__(f"Local mirror write failed: {key}")
        self.key = key


class LocalStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any:
        ...

    def set(self, key: str, value: Any) -> bool:
        ...

    def update(self, key: str, fn: Callable[[Any], Any], default: Any = None) -> bool:
        ...


def _decode(raw: Optional[str], default: Any) -> Any:
    if raw is None:
        return default
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        return default
    return default if value is None else value


def _encode(value: Any) -> str:
    return json.dumps(value, default=str, ensure_ascii=False)


def _redis_port() -> int:
    raw = os.getenv("REDIS_SERVICE_PORT") or os.getenv("REDIS_PORT") or "6379"
    # в k8s переменная бывает вида tcp://10.0.0.1:6379
    return int(str(raw).split(":")[-1])


class RedisLocalStore:
    """Зеркало в Redis"""

    def __init__(self, client: Optional[redis.Redis] = None, prefix: Optional[str] = None):
        self.prefix = os.getenv("LOCAL_STORE_PREFIX", "mirror:") if prefix is None else prefix

        if client is not None:
            self.client = client
            return

        self.redis_host = os.getenv("REDIS_HOST", "redis")
        self.redis_port = _redis_port()
        try:
            self.client = redis.Redis(
                host=self.redis_host,
                port=self.redis_port,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5
            )
            self.client.ping()
        except redis.RedisError as e:
            logger.warning(f"Не удалось подключиться к Redis: {e}")
            self.client = None

    def is_available(self) -> bool:
        """Проверка доступности Redis"""
        if not self.client:
            return False
        try:
            self.client.ping()
            return True
        except redis.RedisError:
            return False

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def get(self, key: str, default: Any = None) -> Any:
        """
        Читает значение по ключу.
        Отсутствующий ключ, битый JSON и недоступный Redis дают default.
        """
        if not self.is_available():
            return default
        try:
            raw = self.client.get(self._key(key))
        except redis.RedisError as e:
            logger.warning(f"Ошибка чтения {key} из зеркала: {e}")
            return default
        return _decode(raw, default)

    def set(self, key: str, value: Any) -> bool:
        if not self.is_available():
            logger.warning(f"Redis недоступен, {key} не сохранён в зеркало")
            return False
        try:
            self.client.set(self._key(key), _encode(value))
            return True
        except redis.RedisError as e:
            logger.warning(f"Ошибка записи {key} в зеркало: {e}")
            return False

    def update(self, key: str, fn: Callable[[Any], Any], default: Any = None) -> bool:
        """
        Читает значение, применяет fn и записывает результат под блокировкой Redis.
        Параллельные запросы не теряют правки друг друга.
        """
        if not self.is_available():
            logger.warning(f"Redis недоступен, {key} не обновлён в зеркале")
            return False
        try:
            with self.client.lock(f"{self._key(key)}:lock", timeout=LOCK_TIMEOUT, blocking_timeout=LOCK_TIMEOUT):
                return self.set(key, fn(self.get(key, default)))
        except redis.RedisError as e:
            logger.warning(f"Ошибка обновления {key} в зеркале: {e}")
            return False

    def get_cache_info(self) -> Dict[str, Any]:
        """Возвращает информацию о зеркале"""
        if not self.is_available():
            return {"status": "unavailable"}
        try:
            return {
                "status": "available",
                "keys": {key: bool(self.client.exists(self._key(key))) for key in MIRROR_KEYS},
            }
        except redis.RedisError as e:
            return {"status": "error", "error": str(e)}


class MemoryLocalStore:
    """Зеркало в памяти процесса: для разработки без Redis и для тестов."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self.data: Dict[str, str] = {}
        self._lock = threading.RLock()
        for key, value in (initial or {}).items():
            self.set(key, value)

    def get(self, key: str, default: Any = None) -> Any:
        return _decode(self.data.get(key), default)

    def set(self, key: str, value: Any) -> bool:
        self.data[key] = _encode(value)
        return True

    def update(self, key: str, fn: Callable[[Any], Any], default: Any = None) -> bool:
        with self._lock:
            return self.set(key, fn(self.get(key, default)))

    def get_cache_info(self) -> Dict[str, Any]:
        return {"status": "memory", "keys": {key: key in self.data for key in MIRROR_KEYS}}
