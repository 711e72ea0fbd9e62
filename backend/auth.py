import jwt
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging
import secrets
import os

logger = logging.getLogger("Auth")


def get_secret_key():
    env_key = os.getenv("SECRET_KEY")
    if env_key:
        return env_key

    key_file = ".secret_key"
    if os.path.exists(key_file):
        try:
            with open(key_file, "r", encoding='utf-8') as f:
                return f.read().strip()
        except UnicodeDecodeError:
            # Если файл в неправильной кодировке, создаем новый
            logger.warning("Ошибка чтения секретного ключа, создаем новый")
            os.remove(key_file)

    new_key = secrets.token_urlsafe(32)
    with open(key_file, "w", encoding='utf-8') as f:
        f.write(new_key)
    if os.name != 'nt':
        os.chmod(key_file, 0o600)
    logger.info("Сгенерирован новый SECRET_KEY")
    return new_key


SECRET_KEY = get_secret_key()
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 30


@dataclass
class AuthSession:
    """Текущая сессия: токен и идентификатор пользователя (claim sub)."""

    access_token: str
    user_id: Optional[str] = None
    expires_at: Optional[int] = None


def create_access_token(data: dict):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt


def verify_token(token: str):
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        return payload
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


class TokenAuth:
    """
    Auth-интерфейс удалённого клиента: сессия берётся из bearer-токена запроса.
    Просроченный или подделанный токен означает отсутствие сессии.
    """

    def __init__(self, token: Optional[str] = None):
        self.token = token

    @classmethod
    def from_header(cls, authorization: Optional[str]) -> "TokenAuth":
        if not authorization or not authorization.startswith("Bearer "):
            return cls(None)
        return cls(authorization.replace("Bearer ", "", 1))

    def get_session(self) -> Optional[AuthSession]:
        if not self.token:
            return None
        payload = verify_token(self.token)
        if not payload:
            return None
        user_id = payload.get("sub")
        return AuthSession(
            access_token=self.token,
            user_id=str(user_id) if user_id else None,
            expires_at=payload.get("exp"),
        )
