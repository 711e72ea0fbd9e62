import auth
from auth import AuthSession, TokenAuth


def test_create_and_verify_access_token_contains_sub():
    """Токен, созданный create_access_token, успешно декодируется verify_token-ом."""
    token = auth.create_access_token({"sub": "admin-1"})
    assert isinstance(token, str)
    # Базовая форма JWT: три части через точку
    assert len(token.split(".")) == 3

    payload = auth.verify_token(token)
    assert payload is not None
    assert payload["sub"] == "admin-1"
    assert "exp" in payload


def test_verify_token_returns_none_for_invalid_token():
    """Невалидный токен должен возвращать None, а не поднимать исключение наружу."""
    assert auth.verify_token("invalid.token.value") is None


def test_token_auth_builds_session_from_bearer_header():
    token = auth.create_access_token({"sub": "admin-1"})

    session = TokenAuth.from_header(f"Bearer {token}").get_session()

    assert isinstance(session, AuthSession)
    assert session.user_id == "admin-1"
    assert session.access_token == token
    assert session.expires_at


def test_token_auth_without_header_has_no_session():
    assert TokenAuth.from_header(None).get_session() is None
    assert TokenAuth.from_header("Basic abc").get_session() is None
    assert TokenAuth.from_header("Bearer broken").get_session() is None


def test_token_without_subject_gives_session_without_user():
    token = auth.create_access_token({"role": "admin"})

    session = TokenAuth(token).get_session()

    assert session is not None
    assert session.user_id is None
