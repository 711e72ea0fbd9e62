import pytest

from auth import AuthSession
from bridge import DataBridge
from fakes import FakeRemote, RecordingNavigator

ADMINS = [{"user_id": "admin-1"}]


def make_bridge(session, admins=ADMINS, errors=None):
    remote = FakeRemote(tables={"admins": admins}, errors=errors, session=session)
    navigator = RecordingNavigator()
    return DataBridge(remote, store=None, navigator=navigator), remote, navigator


def test_no_session_redirects_to_default_login():
    bridge, remote, navigator = make_bridge(session=None)

    assert bridge.require_admin_or_redirect() is None
    assert navigator.visited == ["login.html"]
    assert remote.queries == []


def test_session_without_user_id_redirects():
    bridge, remote, navigator = make_bridge(session=AuthSession(access_token="t", user_id=None))

    assert bridge.require_admin_or_redirect("/admin/login") is None
    assert navigator.visited == ["/admin/login"]
    assert remote.queries == []


def test_non_admin_user_redirects():
    bridge, remote, navigator = make_bridge(session=AuthSession(access_token="t", user_id="guest-7"))

    assert bridge.require_admin_or_redirect() is None
    assert navigator.visited == ["login.html"]
    (query,) = remote.executed("admins")
    assert query.filters == [("eq", "user_id", "guest-7")]
    assert query.cardinality == "maybe_single"


def test_admin_lookup_error_redirects():
    bridge, _, navigator = make_bridge(
        session=AuthSession(access_token="t", user_id="admin-1"),
        errors={("admins", "select"): "permission denied"},
    )

    assert bridge.require_admin_or_redirect() is None
    assert navigator.visited == ["login.html"]


def test_admin_session_is_returned_unchanged():
    session = AuthSession(access_token="t", user_id="admin-1", expires_at=123)
    bridge, _, navigator = make_bridge(session=session)

    assert bridge.require_admin_or_redirect() is session
    assert navigator.visited == []


@pytest.mark.parametrize("admins", [[], [{"user_id": "admin-1"}, {"user_id": "admin-1"}]])
def test_admin_table_without_single_match_redirects(admins):
    bridge, _, navigator = make_bridge(session=AuthSession(access_token="t", user_id="admin-1"), admins=admins)

    assert bridge.require_admin_or_redirect() is None
    assert navigator.visited == ["login.html"]
