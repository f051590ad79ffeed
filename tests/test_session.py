from datetime import timedelta

import pytest

from chalanbook import auth as auth_utils
from chalanbook.errors import DuplicateUsername, Forbidden, InvalidCredentials, MissingToken
from chalanbook.session import ApiClient, UserSession


@pytest.fixture
def api(client):
    return ApiClient(client, UserSession())


def test_empty_session_is_not_authenticated():
    session = UserSession()
    assert session.expired
    with pytest.raises(MissingToken):
        session.auth_headers()


def test_expired_token_detected():
    token = auth_utils.create_access_token({"id": 1}, expires_delta=timedelta(seconds=-10))
    assert UserSession(token=token).expired
    assert UserSession(token="garbage").expired


def test_save_and_load_round_trip(tmp_path):
    path = tmp_path / "session.json"
    token = auth_utils.create_access_token({"id": 1})
    UserSession(token=token, profile={"username": "admin"}).save(path)
    loaded = UserSession.load(path)
    assert loaded.token == token
    assert loaded.profile == {"username": "admin"}
    assert loaded.authenticated
    assert UserSession.load(tmp_path / "missing.json") == UserSession()


def test_register_populates_profile(api):
    profile = api.register("admin", "pw1", email="a@b.com", is_root=True)
    assert profile["role"] == "root"
    assert api.session.profile["username"] == "admin"
    assert api.session.authenticated


def test_errors_come_back_typed(api):
    api.register("admin", "pw1", is_root=True)
    with pytest.raises(DuplicateUsername):
        api.register("admin", "pw2")
    with pytest.raises(InvalidCredentials):
        api.login("admin", "wrong")


def test_logout_clears_session(api):
    api.register("admin", "pw1", is_root=True)
    api.logout()
    assert api.session.token is None and api.session.profile is None
    with pytest.raises(MissingToken):
        api.list("clients")


def test_draft_flow_through_client(api):
    api.register("admin", "pw1", is_root=True)
    acme = api.create("clients", {"name": "Acme", "phone": "123", "email": "a@b.com", "address": "X"})
    api.create("inventory", {"clientId": acme["id"], "itemName": "Visiting Cards"})
    assert api.suggestions(acme["id"], "visit") == ["Visiting Cards"]

    draft = api.new_chalan(acme["id"], date="2024-05-01")
    assert draft.serial_number == 1
    draft.set_line(0, particulars="Visiting Cards", no_of_boxes=2, cost_per_box=4)
    draft.add_line()
    saved = api.submit(draft)
    assert saved["serialNumber"] == 1
    assert [i["totalQty"] for i in saved["items"]] == [8]
    assert api.new_chalan(acme["id"]).serial_number == 2


def test_cascade_delete_through_client(api):
    api.register("admin", "pw1", is_root=True)
    acme = api.create("clients", {"name": "Acme"})
    api.create("chalans", {"clientId": acme["id"]})
    result = api.delete_client(acme["id"])
    assert result["report"]["removed"]["chalans"] == 1
    assert api.list("chalans") == []


def test_forbidden_surfaces_as_error(api):
    api.register("clerk", "pw")
    acme = api.create("clients", {"name": "Acme"})
    with pytest.raises(Forbidden):
        api.update("clients", acme["id"], {"name": "x"})


def test_delete_account(api):
    api.register("temp", "pw", role="full")
    api.delete_account()
    assert not api.session.authenticated
