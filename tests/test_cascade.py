import pytest

from chalanbook.cascade import ClientCascadeDelete
from chalanbook.errors import CascadeFailed
from chalanbook.models import Chalan, ChalanItem, Client, InventoryItem
from chalanbook.store import EntityStore


@pytest.fixture
def populated(client, root_headers, acme):
    other = client.post("/clients", headers=root_headers, json={"name": "Other"}).json()
    for cid, name in ((acme["id"], "Cards"), (acme["id"], "Labels"), (other["id"], "Posters")):
        client.post("/inventory", headers=root_headers, json={"clientId": cid, "itemName": name})
    for cid in (acme["id"], acme["id"], other["id"]):
        client.post("/chalans", headers=root_headers,
                    json={"clientId": cid, "items": [{"particulars": "a"}, {"particulars": "b"}]})
    return acme, other


def test_cascade_removes_client_and_children(client, root_headers, populated):
    acme, other = populated
    resp = client.delete(f"/clients/{acme['id']}", headers=root_headers, params={"cascade": "true"})
    assert resp.status_code == 200
    report = resp.json()["report"]
    assert report["completed"] == ["chalans", "inventory", "client"]
    assert report["removed"] == {"chalans": 2, "inventory": 2, "client": 1}
    assert report["failed"] is None

    assert [c["id"] for c in client.get("/clients", headers=root_headers).json()] == [other["id"]]
    assert {i["clientId"] for i in client.get("/inventory", headers=root_headers).json()} == {other["id"]}
    assert {c["clientId"] for c in client.get("/chalans", headers=root_headers).json()} == {other["id"]}


def test_cascade_failure_is_compensated_and_reported(client, root_headers, populated, monkeypatch):
    acme, _ = populated

    def boom(self):
        raise RuntimeError("disk full")

    monkeypatch.setattr(ClientCascadeDelete, "_delete_client", boom)
    resp = client.delete(f"/clients/{acme['id']}", headers=root_headers, params={"cascade": "true"})
    assert resp.status_code == 500
    body = resp.json()
    assert body["code"] == "CascadeFailed"
    assert body["report"]["completed"] == ["chalans", "inventory"]
    assert body["report"]["failed"] == "client"
    assert body["report"]["error"] == "disk full"
    assert body["report"]["compensated"] == ["inventory", "chalans"]

    chalans = client.get("/chalans", headers=root_headers, params={"clientId": acme["id"]}).json()
    assert [c["serialNumber"] for c in chalans] == [1, 2]
    assert all(len(c["items"]) == 2 for c in chalans)
    inventory = client.get("/inventory", headers=root_headers, params={"clientId": acme["id"]}).json()
    assert sorted(i["itemName"] for i in inventory) == ["Cards", "Labels"]


def test_cascade_on_session(session):
    client = EntityStore(session, Client).create({"name": "Acme"})
    EntityStore(session, InventoryItem).create({"client_id": client.id, "item_name": "Cards"})
    chalan = EntityStore(session, Chalan).create({"client_id": client.id, "serial_number": 1})
    EntityStore(session, ChalanItem).create({"chalan_id": chalan.id, "sno": 1, "particulars": "Cards"})

    report = ClientCascadeDelete(session, client.id).run()
    assert report.ok
    assert EntityStore(session, ChalanItem).count() == 0
    assert EntityStore(session, Chalan).count() == 0
    assert EntityStore(session, InventoryItem).count() == 0
    assert EntityStore(session, Client).count() == 0


def test_cascade_first_step_failure_needs_no_compensation(session, monkeypatch):
    client = EntityStore(session, Client).create({"name": "Acme"})

    def boom(self):
        raise RuntimeError("locked")

    monkeypatch.setattr(ClientCascadeDelete, "_delete_chalans", boom)
    with pytest.raises(CascadeFailed) as excinfo:
        ClientCascadeDelete(session, client.id).run()
    report = excinfo.value.report
    assert report.completed == [] and report.compensated == []
    assert report.failed == "chalans"
    assert EntityStore(session, Client).get(client.id) is not None


def test_cascade_for_missing_client_is_harmless(session):
    report = ClientCascadeDelete(session, 12345).run()
    assert report.removed == {"chalans": 0, "inventory": 0, "client": 0}


def test_delete_response_shapes(client, root_headers, acme):
    plain = client.delete("/clients/999", headers=root_headers)
    assert plain.json() == {"message": "Client deleted"}
    resp = client.delete(f"/clients/{acme['id']}", headers=root_headers, params={"cascade": "true"})
    assert resp.json() == {
        "message": "Client deleted",
        "report": {
            "clientId": acme["id"], "completed": ["chalans", "inventory", "client"],
            "removed": {"chalans": 0, "inventory": 0, "client": 1},
            "failed": None, "error": None, "compensated": [],
        },
    }


def test_delete_route_documents_its_response(client):
    schema = client.get("/openapi.json").json()
    content = schema["paths"]["/clients/{client_id}"]["delete"]["responses"]["200"]["content"]
    assert content["application/json"]["schema"]["$ref"].endswith("/ClientDeleteOut")
    assert "report" in schema["components"]["schemas"]["ClientDeleteOut"]["properties"]
