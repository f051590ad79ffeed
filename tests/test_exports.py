import csv
import io


def upload(text):
    return {"file": ("data.csv", text.encode(), "text/csv")}


def test_import_clients_skips_incomplete_rows(client, root_headers):
    text = "name,address,phone,email\nAcme,X,123,a@b.com\nBeta,,456,b@c.com\nGamma,Y,789,g@h.com\n"
    resp = client.post("/import/clients", headers=root_headers, files=upload(text))
    assert resp.json() == {"imported": 2, "skipped": 1}
    names = [c["name"] for c in client.get("/clients", headers=root_headers).json()]
    assert names == ["Acme", "Gamma"]


def test_import_inventory_requires_known_client(client, root_headers, acme):
    text = (
        "clientId,itemName,description\n"
        f"{acme['id']},Cards,350gsm\n"
        f"{acme['id']},,blank name\n"
        "999,Posters,\n"
        f"{acme['id']},Labels,\n"
    )
    resp = client.post("/import/inventory", headers=root_headers, files=upload(text))
    assert resp.json() == {"imported": 2, "skipped": 2}
    items = client.get("/inventory", headers=root_headers).json()
    assert [(i["itemName"], i["description"]) for i in items] == [("Cards", "350gsm"), ("Labels", None)]


def test_import_needs_a_token(client):
    resp = client.post("/import/clients", files=upload("name,address,phone,email\n"))
    assert resp.status_code == 401


def test_export_chalans_one_row_per_line(client, root_headers, acme):
    client.post("/chalans", headers=root_headers, json={
        "clientId": acme["id"], "date": "2024-05-01", "poNumber": "PO-7",
        "items": [{"particulars": "Cards", "noOfBoxes": 2, "costPerBox": 3},
                  {"particulars": "Flyers", "noOfBoxes": 1, "costPerBox": 4}],
    })
    client.post("/chalans", headers=root_headers, json={"clientId": acme["id"]})

    resp = client.get("/export/chalans", headers=root_headers)
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    rows = list(csv.DictReader(io.StringIO(resp.text)))
    assert len(rows) == 3
    assert [r["particulars"] for r in rows[:2]] == ["Cards", "Flyers"]
    assert rows[0]["clientName"] == "Acme"
    assert rows[0]["poNumber"] == "PO-7"
    assert float(rows[0]["totalQty"]) == 6
    assert rows[2]["serialNumber"] == "2"
    assert rows[2]["particulars"] == ""
