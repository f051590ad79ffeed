"""CSV bulk import of clients/inventory and CSV export of chalan history."""
import io
import logging

import pandas as pd
from sqlmodel import Session, select

from chalanbook.chalans import load_items
from chalanbook.models import Chalan, Client, InventoryItem

logger = logging.getLogger(__name__)

CHALAN_EXPORT_COLUMNS = [
    "chalanId", "serialNumber", "clientId", "clientName", "date", "poDate", "poNumber",
    "vehicleNo", "remarks", "createdBy", "sno", "particulars", "noOfBoxes", "costPerBox", "totalQty",
]


def _read_csv(file) -> pd.DataFrame:
    df = pd.read_csv(file, dtype=str, keep_default_na=False)
    df.columns = [c.strip() for c in df.columns]
    return df


def _cell(row, column) -> str:
    return str(row.get(column, "") or "").strip()


def import_clients(session: Session, file) -> dict:
    """Rows need all of name, address, phone and email; others are skipped."""
    df = _read_csv(file)
    imported = skipped = 0
    for _, row in df.iterrows():
        fields = {c: _cell(row, c) for c in ("name", "address", "phone", "email")}
        if not all(fields.values()):
            skipped += 1
            continue
        session.add(Client(**fields)); imported += 1
    session.commit()
    logger.info("client import: %d imported, %d skipped", imported, skipped)
    return {"imported": imported, "skipped": skipped}


def import_inventory(session: Session, file) -> dict:
    """Rows need clientId (of an existing client) and itemName."""
    df = _read_csv(file)
    known_clients = set(session.exec(select(Client.id)).all())
    imported = skipped = 0
    for _, row in df.iterrows():
        item_name = _cell(row, "itemName")
        try:
            client_id = int(_cell(row, "clientId"))
        except ValueError:
            client_id = None
        if not item_name or client_id not in known_clients:
            skipped += 1
            continue
        description = _cell(row, "description") or None
        session.add(InventoryItem(client_id=client_id, item_name=item_name, description=description))
        imported += 1
    session.commit()
    logger.info("inventory import: %d imported, %d skipped", imported, skipped)
    return {"imported": imported, "skipped": skipped}


def chalans_frame(session: Session, client_id=None) -> pd.DataFrame:
    """One row per chalan line; a chalan without lines still gets one row."""
    stmt = select(Chalan).order_by(Chalan.id)
    if client_id is not None:
        stmt = stmt.where(Chalan.client_id == client_id)
    records = []
    for ch in session.exec(stmt).all():
        header = {
            "chalanId": ch.id, "serialNumber": ch.serial_number, "clientId": ch.client_id,
            "clientName": (ch.client or {}).get("name", ""), "date": ch.date, "poDate": ch.po_date,
            "poNumber": ch.po_number, "vehicleNo": ch.vehicle_no, "remarks": ch.remarks,
            "createdBy": ch.created_by,
        }
        items = load_items(session, ch.id)
        if not items:
            records.append(header)
        for it in items:
            records.append({**header, "sno": it.sno, "particulars": it.particulars,
                            "noOfBoxes": it.no_of_boxes, "costPerBox": it.cost_per_box,
                            "totalQty": it.total_qty})
    return pd.DataFrame(records, columns=CHALAN_EXPORT_COLUMNS)


def chalans_csv(session: Session, client_id=None) -> io.StringIO:
    stream = io.StringIO()
    chalans_frame(session, client_id).to_csv(stream, index=False)
    stream.seek(0)
    return stream
