"""Chalan persistence: header row in ``chalan``, lines in ``chalanitem``."""
from typing import List

from sqlmodel import Session, select

from chalanbook import assembly
from chalanbook.errors import NotFound
from chalanbook.models import Chalan, ChalanItem, Client
from chalanbook.schemas import (
    ChalanCreate, ChalanLine, ChalanLineUpdate, ChalanUpdate, Claims, ClientOut,
)
from chalanbook.store import EntityStore


def client_snapshot(client: Client) -> dict:
    return ClientOut.model_validate(client).model_dump(by_alias=True, mode="json")


def load_items(session: Session, chalan_id: int) -> List[ChalanItem]:
    return session.exec(
        select(ChalanItem).where(ChalanItem.chalan_id == chalan_id).order_by(ChalanItem.sno)
    ).all()


def chalan_to_dict(session: Session, chalan: Chalan) -> dict:
    out = chalan.model_dump()
    out["items"] = [it.model_dump() for it in load_items(session, chalan.id)]
    return out


def _replace_items(session: Session, chalan_id: int, lines: List[ChalanLine]):
    for it in load_items(session, chalan_id):
        session.delete(it)
    for line in lines:
        session.add(ChalanItem(chalan_id=chalan_id, **line.model_dump()))


def _get_client(session: Session, client_id: int) -> Client:
    client = session.get(Client, client_id)
    if not client:
        raise NotFound(f"Client {client_id} not found")
    return client


def create_chalan(session: Session, data: ChalanCreate, claims: Claims) -> Chalan:
    client = _get_client(session, data.client_id)
    chalan = Chalan(
        client_id=client.id,
        client=client_snapshot(client),
        serial_number=assembly.next_serial_number(session, client.id),
        created_by=claims.username,
        **data.model_dump(exclude={"client_id", "items"}),
    )
    session.add(chalan); session.flush()
    _replace_items(session, chalan.id, assembly.build_lines(data.items))
    session.commit(); session.refresh(chalan)
    return chalan


def update_chalan(session: Session, chalan_id: int, data: ChalanUpdate) -> Chalan:
    chalan = EntityStore(session, Chalan).get_or_404(chalan_id)
    fields = data.model_dump(exclude_unset=True, exclude={"items"})
    if fields.get("client_id") is not None and fields["client_id"] != chalan.client_id:
        chalan.client = client_snapshot(_get_client(session, fields["client_id"]))
    for key, value in fields.items():
        if value is not None:
            setattr(chalan, key, value)
    if data.items is not None:
        _replace_items(session, chalan.id, assembly.build_lines(data.items))
    session.add(chalan); session.commit(); session.refresh(chalan)
    return chalan


def _item_by_sno(items: List[ChalanItem], chalan_id: int, sno: int) -> int:
    for index, it in enumerate(items):
        if it.sno == sno:
            return index
    raise NotFound(f"Chalan {chalan_id} has no line {sno}")


def update_line(session: Session, chalan_id: int, sno: int, changes: ChalanLineUpdate) -> Chalan:
    chalan = EntityStore(session, Chalan).get_or_404(chalan_id)
    items = load_items(session, chalan_id)
    row = items[_item_by_sno(items, chalan_id, sno)]
    line = assembly.apply_line_changes(
        ChalanLine.model_validate(row), changes.model_dump(exclude_unset=True)
    )
    for key, value in line.model_dump(exclude={"sno"}).items():
        setattr(row, key, value)
    session.add(row); session.commit(); session.refresh(chalan)
    return chalan


def remove_line(session: Session, chalan_id: int, sno: int) -> Chalan:
    chalan = EntityStore(session, Chalan).get_or_404(chalan_id)
    items = load_items(session, chalan_id)
    index = _item_by_sno(items, chalan_id, sno)
    lines = assembly.remove_line([ChalanLine.model_validate(it) for it in items], index)
    session.delete(items.pop(index))
    for row, line in zip(items, lines):
        row.sno = line.sno
        session.add(row)
    session.commit(); session.refresh(chalan)
    return chalan


def delete_chalan(session: Session, chalan_id: int) -> bool:
    chalan = session.get(Chalan, chalan_id)
    if not chalan:
        return False
    for it in load_items(session, chalan_id):
        session.delete(it)
    session.flush()
    session.delete(chalan); session.commit()
    return True
