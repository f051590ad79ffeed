"""Default values and line bookkeeping for a chalan before it is saved.

Nothing here talks HTTP. ``next_serial_number`` reads the database; the rest
works on lists of :class:`ChalanLine` and returns new lists rather than
mutating the ones passed in.
"""
from typing import Iterable, List, Optional

from pydantic.alias_generators import to_camel
from sqlmodel import Session, select, func

from chalanbook.models import Chalan
from chalanbook.schemas import ChalanLine, ChalanLineIn

LINE_FACTORS = ("no_of_boxes", "cost_per_box")


def next_serial_number(session: Session, client_id: int) -> int:
    """Count of stored chalans for the client, plus one.

    Read-then-use with no reservation: two concurrent creations for the
    same client can both get the same number.
    """
    count = session.exec(
        select(func.count()).select_from(Chalan).where(Chalan.client_id == client_id)
    ).one()
    return count + 1


def line_total(no_of_boxes: int, cost_per_box: float) -> float:
    return no_of_boxes * cost_per_box


def apply_line_changes(line: ChalanLine, changes: dict) -> ChalanLine:
    """Return ``line`` with ``changes`` applied.

    Touching boxes or cost re-derives total_qty. An explicit total_qty in the
    same change set is applied after that, so it wins.
    """
    updated = line.model_copy(update={k: v for k, v in changes.items() if k != "total_qty"})
    if any(f in changes for f in LINE_FACTORS):
        updated.total_qty = line_total(updated.no_of_boxes, updated.cost_per_box)
    if "total_qty" in changes:
        updated.total_qty = changes["total_qty"]
    return updated


def renumber(lines: Iterable[ChalanLine]) -> List[ChalanLine]:
    return [line.model_copy(update={"sno": i}) for i, line in enumerate(lines, start=1)]


def add_blank_line(lines: List[ChalanLine]) -> List[ChalanLine]:
    return list(lines) + [ChalanLine(sno=len(lines) + 1)]


def remove_line(lines: List[ChalanLine], index: int) -> List[ChalanLine]:
    """Drop the line at 0-based ``index`` and renumber the rest 1..N-1."""
    if not 0 <= index < len(lines):
        raise IndexError(f"no line at position {index}")
    return renumber(line for i, line in enumerate(lines) if i != index)


def drop_blank_lines(lines: Iterable[ChalanLine]) -> List[ChalanLine]:
    return renumber(line for line in lines if line.particulars.strip())


def build_lines(lines_in: Iterable[ChalanLineIn]) -> List[ChalanLine]:
    """Turn submitted lines into stored lines.

    Blank particulars are dropped, the survivors are numbered 1..N and a
    missing total_qty is derived from boxes x cost.
    """
    lines = []
    for line in lines_in:
        total = line.total_qty
        if total is None:
            total = line_total(line.no_of_boxes, line.cost_per_box)
        lines.append(ChalanLine(
            particulars=line.particulars,
            no_of_boxes=line.no_of_boxes,
            cost_per_box=line.cost_per_box,
            total_qty=total,
        ))
    return drop_blank_lines(lines)


def suggest_item_names(item_names: Iterable[str], text: str) -> List[str]:
    """Names containing ``text``, case-insensitively, in their original order."""
    if not text.strip():
        return []
    needle = text.lower()
    return [name for name in item_names if needle in name.lower()]


class ChalanDraft:
    """A chalan being filled in on the client side.

    Holds the header fields and the editable line list, and produces the
    body for ``POST /chalans``. Starts with one blank line, like the form.
    """

    def __init__(self, client_id: int, serial_number: Optional[int] = None, **header):
        self.client_id = client_id
        self.serial_number = serial_number
        self.header = header
        self.lines: List[ChalanLine] = [ChalanLine(sno=1)]

    def add_line(self) -> ChalanLine:
        self.lines = add_blank_line(self.lines)
        return self.lines[-1]

    def set_line(self, index: int, **changes) -> ChalanLine:
        self.lines[index] = apply_line_changes(self.lines[index], changes)
        return self.lines[index]

    def remove_line(self, index: int):
        self.lines = remove_line(self.lines, index)

    @property
    def total_qty(self) -> float:
        return sum(line.total_qty for line in self.lines)

    def to_payload(self) -> dict:
        items = [
            {"particulars": l.particulars, "noOfBoxes": l.no_of_boxes,
             "costPerBox": l.cost_per_box, "totalQty": l.total_qty}
            for l in drop_blank_lines(self.lines)
        ]
        payload = {"clientId": self.client_id, "items": items}
        payload.update({to_camel(k): v for k, v in self.header.items()})
        return payload
