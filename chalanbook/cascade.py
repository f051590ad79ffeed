"""Deleting a client together with its inventory and chalans.

The delete runs as a saga. Each step commits on its own, so a failure part
way leaves earlier steps applied. The saga then re-inserts the rows those
steps removed, newest step first, and reports what happened.
"""
import logging
from typing import Dict

from sqlmodel import Session, select

from chalanbook.errors import CascadeFailed
from chalanbook.models import Chalan, ChalanItem, Client, InventoryItem
from chalanbook.schemas import CascadeReport

logger = logging.getLogger(__name__)


class ClientCascadeDelete:
    # children first, so a failure never strands rows pointing at a missing client
    steps = ("chalans", "inventory", "client")

    def __init__(self, session: Session, client_id: int):
        self.session = session
        self.client_id = client_id
        self.report = CascadeReport(client_id=client_id)
        # step name -> [(model, row dicts)] needed to undo it
        self._undo: Dict[str, list] = {}

    def run(self) -> CascadeReport:
        for step in self.steps:
            try:
                removed = getattr(self, f"_delete_{step}")()
                self.session.commit()
            except Exception as exc:
                self.session.rollback()
                logger.exception("cascade delete of client %s failed at step %s", self.client_id, step)
                self.report.failed = step
                self.report.error = str(exc) or type(exc).__name__
                self._compensate()
                raise CascadeFailed(self.report, f"Cascade delete stopped at step '{step}'")
            self.report.completed.append(step)
            self.report.removed[step] = removed
            logger.info("cascade delete of client %s: %s removed %d rows", self.client_id, step, removed)
        return self.report

    def _compensate(self):
        for step in reversed(self.report.completed):
            try:
                for model, rows in self._undo.get(step, []):
                    for row in rows:
                        self.session.add(model(**row))
                    self.session.flush()
                self.session.commit()
            except Exception:
                self.session.rollback()
                logger.exception("could not restore step %s for client %s", step, self.client_id)
                continue
            self.report.compensated.append(step)

    def _remove(self, step: str, groups) -> int:
        """Snapshot then delete each (model, rows) group in order."""
        self._undo[step] = [(model, [r.model_dump() for r in rows]) for model, rows in groups]
        total = 0
        for _, rows in groups:
            for r in rows:
                self.session.delete(r)
            self.session.flush()
            total += len(rows)
        return total

    def _delete_chalans(self) -> int:
        chalans = self.session.exec(select(Chalan).where(Chalan.client_id == self.client_id)).all()
        ids = [c.id for c in chalans]
        items = self.session.exec(select(ChalanItem).where(ChalanItem.chalan_id.in_(ids))).all() if ids else []
        # undo order is chalans then items, delete order the reverse
        self._remove("chalans", [(ChalanItem, items), (Chalan, chalans)])
        self._undo["chalans"].reverse()
        return len(chalans)

    def _delete_inventory(self) -> int:
        rows = self.session.exec(select(InventoryItem).where(InventoryItem.client_id == self.client_id)).all()
        return self._remove("inventory", [(InventoryItem, rows)])

    def _delete_client(self) -> int:
        client = self.session.get(Client, self.client_id)
        return self._remove("client", [(Client, [client] if client else [])])
