from typing import Generic, List, Optional, Type, TypeVar

from sqlmodel import Session, SQLModel, func, select

from chalanbook.errors import NotFound

T = TypeVar("T", bound=SQLModel)


class EntityStore(Generic[T]):
    """Plain CRUD over one table. No cross-table integrity is enforced here."""

    def __init__(self, session: Session, model: Type[T]):
        self.session = session
        self.model = model

    def list(self, **filters) -> List[T]:
        stmt = select(self.model)
        for field, value in filters.items():
            if value is not None:
                stmt = stmt.where(getattr(self.model, field) == value)
        return self.session.exec(stmt.order_by(self.model.id)).all()

    def get(self, id: int) -> Optional[T]:
        return self.session.get(self.model, id)

    def get_or_404(self, id: int) -> T:
        obj = self.get(id)
        if obj is None:
            raise NotFound(f"{self.model.__name__} {id} not found")
        return obj

    def create(self, fields: dict) -> T:
        obj = self.model(**fields)
        self.session.add(obj); self.session.commit(); self.session.refresh(obj)
        return obj

    def update(self, id: int, fields: dict) -> T:
        obj = self.get_or_404(id)
        for key, value in fields.items():
            setattr(obj, key, value)
        self.session.add(obj); self.session.commit(); self.session.refresh(obj)
        return obj

    def delete(self, id: int) -> bool:
        obj = self.get(id)
        if obj is None:
            return False
        self.session.delete(obj); self.session.commit()
        return True

    def count(self) -> int:
        return self.session.exec(select(func.count()).select_from(self.model)).one()
