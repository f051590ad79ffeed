from typing import Optional
from sqlalchemy import Index, text
from sqlmodel import SQLModel, Field, Column, JSON
from datetime import datetime, timezone

def utcnow():
    return datetime.now(timezone.utc)

class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, unique=True)
    email: str = ""
    password_hash: str
    role: str = "add-only"
    is_root: bool = False

    # at most one row may carry is_root
    __table_args__ = (
        Index("uq_user_single_root", "is_root", unique=True,
              sqlite_where=text("is_root = 1"), postgresql_where=text("is_root")),
    )

class Client(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    address: str = ""
    phone: str = ""
    email: str = ""
    created_at: datetime = Field(default_factory=utcnow)

class InventoryItem(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    # not a real foreign key: the store leaves client integrity to the caller
    client_id: int = Field(index=True)
    item_name: str
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)

class Chalan(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    client_id: int = Field(index=True)
    # point-in-time copy of the client row
    client: dict = Field(default_factory=dict, sa_column=Column(JSON))
    serial_number: int
    date: str = ""
    po_date: str = ""
    po_number: str = ""
    vehicle_no: str = ""
    remarks: str = ""
    created_by: str = ""
    created_at: datetime = Field(default_factory=utcnow)

class ChalanItem(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    chalan_id: int = Field(foreign_key="chalan.id", index=True)
    sno: int
    particulars: str = ""
    no_of_boxes: int = 0
    cost_per_box: float = 0.0
    total_qty: float = 0.0
