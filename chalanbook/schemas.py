"""Request and response bodies.

Python attributes are snake_case; the JSON wire format is camelCase
(``clientId``, ``noOfBoxes``), matching what the web front end sends.
"""
from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

Role = Literal["root", "add-only", "edit", "full"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def not_null(value):
    # omitted fields are left alone; an explicit null would hit a NOT NULL column
    if value is None:
        raise ValueError("may be omitted but not null")
    return value


def as_utc(value: datetime) -> datetime:
    # stored timestamps are UTC; some backends hand them back without tzinfo
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


# Identity

class RegisterIn(CamelModel):
    username: str = Field(min_length=1)
    email: str = ""
    password: str = Field(min_length=1)
    role: Optional[Role] = None
    is_root: bool = False

class LoginIn(CamelModel):
    username: str
    password: str

class TokenOut(CamelModel):
    token: str

class Claims(CamelModel):
    """Identity embedded in an access token."""
    id: int
    username: str
    role: Role
    is_root: bool = False

class UserOut(CamelModel):
    id: int
    username: str
    email: str
    role: Role
    is_root: bool


# Clients

class ClientCreate(CamelModel):
    name: str = Field(min_length=1)
    address: str = ""
    phone: str = ""
    email: str = ""

class ClientUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None

    reject_nulls = field_validator("name", "address", "phone", "email")(not_null)

class ClientOut(CamelModel):
    id: int
    name: str
    address: str
    phone: str
    email: str
    created_at: datetime

    utc_created_at = field_validator("created_at")(as_utc)


# Inventory

class InventoryCreate(CamelModel):
    client_id: int
    item_name: str = Field(min_length=1)
    description: Optional[str] = None

class InventoryUpdate(CamelModel):
    client_id: Optional[int] = None
    item_name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None

    reject_nulls = field_validator("client_id", "item_name")(not_null)

class InventoryOut(CamelModel):
    id: int
    client_id: int
    item_name: str
    description: Optional[str] = None
    created_at: datetime

    utc_created_at = field_validator("created_at")(as_utc)


# Chalans

class ChalanLine(CamelModel):
    """One line of a chalan while it is being assembled."""
    sno: int = 1
    particulars: str = ""
    no_of_boxes: int = Field(default=0, ge=0)
    cost_per_box: float = Field(default=0.0, ge=0)
    total_qty: float = 0.0

class ChalanLineIn(CamelModel):
    sno: Optional[int] = None
    particulars: str = ""
    no_of_boxes: int = Field(default=0, ge=0)
    cost_per_box: float = Field(default=0.0, ge=0)
    # omitted means "derive from boxes x cost"
    total_qty: Optional[float] = None

class ChalanLineUpdate(CamelModel):
    particulars: Optional[str] = None
    no_of_boxes: Optional[int] = Field(default=None, ge=0)
    cost_per_box: Optional[float] = Field(default=None, ge=0)
    total_qty: Optional[float] = None

    reject_nulls = field_validator("particulars", "no_of_boxes", "cost_per_box", "total_qty")(not_null)

class ChalanItemOut(ChalanLine):
    id: int

class ChalanCreate(CamelModel):
    client_id: int
    date: str = ""
    po_date: str = ""
    po_number: str = ""
    vehicle_no: str = ""
    remarks: str = ""
    items: List[ChalanLineIn] = []

class ChalanUpdate(CamelModel):
    client_id: Optional[int] = None
    serial_number: Optional[int] = None
    date: Optional[str] = None
    po_date: Optional[str] = None
    po_number: Optional[str] = None
    vehicle_no: Optional[str] = None
    remarks: Optional[str] = None
    items: Optional[List[ChalanLineIn]] = None

    reject_nulls = field_validator(
        "client_id", "serial_number", "date", "po_date", "po_number", "vehicle_no", "remarks",
    )(not_null)

class ChalanOut(CamelModel):
    id: int
    client_id: int
    client: dict
    serial_number: int
    date: str
    po_date: str
    po_number: str
    vehicle_no: str
    remarks: str
    items: List[ChalanItemOut]
    created_by: str
    created_at: datetime

    utc_created_at = field_validator("created_at")(as_utc)


# Misc

class MessageOut(CamelModel):
    message: str

class CascadeReport(CamelModel):
    """Outcome of a client cascade delete, step by step."""
    client_id: int
    completed: List[str] = []
    removed: Dict[str, int] = {}
    failed: Optional[str] = None
    error: Optional[str] = None
    compensated: List[str] = []

    @property
    def ok(self) -> bool:
        return self.failed is None

class ClientDeleteOut(CamelModel):
    message: str
    report: Optional[CascadeReport] = None

class SerialOut(CamelModel):
    serial_number: int

class SummaryOut(CamelModel):
    clients: int
    inventory: int
    chalans: int

class ImportResult(CamelModel):
    imported: int
    skipped: int
