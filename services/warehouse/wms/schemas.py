"""
Pydantic schemas for request/response validation in the Warehouse service.

These schemas define the structure of data for API requests and responses.
Field names are camelCase on the wire; requests may use either spelling.
"""
from datetime import datetime
from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


class LenientEnum(str, Enum):
    """String enum that also accepts different casing and spacing ("in transit" -> InTransit)."""

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            key = value.replace(" ", "").replace("_", "").lower()
            for member in cls:
                if member.value.replace(" ", "").lower() == key:
                    return member
        return None


class ActionType(LenientEnum):
    ADD = "Add"
    REMOVE = "Remove"
    UPDATE = "Update"
    MOVE = "Move"
    ERROR = "Error"
    INFO = "Info"


class ShipmentType(LenientEnum):
    INBOUND = "Inbound"
    OUTBOUND = "Outbound"


class ShipmentStatus(LenientEnum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    IN_TRANSIT = "InTransit"
    COMPLETED = "Completed"
    DELAYED = "Delayed"


class Priority(LenientEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    URGENT = "Urgent"


class StocktakeStatus(LenientEnum):
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class TaskStatus(LenientEnum):
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    OVERDUE = "Overdue"


class WorkerRole(LenientEnum):
    ADMIN = "Admin"
    MANAGER = "Manager"
    EMPLOYEE = "Employee"


class CamelModel(BaseModel):
    """Base schema: camelCase aliases, population by field name, ORM reads."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


# Items

class ItemCreate(CamelModel):
    """
    Schema for creating an item.

    An empty sku or "AUTO-GENERATE" asks the server to generate one using
    sku_prefix (or the configured default). Required text fields are checked
    by validators.require_fields so a blank value is reported like a missing one.
    """
    sku: Optional[str] = None
    sku_prefix: Optional[str] = None
    name: Optional[str] = None
    category: Optional[str] = None
    quantity: int = Field(default=0, ge=0, description="Units on hand")
    location: Optional[str] = None
    condition: Optional[str] = None
    notes: Optional[str] = None


class ItemUpdate(CamelModel):
    """Schema for updating an item. The sku, if sent, must match the path."""
    sku: Optional[str] = None
    name: Optional[str] = None
    category: Optional[str] = None
    quantity: int = Field(default=0, ge=0, description="Units on hand")
    location: Optional[str] = None
    condition: Optional[str] = None
    notes: Optional[str] = None


class Item(CamelModel):
    """Schema for item responses, includes all database fields."""
    sku: str
    name: str
    category: str
    quantity: int
    location: str
    condition: str
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    created_by: str
    updated_by: str


# Shipments

class ShipmentLineIn(CamelModel):
    """Schema for one line of a shipment request."""
    sku: str = Field(..., description="SKU of an existing item")
    quantity: int = Field(..., gt=0, description="Units moved")
    notes: Optional[str] = None


class ShipmentFields(CamelModel):
    """Fields shared by shipment create and update requests."""
    type: Optional[ShipmentType] = None
    partner_name: Optional[str] = None
    status: ShipmentStatus = ShipmentStatus.PENDING
    priority: Priority = Priority.MEDIUM
    eta: Optional[datetime] = None
    notes: Optional[str] = None
    items: List[ShipmentLineIn] = Field(default_factory=list, description="Shipment lines")

    @field_validator("type", "status", "priority", mode="before")
    @classmethod
    def parse_enum(cls, value, info):
        if value is None or isinstance(value, Enum):
            return value
        enum_cls = {"type": ShipmentType, "status": ShipmentStatus, "priority": Priority}[info.field_name]
        return enum_cls(value)

    @field_validator("items", mode="before")
    @classmethod
    def none_means_no_lines(cls, value):
        return [] if value is None else value


class ShipmentCreate(ShipmentFields):
    """Schema for creating a shipment. The id is supplied by the caller."""
    id: Optional[str] = None


class ShipmentUpdate(ShipmentFields):
    """
    Schema for updating a shipment.

    The items list replaces the stored lines wholesale; an omitted list
    removes every line.
    """
    id: Optional[str] = None


class ShipmentLine(CamelModel):
    """Schema for shipment line responses."""
    shipment_id: str
    sku: str
    quantity: int
    notes: Optional[str] = None


class Shipment(CamelModel):
    """Schema for shipment responses, includes lines."""
    id: str
    type: str
    partner_name: str
    status: str
    priority: str
    eta: datetime
    notes: Optional[str] = None
    created_at: datetime
    created_by: str
    completed_at: Optional[datetime] = None
    completed_by: Optional[str] = None
    items: List[ShipmentLine] = Field(default_factory=list)


# Activity logs

class ActivityLogCreate(CamelModel):
    """Schema for writing an activity log entry directly."""
    action_type: ActionType
    description: str = Field(..., min_length=1)
    item_sku: Optional[str] = Field(default=None, alias="itemSKU")
    user_id: Optional[str] = None

    @field_validator("action_type", mode="before")
    @classmethod
    def parse_action_type(cls, value):
        return value if isinstance(value, ActionType) else ActionType(value)

    @field_validator("user_id", mode="before")
    @classmethod
    def stringify_user_id(cls, value):
        return str(value) if isinstance(value, int) else value


class ActivityLog(CamelModel):
    """
    Schema for activity log responses.

    Attributes:
        id (int): Log entry ID
        action_type (str): Add, Remove, Update, Move, Error or Info
        description (str): Human-readable description
        item_sku (str): Related SKU or shipment id, serialised as "itemSKU"
        user_id (str): Acting worker id (null for system actions)
        user_name (str): Acting worker's display name
        timestamp (datetime): When the action happened
    """
    id: int
    action_type: str
    description: str
    item_sku: Optional[str] = Field(default=None, alias="itemSKU")
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    timestamp: datetime


class ActivityPage(CamelModel):
    """One page of activity log search results."""
    items: List[ActivityLog]
    page: int
    page_size: int
    has_more: bool


class StockMovement(CamelModel):
    """Seven-day inbound/outbound volumes, Monday first."""
    days: List[str]
    inbound: List[int]
    outbound: List[int]


# Stocktakes

class StocktakeCreate(CamelModel):
    """Schema for starting a stocktake. Status and start time are set by the server."""
    zone: Optional[str] = None
    shelf: Optional[str] = None
    counter: Optional[str] = None
    notes: Optional[str] = None


class Stocktake(CamelModel):
    """Schema for stocktake responses."""
    id: int
    zone: str
    shelf: str
    counter: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    status: str
    notes: Optional[str] = None


class StocktakeUpdate(CamelModel):
    """Schema for overwriting a stocktake. The id, if sent, must match the path."""
    id: Optional[int] = None
    zone: Optional[str] = None
    shelf: Optional[str] = None
    counter: Optional[str] = None
    status: StocktakeStatus = StocktakeStatus.IN_PROGRESS
    notes: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, value):
        return value if isinstance(value, StocktakeStatus) else StocktakeStatus(value)


# Tasks

class TaskFields(CamelModel):
    """Fields shared by task create and update requests."""
    title: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    due_date: Optional[datetime] = None
    status: TaskStatus = TaskStatus.PENDING
    priority: Priority = Priority.MEDIUM
    category: Optional[str] = Field(default="General", max_length=50)
    assigned_to: Optional[str] = Field(default=None, max_length=50)
    related_item_sku: Optional[str] = Field(default=None, alias="relatedItemSKU")
    related_shipment_id: Optional[str] = None

    @field_validator("status", "priority", mode="before")
    @classmethod
    def parse_enum(cls, value, info):
        if isinstance(value, Enum):
            return value
        return {"status": TaskStatus, "priority": Priority}[info.field_name](value)


class TaskCreate(TaskFields):
    """Schema for creating a task."""


class TaskUpdate(TaskFields):
    """Schema for overwriting a task. The id, if sent, must match the path."""
    id: Optional[int] = None


class Task(CamelModel):
    """
    Schema for task responses.

    Attributes:
        id (int): Task ID
        title (str): Short title
        due_date (datetime): When the task is due
        status (str): Pending, In Progress, Completed or Overdue
        is_completed (bool): True once the task is completed
        completed_at (datetime): When the task was completed (null while open)
        related_item_sku (str): Related item, serialised as "relatedItemSKU"
    """
    id: int
    title: str
    description: Optional[str] = None
    due_date: datetime
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    status: str
    priority: str
    category: Optional[str] = None
    assigned_to: Optional[str] = None
    is_completed: bool
    related_item_sku: Optional[str] = Field(default=None, alias="relatedItemSKU")
    related_shipment_id: Optional[str] = None


# Workers

class WorkerCreate(CamelModel):
    """Schema for creating a worker account."""
    username: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=8, description="Password must be at least 8 characters")
    email: EmailStr
    full_name: str = Field(..., min_length=1, max_length=100)
    phone_number: Optional[str] = Field(default=None, max_length=20)
    role: WorkerRole = WorkerRole.EMPLOYEE
    department: Optional[str] = None

    @field_validator("role", mode="before")
    @classmethod
    def parse_role(cls, value):
        return value if isinstance(value, WorkerRole) else WorkerRole(value)


class WorkerUpdate(CamelModel):
    """Schema for updating a worker. The password is re-hashed only when supplied."""
    email: EmailStr
    full_name: str = Field(..., min_length=1, max_length=100)
    phone_number: Optional[str] = Field(default=None, max_length=20)
    role: WorkerRole = WorkerRole.EMPLOYEE
    department: Optional[str] = None
    is_active: bool = True
    password: Optional[str] = Field(default=None, min_length=8)

    @field_validator("role", mode="before")
    @classmethod
    def parse_role(cls, value):
        return value if isinstance(value, WorkerRole) else WorkerRole(value)


class Worker(CamelModel):
    """Schema for worker responses. The password hash is never exposed."""
    id: int
    username: str
    email: str
    full_name: str
    phone_number: Optional[str] = None
    role: str
    department: Optional[str] = None
    created_at: datetime
    last_login: Optional[datetime] = None
    is_active: bool
