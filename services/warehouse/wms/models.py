"""
SQLAlchemy ORM models for the Warehouse service.

Defines the database schema for items, shipments, shipment lines, activity
logs, stocktakes and workers.
"""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, Text
from sqlalchemy.orm import relationship
from .database import Base

class Item(Base):
    """
    Item model representing one stock keeping unit held in the warehouse.

    Attributes:
        sku (str): Primary key, unique item identifier (e.g., "SKU-4821-317")
        name (str): Display name of the item
        category (str): Item category (e.g., "Packaging", "Apparel")
        quantity (int): Units on hand
        location (str): Shelf code, or the id of the shipment currently holding the item
        condition (str): Item condition (e.g., "New", "Damaged")
        notes (str): Free-form notes (optional)
        created_at (datetime): Timestamp when the item was created
        updated_at (datetime): Timestamp of the last modification
        created_by (str): Display name of the actor who created the item
        updated_by (str): Display name of the actor who last modified the item
    """
    __tablename__ = "items"

    sku = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    category = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    location = Column(String, nullable=False)
    condition = Column(String, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    created_by = Column(String, default="System", nullable=False)
    updated_by = Column(String, default="System", nullable=False)


class Shipment(Base):
    """
    Shipment model representing an inbound or outbound batch of items.

    Attributes:
        id (str): Primary key, caller-supplied id (e.g., "IN20250601001")
        type (str): "Inbound" or "Outbound"
        partner_name (str): Supplier or customer on the other end
        status (str): Pending, Processing, InTransit, Completed or Delayed
        priority (str): Low, Medium, High or Urgent
        eta (datetime): Expected arrival/departure time
        notes (str): Free-form notes (optional)
        created_at (datetime): Timestamp when the shipment was created
        created_by (str): Display name of the creating actor
        completed_at (datetime): Timestamp of completion (optional)
        completed_by (str): Display name of the completing actor (optional)
        items (list): ShipmentLine rows owned by this shipment
    """
    __tablename__ = "shipments"

    id = Column(String, primary_key=True, index=True)
    type = Column(String, nullable=False, index=True)
    partner_name = Column(String, nullable=False)
    status = Column(String, nullable=False, default="Pending")
    priority = Column(String, nullable=False, default="Medium")
    eta = Column(DateTime, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    created_by = Column(String, default="System", nullable=False)
    completed_at = Column(DateTime, nullable=True)
    completed_by = Column(String, nullable=True)

    items = relationship(
        "ShipmentLine",
        back_populates="shipment",
        cascade="all, delete-orphan",
        order_by="ShipmentLine.sku",
    )


class ShipmentLine(Base):
    """
    ShipmentLine model: one item-and-quantity entry within a shipment.

    The (shipment_id, sku) pair is the primary key, so an item appears at
    most once per shipment. The sku is a weak reference: deleting an item
    leaves historical lines in place.

    Attributes:
        shipment_id (str): Foreign key to the owning shipment
        sku (str): SKU of the item being moved
        quantity (int): Units moved, always positive
        notes (str): Free-form notes (optional)
    """
    __tablename__ = "shipment_lines"

    shipment_id = Column(String, ForeignKey("shipments.id", ondelete="CASCADE"), primary_key=True)
    sku = Column(String, primary_key=True, index=True)
    quantity = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)

    shipment = relationship("Shipment", back_populates="items")


class ActivityLog(Base):
    """
    ActivityLog model: an append-only audit record describing one mutation.

    Attributes:
        id (int): Primary key, auto-incrementing log ID
        action_type (str): Add, Remove, Update, Move, Error or Info
        description (str): Human-readable description of what happened
        item_sku (str): SKU or shipment id the entry refers to (optional, not a foreign key)
        user_id (str): Id of the acting worker (optional, null means system)
        user_name (str): Display name resolved when the entry was written
        timestamp (datetime): When the mutation happened
    """
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    action_type = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=False)
    item_sku = Column(String, nullable=True, index=True)
    user_id = Column(String, nullable=True, index=True)
    user_name = Column(String, nullable=True)
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)


class Stocktake(Base):
    """
    Stocktake model representing a physical count of one shelf.

    Attributes:
        id (int): Primary key, auto-incremented stocktake ID
        zone (str): Warehouse zone being counted
        shelf (str): Shelf being counted
        counter (str): Name of the person counting
        started_at (datetime): When the count started
        completed_at (datetime): When the count was completed (optional)
        status (str): "In Progress", "Completed" or "Cancelled"
        notes (str): Free-form notes (optional)
    """
    __tablename__ = "stocktakes"

    id = Column(Integer, primary_key=True, index=True)
    zone = Column(String, nullable=False)
    shelf = Column(String, nullable=False)
    counter = Column(String, nullable=False)
    started_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    status = Column(String, nullable=False, default="In Progress")
    notes = Column(Text, nullable=True)


class WarehouseTask(Base):
    """
    WarehouseTask model representing a to-do assigned to warehouse staff.

    Attributes:
        id (int): Primary key, auto-incremented task ID
        title (str): Short title
        description (str): Longer description (optional)
        due_date (datetime): When the task is due
        created_at (datetime): Timestamp when the task was created
        updated_at (datetime): Timestamp of the last modification
        completed_at (datetime): When the task was completed (optional)
        status (str): "Pending", "In Progress", "Completed" or "Overdue"
        priority (str): Low, Medium, High or Urgent
        category (str): e.g. "General", "Inventory", "Shipping"
        assigned_to (str): Worker the task is assigned to (optional)
        is_completed (bool): Mirrors status == "Completed"
        related_item_sku (str): Weak reference to an item (optional)
        related_shipment_id (str): Weak reference to a shipment (optional)
    """
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    due_date = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    status = Column(String, nullable=False, default="Pending")
    priority = Column(String, nullable=False, default="Medium")
    category = Column(String(50), nullable=True, default="General")
    assigned_to = Column(String(50), nullable=True)
    is_completed = Column(Boolean, nullable=False, default=False)
    related_item_sku = Column(String, nullable=True)
    related_shipment_id = Column(String, nullable=True)


class Worker(Base):
    """
    Worker model representing a warehouse staff account.

    Attributes:
        id (int): Primary key, auto-incremented worker ID
        username (str): Login name (unique), used as the display name in audit logs
        password_hash (str): Hashed password
        email (str): Email address (unique)
        full_name (str): Worker's full name
        phone_number (str): Contact number (optional)
        role (str): Admin, Manager or Employee
        department (str): Department (optional)
        created_at (datetime): Timestamp when the worker was created
        last_login (datetime): Timestamp of the last login (optional)
        is_active (bool): Whether the account is active
    """
    __tablename__ = "workers"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String(100), nullable=False)
    phone_number = Column(String(20), nullable=True)
    role = Column(String, default="Employee", nullable=False)
    department = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_login = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
