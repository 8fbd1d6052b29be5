"""
CRUD (Create, Read, Update, Delete) operations for the Warehouse service.

Every item and shipment mutation writes its audit entry into the same
transaction, so a change is either committed together with its log row or
not at all.
"""
import logging
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional, Set
from sqlalchemy import and_, case, func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import FlushError

from . import audit, auth, cache, keys, models, schemas, validators
from .auth import Actor, SYSTEM_ACTOR
from .config import DEFAULT_LOCATION, SKU_MAX_ATTEMPTS
from .exceptions import ConflictError, InternalError, NotFoundError, ValidationError
from .activity import LIKE_ESCAPE, escape_like
from .schemas import (
    ActionType, Priority, ShipmentStatus, ShipmentType, StocktakeStatus, TaskStatus, WorkerRole
)

# Set up logging
logger = logging.getLogger(__name__)

# Errors raised when a primary key or unique column is already taken
KEY_CONFLICTS = (IntegrityError, FlushError)


def _commit(db: Session, action: str, conflicts: bool = False) -> None:
    """
    Commit the session, rolling back on failure.

    With conflicts=True, key conflicts are re-raised for the caller to
    translate. Any other store failure is logged and becomes InternalError.
    """
    try:
        db.commit()
    except KEY_CONFLICTS as e:
        db.rollback()
        if conflicts:
            raise
        logger.exception(f"Failed to {action}")
        raise InternalError() from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Failed to {action}")
        raise InternalError() from e


def _normalize(enum_cls, value: str) -> str:
    """Map a loosely spelled enum value onto its stored form, leaving unknown values as-is."""
    try:
        return enum_cls(value).value
    except ValueError:
        return value


# Items

def get_item(db: Session, sku: str) -> Optional[models.Item]:
    """
    Retrieve a single item by SKU.

    Args:
        db: Database session
        sku: SKU of the item to retrieve

    Returns:
        Item object or None if not found
    """
    return db.query(models.Item).filter(models.Item.sku == sku).first()

def get_items(db: Session) -> List[models.Item]:
    """Retrieve every item, ordered by SKU."""
    return db.query(models.Item).order_by(models.Item.sku).all()

def search_items(db: Session, query: Optional[str]) -> List[models.Item]:
    """
    Find items whose SKU, name or category contains the query, ignoring case.

    An empty query returns every item.
    """
    if not query or not query.strip():
        return get_items(db)
    pattern = f"%{escape_like(query.strip())}%"
    return db.query(models.Item).filter(or_(
        models.Item.sku.ilike(pattern, escape=LIKE_ESCAPE),
        models.Item.name.ilike(pattern, escape=LIKE_ESCAPE),
        models.Item.category.ilike(pattern, escape=LIKE_ESCAPE),
    )).order_by(models.Item.sku).all()

def get_low_stock_items(db: Session, threshold: int = 10) -> List[models.Item]:
    """Retrieve items whose quantity is at or below the threshold."""
    return db.query(models.Item).filter(
        models.Item.quantity <= threshold
    ).order_by(models.Item.quantity, models.Item.sku).all()

def create_item(db: Session, item: schemas.ItemCreate, actor: Actor = SYSTEM_ACTOR) -> models.Item:
    """
    Create a new item.

    The stored SKU may differ from the requested one: an empty request gets
    a generated SKU and a taken SKU is renamed (see keys.resolve_item_sku).
    If another request inserts the same SKU between the check and the
    commit, the SKU is resolved again.

    Args:
        db: Database session
        item: Item data to create
        actor: Acting identity

    Returns:
        Created Item object

    Raises:
        ValidationError: if a required field is missing
        ConflictError: if no free SKU could be found
    """
    validators.require_fields(item, validators.ITEM_REQUIRED_FIELDS)
    actor_name = audit.resolve_user_name(db, actor.user_id)

    for attempt in range(1, SKU_MAX_ATTEMPTS + 1):
        sku = keys.resolve_item_sku(db, item.sku, item.sku_prefix)
        now = datetime.utcnow()
        db_item = models.Item(
            sku=sku,
            name=item.name,
            category=item.category,
            quantity=item.quantity,
            location=item.location,
            condition=item.condition,
            notes=item.notes,
            created_at=now,
            updated_at=now,
            created_by=actor_name,
            updated_by=actor_name
        )
        db.add(db_item)
        audit.log_activity(
            db, ActionType.ADD, f"Added item {item.name} ({sku})",
            item_sku=sku, user_id=actor.user_id, commit=False
        )
        try:
            _commit(db, f"create item {sku}", conflicts=True)
        except KEY_CONFLICTS as e:
            if not keys.item_exists(db, sku):
                # The failure was not caused by the SKU
                logger.exception(f"Failed to create item {sku}")
                raise InternalError() from e
            logger.warning(f"SKU '{sku}' was taken concurrently, retrying ({attempt}/{SKU_MAX_ATTEMPTS})")
            continue
        db.refresh(db_item)
        logger.info(f"Created item {sku}")
        return db_item

    raise ConflictError(f"Unable to allocate a unique SKU for item {item.name}.")

def update_item(db: Session, sku: str, item: schemas.ItemUpdate, actor: Actor = SYSTEM_ACTOR) -> models.Item:
    """
    Overwrite the mutable fields of an existing item. The SKU never changes.

    Args:
        db: Database session
        sku: SKU of the item to update
        item: Updated item data
        actor: Acting identity

    Returns:
        Updated Item object

    Raises:
        ValidationError: if a required field is missing or the body SKU differs
        NotFoundError: if the item does not exist
    """
    validators.require_fields(item, validators.ITEM_REQUIRED_FIELDS)
    validators.validate_path_key(sku, item.sku, "sku")

    db_item = get_item(db, sku)
    if db_item is None:
        raise NotFoundError(f"Item {sku} not found")

    for field in ("name", "category", "quantity", "location", "condition", "notes"):
        setattr(db_item, field, getattr(item, field))
    db_item.updated_at = datetime.utcnow()
    db_item.updated_by = audit.resolve_user_name(db, actor.user_id)

    audit.log_activity(
        db, ActionType.UPDATE, f"Updated item {db_item.name} ({sku})",
        item_sku=sku, user_id=actor.user_id, commit=False
    )
    _commit(db, f"update item {sku}")
    db.refresh(db_item)
    logger.info(f"Updated item {sku}")
    return db_item

def delete_item(db: Session, sku: str, actor: Actor = SYSTEM_ACTOR) -> None:
    """
    Delete an item.

    The name is captured before deletion so the log entry stays readable.

    Raises:
        NotFoundError: if the item does not exist
    """
    db_item = get_item(db, sku)
    if db_item is None:
        raise NotFoundError(f"Item {sku} not found")

    name = db_item.name
    db.delete(db_item)
    audit.log_activity(
        db, ActionType.REMOVE, f"Removed item {name} ({sku})",
        item_sku=sku, user_id=actor.user_id, commit=False
    )
    _commit(db, f"delete item {sku}")
    logger.info(f"Deleted item {sku}")


# Shipments

def get_shipment(db: Session, shipment_id: str) -> Optional[models.Shipment]:
    """
    Retrieve a single shipment (with its lines) by ID.

    Args:
        db: Database session
        shipment_id: ID of the shipment to retrieve

    Returns:
        Shipment object or None if not found
    """
    return db.query(models.Shipment).filter(models.Shipment.id == shipment_id).first()

def get_shipments(
    db: Session,
    shipment_type: Optional[str] = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
    priority: Optional[str] = None,
    partner: Optional[str] = None
) -> List[models.Shipment]:
    """
    Retrieve shipments, optionally filtered.

    Args:
        db: Database session
        shipment_type: Inbound/Outbound, any casing (optional)
        status: Shipment status, any casing or spacing (optional)
        search: Substring of the id or partner name (optional)
        priority: Low/Medium/High/Urgent, any casing (optional)
        partner: Substring of the partner name (optional)

    Returns:
        List of Shipment objects ordered by id
    """
    query = db.query(models.Shipment)
    if shipment_type:
        query = query.filter(models.Shipment.type == _normalize(ShipmentType, shipment_type))
    if status:
        query = query.filter(models.Shipment.status == _normalize(ShipmentStatus, status))
    if priority:
        query = query.filter(models.Shipment.priority == _normalize(Priority, priority))
    if partner:
        query = query.filter(
            models.Shipment.partner_name.ilike(f"%{escape_like(partner)}%", escape=LIKE_ESCAPE)
        )
    if search:
        pattern = f"%{escape_like(search)}%"
        query = query.filter(or_(
            models.Shipment.id.ilike(pattern, escape=LIKE_ESCAPE),
            models.Shipment.partner_name.ilike(pattern, escape=LIKE_ESCAPE),
        ))
    return query.order_by(models.Shipment.id).all()

def _existing_skus(db: Session, skus: Iterable[str]) -> Set[str]:
    skus = {sku for sku in skus if sku}
    if not skus:
        return set()
    rows = db.query(models.Item.sku).filter(models.Item.sku.in_(skus)).all()
    return {row.sku for row in rows}

def _build_lines(lines: List[schemas.ShipmentLineIn]) -> List[models.ShipmentLine]:
    return [
        models.ShipmentLine(sku=line.sku, quantity=line.quantity, notes=line.notes)
        for line in lines
    ]

def _move_items_to_shipment(db: Session, shipment_id: str, skus: List[str], actor: Actor,
                            actor_name: str, now: datetime) -> None:
    """Point each item's location at the shipment, logging a Move for every item that changes."""
    if not skus:
        return
    items = db.query(models.Item).filter(models.Item.sku.in_(skus)).order_by(models.Item.sku).all()
    for item in items:
        if item.location == shipment_id:
            continue
        item.location = shipment_id
        item.updated_at = now
        item.updated_by = actor_name
        audit.log_activity(
            db, ActionType.MOVE, f"Item {item.sku} moved to shipment {shipment_id}",
            item_sku=item.sku, user_id=actor.user_id, commit=False
        )

def create_shipment(db: Session, shipment: schemas.ShipmentCreate, actor: Actor = SYSTEM_ACTOR) -> models.Shipment:
    """
    Create a shipment with its lines.

    The id comes from the caller; a duplicate is reported as a conflict by the
    store's primary key rather than by a pre-check. Line items are moved into
    the shipment (their location becomes the shipment id).

    Args:
        db: Database session
        shipment: Shipment data, including lines
        actor: Acting identity

    Returns:
        Created Shipment object

    Raises:
        ValidationError: if a required field is missing or a line is invalid
        ConflictError: if the shipment id already exists
    """
    validators.require_fields(shipment, ("id",) + validators.SHIPMENT_REQUIRED_FIELDS)
    validators.validate_shipment_lines(
        shipment.items, _existing_skus(db, (line.sku for line in shipment.items))
    )

    actor_name = audit.resolve_user_name(db, actor.user_id)
    now = datetime.utcnow()
    completed = shipment.status == ShipmentStatus.COMPLETED
    db_shipment = models.Shipment(
        id=shipment.id,
        type=shipment.type.value,
        partner_name=shipment.partner_name,
        status=shipment.status.value,
        priority=shipment.priority.value,
        eta=shipment.eta,
        notes=shipment.notes,
        created_at=now,
        created_by=actor_name,
        completed_at=now if completed else None,
        completed_by=actor_name if completed else None
    )
    db_shipment.items = _build_lines(shipment.items)
    db.add(db_shipment)

    _move_items_to_shipment(db, shipment.id, [line.sku for line in shipment.items], actor, actor_name, now)
    audit.log_activity(
        db, ActionType.ADD, f"Created new {db_shipment.type} shipment {shipment.id}",
        item_sku=shipment.id, user_id=actor.user_id, commit=False
    )
    try:
        _commit(db, f"create shipment {shipment.id}", conflicts=True)
    except KEY_CONFLICTS as e:
        if get_shipment(db, shipment.id) is None:
            logger.exception(f"Failed to create shipment {shipment.id}")
            raise InternalError() from e
        logger.warning(f"Shipment {shipment.id} already exists")
        raise ConflictError(f"Shipment with ID {shipment.id} already exists.")

    db.refresh(db_shipment)
    logger.info(f"Created shipment {shipment.id} with {len(shipment.items)} lines")
    return db_shipment

def update_shipment(db: Session, shipment_id: str, shipment: schemas.ShipmentUpdate,
                    actor: Actor = SYSTEM_ACTOR) -> models.Shipment:
    """
    Overwrite a shipment and replace its lines wholesale.

    Lines missing from the request are deleted; there is no merge. Moving the
    status to Completed stamps the completion time, any other change keeps
    the existing stamp.

    Args:
        db: Database session
        shipment_id: ID of the shipment to update
        shipment: Updated shipment data, including the full line set
        actor: Acting identity

    Returns:
        Updated Shipment object

    Raises:
        ValidationError: if a required field is missing or a line is invalid
        NotFoundError: if the shipment does not exist
    """
    validators.require_fields(shipment, validators.SHIPMENT_REQUIRED_FIELDS)
    validators.validate_path_key(shipment_id, shipment.id, "id")

    db_shipment = get_shipment(db, shipment_id)
    if db_shipment is None:
        raise NotFoundError(f"Shipment {shipment_id} not found")
    validators.validate_shipment_lines(
        shipment.items, _existing_skus(db, (line.sku for line in shipment.items))
    )

    actor_name = audit.resolve_user_name(db, actor.user_id)
    now = datetime.utcnow()
    was_completed = db_shipment.status == ShipmentStatus.COMPLETED.value

    db_shipment.type = shipment.type.value
    db_shipment.partner_name = shipment.partner_name
    db_shipment.status = shipment.status.value
    db_shipment.priority = shipment.priority.value
    db_shipment.eta = shipment.eta
    db_shipment.notes = shipment.notes
    if shipment.status == ShipmentStatus.COMPLETED and not was_completed:
        db_shipment.completed_at = now
        db_shipment.completed_by = actor_name

    # Delete every stored line before inserting the requested set
    db_shipment.items.clear()
    try:
        db.flush()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Failed to clear lines of shipment {shipment_id}")
        raise InternalError() from e
    db_shipment.items.extend(_build_lines(shipment.items))

    _move_items_to_shipment(db, shipment_id, [line.sku for line in shipment.items], actor, actor_name, now)
    audit.log_activity(
        db, ActionType.UPDATE, f"Updated {db_shipment.type} shipment {shipment_id}",
        item_sku=shipment_id, user_id=actor.user_id, commit=False
    )
    _commit(db, f"update shipment {shipment_id}")

    db.refresh(db_shipment)
    logger.info(f"Updated shipment {shipment_id} with {len(shipment.items)} lines")
    return db_shipment

def delete_shipment(db: Session, shipment_id: str, actor: Actor = SYSTEM_ACTOR) -> None:
    """
    Delete a shipment together with its lines.

    Items still located in the shipment go back to the default location.

    Raises:
        NotFoundError: if the shipment does not exist
    """
    db_shipment = get_shipment(db, shipment_id)
    if db_shipment is None:
        raise NotFoundError(f"Shipment {shipment_id} not found")

    actor_name = audit.resolve_user_name(db, actor.user_id)
    now = datetime.utcnow()
    skus = [line.sku for line in db_shipment.items]
    if skus:
        held = db.query(models.Item).filter(
            models.Item.sku.in_(skus),
            models.Item.location == shipment_id
        ).order_by(models.Item.sku).all()
        for item in held:
            item.location = DEFAULT_LOCATION
            item.updated_at = now
            item.updated_by = actor_name
            audit.log_activity(
                db, ActionType.MOVE,
                f"Item {item.sku} returned to {DEFAULT_LOCATION} from deleted shipment {shipment_id}",
                item_sku=item.sku, user_id=actor.user_id, commit=False
            )

    shipment_type = db_shipment.type
    db.delete(db_shipment)
    audit.log_activity(
        db, ActionType.REMOVE, f"Deleted {shipment_type} shipment {shipment_id}",
        item_sku=shipment_id, user_id=actor.user_id, commit=False
    )
    _commit(db, f"delete shipment {shipment_id}")
    logger.info(f"Deleted shipment {shipment_id}")

def complete_shipment(db: Session, shipment_id: str, actor: Actor = SYSTEM_ACTOR) -> models.Shipment:
    """
    Mark a shipment as completed now. Lines and items are left untouched.

    Raises:
        NotFoundError: if the shipment does not exist
    """
    db_shipment = get_shipment(db, shipment_id)
    if db_shipment is None:
        raise NotFoundError(f"Shipment {shipment_id} not found")

    db_shipment.status = ShipmentStatus.COMPLETED.value
    db_shipment.completed_at = datetime.utcnow()
    db_shipment.completed_by = audit.resolve_user_name(db, actor.user_id)
    audit.log_activity(
        db, ActionType.UPDATE, f"Completed {db_shipment.type} shipment {shipment_id}",
        item_sku=shipment_id, user_id=actor.user_id, commit=False
    )
    _commit(db, f"complete shipment {shipment_id}")
    db.refresh(db_shipment)
    logger.info(f"Completed shipment {shipment_id}")
    return db_shipment


# Stocktakes

def get_stocktakes(db: Session) -> List[models.Stocktake]:
    return db.query(models.Stocktake).order_by(models.Stocktake.started_at.desc(), models.Stocktake.id.desc()).all()

def get_stocktake(db: Session, stocktake_id: int) -> Optional[models.Stocktake]:
    return db.query(models.Stocktake).filter(models.Stocktake.id == stocktake_id).first()

def create_stocktake(db: Session, stocktake: schemas.StocktakeCreate) -> models.Stocktake:
    """
    Start a stocktake. It always begins In Progress, stamped with the current time.

    Raises:
        ValidationError: if zone, shelf or counter is missing
    """
    validators.require_fields(stocktake, validators.STOCKTAKE_REQUIRED_FIELDS)
    db_stocktake = models.Stocktake(
        zone=stocktake.zone,
        shelf=stocktake.shelf,
        counter=stocktake.counter,
        notes=stocktake.notes,
        started_at=datetime.utcnow(),
        status=StocktakeStatus.IN_PROGRESS.value
    )
    db.add(db_stocktake)
    _commit(db, "create stocktake")
    db.refresh(db_stocktake)
    logger.info(f"Started stocktake {db_stocktake.id} for {stocktake.zone}/{stocktake.shelf}")
    return db_stocktake

def complete_stocktake(db: Session, stocktake_id: int) -> models.Stocktake:
    db_stocktake = get_stocktake(db, stocktake_id)
    if db_stocktake is None:
        raise NotFoundError(f"Stocktake {stocktake_id} not found")
    db_stocktake.status = StocktakeStatus.COMPLETED.value
    db_stocktake.completed_at = datetime.utcnow()
    _commit(db, f"complete stocktake {stocktake_id}")
    db.refresh(db_stocktake)
    logger.info(f"Completed stocktake {stocktake_id}")
    return db_stocktake

def update_stocktake(db: Session, stocktake_id: int, stocktake: schemas.StocktakeUpdate) -> models.Stocktake:
    """
    Overwrite a stocktake's zone, shelf, counter, status and notes.

    Moving to Completed stamps completedAt once; moving away from Completed
    clears it.

    Raises:
        ValidationError: if a required field is missing or the body id differs
        NotFoundError: if the stocktake does not exist
    """
    validators.require_fields(stocktake, validators.STOCKTAKE_REQUIRED_FIELDS)
    validators.validate_path_key(stocktake_id, stocktake.id, "id")

    db_stocktake = get_stocktake(db, stocktake_id)
    if db_stocktake is None:
        raise NotFoundError(f"Stocktake {stocktake_id} not found")

    db_stocktake.zone = stocktake.zone
    db_stocktake.shelf = stocktake.shelf
    db_stocktake.counter = stocktake.counter
    db_stocktake.status = stocktake.status.value
    db_stocktake.notes = stocktake.notes
    if stocktake.status == StocktakeStatus.COMPLETED:
        if db_stocktake.completed_at is None:
            db_stocktake.completed_at = datetime.utcnow()
    else:
        db_stocktake.completed_at = None

    _commit(db, f"update stocktake {stocktake_id}")
    db.refresh(db_stocktake)
    logger.info(f"Updated stocktake {stocktake_id}")
    return db_stocktake

def delete_stocktake(db: Session, stocktake_id: int) -> None:
    db_stocktake = get_stocktake(db, stocktake_id)
    if db_stocktake is None:
        raise NotFoundError(f"Stocktake {stocktake_id} not found")
    db.delete(db_stocktake)
    _commit(db, f"delete stocktake {stocktake_id}")
    logger.info(f"Deleted stocktake {stocktake_id}")


# Tasks

def get_tasks(db: Session) -> List[models.WarehouseTask]:
    """Retrieve every task, newest first."""
    return db.query(models.WarehouseTask).order_by(
        models.WarehouseTask.created_at.desc(), models.WarehouseTask.id.desc()
    ).all()

def get_task(db: Session, task_id: int) -> Optional[models.WarehouseTask]:
    return db.query(models.WarehouseTask).filter(models.WarehouseTask.id == task_id).first()

def get_today_tasks(db: Session, today: date = None) -> List[models.WarehouseTask]:
    """
    Retrieve tasks created or due today.

    High priority tasks come first, then open tasks before completed ones,
    then the newest.

    Args:
        db: Database session
        today: Reference date (defaults to the current UTC date, the clock
            creation times are stamped with)

    Returns:
        List of WarehouseTask objects
    """
    today = today or datetime.utcnow().date()
    start = datetime.combine(today, time.min)
    end = start + timedelta(days=1)
    task = models.WarehouseTask
    return db.query(task).filter(or_(
        and_(task.created_at >= start, task.created_at < end),
        and_(task.due_date >= start, task.due_date < end),
    )).order_by(
        case((task.priority == Priority.HIGH.value, 0), else_=1),
        case((task.status == TaskStatus.COMPLETED.value, 1), else_=0),
        task.created_at.desc(),
    ).all()

def _apply_task_fields(db_task: models.WarehouseTask, task: schemas.TaskFields, now: datetime) -> None:
    db_task.title = task.title
    db_task.description = task.description
    db_task.due_date = task.due_date
    db_task.status = task.status.value
    db_task.priority = task.priority.value
    db_task.category = task.category or "General"
    db_task.assigned_to = task.assigned_to
    db_task.related_item_sku = task.related_item_sku
    db_task.related_shipment_id = task.related_shipment_id
    db_task.updated_at = now
    completed = task.status == TaskStatus.COMPLETED
    db_task.is_completed = completed
    if completed:
        if db_task.completed_at is None:
            db_task.completed_at = now
    else:
        db_task.completed_at = None

def create_task(db: Session, task: schemas.TaskCreate, actor: Actor = SYSTEM_ACTOR) -> models.WarehouseTask:
    """
    Create a task and log it.

    Args:
        db: Database session
        task: Task data
        actor: Acting identity

    Returns:
        Created WarehouseTask object

    Raises:
        ValidationError: if the title or due date is missing
    """
    validators.require_fields(task, validators.TASK_REQUIRED_FIELDS)
    now = datetime.utcnow()
    db_task = models.WarehouseTask(created_at=now)
    _apply_task_fields(db_task, task, now)
    db.add(db_task)
    try:
        db.flush()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Failed to insert task")
        raise InternalError() from e

    audit.log_activity(
        db, ActionType.ADD, f"Task {db_task.id} '{db_task.title}' was created",
        item_sku=db_task.related_item_sku, user_id=actor.user_id, commit=False
    )
    _commit(db, f"create task {db_task.id}")
    db.refresh(db_task)
    logger.info(f"Created task {db_task.id}")
    return db_task

def update_task(db: Session, task_id: int, task: schemas.TaskUpdate, actor: Actor = SYSTEM_ACTOR) -> models.WarehouseTask:
    """
    Overwrite a task and log the update.

    Raises:
        ValidationError: if a required field is missing or the body id differs
        NotFoundError: if the task does not exist
    """
    validators.require_fields(task, validators.TASK_REQUIRED_FIELDS)
    validators.validate_path_key(task_id, task.id, "id")

    db_task = get_task(db, task_id)
    if db_task is None:
        raise NotFoundError(f"Task {task_id} not found")

    _apply_task_fields(db_task, task, datetime.utcnow())
    audit.log_activity(
        db, ActionType.UPDATE, f"Task {task_id} '{db_task.title}' was updated",
        item_sku=db_task.related_item_sku, user_id=actor.user_id, commit=False
    )
    _commit(db, f"update task {task_id}")
    db.refresh(db_task)
    logger.info(f"Updated task {task_id}")
    return db_task

def complete_task(db: Session, task_id: int, actor: Actor = SYSTEM_ACTOR) -> models.WarehouseTask:
    """
    Mark a task as completed now.

    Raises:
        NotFoundError: if the task does not exist
    """
    db_task = get_task(db, task_id)
    if db_task is None:
        raise NotFoundError(f"Task {task_id} not found")

    now = datetime.utcnow()
    db_task.status = TaskStatus.COMPLETED.value
    db_task.is_completed = True
    db_task.completed_at = now
    db_task.updated_at = now
    audit.log_activity(
        db, ActionType.UPDATE, f"Task {task_id} '{db_task.title}' was marked as completed",
        item_sku=db_task.related_item_sku, user_id=actor.user_id, commit=False
    )
    _commit(db, f"complete task {task_id}")
    db.refresh(db_task)
    logger.info(f"Completed task {task_id}")
    return db_task

def delete_task(db: Session, task_id: int, actor: Actor = SYSTEM_ACTOR) -> None:
    """
    Delete a task and log it.

    Raises:
        NotFoundError: if the task does not exist
    """
    db_task = get_task(db, task_id)
    if db_task is None:
        raise NotFoundError(f"Task {task_id} not found")

    title, related_sku = db_task.title, db_task.related_item_sku
    db.delete(db_task)
    audit.log_activity(
        db, ActionType.REMOVE, f"Task {task_id} '{title}' was deleted",
        item_sku=related_sku, user_id=actor.user_id, commit=False
    )
    _commit(db, f"delete task {task_id}")
    logger.info(f"Deleted task {task_id}")


# Workers

def get_workers(db: Session) -> List[models.Worker]:
    return db.query(models.Worker).order_by(models.Worker.id).all()

def get_worker(db: Session, worker_id: int) -> Optional[models.Worker]:
    return db.query(models.Worker).filter(models.Worker.id == worker_id).first()

def _email_taken(db: Session, email: str, exclude_id: Optional[int] = None) -> bool:
    query = db.query(models.Worker.id).filter(func.lower(models.Worker.email) == email.lower())
    if exclude_id is not None:
        query = query.filter(models.Worker.id != exclude_id)
    return query.first() is not None

def create_worker(db: Session, worker: schemas.WorkerCreate) -> models.Worker:
    """
    Create a worker account with a hashed password.

    Raises:
        ConflictError: if the username or email is already used
    """
    if db.query(models.Worker.id).filter(models.Worker.username == worker.username).first():
        raise ConflictError("Username already exists")
    if _email_taken(db, worker.email):
        raise ConflictError("Email already exists")

    db_worker = models.Worker(
        username=worker.username,
        password_hash=auth.get_password_hash(worker.password),
        email=worker.email,
        full_name=worker.full_name,
        phone_number=worker.phone_number,
        role=worker.role.value,
        department=worker.department,
        created_at=datetime.utcnow(),
        is_active=True
    )
    db.add(db_worker)
    try:
        _commit(db, f"create worker {worker.username}", conflicts=True)
    except KEY_CONFLICTS:
        raise ConflictError("Username or email already exists")
    db.refresh(db_worker)
    logger.info(f"Created worker {db_worker.id} ({db_worker.username})")
    return db_worker

def update_worker(db: Session, worker_id: int, worker: schemas.WorkerUpdate) -> models.Worker:
    """
    Update a worker's profile. The username is fixed; the password is
    re-hashed only when a new one is supplied.

    Raises:
        NotFoundError: if the worker does not exist
        ConflictError: if the email belongs to another worker
    """
    db_worker = get_worker(db, worker_id)
    if db_worker is None:
        raise NotFoundError(f"Worker {worker_id} not found")
    if _email_taken(db, worker.email, exclude_id=worker_id):
        raise ConflictError("Email already exists")

    db_worker.email = worker.email
    db_worker.full_name = worker.full_name
    db_worker.phone_number = worker.phone_number
    db_worker.role = worker.role.value
    db_worker.department = worker.department
    db_worker.is_active = worker.is_active
    if worker.password:
        db_worker.password_hash = auth.get_password_hash(worker.password)

    try:
        _commit(db, f"update worker {worker_id}", conflicts=True)
    except KEY_CONFLICTS:
        raise ConflictError("Email already exists")
    cache.delete_cache(cache.worker_name_key(str(worker_id)))
    db.refresh(db_worker)
    logger.info(f"Updated worker {worker_id} ({db_worker.username})")
    return db_worker

def delete_worker(db: Session, worker_id: int) -> None:
    """
    Delete a worker account. The last remaining admin cannot be deleted.

    Raises:
        NotFoundError: if the worker does not exist
        ValidationError: if the worker is the last admin
    """
    db_worker = get_worker(db, worker_id)
    if db_worker is None:
        raise NotFoundError(f"Worker {worker_id} not found")
    if db_worker.role == WorkerRole.ADMIN.value:
        admins = db.query(func.count(models.Worker.id)).filter(
            models.Worker.role == WorkerRole.ADMIN.value
        ).scalar()
        if admins <= 1:
            raise ValidationError("role", "Cannot delete the last admin user")

    db.delete(db_worker)
    _commit(db, f"delete worker {worker_id}")
    cache.delete_cache(cache.worker_name_key(str(worker_id)))
    logger.info(f"Deleted worker {worker_id}")
