"""
    Warehouse Service API

    This module implements a FastAPI-based service for running a warehouse: the
    item catalogue, inbound/outbound shipments with their line items, the
    activity log, stocktakes, staff tasks and worker accounts, with PostgreSQL persistence.

    The service exposes:
    - CRUD endpoints for items, shipments, stocktakes, tasks and workers under /api
    - Activity log queries, paginated search and a 7-day stock movement view
    - Health endpoint: Provides service health status for monitoring and orchestration

    Mutations are attributed to the worker named in an optional JWT bearer
    token; requests without one act as the system.
"""
import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, FastAPI, Query, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from . import activity, audit, auth, crud, models, schemas, stock_movement
from .auth import Actor
from .config import API_PREFIX, CORS_ORIGINS, LOG_LEVEL
from .database import engine, get_db
from .exceptions import NotFoundError, register_exception_handlers

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

# Create database tables
models.Base.metadata.create_all(bind=engine)

app = FastAPI(title="warehouse-service")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

api = APIRouter(prefix=API_PREFIX)


@app.get("/healthz", response_model=dict)
def health():
    """
    Health check endpoint for the warehouse service.

    This endpoint is typically used by orchestrators (like Kubernetes) or load balancers
    to determine if the service is running and ready to accept requests.

    Returns:
        dict: A dictionary containing the health status of the service.
            - status (str): "healthy" if the service is operational.

    Example:
        GET /healthz
        Response: {"status": "healthy"}
    """
    return {"status": "healthy"}


# Items

@api.get("/Items", response_model=List[schemas.Item])
def list_items(db: Session = Depends(get_db)):
    """List every item in the catalogue, ordered by SKU."""
    return crud.get_items(db)

@api.get("/Items/search", response_model=List[schemas.Item])
def search_items(query: Optional[str] = None, db: Session = Depends(get_db)):
    """
    Search items by SKU, name or category.

    Args:
        query: Case-insensitive substring to look for (empty returns all items)
        db: Database session (injected)

    Returns:
        List of matching item objects
    """
    return crud.search_items(db, query)

@api.get("/Items/low-stock", response_model=List[schemas.Item])
def list_low_stock_items(threshold: int = Query(10, ge=0), db: Session = Depends(get_db)):
    """List items whose quantity is at or below `threshold`, lowest first."""
    return crud.get_low_stock_items(db, threshold)

@api.get("/Items/{sku}", response_model=schemas.Item)
def get_item(sku: str, db: Session = Depends(get_db)):
    """
    Get a specific item by SKU.

    Args:
        sku: Item SKU
        db: Database session (injected)

    Returns:
        Item object

    Raises:
        NotFoundError: 404 if item not found
    """
    db_item = crud.get_item(db, sku)
    if db_item is None:
        raise NotFoundError(f"Item {sku} not found")
    return db_item

@api.post("/Items", response_model=schemas.Item, status_code=status.HTTP_201_CREATED)
def create_item(
    item: schemas.ItemCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(auth.get_current_actor)
):
    """
    Create a new item.

    The SKU in the response is authoritative: it is generated when the
    request leaves it empty (or sends "AUTO-GENERATE") and suffixed when the
    requested SKU is already taken.

    Args:
        item: Item data
        db: Database session (injected)
        actor: Acting worker (injected)

    Returns:
        Created item object

    Raises:
        ValidationError: 400 if a required field is missing
    """
    return crud.create_item(db, item, actor)

@api.put("/Items/{sku}", response_model=schemas.Item)
def update_item(
    sku: str,
    item: schemas.ItemUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(auth.get_current_actor)
):
    """Overwrite an item's fields. Returns 404 if the item does not exist."""
    return crud.update_item(db, sku, item, actor)

@api.delete("/Items/{sku}", status_code=status.HTTP_204_NO_CONTENT)
def delete_item(
    sku: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(auth.get_current_actor)
):
    """Delete an item. Returns 404 if the item does not exist."""
    crud.delete_item(db, sku, actor)


# Shipments

@api.get("/Shipments", response_model=List[schemas.Shipment])
def list_shipments(
    shipment_type: Optional[str] = Query(None, alias="type"),
    shipment_status: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = None,
    priority: Optional[str] = None,
    partner: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """
    List shipments with their lines.

    Args:
        type: Filter by Inbound/Outbound (optional)
        status: Filter by status, e.g. "InTransit" or "in transit" (optional)
        search: Substring of the shipment id or partner name (optional)
        priority: Filter by priority, any casing (optional)
        partner: Substring of the partner name (optional)
        db: Database session (injected)

    Returns:
        List of shipment objects
    """
    return crud.get_shipments(
        db, shipment_type=shipment_type, status=shipment_status, search=search,
        priority=priority, partner=partner
    )

@api.get("/Shipments/type/{shipment_type}", response_model=List[schemas.Shipment])
def list_shipments_by_type(shipment_type: str, db: Session = Depends(get_db)):
    """List shipments of one type (Inbound or Outbound, any casing)."""
    return crud.get_shipments(db, shipment_type=shipment_type)

@api.get("/Shipments/status/{shipment_status}", response_model=List[schemas.Shipment])
def list_shipments_by_status(shipment_status: str, db: Session = Depends(get_db)):
    return crud.get_shipments(db, status=shipment_status)

@api.get("/Shipments/priority/{priority}", response_model=List[schemas.Shipment])
def list_shipments_by_priority(priority: str, db: Session = Depends(get_db)):
    return crud.get_shipments(db, priority=priority)

@api.get("/Shipments/partner/{partner_name}", response_model=List[schemas.Shipment])
def list_shipments_by_partner(partner_name: str, db: Session = Depends(get_db)):
    """List shipments whose partner name contains `partner_name`, ignoring case."""
    return crud.get_shipments(db, partner=partner_name)

@api.get("/Shipments/{shipment_id}", response_model=schemas.Shipment)
def get_shipment(shipment_id: str, db: Session = Depends(get_db)):
    """Get a shipment with its lines. Returns 404 if it does not exist."""
    db_shipment = crud.get_shipment(db, shipment_id)
    if db_shipment is None:
        raise NotFoundError(f"Shipment {shipment_id} not found")
    return db_shipment

@api.post("/Shipments", response_model=schemas.Shipment, status_code=status.HTTP_201_CREATED)
def create_shipment(
    shipment: schemas.ShipmentCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(auth.get_current_actor)
):
    """
    Create a shipment with its lines.

    Args:
        shipment: Shipment data; the id is chosen by the client
        db: Database session (injected)
        actor: Acting worker (injected)

    Returns:
        Created shipment object

    Raises:
        ValidationError: 400 if a required field is missing or a line is invalid
        ConflictError: 409 if the id is already used
    """
    return crud.create_shipment(db, shipment, actor)

@api.put("/Shipments/{shipment_id}", response_model=schemas.Shipment)
def update_shipment(
    shipment_id: str,
    shipment: schemas.ShipmentUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(auth.get_current_actor)
):
    """
    Overwrite a shipment. The request's items replace the stored lines
    wholesale; sending no items removes every line.
    """
    return crud.update_shipment(db, shipment_id, shipment, actor)

@api.post("/Shipments/{shipment_id}/complete", response_model=schemas.Shipment)
def complete_shipment(
    shipment_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(auth.get_current_actor)
):
    """Mark a shipment as completed now."""
    return crud.complete_shipment(db, shipment_id, actor)

@api.delete("/Shipments/{shipment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_shipment(
    shipment_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(auth.get_current_actor)
):
    """Delete a shipment and its lines. Returns 404 if it does not exist."""
    crud.delete_shipment(db, shipment_id, actor)


# Activity logs

@api.get("/ActivityLogs", response_model=schemas.ActivityPage)
def search_activity_logs(
    action_type: Optional[str] = Query(None, alias="type"),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(100, ge=1, le=1000, alias="pageSize"),
    db: Session = Depends(get_db)
):
    """
    Search the activity log, newest first, one page at a time.

    Args:
        type: Action type to keep, ignoring case (optional)
        search: Text matched against description, item SKU and user name (optional)
        page: 1-based page number (default: 1)
        page_size: Entries per page (default: 100)
        db: Database session (injected)

    Returns:
        ActivityPage with the entries and whether another page exists
    """
    rows, has_more = activity.search_and_paginate(db, action_type, search, page, page_size)
    return schemas.ActivityPage(items=rows, page=page, page_size=page_size, has_more=has_more)

@api.get("/ActivityLogs/recent", response_model=List[schemas.ActivityLog])
def recent_activity_logs(count: int = Query(5, ge=1, le=1000), db: Session = Depends(get_db)):
    return activity.get_recent(db, count)

@api.get("/ActivityLogs/type/{action_type}", response_model=List[schemas.ActivityLog])
def activity_logs_by_type(action_type: str, count: int = Query(10, ge=1, le=1000), db: Session = Depends(get_db)):
    return activity.get_by_type(db, action_type, count)

@api.get("/ActivityLogs/item/{sku}", response_model=List[schemas.ActivityLog])
def activity_logs_by_item(sku: str, count: int = Query(10, ge=1, le=1000), db: Session = Depends(get_db)):
    return activity.get_by_item(db, sku, count)

@api.get("/ActivityLogs/user/{user_id}", response_model=List[schemas.ActivityLog])
def activity_logs_by_user(user_id: str, count: int = Query(10, ge=1, le=1000), db: Session = Depends(get_db)):
    return activity.get_by_user(db, user_id, count)

@api.get("/ActivityLogs/stockmovement", response_model=schemas.StockMovement)
def get_stock_movement(db: Session = Depends(get_db)):
    """
    Inbound and outbound volumes for the last seven days, Monday first.

    Volumes are rebuilt from the shipment ids items are currently located in.
    """
    return stock_movement.reconstruct_stock_movement(crud.get_items(db))

@api.post("/ActivityLogs", response_model=schemas.ActivityLog, status_code=status.HTTP_201_CREATED)
def create_activity_log(
    entry: schemas.ActivityLogCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(auth.get_current_actor)
):
    """
    Write an activity log entry directly.

    The entry is attributed to the body's userId, falling back to the caller.
    """
    user_id = entry.user_id if entry.user_id is not None else actor.user_id
    return audit.log_activity(db, entry.action_type, entry.description, entry.item_sku, user_id)


# Stocktakes

@api.get("/Stocktakes", response_model=List[schemas.Stocktake])
def list_stocktakes(db: Session = Depends(get_db)):
    """List stocktakes, most recently started first."""
    return crud.get_stocktakes(db)

@api.get("/Stocktakes/{stocktake_id}", response_model=schemas.Stocktake)
def get_stocktake(stocktake_id: int, db: Session = Depends(get_db)):
    db_stocktake = crud.get_stocktake(db, stocktake_id)
    if db_stocktake is None:
        raise NotFoundError(f"Stocktake {stocktake_id} not found")
    return db_stocktake

@api.post("/Stocktakes", response_model=schemas.Stocktake, status_code=status.HTTP_201_CREATED)
def create_stocktake(stocktake: schemas.StocktakeCreate, db: Session = Depends(get_db)):
    """Start a stocktake. It always begins "In Progress"."""
    return crud.create_stocktake(db, stocktake)

@api.put("/Stocktakes/{stocktake_id}", response_model=schemas.Stocktake)
def update_stocktake(stocktake_id: int, stocktake: schemas.StocktakeUpdate, db: Session = Depends(get_db)):
    """
    Overwrite a stocktake.

    Setting the status to Completed stamps completedAt; any other status
    clears it.
    """
    return crud.update_stocktake(db, stocktake_id, stocktake)

@api.post("/Stocktakes/{stocktake_id}/complete", response_model=schemas.Stocktake)
def complete_stocktake(stocktake_id: int, db: Session = Depends(get_db)):
    return crud.complete_stocktake(db, stocktake_id)

@api.delete("/Stocktakes/{stocktake_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_stocktake(stocktake_id: int, db: Session = Depends(get_db)):
    crud.delete_stocktake(db, stocktake_id)


# Tasks

@api.get("/Tasks", response_model=List[schemas.Task])
def list_tasks(db: Session = Depends(get_db)):
    """List every task, newest first."""
    return crud.get_tasks(db)

@api.get("/Tasks/Today", response_model=List[schemas.Task])
def list_today_tasks(db: Session = Depends(get_db)):
    """
    List tasks created or due today.

    High priority tasks come first, then open ones before completed ones.
    """
    return crud.get_today_tasks(db)

@api.get("/Tasks/{task_id}", response_model=schemas.Task)
def get_task(task_id: int, db: Session = Depends(get_db)):
    db_task = crud.get_task(db, task_id)
    if db_task is None:
        raise NotFoundError(f"Task {task_id} not found")
    return db_task

@api.post("/Tasks", response_model=schemas.Task, status_code=status.HTTP_201_CREATED)
def create_task(
    task: schemas.TaskCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(auth.get_current_actor)
):
    """
    Create a task.

    Raises:
        ValidationError: 400 if the title or due date is missing
    """
    return crud.create_task(db, task, actor)

@api.put("/Tasks/{task_id}", response_model=schemas.Task)
def update_task(
    task_id: int,
    task: schemas.TaskUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(auth.get_current_actor)
):
    """Overwrite a task. Returns 404 if the task does not exist."""
    return crud.update_task(db, task_id, task, actor)

@api.put("/Tasks/{task_id}/complete", response_model=schemas.Task)
def complete_task(
    task_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(auth.get_current_actor)
):
    """Mark a task as completed now."""
    return crud.complete_task(db, task_id, actor)

@api.delete("/Tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(
    task_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(auth.get_current_actor)
):
    crud.delete_task(db, task_id, actor)


# Workers

@api.get("/Workers", response_model=List[schemas.Worker])
def list_workers(db: Session = Depends(get_db)):
    return crud.get_workers(db)

@api.get("/Workers/{worker_id}", response_model=schemas.Worker)
def get_worker(worker_id: int, db: Session = Depends(get_db)):
    """
    Get a worker by ID.

    Raises:
        NotFoundError: 404 if worker not found
    """
    db_worker = crud.get_worker(db, worker_id)
    if db_worker is None:
        raise NotFoundError(f"Worker {worker_id} not found")
    return db_worker

@api.post("/Workers", response_model=schemas.Worker, status_code=status.HTTP_201_CREATED)
def create_worker(worker: schemas.WorkerCreate, db: Session = Depends(get_db)):
    """
    Create a worker account.

    Raises:
        ConflictError: 409 if the username or email is already used
    """
    return crud.create_worker(db, worker)

@api.put("/Workers/{worker_id}", response_model=schemas.Worker)
def update_worker(worker_id: int, worker: schemas.WorkerUpdate, db: Session = Depends(get_db)):
    return crud.update_worker(db, worker_id, worker)

@api.delete("/Workers/{worker_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_worker(worker_id: int, db: Session = Depends(get_db)):
    """Delete a worker account. The last admin cannot be deleted (400)."""
    crud.delete_worker(db, worker_id)


app.include_router(api)
