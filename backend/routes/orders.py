# backend/routes/orders.py
import logging
from contextlib import contextmanager

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from sqlalchemy.orm import Session

from database import get_db
from models.users import User, ADMIN_ROLE
from schemas.order import (
    OrderCreatePayload, OrderStatusPatch, OrderCreatedResponse, OrderListResponse,
    OrderDetailResponse, OrderStatusResponse, ErrorResponse,
)
from services.exceptions import OrderError, InternalError
from services.notifications import NotificationDispatcher, get_dispatcher
from services.order_service import OrderService
from utils.tokenJWT import get_current_user, role_required

router = APIRouter(
    prefix="/orders",
    tags=["Orders"],
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
logger = logging.getLogger(__name__)


def get_order_service(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> OrderService:
    # Notifications run after the response has been sent
    return OrderService(db, dispatcher, schedule=background_tasks.add_task)


# Known failures pass through; anything else is logged and reported as a bare 500
@contextmanager
def _operation(name: str):
    try:
        yield
    except OrderError:
        raise
    except Exception as e:
        logger.exception("--- %s Error --- %s", name, e)
        raise InternalError() from e


def _client_ip(request: Request):
    return request.client.host if request.client else None


# Place an order from the caller's cart
@router.post("", response_model=OrderCreatedResponse, status_code=status.HTTP_201_CREATED)
def create_order(
    payload: OrderCreatePayload,
    request: Request,
    service: OrderService = Depends(get_order_service),
    current_user: User = Depends(get_current_user),
):
    with _operation("Create Order"):
        order = service.create_order(current_user.id, payload, ip=_client_ip(request))
    return OrderCreatedResponse(message="Order placed successfully!", order=order)


# List every order, newest first (Admin only)
@router.get("", response_model=OrderListResponse)
def list_orders(
    service: OrderService = Depends(get_order_service),
    current_user: User = Depends(role_required(ADMIN_ROLE)),
):
    with _operation("Get All Orders"):
        orders = service.list_orders()
    return OrderListResponse(data=orders)


# Order detail with items, product images and customer (Admin only)
@router.get("/{order_id}", response_model=OrderDetailResponse, responses={404: {"model": ErrorResponse}})
def get_order(
    order_id: str,
    service: OrderService = Depends(get_order_service),
    current_user: User = Depends(role_required(ADMIN_ROLE)),
):
    with _operation("Get Order By ID"):
        order = service.get_order(order_id)
    return OrderDetailResponse(data=order)


# Change order status and notify the customer where the new status calls for it (Admin only)
@router.patch("/{order_id}/status", response_model=OrderStatusResponse, responses={404: {"model": ErrorResponse}})
def update_order_status(
    order_id: str,
    payload: OrderStatusPatch,
    request: Request,
    service: OrderService = Depends(get_order_service),
    current_user: User = Depends(role_required(ADMIN_ROLE)),
):
    with _operation("Update Order Status"):
        order = service.update_order_status(order_id, payload.status, ip=_client_ip(request))
    return OrderStatusResponse(message=f"Order status updated to {order.status}.", data=order)
