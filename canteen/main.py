"""
FastAPI Application Entry Point

Campus Canteen Ordering Backend.

Endpoints:
    - POST /auth/signup, POST /auth/login: Accounts and bearer tokens
    - GET  /health: System health check
    - GET  /canteens: Canteen listing
    - GET  /menu, POST /menu, PUT /menu/{id}, DELETE /menu/{id}: Menu catalog
    - POST /orders: Place an order (student/staff)
    - GET  /orders/my: Caller's own orders
    - GET  /orders/kitchen/queue: Active orders for the kitchen's canteen
    - GET  /orders/kitchen/history: Completed orders
    - PATCH /orders/{id}/status: Advance an order (kitchen/admin)
    - GET  /orders/admin/today, /orders/admin/stats: Daily views (admin)
    - POST /payments/create-order: Gateway order for online payment
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from canteen.core.config import Settings, get_settings, setup_logging
from canteen.core.exceptions import (
    CanteenError,
    DependencyError,
    PaymentGatewayError,
    ValidationError,
)
from canteen.core.security import get_current_principal
from canteen.database import Database, get_db
from canteen.schemas import (
    AuthResponse,
    CanteenResponse,
    DailyStatsResponse,
    ErrorResponse,
    HealthResponse,
    LoginRequest,
    MenuItemCreate,
    MenuItemResponse,
    MenuItemUpdate,
    MessageResponse,
    OrderCreate,
    OrderResponse,
    OrderStatusUpdate,
    PaymentOrderCreate,
    PaymentOrderResponse,
    SignupRequest,
)
from canteen.services.access import AccessPolicy, Capability, Principal
from canteen.services.accounts import AccountService
from canteen.services.directory import CanteenDirectory
from canteen.services.menu import MenuCatalog
from canteen.services.orders import OrderService
from canteen.services.payment import (
    BasePaymentGateway,
    PaymentCustomer,
    create_payment_gateway,
)

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    settings: Settings = app.state.settings

    # Startup
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    database = Database.from_settings(settings)
    await database.create_all()
    app.state.database = database
    logger.info("✅ Database initialized")

    gateway = create_payment_gateway(settings)
    app.state.payment_gateway = gateway
    logger.info(f"✅ Payment Gateway: {gateway.provider_name}")

    missing = settings.validate_production_config()
    if missing:
        logger.warning(f"⚠️ Missing production config: {missing}")

    logger.info("✅ Application ready!")

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await gateway.close()
    await database.dispose()
    logger.info("✅ Cleanup complete")


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_policy(request: Request) -> AccessPolicy:
    return request.app.state.policy


def get_order_service(
    db: AsyncSession = Depends(get_db),
    policy: AccessPolicy = Depends(get_policy),
) -> OrderService:
    return OrderService(db, policy=policy)


def get_menu_catalog(db: AsyncSession = Depends(get_db)) -> MenuCatalog:
    return MenuCatalog(db)


def get_payment_gateway(request: Request) -> BasePaymentGateway:
    return request.app.state.payment_gateway


def parse_id(value: str, label: str) -> int:
    """Path ids are validated here so a malformed id is a 400, not a 422."""
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {label} id")
    if parsed <= 0:
        raise ValidationError(f"Invalid {label} id")
    return parsed


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@router.get("/", tags=["Root"])
async def root(request: Request) -> dict[str, str]:
    """API root with navigation links."""
    settings: Settings = request.app.state.settings
    return {
        "message": f"{settings.app_name} running",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@router.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(request: Request) -> HealthResponse:
    """Verify database and payment gateway are operational."""
    database: Database = request.app.state.database
    gateway: BasePaymentGateway = request.app.state.payment_gateway

    db_status = "healthy"
    try:
        await database.ping()
    except Exception as e:
        db_status = "unhealthy"
        logger.error(f"Database health check failed: {e}")

    payment_status = "healthy" if await gateway.health_check() else "unhealthy"

    overall = "ok" if db_status == payment_status == "healthy" else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        payment_service=payment_status,
        timestamp=datetime.now(),
    )


# =============================================================================
# AUTH ENDPOINTS
# =============================================================================

def get_account_service(request: Request, db: AsyncSession = Depends(get_db)) -> AccountService:
    return AccountService(db, request.app.state.settings)


@router.post(
    "/auth/signup",
    status_code=201,
    response_model=AuthResponse,
    responses=ERROR_RESPONSES,
    tags=["Auth"],
)
async def signup(
    data: SignupRequest,
    accounts: AccountService = Depends(get_account_service),
) -> AuthResponse:
    return await accounts.signup(data)


@router.post(
    "/auth/login",
    response_model=AuthResponse,
    responses=ERROR_RESPONSES,
    tags=["Auth"],
)
async def login(
    data: LoginRequest,
    accounts: AccountService = Depends(get_account_service),
) -> AuthResponse:
    """Exchange email, password and expected role for a 7-day bearer token."""
    return await accounts.login(data)


# =============================================================================
# CANTEEN & MENU ENDPOINTS
# =============================================================================

@router.get("/canteens", response_model=list[CanteenResponse], tags=["Canteens"])
async def list_canteens(db: AsyncSession = Depends(get_db)) -> list[CanteenResponse]:
    canteens = await CanteenDirectory(db).list()
    return [CanteenResponse.model_validate(c) for c in canteens]


@router.get(
    "/menu",
    response_model=list[MenuItemResponse],
    responses=ERROR_RESPONSES,
    tags=["Menu"],
)
async def list_menu(
    canteen_id: Optional[int] = Query(None, alias="canteenId"),
    principal: Principal = Depends(get_current_principal),
    policy: AccessPolicy = Depends(get_policy),
    catalog: MenuCatalog = Depends(get_menu_catalog),
) -> list[MenuItemResponse]:
    """
    Students, staff and kitchen see the available items of one canteen;
    admins see everything, optionally filtered by canteen.
    """
    policy.require(principal, Capability.READ_MENU)
    show_all = policy.sees_unavailable_items(principal)
    if not show_all and canteen_id is None:
        raise ValidationError("canteenId is required")

    items = await catalog.list(canteen_id=canteen_id, available_only=not show_all)
    return [MenuItemResponse.model_validate(item) for item in items]


@router.post(
    "/menu",
    status_code=201,
    response_model=MenuItemResponse,
    responses=ERROR_RESPONSES,
    tags=["Menu"],
)
async def create_menu_item(
    data: MenuItemCreate,
    principal: Principal = Depends(get_current_principal),
    policy: AccessPolicy = Depends(get_policy),
    catalog: MenuCatalog = Depends(get_menu_catalog),
) -> MenuItemResponse:
    policy.require(principal, Capability.MANAGE_MENU)
    item = await catalog.create(data)
    return MenuItemResponse.model_validate(item)


@router.put(
    "/menu/{item_id}",
    response_model=MenuItemResponse,
    responses=ERROR_RESPONSES,
    tags=["Menu"],
)
async def update_menu_item(
    item_id: str,
    data: MenuItemUpdate,
    principal: Principal = Depends(get_current_principal),
    policy: AccessPolicy = Depends(get_policy),
    catalog: MenuCatalog = Depends(get_menu_catalog),
) -> MenuItemResponse:
    policy.require(principal, Capability.MANAGE_MENU)
    item = await catalog.update(parse_id(item_id, "menu item"), data)
    return MenuItemResponse.model_validate(item)


@router.delete(
    "/menu/{item_id}",
    response_model=MessageResponse,
    responses=ERROR_RESPONSES,
    tags=["Menu"],
)
async def delete_menu_item(
    item_id: str,
    principal: Principal = Depends(get_current_principal),
    policy: AccessPolicy = Depends(get_policy),
    catalog: MenuCatalog = Depends(get_menu_catalog),
) -> MessageResponse:
    policy.require(principal, Capability.MANAGE_MENU)
    await catalog.delete(parse_id(item_id, "menu item"))
    return MessageResponse(message="Menu item deleted successfully")


# =============================================================================
# ORDER ENDPOINTS
# =============================================================================

@router.post(
    "/orders",
    status_code=201,
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
    summary="Place Order",
)
async def create_order(
    data: OrderCreate,
    principal: Principal = Depends(get_current_principal),
    service: OrderService = Depends(get_order_service),
) -> OrderResponse:
    """Place an order; prices and names are taken from the menu, not the request."""
    return await service.create_order(principal, data)


@router.get(
    "/orders/my",
    response_model=list[OrderResponse],
    responses=ERROR_RESPONSES,
    tags=["Orders"],
)
async def my_orders(
    principal: Principal = Depends(get_current_principal),
    service: OrderService = Depends(get_order_service),
) -> list[OrderResponse]:
    return await service.my_orders(principal)


@router.get(
    "/orders/kitchen/queue",
    response_model=list[OrderResponse],
    responses=ERROR_RESPONSES,
    tags=["Kitchen"],
)
async def kitchen_queue(
    principal: Principal = Depends(get_current_principal),
    service: OrderService = Depends(get_order_service),
) -> list[OrderResponse]:
    return await service.kitchen_queue(principal)


@router.get(
    "/orders/kitchen/history",
    response_model=list[OrderResponse],
    responses=ERROR_RESPONSES,
    tags=["Kitchen"],
)
async def kitchen_history(
    canteen_id: Optional[int] = Query(None, alias="canteenId"),
    principal: Principal = Depends(get_current_principal),
    service: OrderService = Depends(get_order_service),
) -> list[OrderResponse]:
    return await service.history(principal, canteen_id)


@router.patch(
    "/orders/{order_id}/status",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    tags=["Kitchen"],
    summary="Advance Order Status",
)
async def update_order_status(
    order_id: str,
    data: OrderStatusUpdate,
    principal: Principal = Depends(get_current_principal),
    service: OrderService = Depends(get_order_service),
) -> OrderResponse:
    return await service.update_status(principal, parse_id(order_id, "order"), data)


@router.get(
    "/orders/admin/today",
    response_model=list[OrderResponse],
    responses=ERROR_RESPONSES,
    tags=["Admin"],
)
async def admin_today(
    canteen_id: Optional[int] = Query(None, alias="canteenId"),
    principal: Principal = Depends(get_current_principal),
    service: OrderService = Depends(get_order_service),
) -> list[OrderResponse]:
    return await service.today_orders(principal, canteen_id)


@router.get(
    "/orders/admin/stats",
    response_model=DailyStatsResponse,
    responses=ERROR_RESPONSES,
    tags=["Admin"],
)
async def admin_stats(
    canteen_id: Optional[int] = Query(None, alias="canteenId"),
    principal: Principal = Depends(get_current_principal),
    service: OrderService = Depends(get_order_service),
) -> DailyStatsResponse:
    return await service.daily_stats(principal, canteen_id)


# =============================================================================
# PAYMENT ENDPOINTS
# =============================================================================

@router.post(
    "/payments/create-order",
    response_model=PaymentOrderResponse,
    responses=ERROR_RESPONSES,
    tags=["Payments"],
)
async def create_payment_order(
    data: PaymentOrderCreate,
    principal: Principal = Depends(get_current_principal),
    policy: AccessPolicy = Depends(get_policy),
    gateway: BasePaymentGateway = Depends(get_payment_gateway),
) -> PaymentOrderResponse:
    """
    Create a gateway order the client completes checkout against. The
    returned paymentOrderId is then sent along with POST /orders.
    """
    policy.require(principal, Capability.CREATE_PAYMENT)
    if data.amount is None or data.amount <= 0:
        raise ValidationError("Invalid amount")

    result = await gateway.create_order(
        amount=data.amount,
        customer=PaymentCustomer(
            customer_id=str(principal.user_id),
            name=principal.name,
            email=principal.email,
        ),
    )
    if not result.success:
        logger.error(
            f"{gateway.provider_name}: gateway order failed for user "
            f"#{principal.user_id} - {result.error_code}: {result.error_message}"
        )
        raise PaymentGatewayError(error_code=result.error_code)

    return PaymentOrderResponse(
        success=True,
        provider=gateway.provider_name,
        payment_order_id=result.provider_order_id,
        payment_session_id=result.payment_session_id,
        amount=result.amount,
        currency=result.currency,
    )


# =============================================================================
# ERROR HANDLERS
# =============================================================================

async def canteen_exception_handler(request: Request, exc: CanteenError) -> JSONResponse:
    if isinstance(exc, DependencyError):
        logger.error(f"{exc.kind} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=exc.kind, detail=exc.message).model_dump(),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Body/query validation failures are client errors (400)."""
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(error="ValidationError", detail="; ".join(messages)).model_dump(),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")
    settings: Settings = request.app.state.settings

    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error="Internal Server Error",
            detail=str(exc) if settings.debug else "An unexpected error occurred",
        ).model_dump(),
    )


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        description="Campus canteen ordering backend: menus, orders and kitchen queue.",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings
    app.state.policy = AccessPolicy()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(CanteenError, canteen_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    app.include_router(router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run("canteen.main:app", host=_settings.api_host, port=_settings.api_port)
