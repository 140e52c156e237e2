"""
HTTP API for the CakeCraft storefront.

Price calculation, pricing document administration and order checkout.
"""

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any, Dict, List, Optional

from fastapi import Body, Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from cakecraft import __version__
from cakecraft.auth.sessions import (
    AdminAuthenticator,
    AdminSession,
    AuthenticationError,
    InMemorySessionStore,
    SessionStore,
    SessionSweeper,
)
from cakecraft.config.loader import AppSettings, load_settings
from cakecraft.core.checkout import CheckoutError, PricedLineItem, cart_total, price_cart
from cakecraft.core.pricing import CakeConfiguration, ZeroCakeSelectionError, calculate_price
from cakecraft.core.validation import PricingValidationError
from cakecraft.notifications.mailer import OrderNotifier
from cakecraft.storage.document_store import PricingDocumentError, PricingDocumentStore
from cakecraft.storage.models import CakeOrder, OrderItem
from cakecraft.storage.repository import OrderNotFoundError, OrderRepository, initialize_schema

from .schemas import (
    BackupOut,
    CheckoutRequest,
    LoginRequest,
    LoginResponse,
    OrderCreate,
    OrderStatusUpdate,
    PricingUpdateResponse,
)

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[AppSettings] = None,
    session_store: Optional[SessionStore] = None,
    notifier: Optional[OrderNotifier] = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Application settings (loaded from file/env when omitted)
        session_store: Admin session backend (in-memory when omitted)
        notifier: Order email sender

    Returns:
        Configured FastAPI app
    """
    settings = settings or load_settings()
    ttl = timedelta(hours=settings.admin.session_ttl_hours)
    session_store = session_store or InMemorySessionStore(ttl=ttl)
    sweeper = SessionSweeper(session_store, settings.admin.sweep_interval_seconds)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        sweeper.start()
        try:
            yield
        finally:
            await sweeper.stop()

    app = FastAPI(title="CakeCraft", version=__version__, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    initialize_schema(settings.storage.db_path)

    app.state.settings = settings
    app.state.pricing_store = PricingDocumentStore(
        settings.storage.pricing_path, settings.storage.backup_dir
    )
    app.state.authenticator = AdminAuthenticator(
        session_store, settings.admin.username, settings.admin.password, ttl=ttl
    )
    app.state.orders = OrderRepository(settings.storage.db_path)
    app.state.notifier = notifier or OrderNotifier(settings.email)

    _register_error_handlers(app)
    _register_routes(app)
    return app


# ==== Dependencies ====

def get_pricing_store(request: Request) -> PricingDocumentStore:
    return request.app.state.pricing_store


def get_orders(request: Request) -> OrderRepository:
    return request.app.state.orders


def get_notifier(request: Request) -> OrderNotifier:
    return request.app.state.notifier


def get_authenticator(request: Request) -> AdminAuthenticator:
    return request.app.state.authenticator


def require_admin(
    authorization: Optional[str] = Header(None),
    x_admin_session: Optional[str] = Header(None),
    authenticator: AdminAuthenticator = Depends(get_authenticator),
) -> AdminSession:
    """Resolve the caller's admin session from the bearer or session header."""
    token = None
    if authorization and authorization.startswith("Bearer "):
        token = authorization[len("Bearer "):].strip()
    token = token or x_admin_session
    return authenticator.authenticate(token)


# ==== Error handling ====

def _message(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message, **extra})


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ZeroCakeSelectionError)
    async def _zero_cakes(request: Request, exc: ZeroCakeSelectionError):
        return _message(400, exc.message)

    @app.exception_handler(CheckoutError)
    async def _invalid_cart(request: Request, exc: CheckoutError):
        return _message(400, exc.message)

    @app.exception_handler(PricingValidationError)
    async def _invalid_pricing(request: Request, exc: PricingValidationError):
        logger.warning("Rejected pricing update: %s", exc.message)
        return _message(400, exc.message, path=exc.path)

    @app.exception_handler(AuthenticationError)
    async def _unauthorized(request: Request, exc: AuthenticationError):
        return _message(401, exc.message)

    @app.exception_handler(OrderNotFoundError)
    async def _not_found(request: Request, exc: OrderNotFoundError):
        return _message(404, "Order not found")

    @app.exception_handler(PricingDocumentError)
    async def _document_error(request: Request, exc: PricingDocumentError):
        logger.error("Pricing document error: %s", exc)
        return _message(500, str(exc))

    @app.exception_handler(RequestValidationError)
    async def _invalid_request(request: Request, exc: RequestValidationError):
        errors = [
            {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
            for error in exc.errors()
        ]
        return _message(400, "Invalid request data", errors=errors)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        return _message(exc.status_code, str(exc.detail))


# ==== Routes ====

def _register_routes(app: FastAPI) -> None:
    @app.get("/health")
    def health():
        return {"status": "ok", "version": __version__}

    @app.post("/api/calculate-price")
    def calculate(
        payload: Dict[str, Any] = Body(...),
        store: PricingDocumentStore = Depends(get_pricing_store),
    ):
        config = CakeConfiguration.from_payload(payload)
        # Zero-cake requests fail before touching the document
        if config.total_cakes == 0:
            raise ZeroCakeSelectionError()
        return calculate_price(config, store.load()).to_dict()

    @app.get("/api/pricing-structure")
    def pricing_structure(store: PricingDocumentStore = Depends(get_pricing_store)):
        return store.load()

    @app.post("/api/admin-auth/verify", response_model=LoginResponse, response_model_by_alias=True)
    def admin_login(
        payload: LoginRequest,
        authenticator: AdminAuthenticator = Depends(get_authenticator),
    ):
        if not payload.username or not payload.password:
            return JSONResponse(
                status_code=400,
                content={"success": False, "message": "Username and password required"},
            )
        try:
            token = authenticator.login(payload.username, payload.password)
        except AuthenticationError as e:
            return JSONResponse(status_code=401, content={"success": False, "message": e.message})
        return LoginResponse(success=True, message="Authentication successful", session_token=token)

    @app.get("/api/admin/pricing")
    def admin_get_pricing(
        session: AdminSession = Depends(require_admin),
        store: PricingDocumentStore = Depends(get_pricing_store),
    ):
        return store.load()

    @app.put("/api/admin/pricing", response_model=PricingUpdateResponse)
    def admin_update_pricing(
        document: Any = Body(...),
        session: AdminSession = Depends(require_admin),
        store: PricingDocumentStore = Depends(get_pricing_store),
    ):
        backup = store.replace(document)
        logger.info("Pricing updated by %s (backup %s)", session.username, backup.filename)
        return PricingUpdateResponse(message="Pricing updated successfully", backup=backup.path)

    @app.get("/api/admin/pricing/backups", response_model=List[BackupOut])
    def admin_list_backups(
        session: AdminSession = Depends(require_admin),
        store: PricingDocumentStore = Depends(get_pricing_store),
    ):
        return [backup.to_dict() for backup in store.list_backups()]

    @app.post("/api/orders", status_code=201)
    def create_order(
        payload: OrderCreate,
        store: PricingDocumentStore = Depends(get_pricing_store),
        orders: OrderRepository = Depends(get_orders),
        notifier: OrderNotifier = Depends(get_notifier),
    ):
        config = payload.to_configuration()
        if config.total_cakes == 0:
            raise ZeroCakeSelectionError()
        price = calculate_price(config, store.load())

        order = orders.create_order(CakeOrder(
            customer_name=payload.customer_name,
            customer_email=payload.customer_email,
            customer_phone=payload.customer_phone,
            delivery_method=payload.delivery_method,
            special_instructions=payload.special_instructions,
            six_inch_cakes=config.six_inch_cakes,
            eight_inch_cakes=config.eight_inch_cakes,
            layers=config.layers,
            shape=config.shape,
            flavors=list(config.flavors),
            icing_color=payload.icing_color,
            icing_type=config.icing_type,
            decorations=list(config.decorations),
            dietary_restrictions=list(config.dietary_restrictions),
            message=config.message,
            template=None if payload.template is None else str(payload.template),
            total_price=price.total_price,
        ))

        notifier.send_order_emails(order)
        return order.to_dict()

    @app.post("/api/checkout", status_code=201)
    def checkout(
        payload: CheckoutRequest,
        store: PricingDocumentStore = Depends(get_pricing_store),
        orders: OrderRepository = Depends(get_orders),
        notifier: OrderNotifier = Depends(get_notifier),
    ):
        priced = price_cart([item.to_line_item() for item in payload.items], store.load())
        customer = payload.customer

        order = orders.create_order(
            CakeOrder(
                customer_name=customer.customer_name,
                customer_email=customer.customer_email,
                customer_phone=customer.customer_phone,
                delivery_method=customer.delivery_method,
                special_instructions=customer.special_instructions,
                total_price=cart_total(priced),
            ),
            items=[
                _to_order_item(line, item.cake_config.icing_color if item.cake_config else None)
                for item, line in zip(payload.items, priced)
            ],
        )

        notifier.send_order_emails(order)
        return order.to_dict()

    @app.get("/api/orders")
    def list_orders(
        session: AdminSession = Depends(require_admin),
        orders: OrderRepository = Depends(get_orders),
    ):
        return [order.to_dict() for order in orders.list_orders()]

    @app.get("/api/orders/{order_id}")
    def get_order(order_id: int, orders: OrderRepository = Depends(get_orders)):
        return orders.get_order(order_id).to_dict()

    @app.patch("/api/orders/{order_id}/status")
    def update_order_status(
        order_id: int,
        payload: OrderStatusUpdate,
        session: AdminSession = Depends(require_admin),
        orders: OrderRepository = Depends(get_orders),
    ):
        try:
            order = orders.update_status(order_id, payload.status)
        except ValueError as e:
            return _message(400, str(e))
        return order.to_dict()


def _to_order_item(line: PricedLineItem, icing_color: Optional[str]) -> OrderItem:
    config = line.configuration
    if config is None:
        return OrderItem(
            item_type=line.item_type,
            item_name=line.name,
            quantity=line.quantity,
            unit_price=line.unit_price,
            total_price=line.total_price,
            catalogue_id=line.catalogue_id,
            description=line.description,
        )
    return OrderItem(
        item_type=line.item_type,
        item_name=line.name,
        quantity=line.quantity,
        unit_price=line.unit_price,
        total_price=line.total_price,
        six_inch_cakes=config.six_inch_cakes,
        eight_inch_cakes=config.eight_inch_cakes,
        layers=config.layers,
        shape=config.shape,
        flavors=list(config.flavors),
        icing_color=icing_color,
        icing_type=config.icing_type,
        decorations=list(config.decorations),
        dietary_restrictions=list(config.dietary_restrictions),
        message=config.message,
    )
