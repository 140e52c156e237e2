"""
Repository pattern for order data access.

Handles database operations and persistence of placed cake orders and
their line items.
"""

import json
import logging
from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Sequence

from .db import DEFAULT_DB_PATH, get_connection
from .models import CakeOrder, OrderItem

logger = logging.getLogger(__name__)

ORDER_STATUSES = ("pending", "confirmed", "in-progress", "ready", "completed", "cancelled")

_ORDER_COLUMNS = """
    id, customer_name, customer_email, customer_phone, delivery_method,
    special_instructions, six_inch_cakes, eight_inch_cakes, layers, shape,
    flavors, icing_color, icing_type, decorations, dietary_restrictions,
    message, template, total_price, status, order_date
"""

_ITEM_COLUMNS = """
    id, order_id, item_type, item_name, quantity, unit_price, total_price,
    six_inch_cakes, eight_inch_cakes, layers, shape, flavors, icing_color,
    icing_type, decorations, dietary_restrictions, message, catalogue_id,
    description, created_at
"""


class OrderNotFoundError(LookupError):
    """Raised when an order id does not exist."""


def initialize_schema(db_path: str = DEFAULT_DB_PATH) -> None:
    """Create the cake_orders and order_items tables if they don't exist.

    Args:
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS cake_orders (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                customer_name TEXT NOT NULL,
                customer_email TEXT NOT NULL,
                customer_phone TEXT,
                delivery_method TEXT NOT NULL DEFAULT 'pickup',
                special_instructions TEXT,
                six_inch_cakes INTEGER NOT NULL DEFAULT 0,
                eight_inch_cakes INTEGER NOT NULL DEFAULT 0,
                layers INTEGER NOT NULL DEFAULT 1,
                shape TEXT NOT NULL DEFAULT 'round',
                flavors TEXT NOT NULL DEFAULT '[]',
                icing_color TEXT NOT NULL DEFAULT '#FFB6C1',
                icing_type TEXT NOT NULL DEFAULT 'butter',
                decorations TEXT NOT NULL DEFAULT '[]',
                dietary_restrictions TEXT NOT NULL DEFAULT '[]',
                message TEXT,
                template TEXT,
                total_price INTEGER NOT NULL,
                status TEXT NOT NULL DEFAULT 'pending',
                order_date TEXT NOT NULL
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS order_items (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                order_id INTEGER NOT NULL REFERENCES cake_orders(id) ON DELETE CASCADE,
                item_type TEXT NOT NULL,
                item_name TEXT NOT NULL,
                quantity INTEGER NOT NULL DEFAULT 1,
                unit_price INTEGER NOT NULL,
                total_price INTEGER NOT NULL,
                six_inch_cakes INTEGER,
                eight_inch_cakes INTEGER,
                layers INTEGER,
                shape TEXT,
                flavors TEXT,
                icing_color TEXT,
                icing_type TEXT,
                decorations TEXT,
                dietary_restrictions TEXT,
                message TEXT,
                catalogue_id TEXT,
                description TEXT,
                created_at TEXT NOT NULL
            )
        """)

        conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_order_items_order
            ON order_items(order_id)
        """)
        conn.commit()
    finally:
        conn.close()


class OrderRepository:
    """Repository for placed cake orders."""

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        """Initialize the repository with a database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path

    def create_order(self, order: CakeOrder, items: Sequence[OrderItem] = ()) -> CakeOrder:
        """Insert a new order together with its line items.

        The order date is set at insertion time and status starts as
        ``pending``. The order and its items are committed together.

        Args:
            order: Order to persist (``id`` and ``items`` are ignored)
            items: Line items of a multi-item order

        Returns:
            The stored order with its id, order date and stored items
        """
        stored = replace(order, status="pending", order_date=datetime.now(), items=[])
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute("""
                INSERT INTO cake_orders
                (customer_name, customer_email, customer_phone, delivery_method,
                 special_instructions, six_inch_cakes, eight_inch_cakes, layers, shape,
                 flavors, icing_color, icing_type, decorations, dietary_restrictions,
                 message, template, total_price, status, order_date)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                stored.customer_name,
                stored.customer_email,
                stored.customer_phone,
                stored.delivery_method,
                stored.special_instructions,
                stored.six_inch_cakes,
                stored.eight_inch_cakes,
                stored.layers,
                stored.shape,
                json.dumps(list(stored.flavors)),
                stored.icing_color,
                stored.icing_type,
                json.dumps(list(stored.decorations)),
                json.dumps(list(stored.dietary_restrictions)),
                stored.message,
                stored.template,
                stored.total_price,
                stored.status,
                stored.order_date.isoformat(),
            ))
            order_id = cursor.lastrowid

            stored_items = []
            for item in items:
                item = replace(item, order_id=order_id, created_at=stored.order_date)
                cursor = conn.execute("""
                    INSERT INTO order_items
                    (order_id, item_type, item_name, quantity, unit_price, total_price,
                     six_inch_cakes, eight_inch_cakes, layers, shape, flavors, icing_color,
                     icing_type, decorations, dietary_restrictions, message, catalogue_id,
                     description, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, (
                    item.order_id,
                    item.item_type,
                    item.item_name,
                    item.quantity,
                    item.unit_price,
                    item.total_price,
                    item.six_inch_cakes,
                    item.eight_inch_cakes,
                    item.layers,
                    item.shape,
                    _dump_list(item.flavors),
                    item.icing_color,
                    item.icing_type,
                    _dump_list(item.decorations),
                    _dump_list(item.dietary_restrictions),
                    item.message,
                    item.catalogue_id,
                    item.description,
                    item.created_at.isoformat(),
                ))
                stored_items.append(replace(item, id=cursor.lastrowid))

            conn.commit()
            stored = replace(stored, id=order_id, items=stored_items)
        finally:
            conn.close()

        logger.info(
            "Created order #%s for %s (%d line items)",
            stored.id, stored.customer_email, len(stored.items),
        )
        return stored

    def get_order(self, order_id: int) -> CakeOrder:
        """Fetch a single order with its line items.

        Raises:
            OrderNotFoundError: If no order has this id
        """
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(
                f"SELECT {_ORDER_COLUMNS} FROM cake_orders WHERE id = ?", (order_id,)
            )
            row = cursor.fetchone()
            if row is None:
                raise OrderNotFoundError(f"Order not found: {order_id}")
            items = _load_items(conn, [order_id])
        finally:
            conn.close()

        return _row_to_order(row, items.get(order_id, []))

    def list_orders(self, limit: int = 500) -> List[CakeOrder]:
        """List orders with their line items, newest first."""
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(
                f"SELECT {_ORDER_COLUMNS} FROM cake_orders ORDER BY id DESC LIMIT ?", (limit,)
            )
            rows = cursor.fetchall()
            items = _load_items(conn, [row[0] for row in rows])
        finally:
            conn.close()

        return [_row_to_order(row, items.get(row[0], [])) for row in rows]

    def update_status(self, order_id: int, status: str) -> CakeOrder:
        """Change the status of an order.

        Raises:
            ValueError: If the status is not a known order status
            OrderNotFoundError: If no order has this id
        """
        if status not in ORDER_STATUSES:
            raise ValueError(f"Invalid status '{status}'. Must be one of: {list(ORDER_STATUSES)}")

        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(
                "UPDATE cake_orders SET status = ? WHERE id = ?", (status, order_id)
            )
            conn.commit()
            updated = cursor.rowcount
        finally:
            conn.close()

        if not updated:
            raise OrderNotFoundError(f"Order not found: {order_id}")
        logger.info("Order #%s status -> %s", order_id, status)
        return self.get_order(order_id)


def _load_items(conn, order_ids: List[int]) -> Dict[int, List[OrderItem]]:
    """Fetch line items for the given orders, grouped by order id."""
    if not order_ids:
        return {}
    placeholders = ", ".join("?" for _ in order_ids)
    cursor = conn.execute(
        f"SELECT {_ITEM_COLUMNS} FROM order_items WHERE order_id IN ({placeholders}) ORDER BY id",
        order_ids,
    )
    grouped: Dict[int, List[OrderItem]] = {}
    for row in cursor.fetchall():
        item = _row_to_item(row)
        grouped.setdefault(item.order_id, []).append(item)
    return grouped


def _dump_list(values):
    return None if values is None else json.dumps(list(values))


def _load_list(value):
    return None if value is None else json.loads(value)


def _row_to_order(row, items: List[OrderItem]) -> CakeOrder:
    return CakeOrder(
        id=row[0],
        customer_name=row[1],
        customer_email=row[2],
        customer_phone=row[3],
        delivery_method=row[4],
        special_instructions=row[5],
        six_inch_cakes=row[6],
        eight_inch_cakes=row[7],
        layers=row[8],
        shape=row[9],
        flavors=json.loads(row[10]),
        icing_color=row[11],
        icing_type=row[12],
        decorations=json.loads(row[13]),
        dietary_restrictions=json.loads(row[14]),
        message=row[15],
        template=row[16],
        total_price=row[17],
        status=row[18],
        order_date=datetime.fromisoformat(row[19]),
        items=items,
    )


def _row_to_item(row) -> OrderItem:
    return OrderItem(
        id=row[0],
        order_id=row[1],
        item_type=row[2],
        item_name=row[3],
        quantity=row[4],
        unit_price=row[5],
        total_price=row[6],
        six_inch_cakes=row[7],
        eight_inch_cakes=row[8],
        layers=row[9],
        shape=row[10],
        flavors=_load_list(row[11]),
        icing_color=row[12],
        icing_type=row[13],
        decorations=_load_list(row[14]),
        dietary_restrictions=_load_list(row[15]),
        message=row[16],
        catalogue_id=row[17],
        description=row[18],
        created_at=datetime.fromisoformat(row[19]),
    )
