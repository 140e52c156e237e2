"""
Order notification emails.

Sends the shop an alert and the customer a confirmation for every placed
order. Delivery is best-effort: a failed send is logged and never fails
the order.
"""

import html
import logging
import smtplib
from email.message import EmailMessage
from typing import Callable, List

from cakecraft.config.loader import EmailConfig
from cakecraft.storage.models import CakeOrder, OrderItem

logger = logging.getLogger(__name__)


def format_price(cents: int) -> str:
    """Render integer cents as ringgit ("RM 90.00")."""
    return f"RM {cents / 100:,.2f}"


def _item_line(item: OrderItem) -> str:
    line = (
        f"<p><strong>{_e(item.item_name)}</strong> x{item.quantity}: "
        f"{format_price(item.total_price)}</p>"
    )
    if item.item_type == "custom":
        line += (
            f"<p>{item.six_inch_cakes or 0}x6\" + {item.eight_inch_cakes or 0}x8\", "
            f"{item.layers} layer(s), {_e(item.shape or '')}, {_e(item.icing_type or '')} icing</p>"
        )
    return line


def _cake_details(order: CakeOrder) -> List[str]:
    if order.items:
        lines = [_item_line(item) for item in order.items]
        if order.special_instructions:
            lines.append(f"<p><strong>Special Instructions:</strong> {_e(order.special_instructions)}</p>")
        return lines

    plural = "s" if order.total_cakes > 1 else ""
    lines = [
        f"<p><strong>Size:</strong> {order.six_inch_cakes}x6\" + {order.eight_inch_cakes}x8\" cake{plural}</p>",
        f"<p><strong>Layers:</strong> {order.layers}</p>",
        f"<p><strong>Shape:</strong> {_e(order.shape)}</p>",
        f"<p><strong>Flavors:</strong> {_e(', '.join(order.flavors))}</p>",
        f"<p><strong>Icing:</strong> {_e(order.icing_type)}</p>",
    ]
    if order.decorations:
        lines.append(f"<p><strong>Decorations:</strong> {_e(', '.join(order.decorations))}</p>")
    if order.message:
        lines.append(f"<p><strong>Message:</strong> \"{_e(order.message)}\"</p>")
    if order.dietary_restrictions:
        lines.append(
            f"<p><strong>Dietary Restrictions:</strong> {_e(', '.join(order.dietary_restrictions))}</p>"
        )
    if order.special_instructions:
        lines.append(f"<p><strong>Special Instructions:</strong> {_e(order.special_instructions)}</p>")
    return lines


def _order_date(order: CakeOrder) -> str:
    return order.order_date.strftime("%d/%m/%Y") if order.order_date else ""


def render_admin_email(order: CakeOrder, sender: str, recipient: str) -> EmailMessage:
    """Build the new-order alert sent to the shop."""
    delivery = "Store Pickup" if order.delivery_method == "pickup" else "Home Delivery"
    body = "\n".join([
        "<h1>New Cake Order Received!</h1>",
        "<h2>Order Details</h2>",
        f"<p><strong>Order #:</strong> {order.id}</p>",
        f"<p><strong>Date:</strong> {_order_date(order)}</p>",
        f"<p><strong>Total Amount:</strong> {format_price(order.total_price)}</p>",
        "<h2>Customer Information</h2>",
        f"<p><strong>Name:</strong> {_e(order.customer_name)}</p>",
        f"<p><strong>Email:</strong> {_e(order.customer_email)}</p>",
        f"<p><strong>Phone:</strong> {_e(order.customer_phone or 'Not provided')}</p>",
        f"<p><strong>Delivery Method:</strong> {delivery}</p>",
        "<h2>Cake Specifications</h2>",
        *_cake_details(order),
        "<p>You can view the full order details in the admin panel.</p>",
    ])
    return _message(
        subject=f"New Cake Order #{order.id} from {order.customer_name}",
        sender=sender,
        recipient=recipient,
        body=body,
    )


def render_customer_email(order: CakeOrder, sender: str) -> EmailMessage:
    """Build the confirmation sent to the customer."""
    estimated_days = "2-3" if order.delivery_method == "pickup" else "3-4"
    method = "pickup" if order.delivery_method == "pickup" else "delivery"
    body = "\n".join([
        "<h1>Thank You for Your Order!</h1>",
        "<h2>Order Confirmation</h2>",
        f"<p><strong>Order #:</strong> {order.id}</p>",
        f"<p><strong>Date:</strong> {_order_date(order)}</p>",
        f"<p><strong>Total Amount:</strong> {format_price(order.total_price)}</p>",
        f"<p><strong>Estimated Ready Date:</strong> {estimated_days} business days</p>",
        "<h2>Your Cake Details</h2>",
        *_cake_details(order),
        "<h2>Next Steps</h2>",
        f"<p>Our team will contact you within 24 hours to confirm your order details and arrange {method}.</p>",
    ])
    return _message(
        subject=f"Thank You for Your Cake Order #{order.id}",
        sender=sender,
        recipient=order.customer_email,
        body=body,
    )


class OrderNotifier:
    """Sends order emails through an SMTP relay."""

    def __init__(self, config: EmailConfig, smtp_factory: Callable[..., smtplib.SMTP] = smtplib.SMTP):
        self.config = config
        self._smtp_factory = smtp_factory

    def send_order_emails(self, order: CakeOrder) -> bool:
        """Send the admin alert and the customer confirmation.

        Failures are logged and swallowed so the order still counts as
        placed.

        Returns:
            True if both emails were handed to the relay
        """
        if not self.config.enabled:
            logger.warning("Email notifications disabled - admin address or SMTP credentials not set")
            return False

        messages = [
            render_admin_email(order, self.config.from_address, self.config.admin_address),
            render_customer_email(order, self.config.from_address),
        ]
        try:
            with self._smtp_factory(self.config.host, self.config.port, timeout=30) as smtp:
                if self.config.use_tls:
                    smtp.starttls()
                smtp.login(self.config.user, self.config.password)
                for message in messages:
                    smtp.send_message(message)
                    logger.info("Sent '%s' to %s", message["Subject"], message["To"])
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send order emails for order #%s: %s", order.id, e)
            return False
        return True


def _message(subject: str, sender: str, recipient: str, body: str) -> EmailMessage:
    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = sender
    message["To"] = recipient
    message.set_content("Please view this message in an HTML capable mail client.")
    message.add_alternative(body, subtype="html")
    return message


def _e(value: str) -> str:
    return html.escape(str(value))
