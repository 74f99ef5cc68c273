# dreamknot/services/notification_service.py
import json

from dreamknot.celery_worker import celery_app
from dreamknot.data.database import SessionLocal
from dreamknot.data.models.user import UserModel
from dreamknot.repos.order_repo import OrderRepo
from dreamknot.services.catalog_client import get_catalog_client
from dreamknot.services.mailer import Mailer
from dreamknot.utils.settings import ADMIN_EMAIL
from dreamknot.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Order emails, sent through Celery.

    Delivery is best-effort: a message that cannot be queued or sent is
    logged and dropped, never retried, and never reported to the caller.
    """

    def send_order_placed(self, order_id: int) -> None:
        self._dispatch(send_order_confirmation_task, order_id)
        self._dispatch(send_admin_order_notification_task, order_id)

    def send_status_changed(self, order_id: int, status: str) -> None:
        self._dispatch(send_order_status_update_task, order_id, status)

    @staticmethod
    def _dispatch(task, *args) -> None:
        try:
            task.delay(*args)
        except Exception:
            logger.exception(f"Could not queue {task.name} for {args}, notification dropped")


# ---------------------------------------------------------------------------
# message bodies
# ---------------------------------------------------------------------------


def _order_number(order_id: int) -> str:
    return f"#{order_id:06d}"


def _format_address(raw: str) -> str:
    addr = json.loads(raw)
    lines = [addr.get("name", ""), addr.get("address_line_1", "")]
    if addr.get("address_line_2"):
        lines.append(addr["address_line_2"])
    lines.append(f"{addr.get('city', '')}, {addr.get('state', '')} {addr.get('postal_code', '')}")
    lines.append(addr.get("country", ""))
    return "\n".join(line for line in lines if line)


def _item_lines(order) -> list[str]:
    products = get_catalog_client().products_by_id()
    lines = []
    for item in order.items:
        title = products.get(item.product_id, {}).get("title", "Product Unavailable")
        line = f"- {title} x{item.qty}: {item.price}"
        if item.customization_json:
            line += f" (customization: {item.customization_json})"
        lines.append(line)
    return lines


def order_confirmation_body(order, customer_name: str) -> str:
    parts = [
        f"Thank you for your order, {customer_name}!",
        "",
        f"Order number: {_order_number(order.id)}",
        f"Payment: {order.payment_status}",
        "",
        "Items:",
        *_item_lines(order),
        "",
    ]
    if order.discount_code:
        parts.append(f"Discount ({order.discount_code}): -{order.discount_amount}")
    parts += [
        f"Total: {order.total_amount}",
        "",
        "Shipping to:",
        _format_address(order.shipping_address),
    ]
    return "\n".join(parts)


def admin_notification_body(order, customer_name: str, customer_email: str) -> str:
    return "\n".join([
        f"New order {_order_number(order.id)} from {customer_name} <{customer_email}>",
        f"Payment: {order.payment_status}",
        f"Total: {order.total_amount}",
        "",
        *_item_lines(order),
        "",
        "Ship to:",
        _format_address(order.shipping_address),
    ])


def status_update_body(order_id: int, customer_name: str, status: str) -> str:
    readable = status.replace("_", " ")
    return (
        f"Hi {customer_name},\n\n"
        f"Your order {_order_number(order_id)} is now: {readable}.\n"
    )


# ---------------------------------------------------------------------------
# tasks
# ---------------------------------------------------------------------------


def _load(db, order_id: int):
    order = OrderRepo(db).get_order(order_id)
    if not order:
        return None, None
    return order, db.get(UserModel, order.user_id)


@celery_app.task(name="dreamknot.notifications.order_confirmation")
def send_order_confirmation_task(order_id: int):
    db = SessionLocal()
    try:
        order, user = _load(db, order_id)
        if not user:
            logger.warning(f"Order {order_id} or its customer is missing, confirmation skipped")
            return {"order_id": order_id, "status": "skipped"}
        Mailer().send(
            user.email,
            f"Order Confirmation {_order_number(order.id)} - DreamKnot",
            order_confirmation_body(order, user.name),
        )
        return {"order_id": order_id, "status": "sent"}
    except Exception:
        logger.exception(f"Failed to send order confirmation email for order {order_id}")
        return {"order_id": order_id, "status": "failed"}
    finally:
        db.close()


@celery_app.task(name="dreamknot.notifications.admin_new_order")
def send_admin_order_notification_task(order_id: int):
    db = SessionLocal()
    try:
        order, user = _load(db, order_id)
        if not user:
            logger.warning(f"Order {order_id} or its customer is missing, admin notice skipped")
            return {"order_id": order_id, "status": "skipped"}
        Mailer().send(
            ADMIN_EMAIL,
            f"New Order {_order_number(order.id)}",
            admin_notification_body(order, user.name, user.email),
        )
        return {"order_id": order_id, "status": "sent"}
    except Exception:
        logger.exception(f"Failed to send admin notification email for order {order_id}")
        return {"order_id": order_id, "status": "failed"}
    finally:
        db.close()


@celery_app.task(name="dreamknot.notifications.status_update")
def send_order_status_update_task(order_id: int, status: str):
    db = SessionLocal()
    try:
        order, user = _load(db, order_id)
        if not user:
            logger.warning(f"Order {order_id} or its customer is missing, status notice skipped")
            return {"order_id": order_id, "status": "skipped"}
        Mailer().send(
            user.email,
            f"Order {_order_number(order_id)} Update - DreamKnot",
            status_update_body(order_id, user.name, status),
        )
        return {"order_id": order_id, "status": "sent"}
    except Exception:
        logger.exception(f"Failed to send status update email for order {order_id}")
        return {"order_id": order_id, "status": "failed"}
    finally:
        db.close()
