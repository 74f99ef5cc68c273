"""Order emails: best-effort dispatch and the Celery task bodies."""

import json
import smtplib
from decimal import Decimal
from unittest import mock

import pytest

from conftest import ADDRESS, CUSTOMER_ID
from dreamknot.data.models import OrderItemModel, OrderModel
from dreamknot.services import notification_service
from dreamknot.services.notification_service import (
    NotificationService,
    send_admin_order_notification_task,
    send_order_confirmation_task,
    send_order_status_update_task,
    status_update_body,
)

MODULE = "dreamknot.services.notification_service"


@pytest.fixture()
def order(db):
    order = OrderModel(
        user_id=CUSTOMER_ID,
        total_amount=Decimal("90.00"),
        discount_code="WELCOME10",
        discount_amount=Decimal("10.00"),
        shipping_address=json.dumps(ADDRESS),
        billing_address=json.dumps(ADDRESS),
        payment_status="paid",
        order_status="processing",
    )
    db.add(order)
    db.flush()
    db.add(
        OrderItemModel(
            order_id=order.id,
            product_id=1,
            customization_json='{"text":"Love"}',
            qty=2,
            price=Decimal("100.00"),
        )
    )
    db.commit()
    return order


@pytest.fixture()
def task_env(session_factory, catalog):
    with mock.patch(f"{MODULE}.SessionLocal", session_factory), \
            mock.patch(f"{MODULE}.get_catalog_client", return_value=catalog), \
            mock.patch(f"{MODULE}.Mailer") as mailer:
        yield mailer.return_value


class TestDispatch:
    def test_order_placed_queues_customer_and_admin_mail(self):
        with mock.patch(f"{MODULE}.send_order_confirmation_task") as confirmation, \
                mock.patch(f"{MODULE}.send_admin_order_notification_task") as admin:
            NotificationService().send_order_placed(7)

        confirmation.delay.assert_called_once_with(7)
        admin.delay.assert_called_once_with(7)

    def test_broker_failure_is_swallowed(self):
        with mock.patch(f"{MODULE}.send_order_confirmation_task") as confirmation, \
                mock.patch(f"{MODULE}.send_admin_order_notification_task") as admin:
            confirmation.delay.side_effect = ConnectionError("broker down")

            NotificationService().send_order_placed(7)

        # the second message is still attempted
        admin.delay.assert_called_once_with(7)

    def test_status_change(self):
        with mock.patch(f"{MODULE}.send_order_status_update_task") as task:
            NotificationService().send_status_changed(3, "shipped")
        task.delay.assert_called_once_with(3, "shipped")


class TestTasks:
    def test_confirmation_lists_items_discount_and_address(self, order, task_env):
        result = send_order_confirmation_task(order.id)

        assert result == {"order_id": order.id, "status": "sent"}
        to, subject, body = task_env.send.call_args.args
        assert to == "asha@example.com"
        assert f"#{order.id:06d}" in subject
        assert "- Engraved Mug x2: 100.00 (customization: {\"text\":\"Love\"})" in body
        assert "Discount (WELCOME10): -10.00" in body
        assert "Total: 90.00" in body
        assert "Bengaluru, KA 560001" in body

    def test_admin_notice_goes_to_admin_address(self, order, task_env):
        with mock.patch(f"{MODULE}.ADMIN_EMAIL", "ops@dreamknot.test"):
            result = send_admin_order_notification_task(order.id)

        assert result["status"] == "sent"
        to, _, body = task_env.send.call_args.args
        assert to == "ops@dreamknot.test"
        assert "Asha <asha@example.com>" in body

    def test_status_update(self, order, task_env):
        result = send_order_status_update_task(order.id, "in_production")

        assert result["status"] == "sent"
        assert "is now: in production" in task_env.send.call_args.args[2]

    def test_missing_order_is_skipped(self, db, task_env):
        assert send_order_confirmation_task(4242) == {"order_id": 4242, "status": "skipped"}
        task_env.send.assert_not_called()

    def test_smtp_failure_is_reported_not_raised(self, order, task_env):
        task_env.send.side_effect = smtplib.SMTPException("relay refused")

        assert send_order_confirmation_task(order.id) == {"order_id": order.id, "status": "failed"}


def test_status_body_reads_naturally():
    assert status_update_body(12, "Asha", "shipped") == "Hi Asha,\n\nYour order #000012 is now: shipped.\n"


def test_tasks_are_registered_with_the_worker():
    names = set(notification_service.celery_app.tasks)
    assert "dreamknot.notifications.order_confirmation" in names
    assert "dreamknot.notifications.status_update" in names
