# dreamknot/celery_worker.py
from celery import Celery

from dreamknot.utils.settings import CELERY_BROKER_URL, CELERY_RESULT_BACKEND

celery_app = Celery(
    "dreamknot",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# tasks must be imported explicitly so the worker registers them
celery_app.conf.imports = (
    "dreamknot.services.notification_service",
)

celery_app.conf.timezone = "UTC"
# best-effort notifications: a lost message is acceptable, a duplicate email is not
celery_app.conf.task_acks_late = False
celery_app.conf.task_ignore_result = True
