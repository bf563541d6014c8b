"""
Celery application for CDC job control tasks.

Configures Celery with a Redis broker and result backend.
"""

from celery import Celery

from cdc_control.config.settings import get_settings
from cdc_control.core.logging import setup_logging

setup_logging()

settings = get_settings()

celery_app = Celery(
    "cdc_control",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

celery_app.conf.update(
    # Serialization
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    # Time limits
    task_soft_time_limit=settings.task_soft_time_limit,
    task_time_limit=settings.task_hard_time_limit,
    # Results
    result_expires=3600,
    result_extended=True,
    # Routing
    task_routes={
        "cdc.job.prepare_incremental_position": {"queue": "cdc_prepare"},
        "cdc.job.build_task_configuration": {"queue": "default"},
    },
    task_default_queue="default",
    # Task behavior
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_track_started=True,
    # Broker
    broker_connection_retry_on_startup=True,
    broker_transport_options={
        "visibility_timeout": 3600,
        "socket_connect_timeout": 5,
        "socket_timeout": 5,
    },
    timezone="UTC",
    enable_utc=True,
)

celery_app.autodiscover_tasks(["cdc_control.tasks.cdc_job"])
