"""
Celery Application: background fan-out of productivity units.

Each (location, date) unit is independent, so a date range is dispatched as
one task per unit and the results are collected by the caller.
"""
import os
from celery import Celery

BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/1")

celery_app = Celery(
    "productivity",
    broker=BROKER_URL,
    backend=RESULT_BACKEND,
    include=["productivity.workers.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_soft_time_limit=120,   # a single unit is small; 2 minutes soft limit
    task_time_limit=300,
    result_expires=3600,        # Results expire after 1 hour
)
