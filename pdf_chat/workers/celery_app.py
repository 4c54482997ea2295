# =============================================================================
# Celery Application Configuration
# =============================================================================
#
# Celery runs the ingestion pipeline in the background:
#   PDF Upload → Parse → Chunk → Embed → Upsert
#
# ARCHITECTURE:
# ┌──────────┐     ┌────────┐     ┌───────────────┐     ┌──────────────┐
# │ FastAPI  │────▶│ Redis  │────▶│ Celery Worker │────▶│ Vector store │
# │(producer)│     │(broker)│     │ (consumer)    │     │ (Qdrant)     │
# └──────────┘     └────────┘     └───────────────┘     └──────────────┘
#       │                                 │
#       └──────────▶ Job store ◀──────────┘   (Redis db 2: state, progress)
#
# Start a worker with:
#   celery -A pdf_chat.workers.celery_app worker --loglevel=info
# =============================================================================

from celery import Celery

from pdf_chat.config import settings

celery_app = Celery(
    "pdf_chat.workers",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

celery_app.conf.update(
    # --- Serialization ---
    # JSON only: pickle can execute arbitrary code during deserialization.
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",

    # --- Routing ---
    task_default_queue=settings.queue_name,

    # --- Reliability (at-least-once) ---
    # Acknowledge only after the task finishes; a crashed or killed worker
    # leaves the message on the queue to be redelivered.
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    # --- Concurrency ---
    # One document at a time: bounds memory and keeps writers to the
    # collection serialised.
    worker_concurrency=1,
    worker_prefetch_multiplier=1,

    # --- Timeouts ---
    # Unlimited unless configured. A soft limit would be caught by the task
    # and retried, so it must sit well above the slowest real ingestion.
    task_soft_time_limit=settings.celery_task_soft_time_limit,
    task_time_limit=settings.celery_task_time_limit,

    # --- Results ---
    result_expires=3600,

    # --- Eager mode ---
    task_always_eager=settings.celery_task_always_eager,

    include=["pdf_chat.workers.tasks"],
)
