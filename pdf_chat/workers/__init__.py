# =============================================================================
# Workers Package — Job Queue and Celery Background Tasks
# =============================================================================
#   - celery_app.py: Celery application configuration (concurrency 1)
#   - tasks.py: the process_pdf task (lifecycle, retries, events)
#   - queue.py: JobQueue producer client (enqueue, get_job)
#   - job_store.py: job records with bounded retention (Redis or memory)
#   - events.py: typed job events and the listener bus
# =============================================================================
