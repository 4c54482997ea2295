# =============================================================================
# API Package — FastAPI Route Handlers
# =============================================================================
# Thin HTTP adapters over the core pipelines:
#   - health.py: GET /             liveness + version
#   - upload.py: POST /upload/pdf  save the PDF, enqueue an ingestion job
#   - jobs.py:   GET /job/{id}     ingestion job status
#   - chat.py:   GET /chat         question answering over the corpus
#   - deps.py:   shared FastAPI dependencies
# =============================================================================
