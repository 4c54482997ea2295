# =============================================================================
# Models Package — Pydantic V2 Schemas
# =============================================================================
# Wire-format schemas, kept apart from the internal dataclasses in services/
# and workers/:
#   - jobs.py: the JSON payload carried by every ingestion job
#   - responses.py: what the HTTP endpoints return
# =============================================================================
