# =============================================================================
# PDF Chat
# =============================================================================
# Upload a PDF, then ask natural-language questions answered from its content
# with page-level citations.
#
# Package structure:
#   pdf_chat/
#   ├── api/          → FastAPI route handlers (upload, job status, chat)
#   ├── agents/       → LangGraph query pipeline (retrieve → generate)
#   ├── models/       → Pydantic V2 request/response and job payload schemas
#   ├── services/     → Business logic (parsing, chunking, embedding,
#   │                    vector store, LLM providers, ingestion worker)
#   └── workers/      → Celery app, ingestion task, job store, job events
# =============================================================================
