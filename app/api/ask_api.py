"""
API endpoints for bylaws Q&A.
"""
import asyncio
import logging
import os
import threading
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from app.core.errors import InvalidInput, QueryCancelled, RAGError
from app.db.client import search_client_manager
from app.db.deps import get_orchestrator
from app.models.chunk import RAGResponse
from app.models.config import RAGConfig
from app.services.retrieval_orchestrator import RetrievalOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ask", tags=["ask"])


class AskOptions(BaseModel):
    """Per-request overrides of the retrieval settings."""
    top: Optional[int] = Field(default=None, gt=0, le=50)
    threshold: Optional[float] = Field(default=None, ge=0.0)

    def apply(self, config: RAGConfig) -> RAGConfig:
        return config.model_copy(update=self.model_dump(exclude_none=True))


class AskRequest(BaseModel):
    """Request model for asking questions."""
    # Validated by the orchestrator so bad input gets a 400 rather than a 422
    question: Any = None
    options: Optional[AskOptions] = None

    class Config:
        json_schema_extra = {
            "example": {
                "question": "How much is the annual assessment?",
                "options": {"top": 8, "threshold": 0.5}
            }
        }


DISCONNECT_POLL_SECONDS = 0.5
CLIENT_CLOSED_REQUEST = 499


async def cancel_on_disconnect(http_request: Request, cancel_event: threading.Event) -> None:
    """Set `cancel_event` once the client goes away."""
    while not cancel_event.is_set():
        if await http_request.is_disconnected():
            logger.info("Client disconnected, cancelling query")
            cancel_event.set()
            return
        await asyncio.sleep(DISCONNECT_POLL_SECONDS)


@router.post("", response_model=RAGResponse)
async def ask_question(
    request: AskRequest,
    http_request: Request,
    orchestrator: RetrievalOrchestrator = Depends(get_orchestrator)
):
    """
    Ask a question and get an answer grounded in the HOA bylaws.

    1. Retrieve relevant bylaw chunks with hybrid vector + keyword search
    2. Generate an answer restricted to those chunks
    3. Return the sections the answer cites as sources

    The query runs in the threadpool and stops at the next stage if the client disconnects.
    """
    config = request.options.apply(orchestrator.config) if request.options else None
    cancel_event = threading.Event()
    watcher = asyncio.create_task(cancel_on_disconnect(http_request, cancel_event))

    try:
        return await run_in_threadpool(
            orchestrator.answer, request.question, config=config, cancel_event=cancel_event
        )
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    except QueryCancelled as e:
        logger.info(f"Query abandoned: {e}")
        return JSONResponse(status_code=CLIENT_CLOSED_REQUEST, content={"detail": str(e)})
    except RAGError as e:
        logger.error(f"RAG API error: {e}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content=orchestrator.error_response(e).model_dump(by_alias=True),
        )
    finally:
        watcher.cancel()


@router.get("")
def ask_status():
    """Service status, provider capabilities and active retrieval settings."""
    has_openai = bool(
        (os.getenv("AZURE_HOA_AI_ENDPOINT") or os.getenv("AZURE_OPENAI_ENDPOINT"))
        and (os.getenv("AZURE_HOA_AI_API_KEY") or os.getenv("AZURE_OPENAI_API_KEY"))
    )
    has_search = search_client_manager.is_configured()
    config = RAGConfig()

    return {
        "service": "HOA AI Assistant RAG API",
        "version": "1.0.0",
        "status": "operational",
        "capabilities": {
            "openai_integration": has_openai,
            "search_integration": has_search,
            "rag_enabled": has_openai and has_search,
        },
        "config": {
            "max_retrieved_chunks": config.top,
            "min_similarity_score": config.threshold,
            "max_response_tokens": config.max_response_tokens,
            "citation_fallback": config.citation_fallback.value,
        },
        "endpoints": {
            "ask": "POST /ask",
            "health": "GET /ask",
        },
    }
