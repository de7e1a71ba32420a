"""
FastAPI main application for the HOA bylaws assistant.
"""
import logging

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api import ask_api, document_api
from app.core.errors import ConfigurationError
from app.services.retrieval_orchestrator import RetrievalOrchestrator


load_dotenv()
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(
    title="HOA Bylaws Assistant API",
    description="Retrieval-augmented Q&A over the HOA bylaws with section citations",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(ask_api.router)
app.include_router(document_api.router)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    """Missing provider settings are reported without exposing which variable is unset."""
    logger.error(f"Configuration error on {request.url.path}: {exc}")
    body = RetrievalOrchestrator.error_response(exc)
    return JSONResponse(status_code=500, content=body.model_dump(by_alias=True))


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "HOA Bylaws Assistant API",
        "version": "1.0.0",
        "endpoints": {
            "ask": "/ask",
            "documents": "/documents",
            "docs": "/docs"
        }
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
