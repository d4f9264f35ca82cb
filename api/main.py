"""
FastAPI Backend for Rootstock Yield RAG
=======================================

Provides REST API for:
- Context retrieval for a question
- System prompt building for a conversation
- Data refresh and debug inspection
- Project lookups
- Health checks
"""

from typing import Optional, List, Dict, Any

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from config.settings import settings
from yieldrag.knowledge_base import KnowledgeBase


# ============== Pydantic Models ==============

class ContextRequest(BaseModel):
    """Request body for context retrieval."""
    query: str = Field(..., min_length=1, description="User question")


class ContextResponse(BaseModel):
    """Rendered context for a question."""
    query: str
    context: str


class ChatMessage(BaseModel):
    role: str
    content: str


class PromptRequest(BaseModel):
    """Request body for prompt building."""
    messages: List[ChatMessage] = Field(..., min_length=1)
    force_refresh: bool = Field(False, description="Bypass the record cache")


class PromptResponse(BaseModel):
    system_prompt: str
    messages: List[ChatMessage]


class RefreshRequest(BaseModel):
    force: bool = False


class RefreshResponse(BaseModel):
    """Outcome of a refresh."""
    refreshed: bool
    records_indexed: int
    documents: int
    failures: List[Dict[str, Any]] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)


class ProtocolSummary(BaseModel):
    project: str
    symbol: str
    apy: float
    tvlUsd: float
    exposure: str
    ilRisk: str


class DebugDataResponse(BaseModel):
    totalProtocols: int
    protocols: List[ProtocolSummary]
    sampleContext: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    stores: dict


# ============== Application Setup ==============

def create_app() -> FastAPI:
    """Create and configure FastAPI application."""

    app = FastAPI(
        title="Rootstock Yield RAG",
        description="Grounding context for questions about Rootstock yield opportunities",
        version=settings.version
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    settings.describe()

    # Lazy-loaded, see get_knowledge_base()
    app.state.knowledge_base = None

    return app


app = create_app()


def get_knowledge_base() -> KnowledgeBase:
    """Get or create the knowledge base."""
    if app.state.knowledge_base is None:
        app.state.knowledge_base = KnowledgeBase()
    return app.state.knowledge_base


# ============== Endpoints ==============

@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Health check endpoint.

    Returns document and record counts of the installed generation.
    """
    stores = {
        "documents": "unknown",
        "records": "unknown",
        "last_updated": None,
    }

    try:
        kb = get_knowledge_base()
        stores["documents"] = f"{kb.document_count} documents"
        stores["records"] = f"{len(kb.records)} records"
        stores["last_updated"] = kb.last_updated
    except Exception as e:
        stores["error"] = str(e)

    return HealthResponse(
        status="healthy",
        version=settings.version,
        stores=stores
    )


@app.get("/api/debug-data", response_model=DebugDataResponse)
def debug_data():
    """
    Refresh data and show what the model would be grounded on.

    Lists every indexed protocol and the context for a sample question.
    """
    try:
        kb = get_knowledge_base()
        kb.refresh()

        return DebugDataResponse(
            totalProtocols=len(kb.records),
            protocols=[ProtocolSummary(**r.to_summary()) for r in kb.records],
            sampleContext=kb.query(settings.retrieval.sample_query)
        )

    except Exception as e:
        print(f"[API] Error in debug data route: {e}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to fetch debug data: {str(e)}"
        )


@app.post("/api/context", response_model=ContextResponse)
def get_context(request: ContextRequest):
    """Rendered retrieval context for one question."""
    kb = get_knowledge_base()
    return ContextResponse(query=request.query, context=kb.query(request.query))


@app.post("/api/prompt", response_model=PromptResponse)
def build_prompt(request: PromptRequest):
    """
    Build the grounded system prompt for a conversation.

    The last user message is used as the retrieval query.
    """
    try:
        kb = get_knowledge_base()
        result = kb.build_prompt(
            [m.model_dump() for m in request.messages],
            force_refresh=request.force_refresh
        )
        return PromptResponse(
            system_prompt=result.system_prompt,
            messages=request.messages
        )

    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Prompt building failed: {str(e)}"
        )


@app.post("/api/refresh", response_model=RefreshResponse)
def refresh(request: Optional[RefreshRequest] = None):
    """Pull records and install a new generation if the pull is new."""
    force = request.force if request else False

    try:
        kb = get_knowledge_base()
        result = kb.refresh(force_refresh=force)
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Refresh failed: {str(e)}"
        )

    if result is None:
        return RefreshResponse(
            refreshed=False,
            records_indexed=len(kb.records),
            documents=kb.document_count
        )

    summary = result.to_dict()
    return RefreshResponse(
        refreshed=True,
        records_indexed=result.records_indexed,
        documents=result.documents_created,
        failures=summary["failures"],
        errors=result.errors
    )


@app.get("/api/projects/{name}", response_model=List[ProtocolSummary])
def get_project(name: str):
    """Indexed pools of one project."""
    records = get_knowledge_base().get_project_data(name)
    if not records:
        raise HTTPException(
            status_code=404,
            detail=f"Project {name} not found"
        )
    return [ProtocolSummary(**r.to_summary()) for r in records]


# ============== Run Configuration ==============

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug
    )
