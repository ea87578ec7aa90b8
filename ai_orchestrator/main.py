import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from ai_orchestrator.config.settings import get_settings
from ai_orchestrator.evaluation.schemas import CostSummary
from ai_orchestrator.llm.errors import NoProvidersAvailableError, ProviderError
from ai_orchestrator.orchestrator import Orchestrator
from ai_orchestrator.schemas import (
    ExecutionContext,
    ExecutionResult,
    Message,
    ModelConfig,
    QueryMode,
    RouterDecision,
    RouterStats,
    RouteType,
)

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)


class QueryRequest(BaseModel):
    query: str = Field(min_length=1)
    mode: QueryMode = QueryMode.STANDARD
    route: RouteType | None = None
    system_prompt: str | None = None
    conversation_history: list[Message] = Field(default_factory=list)
    retrieved_context: str | None = None


class RouteRequest(BaseModel):
    query: str = Field(min_length=1)
    mode: QueryMode = QueryMode.STANDARD
    context: dict | None = None


class ProvidersResponse(BaseModel):
    ready: bool
    providers: list[str]
    classifier_available: bool


@asynccontextmanager
async def lifespan(app: FastAPI):
    orchestrator = Orchestrator.from_settings(get_settings())
    app.state.orchestrator = orchestrator
    logger.info("Orchestrator initialized (providers: %s)", orchestrator.available_providers)
    yield
    await orchestrator.aclose()
    logger.info("Orchestrator shut down")


app = FastAPI(title="AI Orchestrator API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _orchestrator() -> Orchestrator:
    return app.state.orchestrator


@app.post("/api/query", response_model=ExecutionResult)
async def run_query(req: QueryRequest):
    orchestrator = _orchestrator()
    context = ExecutionContext(
        query=req.query,
        mode=req.mode,
        system_prompt=req.system_prompt,
        conversation_history=req.conversation_history,
        retrieved_context=req.retrieved_context,
    )
    try:
        if req.route is not None:
            return await orchestrator.process_with_route(req.route, context)
        return await orchestrator.process(context)
    except NoProvidersAvailableError as e:
        logger.error("Query rejected: %s", e)
        raise HTTPException(status_code=503, detail=str(e))
    except ProviderError as e:
        logger.error("All providers failed for query: %r", e)
        raise HTTPException(status_code=502, detail=f"{e.provider or 'provider'}: {str(e)[:200]}")


@app.post("/api/route", response_model=RouterDecision)
async def route_query(req: RouteRequest):
    return await _orchestrator().route(req.query, req.mode, context=req.context)


@app.get("/api/router/stats", response_model=RouterStats)
async def get_router_stats():
    return _orchestrator().get_stats()


@app.post("/api/router/stats/reset", status_code=204)
async def reset_router_stats():
    _orchestrator().reset_stats()


@app.get("/api/providers", response_model=ProvidersResponse)
async def get_providers():
    orchestrator = _orchestrator()
    return ProvidersResponse(
        ready=orchestrator.is_ready(),
        providers=orchestrator.available_providers,
        classifier_available=orchestrator.router.is_classifier_available(),
    )


@app.get("/api/models", response_model=dict[str, ModelConfig])
async def get_models():
    return _orchestrator().registry.models


@app.get("/api/costs", response_model=CostSummary)
async def get_costs():
    return _orchestrator().get_cost_summary()
