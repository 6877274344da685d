"""
Advisor - Query routing and personalization service
Run with: uvicorn main:app --reload --port 8000

Routes free-text business questions to specialist agents and keeps
per-user memory that personalizes later routing.
"""

import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
load_dotenv()  # Must be before importing config

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from advisor.config import Config
from advisor.agents.advisor_orchestrator import AdvisorOrchestrator, create_advisor_orchestrator
from advisor.agents.exceptions import InvalidIdentityKeyError
from advisor.api_router import router as advisor_router, configure_router

cfg = Config()  # Fresh instance after dotenv loaded

logging.basicConfig(
    level=getattr(logging, cfg.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Globals
_orchestrator: AdvisorOrchestrator = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _orchestrator

    print("\n" + "="*50)
    print("  Advisor Startup")
    print("="*50 + "\n")

    # ConfigurationError here aborts startup
    _orchestrator = create_advisor_orchestrator(cfg)
    configure_router(_orchestrator)

    print(f"  Agents: {', '.join(_orchestrator.engine.registry.names())}")
    print(f"  Memory: {'enabled' if _orchestrator.memory else 'disabled'}")
    print(f"  Secondary threshold: {cfg.secondary_threshold}, max secondary: {cfg.max_secondary_agents}")
    print("\n" + "="*50 + "\n")

    yield

    configure_router(None)
    _orchestrator = None
    logger.info("Advisor shutdown complete")


app = FastAPI(title="Advisor", version="0.1.0", lifespan=lifespan)
app.include_router(advisor_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)


@app.exception_handler(InvalidIdentityKeyError)
async def invalid_identity_handler(request: Request, exc: InvalidIdentityKeyError):
    """Strict identity mode rejects blank user/session keys."""
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": {"code": "INVALID_IDENTITY_KEY", "message": str(exc)},
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Sanitized global exception handler - never exposes internal details."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": {
                "code": "INTERNAL_SERVER_ERROR",
                "message": "An unexpected error occurred. Please try again later."
            }
        },
        headers={"Access-Control-Allow-Origin": "*"}
    )


@app.get("/api/health")
async def health():
    """Health check with agent and memory status"""
    memory = _orchestrator.memory if _orchestrator else None
    return {
        "status": "healthy" if _orchestrator else "starting",
        "agents": len(_orchestrator.engine.registry) if _orchestrator else 0,
        "memory": memory is not None,
        "memory_keys": memory.get_stats()["keys"] if memory else 0,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
