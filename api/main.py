"""
Review Harvester - API Backend
==============================
Extracts customer reviews from arbitrary e-commerce product pages.
"""

# Load Env Vars FIRST
from dotenv import load_dotenv
load_dotenv()

import logging
from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from core.ai.engine import build_completion
from core.config import get_settings
from api.routers import reviews

settings = get_settings()

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=f"{settings.PROJECT_NAME} API",
    description="Adaptive review extraction for e-commerce product pages",
    version="1.0.0"
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(reviews.router)


# Startup/Shutdown Events

@app.on_event("startup")
async def startup_event():
    """Build the completion client once per process"""
    app.state.completion = build_completion(settings)
    logger.info(f"✅ Completion client ready ({settings.LLM_PROVIDER})")


@app.on_event("shutdown")
async def shutdown_event():
    completion = getattr(app.state, "completion", None)
    if completion is not None:
        await completion.aclose()


# ===== ENDPOINTS =====

@app.get("/", response_class=PlainTextResponse)
def root():
    return "hello World !"


@app.get("/health")
def health():
    return {"status": "healthy", "timestamp": datetime.utcnow().isoformat()}


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Server running on port {settings.PORT}")
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
