from fastapi import APIRouter, status
from pydantic import BaseModel
from datetime import datetime
from app.config.settings import settings

router = APIRouter(prefix="/health", tags=["health"])


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    version: str
    environment: str


@router.get("", response_model=HealthResponse, status_code=status.HTTP_200_OK)
async def health_check():
    """Health check endpoint"""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.utcnow(),
        version="1.0.0",
        environment=settings.environment
    )


@router.get("/readiness")
async def readiness_check():
    """Readiness check endpoint"""
    checks = {
        "github_oauth": "ok" if settings.github_client_id and settings.github_client_secret else "not_configured",
        "jwt": "ok" if settings.jwt_secret else "not_configured",
        "openai": "ok" if settings.openai_api_key else "not_configured",
        "gemini": "ok" if settings.gemini_api_key else "not_configured",
    }

    # One AI provider is enough to serve requests
    ai_ready = "ok" in (checks["openai"], checks["gemini"])
    all_ok = ai_ready and checks["github_oauth"] == "ok" and checks["jwt"] == "ok"

    return {
        "status": "ready" if all_ok else "not_ready",
        "checks": checks,
        "timestamp": datetime.utcnow()
    }
