"""Health check endpoint."""

from fastapi import APIRouter

from backend.app.config import get_settings

router = APIRouter()


def collaborator_backend() -> str:
    """Which collaborator backend the factory would select."""
    settings = get_settings()
    if settings.collaborator_base_url:
        return "http"
    if settings.openai_api_key and settings.openai_api_key.get_secret_value():
        return "openai"
    return "stub"


@router.get("/health")
async def health() -> dict[str, str]:
    """Simple health check for Docker/k8s.

    Returns:
        200 OK always (application is running)
    """
    return {"status": "ok", "collaborators": collaborator_backend()}
