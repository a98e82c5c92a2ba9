from fastapi import APIRouter

from compliance_hub.core.config import settings

router = APIRouter(include_in_schema=False)


@router.get("/")
def root():
    """Service banner with pointers to the docs and the versioned API."""
    return {
        "name": "Compliance Hub Backend",
        "status": "ok",
        "env": settings.APP_ENV,
        "docs": "/docs",
        "health": "/health",
        "api": settings.API_PREFIX,
        "resources": {
            "disclosure_forms": f"{settings.API_PREFIX}/disclosure-forms",
            "audit": f"{settings.API_PREFIX}/audit",
        },
    }
