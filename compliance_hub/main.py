import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from compliance_hub.api.audit import router as audit_router
from compliance_hub.api.disclosure_forms import router as disclosure_forms_router
from compliance_hub.api.health import router as health_router
from compliance_hub.api.root import router as root_router
from compliance_hub.core.config import settings
from compliance_hub.core.logging import configure_logging

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="Compliance Hub")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(root_router)
app.include_router(health_router)
app.include_router(disclosure_forms_router, prefix=settings.API_PREFIX)
app.include_router(audit_router, prefix=settings.API_PREFIX)

logger.info("Compliance Hub started (env=%s)", settings.APP_ENV)
