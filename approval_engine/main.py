"""
Approval & Verification Engine — FastAPI Application.

This is the entry point for the application.
All routers are registered here.
"""

import logging

from fastapi import FastAPI

from approval_engine.config import get_settings
from approval_engine.api.health import router as health_router
from approval_engine.api.principals import router as principals_router
from approval_engine.api.kyb import router as kyb_router
from approval_engine.api.approvals import router as approvals_router
from approval_engine.api.audit import router as audit_router

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Account approval and KYB verification for the bounty platform",
)

# Register routers
app.include_router(health_router)
app.include_router(principals_router)
app.include_router(kyb_router)
app.include_router(approvals_router)
app.include_router(audit_router)
