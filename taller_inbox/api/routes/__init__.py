"""API routes."""

from fastapi import APIRouter

from taller_inbox.api.routes import leads, whatsapp_webhooks

api_router = APIRouter()

# Public routes (provider callbacks, no auth)
api_router.include_router(whatsapp_webhooks.router, prefix="/webhooks", tags=["whatsapp-webhooks"])

# Protected routes (operator token required)
api_router.include_router(leads.router, prefix="/leads", tags=["leads"])
