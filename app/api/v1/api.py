# File: app/api/v1/api.py
from fastapi import APIRouter
from app.api.v1.endpoints import cron, document_boxes

# Create main API router
api_router = APIRouter()

api_router.include_router(
    cron.router,
    prefix="/cron",
    tags=["cron"]
)

api_router.include_router(
    document_boxes.router,
    prefix="/document-boxes",
    tags=["document-boxes"]
)
