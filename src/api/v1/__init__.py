from fastapi import APIRouter
from src.api.v1.submissions import router as submissions_router
from src.api.v1.statistics import router as statistics_router

# Create main API router
api_router = APIRouter(prefix="/api/v1")

api_router.include_router(submissions_router)
api_router.include_router(statistics_router)
