from fastapi import APIRouter

from pagegrade.features.analysis.routes.analysis import router as analysis_router
from pagegrade.features.analysis.routes.reports import router as report_router
from pagegrade.features.analysis.routes.sse import router as analysis_stream_router
from pagegrade.features.health.routes.health import router as health_router

api_router = APIRouter()

# Stream routes first so "/analysis/stream" is never read as a job id
api_router.include_router(analysis_stream_router)
api_router.include_router(analysis_router)
api_router.include_router(report_router)
api_router.include_router(health_router)
