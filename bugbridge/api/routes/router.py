from fastapi import APIRouter

from bugbridge.api.routes import exports, projects, reports, uploads

api_router = APIRouter()

api_router.include_router(projects.router, prefix="", tags=["projects"])  # /projects
api_router.include_router(uploads.router, prefix="", tags=["uploads"])  # /upload
api_router.include_router(exports.router, prefix="", tags=["exports"])  # /export
api_router.include_router(reports.router, prefix="", tags=["reports"])  # /generate-*-report
