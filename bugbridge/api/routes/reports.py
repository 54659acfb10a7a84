from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from jinja2 import TemplateError

from bugbridge.api.routes.exports import ReportRequest, is_truthy
from bugbridge.container import container
from bugbridge.core.errors import INVALID_CREDENTIAL_MESSAGE, BadRequestError, TrackerError
from bugbridge.domain.models import FilterSelection

logger = logging.getLogger("bugbridge.api.reports")

router = APIRouter()

ERROR_TEMPLATE = "error.html"


def error_page(message: str, details: str | None = None, status_code: int = 500) -> HTMLResponse:
    html = container.template_env.get_template(ERROR_TEMPLATE).render(
        message=message, details=details
    )
    return HTMLResponse(content=html, status_code=status_code)


def _failure_details(exc: Exception) -> str:
    if isinstance(exc, TrackerError) and exc.is_auth_error:
        return INVALID_CREDENTIAL_MESSAGE
    return str(exc) or type(exc).__name__


def selection_from_query(request: Request) -> FilterSelection:
    params = request.query_params
    return FilterSelection(
        feedback=is_truthy(params.get("feedback")),
        task_board=is_truthy(params.get("taskBoard")),
        archive=is_truthy(params.get("archive")),
    )


@router.post("/generate-html-report", response_class=HTMLResponse)
async def generate_html_report(payload: ReportRequest) -> HTMLResponse:
    if not payload.project_id:
        raise BadRequestError("Project ID is required")
    try:
        return await container.report_service.html_report(payload.project_id, payload.filters)
    except (TrackerError, TemplateError) as e:
        logger.warning("report.html_failed project=%s: %s", payload.project_id, e)
        return error_page(
            "An error occurred while generating the HTML report:",
            f"Failed to generate report: {_failure_details(e)}",
        )


@router.get("/generate-brand-report", response_class=HTMLResponse)
async def generate_brand_report(request: Request) -> HTMLResponse:
    project_id = (request.query_params.get("projectId") or "").strip()
    if not project_id:
        raise BadRequestError("Project ID is required")
    selection = selection_from_query(request)
    try:
        return await container.report_service.brand_report(project_id, selection)
    except (TrackerError, TemplateError) as e:
        logger.warning("report.brand_failed project=%s: %s", project_id, e)
        return error_page("Failed to generate brand report", _failure_details(e))
