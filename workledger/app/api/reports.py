"""
Report generation endpoint.

Returns the assembled block-list document model. Rendering it to PDF or
HTML is the job of an external document-rendering collaborator.
"""

from fastapi import APIRouter

from workledger.app.api.deps import Context, ServicesDep, unwrap
from workledger.app.schemas.document import ReportDocument, ReportRequest

router = APIRouter(tags=["Reports"])


@router.post(
    "",
    response_model=ReportDocument,
    summary="Assemble a report document from selected entries",
)
def generate_report(
    body: ReportRequest,
    ctx: Context,
    services: ServicesDep,
) -> ReportDocument:
    return unwrap(services.reports.generate(ctx, body))
