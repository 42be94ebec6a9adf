from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response

from registrar.auth.dependencies import get_service_context
from registrar.auth.schemas import ServiceContext
from registrar.core.exceptions import ServiceError

from .report import build_error_workbook
from .schemas import ImportResult, StudentImportRequest
from .service import StudentImportService

router = APIRouter(prefix="/api/v1/students", tags=["student-imports"])


def get_student_import_service(request: Request) -> StudentImportService:
    return request.app.state.student_import_service


@router.post("/import", response_model=ImportResult)
async def import_students(
    payload: StudentImportRequest,
    error_report: bool = Query(False, description="Return an Excel error report when the import is rejected"),
    service: StudentImportService = Depends(get_student_import_service),
    ctx: ServiceContext = Depends(get_service_context),
):
    """
    Import students with their first enrollment. All-or-nothing: either every row is
    created or none is. Set dry_run to validate without writing.
    """
    try:
        result = await service.import_students(ctx.user_id, payload.academic_year_id, payload.rows, payload.dry_run)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    if error_report and result.success_count == 0 and result.has_blocking_errors:
        return Response(
            content=build_error_workbook(result),
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            headers={"Content-Disposition": "attachment; filename=student_import_errors.xlsx"},
        )
    return result
