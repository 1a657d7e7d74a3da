"""Compile route — LaTeX source in, PDF out."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from starlette.background import BackgroundTask

from latex_service.api.auth import require_api_key
from latex_service.config import get_settings
from latex_service.exceptions import InternalError
from latex_service.schemas.pydantic import CompileRequest, ErrorOut
from latex_service.services.pdf_compiler import compile_job
from latex_service.services.sandbox import cleanup_job, create_job, stage_assets
from latex_service.utils import sanitize_filename

logger = logging.getLogger(__name__)

router = APIRouter(tags=["compile"], dependencies=[Depends(require_api_key)])


@router.post(
    "/compile",
    response_class=Response,
    responses={
        200: {"content": {"application/pdf": {}}, "description": "Compiled PDF"},
        400: {"model": ErrorOut},
        403: {"model": ErrorOut},
        413: {"model": ErrorOut},
        429: {"model": ErrorOut},
        500: {"model": ErrorOut},
    },
)
async def compile_pdf(body: CompileRequest) -> Response:
    """Compile the posted LaTeX in an isolated job directory and return the PDF.

    The job directory is removed on every path: immediately on failure, and
    after the response has been sent on success.
    """
    settings = get_settings()
    base_name = sanitize_filename(body.filename)

    try:
        job = create_job(body.latex, base_name, tmp_root=settings.tmp_root, engine=settings.engine)
    except OSError as exc:
        logger.exception("Could not create job directory under %s", settings.tmp_root)
        raise InternalError() from exc

    try:
        stage_assets(job, settings.assets_dir, settings.staged_assets)
        pdf_bytes = await compile_job(job, settings)
    except OSError as exc:
        cleanup_job(job)
        logger.exception("File-system error during job %s", job.job_id)
        raise InternalError() from exc
    except BaseException:
        cleanup_job(job)
        raise

    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{base_name}.pdf"'},
        background=BackgroundTask(cleanup_job, job),
    )
