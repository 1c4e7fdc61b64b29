from typing import Annotated

from fastapi import APIRouter, Depends

from statement_categorizer.api.dependencies import get_service
from statement_categorizer.api.schemas import ImportRequest
from statement_categorizer.domain.csv_rows import decode_upload
from statement_categorizer.logger import get_logger
from statement_categorizer.manager import CategorizerService
from statement_categorizer.models import ImportResult

logger = get_logger(__name__)

router = APIRouter()


@router.post("/import", response_model=ImportResult)
async def import_statement(
    req: ImportRequest,
    service: Annotated[CategorizerService, Depends(get_service)],
) -> ImportResult:
    logger.info("[IMPORT] Upload received: %s", req.filename or "<unnamed>")
    content = decode_upload(req.file_content)
    return await service.import_csv(content, skip_duplicates=req.skip_duplicates)
