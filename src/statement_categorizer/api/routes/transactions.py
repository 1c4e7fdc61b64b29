from typing import Annotated

from fastapi import APIRouter, Depends, Query

from statement_categorizer.api.dependencies import get_service
from statement_categorizer.api.schemas import ManualClassifyRequest
from statement_categorizer.manager import CategorizerService
from statement_categorizer.models import ClassificationResult, ClassificationStatus, Transaction

router = APIRouter(prefix="/transactions")


@router.get("", response_model=list[Transaction])
async def list_transactions(
    service: Annotated[CategorizerService, Depends(get_service)],
    status: ClassificationStatus | None = None,
    limit: Annotated[int | None, Query(ge=1)] = None,
    offset: Annotated[int | None, Query(ge=0)] = None,
) -> list[Transaction]:
    if status is not None:
        return await service.transactions.find_by_status(status)
    return await service.transactions.find_all(limit, offset)


@router.get("/review", response_model=list[Transaction])
async def transactions_requiring_review(
    service: Annotated[CategorizerService, Depends(get_service)],
) -> list[Transaction]:
    return await service.transactions_requiring_review()


@router.get("/{transaction_id}", response_model=Transaction)
async def get_transaction(
    transaction_id: int,
    service: Annotated[CategorizerService, Depends(get_service)],
) -> Transaction:
    return await service.transaction_manager.get(transaction_id)


@router.post("/{transaction_id}/suggest", response_model=ClassificationResult)
async def suggest_category(
    transaction_id: int,
    service: Annotated[CategorizerService, Depends(get_service)],
) -> ClassificationResult:
    return await service.classify_transaction(transaction_id)


@router.post("/{transaction_id}/classify", response_model=Transaction)
async def classify_manually(
    transaction_id: int,
    req: ManualClassifyRequest,
    service: Annotated[CategorizerService, Depends(get_service)],
) -> Transaction:
    return await service.manual_classify(transaction_id, req.category_id)


@router.post("/{transaction_id}/approve", response_model=Transaction)
async def approve_suggestion(
    transaction_id: int,
    service: Annotated[CategorizerService, Depends(get_service)],
) -> Transaction:
    return await service.accept_suggestion(transaction_id)
