from typing import Annotated

from fastapi import APIRouter, Depends

from statement_categorizer.api.dependencies import get_service
from statement_categorizer.api.schemas import CategoryCreateRequest, CategoryResponse
from statement_categorizer.manager import CategorizerService

router = APIRouter()


@router.get("/categories", response_model=list[CategoryResponse])
async def list_categories(
    service: Annotated[CategorizerService, Depends(get_service)],
) -> list[CategoryResponse]:
    categories = await service.categories.find_all()
    return [CategoryResponse.from_category(category) for category in categories]


@router.post("/categories", response_model=CategoryResponse, status_code=201)
async def create_category(
    req: CategoryCreateRequest,
    service: Annotated[CategorizerService, Depends(get_service)],
) -> CategoryResponse:
    category = await service.create_category(req.to_fields())
    return CategoryResponse.from_category(category)


@router.get("/categories/{category_id}", response_model=CategoryResponse)
async def get_category(
    category_id: int,
    service: Annotated[CategorizerService, Depends(get_service)],
) -> CategoryResponse:
    category = await service.get_category(category_id)
    return CategoryResponse.from_category(category)
