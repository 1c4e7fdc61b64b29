from typing import Annotated, Any

from fastapi import APIRouter, Depends

from statement_categorizer.api.dependencies import get_service
from statement_categorizer.manager import CategorizerService

router = APIRouter()


@router.post("/train")
async def train_model(
    service: Annotated[CategorizerService, Depends(get_service)],
) -> dict[str, Any]:
    model = await service.train_model()
    return {
        "status": "success",
        "samples": model.sample_count,
        "vocabulary_size": model.vocabulary_size,
    }


@router.get("/train-status")
async def get_training_status(
    service: Annotated[CategorizerService, Depends(get_service)],
) -> dict[str, Any]:
    return service.classification.model_status()


@router.post("/clear-models")
async def clear_models(
    service: Annotated[CategorizerService, Depends(get_service)],
) -> dict[str, str]:
    service.clear_models()
    return {"status": "success", "message": "Model cleared"}
