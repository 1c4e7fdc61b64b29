from fastapi import HTTPException, Request

from statement_categorizer.manager import CategorizerService


def get_service(request: Request) -> CategorizerService:
    service = getattr(request.app.state, "service", None)
    if not service:
        raise HTTPException(status_code=500, detail="Service not initialized")
    return service
