from typing import Annotated

from fastapi import APIRouter, Depends, Query

from statement_categorizer.api.dependencies import get_service
from statement_categorizer.api.schemas import MonthlyReportResponse
from statement_categorizer.manager import CategorizerService
from statement_categorizer.models import DashboardStats

router = APIRouter()


@router.get("/reports/monthly", response_model=MonthlyReportResponse)
async def monthly_report(
    month: Annotated[str, Query(pattern=r"^[0-9]{4}-[0-9]{2}$")],
    service: Annotated[CategorizerService, Depends(get_service)],
) -> MonthlyReportResponse:
    report = await service.monthly_report(month)
    return MonthlyReportResponse.from_report(report)


@router.get("/stats", response_model=DashboardStats)
async def dashboard_stats(
    service: Annotated[CategorizerService, Depends(get_service)],
) -> DashboardStats:
    return await service.dashboard_stats()
