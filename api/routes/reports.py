"""
Reporting endpoints.
"""

from fastapi import APIRouter, Depends

from accounts.models import Role
from api.auth import require_authentication, require_role
from api.dependencies import ServiceContainer, get_services
from api.models import DataResponse

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("/books/top-books", response_model=DataResponse, dependencies=[Depends(require_role(Role.ADMIN))])
async def top_books(services: ServiceContainer = Depends(get_services)):
    entries = await services.reports.top_books()
    return DataResponse(
        message="Report data retrieved successfully",
        data=[entry.model_dump() for entry in entries],
    )


@router.get(
    "/books/languages-distribution",
    response_model=DataResponse,
    dependencies=[Depends(require_authentication)],
)
async def languages_distribution(services: ServiceContainer = Depends(get_services)):
    rows = await services.reports.languages_distribution()
    return DataResponse(
        message="Report data retrieved successfully",
        data=[row.model_dump() for row in rows],
    )


@router.get(
    "/users/monthly-signups",
    response_model=DataResponse,
    dependencies=[Depends(require_authentication)],
)
async def monthly_signups(services: ServiceContainer = Depends(get_services)):
    rows = await services.reports.monthly_signups()
    return DataResponse(
        message="Report data retrieved successfully",
        data=[row.model_dump() for row in rows],
    )
