"""FastAPI dependencies for appeals."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import AppealService


async def get_appeal_service(request: Request) -> AppealService:
    """Get appeal service from app state."""
    service = getattr(request.app.state, "appeal_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Appeal service not available",
        )
    return service


AppealServiceDep = Annotated[AppealService, Depends(get_appeal_service)]
