from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from ..database import get_db
from ..schemas.service import ServiceCreate, ServiceUpdate, ServiceResponse
from ..services.catalogue_service import CatalogueService
from ..utils.dependencies import SessionContext, require_admin

router = APIRouter(prefix="/api/services", tags=["Services"])


@router.get("", response_model=List[ServiceResponse])
async def list_services(
    category: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """Add-ons a guest can attach to a booking"""
    return CatalogueService(db).list_services(category=category)


@router.get("/all", response_model=List[ServiceResponse])
async def list_all_services(
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_admin)
):
    """Including deactivated services"""
    return CatalogueService(db).list_services(include_inactive=True)


@router.get("/{service_id}", response_model=ServiceResponse)
async def get_service(service_id: str, db: Session = Depends(get_db)):
    return CatalogueService(db).get_service(service_id)


@router.post("", response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
async def create_service(
    data: ServiceCreate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_admin)
):
    return CatalogueService(db).create_service(**data.model_dump())


@router.put("/{service_id}", response_model=ServiceResponse)
async def update_service(
    service_id: str,
    data: ServiceUpdate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_admin)
):
    return CatalogueService(db).update_service(service_id, data.model_dump(exclude_unset=True))


@router.delete("/{service_id}", response_model=ServiceResponse)
async def delete_service(
    service_id: str,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_admin)
):
    """Soft delete: the service leaves the list, past booking lines are untouched"""
    return CatalogueService(db).deactivate_service(service_id)
