from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from backoffice_common.security import RequirePermission, Permissions, UserPayload
from .. import schemas
from ..database import get_db
from ..services import CustomerService

router = APIRouter(prefix="/api/admin/customers/{customer_id}/companies", tags=["Companies"])

@router.get("", response_model=List[schemas.CompanyResponse])
async def list_companies(
    customer_id: int,
    db: AsyncSession = Depends(get_db),
    user: UserPayload = Depends(RequirePermission(Permissions.COMPANY_READ))
):
    return await CustomerService.list_customer_companies(db, customer_id)

@router.post("", response_model=schemas.CompanyResponse, status_code=201)
async def add_company(
    customer_id: int,
    company: schemas.CompanyCreate,
    db: AsyncSession = Depends(get_db),
    user: UserPayload = Depends(RequirePermission(Permissions.COMPANY_MANAGE))
):
    """
    **Attach a company to a customer**

    SIRET (14 digits) and VAT numbers are optional but unique.
    """
    return await CustomerService.add_company(db, customer_id, company)

@router.get("/{company_id}", response_model=schemas.CompanyResponse)
async def read_company(
    customer_id: int,
    company_id: int,
    db: AsyncSession = Depends(get_db),
    user: UserPayload = Depends(RequirePermission(Permissions.COMPANY_READ))
):
    return await CustomerService.get_company_by_id(db, company_id, customer_id)

@router.put("/{company_id}", response_model=schemas.CompanyResponse)
async def update_company(
    customer_id: int,
    company_id: int,
    company_update: schemas.CompanyUpdate,
    db: AsyncSession = Depends(get_db),
    user: UserPayload = Depends(RequirePermission(Permissions.COMPANY_MANAGE))
):
    return await CustomerService.update_company(db, company_id, company_update, customer_id)

@router.delete("/{company_id}", response_model=schemas.DeletedResponse)
async def delete_company(
    customer_id: int,
    company_id: int,
    db: AsyncSession = Depends(get_db),
    user: UserPayload = Depends(RequirePermission(Permissions.COMPANY_MANAGE))
):
    deleted = await CustomerService.delete_company(db, company_id, customer_id)
    return {"deleted": deleted}
