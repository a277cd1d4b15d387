from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from backoffice_common.security import RequirePermission, Permissions, UserPayload
from .. import schemas
from ..database import get_db
from ..services import CustomerService

router = APIRouter(prefix="/api", tags=["Addresses"])

# --- PUBLIC ENDPOINTS ---

@router.post("/customers/{customer_id}/addresses", response_model=schemas.AddressResponse, status_code=201)
async def add_address(
    customer_id: int,
    address: schemas.AddressCreate,
    db: AsyncSession = Depends(get_db)
):
    """
    **Add an address**

    **Errors:**
    - `404 Not Found`: unknown customer.
    - `409 Conflict`: the customer already has this address.
    """
    return await CustomerService.add_address(db, customer_id, address)

# --- ADMIN ENDPOINTS ---

@router.get("/admin/customers/{customer_id}/addresses", response_model=List[schemas.AddressResponse])
async def list_addresses(
    customer_id: int,
    db: AsyncSession = Depends(get_db),
    user: UserPayload = Depends(RequirePermission(Permissions.ADDRESS_READ))
):
    """Addresses of a customer, the default one first, then most recent first."""
    return await CustomerService.list_customer_addresses(db, customer_id)

@router.post("/admin/customers/{customer_id}/addresses", response_model=schemas.AddressResponse, status_code=201)
async def admin_add_address(
    customer_id: int,
    address: schemas.AddressCreate,
    db: AsyncSession = Depends(get_db),
    user: UserPayload = Depends(RequirePermission(Permissions.ADDRESS_MANAGE))
):
    return await CustomerService.add_address(db, customer_id, address)

@router.get("/admin/customers/{customer_id}/addresses/{address_id}", response_model=schemas.AddressResponse)
async def read_address(
    customer_id: int,
    address_id: int,
    db: AsyncSession = Depends(get_db),
    user: UserPayload = Depends(RequirePermission(Permissions.ADDRESS_READ))
):
    return await CustomerService.get_address_by_id(db, address_id, customer_id)

@router.put("/admin/customers/{customer_id}/addresses/{address_id}", response_model=schemas.AddressResponse)
async def update_address(
    customer_id: int,
    address_id: int,
    address_update: schemas.AddressUpdate,
    db: AsyncSession = Depends(get_db),
    user: UserPayload = Depends(RequirePermission(Permissions.ADDRESS_MANAGE))
):
    """Partial update, fields that are not sent keep their value."""
    return await CustomerService.update_address(db, address_id, address_update, customer_id)

@router.delete("/admin/customers/{customer_id}/addresses/{address_id}", response_model=schemas.DeletedResponse)
async def delete_address(
    customer_id: int,
    address_id: int,
    db: AsyncSession = Depends(get_db),
    user: UserPayload = Depends(RequirePermission(Permissions.ADDRESS_MANAGE))
):
    deleted = await CustomerService.delete_address(db, address_id, customer_id)
    return {"deleted": deleted}
