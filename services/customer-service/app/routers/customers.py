from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from backoffice_common.security import RequirePermission, Permissions, UserPayload
from .. import schemas
from ..database import get_db
from ..services import CustomerService

router = APIRouter(prefix="/api", tags=["Customers"])

# --- PUBLIC ENDPOINTS ---

@router.post("/customers", response_model=schemas.CustomerResponse, status_code=201)
async def register_customer(
    customer: schemas.CustomerCreate,
    db: AsyncSession = Depends(get_db)
):
    """
    **Customer self-registration**

    **Errors:**
    - `409 Conflict`: the email is already used by another customer.
    """
    return await CustomerService.create_customer(db, customer)

# Specific email routes must be declared before /customers/{customer_id}
@router.get("/customers/by-email/{email}/id", response_model=schemas.CustomerIdResponse)
async def read_customer_id_by_email(email: str, db: AsyncSession = Depends(get_db)):
    """Returns only the customer ID matching an email."""
    customer = await CustomerService.get_customer_by_email(db, email)
    return {"customer_id": customer.customer_id}

@router.get("/customers/by-email/{email}", response_model=schemas.CustomerResponse)
async def read_customer_by_email(email: str, db: AsyncSession = Depends(get_db)):
    return await CustomerService.get_customer_by_email(db, email)

@router.get("/customers/{customer_id}", response_model=schemas.CustomerResponse)
async def read_customer(customer_id: int, db: AsyncSession = Depends(get_db)):
    return await CustomerService.get_customer_by_id(db, customer_id)

# --- ADMIN ENDPOINTS ---

@router.get("/admin/customers", response_model=schemas.PaginatedResponse[schemas.CustomerResponse])
async def list_customers(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    active_only: bool = Query(False, alias="activeOnly"),
    db: AsyncSession = Depends(get_db),
    user: UserPayload = Depends(RequirePermission(Permissions.CUSTOMER_READ))
):
    """
    **List customers**

    Paginated, most recent first. `search` filters on first name, last name
    or email.
    """
    return await CustomerService.list_customers(db, page=page, limit=limit, search=search, active_only=active_only)

@router.get("/admin/customers/search", response_model=schemas.PaginatedResponse[schemas.CustomerResponse])
async def search_customers(
    q: Optional[str] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    user: UserPayload = Depends(RequirePermission(Permissions.CUSTOMER_READ))
):
    """Same listing as /admin/customers, `q` is an alias of `search`."""
    return await CustomerService.list_customers(db, page=page, limit=limit, search=search or q)

@router.post("/admin/customers", response_model=schemas.CustomerResponse, status_code=201)
async def create_customer(
    customer: schemas.CustomerCreate,
    db: AsyncSession = Depends(get_db),
    user: UserPayload = Depends(RequirePermission(Permissions.CUSTOMER_CREATE))
):
    return await CustomerService.create_customer(db, customer)

@router.get("/admin/customers/{customer_id}", response_model=schemas.CustomerResponse)
async def admin_read_customer(
    customer_id: int,
    db: AsyncSession = Depends(get_db),
    user: UserPayload = Depends(RequirePermission(Permissions.CUSTOMER_READ))
):
    return await CustomerService.get_customer_by_id(db, customer_id)

@router.put("/admin/customers/{customer_id}", response_model=schemas.CustomerResponse)
async def update_customer(
    customer_id: int,
    customer_update: schemas.CustomerUpdate,
    db: AsyncSession = Depends(get_db),
    user: UserPayload = Depends(RequirePermission(Permissions.CUSTOMER_UPDATE))
):
    """
    **Edit a customer**

    Only the fields sent are changed. `409 Conflict` if the new email
    belongs to another customer.
    """
    return await CustomerService.update_customer(db, customer_id, customer_update)

@router.delete("/admin/customers/{customer_id}", response_model=schemas.DeletedResponse)
async def delete_customer(
    customer_id: int,
    db: AsyncSession = Depends(get_db),
    user: UserPayload = Depends(RequirePermission(Permissions.CUSTOMER_DELETE))
):
    """Deletes the customer together with its addresses and companies."""
    deleted = await CustomerService.delete_customer(db, customer_id)
    return {"deleted": deleted}
