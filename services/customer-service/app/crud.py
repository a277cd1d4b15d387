from typing import Optional, Dict, Any, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import func, or_, update, delete
from backoffice_common.errors import NotFoundError, ValidationError
from . import models, validation

REFERENCE_COUNTRIES = ["France", "Belgique", "Suisse", "Canada", "États-Unis"]


def _ensure_valid(errors: List[str]) -> None:
    if errors:
        raise ValidationError(f"Validation failed: {', '.join(errors)}", errors=errors)


# --- COUNTRIES ---
async def get_countries(db: AsyncSession):
    query = select(models.Country).order_by(models.Country.country_name.asc())
    result = await db.execute(query)
    return result.scalars().all()

async def get_country_by_id(db: AsyncSession, country_id: int):
    return await db.get(models.Country, country_id)

async def get_country_by_name(db: AsyncSession, country_name: str):
    query = select(models.Country).filter(models.Country.country_name == country_name)
    result = await db.execute(query)
    return result.scalars().first()

async def seed_countries(db: AsyncSession) -> int:
    """Inserts the reference countries that are missing. Returns how many were added."""
    existing = set((await db.execute(select(models.Country.country_name))).scalars().all())
    missing = [name for name in REFERENCE_COUNTRIES if name not in existing]
    for name in missing:
        db.add(models.Country(country_name=name))
    if missing:
        await db.commit()
    return len(missing)


# --- CUSTOMERS ---
async def get_customer_by_id(db: AsyncSession, customer_id: int, lock: bool = False):
    """
    Looks a customer up by ID.

    Args:
        db (AsyncSession): Database session.
        customer_id (int): Customer ID.
        lock (bool): Take a row lock (SELECT ... FOR UPDATE) until the
            transaction ends. Used to serialize default-address changes.

    Returns:
        models.Customer | None
    """
    query = select(models.Customer).filter(models.Customer.customer_id == customer_id)
    if lock:
        query = query.with_for_update()
    result = await db.execute(query)
    return result.scalars().first()

async def get_customer_by_email(db: AsyncSession, email: str):
    query = select(models.Customer).filter(models.Customer.email == email)
    result = await db.execute(query)
    return result.scalars().first()

async def email_exists(db: AsyncSession, email: str, exclude_id: Optional[int] = None) -> bool:
    """True if another customer already uses this email."""
    query = select(models.Customer.customer_id).filter(models.Customer.email == email)
    if exclude_id is not None:
        query = query.filter(models.Customer.customer_id != exclude_id)
    result = await db.execute(query.limit(1))
    return result.scalar() is not None

async def get_customers(
    db: AsyncSession,
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
    active_only: bool = False
) -> Dict[str, Any]:
    """
    Paginated customer listing.

    Args:
        db (AsyncSession): Database session.
        page (int): Page number, starting at 1.
        limit (int): Rows per page.
        search (str, optional): Filter on first name, last name or email.
        active_only (bool): Skip deactivated customers.

    Returns:
        Dict: 'data' (list) and 'meta' (pagination).
    """
    offset = (page - 1) * limit

    conditions = []
    if active_only:
        conditions.append(models.Customer.is_active == True)

    if search:
        search_term = f"%{search}%"
        conditions.append(
            or_(
                models.Customer.first_name.ilike(search_term),
                models.Customer.last_name.ilike(search_term),
                models.Customer.email.ilike(search_term)
            )
        )

    # 1. Count IDs only
    count_query = select(func.count(models.Customer.customer_id)).filter(*conditions)
    total = (await db.execute(count_query)).scalar() or 0

    # 2. Page of rows
    query = (
        select(models.Customer)
        .filter(*conditions)
        .order_by(models.Customer.created_at.desc(), models.Customer.customer_id.desc())
        .offset(offset)
        .limit(limit)
    )
    result = await db.execute(query)
    data = result.scalars().all()

    total_pages = (total + limit - 1) // limit if limit > 0 else 0

    return {
        "data": data,
        "meta": {
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": total_pages
        }
    }

async def create_customer(db: AsyncSession, customer: models.Customer) -> models.Customer:
    _ensure_valid(validation.validate_customer(customer))
    db.add(customer)
    await db.commit()
    await db.refresh(customer)
    return customer

async def update_customer(db: AsyncSession, customer: models.Customer) -> models.Customer:
    _ensure_valid(validation.validate_customer(customer))
    db.add(customer)
    await db.commit()
    await db.refresh(customer)
    return customer

async def delete_customer(db: AsyncSession, customer: models.Customer) -> bool:
    """Deletes the customer together with its addresses and companies."""
    customer_id = customer.customer_id
    await db.execute(delete(models.CustomerAddress).where(models.CustomerAddress.customer_id == customer_id))
    await db.execute(delete(models.CustomerCompany).where(models.CustomerCompany.customer_id == customer_id))
    result = await db.execute(delete(models.Customer).where(models.Customer.customer_id == customer_id))
    await db.commit()
    return result.rowcount > 0


# --- ADDRESSES ---
async def get_address_by_id(db: AsyncSession, address_id: int):
    query = select(models.CustomerAddress).filter(models.CustomerAddress.address_id == address_id)
    result = await db.execute(query)
    return result.scalars().first()

async def list_addresses_by_customer(db: AsyncSession, customer_id: int):
    """
    Addresses of a customer, default first, then most recent first.

    Callers rely on index 0 being the default address when there is one.
    """
    query = (
        select(models.CustomerAddress)
        .filter(models.CustomerAddress.customer_id == customer_id)
        .order_by(
            models.CustomerAddress.is_default.desc(),
            models.CustomerAddress.created_at.desc(),
            models.CustomerAddress.address_id.desc()
        )
    )
    result = await db.execute(query)
    return result.scalars().all()

async def address_exists_for_customer(
    db: AsyncSession,
    *,
    customer_id: int,
    address: str,
    postal_code: str,
    city: str,
    country_id: int,
    address_type: Optional[str] = None,
    exclude_address_id: Optional[int] = None
) -> bool:
    """
    Exact-match lookup (case-sensitive, no normalization) used to reject
    duplicate addresses before an insert or update.
    """
    conditions = [
        models.CustomerAddress.customer_id == customer_id,
        models.CustomerAddress.address == address,
        models.CustomerAddress.postal_code == postal_code,
        models.CustomerAddress.city == city,
        models.CustomerAddress.country_id == country_id,
    ]
    if address_type is not None:
        conditions.append(models.CustomerAddress.address_type == address_type)
    if exclude_address_id is not None:
        conditions.append(models.CustomerAddress.address_id != exclude_address_id)

    query = select(models.CustomerAddress.address_id).filter(*conditions).limit(1)
    result = await db.execute(query)
    return result.scalar() is not None

async def create_address(db: AsyncSession, address: models.CustomerAddress) -> models.CustomerAddress:
    """
    Inserts a new address and commits.

    Any pending default reset issued by `unset_default_for_customer` in the
    same session is committed together with the insert.

    Raises:
        ValidationError: Missing or malformed field, unknown country.
    """
    errors = validation.validate_address(address)
    if address.country_id and await get_country_by_id(db, address.country_id) is None:
        errors.append(f"Country {address.country_id} does not exist")
    _ensure_valid(errors)

    db.add(address)
    await db.commit()
    await db.refresh(address)
    return address

async def update_address(db: AsyncSession, address: models.CustomerAddress) -> models.CustomerAddress:
    """
    Persists a modified address and commits.

    Raises:
        NotFoundError: The row was removed in the meantime.
        ValidationError: Missing or malformed field, unknown country.
    """
    _ensure_valid(validation.validate_address(address))

    # The entity already carries the new values, keep them out of the lookups
    with db.no_autoflush:
        exists_query = select(models.CustomerAddress.address_id).filter(
            models.CustomerAddress.address_id == address.address_id
        )
        if (await db.execute(exists_query)).scalar() is None:
            raise NotFoundError("Address", address.address_id)

        if await get_country_by_id(db, address.country_id) is None:
            _ensure_valid([f"Country {address.country_id} does not exist"])

    db.add(address)
    await db.commit()
    await db.refresh(address)
    return address

async def delete_address(db: AsyncSession, address: models.CustomerAddress) -> bool:
    result = await db.execute(
        delete(models.CustomerAddress).where(models.CustomerAddress.address_id == address.address_id)
    )
    await db.commit()
    return result.rowcount > 0

async def unset_default_for_customer(
    db: AsyncSession,
    customer_id: int,
    exclude_address_id: Optional[int] = None
) -> None:
    """
    Clears `is_default` on every default address of the customer, except
    `exclude_address_id` when given.

    Does not commit: the write that sets the new default commits both
    statements in one transaction.
    """
    conditions = [
        models.CustomerAddress.customer_id == customer_id,
        models.CustomerAddress.is_default == True,
    ]
    if exclude_address_id is not None:
        conditions.append(models.CustomerAddress.address_id != exclude_address_id)

    stmt = (
        update(models.CustomerAddress)
        .where(*conditions)
        .values(is_default=False)
        .execution_options(synchronize_session="fetch")
    )
    await db.execute(stmt)


# --- COMPANIES ---
async def get_company_by_id(db: AsyncSession, company_id: int):
    return await db.get(models.CustomerCompany, company_id)

async def list_companies_by_customer(db: AsyncSession, customer_id: int):
    query = (
        select(models.CustomerCompany)
        .filter(models.CustomerCompany.customer_id == customer_id)
        .order_by(models.CustomerCompany.created_at.desc(), models.CustomerCompany.company_id.desc())
    )
    result = await db.execute(query)
    return result.scalars().all()

async def siret_exists(db: AsyncSession, siret_number: str, exclude_id: Optional[int] = None) -> bool:
    query = select(models.CustomerCompany.company_id).filter(models.CustomerCompany.siret_number == siret_number)
    if exclude_id is not None:
        query = query.filter(models.CustomerCompany.company_id != exclude_id)
    return (await db.execute(query.limit(1))).scalar() is not None

async def vat_exists(db: AsyncSession, vat_number: str, exclude_id: Optional[int] = None) -> bool:
    query = select(models.CustomerCompany.company_id).filter(models.CustomerCompany.vat_number == vat_number)
    if exclude_id is not None:
        query = query.filter(models.CustomerCompany.company_id != exclude_id)
    return (await db.execute(query.limit(1))).scalar() is not None

async def create_company(db: AsyncSession, company: models.CustomerCompany) -> models.CustomerCompany:
    _ensure_valid(validation.validate_company(company))
    db.add(company)
    await db.commit()
    await db.refresh(company)
    return company

async def update_company(db: AsyncSession, company: models.CustomerCompany) -> models.CustomerCompany:
    _ensure_valid(validation.validate_company(company))
    db.add(company)
    await db.commit()
    await db.refresh(company)
    return company

async def delete_company(db: AsyncSession, company: models.CustomerCompany) -> bool:
    result = await db.execute(
        delete(models.CustomerCompany).where(models.CustomerCompany.company_id == company.company_id)
    )
    await db.commit()
    return result.rowcount > 0
