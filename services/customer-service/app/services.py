import logging
import os
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from backoffice_common import security
from backoffice_common.errors import NotFoundError, ValidationError, ConflictError
from . import crud, models, schemas, validation

logger = logging.getLogger(__name__)

# Country used when an address names none
DEFAULT_COUNTRY = os.getenv("DEFAULT_COUNTRY", "Belgique")

# Fields that make two addresses of the same customer duplicates
ADDRESS_IDENTITY_FIELDS = ("address", "postal_code", "city", "country_id", "address_type")


class CustomerService:
    """
    Business rules of the customer service.

    Stores only provide the mechanism (queries, writes); uniqueness of emails,
    SIRET and VAT numbers, duplicate addresses and the single default address
    per customer are enforced here.
    """

    # ===== CUSTOMERS =====

    @staticmethod
    async def create_customer(db: AsyncSession, data: schemas.CustomerCreate) -> models.Customer:
        # 1. Unique email
        if await crud.email_exists(db, data.email):
            logger.warning(f"Customer creation rejected, email already used: {data.email}")
            raise ConflictError("A customer with this email already exists")

        # 2. Build the entity
        customer = models.Customer(**data.model_dump(exclude={"password"}))
        if data.password:
            customer.password_hash = security.hash_password(data.password)

        # 3. Persist
        saved = await crud.create_customer(db, customer)
        logger.info(f"Customer {saved.customer_id} created")
        return saved

    @staticmethod
    async def get_customer_by_id(db: AsyncSession, customer_id: int) -> models.Customer:
        customer = await crud.get_customer_by_id(db, customer_id)
        if not customer:
            raise NotFoundError("Customer", customer_id)
        return customer

    @staticmethod
    async def get_customer_by_email(db: AsyncSession, email: str) -> models.Customer:
        customer = await crud.get_customer_by_email(db, email)
        if not customer:
            raise NotFoundError("Customer")
        return customer

    @staticmethod
    async def email_exists(db: AsyncSession, email: str, exclude_id: Optional[int] = None) -> bool:
        return await crud.email_exists(db, email, exclude_id=exclude_id)

    @staticmethod
    async def update_customer(db: AsyncSession, customer_id: int, data: schemas.CustomerUpdate) -> models.Customer:
        """Applies only the fields present in `data`."""
        customer = await CustomerService.get_customer_by_id(db, customer_id)
        changes = data.model_dump(exclude_unset=True)

        new_email = changes.get("email")
        if new_email and new_email != customer.email:
            if await crud.email_exists(db, new_email, exclude_id=customer_id):
                logger.warning(f"Customer {customer_id} update rejected, email already used: {new_email}")
                raise ConflictError("A customer with this email already exists")

        for key, value in changes.items():
            setattr(customer, key, value)

        updated = await crud.update_customer(db, customer)
        logger.info(f"Customer {customer_id} updated ({', '.join(sorted(changes)) or 'no fields'})")
        return updated

    @staticmethod
    async def delete_customer(db: AsyncSession, customer_id: int) -> bool:
        customer = await CustomerService.get_customer_by_id(db, customer_id)
        deleted = await crud.delete_customer(db, customer)
        logger.info(f"Customer {customer_id} deleted")
        return deleted

    @staticmethod
    async def list_customers(
        db: AsyncSession,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        active_only: bool = False
    ):
        return await crud.get_customers(db, page=page, limit=limit, search=search, active_only=active_only)

    # ===== ADDRESSES =====

    @staticmethod
    async def _resolve_country_id(
        db: AsyncSession,
        country_id: Optional[int],
        country_name: Optional[str]
    ) -> int:
        """Turns a `countryId` or a `countryName` into an existing country ID."""
        if country_id is not None:
            country = await crud.get_country_by_id(db, country_id)
            if not country:
                raise ValidationError(f"Country {country_id} does not exist")
            return country.country_id

        name = country_name or DEFAULT_COUNTRY
        country = await crud.get_country_by_name(db, name)
        if not country:
            raise ValidationError(f"Unknown country: {name}")
        return country.country_id

    @staticmethod
    async def add_address(
        db: AsyncSession,
        customer_id: int,
        data: schemas.AddressCreate
    ) -> models.CustomerAddress:
        """
        Adds an address to an existing customer.

        The duplicate check runs before any default flag is touched, so a
        rejected duplicate never disturbs the current default. Clearing the
        previous default and inserting the new row share one transaction.

        Raises:
            NotFoundError: Unknown customer.
            ConflictError: Same address, postal code, city, country and type
                already registered for this customer.
            ValidationError: Unknown country or malformed field.
        """
        # 1. Customer must exist (locked when the default is about to move)
        customer = await crud.get_customer_by_id(db, customer_id, lock=data.is_default)
        if not customer:
            raise NotFoundError("Customer", customer_id)

        country_id = await CustomerService._resolve_country_id(db, data.country_id, data.country_name)
        fields = data.model_dump(mode="json", exclude={"country_id", "country_name"})

        # 2. Duplicate check
        duplicate = await crud.address_exists_for_customer(
            db,
            customer_id=customer_id,
            address=fields["address"],
            postal_code=fields["postal_code"],
            city=fields["city"],
            country_id=country_id,
            address_type=fields["address_type"],
        )
        if duplicate:
            logger.warning(f"Duplicate address rejected for customer {customer_id}")
            raise ConflictError("Address already exists for this customer")

        # 3. Only one default per customer
        if data.is_default:
            await crud.unset_default_for_customer(db, customer_id)

        # 4. Persist
        address = models.CustomerAddress(**fields, customer_id=customer_id, country_id=country_id)
        saved = await crud.create_address(db, address)
        logger.info(f"Address {saved.address_id} added to customer {customer_id} (default={saved.is_default})")
        return saved

    @staticmethod
    async def get_address_by_id(
        db: AsyncSession,
        address_id: int,
        customer_id: Optional[int] = None
    ) -> models.CustomerAddress:
        address = await crud.get_address_by_id(db, address_id)
        if not address or (customer_id is not None and address.customer_id != customer_id):
            raise NotFoundError("Address", address_id)
        return address

    @staticmethod
    async def update_address(
        db: AsyncSession,
        address_id: int,
        data: schemas.AddressUpdate,
        customer_id: Optional[int] = None
    ) -> models.CustomerAddress:
        """
        Partial update of an address.

        Fields missing from `data` keep their value. Promoting the address to
        default clears the other defaults of the customer, never this one.
        """
        address = await CustomerService.get_address_by_id(db, address_id, customer_id)
        changes = data.model_dump(mode="json", exclude_unset=True)

        country_name = changes.pop("country_name", None)
        if changes.get("country_id") is not None or country_name:
            changes["country_id"] = await CustomerService._resolve_country_id(
                db, changes.get("country_id"), country_name
            )

        # Re-check duplicates when the identity of the address changes
        if any(key in changes and changes[key] != getattr(address, key) for key in ADDRESS_IDENTITY_FIELDS):
            merged = {key: changes.get(key, getattr(address, key)) for key in ADDRESS_IDENTITY_FIELDS}
            duplicate = await crud.address_exists_for_customer(
                db,
                customer_id=address.customer_id,
                exclude_address_id=address_id,
                **merged
            )
            if duplicate:
                logger.warning(f"Address {address_id} update rejected, duplicate of another address")
                raise ConflictError("Address already exists for this customer")

        if changes.get("is_default") and not address.is_default:
            await crud.get_customer_by_id(db, address.customer_id, lock=True)
            await crud.unset_default_for_customer(db, address.customer_id, exclude_address_id=address_id)

        for key, value in changes.items():
            setattr(address, key, value)

        updated = await crud.update_address(db, address)
        logger.info(f"Address {address_id} updated ({', '.join(sorted(changes)) or 'no fields'})")
        return updated

    @staticmethod
    async def delete_address(
        db: AsyncSession,
        address_id: int,
        customer_id: Optional[int] = None
    ) -> bool:
        """Deletes an address. Another address is never promoted to default."""
        address = await CustomerService.get_address_by_id(db, address_id, customer_id)
        deleted = await crud.delete_address(db, address)
        logger.info(f"Address {address_id} of customer {address.customer_id} deleted")
        return deleted

    @staticmethod
    async def list_customer_addresses(db: AsyncSession, customer_id: int):
        await CustomerService.get_customer_by_id(db, customer_id)
        return await crud.list_addresses_by_customer(db, customer_id)

    # ===== COMPANIES =====

    @staticmethod
    def _clean_company_numbers(changes: dict) -> dict:
        for key in ("siret_number", "vat_number"):
            if key in changes and changes[key] is not None:
                changes[key] = validation.strip_spaces(changes[key]).upper() or None
        return changes

    @staticmethod
    async def add_company(
        db: AsyncSession,
        customer_id: int,
        data: schemas.CompanyCreate
    ) -> models.CustomerCompany:
        await CustomerService.get_customer_by_id(db, customer_id)
        fields = CustomerService._clean_company_numbers(data.model_dump())

        if fields.get("siret_number") and await crud.siret_exists(db, fields["siret_number"]):
            raise ConflictError("SIRET number already exists")
        if fields.get("vat_number") and await crud.vat_exists(db, fields["vat_number"]):
            raise ConflictError("VAT number already exists")

        company = models.CustomerCompany(**fields, customer_id=customer_id)
        saved = await crud.create_company(db, company)
        logger.info(f"Company {saved.company_id} added to customer {customer_id}")
        return saved

    @staticmethod
    async def get_company_by_id(
        db: AsyncSession,
        company_id: int,
        customer_id: Optional[int] = None
    ) -> models.CustomerCompany:
        company = await crud.get_company_by_id(db, company_id)
        if not company or (customer_id is not None and company.customer_id != customer_id):
            raise NotFoundError("Company", company_id)
        return company

    @staticmethod
    async def update_company(
        db: AsyncSession,
        company_id: int,
        data: schemas.CompanyUpdate,
        customer_id: Optional[int] = None
    ) -> models.CustomerCompany:
        company = await CustomerService.get_company_by_id(db, company_id, customer_id)
        changes = CustomerService._clean_company_numbers(data.model_dump(exclude_unset=True))

        siret = changes.get("siret_number")
        if siret and siret != company.siret_number and await crud.siret_exists(db, siret, exclude_id=company_id):
            raise ConflictError("SIRET number already exists")
        vat = changes.get("vat_number")
        if vat and vat != company.vat_number and await crud.vat_exists(db, vat, exclude_id=company_id):
            raise ConflictError("VAT number already exists")

        for key, value in changes.items():
            setattr(company, key, value)

        updated = await crud.update_company(db, company)
        logger.info(f"Company {company_id} updated")
        return updated

    @staticmethod
    async def delete_company(
        db: AsyncSession,
        company_id: int,
        customer_id: Optional[int] = None
    ) -> bool:
        company = await CustomerService.get_company_by_id(db, company_id, customer_id)
        deleted = await crud.delete_company(db, company)
        logger.info(f"Company {company_id} deleted")
        return deleted

    @staticmethod
    async def list_customer_companies(db: AsyncSession, customer_id: int):
        await CustomerService.get_customer_by_id(db, customer_id)
        return await crud.list_companies_by_customer(db, customer_id)

    # ===== REFERENCE DATA =====

    @staticmethod
    async def get_countries(db: AsyncSession):
        return await crud.get_countries(db)
