import pytest

from app import schemas
from app.services import CustomerService
from backoffice_common.errors import ConflictError, NotFoundError, ValidationError


async def _new_customer(db, email="ana@x.com"):
    return await CustomerService.create_customer(
        db, schemas.CustomerCreate(first_name="Ana", last_name="Bo", email=email)
    )


def test_company_numbers_are_cleaned_before_saving(run_db):
    async def scenario(sessions):
        async with sessions() as db:
            customer = await _new_customer(db)
            return await CustomerService.add_company(
                db,
                customer.customer_id,
                schemas.CompanyCreate(
                    company_name="Bo Conseil", siret_number="123 456 789 01234", vat_number="fr12345678901"
                ),
            )

    company = run_db(scenario)
    assert company.siret_number == "12345678901234"
    assert company.vat_number == "FR12345678901"
    assert company.company_info == "Bo Conseil - SIRET: 12345678901234 - TVA: FR12345678901"


def test_siret_and_vat_are_unique(run_db):
    async def scenario(sessions):
        async with sessions() as db:
            ana = await _new_customer(db)
            bob = await _new_customer(db, "bob@x.com")
            await CustomerService.add_company(
                db,
                ana.customer_id,
                schemas.CompanyCreate(company_name="A", siret_number="12345678901234", vat_number="BE0123456789"),
            )
            with pytest.raises(ConflictError, match="SIRET"):
                await CustomerService.add_company(
                    db, bob.customer_id, schemas.CompanyCreate(company_name="B", siret_number="12345678901234")
                )
            with pytest.raises(ConflictError, match="VAT"):
                await CustomerService.add_company(
                    db, bob.customer_id, schemas.CompanyCreate(company_name="B", vat_number="BE0123456789")
                )

    run_db(scenario)


def test_malformed_siret_is_a_validation_error(run_db):
    async def scenario(sessions):
        async with sessions() as db:
            customer = await _new_customer(db)
            with pytest.raises(ValidationError) as exc_info:
                await CustomerService.add_company(
                    db, customer.customer_id, schemas.CompanyCreate(company_name="A", siret_number="123")
                )
            return exc_info.value.errors

    assert run_db(scenario) == ["SIRET number must be 14 digits"]


def test_update_company_keeps_its_own_numbers(run_db):
    async def scenario(sessions):
        async with sessions() as db:
            customer = await _new_customer(db)
            company = await CustomerService.add_company(
                db,
                customer.customer_id,
                schemas.CompanyCreate(company_name="A", siret_number="12345678901234"),
            )
        async with sessions() as db:
            return await CustomerService.update_company(
                db,
                company.company_id,
                schemas.CompanyUpdate(company_name="A et fils", siret_number="12345678901234"),
                customer_id=customer.customer_id,
            )

    updated = run_db(scenario)
    assert updated.company_name == "A et fils"
    assert updated.siret_number == "12345678901234"


def test_company_of_another_customer_is_not_found(run_db):
    async def scenario(sessions):
        async with sessions() as db:
            ana = await _new_customer(db)
            bob = await _new_customer(db, "bob@x.com")
            company = await CustomerService.add_company(db, ana.customer_id, schemas.CompanyCreate(company_name="A"))
            with pytest.raises(NotFoundError):
                await CustomerService.get_company_by_id(db, company.company_id, bob.customer_id)
            with pytest.raises(NotFoundError):
                await CustomerService.delete_company(db, company.company_id, bob.customer_id)
            deleted = await CustomerService.delete_company(db, company.company_id, ana.customer_id)
            remaining = await CustomerService.list_customer_companies(db, ana.customer_id)
            return deleted, remaining

    deleted, remaining = run_db(scenario)
    assert deleted is True
    assert remaining == []


def test_company_for_unknown_customer_is_not_found(run_db):
    async def scenario(sessions):
        async with sessions() as db:
            with pytest.raises(NotFoundError):
                await CustomerService.add_company(db, 404, schemas.CompanyCreate(company_name="A"))

    run_db(scenario)
