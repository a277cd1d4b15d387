import pytest

from app import crud, models, schemas
from app.services import CustomerService
from backoffice_common.errors import NotFoundError, ValidationError


async def _customer_with_country(db):
    customer = await CustomerService.create_customer(
        db, schemas.CustomerCreate(first_name="Ana", last_name="Bo", email="ana@x.com")
    )
    belgique = await crud.get_country_by_name(db, "Belgique")
    return customer.customer_id, belgique.country_id


def _entity(customer_id, country_id, **overrides):
    fields = {
        "customer_id": customer_id,
        "address_type": "shipping",
        "address": "Rue Haute 12",
        "postal_code": "4000",
        "city": "Liège",
        "country_id": country_id,
        "is_default": False,
    }
    fields.update(overrides)
    return models.CustomerAddress(**fields)


def test_create_rejects_malformed_entity(run_db):
    async def scenario(sessions):
        async with sessions() as db:
            customer_id, country_id = await _customer_with_country(db)
            with pytest.raises(ValidationError) as exc_info:
                await crud.create_address(
                    db, _entity(customer_id, None, postal_code="40#00", city="   ", is_default=None)
                )
            await db.rollback()
            return exc_info.value.errors, await crud.list_addresses_by_customer(db, customer_id)

    errors, addresses = run_db(scenario)
    assert "Postal code format is invalid" in errors
    assert "City is required" in errors
    assert "Country ID is required" in errors
    assert "Default flag is required" in errors
    assert addresses == []


def test_create_rejects_unknown_country(run_db):
    async def scenario(sessions):
        async with sessions() as db:
            customer_id, _ = await _customer_with_country(db)
            with pytest.raises(ValidationError) as exc_info:
                await crud.create_address(db, _entity(customer_id, 999))
            return exc_info.value.errors

    assert run_db(scenario) == ["Country 999 does not exist"]


def test_update_rejects_malformed_entity(run_db):
    async def scenario(sessions):
        async with sessions() as db:
            customer_id, country_id = await _customer_with_country(db)
            address = await crud.create_address(db, _entity(customer_id, country_id))
            address_id = address.address_id
            address.postal_code = "40#00"
            with pytest.raises(ValidationError):
                await crud.update_address(db, address)
            await db.rollback()
        async with sessions() as db:
            return (await crud.get_address_by_id(db, address_id)).postal_code

    assert run_db(scenario) == "4000"


def test_update_of_vanished_row_is_not_found(run_db):
    async def scenario(sessions):
        async with sessions() as db:
            customer_id, country_id = await _customer_with_country(db)
            address = await crud.create_address(db, _entity(customer_id, country_id))
        async with sessions() as db:
            await CustomerService.delete_address(db, address.address_id)
        async with sessions() as db:
            address.city = "Namur"
            with pytest.raises(NotFoundError):
                await crud.update_address(db, address)

    run_db(scenario)


def test_unset_default_spares_excluded_address(run_db):
    async def scenario(sessions):
        async with sessions() as db:
            customer_id, country_id = await _customer_with_country(db)
            a1 = await crud.create_address(db, _entity(customer_id, country_id, address="Rue 1", is_default=True))
            a2 = await crud.create_address(db, _entity(customer_id, country_id, address="Rue 2", is_default=True))
            await crud.unset_default_for_customer(db, customer_id, exclude_address_id=a2.address_id)
            await db.commit()
        async with sessions() as db:
            addresses = await crud.list_addresses_by_customer(db, customer_id)
            return a1.address_id, a2.address_id, {a.address_id: a.is_default for a in addresses}

    a1_id, a2_id, flags = run_db(scenario)
    assert flags == {a1_id: False, a2_id: True}


def test_failed_create_after_unset_keeps_previous_default(run_db):
    async def scenario(sessions):
        async with sessions() as db:
            customer_id, country_id = await _customer_with_country(db)
            a1 = await crud.create_address(db, _entity(customer_id, country_id, is_default=True))
        async with sessions() as db:
            await crud.unset_default_for_customer(db, customer_id)
            with pytest.raises(ValidationError):
                await crud.create_address(
                    db, _entity(customer_id, country_id, address="   ", is_default=True)
                )
            await db.rollback()
        async with sessions() as db:
            addresses = await crud.list_addresses_by_customer(db, customer_id)
            return a1.address_id, [(a.address_id, a.is_default) for a in addresses]

    a1_id, rows = run_db(scenario)
    assert rows == [(a1_id, True)]
