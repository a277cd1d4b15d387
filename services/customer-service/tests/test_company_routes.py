import pytest


@pytest.fixture()
def customer_id(client):
    response = client.post("/api/customers", json={"firstName": "Ana", "lastName": "Bo", "email": "ana@x.com"})
    return response.json()["customerId"]


def test_company_lifecycle(client, admin_headers, customer_id):
    base = f"/api/admin/customers/{customer_id}/companies"

    created = client.post(
        base, json={"companyName": "Bo Conseil", "siretNumber": "12345678901234"}, headers=admin_headers
    )
    assert created.status_code == 201
    company_id = created.json()["companyId"]
    assert created.json()["companyInfo"] == "Bo Conseil - SIRET: 12345678901234"

    updated = client.put(f"{base}/{company_id}", json={"vatNumber": "FR12345678901"}, headers=admin_headers)
    assert updated.status_code == 200
    assert updated.json()["siretNumber"] == "12345678901234"
    assert updated.json()["vatNumber"] == "FR12345678901"

    assert [c["companyId"] for c in client.get(base, headers=admin_headers).json()] == [company_id]

    assert client.delete(f"{base}/{company_id}", headers=admin_headers).json() == {"deleted": True}
    assert client.get(f"{base}/{company_id}", headers=admin_headers).status_code == 404


def test_duplicate_siret_is_a_conflict(client, admin_headers, customer_id):
    base = f"/api/admin/customers/{customer_id}/companies"
    client.post(base, json={"companyName": "A", "siretNumber": "12345678901234"}, headers=admin_headers)

    response = client.post(base, json={"companyName": "B", "siretNumber": "12345678901234"}, headers=admin_headers)

    assert response.status_code == 409
    assert response.json()["detail"] == "SIRET number already exists"


def test_malformed_vat_is_a_bad_request(client, admin_headers, customer_id):
    response = client.post(
        f"/api/admin/customers/{customer_id}/companies",
        json={"companyName": "A", "vatNumber": "123"},
        headers=admin_headers,
    )

    assert response.status_code == 400
    assert response.json()["errors"] == ["VAT number format is invalid (e.g., FR12345678901)"]
