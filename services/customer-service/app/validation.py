"""
Entity checks run by the stores right before a write.

The request schemas already validate payloads at the HTTP boundary; these
checks run again on the ORM entity so that no code path can persist a
malformed row.
"""
import re
from datetime import date
from typing import List

from . import models

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^[\d\s\-\+\(\)]+$")
POSTAL_CODE_PATTERN = re.compile(r"^[\w\s\-]+$")
SIRET_PATTERN = re.compile(r"^\d{14}$")
VAT_PATTERN = re.compile(r"^[A-Z]{2}[A-Z0-9]{2,12}$")

ADDRESS_TYPES = {t.value for t in models.AddressType}


def _blank(value) -> bool:
    return value is None or not str(value).strip()


def strip_spaces(value: str) -> str:
    return re.sub(r"\s", "", value or "")


def validate_customer(customer: models.Customer) -> List[str]:
    errors = []
    if _blank(customer.first_name):
        errors.append("First name is required")
    if _blank(customer.last_name):
        errors.append("Last name is required")
    if _blank(customer.email):
        errors.append("Email is required")
    elif not EMAIL_PATTERN.match(customer.email):
        errors.append("Email format is invalid")
    if customer.phone_number and not PHONE_PATTERN.match(customer.phone_number):
        errors.append("Phone number format is invalid")
    if customer.birthday and customer.birthday > date.today():
        errors.append("Birthday cannot be in the future")
    if customer.is_active is None:
        errors.append("Active flag is required")
    return errors


def validate_address(address: models.CustomerAddress) -> List[str]:
    errors = []
    if not address.customer_id:
        errors.append("Customer ID is required")
    if address.address_type not in ADDRESS_TYPES:
        errors.append('Address type must be either "shipping" or "billing"')
    if _blank(address.address):
        errors.append("Address is required")
    if _blank(address.postal_code):
        errors.append("Postal code is required")
    elif not POSTAL_CODE_PATTERN.match(address.postal_code):
        errors.append("Postal code format is invalid")
    if _blank(address.city):
        errors.append("City is required")
    if not address.country_id:
        errors.append("Country ID is required")
    if address.is_default is None:
        errors.append("Default flag is required")
    return errors


def validate_company(company: models.CustomerCompany) -> List[str]:
    errors = []
    if not company.customer_id:
        errors.append("Customer ID is required")
    if _blank(company.company_name):
        errors.append("Company name is required")
    if company.siret_number and not SIRET_PATTERN.match(strip_spaces(company.siret_number)):
        errors.append("SIRET number must be 14 digits")
    if company.vat_number and not VAT_PATTERN.match(strip_spaces(company.vat_number)):
        errors.append("VAT number format is invalid (e.g., FR12345678901)")
    return errors
