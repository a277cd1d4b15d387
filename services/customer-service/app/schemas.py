from pydantic import BaseModel, EmailStr, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Optional, List, Generic, TypeVar
from datetime import date, datetime

from .models import AddressType

T = TypeVar("T")

POSTAL_CODE_REGEX = r"^[\w\s-]+$"


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class MetaData(CamelModel):
    """Pagination metadata."""
    total: int
    page: int
    limit: int
    total_pages: int

class PaginatedResponse(CamelModel, Generic[T]):
    """Generic envelope for paginated listings."""
    data: List[T]
    meta: MetaData

class DeletedResponse(CamelModel):
    deleted: bool


# --- COUNTRIES ---
class CountryResponse(CamelModel):
    country_id: int
    country_name: str


# --- CUSTOMERS ---
def _not_in_future(value: Optional[date]) -> Optional[date]:
    if value and value > date.today():
        raise ValueError("Birthday cannot be in the future")
    return value

def _not_null(value):
    # Partial updates may omit the field, never null it
    if value is None:
        raise ValueError("Value cannot be null")
    return value

class CustomerBase(CamelModel):
    """Fields shared by creation and reads."""
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone_number: Optional[str] = Field(None, max_length=20, pattern=r"^[\d\s\-\+\(\)]+$")
    birthday: Optional[date] = None

class CustomerCreate(CustomerBase):
    """Self-registration or back-office creation of a customer."""
    password: Optional[str] = Field(None, min_length=8, max_length=72)
    is_active: bool = True

    @field_validator("birthday")
    @classmethod
    def birthday_not_in_future(cls, value):
        return _not_in_future(value)

class CustomerUpdate(CamelModel):
    """Partial update: only the fields sent are applied."""
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone_number: Optional[str] = Field(None, max_length=20, pattern=r"^[\d\s\-\+\(\)]+$")
    birthday: Optional[date] = None
    is_active: Optional[bool] = None

    @field_validator("birthday")
    @classmethod
    def birthday_not_in_future(cls, value):
        return _not_in_future(value)

    @field_validator("is_active")
    @classmethod
    def is_active_not_null(cls, value):
        return _not_null(value)

class CustomerResponse(CustomerBase):
    customer_id: int
    full_name: str
    is_active: bool
    created_at: datetime
    updated_at: datetime

class CustomerIdResponse(CamelModel):
    customer_id: int


# --- ADDRESSES ---
class AddressCreate(CamelModel):
    """
    New address for a customer.

    The country is given either by `countryId` or by `countryName`; when both
    are missing the service falls back to the default country.
    """
    address_type: AddressType = AddressType.SHIPPING
    address: str = Field(..., min_length=1)
    postal_code: str = Field(..., min_length=1, max_length=10, pattern=POSTAL_CODE_REGEX)
    city: str = Field(..., min_length=1, max_length=100)
    country_id: Optional[int] = None
    country_name: Optional[str] = None
    is_default: bool = False

class AddressUpdate(CamelModel):
    address_type: Optional[AddressType] = None
    address: Optional[str] = Field(None, min_length=1)
    postal_code: Optional[str] = Field(None, min_length=1, max_length=10, pattern=POSTAL_CODE_REGEX)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    country_id: Optional[int] = None
    country_name: Optional[str] = None
    is_default: Optional[bool] = None

    @field_validator("is_default")
    @classmethod
    def is_default_not_null(cls, value):
        return _not_null(value)

class AddressResponse(CamelModel):
    address_id: int
    customer_id: int
    address_type: AddressType
    address: str
    postal_code: str
    city: str
    country_id: int
    country_name: Optional[str] = None
    is_default: bool
    formatted_address: str
    created_at: datetime
    updated_at: datetime


# --- COMPANIES ---
class CompanyCreate(CamelModel):
    company_name: str = Field(..., min_length=1, max_length=255)
    siret_number: Optional[str] = Field(None, max_length=20)
    vat_number: Optional[str] = Field(None, max_length=20)

class CompanyUpdate(CamelModel):
    company_name: Optional[str] = Field(None, min_length=1, max_length=255)
    siret_number: Optional[str] = Field(None, max_length=20)
    vat_number: Optional[str] = Field(None, max_length=20)

class CompanyResponse(CamelModel):
    company_id: int
    customer_id: int
    company_name: str
    siret_number: Optional[str] = None
    vat_number: Optional[str] = None
    company_info: str
    created_at: datetime
    updated_at: datetime
