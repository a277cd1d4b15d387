from datetime import datetime, timezone
import enum

from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, ForeignKey, Text, Index
from sqlalchemy.orm import relationship
from .database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --- ENUMS ---
class AddressType(str, enum.Enum):
    SHIPPING = "shipping"
    BILLING = "billing"


# --- MODELS ---
class Country(Base):
    """Reference table for the countries an address can point to."""
    __tablename__ = "countries"

    country_id = Column(Integer, primary_key=True, index=True)
    country_name = Column(String(100), unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


class Customer(Base):
    """
    A back-office customer.

    Attributes:
        email: Unique across all customers (checked by the service before writing).
        password_hash: Only set when the customer registered with a password.
    """
    __tablename__ = "customers"

    customer_id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=True)
    phone_number = Column(String(20), nullable=True)
    birthday = Column(Date, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    addresses = relationship(
        "CustomerAddress", back_populates="customer", cascade="all, delete-orphan", passive_deletes=True
    )
    companies = relationship(
        "CustomerCompany", back_populates="customer", cascade="all, delete-orphan", passive_deletes=True
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


class CustomerAddress(Base):
    """
    Shipping or billing address of a customer.

    At most one address per customer carries `is_default = True`; the
    service clears the others in the same transaction that sets it.
    """
    __tablename__ = "customer_addresses"

    address_id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.customer_id", ondelete="CASCADE"), nullable=False)
    address_type = Column(String(50), default=AddressType.SHIPPING.value, nullable=False)
    address = Column(Text, nullable=False)
    postal_code = Column(String(10), nullable=False)
    city = Column(String(100), nullable=False)
    country_id = Column(Integer, ForeignKey("countries.country_id"), nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    customer = relationship("Customer", back_populates="addresses")
    country = relationship("Country", lazy="joined")

    __table_args__ = (
        Index("ix_customer_addresses_customer_id", "customer_id"),
    )

    @property
    def country_name(self):
        return self.country.country_name if self.country else None

    @property
    def formatted_address(self) -> str:
        return f"{self.address}, {self.postal_code} {self.city}".strip()


class CustomerCompany(Base):
    __tablename__ = "customer_companies"

    company_id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.customer_id", ondelete="CASCADE"), nullable=False, index=True)
    company_name = Column(String(255), nullable=False)
    siret_number = Column(String(20), nullable=True)  # 14 digits
    vat_number = Column(String(20), nullable=True)    # e.g. FR12345678901

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    customer = relationship("Customer", back_populates="companies")

    @property
    def company_info(self) -> str:
        parts = [self.company_name]
        if self.siret_number:
            parts.append(f"SIRET: {self.siret_number}")
        if self.vat_number:
            parts.append(f"TVA: {self.vat_number}")
        return " - ".join(parts)
