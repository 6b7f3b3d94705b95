from datetime import datetime, timezone
from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, Numeric, ForeignKey, Table, UniqueConstraint, Index,
)
from sqlalchemy.orm import relationship
from .database import Base

SCHEMA_VERSION = "1.0"


def _utcnow():
    return datetime.now(timezone.utc)


class SchemaVersion(Base):
    __tablename__ = "schema_versions"
    id = Column(Integer, primary_key=True)
    version = Column(String(20), nullable=False)
    applied_at = Column(DateTime, default=_utcnow)


class Store(Base):
    __tablename__ = "stores"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(400), nullable=False)
    url = Column(String(400), nullable=False, default="http://localhost/")
    default_language_id = Column(Integer, ForeignKey("languages.id"), nullable=True)
    display_order = Column(Integer, default=1)


class Language(Base):
    __tablename__ = "languages"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    language_culture = Column(String(20), nullable=False, unique=True)
    unique_seo_code = Column(String(2), nullable=True)
    published = Column(Boolean, default=True)
    display_order = Column(Integer, default=1)
    resources = relationship("LocaleStringResource", back_populates="language", cascade="all, delete-orphan")


class LocaleStringResource(Base):
    __tablename__ = "locale_string_resources"
    id = Column(Integer, primary_key=True, index=True)
    language_id = Column(Integer, ForeignKey("languages.id"), nullable=False)
    resource_name = Column(String(200), nullable=False)
    resource_value = Column(Text, nullable=False)
    language = relationship("Language", back_populates="resources")

    __table_args__ = (
        Index("ix_locale_string_resources_language_name", "language_id", "resource_name"),
    )


class Country(Base):
    __tablename__ = "countries"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    two_letter_iso_code = Column(String(2), nullable=False, unique=True)
    currency_code = Column(String(3), nullable=True)
    published = Column(Boolean, default=True)
    display_order = Column(Integer, default=100)


class Setting(Base):
    __tablename__ = "settings"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    value = Column(Text, nullable=False)
    store_id = Column(Integer, default=0)

    __table_args__ = (UniqueConstraint("name", "store_id", name="uq_settings_name_store"),)


customer_role_mapping = Table(
    "customer_role_mapping",
    Base.metadata,
    Column("customer_id", Integer, ForeignKey("customers.id", ondelete="CASCADE"), primary_key=True),
    Column("customer_role_id", Integer, ForeignKey("customer_roles.id", ondelete="CASCADE"), primary_key=True),
)

permission_role_mapping = Table(
    "permission_role_mapping",
    Base.metadata,
    Column("permission_record_id", Integer, ForeignKey("permission_records.id", ondelete="CASCADE"), primary_key=True),
    Column("customer_role_id", Integer, ForeignKey("customer_roles.id", ondelete="CASCADE"), primary_key=True),
)


class CustomerRole(Base):
    __tablename__ = "customer_roles"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    system_name = Column(String(255), nullable=False, unique=True)
    is_system_role = Column(Boolean, default=True)
    active = Column(Boolean, default=True)
    customers = relationship("Customer", secondary=customer_role_mapping, back_populates="roles")
    permissions = relationship("PermissionRecord", secondary=permission_role_mapping, back_populates="roles")


class Customer(Base):
    __tablename__ = "customers"
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    username = Column(String(255), nullable=True)
    hashed_password = Column(String(512), nullable=False)
    is_active = Column(Boolean, default=True)
    is_system_account = Column(Boolean, default=False)
    created_at = Column(DateTime, default=_utcnow)
    roles = relationship("CustomerRole", secondary=customer_role_mapping, back_populates="customers")


class PermissionRecord(Base):
    __tablename__ = "permission_records"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    system_name = Column(String(255), nullable=False, unique=True)
    category = Column(String(255), nullable=False)
    roles = relationship("CustomerRole", secondary=permission_role_mapping, back_populates="permissions")


class Category(Base):
    __tablename__ = "categories"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(400), nullable=False)
    description = Column(Text, nullable=True)
    parent_category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    display_order = Column(Integer, default=0)
    published = Column(Boolean, default=True)
    created_at = Column(DateTime, default=_utcnow)
    products = relationship("Product", back_populates="category")


class Product(Base):
    __tablename__ = "products"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(400), nullable=False)
    sku = Column(String(400), nullable=True, unique=True)
    short_description = Column(Text, nullable=True)
    price = Column(Numeric(18, 4), nullable=False, default=0)
    stock_quantity = Column(Integer, default=0)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    published = Column(Boolean, default=True)
    created_by = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=_utcnow)
    category = relationship("Category", back_populates="products")
