import logging
from dataclasses import dataclass
from typing import Dict, List

from ..database import session_scope
from ..models import CustomerRole, PermissionRecord

logger = logging.getLogger(__name__)

ADMINISTRATORS = "Administrators"
REGISTERED = "Registered"
GUESTS = "Guests"


@dataclass(frozen=True)
class Permission:
    name: str
    system_name: str
    category: str


class PermissionProvider:
    def get_permissions(self) -> List[Permission]:
        raise NotImplementedError

    def get_default_permissions(self) -> Dict[str, List[Permission]]:
        """Role system name -> permissions granted to it on install."""
        raise NotImplementedError


class StandardPermissionProvider(PermissionProvider):
    ACCESS_ADMIN_PANEL = Permission("Access admin area", "AccessAdminPanel", "Standard")
    MANAGE_PRODUCTS = Permission("Admin area. Manage Products", "ManageProducts", "Catalog")
    MANAGE_CATEGORIES = Permission("Admin area. Manage Categories", "ManageCategories", "Catalog")
    MANAGE_ORDERS = Permission("Admin area. Manage Orders", "ManageOrders", "Orders")
    MANAGE_CUSTOMERS = Permission("Admin area. Manage Customers", "ManageCustomers", "Customers")
    MANAGE_SETTINGS = Permission("Admin area. Manage Settings", "ManageSettings", "Configuration")
    MANAGE_PLUGINS = Permission("Admin area. Manage Plugins", "ManagePlugins", "Configuration")
    MANAGE_LANGUAGES = Permission("Admin area. Manage Languages", "ManageLanguages", "Configuration")
    PUBLIC_STORE_ALLOW_NAVIGATION = Permission(
        "Public store. Allow navigation", "PublicStoreAllowNavigation", "PublicStore")
    ENABLE_SHOPPING_CART = Permission("Public store. Enable shopping cart", "EnableShoppingCart", "PublicStore")
    DISPLAY_PRICES = Permission("Public store. Display Prices", "DisplayPrices", "PublicStore")

    def get_permissions(self) -> List[Permission]:
        return [
            self.ACCESS_ADMIN_PANEL,
            self.MANAGE_PRODUCTS,
            self.MANAGE_CATEGORIES,
            self.MANAGE_ORDERS,
            self.MANAGE_CUSTOMERS,
            self.MANAGE_SETTINGS,
            self.MANAGE_PLUGINS,
            self.MANAGE_LANGUAGES,
            self.PUBLIC_STORE_ALLOW_NAVIGATION,
            self.ENABLE_SHOPPING_CART,
            self.DISPLAY_PRICES,
        ]

    def get_default_permissions(self) -> Dict[str, List[Permission]]:
        public = [self.PUBLIC_STORE_ALLOW_NAVIGATION, self.ENABLE_SHOPPING_CART, self.DISPLAY_PRICES]
        return {
            ADMINISTRATORS: self.get_permissions(),
            REGISTERED: public,
            GUESTS: public,
        }


class PermissionService:
    def __init__(self, session_factory):
        self._session_factory = session_factory

    def install_permissions(self, provider: PermissionProvider) -> int:
        """Insert the provider's permission records and grant the default ones.

        Records that already exist are left alone. Returns the number added.
        """
        added = 0
        with session_scope(self._session_factory) as db:
            records = {}
            for permission in provider.get_permissions():
                record = db.query(PermissionRecord).filter(
                    PermissionRecord.system_name == permission.system_name).first()
                if record is not None:
                    continue
                record = PermissionRecord(name=permission.name, system_name=permission.system_name,
                                          category=permission.category)
                db.add(record)
                records[permission.system_name] = record
                added += 1

            for role_name, permissions in provider.get_default_permissions().items():
                role = db.query(CustomerRole).filter(CustomerRole.system_name == role_name).first()
                if role is None:
                    role = CustomerRole(name=role_name, system_name=role_name, is_system_role=True)
                    db.add(role)
                for permission in permissions:
                    record = records.get(permission.system_name)
                    if record is not None and record not in role.permissions:
                        role.permissions.append(record)
        logger.info("Installed %d permission record(s) from %s", added, type(provider).__name__)
        return added
