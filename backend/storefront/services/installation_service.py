import logging
from decimal import Decimal
from typing import Optional

from babel import Locale
from sqlalchemy.exc import SQLAlchemyError

from ..database import session_scope
from ..errors import SeedDataError
from ..installation.result import best_effort
from ..models import (
    Category, Country, Customer, CustomerRole, Language, LocaleStringResource, Product, Setting, Store,
)
from ..security import hash_password
from .permissions import ADMINISTRATORS, GUESTS, REGISTERED
from .regional import LanguagePackClient, culture_tag, currency_for

logger = logging.getLogger(__name__)

DEFAULT_CULTURE = "en-US"
DEFAULT_STORE_NAME = "Your store name"

SAMPLE_CATALOG = [
    ("Computers", "Desktops, notebooks and accessories", [
        ("Build your own computer", "COMP_CUST", "1200.00", "Build it"),
        ("Lenovo IdeaCentre", "LE_IC_600", "500.00", "All-in-one desktop"),
    ]),
    ("Electronics", "Cameras, phones and more", [
        ("Nikon D5500 DSLR", "N5500DS_0", "670.00", "Slim, lightweight DSLR camera"),
        ("HTC smartphone", "M8_HTC_5L", "245.00", "Unlocked smartphone"),
    ]),
    ("Apparel", "Shoes, clothing and accessories", [
        ("Nike Tailwind Loose Short-Sleeve Running Shirt", "NK_TLS_RS", "15.00", "Running shirt"),
        ("Levi's 511 Jeans", "LV_511_JN", "43.50", "Slim fit jeans"),
    ]),
]


def _get_or_create(db, model, defaults=None, **filters):
    instance = db.query(model).filter_by(**filters).first()
    if instance is None:
        instance = model(**filters, **(defaults or {}))
        db.add(instance)
        db.flush()
    return instance


class InstallationService:
    """Seeds a freshly created schema with the data a store needs to run.

    Rows are matched on their natural keys, so seeding a database left over
    from an earlier, rolled back attempt does not fail on duplicates.
    """

    def __init__(self, session_factory, language_pack_client: Optional[LanguagePackClient] = None):
        self._session_factory = session_factory
        self._language_pack_client = language_pack_client

    def install_required_data(self, admin_email: str, admin_password: str, language_pack_url: str = "",
                              region: Optional[str] = None, culture: Optional[Locale] = None) -> None:
        try:
            with session_scope(self._session_factory) as db:
                default_language = _get_or_create(
                    db, Language, language_culture=DEFAULT_CULTURE,
                    defaults=dict(name="English", unique_seo_code="en", display_order=1),
                )
                regional_language = None
                if culture is not None and culture_tag(culture) != DEFAULT_CULTURE:
                    regional_language = _get_or_create(
                        db, Language, language_culture=culture_tag(culture),
                        defaults=dict(name=culture.get_display_name(culture) or culture_tag(culture),
                                      unique_seo_code=culture.language, display_order=2),
                    )

                store = _get_or_create(db, Store, name=DEFAULT_STORE_NAME, defaults=dict(url="http://localhost/"))
                store.default_language_id = (regional_language or default_language).id

                store_country = self._add_country(db, Locale.parse(DEFAULT_CULTURE, sep="-"))
                if culture is not None and region and region != store_country.two_letter_iso_code:
                    store_country = self._add_country(db, culture)

                roles = {
                    name: _get_or_create(db, CustomerRole, system_name=name,
                                         defaults=dict(name=name, is_system_role=True))
                    for name in (ADMINISTRATORS, REGISTERED, GUESTS)
                }

                admin = _get_or_create(db, Customer, email=admin_email,
                                       defaults=dict(username=admin_email, hashed_password=""))
                admin.hashed_password = hash_password(admin_password)
                admin.is_active = True
                for name in (ADMINISTRATORS, REGISTERED):
                    if roles[name] not in admin.roles:
                        admin.roles.append(roles[name])

                for name, value in (
                    ("storeinformationsettings.storename", store.name),
                    ("emailaccountsettings.adminemail", admin_email),
                    ("localizationsettings.defaultadminlanguageid", str(default_language.id)),
                    ("localizationsettings.defaultlanguageid", str(store.default_language_id)),
                    ("storeinformationsettings.defaultcountryid", str(store_country.id)),
                ):
                    setting = _get_or_create(db, Setting, name=name, store_id=0, defaults=dict(value=value))
                    setting.value = value

                if regional_language is not None and language_pack_url:
                    count = best_effort("Language pack import", self._import_language_pack, db,
                                        regional_language, language_pack_url, default=0)
                    logger.info("Imported %d resource(s) into %s", count, regional_language.language_culture)
        except SQLAlchemyError as e:
            raise SeedDataError("Required data could not be installed: %s" % e) from e
        logger.info("Required data installed (admin=%s)", admin_email)

    def install_sample_data(self, admin_email: str) -> None:
        try:
            with session_scope(self._session_factory) as db:
                for order, (name, description, products) in enumerate(SAMPLE_CATALOG, start=1):
                    category = _get_or_create(db, Category, name=name,
                                              defaults=dict(description=description, display_order=order))
                    for product_name, sku, price, short in products:
                        _get_or_create(db, Product, sku=sku, defaults=dict(
                            name=product_name, price=Decimal(price), short_description=short,
                            stock_quantity=10000, created_by=admin_email, category_id=category.id,
                        ))
        except SQLAlchemyError as e:
            raise SeedDataError("Sample data could not be installed: %s" % e) from e
        logger.info("Sample data installed")

    @staticmethod
    def _add_country(db, locale: Locale) -> Country:
        english = Locale("en")
        return _get_or_create(db, Country, two_letter_iso_code=locale.territory, defaults=dict(
            name=english.territories.get(locale.territory, locale.territory),
            currency_code=currency_for(locale),
            display_order=1,
        ))

    def _import_language_pack(self, db, language: Language, url: str) -> int:
        if self._language_pack_client is None:
            return 0
        resources = self._language_pack_client.download_resources(url)
        existing = {
            r.resource_name for r in
            db.query(LocaleStringResource).filter(LocaleStringResource.language_id == language.id)
        }
        added = 0
        for name, value in resources.items():
            if name.lower() in existing:
                continue
            db.add(LocaleStringResource(language_id=language.id, resource_name=name.lower(),
                                        resource_value=value))
            added += 1
        return added
