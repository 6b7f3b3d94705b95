import json
import logging
import os
from typing import List, Optional

import httpx
from babel import Locale, UnknownLocaleError
from babel.dates import get_date_format, get_time_format
from babel.localedata import locale_identifiers
from babel.numbers import get_decimal_symbol, get_group_symbol, get_territory_currencies

from ..errors import RegionalResourceError
from ..schemas import InstallationCompletedResponse, SelectItem
from .cache import StaticCacheManager

logger = logging.getLogger(__name__)


def culture_tag(locale: Locale) -> str:
    return "%s-%s" % (locale.language, locale.territory)


def parse_culture(name: Optional[str]) -> Locale:
    """Parse a specific culture such as ``de-DE``.

    Neutral cultures are rejected, as are cultures whose language or region
    has no two-letter ISO code (``fil-PH``, ``es-419``).
    """
    if not name:
        raise ValueError("No culture given")
    try:
        locale = Locale.parse(name.strip().replace("_", "-"), sep="-")
    except (UnknownLocaleError, ValueError, TypeError) as e:
        raise ValueError("Unknown culture %r: %s" % (name, e)) from e
    if not locale.territory:
        raise ValueError("Culture %r has no region" % name)
    if len(locale.language) != 2 or len(locale.territory) != 2 or not locale.territory.isalpha():
        raise ValueError("Culture %r has no two-letter language and region" % name)
    return locale


def currency_for(locale: Locale) -> Optional[str]:
    currencies = get_territory_currencies(locale.territory)
    return currencies[0] if currencies else None


def available_countries(cache: StaticCacheManager, display_language: str = "en",
                        selected: Optional[str] = None) -> List[SelectItem]:
    """Every specific culture with a two-letter language, ordered by country name."""

    def build():
        display = Locale.parse(display_language.split("-")[0])
        items = []
        for identifier in locale_identifiers():
            parts = identifier.split("_")
            if len(parts) != 2 or len(parts[0]) != 2 or len(parts[1]) != 2:
                continue
            try:
                locale = Locale.parse(identifier)
            except (UnknownLocaleError, ValueError):
                continue
            country = display.territories.get(locale.territory, locale.territory)
            tag = culture_tag(locale)
            items.append((country, tag))
        items.sort()
        return items

    countries = cache.get("installation.countries." + display_language, build)
    return [
        SelectItem(value=tag, text="%s (%s)" % (country, tag), selected=(tag == selected))
        for country, tag in countries
    ]


class UploadService:
    """Publishes number/date patterns of a culture for client-side formatting."""

    def __init__(self, static_dir: str):
        self.target_dir = os.path.join(static_dir, "lib", "cldr")

    def upload_locale_pattern(self, locale: Locale) -> str:
        tag = culture_tag(locale)
        pattern = {
            "culture": tag,
            "decimal_symbol": get_decimal_symbol(locale),
            "group_symbol": get_group_symbol(locale),
            "currency": currency_for(locale),
            "short_date": get_date_format("short", locale=locale).pattern,
            "long_date": get_date_format("long", locale=locale).pattern,
            "short_time": get_time_format("short", locale=locale).pattern,
        }
        os.makedirs(self.target_dir, exist_ok=True)
        path = os.path.join(self.target_dir, tag + ".json")
        with open(path, "w", encoding="utf-8") as f:
            json.dump(pattern, f, ensure_ascii=False, indent=2)
        logger.info("Locale pattern for %s written to %s", tag, path)
        return path


class LanguagePackClient:
    """Reports a finished installation and asks for a matching language pack."""

    def __init__(self, service_url: str, timeout: float = 10.0, min_progress: int = 80):
        self.service_url = service_url
        self.timeout = timeout
        self.min_progress = min_progress

    def installation_completed(self, admin_email: str, language_code: str, culture: str) -> InstallationCompletedResponse:
        if not self.service_url:
            raise RegionalResourceError("Language pack service is not configured")
        try:
            resp = httpx.post(self.service_url, json={
                "email": admin_email,
                "language_code": language_code,
                "culture": culture,
            }, timeout=self.timeout)
            resp.raise_for_status()
            return InstallationCompletedResponse(**resp.json())
        except (httpx.HTTPError, ValueError) as e:
            raise RegionalResourceError("Language pack request failed: %s" % e) from e

    def language_pack_url(self, admin_email: str, language_code: str, culture: str) -> str:
        """Download link of the pack, or "" when its translation is not complete enough."""
        result = self.installation_completed(admin_email, language_code, culture)
        if result.language_pack.progress > self.min_progress:
            return result.language_pack.download_link
        logger.info("Language pack for %s only %d%% translated, skipping", culture,
                    result.language_pack.progress)
        return ""

    def download_resources(self, url: str) -> dict:
        try:
            resp = httpx.get(url, timeout=self.timeout, follow_redirects=True)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise RegionalResourceError("Language pack download failed: %s" % e) from e
        resources = data.get("resources", data) if isinstance(data, dict) else None
        if not isinstance(resources, dict):
            raise RegionalResourceError("Language pack has no resources")
        return {str(k): str(v) for k, v in resources.items()}
