import glob
import json
import logging
import os
from typing import Dict, List, Optional

from pydantic import BaseModel

from .schemas import DataProviderType
from .services.cache import StaticCacheManager

logger = logging.getLogger(__name__)

RESOURCES_DIR = os.path.join(os.path.dirname(__file__), "resources")
LANGUAGE_COOKIE = "storefront.installation.language"


class InstallationLanguage(BaseModel):
    code: str
    name: str
    is_default: bool = False
    resources: Dict[str, str] = {}


def load_languages(resources_dir: str = RESOURCES_DIR) -> List[InstallationLanguage]:
    languages = []
    for path in sorted(glob.glob(os.path.join(resources_dir, "installation.*.json"))):
        with open(path, "r", encoding="utf-8") as f:
            languages.append(InstallationLanguage(**json.load(f)))
    if not languages:
        raise RuntimeError("No installation languages found in %s" % resources_dir)
    return languages


class InstallationLocalizationService:
    """Strings and language choices of the install wizard, for one request.

    The selected language is whatever the language cookie says, otherwise the
    browser's first Accept-Language match, otherwise the default language.
    """

    def __init__(self, cache: StaticCacheManager, language_code: Optional[str] = None,
                 accept_language: Optional[str] = None, resources_dir: str = RESOURCES_DIR):
        self._cache = cache
        self._resources_dir = resources_dir
        self._language_code = language_code
        self._accept_language = accept_language or ""

    def get_available_languages(self) -> List[InstallationLanguage]:
        return self._cache.get("installation.languages." + self._resources_dir,
                               lambda: load_languages(self._resources_dir))

    def _default_language(self) -> InstallationLanguage:
        languages = self.get_available_languages()
        return next((lang for lang in languages if lang.is_default), languages[0])

    def _find(self, code: Optional[str]) -> Optional[InstallationLanguage]:
        if not code:
            return None
        code = code.lower()
        for lang in self.get_available_languages():
            if lang.code.lower() == code:
                return lang
        # "de" matches "de-DE"
        for lang in self.get_available_languages():
            if lang.code.lower().split("-")[0] == code.split("-")[0]:
                return lang
        return None

    def get_current_language(self) -> InstallationLanguage:
        lang = self._find(self._language_code)
        if lang is None:
            lang = self._find(self.get_browser_culture())
        return lang or self._default_language()

    def save_current_language(self, code: str) -> InstallationLanguage:
        lang = self._find(code) or self._default_language()
        self._language_code = lang.code
        return lang

    def get_browser_culture(self) -> Optional[str]:
        for part in self._accept_language.split(","):
            tag = part.split(";")[0].strip()
            if tag and tag != "*":
                return tag
        return None

    def get_resource(self, name: str) -> str:
        value = self.get_current_language().resources.get(name)
        if value is None:
            value = self._default_language().resources.get(name)
        if value is None:
            logger.warning("Missing installation resource %s", name)
            return name
        return value

    def format(self, name: str, *args) -> str:
        return self.get_resource(name).format(*args)

    def get_available_provider_types(self) -> Dict[DataProviderType, str]:
        return {kind: self.get_resource("Provider." + kind.value) for kind in DataProviderType}
