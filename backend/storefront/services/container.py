from typing import Optional

from ..config import AppConfig
from ..data.providers import DataProvider, get_data_provider
from ..data.settings_store import DataSettingsManager
from ..installation.orchestrator import InstallationOrchestrator
from ..localization import InstallationLocalizationService
from ..security import SettingsCipher
from .cache import StaticCacheManager
from .file_permissions import FilePermissionHelper
from .plugins import PluginService
from .regional import LanguagePackClient, UploadService
from .restart import AppRestarter


class StorefrontServices:
    """Process-wide collaborators, built once at startup from ``AppConfig``."""

    def __init__(self, config: AppConfig, language_pack_client: Optional[LanguagePackClient] = None,
                 provider_factory=get_data_provider):
        self.config = config
        cipher = SettingsCipher(key=config.settings_key, key_path=config.data_settings_path + ".key")
        self.settings_store = DataSettingsManager(config.data_settings_path, cipher=cipher)
        self.static_cache = StaticCacheManager()
        self.plugin_service = PluginService(config.plugins_dir, config.plugins_registry_path)
        self.file_permissions = FilePermissionHelper(config)
        self.upload_service = UploadService(config.static_dir)
        self.language_pack_client = language_pack_client or LanguagePackClient(
            config.installation.language_pack_service_url,
            timeout=config.installation.language_pack_timeout,
            min_progress=config.installation.language_pack_min_progress,
        )
        self.restarter = AppRestarter(config.restart_marker_path, signal_parent=config.restart_signal_parent)
        self.provider_factory = provider_factory
        self._provider: Optional[DataProvider] = None

    def orchestrator(self, localization: InstallationLocalizationService):
        return InstallationOrchestrator(
            config=self.config.installation,
            settings_store=self.settings_store,
            localization=localization,
            plugin_service=self.plugin_service,
            file_permissions=self.file_permissions,
            static_cache=self.static_cache,
            upload_service=self.upload_service,
            language_pack_client=self.language_pack_client,
            restarter=self.restarter,
            provider_factory=self.provider_factory,
        )

    def data_provider(self) -> Optional[DataProvider]:
        """Provider of the installed store, or None while not installed."""
        settings = self.settings_store.load()
        if not settings.is_valid:
            return None
        if self._provider is None or self._provider.kind != settings.data_provider:
            self._provider = self.provider_factory(settings.data_provider, self.settings_store)
        return self._provider

    def shutdown(self) -> None:
        if self._provider is not None:
            self._provider.dispose()
            self._provider = None
