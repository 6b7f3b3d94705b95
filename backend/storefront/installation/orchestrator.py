"""Install wizard state machine.

An attempt walks ``UNINSTALLED -> PERMISSIONS_CHECKED -> SETTINGS_PERSISTED ->
SCHEMA_READY -> DATA_SEEDED -> PLUGINS_PREPARED -> INSTALLED``. Any fatal error
after the permission check rolls the attempt back to ``UNINSTALLED``: caches
are reset and the persisted data settings are overwritten with an empty
record, so the instance is provably "not installed" again.

Every entry point returns a home redirect once the instance is installed.
"""
import enum
import logging
import os
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Type

from babel import Locale

from ..config import InstallationConfig
from ..data.providers import DataProvider, get_data_provider
from ..data.settings_store import DataSettingsManager
from ..errors import (
    ConfigurationError, DatabaseCreationError, DatabaseNotExistsError, FilePermissionError,
    InstallationError, PluginPreparationError,
)
from ..localization import InstallationLocalizationService
from ..schemas import DataSettings, InstallRequest
from ..services.cache import StaticCacheManager
from ..services.file_permissions import FilePermissionHelper, current_os_user
from ..services.installation_service import InstallationService
from ..services.permissions import PermissionProvider, PermissionService, StandardPermissionProvider
from ..services.plugins import PluginDescriptor, PluginService
from ..services.regional import LanguagePackClient, UploadService, culture_tag, parse_culture
from ..services.restart import AppRestarter
from .result import attempt, best_effort
from .validation import validate_install_request

logger = logging.getLogger(__name__)


class InstallationState(str, enum.Enum):
    UNINSTALLED = "uninstalled"
    PERMISSIONS_CHECKED = "permissions_checked"
    SETTINGS_PERSISTED = "settings_persisted"
    SCHEMA_READY = "schema_ready"
    DATA_SEEDED = "data_seeded"
    PLUGINS_PREPARED = "plugins_prepared"
    INSTALLED = "installed"


@dataclass
class InstallationOutcome:
    state: InstallationState
    redirect_url: Optional[str] = None
    errors: List[str] = field(default_factory=list)
    transitions: List[InstallationState] = field(default_factory=list)
    already_installed: bool = False

    @property
    def succeeded(self) -> bool:
        return self.state == InstallationState.INSTALLED


class InstallationOrchestrator:
    def __init__(
        self,
        *,
        config: InstallationConfig,
        settings_store: DataSettingsManager,
        localization: InstallationLocalizationService,
        plugin_service: PluginService,
        file_permissions: FilePermissionHelper,
        static_cache: StaticCacheManager,
        upload_service: UploadService,
        language_pack_client: LanguagePackClient,
        restarter: Optional[AppRestarter] = None,
        provider_factory: Callable[..., DataProvider] = get_data_provider,
        installation_service_factory: Callable[..., InstallationService] = InstallationService,
        permission_service_factory: Callable[..., PermissionService] = PermissionService,
        permission_providers: Sequence[Type[PermissionProvider]] = (StandardPermissionProvider,),
        home_url: str = "/",
        install_url: str = "/install",
    ):
        self.config = config
        self.settings_store = settings_store
        self.loc = localization
        self.plugins = plugin_service
        self.file_permissions = file_permissions
        self.static_cache = static_cache
        self.upload_service = upload_service
        self.language_pack_client = language_pack_client
        self.restarter = restarter
        self.provider_factory = provider_factory
        self.installation_service_factory = installation_service_factory
        self.permission_service_factory = permission_service_factory
        self.permission_providers = list(permission_providers)
        self.home_url = home_url
        self.install_url = install_url

    def is_installed(self) -> bool:
        return self.settings_store.is_installed()

    def _home(self) -> InstallationOutcome:
        return InstallationOutcome(state=InstallationState.INSTALLED, redirect_url=self.home_url,
                                   already_installed=True)

    # ── entry points ─────────────────────────────────────────────────────────
    def submit(self, request: InstallRequest) -> InstallationOutcome:
        if self.is_installed():
            return self._home()
        with self.settings_store.exclusive():
            # another process may have finished while we waited for the lock
            if self.settings_store.is_installed(reload=True):
                return self._home()
            return self._run(request)

    def change_language(self, language: str) -> InstallationOutcome:
        if self.is_installed():
            return self._home()
        self.loc.save_current_language(language)
        return InstallationOutcome(state=InstallationState.UNINSTALLED, redirect_url=self.install_url)

    def restart_install(self) -> InstallationOutcome:
        if self.is_installed():
            return self._home()
        return InstallationOutcome(state=InstallationState.UNINSTALLED, redirect_url=self.install_url)

    def restart_application(self) -> InstallationOutcome:
        if self.is_installed():
            return self._home()
        if self.restarter is not None:
            self.restarter.restart()
        return InstallationOutcome(state=InstallationState.UNINSTALLED)

    # ── the attempt ──────────────────────────────────────────────────────────
    def _run(self, request: InstallRequest) -> InstallationOutcome:
        outcome = InstallationOutcome(state=InstallationState.UNINSTALLED,
                                      transitions=[InstallationState.UNINSTALLED])

        errors = validate_install_request(request, self.loc)
        permission_result = attempt(self.check_permissions)
        if not permission_result.ok:
            if not isinstance(permission_result.error, FilePermissionError):
                raise permission_result.error
            errors.extend(permission_result.error.messages)
        if errors:
            outcome.errors = errors
            return outcome
        self._advance(outcome, InstallationState.PERMISSIONS_CHECKED)

        provider = None
        try:
            provider = self.provider_factory(request.data_provider, self.settings_store)
            self.persist_settings(request, provider)
            self._advance(outcome, InstallationState.SETTINGS_PERSISTED)

            self.prepare_schema(request, provider)
            self._advance(outcome, InstallationState.SCHEMA_READY)

            self.seed_data(request, provider)
            self._advance(outcome, InstallationState.DATA_SEEDED)

            self.prepare_plugins(provider)
            self._advance(outcome, InstallationState.PLUGINS_PREPARED)
        except Exception as exc:
            logger.error("Installation failed in state %s: %s", outcome.state.value, exc, exc_info=True)
            if provider is not None:
                provider.dispose()
            self.rollback()
            outcome.errors = [self.loc.format("SetupFailed", exc)]
            self._advance(outcome, InstallationState.UNINSTALLED)
            return outcome

        provider.dispose()
        self._advance(outcome, InstallationState.INSTALLED)
        outcome.redirect_url = self.home_url
        return outcome

    def _advance(self, outcome: InstallationOutcome, state: InstallationState) -> None:
        logger.info("Installation state: %s -> %s", outcome.state.value, state.value)
        outcome.state = state
        outcome.transitions.append(state)

    # ── steps ────────────────────────────────────────────────────────────────
    def check_permissions(self) -> None:
        """Raise ``FilePermissionError`` listing every path that is not writable."""
        user = current_os_user()
        messages = []
        for directory in self.file_permissions.get_directories_write():
            if not self.file_permissions.check_permissions(directory, False, True, True, False):
                messages.append(self.loc.format("ConfigureDirectoryPermissions", user, directory))
        for path in self.file_permissions.get_files_write():
            if not os.path.exists(path):
                continue
            if not self.file_permissions.check_permissions(path, False, True, True, True):
                messages.append(self.loc.format("ConfigureFilePermissions", user, path))
        if messages:
            raise FilePermissionError(messages)

    def persist_settings(self, request: InstallRequest, provider: DataProvider) -> DataSettings:
        if request.connection_string_raw:
            connection_string = (request.connection_string or "").strip()
        else:
            connection_string = provider.build_connection_string(request)
        if not connection_string:
            raise ConfigurationError(self.loc.get_resource("ConnectionStringWrongFormat"))

        settings = DataSettings(data_provider=request.data_provider, connection_string=connection_string)
        self.settings_store.save(settings)
        return self.settings_store.load(reload=True)

    def prepare_schema(self, request: InstallRequest, provider: DataProvider) -> None:
        if request.create_database_if_not_exists:
            try:
                provider.create_database(request.collation)
            except Exception as e:
                raise DatabaseCreationError(self.loc.format("DatabaseCreationError", e)) from e
        elif not provider.database_exists():
            raise DatabaseNotExistsError(self.loc.get_resource("DatabaseNotExists"))
        provider.initialize_database()

    def resolve_culture(self, country: Optional[str]) -> Locale:
        default = parse_culture(self.config.default_culture)
        return attempt(parse_culture, country).unwrap_or(default)

    def seed_data(self, request: InstallRequest, provider: DataProvider) -> None:
        selected_culture = self.resolve_culture(request.country)
        install_regional = self.config.install_regional_resources
        culture = selected_culture if install_regional else None

        download_url = ""
        if culture is not None:
            if culture_tag(culture) != self.config.default_culture:
                language_code = self.loc.get_current_language().code[:2]
                download_url = best_effort(
                    "Language pack lookup", self.language_pack_client.language_pack_url,
                    request.admin_email, language_code, culture_tag(culture), default="",
                ) or ""
            best_effort("Locale pattern upload", self.upload_service.upload_locale_pattern, culture)

        seeder = self.installation_service_factory(provider.session_factory(), self.language_pack_client)
        seeder.install_required_data(
            request.admin_email, request.admin_password, download_url,
            region=culture.territory if culture is not None else None,
            culture=culture,
        )
        if request.install_sample_data and not self.config.disable_sample_data:
            seeder.install_sample_data(request.admin_email)

    def plugins_to_install(self) -> List[PluginDescriptor]:
        denied = set(self.config.disabled_plugin_names)
        return sorted(
            (d for d in self.plugins.get_plugin_descriptors() if d.system_name not in denied),
            key=lambda d: (d.group, d.display_order),
        )

    def prepare_plugins(self, provider: DataProvider) -> None:
        try:
            self.plugins.clear_installed_plugins_list()
            for descriptor in self.plugins_to_install():
                self.plugins.prepare_plugin_to_install(descriptor.system_name, check_dependencies=False)

            permission_service = self.permission_service_factory(provider.session_factory())
            for provider_type in self.permission_providers:
                permission_service.install_permissions(provider_type())
        except InstallationError:
            raise
        except Exception as e:
            raise PluginPreparationError(str(e)) from e

    def rollback(self) -> None:
        self.settings_store.reset_cache()
        self.static_cache.clear()
        self.settings_store.save(DataSettings())
        logger.info("Installation rolled back, data settings cleared")
