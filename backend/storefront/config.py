import os
from typing import List, Optional

from pydantic import BaseModel


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class InstallationConfig(BaseModel):
    install_regional_resources: bool = True
    disable_sample_data: bool = False
    disabled_plugins: str = ""  # comma-separated system names
    language_pack_service_url: str = ""
    language_pack_timeout: float = 10.0
    language_pack_min_progress: int = 80
    default_culture: str = "en-US"
    default_data_provider: str = "postgresql"

    @property
    def disabled_plugin_names(self) -> List[str]:
        return [name.strip() for name in self.disabled_plugins.split(",") if name.strip()]


class AppConfig(BaseModel):
    data_dir: str
    data_settings_path: str
    settings_key: Optional[str] = None
    plugins_dir: str
    static_dir: str
    restart_signal_parent: bool = False
    cors_origins: str = ""
    installation: InstallationConfig = InstallationConfig()

    @property
    def plugins_registry_path(self) -> str:
        return os.path.join(self.data_dir, "plugins.json")

    @property
    def restart_marker_path(self) -> str:
        return os.path.join(self.data_dir, "restart.txt")

    @classmethod
    def for_root(cls, root: str, **overrides) -> "AppConfig":
        """Lay every path out under one directory (used by tests and containers)."""
        data_dir = os.path.join(root, "App_Data")
        values = dict(
            data_dir=data_dir,
            data_settings_path=os.path.join(data_dir, "dataSettings.json"),
            plugins_dir=os.path.join(root, "Plugins"),
            static_dir=os.path.join(root, "static"),
        )
        values.update(overrides)
        return cls(**values)

    @classmethod
    def from_env(cls) -> "AppConfig":
        data_dir = os.path.abspath(os.getenv("STOREFRONT_DATA_DIR", "App_Data"))
        return cls(
            data_dir=data_dir,
            data_settings_path=os.getenv(
                "STOREFRONT_DATA_SETTINGS", os.path.join(data_dir, "dataSettings.json")
            ),
            settings_key=os.getenv("STOREFRONT_SETTINGS_KEY") or None,
            plugins_dir=os.path.abspath(os.getenv("STOREFRONT_PLUGINS_DIR", "Plugins")),
            static_dir=os.path.abspath(os.getenv("STOREFRONT_STATIC_DIR", "static")),
            restart_signal_parent=_env_bool("RESTART_SIGNAL_PARENT", False),
            cors_origins=os.getenv("CORS_ORIGINS", ""),
            installation=InstallationConfig(
                install_regional_resources=_env_bool("INSTALL_REGIONAL_RESOURCES", True),
                disable_sample_data=_env_bool("DISABLE_SAMPLE_DATA", False),
                disabled_plugins=os.getenv("DISABLED_PLUGINS", ""),
                language_pack_service_url=os.getenv("LANGUAGE_PACK_SERVICE_URL", ""),
                language_pack_timeout=float(os.getenv("LANGUAGE_PACK_TIMEOUT", "10")),
                language_pack_min_progress=int(os.getenv("LANGUAGE_PACK_MIN_PROGRESS", "80")),
                default_data_provider=os.getenv("DEFAULT_DATA_PROVIDER", "postgresql"),
            ),
        )
