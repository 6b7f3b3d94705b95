import glob
import json
import logging
import os
from typing import List

from pydantic import BaseModel, ValidationError

from ..errors import PluginPreparationError

logger = logging.getLogger(__name__)

PLUGIN_MANIFEST = "plugin.json"


class PluginDescriptor(BaseModel):
    system_name: str
    friendly_name: str = ""
    group: str = ""
    display_order: int = 0
    version: str = "1.0"
    depends_on: List[str] = []


class PluginRegistry(BaseModel):
    installed: List[str] = []
    to_install: List[str] = []
    to_uninstall: List[str] = []


class PluginService:
    """Plugin manifests on disk (``<plugins_dir>/<Name>/plugin.json``) and the
    registry of installed / pending plugin names."""

    def __init__(self, plugins_dir: str, registry_path: str):
        self.plugins_dir = plugins_dir
        self.registry_path = registry_path

    # ── registry ────────────────────────────────────────────────────────────
    def load_registry(self) -> PluginRegistry:
        if not os.path.exists(self.registry_path):
            return PluginRegistry()
        with open(self.registry_path, "r", encoding="utf-8") as f:
            return PluginRegistry(**json.load(f))

    def save_registry(self, registry: PluginRegistry) -> None:
        os.makedirs(os.path.dirname(self.registry_path) or ".", exist_ok=True)
        with open(self.registry_path, "w", encoding="utf-8") as f:
            json.dump(registry.model_dump(), f, indent=2)

    def clear_installed_plugins_list(self) -> None:
        self.save_registry(PluginRegistry())

    # ── descriptors ─────────────────────────────────────────────────────────
    def get_plugin_descriptors(self) -> List[PluginDescriptor]:
        descriptors = []
        for path in sorted(glob.glob(os.path.join(self.plugins_dir, "*", PLUGIN_MANIFEST))):
            try:
                with open(path, "r", encoding="utf-8") as f:
                    descriptors.append(PluginDescriptor(**json.load(f)))
            except (OSError, ValueError, ValidationError) as e:
                logger.warning("Skipping plugin manifest %s: %s", path, e)
        return descriptors

    def prepare_plugin_to_install(self, system_name: str, check_dependencies: bool = True) -> None:
        registry = self.load_registry()
        if system_name in registry.installed or system_name in registry.to_install:
            return
        if check_dependencies:
            descriptor = next((d for d in self.get_plugin_descriptors() if d.system_name == system_name), None)
            if descriptor is None:
                raise PluginPreparationError("Plugin %s not found" % system_name)
            known = set(registry.installed) | set(registry.to_install)
            missing = [dep for dep in descriptor.depends_on if dep not in known]
            if missing:
                raise PluginPreparationError(
                    "Plugin %s depends on %s" % (system_name, ", ".join(missing)))
        registry.to_install.append(system_name)
        self.save_registry(registry)

    def install_pending_plugins(self) -> List[str]:
        """Move pending plugins to installed; runs at application start."""
        registry = self.load_registry()
        if not registry.to_install:
            return []
        installed = list(registry.to_install)
        for name in installed:
            if name not in registry.installed:
                registry.installed.append(name)
        registry.to_install = []
        self.save_registry(registry)
        logger.info("Installed plugins: %s", ", ".join(installed))
        return installed
