"""Shared fixtures: an isolated store root in tmp_path with a SQLite database."""
import json
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from cryptography.fernet import Fernet  # noqa: E402

from storefront.config import AppConfig, InstallationConfig  # noqa: E402
from storefront.installation.orchestrator import InstallationOrchestrator  # noqa: E402
from storefront.localization import InstallationLocalizationService  # noqa: E402
from storefront.schemas import InstallRequest  # noqa: E402
from storefront.services.container import StorefrontServices  # noqa: E402
from storefront.services.regional import LanguagePackClient  # noqa: E402


class FakeLanguagePackClient(LanguagePackClient):
    """Language pack service double; ``error`` makes every call fail like a network error."""

    def __init__(self, download_link="", resources=None, error=None):
        super().__init__("http://language-packs.test/installation-completed", timeout=1)
        self.download_link = download_link
        self.resources = resources or {}
        self.error = error
        self.calls = []

    def language_pack_url(self, admin_email, language_code, culture):
        self.calls.append((admin_email, language_code, culture))
        if self.error is not None:
            raise self.error
        return self.download_link

    def download_resources(self, url):
        if self.error is not None:
            raise self.error
        return dict(self.resources)


class RecordingRestarter:
    def __init__(self):
        self.restarts = 0

    def restart(self):
        self.restarts += 1


@pytest.fixture
def config(tmp_path):
    return AppConfig.for_root(
        str(tmp_path),
        settings_key=Fernet.generate_key().decode(),
        installation=InstallationConfig(disabled_plugins="Widgets.Disabled"),
    )


@pytest.fixture
def language_pack_client():
    return FakeLanguagePackClient()


@pytest.fixture
def services(config, language_pack_client):
    services = StorefrontServices(config, language_pack_client=language_pack_client)
    yield services
    services.shutdown()


@pytest.fixture
def make_orchestrator(services):
    """Build an orchestrator over ``services``; keyword arguments replace collaborators."""

    def factory(**overrides):
        kwargs = dict(
            config=services.config.installation,
            settings_store=services.settings_store,
            localization=InstallationLocalizationService(services.static_cache),
            plugin_service=services.plugin_service,
            file_permissions=services.file_permissions,
            static_cache=services.static_cache,
            upload_service=services.upload_service,
            language_pack_client=services.language_pack_client,
            restarter=RecordingRestarter(),
        )
        kwargs.update(overrides)
        return InstallationOrchestrator(**kwargs)

    return factory


@pytest.fixture
def install_request():
    return InstallRequest(
        admin_email="admin@example.com",
        admin_password="s3cret-pass",
        confirm_password="s3cret-pass",
        data_provider="sqlite",
        database_name="store",
        create_database_if_not_exists=True,
        country="en-US",
    )


@pytest.fixture
def write_plugin(config):
    def write(system_name, group="", display_order=0, depends_on=None):
        plugin_dir = os.path.join(config.plugins_dir, system_name)
        os.makedirs(plugin_dir, exist_ok=True)
        with open(os.path.join(plugin_dir, "plugin.json"), "w") as f:
            json.dump({
                "system_name": system_name,
                "friendly_name": system_name.replace(".", " "),
                "group": group,
                "display_order": display_order,
                "depends_on": depends_on or [],
            }, f)

    return write
