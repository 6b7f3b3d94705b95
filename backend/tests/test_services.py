import json
import os
from datetime import datetime, timedelta

import httpx
import pytest

from storefront.errors import PluginPreparationError, RegionalResourceError
from storefront.installation.result import attempt, best_effort
from storefront.installation.validation import validate_install_request
from storefront.localization import InstallationLocalizationService
from storefront.schemas import InstallRequest
from storefront.services.cache import StaticCacheManager
from storefront.services.plugins import PluginService
from storefront.services.regional import (
    LanguagePackClient, UploadService, available_countries, culture_tag, parse_culture,
)
from storefront.services.permissions import StandardPermissionProvider
from storefront.services.restart import AppRestarter


class TestPluginService:
    def test_descriptors_come_from_manifests(self, services, write_plugin):
        write_plugin("Payments.Manual", group="Payments", display_order=2)
        os.makedirs(os.path.join(services.config.plugins_dir, "Broken"))
        with open(os.path.join(services.config.plugins_dir, "Broken", "plugin.json"), "w") as f:
            f.write("not json")

        names = [d.system_name for d in services.plugin_service.get_plugin_descriptors()]
        assert names == ["Payments.Manual"]

    def test_prepare_checks_dependencies_by_default(self, services, write_plugin):
        write_plugin("Tax.Avalara", depends_on=["Tax.Core"])
        with pytest.raises(PluginPreparationError):
            services.plugin_service.prepare_plugin_to_install("Tax.Avalara")

        write_plugin("Tax.Core")
        services.plugin_service.prepare_plugin_to_install("Tax.Core")
        services.plugin_service.prepare_plugin_to_install("Tax.Avalara")
        assert services.plugin_service.load_registry().to_install == ["Tax.Core", "Tax.Avalara"]

    def test_prepare_twice_is_a_no_op(self, services):
        services.plugin_service.prepare_plugin_to_install("Widgets.Slider", check_dependencies=False)
        services.plugin_service.prepare_plugin_to_install("Widgets.Slider", check_dependencies=False)
        assert services.plugin_service.load_registry().to_install == ["Widgets.Slider"]

    def test_pending_plugins_are_installed_on_start(self, tmp_path):
        plugins = PluginService(str(tmp_path / "Plugins"), str(tmp_path / "plugins.json"))
        plugins.prepare_plugin_to_install("Widgets.Slider", check_dependencies=False)

        assert plugins.install_pending_plugins() == ["Widgets.Slider"]
        registry = plugins.load_registry()
        assert registry.installed == ["Widgets.Slider"]
        assert registry.to_install == []

        plugins.clear_installed_plugins_list()
        assert plugins.load_registry().installed == []


class TestLocalization:
    def test_default_language_is_english(self):
        loc = InstallationLocalizationService(StaticCacheManager())
        assert loc.get_current_language().code == "en-US"
        assert {lang.code for lang in loc.get_available_languages()} == {"en-US", "de-DE"}

    def test_cookie_wins_over_browser(self):
        loc = InstallationLocalizationService(StaticCacheManager(), language_code="en-US",
                                              accept_language="de-DE,de;q=0.9")
        assert loc.get_current_language().code == "en-US"

    def test_browser_language_is_used_without_cookie(self):
        loc = InstallationLocalizationService(StaticCacheManager(), accept_language="de-AT,de;q=0.9,en;q=0.5")
        assert loc.get_browser_culture() == "de-AT"
        assert loc.get_current_language().code == "de-DE"
        assert loc.get_resource("PasswordsDoNotMatch") == "Die Passwörter stimmen nicht überein"

    def test_missing_translation_falls_back_to_default_language(self):
        loc = InstallationLocalizationService(StaticCacheManager(), language_code="de-DE")
        assert loc.get_resource("Provider.sqlite") == "SQLite"
        assert loc.get_resource("No.Such.Resource") == "No.Such.Resource"

    def test_format_fills_placeholders(self):
        loc = InstallationLocalizationService(StaticCacheManager())
        assert loc.format("SetupFailed", "boom") == "Setup failed: boom"


class TestValidation:
    def _loc(self):
        return InstallationLocalizationService(StaticCacheManager())

    def test_valid_request_has_no_errors(self, install_request):
        assert validate_install_request(install_request, self._loc()) == []

    def test_messages_keep_field_order(self):
        errors = validate_install_request(InstallRequest(admin_email="not-an-email"), self._loc())
        assert errors == [
            "Wrong email format",
            "Enter admin password",
            "Confirm the admin password",
            "Enter the database name",
            "Enter the server name",
            "Enter the database user name",
        ]

    def test_raw_connection_string_required(self):
        request = InstallRequest(admin_email="admin@example.com", admin_password="x", confirm_password="x",
                                 connection_string_raw=True)
        assert validate_install_request(request, self._loc()) == ["Enter a connection string"]


class TestRegional:
    def test_parse_culture(self):
        assert culture_tag(parse_culture("de-DE")) == "de-DE"
        assert culture_tag(parse_culture("pt_BR")) == "pt-BR"

    @pytest.mark.parametrize("name", ["???", "", None, "en", "xx-YY", "es-419", "fil-PH"])
    def test_parse_culture_rejects(self, name):
        with pytest.raises(ValueError):
            parse_culture(name)

    def test_upload_locale_pattern(self, tmp_path):
        path = UploadService(str(tmp_path)).upload_locale_pattern(parse_culture("de-DE"))
        with open(path, encoding="utf-8") as f:
            pattern = json.load(f)
        assert path == os.path.join(str(tmp_path), "lib", "cldr", "de-DE.json")
        assert pattern["decimal_symbol"] == ","
        assert pattern["currency"] == "EUR"

    def test_available_countries_are_cached(self):
        cache = StaticCacheManager()
        countries = available_countries(cache, selected="de-DE")
        assert "Germany (de-DE)" in [c.text for c in countries]
        assert [c.value for c in countries if c.selected] == ["de-DE"]
        assert "installation.countries.en" in cache

    def test_unconfigured_language_pack_service(self):
        with pytest.raises(RegionalResourceError):
            LanguagePackClient("").installation_completed("a@b.c", "en", "de-DE")

    def test_language_pack_progress_threshold(self, monkeypatch):
        responses = {"progress": 50}

        def fake_post(url, json=None, timeout=None):
            assert timeout == 3
            return httpx.Response(200, request=httpx.Request("POST", url), json={
                "message": "ok",
                "language_pack": {"culture": "de-DE", "progress": responses["progress"],
                                  "download_link": "http://packs.test/de.json"},
            })

        monkeypatch.setattr(httpx, "post", fake_post)
        client = LanguagePackClient("http://packs.test/completed", timeout=3, min_progress=80)

        assert client.language_pack_url("a@b.c", "en", "de-DE") == ""
        responses["progress"] = 95
        assert client.language_pack_url("a@b.c", "en", "de-DE") == "http://packs.test/de.json"

    def test_language_pack_http_error_is_regional_error(self, monkeypatch):
        def fake_post(url, json=None, timeout=None):
            raise httpx.ConnectTimeout("timed out")

        monkeypatch.setattr(httpx, "post", fake_post)
        with pytest.raises(RegionalResourceError):
            LanguagePackClient("http://packs.test/completed").installation_completed("a@b.c", "en", "de-DE")


def test_attempt_and_best_effort():
    def boom():
        raise RuntimeError("boom")

    assert attempt(lambda: 3).unwrap_or(0) == 3
    failed = attempt(boom)
    assert not failed.ok and isinstance(failed.error, RuntimeError)
    assert best_effort("optional step", boom, default="fallback") == "fallback"


def test_standard_permissions_grant_everything_to_administrators():
    provider = StandardPermissionProvider()
    defaults = provider.get_default_permissions()
    assert defaults["Administrators"] == provider.get_permissions()
    assert StandardPermissionProvider.ACCESS_ADMIN_PANEL not in defaults["Guests"]


def test_restart_marker_holds_utc_timestamp(tmp_path):
    marker = tmp_path / "App_Data" / "restart.txt"
    AppRestarter(str(marker)).restart()

    written = datetime.fromisoformat(marker.read_text().strip())
    assert written.utcoffset() == timedelta(0)
