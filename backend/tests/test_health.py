"""
Basic health and import tests for the Storefront backend.
"""
import sys


def test_python_version():
    """Ensure Python 3.11+"""
    assert sys.version_info >= (3, 11)


def test_app_imports():
    """Test critical imports work"""
    from storefront.database import Base
    from storefront.models import Customer, Language, SchemaVersion
    assert Base is not None
    assert SchemaVersion.__tablename__ in Base.metadata.tables


def test_schemas_import():
    import storefront.schemas as schemas
    assert hasattr(schemas, 'InstallRequest')
    assert hasattr(schemas, 'InstallForm')


def test_orchestrator_has_entry_points():
    """Test InstallationOrchestrator exposes every wizard operation"""
    from storefront.installation.orchestrator import InstallationOrchestrator
    required_methods = [
        'submit',
        'change_language',
        'restart_install',
        'restart_application',
        'is_installed',
    ]
    for method in required_methods:
        assert hasattr(InstallationOrchestrator, method), f"InstallationOrchestrator missing method: {method}"


def test_language_resources_share_keys():
    """Every translation only uses keys the default language defines"""
    from storefront.localization import load_languages
    languages = load_languages()
    default = next(lang for lang in languages if lang.is_default)
    for lang in languages:
        assert set(lang.resources) <= set(default.resources), f"{lang.code} has unknown resources"
