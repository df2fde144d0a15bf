import pytest

from class_register.config import get_settings_module
from class_register.container import build_adapter
from class_register.core.exceptions import ValidationError
from class_register.main import create_app
from class_register.storage.local_adapter import LocalAdapter
from class_register.storage.mysql_adapter import MySQLAdapter


@pytest.mark.parametrize(
    "env,module",
    [
        ("production", "class_register.config.production"),
        ("TEST", "class_register.config.testing"),
        ("anything", "class_register.config.development"),
    ],
)
def test_settings_module_follows_app_env(monkeypatch, env, module):
    monkeypatch.setenv("APP_ENV", env)
    assert get_settings_module() == module


def test_build_adapter_by_backend():
    assert isinstance(build_adapter(backend="local"), LocalAdapter)
    assert isinstance(build_adapter(backend="MySQL", db_config={"database": "x"}), MySQLAdapter)
    with pytest.raises(ValidationError):
        build_adapter(backend="sqlite")


def test_create_app_in_testing_mode(monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")

    app = create_app()
    app.start()

    assert app.settings_module == "class_register.config.testing"
    assert app.scheduler is None
    assert isinstance(app.container.adapter, LocalAdapter)
    assert app.container.settings_service.get_settings().backup_retention == 20
    app.shutdown()
