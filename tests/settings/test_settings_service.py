import pytest

from class_register.core.enums import HistoryAction
from class_register.core.exceptions import ValidationError


def test_defaults_are_created_once(container):
    first = container.settings_service.get_settings()
    second = container.settings_service.get_settings()

    assert first == second
    assert first.backup_retention == 20
    assert first.max_periods_per_day == 6
    logs = container.history_repo.list_for_entity("default")
    assert [h.action for h in logs] == [HistoryAction.CREATE]


def test_update_settings(container):
    updated = container.settings_service.update_settings(backup_retention=5, school_name="Hanbit")

    assert container.settings_service.get_settings() == updated
    assert updated.school_name == "Hanbit"
    log = container.history_repo.list_for_entity("default")[-1]
    assert log.changes["after"]["backupRetention"] == 5


@pytest.mark.parametrize(
    "changes",
    [{"backup_retention": 0}, {"school_start_time": "9am"}, {"max_periods_per_day": 11}, {"theme": "dark"}],
)
def test_invalid_settings_are_rejected(container, changes):
    with pytest.raises(ValidationError):
        container.settings_service.update_settings(**changes)
