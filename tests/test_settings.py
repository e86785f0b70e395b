from lftagops.core.retry import DELETE_TIMEOUT, PROPAGATION_TIMEOUT
from lftagops.core.settings import Settings


def test_defaults_when_environment_is_empty():
    settings = Settings.from_env({})

    assert settings.propagation_timeout == PROPAGATION_TIMEOUT
    assert settings.delete_timeout == DELETE_TIMEOUT
    assert settings.max_attempts is None
    assert settings.max_values_per_key is None


def test_reads_overrides():
    settings = Settings.from_env(
        {
            "LFTAGOPS_PROPAGATION_TIMEOUT": "300",
            "LFTAGOPS_DELETE_TIMEOUT": "5.5",
            "LFTAGOPS_MAX_ATTEMPTS": "4",
            "LFTAGOPS_MAX_BACKOFF": "2",
            "LFTAGOPS_MAX_VALUES_PER_KEY": "1",
        }
    )

    assert settings.propagation_timeout == 300
    assert settings.delete_timeout == 5.5
    assert settings.max_attempts == 4
    assert settings.max_values_per_key == 1

    propagation = settings.propagation_policy()
    deletion = settings.deletion_policy()
    assert (propagation.name, propagation.timeout, propagation.max_delay) == ("propagation", 300, 2)
    assert (deletion.name, deletion.timeout, deletion.max_attempts) == ("deletion", 5.5, 4)


def test_invalid_values_fall_back_to_defaults():
    settings = Settings.from_env(
        {
            "LFTAGOPS_PROPAGATION_TIMEOUT": "soon",
            "LFTAGOPS_MAX_ATTEMPTS": "many",
            "LFTAGOPS_MAX_VALUES_PER_KEY": "0",
        }
    )

    assert settings.propagation_timeout == PROPAGATION_TIMEOUT
    assert settings.max_attempts is None
    assert settings.max_values_per_key is None
