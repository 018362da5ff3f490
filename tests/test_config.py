import warnings

import pytest

from clientdesk.core.config import settings


def configured(**overrides):
    base = dict(
        SECRET_KEY="k" * 48,
        DEBUG=False,
        ENVIRONMENT="development",
        ADMIN_PASSWORD=None,
        EMAIL_USER="mailer@clientdesk.io",
        EMAIL_PASS="app-password",
        PASSWORD_CACHE_BACKEND="database",
    )
    base.update(overrides)
    return settings.model_copy(update=base)


def test_clean_settings_have_no_problems():
    assert configured().security_problems() == []


def test_default_secret_key_is_fatal():
    problems = configured(SECRET_KEY="secret-key").security_problems()
    assert problems == [(True, "Default SECRET_KEY in use. Set SECRET_KEY to a secure random value.")]


def test_short_secret_key_is_reported():
    assert configured(SECRET_KEY="short").security_problems()[0][1].startswith("SECRET_KEY should be")


def test_production_refuses_fatal_problems():
    with pytest.raises(ValueError, match="DEBUG"):
        configured(ENVIRONMENT="production", DEBUG=True).validate_security_settings()


def test_development_only_warns():
    with pytest.warns(UserWarning, match="DEBUG"):
        assert configured(DEBUG=True).validate_security_settings() is True


def test_mail_warning_only_in_production():
    config = configured(EMAIL_USER=None, EMAIL_PASS=None)
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        assert config.validate_security_settings() is True

    with pytest.warns(UserWarning, match="EMAIL_USER"):
        configured(ENVIRONMENT="production", EMAIL_USER=None, EMAIL_PASS=None).validate_security_settings()
