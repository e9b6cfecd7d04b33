import importlib

import pytest

from minimirror.models import MirrorConfig


@pytest.fixture
def reload_vars(monkeypatch):
    import minimirror.vars as vars_module

    def _reload(**env):
        for name in ("TARGET_DOMAIN", "TARGET_ENDPOINT", "SECONDARY_DOMAINS", "PORT"):
            monkeypatch.delenv(name, raising=False)
        for name, value in env.items():
            monkeypatch.setenv(name, value)
        return importlib.reload(vars_module)

    yield _reload
    monkeypatch.undo()
    importlib.reload(vars_module)


def test_secondary_domains_split_on_semicolon(reload_vars):
    vars_module = reload_vars(
        SECONDARY_DOMAINS="https://cdn.example; https://fonts.example;;"
    )

    assert vars_module.SECONDARY_DOMAINS == [
        "https://cdn.example",
        "https://fonts.example",
    ]


def test_empty_secondary_domains(reload_vars):
    vars_module = reload_vars(SECONDARY_DOMAINS="")

    assert vars_module.SECONDARY_DOMAINS == []


def test_defaults(reload_vars):
    vars_module = reload_vars()

    assert vars_module.TARGET_DOMAIN == ""
    assert vars_module.PORT == "3000"
    assert vars_module.MAX_RETRY == 3


def test_config_from_env(reload_vars):
    reload_vars(
        TARGET_DOMAIN="https://origin.example/",
        TARGET_ENDPOINT="http://10.0.0.5:8080",
        SECONDARY_DOMAINS="https://cdn.example",
        PORT="8080",
    )

    config = MirrorConfig.from_env()

    assert config.target_domain == "https://origin.example"
    assert config.target_endpoint == "http://10.0.0.5:8080"
    assert config.internal_base == "http://10.0.0.5:8080"
    assert config.secondary_domains == ("https://cdn.example",)
    assert config.listen_port == "8080"
    assert config.validate() == []


def test_config_is_immutable():
    config = MirrorConfig(target_domain="https://origin.example")

    with pytest.raises(AttributeError):
        config.target_domain = "https://other.example"


class TestValidate:
    def test_missing_target_domain(self):
        assert MirrorConfig(target_domain="").validate() == ["TARGET_DOMAIN is not set"]

    @pytest.mark.parametrize("target", ["origin.example", "ftp://origin.example"])
    def test_target_must_be_absolute_http_url(self, target):
        problems = MirrorConfig(target_domain=target).validate()

        assert len(problems) == 1
        assert "TARGET_DOMAIN" in problems[0]

    def test_bad_endpoint_and_port(self):
        problems = MirrorConfig(
            target_domain="https://origin.example",
            target_endpoint="10.0.0.5:8080",
            listen_port="http",
        ).validate()

        assert len(problems) == 2
        assert any("TARGET_ENDPOINT" in p for p in problems)
        assert any("PORT" in p for p in problems)

    def test_internal_base_falls_back_to_target_domain(self):
        config = MirrorConfig(target_domain="https://origin.example")

        assert config.internal_base == "https://origin.example"
