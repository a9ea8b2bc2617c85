from fhevm_sdk.config import Settings


def test_prefixed_environment_variables(monkeypatch):
    monkeypatch.setenv("FHEVM_DEFAULT_NETWORK", "localhost")
    monkeypatch.setenv("FHEVM_PERMIT_TTL_SECONDS", "60")

    settings = Settings()

    assert settings.default_network == "localhost"
    assert settings.permit_ttl_seconds == 60


def test_gateway_url_alias(monkeypatch):
    """Unprefixed GATEWAY_URL is honoured when the prefixed one is unset."""

    monkeypatch.delenv("FHEVM_GATEWAY_URL", raising=False)
    monkeypatch.setenv("GATEWAY_URL", "http://gw.alias")

    settings = Settings()

    assert settings.gateway_url == "http://gw.alias"
    assert settings.has_gateway_override()


def test_prefixed_gateway_url_wins(monkeypatch):
    monkeypatch.setenv("FHEVM_GATEWAY_URL", "http://gw.primary")
    monkeypatch.setenv("GATEWAY_URL", "http://gw.alias")

    settings = Settings()

    assert settings.gateway_url == "http://gw.primary"
