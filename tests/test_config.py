import pytest

from cloudauth.config import AuthSettings
from cloudauth.models.errors import ConfigurationError


class TestAuthSettings:
    def test_defaults(self) -> None:
        settings = AuthSettings()

        assert settings.callback_port == 8742
        assert settings.callback_timeout == 300.0
        assert settings.desktop_redirect_uri == "http://localhost:8742/callback"
        assert settings.token_endpoint.endswith("/oauth2/token")
        assert settings.authorize_endpoint.endswith("/oauth2/authorize")

    def test_from_env(self, monkeypatch) -> None:
        # Arrange
        monkeypatch.setenv("CLOUDAUTH_CLIENT_ID", "env-client")
        monkeypatch.setenv("CLOUDAUTH_CALLBACK_PORT", "9100")
        monkeypatch.setenv("CLOUDAUTH_CALLBACK_TIMEOUT", "60")

        # Act
        settings = AuthSettings.from_env(dotenv=False)

        # Assert
        assert settings.client_id == "env-client"
        assert settings.callback_port == 9100
        assert settings.callback_timeout == 60.0
        assert settings.desktop_redirect_uri == "http://localhost:9100/callback"

    def test_overrides_win_over_env(self, monkeypatch) -> None:
        monkeypatch.setenv("CLOUDAUTH_CLIENT_ID", "env-client")

        settings = AuthSettings.from_env(dotenv=False, client_id="explicit")

        assert settings.client_id == "explicit"

    def test_dotenv_file_is_loaded(self, monkeypatch, tmp_path) -> None:
        # Arrange
        # setenv first so the value loaded from .env is undone after the test
        monkeypatch.setenv("CLOUDAUTH_CLIENT_ID", "placeholder")
        monkeypatch.delenv("CLOUDAUTH_CLIENT_ID")
        monkeypatch.chdir(tmp_path)
        (tmp_path / ".env").write_text("CLOUDAUTH_CLIENT_ID=dotenv-client\n")

        # Act
        settings = AuthSettings.from_env()

        # Assert
        assert settings.client_id == "dotenv-client"

    def test_invalid_value_raises_configuration_error(self, monkeypatch) -> None:
        monkeypatch.setenv("CLOUDAUTH_CALLBACK_PORT", "not-a-port")

        with pytest.raises(ConfigurationError):
            AuthSettings.from_env(dotenv=False)

    def test_port_out_of_range(self) -> None:
        with pytest.raises(ConfigurationError):
            AuthSettings.from_env(dotenv=False, callback_port=70000)
