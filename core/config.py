"""
Settings for both advertising platforms and the API server.

Values come from the environment or a .env file. Nothing here is global:
callers build the settings once and pass them to the factories.
"""

import logging
from pathlib import Path
from typing import Callable

from dotenv import set_key
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_ENV_FILE = ".env"


class GoogleAdsSettings(BaseSettings):
    """Google Ads API credentials."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_ADS_", env_file=DEFAULT_ENV_FILE, extra="ignore"
    )

    client_id: str
    client_secret: SecretStr
    refresh_token: SecretStr
    developer_token: SecretStr
    login_customer_id: str

    def to_client_config(self) -> dict:
        """Build the dictionary accepted by GoogleAdsClient.load_from_dict."""
        return {
            "client_id": self.client_id,
            "client_secret": self.client_secret.get_secret_value(),
            "refresh_token": self.refresh_token.get_secret_value(),
            "developer_token": self.developer_token.get_secret_value(),
            "login_customer_id": self.login_customer_id.replace("-", ""),
            "use_proto_plus": True,
        }


class MicrosoftAdsSettings(BaseSettings):
    """Microsoft Advertising API credentials."""

    model_config = SettingsConfigDict(
        env_prefix="BING_ADS_", env_file=DEFAULT_ENV_FILE, extra="ignore"
    )

    client_id: str
    client_secret: SecretStr
    refresh_token: SecretStr
    developer_token: SecretStr
    login_customer_id: str
    redirect_uri: str = "https://login.microsoftonline.com/common/oauth2/nativeclient"
    environment: str = "production"


class JWTSettings(BaseSettings):
    """JWT verification settings for the API server."""

    model_config = SettingsConfigDict(
        env_prefix="API_JWT_", env_file=DEFAULT_ENV_FILE, extra="ignore"
    )

    public_key_path: str = "/tmp/jwks-public.pem"
    private_key_path: str = "/tmp/jwks-private.pem"
    audience: str = "ads-api"
    issuer: str = "ads-auth"
    expiry_minutes: int = Field(15, ge=1)


class AppSettings(BaseSettings):
    """API server settings."""

    model_config = SettingsConfigDict(
        env_prefix="APP_", env_file=DEFAULT_ENV_FILE, extra="ignore"
    )

    env: str = "development"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000
    env_file: str = DEFAULT_ENV_FILE

    @property
    def is_production(self) -> bool:
        return self.env == "production"


def dotenv_refresh_token_writer(
    env_file: str = DEFAULT_ENV_FILE,
    key: str = "BING_ADS_REFRESH_TOKEN",
) -> Callable[[str], None]:
    """
    Build a callback that persists a rotated refresh token into a .env file.

    Args:
        env_file: Path of the .env file to rewrite
        key: Variable holding the refresh token

    Returns:
        Callback taking the new refresh token
    """
    path = Path(env_file)

    def write_refresh_token(refresh_token: str) -> None:
        path.touch(exist_ok=True)
        set_key(str(path), key, refresh_token, quote_mode="never")
        logger.info(f"Stored rotated refresh token in {path} ({key})")

    return write_refresh_token
