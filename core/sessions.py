"""
Authenticated platform sessions.

Google Ads: a GoogleAdsClient built from OAuth2 refresh credentials.
Microsoft Advertising: AuthorizationData backed by an OAuth web grant whose
refresh token may rotate; rotation is reported through a callback.
"""

import logging
from typing import Callable, Optional

from bingads import ServiceClient
from bingads.authorization import AuthorizationData, OAuthWebAuthCodeGrant
from bingads.exceptions import OAuthTokenRequestException
from google.ads.googleads.client import GoogleAdsClient

from core.config import GoogleAdsSettings, MicrosoftAdsSettings
from core.errors import AuthenticationError, map_microsoft_ads_exception

logger = logging.getLogger(__name__)

CUSTOMER_MANAGEMENT_SERVICE = "CustomerManagementService"
MICROSOFT_API_VERSION = 13


def create_google_ads_client(settings: GoogleAdsSettings) -> GoogleAdsClient:
    """
    Build an authenticated Google Ads client.

    Args:
        settings: Google Ads credentials

    Returns:
        GoogleAdsClient using proto-plus messages

    Raises:
        AuthenticationError: If the credentials are incomplete or rejected
    """
    try:
        client = GoogleAdsClient.load_from_dict(settings.to_client_config())
    except ValueError as e:
        raise AuthenticationError(f"Invalid Google Ads credentials: {e}")

    logger.info(f"Google Ads client ready (login customer {settings.login_customer_id})")
    return client


def create_microsoft_ads_authorization(
    settings: MicrosoftAdsSettings,
    on_refresh_token: Optional[Callable[[str], None]] = None,
) -> AuthorizationData:
    """
    Exchange the configured refresh token and build authorization data.

    Args:
        settings: Microsoft Advertising credentials
        on_refresh_token: Called with the new refresh token when the platform
            rotates it

    Returns:
        AuthorizationData scoped to the login (manager) customer

    Raises:
        AuthenticationError: If no access token could be obtained
    """
    configured_token = settings.refresh_token.get_secret_value()

    authentication = OAuthWebAuthCodeGrant(
        client_id=settings.client_id,
        client_secret=settings.client_secret.get_secret_value(),
        redirection_uri=settings.redirect_uri,
        env=settings.environment,
    )

    def token_refreshed(oauth_tokens) -> None:
        new_token = oauth_tokens.refresh_token
        if on_refresh_token is not None and new_token and new_token != configured_token:
            on_refresh_token(new_token)

    authentication.token_refreshed_callback = token_refreshed

    try:
        oauth_tokens = authentication.request_oauth_tokens_by_refresh_token(configured_token)
    except OAuthTokenRequestException as e:
        raise map_microsoft_ads_exception(e, "requesting OAuth tokens")

    if not oauth_tokens or not oauth_tokens.access_token:
        raise AuthenticationError("Failed to obtain Microsoft Advertising access token")

    logger.info(f"Microsoft Advertising session ready (customer {settings.login_customer_id})")
    return AuthorizationData(
        account_id=None,
        customer_id=settings.login_customer_id,
        developer_token=settings.developer_token.get_secret_value(),
        authentication=authentication,
    )


def create_customer_management_service(
    authorization_data: AuthorizationData,
    environment: str = "production",
) -> ServiceClient:
    """Build the Customer Management SOAP service client."""
    return ServiceClient(
        service=CUSTOMER_MANAGEMENT_SERVICE,
        version=MICROSOFT_API_VERSION,
        authorization_data=authorization_data,
        environment=environment,
    )
