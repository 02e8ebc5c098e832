"""
Factories wiring sessions, gateways and services per platform.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from core.access_links import AccessLinkService
from core.config import GoogleAdsSettings, MicrosoftAdsSettings
from core.exclusions import ExclusionListService
from core.google_ads_gateway import GoogleAdsMutationGateway, GoogleAdsQueryGateway
from core.microsoft_ads_gateway import MicrosoftAdsMutationGateway, MicrosoftAdsQueryGateway
from core.models import Scope
from core.queries import ClientLinkDialect, GaqlLinkDialect
from core.sessions import (
    create_customer_management_service,
    create_google_ads_client,
    create_microsoft_ads_authorization,
)

logger = logging.getLogger(__name__)


@dataclass
class GoogleAdsServices:
    """Services available on Google Ads."""

    manager_account_id: str
    access_links: AccessLinkService
    global_exclusions: ExclusionListService
    campaign_exclusions: ExclusionListService


@dataclass
class MicrosoftAdsServices:
    """Services available on Microsoft Advertising."""

    manager_account_id: str
    access_links: AccessLinkService


def create_google_ads_services(
    settings: GoogleAdsSettings,
    client: Optional[Any] = None,
    service_logger: Optional[logging.Logger] = None,
) -> GoogleAdsServices:
    """
    Create the Google Ads service set.

    Args:
        settings: Google Ads credentials
        client: Pre-built GoogleAdsClient (built from settings when omitted)
        service_logger: Logger handed to every service

    Returns:
        Configured GoogleAdsServices
    """
    if client is None:
        client = create_google_ads_client(settings)

    query_gateway = GoogleAdsQueryGateway(client)
    mutation_gateway = GoogleAdsMutationGateway(client)

    return GoogleAdsServices(
        manager_account_id=settings.login_customer_id.replace("-", ""),
        access_links=AccessLinkService(
            query_gateway, mutation_gateway, GaqlLinkDialect(), logger=service_logger
        ),
        global_exclusions=ExclusionListService(
            Scope.GLOBAL, query_gateway, mutation_gateway, logger=service_logger
        ),
        campaign_exclusions=ExclusionListService(
            Scope.CAMPAIGN, query_gateway, mutation_gateway, logger=service_logger
        ),
    )


def create_microsoft_ads_services(
    settings: MicrosoftAdsSettings,
    service: Optional[Any] = None,
    on_refresh_token: Optional[Callable[[str], None]] = None,
    service_logger: Optional[logging.Logger] = None,
) -> MicrosoftAdsServices:
    """
    Create the Microsoft Advertising service set.

    Args:
        settings: Microsoft Advertising credentials
        service: Pre-built Customer Management ServiceClient
        on_refresh_token: Called when the refresh token rotates
        service_logger: Logger handed to every service

    Returns:
        Configured MicrosoftAdsServices
    """
    if service is None:
        authorization_data = create_microsoft_ads_authorization(settings, on_refresh_token)
        service = create_customer_management_service(authorization_data, settings.environment)

    return MicrosoftAdsServices(
        manager_account_id=settings.login_customer_id,
        access_links=AccessLinkService(
            MicrosoftAdsQueryGateway(service),
            MicrosoftAdsMutationGateway(service),
            ClientLinkDialect(),
            logger=service_logger,
        ),
    )
