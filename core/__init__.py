"""Core modules for cross-platform access links and IP exclusion lists."""

from core.errors import (
    AdsAPIError,
    AuthenticationError,
    TransportFault,
    ApiOperationError,
    ValidationError,
    UnsupportedOperationError,
)
from core.models import (
    Scope,
    ManagementLinkStatus,
    AccessRole,
    ResourceKind,
    Invitation,
    LinkedAccount,
    IpExclusionRule,
    CreateOperation,
    RemoveOperation,
    MutationResult,
)
from core.gateways import QueryGateway, MutationGateway, drain_pages
from core.queries import LinkDialect, GaqlLinkDialect, ClientLinkDialect
from core.access_links import AccessLinkService
from core.exclusions import ExclusionListService
from core.factory import (
    GoogleAdsServices,
    MicrosoftAdsServices,
    create_google_ads_services,
    create_microsoft_ads_services,
)

__all__ = [
    # Errors
    "AdsAPIError",
    "AuthenticationError",
    "TransportFault",
    "ApiOperationError",
    "ValidationError",
    "UnsupportedOperationError",
    # Models
    "Scope",
    "ManagementLinkStatus",
    "AccessRole",
    "ResourceKind",
    "Invitation",
    "LinkedAccount",
    "IpExclusionRule",
    "CreateOperation",
    "RemoveOperation",
    "MutationResult",
    # Gateways
    "QueryGateway",
    "MutationGateway",
    "drain_pages",
    # Dialects
    "LinkDialect",
    "GaqlLinkDialect",
    "ClientLinkDialect",
    # Services
    "AccessLinkService",
    "ExclusionListService",
    "GoogleAdsServices",
    "MicrosoftAdsServices",
    "create_google_ads_services",
    "create_microsoft_ads_services",
]
