"""
Query text, resource path and row helpers.

Also holds the per-platform link dialects: the small objects that know how a
platform spells management-link queries, statuses and invitation payloads.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from core.errors import UnsupportedOperationError
from core.gateways import Row
from core.models import (
    Invitation,
    IpExclusionRule,
    LinkedAccount,
    ManagementLinkStatus,
    ResourceKind,
    Scope,
)

HOST_ROUTE_SUFFIX = "/32"

_ESCAPES = {
    "\\": "\\\\",
    "'": "\\'",
    '"': '\\"',
    "\0": "\\0",
}


def escape_query_string(value: Any) -> str:
    """Backslash-escape a value for use inside a quoted query literal."""
    return "".join(_ESCAPES.get(char, char) for char in str(value))


def quote(value: Any) -> str:
    """Escape and single-quote a query literal."""
    return f"'{escape_query_string(value)}'"


def customer_path(account_id: str) -> str:
    return f"customers/{account_id}"


def campaign_path(account_id: str, campaign_id: str) -> str:
    return f"customers/{account_id}/campaigns/{campaign_id}"


def normalize_ip(ip_address: str) -> str:
    return str(ip_address).strip()


def host_route(ip_address: str) -> str:
    """Return the /32 form stored by the platform for a bare IP."""
    ip_address = normalize_ip(ip_address)
    if "/" in ip_address:
        return ip_address
    return ip_address + HOST_ROUTE_SUFFIX


def row_value(row: Row, path: str, default: Any = None) -> Any:
    """
    Read a dotted field path from a nested row.

    Args:
        row: Row returned by a QueryGateway
        path: Dotted path such as "campaign_criterion.resource_name"
        default: Returned when any segment is missing

    Returns:
        Field value or default
    """
    current: Any = row
    for segment in path.split("."):
        if not isinstance(current, dict) or segment not in current:
            return default
        current = current[segment]
    return current


# IP exclusion queries

IP_BLOCK_RESOURCES: Dict[Scope, str] = {
    Scope.GLOBAL: "customer_negative_criterion",
    Scope.CAMPAIGN: "campaign_criterion",
}

IP_BLOCK_RESOURCE_KINDS: Dict[Scope, ResourceKind] = {
    Scope.GLOBAL: ResourceKind.CUSTOMER_NEGATIVE_CRITERION,
    Scope.CAMPAIGN: ResourceKind.CAMPAIGN_CRITERION,
}


def ip_block_query(
    scope: Scope,
    account_id: str,
    ip_address: str,
    campaign_id: Optional[str] = None,
) -> str:
    """
    Build the lookup query for IP_BLOCK criteria matching one address.

    The account filter is implied by the customer the query runs against;
    campaign scope adds an explicit campaign filter.
    """
    resource = IP_BLOCK_RESOURCES[scope]
    conditions = [f"{resource}.type = 'IP_BLOCK'"]
    if scope is Scope.CAMPAIGN:
        conditions.append(f"{resource}.campaign = {quote(campaign_path(account_id, campaign_id))}")
    conditions.append(f"{resource}.ip_block.ip_address = {quote(ip_address)}")

    return (
        f"SELECT {resource}.resource_name, {resource}.ip_block.ip_address "
        f"FROM {resource} "
        f"WHERE " + " AND ".join(conditions)
    )


def ip_block_payload(
    scope: Scope,
    account_id: str,
    ip_address: str,
    campaign_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Build the negative criterion payload for a new IP block."""
    if scope is Scope.CAMPAIGN:
        return {
            "campaign": campaign_path(account_id, campaign_id),
            "negative": True,
            "ip_block": {"ip_address": ip_address},
        }
    return {
        "type": "IP_BLOCK",
        "ip_block": {"ip_address": ip_address},
    }


def ip_block_rule(
    scope: Scope,
    account_id: str,
    row: Row,
    campaign_id: Optional[str] = None,
) -> IpExclusionRule:
    """Turn a lookup row into an IpExclusionRule."""
    resource = IP_BLOCK_RESOURCES[scope]
    return IpExclusionRule(
        scope=scope,
        account_id=account_id,
        campaign_id=campaign_id,
        ip_address=row_value(row, f"{resource}.ip_block.ip_address"),
        resource_name=row_value(row, f"{resource}.resource_name"),
    )


# Management link dialects

class LinkDialect(ABC):
    """How a platform expresses management-link lookups and invitations."""

    platform: str
    invitation_kind: ResourceKind
    supports_link_listing: bool = False

    @abstractmethod
    def link_status_query(self, manager_account_id: str, client_account_id: str) -> str:
        """Query for links between one manager and one client."""

    @abstractmethod
    def link_status(self, row: Row) -> ManagementLinkStatus:
        """Status carried by a link row."""

    @abstractmethod
    def invitation_payload(self, invitation: Invitation) -> Dict[str, Any]:
        """CREATE payload for an invitation."""

    def is_account_number(self, account_ref: str) -> bool:
        """Whether a client reference is an account number rather than an id."""
        return False

    def linked_accounts_query(self, manager_account_id: str) -> str:
        raise UnsupportedOperationError(
            "Linked account listing is not available on this platform",
            platform=self.platform,
        )

    def linked_account(self, row: Row) -> LinkedAccount:
        raise UnsupportedOperationError(
            "Linked account listing is not available on this platform",
            platform=self.platform,
        )


class GaqlLinkDialect(LinkDialect):
    """Google Ads: customer_client_link rows and user access invitations."""

    platform = "google_ads"
    invitation_kind = ResourceKind.CUSTOMER_USER_ACCESS_INVITATION

    def link_status_query(self, manager_account_id: str, client_account_id: str) -> str:
        return (
            "SELECT customer_client_link.status "
            "FROM customer_client_link "
            f"WHERE customer_client_link.manager_link_id = {quote(manager_account_id)} "
            f"AND customer_client_link.client_customer = {quote(customer_path(client_account_id))}"
        )

    def link_status(self, row: Row) -> ManagementLinkStatus:
        return ManagementLinkStatus.from_platform(row_value(row, "customer_client_link.status"))

    def invitation_payload(self, invitation: Invitation) -> Dict[str, Any]:
        return {
            "email_address": invitation.target,
            "access_role": invitation.role.value,
        }


class ClientLinkDialect(LinkDialect):
    """Microsoft Advertising: ClientLink search predicates and AddClientLinks."""

    platform = "microsoft_ads"
    invitation_kind = ResourceKind.CLIENT_LINK
    supports_link_listing = True

    def link_status_query(self, manager_account_id: str, client_account_id: str) -> str:
        return (
            f"ManagingCustomerId = {quote(manager_account_id)} "
            f"AND ClientAccountId = {quote(client_account_id)}"
        )

    def is_account_number(self, account_ref: str) -> bool:
        # Account ids are numeric; account numbers are alphanumeric (e.g. "X7654321")
        return not str(account_ref).strip().isdigit()

    def linked_accounts_query(self, manager_account_id: str) -> str:
        return f"ManagingCustomerId = {quote(manager_account_id)}"

    def link_status(self, row: Row) -> ManagementLinkStatus:
        return ManagementLinkStatus.from_platform(row_value(row, "client_link.status"))

    def linked_account(self, row: Row) -> LinkedAccount:
        number = row_value(row, "client_link.client_entity_number")
        return LinkedAccount(
            linked_id=str(row_value(row, "client_link.client_entity_id")),
            linked_number=str(number) if number is not None else None,
        )

    def invitation_payload(self, invitation: Invitation) -> Dict[str, Any]:
        # Microsoft links carry no role; the invitation always grants account management
        return {
            "Type": "AccountLink",
            "ClientEntityNumber": invitation.target,
            "ManagingCustomerId": invitation.account_id,
            "IsBillToClient": True,
            "SuppressNotification": False,
        }
