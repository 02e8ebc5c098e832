"""
Domain types shared by the gateways and services.

Accounts and campaigns are plain id strings; everything else here is either
read back from a platform (links, exclusion rules) or sent to it (invitations,
operations).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class Scope(str, Enum):
    """Reach of an IP exclusion rule."""

    GLOBAL = "global"
    CAMPAIGN = "campaign"


class ManagementLinkStatus(str, Enum):
    """Normalised management link status across platforms."""

    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    REFUSED = "REFUSED"
    INACTIVE = "INACTIVE"
    CANCELED = "CANCELED"
    UNSPECIFIED = "UNSPECIFIED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_platform(cls, value: Optional[str]) -> "ManagementLinkStatus":
        """
        Parse a platform status string.

        Accepts Google enum names ("ACTIVE") and Microsoft link states
        ("Active", "LinkPending", "LinkDeclined").

        Args:
            value: Raw status value from a query row

        Returns:
            Matching status, UNKNOWN when unrecognised
        """
        if not value:
            return cls.UNKNOWN

        normalized = str(value).upper()
        if normalized.startswith("LINK") and normalized != "LINK":
            normalized = normalized[len("LINK"):]
        normalized = MICROSOFT_STATUS_ALIASES.get(normalized, normalized)

        try:
            return cls(normalized)
        except ValueError:
            return cls.UNKNOWN


MICROSOFT_STATUS_ALIASES: Dict[str, str] = {
    "DECLINED": "REFUSED",
    "EXPIRED": "INACTIVE",
    "INPROGRESS": "PENDING",
    "ACCEPTED": "PENDING",
}


class AccessRole(str, Enum):
    """Access level granted by an invitation."""

    ADMIN = "ADMIN"
    STANDARD = "STANDARD"
    READ_ONLY = "READ_ONLY"
    EMAIL_ONLY = "EMAIL_ONLY"


class ResourceKind(str, Enum):
    """Platform resource collections the engine mutates."""

    CUSTOMER_USER_ACCESS_INVITATION = "customer_user_access_invitation"
    CUSTOMER_NEGATIVE_CRITERION = "customer_negative_criterion"
    CAMPAIGN_CRITERION = "campaign_criterion"
    CLIENT_LINK = "client_link"


@dataclass(frozen=True)
class Invitation:
    """Access invitation sent from an account to a user or another account."""

    account_id: str
    target: str  # email address (Google) or account number (Microsoft)
    role: AccessRole = AccessRole.ADMIN


@dataclass(frozen=True)
class LinkedAccount:
    """Client account reachable through an active management link."""

    linked_id: str
    linked_number: Optional[str] = None


@dataclass
class IpExclusionRule:
    """IP address exclusion at account or campaign scope."""

    scope: Scope
    account_id: str
    ip_address: str
    campaign_id: Optional[str] = None
    resource_name: Optional[str] = None


@dataclass(frozen=True)
class CreateOperation:
    """Create a resource from a platform-shaped payload."""

    payload: Dict[str, Any]


@dataclass(frozen=True)
class RemoveOperation:
    """Remove a resource by its platform handle."""

    resource_name: str


Operation = Union[CreateOperation, RemoveOperation]


@dataclass
class MutationResult:
    """Outcome of a successful mutation batch."""

    resource_names: List[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.resource_names)
