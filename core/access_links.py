"""
Management link checks and access invitations.

Works against any platform through the gateway pair plus a LinkDialect.
"""

import logging
from typing import List, Optional

from core.errors import UnsupportedOperationError
from core.gateways import MutationGateway, QueryGateway
from core.models import (
    AccessRole,
    CreateOperation,
    Invitation,
    LinkedAccount,
    ManagementLinkStatus,
    MutationResult,
)
from core.queries import LinkDialect


class AccessLinkService:
    """
    Builds and checks management links between advertising accounts.

    Links themselves are owned by the platform; this service only reads them
    and sends invitations that may later become links.
    """

    def __init__(
        self,
        query_gateway: QueryGateway,
        mutation_gateway: MutationGateway,
        dialect: LinkDialect,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the service.

        Args:
            query_gateway: Gateway used for link lookups
            mutation_gateway: Gateway used to submit invitations
            dialect: Platform spelling of link queries and payloads
            logger: Logger to use (module logger by default)
        """
        self.query_gateway = query_gateway
        self.mutation_gateway = mutation_gateway
        self.dialect = dialect
        self.logger = logger or logging.getLogger(__name__)

    def send_invitation(
        self,
        account_id: str,
        target: str,
        role: AccessRole = AccessRole.ADMIN,
    ) -> MutationResult:
        """
        Send an access invitation.

        Args:
            account_id: Account granting access
            target: Email address (Google) or account number (Microsoft)
            role: Access role to grant

        Returns:
            Mutation result with the created invitation/link resource

        Raises:
            ApiOperationError: If the platform rejects the invitation
            TransportFault: On transport failure
        """
        invitation = Invitation(account_id=account_id, target=target, role=AccessRole(role))
        operation = CreateOperation(payload=self.dialect.invitation_payload(invitation))

        result = self.mutation_gateway.apply(account_id, self.dialect.invitation_kind, [operation])
        self.logger.info(
            f"Sent {invitation.role.value} invitation from account {account_id} "
            f"on {self.dialect.platform}"
        )
        return result

    def can_manage_account(self, manager_account_id: str, client_account_id: str) -> bool:
        """
        Check for an active management link between two accounts.

        Args:
            manager_account_id: Managing account
            client_account_id: Managed account id, or its account number on
                platforms that list links

        Returns:
            True if any matching link is ACTIVE, False otherwise (including no links)
        """
        if self.dialect.supports_link_listing and self.dialect.is_account_number(client_account_id):
            account_number = client_account_id.strip()
            return any(
                account_number in (account.linked_id, account.linked_number)
                for account in self.get_linked_accounts(manager_account_id)
            )

        query =self.dialect.link_status_query(manager_account_id, client_account_id)
        rows = self.query_gateway.run(manager_account_id, query)

        for row in rows:
            if self.dialect.link_status(row) is ManagementLinkStatus.ACTIVE:
                return True

        self.logger.debug(
            f"No active link from {manager_account_id} to {client_account_id} "
            f"({len(rows)} link rows)"
        )
        return False

    def get_linked_accounts(self, manager_account_id: str) -> List[LinkedAccount]:
        """
        List accounts linked to a manager through active links.

        Args:
            manager_account_id: Managing account

        Returns:
            Linked accounts across all pages, in platform order

        Raises:
            UnsupportedOperationError: If the platform has no list-based link search
        """
        if not self.dialect.supports_link_listing:
            raise UnsupportedOperationError(
                "Linked account listing is not available on this platform",
                platform=self.dialect.platform,
            )

        rows = self.query_gateway.run(
            manager_account_id,
            self.dialect.linked_accounts_query(manager_account_id),
        )

        return [
            self.dialect.linked_account(row)
            for row in rows
            if self.dialect.link_status(row) is ManagementLinkStatus.ACTIVE
        ]
