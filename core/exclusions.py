"""
IP exclusion lists at account (GLOBAL) and campaign (CAMPAIGN) scope.

Search-then-mutate: blocks are created blindly, unblocks look the rule up by
its /32 address and remove it by resource name.
"""

import logging
from typing import List, Optional

from core.errors import ValidationError
from core.gateways import MutationGateway, QueryGateway
from core.models import CreateOperation, IpExclusionRule, RemoveOperation, Scope
from core.queries import (
    IP_BLOCK_RESOURCE_KINDS,
    host_route,
    ip_block_payload,
    ip_block_query,
    ip_block_rule,
    normalize_ip,
)


class ExclusionListService:
    """
    Creates, finds and removes IP exclusion rules for one scope.

    GLOBAL unblocks remove every matching rule in one batch. CAMPAIGN
    unblocks remove only the first match; any further duplicates stay.
    """

    def __init__(
        self,
        scope: Scope,
        query_gateway: QueryGateway,
        mutation_gateway: MutationGateway,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the service.

        Args:
            scope: GLOBAL or CAMPAIGN
            query_gateway: Gateway used for rule lookups
            mutation_gateway: Gateway used for create/remove batches
            logger: Logger to use (module logger by default)
        """
        self.scope = Scope(scope)
        self.kind = IP_BLOCK_RESOURCE_KINDS[self.scope]
        self.query_gateway = query_gateway
        self.mutation_gateway = mutation_gateway
        self.logger = logger or logging.getLogger(__name__)

    def _check_campaign(self, campaign_id: Optional[str]) -> None:
        if self.scope is Scope.CAMPAIGN and not campaign_id:
            raise ValidationError("campaign_id is required for campaign IP blocks")
        if self.scope is Scope.GLOBAL and campaign_id:
            raise ValidationError("campaign_id is not accepted for account-level IP blocks")

    def block_ip(
        self,
        account_id: str,
        ip_address: str,
        campaign_id: Optional[str] = None,
    ) -> IpExclusionRule:
        """
        Create an IP exclusion rule.

        No existence check is made, so blocking the same IP twice creates two
        platform resources.

        Args:
            account_id: Account owning the rule
            ip_address: Address to exclude, sent as given once trimmed
            campaign_id: Campaign to scope the rule to (CAMPAIGN only)

        Returns:
            The created rule with its resource name when the platform returned one
        """
        self._check_campaign(campaign_id)
        ip_address = normalize_ip(ip_address)

        payload = ip_block_payload(self.scope, account_id, ip_address, campaign_id)
        result = self.mutation_gateway.apply(account_id, self.kind, [CreateOperation(payload)])

        self.logger.info(f"Blocked IP {ip_address} ({self.scope.value}) for account {account_id}")
        return IpExclusionRule(
            scope=self.scope,
            account_id=account_id,
            campaign_id=campaign_id,
            ip_address=ip_address,
            resource_name=result.resource_names[0] if result.resource_names else None,
        )

    def find_rules(
        self,
        account_id: str,
        ip_address: str,
        campaign_id: Optional[str] = None,
    ) -> List[IpExclusionRule]:
        """
        Look up existing IP_BLOCK rules for an address.

        Args:
            account_id: Account owning the rules
            ip_address: Bare IP (normalised to /32) or CIDR
            campaign_id: Campaign to search (CAMPAIGN only)

        Returns:
            Matching rules in platform order; empty when none exist
        """
        self._check_campaign(campaign_id)

        query = ip_block_query(self.scope, account_id, host_route(ip_address), campaign_id)
        rows = self.query_gateway.run(account_id, query)

        return [ip_block_rule(self.scope, account_id, row, campaign_id) for row in rows]

    def unblock_ip(
        self,
        account_id: str,
        ip_address: str,
        campaign_id: Optional[str] = None,
    ) -> int:
        """
        Remove IP exclusion rules for an address.

        Args:
            account_id: Account owning the rules
            ip_address: Address to unblock
            campaign_id: Campaign to unblock in (CAMPAIGN only)

        Returns:
            Number of rules removed (0 when nothing matched)
        """
        rules = self.find_rules(account_id, ip_address, campaign_id)
        if not rules:
            self.logger.debug(f"No IP block for {ip_address} ({self.scope.value}) in account {account_id}")
            return 0

        if self.scope is Scope.CAMPAIGN:
            rules = rules[:1]

        operations = [RemoveOperation(rule.resource_name) for rule in rules]
        self.mutation_gateway.apply(account_id, self.kind, operations)

        self.logger.info(
            f"Unblocked IP {ip_address} ({self.scope.value}) for account {account_id}: "
            f"{len(operations)} rule(s) removed"
        )
        return len(operations)
