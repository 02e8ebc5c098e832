"""
Microsoft Advertising gateways over the Customer Management SOAP service.

Queries are conjunctions of equality predicates (``Field = 'value' AND ...``)
translated into SearchClientLinks predicates and read page by page.
"""

import logging
import re
from typing import Any, Dict, List, Sequence

from suds import WebFault
from suds.transport import TransportError

from core.errors import (
    ApiOperationError,
    ValidationError,
    map_microsoft_ads_exception,
    microsoft_operation_errors,
)
from core.gateways import DEFAULT_PAGE_SIZE, MutationGateway, QueryGateway, Row, drain_pages
from core.models import CreateOperation, MutationResult, Operation, ResourceKind

logger = logging.getLogger(__name__)

SOAP_ERRORS = (WebFault, TransportError)

_PREDICATE = re.compile(r"^\s*(\w+)\s*=\s*'((?:[^'\\]|\\.)*)'\s*$", re.DOTALL)
_UNESCAPE = re.compile(r"\\(.)", re.DOTALL)


def parse_predicates(query: str) -> List[Dict[str, str]]:
    """
    Parse ``Field = 'value' AND ...`` into SOAP predicate dictionaries.

    Args:
        query: Predicate expression; empty means no filter

    Returns:
        Predicates using the Equals operator

    Raises:
        ValidationError: If a clause is not a quoted equality
    """
    if not query.strip():
        return []

    predicates = []
    for clause in re.split(r"\s+AND\s+", query.strip(), flags=re.IGNORECASE):
        match = _PREDICATE.match(clause)
        if match is None:
            raise ValidationError(f"Unsupported client link predicate: {clause!r}")
        field, value = match.groups()
        value = _UNESCAPE.sub(lambda m: "\0" if m.group(1) == "0" else m.group(1), value)
        predicates.append({"Field": field, "Operator": "Equals", "Value": value})
    return predicates


def _client_links(response: Any) -> List[Any]:
    """Extract the ClientLink list from a SearchClientLinks response."""
    if response is None:
        return []
    container = getattr(response, "ClientLinks", response)
    if container is None:
        return []
    return list(getattr(container, "ClientLink", None) or [])


def client_link_row(link: Any) -> Row:
    """Convert a SOAP ClientLink into a nested dictionary row."""
    return {
        "client_link": {
            "type": getattr(link, "Type", None),
            "status": getattr(link, "Status", None),
            "client_entity_id": getattr(link, "ClientEntityId", None),
            "client_entity_number": getattr(link, "ClientEntityNumber", None),
            "client_entity_name": getattr(link, "ClientEntityName", None),
            "managing_customer_id": getattr(link, "ManagingCustomerId", None),
        }
    }


class MicrosoftAdsQueryGateway(QueryGateway):
    """Reads client links with index/size pagination."""

    def __init__(self, service: Any, page_size: int = DEFAULT_PAGE_SIZE):
        """
        Initialize the gateway.

        Args:
            service: Customer Management ServiceClient
            page_size: Links requested per page
        """
        self.service = service
        self.page_size = page_size

    def run(self, account_id: str, query: str) -> List[Row]:
        # The authorization data already carries the customer header
        predicates = parse_predicates(query)
        logger.debug(f"SearchClientLinks for customer {account_id}: {predicates}")

        def fetch_page(page_index: int, page_size: int) -> List[Row]:
            try:
                response = self.service.SearchClientLinks(
                    Predicates={"Predicate": predicates} if predicates else None,
                    Ordering=None,
                    PageInfo={"Index": page_index, "Size": page_size},
                )
            except SOAP_ERRORS as e:
                raise map_microsoft_ads_exception(e, "retrieving linked accounts")
            return [client_link_row(link) for link in _client_links(response)]

        return drain_pages(fetch_page, self.page_size)


class MicrosoftAdsMutationGateway(MutationGateway):
    """Creates client links through AddClientLinks."""

    def __init__(self, service: Any):
        """
        Initialize the gateway.

        Args:
            service: Customer Management ServiceClient
        """
        self.service = service

    def apply(
        self,
        account_id: str,
        kind: ResourceKind,
        operations: Sequence[Operation],
    ) -> MutationResult:
        if kind is not ResourceKind.CLIENT_LINK:
            raise ValidationError(f"Resource kind {kind.value} is not available on Microsoft Advertising")

        if not operations:
            return MutationResult()

        if not all(isinstance(operation, CreateOperation) for operation in operations):
            raise ValidationError("Client links can only be created")

        links = [dict(operation.payload) for operation in operations]
        logger.debug(f"AddClientLinks for customer {account_id}: {len(links)} links")

        try:
            response = self.service.AddClientLinks(ClientLinks={"ClientLink": links})
        except SOAP_ERRORS as e:
            raise map_microsoft_ads_exception(e, "sending invitation")

        if response is None:
            raise ApiOperationError("Failed to send invitation: empty response")

        errors = microsoft_operation_errors(response)
        if errors:
            raise ApiOperationError("Failed to send invitation", errors=errors)

        return MutationResult(
            resource_names=[str(link.get("ClientEntityNumber")) for link in links]
        )
