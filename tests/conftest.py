"""Shared fixtures: in-memory gateways standing in for the ad platforms."""

import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest

from core.gateways import MutationGateway, QueryGateway, Row
from core.models import (
    CreateOperation,
    MutationResult,
    Operation,
    RemoveOperation,
    ResourceKind,
)

_IP_FILTER = re.compile(r"ip_block\.ip_address = '((?:[^'\\]|\\.)*)'")
_CAMPAIGN_FILTER = re.compile(r"\.campaign = '((?:[^'\\]|\\.)*)'")
_UNESCAPE = re.compile(r"\\(.)")

CRITERION_RESOURCES = {
    ResourceKind.CUSTOMER_NEGATIVE_CRITERION: ("customer_negative_criterion", "customerNegativeCriteria"),
    ResourceKind.CAMPAIGN_CRITERION: ("campaign_criterion", "campaignCriteria"),
}


def _unescape(value: str) -> str:
    return _UNESCAPE.sub(lambda m: m.group(1), value)


class FakeQueryGateway(QueryGateway):
    """Returns canned rows and records every query."""

    def __init__(self, rows: Optional[List[Row]] = None):
        self.rows = rows or []
        self.calls: List[Tuple[str, str]] = []

    def run(self, account_id: str, query: str) -> List[Row]:
        self.calls.append((account_id, query))
        return list(self.rows)


class FakeMutationGateway(MutationGateway):
    """Records batches and optionally raises a preset error."""

    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.calls: List[Tuple[str, ResourceKind, List[Operation]]] = []

    def apply(self, account_id: str, kind: ResourceKind, operations: Sequence[Operation]) -> MutationResult:
        self.calls.append((account_id, kind, list(operations)))
        if self.error is not None:
            raise self.error
        return MutationResult(resource_names=[f"{kind.value}/{i}" for i, _ in enumerate(operations)])


class FakeAdsPlatform(QueryGateway, MutationGateway):
    """
    In-memory Google Ads stand-in holding IP_BLOCK criteria.

    Stores addresses in /32 form like the real platform and answers the GAQL
    lookups built by ExclusionListService.
    """

    def __init__(self):
        self.criteria: Dict[str, Dict[str, Any]] = {}
        self.queries: List[Tuple[str, str]] = []
        self.mutations: List[Tuple[str, ResourceKind, List[Operation]]] = []
        self._next_id = 1

    def count(self, kind: Optional[ResourceKind] = None) -> int:
        return sum(1 for c in self.criteria.values() if kind is None or c["kind"] is kind)

    def run(self, account_id: str, query: str) -> List[Row]:
        self.queries.append((account_id, query))
        kind = (
            ResourceKind.CAMPAIGN_CRITERION
            if "FROM campaign_criterion" in query
            else ResourceKind.CUSTOMER_NEGATIVE_CRITERION
        )
        ip_match = _IP_FILTER.search(query)
        campaign_match = _CAMPAIGN_FILTER.search(query)
        ip = _unescape(ip_match.group(1)) if ip_match else None
        campaign = _unescape(campaign_match.group(1)) if campaign_match else None
        field, _ = CRITERION_RESOURCES[kind]

        rows = []
        for resource_name, criterion in self.criteria.items():
            if criterion["kind"] is not kind or criterion["account_id"] != account_id:
                continue
            if ip is not None and criterion["ip_address"] != ip:
                continue
            if campaign is not None and criterion["campaign"] != campaign:
                continue
            rows.append({
                field: {
                    "resource_name": resource_name,
                    "ip_block": {"ip_address": criterion["ip_address"]},
                }
            })
        return rows

    def apply(self, account_id: str, kind: ResourceKind, operations: Sequence[Operation]) -> MutationResult:
        self.mutations.append((account_id, kind, list(operations)))
        _, collection = CRITERION_RESOURCES[kind]

        names = []
        for operation in operations:
            if isinstance(operation, CreateOperation):
                ip = operation.payload["ip_block"]["ip_address"]
                resource_name = f"customers/{account_id}/{collection}/{self._next_id}"
                self._next_id += 1
                self.criteria[resource_name] = {
                    "kind": kind,
                    "account_id": account_id,
                    "campaign": operation.payload.get("campaign"),
                    "ip_address": ip if "/" in ip else ip + "/32",
                }
                names.append(resource_name)
            elif isinstance(operation, RemoveOperation):
                del self.criteria[operation.resource_name]
                names.append(operation.resource_name)
        return MutationResult(resource_names=names)


@pytest.fixture
def platform():
    """In-memory platform backing both gateways."""
    return FakeAdsPlatform()


def link_row(status: str) -> Row:
    """Google Ads customer_client_link row."""
    return {"customer_client_link": {"status": status}}


def client_link_row(status: str, entity_id: str, number: str) -> Row:
    """Microsoft Advertising ClientLink row."""
    return {
        "client_link": {
            "status": status,
            "client_entity_id": entity_id,
            "client_entity_number": number,
        }
    }
