"""
Google Ads gateways with GAQL stream search and mutate wrappers.

Rows are returned as nested dictionaries keyed by proto field name, so the
services never touch Google Ads message types.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

import grpc
from google.ads.googleads.errors import GoogleAdsException
from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import RefreshError
from google.protobuf.json_format import MessageToDict, ParseDict

from core.errors import ApiOperationError, ValidationError, map_google_ads_exception
from core.gateways import MutationGateway, QueryGateway, Row
from core.models import (
    CreateOperation,
    MutationResult,
    Operation,
    RemoveOperation,
    ResourceKind,
)

logger = logging.getLogger(__name__)

GOOGLE_ADS_ERRORS = (GoogleAdsException, RefreshError, grpc.RpcError, GoogleAPIError)


@dataclass(frozen=True)
class MutateSpec:
    """How one resource kind maps onto a Google Ads mutate service."""

    service: str
    method: str
    operation_type: str
    resource_type: str
    single_operation: bool = False


MUTATE_SPECS: Dict[ResourceKind, MutateSpec] = {
    ResourceKind.CUSTOMER_NEGATIVE_CRITERION: MutateSpec(
        service="CustomerNegativeCriterionService",
        method="mutate_customer_negative_criteria",
        operation_type="CustomerNegativeCriterionOperation",
        resource_type="CustomerNegativeCriterion",
    ),
    ResourceKind.CAMPAIGN_CRITERION: MutateSpec(
        service="CampaignCriterionService",
        method="mutate_campaign_criteria",
        operation_type="CampaignCriterionOperation",
        resource_type="CampaignCriterion",
    ),
    ResourceKind.CUSTOMER_USER_ACCESS_INVITATION: MutateSpec(
        service="CustomerUserAccessInvitationService",
        method="mutate_customer_user_access_invitation",
        operation_type="CustomerUserAccessInvitationOperation",
        resource_type="CustomerUserAccessInvitation",
        single_operation=True,
    ),
}


def row_to_dict(row: Any) -> Row:
    """Convert a GoogleAdsRow into a nested dictionary."""
    return MessageToDict(row._pb, preserving_proto_field_name=True)


def normalize_customer_id(customer_id: str) -> str:
    return str(customer_id).replace("-", "")


class GoogleAdsQueryGateway(QueryGateway):
    """Runs GAQL through GoogleAdsService.search_stream."""

    def __init__(self, client: Any):
        """
        Initialize the gateway.

        Args:
            client: Authenticated GoogleAdsClient
        """
        self.client = client

    def run(self, account_id: str, query: str) -> List[Row]:
        customer_id = normalize_customer_id(account_id)
        logger.debug(f"GAQL search for customer {customer_id}: {query}")

        try:
            ga_service = self.client.get_service("GoogleAdsService")
            stream = ga_service.search_stream(customer_id=customer_id, query=query)

            rows = []
            for batch in stream:
                for row in batch.results:
                    rows.append(row_to_dict(row))
        except GOOGLE_ADS_ERRORS as e:
            raise map_google_ads_exception(e)

        logger.debug(f"GAQL search for customer {customer_id} returned {len(rows)} rows")
        return rows


class GoogleAdsMutationGateway(MutationGateway):
    """Submits create/remove batches to the Google Ads mutate services."""

    def __init__(self, client: Any):
        """
        Initialize the gateway.

        Args:
            client: Authenticated GoogleAdsClient
        """
        self.client = client

    def _build_operation(self, spec: MutateSpec, operation: Operation) -> Any:
        proto_operation = self.client.get_type(spec.operation_type)

        if isinstance(operation, CreateOperation):
            resource = self.client.get_type(spec.resource_type)
            ParseDict(operation.payload, resource._pb)
            self.client.copy_from(proto_operation.create, resource)
        elif isinstance(operation, RemoveOperation):
            proto_operation.remove = operation.resource_name
        else:
            raise ValidationError(f"Unsupported operation: {operation!r}")

        return proto_operation

    def apply(
        self,
        account_id: str,
        kind: ResourceKind,
        operations: Sequence[Operation],
    ) -> MutationResult:
        spec = MUTATE_SPECS.get(kind)
        if spec is None:
            raise ValidationError(f"Resource kind {kind.value} is not available on Google Ads")

        if not operations:
            return MutationResult()

        if spec.single_operation and len(operations) != 1:
            raise ValidationError(
                f"{spec.service} accepts exactly one operation per request, got {len(operations)}"
            )

        customer_id = normalize_customer_id(account_id)
        proto_operations = [self._build_operation(spec, operation) for operation in operations]
        logger.debug(
            f"Mutate {spec.service} for customer {customer_id}: {len(proto_operations)} operations"
        )

        try:
            service = self.client.get_service(spec.service)
            mutate = getattr(service, spec.method)
            if spec.single_operation:
                response = mutate(customer_id=customer_id, operation=proto_operations[0])
            else:
                response = mutate(customer_id=customer_id, operations=proto_operations)
        except GOOGLE_ADS_ERRORS as e:
            raise map_google_ads_exception(e)

        return self._to_result(response)

    def _to_result(self, response: Any) -> MutationResult:
        partial_failure = getattr(response, "partial_failure_error", None)
        if partial_failure is not None and getattr(partial_failure, "code", 0):
            raise ApiOperationError(
                partial_failure.message,
                errors=[{"code": partial_failure.code, "message": partial_failure.message}],
            )

        results = getattr(response, "results", None)
        if results is None:
            results = [response.result]
        return MutationResult(resource_names=[result.resource_name for result in results])
