"""
Abstract query and mutation gateways.

Services talk to an advertising platform only through these two capabilities;
each platform provides one concrete implementation of each.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, List, Sequence

from core.models import MutationResult, Operation, ResourceKind

logger = logging.getLogger(__name__)

Row = Dict[str, Any]

# Page size used by index/size paginated searches
DEFAULT_PAGE_SIZE = 100


class QueryGateway(ABC):
    """Executes a platform query and returns every row."""

    @abstractmethod
    def run(self, account_id: str, query: str) -> List[Row]:
        """
        Execute a query, draining all pages or stream chunks.

        Args:
            account_id: Account the query runs against
            query: Platform query text

        Returns:
            Rows in delivery order (possibly empty)

        Raises:
            TransportFault: On network/protocol failure
        """


class MutationGateway(ABC):
    """Submits batches of create/remove operations."""

    @abstractmethod
    def apply(
        self,
        account_id: str,
        kind: ResourceKind,
        operations: Sequence[Operation],
    ) -> MutationResult:
        """
        Apply operations against one resource collection.

        Args:
            account_id: Account owning the resources
            kind: Resource collection
            operations: Ordered CREATE/REMOVE operations

        Returns:
            Resource names affected by the batch

        Raises:
            ApiOperationError: If the platform reports operation errors
            TransportFault: On network/protocol failure
        """


def drain_pages(
    fetch_page: Callable[[int, int], Iterable[Row]],
    page_size: int = DEFAULT_PAGE_SIZE,
) -> List[Row]:
    """
    Collect rows from an index/size paginated search.

    Keeps requesting the next page while the last one came back exactly full,
    so a result that is a multiple of page_size ends with one empty request.

    Args:
        fetch_page: Callable taking (page_index, page_size) and returning rows
        page_size: Rows per page

    Returns:
        All rows across pages
    """
    rows: List[Row] = []
    page_index = 0

    while True:
        page = list(fetch_page(page_index, page_size))
        rows.extend(page)
        logger.debug(f"Fetched page {page_index} with {len(page)} rows")

        if len(page) != page_size:
            return rows
        page_index += 1
