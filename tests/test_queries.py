"""Tests for query, path and status helpers."""

import pytest

from core.errors import UnsupportedOperationError
from core.gateways import drain_pages
from core.models import ManagementLinkStatus, Scope
from core.queries import (
    ClientLinkDialect,
    GaqlLinkDialect,
    campaign_path,
    customer_path,
    escape_query_string,
    host_route,
    ip_block_query,
    row_value,
)


class TestQueryHelpers:
    """Tests for escaping and resource naming."""

    def test_escape_quotes_and_backslashes(self):
        assert escape_query_string("a'b\"c\\d") == "a\\'b\\\"c\\\\d"

    def test_escape_plain_value_unchanged(self):
        assert escape_query_string("192.168.1.1") == "192.168.1.1"

    def test_resource_paths(self):
        assert customer_path("123") == "customers/123"
        assert campaign_path("123", "456") == "customers/123/campaigns/456"

    def test_host_route_appends_suffix(self):
        assert host_route("10.0.0.1") == "10.0.0.1/32"

    def test_host_route_keeps_cidr(self):
        assert host_route("10.0.0.0/24") == "10.0.0.0/24"

    def test_host_route_trims_whitespace(self):
        assert host_route(" 10.0.0.1\n") == "10.0.0.1/32"

    def test_row_value(self):
        row = {"campaign_criterion": {"ip_block": {"ip_address": "1.2.3.4/32"}}}

        assert row_value(row, "campaign_criterion.ip_block.ip_address") == "1.2.3.4/32"
        assert row_value(row, "campaign_criterion.resource_name") is None
        assert row_value(row, "campaign_criterion.ip_block.ip_address.x", "n/a") == "n/a"

    def test_global_query(self):
        query = ip_block_query(Scope.GLOBAL, "123", "1.2.3.4/32")

        assert query.startswith("SELECT customer_negative_criterion.resource_name")
        assert "FROM customer_negative_criterion" in query
        assert "customer_negative_criterion.type = 'IP_BLOCK'" in query
        assert "customer_negative_criterion.ip_block.ip_address = '1.2.3.4/32'" in query
        assert ".campaign =" not in query

    def test_campaign_query(self):
        query = ip_block_query(Scope.CAMPAIGN, "123", "1.2.3.4/32", "456")

        assert "FROM campaign_criterion" in query
        assert "campaign_criterion.campaign = 'customers/123/campaigns/456'" in query


class TestLinkDialects:
    """Tests for per-platform link dialect capabilities."""

    def test_gaql_dialect_has_no_listing(self):
        dialect = GaqlLinkDialect()

        with pytest.raises(UnsupportedOperationError):
            dialect.linked_accounts_query("42")
        with pytest.raises(UnsupportedOperationError):
            dialect.linked_account({"customer_client_link": {"status": "ACTIVE"}})

    def test_gaql_dialect_treats_everything_as_id(self):
        assert GaqlLinkDialect().is_account_number("X7654321") is False

    @pytest.mark.parametrize("account_ref, expected", [
        ("555", False),
        (" 555 ", False),
        ("X7654321", True),
        ("F123ABC", True),
    ])
    def test_client_link_account_numbers(self, account_ref, expected):
        assert ClientLinkDialect().is_account_number(account_ref) is expected


class TestLinkStatus:
    """Tests for platform status normalisation."""

    @pytest.mark.parametrize("raw, expected", [
        ("ACTIVE", ManagementLinkStatus.ACTIVE),
        ("Active", ManagementLinkStatus.ACTIVE),
        ("PENDING", ManagementLinkStatus.PENDING),
        ("LinkPending", ManagementLinkStatus.PENDING),
        ("LinkDeclined", ManagementLinkStatus.REFUSED),
        ("Inactive", ManagementLinkStatus.INACTIVE),
        ("LinkCanceled", ManagementLinkStatus.CANCELED),
        ("UnlinkRequested", ManagementLinkStatus.UNKNOWN),
        (None, ManagementLinkStatus.UNKNOWN),
        ("", ManagementLinkStatus.UNKNOWN),
    ])
    def test_from_platform(self, raw, expected):
        assert ManagementLinkStatus.from_platform(raw) is expected


class TestDrainPages:
    """Tests for the index/size pagination loop."""

    @staticmethod
    def pages(*sizes):
        requests = []

        def fetch_page(index, size):
            requests.append((index, size))
            count = sizes[index] if index < len(sizes) else 0
            return [{"n": index * size + i} for i in range(count)]

        return fetch_page, requests

    def test_short_last_page_stops(self):
        """Test that pages [100, 100, 47] take three requests."""
        fetch_page, requests = self.pages(100, 100, 47)

        rows = drain_pages(fetch_page, 100)

        assert len(rows) == 247
        assert requests == [(0, 100), (1, 100), (2, 100)]

    def test_exact_multiple_needs_extra_request(self):
        """Test that pages [100, 100] end with an empty third request."""
        fetch_page, requests = self.pages(100, 100)

        rows = drain_pages(fetch_page, 100)

        assert len(rows) == 200
        assert len(requests) == 3

    def test_empty_first_page(self):
        """Test that an empty first page stops immediately."""
        fetch_page, requests = self.pages()

        assert drain_pages(fetch_page, 100) == []
        assert requests == [(0, 100)]

    def test_rows_kept_in_order(self):
        fetch_page, _ = self.pages(2, 2, 1)

        rows = drain_pages(fetch_page, 2)

        assert [row["n"] for row in rows] == [0, 1, 2, 3, 4]
