"""Tests for access link service."""

import pytest

from core.access_links import AccessLinkService
from core.errors import ApiOperationError, TransportFault, UnsupportedOperationError
from core.models import AccessRole, CreateOperation, LinkedAccount, ResourceKind
from core.queries import ClientLinkDialect, GaqlLinkDialect
from tests.conftest import FakeMutationGateway, FakeQueryGateway, client_link_row, link_row


MANAGER = "1112223333"
CLIENT = "1234567890"


def google_service(rows=None, error=None):
    query_gateway = FakeQueryGateway(rows)
    mutation_gateway = FakeMutationGateway(error)
    service = AccessLinkService(query_gateway, mutation_gateway, GaqlLinkDialect())
    return service, query_gateway, mutation_gateway


def microsoft_service(rows=None, error=None):
    query_gateway = FakeQueryGateway(rows)
    mutation_gateway = FakeMutationGateway(error)
    service = AccessLinkService(query_gateway, mutation_gateway, ClientLinkDialect())
    return service, query_gateway, mutation_gateway


class TestCanManageAccount:
    """Tests for management link checks."""

    def test_active_link_grants_management(self):
        """Test that an ACTIVE row returns True."""
        service, query_gateway, _ = google_service([link_row("ACTIVE")])

        assert service.can_manage_account(MANAGER, CLIENT) is True

        account_id, query = query_gateway.calls[0]
        assert account_id == MANAGER
        assert f"customer_client_link.manager_link_id = '{MANAGER}'" in query
        assert f"customer_client_link.client_customer = 'customers/{CLIENT}'" in query

    def test_zero_rows_is_false(self):
        """Test that a missing link is not an error."""
        service, _, _ = google_service([])

        assert service.can_manage_account(MANAGER, CLIENT) is False

    @pytest.mark.parametrize("status", ["PENDING", "REFUSED", "INACTIVE", "CANCELED", "UNKNOWN"])
    def test_non_active_rows_are_false(self, status):
        """Test that only ACTIVE grants management."""
        service, _, _ = google_service([link_row(status), link_row(status)])

        assert service.can_manage_account(MANAGER, CLIENT) is False

    def test_any_active_row_wins(self):
        """Test that an ACTIVE row after other statuses still matches."""
        service, _, _ = google_service([link_row("REFUSED"), link_row("ACTIVE")])

        assert service.can_manage_account(MANAGER, CLIENT) is True

    def test_microsoft_predicates_and_status(self):
        """Test the Microsoft link check."""
        service, query_gateway, _ = microsoft_service([client_link_row("Active", CLIENT, "X123")])

        assert service.can_manage_account(MANAGER, CLIENT) is True
        assert query_gateway.calls[0][1] == (
            f"ManagingCustomerId = '{MANAGER}' AND ClientAccountId = '{CLIENT}'"
        )

    def test_microsoft_pending_link_is_false(self):
        """Test that a pending Microsoft link does not grant management."""
        service, _, _ = microsoft_service([client_link_row("LinkPending", CLIENT, "X123")])

        assert service.can_manage_account(MANAGER, CLIENT) is False

    def test_microsoft_account_number_matches_linked_number(self):
        """Test that the account number used for the invitation finds the link."""
        service, query_gateway, _ = microsoft_service([client_link_row("Active", "555", "X7654321")])

        assert service.can_manage_account(MANAGER, "X7654321") is True
        assert query_gateway.calls == [(MANAGER, f"ManagingCustomerId = '{MANAGER}'")]

    def test_microsoft_account_number_requires_active_link(self):
        service, _, _ = microsoft_service([
            client_link_row("LinkPending", "555", "X7654321"),
            client_link_row("Active", "556", "X0000001"),
        ])

        assert service.can_manage_account(MANAGER, "X7654321") is False

    def test_microsoft_account_id_still_uses_predicates(self):
        """Test that numeric ids keep the direct link lookup."""
        service, query_gateway, _ = microsoft_service([client_link_row("Active", "555", "X7654321")])

        assert service.can_manage_account(MANAGER, "555") is True
        assert "ClientAccountId = '555'" in query_gateway.calls[0][1]

    def test_google_never_lists_links(self):
        """Test that non-numeric input on Google still runs the GAQL check."""
        service, query_gateway, _ = google_service([])

        assert service.can_manage_account(MANAGER, "abc") is False
        assert "customer_client_link.client_customer = 'customers/abc'" in query_gateway.calls[0][1]

    def test_transport_fault_propagates(self):
        """Test that query failures are not turned into False."""
        class FailingGateway(FakeQueryGateway):
            def run(self, account_id, query):
                raise TransportFault("connection reset")

        service = AccessLinkService(FailingGateway(), FakeMutationGateway(), GaqlLinkDialect())

        with pytest.raises(TransportFault):
            service.can_manage_account(MANAGER, CLIENT)


class TestSendInvitation:
    """Tests for invitations."""

    def test_google_invitation_payload(self):
        """Test that the invitation is one CREATE with target and role."""
        service, _, mutation_gateway = google_service()

        service.send_invitation(CLIENT, "user@example.com", AccessRole.ADMIN)

        assert mutation_gateway.calls == [(
            CLIENT,
            ResourceKind.CUSTOMER_USER_ACCESS_INVITATION,
            [CreateOperation({"email_address": "user@example.com", "access_role": "ADMIN"})],
        )]

    def test_default_role_is_admin(self):
        """Test the default access role."""
        service, _, mutation_gateway = google_service()

        service.send_invitation(CLIENT, "user@example.com")

        _, _, operations = mutation_gateway.calls[0]
        assert operations[0].payload["access_role"] == "ADMIN"

    def test_role_accepts_plain_string(self):
        """Test that role names are coerced."""
        service, _, mutation_gateway = google_service()

        service.send_invitation(CLIENT, "user@example.com", "READ_ONLY")

        _, _, operations = mutation_gateway.calls[0]
        assert operations[0].payload["access_role"] == "READ_ONLY"

    def test_operation_errors_surface(self):
        """Test that a non-empty error list reaches the caller."""
        error = ApiOperationError("Failed to send invitation", errors=[{"message": "duplicate"}])
        service, _, _ = google_service(error=error)

        with pytest.raises(ApiOperationError):
            service.send_invitation(CLIENT, "user@example.com")

    def test_microsoft_client_link_payload(self):
        """Test the Microsoft AccountLink payload."""
        service, _, mutation_gateway = microsoft_service()

        service.send_invitation(MANAGER, "X7654321")

        account_id, kind, operations = mutation_gateway.calls[0]
        assert account_id == MANAGER
        assert kind is ResourceKind.CLIENT_LINK
        assert operations[0].payload == {
            "Type": "AccountLink",
            "ClientEntityNumber": "X7654321",
            "ManagingCustomerId": MANAGER,
            "IsBillToClient": True,
            "SuppressNotification": False,
        }


class TestGetLinkedAccounts:
    """Tests for linked account listing."""

    def test_filters_active_links(self):
        """Test that only Active links are returned, in order."""
        service, query_gateway, _ = microsoft_service([
            client_link_row("Active", "1", "A1"),
            client_link_row("LinkPending", "2", "A2"),
            client_link_row("Active", "3", "A3"),
            client_link_row("Inactive", "4", "A4"),
        ])

        accounts = service.get_linked_accounts(MANAGER)

        assert accounts == [LinkedAccount("1", "A1"), LinkedAccount("3", "A3")]
        assert query_gateway.calls == [(MANAGER, f"ManagingCustomerId = '{MANAGER}'")]

    def test_empty_result(self):
        """Test that no links give an empty list."""
        service, _, _ = microsoft_service([])

        assert service.get_linked_accounts(MANAGER) == []

    def test_unsupported_on_google(self):
        """Test that GAQL platforms have no link listing."""
        service, query_gateway, _ = google_service()

        with pytest.raises(UnsupportedOperationError):
            service.get_linked_accounts(MANAGER)

        assert query_gateway.calls == []
