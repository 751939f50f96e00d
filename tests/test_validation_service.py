"""
Validation workflow tests - registration, status, identity submission and approval.
"""

import pytest

from eth_utils import to_checksum_address

from tcoin_validation.core.config import POLICY_REVIEW
from tcoin_validation.core.dao import UserDAO
from tcoin_validation.core.errors import InvalidInput, NotFound
from tcoin_validation.core.validation import ValidationService

ALICE_ADDRESS = "0x90f79bf6eb2c4f870365e785982e1f101e93b906"

PASSPORT = ("Passport", "PT", "2020-01-01", "Lisbon", "2030-01-01")


@pytest.fixture
def service(db):
    """Validation service with the default (auto) identity policy."""
    return ValidationService(db)


@pytest.fixture
def review_service(db):
    """Validation service that stages identity documents for review."""
    return ValidationService(db, identity_policy=POLICY_REVIEW)


class TestRegister:
    """Test user registration."""

    def test_register_then_status_is_invalid(self, service):
        """A freshly registered user is not valid."""
        user_id = service.register("Alice", "1990-01-01")
        assert service.get_status(user_id) is False

    def test_first_user_gets_id_one(self, service):
        assert service.register("Alice", "1990-01-01") == 1
        assert service.register("Bob", "1985-06-30") == 2

    @pytest.mark.parametrize("legal_name,date_of_birth", [
        (None, "1990-01-01"),
        ("Alice", None),
        ("", "1990-01-01"),
        ("   ", "1990-01-01"),
        ("Alice", ""),
    ])
    def test_missing_fields(self, service, db, legal_name, date_of_birth):
        """Missing fields are rejected before anything is written."""
        with pytest.raises(InvalidInput):
            service.register(legal_name, date_of_birth)
        assert UserDAO(db).count_users() == 0

    def test_malformed_date(self, service):
        with pytest.raises(InvalidInput):
            service.register("Alice", "01/01/1990")

    def test_register_with_address_stores_checksum(self, service, db):
        user_id = service.register("Alice", "1990-01-01", address=ALICE_ADDRESS)
        user = UserDAO(db).get_user(user_id)
        assert user.address == to_checksum_address(ALICE_ADDRESS)

    def test_register_with_invalid_address(self, service):
        with pytest.raises(InvalidInput):
            service.register("Alice", "1990-01-01", address="0xnotanaddress")

    def test_address_can_only_be_linked_once(self, service):
        service.register("Alice", "1990-01-01", address=ALICE_ADDRESS)
        with pytest.raises(InvalidInput):
            service.register("Mallory", "1990-01-01", address=ALICE_ADDRESS)

    def test_stored_fields(self, service, db):
        user_id = service.register(" Alice ", "1990-01-01")
        user = UserDAO(db).get_user(user_id)
        assert user.legal_name == "Alice"
        assert user.date_of_birth == "1990-01-01"
        assert user.username
        assert user.has_identity is False


class TestStatus:
    """Test status lookups."""

    def test_unknown_user(self, service):
        with pytest.raises(NotFound):
            service.get_status(42)


class TestApprove:
    """Test administrative approval."""

    def test_approve_scenario(self, service):
        """Alice registers, is invalid, gets approved and becomes valid."""
        user_id = service.register("Alice", "1990-01-01")
        assert user_id == 1
        assert service.get_status(1) is False

        service.approve(1)

        assert service.get_status(1) is True

    def test_approve_is_idempotent(self, service):
        user_id = service.register("Alice", "1990-01-01")
        service.approve(user_id)
        service.approve(user_id)
        assert service.get_status(user_id) is True

    def test_approve_unknown_user(self, service):
        with pytest.raises(NotFound):
            service.approve(7)


class TestSubmitIdentity:
    """Test identity document submission."""

    def test_submit_identity_scenario(self, service, db):
        """Submitting documents on a fresh user validates them under the auto policy."""
        user_id = service.register("Alice", "1990-01-01")

        assert service.submit_identity(user_id, *PASSPORT) is True
        assert service.get_status(user_id) is True

        user = UserDAO(db).get_user(user_id)
        assert user.identity_document == "Passport"
        assert user.identity_document_country == "PT"
        assert user.issue_date == "2020-01-01"
        assert user.issue_place == "Lisbon"
        assert user.expirity_date == "2030-01-01"

    def test_review_policy_only_stages(self, review_service, db):
        """Under the review policy documents are stored but the user stays invalid."""
        user_id = review_service.register("Alice", "1990-01-01")

        assert review_service.submit_identity(user_id, *PASSPORT) is False
        assert review_service.get_status(user_id) is False
        assert UserDAO(db).get_user(user_id).has_identity is True

        review_service.approve(user_id)
        assert review_service.get_status(user_id) is True

    def test_review_policy_keeps_existing_validity(self, review_service):
        user_id = review_service.register("Alice", "1990-01-01")
        review_service.approve(user_id)
        review_service.submit_identity(user_id, *PASSPORT)
        assert review_service.get_status(user_id) is True

    def test_unknown_user(self, service):
        with pytest.raises(NotFound):
            service.submit_identity(99, *PASSPORT)

    @pytest.mark.parametrize("missing_index", range(5))
    def test_missing_field(self, service, missing_index):
        """Any missing field is rejected and nothing changes."""
        user_id = service.register("Alice", "1990-01-01")
        fields = list(PASSPORT)
        fields[missing_index] = None

        with pytest.raises(InvalidInput):
            service.submit_identity(user_id, *fields)
        assert service.get_status(user_id) is False

    def test_missing_field_checked_before_lookup(self, service):
        """Validation errors win over NotFound."""
        with pytest.raises(InvalidInput):
            service.submit_identity(99, "Passport", None, "2020-01-01", "Lisbon", "2030-01-01")

    def test_malformed_expiry_date(self, service):
        user_id = service.register("Alice", "1990-01-01")
        with pytest.raises(InvalidInput):
            service.submit_identity(user_id, "Passport", "PT", "2020-01-01", "Lisbon", "2030-13-01")

    def test_resubmission_is_idempotent(self, service):
        user_id = service.register("Alice", "1990-01-01")
        service.submit_identity(user_id, *PASSPORT)
        assert service.submit_identity(user_id, *PASSPORT) is True


class TestLinkAddress:
    """Test linking on-chain addresses to users."""

    def test_link_address(self, service, db):
        user_id = service.register("Alice", "1990-01-01")
        address = service.link_address(user_id, ALICE_ADDRESS)
        assert address == to_checksum_address(ALICE_ADDRESS)
        assert UserDAO(db).get_user_by_address(address).id == user_id

    def test_link_unknown_user(self, service):
        with pytest.raises(NotFound):
            service.link_address(5, ALICE_ADDRESS)

    def test_link_missing_address(self, service):
        user_id = service.register("Alice", "1990-01-01")
        with pytest.raises(InvalidInput):
            service.link_address(user_id, None)

    def test_address_already_linked_elsewhere(self, service):
        first = service.register("Alice", "1990-01-01")
        second = service.register("Bob", "1991-01-01")
        service.link_address(first, ALICE_ADDRESS)
        with pytest.raises(InvalidInput):
            service.link_address(second, ALICE_ADDRESS)


class TestLegacyCreate:
    """Test the simplified username-only registration."""

    def test_create_with_username(self, service, db):
        user_id = service.create_legacy("bob")
        assert UserDAO(db).get_user(user_id).username == "bob"
        assert service.get_status(user_id) is False

    @pytest.mark.parametrize("username", [None, "", "   "])
    def test_create_without_username(self, service, db, username):
        with pytest.raises(InvalidInput):
            service.create_legacy(username)
        assert UserDAO(db).count_users() == 0

    def test_duplicate_username(self, service):
        service.create_legacy("bob")
        with pytest.raises(InvalidInput):
            service.create_legacy("bob")
