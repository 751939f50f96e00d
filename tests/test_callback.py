"""
Callback handler tests - verification requests and at-most-once fulfillment.
"""

import threading

import pytest

from eth_utils import to_checksum_address

from tcoin_validation.core.config import OracleConfig
from tcoin_validation.core.dao import UserDAO
from tcoin_validation.core.errors import DuplicateOrUnknownRequest, MalformedPayload, NotFound
from tcoin_validation.core.validation import ValidationService
from tcoin_validation.oracle.callback import CallbackHandler, VerificationRequester
from tcoin_validation.oracle.correlation import CorrelationTable
from tcoin_validation.oracle.encoding import encode_status_payload

USER = "0x90f79bf6eb2c4f870365e785982e1f101e93b906"
STRANGER = "0x3c44cdddb6a900fa2b585dd299e03d12fa4293bc"

VALID = encode_status_payload(True)
INVALID = encode_status_payload(False)


@pytest.fixture
def service(db):
    return ValidationService(db)


@pytest.fixture
def requester(db):
    return VerificationRequester(db, OracleConfig(chain_id=31337))


@pytest.fixture
def handler(db):
    return CallbackHandler(db)


@pytest.fixture
def alice(service):
    """Registered user with a linked address."""
    return service.register("Alice", "1990-01-01", address=USER)


class TestRequestVerification:
    """Test recording verification requests."""

    def test_request_is_pending(self, requester, db, alice):
        request = requester.request_verification(USER)

        assert request.requester_address == to_checksum_address(USER)
        assert request.fulfilled is False
        assert request.fulfillment_hash == requester.fulfillment_hash
        assert CorrelationTable(db).get(request.request_id) is not None

    def test_each_request_gets_a_new_id(self, requester, alice):
        first = requester.request_verification(USER)
        second = requester.request_verification(USER)
        assert first.request_id != second.request_id
        assert second.nonce == first.nonce + 1

    def test_request_does_not_touch_user(self, requester, service, alice):
        requester.request_verification(USER)
        assert service.get_status(alice) is False


class TestOnFulfilled:
    """Test applying fulfillments."""

    def test_accepted_fulfillment_sets_valid(self, requester, handler, service, db, alice):
        request = requester.request_verification(USER)

        result = handler.on_fulfilled(request.request_id, VALID)

        assert result.valid is True
        assert result.user_id == alice
        assert service.get_status(alice) is True
        assert CorrelationTable(db).is_fulfilled(request.request_id) is True

    def test_negative_result_sets_invalid(self, requester, handler, service, alice):
        service.approve(alice)
        request = requester.request_verification(USER)

        handler.on_fulfilled(request.request_id, INVALID)

        assert service.get_status(alice) is False

    def test_bytes_payload(self, requester, handler, service, alice):
        request = requester.request_verification(USER)
        handler.on_fulfilled(request.request_id, bytes.fromhex(VALID[2:]))
        assert service.get_status(alice) is True

    def test_unknown_request_never_mutates(self, handler, service, alice):
        with pytest.raises(DuplicateOrUnknownRequest):
            handler.on_fulfilled("0x" + "ee" * 32, VALID)
        assert service.get_status(alice) is False

    def test_garbage_request_id_is_unknown(self, handler):
        with pytest.raises(DuplicateOrUnknownRequest):
            handler.on_fulfilled("not-a-request", VALID)

    def test_second_fulfillment_rejected(self, requester, handler, service, db, alice):
        """Only the first accepted result counts."""
        request = requester.request_verification(USER)
        handler.on_fulfilled(request.request_id, VALID)

        with pytest.raises(DuplicateOrUnknownRequest):
            handler.on_fulfilled(request.request_id, INVALID)

        assert service.get_status(alice) is True
        assert CorrelationTable(db).get(request.request_id).result is True

    def test_malformed_payload_changes_nothing(self, requester, handler, service, db, alice):
        request = requester.request_verification(USER)

        with pytest.raises(MalformedPayload):
            handler.on_fulfilled(request.request_id, "0x02")

        assert service.get_status(alice) is False
        assert CorrelationTable(db).get(request.request_id).fulfilled is False

        # The request can still be fulfilled with a well-formed payload
        handler.on_fulfilled(request.request_id, VALID)
        assert service.get_status(alice) is True

    def test_unresolved_requester_keeps_request_pending(self, requester, handler, db, alice):
        request = requester.request_verification(STRANGER)

        with pytest.raises(NotFound):
            handler.on_fulfilled(request.request_id, VALID)

        assert CorrelationTable(db).get(request.request_id).fulfilled is False

    def test_late_linked_address_resolves(self, requester, handler, service, alice):
        bob = service.register("Bob", "1980-02-02")
        request = requester.request_verification(STRANGER)
        service.link_address(bob, STRANGER)

        handler.on_fulfilled(request.request_id, VALID)

        assert service.get_status(bob) is True
        assert service.get_status(alice) is False


class TestConcurrentFulfillment:
    """Test that racing callbacks and approvals serialize."""

    def test_racing_callbacks_accept_exactly_one(self, requester, handler, service, alice):
        request = requester.request_verification(USER)
        outcomes = []
        lock = threading.Lock()

        def fulfill(payload):
            try:
                handler.on_fulfilled(request.request_id, payload)
                outcome = "accepted"
            except DuplicateOrUnknownRequest:
                outcome = "rejected"
            with lock:
                outcomes.append(outcome)

        threads = [threading.Thread(target=fulfill, args=(VALID,)) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert outcomes.count("accepted") == 1
        assert outcomes.count("rejected") == 7
        assert service.get_status(alice) is True

    def test_callback_and_approve_race(self, requester, handler, service, db, alice):
        """Both writes land; the final flag is one of the two written values."""
        request = requester.request_verification(USER)

        threads = [
            threading.Thread(target=handler.on_fulfilled, args=(request.request_id, VALID)),
            threading.Thread(target=service.approve, args=(alice,)),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert service.get_status(alice) is True
        assert CorrelationTable(db).is_fulfilled(request.request_id) is True
        assert UserDAO(db).get_user(alice).valid is True
