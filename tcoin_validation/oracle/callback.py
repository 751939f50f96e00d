"""
Outbound verification requests and the fulfillment callback handler.

Request lifecycle: PENDING (recorded when verification is requested) ->
FULFILLED (first accepted callback). FULFILLED is terminal.
"""

from dataclasses import dataclass
from typing import Union

from ..core.config import OracleConfig
from ..core.dao import UserDAO
from ..core.db import Database
from ..core.errors import DuplicateOrUnknownRequest, NotFound, ValidationServiceError
from ..core.schema import RequestCorrelation
from ..util.logging import logger, audit_event
from .correlation import CorrelationTable
from .encoding import (
    FULFILL_FUNCTION_SIGNATURE,
    bytes_selector,
    checksum_address,
    decode_status_payload,
    derive_request_id,
    encode_fulfillment_parameters,
    normalize_request_id,
)


@dataclass
class FulfillmentResult:
    request_id: str
    user_id: int
    requester_address: str
    valid: bool


class VerificationRequester:
    """Records verification requests the way the Validator's callAirnode does.

    Returns as soon as the request is recorded; the result arrives later
    through CallbackHandler.on_fulfilled.
    """

    def __init__(self, db: Database, oracle_config: OracleConfig):
        self.db = db
        self.config = oracle_config
        self.correlations = CorrelationTable(db)
        self.endpoint_id = oracle_config.resolved_endpoint_id()
        self.fulfillment_hash = encode_fulfillment_parameters(
            oracle_config.airnode_address,
            oracle_config.validator_address,
            bytes_selector(FULFILL_FUNCTION_SIGNATURE)
        )

    def request_verification(self, requester_address: str) -> RequestCorrelation:
        requester_address = checksum_address(requester_address)

        with self.db.transaction() as conn:
            nonce = self.correlations.next_nonce(conn)
            request_id = derive_request_id(
                chain_id=self.config.chain_id,
                validator_address=self.config.validator_address,
                requester_address=requester_address,
                nonce=nonce,
                airnode_address=self.config.airnode_address,
                endpoint_id=self.endpoint_id,
                sponsor_address=self.config.sponsor_address,
                sponsor_wallet_address=self.config.sponsor_wallet_address,
            )
            request = self.correlations.record_request(
                request_id, requester_address,
                fulfillment_hash=self.fulfillment_hash, nonce=nonce, conn=conn
            )

        logger.log_request_recorded(request.request_id, request.requester_address, request.nonce)
        return request


class CallbackHandler:
    """Accepts at most one fulfillment per request and applies it to the user record."""

    def __init__(self, db: Database):
        self.db = db
        self.correlations = CorrelationTable(db)
        self.users = UserDAO(db)

    def on_fulfilled(self, request_id: str, payload: Union[bytes, str]) -> FulfillmentResult:
        """Apply a fulfillment atomically; on any rejection nothing is changed."""
        try:
            return self._apply(request_id, payload)
        except ValidationServiceError as e:
            logger.log_callback_rejected(str(request_id), e.error_type, e.message)
            raise

    def _apply(self, request_id: str, payload: Union[bytes, str]) -> FulfillmentResult:
        try:
            request_id = normalize_request_id(request_id)
        except ValueError as e:
            raise DuplicateOrUnknownRequest(f"Unknown request {request_id}") from e

        # Decode before touching storage
        valid = decode_status_payload(payload)

        with self.db.transaction() as conn:
            request = self.correlations.get(request_id, conn=conn)
            if request is None:
                raise DuplicateOrUnknownRequest(f"Unknown request {request_id}")
            if request.fulfilled:
                raise DuplicateOrUnknownRequest(f"Request {request_id} was already fulfilled")

            user = self.users.get_user_by_address(request.requester_address, conn=conn)
            if user is None:
                raise NotFound(f"No user linked to address {request.requester_address}")

            self.users.set_valid(user.id, valid, conn=conn)
            if not self.correlations.mark_fulfilled(conn, request_id, valid):
                raise DuplicateOrUnknownRequest(f"Request {request_id} was already fulfilled")

        logger.log_fulfillment(request_id, user.id, valid)
        audit_event("oracle.user_status_updated", {
            "request_id": request_id,
            "user_id": user.id,
            "requester": request.requester_address
        }, {"valid": valid})

        return FulfillmentResult(
            request_id=request_id,
            user_id=user.id,
            requester_address=request.requester_address,
            valid=valid
        )
