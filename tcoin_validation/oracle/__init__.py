"""
Oracle request correlation - maps outbound verification requests to
requesters and applies fulfillment callbacks.
"""

from .correlation import CorrelationTable
from .callback import CallbackHandler, FulfillmentResult, VerificationRequester
from .encoding import (
    decode_status_payload,
    derive_endpoint_id,
    derive_request_id,
    encode_status_payload,
)

__all__ = [
    'CorrelationTable',
    'CallbackHandler',
    'FulfillmentResult',
    'VerificationRequester',
    'decode_status_payload',
    'derive_endpoint_id',
    'derive_request_id',
    'encode_status_payload'
]
