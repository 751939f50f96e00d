"""
ABI helpers for the Airnode request/response protocol used by the Validator contract.
"""

import re
from typing import Union

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_abi.packed import encode_packed
from eth_utils import (
    decode_hex,
    encode_hex,
    function_signature_to_4byte_selector,
    is_address,
    keccak,
    to_checksum_address,
)

from ..core.errors import InvalidInput, MalformedPayload

# Callback the Airnode invokes on the Validator contract
FULFILL_FUNCTION_SIGNATURE = "updateUserStatus(bytes32,bytes)"

_REQUEST_ID_PATTERN = re.compile(r"^0x[0-9a-f]{64}$")


def checksum_address(address: str) -> str:
    """Return the EIP-55 form of an address, or raise InvalidInput."""
    if not isinstance(address, str) or not is_address(address):
        raise InvalidInput(f"Invalid address: {address}")
    return to_checksum_address(address)


def normalize_request_id(request_id: str) -> str:
    """Lower-case 0x-prefixed 32-byte hex. Raises ValueError for anything else."""
    if not isinstance(request_id, str):
        raise ValueError("request id must be a hex string")
    normalized = request_id.strip().lower()
    if not normalized.startswith("0x"):
        normalized = "0x" + normalized
    if not _REQUEST_ID_PATTERN.match(normalized):
        raise ValueError(f"Invalid request id: {request_id}")
    return normalized


def derive_endpoint_id(ois_title: str, endpoint_name: str) -> str:
    """Endpoint id as @api3/airnode-admin derives it: keccak256(abi.encode(title, name))."""
    return encode_hex(keccak(encode(['string', 'string'], [ois_title, endpoint_name])))


def bytes_selector(function_signature: str) -> str:
    """bytes4 selector of a Solidity function signature, as 0x-hex."""
    return encode_hex(function_signature_to_4byte_selector(function_signature))


def encode_fulfillment_parameters(airnode_address: str, fulfill_address: str,
                                  fulfill_function_id: str) -> str:
    """Hash the AirnodeRrpV0 stores per request: keccak256(abi.encodePacked(airnode, fulfillAddress, selector))."""
    packed = encode_packed(
        ['address', 'address', 'bytes4'],
        [checksum_address(airnode_address), checksum_address(fulfill_address), decode_hex(fulfill_function_id)]
    )
    return encode_hex(keccak(packed))


def derive_request_id(chain_id: int, validator_address: str, requester_address: str, nonce: int,
                      airnode_address: str, endpoint_id: str, sponsor_address: str,
                      sponsor_wallet_address: str) -> str:
    """Deterministic request id in the style of AirnodeRrpV0.makeFullRequest."""
    packed = encode_packed(
        ['uint256', 'address', 'address', 'uint256', 'address', 'bytes32', 'address', 'address'],
        [
            chain_id,
            checksum_address(validator_address),
            checksum_address(requester_address),
            nonce,
            checksum_address(airnode_address),
            decode_hex(endpoint_id),
            checksum_address(sponsor_address),
            checksum_address(sponsor_wallet_address),
        ]
    )
    return encode_hex(keccak(packed))


def encode_status_payload(valid: bool) -> str:
    return encode_hex(encode(['bool'], [valid]))


def decode_status_payload(payload: Union[bytes, str]) -> bool:
    """Decode a fulfillment payload holding exactly one ABI-encoded bool."""
    if isinstance(payload, str):
        try:
            data = decode_hex(payload)
        except (ValueError, TypeError) as e:
            raise MalformedPayload(f"Payload is not valid hex: {e}") from e
    elif isinstance(payload, (bytes, bytearray)):
        data = bytes(payload)
    else:
        raise MalformedPayload(f"Unsupported payload type: {type(payload).__name__}")

    if len(data) != 32:
        raise MalformedPayload(f"Expected a single 32-byte word, got {len(data)} bytes")

    try:
        (value,) = decode(['bool'], data)
    except DecodingError as e:
        raise MalformedPayload(f"Payload is not an ABI bool: {e}") from e
    return value
