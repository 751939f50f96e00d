"""
Typed records for users and oracle request correlations.
"""

from dataclasses import dataclass, asdict
from enum import Enum, IntEnum
from typing import Dict, Optional


class UserStatus(IntEnum):
    """User status as the Validator contract encodes it."""
    INVALID = 0
    VALID = 1


class RequestState(str, Enum):
    PENDING = "PENDING"
    FULFILLED = "FULFILLED"


@dataclass
class UserRecord:
    id: int
    username: str
    legal_name: Optional[str]
    date_of_birth: Optional[str]
    identity_document: Optional[str] = None
    identity_document_country: Optional[str] = None
    issue_date: Optional[str] = None
    issue_place: Optional[str] = None
    expirity_date: Optional[str] = None
    address: Optional[str] = None
    valid: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def status(self) -> UserStatus:
        return UserStatus.VALID if self.valid else UserStatus.INVALID

    @property
    def has_identity(self) -> bool:
        return self.identity_document is not None


@dataclass
class RequestCorrelation:
    request_id: str
    requester_address: str
    state: RequestState
    nonce: int
    result: Optional[bool] = None
    fulfillment_hash: Optional[str] = None
    created_at: Optional[str] = None
    fulfilled_at: Optional[str] = None

    @property
    def fulfilled(self) -> bool:
        return self.state == RequestState.FULFILLED

    def to_dict(self) -> Dict:
        """Convert to dictionary for API responses and audit logs."""
        data = asdict(self)
        data['state'] = self.state.value
        data['fulfilled'] = self.fulfilled
        return data
