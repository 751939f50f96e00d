"""
User validation workflow: registration, identity submission, status and approval.
Input is validated before any storage access so rejected calls never mutate state.
"""

from datetime import date
from typing import Optional

from .config import POLICY_AUTO
from .dao import UserDAO
from .db import Database
from .errors import InvalidInput, NotFound
from ..oracle.encoding import checksum_address
from ..util.logging import logger


def _require(value: Optional[str], field_name: str) -> str:
    if value is None or not str(value).strip():
        raise InvalidInput(f"Missing required field: {field_name}")
    return str(value).strip()


def _require_date(value: Optional[str], field_name: str) -> str:
    value = _require(value, field_name)
    try:
        return date.fromisoformat(value).isoformat()
    except ValueError as e:
        raise InvalidInput(f"Invalid date for {field_name}: {value}") from e


class ValidationService:
    """Operations over user records, bound to one storage handle."""

    def __init__(self, db: Database, identity_policy: str = POLICY_AUTO):
        self.users = UserDAO(db)
        self.identity_policy = identity_policy

    def register(self, legal_name: Optional[str], date_of_birth: Optional[str],
                 address: Optional[str] = None) -> int:
        legal_name = _require(legal_name, "legalName")
        date_of_birth = _require_date(date_of_birth, "dateOfBirth")
        if address is not None:
            address = checksum_address(address)

        user_id = self.users.create_user(legal_name, date_of_birth, address=address)
        logger.log_user_operation("register", user_id, details={"address": address})
        return user_id

    def create_legacy(self, username: Optional[str]) -> int:
        """Username-only registration kept for the simplified /create endpoint."""
        username = _require(username, "username")
        user_id = self.users.create_user(None, None, username=username)
        logger.log_user_operation("create_legacy", user_id)
        return user_id

    def get_status(self, user_id: int) -> bool:
        valid = self.users.get_status(user_id)
        if valid is None:
            raise NotFound(f"User {user_id} not found")
        return valid

    def submit_identity(self, user_id: int, document_name: Optional[str], country_name: Optional[str],
                        issue_date: Optional[str], place_name: Optional[str],
                        expiry_date: Optional[str]) -> bool:
        """Store identity documents. Returns the user's resulting valid flag."""
        document_name = _require(document_name, "documentName")
        country_name = _require(country_name, "countryName")
        issue_date = _require_date(issue_date, "issueDate")
        place_name = _require(place_name, "placeName")
        expiry_date = _require_date(expiry_date, "expiryDate")

        mark_valid = self.identity_policy == POLICY_AUTO
        updated = self.users.update_identity(
            user_id,
            identity_document=document_name,
            identity_document_country=country_name,
            issue_date=issue_date,
            issue_place=place_name,
            expirity_date=expiry_date,
            mark_valid=mark_valid
        )
        if not updated:
            raise NotFound(f"User {user_id} not found")

        logger.log_user_operation("submit_identity", user_id, details={
            "policy": self.identity_policy,
            "identity_document": document_name
        })
        return self.get_status(user_id)

    def approve(self, user_id: int):
        """Mark a user valid. Approving an already valid user succeeds silently."""
        if not self.users.set_valid(user_id, True):
            raise NotFound(f"User {user_id} not found")
        logger.log_user_operation("approve", user_id)

    def link_address(self, user_id: int, address: Optional[str]) -> str:
        """Attach an on-chain address so oracle callbacks can resolve the user."""
        address = checksum_address(_require(address, "address"))
        if not self.users.set_address(user_id, address):
            raise NotFound(f"User {user_id} not found")
        logger.log_user_operation("link_address", user_id, details={"address": address})
        return address

    def count_users(self) -> int:
        return self.users.count_users()
