"""
Configuration for the validation service.
Values come from environment variables (optionally loaded from a .env file).
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from eth_utils import is_address

load_dotenv()

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Identity submission policies
POLICY_AUTO = "auto"      # submitting documents marks the user valid
POLICY_REVIEW = "review"  # documents are staged; approval or callback sets valid
IDENTITY_POLICIES = (POLICY_AUTO, POLICY_REVIEW)

VERSION = "1.0.0"


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


def _env_number(name: str, default, convert, issues: List[str]):
    """Read a numeric setting; an unparsable value is recorded in ``issues`` and the default kept."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return convert(raw.strip())
    except ValueError:
        issues.append(f"Invalid {name}: {raw!r} is not a number")
        return default


@dataclass
class OracleConfig:
    """Request parameters of the Validator contract (setRequestParameters)."""
    chain_id: int = 31337
    airnode_address: str = ZERO_ADDRESS
    validator_address: str = ZERO_ADDRESS
    sponsor_address: str = ZERO_ADDRESS
    sponsor_wallet_address: str = ZERO_ADDRESS
    ois_title: str = "tCoinValidation"
    endpoint_name: str = "userStatus"
    endpoint_id: Optional[str] = None

    @classmethod
    def from_env(cls, issues: Optional[List[str]] = None) -> "OracleConfig":
        issues = issues if issues is not None else []
        return cls(
            chain_id=_env_number("ORACLE_CHAIN_ID", 31337, int, issues),
            airnode_address=os.getenv("ORACLE_AIRNODE_ADDRESS", ZERO_ADDRESS),
            validator_address=os.getenv("ORACLE_VALIDATOR_ADDRESS", ZERO_ADDRESS),
            sponsor_address=os.getenv("ORACLE_SPONSOR_ADDRESS", ZERO_ADDRESS),
            sponsor_wallet_address=os.getenv("ORACLE_SPONSOR_WALLET_ADDRESS", ZERO_ADDRESS),
            ois_title=os.getenv("ORACLE_OIS_TITLE", "tCoinValidation"),
            endpoint_name=os.getenv("ORACLE_ENDPOINT_NAME", "userStatus"),
            endpoint_id=os.getenv("ORACLE_ENDPOINT_ID") or None,
        )

    def resolved_endpoint_id(self) -> str:
        """Configured endpoint id, or the one derived from the OIS title and endpoint name."""
        if self.endpoint_id:
            return self.endpoint_id
        from ..oracle.encoding import derive_endpoint_id
        return derive_endpoint_id(self.ois_title, self.endpoint_name)


@dataclass
class Config:
    """Application configuration from environment variables."""
    port: int = 8000
    host: str = "127.0.0.1"
    storage_connection_string: str = "sqlite:///./data/validation.db"
    storage_timeout_sec: float = 5.0
    debug: bool = False
    admin_token: Optional[str] = None
    identity_submission_policy: str = POLICY_AUTO
    oracle: OracleConfig = field(default_factory=OracleConfig)
    # Problems found while reading the environment, reported by validate()
    env_issues: List[str] = field(default_factory=list)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a config from the current environment. Read at call time so tests can override."""
        issues = []
        return cls(
            port=_env_number("PORT", 8000, int, issues),
            host=os.getenv("HOST", "127.0.0.1"),
            storage_connection_string=os.getenv(
                "STORAGE_CONNECTION_STRING", "sqlite:///./data/validation.db"
            ),
            storage_timeout_sec=_env_number("STORAGE_TIMEOUT_SEC", 5.0, float, issues),
            debug=_env_bool("DEBUG"),
            admin_token=os.getenv("ADMIN_TOKEN") or None,
            identity_submission_policy=os.getenv("IDENTITY_SUBMISSION_POLICY", POLICY_AUTO).lower(),
            oracle=OracleConfig.from_env(issues),
            env_issues=issues,
        )

    @property
    def approval_requires_token(self) -> bool:
        return bool(self.admin_token and self.admin_token.strip())

    def validate(self) -> List[str]:
        """Validate configuration and return any issues."""
        issues = list(self.env_issues)

        if not 0 < self.port < 65536:
            issues.append(f"Invalid PORT: {self.port}")

        if self.storage_timeout_sec <= 0:
            issues.append("STORAGE_TIMEOUT_SEC must be > 0")

        if not self.storage_connection_string.strip():
            issues.append("STORAGE_CONNECTION_STRING must not be empty")

        if self.identity_submission_policy not in IDENTITY_POLICIES:
            issues.append(f"Invalid IDENTITY_SUBMISSION_POLICY: {self.identity_submission_policy}")

        for name in ("airnode_address", "validator_address", "sponsor_address", "sponsor_wallet_address"):
            value = getattr(self.oracle, name)
            if not is_address(value):
                issues.append(f"Invalid ORACLE_{name.upper()}: {value}")

        if self.oracle.chain_id < 0:
            issues.append("ORACLE_CHAIN_ID must be >= 0")

        if self.oracle.endpoint_id and not re.match(r"^0x[0-9a-fA-F]{64}$", self.oracle.endpoint_id):
            issues.append(f"Invalid ORACLE_ENDPOINT_ID: {self.oracle.endpoint_id}")

        return issues


def sqlite_path(connection_string: str) -> str:
    """Translate a storage connection string into a sqlite3 database path.

    Accepts ``sqlite:///relative.db``, ``sqlite:////absolute.db`` or a bare
    filesystem path. Every request opens its own connection, so in-memory
    databases are not supported.
    """
    prefix = "sqlite:///"
    if connection_string.endswith(":memory:"):
        raise ValueError("In-memory SQLite databases are not supported")
    if connection_string.startswith(prefix):
        return connection_string[len(prefix):]
    if "://" in connection_string:
        raise ValueError(f"Unsupported storage connection string: {connection_string}")
    return connection_string


def ensure_db_directory(db_path: str):
    """Ensure the database directory exists."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
