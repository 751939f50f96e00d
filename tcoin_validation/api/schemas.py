"""
Request and response models for the validation API.
Request fields are optional at the model level; the service layer reports
missing values as InvalidInput (HTTP 400).
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RegisterRequest(CamelModel):
    legal_name: Optional[str] = Field(default=None, alias="legalName")
    date_of_birth: Optional[str] = Field(default=None, alias="dateOfBirth")
    address: Optional[str] = None


class RegisterResponse(CamelModel):
    user_id: int = Field(alias="userId")


class StatusResponse(BaseModel):
    valid: bool


class IdentityRequest(CamelModel):
    document_name: Optional[str] = Field(default=None, alias="documentName")
    country_name: Optional[str] = Field(default=None, alias="countryName")
    issue_date: Optional[str] = Field(default=None, alias="issueDate")
    place_name: Optional[str] = Field(default=None, alias="placeName")
    expiry_date: Optional[str] = Field(default=None, alias="expiryDate")


class AddressRequest(BaseModel):
    address: Optional[str] = None


class AckResponse(BaseModel):
    success: bool = True
    message: str


# Legacy simplified API
class LegacyCreateRequest(BaseModel):
    username: Optional[str] = None


class LegacyCreateResponse(BaseModel):
    id: int


class LegacyStatusResponse(BaseModel):
    status: bool


# Oracle correlation
class VerificationRequest(BaseModel):
    address: Optional[str] = None


class CorrelationResponse(CamelModel):
    request_id: str = Field(alias="requestId")
    requester_address: str = Field(alias="requesterAddress")
    state: str
    fulfilled: bool
    nonce: int
    result: Optional[bool] = None
    fulfillment_hash: Optional[str] = Field(default=None, alias="fulfillmentHash")
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    fulfilled_at: Optional[str] = Field(default=None, alias="fulfilledAt")


class CorrelationListResponse(BaseModel):
    requests: List[CorrelationResponse]


class FulfillRequest(CamelModel):
    request_id: Optional[str] = Field(default=None, alias="requestId")
    data: Optional[str] = None


class FulfillResponse(CamelModel):
    request_id: str = Field(alias="requestId")
    user_id: int = Field(alias="userId")
    valid: bool


class HealthResponse(BaseModel):
    status: str
    version: str
    db_health: bool
    user_count: int


class ErrorResponse(BaseModel):
    error_type: str
    detail: str
