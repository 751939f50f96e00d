"""
HTTP surface for user validation and oracle fulfillment.

The application is built by ``create_app``; the storage handle and config are
constructed once and handed to each request through FastAPI dependencies.
Run with ``uvicorn --factory tcoin_validation.api.main:create_app`` or
``scripts/run_server.py``.
"""

import secrets
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Path, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from .schemas import (
    AckResponse,
    AddressRequest,
    CorrelationListResponse,
    CorrelationResponse,
    ErrorResponse,
    FulfillRequest,
    FulfillResponse,
    HealthResponse,
    IdentityRequest,
    LegacyCreateRequest,
    LegacyCreateResponse,
    LegacyStatusResponse,
    RegisterRequest,
    RegisterResponse,
    StatusResponse,
    VerificationRequest,
)
from ..core.config import VERSION, Config
from ..core.db import Database
from ..core.errors import (
    InvalidInput,
    MalformedPayload,
    StorageFailure,
    Unauthorized,
    ValidationServiceError,
)
from ..core.validation import ValidationService
from ..oracle.callback import CallbackHandler, VerificationRequester
from ..oracle.correlation import CorrelationTable
from ..util.logging import logger

# Largest value SQLite stores in an INTEGER column
MAX_USER_ID = 2**63 - 1

router = APIRouter(responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}})


# Dependencies
def get_config(request: Request) -> Config:
    return request.app.state.config


def get_db(request: Request) -> Database:
    return request.app.state.db


def get_service(request: Request) -> ValidationService:
    return ValidationService(
        request.app.state.db,
        identity_policy=request.app.state.config.identity_submission_policy
    )


def get_requester(request: Request) -> VerificationRequester:
    return request.app.state.requester


def get_callback_handler(db: Database = Depends(get_db)) -> CallbackHandler:
    return CallbackHandler(db)


def require_admin(x_admin_token: Optional[str] = Header(default=None),
                  config: Config = Depends(get_config)):
    """Guard for administrative endpoints. Open when no ADMIN_TOKEN is configured."""
    if not config.approval_requires_token:
        return

    if not x_admin_token:
        logger.warning("Administrative call without X-Admin-Token header")
        raise Unauthorized("Admin token required")

    # Constant-time comparison
    if not secrets.compare_digest(x_admin_token.encode(), config.admin_token.encode()):
        logger.warning("Administrative call with invalid token")
        raise Unauthorized("Invalid admin token")


@router.get("/", response_class=PlainTextResponse)
def root():
    return "Healthy!"


@router.get("/health", response_model=HealthResponse)
def health_check_endpoint(db: Database = Depends(get_db),
                          service: ValidationService = Depends(get_service)):
    """Check system health."""
    db_health = db.health_check()
    user_count = service.count_users() if db_health else 0

    return HealthResponse(
        status="healthy" if db_health else "unhealthy",
        version=VERSION,
        db_health=db_health,
        user_count=user_count
    )


# User validation endpoints
@router.post("/user", response_model=RegisterResponse, status_code=201)
def register_user(request: RegisterRequest, service: ValidationService = Depends(get_service)):
    user_id = service.register(request.legal_name, request.date_of_birth, address=request.address)
    return RegisterResponse(user_id=user_id)


@router.get("/user/status", response_model=StatusResponse)
def get_user_status(id: int = Query(..., ge=0, le=MAX_USER_ID),
                    service: ValidationService = Depends(get_service)):
    """Only the valid flag is returned; other user fields never leave the service."""
    return StatusResponse(valid=service.get_status(id))


@router.post("/user/address", response_model=AckResponse)
def link_user_address(request: AddressRequest, id: int = Query(..., ge=0, le=MAX_USER_ID),
                      service: ValidationService = Depends(get_service)):
    address = service.link_address(id, request.address)
    return AckResponse(message=f"Address {address} linked")


@router.post("/identity", response_model=AckResponse)
def submit_identity(request: IdentityRequest, id: int = Query(..., ge=0, le=MAX_USER_ID),
                    service: ValidationService = Depends(get_service)):
    valid = service.submit_identity(
        id,
        request.document_name,
        request.country_name,
        request.issue_date,
        request.place_name,
        request.expiry_date
    )
    message = "Identity validated" if valid else "Identity submitted for review"
    return AckResponse(message=message)


@router.post("/approve/{id}", response_model=AckResponse, dependencies=[Depends(require_admin)])
def approve_user(id: int = Path(..., ge=0, le=MAX_USER_ID),
                 service: ValidationService = Depends(get_service)):
    service.approve(id)
    return AckResponse(message="User approved")


# Legacy simplified endpoints
@router.get("/status/{id}", response_model=LegacyStatusResponse)
def legacy_status(id: int = Path(..., ge=0, le=MAX_USER_ID),
                  service: ValidationService = Depends(get_service)):
    return LegacyStatusResponse(status=service.get_status(id))


@router.post("/create", response_model=LegacyCreateResponse)
def legacy_create(request: LegacyCreateRequest, service: ValidationService = Depends(get_service)):
    return LegacyCreateResponse(id=service.create_legacy(request.username))


# Oracle correlation endpoints
@router.post("/oracle/requests", response_model=CorrelationResponse, status_code=202)
def request_verification(request: VerificationRequest,
                         requester: VerificationRequester = Depends(get_requester)):
    """Record a verification request and return immediately with its request id."""
    if request.address is None:
        raise InvalidInput("Missing required field: address")
    correlation = requester.request_verification(request.address)
    return CorrelationResponse(**correlation.to_dict())


@router.get("/oracle/requests", response_model=CorrelationListResponse)
def list_verification_requests(pending: bool = False, limit: int = Query(100, ge=1, le=1000),
                               db: Database = Depends(get_db)):
    requests = CorrelationTable(db).list_requests(pending_only=pending, limit=limit)
    return CorrelationListResponse(
        requests=[CorrelationResponse(**r.to_dict()) for r in requests]
    )


@router.get("/oracle/requests/{request_id}", response_model=CorrelationResponse)
def get_verification_request(request_id: str, db: Database = Depends(get_db)):
    correlation = CorrelationTable(db).get(request_id)
    if not correlation:
        raise HTTPException(status_code=404, detail="Request not found")
    return CorrelationResponse(**correlation.to_dict())


@router.post("/oracle/fulfill", response_model=FulfillResponse)
def fulfill_request(request: FulfillRequest, handler: CallbackHandler = Depends(get_callback_handler)):
    """Callback from the oracle network carrying an ABI-encoded bool."""
    if request.request_id is None:
        raise InvalidInput("Missing required field: requestId")
    if request.data is None:
        raise MalformedPayload("Missing fulfillment data")

    result = handler.on_fulfilled(request.request_id, request.data)
    return FulfillResponse(request_id=result.request_id, user_id=result.user_id, valid=result.valid)


def register_exception_handlers(app: FastAPI, debug: bool = False):
    @app.exception_handler(ValidationServiceError)
    async def service_error_handler(request: Request, exc: ValidationServiceError):
        if isinstance(exc, StorageFailure):
            logger.error(f"Storage failure on {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"error_type": exc.error_type, "detail": exc.message},
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"loc": [str(part) for part in error.get("loc", ())], "message": error.get("msg", "")}
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={"error_type": InvalidInput.error_type, "detail": "Invalid request", "errors": errors},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle all unhandled exceptions."""
        logger.error(f"Unhandled exception: {exc}")
        content = {"detail": "Internal server error"}
        if debug:
            content["debug"] = str(exc)
        return JSONResponse(status_code=500, content=content)


def create_app(config: Config = None, db: Database = None) -> FastAPI:
    """Build the application around an explicitly constructed storage handle."""
    config = config or Config.from_env()
    issues = config.validate()
    if issues:
        raise ValueError("Invalid configuration: " + "; ".join(issues))

    if db is None:
        db = Database(config.storage_connection_string, timeout=config.storage_timeout_sec)
    db.init_schema()

    app = FastAPI(
        title="tCoin Validation API",
        version=VERSION,
        description="User identity validation with oracle fulfillment callbacks",
        docs_url="/docs" if config.debug else None,
        redoc_url="/redoc" if config.debug else None
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.config = config
    app.state.db = db
    app.state.requester = VerificationRequester(db, config.oracle)

    if not config.approval_requires_token:
        logger.warning("ADMIN_TOKEN not set; /approve is open to any caller")

    app.include_router(router)
    register_exception_handlers(app, debug=config.debug)
    return app
