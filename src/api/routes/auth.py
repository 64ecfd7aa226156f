import re
from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from config import ApplicationConfig
from src.api.error import ClientError, ServerError
from src.api.utils.jwt import TokenService
from src.api.utils.passwords import MAX_PASSWORD_BYTES, CredentialStore
from src.app.services.notifier import Notifier
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.auth import (
    LoginResponse,
    LoginUseCase,
    RegisterCommand,
    RegisterResponse,
    RegisterUseCase,
)
from src.app.use_cases.otp import (
    OtpCodeHasher,
    RequestOtpResponse,
    RequestOtpUseCase,
    VerifyOtpResponse,
    VerifyOtpUseCase,
)
from src.depends import (
    auth_rate_limit,
    get_credential_store,
    get_notifier,
    get_otp_hasher,
    get_token_service,
    get_unit_of_work,
)

router = APIRouter(
    prefix="/auth", tags=["Authentication"], dependencies=[Depends(auth_rate_limit)]
)


def set_access_cookie(response: Response, token: str, max_age: int) -> None:
    response.set_cookie(
        ApplicationConfig.AUTH_COOKIE_NAME,
        token,
        max_age=max_age,
        httponly=True,
        secure=ApplicationConfig.AUTH_COOKIE_SECURE,
        samesite="strict",
    )


class RegisterRequest(BaseModel):
    """
    Register HTTP request payload

    Validates incoming HTTP request before converting to RegisterCommand.
    Unknown fields (e.g. ``role``) are rejected rather than ignored.
    """

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: str = Field(..., min_length=2, max_length=80, description="Display name")
    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=8, description="User password (min 8 chars)")
    phone: Optional[str] = Field(None, max_length=32, description="Contact phone")

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        if not re.search(r"\d", value):
            raise ValueError("Password must contain at least one number")
        if not re.search(r"[A-Z]", value):
            raise ValueError("Password must contain at least one uppercase letter")
        return value


@router.post(
    "/register", status_code=status.HTTP_201_CREATED, response_model=RegisterResponse
)
async def register(
    request: RegisterRequest,
    response: Response,
    uow: UnitOfWork = Depends(get_unit_of_work),
    credentials: CredentialStore = Depends(get_credential_store),
    tokens: TokenService = Depends(get_token_service),
):
    """
    Register a customer account.

    Raises:
        - 400 Bad Request: Invalid input
        - 409 Conflict: Email already exists
        - 500 Internal Server Error: Server error
    """
    command = RegisterCommand(
        name=request.name,
        email=request.email,
        password=request.password,
        phone=request.phone,
    )

    use_case = RegisterUseCase(uow, credentials, tokens)
    result = await use_case.execute(command)

    if result.is_err():
        error = result.error
        if error.code == "EMAIL_ALREADY_EXISTS":
            raise ClientError(error, status_code=status.HTTP_409_CONFLICT)
        raise ServerError(error)

    set_access_cookie(response, result.value.access_token, result.value.expires_in)
    return result.value


class LoginRequest(BaseModel):
    """Login HTTP request payload"""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=1, description="User password")


@router.post("/login", status_code=status.HTTP_200_OK, response_model=LoginResponse)
async def login(
    request: LoginRequest,
    response: Response,
    uow: UnitOfWork = Depends(get_unit_of_work),
    credentials: CredentialStore = Depends(get_credential_store),
    tokens: TokenService = Depends(get_token_service),
):
    """
    User Login

    Raises:
        - 401 Unauthorized: Invalid credentials (same for unknown account and wrong password)
        - 500 Internal Server Error: Server error
    """
    use_case = LoginUseCase(uow, credentials, tokens)
    result = await use_case.execute(request.email, request.password)

    if result.is_err():
        error = result.error
        if error.code == "INVALID_CREDENTIALS":
            raise ClientError(error, status_code=status.HTTP_401_UNAUTHORIZED)
        raise ServerError(error)

    set_access_cookie(response, result.value.access_token, result.value.expires_in)
    return result.value


class OtpRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr


@router.post(
    "/otp/request", status_code=status.HTTP_200_OK, response_model=RequestOtpResponse
)
async def request_otp(
    request: OtpRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    notifier: Notifier = Depends(get_notifier),
    hasher: OtpCodeHasher = Depends(get_otp_hasher),
):
    """
    Request a one-time passcode.

    The response is identical whether or not the account exists.

    Raises:
        - 409 Conflict: Concurrent issuance for the same email
    """
    use_case = RequestOtpUseCase(
        uow, notifier, hasher, ttl_seconds=ApplicationConfig.OTP_TTL_SECONDS
    )
    result = await use_case.execute(request.email)

    if result.is_err():
        error = result.error
        if error.code == "OTP_ISSUE_CONFLICT":
            raise ClientError(error, status_code=status.HTTP_409_CONFLICT)
        raise ServerError(error)

    return result.value


class OtpVerifyRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    email: EmailStr
    code: str = Field(..., pattern=r"^\d{6}$", description="6-digit code")


OTP_ERROR_STATUS = {
    "OTP_INVALID": status.HTTP_400_BAD_REQUEST,
    "OTP_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "OTP_EXHAUSTED": status.HTTP_409_CONFLICT,
    "OTP_EXPIRED": status.HTTP_410_GONE,
}


@router.post(
    "/otp/verify", status_code=status.HTTP_200_OK, response_model=VerifyOtpResponse
)
async def verify_otp(
    request: OtpVerifyRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    hasher: OtpCodeHasher = Depends(get_otp_hasher),
    tokens: TokenService = Depends(get_token_service),
):
    """
    Verify a one-time passcode.

    Raises:
        - 400 Bad Request: Wrong code (details carry attempts_remaining)
        - 404 Not Found: No active code for the email
        - 409 Conflict: Too many failed attempts
        - 410 Gone: Code expired
    """
    use_case = VerifyOtpUseCase(
        uow, hasher, tokens, max_attempts=ApplicationConfig.OTP_MAX_ATTEMPTS
    )
    result = await use_case.execute(request.email, request.code)

    if result.is_err():
        error = result.error
        if error.code in OTP_ERROR_STATUS:
            raise ClientError(error, status_code=OTP_ERROR_STATUS[error.code])
        raise ServerError(error)

    return result.value


class LogoutResponse(BaseModel):
    status: str = "logged_out"


@router.post("/logout", status_code=status.HTTP_200_OK, response_model=LogoutResponse)
async def logout(response: Response):
    """Clear the access-token cookie. Bearer tokens simply expire."""
    response.delete_cookie(
        ApplicationConfig.AUTH_COOKIE_NAME,
        httponly=True,
        secure=ApplicationConfig.AUTH_COOKIE_SECURE,
        samesite="strict",
    )
    return LogoutResponse()
