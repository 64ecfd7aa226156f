from functools import lru_cache
from typing import Optional
from uuid import UUID

from fastapi import Cookie, Depends, Header, Request, Response, status
from limits.aio.storage import Storage
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession
from config import ApplicationConfig
from src.adapter.services.notifier import LoggingNotifier
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.api.error import ClientError, RateLimitError
from src.api.utils.jwt import TokenClaims, TokenService
from src.api.utils.passwords import CredentialStore
from src.api.utils.rate_limit import RateLimiter, build_storage, derive_rate_limit_key
from src.api.utils.uploads import UploadValidator
from src.app.services.notifier import Notifier
from src.app.use_cases.otp import OtpCodeHasher
from src.libs.result import Error

engine = create_async_engine(ApplicationConfig.DB_URI, echo=False, future=True)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)


async def get_unit_of_work():
    async with AsyncSessionLocal() as session:
        yield SqlAlchemyUnitOfWork(session)


@lru_cache
def get_token_service() -> TokenService:
    return TokenService(
        ApplicationConfig.JWT_SECRET,
        default_ttl=ApplicationConfig.ACCESS_TOKEN_TTL_SECONDS,
    )


@lru_cache
def get_credential_store() -> CredentialStore:
    return CredentialStore(ApplicationConfig.BCRYPT_ROUNDS, workers=ApplicationConfig.HASH_WORKERS)


@lru_cache
def get_otp_hasher() -> OtpCodeHasher:
    return OtpCodeHasher(ApplicationConfig.OTP_SECRET or ApplicationConfig.JWT_SECRET)


@lru_cache
def get_notifier() -> Notifier:
    return LoggingNotifier()


@lru_cache
def get_rate_limit_storage() -> Storage:
    return build_storage(ApplicationConfig.CACHE_BACKEND, ApplicationConfig.REDIS_URL)


def get_rate_limiter(storage: Storage = Depends(get_rate_limit_storage)) -> RateLimiter:
    return RateLimiter(storage)


@lru_cache
def get_upload_validator() -> UploadValidator:
    return UploadValidator(
        ApplicationConfig.UPLOAD_DIR,
        url_prefix=ApplicationConfig.UPLOAD_URL_PREFIX,
        max_bytes=ApplicationConfig.MAX_UPLOAD_BYTES,
    )


def _unauthorized(code: str, message: str) -> ClientError:
    return ClientError(Error(code, message), status_code=status.HTTP_401_UNAUTHORIZED)


async def get_current_user(
    authorization: Optional[str] = Header(None),
    access_token: Optional[str] = Cookie(None, alias=ApplicationConfig.AUTH_COOKIE_NAME),
    tokens: TokenService = Depends(get_token_service),
) -> TokenClaims:
    """
    Dependency to extract and verify the caller's access token.

    A bearer Authorization header takes precedence; without one the
    httpOnly access-token cookie set at register/login is used.

    Returns:
        TokenClaims of the authenticated caller

    Raises:
        ClientError: 401 with AUTH_HEADER_MISSING, TOKEN_MISSING,
        TOKEN_EXPIRED or TOKEN_INVALID
    """
    scheme, _, token = (authorization or "").partition(" ")
    if scheme != "Bearer":
        if not access_token:
            raise _unauthorized("AUTH_HEADER_MISSING", "Authorization header missing")
        token = access_token

    token = token.strip()
    if not token:
        raise _unauthorized("TOKEN_MISSING", "Token missing")

    result = tokens.verify(token)
    if result.is_err():
        raise ClientError(result.error, status_code=status.HTTP_401_UNAUTHORIZED)

    return result.value


class RateLimit:
    """
    Route dependency charging one request against a named policy.

    Each policy has its own counters: the counter key is ``<scope>:<caller>``.
    Admitted responses carry RateLimit-* headers; rejections raise
    RateLimitError (HTTP 429).
    """

    def __init__(self, scope: str, max_requests: int, window_seconds: int):
        self.scope = scope
        self.max_requests = max_requests
        self.window_seconds = window_seconds

    async def __call__(
        self,
        request: Request,
        response: Response,
        limiter: RateLimiter = Depends(get_rate_limiter),
        tokens: TokenService = Depends(get_token_service),
    ) -> None:
        if not ApplicationConfig.RATE_LIMIT_ENABLED:
            return

        key = derive_rate_limit_key(
            request,
            tokens,
            trusted_proxy_hops=ApplicationConfig.TRUSTED_PROXY_HOPS,
            cookie_name=ApplicationConfig.AUTH_COOKIE_NAME,
        )
        decision = await limiter.check_and_increment(
            f"{self.scope}:{key}", self.window_seconds, self.max_requests
        )
        if not decision.allowed:
            raise RateLimitError(retry_after=decision.retry_after, limit=decision.limit)

        response.headers["RateLimit-Limit"] = str(decision.limit)
        response.headers["RateLimit-Remaining"] = str(decision.remaining)
        response.headers["RateLimit-Reset"] = str(decision.reset_after)


global_rate_limit = RateLimit(
    "global",
    ApplicationConfig.RATE_LIMIT_GLOBAL_MAX,
    ApplicationConfig.RATE_LIMIT_GLOBAL_WINDOW_SECONDS,
)
auth_rate_limit = RateLimit(
    "auth",
    ApplicationConfig.RATE_LIMIT_AUTH_MAX,
    ApplicationConfig.RATE_LIMIT_AUTH_WINDOW_SECONDS,
)
api_rate_limit = RateLimit(
    "api",
    ApplicationConfig.RATE_LIMIT_API_MAX,
    ApplicationConfig.RATE_LIMIT_API_WINDOW_SECONDS,
)


async def get_current_user_id(claims: TokenClaims = Depends(get_current_user)) -> UUID:
    try:
        return UUID(claims.sub)
    except ValueError:
        raise _unauthorized("TOKEN_INVALID", "Invalid token")
