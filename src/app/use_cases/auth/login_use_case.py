"""
Login Use Case

Handles credential verification and access token issuance.
"""

import logging

from src.api.utils.jwt import TokenService
from src.api.utils.passwords import CredentialStore
from src.app.services.unit_of_work import UnitOfWork
from src.domain.entities import AuditEvent
from src.libs.clock import utcnow
from src.libs.result import Error, Result, Return
from .dtos import LoginResponse, UserInfo

security_logger = logging.getLogger("security")


class LoginUseCase:
    """
    Use case for user login and JWT issuance.

    Business Rules:
    - Unknown email and wrong password return the same error
    - A dummy hash check runs for unknown emails to keep timing uniform
    - Hashes with a cost below the configured rounds are upgraded on success
    - Updates user.last_login_at and records an audit event
    """

    def __init__(self, uow: UnitOfWork, credentials: CredentialStore, tokens: TokenService):
        self.uow = uow
        self.credentials = credentials
        self.tokens = tokens

    async def execute(self, email: str, password: str) -> Result[LoginResponse]:
        """
        Execute login use case.

        Args:
            email: User email
            password: Plain text password

        Returns:
            Result with LoginResponse containing the access token, or Error
        """
        email = email.strip().lower()
        invalid = Error("INVALID_CREDENTIALS", "Invalid credentials")

        async with self.uow:
            user = await self.uow.users.get_by_email(email)

            if user is None:
                await self.credentials.dummy_verify_async()
                security_logger.warning("Login failed: unknown account")
                return Return.err(invalid)

            password_valid = await self.credentials.verify_async(password, user.password_hash)

            if not password_valid:
                security_logger.warning(f"Login failed: wrong password for user={user.id}")
                await self.uow.audit_events.create(
                    AuditEvent(user_id=user.id, action="login_failed", event_metadata={"email": email})
                )
                await self.uow.commit()
                return Return.err(invalid)

            if self.credentials.needs_rehash(user.password_hash):
                user.password_hash = await self.credentials.hash_async(password)

            user.last_login_at = utcnow()
            await self.uow.users.update(user)

            await self.uow.audit_events.create(
                AuditEvent(user_id=user.id, action="login", event_metadata={"email": email})
            )

            await self.uow.commit()

        access_token = self.tokens.issue(str(user.id), user.role.value)

        return Return.ok(
            LoginResponse(
                user=UserInfo(
                    id=str(user.id),
                    name=user.name,
                    email=user.email,
                    role=user.role.value,
                    avatar=user.avatar,
                ),
                access_token=access_token,
                expires_in=self.tokens.default_ttl,
            )
        )
