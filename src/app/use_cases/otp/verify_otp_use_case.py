"""
Verify OTP Use Case

Drives the challenge state machine: Issued -> Verified | Expired | Exhausted.
"""

import logging
from typing import Optional

from src.api.utils.jwt import TokenService
from src.app.services.unit_of_work import UnitOfWork
from src.domain.entities import AuditEvent, OtpOutcome
from src.libs.clock import Clock, system_clock, to_naive_utc
from src.libs.result import Error, Result, Return
from .codes import OtpCodeHasher
from .dtos import VerifyOtpResponse

security_logger = logging.getLogger("security")

DEFAULT_MAX_ATTEMPTS = 3


class VerifyOtpUseCase:
    """
    Use case for verifying a one-time passcode.

    Business Rules:
    - No unused challenge for the email: OTP_NOT_FOUND
    - Past expires_at: OTP_EXPIRED, whatever the code
    - attempts >= max: OTP_EXHAUSTED, whatever the code; checked before the
      code is compared
    - Wrong code: attempts incremented atomically, OTP_INVALID with the
      new count
    - Right code: challenge consumed atomically; email marked verified and an
      access token issued
    - Terminal states never verify again
    """

    def __init__(
        self,
        uow: UnitOfWork,
        hasher: OtpCodeHasher,
        tokens: Optional[TokenService] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        clock: Clock = system_clock,
    ):
        self.uow = uow
        self.hasher = hasher
        self.tokens = tokens
        self.max_attempts = max_attempts
        self.clock = clock

    def _error(self, outcome: OtpOutcome, code: str, message: str, **details) -> Result:
        return Return.err(Error(code, message, {"outcome": outcome.value, **details}))

    async def execute(self, email: str, candidate: str) -> Result[VerifyOtpResponse]:
        """
        Execute verify OTP use case.

        Args:
            email: Email the code was issued for
            candidate: Code submitted by the client

        Returns:
            Result with VerifyOtpResponse, or Error

        Errors:
            - OTP_NOT_FOUND: No active challenge
            - OTP_EXPIRED: Challenge has expired
            - OTP_EXHAUSTED: Too many failed attempts
            - OTP_INVALID: Wrong code (details carry attempts and attempts_remaining)
        """
        email = email.strip().lower()

        async with self.uow:
            challenge = await self.uow.otp_challenges.get_active_by_email(email)

            if challenge is None:
                return self._error(
                    OtpOutcome.not_found,
                    "OTP_NOT_FOUND",
                    "Verification code is invalid or has expired",
                )

            if to_naive_utc(self.clock()) > challenge.expires_at:
                return self._error(
                    OtpOutcome.expired,
                    "OTP_EXPIRED",
                    "Verification code has expired. Please request a new code.",
                )

            if challenge.attempts >= self.max_attempts:
                security_logger.warning(f"OTP exhausted for {email}")
                return self._exhausted()

            if not self.hasher.matches(email, candidate, challenge.code_hash):
                attempts = await self.uow.otp_challenges.increment_attempts(
                    challenge.id, self.max_attempts
                )
                if attempts is None:
                    # A concurrent request consumed the last attempt or the challenge
                    return self._exhausted()

                if attempts >= self.max_attempts:
                    security_logger.warning(f"OTP attempts exhausted for {email}")
                    await self.uow.audit_events.create(
                        AuditEvent(action="otp_exhausted", event_metadata={"email": email})
                    )
                await self.uow.commit()

                return self._error(
                    OtpOutcome.invalid,
                    "OTP_INVALID",
                    "Verification code is invalid or has expired",
                    attempts=attempts,
                    attempts_remaining=self.max_attempts - attempts,
                )

            consumed = await self.uow.otp_challenges.mark_used(challenge.id, self.max_attempts)
            if not consumed:
                return self._error(
                    OtpOutcome.not_found,
                    "OTP_NOT_FOUND",
                    "Verification code is invalid or has expired",
                )

            user = await self.uow.users.get_by_email(email)
            if user is not None and not user.email_verified:
                user.email_verified = True
                await self.uow.users.update(user)

            await self.uow.audit_events.create(
                AuditEvent(
                    user_id=user.id if user else None,
                    action="otp_verified",
                    event_metadata={"email": email},
                )
            )
            await self.uow.commit()

        access_token = None
        expires_in = None
        if user is not None and self.tokens is not None:
            access_token = self.tokens.issue(str(user.id), user.role.value)
            expires_in = self.tokens.default_ttl

        return Return.ok(
            VerifyOtpResponse(
                status=OtpOutcome.verified.value,
                email_verified=user is not None,
                access_token=access_token,
                expires_in=expires_in,
            )
        )

    def _exhausted(self) -> Result:
        return self._error(
            OtpOutcome.exhausted,
            "OTP_EXHAUSTED",
            "Too many failed attempts. Please request a new code.",
        )
