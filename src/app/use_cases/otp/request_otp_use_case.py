"""
Request OTP Use Case

Issues a one-time passcode and hands it to the notification collaborator.
"""

import logging

from src.app.services.notifier import Notifier
from src.app.services.unit_of_work import UnitOfWork
from src.domain.entities import AuditEvent, OtpChallenge
from src.libs.clock import Clock, system_clock, to_naive_utc
from src.libs.result import Error, Result, Return
from .codes import OtpCodeHasher, generate_code
from .dtos import IssuedOtp, RequestOtpResponse

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 10 * 60


class RequestOtpUseCase:
    """
    Use case for requesting a one-time passcode.

    Business Rules:
    - 6-digit code from a CSPRNG, stored only as an HMAC digest
    - Expires 10 minutes after issuance (configurable)
    - Any previous unused challenge for the email is superseded in the same
      transaction as the insert, so at most one is ever active
    - No email enumeration: identical response for unknown emails, and no
      challenge is created for them
    - The challenge is persisted regardless of delivery outcome
    """

    def __init__(
        self,
        uow: UnitOfWork,
        notifier: Notifier,
        hasher: OtpCodeHasher,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Clock = system_clock,
    ):
        self.uow = uow
        self.notifier = notifier
        self.hasher = hasher
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    async def issue(self, email: str) -> Result[IssuedOtp]:
        """
        Create the challenge for ``email`` and return the plain code.

        Errors:
            - OTP_ISSUE_CONFLICT: a concurrent issuance for the same email won
        """
        email = email.strip().lower()
        code = generate_code()
        now = self.clock()
        expires_at = to_naive_utc(now + self.ttl_seconds)

        async with self.uow:
            challenge = await self.uow.otp_challenges.replace_active(
                OtpChallenge(
                    email=email,
                    code_hash=self.hasher.digest(email, code),
                    attempts=0,
                    used=False,
                    expires_at=expires_at,
                    created_at=to_naive_utc(now),
                )
            )
            if challenge is None:
                return Return.err(
                    Error(
                        "OTP_ISSUE_CONFLICT",
                        "A verification code is already being issued. Please try again.",
                    )
                )

            await self.uow.audit_events.create(
                AuditEvent(action="otp_issued", event_metadata={"email": email})
            )
            await self.uow.commit()

        return Return.ok(IssuedOtp(email=email, code=code, expires_at=expires_at))

    async def execute(self, email: str) -> Result[RequestOtpResponse]:
        """
        Execute request OTP use case.

        Args:
            email: Email address to challenge

        Returns:
            Result with the generic "sent" response, or Error
        """
        response = RequestOtpResponse(
            status="sent",
            message="If the account exists, a verification code has been sent",
        )

        async with self.uow:
            user = await self.uow.users.get_by_email(email.strip().lower())

        if user is None:
            return Return.ok(response)

        issued = await self.issue(email)
        if issued.is_err():
            return Return.err(issued.error)

        try:
            await self.notifier.send_otp(issued.value.email, issued.value.code, issued.value.expires_at)
        except Exception:
            # Delivery is the notifier's concern; the stored challenge stays valid
            logger.error(f"OTP delivery failed for {issued.value.email}", exc_info=True)

        return Return.ok(response)
