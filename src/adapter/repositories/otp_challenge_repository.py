import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlmodel import select, update
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.otp_challenge_repository import IOtpChallengeRepository
from src.domain.entities import OtpChallenge

logger = logging.getLogger(__name__)


class OtpChallengeRepository(IOtpChallengeRepository):
    """
    OtpChallenge repository implementation using SQLModel.

    Counters are changed only through conditional UPDATE statements, so the
    read-check-increment happens inside the database and two concurrent
    requests cannot both pass a limit that only one should pass.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_active_by_email(self, email: str) -> Optional[OtpChallenge]:
        # Attempts change through UPDATE statements; never trust a cached row
        stmt = select(OtpChallenge).where(
            OtpChallenge.email == email, OtpChallenge.used == False  # noqa: E712
        ).execution_options(populate_existing=True)
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def replace_active(self, challenge: OtpChallenge) -> Optional[OtpChallenge]:
        supersede = (
            update(OtpChallenge)
            .where(OtpChallenge.email == challenge.email, OtpChallenge.used == False)  # noqa: E712
            .values(used=True)
        )
        await self.session.execute(supersede)
        self.session.add(challenge)
        try:
            await self.session.flush()
        except IntegrityError:
            # uq_otp_active_email: another issuance for this email committed first
            await self.session.rollback()
            logger.warning(f"Concurrent OTP issuance rejected for {challenge.email}")
            return None
        await self.session.refresh(challenge)
        return challenge

    async def increment_attempts(self, challenge_id: UUID, max_attempts: int) -> Optional[int]:
        stmt = (
            update(OtpChallenge)
            .where(
                OtpChallenge.id == challenge_id,
                OtpChallenge.used == False,  # noqa: E712
                OtpChallenge.attempts < max_attempts,
            )
            .values(attempts=OtpChallenge.attempts + 1)
            .returning(OtpChallenge.attempts)
        )
        result = await self.session.execute(stmt)
        attempts = result.scalar_one_or_none()
        await self.session.flush()
        return attempts

    async def mark_used(self, challenge_id: UUID, max_attempts: int) -> bool:
        stmt = (
            update(OtpChallenge)
            .where(
                OtpChallenge.id == challenge_id,
                OtpChallenge.used == False,  # noqa: E712
                OtpChallenge.attempts < max_attempts,
            )
            .values(used=True)
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount > 0
