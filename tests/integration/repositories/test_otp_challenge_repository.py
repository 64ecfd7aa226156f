from datetime import timedelta

import pytest
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from src.adapter.repositories.otp_challenge_repository import OtpChallengeRepository
from src.domain.entities import OtpChallenge
from src.libs.clock import utcnow

EMAIL = "otp-user@example.com"


def challenge(code_hash: str) -> OtpChallenge:
    return OtpChallenge(
        email=EMAIL,
        code_hash=code_hash,
        expires_at=utcnow() + timedelta(minutes=10),
    )


async def active_challenges(session) -> list:
    result = await session.exec(
        select(OtpChallenge).where(
            OtpChallenge.email == EMAIL, OtpChallenge.used == False  # noqa: E712
        ).execution_options(populate_existing=True)
    )
    return result.all()


@pytest.mark.asyncio
async def test_back_to_back_issuance_leaves_one_active_challenge(db_session):
    repository = OtpChallengeRepository(db_session)

    first = await repository.replace_active(challenge("a" * 64))
    await db_session.commit()
    second = await repository.replace_active(challenge("b" * 64))
    await db_session.commit()

    active = await active_challenges(db_session)
    assert [c.id for c in active] == [second.id]
    assert (await repository.get_active_by_email(EMAIL)).code_hash == "b" * 64
    assert first.id != second.id


@pytest.mark.asyncio
async def test_second_active_row_violates_unique_index(db_session):
    repository = OtpChallengeRepository(db_session)
    await repository.replace_active(challenge("a" * 64))
    await db_session.commit()

    db_session.add(challenge("b" * 64))
    with pytest.raises(IntegrityError, match="otp_challenges.email"):
        await db_session.flush()
    await db_session.rollback()

    assert len(await active_challenges(db_session)) == 1


@pytest.mark.asyncio
async def test_used_rows_do_not_count_against_unique_index(db_session):
    repository = OtpChallengeRepository(db_session)
    for code_hash in ("a" * 64, "b" * 64, "c" * 64):
        await repository.replace_active(challenge(code_hash))
        await db_session.commit()

    result = await db_session.exec(select(OtpChallenge).where(OtpChallenge.email == EMAIL))
    assert len(result.all()) == 3
    assert len(await active_challenges(db_session)) == 1
