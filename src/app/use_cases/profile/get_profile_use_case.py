from uuid import UUID

from src.app.services.unit_of_work import UnitOfWork
from src.libs.result import Error, Result, Return
from .dtos import ProfileResponse


class GetProfileUseCase:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def execute(self, user_id: UUID) -> Result[ProfileResponse]:
        async with self.uow:
            user = await self.uow.users.get_by_id(user_id)

        if user is None:
            return Return.err(Error("USER_NOT_FOUND", "User not found"))

        return Return.ok(
            ProfileResponse(
                id=str(user.id),
                name=user.name,
                email=user.email,
                role=user.role.value,
                avatar=user.avatar,
                email_verified=user.email_verified,
            )
        )
