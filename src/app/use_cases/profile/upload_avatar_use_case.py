"""
Upload Avatar Use Case

Validates an uploaded image and links it to the owner's profile.
"""

import logging
from typing import Optional
from uuid import UUID

from src.api.utils.uploads import AsyncReadable, UploadValidator
from src.app.services.unit_of_work import UnitOfWork
from src.domain.entities import AuditEvent
from src.libs.result import Error, Result, Return
from .dtos import AvatarUploadResponse

logger = logging.getLogger(__name__)


class UploadAvatarUseCase:
    """
    Use case for replacing a user's avatar.

    Business Rules:
    - The file is fully validated (extension, size, content sniffing) before
      the profile store is touched
    - The asset is linked to the profile only after validation succeeds
    - If the profile update fails the promoted file is removed again
    - The previous avatar url is returned so the caller can schedule its
      deletion
    """

    def __init__(self, uow: UnitOfWork, validator: UploadValidator):
        self.uow = uow
        self.validator = validator

    async def execute(
        self, user_id: UUID, filename: Optional[str], source: AsyncReadable
    ) -> Result[AvatarUploadResponse]:
        """
        Execute upload avatar use case.

        Errors:
            - UNSUPPORTED_FILE_TYPE, FILE_TOO_LARGE, EMPTY_FILE,
              INVALID_FILE_CONTENT: validation failures, nothing stored
            - USER_NOT_FOUND: owner no longer exists
        """
        accepted = await self.validator.accept(str(user_id), filename, source)
        if accepted.is_err():
            return Return.err(accepted.error)
        asset = accepted.value

        try:
            async with self.uow:
                user = await self.uow.users.get_by_id(user_id)
                if user is None:
                    self.validator.discard(asset)
                    return Return.err(Error("USER_NOT_FOUND", "User not found"))

                previous_avatar = user.avatar or None
                user.avatar = asset.url
                await self.uow.users.update(user)

                await self.uow.audit_events.create(
                    AuditEvent(
                        user_id=user.id,
                        action="avatar_updated",
                        event_metadata={
                            "filename": asset.filename,
                            "content_type": asset.content_type,
                            "size": asset.size,
                        },
                    )
                )
                await self.uow.commit()
        except BaseException:
            # Profile was not updated: the promoted file must not outlive the request
            self.validator.discard(asset)
            raise

        logger.info(f"Avatar updated for user={user_id}: {asset.filename}")

        return Return.ok(
            AvatarUploadResponse(
                avatar=asset.url,
                content_type=asset.content_type,
                size=asset.size,
                previous_avatar=previous_avatar,
            )
        )
