from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from pydantic import BaseModel

from src.api.error import ClientError, ServerError
from src.api.utils.form_stream import MultipartFileStream, MultipartStreamError
from src.api.utils.uploads import UploadValidator
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.profile import GetProfileUseCase, ProfileResponse, UploadAvatarUseCase
from src.depends import api_rate_limit, get_current_user_id, get_unit_of_work, get_upload_validator
from src.libs.result import Error

router = APIRouter(prefix="/profile", tags=["Profile"], dependencies=[Depends(api_rate_limit)])

AVATAR_FIELD = "avatar"
# Room for multipart boundaries and part headers on top of the file itself
MULTIPART_OVERHEAD_BYTES = 16 * 1024


class AvatarResponse(BaseModel):
    """POST /profile/avatar response payload"""
    avatar: str
    content_type: str
    size: int


UPLOAD_ERROR_STATUS = {
    "UNSUPPORTED_FILE_TYPE": status.HTTP_400_BAD_REQUEST,
    "EMPTY_FILE": status.HTTP_400_BAD_REQUEST,
    "INVALID_FILE_CONTENT": status.HTTP_400_BAD_REQUEST,
    "NO_FILE": status.HTTP_400_BAD_REQUEST,
    "FILE_TOO_LARGE": status.HTTP_413_CONTENT_TOO_LARGE,
    "USER_NOT_FOUND": status.HTTP_404_NOT_FOUND,
}


@router.get("", status_code=status.HTTP_200_OK, response_model=ProfileResponse)
async def get_profile(
    user_id: UUID = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """
    Profile of the authenticated user

    Raises:
        - 401 Unauthorized: Missing, expired or invalid token
        - 404 Not Found: Account no longer exists
    """
    use_case = GetProfileUseCase(uow)
    result = await use_case.execute(user_id)

    if result.is_err():
        error = result.error
        if error.code == "USER_NOT_FOUND":
            raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
        raise ServerError(error)

    return result.value


@router.post("/avatar", status_code=status.HTTP_200_OK, response_model=AvatarResponse)
async def upload_avatar(
    request: Request,
    background_tasks: BackgroundTasks,
    user_id: UUID = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
    validator: UploadValidator = Depends(get_upload_validator),
):
    """
    Replace the authenticated user's avatar (multipart field ``avatar``).

    The body is streamed rather than parsed through a File() parameter: an
    oversized declared Content-Length is refused before any byte is read,
    the extension is checked as soon as the part headers arrive, and reading
    stops once the size limit is passed.

    Raises:
        - 400 Bad Request: Missing file, malformed body, disallowed
          extension, empty file or content that is not an image
        - 413 Content Too Large: File over the size limit
    """
    declared = request.headers.get("content-length")
    if declared and declared.isdigit():
        if int(declared) > validator.max_bytes + MULTIPART_OVERHEAD_BYTES:
            raise ClientError(
                Error(
                    "FILE_TOO_LARGE",
                    f"File too large. Maximum size: {validator.max_bytes // (1024 * 1024)}MB",
                ),
                status_code=status.HTTP_413_CONTENT_TOO_LARGE,
            )

    no_file = ClientError(
        Error("NO_FILE", f"No file uploaded in field '{AVATAR_FIELD}'"),
        status_code=status.HTTP_400_BAD_REQUEST,
    )
    content_type = request.headers.get("content-type", "")
    if not content_type.startswith("multipart/form-data"):
        raise no_file

    try:
        upload = MultipartFileStream(
            request.stream(),
            content_type,
            AVATAR_FIELD,
            max_preamble_bytes=MULTIPART_OVERHEAD_BYTES,
        )
        filename = await upload.open()
        if not filename:
            raise no_file

        use_case = UploadAvatarUseCase(uow, validator)
        result = await use_case.execute(user_id, filename, upload)
    except MultipartStreamError as exc:
        raise ClientError(
            Error("MALFORMED_MULTIPART", str(exc)), status_code=status.HTTP_400_BAD_REQUEST
        )

    if result.is_err():
        error = result.error
        if error.code in UPLOAD_ERROR_STATUS:
            raise ClientError(error, status_code=UPLOAD_ERROR_STATUS[error.code])
        raise ServerError(error)

    response = result.value
    if response.previous_avatar and response.previous_avatar != response.avatar:
        background_tasks.add_task(validator.delete_by_url, response.previous_avatar)

    return AvatarResponse(
        avatar=response.avatar, content_type=response.content_type, size=response.size
    )
