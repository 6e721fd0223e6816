"""Profile picture endpoints under /v1/user/self/pic."""

from typing import Annotated

from fastapi import APIRouter, File, Request, Response, UploadFile, status

from webapp.api.deps import CurrentAccount, Media
from webapp.core.file_validation import read_file_with_size_limit
from webapp.core.responses import DataResponse
from webapp.schemas.media import MediaAttachmentView

router = APIRouter()

_PIC_PATH = "/user/self/pic"


@router.post(_PIC_PATH, status_code=status.HTTP_201_CREATED)
async def upload_profile_pic(
    request: Request,
    account: CurrentAccount,
    media: Media,
    profile_pic: Annotated[UploadFile, File(alias="profilePic")],
) -> DataResponse[MediaAttachmentView]:
    """Upload a profile picture, replacing the current one."""
    max_size = request.app.state.settings.media_max_upload_mb * 1024 * 1024
    content = await read_file_with_size_limit(profile_pic, max_size)
    attachment = await media.upload(
        account.id, content, profile_pic.content_type, profile_pic.filename
    )
    return DataResponse(data=attachment)


@router.get(_PIC_PATH)
async def get_profile_pic(
    account: CurrentAccount, media: Media
) -> DataResponse[MediaAttachmentView]:
    """Return profile picture metadata."""
    return DataResponse(data=await media.get(account.id))


@router.delete(_PIC_PATH, status_code=status.HTTP_204_NO_CONTENT)
async def delete_profile_pic(account: CurrentAccount, media: Media) -> Response:
    """Delete the profile picture."""
    await media.delete(account.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
