"""
파일 업로드/다운로드 API입니다.

- 공개 업로드: file_url로 바로 내려받을 수 있음
- 비공개 업로드: 서명 URL로만 내려받을 수 있음
"""

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import FileResponse

from proposaliq.api.deps import get_current_user
from proposaliq.exceptions import NotFoundError
from proposaliq.models import SignedUrlRequest, User
from proposaliq.services import get_file_storage
from proposaliq.utils import validate_upload

router = APIRouter()


@router.post("/upload")
async def upload_file(file: UploadFile = File(...), user: User = Depends(get_current_user)) -> dict:
    """파일을 검증 후 저장하고 file_url을 돌려줍니다."""
    content = await file.read()
    safe_name, _ = validate_upload(file.filename or "", content)
    return await get_file_storage().save_upload(content, safe_name)


@router.get("/public/{file_id}/{filename}")
async def download_public_file(file_id: str, filename: str):
    path = get_file_storage().get_upload_path(file_id, filename)
    if not path.exists():
        raise NotFoundError("File not found", details={"file_id": file_id})
    return FileResponse(path, filename=filename)


@router.post("/private")
async def upload_private_file(file: UploadFile = File(...), user: User = Depends(get_current_user)) -> dict:
    content = await file.read()
    safe_name, _ = validate_upload(file.filename or "", content)
    file_uri = await get_file_storage().save_private(content, safe_name)
    return {"file_uri": file_uri}


@router.post("/signed-url")
async def create_signed_url(request: SignedUrlRequest, user: User = Depends(get_current_user)) -> dict:
    """비공개 파일의 시간 제한 다운로드 URL을 만듭니다."""
    signed_url = get_file_storage().create_signed_url(request.file_uri, request.expires_in)
    return {"signed_url": signed_url}


@router.get("/signed/{token}")
async def download_signed_file(token: str):
    path = get_file_storage().resolve_signed_token(token)
    return FileResponse(path, filename=path.name)
