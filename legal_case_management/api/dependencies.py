from fastapi import Header, Request, UploadFile

from legal_case_management.models.documents import UploadedFile
from legal_case_management.services.legal_system import LegalCaseSystem


def get_system(request: Request) -> LegalCaseSystem:
    return request.app.state.system


def get_requester(x_user_id: str | None = Header(default=None)) -> str | None:
    """Acting user, taken from the ``X-User-Id`` header when the gateway supplies it."""
    return x_user_id


async def read_upload(file: UploadFile) -> UploadedFile:
    content = await file.read()
    return UploadedFile(
        filename=file.filename or "document",
        content_type=file.content_type or "application/octet-stream",
        content=content,
    )
