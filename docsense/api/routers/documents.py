from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from docsense.api.deps import client_info, get_current_user, get_db, require_admin
from docsense.core.config import get_settings
from docsense.models import Document, User
from docsense.schemas.document import DocumentDetail, DocumentOut, DocumentPage, DocumentSecurity
from docsense.schemas.download_request import (
    DecisionOut,
    DecisionRequest,
    DownloadRequestCreate,
    DownloadRequestCreated,
    DownloadRequestOut,
    DownloadRequestPage,
    DownloadStatusOut,
)
from docsense.services import access_policy, document_service, download_request_service, download_token_service

router = APIRouter(prefix="/api/documents", tags=["documents"])

NO_STORE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


def _disposition(kind: str, filename: str) -> str:
    return f"{kind}; filename*=UTF-8''{quote(filename)}"


def _file_response(document: Document, kind: str, extra_headers: dict | None = None) -> StreamingResponse:
    body = document_service.stream_bytes(document)
    headers = {
        "Content-Disposition": _disposition(kind, document.original_name),
        "Content-Length": str(document.file_size),
        **(extra_headers or {}),
    }
    return StreamingResponse(body, media_type=document.mime_type, headers=headers)


@router.post(
    "/upload",
    response_model=DocumentOut,
    response_model_by_alias=False,
    status_code=status.HTTP_201_CREATED,
)
def upload_document(
    file: UploadFile = File(...),
    title: Optional[str] = Form(None),
    is_public: bool = Form(False),
    allow_download: bool = Form(False),
    tags: Optional[str] = Form(None, description="Comma separated"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    data = document_service.read_upload(file.file, get_settings().max_upload_bytes)
    return document_service.create_document(
        db,
        user,
        original_name=file.filename or "",
        data=data,
        title=title,
        is_public=is_public,
        allow_download=allow_download,
        tags=tags.split(",") if tags else None,
    )


@router.get("", response_model=DocumentPage, response_model_by_alias=False)
def list_documents(
    q: Optional[str] = None,
    file_type: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    result = document_service.list_documents(db, user, q=q, file_type=file_type, page=page, limit=limit)
    return DocumentPage(
        documents=[DocumentOut.model_validate(doc) for doc in result["items"]],
        total=result["total"],
        page=result["page"],
        totalPages=result["totalPages"],
        hasNext=result["hasNext"],
        hasPrev=result["hasPrev"],
    )


@router.get("/download")
def download_document(
    request: Request,
    token: str = Query(""),
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    """Stream a document as an attachment, consuming one unit of the token's allowance."""
    ip_address, user_agent = client_info(request)
    download_request, document = download_token_service.validate_and_consume(
        db, token, ip_address=ip_address, user_agent=user_agent
    )
    return _file_response(
        document,
        "attachment",
        {
            "X-Download-Count": str(download_request.download_count),
            "X-Max-Downloads": str(download_request.max_downloads),
        },
    )


@router.get("/admin/download-requests", response_model=DownloadRequestPage, response_model_by_alias=False)
def list_download_requests(
    status_filter: Optional[str] = Query(None, alias="status"),
    page: int = 1,
    limit: int = 10,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    result = download_request_service.list_requests(db, status=status_filter, page=page, limit=limit)
    return DownloadRequestPage(
        requests=[DownloadRequestOut.model_validate(item) for item in result["items"]],
        currentPage=result["currentPage"],
        totalPages=result["totalPages"],
        totalRequests=result["totalRequests"],
    )


@router.patch("/admin/download-requests/{request_id}", response_model=DecisionOut)
def decide_download_request(
    request_id: str,
    body: DecisionRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    decided = download_request_service.decide(
        db,
        request_id,
        admin,
        body.action,
        max_downloads=body.maxDownloads,
        rejection_reason=body.reason,
    )
    return DecisionOut(requestId=decided.id, status=decided.status.value, downloadToken=decided.download_token)


@router.get("/{document_id}", response_model=DocumentDetail, response_model_by_alias=False)
def get_document(document_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    document = document_service.get_for_viewer(db, document_id, user)
    document_service.touch_last_accessed(db, document)
    detail = DocumentOut.model_validate(document).model_dump()
    return DocumentDetail(
        **detail,
        security=DocumentSecurity.model_validate(document),
        canDownloadDirectly=access_policy.can_download_directly(document, user.id, user.role),
    )


@router.get("/{document_id}/view")
def view_document(document_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    document = document_service.get_for_viewer(db, document_id, user)
    response = _file_response(document, "inline", NO_STORE_HEADERS)
    document_service.touch_last_accessed(db, document)
    return response


@router.get("/{document_id}/download-status", response_model=DownloadStatusOut)
def download_status(document_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return download_request_service.get_status(db, document_id, user.id)


@router.post(
    "/{document_id}/request-download",
    response_model=DownloadRequestCreated,
    status_code=status.HTTP_201_CREATED,
)
def request_download(
    document_id: str,
    body: DownloadRequestCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    ip_address, user_agent = client_info(request)
    created = download_request_service.create_request(
        db, document_id, user.id, body.reason, ip_address=ip_address, user_agent=user_agent
    )
    return DownloadRequestCreated(requestId=created.id, status=created.status.value)


@router.delete("/{document_id}")
def delete_document(document_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    document_service.delete_document(db, document_id, user)
    return {"message": "Document deleted successfully"}
