"""
content.py

학습 콘텐츠(Content) API 모음.

주요 기능:
- 콘텐츠 목록 조회 (필터 / 검색 / 정렬 / 페이지네이션)
- 콘텐츠 단건 조회
- 콘텐츠 등록 (관리자, multipart: file + thumbnail)
- 콘텐츠 삭제 (관리자, 권한 회수 + 파일 정리)

설계 원칙:
- 조회 응답에는 파일 URL / Drive ID 를 포함하지 않음
  (다운로드는 /customer/download 를 통해서만)
- 본 파일은 설정된 저장소(local / drive), 썸네일은 항상 로컬

관련 파일:
- app.services.catalog     : 생성 / 목록 / 삭제 로직
- app.services.uploads     : 업로드 검증
- app.routers.customer     : 다운로드 / 미리보기

"""

import uuid

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.deps import get_db, get_current_admin, get_file_store
from app.core.errors import UpstreamServiceError, status_code_for
from app.models.catalog import ContentType
from app.models.user import User
from app.routers.catalog import discard_stored, run_cascade
from app.schemas.catalog import ContentListResponse, ContentResponse
from app.services import catalog as catalog_service
from app.services.storage import FileStore
from app.services.uploads import read_upload, split_csv

router = APIRouter(prefix="/content", tags=["content"])


@router.get("", response_model=ContentListResponse)
def list_contents(
    content_type: ContentType | None = Query(default=None, alias="type"),
    subject_id: uuid.UUID | None = Query(default=None),
    class_id: uuid.UUID | None = Query(default=None),
    semester_id: uuid.UUID | None = Query(default=None),
    search: str | None = Query(default=None),
    sort: str | None = Query(default=None, pattern="^(newest|popular|price)$"),
    limit: int = Query(default=10, ge=1, le=100),
    page: int = Query(default=1, ge=1),
    db: Session = Depends(get_db),
):
    items, total, pages = catalog_service.list_contents(
        db,
        type=content_type,
        subject_id=subject_id,
        class_id=class_id,
        semester_id=semester_id,
        search=search,
        sort=sort,
        limit=limit,
        page=page,
    )
    return ContentListResponse(contents=items, page=page, pages=pages, total=total)


@router.get("/{content_id}", response_model=ContentResponse)
def get_content(content_id: uuid.UUID, db: Session = Depends(get_db)):
    try:
        return catalog_service.get_content(db, content_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))


"""
콘텐츠 등록 API

- class / semester / subject 관계 검증 후 파일 업로드
- 업로드 실패(Drive 오류 등) 시 500 + 원인 메시지
- DB 저장 실패 시 업로드한 파일 정리

"""

@router.post("", response_model=ContentResponse, status_code=201)
def create_content(
    title: str = Form(..., min_length=1),
    description: str = Form(..., min_length=1),
    content_type: ContentType = Form(..., alias="type"),
    class_id: uuid.UUID = Form(...),
    semester_id: uuid.UUID = Form(...),
    subject_id: uuid.UUID = Form(...),
    price: int = Form(0, ge=0),
    is_free: bool = Form(False),
    duration: int = Form(0, ge=0),
    tags: str | None = Form(None),
    file: UploadFile = File(...),
    thumbnail: UploadFile | None = File(None),
    db: Session = Depends(get_db),
    file_store: FileStore = Depends(get_file_store),
    _: User = Depends(get_current_admin),
):
    try:
        catalog_service.check_placement(db, class_id=class_id, semester_id=semester_id, subject_id=subject_id)
        main_upload = read_upload(file, max_bytes=settings.max_upload_bytes)
        thumb_upload = (
            read_upload(thumbnail, max_bytes=settings.max_upload_bytes)
            if thumbnail is not None and thumbnail.filename
            else None
        )
    except (LookupError, ValueError) as e:
        raise HTTPException(status_code=status_code_for(e), detail=str(e))

    try:
        stored = file_store.store(main_upload.data, main_upload.filename, main_upload.mime_type)
    except UpstreamServiceError as e:
        raise HTTPException(status_code=500, detail=e.message)

    thumb = None
    if thumb_upload is not None:
        thumb = file_store.store_local(thumb_upload.data, thumb_upload.filename, thumb_upload.mime_type)

    try:
        content = catalog_service.create_content(
            db,
            stored=stored,
            thumbnail_url=thumb.url if thumb else None,
            title=title,
            description=description,
            type=content_type,
            class_id=class_id,
            semester_id=semester_id,
            subject_id=subject_id,
            price=price,
            is_free=is_free,
            duration=duration,
            tags=split_csv(tags),
        )
        db.commit()
        db.refresh(content)
    except Exception as e:
        db.rollback()
        discard_stored(file_store, stored, thumb)
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    return content


@router.delete("/{content_id}")
def delete_content(
    content_id: uuid.UUID,
    db: Session = Depends(get_db),
    file_store: FileStore = Depends(get_file_store),
    _: User = Depends(get_current_admin),
):
    try:
        plan = catalog_service.plan_content_delete(db, content_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))

    failed = run_cascade(db, file_store, plan)
    return {"message": "Content deleted successfully", "pending_file_deletions": failed}
