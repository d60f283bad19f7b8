"""
projects.py

프로젝트(Project) API 모음.

주요 기능:
- 프로젝트 목록 조회 (필터 / 검색 / 정렬 / 페이지네이션)
- 프로젝트 단건 조회
- 프로젝트 등록 / 삭제 (관리자)
- 프로젝트 다운로드 (무료 또는 구매한 사용자)

관련 파일:
- app.services.catalog     : 생성 / 목록 / 삭제 로직
- app.services.delivery    : 다운로드 권한 판정 / 파일 해석

"""

import uuid

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.deps import get_db, get_current_admin, get_current_user, get_file_store
from app.core.errors import AccessDeniedError, NotFoundError, UpstreamServiceError, status_code_for
from app.models.catalog import Difficulty
from app.models.user import User
from app.routers.catalog import discard_stored, run_cascade
from app.routers.customer import delivery_response
from app.schemas.catalog import ProjectListResponse, ProjectResponse
from app.services import catalog as catalog_service
from app.services.delivery import download_project
from app.services.storage import FileStore
from app.services.uploads import read_upload, split_csv

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("", response_model=ProjectListResponse)
def list_projects(
    subject_id: uuid.UUID | None = Query(default=None),
    class_id: uuid.UUID | None = Query(default=None),
    difficulty: Difficulty | None = Query(default=None),
    search: str | None = Query(default=None),
    sort: str | None = Query(default=None, pattern="^(newest|popular|price)$"),
    limit: int = Query(default=10, ge=1, le=100),
    page: int = Query(default=1, ge=1),
    db: Session = Depends(get_db),
):
    items, total, pages = catalog_service.list_projects(
        db,
        subject_id=subject_id,
        class_id=class_id,
        difficulty=difficulty,
        search=search,
        sort=sort,
        limit=limit,
        page=page,
    )
    return ProjectListResponse(projects=items, page=page, pages=pages, total=total)


@router.get("/download/{project_id}")
def download(
    project_id: uuid.UUID,
    db: Session = Depends(get_db),
    file_store: FileStore = Depends(get_file_store),
    current_user: User = Depends(get_current_user),
):
    try:
        result = download_project(db, file_store, user_id=current_user.id, project_id=project_id)
        db.commit()
    except (NotFoundError, AccessDeniedError) as e:
        db.rollback()
        raise HTTPException(status_code=status_code_for(e), detail=str(e))

    return delivery_response(result, inline=False)


@router.get("/{project_id}", response_model=ProjectResponse)
def get_project(project_id: uuid.UUID, db: Session = Depends(get_db)):
    try:
        return catalog_service.get_project(db, project_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("", response_model=ProjectResponse, status_code=201)
def create_project(
    title: str = Form(..., min_length=1),
    description: str = Form(..., min_length=1),
    class_id: uuid.UUID = Form(...),
    subject_id: uuid.UUID = Form(...),
    price: int = Form(0, ge=0),
    is_free: bool = Form(False),
    difficulty: Difficulty = Form(Difficulty.BEGINNER),
    technologies: str | None = Form(None),
    tags: str | None = Form(None),
    file: UploadFile = File(...),
    thumbnail: UploadFile | None = File(None),
    db: Session = Depends(get_db),
    file_store: FileStore = Depends(get_file_store),
    _: User = Depends(get_current_admin),
):
    try:
        catalog_service.check_placement(db, class_id=class_id, subject_id=subject_id)
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
        project = catalog_service.create_project(
            db,
            stored=stored,
            thumbnail_url=thumb.url if thumb else None,
            title=title,
            description=description,
            class_id=class_id,
            subject_id=subject_id,
            price=price,
            is_free=is_free,
            difficulty=difficulty,
            technologies=split_csv(technologies),
            tags=split_csv(tags),
        )
        db.commit()
        db.refresh(project)
    except Exception as e:
        db.rollback()
        discard_stored(file_store, stored, thumb)
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    return project


@router.delete("/{project_id}")
def delete_project(
    project_id: uuid.UUID,
    db: Session = Depends(get_db),
    file_store: FileStore = Depends(get_file_store),
    _: User = Depends(get_current_admin),
):
    try:
        plan = catalog_service.plan_project_delete(db, project_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))

    failed = run_cascade(db, file_store, plan)
    return {"message": "Project deleted successfully", "pending_file_deletions": failed}
