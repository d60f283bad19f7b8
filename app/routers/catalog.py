"""
catalog.py

카탈로그 분류 체계(Class → Semester → Subject) API 모음.

주요 기능:
- Class / Semester / Subject 목록 조회 (공개)
- Class / Semester / Subject 생성 (관리자)
- Class / Semester / Subject 삭제 (관리자, 하위 항목 연쇄 삭제)

설계 원칙:
- 조회는 인증 없이 가능, 변경은 관리자만
- Class 이미지 / Subject 아이콘은 항상 로컬 저장소(images/)에 저장
- 삭제는 plan → DB 커밋 → 파일 정리 순서 (app.services.catalog 참고)

관련 파일:
- app.services.catalog     : 생성 검증 / 연쇄 삭제
- app.services.storage     : 파일 저장소
- app.schemas.catalog      : 요청/응답 스키마

"""

import uuid

import structlog
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.deps import get_db, get_current_admin, get_file_store
from app.core.errors import status_code_for
from app.models.catalog import SchoolClass, Semester, Subject
from app.models.user import User
from app.schemas.catalog import (
    ClassResponse,
    SemesterCreateRequest,
    SemesterResponse,
    SubjectResponse,
)
from app.services import catalog as catalog_service
from app.services.storage import FileStore, StoredFile
from app.services.uploads import read_upload

router = APIRouter(prefix="/admin", tags=["catalog"])

logger = structlog.get_logger()


def store_optional_image(file_store: FileStore, upload: UploadFile | None) -> StoredFile | None:
    if upload is None or not upload.filename:
        return None
    try:
        uploaded = read_upload(upload, max_bytes=settings.max_upload_bytes)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return file_store.store_local(uploaded.data, uploaded.filename, uploaded.mime_type, folder="images")


def discard_stored(file_store: FileStore, *refs: StoredFile | None) -> None:
    """DB 저장 실패 시 방금 올린 파일 정리."""
    for ref in refs:
        if ref is None:
            continue
        try:
            file_store.remove(ref)
        except Exception as e:
            logger.warning("orphan_upload_not_removed", locator=ref.locator, error=str(e))


"""
연쇄 삭제 실행

- DB 단계 실패 시 롤백 후 500 (파일은 건드리지 않음)
- 파일 단계 실패는 tombstone 으로 기록하고 성공 응답

"""

def run_cascade(db: Session, file_store: FileStore, plan: catalog_service.CascadePlan) -> int:
    try:
        catalog_service.apply_cascade(db, plan)
        db.commit()
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    failed = catalog_service.cleanup_files(db, file_store, plan.files)
    if failed:
        db.commit()
    return failed


def _plan_or_404(planner, db: Session, obj_id: uuid.UUID) -> catalog_service.CascadePlan:
    try:
        return planner(db, obj_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ---------------------------------------------------------------------------
# Class
# ---------------------------------------------------------------------------

@router.get("/classes", response_model=list[ClassResponse])
def list_classes(db: Session = Depends(get_db)):
    return db.scalars(
        select(SchoolClass).where(SchoolClass.is_active.is_(True)).order_by(SchoolClass.order)
    ).all()


@router.post("/classes", response_model=ClassResponse, status_code=201)
def create_class(
    name: str = Form(..., min_length=1),
    description: str | None = Form(None),
    order: int = Form(0),
    image: UploadFile | None = File(None),
    db: Session = Depends(get_db),
    file_store: FileStore = Depends(get_file_store),
    _: User = Depends(get_current_admin),
):
    stored = store_optional_image(file_store, image)

    try:
        obj = catalog_service.create_class(
            db, name=name, description=description, order=order, image=stored.url if stored else None
        )
        db.commit()
        db.refresh(obj)
    except ValueError as e:
        db.rollback()
        discard_stored(file_store, stored)
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        db.rollback()
        discard_stored(file_store, stored)
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    return obj


@router.delete("/classes/{class_id}")
def delete_class(
    class_id: uuid.UUID,
    db: Session = Depends(get_db),
    file_store: FileStore = Depends(get_file_store),
    _: User = Depends(get_current_admin),
):
    plan = _plan_or_404(catalog_service.plan_class_delete, db, class_id)
    failed = run_cascade(db, file_store, plan)
    return {"message": "Class and all related data deleted successfully", "pending_file_deletions": failed}


# ---------------------------------------------------------------------------
# Semester
# ---------------------------------------------------------------------------

@router.get("/semesters", response_model=list[SemesterResponse])
def list_semesters(
    class_id: uuid.UUID | None = Query(default=None),
    db: Session = Depends(get_db),
):
    stmt = select(Semester).where(Semester.is_active.is_(True))
    if class_id:
        stmt = stmt.where(Semester.class_id == class_id)
    return db.scalars(stmt.order_by(Semester.order)).all()


@router.post("/semesters", response_model=SemesterResponse, status_code=201)
def create_semester(
    data: SemesterCreateRequest,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_admin),
):
    try:
        semester = catalog_service.create_semester(
            db, name=data.name, class_id=data.class_id, description=data.description, order=data.order
        )
        db.commit()
        db.refresh(semester)
    except (LookupError, ValueError) as e:
        db.rollback()
        raise HTTPException(status_code=status_code_for(e), detail=str(e))
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    return semester


@router.delete("/semesters/{semester_id}")
def delete_semester(
    semester_id: uuid.UUID,
    db: Session = Depends(get_db),
    file_store: FileStore = Depends(get_file_store),
    _: User = Depends(get_current_admin),
):
    plan = _plan_or_404(catalog_service.plan_semester_delete, db, semester_id)
    failed = run_cascade(db, file_store, plan)
    return {"message": "Semester and all related data deleted successfully", "pending_file_deletions": failed}


# ---------------------------------------------------------------------------
# Subject
# ---------------------------------------------------------------------------

@router.get("/subjects", response_model=list[SubjectResponse])
def list_subjects(
    class_id: uuid.UUID | None = Query(default=None),
    semester_id: uuid.UUID | None = Query(default=None),
    db: Session = Depends(get_db),
):
    stmt = select(Subject).where(Subject.is_active.is_(True))
    if class_id:
        stmt = stmt.where(Subject.class_id == class_id)
    if semester_id:
        stmt = stmt.where(Subject.semester_id == semester_id)
    return db.scalars(stmt.order_by(Subject.order)).all()


@router.post("/subjects", response_model=SubjectResponse, status_code=201)
def create_subject(
    name: str = Form(..., min_length=1),
    class_id: uuid.UUID = Form(...),
    semester_id: uuid.UUID = Form(...),
    description: str | None = Form(None),
    order: int = Form(0),
    icon: UploadFile | None = File(None),
    db: Session = Depends(get_db),
    file_store: FileStore = Depends(get_file_store),
    _: User = Depends(get_current_admin),
):
    # 분류 검증을 먼저 해서 잘못된 요청이면 파일을 남기지 않는다
    try:
        catalog_service.check_placement(db, class_id=class_id, semester_id=semester_id)
    except (LookupError, ValueError) as e:
        raise HTTPException(status_code=status_code_for(e), detail=str(e))

    stored = store_optional_image(file_store, icon)

    try:
        subject = catalog_service.create_subject(
            db,
            name=name,
            class_id=class_id,
            semester_id=semester_id,
            description=description,
            order=order,
            icon=stored.url if stored else None,
        )
        db.commit()
        db.refresh(subject)
    except (LookupError, ValueError) as e:
        db.rollback()
        discard_stored(file_store, stored)
        raise HTTPException(status_code=status_code_for(e), detail=str(e))
    except Exception as e:
        db.rollback()
        discard_stored(file_store, stored)
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    return subject


@router.delete("/subjects/{subject_id}")
def delete_subject(
    subject_id: uuid.UUID,
    db: Session = Depends(get_db),
    file_store: FileStore = Depends(get_file_store),
    _: User = Depends(get_current_admin),
):
    plan = _plan_or_404(catalog_service.plan_subject_delete, db, subject_id)
    failed = run_cascade(db, file_store, plan)
    return {"message": "Subject and all related data deleted successfully", "pending_file_deletions": failed}
