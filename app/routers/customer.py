"""
customer.py

구매자(Customer) 전용 API 모음.

주요 기능:
- 대시보드: 구매 항목 / 추천 / 무료 / 인기 콘텐츠 (각 최대 5개)
- 콘텐츠 다운로드 (무료 또는 구매한 사용자만)
- 콘텐츠 미리보기 (로그인 사용자, 구매 여부 무관)

설계 원칙:
- 원격(Drive) 파일은 URL 을 JSON 으로 반환, 로컬 파일은 직접 스트리밍
- 미리보기 응답은 캐시 금지 + 스크립트 차단 헤더를 붙인다

관련 파일:
- app.services.delivery    : 권한 판정 / 파일 해석
- app.services.entitlements: 구매 항목 조회

"""

import uuid

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse
from sqlalchemy import select, desc
from sqlalchemy.orm import Session

from app.core.deps import get_db, get_current_user, get_file_store
from app.core.errors import AccessDeniedError, NotFoundError, status_code_for
from app.models.catalog import Content, Project
from app.models.user import User
from app.schemas.catalog import DashboardResponse
from app.services.delivery import (
    PREVIEW_HEADERS,
    LocalFile,
    RemoteDownload,
    RemotePreview,
    download_content,
    preview_content,
)
from app.services.entitlements import content_ids_for, project_ids_for
from app.services.storage import FileStore

router = APIRouter(prefix="/customer", tags=["customer"])

DASHBOARD_LIMIT = 5


def delivery_response(result, *, inline: bool):
    if isinstance(result, RemoteDownload):
        body = {"direct_url": result.direct_url, "file_name": result.file_name}
        if result.file_type is not None:
            body["file_type"] = result.file_type
        return body
    if isinstance(result, RemotePreview):
        return {"preview_url": result.preview_url, "file_type": result.file_type}

    if not isinstance(result, LocalFile):
        raise TypeError(f"Unsupported delivery result: {type(result).__name__}")
    if inline:
        return FileResponse(
            result.path,
            media_type=result.media_type,
            headers=PREVIEW_HEADERS,
            filename=result.filename,
            content_disposition_type="inline",
        )
    return FileResponse(result.path, media_type=result.media_type, filename=result.filename)


@router.get("/dashboard", response_model=DashboardResponse)
def dashboard(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    owned_content = content_ids_for(db, current_user.id)
    owned_projects = project_ids_for(db, current_user.id)

    def contents(stmt):
        return db.scalars(stmt.limit(DASHBOARD_LIMIT)).all()

    newest_content = select(Content).order_by(desc(Content.created_at))
    newest_projects = select(Project).order_by(desc(Project.created_at))
    paid_content = select(Content).where(Content.is_free.is_(False), Content.id.not_in(owned_content))
    paid_projects = newest_projects.where(Project.is_free.is_(False), Project.id.not_in(owned_projects))

    return DashboardResponse(
        purchased_content=contents(newest_content.where(Content.id.in_(owned_content))) if owned_content else [],
        purchased_projects=contents(newest_projects.where(Project.id.in_(owned_projects))) if owned_projects else [],
        recommended_content=contents(paid_content.order_by(desc(Content.created_at))),
        recommended_projects=contents(paid_projects),
        free_content=contents(newest_content.where(Content.is_free.is_(True))),
        free_projects=contents(newest_projects.where(Project.is_free.is_(True))),
        popular_content=contents(paid_content.order_by(desc(Content.downloads))),
    )


"""
콘텐츠 다운로드 API

- 무료 콘텐츠 또는 구매한 콘텐츠만 가능 (그 외 403)
- 다운로드 수 증가 후 파일 전달

"""

@router.get("/download/{content_id}")
def download(
    content_id: uuid.UUID,
    db: Session = Depends(get_db),
    file_store: FileStore = Depends(get_file_store),
    current_user: User = Depends(get_current_user),
):
    try:
        result = download_content(db, file_store, user_id=current_user.id, content_id=content_id)
        db.commit()
    except (NotFoundError, AccessDeniedError) as e:
        db.rollback()
        raise HTTPException(status_code=status_code_for(e), detail=str(e))

    return delivery_response(result, inline=False)


@router.get("/preview/{content_id}")
def preview(
    content_id: uuid.UUID,
    db: Session = Depends(get_db),
    file_store: FileStore = Depends(get_file_store),
    _: User = Depends(get_current_user),
):
    try:
        result = preview_content(db, file_store, content_id=content_id)
        db.commit()
    except NotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    return delivery_response(result, inline=True)
