"""
services/delivery.py

구매 권한 기반 파일 전달(다운로드 / 미리보기) 로직.

주요 기능:
- 접근 판정: 무료 항목 / 권한 보유 / 결제 완료 주문 중 하나면 허용
- 다운로드 카운터 / 조회수 증가
- 파일 참조 해석
  * REMOTE → Drive 직접 다운로드 URL 또는 미리보기 URL (JSON 응답)
  * LOCAL  → 디스크 경로 + Content-Type + 저장 파일명 (스트리밍 응답)

설계 원칙:
- 카운터 증가는 정보성 지표이므로 원자적 증가를 보장하지 않는다
- 응답 객체(FileResponse 등)는 라우터에서 만든다
- 미리보기는 구매 여부와 무관하지만 인증은 필요

관련 파일:
- app.services.storage      : 파일 참조 / URL 변환
- app.services.entitlements : 권한 조회
- app.routers.customer / projects

"""

import re
import uuid
from dataclasses import dataclass
from pathlib import Path

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import AccessDeniedError, NotFoundError
from app.models.catalog import Content, ContentType, FileKind, Project
from app.models.order import Order, OrderStatus
from app.services.entitlements import owns_content, owns_project
from app.services.storage import (
    FileStore,
    extract_remote_id,
    file_ref_of,
    remote_download_url,
    remote_preview_url,
)

_UNSAFE_FILENAME_RE = re.compile(r"[^a-zA-Z0-9._-]")

MEDIA_TYPES = {
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".zip": "application/zip",
}

# 미리보기 응답에 붙이는 헤더 (캐시 금지 + 스크립트 실행 차단)
PREVIEW_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
    "Content-Security-Policy": "default-src 'none'; img-src 'self'; media-src 'self'; style-src 'unsafe-inline'; sandbox",
    "X-Content-Type-Options": "nosniff",
}


@dataclass
class RemoteDownload:
    direct_url: str
    file_name: str
    file_type: str | None = None


@dataclass
class RemotePreview:
    preview_url: str
    file_type: str


@dataclass
class LocalFile:
    path: Path
    media_type: str
    filename: str


def safe_filename(title: str, suffix: str) -> str:
    return _UNSAFE_FILENAME_RE.sub("_", title) + suffix


def _has_paid_order(db: Session, user_id: uuid.UUID, *, content_id=None, project_id=None) -> bool:
    stmt = select(Order.id).where(Order.user_id == user_id, Order.status == OrderStatus.SUCCESSFUL)
    if content_id is not None:
        stmt = stmt.where(Order.content_id == content_id)
    else:
        stmt = stmt.where(Order.project_id == project_id)
    return db.scalar(stmt.limit(1)) is not None


def can_download_content(db: Session, user_id: uuid.UUID, content: Content) -> bool:
    return (
        content.is_free
        or owns_content(db, user_id, content.id)
        or _has_paid_order(db, user_id, content_id=content.id)
    )


def can_download_project(db: Session, user_id: uuid.UUID, project: Project) -> bool:
    return (
        project.is_free
        or owns_project(db, user_id, project.id)
        or _has_paid_order(db, user_id, project_id=project.id)
    )


def _remote_id(item) -> str | None:
    return item.file_id or extract_remote_id(item.file_url) or extract_remote_id(item.view_url)


def _remote_extension(item, fallback: str) -> str:
    if item.file_name and Path(item.file_name).suffix:
        return Path(item.file_name).suffix.lower()
    return fallback


def _content_media_type(content: Content, ext: str) -> str:
    if ext == ".pdf" or content.type in (ContentType.PDF_NOTES, ContentType.PREVIOUS_YEAR):
        return "application/pdf"
    if ext == ".mp4" or content.type == ContentType.VIDEO_LECTURES:
        return "video/mp4"
    return MEDIA_TYPES.get(ext, "application/octet-stream")


def _existing_local_path(file_store: FileStore, stored_path: str | None) -> Path:
    if not stored_path:
        raise NotFoundError("File not found")
    try:
        path = file_store.local_path(stored_path)
    except ValueError:
        raise NotFoundError("File not found")
    if not path.is_file():
        raise NotFoundError("File not found")
    return path


"""
콘텐츠 다운로드

- 콘텐츠 없음 → NotFoundError
- 미구매 유료 콘텐츠 → AccessDeniedError
- 허용 시 downloads + 1 후 파일 참조 해석

"""

def download_content(db: Session, file_store: FileStore, *, user_id: uuid.UUID, content_id: uuid.UUID):
    content = db.get(Content, content_id)
    if content is None:
        raise NotFoundError("Content not found")
    if not can_download_content(db, user_id, content):
        raise AccessDeniedError("Content not purchased")

    content.downloads = (content.downloads or 0) + 1
    db.flush()

    ref = file_ref_of(content)
    if ref.kind == FileKind.REMOTE:
        file_id = _remote_id(content)
        fallback = ".mp4" if content.type == ContentType.VIDEO_LECTURES else ".pdf"
        return RemoteDownload(
            direct_url=remote_download_url(file_id) if file_id else content.file_url,
            file_name=content.title + _remote_extension(content, fallback),
            file_type=content.type.value,
        )

    path = _existing_local_path(file_store, content.file_url)
    ext = path.suffix.lower()
    return LocalFile(
        path=path,
        media_type=_content_media_type(content, ext),
        filename=safe_filename(content.title, ext),
    )


def download_project(db: Session, file_store: FileStore, *, user_id: uuid.UUID, project_id: uuid.UUID):
    project = db.get(Project, project_id)
    if project is None:
        raise NotFoundError("Project not found")
    if not can_download_project(db, user_id, project):
        raise AccessDeniedError("Project not purchased")

    project.downloads = (project.downloads or 0) + 1
    db.flush()

    ref = file_ref_of(project)
    if ref.kind == FileKind.REMOTE:
        file_id = _remote_id(project)
        return RemoteDownload(
            direct_url=remote_download_url(file_id) if file_id else project.file_url,
            file_name=project.title + _remote_extension(project, ".zip"),
        )

    path = _existing_local_path(file_store, project.file_url)
    ext = path.suffix.lower()
    return LocalFile(
        path=path,
        media_type=MEDIA_TYPES.get(ext, "application/octet-stream"),
        filename=safe_filename(project.title, ext),
    )


def preview_content(db: Session, file_store: FileStore, *, content_id: uuid.UUID):
    """미리보기. 구매 여부는 보지 않고 views 만 증가."""
    content = db.get(Content, content_id)
    if content is None:
        raise NotFoundError("Content not found")

    content.views = (content.views or 0) + 1
    db.flush()

    ref = file_ref_of(content)
    if ref.kind == FileKind.REMOTE:
        file_id = _remote_id(content)
        return RemotePreview(
            preview_url=remote_preview_url(file_id) if file_id else (content.view_url or content.file_url),
            file_type="video" if content.type == ContentType.VIDEO_LECTURES else "pdf",
        )

    path = _existing_local_path(file_store, content.file_url)
    ext = path.suffix.lower()
    return LocalFile(
        path=path,
        media_type=MEDIA_TYPES.get(ext, "application/octet-stream"),
        filename=safe_filename(content.title, ext),
    )
