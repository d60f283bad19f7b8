"""
services/storage.py

파일 저장소 게이트웨이.

업로드된 파일을 로컬 디스크 또는 Google Drive 에 저장/삭제하고,
카탈로그 레코드에 남길 파일 참조(StoredFile)를 만든다.

주요 기능:
- LocalStorage  : uploads/ 하위 폴더(documents, images, videos, archives, thumbnails)에 저장
- DriveStorage  : Drive v3 업로드 + 공개 읽기 권한 부여 + 다운로드 URL 생성
- FileStore     : 두 저장소를 묶어 라우터에 주입되는 단일 객체
- Drive URL 에서 객체 ID 추출 / 다운로드·미리보기 URL 변환

설계 원칙:
- 전역 클라이언트 없음. 앱 시작 시 build_file_store()로 한 번 만들어
  app.state 에 두고 get_file_store 의존성으로 전달
- 세션별 자격 증명 교체는 DriveStorage.with_credentials(credentials)로 새 인스턴스를 만든다
- 파일 종류(LOCAL / REMOTE)는 저장 시점에 결정되어 레코드에 기록된다
- 삭제 시 "이미 없음"은 성공으로 취급

관련 파일:
- app.models.catalog       : FileKind / 파일 참조 컬럼
- app.services.catalog     : 삭제 시 파일 정리
- app.services.delivery    : 다운로드 / 미리보기 경로 결정

"""

import io
import re
import time
import uuid
from dataclasses import dataclass
from pathlib import Path

import httplib2
import structlog
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload

from app.core.errors import UpstreamServiceError
from app.models.catalog import FileKind

logger = structlog.get_logger()

DRIVE_HOST = "drive.google.com"
DRIVE_ID_RE = re.compile(r"[-\w]{25,}")

# 예전(multer) 레코드는 "uploads/documents/..." 처럼 루트 폴더명을 포함해 저장됨
LEGACY_UPLOAD_PREFIX = "uploads"

# Drive 호출 중 네트워크 계층에서 올라오는 오류 (DNS, 연결, TLS, 타임아웃)
DRIVE_TRANSPORT_ERRORS = (GoogleAuthError, httplib2.HttpLib2Error, OSError)


@dataclass(frozen=True)
class StoredFile:
    kind: FileKind
    url: str
    file_id: str | None = None
    view_url: str | None = None
    file_name: str | None = None
    mime_type: str | None = None

    @property
    def locator(self) -> str:
        """삭제에 쓰는 식별자: 로컬은 경로, 원격은 Drive 파일 ID."""
        if self.kind == FileKind.LOCAL:
            return self.url
        return self.file_id or extract_remote_id(self.view_url or self.url) or self.url


def extract_remote_id(url: str | None) -> str | None:
    if not url:
        return None
    match = DRIVE_ID_RE.search(url)
    return match.group(0) if match else None


def remote_download_url(file_id: str) -> str:
    return f"https://{DRIVE_HOST}/uc?id={file_id}&export=download"


def remote_preview_url(file_id: str) -> str:
    return f"https://{DRIVE_HOST}/file/d/{file_id}/preview"


def file_ref_of(item) -> StoredFile:
    """카탈로그 항목(Content / Project)의 본 파일 참조.

    file_kind 가 기록된 레코드는 그대로 사용하고,
    file_kind 가 없는 예전 레코드는 URL 에 Drive 호스트가 있는지로 판별한다.
    """
    kind = item.file_kind
    if kind is None:
        urls = (item.file_url or "", item.view_url or "")
        kind = FileKind.REMOTE if any(DRIVE_HOST in u for u in urls) else FileKind.LOCAL

    return StoredFile(
        kind=kind,
        url=item.file_url,
        file_id=item.file_id,
        view_url=item.view_url,
        file_name=item.file_name,
    )


class LocalStorage:
    def __init__(self, root: str | Path):
        self.root = Path(root)

    @staticmethod
    def folder_for(mime_type: str | None) -> str:
        mime_type = mime_type or ""
        if mime_type.startswith("video"):
            return "videos"
        if mime_type.startswith("image"):
            return "images"
        if "zip" in mime_type:
            return "archives"
        return "documents"

    def store(self, data: bytes, filename: str, mime_type: str | None, folder: str | None = None) -> StoredFile:
        folder = folder or self.folder_for(mime_type)
        target_dir = self.root / folder
        target_dir.mkdir(parents=True, exist_ok=True)

        suffix = Path(filename).suffix.lower()
        name = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:12]}{suffix}"
        (target_dir / name).write_bytes(data)

        logger.info("local_file_stored", path=f"{folder}/{name}", size=len(data))
        return StoredFile(
            kind=FileKind.LOCAL,
            url=f"{folder}/{name}",
            file_name=filename,
            mime_type=mime_type,
        )

    def resolve(self, stored_path: str) -> Path:
        parts = Path(stored_path).parts
        if parts and parts[0] == LEGACY_UPLOAD_PREFIX:
            parts = parts[1:]
        if not parts:
            raise ValueError("Empty file path")

        root = self.root.resolve()
        full = root.joinpath(*parts).resolve()
        if root not in full.parents:
            raise ValueError("File path escapes upload directory")
        return full

    def remove(self, stored_path: str) -> None:
        path = self.resolve(stored_path)
        path.unlink(missing_ok=True)
        logger.info("local_file_removed", path=stored_path)


class DriveStorage:
    SCOPES = ["https://www.googleapis.com/auth/drive"]

    def __init__(self, service, folder_id: str | None = None):
        self.service = service
        self.folder_id = folder_id

    @classmethod
    def from_service_account(cls, key_file: str, folder_id: str | None = None, credentials=None) -> "DriveStorage":
        creds = credentials or service_account.Credentials.from_service_account_file(key_file, scopes=cls.SCOPES)
        return cls(build("drive", "v3", credentials=creds, cache_discovery=False), folder_id)

    def with_credentials(self, credentials) -> "DriveStorage":
        return DriveStorage(build("drive", "v3", credentials=credentials, cache_discovery=False), self.folder_id)

    def store(self, data: bytes, filename: str, mime_type: str | None) -> StoredFile:
        mime_type = mime_type or "application/octet-stream"
        metadata = {"name": f"{int(time.time() * 1000)}-{filename}"}
        if self.folder_id:
            metadata["parents"] = [self.folder_id]

        media = MediaIoBaseUpload(io.BytesIO(data), mimetype=mime_type, resumable=False)

        try:
            created = (
                self.service.files()
                .create(body=metadata, media_body=media, fields="id,name,webViewLink,mimeType")
                .execute()
            )
            file_id = created["id"]

            # 링크만 있으면 누구나 읽기 가능
            self.service.permissions().create(
                fileId=file_id,
                body={"role": "reader", "type": "anyone"},
            ).execute()

            info = self.service.files().get(fileId=file_id, fields="webContentLink,webViewLink,mimeType").execute()
        except (HttpError, *DRIVE_TRANSPORT_ERRORS) as e:
            logger.error("drive_upload_failed", filename=filename, error=str(e))
            raise UpstreamServiceError("drive", f"Failed to upload file to Google Drive: {e}")

        download_url = info.get("webContentLink") or remote_download_url(file_id)
        if "export=download" not in download_url:
            sep = "&" if "?" in download_url else "?"
            download_url = f"{download_url}{sep}export=download"

        logger.info("drive_file_stored", file_id=file_id, filename=filename)
        return StoredFile(
            kind=FileKind.REMOTE,
            url=download_url,
            file_id=file_id,
            view_url=info.get("webViewLink") or created.get("webViewLink"),
            file_name=filename,
            mime_type=info.get("mimeType") or mime_type,
        )

    def remove(self, file_id: str) -> None:
        try:
            self.service.files().delete(fileId=file_id).execute()
        except HttpError as e:
            if getattr(e, "resp", None) is not None and e.resp.status == 404:
                return
            raise UpstreamServiceError("drive", f"Failed to delete file from Google Drive: {e}")
        except DRIVE_TRANSPORT_ERRORS as e:
            raise UpstreamServiceError("drive", f"Failed to delete file from Google Drive: {e}")
        logger.info("drive_file_removed", file_id=file_id)


class FileStore:
    def __init__(self, local: LocalStorage, remote: DriveStorage | None = None, prefer_remote: bool = False):
        self.local = local
        self.remote = remote
        self.prefer_remote = prefer_remote

    def store(self, data: bytes, filename: str, mime_type: str | None) -> StoredFile:
        if self.prefer_remote and self.remote is not None:
            return self.remote.store(data, filename, mime_type)
        return self.local.store(data, filename, mime_type)

    def store_local(self, data: bytes, filename: str, mime_type: str | None, folder: str = "thumbnails") -> StoredFile:
        return self.local.store(data, filename, mime_type, folder=folder)

    def remove(self, ref: StoredFile) -> None:
        if ref.kind == FileKind.REMOTE:
            if self.remote is None:
                raise UpstreamServiceError("drive", "Google Drive client not configured")
            self.remote.remove(ref.locator)
        else:
            self.local.remove(ref.locator)

    def local_path(self, stored_path: str) -> Path:
        return self.local.resolve(stored_path)


def build_file_store(settings) -> FileStore:
    local = LocalStorage(settings.UPLOAD_DIR)
    remote = None
    if settings.GOOGLE_SERVICE_ACCOUNT_FILE:
        remote = DriveStorage.from_service_account(
            settings.GOOGLE_SERVICE_ACCOUNT_FILE,
            folder_id=settings.GOOGLE_DRIVE_FOLDER_ID,
        )
    return FileStore(local, remote, prefer_remote=settings.STORAGE_BACKEND == "drive")
