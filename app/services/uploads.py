"""
services/uploads.py

multipart 업로드 파일 검증.

- 허용 MIME 타입: 문서(PDF/DOC/DOCX), 이미지(JPG/PNG), 영상(MP4/WEBM), 압축(ZIP)
- 파일 하나당 크기 제한: settings.MAX_UPLOAD_MB
- 위반 시 ValueError (라우터에서 400)

"""

from dataclasses import dataclass

from fastapi import UploadFile

ALLOWED_MIME_TYPES = {
    # image
    "image/jpeg",
    "image/png",
    "image/jpg",
    # video
    "video/mp4",
    "video/webm",
    # document / archive
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/zip",
    "application/x-zip-compressed",
    "application/octet-stream",
}

ALLOWED_LABEL = "JPG, PNG, PDF, DOC, DOCX, MP4, WEBM, ZIP"

_CHUNK = 1024 * 1024


@dataclass
class UploadedFile:
    filename: str
    mime_type: str
    data: bytes


def read_upload(upload: UploadFile, *, max_bytes: int) -> UploadedFile:
    mime_type = (upload.content_type or "").lower()
    if mime_type not in ALLOWED_MIME_TYPES:
        raise ValueError(f"Invalid file type. Allowed types: {ALLOWED_LABEL}")

    # 크기 초과 시 끝까지 읽지 않고 중단
    buf = bytearray()
    while True:
        chunk = upload.file.read(_CHUNK)
        if not chunk:
            break
        buf.extend(chunk)
        if len(buf) > max_bytes:
            raise ValueError(f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB")

    return UploadedFile(filename=upload.filename or "upload", mime_type=mime_type, data=bytes(buf))


def split_csv(value: str | None) -> list[str]:
    """'a, b ,c' → ['a', 'b', 'c'] (태그 / 기술 스택 입력용)"""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]
