"""

file_deletion.py

파일 삭제 보류(Tombstone) 모델 정의 파일.

카탈로그 삭제는 DB 삭제를 먼저 커밋하고 파일 삭제를 나중에 수행한다.
파일 삭제가 실패하면 레코드 삭제는 그대로 진행하고,
실패한 파일 정보를 이 테이블에 남겨 정리 작업(reconcile)에서 재시도한다.

설계 원칙:
- 파일 삭제 실패가 주 기능(레코드 삭제)을 막지 않는다
- 재시도에 성공한 행은 삭제, 실패하면 attempts / last_error 만 갱신

"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum as SAEnum, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.catalog import FileKind


class PendingFileDeletion(Base):
    __tablename__ = "pending_file_deletions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    kind: Mapped[FileKind] = mapped_column(SAEnum(FileKind, name="file_kind"), nullable=False)
    locator: Mapped[str] = mapped_column(String(1000), nullable=False)  # 로컬 경로 또는 Drive 파일 ID

    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )
