"""
catalog.py

카탈로그(Catalog) 모델 정의 파일.

분류 체계: Class → Semester → Subject
판매 항목: Content(문서/영상 자료), Project(프로젝트 파일)

설계 원칙:
- Subject.semester_id 가 가리키는 Semester 의 class_id 는 Subject.class_id 와 같아야 한다
  (DB 제약이 아니라 서비스 계층 app.services.catalog 에서 생성 시 검증)
- 파일 참조는 업로드 시점에 file_kind(LOCAL / REMOTE)를 명시적으로 저장한다
  file_kind 가 비어 있는 예전 레코드만 file_url 모양으로 판별 (app.services.storage)
- 다운로드/조회수는 통계용이므로 동시 요청 시 일부 누락을 허용한다

"""

import uuid
import datetime
from enum import Enum

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class FileKind(str, Enum):
    LOCAL = "LOCAL"
    REMOTE = "REMOTE"


class ContentType(str, Enum):
    MCQS = "MCQs"
    PREVIOUS_YEAR = "Previous Year"
    PDF_NOTES = "PDF Notes"
    VIDEO_LECTURES = "Video Lectures"
    PRACTICE_TESTS = "Practice Tests"


class Difficulty(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class SchoolClass(Base):
    __tablename__ = "classes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    image: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    has_semesters: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    semester_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class Semester(Base):
    __tablename__ = "semesters"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    class_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("classes.id"), index=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Subject(Base):
    __tablename__ = "subjects"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    class_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("classes.id"), index=True, nullable=False)
    semester_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("semesters.id"), index=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    icon: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class CatalogItemMixin:
    """Content / Project 공통 컬럼 (가격, 무료 여부, 파일 참조, 다운로드 수)."""

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    # 파일 참조: LOCAL 이면 file_url 은 업로드 루트 기준 상대 경로,
    # REMOTE 면 file_url 은 다운로드 URL, file_id 는 Drive 객체 ID
    file_kind: Mapped[FileKind | None] = mapped_column(SAEnum(FileKind, name="file_kind"), nullable=True)
    file_url: Mapped[str] = mapped_column(String(1000), nullable=False)
    file_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    view_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    thumbnail_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    price: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_free: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    downloads: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=datetime.datetime.utcnow
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=datetime.datetime.utcnow, onupdate=datetime.datetime.utcnow
    )


class Content(CatalogItemMixin, Base):
    __tablename__ = "contents"

    type: Mapped[ContentType] = mapped_column(SAEnum(ContentType, name="content_type"), nullable=False)

    class_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("classes.id"), index=True, nullable=False)
    semester_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("semesters.id"), index=True, nullable=False)
    subject_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("subjects.id"), index=True, nullable=False)

    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    duration: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # 분 단위 (영상)


class Project(CatalogItemMixin, Base):
    __tablename__ = "projects"

    difficulty: Mapped[Difficulty] = mapped_column(SAEnum(Difficulty, name="difficulty"), nullable=False)
    technologies: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    class_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("classes.id"), index=True, nullable=False)
    subject_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("subjects.id"), index=True, nullable=False)
