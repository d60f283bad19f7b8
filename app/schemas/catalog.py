import uuid
from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, Field, ConfigDict

from app.models.catalog import ContentType, Difficulty


class ClassResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str]
    order: int
    image: Optional[str]
    is_active: bool
    has_semesters: bool
    semester_count: int

    model_config = ConfigDict(from_attributes=True)


class SemesterCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, examples=["Semester 1"])
    class_id: uuid.UUID
    description: Optional[str] = None
    order: int = 0


class SemesterResponse(BaseModel):
    id: uuid.UUID
    name: str
    class_id: uuid.UUID
    description: Optional[str]
    order: int
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class SubjectResponse(BaseModel):
    id: uuid.UUID
    name: str
    class_id: uuid.UUID
    semester_id: uuid.UUID
    description: Optional[str]
    order: int
    icon: Optional[str]
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


# 파일 URL / Drive ID 는 응답에 싣지 않는다 (유료 자료 직접 접근 방지)
class ContentResponse(BaseModel):
    id: uuid.UUID
    title: str
    description: str
    type: ContentType
    class_id: uuid.UUID
    semester_id: uuid.UUID
    subject_id: uuid.UUID
    thumbnail_url: Optional[str]
    price: int
    is_free: bool
    downloads: int
    views: int
    duration: int
    tags: List[str]
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ContentListResponse(BaseModel):
    contents: List[ContentResponse]
    page: int
    pages: int
    total: int


class ProjectResponse(BaseModel):
    id: uuid.UUID
    title: str
    description: str
    class_id: uuid.UUID
    subject_id: uuid.UUID
    thumbnail_url: Optional[str]
    price: int
    is_free: bool
    difficulty: Difficulty
    technologies: List[str]
    tags: List[str]
    downloads: int
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProjectListResponse(BaseModel):
    projects: List[ProjectResponse]
    page: int
    pages: int
    total: int


class DashboardResponse(BaseModel):
    purchased_content: List[ContentResponse]
    purchased_projects: List[ProjectResponse]
    recommended_content: List[ContentResponse]
    recommended_projects: List[ProjectResponse]
    free_content: List[ContentResponse]
    free_projects: List[ProjectResponse]
    popular_content: List[ContentResponse]
