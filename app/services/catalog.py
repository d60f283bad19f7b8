"""
services/catalog.py

카탈로그(분류 체계 + 판매 항목) 도메인의 비즈니스 로직 모음.

주요 기능:
- Class / Semester / Subject / Content / Project 생성 및 검증
- 목록 조회 (필터, 검색, 정렬, 페이지네이션)
- 분류 노드 / 항목 삭제 (연쇄 삭제)

연쇄 삭제는 3단계로 나눠 수행한다.
  1) plan_*     : 삭제될 하위 노드, 항목, 파일 참조를 모두 수집 (읽기만)
  2) apply_cascade : 한 트랜잭션 안에서 권한 회수, 주문 참조 해제, 행 삭제
  3) cleanup_files : 커밋 이후 파일 삭제. 실패한 파일은 PendingFileDeletion 에 기록
                     (관리자 reconcile 작업에서 재시도)
DB 단계가 실패하면 롤백되어 아무 파일도 지워지지 않는다.
파일 단계가 실패해도 레코드 삭제는 유지된다.

설계 원칙:
- HTTP / FastAPI 의존성 없음
- 트랜잭션 커밋은 라우터에서 수행
- Subject 의 semester 는 같은 class 소속이어야 한다 (생성 시 검증)

관련 파일:
- app.models.catalog        : 카탈로그 모델
- app.services.storage      : StoredFile / FileStore
- app.services.entitlements : 권한 회수
- app.routers.catalog / content / projects

"""

import math
import uuid
from dataclasses import dataclass, field

import structlog
from sqlalchemy import String, cast, delete, desc, func, or_, select, update
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError, UpstreamServiceError
from app.models.catalog import (
    Content,
    ContentType,
    Difficulty,
    FileKind,
    Project,
    SchoolClass,
    Semester,
    Subject,
)
from app.models.file_deletion import PendingFileDeletion
from app.models.order import Order
from app.services.entitlements import revoke_items
from app.services.storage import FileStore, StoredFile, file_ref_of

logger = structlog.get_logger()


def _require(db: Session, model, obj_id: uuid.UUID, label: str):
    obj = db.get(model, obj_id)
    if obj is None:
        raise NotFoundError(f"{label} not found")
    return obj


def get_class(db: Session, class_id: uuid.UUID) -> SchoolClass:
    return _require(db, SchoolClass, class_id, "Class")


def get_semester(db: Session, semester_id: uuid.UUID) -> Semester:
    return _require(db, Semester, semester_id, "Semester")


def get_subject(db: Session, subject_id: uuid.UUID) -> Subject:
    return _require(db, Subject, subject_id, "Subject")


def get_content(db: Session, content_id: uuid.UUID) -> Content:
    return _require(db, Content, content_id, "Content")


def get_project(db: Session, project_id: uuid.UUID) -> Project:
    return _require(db, Project, project_id, "Project")


# ---------------------------------------------------------------------------
# 생성
# ---------------------------------------------------------------------------

def create_class(db: Session, *, name: str, description: str | None, order: int, image: str | None) -> SchoolClass:
    if db.scalar(select(SchoolClass).where(SchoolClass.name == name)):
        raise ValueError("Class already exists")

    obj = SchoolClass(name=name, description=description, order=order, image=image)
    db.add(obj)
    db.flush()
    return obj


def create_semester(db: Session, *, name: str, class_id: uuid.UUID, description: str | None, order: int) -> Semester:
    parent = get_class(db, class_id)

    semester = Semester(name=name, class_id=class_id, description=description, order=order)
    db.add(semester)

    parent.has_semesters = True
    parent.semester_count = (parent.semester_count or 0) + 1

    db.flush()
    return semester


"""
분류 위치 검증

- subject 의 class / semester 가 요청한 class / semester 와 일치해야 함
- semester 는 class 소속이어야 함
- 불일치 시 ValueError

"""

def check_placement(
    db: Session,
    *,
    class_id: uuid.UUID,
    semester_id: uuid.UUID | None = None,
    subject_id: uuid.UUID | None = None,
) -> None:
    get_class(db, class_id)

    if semester_id is not None:
        semester = get_semester(db, semester_id)
        if semester.class_id != class_id:
            raise ValueError("Semester does not belong to class")

    if subject_id is not None:
        subject = get_subject(db, subject_id)
        if subject.class_id != class_id:
            raise ValueError("Subject does not belong to class")
        if semester_id is not None and subject.semester_id != semester_id:
            raise ValueError("Subject does not belong to semester")


def create_subject(
    db: Session,
    *,
    name: str,
    class_id: uuid.UUID,
    semester_id: uuid.UUID,
    description: str | None,
    order: int,
    icon: str | None,
) -> Subject:
    check_placement(db, class_id=class_id, semester_id=semester_id)

    subject = Subject(
        name=name,
        class_id=class_id,
        semester_id=semester_id,
        description=description,
        order=order,
        icon=icon,
    )
    db.add(subject)
    db.flush()
    return subject


def _file_columns(stored: StoredFile) -> dict:
    return {
        "file_kind": stored.kind,
        "file_url": stored.url,
        "file_id": stored.file_id,
        "view_url": stored.view_url,
        "file_name": stored.file_name,
    }


def create_content(
    db: Session,
    *,
    stored: StoredFile,
    thumbnail_url: str | None,
    title: str,
    description: str,
    type: ContentType,
    class_id: uuid.UUID,
    semester_id: uuid.UUID,
    subject_id: uuid.UUID,
    price: int,
    is_free: bool,
    duration: int,
    tags: list[str],
) -> Content:
    content = Content(
        title=title,
        description=description,
        type=type,
        class_id=class_id,
        semester_id=semester_id,
        subject_id=subject_id,
        thumbnail_url=thumbnail_url,
        price=price,
        is_free=is_free,
        duration=duration,
        tags=tags,
        **_file_columns(stored),
    )
    db.add(content)
    db.flush()
    return content


def create_project(
    db: Session,
    *,
    stored: StoredFile,
    thumbnail_url: str | None,
    title: str,
    description: str,
    class_id: uuid.UUID,
    subject_id: uuid.UUID,
    price: int,
    is_free: bool,
    difficulty: Difficulty,
    technologies: list[str],
    tags: list[str],
) -> Project:
    project = Project(
        title=title,
        description=description,
        class_id=class_id,
        subject_id=subject_id,
        thumbnail_url=thumbnail_url,
        price=price,
        is_free=is_free,
        difficulty=difficulty,
        technologies=technologies,
        tags=tags,
        **_file_columns(stored),
    )
    db.add(project)
    db.flush()
    return project


# ---------------------------------------------------------------------------
# 목록 조회
# ---------------------------------------------------------------------------

SORT_COLUMNS = {
    "newest": lambda model: desc(model.created_at),
    "popular": lambda model: desc(model.downloads),
    "price": lambda model: model.price,
}


def _search_clause(model, search: str, *json_columns):
    pattern = f"%{search.lower()}%"
    clauses = [
        func.lower(model.title).like(pattern),
        func.lower(model.description).like(pattern),
    ]
    clauses += [func.lower(cast(col, String)).like(pattern) for col in json_columns]
    return or_(*clauses)


def _paginate(db: Session, stmt, model, *, sort: str | None, limit: int, page: int):
    total = db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
    order_by = SORT_COLUMNS.get(sort or "newest", SORT_COLUMNS["newest"])(model)

    items = db.scalars(
        stmt.order_by(order_by).limit(limit).offset((page - 1) * limit)
    ).all()
    pages = math.ceil(total / limit) if limit else 0
    return items, total, pages


def list_contents(
    db: Session,
    *,
    type: ContentType | None = None,
    subject_id: uuid.UUID | None = None,
    class_id: uuid.UUID | None = None,
    semester_id: uuid.UUID | None = None,
    search: str | None = None,
    sort: str | None = None,
    limit: int = 10,
    page: int = 1,
):
    stmt = select(Content)
    if type:
        stmt = stmt.where(Content.type == type)
    if subject_id:
        stmt = stmt.where(Content.subject_id == subject_id)
    if class_id:
        stmt = stmt.where(Content.class_id == class_id)
    if semester_id:
        stmt = stmt.where(Content.semester_id == semester_id)
    if search:
        stmt = stmt.where(_search_clause(Content, search, Content.tags))

    return _paginate(db, stmt, Content, sort=sort, limit=limit, page=page)


def list_projects(
    db: Session,
    *,
    subject_id: uuid.UUID | None = None,
    class_id: uuid.UUID | None = None,
    difficulty: Difficulty | None = None,
    search: str | None = None,
    sort: str | None = None,
    limit: int = 10,
    page: int = 1,
):
    stmt = select(Project).where(Project.is_active.is_(True))
    if subject_id:
        stmt = stmt.where(Project.subject_id == subject_id)
    if class_id:
        stmt = stmt.where(Project.class_id == class_id)
    if difficulty:
        stmt = stmt.where(Project.difficulty == difficulty)
    if search:
        stmt = stmt.where(_search_clause(Project, search, Project.technologies, Project.tags))

    return _paginate(db, stmt, Project, sort=sort, limit=limit, page=page)


# ---------------------------------------------------------------------------
# 연쇄 삭제
# ---------------------------------------------------------------------------

@dataclass
class CascadePlan:
    class_ids: list[uuid.UUID] = field(default_factory=list)
    semester_ids: list[uuid.UUID] = field(default_factory=list)
    subject_ids: list[uuid.UUID] = field(default_factory=list)
    content_ids: list[uuid.UUID] = field(default_factory=list)
    project_ids: list[uuid.UUID] = field(default_factory=list)
    # semester 만 지울 때 semester_count 를 다시 계산할 class
    recount_class_ids: list[uuid.UUID] = field(default_factory=list)
    files: list[StoredFile] = field(default_factory=list)


def _local(path: str | None) -> list[StoredFile]:
    return [StoredFile(kind=FileKind.LOCAL, url=path)] if path else []


def _collect_items(plan: CascadePlan, contents, projects) -> None:
    for item in [*contents, *projects]:
        plan.files.append(file_ref_of(item))
        plan.files.extend(_local(item.thumbnail_url))
    plan.content_ids = [c.id for c in contents]
    plan.project_ids = [p.id for p in projects]


def plan_class_delete(db: Session, class_id: uuid.UUID) -> CascadePlan:
    node = get_class(db, class_id)

    subjects = db.scalars(select(Subject).where(Subject.class_id == class_id)).all()
    contents = db.scalars(select(Content).where(Content.class_id == class_id)).all()
    projects = db.scalars(select(Project).where(Project.class_id == class_id)).all()

    plan = CascadePlan(
        class_ids=[class_id],
        semester_ids=list(db.scalars(select(Semester.id).where(Semester.class_id == class_id)).all()),
        subject_ids=[s.id for s in subjects],
    )
    _collect_items(plan, contents, projects)
    plan.files.extend(_local(node.image))
    for s in subjects:
        plan.files.extend(_local(s.icon))
    return plan


def plan_semester_delete(db: Session, semester_id: uuid.UUID) -> CascadePlan:
    semester = get_semester(db, semester_id)

    subjects = db.scalars(select(Subject).where(Subject.semester_id == semester_id)).all()
    subject_ids = [s.id for s in subjects]

    contents = db.scalars(
        select(Content).where(or_(Content.semester_id == semester_id, Content.subject_id.in_(subject_ids)))
    ).all()
    projects = db.scalars(select(Project).where(Project.subject_id.in_(subject_ids))).all() if subject_ids else []

    plan = CascadePlan(
        semester_ids=[semester_id],
        subject_ids=subject_ids,
        recount_class_ids=[semester.class_id],
    )
    _collect_items(plan, contents, projects)
    for s in subjects:
        plan.files.extend(_local(s.icon))
    return plan


def plan_subject_delete(db: Session, subject_id: uuid.UUID) -> CascadePlan:
    subject = get_subject(db, subject_id)

    contents = db.scalars(select(Content).where(Content.subject_id == subject_id)).all()
    projects = db.scalars(select(Project).where(Project.subject_id == subject_id)).all()

    plan = CascadePlan(subject_ids=[subject_id])
    _collect_items(plan, contents, projects)
    plan.files.extend(_local(subject.icon))
    return plan


def plan_content_delete(db: Session, content_id: uuid.UUID) -> CascadePlan:
    plan = CascadePlan()
    _collect_items(plan, [get_content(db, content_id)], [])
    return plan


def plan_project_delete(db: Session, project_id: uuid.UUID) -> CascadePlan:
    plan = CascadePlan()
    _collect_items(plan, [], [get_project(db, project_id)])
    return plan


def apply_cascade(db: Session, plan: CascadePlan) -> None:
    """DB 단계. 커밋은 호출 측에서."""
    revoke_items(db, content_ids=plan.content_ids, project_ids=plan.project_ids)

    # 주문 기록은 남기고 항목 참조만 끊는다
    if plan.content_ids:
        db.execute(update(Order).where(Order.content_id.in_(plan.content_ids)).values(content_id=None))
        db.execute(delete(Content).where(Content.id.in_(plan.content_ids)))
    if plan.project_ids:
        db.execute(update(Order).where(Order.project_id.in_(plan.project_ids)).values(project_id=None))
        db.execute(delete(Project).where(Project.id.in_(plan.project_ids)))

    if plan.subject_ids:
        db.execute(delete(Subject).where(Subject.id.in_(plan.subject_ids)))
    if plan.semester_ids:
        db.execute(delete(Semester).where(Semester.id.in_(plan.semester_ids)))
    if plan.class_ids:
        db.execute(delete(SchoolClass).where(SchoolClass.id.in_(plan.class_ids)))

    for class_id in plan.recount_class_ids:
        if class_id in plan.class_ids:
            continue
        remaining = db.scalar(select(func.count()).select_from(Semester).where(Semester.class_id == class_id)) or 0
        db.execute(
            update(SchoolClass)
            .where(SchoolClass.id == class_id)
            .values(semester_count=remaining, has_semesters=remaining > 0)
        )

    # bulk delete 이후 세션에 남은 객체 정리
    db.expire_all()


def remove_file(db: Session, file_store: FileStore, ref: StoredFile) -> bool:
    """파일 1개 삭제. 실패하면 tombstone 을 남기고 False."""
    try:
        file_store.remove(ref)
        return True
    except (UpstreamServiceError, OSError, ValueError) as e:
        tombstone = PendingFileDeletion(kind=ref.kind, locator=ref.locator, last_error=str(e))
        db.add(tombstone)
        db.flush()
        logger.warning(
            "file_removal_deferred",
            kind=ref.kind.value,
            locator=ref.locator,
            tombstone_id=str(tombstone.id),
            error=str(e),
        )
        return False


def cleanup_files(db: Session, file_store: FileStore, files: list[StoredFile]) -> int:
    """파일 단계. 실패 개수를 반환하며 커밋은 호출 측에서."""
    failed = 0
    for ref in files:
        if not remove_file(db, file_store, ref):
            failed += 1
    return failed
