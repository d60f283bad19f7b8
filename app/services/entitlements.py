"""
services/entitlements.py

사용자 구매 권한(Entitlement) 집합 관리.

- 부여(grant)는 멱등: 이미 있으면 아무것도 하지 않는다
- 조회는 항상 DB 기준 (세션 캐시에 의존하지 않음)
- 회수(revoke)는 카탈로그 삭제 / 사용자 삭제 시 일괄 수행

NOTE:
- db.commit()은 호출 측(라우터/서비스)에서 수행

"""

import uuid
from typing import Iterable

from sqlalchemy import select, delete
from sqlalchemy.orm import Session

from app.models.entitlement import ContentEntitlement, ProjectEntitlement


def content_ids_for(db: Session, user_id: uuid.UUID) -> list[uuid.UUID]:
    return list(db.scalars(
        select(ContentEntitlement.content_id)
        .where(ContentEntitlement.user_id == user_id)
        .order_by(ContentEntitlement.granted_at)
    ).all())


def project_ids_for(db: Session, user_id: uuid.UUID) -> list[uuid.UUID]:
    return list(db.scalars(
        select(ProjectEntitlement.project_id)
        .where(ProjectEntitlement.user_id == user_id)
        .order_by(ProjectEntitlement.granted_at)
    ).all())


def owns_content(db: Session, user_id: uuid.UUID, content_id: uuid.UUID) -> bool:
    return db.get(ContentEntitlement, (user_id, content_id)) is not None


def owns_project(db: Session, user_id: uuid.UUID, project_id: uuid.UUID) -> bool:
    return db.get(ProjectEntitlement, (user_id, project_id)) is not None


def grant_content(db: Session, user_id: uuid.UUID, content_id: uuid.UUID) -> bool:
    """새로 부여했으면 True, 이미 보유 중이면 False."""
    if owns_content(db, user_id, content_id):
        return False
    db.add(ContentEntitlement(user_id=user_id, content_id=content_id))
    db.flush()
    return True


def grant_project(db: Session, user_id: uuid.UUID, project_id: uuid.UUID) -> bool:
    if owns_project(db, user_id, project_id):
        return False
    db.add(ProjectEntitlement(user_id=user_id, project_id=project_id))
    db.flush()
    return True


def revoke_items(
    db: Session,
    *,
    content_ids: Iterable[uuid.UUID] = (),
    project_ids: Iterable[uuid.UUID] = (),
) -> None:
    content_ids = list(content_ids)
    project_ids = list(project_ids)
    if content_ids:
        db.execute(delete(ContentEntitlement).where(ContentEntitlement.content_id.in_(content_ids)))
    if project_ids:
        db.execute(delete(ProjectEntitlement).where(ProjectEntitlement.project_id.in_(project_ids)))


def revoke_all_for_user(db: Session, user_id: uuid.UUID) -> None:
    db.execute(delete(ContentEntitlement).where(ContentEntitlement.user_id == user_id))
    db.execute(delete(ProjectEntitlement).where(ProjectEntitlement.user_id == user_id))
