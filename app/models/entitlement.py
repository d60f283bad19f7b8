"""
entitlement.py

사용자 구매 권한(Entitlement) 테이블.

- (user_id, item_id) 복합 기본키로 "집합" 의미를 보장한다
  (같은 항목을 두 번 부여해도 행은 하나)
- 결제 검증 성공 시에만 행이 추가된다 (app.services.orders)
- 카탈로그 삭제 시 해당 항목의 행은 모두 함께 삭제된다 (app.services.catalog)

"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class ContentEntitlement(Base):
    __tablename__ = "user_content_entitlements"

    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), primary_key=True)
    content_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("contents.id"), primary_key=True)
    granted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class ProjectEntitlement(Base):
    __tablename__ = "user_project_entitlements"

    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), primary_key=True)
    project_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("projects.id"), primary_key=True)
    granted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
