import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class OrderStatus(str, Enum):
    PENDING = "pending"
    SUCCESSFUL = "successful"
    FAILED = "failed"


class Order(Base):
    """구매 시도 1건 = 주문 1행.

    - 생성 시 content_id / project_id 중 정확히 하나만 채워진다
    - 카탈로그 항목이 삭제되면 참조만 NULL 로 끊고 주문 기록은 남긴다
    - status: pending → successful(검증 성공) 또는 failed(검증 거부), 둘 다 종료 상태
    - amount 는 통화 기본 단위(루피), 게이트웨이에는 ×100 한 값을 보낸다
    """

    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint(
            "NOT (content_id IS NOT NULL AND project_id IS NOT NULL)",
            name="ck_orders_single_item",
        ),
        Index("ix_orders_user_id", "user_id"),
        Index("ix_orders_gateway_order_id", "gateway_order_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    content_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("contents.id"), nullable=True)
    project_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("projects.id"), nullable=True)

    gateway_order_id: Mapped[str] = mapped_column(String(100), nullable=False)
    gateway_payment_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(10), nullable=False, default="INR")

    status: Mapped[OrderStatus] = mapped_column(
        SAEnum(OrderStatus, name="order_status"), nullable=False, default=OrderStatus.PENDING
    )
    is_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    failure_reason: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )
