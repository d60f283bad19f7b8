"""
services/orders.py

주문(Order) 도메인의 비즈니스 로직 모음.

주문은 결제 시도 1건을 기록하고, 결제 검증에 성공하면
구매자에게 해당 항목의 권한(Entitlement)을 부여한다.

상태 전이:
- pending    → successful  (게이트웨이 검증 통과)
- pending    → failed      (게이트웨이 검증 거부 또는 항목 삭제)
- successful → successful  (재검증 요청은 멱등 처리, 권한만 다시 확인)
- failed     → (변경 불가)

설계 원칙:
- 주문 금액은 항상 항목 가격 기준 (클라이언트 금액은 일치 여부만 확인)
- 무료 항목은 주문 불가
- 권한은 요청자가 아니라 주문 소유자(order.user_id)에게 부여
- 다른 사용자의 주문은 존재하지 않는 것으로 취급 (404)
- db.commit()은 라우터에서 수행

관련 파일:
- app.models.order              : Order / OrderStatus
- app.services.payment_gateway  : Razorpay 클라이언트
- app.services.entitlements     : 권한 부여
- app.routers.payment           : 결제 API

"""

import uuid
from datetime import datetime

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError, PaymentVerificationError
from app.models.catalog import Content, Project
from app.models.order import Order, OrderStatus
from app.services.entitlements import grant_content, grant_project
from app.services.payment_gateway import RazorpayGateway

logger = structlog.get_logger()


def _purchasable(db: Session, *, content_id: uuid.UUID | None, project_id: uuid.UUID | None):
    if (content_id is None) == (project_id is None):
        raise ValueError("Specify exactly one of content_id or project_id")

    if content_id is not None:
        item = db.get(Content, content_id)
        if item is None:
            raise NotFoundError("Content not found")
    else:
        item = db.get(Project, project_id)
        if item is None:
            raise NotFoundError("Project not found")

    if item.is_free or item.price <= 0:
        raise ValueError("Item is free")
    return item


"""
주문 생성

- content_id / project_id 중 정확히 하나
- 클라이언트 금액이 있으면 항목 가격과 같아야 함
- 게이트웨이 주문 생성 후 pending 주문 저장
- 게이트웨이 오류는 UpstreamServiceError 그대로 전파 (주문 행은 만들지 않음)

"""

def create_order(
    db: Session,
    gateway: RazorpayGateway,
    *,
    user_id: uuid.UUID,
    content_id: uuid.UUID | None = None,
    project_id: uuid.UUID | None = None,
    amount: int | None = None,
    currency: str = "INR",
) -> tuple[Order, int]:
    item = _purchasable(db, content_id=content_id, project_id=project_id)

    if amount is not None and amount != item.price:
        raise ValueError("Amount does not match item price")

    amount_minor = item.price * 100
    receipt = f"rcpt_{uuid.uuid4().hex[:16]}"
    gateway_order = gateway.create_order(amount_minor=amount_minor, currency=currency, receipt=receipt)

    order = Order(
        user_id=user_id,
        content_id=content_id,
        project_id=project_id,
        gateway_order_id=gateway_order.id,
        amount=item.price,
        currency=currency,
        status=OrderStatus.PENDING,
        is_paid=False,
    )
    db.add(order)
    db.flush()

    logger.info(
        "order_created",
        order_id=str(order.id),
        user_id=str(user_id),
        gateway_order_id=gateway_order.id,
        amount=item.price,
    )
    return order, gateway_order.amount


def _grant_for(db: Session, order: Order) -> None:
    if order.content_id is not None:
        grant_content(db, order.user_id, order.content_id)
    elif order.project_id is not None:
        grant_project(db, order.user_id, order.project_id)


def get_user_order(db: Session, *, order_id: uuid.UUID, user_id: uuid.UUID) -> Order:
    order = db.scalar(select(Order).where(Order.id == order_id, Order.user_id == user_id))
    if order is None:
        raise NotFoundError("Order not found")
    return order


"""
결제 검증

- successful 주문: 게이트웨이 재호출 없이 권한만 보장 후 반환
- failed 주문: ValueError
- 항목이 삭제된 주문 / 검증 거부: 주문을 failed 로 기록하고 PaymentVerificationError
  (호출 측은 예외를 받더라도 failed 상태를 커밋해야 함)

"""

def verify_order_payment(
    db: Session,
    gateway: RazorpayGateway,
    *,
    order_id: uuid.UUID,
    user_id: uuid.UUID,
    payment_id: str,
    signature: str | None = None,
) -> Order:
    order = get_user_order(db, order_id=order_id, user_id=user_id)

    if order.status == OrderStatus.SUCCESSFUL:
        _grant_for(db, order)
        return order
    if order.status == OrderStatus.FAILED:
        raise ValueError("Order already failed")

    # 결제 전에 항목이 삭제된 주문은 전달할 것이 없으므로 실패 처리
    if order.content_id is None and order.project_id is None:
        order.status = OrderStatus.FAILED
        order.gateway_payment_id = payment_id
        order.failure_reason = "item deleted"
        db.flush()
        logger.warning("payment_rejected", order_id=str(order.id), reason=order.failure_reason)
        raise PaymentVerificationError("Payment verification failed")

    result = gateway.verify_payment(
        gateway_order_id=order.gateway_order_id,
        payment_id=payment_id,
        signature=signature,
    )

    if not result.ok:
        order.status = OrderStatus.FAILED
        order.gateway_payment_id = payment_id
        order.failure_reason = result.reason
        db.flush()
        logger.warning("payment_rejected", order_id=str(order.id), reason=result.reason)
        raise PaymentVerificationError("Payment verification failed")

    order.status = OrderStatus.SUCCESSFUL
    order.is_paid = True
    order.paid_at = datetime.utcnow()
    order.gateway_payment_id = payment_id
    _grant_for(db, order)
    db.flush()

    logger.info("payment_verified", order_id=str(order.id), user_id=str(order.user_id))
    return order


def list_orders(db: Session, *, status: OrderStatus | None = None) -> list[Order]:
    stmt = select(Order).order_by(Order.created_at.desc())
    if status is not None:
        stmt = stmt.where(Order.status == status)
    return list(db.scalars(stmt).all())
