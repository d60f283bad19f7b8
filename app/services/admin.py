"""
services/admin.py

관리자 관련 비즈니스 로직(Service) 모음.

이 파일은 관리자 대시보드 / 회원 관리에서 사용하는
조회, 집계, 삭제 정책을 담당한다.

주요 기능:
- 대시보드 통계 (회원 수, 콘텐츠 수, 결제 완료 주문 수, 매출, 월별 매출)
- 회원 상세 (구매 항목, 주문 내역, 통계)
- 회원 삭제 (관리자 계정 보호, 주문 / 권한 함께 삭제)

설계 원칙:
- HTTP / FastAPI 의존성 없음
- 트랜잭션 제어는 라우터에서 수행
- 매출은 결제 완료(successful) 주문만 집계

관련 파일:
- app.models.user        : User 모델
- app.models.order       : Order 모델
- app.routers.admin      : 관리자 API

"""

import uuid
from datetime import datetime, timedelta

from sqlalchemy.orm import Session
from sqlalchemy import select, func, delete, desc

from app.core.errors import AccessDeniedError, NotFoundError
from app.models.catalog import Content, Project
from app.models.order import Order, OrderStatus
from app.models.user import User
from app.services.entitlements import content_ids_for, project_ids_for, revoke_all_for_user


def _month_key(dt: datetime) -> str:
    return f"{dt.year:04d}-{dt.month:02d}"


"""
최근 12개월 월별 매출

- 결제 완료 주문의 created_at 기준으로 'YYYY-MM' 별 합계
- 매출이 없는 달은 결과에서 제외 (오름차순 정렬)

"""

def monthly_revenue(db: Session, *, now: datetime | None = None) -> list[dict]:
    now = now or datetime.utcnow()
    since = now - timedelta(days=365)

    rows = db.execute(
        select(Order.created_at, Order.amount)
        .where(Order.status == OrderStatus.SUCCESSFUL)
        .where(Order.created_at >= since)
    ).all()

    totals: dict[str, int] = {}
    for created_at, amount in rows:
        key = _month_key(created_at)
        totals[key] = totals.get(key, 0) + amount

    return [{"month": month, "amount": totals[month]} for month in sorted(totals)]


def dashboard_stats(db: Session) -> dict:
    total_users = db.scalar(select(func.count()).select_from(User).where(User.is_admin.is_(False))) or 0
    total_content = db.scalar(select(func.count()).select_from(Content)) or 0

    successful = Order.status == OrderStatus.SUCCESSFUL
    total_orders = db.scalar(select(func.count()).select_from(Order).where(successful)) or 0
    total_revenue = db.scalar(select(func.coalesce(func.sum(Order.amount), 0)).where(successful)) or 0

    recent_orders = db.scalars(
        select(Order).where(successful).order_by(desc(Order.created_at)).limit(5)
    ).all()

    return {
        "total_users": total_users,
        "total_content": total_content,
        "total_orders": total_orders,
        "total_revenue": total_revenue,
        "recent_orders": list(recent_orders),
        "monthly_revenue": monthly_revenue(db),
    }


def list_users(db: Session, *, exclude_id: uuid.UUID) -> list[User]:
    return list(db.scalars(
        select(User).where(User.id != exclude_id).order_by(desc(User.created_at))
    ).all())


def get_user(db: Session, user_id: uuid.UUID) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


"""
회원 상세

- 구매한 콘텐츠 / 프로젝트 (권한 기준)
- 주문 내역 (최신순)
- 통계: 결제 완료 금액 합계, 결제 완료 건수, 보유 콘텐츠 / 프로젝트 수

"""

def user_profile(db: Session, user_id: uuid.UUID) -> dict:
    user = get_user(db, user_id)

    content_ids = content_ids_for(db, user.id)
    project_ids = project_ids_for(db, user.id)

    contents = db.scalars(select(Content).where(Content.id.in_(content_ids))).all() if content_ids else []
    projects = db.scalars(select(Project).where(Project.id.in_(project_ids))).all() if project_ids else []

    orders = db.scalars(
        select(Order).where(Order.user_id == user.id).order_by(desc(Order.created_at))
    ).all()
    paid = [o for o in orders if o.status == OrderStatus.SUCCESSFUL]

    return {
        "user": user,
        "purchased_content": list(contents),
        "purchased_projects": list(projects),
        "orders": list(orders),
        "statistics": {
            "total_spent": sum(o.amount for o in paid),
            "total_purchases": len(paid),
            "content_purchased": len(content_ids),
            "projects_purchased": len(project_ids),
        },
    }


def delete_user(db: Session, user_id: uuid.UUID) -> None:
    user = get_user(db, user_id)
    if user.is_admin:
        raise AccessDeniedError("Cannot delete admin user")

    revoke_all_for_user(db, user.id)
    db.execute(delete(Order).where(Order.user_id == user.id))
    db.delete(user)
    db.flush()
