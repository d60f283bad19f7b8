"""
admin.py

관리자 전용 API 모음.

주요 기능:
- 대시보드 통계 (회원 / 콘텐츠 / 주문 / 매출 / 월별 매출)
- 회원 목록 / 상세 / 삭제
- 주문 내역 Excel(xlsx) 내보내기
- 정리 작업(reconcile): 삭제 보류 파일 재시도 + 끊어진 권한 정리

설계 원칙:
- 모든 엔드포인트는 관리자만 접근 가능
- 관리자 계정은 삭제 불가
- 집계 / 정책 로직은 service 계층(app.services.admin)에 위임

관련 파일:
- app.services.admin       : 통계 / 회원 관리
- app.services.reconcile   : 정리 작업
- app.services.orders      : 주문 조회

"""

import io
import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from starlette.responses import Response
from openpyxl import Workbook
from sqlalchemy.orm import Session

from app.core.deps import get_db, get_current_admin, get_file_store
from app.core.errors import status_code_for
from app.models.order import OrderStatus
from app.models.user import User
from app.schemas.admin import ReconcileResponse, StatsResponse, UserProfileResponse
from app.schemas.user import UserResponse
from app.services import admin as admin_service
from app.services.orders import list_orders
from app.services.reconcile import reconcile
from app.services.storage import FileStore

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/stats", response_model=StatsResponse)
def stats(
    db: Session = Depends(get_db),
    _: User = Depends(get_current_admin),
):
    return admin_service.dashboard_stats(db)


# 본인을 제외한 전체 회원 목록 (최신 가입순)
@router.get("/users", response_model=list[UserResponse])
def list_users(
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    return admin_service.list_users(db, exclude_id=current_admin.id)


@router.get("/users/{user_id}", response_model=UserProfileResponse)
def user_profile(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_admin),
):
    try:
        return admin_service.user_profile(db, user_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))


"""
회원 삭제 API

- 관리자 계정은 삭제 불가 (403)
- 회원의 주문 / 구매 권한도 함께 삭제

"""

@router.delete("/users/{user_id}")
def delete_user(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_admin),
):
    try:
        admin_service.delete_user(db, user_id)
        db.commit()
    except (LookupError, PermissionError) as e:
        db.rollback()
        raise HTTPException(status_code=status_code_for(e), detail=str(e))
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    return {"message": "User deleted successfully"}


"""
주문 내역 Excel(xlsx) 다운로드 API

- status 지정 시 해당 상태의 주문만
- openpyxl로 XLSX 생성 후 attachment 로 반환

"""

@router.get("/orders/export.xlsx")
def export_orders_xlsx(
    status: OrderStatus | None = Query(default=None),
    db: Session = Depends(get_db),
    _: User = Depends(get_current_admin),
):
    orders = list_orders(db, status=status)

    wb = Workbook()
    ws = wb.active
    ws.title = "orders"

    ws.append([
        "order_id", "user_id", "item_kind", "item_id", "gateway_order_id",
        "gateway_payment_id", "amount", "currency", "status", "paid_at", "created_at",
    ])

    for o in orders:
        if o.content_id:
            kind, item_id = "content", str(o.content_id)
        elif o.project_id:
            kind, item_id = "project", str(o.project_id)
        else:
            kind, item_id = "deleted", ""

        ws.append([
            str(o.id),
            str(o.user_id),
            kind,
            item_id,
            o.gateway_order_id,
            o.gateway_payment_id or "",
            o.amount,
            o.currency,
            o.status.value,
            o.paid_at.isoformat() if o.paid_at else "",
            o.created_at.isoformat(),
        ])

    buf = io.BytesIO()
    wb.save(buf)

    suffix = status.value if status else "all"
    filename = f"orders_{suffix}_{datetime.utcnow():%Y%m%d}.xlsx"
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}

    return Response(
        content=buf.getvalue(),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers=headers,
    )


@router.post("/maintenance/reconcile", response_model=ReconcileResponse)
def run_reconcile(
    db: Session = Depends(get_db),
    file_store: FileStore = Depends(get_file_store),
    _: User = Depends(get_current_admin),
):
    try:
        report = reconcile(db, file_store)
        db.commit()
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    return ReconcileResponse(
        files_removed=report.files_removed,
        files_pending=report.files_pending,
        entitlements_removed=report.entitlements_removed,
    )
