"""
payment.py

결제(Razorpay) API 모음.

주요 기능:
- 결제 주문 생성 (게이트웨이 주문 + pending 주문 저장)
- 결제 검증 (서명 또는 게이트웨이 조회로 확인 후 권한 부여)

설계 원칙:
- 금액은 서버의 항목 가격 기준
- 검증 거부 시 주문을 failed 로 남기고 400
- 같은 주문을 여러 번 검증해도 권한은 한 번만 부여됨

관련 파일:
- app.services.orders           : 주문 상태 전이
- app.services.payment_gateway  : Razorpay 클라이언트
- app.schemas.order             : 요청/응답 스키마

"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.deps import get_db, get_current_user, get_payment_gateway
from app.core.errors import PaymentVerificationError, UpstreamServiceError, status_code_for
from app.models.user import User
from app.schemas.order import (
    CreateOrderRequest,
    CreateOrderResponse,
    OrderResponse,
    VerifyPaymentRequest,
)
from app.services import orders as order_service
from app.services.payment_gateway import RazorpayGateway

router = APIRouter(prefix="/payment", tags=["payment"])


@router.post("/create-order", response_model=CreateOrderResponse)
def create_order(
    data: CreateOrderRequest,
    db: Session = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
    current_user: User = Depends(get_current_user),
):
    try:
        order, amount_minor = order_service.create_order(
            db,
            gateway,
            user_id=current_user.id,
            content_id=data.content_id,
            project_id=data.project_id,
            amount=data.amount,
            currency=settings.PAYMENT_CURRENCY,
        )
        db.commit()
        db.refresh(order)
    except UpstreamServiceError as e:
        db.rollback()
        raise HTTPException(status_code=500, detail={"message": "Error creating order", "error": e.message})
    except (LookupError, ValueError) as e:
        db.rollback()
        raise HTTPException(status_code=status_code_for(e), detail=str(e))
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    return CreateOrderResponse(
        order_id=order.id,
        gateway_order_id=order.gateway_order_id,
        amount=amount_minor,
        currency=order.currency,
        key_id=gateway.key_id,
    )


"""
결제 검증 API

- 본인 주문만 검증 가능 (아니면 404)
- 검증 거부 → 주문 failed 커밋 후 400
- 이미 성공한 주문 → 그대로 성공 응답

"""

@router.post("/verify-payment", response_model=OrderResponse)
def verify_payment(
    data: VerifyPaymentRequest,
    db: Session = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
    current_user: User = Depends(get_current_user),
):
    try:
        order = order_service.verify_order_payment(
            db,
            gateway,
            order_id=data.order_id,
            user_id=current_user.id,
            payment_id=data.gateway_payment_id,
            signature=data.gateway_signature,
        )
        db.commit()
        db.refresh(order)
    except PaymentVerificationError as e:
        # failed 상태는 남긴다
        db.commit()
        raise HTTPException(status_code=400, detail=str(e))
    except UpstreamServiceError as e:
        db.rollback()
        raise HTTPException(status_code=500, detail={"message": "Error verifying payment", "error": e.message})
    except (LookupError, ValueError) as e:
        db.rollback()
        raise HTTPException(status_code=status_code_for(e), detail=str(e))
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    return order
