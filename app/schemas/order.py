import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, ConfigDict

from app.models.order import OrderStatus


class CreateOrderRequest(BaseModel):
    content_id: Optional[uuid.UUID] = None
    project_id: Optional[uuid.UUID] = None
    amount: Optional[int] = Field(default=None, ge=0, examples=[100])  # 주면 항목 가격과 일치해야 함


class CreateOrderResponse(BaseModel):
    order_id: uuid.UUID
    gateway_order_id: str
    amount: int  # 최소 단위(paise)
    currency: str
    key_id: str


class VerifyPaymentRequest(BaseModel):
    order_id: uuid.UUID
    gateway_payment_id: str = Field(..., min_length=1)
    gateway_signature: Optional[str] = None


class OrderResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    content_id: Optional[uuid.UUID]
    project_id: Optional[uuid.UUID]
    gateway_order_id: str
    gateway_payment_id: Optional[str]
    amount: int
    currency: str
    status: OrderStatus
    is_paid: bool
    paid_at: Optional[datetime]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
