"""
services/payment_gateway.py

결제 게이트웨이(Razorpay) REST 클라이언트.

주요 기능:
- 결제 주문 생성 (금액은 최소 단위: 루피 × 100)
- 결제 검증
  * 클라이언트가 서명을 보낸 경우: HMAC-SHA256("{order_id}|{payment_id}", key_secret) 비교
  * 서명이 없는 경우: 게이트웨이 API 로 결제를 조회해서 order_id / status 확인

설계 원칙:
- 클라이언트가 보낸 payment id 를 그대로 믿지 않는다 (항상 서버 측 검증)
- 재시도 없음. 네트워크 / 5xx 오류는 UpstreamServiceError 로 즉시 올린다
- 타임아웃은 settings.HTTP_TIMEOUT_SECONDS

"""

import hashlib
import hmac
from dataclasses import dataclass

import httpx
import structlog

from app.core.errors import UpstreamServiceError

logger = structlog.get_logger()

VERIFIED_PAYMENT_STATUSES = {"captured", "authorized"}


@dataclass
class GatewayOrder:
    id: str
    amount: int
    currency: str


@dataclass
class VerificationResult:
    ok: bool
    reason: str | None = None


class RazorpayGateway:
    BASE_URL = "https://api.razorpay.com/v1"

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        timeout: float = 15.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.key_id = key_id
        self.key_secret = key_secret
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.BASE_URL,
            auth=(self.key_id, self.key_secret),
            timeout=self.timeout,
            transport=self.transport,
        )

    @staticmethod
    def _error_text(response: httpx.Response) -> str:
        try:
            return response.json()["error"]["description"]
        except (ValueError, KeyError, TypeError):
            return response.text or response.reason_phrase

    def create_order(self, *, amount_minor: int, currency: str, receipt: str) -> GatewayOrder:
        try:
            with self._client() as client:
                response = client.post(
                    "/orders",
                    json={"amount": amount_minor, "currency": currency, "receipt": receipt},
                )
        except httpx.RequestError as e:
            logger.error("gateway_order_request_failed", error=str(e))
            raise UpstreamServiceError("razorpay", f"Payment gateway unreachable: {e}")

        if response.is_error:
            text = self._error_text(response)
            logger.error("gateway_order_rejected", status=response.status_code, error=text)
            raise UpstreamServiceError("razorpay", text)

        body = response.json()
        return GatewayOrder(id=body["id"], amount=body["amount"], currency=body["currency"])

    def signature_for(self, gateway_order_id: str, payment_id: str) -> str:
        message = f"{gateway_order_id}|{payment_id}".encode()
        return hmac.new(self.key_secret.encode(), message, hashlib.sha256).hexdigest()

    def fetch_payment(self, payment_id: str) -> dict | None:
        """결제 조회. 존재하지 않는 결제면 None."""
        try:
            with self._client() as client:
                response = client.get(f"/payments/{payment_id}")
        except httpx.RequestError as e:
            raise UpstreamServiceError("razorpay", f"Payment gateway unreachable: {e}")

        if response.status_code in (400, 404):
            return None
        if response.is_error:
            raise UpstreamServiceError("razorpay", self._error_text(response))
        return response.json()

    def verify_payment(self, *, gateway_order_id: str, payment_id: str, signature: str | None = None) -> VerificationResult:
        if signature:
            expected = self.signature_for(gateway_order_id, payment_id)
            if hmac.compare_digest(expected, signature):
                return VerificationResult(ok=True)
            return VerificationResult(ok=False, reason="signature mismatch")

        payment = self.fetch_payment(payment_id)
        if payment is None:
            return VerificationResult(ok=False, reason="payment not found")
        if payment.get("order_id") != gateway_order_id:
            return VerificationResult(ok=False, reason="payment belongs to another order")
        if payment.get("status") not in VERIFIED_PAYMENT_STATUSES:
            return VerificationResult(ok=False, reason=f"payment status {payment.get('status')}")
        return VerificationResult(ok=True)
