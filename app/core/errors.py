"""
errors.py

서비스 계층에서 사용하는 도메인 예외 모음.

서비스는 HTTP를 모르고 아래 예외만 발생시킨다.
라우터가 이를 잡아서 HTTPException(상태 코드 + 메시지)으로 변환한다.

- ValueError               : 입력값 검증 실패 (400)
- NotFoundError            : 참조 대상 없음 (404)
- AccessDeniedError        : 구매/권한 없음 (403)
- PaymentVerificationError : 결제 검증 거부 (400)
- UpstreamServiceError     : 결제 게이트웨이 / 파일 저장소 장애 (500)

"""


class NotFoundError(LookupError):
    pass


class AccessDeniedError(PermissionError):
    pass


class PaymentVerificationError(ValueError):
    pass


class UpstreamServiceError(RuntimeError):
    """외부 서비스 오류. 메시지는 호출자에게 그대로 노출된다."""

    def __init__(self, service: str, message: str):
        super().__init__(message)
        self.service = service
        self.message = message


# 라우터에서 HTTPException 상태 코드를 고를 때 사용
def status_code_for(exc: Exception) -> int:
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, AccessDeniedError):
        return 403
    if isinstance(exc, UpstreamServiceError):
        return 500
    if isinstance(exc, ValueError):
        return 400
    return 500
