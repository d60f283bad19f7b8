from typing import Generator
import uuid

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import ExpiredSignatureError
from sqlalchemy.orm import Session
from sqlalchemy import select

from app.core.security import decode_access_token
from app.db.session import SessionLocal
from app.models.user import User
from app.services.identity import GoogleIdentityVerifier
from app.services.payment_gateway import RazorpayGateway
from app.services.storage import FileStore

# Swagger Authorize에서 "Bearer 토큰" 입력받는 스키마
bearer_scheme = HTTPBearer(auto_error=False)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# 외부 서비스 클라이언트는 lifespan 에서 만들어 app.state 에 둔다
def get_file_store(request: Request) -> FileStore:
    return request.app.state.file_store


def get_payment_gateway(request: Request) -> RazorpayGateway:
    return request.app.state.payment_gateway


def get_identity_verifier(request: Request) -> GoogleIdentityVerifier:
    return request.app.state.identity_verifier


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    cred: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if cred is None:
        raise _unauthorized("Not authorized")

    try:
        payload = decode_access_token(cred.credentials)
        # User.id가 UUID라서 변환
        user_id = uuid.UUID(payload["sub"])
    except ExpiredSignatureError:
        raise _unauthorized("Token expired")
    except Exception:
        raise _unauthorized("Not authorized")

    user = db.scalar(select(User).where(User.id == user_id))
    if not user:
        raise _unauthorized("User not found")

    return user


def get_current_admin(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized as admin",
        )
    return current_user
