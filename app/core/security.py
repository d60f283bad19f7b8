"""
security.py

비밀번호 해싱 및 JWT 토큰 생성/검증을 담당하는 보안 유틸리티 모음.

이 파일은 인증(auth) 로직에서 사용하는
저수준(low-level) 보안 기능만을 제공하며,
라우터나 비즈니스 로직은 포함하지 않는다.

주요 기능:
- 비밀번호 해싱 및 검증 (bcrypt)
- JWT Access Token 생성 / 디코딩
- OAuth 가입자용 임시 비밀번호 생성

설계 원칙:
- 토큰 payload는 {sub, is_admin, type, exp} 로 고정
- 만료 시간은 발급 시점 기준 12시간 (설정값)
- 시간 기반(exp) 만료는 UTC 기준으로 처리

관련 파일:
- app.core.config        : JWT 시크릿 키 및 만료 설정
- app.core.deps          : 토큰을 실제로 검증하는 인증 의존성
- app.routers.auth       : 로그인 / OAuth API

"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt, JWTError
from passlib.context import CryptContext

from app.core.config import settings


# bcrypt 기반 비밀번호 해싱 컨텍스트
# deprecated="auto"로 향후 알고리즘 교체 가능하도록 설정

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


"""
OAuth 가입자 임시 비밀번호

- Google 로그인으로 생성된 계정은 비밀번호가 없으므로
  추측 불가능한 랜덤 문자열을 해시해서 저장
- bcrypt 72바이트 제한보다 짧게 유지

"""

def generate_placeholder_password() -> str:
    return secrets.token_urlsafe(24)


"""
Access Token 생성 함수

- subject(sub): 사용자 식별자(user_id)
- is_admin: 관리자 여부 (프론트 라우팅용, 서버는 DB 값을 다시 확인)
- exp: 만료 시각 (UTC timestamp)

"""

def create_access_token(subject: str, is_admin: bool = False, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=settings.ACCESS_TOKEN_EXPIRE_HOURS))
    payload = {
        "sub": subject,
        "is_admin": bool(is_admin),
        "type": "access",
        "exp": int(expire.timestamp()),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


"""
Access Token 디코딩 함수

- 서명 / 만료 검증은 jose가 수행
- 만료 시 ExpiredSignatureError, 그 외 JWTError 발생
  (호출 측에서 두 경우의 응답 메시지를 구분한다)

"""

def decode_access_token(token: str) -> dict:
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    if payload.get("type") and payload.get("type") != "access":
        raise JWTError("Not an access token")
    if not payload.get("sub"):
        raise JWTError("Missing subject")
    return payload
