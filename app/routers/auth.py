"""
auth.py

인증(Authentication) API 모음.

이 파일은 회원 가입, 로그인, 관리자 로그인, Google 로그인,
내 정보 조회와 같이 사용자 인증 흐름 전반을 담당한다.
JWT Access Token(12시간) 단일 토큰 구조를 따른다.

주요 기능:
- 회원 가입 (가입 즉시 토큰 발급)
- 로그인 / 관리자 로그인 (last_login 갱신)
- Google ID 토큰 로그인 (없으면 계정 자동 생성)
- 내 정보 + 구매 항목 ID 목록 조회

설계 원칙:
- Access Token은 Authorization Header(Bearer)로 전달
- 비밀번호 해시는 어떤 응답에도 포함하지 않음
- Google 가입자는 추측 불가능한 임시 비밀번호 해시를 가진다

관련 파일:
- app.core.security        : 비밀번호 해시 / JWT 생성·검증
- app.core.deps            : 인증 의존성(get_current_user)
- app.services.identity    : Google ID 토큰 검증
- app.schemas.auth         : 인증 관련 요청/응답

"""

from datetime import datetime

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from google.auth.exceptions import GoogleAuthError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy import select

from app.core.deps import get_db, get_current_user, get_identity_verifier
from app.core.security import (
    get_password_hash,
    verify_password,
    create_access_token,
    generate_placeholder_password,
)

from app.models.user import User
from app.schemas.auth import (
    RegisterRequest, LoginRequest, GoogleAuthRequest,
    AuthResponse, MeResponse,
)
from app.services.entitlements import content_ids_for, project_ids_for
from app.services.identity import GoogleIdentityVerifier

router = APIRouter(prefix="/auth", tags=["auth"])

logger = structlog.get_logger()


def _auth_response(user: User) -> AuthResponse:
    return AuthResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        is_admin=user.is_admin,
        token=create_access_token(subject=str(user.id), is_admin=user.is_admin),
        redirect_url="/admin/dashboard" if user.is_admin else "/customer/dashboard",
    )


"""
회원 가입 API

- 이메일 중복 시 가입 불가
- 가입과 동시에 Access Token 발급

"""

@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(data: RegisterRequest, db: Session = Depends(get_db)):

    if db.scalar(select(User).where(User.email == data.email)):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User already exists")

    try:
        user = User(
            name=data.name,
            email=data.email,
            password_hash=get_password_hash(data.password),
            is_admin=False,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="User already exists")
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    logger.info("user_registered", user_id=str(user.id))
    return _auth_response(user)


def _login(db: Session, data: LoginRequest, *, admin_only: bool) -> AuthResponse:
    user = db.scalar(select(User).where(User.email == data.email))

    if not user or not verify_password(data.password, user.password_hash):
        detail = "Invalid admin credentials" if admin_only else "Invalid email or password"
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)

    if admin_only and not user.is_admin:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid admin credentials")

    try:
        user.last_login = datetime.utcnow()
        db.commit()
        db.refresh(user)
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    return _auth_response(user)


"""
로그인 API

- 이메일 / 비밀번호 인증
- 성공 시 last_login 갱신 후 Access Token 반환

"""

@router.post("/login", response_model=AuthResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    return _login(db, data, admin_only=False)


# 관리자 전용 로그인 (관리자가 아니면 자격 증명 오류와 동일하게 처리)
@router.post("/admin/login", response_model=AuthResponse)
def admin_login(data: LoginRequest, db: Session = Depends(get_db)):
    return _login(db, data, admin_only=True)


@router.get("/me", response_model=MeResponse)
def me(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return MeResponse(
        id=current_user.id,
        name=current_user.name,
        email=current_user.email,
        is_admin=current_user.is_admin,
        purchased_content=content_ids_for(db, current_user.id),
        purchased_projects=project_ids_for(db, current_user.id),
    )


"""
Google 로그인 API

- 프론트에서 받은 ID 토큰(credential)을 Google 공개키 / audience 로 검증
- 이메일로 기존 계정 조회, 없으면 새 계정 생성
- 비밀번호 로그인과 동일한 토큰 응답

"""

@router.post("/google", response_model=AuthResponse)
def google_login(
    data: GoogleAuthRequest,
    db: Session = Depends(get_db),
    verifier: GoogleIdentityVerifier = Depends(get_identity_verifier),
):
    try:
        claims = verifier.verify(data.credential)
    except (ValueError, GoogleAuthError) as e:
        logger.warning("google_auth_failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Google authentication failed", "error": str(e)},
        )

    user = db.scalar(select(User).where(User.email == claims["email"]))

    try:
        if user is None:
            user = User(
                name=claims.get("name") or claims["email"].split("@")[0],
                email=claims["email"],
                password_hash=get_password_hash(generate_placeholder_password()),
                google_id=claims.get("sub"),
                profile_image=claims.get("picture") or "",
                is_admin=False,
            )
            db.add(user)
            logger.info("google_user_provisioned", email=claims["email"])
        elif not user.google_id:
            user.google_id = claims.get("sub")

        user.last_login = datetime.utcnow()
        db.commit()
        db.refresh(user)
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    return _auth_response(user)
