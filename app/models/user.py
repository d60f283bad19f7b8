"""
user.py

사용자(User) 모델 정의 파일.

이 파일은 마켓플레이스 회원의 기본 정보와
관리자 여부, 로그인 기록, OAuth 연동 정보를 관리한다.

구매한 콘텐츠/프로젝트(권한 집합)는 별도 테이블
(app.models.entitlement)에 (user_id, item_id) 쌍으로 저장된다.

"""

import uuid
import datetime

from sqlalchemy import String, Boolean, DateTime, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


"""
사용자(User) 모델

- email 은 고유 식별자
- password_hash 는 bcrypt 해시 (Google 가입자는 랜덤 값의 해시)
- is_admin 으로 관리자 API 접근 제어
- last_login 은 로그인 성공 시마다 갱신
- 삭제는 관리자만 가능하며, 해당 사용자의 주문/권한도 함께 삭제된다

"""

class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    google_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    profile_image: Mapped[str] = mapped_column(String(500), nullable=False, default="")

    last_login: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=datetime.datetime.utcnow
    )

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=datetime.datetime.utcnow
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=datetime.datetime.utcnow, onupdate=datetime.datetime.utcnow
    )
