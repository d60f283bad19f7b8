"""
base.py

SQLAlchemy ORM Base 정의 파일.

모든 모델(User, Class, Content, Order 등)은 이 Base를 상속하며,
테스트의 create_all / Alembic 마이그레이션 모두 이 metadata를 기준으로 동작한다.

관련 파일:
- app.models.*            : 모든 ORM 모델
- alembic/env.py          : 마이그레이션 메타데이터 로드

"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass
