"""

관리자(Admin) 초기 계정 생성 스크립트.

- 서버 최초 세팅 시 단 한 번 실행하는 용도
- .env에 정의된 ADMIN_* 환경 변수를 읽어
  관리자 계정을 생성한다.
- 같은 이메일의 관리자 계정이 이미 있으면 생성하지 않고 종료한다.
- 같은 이메일의 일반 회원이 있으면 관리자로 승격한다.

사용 방법
- 가상환경 접속
- (.venv) ~\backend~$ python -m scripts.create_admin

"""

import os
from dotenv import load_dotenv
load_dotenv()

from sqlalchemy import select
from app.db.session import SessionLocal
from app.models.user import User
from app.core.security import get_password_hash


def main():
    email = os.environ["ADMIN_EMAIL"]
    password = os.environ["ADMIN_PASSWORD"]
    name = os.environ.get("ADMIN_NAME", "Admin")

    db = SessionLocal()
    try:
        user = db.scalar(select(User).where(User.email == email))

        if user and user.is_admin:
            print("✅ Admin already exists. Skip creation.")
            return

        if user:
            user.is_admin = True
            db.commit()
            print(f"⬆️  Promoted to admin: {email}")
            return

        db.add(
            User(
                name=name,
                email=email,
                password_hash=get_password_hash(password),
                is_admin=True,
            )
        )
        db.commit()

        print(f"🚀 Admin created: {email}")

    finally:
        db.close()


if __name__ == "__main__":
    main()
