# tests/helpers.py
import uuid
from types import SimpleNamespace

import httplib2
from sqlalchemy.orm import Session
from sqlalchemy import select

from app.models.user import User
from app.core.security import get_password_hash


PDF_BYTES = b"%PDF-1.4\n% test document\n"
ZIP_BYTES = b"PK\x03\x04 test archive"


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def create_admin_in_db(db: Session, *, email: str, password: str) -> User:
    admin = User(
        email=email,
        password_hash=get_password_hash(password),
        name="ADMIN",
        is_admin=True,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    return admin


def admin_token(client, db: Session) -> str:
    email = f"admin_{uuid.uuid4().hex[:6]}@test.com"
    password = "AdminPassw0rd!"
    create_admin_in_db(db, email=email, password=password)

    res = client.post("/api/auth/admin/login", json={"email": email, "password": password})
    assert res.status_code == 200, res.text
    return res.json()["token"]


def register_user(client, *, email: str | None = None, password: str = "UserPassw0rd!", name: str = "테스트유저") -> dict:
    """회원가입 후 {id, email, password, token} 반환"""
    email = email or f"user_{uuid.uuid4().hex[:6]}@test.com"
    res = client.post("/api/auth/register", json={"name": name, "email": email, "password": password})
    assert res.status_code == 201, res.text
    body = res.json()
    return {"id": body["id"], "email": email, "password": password, "token": body["token"]}


def create_taxonomy(client, token: str, *, class_name: str | None = None) -> dict:
    """Class → Semester → Subject 한 세트 생성"""
    cls = client.post(
        "/api/admin/classes",
        data={"name": class_name or f"Class {uuid.uuid4().hex[:4]}", "order": "1"},
        headers=auth_header(token),
    )
    assert cls.status_code == 201, cls.text
    class_id = cls.json()["id"]

    sem = client.post(
        "/api/admin/semesters",
        json={"name": "Semester 1", "class_id": class_id},
        headers=auth_header(token),
    )
    assert sem.status_code == 201, sem.text
    semester_id = sem.json()["id"]

    sub = client.post(
        "/api/admin/subjects",
        data={"name": "Mathematics", "class_id": class_id, "semester_id": semester_id},
        headers=auth_header(token),
    )
    assert sub.status_code == 201, sub.text

    return {"class_id": class_id, "semester_id": semester_id, "subject_id": sub.json()["id"]}


def create_content(
    client,
    token: str,
    taxonomy: dict,
    *,
    title: str = "Algebra Notes",
    price: int = 0,
    is_free: bool = True,
    content_type: str = "PDF Notes",
    tags: str = "algebra, math",
    filename: str = "notes.pdf",
    data: bytes = PDF_BYTES,
    mime_type: str = "application/pdf",
) -> dict:
    res = client.post(
        "/api/content",
        data={
            "title": title,
            "description": f"{title} description",
            "type": content_type,
            "class_id": taxonomy["class_id"],
            "semester_id": taxonomy["semester_id"],
            "subject_id": taxonomy["subject_id"],
            "price": str(price),
            "is_free": "true" if is_free else "false",
            "tags": tags,
        },
        files={"file": (filename, data, mime_type)},
        headers=auth_header(token),
    )
    assert res.status_code == 201, res.text
    return res.json()


def create_project(
    client,
    token: str,
    taxonomy: dict,
    *,
    title: str = "Calculator App",
    price: int = 0,
    is_free: bool = True,
) -> dict:
    res = client.post(
        "/api/projects",
        data={
            "title": title,
            "description": f"{title} description",
            "class_id": taxonomy["class_id"],
            "subject_id": taxonomy["subject_id"],
            "price": str(price),
            "is_free": "true" if is_free else "false",
            "difficulty": "Intermediate",
            "technologies": "python, fastapi",
        },
        files={"file": ("project.zip", ZIP_BYTES, "application/zip")},
        headers=auth_header(token),
    )
    assert res.status_code == 201, res.text
    return res.json()


def purchase(client, payment_gateway, token: str, *, content_id: str | None = None, project_id: str | None = None) -> dict:
    """주문 생성 + 올바른 서명으로 결제 검증"""
    body = {"content_id": content_id} if content_id else {"project_id": project_id}
    order = client.post("/api/payment/create-order", json=body, headers=auth_header(token))
    assert order.status_code == 200, order.text
    order = order.json()

    payment_id = f"pay_{uuid.uuid4().hex[:14]}"
    verify = client.post(
        "/api/payment/verify-payment",
        json={
            "order_id": order["order_id"],
            "gateway_payment_id": payment_id,
            "gateway_signature": payment_gateway.signature_for(order["gateway_order_id"], payment_id),
        },
        headers=auth_header(token),
    )
    assert verify.status_code == 200, verify.text
    return verify.json()


def get_user(db: Session, user_id: str) -> User:
    return db.scalar(select(User).where(User.id == uuid.UUID(user_id)))


class OfflineDriveService:
    """Drive v3 service 대역: 모든 호출이 네트워크 오류로 실패."""

    def __init__(self, error: Exception | None = None):
        self.error = error or httplib2.ServerNotFoundError("Unable to find the server at www.googleapis.com")

    def files(self):
        return self

    def permissions(self):
        return self

    def _fail(self, **kwargs):
        return SimpleNamespace(execute=self._raise)

    def _raise(self):
        raise self.error

    create = get = delete = _fail
