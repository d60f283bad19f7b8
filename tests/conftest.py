import os

# Settings 는 import 시점에 로드되므로 앱 import 전에 기본값을 채운다
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("RAZORPAY_KEY_ID", "rzp_test_key")
os.environ.setdefault("RAZORPAY_KEY_SECRET", "rzp_test_secret")

import json

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app as fastapi_app
from app.core.config import settings
from app.core.deps import get_db, get_file_store, get_payment_gateway, get_identity_verifier
from app.db.base import Base
from app.services.payment_gateway import RazorpayGateway
from app.services.storage import FileStore, LocalStorage

# ✅ 모델 import (Base.metadata에 테이블 등록)
import app.models  # noqa: F401


TEST_DB_URL = settings.TEST_DATABASE_URL or "sqlite://"

if TEST_DB_URL.startswith("sqlite"):
    # 메모리 DB를 모든 세션이 공유하도록 단일 커넥션 사용
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
else:
    engine = create_engine(TEST_DB_URL, pool_pre_ping=True)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


class FakeIdentityVerifier:
    """Google 대신 고정된 claims 를 돌려주는 검증기."""

    def __init__(self):
        self.claims = {
            "email": "google.user@test.com",
            "name": "Google User",
            "sub": "google-sub-0001",
            "picture": "https://example.com/avatar.png",
        }

    def verify(self, credential: str) -> dict:
        if credential == "invalid":
            raise ValueError("Token used too late")
        return dict(self.claims)


class RazorpayStub:
    """Razorpay REST API 흉내 (httpx.MockTransport 핸들러)."""

    def __init__(self):
        self.orders: list[dict] = []
        self.payments: dict[str, dict] = {}
        self.fail_orders = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path

        if request.method == "POST" and path.endswith("/orders"):
            if self.fail_orders:
                return httpx.Response(
                    400,
                    json={"error": {"code": "BAD_REQUEST_ERROR", "description": "Authentication failed"}},
                )
            payload = json.loads(request.content)
            order = {
                "id": f"order_test{len(self.orders) + 1:06d}",
                "amount": payload["amount"],
                "currency": payload["currency"],
                "receipt": payload["receipt"],
            }
            self.orders.append(order)
            return httpx.Response(200, json=order)

        if request.method == "GET" and "/payments/" in path:
            payment_id = path.rsplit("/", 1)[-1]
            payment = self.payments.get(payment_id)
            if payment is None:
                return httpx.Response(404, json={"error": {"description": "The id provided does not exist"}})
            return httpx.Response(200, json=payment)

        return httpx.Response(404)


@pytest.fixture(scope="session", autouse=True)
def setup_test_db():
    """테스트 전체 시작/종료 때만 스키마 생성/삭제"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_tables():
    """각 테스트마다 데이터 초기화 (테이블은 유지, row만 삭제)"""
    yield
    # FK 의존성 역순으로 삭제
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture()
def db_session():
    """테스트에서 직접 DB 조작할 때 쓰는 세션"""
    session = TestingSessionLocal()
    try:
        yield session
        session.commit()
    finally:
        session.close()


@pytest.fixture()
def file_store(tmp_path):
    return FileStore(LocalStorage(tmp_path / "uploads"))


@pytest.fixture()
def razorpay():
    return RazorpayStub()


@pytest.fixture()
def payment_gateway(razorpay):
    return RazorpayGateway(
        settings.RAZORPAY_KEY_ID,
        settings.RAZORPAY_KEY_SECRET,
        transport=httpx.MockTransport(razorpay),
    )


@pytest.fixture()
def identity_verifier():
    return FakeIdentityVerifier()


@pytest.fixture()
def client(file_store, payment_gateway, identity_verifier):
    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_file_store] = lambda: file_store
    fastapi_app.dependency_overrides[get_payment_gateway] = lambda: payment_gateway
    fastapi_app.dependency_overrides[get_identity_verifier] = lambda: identity_verifier
    with TestClient(fastapi_app) as c:
        yield c
    fastapi_app.dependency_overrides.clear()
