"""

관리자 API 통합 테스트.
- 대시보드 통계 / 월별 매출
- 회원 목록 / 상세 / 삭제 (관리자 보호)
- 주문 Excel 내보내기

"""

import io
import uuid
from datetime import datetime

from openpyxl import load_workbook
from sqlalchemy import select

from app.models.entitlement import ContentEntitlement
from app.models.order import Order, OrderStatus
from app.services.admin import monthly_revenue
from tests.helpers import (
    admin_token,
    auth_header,
    create_content,
    create_taxonomy,
    get_user,
    purchase,
    register_user,
)


def _seed_purchase(client, db_session, payment_gateway, *, price=100):
    token = admin_token(client, db_session)
    tax = create_taxonomy(client, token)
    content = create_content(client, token, tax, title="Paid Notes", price=price, is_free=False)
    buyer = register_user(client)
    purchase(client, payment_gateway, buyer["token"], content_id=content["id"])
    return token, buyer, content


def test_stats_counts_successful_orders_only(client, db_session, payment_gateway):
    token, buyer, content = _seed_purchase(client, db_session, payment_gateway, price=120)

    # 검증되지 않은 주문은 매출에 포함되지 않음
    pending = client.post("/api/payment/create-order", json={"content_id": content["id"]}, headers=auth_header(buyer["token"]))
    assert pending.status_code == 200

    res = client.get("/api/admin/stats", headers=auth_header(token))
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["total_users"] == 1
    assert body["total_content"] == 1
    assert body["total_orders"] == 1
    assert body["total_revenue"] == 120
    assert len(body["recent_orders"]) == 1
    assert body["monthly_revenue"] == [{"month": datetime.utcnow().strftime("%Y-%m"), "amount": 120}]


def test_monthly_revenue_groups_by_month(db_session):
    user_id = uuid.uuid4()

    def order(created_at, amount, status=OrderStatus.SUCCESSFUL):
        return Order(
            user_id=user_id,
            content_id=uuid.uuid4(),
            gateway_order_id=f"order_{uuid.uuid4().hex[:10]}",
            amount=amount,
            status=status,
            created_at=created_at,
        )

    db_session.add_all([
        order(datetime(2026, 3, 2), 100),
        order(datetime(2026, 3, 28), 50),
        order(datetime(2026, 5, 10), 70),
        order(datetime(2026, 5, 11), 999, OrderStatus.FAILED),
        order(datetime(2025, 1, 1), 500),  # 1년 이전
    ])
    db_session.commit()

    result = monthly_revenue(db_session, now=datetime(2026, 6, 1))
    assert result == [
        {"month": "2026-03", "amount": 150},
        {"month": "2026-05", "amount": 70},
    ]


def test_user_list_excludes_requesting_admin(client, db_session):
    token = admin_token(client, db_session)
    first = register_user(client)
    second = register_user(client)

    res = client.get("/api/admin/users", headers=auth_header(token))
    assert res.status_code == 200
    ids = {u["id"] for u in res.json()}
    assert ids == {first["id"], second["id"]}
    assert all("password_hash" not in u for u in res.json())


def test_user_profile(client, db_session, payment_gateway):
    token, buyer, content = _seed_purchase(client, db_session, payment_gateway, price=100)

    res = client.get(f"/api/admin/users/{buyer['id']}", headers=auth_header(token))
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["user"]["email"] == buyer["email"]
    assert [c["id"] for c in body["purchased_content"]] == [content["id"]]
    assert body["purchased_projects"] == []
    assert len(body["orders"]) == 1
    assert body["statistics"] == {
        "total_spent": 100,
        "total_purchases": 1,
        "content_purchased": 1,
        "projects_purchased": 0,
    }

    res = client.get(f"/api/admin/users/{uuid.uuid4()}", headers=auth_header(token))
    assert res.status_code == 404
    assert res.json()["message"] == "User not found"


def test_delete_user_removes_orders_and_entitlements(client, db_session, payment_gateway):
    token, buyer, _ = _seed_purchase(client, db_session, payment_gateway)

    res = client.delete(f"/api/admin/users/{buyer['id']}", headers=auth_header(token))
    assert res.status_code == 200, res.text
    assert res.json()["message"] == "User deleted successfully"

    db_session.expire_all()
    user_id = uuid.UUID(buyer["id"])
    assert get_user(db_session, buyer["id"]) is None
    assert db_session.scalars(select(Order).where(Order.user_id == user_id)).all() == []
    assert db_session.scalars(select(ContentEntitlement).where(ContentEntitlement.user_id == user_id)).all() == []

    # 삭제된 회원의 토큰은 더 이상 쓸 수 없음
    res = client.get("/api/auth/me", headers=auth_header(buyer["token"]))
    assert res.status_code == 401


def test_cannot_delete_admin(client, db_session):
    token = admin_token(client, db_session)
    other_admin_token = admin_token(client, db_session)
    me = client.get("/api/auth/me", headers=auth_header(other_admin_token)).json()

    res = client.delete(f"/api/admin/users/{me['id']}", headers=auth_header(token))
    assert res.status_code == 403
    assert res.json()["message"] == "Cannot delete admin user"


def test_export_orders_xlsx(client, db_session, payment_gateway):
    token, buyer, content = _seed_purchase(client, db_session, payment_gateway)
    client.post("/api/payment/create-order", json={"content_id": content["id"]}, headers=auth_header(buyer["token"]))

    res = client.get("/api/admin/orders/export.xlsx", headers=auth_header(token))
    assert res.status_code == 200
    assert res.headers["content-type"] == "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    assert "orders_all_" in res.headers["content-disposition"]
    assert res.content[:2] == b"PK"

    ws = load_workbook(io.BytesIO(res.content)).active
    rows = list(ws.iter_rows(values_only=True))
    assert rows[0][0] == "order_id"
    assert len(rows) == 3

    res = client.get("/api/admin/orders/export.xlsx", params={"status": "successful"}, headers=auth_header(token))
    rows = list(load_workbook(io.BytesIO(res.content)).active.iter_rows(values_only=True))
    assert len(rows) == 2
    assert rows[1][2] == "content"
    assert rows[1][3] == content["id"]
    assert rows[1][8] == "successful"


def test_admin_endpoints_require_admin(client, db_session):
    user = register_user(client)
    for method, path in [
        ("get", "/api/admin/users"),
        ("get", "/api/admin/orders/export.xlsx"),
        ("post", "/api/admin/maintenance/reconcile"),
    ]:
        res = getattr(client, method)(path, headers=auth_header(user["token"]))
        assert res.status_code == 403, path
