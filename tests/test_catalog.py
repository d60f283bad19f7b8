"""

카탈로그(Class / Semester / Subject / Content / Project) 통합 테스트.
- 분류 생성 규칙 (semester_count, subject 의 class / semester 일치)
- 목록 필터 / 검색 / 정렬 / 페이지네이션, 응답에 파일 URL 미포함
- 연쇄 삭제: 하위 항목 삭제, 권한 회수, 주문 참조 해제, 파일 삭제 보류 기록

"""

import uuid

from sqlalchemy import select

from app.models.catalog import Content, ContentType, FileKind, SchoolClass
from app.models.entitlement import ContentEntitlement
from app.models.file_deletion import PendingFileDeletion
from app.models.order import Order
from app.services.storage import DriveStorage
from tests.helpers import (
    OfflineDriveService,
    admin_token,
    auth_header,
    create_content,
    create_project,
    create_taxonomy,
    purchase,
    register_user,
)


def test_semester_create_and_delete_tracks_count(client, db_session):
    token = admin_token(client, db_session)
    tax = create_taxonomy(client, token)

    classes = client.get("/api/admin/classes").json()
    cls = next(c for c in classes if c["id"] == tax["class_id"])
    assert cls["has_semesters"] is True
    assert cls["semester_count"] == 1

    res = client.delete(f"/api/admin/semesters/{tax['semester_id']}", headers=auth_header(token))
    assert res.status_code == 200, res.text

    cls = next(c for c in client.get("/api/admin/classes").json() if c["id"] == tax["class_id"])
    assert cls["semester_count"] == 0
    assert cls["has_semesters"] is False

    # 하위 subject 도 함께 삭제
    assert client.get(f"/api/admin/subjects?class_id={tax['class_id']}").json() == []


def test_duplicate_class_name_400(client, db_session):
    token = admin_token(client, db_session)
    create_taxonomy(client, token, class_name="Class 10")

    res = client.post("/api/admin/classes", data={"name": "Class 10"}, headers=auth_header(token))
    assert res.status_code == 400
    assert res.json()["message"] == "Class already exists"


def test_subject_semester_must_belong_to_class(client, db_session):
    token = admin_token(client, db_session)
    first = create_taxonomy(client, token)
    second = create_taxonomy(client, token)

    res = client.post(
        "/api/admin/subjects",
        data={"name": "Physics", "class_id": first["class_id"], "semester_id": second["semester_id"]},
        headers=auth_header(token),
    )
    assert res.status_code == 400
    assert res.json()["message"] == "Semester does not belong to class"


def test_semester_for_unknown_class_404(client, db_session):
    token = admin_token(client, db_session)
    res = client.post(
        "/api/admin/semesters",
        json={"name": "Semester 1", "class_id": str(uuid.uuid4())},
        headers=auth_header(token),
    )
    assert res.status_code == 404
    assert res.json()["message"] == "Class not found"


def test_content_creation_checks_placement(client, db_session):
    token = admin_token(client, db_session)
    first = create_taxonomy(client, token)
    second = create_taxonomy(client, token)

    res = client.post(
        "/api/content",
        data={
            "title": "Misplaced",
            "description": "desc",
            "type": "PDF Notes",
            "class_id": first["class_id"],
            "semester_id": first["semester_id"],
            "subject_id": second["subject_id"],
        },
        files={"file": ("notes.pdf", b"%PDF-1.4", "application/pdf")},
        headers=auth_header(token),
    )
    assert res.status_code == 400
    assert res.json()["message"] == "Subject does not belong to class"


def test_upload_rejects_unknown_mime_type(client, db_session):
    token = admin_token(client, db_session)
    tax = create_taxonomy(client, token)

    res = client.post(
        "/api/content",
        data={
            "title": "Script",
            "description": "desc",
            "type": "PDF Notes",
            "class_id": tax["class_id"],
            "semester_id": tax["semester_id"],
            "subject_id": tax["subject_id"],
        },
        files={"file": ("evil.html", b"<script>alert(1)</script>", "text/html")},
        headers=auth_header(token),
    )
    assert res.status_code == 400
    assert res.json()["message"].startswith("Invalid file type")


def test_non_admin_cannot_create_content(client, db_session):
    token = admin_token(client, db_session)
    tax = create_taxonomy(client, token)
    user = register_user(client)

    res = client.post(
        "/api/admin/classes",
        data={"name": "Sneaky"},
        headers=auth_header(user["token"]),
    )
    assert res.status_code == 403
    assert client.get(f"/api/admin/semesters?class_id={tax['class_id']}").status_code == 200


def test_content_list_filters_search_and_paging(client, db_session):
    token = admin_token(client, db_session)
    tax = create_taxonomy(client, token)

    create_content(client, token, tax, title="Algebra Basics", tags="algebra")
    create_content(client, token, tax, title="Geometry Drill", tags="shapes", price=50, is_free=False)
    create_content(
        client, token, tax,
        title="Calculus Lecture",
        content_type="Video Lectures",
        tags="limits",
        filename="lecture.mp4",
        data=b"\x00\x00\x00\x18ftypmp42",
        mime_type="video/mp4",
        price=80,
        is_free=False,
    )

    res = client.get("/api/content")
    assert res.status_code == 200
    body = res.json()
    assert body["total"] == 3
    assert body["page"] == 1
    assert body["pages"] == 1
    for item in body["contents"]:
        assert "file_url" not in item
        assert "file_id" not in item

    # 태그 검색 (대소문자 무시)
    res = client.get("/api/content", params={"search": "SHAPES"})
    assert [c["title"] for c in res.json()["contents"]] == ["Geometry Drill"]

    res = client.get("/api/content", params={"type": "Video Lectures"})
    assert [c["title"] for c in res.json()["contents"]] == ["Calculus Lecture"]

    res = client.get("/api/content", params={"sort": "price"})
    assert [c["price"] for c in res.json()["contents"]] == [0, 50, 80]

    res = client.get("/api/content", params={"limit": 2, "page": 2})
    assert res.json()["pages"] == 2
    assert len(res.json()["contents"]) == 1

    res = client.get("/api/content", params={"sort": "cheapest"})
    assert res.status_code == 400


def test_project_list_and_detail(client, db_session):
    token = admin_token(client, db_session)
    tax = create_taxonomy(client, token)
    project = create_project(client, token, tax, title="Todo API")

    assert project["technologies"] == ["python", "fastapi"]

    res = client.get("/api/projects", params={"search": "fastapi"})
    assert res.json()["total"] == 1

    res = client.get(f"/api/projects/{project['id']}")
    assert res.status_code == 200
    assert res.json()["title"] == "Todo API"

    res = client.get(f"/api/projects/{uuid.uuid4()}")
    assert res.status_code == 404
    assert res.json()["message"] == "Project not found"


def test_class_cascade_removes_descendants_entitlements_and_files(client, db_session, file_store, payment_gateway):
    token = admin_token(client, db_session)
    tax = create_taxonomy(client, token)
    content = create_content(client, token, tax, title="Paid Notes", price=100, is_free=False)
    project = create_project(client, token, tax, price=200, is_free=False)

    buyer = register_user(client)
    purchase(client, payment_gateway, buyer["token"], content_id=content["id"])
    purchase(client, payment_gateway, buyer["token"], project_id=project["id"])

    me = client.get("/api/auth/me", headers=auth_header(buyer["token"])).json()
    assert me["purchased_content"] == [content["id"]]
    assert me["purchased_projects"] == [project["id"]]

    stored_path = db_session.get(Content, uuid.UUID(content["id"])).file_url
    assert file_store.local_path(stored_path).is_file()

    res = client.delete(f"/api/admin/classes/{tax['class_id']}", headers=auth_header(token))
    assert res.status_code == 200, res.text
    assert res.json()["pending_file_deletions"] == 0

    assert client.get(f"/api/content/{content['id']}").status_code == 404
    assert client.get(f"/api/projects/{project['id']}").status_code == 404
    assert client.get(f"/api/admin/semesters?class_id={tax['class_id']}").json() == []

    me = client.get("/api/auth/me", headers=auth_header(buyer["token"])).json()
    assert me["purchased_content"] == []
    assert me["purchased_projects"] == []

    # 파일도 삭제
    assert not file_store.local_path(stored_path).exists()

    # 주문 기록은 남고 항목 참조만 끊김
    db_session.expire_all()
    orders = db_session.scalars(select(Order)).all()
    assert len(orders) == 2
    assert all(o.content_id is None and o.project_id is None for o in orders)
    assert db_session.get(SchoolClass, uuid.UUID(tax["class_id"])) is None


def test_cascade_queues_tombstone_when_file_removal_fails(client, db_session):
    token = admin_token(client, db_session)
    tax = create_taxonomy(client, token)

    # Drive 에 올라간 파일이지만 테스트 저장소에는 Drive 클라이언트가 없음
    remote = Content(
        title="Remote Notes",
        description="stored on drive",
        type=ContentType.PDF_NOTES,
        class_id=uuid.UUID(tax["class_id"]),
        semester_id=uuid.UUID(tax["semester_id"]),
        subject_id=uuid.UUID(tax["subject_id"]),
        file_kind=FileKind.REMOTE,
        file_url="https://drive.google.com/uc?id=1AbCdEfGhIjKlMnOpQrStUvWxYz012345&export=download",
        file_id="1AbCdEfGhIjKlMnOpQrStUvWxYz012345",
        price=0,
        is_free=True,
    )
    db_session.add(remote)
    db_session.commit()
    remote_id = remote.id

    res = client.delete(f"/api/admin/subjects/{tax['subject_id']}", headers=auth_header(token))
    assert res.status_code == 200, res.text
    assert res.json()["pending_file_deletions"] == 1

    # 레코드는 삭제됨
    assert client.get(f"/api/content/{remote_id}").status_code == 404

    db_session.expire_all()
    tombstone = db_session.scalar(select(PendingFileDeletion))
    assert tombstone.kind == FileKind.REMOTE
    assert tombstone.locator == "1AbCdEfGhIjKlMnOpQrStUvWxYz012345"
    assert tombstone.attempts == 1

    # 재시도도 실패 → attempts 증가
    res = client.post("/api/admin/maintenance/reconcile", headers=auth_header(token))
    assert res.status_code == 200, res.text
    assert res.json()["files_pending"] == 1
    assert res.json()["files_removed"] == 0

    db_session.expire_all()
    assert db_session.scalar(select(PendingFileDeletion)).attempts == 2


def test_reconcile_removes_local_tombstones_and_dangling_entitlements(client, db_session):
    token = admin_token(client, db_session)
    user = register_user(client)

    db_session.add(PendingFileDeletion(kind=FileKind.LOCAL, locator="documents/already-gone.pdf", last_error="busy"))
    db_session.commit()

    if db_session.bind.dialect.name == "sqlite":
        # SQLite 는 FK 를 강제하지 않으므로 끊어진 권한 행을 직접 만들 수 있다
        db_session.add(ContentEntitlement(user_id=uuid.UUID(user["id"]), content_id=uuid.uuid4()))
        db_session.commit()
        expected_dangling = 1
    else:
        expected_dangling = 0

    res = client.post("/api/admin/maintenance/reconcile", headers=auth_header(token))
    assert res.status_code == 200, res.text
    assert res.json() == {
        "files_removed": 1,
        "files_pending": 0,
        "entitlements_removed": expected_dangling,
    }

    db_session.expire_all()
    assert db_session.scalar(select(PendingFileDeletion)) is None


def test_cascade_survives_drive_network_error(client, db_session, file_store):
    token = admin_token(client, db_session)
    tax = create_taxonomy(client, token)
    local = create_content(client, token, tax, title="Local Notes")
    local_path = file_store.local_path(db_session.get(Content, uuid.UUID(local["id"])).file_url)

    # Drive 서버에 연결할 수 없는 상황
    file_store.remote = DriveStorage(OfflineDriveService())

    db_session.add(Content(
        title="Remote Notes",
        description="stored on drive",
        type=ContentType.PDF_NOTES,
        class_id=uuid.UUID(tax["class_id"]),
        semester_id=uuid.UUID(tax["semester_id"]),
        subject_id=uuid.UUID(tax["subject_id"]),
        file_kind=FileKind.REMOTE,
        file_url="https://drive.google.com/uc?id=1AbCdEfGhIjKlMnOpQrStUvWxYz012345&export=download",
        file_id="1AbCdEfGhIjKlMnOpQrStUvWxYz012345",
        price=0,
        is_free=True,
    ))
    db_session.commit()

    res = client.delete(f"/api/admin/subjects/{tax['subject_id']}", headers=auth_header(token))
    assert res.status_code == 200, res.text
    assert res.json()["pending_file_deletions"] == 1

    # 다른 파일 삭제는 계속 진행
    assert not local_path.exists()

    db_session.expire_all()
    tombstone = db_session.scalar(select(PendingFileDeletion))
    assert tombstone.locator == "1AbCdEfGhIjKlMnOpQrStUvWxYz012345"
    assert "Unable to find the server" in tombstone.last_error

    res = client.post("/api/admin/maintenance/reconcile", headers=auth_header(token))
    assert res.status_code == 200, res.text
    assert res.json()["files_pending"] == 1


def test_upload_drive_network_error_500(client, db_session, file_store):
    token = admin_token(client, db_session)
    tax = create_taxonomy(client, token)
    file_store.remote = DriveStorage(OfflineDriveService())
    file_store.prefer_remote = True

    res = client.post(
        "/api/content",
        data={
            "title": "Drive Notes",
            "description": "desc",
            "type": "PDF Notes",
            "class_id": tax["class_id"],
            "semester_id": tax["semester_id"],
            "subject_id": tax["subject_id"],
        },
        files={"file": ("notes.pdf", b"%PDF-1.4", "application/pdf")},
        headers=auth_header(token),
    )
    assert res.status_code == 500
    assert "Unable to find the server" in res.json()["message"]

    db_session.expire_all()
    assert db_session.scalar(select(Content)) is None
