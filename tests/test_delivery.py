"""

구매 권한 기반 다운로드 / 미리보기 통합 테스트.
- 무료 콘텐츠: 누구나 다운로드, 다운로드 수 0 → 1
- 유료 콘텐츠: 구매 전 403 → 주문 + 결제 검증 → 다운로드 성공
- subject 삭제 후 콘텐츠 404, 구매 목록에서도 제거
- Drive 파일은 직접 다운로드 / 미리보기 URL 반환 (예전 레코드 포함)
- 미리보기 응답의 캐시 / 보안 헤더

"""

import uuid

from app.models.catalog import Content, ContentType, Difficulty, FileKind, Project
from tests.helpers import (
    PDF_BYTES,
    ZIP_BYTES,
    admin_token,
    auth_header,
    create_content,
    create_project,
    create_taxonomy,
    purchase,
    register_user,
)

DRIVE_ID = "1AbCdEfGhIjKlMnOpQrStUvWxYz012345"


def _add_remote_content(db_session, tax, **overrides) -> uuid.UUID:
    fields = dict(
        title="Remote Lecture",
        description="stored on drive",
        type=ContentType.VIDEO_LECTURES,
        class_id=uuid.UUID(tax["class_id"]),
        semester_id=uuid.UUID(tax["semester_id"]),
        subject_id=uuid.UUID(tax["subject_id"]),
        file_kind=FileKind.REMOTE,
        file_url=f"https://drive.google.com/uc?id={DRIVE_ID}&export=download",
        file_id=DRIVE_ID,
        view_url=f"https://drive.google.com/file/d/{DRIVE_ID}/view",
        price=0,
        is_free=True,
    )
    fields.update(overrides)
    content = Content(**fields)
    db_session.add(content)
    db_session.commit()
    return content.id


def test_free_content_download_increments_counter(client, db_session):
    token = admin_token(client, db_session)
    tax = create_taxonomy(client, token)
    user = register_user(client, email="a@x.com")

    c1 = create_content(client, token, tax, title="C1 Notes", is_free=True)
    assert c1["downloads"] == 0

    res = client.get(f"/api/customer/download/{c1['id']}", headers=auth_header(user["token"]))
    assert res.status_code == 200, res.text
    assert res.content == PDF_BYTES
    assert res.headers["content-type"] == "application/pdf"
    assert res.headers["content-disposition"] == 'attachment; filename="C1_Notes.pdf"'

    assert client.get(f"/api/content/{c1['id']}").json()["downloads"] == 1


def test_paid_content_requires_purchase(client, db_session, payment_gateway):
    token = admin_token(client, db_session)
    tax = create_taxonomy(client, token)
    user = register_user(client)

    c2 = create_content(client, token, tax, title="C2 Notes", price=100, is_free=False)

    res = client.get(f"/api/customer/download/{c2['id']}", headers=auth_header(user["token"]))
    assert res.status_code == 403
    assert res.json()["message"] == "Content not purchased"
    assert client.get(f"/api/content/{c2['id']}").json()["downloads"] == 0

    purchase(client, payment_gateway, user["token"], content_id=c2["id"])

    res = client.get(f"/api/customer/download/{c2['id']}", headers=auth_header(user["token"]))
    assert res.status_code == 200, res.text
    assert res.content == PDF_BYTES

    # 구매하지 않은 다른 사용자는 여전히 403
    other = register_user(client)
    res = client.get(f"/api/customer/download/{c2['id']}", headers=auth_header(other["token"]))
    assert res.status_code == 403


def test_deleting_subject_revokes_purchase(client, db_session, payment_gateway):
    token = admin_token(client, db_session)
    tax = create_taxonomy(client, token)
    user = register_user(client)
    c2 = create_content(client, token, tax, title="C2 Notes", price=100, is_free=False)
    purchase(client, payment_gateway, user["token"], content_id=c2["id"])

    res = client.delete(f"/api/admin/subjects/{tax['subject_id']}", headers=auth_header(token))
    assert res.status_code == 200, res.text

    res = client.get(f"/api/content/{c2['id']}")
    assert res.status_code == 404
    assert res.json()["message"] == "Content not found"

    me = client.get("/api/auth/me", headers=auth_header(user["token"])).json()
    assert c2["id"] not in me["purchased_content"]

    res = client.get(f"/api/customer/download/{c2['id']}", headers=auth_header(user["token"]))
    assert res.status_code == 404


def test_download_requires_login(client, db_session):
    token = admin_token(client, db_session)
    tax = create_taxonomy(client, token)
    c1 = create_content(client, token, tax)

    res = client.get(f"/api/customer/download/{c1['id']}")
    assert res.status_code == 401


def test_missing_local_file_404(client, db_session, file_store):
    token = admin_token(client, db_session)
    tax = create_taxonomy(client, token)
    user = register_user(client)
    c1 = create_content(client, token, tax)

    stored = db_session.get(Content, uuid.UUID(c1["id"]))
    file_store.local_path(stored.file_url).unlink()

    res = client.get(f"/api/customer/download/{c1['id']}", headers=auth_header(user["token"]))
    assert res.status_code == 404
    assert res.json()["message"] == "File not found"


def test_remote_content_returns_direct_download_url(client, db_session):
    token = admin_token(client, db_session)
    tax = create_taxonomy(client, token)
    user = register_user(client)
    content_id = _add_remote_content(db_session, tax)

    res = client.get(f"/api/customer/download/{content_id}", headers=auth_header(user["token"]))
    assert res.status_code == 200, res.text
    assert res.json() == {
        "direct_url": f"https://drive.google.com/uc?id={DRIVE_ID}&export=download",
        "file_name": "Remote Lecture.mp4",
        "file_type": "Video Lectures",
    }

    res = client.get(f"/api/customer/preview/{content_id}", headers=auth_header(user["token"]))
    assert res.status_code == 200
    assert res.json() == {
        "preview_url": f"https://drive.google.com/file/d/{DRIVE_ID}/preview",
        "file_type": "video",
    }

    body = client.get(f"/api/content/{content_id}").json()
    assert body["downloads"] == 1
    assert body["views"] == 1


def test_legacy_record_without_file_kind_is_sniffed(client, db_session):
    token = admin_token(client, db_session)
    tax = create_taxonomy(client, token)
    user = register_user(client)
    content_id = _add_remote_content(
        db_session,
        tax,
        title="Old Notes",
        type=ContentType.PDF_NOTES,
        file_kind=None,
        file_id=None,
        view_url=None,
        file_url=f"https://drive.google.com/file/d/{DRIVE_ID}/view?usp=sharing",
        file_name="old-notes.docx",
    )

    res = client.get(f"/api/customer/download/{content_id}", headers=auth_header(user["token"]))
    assert res.status_code == 200, res.text
    assert res.json()["direct_url"] == f"https://drive.google.com/uc?id={DRIVE_ID}&export=download"
    assert res.json()["file_name"] == "Old Notes.docx"


def test_local_preview_sets_restrictive_headers(client, db_session, payment_gateway):
    token = admin_token(client, db_session)
    tax = create_taxonomy(client, token)
    user = register_user(client)
    paid = create_content(client, token, tax, title="Paid Notes", price=100, is_free=False)

    # 미리보기는 구매 여부와 무관
    res = client.get(f"/api/customer/preview/{paid['id']}", headers=auth_header(user["token"]))
    assert res.status_code == 200, res.text
    assert res.content == PDF_BYTES
    assert res.headers["content-type"] == "application/pdf"
    assert res.headers["cache-control"] == "no-cache, no-store, must-revalidate"
    assert res.headers["pragma"] == "no-cache"
    assert res.headers["expires"] == "0"
    assert "default-src 'none'" in res.headers["content-security-policy"]
    assert res.headers["x-content-type-options"] == "nosniff"
    assert res.headers["content-disposition"].startswith("inline")

    body = client.get(f"/api/content/{paid['id']}").json()
    assert body["views"] == 1
    assert body["downloads"] == 0


def test_preview_unknown_content_404(client, db_session):
    user = register_user(client)
    res = client.get(f"/api/customer/preview/{uuid.uuid4()}", headers=auth_header(user["token"]))
    assert res.status_code == 404


def test_project_download_free_and_paid(client, db_session, payment_gateway):
    token = admin_token(client, db_session)
    tax = create_taxonomy(client, token)
    user = register_user(client)

    free = create_project(client, token, tax, title="Free Project")
    res = client.get(f"/api/projects/download/{free['id']}", headers=auth_header(user["token"]))
    assert res.status_code == 200, res.text
    assert res.content == ZIP_BYTES
    assert res.headers["content-disposition"] == 'attachment; filename="Free_Project.zip"'

    paid = create_project(client, token, tax, title="Paid Project", price=250, is_free=False)
    res = client.get(f"/api/projects/download/{paid['id']}", headers=auth_header(user["token"]))
    assert res.status_code == 403
    assert res.json()["message"] == "Project not purchased"

    purchase(client, payment_gateway, user["token"], project_id=paid["id"])
    res = client.get(f"/api/projects/download/{paid['id']}", headers=auth_header(user["token"]))
    assert res.status_code == 200

    assert client.get(f"/api/projects/{paid['id']}").json()["downloads"] == 1


def test_remote_project_download_defaults_to_zip(client, db_session):
    token = admin_token(client, db_session)
    tax = create_taxonomy(client, token)
    user = register_user(client)

    project = Project(
        title="Drive Project",
        description="stored on drive",
        class_id=uuid.UUID(tax["class_id"]),
        subject_id=uuid.UUID(tax["subject_id"]),
        difficulty=Difficulty.ADVANCED,
        file_kind=FileKind.REMOTE,
        file_url=f"https://drive.google.com/uc?id={DRIVE_ID}&export=download",
        file_id=DRIVE_ID,
        price=0,
        is_free=True,
    )
    db_session.add(project)
    db_session.commit()

    res = client.get(f"/api/projects/download/{project.id}", headers=auth_header(user["token"]))
    assert res.status_code == 200, res.text
    assert res.json() == {
        "direct_url": f"https://drive.google.com/uc?id={DRIVE_ID}&export=download",
        "file_name": "Drive Project.zip",
    }


def test_dashboard_sections(client, db_session, payment_gateway):
    token = admin_token(client, db_session)
    tax = create_taxonomy(client, token)
    user = register_user(client)

    free = create_content(client, token, tax, title="Free Notes")
    owned = create_content(client, token, tax, title="Owned Notes", price=100, is_free=False)
    other = create_content(client, token, tax, title="Other Notes", price=150, is_free=False)
    free_project = create_project(client, token, tax, title="Free Project")
    purchase(client, payment_gateway, user["token"], content_id=owned["id"])

    res = client.get("/api/customer/dashboard", headers=auth_header(user["token"]))
    assert res.status_code == 200, res.text
    body = res.json()

    assert [c["id"] for c in body["purchased_content"]] == [owned["id"]]
    assert body["purchased_projects"] == []
    assert [c["id"] for c in body["recommended_content"]] == [other["id"]]
    assert [c["id"] for c in body["popular_content"]] == [other["id"]]
    assert [c["id"] for c in body["free_content"]] == [free["id"]]
    assert [p["id"] for p in body["free_projects"]] == [free_project["id"]]
    assert body["recommended_projects"] == []
