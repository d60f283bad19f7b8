"""
services/reconcile.py

연쇄 삭제 이후 남은 불일치를 정리하는 관리 작업.

- PendingFileDeletion(삭제 보류 파일) 재시도
  * 성공 → 행 삭제
  * 실패 → attempts + 1, last_error 갱신
- 존재하지 않는 항목을 가리키는 권한(Entitlement) 행 삭제

db.commit()은 라우터에서 수행

"""

from dataclasses import dataclass

import structlog
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from app.core.errors import UpstreamServiceError
from app.models.catalog import Content, Project
from app.models.entitlement import ContentEntitlement, ProjectEntitlement
from app.models.file_deletion import PendingFileDeletion
from app.services.storage import FileStore, StoredFile

logger = structlog.get_logger()


@dataclass
class ReconcileReport:
    files_removed: int = 0
    files_pending: int = 0
    entitlements_removed: int = 0


def retry_file_deletions(db: Session, file_store: FileStore, report: ReconcileReport) -> None:
    pending = db.scalars(select(PendingFileDeletion).order_by(PendingFileDeletion.created_at)).all()

    for row in pending:
        ref = StoredFile(kind=row.kind, url=row.locator, file_id=row.locator)
        try:
            file_store.remove(ref)
        except (UpstreamServiceError, OSError, ValueError) as e:
            row.attempts += 1
            row.last_error = str(e)
            report.files_pending += 1
            logger.warning("file_removal_retry_failed", tombstone_id=str(row.id), attempts=row.attempts, error=str(e))
            continue

        db.delete(row)
        report.files_removed += 1

    db.flush()


def remove_dangling_entitlements(db: Session, report: ReconcileReport) -> None:
    content_rows = db.execute(
        delete(ContentEntitlement).where(
            ~ContentEntitlement.content_id.in_(select(Content.id))
        )
    )
    project_rows = db.execute(
        delete(ProjectEntitlement).where(
            ~ProjectEntitlement.project_id.in_(select(Project.id))
        )
    )
    report.entitlements_removed = (content_rows.rowcount or 0) + (project_rows.rowcount or 0)


def reconcile(db: Session, file_store: FileStore) -> ReconcileReport:
    report = ReconcileReport()
    retry_file_deletions(db, file_store, report)
    remove_dangling_entitlements(db, report)

    logger.info(
        "reconcile_finished",
        files_removed=report.files_removed,
        files_pending=report.files_pending,
        entitlements_removed=report.entitlements_removed,
    )
    return report
