"""
Document attachments for legal cases, notices and loan accounts.

Files are written to the local upload directory under
``<entity-type>/<entity-id>/YYYY/MM/DD/<epoch-ms>-<nonce>-<name>``; metadata lives in the
``documents`` collection. New versions form a chain rooted at the first upload.
"""

from __future__ import annotations

import hashlib
import re
import time
import uuid
from collections import Counter
from pathlib import Path
from typing import Any

from legal_case_management.domain.errors import AccessDenied, ResourceNotFound, ValidationFailed
from legal_case_management.models.documents import DocumentCreate, DocumentUpdate, UploadedFile
from legal_case_management.models.entities import (
    DocumentStatus,
    LinkedEntityType,
    RecordStatus,
    TimelineEventType,
)
from legal_case_management.services.base import StoreBackedService
from legal_case_management.services.notifications import NotificationService
from legal_case_management.services.timeline import TimelineService
from legal_case_management.utils.dates import utc_now, utc_now_iso

# linked entity type -> (collection, code prefix)
LINKED_COLLECTIONS = {
    LinkedEntityType.LEGAL_CASE: ("legal_cases", "LC"),
    LinkedEntityType.LEGAL_NOTICE: ("legal_notices", "DOC"),
    LinkedEntityType.LOAN_ACCOUNT: ("loan_accounts", "DOC"),
}

_UNSAFE_NAME = re.compile(r"[^A-Za-z0-9._-]+")


def safe_filename(name: str) -> str:
    cleaned = _UNSAFE_NAME.sub("_", Path(name).name).strip("._")
    return cleaned or "document"


def can_access(document: dict[str, Any], requester: str | None) -> bool:
    """Public documents and "all" permissions are open to anonymous callers too."""
    if document.get("is_public"):
        return True
    permissions = document.get("access_permissions") or []
    if "all" in permissions:
        return True
    if requester is None:
        return False
    return requester in permissions or document.get("uploaded_by") == requester


class DocumentService(StoreBackedService):
    collection = "documents"
    label = "Document"

    def __init__(
        self,
        store,
        timeline: TimelineService,
        notifications: NotificationService,
        settings=None,
    ):
        super().__init__(store, settings)
        self.timeline = timeline
        self.notifications = notifications
        self.upload_root = Path(self.settings.upload_path)

    # ------------------------------------------------------------------ helpers

    def _validate_file(self, file: UploadedFile) -> None:
        max_bytes = self.settings.max_upload_size_mb * 1024 * 1024
        if file.size == 0:
            raise ValidationFailed("Uploaded file is empty")
        if file.size > max_bytes:
            raise ValidationFailed(
                f"File too large. Maximum size: {self.settings.max_upload_size_mb}MB"
            )
        if file.content_type not in self.settings.allowed_mime_types:
            raise ValidationFailed(f"File type {file.content_type} is not allowed")

    def _linked_entity(self, entity_type: LinkedEntityType, entity_id: str) -> dict[str, Any]:
        if not (entity_id or "").strip():
            raise ValidationFailed(f"{entity_type.value} reference is required")
        collection, _ = LINKED_COLLECTIONS[entity_type]
        if entity_type == LinkedEntityType.LOAN_ACCOUNT:
            record = self.store.find_one(collection, {"loan_account_number": entity_id})
        else:
            record = self.store.get(collection, entity_id)
        if record is None or record.get("status") == RecordStatus.DELETED.value:
            raise ValidationFailed(f"{entity_type.value} with ID {entity_id} not found")
        return record

    def _write(self, entity_type: str, entity_id: str, file: UploadedFile) -> Path:
        now = utc_now()
        folder = (
            self.upload_root
            / safe_filename(entity_type.lower().replace(" ", "-"))
            / safe_filename(entity_id)
            / now.strftime("%Y")
            / now.strftime("%m")
            / now.strftime("%d")
        )
        folder.mkdir(parents=True, exist_ok=True)
        path = folder / f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}-{safe_filename(file.filename)}"
        path.write_bytes(file.content)
        return path

    @staticmethod
    def _file_fields(file: UploadedFile, path: Path) -> dict[str, Any]:
        return {
            "original_file_name": file.filename,
            "mime_type": file.content_type,
            "file_size_bytes": file.size,
            "file_size_mb": round(file.size / (1024 * 1024), 2),
            "file_path": str(path),
            "storage_provider": "local",
            "document_hash": hashlib.sha256(file.content).hexdigest(),
        }

    def _visible(self, document_id: str) -> dict[str, Any]:
        document = self._require(document_id)
        if document.get("status") == DocumentStatus.DELETED.value:
            raise ResourceNotFound(f"Document with ID {document_id} not found")
        return document

    def _check_access(self, document: dict[str, Any], requester: str | None, internal: bool = False) -> None:
        if internal or can_access(document, requester):
            return
        if document.get("confidential_flag"):
            raise AccessDenied("Document is confidential")
        raise AccessDenied("Access denied to this document")

    # --------------------------------------------------------------- operations

    def upload(self, data: DocumentCreate, file: UploadedFile, uploaded_by: str | None = None) -> dict[str, Any]:
        self._validate_file(file)
        linked = self._linked_entity(data.linked_entity_type, data.linked_entity_id)
        _, prefix = LINKED_COLLECTIONS[data.linked_entity_type]

        path = self._write(data.linked_entity_type.value, data.linked_entity_id, file)
        doc = data.model_dump(mode="json")
        doc.update(self._file_fields(file, path))
        doc.update(
            {
                "document_code": self._next_code(prefix),
                "version_number": 1,
                "parent_document_id": None,
                "is_latest_version": True,
                "status": DocumentStatus.ACTIVE.value,
                "uploaded_by": uploaded_by or self.settings.system_user,
                "last_accessed_at": None,
                "last_accessed_by": None,
            }
        )
        document = self.store.insert(self.collection, self._stamp_new(doc, uploaded_by))
        self.logger.info(
            f"Uploaded {document['document_code']} ({file.size} bytes) for "
            f"{data.linked_entity_type.value} {data.linked_entity_id}"
        )

        if data.linked_entity_type == LinkedEntityType.LEGAL_CASE:
            self.timeline.record(
                linked["id"],
                TimelineEventType.DOCUMENT_UPLOADED,
                f"Document uploaded: {data.document_name}",
                metadata={"document_id": document["id"], "document_type": data.case_document_type.value},
                created_by=uploaded_by,
            )
            self.notifications.notify_document_upload(
                [linked.get("lawyer_assigned_id")], linked, data.document_name
            )
        return document

    def get(self, document_id: str, requester: str | None = None, internal: bool = False) -> dict[str, Any]:
        """Fetch a document for ``requester``. ``internal`` skips the access check for service callers."""
        document = self._visible(document_id)
        self._check_access(document, requester, internal)
        return document

    def list_for_entity(
        self,
        linked_entity_type: LinkedEntityType,
        linked_entity_id: str,
        page: int = 1,
        limit: int = 10,
        case_document_type=None,
        latest_only: bool = True,
    ) -> dict[str, Any]:
        filters = {
            "linked_entity_type": linked_entity_type.value,
            "linked_entity_id": linked_entity_id,
            "status__ne": DocumentStatus.DELETED.value,
            "case_document_type": case_document_type.value if case_document_type else None,
            "is_latest_version": True if latest_only else None,
        }
        rows, meta = self._paged(filters, page, limit, sort=[("created_at", "DESC")])
        return {"documents": rows, **meta}

    def list_for_case(self, legal_case_id: str, page: int = 1, limit: int = 10, case_document_type=None) -> dict[str, Any]:
        self._linked_entity(LinkedEntityType.LEGAL_CASE, legal_case_id)
        return self.list_for_entity(
            LinkedEntityType.LEGAL_CASE, legal_case_id, page, limit, case_document_type
        )

    def case_document_summary(self, legal_case_id: str) -> dict[str, Any]:
        self._linked_entity(LinkedEntityType.LEGAL_CASE, legal_case_id)
        rows = self.store.find(
            self.collection,
            {
                "linked_entity_type": LinkedEntityType.LEGAL_CASE.value,
                "linked_entity_id": legal_case_id,
                "status__ne": DocumentStatus.DELETED.value,
            },
            sort=[("created_at", "DESC")],
        )
        return {
            "legal_case_id": legal_case_id,
            "total_documents": len(rows),
            "total_size_mb": round(sum(r.get("file_size_mb") or 0 for r in rows), 2),
            "by_type": dict(Counter(r.get("case_document_type") for r in rows)),
            "by_status": dict(Counter(r.get("status") for r in rows)),
            "recent_documents": rows[:5],
        }

    def update(self, document_id: str, data: DocumentUpdate, requester: str | None = None) -> dict[str, Any]:
        document = self._visible(document_id)
        self._check_access(document, requester)
        changes = data.model_dump(mode="json", exclude_unset=True)
        return self.store.update(self.collection, document_id, self._stamp_update(changes, requester))

    def new_version(self, document_id: str, file: UploadedFile, uploaded_by: str | None = None) -> dict[str, Any]:
        current = self._visible(document_id)
        self._check_access(current, uploaded_by)
        self._validate_file(file)
        if not current.get("is_latest_version", True):
            raise ValidationFailed("New versions can only be created from the latest version")

        path = self._write(current["linked_entity_type"], current["linked_entity_id"], file)
        _, prefix = LINKED_COLLECTIONS[LinkedEntityType(current["linked_entity_type"])]
        doc = {
            k: current.get(k)
            for k in (
                "linked_entity_type",
                "linked_entity_id",
                "document_name",
                "case_document_type",
                "access_permissions",
                "confidential_flag",
                "is_public",
                "hearing_date",
                "document_date",
                "remarks_tags",
            )
        }
        doc.update(self._file_fields(file, path))
        doc.update(
            {
                "document_code": self._next_code(prefix),
                "version_number": current.get("version_number", 1) + 1,
                "parent_document_id": current.get("parent_document_id") or current["id"],
                "is_latest_version": True,
                "status": DocumentStatus.ACTIVE.value,
                "uploaded_by": uploaded_by or self.settings.system_user,
                "last_accessed_at": None,
                "last_accessed_by": None,
            }
        )
        document = self.store.insert(self.collection, self._stamp_new(doc, uploaded_by))
        self.store.update(
            self.collection, document_id, self._stamp_update({"is_latest_version": False}, uploaded_by)
        )
        self.logger.info(f"Created version {document['version_number']} of {current['document_code']}")
        return document

    def versions(self, document_id: str, requester: str | None = None) -> list[dict[str, Any]]:
        document = self._visible(document_id)
        self._check_access(document, requester)
        root_id = document.get("parent_document_id") or document["id"]
        root = self.store.get(self.collection, root_id)
        chain = self.store.find(self.collection, {"parent_document_id": root_id})
        rows = ([root] if root else []) + chain
        rows = [r for r in rows if r.get("status") != DocumentStatus.DELETED.value]
        return sorted(rows, key=lambda r: r.get("version_number", 1))

    def delete(self, document_id: str, deleted_by: str | None = None, internal: bool = False) -> dict[str, Any]:
        document = self._visible(document_id)
        self._check_access(document, deleted_by, internal)
        self.store.update(
            self.collection,
            document_id,
            self._stamp_update({"status": DocumentStatus.DELETED.value}, deleted_by),
        )
        self.logger.info(f"Soft-deleted document {document['document_code']}")
        return {"success": True, "message": f"Document {document['document_code']} deleted successfully"}

    def download(self, document_id: str, requester: str | None = None, internal: bool = False) -> dict[str, Any]:
        document = self.get(document_id, requester, internal)
        path = Path(document["file_path"])
        if not path.is_file():
            raise ResourceNotFound(f"File for document {document['document_code']} not found on disk")
        self.store.update(
            self.collection,
            document_id,
            {
                "last_accessed_at": utc_now_iso(),
                "last_accessed_by": requester or self.settings.system_user,
            },
        )
        return {
            "file_path": str(path),
            "file_name": document.get("original_file_name") or path.name,
            "mime_type": document.get("mime_type") or "application/octet-stream",
        }
