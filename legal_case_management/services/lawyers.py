from __future__ import annotations

from typing import Any

from legal_case_management.domain.errors import ConflictError, ResourceNotFound
from legal_case_management.models.entities import LawyerType
from legal_case_management.models.lawyers import LawyerCreate, LawyerUpdate
from legal_case_management.services.base import StoreBackedService

LAWYER_CODE_PREFIX = "LAW"


def workload_percentage(current_cases: int, max_cases: int) -> float:
    if not max_cases:
        return 100.0
    return round(current_cases / max_cases * 100, 2)


def workload_score(lawyer: dict[str, Any]) -> float:
    """Higher is better: spare capacity, track record and experience, weighted 40/40/20."""
    capacity = 100 - workload_percentage(lawyer.get("current_cases", 0), lawyer.get("max_cases", 0))
    success = float(lawyer.get("success_rate") or 0)
    experience = min((lawyer.get("experience") or 0) * 2, 20)
    return round(capacity * 0.4 + success * 0.4 + experience * 0.2, 2)


class LawyerService(StoreBackedService):
    collection = "lawyers"
    label = "Lawyer"

    def _check_unique(self, email: str | None, bar_number: str | None, exclude_id: str | None = None) -> None:
        if email:
            other = self.store.find_one(self.collection, {"email__ieq": email})
            if other and other["id"] != exclude_id:
                raise ConflictError(f"Lawyer with email {email} already exists")
        if bar_number:
            other = self.store.find_one(self.collection, {"bar_number": bar_number})
            if other and other["id"] != exclude_id:
                raise ConflictError(f"Lawyer with bar number {bar_number} already exists")

    def create(self, data: LawyerCreate) -> dict[str, Any]:
        self._check_unique(data.email, data.bar_number)
        doc = data.model_dump(mode="json", exclude={"created_by"})
        doc["email"] = data.email.lower()
        doc["full_name"] = f"{data.first_name} {data.last_name}"
        doc["current_cases"] = 0
        doc["lawyer_code"] = self._next_code(LAWYER_CODE_PREFIX, width=3)
        lawyer = self.store.insert(self.collection, self._stamp_new(doc, data.created_by))
        self.logger.info(f"Created lawyer {lawyer['lawyer_code']} ({lawyer['full_name']})")
        return lawyer

    def get(self, lawyer_id: str) -> dict[str, Any]:
        return self._require(lawyer_id)

    def list(
        self,
        page: int = 1,
        limit: int = 10,
        search: str | None = None,
        lawyer_type: LawyerType | None = None,
        specialization: str | None = None,
        jurisdiction: str | None = None,
        is_active: bool | None = None,
        is_available: bool | None = None,
    ) -> dict[str, Any]:
        filters = {
            "lawyer_type": lawyer_type.value if lawyer_type else None,
            "specialization__like": specialization,
            "jurisdiction__like": jurisdiction,
            "is_active": is_active,
            "is_available": is_available,
        }
        rows, meta = self._paged(
            filters,
            page,
            limit,
            sort=[("full_name", "ASC")],
            search=(["full_name", "email", "bar_number"], search) if search else None,
        )
        return {"lawyers": rows, **meta}

    def update(self, lawyer_id: str, data: LawyerUpdate) -> dict[str, Any]:
        existing = self._require(lawyer_id)
        changes = data.model_dump(mode="json", exclude_unset=True, exclude={"updated_by"})
        self._check_unique(changes.get("email"), changes.get("bar_number"), exclude_id=lawyer_id)
        if changes.get("email"):
            changes["email"] = changes["email"].lower()
        if "first_name" in changes or "last_name" in changes:
            first = changes.get("first_name", existing.get("first_name"))
            last = changes.get("last_name", existing.get("last_name"))
            changes["full_name"] = f"{first} {last}"
        return self.store.update(self.collection, lawyer_id, self._stamp_update(changes, data.updated_by))

    def delete(self, lawyer_id: str, deleted_by: str | None = None) -> dict[str, Any]:
        lawyer = self._require(lawyer_id)
        if lawyer.get("current_cases", 0) > 0:
            raise ConflictError(
                f"Cannot delete lawyer {lawyer['lawyer_code']} with {lawyer['current_cases']} active cases"
            )
        self.store.update(
            self.collection,
            lawyer_id,
            self._stamp_update({"is_active": False, "is_available": False}, deleted_by),
        )
        self.logger.info(f"Deactivated lawyer {lawyer['lawyer_code']}")
        return {"success": True, "message": f"Lawyer {lawyer['full_name']} deactivated successfully"}

    def adjust_case_count(self, lawyer_id: str, delta: int) -> dict[str, Any] | None:
        lawyer = self.store.get(self.collection, lawyer_id)
        if lawyer is None:
            return None
        current = max(0, lawyer.get("current_cases", 0) + delta)
        return self.store.update(self.collection, lawyer_id, {"current_cases": current})

    def available(self) -> list[dict[str, Any]]:
        """Active, available lawyers with spare capacity, least loaded and most successful first."""
        rows = self.store.find(
            self.collection,
            {"is_active": True, "is_available": True},
            sort=[("current_cases", "ASC"), ("success_rate", "DESC")],
        )
        return [r for r in rows if r.get("current_cases", 0) < r.get("max_cases", 0)]

    def workload_stats(self) -> dict[str, Any]:
        lawyers = self.store.find(self.collection, {"is_active": True}, sort=[("full_name", "ASC")])
        details = [
            {
                "lawyer_id": lw["id"],
                "lawyer_code": lw.get("lawyer_code"),
                "full_name": lw.get("full_name"),
                "current_cases": lw.get("current_cases", 0),
                "max_cases": lw.get("max_cases", 0),
                "workload_percentage": workload_percentage(lw.get("current_cases", 0), lw.get("max_cases", 0)),
                "workload_score": workload_score(lw),
                "is_available": lw.get("is_available", False),
            }
            for lw in lawyers
        ]
        total_capacity = sum(d["max_cases"] for d in details)
        total_cases = sum(d["current_cases"] for d in details)
        return {
            "total_lawyers": len(details),
            "available_lawyers": len(self.available()),
            "overloaded_lawyers": sum(1 for d in details if d["workload_percentage"] >= 100),
            "total_cases": total_cases,
            "total_capacity": total_capacity,
            "average_workload": round(total_cases / total_capacity * 100, 2) if total_capacity else 0.0,
            "lawyers": details,
        }

    def best_match(
        self,
        specialization: str | None = None,
        jurisdiction: str | None = None,
        lawyer_type: LawyerType | None = None,
    ) -> dict[str, Any]:
        candidates = self.available()
        if specialization:
            candidates = [c for c in candidates if specialization.lower() in (c.get("specialization") or "").lower()]
        if jurisdiction:
            candidates = [c for c in candidates if jurisdiction.lower() in (c.get("jurisdiction") or "").lower()]
        if lawyer_type:
            candidates = [c for c in candidates if c.get("lawyer_type") == lawyer_type.value]
        if not candidates:
            raise ResourceNotFound("No available lawyer matches the requested criteria")
        best = max(candidates, key=workload_score)
        return {"lawyer": best, "workload_score": workload_score(best), "candidates": len(candidates)}
