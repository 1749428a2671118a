"""Product hierarchy: group -> type -> subtype -> variant."""

from __future__ import annotations

from typing import Any

from legal_case_management.domain.errors import ConflictError, ValidationFailed
from legal_case_management.models.entities import MasterStatus
from legal_case_management.services.master_data.common import MasterDataService

# level -> (collection, code prefix, parent collection, child collection)
PRODUCT_LEVELS = {
    "group": ("product_groups", "PG", None, "product_types"),
    "type": ("product_types", "PT", "product_groups", "product_subtypes"),
    "subtype": ("product_subtypes", "PS", "product_types", "product_variants"),
    "variant": ("product_variants", "PV", "product_subtypes", None),
}


class ProductLevelService(MasterDataService):
    search_fields = ["code", "name"]
    sort_field = "code"

    def __init__(self, store, level: str, events=None, settings=None):
        super().__init__(store, events, settings)
        self.level = level
        self.collection, self.prefix, self.parent_collection, self.child_collection = PRODUCT_LEVELS[level]
        self.label = f"Product {level}"
        self.entity = f"product_{level}"
        self.list_key = self.collection

    def _prepare_create(self, doc: dict[str, Any]) -> dict[str, Any]:
        parent_id = doc.get("parent_id")
        if self.parent_collection is None:
            if parent_id:
                raise ValidationFailed("Product groups do not have a parent")
        else:
            if not parent_id:
                raise ValidationFailed(f"Product {self.level} requires a parent_id")
            self._require(parent_id, self.parent_collection, "Parent product")
        doc["name"] = doc["name"].strip()
        self._ensure_unique("name", doc["name"], case_insensitive=True, parent_id=parent_id)
        seq = self.store.next_sequence(f"{self.collection}:{self.prefix}")
        doc["code"] = f"{self.prefix}{seq:03d}"
        return doc

    def _prepare_update(self, existing: dict[str, Any], changes: dict[str, Any]) -> dict[str, Any]:
        if changes.get("name"):
            changes["name"] = changes["name"].strip()
            self._ensure_unique(
                "name",
                changes["name"],
                exclude_id=existing["id"],
                case_insensitive=True,
                parent_id=existing.get("parent_id"),
            )
        return changes

    def _check_delete(self, existing: dict[str, Any]) -> None:
        if self.child_collection is None:
            return
        children = self.store.count(self.child_collection, {"parent_id": existing["id"]})
        if children:
            raise ConflictError(
                f"Cannot delete {self.label.lower()} {existing['name']}: it has {children} child record(s)"
            )

    def children_of(self, parent_id: str) -> list[dict[str, Any]]:
        return self.store.find(self.collection, {"parent_id": parent_id}, sort=[("code", "ASC")])


class ProductHierarchy:
    """Facade over the four product levels."""

    def __init__(self, store, events=None, settings=None):
        self.groups = ProductLevelService(store, "group", events, settings)
        self.types = ProductLevelService(store, "type", events, settings)
        self.subtypes = ProductLevelService(store, "subtype", events, settings)
        self.variants = ProductLevelService(store, "variant", events, settings)
        self.store = store

    def level(self, name: str) -> ProductLevelService:
        return {
            "group": self.groups,
            "type": self.types,
            "subtype": self.subtypes,
            "variant": self.variants,
        }[name]

    def tree(self, include_inactive: bool = False) -> list[dict[str, Any]]:
        status = None if include_inactive else MasterStatus.ACTIVE.value

        def nodes(service: ProductLevelService, parent_id: str | None):
            filters = {"status": status}
            if parent_id is not None:
                filters["parent_id"] = parent_id
            return service.store.find(service.collection, filters, sort=[("code", "ASC")])

        tree = []
        for group in nodes(self.groups, None):
            types = []
            for ptype in nodes(self.types, group["id"]):
                subtypes = []
                for subtype in nodes(self.subtypes, ptype["id"]):
                    subtypes.append({**subtype, "variants": nodes(self.variants, subtype["id"])})
                types.append({**ptype, "subtypes": subtypes})
            tree.append({**group, "types": types})
        return tree
