from __future__ import annotations

import re
from typing import Any

from legal_case_management.domain.errors import ConflictError
from legal_case_management.services.master_data.common import MasterDataService

LANGUAGE_CODES = {
    "ENGLISH": "EN",
    "HINDI": "HI",
    "SPANISH": "ES",
    "FRENCH": "FR",
    "GERMAN": "DE",
    "ITALIAN": "IT",
    "PORTUGUESE": "PT",
    "RUSSIAN": "RU",
    "CHINESE": "ZH",
    "JAPANESE": "JA",
    "KOREAN": "KO",
    "ARABIC": "AR",
    "BENGALI": "BN",
    "TAMIL": "TA",
    "TELUGU": "TE",
    "MARATHI": "MR",
    "GUJARATI": "GU",
    "KANNADA": "KN",
    "MALAYALAM": "ML",
    "PUNJABI": "PA",
    "URDU": "UR",
    "ORIYA": "OR",
    "ASSAMESE": "AS",
    "NEPALI": "NE",
    "SANSKRIT": "SA",
}


def base_language_code(language_name: str) -> str:
    clean = re.sub(r"[^A-Z]", "", language_name.upper())
    return LANGUAGE_CODES.get(clean) or clean[:3]


class LanguageService(MasterDataService):
    collection = "languages"
    label = "Language"
    entity = "language"
    list_key = "languages"
    search_fields = ["language_code", "language_name"]
    sort_field = "language_name"

    def _unique_code(self, language_name: str) -> str:
        base = base_language_code(language_name)
        code, counter = base, 1
        while self.store.find_one(self.collection, {"language_code": code}):
            code = f"{base}{counter}"
            counter += 1
        return code

    def _prepare_create(self, doc: dict[str, Any]) -> dict[str, Any]:
        doc["language_name"] = doc["language_name"].strip()
        self._ensure_unique("language_name", doc["language_name"], case_insensitive=True)
        doc["language_code"] = self._unique_code(doc["language_name"])
        return doc

    def _prepare_update(self, existing: dict[str, Any], changes: dict[str, Any]) -> dict[str, Any]:
        if changes.get("language_name"):
            changes["language_name"] = changes["language_name"].strip()
            self._ensure_unique(
                "language_name", changes["language_name"], exclude_id=existing["id"], case_insensitive=True
            )
        return changes

    def _check_delete(self, existing: dict[str, Any]) -> None:
        for collection, what in (
            ("communication_templates", "template"),
            ("notice_templates", "notice template"),
            ("legal_notices", "notice"),
        ):
            in_use = self.store.count(collection, {"language_id": existing["id"]})
            if in_use:
                raise ConflictError(
                    f"Cannot delete language {existing['language_name']}: used by {in_use} {what}(s)"
                )
