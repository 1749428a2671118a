import logging
import os
import time
import uuid
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from arango import ArangoClient
from arango.exceptions import DocumentInsertError, DocumentUpdateError

from legal_case_management.domain.errors import ConflictError
from legal_case_management.utils.dates import utc_now_iso

# Unique-constraint violation reported by ArangoDB
ARANGO_UNIQUE_CONSTRAINT_VIOLATED = 1210

SEQUENCES_COLLECTION = "sequences"

# collection -> list of (fields, unique)
COLLECTION_INDEXES: Dict[str, List[Tuple[Tuple[str, ...], bool]]] = {
    "loan_accounts": [(("loan_account_number",), True)],
    "legal_cases": [
        (("case_id",), True),
        (("loan_account_number",), False),
        (("current_status", "status"), False),
        (("lawyer_assigned_id",), False),
        (("created_at",), False),
    ],
    "case_timeline_events": [(("legal_case_id", "event_date"), False), (("event_type",), False)],
    "lawyers": [
        (("lawyer_code",), True),
        (("email",), True),
        (("bar_number",), True),
        (("is_active", "is_available"), False),
    ],
    "lawyer_allocations": [
        (("allocation_code",), True),
        (("legal_case_id", "status"), False),
        (("lawyer_id",), False),
    ],
    "documents": [
        (("document_code",), True),
        (("linked_entity_type", "linked_entity_id"), False),
        (("parent_document_id",), False),
    ],
    "legal_notices": [
        (("notice_code",), True),
        (("loan_account_number", "dpd_days"), False),
        (("state_id",), False),
    ],
    "notice_acknowledgements": [(("acknowledgement_code",), True), (("notice_id",), False)],
    "communications": [(("message_id",), True), (("status",), False)],
    "notifications": [(("recipient_id", "is_read"), False)],
    "error_logs": [(("error_id",), True), (("severity", "resolved"), False)],
    "recovery_triggers": [(("trigger_code",), True), (("loan_account_number",), False)],
    "states": [(("state_code",), True), (("state_id",), True)],
    "dpd_buckets": [(("bucket_id",), True)],
    "languages": [(("language_code",), True)],
    "channels": [(("channel_id",), True)],
    "product_groups": [(("code",), True)],
    "product_types": [(("code",), True), (("parent_id",), False)],
    "product_subtypes": [(("code",), True), (("parent_id",), False)],
    "product_variants": [(("code",), True), (("parent_id",), False)],
    "communication_templates": [(("template_id",), True), (("channel_id", "language_id"), False)],
    "notice_templates": [(("template_code",), True)],
    "schema_configurations": [(("schema_name",), True)],
    SEQUENCES_COLLECTION: [],
}

_COMPARISON_OPERATORS = {
    "ne": "!=",
    "gt": ">",
    "gte": ">=",
    "lt": "<",
    "lte": "<=",
}


def build_filter_clauses(
    filters: Optional[Dict[str, Any]] = None,
    search: Optional[Tuple[Sequence[str], str]] = None,
    var: str = "doc",
) -> Tuple[List[str], Dict[str, Any]]:
    """Translate keyword filters into AQL FILTER clauses plus bind variables.

    Keys take the form ``field`` or ``field__op`` where op is one of ``ne``, ``gt``,
    ``gte``, ``lt``, ``lte``, ``in``, ``contains`` (array field holds the value),
    ``like`` (case-insensitive substring), ``ieq`` (case-insensitive equality) or ``null`` (True/False).
    Filters whose value is None are skipped, except for ``null``. The field
    ``id`` addresses the document key.

    ``search`` is a ``(fields, term)`` pair OR-ing a case-insensitive substring
    match over every field.
    """
    clauses: List[str] = []
    bind_vars: Dict[str, Any] = {}
    for i, (key, value) in enumerate((filters or {}).items()):
        field, _, op = key.partition("__")
        if field == "id":
            field = "_key"
        attr, val = f"f{i}", f"v{i}"
        if op == "null":
            if value is None:
                continue
            bind_vars[attr] = field
            clauses.append(
                f"FILTER {var}.@{attr} == null" if value else f"FILTER {var}.@{attr} != null"
            )
            continue
        if value is None:
            continue
        bind_vars[attr] = field
        bind_vars[val] = value
        if not op:
            clauses.append(f"FILTER {var}.@{attr} == @{val}")
        elif op in _COMPARISON_OPERATORS:
            clauses.append(f"FILTER {var}.@{attr} {_COMPARISON_OPERATORS[op]} @{val}")
        elif op == "in":
            bind_vars[val] = list(value)
            clauses.append(f"FILTER {var}.@{attr} IN @{val}")
        elif op == "contains":
            clauses.append(f"FILTER @{val} IN {var}.@{attr}")
        elif op == "like":
            clauses.append(f"FILTER CONTAINS(LOWER({var}.@{attr}), LOWER(@{val}))")
        elif op == "ieq":
            clauses.append(f"FILTER LOWER({var}.@{attr}) == LOWER(@{val})")
        else:
            raise ValueError(f"Unsupported filter operator '{op}' in '{key}'")

    if search and search[1]:
        fields, term = search
        parts = []
        for j, field in enumerate(fields):
            bind_vars[f"s{j}"] = field
            parts.append(f"CONTAINS(LOWER({var}.@s{j}), @search_term)")
        bind_vars["search_term"] = str(term).lower()
        clauses.append("FILTER " + " OR ".join(parts))
    return clauses, bind_vars


def build_sort_clause(
    sort: Optional[Iterable[Tuple[str, str]]], var: str = "doc"
) -> Tuple[str, Dict[str, Any]]:
    """Build an AQL SORT clause from (field, direction) pairs."""
    items = []
    bind_vars: Dict[str, Any] = {}
    for i, (field, direction) in enumerate(sort or []):
        direction = direction.upper()
        if direction not in ("ASC", "DESC"):
            raise ValueError(f"Invalid sort direction: {direction}")
        bind_vars[f"o{i}"] = field
        items.append(f"{var}.@o{i} {direction}")
    if not items:
        return "", bind_vars
    return "SORT " + ", ".join(items), bind_vars


class ArangoStore:
    """Document store for every legal case management collection.

    Records are plain dicts. The document key is exposed as ``id``; ArangoDB
    system attributes are stripped on the way out.
    """

    def __init__(
        self,
        host: str = None,
        db_name: str = None,
        username: str = None,
        password: str = None,
        max_retries: int = 3,
        retry_delay: int = 2,
    ):
        self.host = host or os.getenv("ARANGO_HOST", "http://localhost:8529")
        self.db_name = db_name or os.getenv("ARANGO_DB_NAME", "legal_case_management")
        self.username = username or os.getenv("ARANGO_USERNAME", "root")
        self.password = password or os.getenv("ARANGO_PASSWORD", "")
        self.max_retries = max_retries
        self.retry_delay = retry_delay

        self.logger = logging.getLogger(__name__)
        self.logger.info(f"Initializing ArangoDB connection to {self.host}")

        self._init_connection()

        self.logger.info("Initialized ArangoStore")

    def _init_connection(self):
        """Initialize connection to ArangoDB with retry logic."""
        for attempt in range(self.max_retries):
            try:
                self.logger.debug(
                    f"Attempting to connect to ArangoDB (attempt {attempt + 1}/{self.max_retries})"
                )
                self.client = ArangoClient(hosts=self.host)

                sys_db = self.client.db("_system", username=self.username, password=self.password)
                if not sys_db.has_database(self.db_name):
                    self.logger.info(f"Creating database: {self.db_name}")
                    sys_db.create_database(name=self.db_name)

                self.db = self.client.db(
                    self.db_name, username=self.username, password=self.password
                )
                version = self.db.version()
                self.logger.info(f"Successfully connected to ArangoDB version {version}")

                self._init_collections()
                self._init_indexes()
                return

            except Exception as e:
                if attempt < self.max_retries - 1:
                    wait_time = self.retry_delay * (attempt + 1)
                    self.logger.warning(
                        f"Failed to connect to ArangoDB (attempt {attempt + 1}/{self.max_retries}): {e}. "
                        f"Retrying in {wait_time} seconds..."
                    )
                    time.sleep(wait_time)
                else:
                    self.logger.error(
                        f"Failed to connect to ArangoDB after {self.max_retries} attempts. "
                        f"Please ensure ArangoDB is running and accessible at {self.host}. "
                        f"Error: {e}"
                    )
                    raise ConnectionError(
                        f"Could not connect to ArangoDB at {self.host}. "
                        "Please ensure the database is running and accessible."
                    ) from e

    def _init_collections(self):
        """Create any missing document collections."""
        for name in COLLECTION_INDEXES:
            if not self.db.has_collection(name):
                self.db.create_collection(name)
                self.logger.info(f"Created collection: {name}")

    def _init_indexes(self):
        """Ensure persistent and unique indexes exist."""
        for name, indexes in COLLECTION_INDEXES.items():
            coll = self.db.collection(name)
            for fields, unique in indexes:
                try:
                    coll.add_index(
                        {
                            "type": "persistent",
                            "fields": list(fields),
                            "unique": unique,
                            "sparse": unique,
                            "name": f"idx_{'_'.join(fields)}",
                        }
                    )
                except Exception as e:
                    self.logger.warning(f"Could not add index {fields} on {name}: {e}")

    @staticmethod
    def _to_record(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        if doc is None:
            return None
        record = {k: v for k, v in doc.items() if k not in ("_id", "_rev", "_key")}
        record["id"] = doc["_key"]
        return record

    def insert(self, collection: str, doc: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a document and return the stored record (with ``id``)."""
        body = {k: v for k, v in doc.items() if k != "id"}
        body["_key"] = doc.get("id") or uuid.uuid4().hex
        try:
            result = self.db.collection(collection).insert(body, return_new=True)
        except DocumentInsertError as e:
            if e.error_code == ARANGO_UNIQUE_CONSTRAINT_VIOLATED:
                raise ConflictError(f"Duplicate value violates unique index on {collection}") from e
            raise
        return self._to_record(result["new"])

    def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        if not key:
            return None
        return self._to_record(self.db.collection(collection).get(key))

    def update(self, collection: str, key: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Merge ``changes`` into an existing document. Returns None when it does not exist."""
        coll = self.db.collection(collection)
        if not coll.has(key):
            return None
        body = {k: v for k, v in changes.items() if k != "id"}
        body["_key"] = key
        try:
            result = coll.update(body, return_new=True, keep_none=True, merge=False)
        except DocumentUpdateError as e:
            if e.error_code == ARANGO_UNIQUE_CONSTRAINT_VIOLATED:
                raise ConflictError(f"Duplicate value violates unique index on {collection}") from e
            raise
        return self._to_record(result["new"])

    def delete(self, collection: str, key: str) -> bool:
        return bool(self.db.collection(collection).delete(key, ignore_missing=True))

    def find(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        sort: Optional[Iterable[Tuple[str, str]]] = None,
        offset: int = 0,
        limit: Optional[int] = None,
        search: Optional[Tuple[Sequence[str], str]] = None,
    ) -> List[Dict[str, Any]]:
        clauses, bind_vars = build_filter_clauses(filters, search)
        sort_clause, sort_vars = build_sort_clause(sort)
        bind_vars.update(sort_vars)
        bind_vars["@coll"] = collection
        lines = ["FOR doc IN @@coll", *clauses]
        if sort_clause:
            lines.append(sort_clause)
        if limit is not None:
            lines.append("LIMIT @offset, @limit")
            bind_vars["offset"] = int(offset)
            bind_vars["limit"] = int(limit)
        lines.append("RETURN doc")
        cursor = self.db.aql.execute("\n".join(lines), bind_vars=bind_vars)
        return [self._to_record(doc) for doc in cursor]

    def find_one(self, collection: str, filters: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        rows = self.find(collection, filters, limit=1)
        return rows[0] if rows else None

    def count(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        search: Optional[Tuple[Sequence[str], str]] = None,
    ) -> int:
        clauses, bind_vars = build_filter_clauses(filters, search)
        bind_vars["@coll"] = collection
        aql = "\n".join(
            ["FOR doc IN @@coll", *clauses, "COLLECT WITH COUNT INTO total", "RETURN total"]
        )
        cursor = self.db.aql.execute(aql, bind_vars=bind_vars)
        result = list(cursor)
        return int(result[0]) if result else 0

    def next_sequence(self, name: str) -> int:
        """Atomically increment and return the counter ``name`` (first value is 1)."""
        aql = """
        UPSERT { _key: @name }
        INSERT { _key: @name, value: 1, created_at: @now, updated_at: @now }
        UPDATE { value: OLD.value + 1, updated_at: @now }
        IN @@coll
        RETURN NEW.value
        """
        cursor = self.db.aql.execute(
            aql, bind_vars={"name": name, "now": utc_now_iso(), "@coll": SEQUENCES_COLLECTION}
        )
        return int(list(cursor)[0])

    def get_sequence(self, name: str) -> Optional[int]:
        doc = self.db.collection(SEQUENCES_COLLECTION).get(name)
        return int(doc["value"]) if doc else None

    def reset_sequence(self, name: str, value: int = 0) -> None:
        coll = self.db.collection(SEQUENCES_COLLECTION)
        now = utc_now_iso()
        if coll.has(name):
            coll.update({"_key": name, "value": value, "updated_at": now})
        else:
            coll.insert({"_key": name, "value": value, "created_at": now, "updated_at": now})

    def list_sequences(self, prefix: Optional[str] = None) -> List[Dict[str, Any]]:
        aql = """
        FOR s IN @@coll
          FILTER @prefix == null OR STARTS_WITH(s._key, @prefix)
          SORT s._key
          RETURN { name: s._key, value: s.value, updated_at: s.updated_at }
        """
        cursor = self.db.aql.execute(
            aql, bind_vars={"prefix": prefix, "@coll": SEQUENCES_COLLECTION}
        )
        return list(cursor)

    def ping(self) -> bool:
        list(self.db.aql.execute("RETURN 1"))
        return True
