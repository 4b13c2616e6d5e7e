"""Remote-first record store with a local cache fallback."""

from __future__ import annotations

import logging
import time
import uuid
from datetime import date, datetime
from typing import Any, Callable, TypeVar

from config.supabase_schema import (
    column_name,
    from_supabase_row,
    table_name,
    to_supabase_payload,
)

from .local_cache import LocalCache, storage_key
from .timestamps import to_iso, utc_now

T = TypeVar("T")

OnCreateHook = Callable[[dict, str], None]


def remove_none_fields(data: dict) -> dict:
    """Return ``data`` without keys whose value is ``None``."""

    return {key: value for key, value in data.items() if value is not None}


def generate_local_id() -> str:
    """Return a surrogate id for records created without the remote store."""

    return f"local_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def _same_id(left: Any, right: Any) -> bool:
    return left is not None and right is not None and str(left) == str(right)


class RecordStore:
    """Create/read/update/delete access to one named collection.

    The remote Supabase table is preferred.  Whenever the client is missing
    or a remote call raises, the operation runs against the local cache
    instead and the caller only sees a log line.  Successful remote writes
    are mirrored into the cache so that later fallback reads stay close to
    the remote content; a failed mirror is logged and otherwise ignored.
    """

    def __init__(
        self,
        collection: str,
        client: Any,
        cache: LocalCache,
        *,
        on_create: OnCreateHook | None = None,
        logger: logging.Logger | None = None,
        page_size: int = 1000,
    ) -> None:
        if page_size <= 0:
            raise ValueError("page_size must be greater than zero")
        self.collection = collection
        self.client = client
        self.cache = cache
        self.on_create = on_create
        self.logger = logger or logging.getLogger(__name__)
        self.page_size = page_size
        self.storage_key = storage_key(collection)

    # -- helpers -------------------------------------------------------

    @property
    def remote_configured(self) -> bool:
        return self.client is not None and hasattr(self.client, "table")

    @property
    def _table(self) -> str:
        return table_name(self.collection)

    @property
    def _id_column(self) -> str:
        return column_name(self.collection, "id")

    def _remote_or_local(
        self,
        operation: str,
        remote: Callable[[Any], T],
        local: Callable[[], T],
    ) -> T:
        """Run ``remote`` against the client, or ``local`` when that fails."""

        if not self.remote_configured:
            self.logger.info(
                "Remote store not configured; using local cache for %s on %s.",
                operation,
                self.collection,
            )
            return local()
        try:
            return remote(self.client)
        except Exception as exc:
            self.logger.warning(
                "Remote %s failed on %s: %s; falling back to local cache.",
                operation,
                self.collection,
                exc,
            )
            return local()

    def _mirror(self, operation: str, mutate: Callable[[list[dict]], list[dict]]) -> None:
        try:
            items = self.cache.get_items(self.storage_key)
            self.cache.set_items(self.storage_key, mutate(items))
        except Exception as exc:
            self.logger.warning(
                "Local cache mirror of %s on %s failed: %s",
                operation,
                self.collection,
                exc,
            )

    def _to_remote(self, data: dict) -> dict:
        serialisable = {
            key: to_iso(value) if isinstance(value, (datetime, date)) else value
            for key, value in data.items()
        }
        return to_supabase_payload(self.collection, serialisable)

    def _from_remote(self, row: dict) -> dict:
        record = from_supabase_row(self.collection, row)
        if record.get("id") is not None:
            record["id"] = str(record["id"])
        return record

    def _local_items(self) -> list[dict]:
        return self.cache.get_items(self.storage_key)

    # -- operations ----------------------------------------------------

    def create(self, data: dict) -> str:
        """Persist ``data`` and return the id assigned to it."""

        record = remove_none_fields(dict(data))

        def remote(client: Any) -> str:
            now = utc_now()
            document = {**record, "created_at": now, "updated_at": now}
            response = client.table(self._table).insert(self._to_remote(document)).execute()
            rows = getattr(response, "data", None) or []
            if not rows:
                raise RuntimeError("remote insert returned no rows")
            created_id = self._from_remote(rows[0]).get("id")
            if created_id in (None, ""):
                raise RuntimeError("remote insert returned no id")
            self.logger.info("Created %s record %s remotely.", self.collection, created_id)
            self._mirror("create", lambda items: items + [{**document, "id": created_id}])
            return created_id

        created_id = self._remote_or_local("create", remote, lambda: self._create_local(record))

        if self.on_create is not None:
            try:
                self.on_create(record, created_id)
            except Exception as exc:
                self.logger.error(
                    "Post-create hook failed for %s record %s: %s",
                    self.collection,
                    created_id,
                    exc,
                )
        return created_id

    def _create_local(self, record: dict) -> str:
        now = utc_now()
        item = {**record, "id": generate_local_id(), "created_at": now, "updated_at": now}
        items = self._local_items()
        items.append(item)
        self.cache.set_items(self.storage_key, items)
        self.logger.info("Created %s record %s locally.", self.collection, item["id"])
        return item["id"]

    def get_all(self) -> list[dict]:
        """Return every record; the remote table is authoritative when reachable."""

        def remote(client: Any) -> list[dict]:
            rows: list[dict] = []
            offset = 0
            while True:
                response = (
                    client.table(self._table)
                    .select("*")
                    .range(offset, offset + self.page_size - 1)
                    .execute()
                )
                batch = getattr(response, "data", None) or []
                rows.extend(batch)
                if len(batch) < self.page_size:
                    break
                offset += self.page_size
            return [self._from_remote(row) for row in rows]

        return self._remote_or_local("get_all", remote, self._local_items)

    def get_by_id(self, record_id: str) -> dict | None:
        def remote(client: Any) -> dict | None:
            response = (
                client.table(self._table)
                .select("*")
                .eq(self._id_column, record_id)
                .limit(1)
                .execute()
            )
            rows = getattr(response, "data", None) or []
            return self._from_remote(rows[0]) if rows else None

        def local() -> dict | None:
            for item in self._local_items():
                if _same_id(item.get("id"), record_id):
                    return item
            return None

        return self._remote_or_local("get_by_id", remote, local)

    def update(self, record_id: str, changes: dict) -> None:
        """Apply ``changes`` to the record identified by ``record_id``."""

        update_data = {key: value for key, value in changes.items() if key != "id"}

        def merge(items: list[dict], *, insert_missing: bool) -> list[dict]:
            stamped = {**update_data, "updated_at": utc_now()}
            for index, item in enumerate(items):
                if _same_id(item.get("id"), record_id):
                    items[index] = {**item, **stamped}
                    return items
            if insert_missing:
                items.append({"id": record_id, **stamped})
            return items

        def remote(client: Any) -> None:
            payload = {**update_data, "updated_at": utc_now()}
            (
                client.table(self._table)
                .update(self._to_remote(payload))
                .eq(self._id_column, record_id)
                .execute()
            )
            self.logger.info("Updated %s record %s remotely.", self.collection, record_id)
            self._mirror("update", lambda items: merge(items, insert_missing=True))

        def local() -> None:
            items = self._local_items()
            self.cache.set_items(self.storage_key, merge(items, insert_missing=False))
            self.logger.info("Updated %s record %s locally.", self.collection, record_id)

        self._remote_or_local("update", remote, local)

    def delete(self, record_id: str) -> None:
        def without(items: list[dict]) -> list[dict]:
            return [item for item in items if not _same_id(item.get("id"), record_id)]

        def remote(client: Any) -> None:
            (
                client.table(self._table)
                .delete()
                .eq(self._id_column, record_id)
                .execute()
            )
            self.logger.info("Deleted %s record %s remotely.", self.collection, record_id)
            self._mirror("delete", without)

        def local() -> None:
            self.cache.set_items(self.storage_key, without(self._local_items()))
            self.logger.info("Deleted %s record %s locally.", self.collection, record_id)

        self._remote_or_local("delete", remote, local)


__all__ = ["RecordStore", "generate_local_id", "remove_none_fields"]
