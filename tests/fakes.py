"""In-memory stand-ins for the Lake Formation client and the clock."""

from __future__ import annotations

import copy
import threading

from lftagops.core.association import ColumnTagView, FailureItem, QueryResult
from lftagops.core.errors import RemoteServiceError
from lftagops.core.resources import ALL_TABLES, Database, Table, TableWithColumns
from lftagops.core.tags import TagPair, TagSet


def concurrent_modification(operation: str = "") -> RemoteServiceError:
    return RemoteServiceError(
        "ConcurrentModificationException", "Resource is being modified", operation
    )


class FakeClock:
    """Clock that advances instantly when asked to sleep."""

    def __init__(self, start: float = 0.0) -> None:
        self.t = start
        self.sleeps: list[float] = []

    def now(self) -> float:
        return self.t

    def sleep(self, seconds: float, cancel: threading.Event | None = None) -> bool:
        if cancel is not None and cancel.is_set():
            return True
        self.sleeps.append(seconds)
        self.t += seconds
        return False


class FakeLakeFormation:
    """
    Minimal Lake Formation model keyed by (resource, tag key).

    Writes become visible to ``query`` only after ``lag`` further queries,
    mimicking eventual consistency. ``errors`` maps an operation name to a
    list of exceptions raised (in order) before calls start succeeding.
    """

    def __init__(self, lag: int = 0) -> None:
        self.lag = lag
        self.actual: dict[tuple, dict[str, frozenset[str]]] = {}
        self.visible: dict[tuple, dict[str, frozenset[str]]] = {}
        self._stale_reads = 0
        self.errors: dict[str, list[Exception]] = {}
        self.failures: dict[str, list[FailureItem]] = {}
        self.calls: list[str] = []

    @staticmethod
    def _keys(resource) -> list[tuple]:
        if isinstance(resource, Database):
            return [("db", resource.name)]
        if isinstance(resource, Table):
            name = ALL_TABLES if resource.wildcard else resource.name
            return [("table", resource.database_name, name)]
        return [
            ("col", resource.database_name, resource.name, c)
            for c in sorted(resource.column_names)
        ]

    def _call(self, name: str) -> None:
        self.calls.append(name)
        pending = self.errors.get(name)
        if pending:
            raise pending.pop(0)

    def _written(self) -> None:
        # Readers keep seeing the pre-write state for `lag` more queries.
        if self._stale_reads == 0:
            self.visible = copy.deepcopy(self.actual)
        self._stale_reads = self.lag

    def seed(self, resource, tags: TagSet) -> None:
        """Put tags in place directly, visible immediately."""
        for key in self._keys(resource):
            entry = self.actual.setdefault(key, {})
            for k, v in tags.as_dict().items():
                entry[k] = v
        self.visible = copy.deepcopy(self.actual)

    def associate(self, catalog_id, resource, tags) -> list[FailureItem]:
        self._call("associate")
        if self.failures.get("associate"):
            return self.failures["associate"]
        self._written()
        for key in self._keys(resource):
            entry = self.actual.setdefault(key, {})
            for k, v in tags.as_dict().items():
                entry[k] = v
        return []

    def disassociate(self, catalog_id, resource, tags) -> list[FailureItem]:
        self._call("disassociate")
        if self.failures.get("disassociate"):
            return self.failures["disassociate"]
        self._written()
        for key in self._keys(resource):
            entry = self.actual.get(key, {})
            for k in tags.keys():
                entry.pop(k, None)
            if not entry:
                self.actual.pop(key, None)
        return []

    def query(self, catalog_id, resource, direct_only) -> QueryResult:
        self._call("query")
        if self._stale_reads > 0:
            self._stale_reads -= 1
        else:
            self.visible = copy.deepcopy(self.actual)
        state = self.visible

        def _tagset(entry) -> TagSet:
            return TagSet(
                tuple(TagPair(k, tuple(sorted(v))) for k, v in (entry or {}).items())
            )

        if isinstance(resource, Database):
            return QueryResult(tags_on_database=_tagset(state.get(("db", resource.name))))

        db_tags = {} if direct_only else dict(state.get(("db", resource.database_name), {}))
        if isinstance(resource, Table):
            table_key = self._keys(resource)[0]
            merged = {**db_tags, **state.get(table_key, {})}
            return QueryResult(tags_on_table=_tagset(merged))

        assert isinstance(resource, TableWithColumns)
        columns = []
        for key in self._keys(resource):
            entry = {**db_tags, **state.get(key, {})}
            if entry:
                columns.append(ColumnTagView(column_name=key[-1], tags=_tagset(entry)))
        return QueryResult(tags_on_columns=columns)
