"""Reconciliation of LF-Tag associations against Lake Formation.

The Reconciler applies, reads and removes the association between a tag
set and a catalog resource. It holds no mutable state, so one instance
can serve concurrent callers. The remote service is the only
serialization point, and its concurrent-modification signal is retried.

Persisting the resulting identity, and re-deriving the resource reference
for later reads and deletes, is the caller's job.
"""

from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass, field
from typing import Callable, Protocol, TypeVar

from lftagops.core.drift import TagDrift, compare
from lftagops.core.errors import (
    InconsistentColumnTagsError,
    PartialApplyError,
    PartialRemoveError,
    RemoteServiceError,
    RetryBudgetExhaustedError,
)
from lftagops.core.identity import association_id
from lftagops.core.resources import (
    Database,
    ResourceReference,
    Table,
    TableWithColumns,
    validate_catalog_id,
    validate_reference,
)
from lftagops.core.retry import (
    Clock,
    RetryPolicy,
    StateObserver,
    deletion_policy,
    is_absence,
    propagation_policy,
    run_with_retry,
)
from lftagops.core.settings import Settings
from lftagops.core.tags import TagSet

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class FailureItem:
    """One per-tag failure reported by AddLFTagsToResource / RemoveLFTagsFromResource."""

    tag_key: str
    tag_values: tuple[str, ...] = ()
    error_code: str = ""
    error_message: str = ""
    catalog_id: str | None = None

    def __str__(self) -> str:
        values = ",".join(self.tag_values)
        return f"{self.tag_key}={values} ({self.error_code}: {self.error_message})"


@dataclass(frozen=True)
class ColumnTagView:
    """Directly assigned tags of a single column."""

    column_name: str
    tags: TagSet


@dataclass(frozen=True)
class QueryResult:
    """Result of GetResourceLFTags, split by the level the tags sit on."""

    tags_on_database: TagSet | None = None
    tags_on_table: TagSet | None = None
    tags_on_columns: list[ColumnTagView] = field(default_factory=list)

    def is_empty(self) -> bool:
        return (
            not self.tags_on_database
            and not self.tags_on_table
            and not any(c.tags for c in self.tags_on_columns)
        )


class RemoteTagClient(Protocol):
    """Remote operations the Reconciler depends on."""

    def associate(
        self, catalog_id: str | None, resource: ResourceReference, tags: TagSet
    ) -> list[FailureItem]:
        """Attach tags to a resource; return per-tag failures."""
        ...

    def query(
        self, catalog_id: str | None, resource: ResourceReference, direct_only: bool
    ) -> QueryResult:
        """Return the tags on a resource."""
        ...

    def disassociate(
        self, catalog_id: str | None, resource: ResourceReference, tags: TagSet
    ) -> list[FailureItem]:
        """Detach tags from a resource; return per-tag failures."""
        ...


def _check_columns(
    resource: TableWithColumns, columns: list[ColumnTagView]
) -> TagSet | None:
    """Return the shared tag set of the requested columns, or None if none are tagged."""
    by_name = {c.column_name: c.tags for c in columns if c.column_name in resource.column_names}
    if not any(by_name.values()):
        return None

    # Requested columns the service did not report carry no tags.
    for name in resource.column_names:
        by_name.setdefault(name, TagSet())

    ordered = sorted(by_name)
    reference = next(name for name in ordered if by_name[name])
    expected = by_name[reference]
    divergent = [name for name in ordered if by_name[name] != expected]
    if divergent:
        raise InconsistentColumnTagsError(reference, divergent)
    return expected


def _select_tags(resource: ResourceReference, result: QueryResult) -> TagSet | None:
    """Pick the tags matching the requested variant from a query result."""
    if isinstance(resource, Database):
        return result.tags_on_database or None
    if isinstance(resource, Table):
        return result.tags_on_table or None
    if isinstance(resource, TableWithColumns):
        return _check_columns(resource, result.tags_on_columns)
    raise TypeError(f"Unsupported resource reference: {resource!r}")


class Reconciler:
    """
    Create, read and delete LF-Tag associations with retries.

    Args:
        client: Remote tagging client (e.g. LakeFormationAdapter).
        propagation: Policy for associate and query calls.
        deletion: Policy for disassociate calls.
        clock: Time source for backoff sleeps.
        rng: Random source for backoff jitter.
        max_values_per_key: Optional cap enforced during tag validation.
    """

    def __init__(
        self,
        client: RemoteTagClient,
        *,
        propagation: RetryPolicy | None = None,
        deletion: RetryPolicy | None = None,
        clock: Clock | None = None,
        rng: random.Random | None = None,
        max_values_per_key: int | None = None,
    ) -> None:
        self.client = client
        self.propagation = propagation or propagation_policy()
        self.deletion = deletion or deletion_policy()
        self.clock = clock
        self.rng = rng
        self.max_values_per_key = max_values_per_key

    @classmethod
    def from_settings(cls, client: RemoteTagClient, settings: Settings) -> Reconciler:
        return cls(
            client,
            propagation=settings.propagation_policy(),
            deletion=settings.deletion_policy(),
            max_values_per_key=settings.max_values_per_key,
        )

    def _validate(
        self,
        resource: ResourceReference,
        tags: TagSet | None,
        catalog_id: str | None,
    ) -> None:
        validate_catalog_id(catalog_id)
        validate_reference(resource)
        if tags is not None:
            tags.validate(max_values_per_key=self.max_values_per_key)

    def _run(
        self,
        fn: Callable[[], T],
        policy: RetryPolicy,
        operation: str,
        cancel: threading.Event | None,
        on_state: StateObserver | None,
    ) -> T:
        return run_with_retry(
            fn,
            policy,
            operation=operation,
            clock=self.clock,
            cancel=cancel,
            rng=self.rng,
            on_state=on_state,
        )

    def create(
        self,
        resource: ResourceReference,
        tags: TagSet,
        catalog_id: str | None = None,
        *,
        cancel: threading.Event | None = None,
        on_state: StateObserver | None = None,
    ) -> str:
        """
        Associate ``tags`` with ``resource`` and return the association id.

        Re-running with the same input is safe: already-associated tags are a
        no-op on the service, and the returned id is the same.

        Raises:
            ValidationError: Before any remote call, on malformed input.
            PartialApplyError: The service rejected some of the tags.
            RetryBudgetExhaustedError: Transient errors outlasted the window.
            OperationCancelledError: ``cancel`` was set.
            RemoteServiceError: Any other service error.
        """
        self._validate(resource, tags, catalog_id)

        failures = self._run(
            lambda: self.client.associate(catalog_id, resource, tags),
            self.propagation,
            "AddLFTagsToResource",
            cancel,
            on_state,
        )
        if failures:
            raise PartialApplyError(resource.describe(), failures)

        assoc_id = association_id(resource, tags, catalog_id)
        logger.info("Associated LF-Tags [%s] with %s (%s)", tags, resource.describe(), assoc_id)
        return assoc_id

    # Updates go through the same idempotent associate call.
    update = create

    def read(
        self,
        resource: ResourceReference,
        catalog_id: str | None = None,
        *,
        cancel: threading.Event | None = None,
        on_state: StateObserver | None = None,
    ) -> TagSet | None:
        """
        Return the tags directly assigned to ``resource``, or None if absent.

        Only directly assigned tags are requested; tags inherited from a
        parent database never count towards the association.

        Raises:
            ValidationError: On malformed input.
            InconsistentColumnTagsError: Requested columns carry different tags.
            RetryBudgetExhaustedError: Transient errors outlasted the window.
            OperationCancelledError: ``cancel`` was set.
            RemoteServiceError: Any service error other than an absence signal.
        """
        self._validate(resource, None, catalog_id)

        try:
            result = self._run(
                lambda: self.client.query(catalog_id, resource, True),
                self.propagation,
                "GetResourceLFTags",
                cancel,
                on_state,
            )
        except RemoteServiceError as exc:
            if is_absence(exc):
                logger.warning(
                    "LF-Tag association on %s not found: %s", resource.describe(), exc
                )
                return None
            raise
        except RetryBudgetExhaustedError as exc:
            if is_absence(exc.last_error):
                logger.warning(
                    "LF-Tag association on %s not found after %d attempt(s): %s",
                    resource.describe(),
                    exc.attempts,
                    exc.last_error,
                )
                return None
            raise

        tags = _select_tags(resource, result)
        if not tags:
            logger.warning(
                "LF-Tag association on %s not found (0 LF-Tags)", resource.describe()
            )
            return None
        return tags

    def delete(
        self,
        resource: ResourceReference,
        tags: TagSet,
        catalog_id: str | None = None,
        *,
        cancel: threading.Event | None = None,
        on_state: StateObserver | None = None,
    ) -> None:
        """
        Remove ``tags`` from ``resource``.

        Removing tags that are not associated succeeds.

        Raises:
            ValidationError: On malformed input.
            PartialRemoveError: The service could not remove some of the tags.
            RetryBudgetExhaustedError: Transient errors outlasted the window.
            OperationCancelledError: ``cancel`` was set.
            RemoteServiceError: Any other service error.
        """
        self._validate(resource, tags, catalog_id)

        failures = self._run(
            lambda: self.client.disassociate(catalog_id, resource, tags),
            self.deletion,
            "RemoveLFTagsFromResource",
            cancel,
            on_state,
        )
        if failures:
            raise PartialRemoveError(resource.describe(), failures)

        logger.info("Removed LF-Tags [%s] from %s", tags, resource.describe())

    def detect_drift(
        self,
        resource: ResourceReference,
        desired: TagSet,
        catalog_id: str | None = None,
        *,
        cancel: threading.Event | None = None,
        on_state: StateObserver | None = None,
    ) -> TagDrift:
        """Read the remote state and compare it with ``desired``."""
        desired.validate(max_values_per_key=self.max_values_per_key)
        actual = self.read(resource, catalog_id, cancel=cancel, on_state=on_state)
        return compare(desired, actual)

    def count_tags(
        self,
        resource: ResourceReference,
        catalog_id: str | None = None,
        *,
        cancel: threading.Event | None = None,
    ) -> int:
        """Return the number of tag pairs directly assigned to ``resource`` (0 if absent)."""
        tags = self.read(resource, catalog_id, cancel=cancel)
        return len(tags) if tags else 0
