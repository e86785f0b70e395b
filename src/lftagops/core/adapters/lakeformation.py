from __future__ import annotations

from typing import Any

from botocore.exceptions import ClientError

from lftagops.core.association import ColumnTagView, FailureItem, QueryResult
from lftagops.core.errors import RemoteServiceError
from lftagops.core.resources import ResourceReference
from lftagops.core.tags import TagSet


def _remote_error(exc: ClientError, operation: str) -> RemoteServiceError:
    """Translate a botocore ClientError, keeping the service code and message."""
    error = exc.response.get("Error", {}) if exc.response else {}
    return RemoteServiceError(
        code=error.get("Code", "Unknown"),
        message=error.get("Message", str(exc)),
        operation=operation,
    )


def _failures(response: dict[str, Any]) -> list[FailureItem]:
    out: list[FailureItem] = []
    for f in response.get("Failures") or []:
        tag = f.get("LFTag") or {}
        err = f.get("Error") or {}
        out.append(
            FailureItem(
                tag_key=tag.get("TagKey", ""),
                tag_values=tuple(tag.get("TagValues") or ()),
                catalog_id=tag.get("CatalogId"),
                error_code=err.get("ErrorCode", ""),
                error_message=err.get("ErrorMessage", ""),
            )
        )
    return out


class LakeFormationAdapter:
    """Adapter around the boto3 Lake Formation LF-Tag association APIs."""

    def __init__(self, client) -> None:
        self.client = client

    @staticmethod
    def _request(
        catalog_id: str | None, resource: ResourceReference, **extra: Any
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"Resource": resource.to_request(), **extra}
        if catalog_id:
            kwargs["CatalogId"] = catalog_id
        return kwargs

    def associate(
        self, catalog_id: str | None, resource: ResourceReference, tags: TagSet
    ) -> list[FailureItem]:
        """Call AddLFTagsToResource and return its per-tag failures."""
        kwargs = self._request(catalog_id, resource, LFTags=tags.to_request())
        try:
            response = self.client.add_lf_tags_to_resource(**kwargs)
        except ClientError as exc:
            raise _remote_error(exc, "AddLFTagsToResource") from exc
        return _failures(response)

    def query(
        self, catalog_id: str | None, resource: ResourceReference, direct_only: bool
    ) -> QueryResult:
        """Call GetResourceLFTags; ``direct_only`` excludes inherited tags."""
        kwargs = self._request(catalog_id, resource, ShowAssignedLFTags=direct_only)
        try:
            response = self.client.get_resource_lf_tags(**kwargs)
        except ClientError as exc:
            raise _remote_error(exc, "GetResourceLFTags") from exc

        columns = [
            ColumnTagView(
                column_name=c.get("Name", ""),
                tags=TagSet.from_response(c.get("LFTags")),
            )
            for c in response.get("LFTagsOnColumns") or []
        ]
        # SDK field names are LFTagOnDatabase (singular) and LFTagsOnTable.
        return QueryResult(
            tags_on_database=TagSet.from_response(response.get("LFTagOnDatabase")),
            tags_on_table=TagSet.from_response(response.get("LFTagsOnTable")),
            tags_on_columns=columns,
        )

    def disassociate(
        self, catalog_id: str | None, resource: ResourceReference, tags: TagSet
    ) -> list[FailureItem]:
        """Call RemoveLFTagsFromResource and return its per-tag failures."""
        kwargs = self._request(catalog_id, resource, LFTags=tags.to_request())
        try:
            response = self.client.remove_lf_tags_from_resource(**kwargs)
        except ClientError as exc:
            raise _remote_error(exc, "RemoveLFTagsFromResource") from exc
        return _failures(response)
