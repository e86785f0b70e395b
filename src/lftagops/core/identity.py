"""Stable local identifiers for LF-Tag associations.

Lake Formation keys associations by (resource, tag) pairs and has no
single identifier for them. The id computed here is a local handle only:
it is derived from the canonical request content and is never parsed back.
"""

from __future__ import annotations

import hashlib
import json

from lftagops.core.resources import ResourceReference
from lftagops.core.tags import TagSet


def canonical_request(
    resource: ResourceReference,
    tags: TagSet,
    catalog_id: str | None = None,
) -> dict:
    """
    Return the AddLFTagsToResource request in canonical order.

    Per-pair catalog ids are omitted, so tag sets that compare equal yield
    the same payload.
    """
    payload: dict = {
        "Resource": resource.to_request(),
        "LFTags": [
            {"TagKey": p.key, "TagValues": list(p.values)} for p in tags.normalize()
        ],
    }
    if catalog_id:
        payload["CatalogId"] = catalog_id
    return payload


def association_id(
    resource: ResourceReference,
    tags: TagSet,
    catalog_id: str | None = None,
) -> str:
    """Return a deterministic, order-independent id for an association."""
    payload = canonical_request(resource, tags, catalog_id)
    raw = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()
