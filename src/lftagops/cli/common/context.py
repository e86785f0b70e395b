"""Application context management for the CLI."""

from __future__ import annotations

import signal
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from lftagops.cli.common.exits import die
from lftagops.core.adapters.lakeformation import LakeFormationAdapter
from lftagops.core.association import Reconciler
from lftagops.core.auth import AuthError, get_client
from lftagops.core.settings import Settings


@dataclass
class TagsAppContext:
    """Application context holding the Lake Formation adapter and reconciler."""

    profile: str | None
    region: str | None
    adapter: LakeFormationAdapter
    reconciler: Reconciler


def build_tags_context(profile: str | None, region: str | None) -> TagsAppContext:
    """Build the application context with a boto3 client, adapter and reconciler.

    Args:
        profile: Optional AWS profile name to use for authentication.
        region: Optional AWS region override.

    Returns:
        TagsAppContext: Application context with configured adapter and reconciler.
    """
    try:
        client = get_client(profile, region)
    except AuthError as exc:
        die(str(exc), code=1)
    adapter = LakeFormationAdapter(client)
    reconciler = Reconciler.from_settings(adapter, Settings.from_env())
    return TagsAppContext(
        profile=profile, region=region, adapter=adapter, reconciler=reconciler
    )


@contextmanager
def cancel_on_interrupt() -> Iterator[threading.Event]:
    """
    Yield an event that is set on Ctrl-C instead of raising KeyboardInterrupt.

    Setting the event wakes the reconciler's backoff sleep, which then
    reports the operation as cancelled.
    """
    cancel = threading.Event()
    if threading.current_thread() is not threading.main_thread():
        yield cancel
        return

    previous = signal.getsignal(signal.SIGINT)
    signal.signal(signal.SIGINT, lambda signum, frame: cancel.set())
    try:
        yield cancel
    finally:
        signal.signal(signal.SIGINT, previous)
