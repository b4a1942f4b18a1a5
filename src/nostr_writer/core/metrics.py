"""
Prometheus metrics for sync operations.

Module-level metric objects (singletons, thread-safe) shared by the
services. nostr-writer runs one operation per process, so instead of an
HTTP scrape endpoint the CLI can dump the registry to a node-exporter
textfile with [write_metrics()][nostr_writer.core.metrics.write_metrics].

Architecture:
    PUBLISH_OUTCOMES:            Per-relay publish results (accepted/rejected/unreachable).
    UPLOAD_OUTCOMES:             Per-media-server upload results (ok/failed).
    FETCHED_EVENTS:              Events received from relays, by kind.
    OPERATION_DURATION_SECONDS:  Histogram of publish/download durations.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from prometheus_client import REGISTRY, Counter, Histogram, write_to_textfile


if TYPE_CHECKING:
    from pathlib import Path


PUBLISH_OUTCOMES = Counter(
    "nostr_writer_publish_outcomes",
    "Per-relay publish outcomes",
    ["relay", "outcome"],
)

UPLOAD_OUTCOMES = Counter(
    "nostr_writer_upload_outcomes",
    "Per-server media upload outcomes",
    ["server", "outcome"],
)

FETCHED_EVENTS = Counter(
    "nostr_writer_fetched_events",
    "Events received from relays (duplicates included)",
    ["kind"],
)

OPERATION_DURATION_SECONDS = Histogram(
    "nostr_writer_operation_duration_seconds",
    "Duration of publish and download operations in seconds",
    ["operation"],
    buckets=(0.5, 1, 2, 5, 10, 30, 60, 120, 300),
)


def write_metrics(path: Path) -> None:
    """Write the default registry in Prometheus text format to *path*."""
    write_to_textfile(str(path), REGISTRY)
