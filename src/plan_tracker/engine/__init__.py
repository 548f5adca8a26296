"""Task dependency state engine.

Three pure entry points are exposed to collaborators (file readers, CLI,
servers): `parse_document` turns the plan document into a validated task
graph, `parse_event_log` reconciles the append-only outcome log into the
latest event per task, and `resolve_snapshot` combines both into a
point-in-time snapshot. None of them performs I/O or keeps state between
calls; every diagnostic is returned, never raised.
"""

from plan_tracker.engine.document import DocumentSyntax, parse_document
from plan_tracker.engine.event_log import parse_event_log
from plan_tracker.engine.snapshot import resolve_snapshot

__all__ = ["DocumentSyntax", "parse_document", "parse_event_log", "resolve_snapshot"]
