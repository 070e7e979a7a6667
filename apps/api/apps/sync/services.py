"""
Sync services: push, pull and full restore.

Merge rule is last-write-wins on `updated_at`, keyed by (id, clinic):

- a row the clinic does not have yet is inserted;
- an existing row is replaced only when the incoming `updated_at` is
  strictly newer than the stored one (ties keep the stored row);
- `created_at` is written on insert and never replaced.

Each row is written with an insert-if-absent followed by a conditional
UPDATE ... WHERE updated_at < incoming. Both are single statements, so the
newest row wins whatever the interleaving of concurrent pushes, and
replaying a push changes nothing.
"""
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone as dt_timezone
from typing import Any, Dict, List, Mapping, Optional

from django.conf import settings
from django.db import DEFAULT_DB_ALIAS, DatabaseError, connections, transaction
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from rest_framework import serializers

from apps.core.models import Clinic
from apps.core.observability import metrics
from apps.core.observability.events import (
    log_pull_rejected,
    log_pull_served,
    log_push_applied,
    log_push_rejected,
)
from apps.core.observability.logging import get_sanitized_logger
from apps.core.observability.tracing import trace_span
from apps.sync.manifests import MANIFESTS, CollectionManifest, ordered_manifests
from apps.sync.models import SyncCursor

logger = get_sanitized_logger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=dt_timezone.utc)
UNKNOWN_DEVICE_ID = 'unknown'
RESTORE_DEVICE_ID = 'restore'

INSERT_BATCH_SIZE = 500


class MalformedSyncPayload(serializers.ValidationError):
    """A push payload, row or pull cursor that cannot be applied."""
    default_detail = 'Malformed sync payload.'
    default_code = 'malformed_sync_payload'


@dataclass(frozen=True)
class PushResult:
    pushed: int
    collections: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class PullResult:
    server_time: datetime
    collections: Dict[str, List[Dict[str, Any]]]

    def as_payload(self) -> Dict[str, Any]:
        """Wire shape: one key per collection plus server_time."""
        payload = dict(self.collections)
        payload['server_time'] = format_timestamp(self.server_time)
        return payload

    def counts(self) -> Dict[str, int]:
        return {name: len(rows) for name, rows in self.collections.items()}


def format_timestamp(value: datetime) -> str:
    """Render a timestamp the way row timestamps are rendered on the wire."""
    return serializers.DateTimeField().to_representation(value)


def parse_since(value) -> datetime:
    """
    Normalize a pull cursor to an aware datetime.

    Missing or empty means the epoch. Naive values are taken as UTC.
    """
    if value is None or value == '':
        return EPOCH

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = parse_datetime(value.strip())
        except ValueError:
            parsed = None
    else:
        parsed = None

    if parsed is None:
        raise MalformedSyncPayload({'since': ['Expected an ISO-8601 timestamp.']})

    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, dt_timezone.utc)
    return parsed


# ============================================================================
# Row upsert
# ============================================================================

def validate_rows(manifest: CollectionManifest, rows) -> List[Dict[str, Any]]:
    """Validate rows against the collection serializer; raise MalformedSyncPayload."""
    serializer = manifest.serializer_class(data=rows, many=True)
    if not serializer.is_valid():
        raise MalformedSyncPayload({manifest.name: serializer.errors})
    return serializer.validated_data


def _full_row(manifest: CollectionManifest, row: Dict[str, Any]) -> Dict[str, Any]:
    """Every manifest column, omitted ones filled with the model default."""
    values = {}
    for column in manifest.columns:
        if column in row:
            values[column] = row[column]
        else:
            values[column] = manifest.model._meta.get_field(column).get_default()
    return values


def upsert_rows(
    manifest: CollectionManifest,
    clinic: Clinic,
    rows,
    using: str = DEFAULT_DB_ALIAS,
) -> int:
    """
    Apply rows of one collection to a clinic with last-write-wins.

    Returns the number of rows submitted; stale rows count but change
    nothing. Must run inside the caller's transaction to be all-or-nothing
    across collections.
    """
    if not rows:
        return 0

    values = [_full_row(manifest, row) for row in validate_rows(manifest, rows)]
    manager = manifest.model._default_manager.db_manager(using)

    manager.bulk_create(
        [manifest.model(clinic=clinic, **row) for row in values],
        ignore_conflicts=True,
        batch_size=INSERT_BATCH_SIZE,
    )

    for row in values:
        manager.filter(
            clinic=clinic,
            id=row['id'],
            updated_at__lt=row['updated_at'],
        ).update(**{column: row[column] for column in manifest.update_columns})

    return len(values)


# ============================================================================
# Push
# ============================================================================

def _check_push_payload(payload) -> Dict[str, list]:
    if not isinstance(payload, Mapping):
        raise MalformedSyncPayload(
            {'non_field_errors': ['Push payload must be an object keyed by collection name.']}
        )

    unknown = sorted(set(payload) - set(MANIFESTS))
    if unknown:
        raise MalformedSyncPayload({name: ['Unknown collection.'] for name in unknown})

    limit = settings.SYNC_MAX_ROWS_PER_COLLECTION
    batches = {}
    for name, rows in payload.items():
        if rows is None:
            continue
        if not isinstance(rows, list):
            raise MalformedSyncPayload({name: ['Expected a list of rows.']})
        if len(rows) > limit:
            raise MalformedSyncPayload({name: [f'At most {limit} rows per collection per push.']})
        batches[name] = rows
    return batches


def push_changes(clinic: Clinic, payload, using: str = DEFAULT_DB_ALIAS) -> PushResult:
    """
    Apply a device's local changes to the clinic dataset.

    Collections are applied parents first. Everything runs in one
    transaction: a malformed row anywhere rolls the whole push back.
    """
    start_time = time.time()

    with trace_span('sync.push', attributes={'clinic_id': str(clinic.id)}):
        try:
            batches = _check_push_payload(payload)

            counts = {}
            with transaction.atomic(using=using):
                for manifest in ordered_manifests():
                    rows = batches.get(manifest.name)
                    if rows:
                        counts[manifest.name] = upsert_rows(manifest, clinic, rows, using=using)
        except MalformedSyncPayload as e:
            metrics.sync_push_total.labels(result='malformed').inc()
            offending = sorted(e.detail) if isinstance(e.detail, dict) else []
            log_push_rejected(clinic, reason='malformed', offending=offending)
            raise
        except DatabaseError as e:
            metrics.sync_push_total.labels(result='error').inc()
            metrics.exceptions_total.labels(
                exception_type=e.__class__.__name__,
                location='sync_push'
            ).inc()
            logger.error(
                'Sync push failed',
                exc_info=True,
                extra={'event': 'sync_push_failed', 'clinic_id': str(clinic.id)}
            )
            raise

    duration = time.time() - start_time
    metrics.sync_push_duration_seconds.observe(duration)
    metrics.sync_push_total.labels(result='success').inc()
    for name, count in counts.items():
        metrics.sync_rows_submitted_total.labels(collection=name).inc(count)

    pushed = sum(counts.values())
    log_push_applied(clinic, pushed, counts, duration_ms=round(duration * 1000, 2))
    return PushResult(pushed=pushed, collections=counts)


# ============================================================================
# Pull / restore
# ============================================================================

def _use_snapshot_isolation(using: str):
    """
    Make every read of the current (outermost, just opened) transaction see
    one snapshot. Only PostgreSQL needs this; SQLite transactions are
    already serialized.
    """
    connection = connections[using]
    if connection.vendor == 'postgresql':
        with connection.cursor() as cursor:
            cursor.execute('SET TRANSACTION ISOLATION LEVEL REPEATABLE READ')


def _record_cursor(clinic: Clinic, device_id: str, server_time: datetime, using: str):
    SyncCursor.objects.db_manager(using).bulk_create(
        [SyncCursor(clinic=clinic, device_id=device_id, last_pulled_at=server_time)],
        update_conflicts=True,
        unique_fields=['clinic', 'device_id'],
        update_fields=['last_pulled_at'],
    )


def pull_changes(
    clinic: Clinic,
    since=None,
    device_id: Optional[str] = None,
    using: str = DEFAULT_DB_ALIAS,
    mode: str = 'pull',
) -> PullResult:
    """
    Return every row of the clinic changed after `since`, tombstones included.

    server_time is taken before any collection is read; devices must send it
    back as their next `since` so nothing committed later is skipped.
    """
    device_id = device_id or UNKNOWN_DEVICE_ID
    try:
        since = parse_since(since)
    except MalformedSyncPayload:
        metrics.sync_pull_total.labels(result='malformed', mode=mode).inc()
        log_pull_rejected(clinic, device_id, reason='malformed')
        raise

    server_time = timezone.now()
    start_time = time.time()

    outermost = not connections[using].in_atomic_block

    with trace_span('sync.pull', attributes={'clinic_id': str(clinic.id), 'mode': mode}):
        try:
            with transaction.atomic(using=using):
                if outermost:
                    _use_snapshot_isolation(using)

                collections = {}
                for manifest in ordered_manifests():
                    queryset = (
                        manifest.model._default_manager.using(using)
                        .filter(clinic=clinic, updated_at__gt=since)
                        .order_by('updated_at', 'id')
                    )
                    collections[manifest.name] = list(manifest.serializer_class(queryset, many=True).data)

                _record_cursor(clinic, device_id, server_time, using)
        except DatabaseError as e:
            metrics.sync_pull_total.labels(result='error', mode=mode).inc()
            metrics.exceptions_total.labels(
                exception_type=e.__class__.__name__,
                location='sync_pull'
            ).inc()
            logger.error(
                'Sync pull failed',
                exc_info=True,
                extra={'event': 'sync_pull_failed', 'clinic_id': str(clinic.id), 'device_id': device_id}
            )
            raise

    result = PullResult(server_time=server_time, collections=collections)

    metrics.sync_pull_duration_seconds.observe(time.time() - start_time)
    metrics.sync_pull_total.labels(result='success', mode=mode).inc()
    counts = result.counts()
    for name, count in counts.items():
        if count:
            metrics.sync_rows_served_total.labels(collection=name).inc(count)

    log_pull_served(clinic, device_id, since, server_time, counts, mode=mode)
    return result


def full_restore(clinic: Clinic, using: str = DEFAULT_DB_ALIAS) -> PullResult:
    """Everything the clinic has, for a fresh or wiped device."""
    return pull_changes(clinic, EPOCH, RESTORE_DEVICE_ID, using=using, mode='restore')


def list_cursors(clinic: Clinic, using: str = DEFAULT_DB_ALIAS):
    return SyncCursor.objects.using(using).filter(clinic=clinic).order_by('-last_pulled_at')
