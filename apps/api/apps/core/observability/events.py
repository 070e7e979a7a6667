"""
Domain events logging helpers.

Provides structured event logging for sync and record operations. Only
identifiers and counts are logged; row payloads never are.
"""
from typing import Dict, Optional
from .logging import get_sanitized_logger, sanitize_dict

logger = get_sanitized_logger(__name__)


def log_domain_event(
    event_name: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    entity_ids: Optional[Dict[str, str]] = None,
    result: str = 'success',
    **extra_fields
):
    """
    Log a domain event with structured data.

    Args:
        event_name: Name of the event (e.g., 'sync_push_applied')
        entity_type: Type of entity (e.g., 'Clinic', 'QueueEntry')
        entity_id: ID of primary entity
        entity_ids: Dictionary of related entity IDs
        result: Result of operation (success, failure, rejected, ...)
        **extra_fields: Additional fields to log (will be sanitized)

    Example:
        log_domain_event(
            'sync_push_applied',
            entity_type='Clinic',
            entity_id=str(clinic.id),
            result='success',
            pushed=12,
        )
    """
    event_data = {
        'event': event_name,
        'result': result,
    }

    if entity_type:
        event_data['entity_type'] = entity_type

    if entity_id:
        event_data['entity_id'] = entity_id

    if entity_ids:
        event_data.update(entity_ids)

    event_data.update(sanitize_dict(extra_fields))

    if result in ['failure', 'error']:
        logger.error(f'Domain event: {event_name}', extra=event_data)
    elif result in ['warning', 'rejected']:
        logger.warning(f'Domain event: {event_name}', extra=event_data)
    else:
        logger.info(f'Domain event: {event_name}', extra=event_data)


def log_push_applied(clinic, pushed, collection_counts, duration_ms=None):
    """Log a committed push."""
    extra = {'pushed': pushed, 'collections': collection_counts}
    if duration_ms is not None:
        extra['duration_ms'] = duration_ms

    log_domain_event(
        'sync_push_applied',
        entity_type='Clinic',
        entity_id=str(clinic.id),
        entity_ids={'clinic_id': str(clinic.id)},
        **extra
    )


def log_push_rejected(clinic, reason, **extra):
    """Log a push that was rejected before anything was committed."""
    log_domain_event(
        'sync_push_rejected',
        entity_type='Clinic',
        entity_id=str(clinic.id),
        entity_ids={'clinic_id': str(clinic.id)},
        result='rejected',
        reason=reason,
        **extra
    )


def log_pull_served(clinic, device_id, since, server_time, collection_counts, mode='pull'):
    """Log a pull (or restore) served to a device."""
    log_domain_event(
        'sync_pull_served',
        entity_type='Clinic',
        entity_id=str(clinic.id),
        entity_ids={'clinic_id': str(clinic.id), 'device_id': device_id},
        mode=mode,
        since=since.isoformat(),
        server_time=server_time.isoformat(),
        rows=sum(collection_counts.values()),
        collections=collection_counts,
    )


def log_pull_rejected(clinic, device_id, reason, **extra):
    """Log a pull refused before any collection was read."""
    log_domain_event(
        'sync_pull_rejected',
        entity_type='Clinic',
        entity_id=str(clinic.id),
        entity_ids={'clinic_id': str(clinic.id), 'device_id': device_id},
        result='rejected',
        reason=reason,
        **extra
    )


def log_queue_status_changed(entry, to_status):
    """Log a queue status change made through the records API."""
    log_domain_event(
        'queue_status_changed',
        entity_type='QueueEntry',
        entity_id=entry.id,
        entity_ids={'clinic_id': str(entry.clinic_id)},
        to_status=to_status,
    )


def log_prescription_finalized(prescription):
    """Log a draft prescription being signed."""
    log_domain_event(
        'prescription_finalized',
        entity_type='Prescription',
        entity_id=prescription.id,
        entity_ids={'clinic_id': str(prescription.clinic_id)},
        wallet_deducted=prescription.wallet_deducted,
    )
