"""
Status audit log: the only writer of ``StatusLog`` rows.
"""

import logging

from .models import StatusLog

logger = logging.getLogger(__name__)


def _actor_name(actor):
    if actor is None:
        return 'System'
    return actor.get_full_name()


def append(application, status_from, status_to, actor=None, notes=None):
    """
    Append one entry. Callers run inside the transaction that changes
    ``application.status`` so the entry and the status commit together.
    """
    entry = StatusLog.objects.create(
        application=application,
        status_from=status_from,
        status_to=status_to,
        changed_by=actor,
        changed_by_name=_actor_name(actor),
        notes=notes,
    )
    logger.info(
        f"[StatusLog] {application.application_number}: "
        f"{status_from or '-'} -> {status_to} by {entry.changed_by_name}"
    )
    return entry


def list_for(application):
    """All entries of an application, oldest first."""
    return StatusLog.objects.filter(application=application).order_by('created_at', 'id')


def transitions_for(application):
    """Entries that actually changed the status (creation included)."""
    return [entry for entry in list_for(application) if not entry.is_reaffirmation]


def latest_for(application):
    return list_for(application).last()
