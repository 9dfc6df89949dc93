"""
Application lifecycle: every status change of an application goes through
this module.

Each operation runs in one transaction holding a row lock on the
application, validates against the kind's ``Workflow``, updates the row and
appends the status log entry. A ``GuardViolation`` leaves nothing written.
"""

import logging

from django.db import transaction
from django.utils import timezone

from . import audit
from . import documents
from . import workflows as wf
from .documents import Upload, lock_application
from .exceptions import GuardViolation
from .models import Application, ApplicationNumberCounter

logger = logging.getLogger(__name__)

ISSUED_NUMBER_MAX_LENGTH = 20


# ========================================
# HELPERS
# ========================================

def _require_admin(actor):
    if actor is None or not actor.is_admin_user():
        raise GuardViolation("Only administrators may perform this action", rule="admin_only")


def _require_note(note, rule="note_required"):
    note = (note or '').strip()
    if not note:
        raise GuardViolation("A note is required for this action", rule=rule)
    return note


def _current_token(application):
    workflow = application.workflow
    token = workflow.token(application.status)
    if not token:
        raise GuardViolation(
            f"Application has an unknown status '{application.status}'", rule="unknown_status"
        )
    return token


def _require_open(application, token):
    workflow = application.workflow
    if token in workflow.terminal_states:
        raise GuardViolation(
            f"Application is already {workflow.catalog.label(token)}", rule="terminal_state"
        )


def _assign_admin(application, admin):
    application.assigned_admin = admin
    application.assigned_admin_name = admin.get_full_name()


def _stamp_leaving(application, token, now):
    field_name = application.workflow.stamp_on_leave.get(token)
    if field_name and getattr(application, field_name) is None:
        setattr(application, field_name, now)


def _move(application, status_to, actor, notes=None):
    status_from = application.status
    application.status = status_to
    application.save()
    audit.append(application, status_from, status_to, actor=actor, notes=notes)
    logger.info(
        f"[Lifecycle] {application.application_number}: {status_from} -> {status_to}"
    )
    return application


def _reaffirm(application, actor, notes=None):
    application.save()
    audit.append(application, application.status, application.status, actor=actor, notes=notes)
    return application


# ========================================
# SUBMISSION
# ========================================

def submit(kind, applicant, application_form=None, requirements_archive=None, storage=None):
    """
    Create an application in the kind's initial state with its form (and
    optional requirements archive) attached.
    """
    try:
        workflow = wf.get_workflow(kind)
    except ValueError:
        raise GuardViolation(f"Unknown application kind: {kind}", rule="unknown_kind")
    if applicant is None or not applicant.is_applicant():
        raise GuardViolation("Only applicants may submit applications", rule="applicant_only")
    if application_form is None:
        raise GuardViolation("The application form is required", rule="application_form_required")

    uploads = [Upload(slot=wf.APPLICATION_FORM, files=[application_form])]
    if requirements_archive is not None:
        uploads.append(Upload(slot=wf.REQUIREMENTS_ARCHIVE, files=[requirements_archive]))

    now = timezone.now()
    with transaction.atomic():
        application = Application.objects.create(
            kind=workflow.kind,
            application_number=ApplicationNumberCounter.next_number(workflow.kind, now),
            status=workflow.initial_state,
            applicant=applicant,
            applicant_name=applicant.get_display_name(),
            applicant_email=applicant.email,
            submitted_at=now,
        )
        audit.append(application, None, workflow.initial_state, actor=applicant)
        documents.persist_uploads(application, uploads, applicant, storage=storage)

    logger.info(f"[Lifecycle] {application.application_number} submitted by {applicant.pk}")
    return application


# ========================================
# CORRECTION
# ========================================

def request_correction(application, admin, note):
    """Send the application back to the applicant with a mandatory note."""
    _require_admin(admin)
    note = _require_note(note)
    with transaction.atomic():
        application = lock_application(application)
        workflow = application.workflow
        token = _current_token(application)
        if token == workflow.correction_state:
            raise GuardViolation("Application is already awaiting correction", rule="already_in_correction")
        _require_open(application, token)

        application.notes = note
        _assign_admin(application, admin)
        return _move(application, workflow.correction_state, admin, notes=note)


def resubmit_after_correction(application, applicant, slots):
    """
    Return a corrected application to the initial state. Invoked by the
    document attach path when the form or the requirements archive is
    re-uploaded during correction; writes exactly one log entry.
    """
    if not set(slots) & documents.RESUBMIT_SLOTS:
        raise GuardViolation(
            "Resubmission requires a new application form or requirements archive",
            rule="resubmit_slot",
        )
    with transaction.atomic():
        application = lock_application(application)
        workflow = application.workflow
        if workflow.token(application.status) != workflow.correction_state:
            raise GuardViolation("Application is not awaiting correction", rule="not_in_correction")
        if applicant.is_admin_user() or application.applicant_id != applicant.pk:
            raise GuardViolation("Only the applicant may resubmit", rule="applicant_only")

        application.notes = None
        application.assigned_admin = None
        application.assigned_admin_name = ''
        return _move(
            application,
            workflow.initial_state,
            applicant,
            notes=f"Dokumen perbaikan diunggah: {', '.join(sorted(set(slots)))}",
        )


# ========================================
# FORWARD TRANSITIONS
# ========================================

def advance(application, admin, note=None):
    """
    Move the application one step forward on its main path.
    Issuance has its own operation (``issue``).
    """
    _require_admin(admin)
    with transaction.atomic():
        application = lock_application(application)
        workflow = application.workflow
        token = _current_token(application)
        if token == workflow.correction_state:
            raise GuardViolation(
                "Application is awaiting correction by the applicant", rule="in_correction"
            )
        _require_open(application, token)

        status_to = workflow.next_state(token)
        if status_to is None:
            raise GuardViolation("No next status to advance to", rule="no_next_state")
        if status_to == workflow.issued_state:
            raise GuardViolation("Use issue to complete the application", rule="use_issue")

        stage = workflow.proof_required_on_leave.get(token)
        if stage and not documents.has_current(application, wf.PAYMENT_PROOF, stage):
            rule = "payment_proof_required" if stage == 1 else "stage_2_payment_proof_required"
            raise GuardViolation(
                f"At least one stage {stage} payment proof is required", rule=rule
            )

        _stamp_leaving(application, token, timezone.now())
        if note:
            application.notes = note.strip()
        _assign_admin(application, admin)
        return _move(application, status_to, admin, notes=note)


def issue(application, admin, issued_number, note=None, certificate=None, storage=None):
    """Issue the IIN (or supervisory result) with its number. Irreversible."""
    _require_admin(admin)
    issued_number = (issued_number or '').strip()
    if not issued_number:
        raise GuardViolation("An issued number is required", rule="issued_number_required")
    if len(issued_number) > ISSUED_NUMBER_MAX_LENGTH:
        raise GuardViolation(
            f"Issued number must be at most {ISSUED_NUMBER_MAX_LENGTH} characters",
            rule="issued_number_too_long",
        )

    with transaction.atomic():
        application = lock_application(application)
        workflow = application.workflow
        token = _current_token(application)
        if token != workflow.awaiting_issue_state:
            raise GuardViolation(
                f"Only applications in '{workflow.catalog.label(workflow.awaiting_issue_state)}' "
                f"can be issued",
                rule="not_awaiting_issue",
            )

        now = timezone.now()
        _stamp_leaving(application, token, now)
        application.issued_number = issued_number
        application.issued_at = now
        if note:
            application.notes = note.strip()
        _assign_admin(application, admin)

        def move():
            _move(application, workflow.issued_state, admin, notes=note)

        if certificate is None:
            move()
        else:
            # The certificate blob is removed again if the move fails.
            documents.persist_uploads(
                application,
                [Upload(slot=wf.CERTIFICATE, files=[certificate])],
                admin,
                storage=storage,
                after_rows=move,
            )
        return application


def reject(application, admin, note):
    """Reject the application with a mandatory note. Irreversible."""
    _require_admin(admin)
    note = _require_note(note)
    with transaction.atomic():
        application = lock_application(application)
        workflow = application.workflow
        if not workflow.allows_rejection:
            raise GuardViolation(
                f"{workflow.label} applications cannot be rejected", rule="rejection_not_allowed"
            )
        token = _current_token(application)
        _require_open(application, token)

        application.notes = note
        application.rejected_at = timezone.now()
        _assign_admin(application, admin)
        return _move(application, workflow.rejection_state, admin, notes=note)


# ========================================
# RE-AFFIRMATIONS
# ========================================

def set_note(application, admin, note):
    """Record an admin remark without changing the status."""
    _require_admin(admin)
    note = _require_note(note)
    with transaction.atomic():
        application = lock_application(application)
        application.notes = note
        _assign_admin(application, admin)
        return _reaffirm(application, admin, notes=note)


def complete_field_verification(application, admin, note=None):
    """Mark the field visit as done while the application is in field verification."""
    _require_admin(admin)
    with transaction.atomic():
        application = lock_application(application)
        workflow = application.workflow
        if workflow.token(application.status) != workflow.field_verification_state:
            raise GuardViolation(
                "Application is not in field verification", rule="not_in_field_verification"
            )
        if application.field_verification_at is not None:
            raise GuardViolation(
                "Field verification is already completed", rule="field_verification_completed"
            )
        application.field_verification_at = timezone.now()
        _assign_admin(application, admin)
        return _reaffirm(application, admin, notes=note or "Verifikasi lapangan selesai")


def archive(application, admin):
    """Soft-archive the application. Rows are never deleted."""
    _require_admin(admin)
    with transaction.atomic():
        application = lock_application(application)
        if application.is_archived:
            raise GuardViolation("Application is already archived", rule="already_archived")
        application.is_archived = True
        application.archived_at = timezone.now()
        application.save(update_fields=['is_archived', 'archived_at', 'updated_at'])
    logger.info(f"[Lifecycle] {application.application_number} archived by {admin.pk}")
    return application
