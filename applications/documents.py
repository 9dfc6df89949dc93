"""
Document slots of an application.

Every upload request goes through ``attach_many``: the slot, stage,
uploader role and current status are checked against the kind's workflow,
the blobs are stored, and only then are the ``ApplicationDocument`` and
``DocumentHistory`` rows written. Re-uploading the application form or the
requirements archive while the application is in correction triggers
``lifecycle.resubmit_after_correction`` exactly once per request.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from django.db import DatabaseError, transaction
from django.utils import timezone

from .exceptions import GuardViolation, NotFound, StorageFault
from .models import Application, ApplicationDocument, DocumentHistory
from .storage import get_blob_storage
from . import workflows as wf

logger = logging.getLogger(__name__)


APPLICANT = 'applicant'
ADMIN = 'admin'
EITHER = 'either'


@dataclass(frozen=True)
class SlotSpec:
    name: str
    multi: bool
    uploader: str
    staged: bool = False
    survey_gated: bool = False


SLOTS = {
    wf.APPLICATION_FORM: SlotSpec(wf.APPLICATION_FORM, multi=False, uploader=APPLICANT),
    wf.REQUIREMENTS_ARCHIVE: SlotSpec(wf.REQUIREMENTS_ARCHIVE, multi=False, uploader=APPLICANT),
    wf.PAYMENT_DOCUMENT: SlotSpec(wf.PAYMENT_DOCUMENT, multi=True, uploader=ADMIN, staged=True),
    wf.PAYMENT_PROOF: SlotSpec(wf.PAYMENT_PROOF, multi=True, uploader=APPLICANT, staged=True),
    wf.FIELD_VERIFICATION_DOCUMENTS: SlotSpec(wf.FIELD_VERIFICATION_DOCUMENTS, multi=True, uploader=ADMIN),
    wf.ISSUANCE_DOCUMENTS: SlotSpec(wf.ISSUANCE_DOCUMENTS, multi=True, uploader=ADMIN, survey_gated=True),
    wf.CERTIFICATE: SlotSpec(wf.CERTIFICATE, multi=False, uploader=ADMIN, survey_gated=True),
    wf.ADDITIONAL_DOCUMENTS: SlotSpec(wf.ADDITIONAL_DOCUMENTS, multi=True, uploader=EITHER),
}

RESUBMIT_SLOTS = frozenset({wf.APPLICATION_FORM, wf.REQUIREMENTS_ARCHIVE})


@dataclass
class Upload:
    """Files for one slot within an upload request."""
    slot: str
    files: list
    stage: Optional[int] = None


def get_slot(slot):
    try:
        return SLOTS[slot]
    except KeyError:
        raise GuardViolation(f"Unknown document slot: {slot}", rule="unknown_slot")


def lock_application(application):
    """Re-read the application under a row lock. Must run inside ``transaction.atomic``."""
    try:
        return Application.objects.select_for_update().get(pk=application.pk)
    except Application.DoesNotExist:
        raise NotFound("Application not found", rule="application_not_found")


def has_current(application, slot, stage=None):
    return ApplicationDocument.objects.filter(
        application=application, slot=slot, stage=stage, is_current=True
    ).exists()


# ========================================
# VALIDATION
# ========================================

def _normalize_stage(spec, stage):
    if not spec.staged:
        if stage not in (None, ''):
            raise GuardViolation(f"Slot {spec.name} has no payment stage", rule="stage_not_applicable")
        return None
    if stage in (None, ''):
        return 1
    try:
        stage = int(stage)
    except (TypeError, ValueError):
        raise GuardViolation("Payment stage must be 1 or 2", rule="invalid_stage")
    if stage not in (1, 2):
        raise GuardViolation("Payment stage must be 1 or 2", rule="invalid_stage")
    return stage


def _check_uploader(spec, application, actor):
    is_admin = actor.is_admin_user()
    if spec.uploader == ADMIN and not is_admin:
        raise GuardViolation(f"Only administrators may upload {spec.name}", rule="uploader_role")
    if spec.uploader == APPLICANT and is_admin:
        raise GuardViolation(f"Only the applicant may upload {spec.name}", rule="uploader_role")
    if not is_admin and application.applicant_id != actor.pk:
        raise GuardViolation("Only the applicant may upload to this application", rule="uploader_role")


def validate_upload(application, upload, actor):
    """
    Check one upload against the application's current state.
    Returns the upload with its stage normalized.
    """
    workflow = application.workflow
    spec = get_slot(upload.slot)
    stage = _normalize_stage(spec, upload.stage)

    files = [f for f in (upload.files or []) if f is not None]
    if not files:
        raise GuardViolation(f"No file given for {spec.name}", rule="file_required")
    if not spec.multi and len(files) > 1:
        raise GuardViolation(f"Slot {spec.name} accepts a single file", rule="single_file_slot")

    _check_uploader(spec, application, actor)

    if stage == 2:
        if not workflow.has_stage_2:
            raise GuardViolation(
                f"{workflow.label} has a single payment stage", rule="stage_not_supported"
            )
        if application.payment_verified_at is None:
            raise GuardViolation(
                "Stage 2 payment documents require a verified stage 1 payment",
                rule="stage_1_not_verified",
            )

    if not workflow.slot_open_in(spec.name, stage, application.status):
        raise GuardViolation(
            f"Cannot upload {spec.name} while status is "
            f"'{workflow.catalog.label(application.status)}'",
            rule="slot_closed",
        )

    return Upload(slot=spec.name, files=files, stage=stage)


# ========================================
# PERSISTENCE
# ========================================

def _directory_for(application, upload):
    parts = [application.kind, application.application_number, upload.slot]
    if upload.stage:
        parts.append(f"stage{upload.stage}")
    return '/'.join(parts)


def store_blobs(application, uploads, storage):
    """
    Store every file of every upload. On failure the blobs already
    stored are deleted and ``StorageFault`` is raised.
    Returns ``[(upload, [(original_name, stored_path), ...]), ...]``.
    """
    stored = []
    paths = []
    try:
        for upload in uploads:
            entries = []
            for uploaded_file in upload.files:
                path = storage.store(_directory_for(application, upload), uploaded_file)
                paths.append(path)
                entries.append((getattr(uploaded_file, 'name', '') or 'document', path))
            stored.append((upload, entries))
    except StorageFault:
        discard_blobs(paths, storage)
        raise
    except OSError as exc:
        discard_blobs(paths, storage)
        logger.error(f"[Documents] Storage failure for {application.application_number}: {exc}")
        raise StorageFault("Failed to store uploaded file", rule="storage_write") from exc
    return stored, paths


def discard_blobs(paths, storage):
    for path in paths:
        storage.delete(path)


def write_rows(application, stored, actor, status_at_upload):
    """Write document and history rows for already stored blobs."""
    created = []
    now = timezone.now()
    for upload, entries in stored:
        spec = SLOTS[upload.slot]
        batch = uuid.uuid4()
        action = DocumentHistory.ACTION_UPLOADED
        if not spec.multi:
            replaced = ApplicationDocument.objects.filter(
                application=application, slot=upload.slot, stage=upload.stage, is_current=True
            ).update(is_current=False)
            if replaced:
                action = DocumentHistory.ACTION_REPLACED
        for original_name, path in entries:
            created.append(ApplicationDocument.objects.create(
                application=application,
                slot=upload.slot,
                stage=upload.stage,
                original_name=original_name,
                stored_path=path,
                uploaded_at=now,
                uploaded_by=actor,
                upload_batch=batch,
            ))
        DocumentHistory.objects.create(
            application=application,
            slot=upload.slot,
            stage=upload.stage,
            action=action,
            actor=actor,
            file_names=[name for name, _ in entries],
            file_count=len(entries),
            status_at_upload=status_at_upload,
            created_at=now,
        )
    return created


def persist_uploads(application, uploads, actor, storage=None, after_rows=None):
    """
    Store blobs first, then write rows (and run ``after_rows``) inside the
    caller's transaction. Any failure after storing removes the blobs.
    """
    storage = storage or get_blob_storage()
    stored, paths = store_blobs(application, uploads, storage)
    try:
        created = write_rows(application, stored, actor, application.status)
        if after_rows is not None:
            after_rows()
    except DatabaseError as exc:
        discard_blobs(paths, storage)
        logger.error(f"[Documents] Database failure for {application.application_number}: {exc}")
        raise StorageFault("Failed to record uploaded documents", rule="storage_write") from exc
    except Exception:
        discard_blobs(paths, storage)
        raise
    return created


# ========================================
# PUBLIC OPERATIONS
# ========================================

def attach_many(application, uploads, actor, storage=None):
    """
    Attach several slots in one request. All slots are stored atomically
    and a correction-state re-upload resubmits the application at most once.
    Returns ``(application, documents)``.
    """
    from . import lifecycle

    if not uploads:
        raise GuardViolation("No documents given", rule="file_required")

    with transaction.atomic():
        locked = lock_application(application)
        validated = [validate_upload(locked, upload, actor) for upload in uploads]

        resubmit_slots = [u.slot for u in validated if u.slot in RESUBMIT_SLOTS]
        needs_resubmit = (
            bool(resubmit_slots)
            and locked.workflow.token(locked.status) == locked.workflow.correction_state
        )

        def resubmit():
            lifecycle.resubmit_after_correction(locked, actor, resubmit_slots)

        created = persist_uploads(
            locked,
            validated,
            actor,
            storage=storage,
            after_rows=resubmit if needs_resubmit else None,
        )

    locked.refresh_from_db()
    logger.info(
        f"[Documents] {locked.application_number}: {len(created)} file(s) attached to "
        f"{', '.join(u.slot for u in validated)} by {actor.pk}"
    )
    return locked, created


def attach(application, slot, files, actor, stage=None, storage=None):
    """Attach files to a single slot. Returns ``(application, documents)``."""
    return attach_many(application, [Upload(slot=slot, files=list(files), stage=stage)], actor, storage=storage)


def list_for(application, slot=None, stage=None):
    """Current attachments, ordered by upload time then id."""
    qs = ApplicationDocument.objects.filter(application=application, is_current=True)
    if slot is not None:
        spec = get_slot(slot)
        qs = qs.filter(slot=spec.name)
        if spec.staged and stage not in (None, ''):
            qs = qs.filter(stage=_normalize_stage(spec, stage))
    return qs.order_by('uploaded_at', 'id')


def slot_listing(application):
    """Current attachments grouped per slot (and stage)."""
    listing = {}
    for document in list_for(application):
        key = document.slot if document.stage is None else f"{document.slot}_stage_{document.stage}"
        listing.setdefault(key, []).append(document)
    return listing


def history_for(application):
    return DocumentHistory.objects.filter(application=application).order_by('created_at', 'id')


def _ensure_can_view(application, viewer):
    if viewer.is_admin_user():
        return
    if application.applicant_id != viewer.pk:
        raise NotFound("Document not found", rule="document_not_found")


def open_document(application, document_id, viewer, storage=None, gate=None):
    """
    Return ``(document, file_handle)`` for one attachment.

    Generated documents (certificate, issuance documents) are released to
    applicants only while the survey gate is open for them.
    """
    _ensure_can_view(application, viewer)
    try:
        document = ApplicationDocument.objects.get(pk=document_id, application=application)
    except ApplicationDocument.DoesNotExist:
        raise NotFound("Document not found", rule="document_not_found")

    spec = get_slot(document.slot)
    if spec.survey_gated and not viewer.is_admin_user():
        if gate is None:
            from survey.services import is_download_allowed as gate
        if not gate(viewer, application.kind, application.pk):
            raise GuardViolation(
                "Please complete the service survey before downloading this document",
                rule="survey_gate_closed",
            )

    storage = storage or get_blob_storage()
    handle = storage.retrieve(document.stored_path)
    logger.info(f"[Documents] {application.application_number}: document {document.pk} opened by {viewer.pk}")
    return document, handle
