"""
Transport and per-diem reimbursement proof for the field verification team.
"""

import logging

from django.db import DatabaseError, transaction
from django.utils import timezone

from . import audit
from .documents import discard_blobs, lock_application
from .exceptions import GuardViolation, NotFound, StorageFault
from .models import DocumentHistory, ReimbursementRecord
from .storage import get_blob_storage

logger = logging.getLogger(__name__)

REIMBURSEMENT_SLOT = 'reimbursement_proof'

REQUIRED_FIELDS = ('company_name', 'pic_name', 'pic_contact', 'verification_date')


def _reimbursement_open(application):
    """True from the field verification state onwards on the main path."""
    workflow = application.workflow
    token = workflow.token(application.status)
    if token not in workflow.path:
        return False
    return workflow.path.index(token) >= workflow.path.index(workflow.field_verification_state)


def get_for(application):
    try:
        return application.reimbursement
    except ReimbursementRecord.DoesNotExist:
        raise NotFound("No reimbursement has been submitted", rule="reimbursement_not_found")


def submit_reimbursement(application, applicant, data, proof_file, storage=None):
    """
    Record the reimbursement once per application and store its proof.
    ``data`` carries company_name, pic_name, pic_contact, verification_date,
    is_acknowledged and the two verificator amounts.
    """
    if applicant.is_admin_user() or application.applicant_id != applicant.pk:
        raise GuardViolation("Only the applicant may submit a reimbursement", rule="applicant_only")
    missing = [name for name in REQUIRED_FIELDS if not data.get(name)]
    if missing:
        raise GuardViolation(f"Missing fields: {', '.join(missing)}", rule="reimbursement_incomplete")
    if proof_file is None:
        raise GuardViolation("A proof of transfer is required", rule="file_required")

    storage = storage or get_blob_storage()
    with transaction.atomic():
        application = lock_application(application)
        if not _reimbursement_open(application):
            raise GuardViolation(
                "Reimbursement can only be submitted once field verification has started",
                rule="reimbursement_closed",
            )
        if ReimbursementRecord.objects.filter(application=application).exists():
            raise GuardViolation("A reimbursement was already submitted", rule="reimbursement_exists")

        path = storage.store(
            f"{application.kind}/{application.application_number}/{REIMBURSEMENT_SLOT}", proof_file
        )
        original_name = getattr(proof_file, 'name', '') or 'bukti-reimburse'
        try:
            record = ReimbursementRecord.objects.create(
                application=application,
                company_name=data['company_name'],
                pic_name=data['pic_name'],
                pic_contact=data['pic_contact'],
                verification_date=data['verification_date'],
                is_acknowledged=bool(data.get('is_acknowledged', False)),
                chief_verificator_amount=data.get('chief_verificator_amount') or 0,
                member_verificator_amount=data.get('member_verificator_amount') or 0,
                proof_original_name=original_name,
                proof_path=path,
                submitted_by=applicant,
            )
            DocumentHistory.objects.create(
                application=application,
                slot=REIMBURSEMENT_SLOT,
                actor=applicant,
                file_names=[original_name],
                file_count=1,
                status_at_upload=application.status,
            )
            audit.append(
                application,
                application.status,
                application.status,
                actor=applicant,
                notes="Bukti reimburse transportasi dan uang harian diunggah",
            )
        except DatabaseError as exc:
            discard_blobs([path], storage)
            logger.error(f"[Reimbursement] Database failure for {application.application_number}: {exc}")
            raise StorageFault("Failed to record reimbursement", rule="storage_write") from exc

    logger.info(f"[Reimbursement] Submitted for {application.application_number}")
    return record


def verify_reimbursement(application, admin):
    """Admin confirmation that the reimbursement was received. Once only."""
    if admin is None or not admin.is_admin_user():
        raise GuardViolation("Only administrators may perform this action", rule="admin_only")
    with transaction.atomic():
        application = lock_application(application)
        record = get_for(application)
        if record.is_verified:
            raise GuardViolation("Reimbursement is already verified", rule="reimbursement_verified")
        record.verified_by = admin
        record.verified_at = timezone.now()
        record.save(update_fields=['verified_by', 'verified_at'])
    logger.info(f"[Reimbursement] Verified for {application.application_number} by {admin.pk}")
    return record


def open_reimbursement_proof(application, viewer, storage=None):
    """Return ``(record, file_handle)`` for the stored proof."""
    if not viewer.is_admin_user() and application.applicant_id != viewer.pk:
        raise NotFound("No reimbursement has been submitted", rule="reimbursement_not_found")
    record = get_for(application)
    storage = storage or get_blob_storage()
    return record, storage.retrieve(record.proof_path)
