import datetime

import pytest

from applications import audit, lifecycle, reimbursements
from applications.exceptions import GuardViolation, NotFound
from applications.models import DocumentHistory
from applications.tests.factories import make_file


def reimbursement_data(**overrides):
    data = {
        "company_name": "PT Bank Contoh",
        "pic_name": "Sari Dewi",
        "pic_contact": "081234567890",
        "verification_date": datetime.date(2025, 10, 6),
        "is_acknowledged": True,
        "chief_verificator_amount": 1500000,
        "member_verificator_amount": 1000000,
    }
    data.update(overrides)
    return data


@pytest.mark.django_db
class TestSubmitReimbursement:
    def test_submit_from_field_verification(self, submit_application, drive, applicant):
        application = drive(submit_application(), "verifikasi-lapangan")
        log_count = audit.list_for(application).count()

        record = reimbursements.submit_reimbursement(
            application, applicant, reimbursement_data(), make_file("transfer.jpg", b"jpeg", "image/jpeg")
        )

        assert record.total_amount == 2500000
        assert record.proof_original_name == "transfer.jpg"
        assert not record.is_verified
        assert DocumentHistory.objects.filter(application=application, slot="reimbursement_proof").count() == 1
        latest = audit.latest_for(application)
        assert audit.list_for(application).count() == log_count + 1
        assert latest.status_from == latest.status_to == "verifikasi-lapangan"

    def test_only_once(self, submit_application, drive, applicant):
        application = drive(submit_application(), "verifikasi-lapangan")
        reimbursements.submit_reimbursement(application, applicant, reimbursement_data(), make_file())
        with pytest.raises(GuardViolation) as exc:
            reimbursements.submit_reimbursement(application, applicant, reimbursement_data(), make_file())
        assert exc.value.rule == "reimbursement_exists"

    @pytest.mark.parametrize("target", ["pengajuan", "pembayaran"])
    def test_closed_before_field_verification(self, submit_application, drive, applicant, target):
        application = drive(submit_application(), target)
        with pytest.raises(GuardViolation) as exc:
            reimbursements.submit_reimbursement(application, applicant, reimbursement_data(), make_file())
        assert exc.value.rule == "reimbursement_closed"

    def test_closed_when_rejected(self, submit_application, drive, admin_user, applicant):
        application = drive(submit_application(), "verifikasi-lapangan")
        application = lifecycle.reject(application, admin_user, "Tidak memenuhi syarat")
        with pytest.raises(GuardViolation) as exc:
            reimbursements.submit_reimbursement(application, applicant, reimbursement_data(), make_file())
        assert exc.value.rule == "reimbursement_closed"

    def test_open_after_issue(self, submit_application, drive, applicant):
        application = drive(submit_application(), "terbit")
        record = reimbursements.submit_reimbursement(application, applicant, reimbursement_data(), make_file())
        assert record.pk is not None

    def test_missing_fields(self, submit_application, drive, applicant):
        application = drive(submit_application(), "verifikasi-lapangan")
        with pytest.raises(GuardViolation) as exc:
            reimbursements.submit_reimbursement(
                application, applicant, reimbursement_data(pic_name=""), make_file()
            )
        assert exc.value.rule == "reimbursement_incomplete"

    def test_admin_cannot_submit(self, submit_application, drive, admin_user):
        application = drive(submit_application(), "verifikasi-lapangan")
        with pytest.raises(GuardViolation) as exc:
            reimbursements.submit_reimbursement(application, admin_user, reimbursement_data(), make_file())
        assert exc.value.rule == "applicant_only"


@pytest.mark.django_db
class TestVerifyReimbursement:
    def test_verify_once(self, submit_application, drive, admin_user, applicant):
        application = drive(submit_application(), "verifikasi-lapangan")
        reimbursements.submit_reimbursement(application, applicant, reimbursement_data(), make_file())

        record = reimbursements.verify_reimbursement(application, admin_user)
        assert record.is_verified
        assert record.verified_by == admin_user

        with pytest.raises(GuardViolation) as exc:
            reimbursements.verify_reimbursement(application, admin_user)
        assert exc.value.rule == "reimbursement_verified"

    def test_verify_without_record(self, submit_application, admin_user):
        with pytest.raises(NotFound):
            reimbursements.verify_reimbursement(submit_application(), admin_user)

    def test_open_proof(self, submit_application, drive, applicant, other_applicant):
        application = drive(submit_application(), "verifikasi-lapangan")
        reimbursements.submit_reimbursement(application, applicant, reimbursement_data(), make_file("bukti.pdf"))

        record, handle = reimbursements.open_reimbursement_proof(application, applicant)
        with handle:
            assert handle.read() == b"%PDF-1.4 test"

        with pytest.raises(NotFound):
            reimbursements.open_reimbursement_proof(application, other_applicant)
