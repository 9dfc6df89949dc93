import pytest
from unittest.mock import patch
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from applications import lifecycle
from applications import workflows as wf
from applications.exceptions import StorageFault
from applications.tests.factories import make_file
from survey.services import record_completion


@pytest.mark.django_db
class TestApplicationListCreateAPI:
    def test_requires_authentication(self):
        response = APIClient().get(reverse("application-list"))
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_submit_application(self, applicant_client):
        response = applicant_client.post(
            reverse("application-list"),
            {"kind": wf.IIN_NASIONAL, "application_form": make_file("formulir.pdf")},
            format="multipart",
        )
        assert response.status_code == status.HTTP_201_CREATED
        data = response.data["data"]
        assert data["status"] == "pengajuan"
        assert data["status_label"] == "Pengajuan"
        assert data["severity"] == "info"
        assert data["application_number"].startswith("IIN-NAS-")
        assert [d["original_name"] for d in data["documents"]["application_form"]] == ["formulir.pdf"]

    def test_submit_without_form(self, applicant_client):
        response = applicant_client.post(
            reverse("application-list"), {"kind": wf.IIN_NASIONAL}, format="multipart"
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "application_form" in response.data["details"]

    def test_admin_cannot_submit(self, admin_client):
        response = admin_client.post(
            reverse("application-list"),
            {"kind": wf.IIN_NASIONAL, "application_form": make_file()},
            format="multipart",
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_applicants_see_only_their_own(self, applicant_client, submit_application, other_applicant):
        mine = submit_application()
        submit_application(user=other_applicant)

        response = applicant_client.get(reverse("application-list"))
        assert response.status_code == status.HTTP_200_OK
        assert response.data["count"] == 1
        assert response.data["results"][0]["id"] == mine.id

    def test_admin_filters(self, admin_client, submit_application, admin_user):
        first = submit_application()
        submit_application(kind=wf.PENGAWASAN_IIN_NASIONAL)
        lifecycle.request_correction(first, admin_user, "revisi")

        response = admin_client.get(reverse("application-list"))
        assert response.data["count"] == 2

        response = admin_client.get(reverse("application-list"), {"kind": wf.PENGAWASAN_IIN_NASIONAL})
        assert response.data["count"] == 1

        response = admin_client.get(reverse("application-list"), {"status": " PERBAIKAN "})
        assert response.data["count"] == 1
        assert response.data["results"][0]["status_label_detailed"] == "Perlu Perbaikan"

        response = admin_client.get(reverse("application-list"), {"search": first.application_number})
        assert [r["id"] for r in response.data["results"]] == [first.id]


@pytest.mark.django_db
class TestApplicationDetailAPI:
    def test_other_applicant_is_forbidden(self, submit_application, other_applicant):
        application = submit_application()
        client = APIClient()
        client.force_authenticate(user=other_applicant)
        response = client.get(reverse("application-detail", args=[application.pk]))
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_missing_application(self, admin_client):
        response = admin_client.get(reverse("application-detail", args=[9999]))
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["status"] == "error"

    def test_status_logs(self, applicant_client, submit_application, admin_user):
        application = lifecycle.request_correction(submit_application(), admin_user, "missing NPWP")
        response = applicant_client.get(reverse("application-status-logs", args=[application.pk]))
        assert response.status_code == status.HTTP_200_OK
        assert [e["status_to"] for e in response.data] == ["pengajuan", "perbaikan"]
        assert response.data[0]["status_from"] is None
        assert response.data[1]["notes"] == "missing NPWP"


@pytest.mark.django_db
class TestAdminActionsAPI:
    def test_request_correction(self, admin_client, submit_application):
        application = submit_application()
        response = admin_client.post(
            reverse("application-request-correction", args=[application.pk]),
            {"note": "missing NPWP"},
            format="json",
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.data["data"]["status"] == "perbaikan"
        assert response.data["data"]["notes"] == "missing NPWP"

    def test_applicant_cannot_advance(self, applicant_client, submit_application):
        application = submit_application()
        response = applicant_client.post(reverse("application-advance", args=[application.pk]), {}, format="json")
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_guard_violation_payload(self, admin_client, submit_application, drive):
        application = drive(submit_application(), "pembayaran")
        response = admin_client.post(reverse("application-advance", args=[application.pk]), {}, format="json")
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["status"] == "error"
        assert response.data["rule"] == "payment_proof_required"

    def test_issue(self, admin_client, submit_application, drive):
        application = drive(submit_application(), "menunggu-terbit")
        response = admin_client.post(
            reverse("application-issue", args=[application.pk]),
            {"issued_number": "360001", "certificate": make_file("sertifikat.pdf")},
            format="multipart",
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.data["data"]["status"] == "terbit"
        assert response.data["data"]["issued_number"] == "360001"
        assert "certificate" in response.data["data"]["documents"]

    def test_issued_number_too_long(self, admin_client, submit_application, drive):
        application = drive(submit_application(), "menunggu-terbit")
        response = admin_client.post(
            reverse("application-issue", args=[application.pk]), {"issued_number": "9" * 21}, format="json"
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_reject_requires_note(self, admin_client, submit_application):
        application = submit_application()
        response = admin_client.post(reverse("application-reject", args=[application.pk]), {}, format="json")
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "note" in response.data["details"]

    def test_archive_hides_from_default_list(self, admin_client, submit_application):
        application = submit_application()
        response = admin_client.post(reverse("application-archive", args=[application.pk]), {}, format="json")
        assert response.status_code == status.HTTP_200_OK

        assert admin_client.get(reverse("application-list")).data["count"] == 0
        assert admin_client.get(reverse("application-list"), {"archived": "true"}).data["count"] == 1


@pytest.mark.django_db
class TestDocumentsAPI:
    def test_upload_payment_proof(self, applicant_client, submit_application, drive):
        application = drive(submit_application(), "pembayaran")
        response = applicant_client.post(
            reverse("application-documents", args=[application.pk, wf.PAYMENT_PROOF]),
            {"files": [make_file("bukti-1.pdf"), make_file("bukti-2.pdf")], "stage": 1},
            format="multipart",
        )
        assert response.status_code == status.HTTP_201_CREATED

        response = applicant_client.get(
            reverse("application-documents", args=[application.pk, wf.PAYMENT_PROOF]), {"stage": 1}
        )
        assert [d["original_name"] for d in response.data] == ["bukti-1.pdf", "bukti-2.pdf"]

    def test_correction_reupload_resubmits(self, applicant_client, submit_application, admin_user):
        application = lifecycle.request_correction(submit_application(), admin_user, "missing NPWP")
        response = applicant_client.post(
            reverse("application-documents", args=[application.pk, wf.REQUIREMENTS_ARCHIVE]),
            {"files": [make_file("arsip.zip")]},
            format="multipart",
        )
        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["data"]["status"] == "pengajuan"
        assert response.data["data"]["notes"] is None

    def test_storage_fault_is_503(self, applicant_client, submit_application):
        application = submit_application()
        with patch("applications.views.documents.attach", side_effect=StorageFault("disk full")):
            response = applicant_client.post(
                reverse("application-documents", args=[application.pk, wf.ADDITIONAL_DOCUMENTS]),
                {"files": [make_file()]},
                format="multipart",
            )
        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE

    def test_certificate_download_behind_survey_gate(self, applicant_client, submit_application, drive, admin_user):
        application = drive(submit_application(), "menunggu-terbit")
        application = lifecycle.issue(application, admin_user, "360001", certificate=make_file("sertifikat.pdf"))
        certificate = application.documents.get(slot=wf.CERTIFICATE)
        url = reverse("application-document-download", args=[application.pk, certificate.pk])

        response = applicant_client.get(url)
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["rule"] == "survey_gate_closed"

        record_completion(application.kind, application.pk, certificate_type="iin")
        response = applicant_client.get(url)
        assert response.status_code == status.HTTP_200_OK
        assert b"".join(response.streaming_content) == b"%PDF-1.4 test"

    def test_document_history(self, applicant_client, submit_application):
        application = submit_application()
        response = applicant_client.get(reverse("application-document-history", args=[application.pk]))
        assert response.status_code == status.HTTP_200_OK
        assert {h["slot"] for h in response.data} == {wf.APPLICATION_FORM, wf.REQUIREMENTS_ARCHIVE}


@pytest.mark.django_db
class TestReimbursementAPI:
    def test_submit_and_verify(self, applicant_client, admin_client, submit_application, drive):
        application = drive(submit_application(), "verifikasi-lapangan")
        response = applicant_client.post(
            reverse("application-reimbursement", args=[application.pk]),
            {
                "company_name": "PT Bank Contoh",
                "pic_name": "Sari Dewi",
                "pic_contact": "081234567890",
                "verification_date": "2025-10-06",
                "is_acknowledged": "true",
                "chief_verificator_amount": 1500000,
                "member_verificator_amount": 1000000,
                "proof": make_file("transfer.pdf"),
            },
            format="multipart",
        )
        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["data"]["total_amount"] == 2500000

        response = admin_client.post(reverse("application-reimbursement-verify", args=[application.pk]))
        assert response.status_code == status.HTTP_200_OK
        assert response.data["data"]["is_verified"] is True

        response = admin_client.get(reverse("application-reimbursement-proof", args=[application.pk]))
        assert response.status_code == status.HTTP_200_OK

    def test_get_missing_reimbursement(self, applicant_client, submit_application):
        application = submit_application()
        response = applicant_client.get(reverse("application-reimbursement", args=[application.pk]))
        assert response.status_code == status.HTTP_404_NOT_FOUND
