import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from accounts.models import CustomUser
from applications import workflows as wf
from applications.tests.factories import drive_to, submit


@pytest.fixture(autouse=True)
def media_root(settings, tmp_path):
    """Every test writes blobs into its own directory."""
    settings.MEDIA_ROOT = str(tmp_path / "media")
    settings.SURVEY_PROVIDER_URL = ""
    cache.clear()
    yield settings.MEDIA_ROOT
    cache.clear()


@pytest.fixture
def applicant(db):
    return CustomUser.objects.create_user(
        email="pic@bankcontoh.co.id",
        password="pass123",
        first_name="Sari",
        last_name="Dewi",
        company_name="PT Bank Contoh",
    )


@pytest.fixture
def other_applicant(db):
    return CustomUser.objects.create_user(email="other@lain.co.id", password="pass123")


@pytest.fixture
def admin_user(db):
    return CustomUser.objects.create_user(
        email="verifikator@iin.go.id",
        password="pass123",
        first_name="Budi",
        role=CustomUser.ADMIN,
    )


@pytest.fixture
def applicant_client(applicant):
    client = APIClient()
    client.force_authenticate(user=applicant)
    return client


@pytest.fixture
def admin_client(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client


@pytest.fixture
def submit_application(applicant):
    def _submit(kind=wf.IIN_NASIONAL, with_archive=True, user=None):
        return submit(user or applicant, kind=kind, with_archive=with_archive)
    return _submit


@pytest.fixture
def drive(admin_user, applicant):
    def _drive(application, target):
        return drive_to(application, target, admin_user, applicant)
    return _drive
