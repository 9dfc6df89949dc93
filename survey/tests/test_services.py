import pytest
import requests
from unittest.mock import MagicMock, patch

from survey.gate import GateState
from survey.models import SurveyCompletion
from survey.services import (
    GateSessionStore,
    SurveyProviderClient,
    check_completion,
    is_download_allowed,
    record_completion,
)


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.mark.django_db
class TestRecordCompletion:
    def test_record_is_idempotent(self, applicant):
        first, created = record_completion("iin_nasional", 5, certificate_type="iin", user=applicant)
        assert created

        second, created = record_completion("iin_nasional", 5, certificate_type="lain")
        assert not created
        assert second.pk == first.pk
        assert second.certificate_type == "iin"
        assert SurveyCompletion.objects.count() == 1

    def test_completion_is_per_application(self):
        record_completion("iin_nasional", 5)
        assert check_completion("iin_nasional", 5)
        assert not check_completion("iin_nasional", 6)
        assert not check_completion("single_iin_blockholder", 5)

    def test_type_is_stored_as_text(self):
        record_completion(5, 5)
        assert check_completion("5", 5)


@pytest.mark.django_db
class TestSurveyProviderClient:
    def test_disabled_without_url(self):
        with patch("survey.services.requests.get") as mock_get:
            assert not SurveyProviderClient().has_completed("iin_nasional", 5)
        mock_get.assert_not_called()

    def test_reports_completion(self, settings):
        settings.SURVEY_PROVIDER_URL = "https://survei.example.org/api/"
        settings.SURVEY_PROVIDER_TOKEN = "rahasia"
        response = MagicMock()
        response.json.return_value = {"completed": True}

        with patch("survey.services.requests.get", return_value=response) as mock_get:
            assert check_completion("iin_nasional", 5)

        url = mock_get.call_args.args[0]
        assert url == "https://survei.example.org/api/completions/iin_nasional/5"
        assert mock_get.call_args.kwargs["headers"]["Authorization"] == "Bearer rahasia"

    def test_network_error_reads_as_not_completed(self, settings):
        settings.SURVEY_PROVIDER_URL = "https://survei.example.org/api"
        with patch("survey.services.requests.get", side_effect=requests.exceptions.ConnectionError("down")):
            assert not check_completion("iin_nasional", 5)

    @pytest.mark.parametrize("payload", [[{"completed": True}], None, "ok"])
    def test_malformed_payload_reads_as_not_completed(self, settings, payload):
        settings.SURVEY_PROVIDER_URL = "https://survei.example.org/api"
        response = MagicMock()
        response.json.return_value = payload
        with patch("survey.services.requests.get", return_value=response):
            assert not check_completion("iin_nasional", 5)

    def test_local_record_skips_provider(self, settings):
        settings.SURVEY_PROVIDER_URL = "https://survei.example.org/api"
        record_completion("iin_nasional", 5)
        with patch("survey.services.requests.get") as mock_get:
            assert check_completion("iin_nasional", 5)
        mock_get.assert_not_called()


@pytest.mark.django_db
class TestGateSessionStore:
    def test_open_then_dwell(self, applicant):
        clock = FakeClock()
        store = GateSessionStore(clock=clock, dwell_seconds=10)

        gate = store.open(applicant, "5", 5)
        assert gate.state is GateState.AWAITING_ACTION
        assert not store.current(applicant, "5", 5).can_download

        clock.now += 10
        gate = store.current(applicant, "5", 5)
        assert gate.state is GateState.DOWNLOAD_ENABLED
        assert gate.enabled_by == "dwell"
        # Dwell expiry is not a completion.
        assert not check_completion("5", 5)

    def test_sessions_are_per_user(self, applicant, other_applicant):
        clock = FakeClock()
        store = GateSessionStore(clock=clock, dwell_seconds=10)
        store.open(applicant, "5", 5)
        clock.now += 10
        assert store.current(applicant, "5", 5).can_download
        assert store.current(other_applicant, "5", 5).state is GateState.CLOSED

    def test_completion_short_circuits(self, applicant):
        record_completion("5", 5)
        store = GateSessionStore(clock=FakeClock(), dwell_seconds=10)
        assert store.open(applicant, "5", 5).state is GateState.ALREADY_COMPLETED
        assert store.current(applicant, "5", 5).state is GateState.ALREADY_COMPLETED

    def test_cancel(self, applicant):
        clock = FakeClock()
        store = GateSessionStore(clock=clock, dwell_seconds=10)
        store.open(applicant, "5", 5)
        store.cancel(applicant, "5", 5)
        clock.now += 60
        assert store.current(applicant, "5", 5).state is GateState.CLOSED

    def test_is_download_allowed(self, applicant, settings):
        settings.SURVEY_GATE_DWELL_SECONDS = 0
        assert not is_download_allowed(applicant, "5", 5)

        GateSessionStore().open(applicant, "5", 5)
        assert is_download_allowed(applicant, "5", 5)

    def test_visit_is_remembered_but_enables_nothing(self, applicant):
        clock = FakeClock()
        store = GateSessionStore(clock=clock, dwell_seconds=10)
        store.open(applicant, "5", 5)

        gate = store.mark_visited(applicant, "5", 5)
        assert gate.survey_visited
        assert gate.state is GateState.AWAITING_ACTION

        clock.now += 10
        gate = store.current(applicant, "5", 5)
        assert gate.survey_visited
        assert gate.enabled_by == "dwell"
