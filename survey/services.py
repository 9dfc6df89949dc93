"""
Survey completion records, the optional external survey platform and the
server-side gate sessions used to release generated documents.
"""

import logging
import time

import requests
from django.conf import settings
from django.core.cache import cache
from django.db import DatabaseError, IntegrityError, transaction

from applications.models import Application
from applications.workflows import WORKFLOWS

from .gate import DEFAULT_DWELL_SECONDS, GateState, SurveyGate
from .models import SurveyCompletion

logger = logging.getLogger(__name__)


# ========================================
# EXTERNAL SURVEY PLATFORM
# ========================================

class SurveyProviderClient:
    """
    Client for the external survey platform. Only used when
    ``SURVEY_PROVIDER_URL`` is configured.
    """

    def __init__(self):
        self.base_url = getattr(settings, 'SURVEY_PROVIDER_URL', '').rstrip('/')
        self.token = getattr(settings, 'SURVEY_PROVIDER_TOKEN', '')
        self.timeout = getattr(settings, 'SURVEY_PROVIDER_TIMEOUT', 5)

    @property
    def enabled(self):
        return bool(self.base_url)

    def has_completed(self, application_type, application_id):
        """Ask the platform whether a response exists for the application."""
        if not self.enabled:
            return False
        try:
            url = f"{self.base_url}/completions/{application_type}/{application_id}"
            headers = {'Accept': 'application/json'}
            if self.token:
                headers['Authorization'] = f'Bearer {self.token}'

            response = requests.get(url, headers=headers, timeout=self.timeout)
            response.raise_for_status()

            data = response.json()
            if not isinstance(data, dict):
                logger.warning(
                    f"[SurveyProvider] Unexpected payload for {application_type}#{application_id}: "
                    f"{type(data).__name__}"
                )
                return False
            return bool(data.get('completed', False))

        except requests.exceptions.RequestException as e:
            logger.warning(f"[SurveyProvider] Check failed for {application_type}#{application_id}: {str(e)}")
            return False
        except ValueError as e:
            logger.warning(f"[SurveyProvider] Invalid response for {application_type}#{application_id}: {str(e)}")
            return False


# ========================================
# COMPLETIONS
# ========================================

def check_completion(application_type, application_id):
    """
    True when the survey is recorded locally or reported by the external
    platform. Failures are logged and read as "not completed".
    """
    application_type = str(application_type)
    try:
        if SurveyCompletion.objects.filter(
            application_type=application_type, application_id=application_id
        ).exists():
            return True
    except DatabaseError as e:
        logger.warning(f"[Survey] Completion lookup failed for {application_type}#{application_id}: {str(e)}")
        return False

    return SurveyProviderClient().has_completed(application_type, application_id)


def record_completion(application_type, application_id, certificate_type=None, user=None):
    """
    Record the survey completion. Idempotent: a second call returns the
    existing row. Returns ``(completion, created)``.
    """
    application_type = str(application_type)
    try:
        with transaction.atomic():
            completion, created = SurveyCompletion.objects.get_or_create(
                application_type=application_type,
                application_id=application_id,
                defaults={'certificate_type': certificate_type, 'user': user},
            )
    except IntegrityError:
        completion = SurveyCompletion.objects.get(
            application_type=application_type, application_id=application_id
        )
        created = False

    if created:
        logger.info(f"[Survey] Completion recorded for {application_type}#{application_id}")
    return completion, created


def can_record_completion(user, application_type, application_id):
    """
    Applicants may record the survey only for their own applications.
    Types that are not application kinds gate no documents and stay open.
    """
    if user.is_admin_user():
        return True
    application_type = str(application_type)
    if application_type not in WORKFLOWS:
        return True
    return Application.objects.filter(
        pk=application_id, kind=application_type, applicant=user
    ).exists()


# ========================================
# GATE SESSIONS
# ========================================

class GateSessionStore:
    """
    Keeps the moment a user opened the download gate, per
    (user, application_type, application_id), in the Django cache.
    """

    KEY_PREFIX = 'survey_gate'

    def __init__(self, backend=None, clock=None, dwell_seconds=None):
        self.cache = backend or cache
        self.clock = clock or time.time
        if dwell_seconds is None:
            dwell_seconds = getattr(settings, 'SURVEY_GATE_DWELL_SECONDS', DEFAULT_DWELL_SECONDS)
        self.dwell_seconds = dwell_seconds

    @property
    def session_timeout(self):
        return max(3600, self.dwell_seconds * 10)

    def key(self, user, application_type, application_id):
        return f"{self.KEY_PREFIX}:{user.pk}:{application_type}:{application_id}"

    def _gate(self, application_type, application_id, checker=None):
        return SurveyGate(
            application_type,
            application_id,
            checker=checker or check_completion,
            clock=self.clock,
            dwell_seconds=self.dwell_seconds,
        )

    def open(self, user, application_type, application_id):
        gate = self._gate(application_type, application_id)
        gate.open()
        key = self.key(user, gate.application_type, application_id)
        if gate.state is GateState.AWAITING_ACTION:
            self.cache.set(key, {'opened_at': gate.opened_at}, timeout=self.session_timeout)
        else:
            self.cache.delete(key)
        return gate

    def current(self, user, application_type, application_id):
        """Gate as seen now: completion first, then the stored dwell session."""
        gate = self._gate(application_type, application_id)
        if check_completion(gate.application_type, application_id):
            gate.state = GateState.ALREADY_COMPLETED
            gate.enabled_by = 'completion'
            return gate
        session = self.cache.get(self.key(user, gate.application_type, application_id))
        if session:
            gate.resume(session['opened_at'])
            if session.get('survey_visited'):
                gate.mark_survey_visited()
        return gate

    def mark_visited(self, user, application_type, application_id):
        """Remember that the survey link was followed. Enables nothing."""
        gate = self.current(user, application_type, application_id)
        key = self.key(user, gate.application_type, application_id)
        session = self.cache.get(key)
        if session:
            gate.mark_survey_visited()
            session['survey_visited'] = True
            self.cache.set(key, session, timeout=self.session_timeout)
        return gate

    def cancel(self, user, application_type, application_id):
        self.cache.delete(self.key(user, str(application_type), application_id))


def is_download_allowed(user, application_type, application_id):
    """Whether generated documents may be released to ``user`` right now."""
    return GateSessionStore().current(user, application_type, application_id).can_download
