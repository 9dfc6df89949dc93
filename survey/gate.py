"""
Survey gate in front of generated document downloads.

The gate is one state machine fed by two signals: the survey completion
being recorded, and the dwell timer expiring. Whichever arrives first
enables the download; anything that arrives afterwards is ignored.

    closed -> checking -> already_completed
                       -> awaiting_action -> download_enabled
"""

import asyncio
import logging
import time
from enum import Enum

from django.conf import settings

logger = logging.getLogger(__name__)

DEFAULT_DWELL_SECONDS = 10


class GateState(str, Enum):
    CLOSED = 'closed'
    CHECKING = 'checking'
    ALREADY_COMPLETED = 'already_completed'
    AWAITING_ACTION = 'awaiting_action'
    DOWNLOAD_ENABLED = 'download_enabled'


class SurveyGate:
    """
    Gate for one (application_type, application_id) pair.

    ``checker`` answers whether the survey is already completed and
    ``clock`` returns seconds; both are injectable for tests.
    """

    def __init__(self, application_type, application_id, checker=None, clock=None, dwell_seconds=None):
        if checker is None:
            from .services import check_completion as checker
        self.application_type = str(application_type)
        self.application_id = application_id
        self.checker = checker
        self.clock = clock or time.monotonic
        if dwell_seconds is None:
            dwell_seconds = getattr(settings, 'SURVEY_GATE_DWELL_SECONDS', DEFAULT_DWELL_SECONDS)
        self.dwell_seconds = dwell_seconds
        self.state = GateState.CLOSED
        self.opened_at = None
        self.enabled_by = None
        self.survey_visited = False

    def __repr__(self):
        return f"<SurveyGate {self.application_type}#{self.application_id} {self.state.value}>"

    @property
    def can_download(self):
        return self.state in (GateState.ALREADY_COMPLETED, GateState.DOWNLOAD_ENABLED)

    # ---- transitions ----------------------------------------------------

    def open(self):
        """Start (or restart) the gate: check completion, then wait if needed."""
        self.state = GateState.CHECKING
        self.opened_at = None
        self.enabled_by = None
        self.survey_visited = False

        if self.checker(self.application_type, self.application_id):
            self.state = GateState.ALREADY_COMPLETED
            self.enabled_by = 'completion'
        else:
            self.state = GateState.AWAITING_ACTION
            self.opened_at = self.clock()
        logger.debug(f"[SurveyGate] {self!r} opened")
        return self.state

    def resume(self, opened_at):
        """Restore a gate that was opened earlier at ``opened_at``."""
        self.state = GateState.AWAITING_ACTION
        self.opened_at = opened_at
        self.enabled_by = None
        return self.tick()

    def mark_survey_visited(self):
        # Visiting the survey link does not enable anything by itself.
        if self.state in (GateState.AWAITING_ACTION, GateState.DOWNLOAD_ENABLED):
            self.survey_visited = True
        return self.state

    def on_completion_recorded(self):
        return self._enable('completion')

    def on_dwell_elapsed(self):
        return self._enable('dwell')

    def _enable(self, signal):
        if self.state is not GateState.AWAITING_ACTION:
            return self.state
        self.state = GateState.DOWNLOAD_ENABLED
        self.enabled_by = signal
        logger.info(f"[SurveyGate] {self.application_type}#{self.application_id} enabled by {signal}")
        return self.state

    def remaining(self):
        if self.state is not GateState.AWAITING_ACTION or self.opened_at is None:
            return 0
        return max(0.0, self.dwell_seconds - (self.clock() - self.opened_at))

    def tick(self):
        """Fire the dwell signal if the timer has run out."""
        if self.state is GateState.AWAITING_ACTION and self.remaining() <= 0:
            self.on_dwell_elapsed()
        return self.state

    def cancel(self):
        self.state = GateState.CLOSED
        self.opened_at = None
        self.enabled_by = None
        self.survey_visited = False
        return self.state


async def race_download(gate, completion_event):
    """
    Race the dwell timer against ``completion_event`` for an opened gate.
    The first signal wins; returns the resulting gate state.
    """
    if gate.state is not GateState.AWAITING_ACTION:
        return gate.state

    dwell = asyncio.ensure_future(asyncio.sleep(gate.remaining()))
    completed = asyncio.ensure_future(completion_event.wait())
    try:
        done, _ = await asyncio.wait({dwell, completed}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        gate.cancel()
        raise
    finally:
        dwell.cancel()
        completed.cancel()

    if completed in done:
        gate.on_completion_recorded()
    else:
        gate.on_dwell_elapsed()
    return gate.state
