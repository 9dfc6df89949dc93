"""
Status catalog: canonical status tokens with their labels, severity and
ordering for each application kind.

Raw status strings come from the database and from older clients in mixed
case and with stray whitespace, so every lookup goes through ``normalize``.
Unknown tokens never raise; they resolve to ``UNKNOWN``.
"""

from dataclasses import dataclass
from enum import Enum


class Severity(str, Enum):
    INFO = 'info'
    WARNING = 'warning'
    SUCCESS = 'success'
    NEUTRAL = 'neutral'


@dataclass(frozen=True)
class Status:
    token: str
    label: str
    detailed_label: str
    severity: Severity

    def __str__(self):
        return self.token


UNKNOWN = Status('', 'Tidak Diketahui', 'Tidak Diketahui', Severity.NEUTRAL)


# ========================================
# STATUS TOKENS
# ========================================

PENGAJUAN = Status('pengajuan', 'Pengajuan', 'Sedang Diajukan', Severity.INFO)
PERBAIKAN = Status('perbaikan', 'Perbaikan', 'Perlu Perbaikan', Severity.WARNING)
PEMBAYARAN = Status('pembayaran', 'Pembayaran', 'Pembayaran Tahap 1', Severity.WARNING)
VERIFIKASI_LAPANGAN = Status('verifikasi-lapangan', 'Verifikasi Lapangan', 'Verifikasi Lapangan', Severity.INFO)
PEMBAYARAN_TAHAP_2 = Status('pembayaran-tahap-2', 'Pembayaran Tahap 2', 'Pembayaran Tahap 2', Severity.WARNING)
MENUNGGU_TERBIT = Status('menunggu-terbit', 'Menunggu Terbit', 'Menunggu Penerbitan', Severity.INFO)
TERBIT = Status('terbit', 'Terbit', 'Sudah Terbit', Severity.SUCCESS)
DITOLAK = Status('ditolak', 'Ditolak', 'Permohonan Ditolak', Severity.NEUTRAL)

SUBMITTED = Status('submitted', 'Diajukan', 'Sedang Diajukan', Severity.INFO)
PAYMENT_VERIFIED = Status('payment_verified', 'Pembayaran Terverifikasi', 'Pembayaran Terverifikasi', Severity.INFO)
FIELD_VERIFICATION = Status('field_verification', 'Verifikasi Lapangan', 'Verifikasi Lapangan', Severity.INFO)
ISSUED = Status('issued', 'Terbit', 'Hasil Pengawasan Terbit', Severity.SUCCESS)


def normalize_token(raw):
    if raw is None:
        return ''
    return str(raw).strip().lower()


class StatusCatalog:
    """
    Ordered set of statuses known to one application kind.

    ``ordinal`` follows declaration order; ``UNKNOWN`` sorts after every
    known status.
    """

    def __init__(self, statuses):
        self._statuses = tuple(statuses)
        self._by_token = {status.token: status for status in self._statuses}
        self._ordinals = {status.token: index for index, status in enumerate(self._statuses)}

    @classmethod
    def for_kind(cls, kind):
        from .workflows import get_workflow
        return get_workflow(kind).catalog

    @property
    def statuses(self):
        return self._statuses

    def normalize(self, raw):
        """Resolve a raw token to a ``Status``; never raises."""
        if isinstance(raw, Status):
            raw = raw.token
        return self._by_token.get(normalize_token(raw), UNKNOWN)

    def is_known(self, raw):
        return self.normalize(raw) is not UNKNOWN

    def label(self, status, detailed=False):
        status = self.normalize(status)
        return status.detailed_label if detailed else status.label

    def severity(self, status):
        return self.normalize(status).severity

    def ordinal(self, status):
        status = self.normalize(status)
        if status is UNKNOWN:
            return len(self._statuses)
        return self._ordinals[status.token]

    def choices(self):
        return [(status.token, status.label) for status in self._statuses]


PRIMARY_CATALOG = StatusCatalog([
    PENGAJUAN,
    PEMBAYARAN,
    VERIFIKASI_LAPANGAN,
    PEMBAYARAN_TAHAP_2,
    MENUNGGU_TERBIT,
    TERBIT,
    PERBAIKAN,
    DITOLAK,
])

SUPERVISORY_CATALOG = StatusCatalog([
    SUBMITTED,
    PAYMENT_VERIFIED,
    FIELD_VERIFICATION,
    ISSUED,
    PERBAIKAN,
])


def merged_choices(*catalogs):
    """Choices covering every token of the given catalogs, first label wins."""
    seen = {}
    for catalog in catalogs:
        for token, label in catalog.choices():
            seen.setdefault(token, label)
    return list(seen.items())


ALL_STATUS_CHOICES = merged_choices(PRIMARY_CATALOG, SUPERVISORY_CATALOG)
