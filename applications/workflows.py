"""
Workflow tables for the four application kinds.

Each kind is described by one ``Workflow`` value: its status catalog, the
main status path, the correction and rejection states, which states require
payment proof before they can be left, which timestamps are stamped on the
way out of a state, and where each document slot may be attached. The
execution code in ``lifecycle`` and ``documents`` is shared by all kinds and
reads only these tables.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from . import status_catalog as sc
from .status_catalog import StatusCatalog


# ========================================
# KINDS
# ========================================

IIN_NASIONAL = 'iin_nasional'
SINGLE_IIN_BLOCKHOLDER = 'single_iin_blockholder'
PENGAWASAN_IIN_NASIONAL = 'pengawasan_iin_nasional'
PENGAWASAN_SINGLE_IIN = 'pengawasan_single_iin'

KIND_CHOICES = [
    (IIN_NASIONAL, 'IIN Nasional'),
    (SINGLE_IIN_BLOCKHOLDER, 'Single IIN / Blockholder'),
    (PENGAWASAN_IIN_NASIONAL, 'Pengawasan IIN Nasional'),
    (PENGAWASAN_SINGLE_IIN, 'Pengawasan Single IIN'),
]


# ========================================
# DOCUMENT SLOTS
# ========================================

APPLICATION_FORM = 'application_form'
REQUIREMENTS_ARCHIVE = 'requirements_archive'
PAYMENT_DOCUMENT = 'payment_document'
PAYMENT_PROOF = 'payment_proof'
FIELD_VERIFICATION_DOCUMENTS = 'field_verification_documents'
ISSUANCE_DOCUMENTS = 'issuance_documents'
CERTIFICATE = 'certificate'
ADDITIONAL_DOCUMENTS = 'additional_documents'

SLOT_CHOICES = [
    (APPLICATION_FORM, 'Formulir Permohonan'),
    (REQUIREMENTS_ARCHIVE, 'Arsip Persyaratan'),
    (PAYMENT_DOCUMENT, 'Dokumen Pembayaran'),
    (PAYMENT_PROOF, 'Bukti Pembayaran'),
    (FIELD_VERIFICATION_DOCUMENTS, 'Dokumen Verifikasi Lapangan'),
    (ISSUANCE_DOCUMENTS, 'Dokumen Penerbitan'),
    (CERTIFICATE, 'Sertifikat'),
    (ADDITIONAL_DOCUMENTS, 'Dokumen Tambahan'),
]

# Marker for slots open in every state except rejection.
ANY_OPEN_STATE = '*'


@dataclass(frozen=True)
class Workflow:
    kind: str
    label: str
    number_prefix: str
    catalog: StatusCatalog
    path: Tuple[str, ...]
    correction_state: str
    rejection_state: Optional[str]
    field_verification_state: str
    # state -> payment stage whose proof must exist before leaving the state
    proof_required_on_leave: Dict[str, int] = field(default_factory=dict)
    # state -> Application timestamp stamped (once) when leaving the state
    stamp_on_leave: Dict[str, str] = field(default_factory=dict)
    # (slot, stage) -> states in which the slot accepts attachments
    slot_states: Dict[Tuple[str, Optional[int]], Tuple[str, ...]] = field(default_factory=dict)

    # ---- derived states -------------------------------------------------

    @property
    def initial_state(self):
        return self.path[0]

    @property
    def issued_state(self):
        return self.path[-1]

    @property
    def awaiting_issue_state(self):
        return self.path[-2]

    @property
    def allows_rejection(self):
        return self.rejection_state is not None

    @property
    def has_stage_2(self):
        return any(stage == 2 for (_, stage) in self.slot_states)

    @property
    def terminal_states(self):
        states = {self.issued_state}
        if self.rejection_state:
            states.add(self.rejection_state)
        return frozenset(states)

    # ---- queries --------------------------------------------------------

    def token(self, raw):
        """Canonical token for a raw status, '' when unknown."""
        return self.catalog.normalize(raw).token

    def is_terminal(self, raw):
        return self.token(raw) in self.terminal_states

    def next_state(self, raw):
        """Next status on the main path, or None at the end / off the path."""
        token = self.token(raw)
        if token not in self.path:
            return None
        index = self.path.index(token)
        if index + 1 >= len(self.path):
            return None
        return self.path[index + 1]

    def states_for_slot(self, slot, stage=None):
        return self.slot_states.get((slot, stage))

    def slot_open_in(self, slot, stage, raw):
        states = self.states_for_slot(slot, stage)
        if states is None:
            return False
        token = self.token(raw)
        if states == (ANY_OPEN_STATE,):
            return bool(token) and token != self.rejection_state
        return token in states


def _primary(kind, label, prefix):
    return Workflow(
        kind=kind,
        label=label,
        number_prefix=prefix,
        catalog=sc.PRIMARY_CATALOG,
        path=(
            sc.PENGAJUAN.token,
            sc.PEMBAYARAN.token,
            sc.VERIFIKASI_LAPANGAN.token,
            sc.PEMBAYARAN_TAHAP_2.token,
            sc.MENUNGGU_TERBIT.token,
            sc.TERBIT.token,
        ),
        correction_state=sc.PERBAIKAN.token,
        rejection_state=sc.DITOLAK.token,
        field_verification_state=sc.VERIFIKASI_LAPANGAN.token,
        proof_required_on_leave={
            sc.PEMBAYARAN.token: 1,
            sc.VERIFIKASI_LAPANGAN.token: 2,
            sc.PEMBAYARAN_TAHAP_2.token: 2,
        },
        stamp_on_leave={
            sc.PEMBAYARAN.token: 'payment_verified_at',
            sc.VERIFIKASI_LAPANGAN.token: 'field_verification_at',
            sc.PEMBAYARAN_TAHAP_2.token: 'payment_verified_at_stage_2',
        },
        slot_states={
            (APPLICATION_FORM, None): (sc.PENGAJUAN.token, sc.PERBAIKAN.token),
            (REQUIREMENTS_ARCHIVE, None): (sc.PENGAJUAN.token, sc.PERBAIKAN.token),
            (PAYMENT_DOCUMENT, 1): (sc.PENGAJUAN.token, sc.PEMBAYARAN.token),
            (PAYMENT_DOCUMENT, 2): (sc.VERIFIKASI_LAPANGAN.token, sc.PEMBAYARAN_TAHAP_2.token),
            (PAYMENT_PROOF, 1): (sc.PEMBAYARAN.token,),
            (PAYMENT_PROOF, 2): (sc.VERIFIKASI_LAPANGAN.token, sc.PEMBAYARAN_TAHAP_2.token),
            (FIELD_VERIFICATION_DOCUMENTS, None): (sc.VERIFIKASI_LAPANGAN.token,),
            (ISSUANCE_DOCUMENTS, None): (sc.MENUNGGU_TERBIT.token, sc.TERBIT.token),
            (CERTIFICATE, None): (sc.MENUNGGU_TERBIT.token, sc.TERBIT.token),
            (ADDITIONAL_DOCUMENTS, None): (ANY_OPEN_STATE,),
        },
    )


def _supervisory(kind, label, prefix):
    return Workflow(
        kind=kind,
        label=label,
        number_prefix=prefix,
        catalog=sc.SUPERVISORY_CATALOG,
        path=(
            sc.SUBMITTED.token,
            sc.PAYMENT_VERIFIED.token,
            sc.FIELD_VERIFICATION.token,
            sc.ISSUED.token,
        ),
        correction_state=sc.PERBAIKAN.token,
        rejection_state=None,
        field_verification_state=sc.FIELD_VERIFICATION.token,
        proof_required_on_leave={
            sc.SUBMITTED.token: 1,
        },
        stamp_on_leave={
            sc.SUBMITTED.token: 'payment_verified_at',
            sc.FIELD_VERIFICATION.token: 'field_verification_at',
        },
        slot_states={
            (APPLICATION_FORM, None): (sc.SUBMITTED.token, sc.PERBAIKAN.token),
            (REQUIREMENTS_ARCHIVE, None): (sc.SUBMITTED.token, sc.PERBAIKAN.token),
            (PAYMENT_DOCUMENT, 1): (sc.SUBMITTED.token,),
            (PAYMENT_PROOF, 1): (sc.SUBMITTED.token,),
            (FIELD_VERIFICATION_DOCUMENTS, None): (sc.PAYMENT_VERIFIED.token, sc.FIELD_VERIFICATION.token),
            (ISSUANCE_DOCUMENTS, None): (sc.FIELD_VERIFICATION.token, sc.ISSUED.token),
            (CERTIFICATE, None): (sc.FIELD_VERIFICATION.token, sc.ISSUED.token),
            (ADDITIONAL_DOCUMENTS, None): (ANY_OPEN_STATE,),
        },
    )


WORKFLOWS = {
    IIN_NASIONAL: _primary(IIN_NASIONAL, 'IIN Nasional', 'IIN-NAS'),
    SINGLE_IIN_BLOCKHOLDER: _primary(SINGLE_IIN_BLOCKHOLDER, 'Single IIN / Blockholder', 'IIN-SB'),
    PENGAWASAN_IIN_NASIONAL: _supervisory(PENGAWASAN_IIN_NASIONAL, 'Pengawasan IIN Nasional', 'PEMANTAUAN-NAS'),
    PENGAWASAN_SINGLE_IIN: _supervisory(PENGAWASAN_SINGLE_IIN, 'Pengawasan Single IIN', 'PENGAWASAN-SINGLE'),
}


def get_workflow(kind):
    try:
        return WORKFLOWS[kind]
    except KeyError:
        raise ValueError(f"Unknown application kind: {kind!r}")
