import pytest

from applications import workflows as wf
from applications.status_catalog import (
    PRIMARY_CATALOG,
    SUPERVISORY_CATALOG,
    UNKNOWN,
    Severity,
    StatusCatalog,
)


class TestNormalize:
    @pytest.mark.parametrize("raw", ["pengajuan", "  Pengajuan ", "PENGAJUAN", "\tpengajuan\n"])
    def test_case_and_whitespace_insensitive(self, raw):
        assert PRIMARY_CATALOG.normalize(raw).token == "pengajuan"

    @pytest.mark.parametrize("raw", [None, "", "draft", "terbit-ulang", 42])
    def test_unknown_never_raises(self, raw):
        assert PRIMARY_CATALOG.normalize(raw) is UNKNOWN

    def test_supervisory_tokens_unknown_to_primary_catalog(self):
        assert PRIMARY_CATALOG.normalize("payment_verified") is UNKNOWN
        assert SUPERVISORY_CATALOG.normalize("payment_verified").token == "payment_verified"


class TestLabels:
    @pytest.mark.parametrize("token,label,detailed,severity", [
        ("pengajuan", "Pengajuan", "Sedang Diajukan", Severity.INFO),
        ("perbaikan", "Perbaikan", "Perlu Perbaikan", Severity.WARNING),
        ("pembayaran", "Pembayaran", "Pembayaran Tahap 1", Severity.WARNING),
        ("verifikasi-lapangan", "Verifikasi Lapangan", "Verifikasi Lapangan", Severity.INFO),
        ("pembayaran-tahap-2", "Pembayaran Tahap 2", "Pembayaran Tahap 2", Severity.WARNING),
        ("menunggu-terbit", "Menunggu Terbit", "Menunggu Penerbitan", Severity.INFO),
        ("terbit", "Terbit", "Sudah Terbit", Severity.SUCCESS),
        ("ditolak", "Ditolak", "Permohonan Ditolak", Severity.NEUTRAL),
    ])
    def test_primary_table(self, token, label, detailed, severity):
        assert PRIMARY_CATALOG.label(token) == label
        assert PRIMARY_CATALOG.label(token, detailed=True) == detailed
        assert PRIMARY_CATALOG.severity(token) is severity

    @pytest.mark.parametrize("token,label,detailed,severity", [
        ("submitted", "Diajukan", "Sedang Diajukan", Severity.INFO),
        ("payment_verified", "Pembayaran Terverifikasi", "Pembayaran Terverifikasi", Severity.INFO),
        ("field_verification", "Verifikasi Lapangan", "Verifikasi Lapangan", Severity.INFO),
        ("issued", "Terbit", "Hasil Pengawasan Terbit", Severity.SUCCESS),
        ("perbaikan", "Perbaikan", "Perlu Perbaikan", Severity.WARNING),
    ])
    def test_supervisory_table(self, token, label, detailed, severity):
        assert SUPERVISORY_CATALOG.label(token) == label
        assert SUPERVISORY_CATALOG.label(token, detailed=True) == detailed
        assert SUPERVISORY_CATALOG.severity(token) is severity

    def test_unknown_renders_neutral(self):
        assert PRIMARY_CATALOG.label("draft") == "Tidak Diketahui"
        assert PRIMARY_CATALOG.label(None, detailed=True) == "Tidak Diketahui"
        assert PRIMARY_CATALOG.severity("draft") is Severity.NEUTRAL


class TestOrdinal:
    def test_main_path_is_ordered(self):
        path = wf.get_workflow(wf.IIN_NASIONAL).path
        ordinals = [PRIMARY_CATALOG.ordinal(token) for token in path]
        assert ordinals == sorted(ordinals)
        assert len(set(ordinals)) == len(path)

    def test_unknown_sorts_last(self):
        known = [PRIMARY_CATALOG.ordinal(s) for s in PRIMARY_CATALOG.statuses]
        assert PRIMARY_CATALOG.ordinal("tidak-ada") > max(known)

    def test_sorting_mixed_raw_values(self):
        raw = ["TERBIT", "bogus", " pengajuan", "pembayaran"]
        ordered = sorted(raw, key=PRIMARY_CATALOG.ordinal)
        assert ordered == [" pengajuan", "pembayaran", "TERBIT", "bogus"]


class TestForKind:
    @pytest.mark.parametrize("kind,catalog", [
        (wf.IIN_NASIONAL, PRIMARY_CATALOG),
        (wf.SINGLE_IIN_BLOCKHOLDER, PRIMARY_CATALOG),
        (wf.PENGAWASAN_IIN_NASIONAL, SUPERVISORY_CATALOG),
        (wf.PENGAWASAN_SINGLE_IIN, SUPERVISORY_CATALOG),
    ])
    def test_catalog_per_kind(self, kind, catalog):
        assert StatusCatalog.for_kind(kind) is catalog

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            StatusCatalog.for_kind("iin_internasional")
