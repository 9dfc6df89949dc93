import itertools

from django.core.files.uploadedfile import SimpleUploadedFile

from applications import documents, lifecycle
from applications import workflows as wf

_counter = itertools.count(1)


def make_file(name="dokumen.pdf", content=b"%PDF-1.4 test", content_type="application/pdf"):
    return SimpleUploadedFile(name, content, content_type=content_type)


def submit(applicant, kind=wf.IIN_NASIONAL, with_archive=True):
    return lifecycle.submit(
        kind,
        applicant,
        application_form=make_file(f"formulir-{next(_counter)}.pdf"),
        requirements_archive=make_file("persyaratan.zip", b"PK\x03\x04", "application/zip") if with_archive else None,
    )


def attach_proof(application, applicant, stage=1):
    application, _ = documents.attach(
        application, wf.PAYMENT_PROOF, [make_file(f"bukti-{stage}-{next(_counter)}.pdf")], applicant, stage=stage
    )
    return application


def drive_to(application, target, admin, applicant):
    """
    Walk an application along its main path up to ``target``, attaching the
    payment proofs each step requires.
    """
    workflow = application.workflow
    while application.status != target:
        stage = workflow.proof_required_on_leave.get(application.status)
        if stage and not documents.has_current(application, wf.PAYMENT_PROOF, stage):
            application = attach_proof(application, applicant, stage)
        if workflow.next_state(application.status) == workflow.issued_state:
            application = lifecycle.issue(application, admin, "IIN-0001")
        else:
            application = lifecycle.advance(application, admin)
    return application
