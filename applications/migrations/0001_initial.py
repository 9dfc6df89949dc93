import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


KIND_CHOICES = [
    ('iin_nasional', 'IIN Nasional'),
    ('single_iin_blockholder', 'Single IIN / Blockholder'),
    ('pengawasan_iin_nasional', 'Pengawasan IIN Nasional'),
    ('pengawasan_single_iin', 'Pengawasan Single IIN'),
]

STATUS_CHOICES = [
    ('pengajuan', 'Pengajuan'),
    ('pembayaran', 'Pembayaran'),
    ('verifikasi-lapangan', 'Verifikasi Lapangan'),
    ('pembayaran-tahap-2', 'Pembayaran Tahap 2'),
    ('menunggu-terbit', 'Menunggu Terbit'),
    ('terbit', 'Terbit'),
    ('perbaikan', 'Perbaikan'),
    ('ditolak', 'Ditolak'),
    ('submitted', 'Diajukan'),
    ('payment_verified', 'Pembayaran Terverifikasi'),
    ('field_verification', 'Verifikasi Lapangan'),
    ('issued', 'Terbit'),
]

SLOT_CHOICES = [
    ('application_form', 'Formulir Permohonan'),
    ('requirements_archive', 'Arsip Persyaratan'),
    ('payment_document', 'Dokumen Pembayaran'),
    ('payment_proof', 'Bukti Pembayaran'),
    ('field_verification_documents', 'Dokumen Verifikasi Lapangan'),
    ('issuance_documents', 'Dokumen Penerbitan'),
    ('certificate', 'Sertifikat'),
    ('additional_documents', 'Dokumen Tambahan'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='ApplicationNumberCounter',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('kind', models.CharField(choices=KIND_CHOICES, max_length=40)),
                ('day', models.DateField()),
                ('last_value', models.PositiveIntegerField(default=0)),
            ],
            options={
                'db_table': 'application_number_counters',
                'unique_together': {('kind', 'day')},
            },
        ),
        migrations.CreateModel(
            name='Application',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('kind', models.CharField(choices=KIND_CHOICES, db_index=True, max_length=40)),
                ('application_number', models.CharField(editable=False, max_length=50, unique=True)),
                ('status', models.CharField(choices=STATUS_CHOICES, db_index=True, max_length=40)),
                ('issued_number', models.CharField(blank=True, max_length=20, null=True)),
                ('notes', models.TextField(blank=True, help_text='Latest remark from the administrator', null=True)),
                ('applicant_name', models.CharField(blank=True, max_length=255)),
                ('applicant_email', models.EmailField(blank=True, max_length=255)),
                ('assigned_admin_name', models.CharField(blank=True, max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('submitted_at', models.DateTimeField(blank=True, null=True)),
                ('payment_verified_at', models.DateTimeField(blank=True, null=True)),
                ('field_verification_at', models.DateTimeField(blank=True, null=True)),
                ('payment_verified_at_stage_2', models.DateTimeField(blank=True, null=True)),
                ('issued_at', models.DateTimeField(blank=True, null=True)),
                ('rejected_at', models.DateTimeField(blank=True, null=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('is_archived', models.BooleanField(default=False)),
                ('archived_at', models.DateTimeField(blank=True, null=True)),
                ('applicant', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='iin_applications', to=settings.AUTH_USER_MODEL)),
                ('assigned_admin', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assigned_iin_applications', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'iin_applications',
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['kind', 'status'], name='iin_app_kind_status_idx'),
                    models.Index(fields=['applicant', '-created_at'], name='iin_app_applicant_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ApplicationDocument',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('slot', models.CharField(choices=SLOT_CHOICES, max_length=40)),
                ('stage', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('original_name', models.CharField(max_length=255)),
                ('stored_path', models.CharField(max_length=500)),
                ('uploaded_at', models.DateTimeField()),
                ('upload_batch', models.UUIDField(db_index=True)),
                ('is_current', models.BooleanField(default=True)),
                ('application', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='documents', to='applications.application')),
                ('uploaded_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='uploaded_iin_documents', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'iin_application_documents',
                'ordering': ['uploaded_at', 'id'],
                'indexes': [
                    models.Index(fields=['application', 'slot', 'stage'], name='iin_doc_slot_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='DocumentHistory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('slot', models.CharField(max_length=40)),
                ('stage', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('action', models.CharField(choices=[('uploaded', 'Uploaded'), ('replaced', 'Replaced')], default='uploaded', max_length=20)),
                ('file_names', models.JSONField(default=list)),
                ('file_count', models.PositiveIntegerField(default=0)),
                ('status_at_upload', models.CharField(max_length=40)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('actor', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('application', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='document_history', to='applications.application')),
            ],
            options={
                'db_table': 'iin_document_history',
                'ordering': ['created_at', 'id'],
            },
        ),
        migrations.CreateModel(
            name='StatusLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('status_from', models.CharField(blank=True, max_length=40, null=True)),
                ('status_to', models.CharField(max_length=40)),
                ('changed_by_name', models.CharField(blank=True, max_length=255)),
                ('notes', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('application', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='status_logs', to='applications.application')),
                ('changed_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'iin_status_logs',
                'ordering': ['created_at', 'id'],
            },
        ),
        migrations.CreateModel(
            name='ReimbursementRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('company_name', models.CharField(max_length=255)),
                ('pic_name', models.CharField(max_length=255)),
                ('pic_contact', models.CharField(max_length=100)),
                ('verification_date', models.DateField()),
                ('is_acknowledged', models.BooleanField(default=False)),
                ('chief_verificator_amount', models.PositiveIntegerField(default=0)),
                ('member_verificator_amount', models.PositiveIntegerField(default=0)),
                ('proof_original_name', models.CharField(max_length=255)),
                ('proof_path', models.CharField(max_length=500)),
                ('submitted_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('verified_at', models.DateTimeField(blank=True, null=True)),
                ('application', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='reimbursement', to='applications.application')),
                ('submitted_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('verified_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'iin_reimbursements',
            },
        ),
    ]
