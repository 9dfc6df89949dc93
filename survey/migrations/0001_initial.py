import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='SurveyCompletion',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('application_type', models.CharField(max_length=64)),
                ('application_id', models.PositiveBigIntegerField()),
                ('certificate_type', models.CharField(blank=True, max_length=255, null=True)),
                ('completed_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='survey_completions', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'survey_completions',
                'ordering': ['-completed_at'],
            },
        ),
        migrations.AddConstraint(
            model_name='surveycompletion',
            constraint=models.UniqueConstraint(fields=('application_type', 'application_id'), name='survey_completion_unique'),
        ),
    ]
