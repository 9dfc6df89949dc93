from django.conf import settings
from django.db import models
from django.utils import timezone


class SurveyCompletion(models.Model):
    """
    Permanent record that the satisfaction survey was completed for one
    application. At most one row per (application_type, application_id).
    """
    application_type = models.CharField(max_length=64)
    application_id = models.PositiveBigIntegerField()
    certificate_type = models.CharField(max_length=255, null=True, blank=True)
    completed_at = models.DateTimeField(default=timezone.now)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='survey_completions'
    )

    class Meta:
        db_table = 'survey_completions'
        ordering = ['-completed_at']
        constraints = [
            models.UniqueConstraint(
                fields=['application_type', 'application_id'],
                name='survey_completion_unique',
            ),
        ]

    def __str__(self):
        return f"Survey {self.application_type}#{self.application_id}"
