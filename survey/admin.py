from django.contrib import admin

from .models import SurveyCompletion


@admin.register(SurveyCompletion)
class SurveyCompletionAdmin(admin.ModelAdmin):
    list_display = ['application_type', 'application_id', 'certificate_type', 'user', 'completed_at']
    list_filter = ['application_type', 'completed_at']
    search_fields = ['application_type', 'application_id', 'user__email']
    readonly_fields = ['application_type', 'application_id', 'certificate_type', 'user', 'completed_at']
