from rest_framework import serializers

from .models import SurveyCompletion


class SurveyCompletionSerializer(serializers.ModelSerializer):
    class Meta:
        model = SurveyCompletion
        fields = ['id', 'application_type', 'application_id', 'certificate_type', 'completed_at', 'user']
        read_only_fields = fields


class SurveyCompleteRequestSerializer(serializers.Serializer):
    certificate_type = serializers.CharField(max_length=255, required=False, allow_blank=True, allow_null=True)


class GateStateSerializer(serializers.Serializer):
    application_type = serializers.CharField()
    application_id = serializers.IntegerField()
    state = serializers.CharField(source='state.value')
    can_download = serializers.BooleanField()
    enabled_by = serializers.CharField(allow_null=True)
    survey_visited = serializers.BooleanField()
    remaining_seconds = serializers.SerializerMethodField()
    dwell_seconds = serializers.IntegerField()

    def get_remaining_seconds(self, gate):
        return round(gate.remaining(), 1)
