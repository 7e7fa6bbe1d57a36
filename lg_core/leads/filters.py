# lg_core/leads/filters.py
from django_filters import rest_framework as filters

from lg_core.leads.models import QuizLead


class QuizLeadFilter(filters.FilterSet):
    quiz_type = filters.CharFilter(field_name="quiz_type", lookup_expr="iexact")
    lead_status = filters.CharFilter(field_name="lead_status", lookup_expr="iexact")
    lead_source = filters.CharFilter(field_name="lead_source", lookup_expr="iexact")
    doctor_id = filters.CharFilter(field_name="doctor_id")
    submitted_after = filters.IsoDateTimeFilter(field_name="submitted_at", lookup_expr="gte")
    submitted_before = filters.IsoDateTimeFilter(field_name="submitted_at", lookup_expr="lte")

    class Meta:
        model = QuizLead
        fields = ["quiz_type", "lead_status", "lead_source", "doctor_id", "submitted_after", "submitted_before"]
