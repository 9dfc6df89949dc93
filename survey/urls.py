from django.urls import path

from . import views

urlpatterns = [
    path('check/<str:application_type>/<int:application_id>/', views.SurveyCheckView.as_view(), name='survey-check'),
    path('complete/<str:application_type>/<int:application_id>/', views.SurveyCompleteView.as_view(), name='survey-complete'),
    path('gate/<str:application_type>/<int:application_id>/', views.SurveyGateView.as_view(), name='survey-gate'),
]
