from django.urls import path

from . import views

urlpatterns = [
    # Applications
    path('', views.ApplicationListCreateView.as_view(), name='application-list'),
    path('<int:pk>/', views.ApplicationDetailView.as_view(), name='application-detail'),
    path('<int:pk>/status-logs/', views.ApplicationStatusLogView.as_view(), name='application-status-logs'),
    path('<int:pk>/document-history/', views.DocumentHistoryView.as_view(), name='application-document-history'),

    # Admin actions
    path('<int:pk>/request-correction/', views.RequestCorrectionView.as_view(), name='application-request-correction'),
    path('<int:pk>/advance/', views.AdvanceView.as_view(), name='application-advance'),
    path('<int:pk>/issue/', views.IssueView.as_view(), name='application-issue'),
    path('<int:pk>/reject/', views.RejectView.as_view(), name='application-reject'),
    path('<int:pk>/notes/', views.NoteView.as_view(), name='application-notes'),
    path(
        '<int:pk>/complete-field-verification/',
        views.CompleteFieldVerificationView.as_view(),
        name='application-complete-field-verification'
    ),
    path('<int:pk>/archive/', views.ArchiveView.as_view(), name='application-archive'),

    # Documents
    path(
        '<int:pk>/documents/file/<int:document_id>/',
        views.DocumentDownloadView.as_view(),
        name='application-document-download'
    ),
    path('<int:pk>/documents/<str:slot>/', views.DocumentSlotView.as_view(), name='application-documents'),

    # Reimbursement
    path('<int:pk>/reimbursement/', views.ReimbursementView.as_view(), name='application-reimbursement'),
    path(
        '<int:pk>/reimbursement/verify/',
        views.ReimbursementVerifyView.as_view(),
        name='application-reimbursement-verify'
    ),
    path(
        '<int:pk>/reimbursement/proof/',
        views.ReimbursementProofView.as_view(),
        name='application-reimbursement-proof'
    ),
]
