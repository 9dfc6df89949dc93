from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static

from rest_framework import permissions
from drf_yasg.views import get_schema_view
from drf_yasg import openapi


# Swagger Configuration
schema_view = get_schema_view(
    openapi.Info(
        title="IIN Licensing Portal API",
        default_version='v1',
        description="""
        # Issuer Identification Number (IIN) Licensing Portal API

        Application lifecycle for the four application kinds:
        - *IIN Nasional*
        - *Single IIN / Blockholder*
        - *Pengawasan IIN Nasional*
        - *Pengawasan Single IIN*

        ## Features
        - Submission, correction, staged payment, field verification and issuance
        - Typed document slots with upload history
        - Append-only status log per application
        - Transport and per-diem reimbursement records
        - Survey-gated certificate downloads

        ## Authentication
        JWT (JSON Web Tokens).

        ### Login Flow:
        1. Call /api/v1/users/token/ with email and password
        2. Use the access token in the Authorization header: Bearer <token>

        ## User Roles
        - *user*: Applicant; submits applications, uploads documents and payment proofs
        - *admin*: Reviews, requests corrections, advances, issues or rejects applications
        """,
        contact=openapi.Contact(email="layanan-iin@example.go.id"),
        license=openapi.License(name="Government Use"),
    ),
    public=True,
    permission_classes=(permissions.AllowAny,),
)

urlpatterns = [
    # Admin
    path('admin/', admin.site.urls),

    # API Documentation
    path('swagger/', schema_view.with_ui('swagger', cache_timeout=0), name='schema-swagger-ui'),
    path('redoc/', schema_view.with_ui('redoc', cache_timeout=0), name='schema-redoc'),
    path('swagger.json', schema_view.without_ui(cache_timeout=0), name='schema-json'),

    # API v1
    path('api/v1/users/', include('accounts.urls')),
    path('api/v1/applications/', include('applications.urls')),
    path('api/v1/survey/', include('survey.urls')),
]


if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
    urlpatterns += static(settings.STATIC_URL, document_root=settings.STATIC_ROOT)
