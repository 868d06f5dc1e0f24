"""
URL configuration for the civic project.

The `urlpatterns` list routes URLs to views. For more information please see:
    https://docs.djangoproject.com/en/5.1/topics/http/urls/
"""
from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path('admin/', admin.site.urls),

    # ── App routes ───────────────────────────────────────────────────
    path('api/accounts/', include('accounts.urls')),
    path('api/core/', include('core.urls')),
    path('api/', include('reports.urls')),
]
