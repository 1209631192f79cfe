from django.urls import path

from . import views


urlpatterns = [
    path("api/webhooks/identity/", views.identity_webhook, name="identity_webhook"),
]
