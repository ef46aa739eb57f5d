from django.urls import path, include
from django.views.generic import RedirectView

urlpatterns = [
    # Favicon direct (avoids a 404 when a browser asks for /favicon.ico)
    path('favicon.ico', RedirectView.as_view(url='/static/favicon.ico', permanent=True)),
    path('', include('payments.urls', namespace='payments')),
    path('', include('website.urls', namespace='website')),
]
