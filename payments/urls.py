from django.urls import path
from . import views
from . import views_admin

app_name = 'payments'

urlpatterns = [
    path('donate/', views.donate, name='donate'),
    path('donate/validate/', views.validate_field, name='validate'),
    path('admin/donations/', views_admin.donations_list, name='donations_list'),
    path('admin/donations/<int:pk>/', views_admin.donation_detail, name='donation_detail'),
]
