from django.urls import path
from . import views
from . import views_admin

app_name = 'website'

urlpatterns = [
    path('', views.home, name='home'),
    path('about/', views.about, name='about'),
    path('projects/', views.projects_list, name='projects'),
    path('projects/<int:pk>/', views.project_detail, name='project_detail'),
    path('apply/', views.apply, name='apply'),
    path('contact/', views.contact, name='contact'),
    # Back-office; authentication itself is done by the REST backend
    path('admin/login/', views_admin.login, name='admin_login'),
    path('admin/logout/', views_admin.logout, name='admin_logout'),
    path('admin/', views_admin.dashboard, name='admin_dashboard'),
    path('admin/applications/', views_admin.applications_list, name='admin_applications'),
    path('admin/applications/<int:pk>/', views_admin.application_detail, name='admin_application'),
    path('admin/projects/', views_admin.projects_list, name='admin_projects'),
    path('admin/projects/new/', views_admin.project_form, name='admin_project_new'),
    path('admin/projects/<int:pk>/edit/', views_admin.project_form, name='admin_project_edit'),
    path('admin/projects/<int:pk>/delete/', views_admin.project_delete, name='admin_project_delete'),
    path('admin/projects/<int:pk>/images/', views_admin.project_images, name='admin_project_images'),
    path('admin/settings/', views_admin.site_settings, name='admin_settings'),
    path('admin/content/<slug:page>/', views_admin.page_content, name='admin_page_content'),
    path('admin/team/founder/', views_admin.founder, name='admin_founder'),
    # Contact info, social media, regional offices, core values, team roles, team members
    path('admin/manage/<slug:collection>/', views_admin.collection_list, name='admin_collection'),
    path('admin/manage/<slug:collection>/new/', views_admin.collection_form, name='admin_collection_new'),
    path('admin/manage/<slug:collection>/<int:pk>/edit/', views_admin.collection_form, name='admin_collection_edit'),
    path(
        'admin/manage/<slug:collection>/<int:pk>/delete/', views_admin.collection_delete,
        name='admin_collection_delete',
    ),
]
