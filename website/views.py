import logging

from django.conf import settings
from django.contrib import messages
from django.http import Http404
from django.shortcuts import redirect, render

from backend.client import client_for
from backend.exceptions import ApiError, BackendError
from backend.services import (
    AnalyticsService, ApplicationService, ContactService, ProjectService, SettingsService, TeamService,
)
from .forms import ApplicationForm

logger = logging.getLogger(__name__)


def _load(call, default, what):
    """Run one read for a page section; a failed section renders empty instead of failing the page."""
    try:
        return call()
    except BackendError as exc:
        logger.warning('Could not load %s: %s', what, exc)
        return default


def home(request):
    client = client_for(request)
    projects = _load(ProjectService(client).active, [], 'projects')
    return render(request, 'website/home.html', {
        'site': _load(SettingsService(client).settings, {}, 'site settings'),
        'projects': projects[:3],
        'overview': _load(AnalyticsService(client).overview, {}, 'overview stats'),
    })


def about(request):
    client = client_for(request)
    site = SettingsService(client)
    team = TeamService(client)
    analytics = AnalyticsService(client)
    return render(request, 'website/about.html', {
        'site': _load(site.settings, {}, 'site settings'),
        'content': _load(lambda: site.page_content('about'), {}, 'about content'),
        'core_values': _load(site.core_values, [], 'core values'),
        'team_roles': _load(site.team_roles, [], 'team roles'),
        'founder': _load(team.founder, None, 'founder'),
        'members': _load(team.members, [], 'team members'),
        'overview': _load(analytics.overview, {}, 'overview stats'),
        'by_country': _load(analytics.projects_by_country, [], 'projects by country'),
    })


def projects_list(request):
    country = request.GET.get('country', '').strip()
    if country not in settings.COUNTRIES:
        country = ''
    service = ProjectService(client_for(request))
    projects = _load(lambda: service.list(status='active', country=country or None), [], 'projects')
    return render(request, 'website/projects_list.html', {
        'projects': projects,
        'countries': settings.COUNTRIES,
        'active_country': country,
    })


def project_detail(request, pk):
    try:
        project = ProjectService(client_for(request)).get(pk)
    except ApiError as exc:
        if exc.status == 404:
            raise Http404('Project not found')
        messages.error(request, exc.message)
        return redirect('website:projects')
    except BackendError as exc:
        messages.error(request, exc.message)
        return redirect('website:projects')
    if not project or project.get('status') == 'deleted':
        raise Http404('Project not found')
    return render(request, 'website/project_detail.html', {'project': project})


def apply(request):
    if request.method == 'POST':
        form = ApplicationForm(request.POST)
        if form.is_valid():
            try:
                ApplicationService(client_for(request)).submit(form.cleaned_data)
            except BackendError as exc:
                messages.error(request, exc.message)
            else:
                messages.success(request, 'Application submitted successfully! We will review it and get back to you soon.')
                return redirect('website:apply')
        else:
            messages.error(request, 'Please correct the errors below.')
    else:
        form = ApplicationForm()
    return render(request, 'website/apply.html', {'form': form})


def contact(request):
    service = ContactService(client_for(request))
    contact_info = _load(service.contact_info, [], 'contact info')
    email = next((c.get('value') for c in contact_info if c.get('icon') == 'Mail'), '') or 'info@youths4change.org'
    return render(request, 'website/contact.html', {
        'contact_info': contact_info,
        'social_media': _load(service.social_media, [], 'social media'),
        'regional_offices': _load(service.regional_offices, [], 'regional offices'),
        'contact_email': email,
    })
