import logging

from django.contrib import messages
from django.http import Http404
from django.shortcuts import redirect, render
from django.utils.http import url_has_allowed_host_and_scheme
from django.views.decorators.http import require_POST

from backend.client import BACKEND_COOKIES_KEY, client_for
from backend.exceptions import ApiError, BackendError
from backend.services import (
    AnalyticsService, ApplicationService, AuthService, ContactService, DonationService, ProjectService,
    SettingsService, TeamService,
)
from .decorators import ADMIN_SESSION_KEY, admin_required, forget_admin, report_backend_error
from .forms import (
    AdminLoginForm, ContactInfoForm, CoreValueForm, FounderForm, PageContentForm, ProjectForm, ProjectImageForm,
    RegionalOfficeForm, SiteSettingsForm, SocialMediaForm, TeamMemberForm, TeamRoleForm,
)
from .signals import admin_logged_in, admin_login_failed

logger = logging.getLogger(__name__)


def _safe_next(request):
    target = request.POST.get('next') or request.GET.get('next') or ''
    if target and url_has_allowed_host_and_scheme(target, allowed_hosts={request.get_host()}):
        return target
    return None


def login(request):
    if request.session.get(ADMIN_SESSION_KEY):
        return redirect('website:admin_dashboard')
    form = AdminLoginForm(request.POST or None)
    if request.method == 'POST':
        if request.login_locked:
            messages.error(request, f"Too many failed attempts. Try again in {request.login_lock_remaining} seconds.")
        elif form.is_valid():
            client = client_for(request)
            username = form.cleaned_data['username']
            try:
                user = AuthService(client).login(username, form.cleaned_data['password'])
            except ApiError as exc:
                if exc.status in (400, 401, 403):
                    admin_login_failed.send(sender=login, request=request)
                logger.info('Admin login failed for %s: %s', username, exc)
                messages.error(request, exc.message)
            except BackendError as exc:
                messages.error(request, exc.message)
            else:
                request.session.cycle_key()
                request.session[ADMIN_SESSION_KEY] = user or {'username': username}
                request.session[BACKEND_COOKIES_KEY] = client.cookies()
                admin_logged_in.send(sender=login, request=request)
                return redirect(_safe_next(request) or 'website:admin_dashboard')
    return render(request, 'website/admin/login.html', {
        'form': form,
        'locked': request.login_locked,
        'next': _safe_next(request) or '',
    })


@require_POST
def logout(request):
    try:
        AuthService(client_for(request)).logout()
    except BackendError as exc:
        logger.warning('Backend logout failed: %s', exc)
    forget_admin(request)
    messages.success(request, 'You have been signed out.')
    return redirect('website:admin_login')


@admin_required
def dashboard(request):
    client = client_for(request)
    overview, donation_stats, pending = {}, {}, []
    try:
        overview = AnalyticsService(client).overview()
        donation_stats = DonationService(client).stats()
        pending = ApplicationService(client).list(status='pending')[:5]
    except BackendError as exc:
        report_backend_error(request, exc)
    return render(request, 'website/admin/dashboard.html', {
        'overview': overview,
        'donation_stats': donation_stats,
        'pending_applications': pending,
        'collections': [(slug, collection.title) for slug, collection in COLLECTIONS.items()],
    })


@admin_required
def applications_list(request):
    filters = {key: request.GET.get(key, '').strip() for key in ('status', 'country', 'search')}
    applications = []
    try:
        applications = ApplicationService(client_for(request)).list(
            status=filters['status'] or None,
            country=filters['country'] or None,
            search=filters['search'] or None,
        )
    except BackendError as exc:
        report_backend_error(request, exc)
    return render(request, 'website/admin/applications_list.html', {
        'applications': applications,
        'filters': filters,
    })


@admin_required
def application_detail(request, pk):
    service = ApplicationService(client_for(request))
    if request.method == 'POST':
        status = request.POST.get('status')
        try:
            service.review(pk, status)
        except ValueError:
            messages.error(request, 'Unknown review decision.')
        except BackendError as exc:
            report_backend_error(request, exc)
        else:
            messages.success(request, f"Application {status}.")
        return redirect('website:admin_application', pk=pk)
    application = None
    try:
        application = service.get(pk)
    except BackendError as exc:
        if isinstance(exc, ApiError) and exc.status == 404:
            raise Http404('Application not found')
        report_backend_error(request, exc)
    return render(request, 'website/admin/application_detail.html', {'application': application})


@admin_required
def projects_list(request):
    filters = {key: request.GET.get(key, '').strip() for key in ('status', 'country', 'search')}
    projects = []
    try:
        projects = ProjectService(client_for(request)).list(
            status=filters['status'] or None,
            country=filters['country'] or None,
            search=filters['search'] or None,
        )
    except BackendError as exc:
        report_backend_error(request, exc)
    return render(request, 'website/admin/projects_list.html', {'projects': projects, 'filters': filters})


@admin_required
def project_form(request, pk=None):
    service = ProjectService(client_for(request))
    if request.method == 'POST':
        form = ProjectForm(request.POST)
        if form.is_valid():
            try:
                if pk is None:
                    service.create(form.as_payload())
                else:
                    service.update(pk, form.as_payload())
            except BackendError as exc:
                report_backend_error(request, exc)
            else:
                messages.success(request, 'Project saved.')
                return redirect('website:admin_projects')
    elif pk is not None:
        try:
            project = service.get(pk)
        except BackendError as exc:
            if isinstance(exc, ApiError) and exc.status == 404:
                raise Http404('Project not found')
            report_backend_error(request, exc)
            return redirect('website:admin_projects')
        form = ProjectForm(initial=project)
    else:
        form = ProjectForm()
    return render(request, 'website/admin/project_form.html', {'form': form, 'pk': pk})


@admin_required
@require_POST
def project_delete(request, pk):
    try:
        ProjectService(client_for(request)).delete(pk)
    except BackendError as exc:
        report_backend_error(request, exc)
    else:
        messages.success(request, 'Project deleted.')
    return redirect('website:admin_projects')


@admin_required
def site_settings(request):
    service = SettingsService(client_for(request))
    if request.method == 'POST':
        form = SiteSettingsForm(request.POST)
        if form.is_valid():
            try:
                service.update_settings(form.cleaned_data)
            except BackendError as exc:
                report_backend_error(request, exc)
            else:
                messages.success(request, 'Settings updated.')
                return redirect('website:admin_settings')
    else:
        initial = {}
        try:
            initial = service.settings()
        except BackendError as exc:
            report_backend_error(request, exc)
        form = SiteSettingsForm(initial=initial)
    return render(request, 'website/admin/settings.html', {'form': form})


class Collection:
    """An editable backend collection: which service methods read and write it, and how it is edited."""

    def __init__(self, title, service_class, form_class, read, create=None, update=None, delete=None, columns=()):
        self.title = title
        self.service_class = service_class
        self.form_class = form_class
        self.read = read
        self.create = create
        self.update = update
        self.delete = delete
        self.columns = columns

    def call(self, request, method, *args):
        return getattr(self.service_class(client_for(request)), method)(*args)


COLLECTIONS = {
    # Fixed set of entries, edit only
    'contact-info': Collection(
        'Contact information', ContactService, ContactInfoForm, 'contact_info',
        update='update_contact_info', columns=('label', 'value', 'link'),
    ),
    'social-media': Collection(
        'Social media', ContactService, SocialMediaForm, 'all_social_media',
        'create_social_media', 'update_social_media', 'delete_social_media',
        columns=('platform_name', 'url', 'is_active'),
    ),
    'regional-offices': Collection(
        'Regional offices', ContactService, RegionalOfficeForm, 'all_regional_offices',
        'create_regional_office', 'update_regional_office', 'delete_regional_office',
        columns=('country', 'email', 'phone', 'is_active'),
    ),
    'core-values': Collection(
        'Core values', SettingsService, CoreValueForm, 'core_values',
        'create_core_value', 'update_core_value', 'delete_core_value',
        columns=('title', 'icon'),
    ),
    'team-roles': Collection(
        'Team roles', SettingsService, TeamRoleForm, 'team_roles',
        'create_team_role', 'update_team_role', 'delete_team_role',
        columns=('role_title',),
    ),
    'team-members': Collection(
        'Team members', TeamService, TeamMemberForm, 'admin_members',
        'create_member', 'update_member', 'delete_member',
        columns=('name', 'position', 'role_type', 'country'),
    ),
}

CONTENT_PAGES = ('about',)


def _collection(name):
    try:
        return COLLECTIONS[name]
    except KeyError:
        raise Http404('Unknown collection') from None


@admin_required
def collection_list(request, collection):
    spec = _collection(collection)
    items = []
    try:
        items = spec.call(request, spec.read)
    except BackendError as exc:
        report_backend_error(request, exc)
    rows = [(item.get('id'), [item.get(column) for column in spec.columns]) for item in items]
    return render(request, 'website/admin/collection_list.html', {
        'collection': collection,
        'spec': spec,
        'rows': rows,
    })


@admin_required
def collection_form(request, collection, pk=None):
    spec = _collection(collection)
    if (pk is None and spec.create is None) or (pk is not None and spec.update is None):
        raise Http404('Not editable')
    if request.method == 'POST':
        form = spec.form_class(request.POST)
        if form.is_valid():
            try:
                if pk is None:
                    spec.call(request, spec.create, form.as_payload())
                else:
                    spec.call(request, spec.update, pk, form.as_payload())
            except BackendError as exc:
                report_backend_error(request, exc)
            else:
                messages.success(request, f"{spec.title}: saved.")
                return redirect('website:admin_collection', collection=collection)
    elif pk is not None:
        # Most collections have no single-item read; pick the row from the list
        try:
            items = spec.call(request, spec.read)
        except BackendError as exc:
            report_backend_error(request, exc)
            return redirect('website:admin_collection', collection=collection)
        item = next((i for i in items if i.get('id') == pk), None)
        if item is None:
            raise Http404('Item not found')
        form = spec.form_class(initial=item)
    else:
        form = spec.form_class()
    return render(request, 'website/admin/collection_form.html', {
        'collection': collection,
        'spec': spec,
        'form': form,
        'pk': pk,
    })


@admin_required
@require_POST
def collection_delete(request, collection, pk):
    spec = _collection(collection)
    if spec.delete is None:
        raise Http404('Not deletable')
    try:
        spec.call(request, spec.delete, pk)
    except BackendError as exc:
        report_backend_error(request, exc)
    else:
        messages.success(request, f"{spec.title}: deleted.")
    return redirect('website:admin_collection', collection=collection)


@admin_required
def page_content(request, page):
    if page not in CONTENT_PAGES:
        raise Http404('Unknown page')
    service = SettingsService(client_for(request))
    content = {}
    try:
        content = service.page_content(page)
    except BackendError as exc:
        report_backend_error(request, exc)
    form = PageContentForm(request.POST or None, content=content)
    if request.method == 'POST' and content and form.is_valid():
        try:
            service.update_page_content(page, form.as_payload())
        except BackendError as exc:
            report_backend_error(request, exc)
        else:
            messages.success(request, 'Page content updated.')
            return redirect('website:admin_page_content', page=page)
    return render(request, 'website/admin/page_content.html', {'form': form, 'page': page})


@admin_required
def founder(request):
    service = TeamService(client_for(request))
    if request.method == 'POST':
        form = FounderForm(request.POST)
        if form.is_valid():
            try:
                service.update_founder(form.as_payload())
            except BackendError as exc:
                report_backend_error(request, exc)
            else:
                messages.success(request, 'Founder profile updated.')
                return redirect('website:admin_founder')
    else:
        initial = {}
        try:
            initial = service.admin_founder() or {}
        except BackendError as exc:
            report_backend_error(request, exc)
        form = FounderForm(initial=initial)
    return render(request, 'website/admin/founder.html', {'form': form})


def _moved(image_ids, image_id, direction):
    """Ids with ``image_id`` swapped one place up or down; unchanged at either end."""
    ids = list(image_ids)
    if image_id not in ids:
        return ids
    index = ids.index(image_id)
    target = index - 1 if direction == 'up' else index + 1
    if 0 <= target < len(ids):
        ids[index], ids[target] = ids[target], ids[index]
    return ids


@admin_required
def project_images(request, pk):
    service = ProjectService(client_for(request))
    form = ProjectImageForm()
    if request.method == 'POST':
        action = request.POST.get('action')
        image_id = request.POST.get('image_id', '')
        image_id = int(image_id) if image_id.isdigit() else None
        try:
            if action == 'add':
                form = ProjectImageForm(request.POST)
                if form.is_valid():
                    service.add_image(pk, form.as_payload())
                    messages.success(request, 'Image added.')
                    return redirect('website:admin_project_images', pk=pk)
            elif action == 'caption' and image_id is not None:
                service.update_image(pk, image_id, {'caption': request.POST.get('caption', '').strip()})
                return redirect('website:admin_project_images', pk=pk)
            elif action == 'delete' and image_id is not None:
                service.delete_image(pk, image_id)
                messages.success(request, 'Image removed.')
                return redirect('website:admin_project_images', pk=pk)
            elif action in ('up', 'down') and image_id is not None:
                ordered = [image['id'] for image in service.images(pk)]
                moved = _moved(ordered, image_id, action)
                if moved != ordered:
                    service.reorder_images(pk, moved)
                return redirect('website:admin_project_images', pk=pk)
        except BackendError as exc:
            report_backend_error(request, exc)
    project, images = None, []
    try:
        project = service.get(pk)
        images = service.images(pk)
    except BackendError as exc:
        if isinstance(exc, ApiError) and exc.status == 404:
            raise Http404('Project not found')
        report_backend_error(request, exc)
    return render(request, 'website/admin/project_images.html', {
        'project': project,
        'images': images,
        'form': form,
    })
