from django.http import Http404
from django.shortcuts import render

from backend.client import client_for
from backend.exceptions import ApiError, BackendError
from backend.services import DonationService, ProjectService
from website.decorators import admin_required, report_backend_error


@admin_required
def donations_list(request):
    client = client_for(request)
    filters = {key: request.GET.get(key, '').strip() for key in ('project_id', 'country', 'search')}
    donations, stats, projects = [], {}, []
    try:
        service = DonationService(client)
        donations = service.list(
            project_id=int(filters['project_id']) if filters['project_id'].isdigit() else None,
            country=filters['country'] or None,
            search=filters['search'] or None,
        )
        stats = service.stats()
        projects = ProjectService(client).list()
    except BackendError as exc:
        report_backend_error(request, exc)
    return render(request, 'payments/donations_list.html', {
        'donations': donations,
        'stats': stats,
        'projects': projects,
        'filters': filters,
    })


@admin_required
def donation_detail(request, pk):
    donation = None
    try:
        donation = DonationService(client_for(request)).get(pk)
    except BackendError as exc:
        if isinstance(exc, ApiError) and exc.status == 404:
            raise Http404('Donation not found')
        report_backend_error(request, exc)
    return render(request, 'payments/donation_detail.html', {'donation': donation})
