import logging
from concurrent.futures import ThreadPoolExecutor

from django.conf import settings
from django.contrib import messages
from django.http import JsonResponse
from django.shortcuts import redirect, render
from django.views.decorators.http import require_POST

from backend.client import client_for
from backend.exceptions import BackendError
from backend.services import DonationService, ProjectService

from . import validation
from .forms import ConfirmationForm, DonationDetailsForm, PaymentForm
from .workflow import CONFIRMATION, DETAILS, PAYMENT, DonationWorkflow, InvalidTransition

logger = logging.getLogger(__name__)

SESSION_KEY = 'donation_workflow'


def _load_workflow(request):
    return DonationWorkflow.from_session(request.session.get(SESSION_KEY), currency=settings.DONATION_CURRENCY)


def _save_workflow(request, workflow):
    request.session[SESSION_KEY] = workflow.to_session()


def _reference_data(request):
    """Active projects and payment accounts, requested side by side through the cache.

    Either may fail on its own: no projects means an empty selector, no
    accounts means the Payment step shows no instructions.
    """
    with ThreadPoolExecutor(max_workers=2) as pool:
        projects_future = pool.submit(ProjectService(client_for(request)).active)
        accounts_future = pool.submit(DonationService(client_for(request)).payment_accounts)
    try:
        projects = projects_future.result()
    except BackendError as exc:
        logger.warning('Could not load projects for donation page: %s', exc)
        projects = []
    try:
        accounts = accounts_future.result()
    except BackendError as exc:
        logger.warning('Could not load payment accounts: %s', exc)
        accounts = None
    return projects, accounts


def _selected_project(projects, project_id):
    for project in projects:
        if project.get('id') == project_id:
            return project
    return None


def _render_step(request, workflow, projects, accounts, form=None):
    draft = workflow.draft
    if form is None:
        if workflow.step == DETAILS:
            form = DonationDetailsForm(projects=projects, initial={
                'project_id': draft.project_id or '',
                'amount': draft.amount if draft.amount is not None else '',
                'donor_name': draft.donor_name,
                'email': draft.email,
                'country': draft.country,
                'payment_method': draft.payment_method,
            })
        elif workflow.step == PAYMENT:
            form = PaymentForm(initial={'payment_method': draft.payment_method})
        else:
            form = ConfirmationForm(initial={
                'transaction_id': draft.transaction_id,
                'payment_proof_url': draft.payment_proof_url,
            })
    context = {
        'step': workflow.step,
        'draft': draft,
        'form': form,
        'projects': projects,
        'selected_project': _selected_project(projects, draft.project_id),
        'payment_accounts': accounts,
        'submit_error': getattr(workflow.state, 'error', ''),
        'quick_amounts': settings.DONATION_QUICK_AMOUNTS,
        'currency': settings.DONATION_CURRENCY,
    }
    return render(request, 'payments/donate.html', context)


def donate(request):
    workflow = _load_workflow(request)
    if request.method == 'POST':
        return _handle_action(request, workflow)

    projects, accounts = _reference_data(request)
    if workflow.done:
        # Receipt is shown once, then the draft is gone
        request.session.pop(SESSION_KEY, None)
        return render(request, 'payments/donate_success.html', {
            'donation_id': workflow.state.donation_id,
            'draft': workflow.draft,
            'selected_project': _selected_project(projects, workflow.draft.project_id),
            'currency': settings.DONATION_CURRENCY,
        })

    preselected = request.GET.get('project', '')
    if workflow.step == DETAILS and preselected.isdigit():
        workflow.update(project_id=int(preselected))
        _save_workflow(request, workflow)
    return _render_step(request, workflow, projects, accounts)


def _handle_action(request, workflow):
    action = request.POST.get('action')
    try:
        if action == 'details':
            projects, accounts = _reference_data(request)
            form = DonationDetailsForm(request.POST, projects=projects)
            if not form.is_valid():
                return _render_step(request, workflow, projects, accounts, form=form)
            errors = workflow.to_payment(form.cleaned_data)
            if errors:
                for name, error in errors.items():
                    form.add_error(name, error)
                return _render_step(request, workflow, projects, accounts, form=form)
        elif action == 'back':
            workflow.back()
        elif action == 'paid':
            form = PaymentForm(request.POST)
            workflow.acknowledge_payment(form.cleaned_data['payment_method'] if form.is_valid() else None)
        elif action == 'submit':
            return _submit(request, workflow)
        elif action == 'reset':
            request.session.pop(SESSION_KEY, None)
            return redirect('payments:donate')
    except InvalidTransition as exc:
        logger.info('Ignored donation action %r: %s', action, exc)
        messages.warning(request, 'That step is no longer available. Please continue from here.')
    _save_workflow(request, workflow)
    return redirect('payments:donate')


def _submit(request, workflow):
    if workflow.step != CONFIRMATION:
        raise InvalidTransition(workflow.step, 'submit')
    form = ConfirmationForm(request.POST)
    if form.is_valid():
        errors = workflow.submit(
            DonationService(client_for(request)),
            form.cleaned_data['transaction_id'],
            form.cleaned_data['payment_proof_url'],
        )
        _save_workflow(request, workflow)
        if workflow.done:
            return redirect('payments:donate')
        for name, error in errors.items():
            form.add_error(name, error)
    projects, accounts = _reference_data(request)
    return _render_step(request, workflow, projects, accounts, form=form)


@require_POST
def validate_field(request):
    """On-blur check of a single Details field."""
    name = request.POST.get('field', '')
    if name not in validation.DETAILS_FIELDS:
        return JsonResponse({'field': name, 'error': 'Unknown field'}, status=400)
    error = validation.validate_field(name, request.POST.get('value', ''))
    return JsonResponse({'field': name, 'error': error})
