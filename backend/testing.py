"""Test doubles for the REST backend."""
import json
from collections import namedtuple
from unittest import mock
from urllib.parse import urlsplit

import requests
from django.apps import apps

Call = namedtuple('Call', 'method path params json timeout')


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def make_response(status=200, payload=None, url='http://backend.test/'):
    response = requests.Response()
    response.status_code = status
    response.url = url
    response.encoding = 'utf-8'
    response.headers['Content-Type'] = 'application/json'
    response._content = b'' if payload is None else json.dumps(payload).encode('utf-8')
    return response


class FakeBackend(requests.Session):
    """requests.Session answering from a routing table keyed by (method, path)."""

    def __init__(self):
        super().__init__()
        self.routes = {}
        self.calls = []

    def add(self, method, path, payload=None, status=200, exc=None, cookies=None):
        self.routes[(method, path)] = (status, payload, exc, cookies)

    def request(self, method, url, params=None, json=None, timeout=None, **kwargs):
        path = urlsplit(url).path
        self.calls.append(Call(method, path, params, json, timeout))
        status, payload, exc, cookies = self.routes.get(
            (method, path), (404, {'error': 'Not found'}, None, None))
        if exc is not None:
            raise exc
        if cookies:
            self.cookies.update(cookies)
        return make_response(status, payload, url)

    def count(self, method, path):
        return sum(1 for call in self.calls if call.method == method and call.path == path)

    def last(self, method, path):
        matching = [call for call in self.calls if call.method == method and call.path == path]
        return matching[-1] if matching else None


class FakeBackendMixin:
    """Routes every ApiClient built during a test to ``self.backend`` and starts from an empty cache."""

    def setUp(self):
        super().setUp()
        self.backend = FakeBackend()
        self.cache = apps.get_app_config('backend').response_cache
        self.cache.clear_all()
        patcher = mock.patch('requests.Session', return_value=self.backend)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.addCleanup(self.cache.clear_all)
