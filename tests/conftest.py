#
# tests/conftest.py
#
# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License.
#
'''
Shared fixtures: a scripted Transport, a fake credential,
and XML document builders.
'''
import threading
import time

from azure.core.credentials import AccessToken
import pytest

import azprov
from azprov.base_defaults import AZURE_XML_NAMESPACE
from azprov.subscription import Subscription
from azprov.transport import (Transport,
                              TransportResponse,
                             )

SUBSCRIPTION_ID = 'sub1'
SERVICE_ENDPOINT = 'https://management.example.test/'
CORRELATION_ID = 'corr-0001'

class FakeTransport(Transport):
    '''
    Transport that returns scripted responses.
    Each (method, path) has a list of responses; they are handed
    out in order and the last one repeats. A response is a dict
    of TransportResponse kwargs (status_code, text, headers) or an
    exception to raise.
    '''
    def __init__(self):
        self.routes = dict()
        self.calls = list()
        self.closed = False
        self._lock = threading.Lock()

    def add(self, method, path, status_code=200, text='', headers=None, exc=None):
        '''
        Append a response for (method, path)
        '''
        item = exc if exc is not None else {'status_code' : status_code, 'text' : text, 'headers' : headers}
        self.routes.setdefault((method, path), list()).append(item)
        return self

    def send(self, method, path, headers=None):
        with self._lock:
            self.calls.append((method, path, dict(headers or dict())))
            queue = self.routes.get((method, path), None)
            if not queue:
                raise AssertionError("unexpected request %s %s" % (method, path))
            item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, BaseException):
            raise item
        return TransportResponse(item['status_code'],
                                 headers=item['headers'],
                                 text=item['text'],
                                 method=method,
                                 url=SERVICE_ENDPOINT.rstrip('/') + path)

    def close(self):
        self.closed = True

    def paths(self, method=None):
        '''
        Return the paths requested, optionally only for method
        '''
        with self._lock:
            return [c[1] for c in self.calls if (method is None) or (c[0] == method)]

class FakeCredential():
    '''
    Minimal azure-identity style credential
    '''
    def __init__(self, token='tok-1'):
        self.token = token
        self.scopes = list()

    def get_token(self, *scopes, **kwargs): # pylint: disable=unused-argument
        self.scopes.append(scopes)
        return AccessToken(self.token, int(time.time()) + 3600)

def services_xml(*services, root='Services'):
    '''
    Build a list-resources body. Each service is (type, state);
    None omits the element.
    '''
    parts = ['<%s xmlns="%s">' % (root, AZURE_XML_NAMESPACE)]
    for rtype, state in services:
        parts.append('<Service><Resources/>')
        if state is not None:
            parts.append('<State>%s</State>' % state)
        if rtype is not None:
            parts.append('<Type>%s</Type>' % rtype)
        parts.append('</Service>')
    parts.append('</%s>' % root)
    return ''.join(parts)

def operation_xml(tracking_id, status, http_status_code=None, error_code=None, error_message=None):
    '''
    Build a Get Operation Status body
    '''
    parts = ['<Operation xmlns="%s">' % AZURE_XML_NAMESPACE,
             '<ID>%s</ID>' % tracking_id,
             '<Status>%s</Status>' % status,
            ]
    if http_status_code is not None:
        parts.append('<HttpStatusCode>%s</HttpStatusCode>' % http_status_code)
    if error_code is not None:
        parts.append('<Error><Code>%s</Code><Message>%s</Message></Error>' % (error_code, error_message or ''))
    parts.append('</Operation>')
    return ''.join(parts)

@pytest.fixture(autouse=True)
def config_isolated(monkeypatch):
    '''
    Never read the user's configuration file
    '''
    monkeypatch.delenv('AZPROV_CONFIG', raising=False)
    azprov.reset_caches(config_data=dict())
    yield
    azprov.reset_caches()

@pytest.fixture
def subscription():
    return Subscription(SUBSCRIPTION_ID, service_endpoint=SERVICE_ENDPOINT, correlation_id=CORRELATION_ID)

@pytest.fixture
def transport():
    return FakeTransport()
