#
# azprov/transport.py
#
# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License.
#
'''
HTTP transport for Service Management requests.

Components that talk to the service depend only on Transport.
RequestsTransport is the concrete implementation.
'''
import abc
import http.client
import time

import azure.core.pipeline
import azure.core.pipeline.policies
import azure.core.pipeline.transport
import requests

from azprov.base_defaults import (EXC_VALUE_DEFAULT,
                                  TRANSPORT_TIMEOUT_DEFAULT,
                                 )
from azprov.exceptions import TransportError
from azprov.util import (elapsed,
                         getframe,
                         logger_or_default,
                        )

class TransportResponse():
    '''
    Status, headers, and body of one HTTP exchange.
    headers keys are lowercase.
    '''
    def __init__(self, status_code, reason='', headers=None, text='', method='', url=''):
        self.status_code = status_code
        self.reason = reason or ''
        self.headers = {k.lower() : v for k, v in (headers or dict()).items()}
        self.text = text or ''
        self.method = method
        self.url = url

    def __repr__(self):
        return "<%s %s %s %s %s>" % (type(self).__name__, self.method, self.url, self.status_code, self.reason)

    @property
    def ok(self):
        '''
        Return whether the status is 2xx
        '''
        return 200 <= self.status_code < 300

    def header(self, name, default=''):
        '''
        Return the named header (case-insensitive)
        '''
        return self.headers.get(name.lower(), default)

    def ensure_success(self):
        '''
        Raise TransportError if the status is not 2xx.
        Returns self so calls may be chained.
        '''
        if self.ok:
            return self
        reason = self.reason
        if not reason:
            reason = http.client.responses.get(self.status_code, '')
        txt = "%s %s failed: %s (%s)" % (self.method, self.url, self.status_code, reason)
        raise TransportError(txt, status_code=self.status_code, reason=reason, method=self.method, url=self.url, body=self.text)

class Transport(abc.ABC):
    '''
    Issue a request and return a TransportResponse.
    path is relative to the service endpoint and may carry a query string.
    A non-2xx status is returned, not raised; callers decide
    with TransportResponse.ensure_success(). Failure to get any
    response at all is a TransportError.
    '''
    @abc.abstractmethod
    def send(self, method, path, headers=None):
        '''
        Perform one request
        '''
        raise NotImplementedError("%s did not implement this method" % type(self).__name__)

    def close(self):
        '''
        Release any resources held
        '''
        # nothing to do here

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, exc_tb):
        self.close()

def token_scope_for(service_endpoint):
    '''
    Return the bearer token scope for service_endpoint
    '''
    return service_endpoint.rstrip('/') + '/.default'

class BearerTokenSource():
    '''
    Use the azure-core BearerTokenCredentialPolicy to get tokens
    from an azure-identity credential. Using the policy gives us
    the azure-core token caching and refresh.
    '''
    def __init__(self, credential, scope):
        self._credential = credential
        self._scope = scope
        self._policy = azure.core.pipeline.policies.BearerTokenCredentialPolicy(credential, scope)

    def __repr__(self):
        return "<%s,%s,%r,%r>" % (type(self).__name__, hex(id(self)), self._credential, self._scope)

    def authorization(self):
        '''
        Return the value for the Authorization header.
        This runs a fake request through the policy and reads back
        the header it sets, using only public azure-core API.
        '''
        request = azure.core.pipeline.PipelineRequest(azure.core.pipeline.transport.HttpRequest('GET', 'https://azprov.invalid/'),
                                                      azure.core.pipeline.PipelineContext(None))
        self._policy.on_request(request)
        return request.http_request.headers['Authorization']

class RequestsTransport(Transport):
    '''
    Transport built on requests.Session.
    service_endpoint: base URL; request paths are appended to it
    certificate: client certificate passed as requests cert=
      (path to a PEM file, or a (cert, key) tuple)
    credential: azure-identity style credential (has get_token());
      used for a bearer token when certificate is not given
    session: requests.Session to use; if not given, one is created
      and owned by this object
    '''
    def __init__(self,
                 service_endpoint,
                 certificate=None,
                 credential=None,
                 token_scope='',
                 session=None,
                 timeout=TRANSPORT_TIMEOUT_DEFAULT,
                 logger=None,
                 exc_value=EXC_VALUE_DEFAULT):
        if not (isinstance(service_endpoint, str) and service_endpoint):
            raise exc_value("invalid service_endpoint %r" % service_endpoint)
        if certificate and credential:
            raise exc_value("specify at most one of certificate, credential")
        self.service_endpoint = service_endpoint
        self.certificate = certificate or None
        self.timeout = timeout
        self.logger = logger_or_default(logger)
        self._token_source = None
        if credential is not None:
            self._token_source = BearerTokenSource(credential, token_scope or token_scope_for(service_endpoint))
        self._session_owned = session is None
        self._session = session if session is not None else requests.Session()

    def __repr__(self):
        return "<%s,%s,%r>" % (type(self).__name__, hex(id(self)), self.service_endpoint)

    def close(self):
        '''
        Close the session if this object created it
        '''
        session = self._session
        self._session = None
        if session is not None and self._session_owned:
            session.close()

    def url_for(self, path):
        '''
        Return the full URL for path
        '''
        return self.service_endpoint.rstrip('/') + '/' + path.lstrip('/')

    def send(self, method, path, headers=None):
        if self._session is None:
            raise TransportError("%s is closed" % self, method=method, url=self.url_for(path))
        url = self.url_for(path)
        req_headers = dict(headers or dict())
        kwargs = {'headers' : req_headers,
                  'timeout' : self.timeout,
                 }
        if self.certificate:
            kwargs['cert'] = self.certificate
        t0 = time.monotonic()
        try:
            if self._token_source is not None:
                req_headers['Authorization'] = self._token_source.authorization()
            resp = self._session.request(method, url, **kwargs)
        except requests.exceptions.RequestException as exc:
            self.logger.debug("%s %s %s failed after %.3f: %r", getframe(0), method, url, elapsed(t0), exc)
            raise TransportError("%s %s failed: %s" % (method, url, exc), method=method, url=url) from exc
        self.logger.debug("%s %s %s status=%s elapsed=%.3f", getframe(0), method, url, resp.status_code, elapsed(t0))
        return TransportResponse(resp.status_code,
                                 reason=resp.reason,
                                 headers=resp.headers,
                                 text=resp.text,
                                 method=method,
                                 url=url)
