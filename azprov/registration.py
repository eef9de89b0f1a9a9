#
# azprov/registration.py
#
# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License.
#
'''
Resource provider registration against the Service Management API.

ResourceRegistrationClient issues the list/register/unregister calls.
ProviderRegistrar layers the "register everything we know about
that is not yet registered" orchestration on top.
'''
import functools
import http.client
import inspect

from azprov.base_defaults import (EXC_VALUE_DEFAULT,
                                  RESOURCE_TYPE_MARKER,
                                 )
from azprov.btypes import RegistrationAction
from azprov.exceptions import TransportError
from azprov.models import RegistrationRequest
from azprov.subscription import Subscription
from azprov.transport import Transport
from azprov.util import (Parallel,
                         getframe,
                         logger_or_default,
                        )
import azprov.wire

class ResourceRegistrationClient():
    '''
    Register and unregister resource types for one subscription.
    subscription: Subscription
    transport: Transport that reaches subscription.service_endpoint
    '''
    def __init__(self, subscription, transport, api_version=None, logger=None):
        if not isinstance(subscription, Subscription):
            raise TypeError("subscription must be Subscription, not %s" % type(subscription))
        if not isinstance(transport, Transport):
            raise TypeError("transport must be Transport, not %s" % type(transport))
        self.subscription = subscription
        self.transport = transport
        self.api_version = api_version
        self.logger = logger_or_default(logger)

    def __repr__(self):
        return "<%s,%s,%r>" % (type(self).__name__, hex(id(self)), self.subscription.subscription_id)

    def _headers(self):
        '''
        Headers for one request
        '''
        if self.api_version:
            return azprov.wire.request_headers(self.subscription.correlation_id, api_version=self.api_version)
        return azprov.wire.request_headers(self.subscription.correlation_id)

    def list_resources(self, known_types, exc_value=EXC_VALUE_DEFAULT):
        '''
        Return a list of ProviderResource describing the registration
        state of known_types, in the order the service reports them.
        '''
        known_types = list(known_types or list())
        if not known_types:
            raise exc_value("known_types may not be empty")
        for resource_type in known_types:
            if not (isinstance(resource_type, str) and resource_type):
                raise exc_value("invalid resource type %r in known_types" % resource_type)
        path = azprov.wire.list_resources_path(self.subscription.subscription_id, known_types)
        resp = self.transport.send('GET', path, headers=self._headers())
        resp.ensure_success()
        ret = azprov.wire.parse_list_resources(resp.text)
        self.logger.debug("%s %s: %d of %d resource type(s) reported", getframe(0), self.subscription.subscription_id, len(ret), len(known_types))
        return ret

    def _action(self, resource_type, action, exc_value):
        '''
        Issue one register/unregister request.
        Returns True on success, False on conflict.
        '''
        req = RegistrationRequest(self.subscription.subscription_id, resource_type, action, exc_value=exc_value)
        resp = self.transport.send('PUT', req.path, headers=self._headers())
        if resp.status_code == http.client.CONFLICT:
            self.logger.debug("%s %s %s: conflict", getframe(0), req.action.value, resource_type)
            return False
        resp.ensure_success()
        self.logger.debug("%s %s %s: ok", getframe(0), req.action.value, resource_type)
        return True

    def register_resource_type(self, resource_type, exc_value=EXC_VALUE_DEFAULT):
        '''
        Register resource_type. Returns True if it is newly
        registered, False if it was already registered.
        Other failures raise TransportError.
        '''
        return self._action(resource_type, RegistrationAction.REGISTER, exc_value)

    def unregister_resource_type(self, resource_type, exc_value=EXC_VALUE_DEFAULT):
        '''
        Unregister resource_type. Returns True if it is newly
        unregistered, False if it was not registered.
        Other failures raise TransportError.
        '''
        return self._action(resource_type, RegistrationAction.UNREGISTER, exc_value)

def providers_to_register(known_types, resources):
    '''
    Return the set of names in known_types that resources does not
    report as registered. Names compare exactly. Types missing
    from resources are included.
    '''
    registered = {res.type for res in resources if res.is_registered}
    return set(known_types) - registered

class RegistrationResults():
    '''
    Outcome of ProviderRegistrar.register_missing().
    registered: set of names newly registered
    already: set of names the service reported already registered
    unsupported: set of names for which the service has no registration support (404)
    failed: dict of name -> exception for everything else
    '''
    def __init__(self):
        self.registered = set()
        self.already = set()
        self.unsupported = set()
        self.failed = dict()

    def __repr__(self):
        return "%s(registered=%r, already=%r, unsupported=%r, failed=%r)" % (type(self).__name__,
                                                                              sorted(self.registered),
                                                                              sorted(self.already),
                                                                              sorted(self.unsupported),
                                                                              self.failed)

    @property
    def attempted(self):
        '''
        Set of all names for which a registration was issued
        '''
        return self.registered | self.already | self.unsupported | set(self.failed.keys())

    @property
    def succeeded(self):
        '''
        Return whether nothing failed
        '''
        return not self.failed

    @property
    def failed_names(self):
        '''
        Sorted list of names that failed
        '''
        return sorted(self.failed.keys())

class ProviderRegistrar():
    '''
    Register all known resource types that are not yet registered.
    client: ResourceRegistrationClient
    max_outstanding: limit on concurrent register calls (None = no limit)
    '''
    def __init__(self, client, logger=None, max_outstanding=None):
        self.client = client
        self.logger = logger_or_default(logger)
        self.max_outstanding = max_outstanding

    def register_missing(self, known_types, exc_value=EXC_VALUE_DEFAULT):
        '''
        List the registration state of known_types, then register
        every one of them that is not reported registered.
        Registrations proceed concurrently and independently. A failed
        registration is recorded in the result rather than raised;
        a failure of the list call is raised.
        Returns RegistrationResults.
        '''
        known_types = list(known_types or list())
        if not known_types:
            raise exc_value("known_types may not be empty")
        resources = self.client.list_resources(known_types, exc_value=exc_value)
        todo = providers_to_register(known_types, resources)
        ret = RegistrationResults()
        if not todo:
            self.logger.info("%s all %d resource type(s) already registered", getframe(0), len(known_types))
            return ret
        self.logger.info("%s registering %d resource type(s): %s", getframe(0), len(todo), ' '.join(sorted(todo)))
        work = {name : functools.partial(self.client.register_resource_type, name) for name in todo}
        parallel = Parallel(work, max_outstanding=self.max_outstanding, logger=self.logger)
        parallel.wait()
        succeeded, failed = parallel.split_results()
        for cr in succeeded:
            if cr.result:
                ret.registered.add(cr.name)
            else:
                ret.already.add(cr.name)
        for cr in failed:
            if isinstance(cr.exc, TransportError) and cr.exc.is_missing():
                self.logger.debug("%s %s: registration not supported by this endpoint", getframe(0), cr.name)
                ret.unsupported.add(cr.name)
            else:
                self.logger.warning("%s %s: registration failed: %r", getframe(0), cr.name, cr.exc)
                ret.failed[cr.name] = cr.exc
        return ret

def _marker_names(value):
    '''
    Return a list of resource type names from a marker value.
    The value may be a single name or an iterable of names.
    '''
    if isinstance(value, str):
        return [value] if value else list()
    if isinstance(value, (frozenset, list, set, tuple)):
        return [x for x in value if isinstance(x, str) and x]
    return list()

def resource_types_from_modules(modules, marker=RESOURCE_TYPE_MARKER):
    '''
    Scan modules for resource types they declare they need.
    A module declares them with a module attribute named marker,
    or with a class attribute named marker on a class it defines.
    Returns a sorted list of unique names.
    '''
    ret = set()
    for module in modules:
        ret.update(_marker_names(getattr(module, marker, None)))
        for _, kls in inspect.getmembers(module, inspect.isclass):
            if getattr(kls, '__module__', None) != module.__name__:
                continue
            ret.update(_marker_names(vars(kls).get(marker, None)))
    return sorted(ret)
