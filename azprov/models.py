#
# azprov/models.py
#
# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License.
#
'''
Value objects exchanged with the Service Management endpoint.
'''
from azprov.base_defaults import EXC_VALUE_DEFAULT
from azprov.btypes import (OPERATION_STATES_TERMINAL,
                           OperationState,
                           ProviderState,
                           RegistrationAction,
                          )
from azprov.exceptions import MalformedResponseError

class _Frozen():
    '''
    Base for immutable value objects. Subclasses set
    their attributes in __init__ through _freeze().
    '''
    __slots__ = ()

    def _freeze(self, **kwargs):
        for k, v in kwargs.items():
            object.__setattr__(self, k, v)

    def __setattr__(self, name, value):
        raise AttributeError("%s is immutable" % type(self).__name__)

    def __delattr__(self, name):
        raise AttributeError("%s is immutable" % type(self).__name__)

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return all(getattr(self, k) == getattr(other, k) for k in self.__slots__)

    def __hash__(self):
        return hash(tuple(getattr(self, k) for k in self.__slots__))

    def __repr__(self):
        return "%s(%s)" % (type(self).__name__, ', '.join("%s=%r" % (k, getattr(self, k)) for k in self.__slots__))

class ProviderResource(_Frozen):
    '''
    Registration state of one resource provider as reported by
    the list operation. type and state are the strings from the
    response, verbatim; either may be empty if the response omitted it.
    '''
    __slots__ = ('type', 'state')

    def __init__(self, type, state): # pylint: disable=redefined-builtin
        self._freeze(type=type or '', state=state or '')

    @property
    def provider_state(self):
        '''
        state as a ProviderState. An unrecognized value
        is a MalformedResponseError.
        '''
        try:
            return ProviderState.coerce(self.state, exc_value=ValueError)
        except ValueError as exc:
            raise MalformedResponseError("resource type %r has unexpected state %r" % (self.type, self.state)) from exc

    @property
    def is_registered(self):
        '''
        Return whether the provider reports itself registered.
        '''
        return self.state == ProviderState.REGISTERED.value

class RegistrationRequest(_Frozen):
    '''
    One register/unregister call. Constructed per call.
    '''
    __slots__ = ('subscription_id', 'resource_type', 'action')

    def __init__(self, subscription_id, resource_type, action, exc_value=EXC_VALUE_DEFAULT):
        if not (subscription_id and isinstance(subscription_id, str)):
            raise exc_value("invalid subscription_id %r" % subscription_id)
        if not (resource_type and isinstance(resource_type, str)):
            raise exc_value("invalid resource_type %r" % resource_type)
        action = RegistrationAction.coerce(action, exc_value=exc_value, prefix='action')
        self._freeze(subscription_id=subscription_id, resource_type=resource_type, action=action)

    @property
    def path(self):
        '''
        Request path for this action
        '''
        # local import: azprov.wire imports this module
        from azprov.wire import action_path # pylint: disable=import-outside-toplevel
        return action_path(self.subscription_id, self.resource_type, self.action)

class OperationError(_Frozen):
    '''
    Error payload attached to a failed operation
    '''
    __slots__ = ('code', 'message')

    def __init__(self, code='', message=''):
        self._freeze(code=code or '', message=message or '')

    def __str__(self):
        return "%s: %s" % (self.code, self.message)

class OperationStatus(_Frozen):
    '''
    Snapshot of an asynchronous operation. A new object is
    produced by every status fetch.
    '''
    __slots__ = ('tracking_id', 'status', 'error_details', 'http_status_code')

    def __init__(self, tracking_id, status, error_details=None, http_status_code=None):
        status = OperationState.coerce_nocase(status, exc_value=ValueError, prefix='status')
        self._freeze(tracking_id=tracking_id,
                     status=status,
                     error_details=error_details,
                     http_status_code=http_status_code)

    @property
    def is_terminal(self):
        '''
        Return whether the operation can no longer change state
        '''
        return self.status in OPERATION_STATES_TERMINAL

    @property
    def succeeded(self):
        '''
        Return whether the operation completed successfully
        '''
        return self.status == OperationState.SUCCEEDED
