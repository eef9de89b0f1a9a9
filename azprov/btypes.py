#
# azprov/btypes.py
#
# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License.
#
'''
Basic types. No dependencies within the repo but outside this file other than azprov.base_defaults.
'''
import enum

from azprov.base_defaults import EXC_VALUE_DEFAULT

class EnumMixin():
    '''
    Mixin for enums that extends them with additional operations.
    Use this rather than subclassing the enum classes to avoid
    confusing pylint.
    '''
    @classmethod
    def values(cls, sort=True):
        '''
        Return a list of valid values for this enum.
        Default sort to true for UI elements.
        '''
        ret = [x.value for x in cls]
        if sort:
            ret.sort()
        return ret

    @classmethod
    def coerce(cls, value, exc_value=EXC_VALUE_DEFAULT, prefix=''):
        '''
        Return value coerced to this type.
        Raises exc_value with a human-friendly error on failure.
        '''
        try:
            return cls(value)
        except ValueError as exc:
            if prefix:
                raise exc_value(f"{prefix}: {exc}") from exc
            raise exc_value(str(exc)) from exc

    @classmethod
    def coerce_nocase(cls, value, exc_value=EXC_VALUE_DEFAULT, prefix=''):
        '''
        Like coerce(), but match value against the enum values
        without regard to case. The service is not consistent
        about the case of the literals it returns.
        '''
        if isinstance(value, str):
            for x in cls:
                if x.value.lower() == value.lower():
                    return x
        return cls.coerce(value, exc_value=exc_value, prefix=prefix)

class ReadOnlyDict(dict):
    '''
    dict that does not allow updates
    Set attribute default_value on an instance to give it a default a la DefaultDict
    '''
    ro_error_class = TypeError
    ro_error_str = 'attempt to modify read-only dict'

    def _error_readonly(self, *args, **kwargs):
        '''
        This is used to replace methods of this object
        that would otherwise modify it.
        '''
        raise self.ro_error_class(self.ro_error_str)

    __delitem__ = _error_readonly
    __setitem__ = _error_readonly
    clear = _error_readonly
    pop = _error_readonly
    popitem = _error_readonly
    setdefault = _error_readonly
    update = _error_readonly

    def __missing__(self, key):
        try:
            return self.default_value
        except AttributeError as exc:
            raise KeyError(key) from exc

class LogTo(EnumMixin, enum.Enum):
    '''
    Logging destinations for Application
    '''
    STDERR = 'stderr'
    STDOUT = 'stdout'

class ProviderState(EnumMixin, enum.Enum):
    '''
    Registration state of a resource provider within a subscription.
    Values here are the Azure-facing strings.
    '''
    REGISTERED = 'Registered'
    UNREGISTERED = 'Unregistered'

class RegistrationAction(EnumMixin, enum.Enum):
    '''
    Value of the action= query parameter on a registration request
    '''
    REGISTER = 'register'
    UNREGISTER = 'unregister'

class OperationState(EnumMixin, enum.Enum):
    '''
    Status of an asynchronous Service Management operation
    '''
    IN_PROGRESS = 'InProgress'
    SUCCEEDED = 'Succeeded'
    FAILED = 'Failed'

OPERATION_STATES_TERMINAL = (OperationState.SUCCEEDED,
                             OperationState.FAILED,
                            )

class WaiterState(EnumMixin, enum.Enum):
    '''
    States of LongRunningOperationWaiter
    '''
    PENDING = 'Pending'
    POLLING = 'Polling'
    SUCCEEDED = 'Succeeded'
    FAILED = 'Failed'
    TIMED_OUT = 'TimedOut'
    CANCELLED = 'Cancelled'
    # status could not be fetched
    ERRORED = 'Errored'

    def is_terminal(self):
        '''
        Return whether no further transitions are possible from this state
        '''
        return self not in (WaiterState.PENDING, WaiterState.POLLING)
