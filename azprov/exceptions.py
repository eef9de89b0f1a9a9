#
# azprov/exceptions.py
#
# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License.
#
'''
Exception classes shared across azprov modules
'''
import http.client

class ApplicationException(Exception):
    '''
    Base class for application exceptions
    '''

class ApplicationExit(ApplicationException):
    '''
    This is interpreted as SystemExit, but it inherits from ApplicationException
    and not SystemExit. That makes it part of the Exception hierarchy
    and not BaseException. The intent is to use this as a replacement
    for SystemExit to simplify multithreaded orchestration.
    '''
    def __init__(self, code):
        self.code = code
        super().__init__(str(self.code))

    def __repr__(self):
        return "%s(%r)" % (type(self).__name__, self.code)

    def __str__(self):
        return str(self.code)

class ApplicationExitWithNote(ApplicationExit):
    '''
    Subclass of ApplicationExit with an extra note attached.
    Subclassed rather than making note a kwarg to simplify
    exception handling and chaining.
    '''
    def __init__(self, code, note):
        super().__init__(code)
        self.note = note or ''

    def __repr__(self):
        if self.note:
            return "%s(%r, note=%r)" % (type(self).__name__, self.code, self.note)
        return "%s(%r)" % (type(self).__name__, self.code)

    def __str__(self):
        if self.note:
            return "%s [%s]" % (self.code, self.note)
        return str(self.code)

class ConfigError(ApplicationExit):
    '''
    Special case of ApplicationExit used to indicate that
    the configuration file is unreadable or contains invalid values.
    '''
    # no specialization here

class TransportError(ApplicationException):
    '''
    An HTTP exchange did not succeed. status_code is None when
    the request never got a response (connection failure, timeout, ...).
    '''
    def __init__(self, txt, status_code=None, reason='', method='', url='', body=''):
        super().__init__(txt)
        self.txt = txt
        self.status_code = status_code
        self.reason = reason
        self.method = method
        self.url = url
        self.body = body

    def __str__(self):
        return self.txt

    def __repr__(self):
        return "%s(%r, status_code=%r, method=%r, url=%r)" % (type(self).__name__, self.txt, self.status_code, self.method, self.url)

    def is_conflict(self):
        '''
        Return whether this is a "conflict" error.
        '''
        return self.status_code == http.client.CONFLICT

    def is_missing(self):
        '''
        Return whether the server reported the target as not found
        '''
        return self.status_code == http.client.NOT_FOUND

class MalformedResponseError(ApplicationException):
    '''
    A response body could not be interpreted: not well-formed XML,
    not in the expected namespace, or carrying an unknown value.
    '''
    def __init__(self, txt, body=''):
        super().__init__(txt)
        self.txt = txt
        self.body = body

    def __str__(self):
        return self.txt

class OperationTimeoutError(ApplicationException):
    '''
    Polling for a long-running operation gave up while the operation
    was still not terminal. last_status is the most recent
    OperationStatus observed (None if nothing was observed).
    '''
    def __init__(self, tracking_id, attempts, last_status=None, txt=''):
        self.tracking_id = tracking_id
        self.attempts = attempts
        self.last_status = last_status
        txt = txt or "operation %r not complete after %d attempt(s)" % (tracking_id, attempts)
        super().__init__(txt)
        self.txt = txt

    def __str__(self):
        return self.txt

class OperationCancelledError(ApplicationException):
    '''
    The caller cancelled a wait for a long-running operation.
    '''
    def __init__(self, tracking_id, last_status=None):
        self.tracking_id = tracking_id
        self.last_status = last_status
        super().__init__("wait for operation %r cancelled" % tracking_id)
