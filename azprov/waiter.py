#
# azprov/waiter.py
#
# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License.
#
'''
Wait for asynchronous Service Management operations to complete.

LongRunningOperationWaiter polls the status of an operation on a
fixed interval. WaitPoller runs such a wait on a background thread
so the caller may impose its own timeout or cancel the wait.
'''
import threading
import time

from azprov.base_defaults import (EXC_VALUE_DEFAULT,
                                  HEADER_REQUEST_ID,
                                  MAX_ATTEMPTS_DEFAULT,
                                  POLL_INTERVAL_DEFAULT,
                                 )
from azprov.btypes import (OperationState,
                           WaiterState,
                          )
from azprov.exceptions import (OperationCancelledError,
                               OperationTimeoutError,
                              )
from azprov.subscription import Subscription
from azprov.transport import Transport
from azprov.util import (getframe,
                         logger_or_default,
                        )
import azprov.wire

class OperationStatusClient():
    '''
    Fetch the status of asynchronous operations for one subscription
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

    def get_operation_status(self, tracking_id, exc_value=EXC_VALUE_DEFAULT):
        '''
        Fetch and return the current OperationStatus for tracking_id
        '''
        if not (isinstance(tracking_id, str) and tracking_id):
            raise exc_value("invalid tracking_id %r" % tracking_id)
        path = azprov.wire.operation_status_path(self.subscription.subscription_id, tracking_id)
        if self.api_version:
            headers = azprov.wire.request_headers(self.subscription.correlation_id, api_version=self.api_version)
        else:
            headers = azprov.wire.request_headers(self.subscription.correlation_id)
        resp = self.transport.send('GET', path, headers=headers)
        resp.ensure_success()
        ret = azprov.wire.parse_operation_status(resp.text, tracking_id=tracking_id)
        self.logger.debug("%s %s status=%s", getframe(0), tracking_id, ret.status.value)
        return ret

def tracking_id_from_response(resp):
    '''
    Given the TransportResponse that started an asynchronous
    operation, return its tracking id, or '' if there is none.
    '''
    return resp.header(HEADER_REQUEST_ID, '')

class LongRunningOperationWaiter():
    '''
    Poll an operation until it reaches a terminal status.

    fetch_status: callable taking a tracking id and returning
      OperationStatus, or an object with get_operation_status()
      such as OperationStatusClient
    sleep: callable taking seconds. Replaces the real clock
      (unit tests). When not given, sleeps wait on the cancel
      event so that cancellation interrupts a sleep.

    Attempt accounting: a wait performs at most max_attempts polls.
    Sleeps happen only between polls, so an operation that becomes
    terminal on poll K costs K-1 sleeps, and an operation that never
    does costs max_attempts polls and max_attempts-1 sleeps before
    OperationTimeoutError.

    One waiter runs one wait at a time.
    '''
    def __init__(self,
                 fetch_status,
                 poll_interval=POLL_INTERVAL_DEFAULT,
                 max_attempts=MAX_ATTEMPTS_DEFAULT,
                 sleep=None,
                 logger=None):
        if hasattr(fetch_status, 'get_operation_status'):
            fetch_status = fetch_status.get_operation_status
        if not callable(fetch_status):
            raise TypeError("fetch_status is not callable")
        self._validate(poll_interval, max_attempts, ValueError)
        self._fetch_status = fetch_status
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self._sleep = sleep
        self.logger = logger_or_default(logger)
        self._lock = threading.Lock()
        self._busy = False
        self.state = WaiterState.PENDING
        self.attempts = 0
        self.sleeps = 0
        self.last_status = None

    def __repr__(self):
        return "<%s,%s,%s,attempts=%d>" % (type(self).__name__, hex(id(self)), self.state.value, self.attempts)

    @staticmethod
    def _validate(poll_interval, max_attempts, exc_value):
        if isinstance(poll_interval, bool) or (not isinstance(poll_interval, (int, float))) or (poll_interval <= 0):
            raise exc_value("poll_interval must be > 0, not %r" % (poll_interval,))
        if isinstance(max_attempts, bool) or (not isinstance(max_attempts, int)) or (max_attempts <= 0):
            raise exc_value("max_attempts must be a positive integer, not %r" % (max_attempts,))

    def _sleep_once(self, seconds, cancel_event):
        '''
        Sleep between polls
        '''
        if self._sleep is not None:
            self._sleep(seconds)
        elif cancel_event is not None:
            cancel_event.wait(timeout=seconds)
        else:
            time.sleep(seconds)
        self.sleeps += 1

    def wait_for(self, tracking_id, poll_interval=None, max_attempts=None, cancel_event=None, exc_value=EXC_VALUE_DEFAULT):
        '''
        Poll tracking_id until it is terminal and return the final
        OperationStatus. A Failed operation is returned, not raised.
        Raises OperationTimeoutError when attempts are exhausted and
        OperationCancelledError when cancel_event is set. Errors
        fetching the status propagate as-is.
        '''
        if not (isinstance(tracking_id, str) and tracking_id):
            raise exc_value("invalid tracking_id %r" % (tracking_id,))
        poll_interval = self.poll_interval if poll_interval is None else poll_interval
        max_attempts = self.max_attempts if max_attempts is None else max_attempts
        self._validate(poll_interval, max_attempts, exc_value)

        with self._lock:
            if self._busy:
                raise RuntimeError("%r is already waiting" % self)
            self._busy = True
            self.state = WaiterState.PENDING
            self.attempts = 0
            self.sleeps = 0
            self.last_status = None

        try:
            return self._wait_for(tracking_id, poll_interval, max_attempts, cancel_event)
        finally:
            with self._lock:
                self._busy = False

    def _wait_for(self, tracking_id, poll_interval, max_attempts, cancel_event):
        '''
        Polling loop for wait_for()
        '''
        self.state = WaiterState.POLLING
        while True:
            if (cancel_event is not None) and cancel_event.is_set():
                self.state = WaiterState.CANCELLED
                self.logger.debug("%s %s cancelled after %d attempt(s)", getframe(0), tracking_id, self.attempts)
                raise OperationCancelledError(tracking_id, last_status=self.last_status)
            try:
                status = self._fetch_status(tracking_id)
            except Exception:
                self.state = WaiterState.ERRORED
                raise
            self.attempts += 1
            self.last_status = status
            if status.is_terminal:
                self.state = WaiterState.SUCCEEDED if status.status == OperationState.SUCCEEDED else WaiterState.FAILED
                self.logger.debug("%s %s is %s after %d attempt(s)", getframe(0), tracking_id, status.status.value, self.attempts)
                return status
            if self.attempts >= max_attempts:
                break
            self._sleep_once(poll_interval, cancel_event)
        self.state = WaiterState.TIMED_OUT
        self.logger.debug("%s %s still %s after %d attempt(s)", getframe(0), tracking_id, self.last_status.status.value, self.attempts)
        raise OperationTimeoutError(tracking_id, self.attempts, last_status=self.last_status)

    def begin_wait_for(self, tracking_id, poll_interval=None, max_attempts=None):
        '''
        Start wait_for() on a background thread. Returns WaitPoller.
        '''
        return WaitPoller(self, tracking_id, poll_interval=poll_interval, max_attempts=max_attempts)

class WaitPoller():
    '''
    Handle on a wait running in the background.
    Modelled on the azure-core LROPoller: done(), wait(), result().
    cancel() asks the wait to stop; result() then raises
    OperationCancelledError.
    '''
    def __init__(self, waiter, tracking_id, poll_interval=None, max_attempts=None):
        self._waiter = waiter
        self.tracking_id = tracking_id
        self._cancel_event = threading.Event()
        self._done_event = threading.Event()
        self._result = None
        self._exc = None
        self._thread = threading.Thread(target=self._run,
                                        args=(poll_interval, max_attempts),
                                        name="WaitPoller-%s" % tracking_id)
        self._thread.daemon = True
        self._thread.start()

    def __repr__(self):
        return "<%s,%s,%r,%s>" % (type(self).__name__, hex(id(self)), self.tracking_id, self.status().value)

    def _run(self, poll_interval, max_attempts):
        '''
        Thread body
        '''
        try:
            self._result = self._waiter.wait_for(self.tracking_id,
                                                 poll_interval=poll_interval,
                                                 max_attempts=max_attempts,
                                                 cancel_event=self._cancel_event)
        except Exception as exc:
            self._exc = exc
        finally:
            self._done_event.set()

    def done(self):
        '''
        Return whether the wait is complete
        '''
        return self._done_event.is_set()

    def wait(self, timeout=None):
        '''
        Wait for completion. Returns whether the wait is complete.
        '''
        return self._done_event.wait(timeout=timeout)

    def result(self, timeout=None):
        '''
        Return the final OperationStatus. Raises whatever the wait
        raised. If timeout elapses first, raises OperationTimeoutError;
        the background wait continues until cancel() is called.
        '''
        if not self.wait(timeout=timeout):
            raise OperationTimeoutError(self.tracking_id,
                                        self._waiter.attempts,
                                        last_status=self._waiter.last_status,
                                        txt="operation %r not complete within %s second(s)" % (self.tracking_id, timeout))
        if self._exc is not None:
            raise self._exc
        return self._result

    def cancel(self):
        '''
        Ask the wait to stop at the next poll boundary
        '''
        self._cancel_event.set()

    def cancelled(self):
        '''
        Return whether cancel() has been called
        '''
        return self._cancel_event.is_set()

    def status(self):
        '''
        Return the WaiterState of the wait
        '''
        return self._waiter.state
