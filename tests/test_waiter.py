#
# tests/test_waiter.py
#
# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License.
#
'''
LongRunningOperationWaiter, WaitPoller, OperationStatusClient
'''
import threading

import pytest

from azprov.btypes import (OperationState,
                           WaiterState,
                          )
from azprov.exceptions import (OperationCancelledError,
                               OperationTimeoutError,
                               TransportError,
                              )
from azprov.models import (OperationError,
                           OperationStatus,
                          )
from azprov.transport import TransportResponse
from azprov.waiter import (LongRunningOperationWaiter,
                           OperationStatusClient,
                           tracking_id_from_response,
                          )

from conftest import operation_xml

class ScriptedStatus():
    '''
    fetch_status replacement that returns statuses in order;
    the last one repeats
    '''
    def __init__(self, *statuses):
        self.statuses = list(statuses)
        self.calls = 0

    def __call__(self, tracking_id):
        self.calls += 1
        item = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, OperationStatus):
            return item
        return OperationStatus(tracking_id, item)

class SleepRecorder():
    '''
    Injected sleep that records instead of sleeping
    '''
    def __init__(self, on_sleep=None):
        self.sleeps = list()
        self.on_sleep = on_sleep

    def __call__(self, seconds):
        self.sleeps.append(seconds)
        if self.on_sleep:
            self.on_sleep(len(self.sleeps))

class TestWaitFor():
    '''
    LongRunningOperationWaiter.wait_for()
    '''
    def test_terminal_on_poll_k(self):
        fetch = ScriptedStatus('InProgress', 'InProgress', 'Succeeded')
        sleep = SleepRecorder()
        waiter = LongRunningOperationWaiter(fetch, poll_interval=7, max_attempts=10, sleep=sleep)
        status = waiter.wait_for('op1')
        assert status.status == OperationState.SUCCEEDED
        assert fetch.calls == 3
        assert sleep.sleeps == [7, 7]
        assert waiter.attempts == 3
        assert waiter.sleeps == 2
        assert waiter.state == WaiterState.SUCCEEDED

    def test_already_complete(self):
        sleep = SleepRecorder()
        waiter = LongRunningOperationWaiter(ScriptedStatus('Succeeded'), poll_interval=1, max_attempts=3, sleep=sleep)
        waiter.wait_for('op1')
        assert waiter.attempts == 1
        assert not sleep.sleeps

    @pytest.mark.parametrize('max_attempts', [1, 2, 5])
    def test_timeout(self, max_attempts):
        fetch = ScriptedStatus('InProgress')
        sleep = SleepRecorder()
        waiter = LongRunningOperationWaiter(fetch, poll_interval=3, max_attempts=max_attempts, sleep=sleep)
        with pytest.raises(OperationTimeoutError) as exc_info:
            waiter.wait_for('op1')
        assert fetch.calls == max_attempts
        assert len(sleep.sleeps) == max_attempts - 1
        assert exc_info.value.attempts == max_attempts
        assert exc_info.value.tracking_id == 'op1'
        assert exc_info.value.last_status.status == OperationState.IN_PROGRESS
        assert waiter.state == WaiterState.TIMED_OUT

    def test_failed_is_returned(self):
        failed = OperationStatus('op1', 'Failed', error_details=OperationError('Boom', 'it broke'))
        waiter = LongRunningOperationWaiter(ScriptedStatus('InProgress', failed), poll_interval=1, max_attempts=5, sleep=SleepRecorder())
        status = waiter.wait_for('op1')
        assert status.status == OperationState.FAILED
        assert status.error_details.code == 'Boom'
        assert waiter.state == WaiterState.FAILED

    def test_transport_error_propagates(self):
        exc = TransportError('gone', status_code=503)
        fetch = ScriptedStatus('InProgress', exc)
        sleep = SleepRecorder()
        waiter = LongRunningOperationWaiter(fetch, poll_interval=1, max_attempts=5, sleep=sleep)
        with pytest.raises(TransportError) as exc_info:
            waiter.wait_for('op1')
        assert exc_info.value is exc
        assert fetch.calls == 2
        assert len(sleep.sleeps) == 1
        assert waiter.state == WaiterState.ERRORED

    def test_per_call_overrides(self):
        fetch = ScriptedStatus('InProgress')
        sleep = SleepRecorder()
        waiter = LongRunningOperationWaiter(fetch, poll_interval=60, max_attempts=30, sleep=sleep)
        with pytest.raises(OperationTimeoutError):
            waiter.wait_for('op1', poll_interval=0.5, max_attempts=2)
        assert sleep.sleeps == [0.5]

    @pytest.mark.parametrize('kwargs', [{'poll_interval' : 0},
                                        {'poll_interval' : -1},
                                        {'max_attempts' : 0},
                                        {'max_attempts' : 1.5},
                                       ])
    def test_invalid_arguments(self, kwargs):
        waiter = LongRunningOperationWaiter(ScriptedStatus('Succeeded'), sleep=SleepRecorder())
        with pytest.raises(ValueError):
            waiter.wait_for('op1', **kwargs)

    def test_invalid_tracking_id(self):
        waiter = LongRunningOperationWaiter(ScriptedStatus('Succeeded'), sleep=SleepRecorder())
        with pytest.raises(ValueError):
            waiter.wait_for('')

    def test_invalid_construction(self):
        with pytest.raises(ValueError):
            LongRunningOperationWaiter(ScriptedStatus('Succeeded'), poll_interval=0)
        with pytest.raises(TypeError):
            LongRunningOperationWaiter('not callable')

    def test_cancel_before_start(self):
        fetch = ScriptedStatus('InProgress')
        event = threading.Event()
        event.set()
        waiter = LongRunningOperationWaiter(fetch, poll_interval=1, max_attempts=5, sleep=SleepRecorder())
        with pytest.raises(OperationCancelledError):
            waiter.wait_for('op1', cancel_event=event)
        assert fetch.calls == 0
        assert waiter.state == WaiterState.CANCELLED

    def test_cancel_during_sleep(self):
        fetch = ScriptedStatus('InProgress')
        event = threading.Event()
        sleep = SleepRecorder(on_sleep=lambda n: event.set() if n == 2 else None)
        waiter = LongRunningOperationWaiter(fetch, poll_interval=1, max_attempts=10, sleep=sleep)
        with pytest.raises(OperationCancelledError) as exc_info:
            waiter.wait_for('op1', cancel_event=event)
        assert fetch.calls == 2
        assert exc_info.value.last_status.status == OperationState.IN_PROGRESS
        assert waiter.state == WaiterState.CANCELLED

    def test_waiter_reusable(self):
        waiter = LongRunningOperationWaiter(ScriptedStatus('InProgress', 'Succeeded', 'Succeeded'), poll_interval=1, max_attempts=5, sleep=SleepRecorder())
        waiter.wait_for('op1')
        waiter.wait_for('op2')
        assert waiter.attempts == 1
        assert waiter.sleeps == 0

class TestWaitPoller():
    '''
    LongRunningOperationWaiter.begin_wait_for()
    '''
    def test_result(self):
        waiter = LongRunningOperationWaiter(ScriptedStatus('InProgress', 'Succeeded'), poll_interval=1, max_attempts=5, sleep=SleepRecorder())
        poller = waiter.begin_wait_for('op1')
        status = poller.result(timeout=10)
        assert status.status == OperationState.SUCCEEDED
        assert poller.done()
        assert poller.status() == WaiterState.SUCCEEDED

    def test_result_reraises(self):
        waiter = LongRunningOperationWaiter(ScriptedStatus('InProgress'), poll_interval=1, max_attempts=2, sleep=SleepRecorder())
        poller = waiter.begin_wait_for('op1')
        assert poller.wait(timeout=10)
        with pytest.raises(OperationTimeoutError):
            poller.result()
        assert poller.status() == WaiterState.TIMED_OUT

    def test_fetch_error_distinct_from_failed(self):
        waiter = LongRunningOperationWaiter(ScriptedStatus(TransportError('gone', status_code=503)), poll_interval=1, max_attempts=2, sleep=SleepRecorder())
        poller = waiter.begin_wait_for('op1')
        assert poller.wait(timeout=10)
        with pytest.raises(TransportError):
            poller.result()
        assert poller.status() == WaiterState.ERRORED
        assert poller.status() != WaiterState.FAILED

    def test_caller_timeout_then_cancel(self):
        # real clock: sleeps wait on the cancel event
        waiter = LongRunningOperationWaiter(ScriptedStatus('InProgress'), poll_interval=0.05, max_attempts=100000)
        poller = waiter.begin_wait_for('op1')
        with pytest.raises(OperationTimeoutError) as exc_info:
            poller.result(timeout=0.2)
        assert exc_info.value.tracking_id == 'op1'
        assert not poller.done()
        poller.cancel()
        assert poller.cancelled()
        assert poller.wait(timeout=10)
        with pytest.raises(OperationCancelledError):
            poller.result()
        assert poller.status() == WaiterState.CANCELLED

    def test_cancel_interrupts_sleep(self):
        waiter = LongRunningOperationWaiter(ScriptedStatus('InProgress'), poll_interval=3600, max_attempts=2)
        poller = waiter.begin_wait_for('op1')
        poller.cancel()
        assert poller.wait(timeout=10)
        with pytest.raises(OperationCancelledError):
            poller.result()

class TestOperationStatusClient():
    '''
    OperationStatusClient.get_operation_status()
    '''
    def test_fetch(self, subscription, transport):
        transport.add('GET', '/sub1/operations/op1', text=operation_xml('op1', 'InProgress'))
        client = OperationStatusClient(subscription, transport)
        status = client.get_operation_status('op1')
        assert status.status == OperationState.IN_PROGRESS
        _, _, headers = transport.calls[0]
        assert headers['x-ms-version'] == '2012-08-01'

    def test_http_error(self, subscription, transport):
        transport.add('GET', '/sub1/operations/op1', status_code=404)
        client = OperationStatusClient(subscription, transport)
        with pytest.raises(TransportError) as exc_info:
            client.get_operation_status('op1')
        assert exc_info.value.is_missing()

    def test_waiter_with_client(self, subscription, transport):
        transport.add('GET', '/sub1/operations/op1', text=operation_xml('op1', 'InProgress'))
        transport.add('GET', '/sub1/operations/op1', text=operation_xml('op1', 'Succeeded'))
        sleep = SleepRecorder()
        waiter = LongRunningOperationWaiter(OperationStatusClient(subscription, transport), poll_interval=2, max_attempts=3, sleep=sleep)
        assert waiter.wait_for('op1').succeeded
        assert sleep.sleeps == [2]
        assert len(transport.calls) == 2

def test_tracking_id_from_response():
    resp = TransportResponse(202, headers={'X-MS-Request-Id' : 'abc'})
    assert tracking_id_from_response(resp) == 'abc'
    assert tracking_id_from_response(TransportResponse(200)) == ''
