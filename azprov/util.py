#
# azprov/util.py
#
# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License.
#
'''
Helpers shared across azprov: argument parsing, logging,
pretty-printing, and running calls on parallel threads.
'''
import argparse
import collections
import enum
import functools
import logging
import pprint
import sys
import threading
import time
import traceback

from azprov.base_defaults import (LOGGER_NAME_DEFAULT,
                                  PF,
                                 )

class ArgExplicit(argparse.Action):
    '''
    argparse action that stores the value and also records the
    destination name in namespace.args_explicit, so an application
    can tell a value given on the command line from a default.
    '''
    def __call__(self, parser, namespace, value, option_string=None):
        setattr(namespace, self.dest, value)
        explicit = getattr(namespace, 'args_explicit', None)
        if explicit is None:
            explicit = set()
            setattr(namespace, 'args_explicit', explicit)
        explicit.add(self.dest)

class ArgumentParser(argparse.ArgumentParser):
    '''
    ArgumentParser whose argument groups may be fetched by title
    '''
    def get_argument_group(self, title):
        '''
        Return the argument group with the given title, adding it first if necessary
        '''
        for group in self._action_groups:
            if group.title == title:
                return group
        return self.add_argument_group(title)

def getframe(idx):
    '''
    Return "function:line" for the frame idx levels above the caller
    (0 = the caller itself). Used to prefix log messages.
    '''
    f = sys._getframe(idx+1) # pylint: disable=protected-access
    return "%s:%s" % (f.f_code.co_name, f.f_lineno)

def expand_item(item):
    '''
    Return item converted to builtin containers for printing.
    Objects become the dict of their attributes.
    '''
    return _expand_item(item, frozenset())

def _expand_item(item, seen):
    if (item is None) or isinstance(item, (bool, bytes, enum.Enum, float, int, str)):
        return item
    if id(item) in seen:
        return "SEEN %r" % (item,)
    seen = seen | {id(item)}
    if isinstance(item, (frozenset, list, set)):
        return [_expand_item(x, seen) for x in item]
    if isinstance(item, tuple):
        return tuple(_expand_item(x, seen) for x in item)
    if isinstance(item, dict):
        return {_expand_item(k, seen) : _expand_item(v, seen) for k, v in item.items()}
    if isinstance(item, (logging.Logger, threading.Event, type)) or callable(item) or (not hasattr(item, '__dict__')):
        return repr(item)
    return {k : _expand_item(v, seen) for k, v in vars(item).items()}

def indent_pformat(item, prefix=PF):
    '''
    pprint.pformat(item) (or item itself if it is a str)
    with prefix on every line
    '''
    txt = item if isinstance(item, str) else pprint.pformat(item)
    return '\n'.join(prefix + line for line in txt.splitlines())

def expand_item_pformat(item, prefix=PF):
    '''
    indent_pformat(expand_item(item))
    '''
    return indent_pformat(expand_item(item), prefix=prefix)

_LOG_LEVEL_NAMES = {'critical' : logging.CRITICAL,
                    'error' : logging.ERROR,
                    'warning' : logging.WARNING,
                    'info' : logging.INFO,
                    'debug' : logging.DEBUG,
                   }

def log_level_normalize(log_level):
    '''
    Given log_level as a logging constant (int) or a name
    such as 'debug' or 'INFO', return the logging constant.
    '''
    if isinstance(log_level, int):
        return log_level
    try:
        return _LOG_LEVEL_NAMES[log_level.strip().lower()]
    except (AttributeError, KeyError) as exc:
        raise ValueError("invalid log_level %r" % log_level) from exc

def logger_or_default(logger):
    '''
    Return logger if it is not None, otherwise the package default logger
    '''
    return logger if logger is not None else logging.getLogger(LOGGER_NAME_DEFAULT)

@functools.total_ordering
class CallResult():
    '''
    Outcome of one call run by Parallel.
    name: key of the call in the work dict
    result: what the call returned
    exc: what the call raised
    At most one of result and exc is not None.
    '''
    def __init__(self, name, result=None, exc=None):
        self.name = name
        self.result = result
        self.exc = exc

    def __repr__(self):
        return "%s(%r, result=%r, exc=%r)" % (type(self).__name__, self.name, self.result, self.exc)

    def __hash__(self):
        return hash(self.name)

    def __lt__(self, other):
        if not isinstance(other, CallResult):
            return NotImplemented
        return self.name < other.name

    def __eq__(self, other):
        if not isinstance(other, CallResult):
            return False
        return (self.name, self.result, type(self.exc), repr(self.exc)) == (other.name, other.result, type(other.exc), repr(other.exc))

class Parallel():
    '''
    Run calls on threads, at most max_outstanding at a time
    (None = no limit).
    work: dict of name -> call; each call is invoked with no
      arguments (use functools.partial to bind them)
    An exception raised by a call is captured in its CallResult
    rather than propagated.
    '''
    def __init__(self, work, max_outstanding=None, logger=None):
        if not isinstance(work, dict):
            raise TypeError("work must be dict, not %s" % type(work))
        if not work:
            raise ValueError('work')
        if (max_outstanding is not None) and not (isinstance(max_outstanding, int) and (max_outstanding > 0)):
            raise ValueError("invalid max_outstanding %r" % (max_outstanding,))
        self.work = work
        self.max_outstanding = max_outstanding
        self.logger = logger if logger is not None else logging.getLogger(LOGGER_NAME_DEFAULT + '.parallel')
        self._cond = threading.Condition()
        self._pending = collections.deque(work.items())
        self._running = 0
        self._results = list()

    def _call(self, name, call):
        '''
        Thread body for one call
        '''
        cr = CallResult(name)
        try:
            cr.result = call()
        except Exception as exc:
            self.logger.debug("%s %s raised %r\n%s", getframe(0), name, exc, traceback.format_exc())
            cr.result = None
            cr.exc = exc
        finally:
            with self._cond:
                self._running -= 1
                self._results.append(cr)
                self._start_NL()
                self._cond.notify_all()

    def _start_NL(self):
        '''
        Start as many pending calls as the limit allows.
        Caller holds self._cond.
        '''
        while self._pending and ((self.max_outstanding is None) or (self._running < self.max_outstanding)):
            name, call = self._pending.popleft()
            self._running += 1
            thread = threading.Thread(target=self._call, args=(name, call), name=str(name))
            thread.daemon = True
            thread.start()

    def _done_NL(self):
        return len(self._results) >= len(self.work)

    def wait(self, timeout=None):
        '''
        Start the work if necessary and wait for it to finish.
        Returns whether all of it finished; False only if timeout elapsed.
        '''
        with self._cond:
            self._start_NL()
            return self._cond.wait_for(self._done_NL, timeout=timeout)

    def done(self):
        '''
        Return whether every call has finished
        '''
        with self._cond:
            return self._done_NL()

    def split_results(self):
        '''
        Return (succeeded, failed), each a list of CallResult
        for the calls finished so far
        '''
        with self._cond:
            succeeded = [cr for cr in self._results if cr.exc is None]
            failed = [cr for cr in self._results if cr.exc is not None]
        return succeeded, failed

def elapsed(ts0, ts1=None):
    '''
    Return seconds from monotonic timestamp ts0 to ts1 (default now), never negative
    '''
    if ts1 is None:
        ts1 = time.monotonic()
    return max(ts1 - ts0, 0.0)
