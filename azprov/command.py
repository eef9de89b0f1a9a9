#
# azprov/command.py
#
# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License.
#
'''
Command registry: methods decorated with @command.<kind> become
actions that the command-line tool dispatches by name.
'''
import functools

from azprov.util import expand_item_pformat

def _print_item(item):
    '''
    print() the result of a printable action.
    Lists, sets, and tuples print one element per line.
    '''
    if isinstance(item, (list, set, tuple)):
        for x in item:
            _print_item(x)
    elif isinstance(item, str):
        print(item)
    else:
        print(expand_item_pformat(item, prefix=''))

class Command():
    '''
    Registry of actions. Any attribute not in RESERVED_NAMES and
    not starting with '_' is a decorator kind:

        command = Command()
        class Tool():
            @command.printable
            def resources_list(self):
                return ['Storage Registered']
        command.handle('resources_list', ('printable', 'simple'), tool)

    Actions decorated with a kind that starts with 'printable'
    have their return value printed.
    '''
    RESERVED_NAMES = ('actions',
                      'handle',
                     )

    def __init__(self):
        self._actions = dict() # name -> _Action

    @property
    def actions(self):
        '''
        Sorted list of registered action names
        '''
        return sorted(self._actions.keys())

    @classmethod
    def _kind_valid(cls, name):
        return isinstance(name, str) and bool(name) and (not name.startswith('_')) and (name not in cls.RESERVED_NAMES)

    def __getattr__(self, name):
        if not self._kind_valid(name):
            raise AttributeError("'%s' object has no attribute '%s'" % (type(self).__name__, name))
        return functools.partial(self._register, name)

    def _register(self, kind, func):
        '''
        Record func as an action of the given kind.
        '''
        action = _Action(kind, func)
        if not self._kind_valid(action.name):
            raise ValueError("may not register an action using reserved name %r" % action.name)
        if action.name in self._actions:
            raise ValueError("duplicate action %r" % action.name)
        self._actions[action.name] = action
        return func

    def handle(self, name, kinds, obj):
        '''
        Run action name on obj if it is registered with one of kinds
        (a string or an iterable of strings) for exactly type(obj).
        Returns whether an action ran.
        '''
        kinds = (kinds,) if isinstance(kinds, str) else tuple(kinds)
        action = self._actions.get(name, None)
        if (action is None) or (action.kind not in kinds):
            return False
        # A subclass that inherits a decorated method does not get the action.
        if type(obj) is not action.owner(): # pylint: disable=unidiomatic-typecheck
            return False
        ret = action.func(obj)
        if action.kind.startswith('printable'):
            _print_item(ret)
        return True

class _Action():
    '''
    One decorated method
    '''
    def __init__(self, kind, func):
        self.kind = kind
        self.func = func
        self.name = func.__name__

    def __repr__(self):
        return "%s(%r, %r)" % (type(self).__name__, self.kind, self.func)

    def owner(self):
        '''
        Return the class that defines func. The class must be
        reachable by name from the module globals of func.
        '''
        path = self.func.__qualname__.split('.')[:-1]
        kls = self.func.__globals__.get(path[0], None) if path else None
        for part in path[1:]:
            kls = getattr(kls, part, None)
        if not isinstance(kls, type):
            raise RuntimeError("cannot find the class defining %s" % self.func.__qualname__)
        return kls
