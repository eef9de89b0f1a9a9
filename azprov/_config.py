#
# azprov/_config.py
#
# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License.
#
'''
Manage settings read from the azprov configuration file.

The file is YAML. Location, in order of preference:
  - the path set explicitly (--config_path)
  - the AZPROV_CONFIG environment variable
  - ~/.azprov.yaml
A missing file is not an error; built-in defaults apply.
'''
import copy
import numbers
import os
import threading

import yaml

from azprov.base_defaults import (API_VERSION_DEFAULT,
                                  CLOUD_DEFAULT,
                                  CONFIG_ENV,
                                  CONFIG_FILENAME_DEFAULT,
                                  MAX_ATTEMPTS_DEFAULT,
                                  POLL_INTERVAL_DEFAULT,
                                 )
from azprov.btypes import ReadOnlyDict
import azprov.clouds
from azprov.exceptions import ConfigError

class _Config():
    '''
    Manage config values
    '''
    # Values used when the file does not provide them.
    # service_endpoint is derived from cloud.
    _DEFAULTS = {'api_version' : API_VERSION_DEFAULT,
                 'cloud' : CLOUD_DEFAULT,
                 'known_resource_types' : tuple(),
                 'max_attempts' : MAX_ATTEMPTS_DEFAULT,
                 'poll_interval' : POLL_INTERVAL_DEFAULT,
                 'subscription_default' : '',
                }

    def __init__(self):
        self._vlock = threading.RLock()
        self._path = ''
        self._vfilename = None
        self._vdefaults = None
        self._vsubscriptions = None

        # Hook for unit testing. Do not use this in production.
        self.test_data = None

    def reset(self, path='', data=None):
        '''
        Discard cached data. Useful for unit testing.
        data, if given, is used in place of file contents.
        '''
        with self._vlock:
            self._path = path or ''
            self._vfilename = None
            self._vdefaults = None
            self._vsubscriptions = None
            self.test_data = copy.deepcopy(data) if data is not None else None

    @property
    def path(self):
        '''
        Getter for the effective configuration path
        '''
        with self._vlock:
            if self._path:
                return self._path
            tmp = os.environ.get(CONFIG_ENV, '')
            if tmp:
                return tmp
            return os.path.join(os.path.expanduser('~'), CONFIG_FILENAME_DEFAULT)

    @path.setter
    def path(self, value):
        '''
        Setter for the configuration path. Discards cached contents.
        '''
        if not isinstance(value, str):
            raise TypeError("path must be str, not %s" % type(value))
        self.reset(path=value)

    def _file_read(self, filename):
        '''
        Read and parse filename. Returns a dict.
        '''
        try:
            with open(filename, 'r') as f:
                contents = f.read()
        except FileNotFoundError:
            if self._path or os.environ.get(CONFIG_ENV, ''):
                # explicitly named, so it must exist
                raise ConfigError("config file %r not found" % filename) from None
            return dict()
        except OSError as exc:
            raise ConfigError("cannot read config file %r: %s" % (filename, exc)) from exc
        try:
            data = yaml.safe_load(contents)
        except yaml.error.MarkedYAMLError as exc:
            raise ConfigError(f"cannot parse {filename!r}: error line {exc.problem_mark.line} column {exc.problem_mark.column}") from exc
        except yaml.error.YAMLError as exc:
            # yaml.error.YAMLError is more readable with str than repr
            raise ConfigError(f"cannot parse {filename!r}: error {exc}") from exc
        if data is None:
            # empty file - interpret it as an empty dict
            data = dict()
        if not isinstance(data, dict):
            raise ConfigError(f"content of config file {filename!r} is not a dict")
        return data

    def _load_iff_necessary(self, exc_value=ConfigError):
        '''
        Load data iff not already loaded
        '''
        with self._vlock:
            if self._vdefaults is not None:
                return
            if self.test_data is not None:
                filename = '<test_data>'
                data = copy.deepcopy(self.test_data)
            else:
                filename = self.path
                data = self._file_read(filename)
            defaults = self._dict_get(filename, data, 'defaults', exc_value)
            subscriptions = self._dict_get(filename, data, 'subscriptions', exc_value)
            vdefaults = dict(self._DEFAULTS)
            vdefaults.update(self._data_validate(defaults, exc_value=exc_value))
            if not vdefaults.get('service_endpoint', ''):
                vdefaults['service_endpoint'] = azprov.clouds.service_management_endpoint(vdefaults['cloud'], exc_value=exc_value)
            vsubscriptions = dict()
            for name, subscription_id in subscriptions.items():
                if not (isinstance(name, str) and name):
                    raise exc_value(f"{filename}: subscriptions has invalid name {name!r}")
                if not (isinstance(subscription_id, str) and subscription_id):
                    raise exc_value(f"{filename}: subscriptions[{name}] must be a non-empty string")
                vsubscriptions[name] = subscription_id
            self._vdefaults = ReadOnlyDict(vdefaults)
            self._vsubscriptions = ReadOnlyDict(vsubscriptions)
            self._vfilename = filename

    @staticmethod
    def _dict_get(filename, data, key, exc_value):
        '''
        Return data[key] as a dict, or an empty dict if not found.
        '''
        ret = data.get(key, None)
        if ret is None:
            return dict()
        if not isinstance(ret, dict):
            raise exc_value(f"{key} in {filename} has type {type(ret)}; expected dict")
        return ret

    def _data_validate(self, data, hnamestack='_dh', unamestack='defaults', exc_value=ConfigError):
        '''
        data is a dict as loaded from the config
        validate the contents and return them.

        For each value, look for a handler named from hnamestack
        (_dh__key, _dh__key__subkey, ...). If one exists, it validates
        and returns the value. Otherwise builtin scalars are accepted
        as-is and dicts and lists are walked recursively.
        Lists use the handler name _dh__somelist__contents for their items.
        '''
        handler = getattr(self, hnamestack, None)
        if handler:
            return handler(data, unamestack, exc_value)
        if isinstance(data, (bool, int, float, str)):
            return data
        if isinstance(data, dict):
            return ReadOnlyDict({kk : self._data_validate(vv, unamestack=f'{unamestack}[{kk}]', hnamestack=f'{hnamestack}__{kk}', exc_value=exc_value) for kk, vv in data.items()})
        if isinstance(data, list):
            return tuple(self._data_validate(vv, unamestack=f'{unamestack}[{idx}]', hnamestack=f'{hnamestack}__contents', exc_value=exc_value) for idx, vv in enumerate(data))
        raise exc_value("%s has unexpected type %s" % (unamestack, type(data)))

    @staticmethod
    def _dh__cloud(value, unamestack, exc_value):
        '''
        cloud must name a known cloud
        '''
        azprov.clouds.cloud_get(value, exc_value=lambda txt: exc_value(f"{unamestack}: {txt}"))
        return value

    @staticmethod
    def _dh__service_endpoint(value, unamestack, exc_value):
        '''
        service_endpoint must be an http(s) URL
        '''
        if not (isinstance(value, str) and value.lower().startswith(('https://', 'http://'))):
            raise exc_value(f"{unamestack} must be an http(s) URL, not {value!r}")
        return value

    @staticmethod
    def _dh__api_version(value, unamestack, exc_value):
        if not (isinstance(value, str) and value):
            raise exc_value(f"{unamestack} must be a non-empty string")
        return value

    @staticmethod
    def _dh__poll_interval(value, unamestack, exc_value):
        '''
        seconds between status polls
        '''
        if isinstance(value, bool) or (not isinstance(value, numbers.Real)) or (value <= 0):
            raise exc_value(f"{unamestack} must be a positive number, not {value!r}")
        return float(value)

    @staticmethod
    def _dh__max_attempts(value, unamestack, exc_value):
        if isinstance(value, bool) or (not isinstance(value, int)) or (value <= 0):
            raise exc_value(f"{unamestack} must be a positive integer, not {value!r}")
        return value

    @staticmethod
    def _dh__known_resource_types(value, unamestack, exc_value):
        '''
        list of resource type names; duplicates dropped, order kept
        '''
        if not isinstance(value, list):
            raise exc_value(f"{unamestack} must be a list")
        ret = list()
        for idx, name in enumerate(value):
            if not (isinstance(name, str) and name):
                raise exc_value(f"{unamestack}[{idx}] must be a non-empty string")
            if name not in ret:
                ret.append(name)
        return tuple(ret)

    @staticmethod
    def _dh__subscription_default(value, unamestack, exc_value):
        if not isinstance(value, str):
            raise exc_value(f"{unamestack} must be a string")
        return value

    @staticmethod
    def _key_valid(name):
        '''
        Return whether the given name is valid as a config key
        '''
        if not isinstance(name, str):
            return False
        if not name:
            return False
        if name.startswith('_'):
            return False
        return True

    def __getattr__(self, name):
        if not self._key_valid(name):
            raise AttributeError("%r object has no attribute %r" % (type(self).__name__, name))
        with self._vlock:
            self._load_iff_necessary()
            if name in self._vdefaults:
                return self._vdefaults[name]
            raise AttributeError("%r object has no attribute %r; check configuration file %s" % (type(self).__name__, name, self._vfilename))

    def get(self, name, defaultvalue):
        '''
        If name is set in the config defaults, return the corresponding value.
        Otherwise return defaultvalue.
        '''
        if not self._key_valid(name):
            return defaultvalue
        with self._vlock:
            self._load_iff_necessary()
            return self._vdefaults.get(name, defaultvalue)

    def to_dict(self) -> dict:
        '''
        Return config defaults in dict form
        '''
        with self._vlock:
            self._load_iff_necessary()
            return dict(self._vdefaults)

    @property
    def subscriptions(self):
        '''
        ReadOnlyDict of display name -> subscription id
        '''
        with self._vlock:
            self._load_iff_necessary()
            return self._vsubscriptions

    def subscription_id_resolve(self, name_or_id, exc_value=ConfigError):
        '''
        Given a subscription display name or id, return the id.
        Empty means use subscription_default.
        Names not found in subscriptions are assumed to be ids.
        '''
        with self._vlock:
            self._load_iff_necessary()
            name_or_id = name_or_id or self._vdefaults['subscription_default']
            if not name_or_id:
                raise exc_value("no subscription specified and no subscription_default configured")
            return self._vsubscriptions.get(name_or_id, name_or_id)

config = _Config()
