#
# tests/test_config.py
#
# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License.
#
'''
Configuration loading and validation
'''
import pytest

import azprov
from azprov import config
import azprov.clouds
from azprov.exceptions import ConfigError

class TestDefaults():
    '''
    Built-in defaults
    '''
    def test_builtin(self):
        assert config.cloud == 'AzureCloud'
        assert config.api_version == '2012-08-01'
        assert config.poll_interval == 60.0
        assert config.max_attempts == 30
        assert config.known_resource_types == tuple()
        assert config.service_endpoint == azprov.clouds.service_management_endpoint('AzureCloud')

    def test_unknown_attribute(self):
        with pytest.raises(AttributeError):
            config.no_such_setting # pylint: disable=pointless-statement
        assert config.get('no_such_setting', 'dflt') == 'dflt'

    def test_cloud_selects_endpoint(self):
        azprov.reset_caches(config_data={'defaults' : {'cloud' : 'AzureChinaCloud'}})
        assert config.service_endpoint == azprov.clouds.service_management_endpoint('AzureChinaCloud')
        assert config.service_endpoint != azprov.clouds.service_management_endpoint('AzureCloud')

class TestValidation():
    '''
    _dh__ handlers
    '''
    def test_values(self):
        azprov.reset_caches(config_data={'defaults' : {'poll_interval' : 5,
                                                       'max_attempts' : 3,
                                                       'service_endpoint' : 'https://sm.example.test/',
                                                       'known_resource_types' : ['Storage', 'HDInsight', 'Storage'],
                                                      }})
        assert config.poll_interval == 5.0
        assert config.max_attempts == 3
        assert config.service_endpoint == 'https://sm.example.test/'
        assert config.known_resource_types == ('Storage', 'HDInsight')

    @pytest.mark.parametrize('defaults', [{'poll_interval' : 0},
                                          {'poll_interval' : 'fast'},
                                          {'max_attempts' : -1},
                                          {'max_attempts' : True},
                                          {'cloud' : 'NoSuchCloud'},
                                          {'service_endpoint' : 'ftp://x'},
                                          {'known_resource_types' : 'Storage'},
                                          {'known_resource_types' : ['Storage', 7]},
                                          {'api_version' : ''},
                                          {'subscription_default' : 12},
                                         ])
    def test_invalid(self, defaults):
        azprov.reset_caches(config_data={'defaults' : defaults})
        with pytest.raises(ConfigError):
            config.to_dict()

    def test_defaults_not_dict(self):
        azprov.reset_caches(config_data={'defaults' : ['x']})
        with pytest.raises(ConfigError):
            config.to_dict()

    def test_read_only(self):
        with pytest.raises(TypeError):
            config.subscriptions['x'] = 'y'

class TestSubscriptions():
    '''
    subscription_id_resolve()
    '''
    def test_resolve(self):
        azprov.reset_caches(config_data={'defaults' : {'subscription_default' : 'dev'},
                                         'subscriptions' : {'dev' : 'id-dev', 'prod' : 'id-prod'},
                                        })
        assert config.subscription_id_resolve('prod') == 'id-prod'
        assert config.subscription_id_resolve('') == 'id-dev'
        assert config.subscription_id_resolve('literal-id') == 'literal-id'

    def test_no_default(self):
        with pytest.raises(ConfigError):
            config.subscription_id_resolve('')

    def test_invalid_entry(self):
        azprov.reset_caches(config_data={'subscriptions' : {'dev' : ''}})
        with pytest.raises(ConfigError):
            config.subscription_id_resolve('dev')

class TestFiles():
    '''
    Locating and reading the file
    '''
    def test_explicit_path(self, tmp_path):
        path = tmp_path / 'cfg.yaml'
        path.write_text("defaults:\n  max_attempts: 4\nsubscriptions:\n  dev: id-dev\n")
        azprov.reset_caches(config_path=str(path))
        assert config.path == str(path)
        assert config.max_attempts == 4
        assert config.subscriptions['dev'] == 'id-dev'

    def test_environment(self, tmp_path, monkeypatch):
        path = tmp_path / 'env.yaml'
        path.write_text("defaults:\n  poll_interval: 2.5\n")
        monkeypatch.setenv('AZPROV_CONFIG', str(path))
        azprov.reset_caches()
        assert config.path == str(path)
        assert config.poll_interval == 2.5

    def test_home_default_missing_is_ok(self, tmp_path, monkeypatch):
        monkeypatch.setenv('HOME', str(tmp_path))
        azprov.reset_caches()
        assert config.path == str(tmp_path / '.azprov.yaml')
        assert config.max_attempts == 30

    def test_explicit_path_missing(self, tmp_path):
        azprov.reset_caches(config_path=str(tmp_path / 'nope.yaml'))
        with pytest.raises(ConfigError):
            config.to_dict()

    def test_empty_file(self, tmp_path):
        path = tmp_path / 'empty.yaml'
        path.write_text('')
        azprov.reset_caches(config_path=str(path))
        assert config.max_attempts == 30

    def test_unparseable(self, tmp_path):
        path = tmp_path / 'bad.yaml'
        path.write_text("defaults: [unclosed\n")
        azprov.reset_caches(config_path=str(path))
        with pytest.raises(ConfigError):
            config.to_dict()

    def test_not_a_dict(self, tmp_path):
        path = tmp_path / 'list.yaml'
        path.write_text("- a\n- b\n")
        azprov.reset_caches(config_path=str(path))
        with pytest.raises(ConfigError):
            config.to_dict()
