#
# azprov/__init__.py
#
# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License.
#
'''
Base azprov import
'''
from ._config import config

__all__ = ['config',
          ]

def reset_caches(config_path='', config_data=None):
    '''
    Discard cached content.
    '''
    config.reset(path=config_path, data=config_data)
