#
# azprov/clouds.py
#
# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License.
#
'''
Wrappers to manage fetching msrestazure.azure_cloud.Cloud objects
and the Service Management endpoints they describe
'''
import inspect

import msrestazure.azure_cloud

from azprov.base_defaults import EXC_VALUE_DEFAULT

_CLOUDS = {tup[1].name : tup[1] for tup in inspect.getmembers(msrestazure.azure_cloud) if isinstance(tup[1], msrestazure.azure_cloud.Cloud)}

# Older tooling reports the public cloud as AzurePublicCloud
_CLOUDS['AzurePublicCloud'] = msrestazure.azure_cloud.AZURE_PUBLIC_CLOUD

_CLOUDS_LOWER = {k.lower() : v for k, v in _CLOUDS.items()}

def cloud_names():
    '''
    Return a sorted list of known cloud names
    '''
    return sorted(_CLOUDS.keys())

def cloud_get(name, exc_value=EXC_VALUE_DEFAULT):
    '''
    Return the named cloud object
    '''
    try:
        return _CLOUDS_LOWER[name.lower()]
    except (AttributeError, KeyError) as exc:
        raise exc_value("unknown cloud %r" % name) from exc

def service_management_endpoint(name, exc_value=EXC_VALUE_DEFAULT):
    '''
    Return the Service Management base URL for the named cloud
    '''
    cloud = cloud_get(name, exc_value=exc_value)
    ret = cloud.endpoints.management
    if not ret:
        raise exc_value("cloud %r has no management endpoint" % name)
    return ret
