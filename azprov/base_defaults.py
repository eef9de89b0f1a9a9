#
# azprov/base_defaults.py
#
# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License.
#
'''
Default settings that are not loaded from any configuration.
To keep dependencies simple, use only Python built-in types here.
'''
# Service Management (RDFE) schema namespace for request and response bodies
AZURE_XML_NAMESPACE = 'http://schemas.microsoft.com/windowsazure'

# Provider registration calls are pinned to this API version.
# Keep in sync with what the list/action paths in azprov.wire expect.
API_VERSION_DEFAULT = '2012-08-01'

CLOUD_DEFAULT = 'AzureCloud'

CONFIG_ENV = 'AZPROV_CONFIG'
CONFIG_FILENAME_DEFAULT = '.azprov.yaml'

EXC_VALUE_DEFAULT = ValueError

HEADER_ACCEPT = 'Accept'
HEADER_API_VERSION = 'x-ms-version'
HEADER_CLIENT_REQUEST_ID = 'x-ms-client-request-id'
HEADER_CLIENT_SESSION_ID = 'x-ms-client-session-id'
HEADER_REQUEST_ID = 'x-ms-request-id'

LOGGER_NAME_DEFAULT = 'azprov'

MEDIA_TYPE_XML = 'application/xml'

# Long-running operation polling: 30 polls, one minute apart
MAX_ATTEMPTS_DEFAULT = 30
POLL_INTERVAL_DEFAULT = 60.0

# Prefix for item expansion
PF = '  '

# Class/module attribute that declares the resource type a client needs
RESOURCE_TYPE_MARKER = 'RESOURCE_TYPE_NAME'

# Per-request timeout (seconds) handed to requests
TRANSPORT_TIMEOUT_DEFAULT = 100.0
