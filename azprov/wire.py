#
# azprov/wire.py
#
# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License.
#
'''
Service Management wire format: request paths, request headers,
and parsing of XML response bodies.

Paths are relative to the service endpoint. Subscription ids and
resource type names are inserted as given, without percent-encoding.
'''
import uuid

from defusedxml import (DefusedXmlException,
                        ElementTree,
                       )

from azprov.base_defaults import (API_VERSION_DEFAULT,
                                  AZURE_XML_NAMESPACE,
                                  HEADER_ACCEPT,
                                  HEADER_API_VERSION,
                                  HEADER_CLIENT_REQUEST_ID,
                                  HEADER_CLIENT_SESSION_ID,
                                  MEDIA_TYPE_XML,
                                 )
from azprov.btypes import RegistrationAction
from azprov.exceptions import MalformedResponseError
from azprov.models import (OperationError,
                           OperationStatus,
                           ProviderResource,
                          )

def _ns(tag):
    '''
    Return tag qualified with the Service Management namespace
    '''
    return '{%s}%s' % (AZURE_XML_NAMESPACE, tag)

def list_resources_path(subscription_id, known_types):
    '''
    Path for listing the registration state of known_types.
    known_types are joined in the order given.
    '''
    return '/%s/services/?serviceList=%s&expandlist=ServiceResource' % (subscription_id, ','.join(known_types))

def action_path(subscription_id, resource_type, action):
    '''
    Path for registering or unregistering resource_type.
    action is a RegistrationAction or its value.
    '''
    action = RegistrationAction.coerce(action, prefix='action')
    return '/%s/services?service=%s&action=%s' % (subscription_id, resource_type, action.value)

def operation_status_path(subscription_id, tracking_id):
    '''
    Path for Get Operation Status
    '''
    return '/%s/operations/%s' % (subscription_id, tracking_id)

def request_headers(correlation_id, api_version=API_VERSION_DEFAULT):
    '''
    Return a dict of headers required on every Service Management request.
    Each call generates a new client request id.
    '''
    ret = {HEADER_API_VERSION : api_version,
           HEADER_ACCEPT : MEDIA_TYPE_XML,
           HEADER_CLIENT_REQUEST_ID : str(uuid.uuid4()),
          }
    if correlation_id:
        ret[HEADER_CLIENT_SESSION_ID] = correlation_id
    return ret

def _root_parse(body):
    '''
    Parse body and return the root element.
    The root must be in the Service Management namespace.
    '''
    if isinstance(body, bytes):
        try:
            body = body.decode('utf-8')
        except UnicodeDecodeError as exc:
            raise MalformedResponseError("response body is not UTF-8: %s" % exc, body=body) from exc
    if not body or not body.strip():
        raise MalformedResponseError("empty response body", body=body or '')
    try:
        root = ElementTree.fromstring(body)
    except (DefusedXmlException, ElementTree.ParseError) as exc:
        raise MalformedResponseError("cannot parse response body: %s" % exc, body=body) from exc
    if not root.tag.startswith('{%s}' % AZURE_XML_NAMESPACE):
        raise MalformedResponseError("response root %r is not in namespace %r" % (root.tag, AZURE_XML_NAMESPACE), body=body)
    return root

def _child_text(elem, tag):
    '''
    Return the text of the namespaced child tag of elem, or '' if absent
    '''
    child = elem.find(_ns(tag))
    if child is None:
        return ''
    return child.text or ''

def parse_list_resources(body):
    '''
    Parse the body of a list-resources response.
    Returns a list of ProviderResource, one per Service element
    anywhere below the root, in document order.
    '''
    root = _root_parse(body)
    return [ProviderResource(_child_text(elem, 'Type'), _child_text(elem, 'State')) for elem in root.iter(_ns('Service')) if elem is not root]

def parse_operation_status(body, tracking_id=None):
    '''
    Parse the body of a Get Operation Status response.
    tracking_id is used if the document does not carry an ID.
    '''
    root = _root_parse(body)
    if root.tag != _ns('Operation'):
        raise MalformedResponseError("unexpected operation status root %r" % root.tag, body=body)
    op_id = _child_text(root, 'ID') or tracking_id
    txt = _child_text(root, 'HttpStatusCode')
    http_status_code = None
    if txt:
        try:
            http_status_code = int(txt)
        except ValueError:
            # not numeric; treat as absent
            http_status_code = None
    error_details = None
    err = root.find(_ns('Error'))
    if err is not None:
        error_details = OperationError(code=_child_text(err, 'Code'), message=_child_text(err, 'Message'))
    try:
        return OperationStatus(op_id, _child_text(root, 'Status'), error_details=error_details, http_status_code=http_status_code)
    except ValueError as exc:
        raise MalformedResponseError("operation %r: %s" % (op_id, exc), body=body) from exc
