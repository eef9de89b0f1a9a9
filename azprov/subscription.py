#
# azprov/subscription.py
#
# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License.
#
'''
Identity of the subscription on whose behalf requests are issued
'''
import uuid

from azprov.base_defaults import EXC_VALUE_DEFAULT

class Subscription():
    '''
    subscription_id: target subscription
    service_endpoint: Service Management base URL
    correlation_id: sent as the client session id on every request
      made for this subscription. Generated if not supplied.
    '''
    def __init__(self, subscription_id, service_endpoint='', correlation_id='', exc_value=EXC_VALUE_DEFAULT):
        if not (subscription_id and isinstance(subscription_id, str)):
            raise exc_value("invalid subscription_id %r" % subscription_id)
        if not isinstance(service_endpoint, str):
            raise exc_value("invalid service_endpoint %r" % service_endpoint)
        if not isinstance(correlation_id, str):
            raise exc_value("invalid correlation_id %r" % correlation_id)
        self.subscription_id = subscription_id
        self.service_endpoint = service_endpoint
        self.correlation_id = correlation_id or str(uuid.uuid4())

    def __repr__(self):
        return "%s(%r, service_endpoint=%r, correlation_id=%r)" % (type(self).__name__, self.subscription_id, self.service_endpoint, self.correlation_id)
