#
# azprov/provider_tool.py
#
# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License.
#
'''
Command-line tool to inspect and change resource provider
registration for a subscription, and to wait for asynchronous
Service Management operations.

Examples:
  azprov resources_list Storage HDInsight --subscription_id mysub
  azprov register_missing
  azprov operation_wait --tracking_id 0123abcd --poll_interval 10
'''
import importlib

import azure.identity

from azprov.common import ApplicationWithSubscription
from azprov.command import Command
from azprov._config import config
from azprov.exceptions import (ApplicationExit,
                               ApplicationExitWithNote,
                               OperationTimeoutError,
                              )
from azprov.registration import (ProviderRegistrar,
                                 ResourceRegistrationClient,
                                 resource_types_from_modules,
                                )
from azprov.subscription import Subscription
from azprov.transport import RequestsTransport
from azprov.util import ArgExplicit
from azprov.waiter import (LongRunningOperationWaiter,
                           OperationStatusClient,
                          )

command = Command()

class ProviderTool(ApplicationWithSubscription):
    '''
    Application that drives ResourceRegistrationClient,
    ProviderRegistrar, and LongRunningOperationWaiter.
    transport and credential may be passed to construction
    to bypass building them from the command-line arguments.
    '''
    def __init__(self,
                 certificate='',
                 correlation_id='',
                 credential=None,
                 known_types_module=None,
                 managed_identity_client_id='',
                 max_attempts=None,
                 poll_interval=None,
                 tracking_id='',
                 transport=None,
                 **kwargs):
        super().__init__(**kwargs)
        self.certificate = certificate
        self.correlation_id = correlation_id
        self.known_types_module = list(known_types_module or list())
        self.managed_identity_client_id = managed_identity_client_id
        self.max_attempts = max_attempts if max_attempts is not None else config.max_attempts
        self.poll_interval = poll_interval if poll_interval is not None else config.poll_interval
        self.tracking_id = tracking_id
        self._credential = credential
        self._transport = transport
        self._transport_owned = transport is None
        self._subscription = None

    @classmethod
    def main_add_parser_args(cls, ap_parser):
        '''
        See azprov.common.Application.main_add_parser_args()
        '''
        super().main_add_parser_args(ap_parser)

        # We could say choices=command.actions here, but this
        # keeps the error path for unknown actions in one place.
        ap_parser.add_argument('action', type=str,
                               help='what to do (%s)' % ', '.join(command.actions))
        ap_parser.add_argument('resource_types', type=str, nargs='*',
                               help='resource types (default from config)')

        pt_group = ap_parser.get_argument_group('provider_tool')
        pt_group.add_argument('--certificate', type=str, default='',
                              action=ArgExplicit,
                              help='client certificate (PEM file) for Service Management authentication')
        pt_group.add_argument('--correlation_id', type=str, default='',
                              action=ArgExplicit,
                              help='client session id sent with every request (default generated)')
        pt_group.add_argument('--known_types_module', type=str, action='append', default=None,
                              help='import this module and scan it for declared resource types (may repeat)')
        pt_group.add_argument('--managed_identity_client_id', type=str, default='',
                              action=ArgExplicit,
                              help='client id for managed identity credentials (default az login credentials)')
        pt_group.add_argument('--max_attempts', type=int, default=None,
                              action=ArgExplicit,
                              help='maximum number of status polls (default from config)')
        pt_group.add_argument('--poll_interval', type=float, default=None,
                              action=ArgExplicit,
                              help='seconds between status polls (default from config)')
        pt_group.add_argument('--tracking_id', type=str, default='',
                              action=ArgExplicit,
                              help='tracking id of an asynchronous operation')

    ARGS_SAVE = ('action',
                 'resource_types',
                )

    ######################################################################
    # plumbing

    @property
    def subscription(self):
        '''
        Getter for the Subscription this tool operates on
        '''
        if self._subscription is None:
            self._subscription = Subscription(self.subscription_id,
                                              service_endpoint=self.service_endpoint,
                                              correlation_id=self.correlation_id,
                                              exc_value=self.exc_value)
            self.logger.debug("%s.subscription %r", type(self).__name__, self._subscription)
        return self._subscription

    def credential_generate(self):
        '''
        Generate a credential for bearer-token authentication.
        With a managed identity client id, use ManagedIdentityCredential;
        otherwise use the az login credentials.
        '''
        if self.managed_identity_client_id:
            return azure.identity.ManagedIdentityCredential(client_id=self.managed_identity_client_id)
        return azure.identity.AzureCliCredential()

    @property
    def transport(self):
        '''
        Getter for the Transport; built on first use
        '''
        if self._transport is None:
            if self.certificate:
                self._transport = RequestsTransport(self.service_endpoint, certificate=self.certificate, logger=self.logger, exc_value=self.exc_value)
            else:
                credential = self._credential if self._credential is not None else self.credential_generate()
                self._transport = RequestsTransport(self.service_endpoint, credential=credential, logger=self.logger, exc_value=self.exc_value)
        return self._transport

    def close(self):
        '''
        Release the transport if this object built it
        '''
        transport = self._transport
        if transport is not None and self._transport_owned:
            self._transport = None
            transport.close()

    @property
    def registration_client(self):
        '''
        Return a new ResourceRegistrationClient
        '''
        return ResourceRegistrationClient(self.subscription, self.transport, api_version=config.api_version, logger=self.logger)

    @property
    def operation_status_client(self):
        '''
        Return a new OperationStatusClient
        '''
        return OperationStatusClient(self.subscription, self.transport, api_version=config.api_version, logger=self.logger)

    def resource_types_effective(self):
        '''
        Return the resource types named on the command-line.
        If there are none, use those declared by --known_types_module
        modules, then those in the config.
        '''
        ret = list((self._args_saved or dict()).get('resource_types', None) or list())
        if not ret and self.known_types_module:
            modules = [importlib.import_module(name) for name in self.known_types_module]
            ret = resource_types_from_modules(modules)
        if not ret:
            ret = list(config.known_resource_types)
        if not ret:
            self.logger.error("no resource types given and none configured")
            raise ApplicationExit(1)
        return ret

    def tracking_id_effective(self):
        '''
        Return --tracking_id or fail
        '''
        if not self.tracking_id:
            self.logger.error("--tracking_id is required")
            raise ApplicationExit(1)
        return self.tracking_id

    ######################################################################
    # actions

    @command.printable
    def resources_list(self):
        '''
        Print type and state of each resource
        '''
        resources = self.registration_client.list_resources(self.resource_types_effective())
        return ["%s %s" % (res.type, res.state) for res in resources]

    @command.printable
    def register(self):
        '''
        Register each named resource type
        '''
        client = self.registration_client
        return ["%s %s" % (name, client.register_resource_type(name)) for name in self.resource_types_effective()]

    @command.printable
    def unregister(self):
        '''
        Unregister each named resource type
        '''
        client = self.registration_client
        return ["%s %s" % (name, client.unregister_resource_type(name)) for name in self.resource_types_effective()]

    @command.simple
    def register_missing(self):
        '''
        Register every known resource type that is not registered
        '''
        registrar = ProviderRegistrar(self.registration_client, logger=self.logger)
        results = registrar.register_missing(self.resource_types_effective())
        for name in sorted(results.registered):
            print("%s registered" % name)
        for name in sorted(results.already):
            print("%s already" % name)
        for name in sorted(results.unsupported):
            print("%s unsupported" % name)
        for name in results.failed_names:
            print("%s failed %s" % (name, results.failed[name]))
        if not results.succeeded:
            raise ApplicationExitWithNote(1, "registration failed for %s" % ' '.join(results.failed_names))

    @staticmethod
    def _status_str(status):
        '''
        Human-readable single line for OperationStatus
        '''
        ret = "%s %s" % (status.tracking_id, status.status.value)
        if status.error_details is not None:
            ret += " %s" % status.error_details
        return ret

    @command.printable
    def operation_status(self):
        '''
        Print the current status of --tracking_id
        '''
        return self._status_str(self.operation_status_client.get_operation_status(self.tracking_id_effective()))

    @command.simple
    def operation_wait(self):
        '''
        Wait for --tracking_id to complete
        '''
        tracking_id = self.tracking_id_effective()
        waiter = LongRunningOperationWaiter(self.operation_status_client,
                                            poll_interval=self.poll_interval,
                                            max_attempts=self.max_attempts,
                                            logger=self.logger)
        try:
            status = waiter.wait_for(tracking_id, exc_value=self.exc_value)
        except OperationTimeoutError as exc:
            self.logger.error("%s", exc)
            raise ApplicationExit(1) from exc
        print(self._status_str(status))
        if not status.succeeded:
            raise ApplicationExit(1)

    def main_execute(self):
        '''
        See azprov.common.Application.main_execute()
        '''
        action = self._args_saved['action']
        try:
            if not self.command.handle(action, ('printable', 'simple'), self):
                self.logger.error("Unknown action '%s'", action)
                raise ApplicationExit(1)
        finally:
            self.close()
        raise ApplicationExit(0)

    command = None

ProviderTool.command = command

def main():
    '''
    Console script entrypoint
    '''
    ProviderTool.main()

if __name__ == '__main__':
    main()
