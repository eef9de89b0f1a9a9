#
# azprov/common.py
#
# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License.
#
'''
Command-line application framework: argument parsing, logging
setup, and turning ApplicationExit into the process exit status.
'''
import inspect
import logging
import os
import sys
import traceback

from azprov.base_defaults import (EXC_VALUE_DEFAULT,
                                  LOGGER_NAME_DEFAULT,
                                 )
from azprov.btypes import LogTo
from azprov._config import config
import azprov.clouds
from azprov.exceptions import (ApplicationExit,
                               ApplicationExitWithNote,
                              )
from azprov.util import (ArgExplicit,
                         ArgumentParser,
                         expand_item_pformat,
                         log_level_normalize,
                        )

class Application():
    '''
    Base class for a command-line application.

    A subclass adds its constructor arguments, registers matching
    options in main_add_parser_args() (calling super() first), and
    implements main_execute(), which must raise ApplicationExit.
    Option names that are not constructor arguments go in ARGS_SAVE;
    main_app_setup() hands them to args_save() instead.
    '''
    def __init__(self,
                 args_explicit=None,
                 debug=0,
                 exc_value=EXC_VALUE_DEFAULT,
                 log_level=None,
                 log_to=None,
                 log_file=None,
                 logger=None,
                 **kwargs):
        '''
        args_explicit: names of options given explicitly on the command line
        debug: extra diagnostics when > 0
        exc_value: exception class raised for invalid construction values
        logger: use this rather than creating one (log_* are then ignored)
        '''
        if kwargs:
            raise TypeError("%s: unexpected keyword arguments %s" % (type(self).__name__, ','.join(sorted(kwargs.keys()))))
        self.args_explicit = set(args_explicit or set())
        self.debug = debug
        self.exc_value = exc_value
        self._args_saved = None
        self.logger = logger if logger is not None else self._logger_create(log_level, log_to, log_file)

    LOGGER_NAME = LOGGER_NAME_DEFAULT
    LOG_FORMAT = "%(message)s"
    LOG_LEVEL_DEFAULT = 'info'
    LOG_LEVEL_CHOICES = ('debug', 'info', 'warning', 'error', 'critical')

    # stdout carries action output
    LOG_TO_DEFAULT = LogTo.STDERR.value

    # azure-identity and azure-core are chatty at info
    NOISY_LOGGERS = (('azure.core.pipeline.policies.http_logging_policy', logging.WARNING),
                     ('azure.identity', logging.WARNING),
                     ('azure.identity._internal.decorators', logging.ERROR),
                     ('urllib3.connectionpool', logging.WARNING),
                    )

    @staticmethod
    def _stream_for(log_to):
        '''
        Return the stream named by log_to
        '''
        return sys.stderr if LogTo(log_to) == LogTo.STDERR else sys.stdout

    @classmethod
    def _logger_create(cls, log_level, log_to, log_file):
        '''
        Configure logging and return the application logger
        '''
        if log_file:
            dirname = os.path.dirname(os.path.abspath(log_file))
            if not (os.path.isdir(dirname) and os.access(dirname, os.W_OK)):
                raise ApplicationExit("cannot write log file %r: %r is not a writable directory" % (log_file, dirname))
            logging.basicConfig(format=cls.LOG_FORMAT, filename=log_file)
        else:
            logging.basicConfig(format=cls.LOG_FORMAT, stream=cls._stream_for(log_to if log_to is not None else cls.LOG_TO_DEFAULT))
        logger = logging.getLogger(name=cls.LOGGER_NAME)
        logger.setLevel(log_level_normalize(log_level if log_level is not None else cls.LOG_LEVEL_DEFAULT))
        for name, level in cls.NOISY_LOGGERS:
            logging.getLogger(name=name).setLevel(level)
        return logger

    ARGS_SAVE = ()

    def args_save(self, args_saved):
        '''
        Keep the command-line values named in ARGS_SAVE (dict)
        '''
        if self._args_saved is not None:
            raise RuntimeError("%s: arguments already saved" % type(self).__name__)
        self._args_saved = dict(args_saved)

    @classmethod
    def args_process(cls, args_dict):
        '''
        Split parsed arguments into (constructor kwargs, saved args)
        using ARGS_SAVE from every class in the hierarchy.
        '''
        names = set()
        for kls in inspect.getmro(cls):
            names.update(vars(kls).get('ARGS_SAVE', ()))
        args_saved = {name : args_dict.pop(name) for name in names if name in args_dict}
        return args_dict, args_saved

    @classmethod
    def main_handle_parser_args(cls, ap_args):
        '''
        Adjust the parsed argparse.Namespace before construction.
        --config_path selects the config file and is not passed on.
        '''
        if not hasattr(ap_args, 'args_explicit'):
            ap_args.args_explicit = set()
        config_path = getattr(ap_args, 'config_path', None)
        if config_path:
            config.path = config_path
        if hasattr(ap_args, 'config_path'):
            delattr(ap_args, 'config_path')

    @classmethod
    def main_app_setup(cls, cmd_args):
        '''
        Parse cmd_args (list of str) and construct the application.
        Returns (app, debug, logger).
        '''
        ap_parser = ArgumentParser(allow_abbrev=False)
        cls.main_add_parser_args(ap_parser)
        ap_args = ap_parser.parse_args(args=cmd_args)
        cls.main_handle_parser_args(ap_args)
        args_dict, args_saved = cls.args_process(vars(ap_args))
        args_dict['exc_value'] = ApplicationExit
        app = cls(**args_dict)
        app.args_save(args_saved)
        return app, app.debug, app.logger

    @classmethod
    def main(cls):
        '''
        Console script entrypoint
        '''
        cls.main_with_args(sys.argv[1:])

    @classmethod
    def main_with_args(cls, cmd_args):
        '''
        Set up and run the application. Always raises SystemExit:
        the ApplicationExit code when it is an int, else 1.
        '''
        debug = 0
        logger = None
        try:
            app, debug, logger = cls.main_app_setup(cmd_args)
            app.main_execute()
            raise ApplicationExit("%s.main_execute returned without exiting" % type(app).__name__)
        except ApplicationExit as exc:
            msg = exc.note if isinstance(exc, ApplicationExitWithNote) else ''
            if not isinstance(exc.code, int):
                msg = str(exc)
            if msg:
                cls._report(logger, msg)
            if (debug > 0) and (logger is not None):
                logger.debug("exit stack:\n%s", traceback.format_exc())
            raise SystemExit(exc.code if isinstance(exc.code, int) else 1) from exc
        except Exception as exc:
            cls._report(logger, "%r\n%s\n%s" % (exc, expand_item_pformat(exc), traceback.format_exc()))
            raise SystemExit(1) from exc

    @classmethod
    def _report(cls, logger, msg):
        '''
        Log msg as an error, or print it when there is no logger yet
        '''
        if logger is not None:
            logger.error("%s", msg)
        else:
            print(msg, file=cls._stream_for(cls.LOG_TO_DEFAULT), flush=True)

    @staticmethod
    def debug_default():
        '''
        Default --debug from AZPROV_DEBUG
        '''
        env = os.environ.get('AZPROV_DEBUG', '')
        try:
            return int(env) if env else 0
        except ValueError as exc:
            raise ApplicationExit("invalid value %r for AZPROV_DEBUG" % env) from exc

    @classmethod
    def main_add_parser_args(cls, ap_parser):
        '''
        Register command-line options. Subclasses extend this
        and call super().main_add_parser_args(ap_parser).
        '''
        group = ap_parser.get_argument_group('common')
        group.add_argument('--debug', type=int, default=cls.debug_default(),
                           action=ArgExplicit,
                           help='debug level')
        group.add_argument('--log_level', type=str, default=cls.LOG_LEVEL_DEFAULT, choices=cls.LOG_LEVEL_CHOICES,
                           action=ArgExplicit,
                           help='log level')
        group.add_argument('--log_to', type=str, default=cls.LOG_TO_DEFAULT, choices=LogTo.values(),
                           action=ArgExplicit,
                           help='log destination')
        group.add_argument('--log_file', type=str, default=None,
                           action=ArgExplicit,
                           help='log to this file instead (overrides --log_to)')
        group.add_argument('--config_path', type=str, default=None,
                           action=ArgExplicit,
                           help='configuration file (default: $AZPROV_CONFIG or ~/.azprov.yaml)')

    def main_execute(self):
        '''
        Do the work. Must raise ApplicationExit.
        '''
        raise NotImplementedError("%s did not implement this method" % type(self).__name__)

class ApplicationWithSubscription(Application):
    '''
    Application that operates on a subscription.
    subscription_id may be an id or a name from the
    subscriptions section of the config. Empty means
    the configured subscription_default.
    '''
    def __init__(self, subscription_id='', cloud='', service_endpoint='', **kwargs):
        super().__init__(**kwargs)
        self.cloud = cloud or config.cloud
        if service_endpoint:
            self.service_endpoint = service_endpoint
        elif cloud:
            self.service_endpoint = azprov.clouds.service_management_endpoint(cloud, exc_value=self.exc_value)
        else:
            self.service_endpoint = config.service_endpoint
        self.subscription_id = config.subscription_id_resolve(subscription_id, exc_value=self.exc_value)

    @classmethod
    def main_add_parser_args(cls, ap_parser):
        '''
        See azprov.common.Application.main_add_parser_args()
        '''
        super().main_add_parser_args(ap_parser)
        group = ap_parser.get_argument_group('subscription')
        group.add_argument('--subscription_id', type=str, default='',
                           action=ArgExplicit,
                           help='subscription ID or configured name on which to operate (default from config)')
        group.add_argument('--cloud', type=str, default='',
                           action=ArgExplicit,
                           help='Azure cloud name (default from config; one of %s)' % ', '.join(azprov.clouds.cloud_names()))
        group.add_argument('--service_endpoint', type=str, default='',
                           action=ArgExplicit,
                           help='Service Management endpoint URL (overrides cloud)')
