# -*- coding: utf-8 -*-

'''

    appengine_apis util: debug

    named, cached logging channels for each component of the service
    bindings, backed by Logbook.

    :author: Sam Gammon <sam@momentum.io>
    :copyright: (c) momentum labs, 2013
    :license: The inspection, use, distribution, modification or implementation
              of this source code is governed by a private license - all rights
              are reserved by the Authors (collectively, "momentum labs, ltd")
              and held under relevant California and US Federal Copyright laws.
              For full details, see ``LICENSE.md`` at the root of this project.
              Continued inspection of this source code demands agreement with
              the included license and explicitly means acceptance to these terms.

'''

# Base Imports
import os
import sys

# 3rd party
import logbook

# Exceptions
from appengine_apis.exceptions import AppEngineAPIError

# Debug mode
debug = any([os.environ.get('SERVER_SOFTWARE', 'Default').startswith(x) for x in frozenset(('Develop', 'Sandbox'))])

_loggers = {}
_root_logger = None


## LoggingException
# Thrown if a logging channel is misconfigured.
class LoggingException(AppEngineAPIError):
    pass


def _channel_key(path, name):

    ''' Build the cache key for a channel at ``path``/``name``. '''

    if name not in frozenset([False, None, True, '']):
        return path, name
    return (path,)


## APILogger
# Represents a logging channel for a single component.
class APILogger(logbook.Logger):

    ''' Logging controller for outputting debug information from different levels of the bindings. '''

    # Logging channel config
    channel_name = '_root_'
    channel_path = 'appengine_apis'
    channel_parent = None

    conditional = debug
    _initialized = False

    def __new__(cls, path='appengine_apis', name='_root_', parent_channel=None):

        ''' Create a new logger channel, or return it if it already exists. '''

        if not isinstance(path, str) or path in frozenset(['']):
            raise LoggingException('Invalid logging channel path: "%s".' % path)

        logger_k = _channel_key(path, name)
        if logger_k in _loggers:
            return _loggers[logger_k]
        return super(APILogger, cls).__new__(cls)

    def __init__(self, path='appengine_apis', name='_root_', parent_channel=None):

        ''' Init a new logger channel. '''

        if self._initialized:
            return

        ## splice in root as parent if unspecified
        if parent_channel is None:
            parent_channel = _root_logger

        ## explicit flag for parent-less channel
        elif parent_channel is False:
            parent_channel = None

        super(APILogger, self).__init__('.'.join([i for i in (path, name) if i]))

        self.channel_path, self.channel_name, self.channel_parent = path, name, parent_channel
        self._initialized = True
        _loggers[_channel_key(path, name)] = self

    def extend(self, path=None, name=None):

        ''' Extend an existing channel into a new one. '''

        if path is None and name is None:
            raise LoggingException('Cannot extend logging channel without appending a name or a path.')

        if path is not None:
            path = '.'.join(self.channel_path.split('.') + path.split('.'))
        else:
            path = self.channel_path
        return self.__class__(path=path, name=name, parent_channel=self)

    def _setcondition(self, conditional):

        ''' Set a local flag to enable/disable logging through this pipe. '''

        self.conditional = conditional
        return self

    def _send_log(self, message, module=None, severity='info', **kwargs):

        ''' Output a log message through logbook, if this pipe is enabled. '''

        if self.conditional:
            if module is not None:
                message = '[%s] %s' % (module, message)
            return getattr(super(APILogger, self), severity)(message, **kwargs)

    def dev(self, message, module=None):

        ''' `Development` severity. '''

        if debug:
            return self._send_log(message, module, 'info')

    def debug(self, message, module=None):

        ''' `Debug` severity. '''

        return self._send_log(message, module, 'info' if debug else 'debug')

    def verbose(self, message, module=None):

        ''' `Verbose` severity. '''

        return self._send_log(message, module, 'debug')

    def info(self, message, module=None):

        ''' `Info` severity. '''

        return self._send_log(message, module, 'info')

    def warning(self, message, module=None):

        ''' `Warning` severity. '''

        return self._send_log(message, module, 'warning')

    warn = warning

    def error(self, message, module=None, exc_info=None):

        ''' `Error` severity. '''

        if exc_info:
            return self._send_log(message, module, 'error', exc_info=exc_info)
        return self._send_log(message, module, 'error')

    def exception(self, message, module=None):

        ''' `Error` severity, with the exception currently being handled. '''

        return self._send_log(message, module, 'error', exc_info=sys.exc_info())

    def critical(self, message, module=None):

        ''' `Critical` severity. '''

        return self._send_log(message, module, 'critical')


## create root logger
_root_logger = APILogger(path='appengine_apis', name='', parent_channel=False)
