# -*- coding: utf-8 -*-

'''

    appengine_apis logger

    a logbook logger that writes application log lines to the platform's
    log service.

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

# 3rd party
import logbook

# appengine_apis
from appengine_apis.platform.logservice import Level


## Constants
SEVERITIES = {
    logbook.TRACE: Level.debug,
    logbook.DEBUG: Level.debug,
    logbook.INFO: Level.info,
    logbook.NOTICE: Level.info,
    logbook.WARNING: Level.warn,
    logbook.ERROR: Level.error,
    logbook.CRITICAL: Level.fatal
}


## LogServiceHandler
# Routes logbook records to a platform log service.
class LogServiceHandler(logbook.Handler):

    ''' Writes each record to the log service at the mapped severity,
        prefixed with ``progname`` when it is set and differs from the
        message. '''

    def __init__(self, logservice, progname=None, level=logbook.NOTSET, filter=None, bubble=False):
        super(LogServiceHandler, self).__init__(level, filter, bubble)
        self.logservice, self.progname = logservice, progname

    def format_message(self, record):
        message = str(record.message)
        progname = record.extra['progname'] if 'progname' in record.extra else self.progname
        if progname and progname != message:
            message = '%s: %s' % (progname, message)
        return message

    def emit(self, record):
        self.logservice.log(SEVERITIES.get(record.level, Level.info), self.format_message(record))


## Logger
# Application logger for one platform.
class Logger(logbook.Logger):

    ''' Logbook logger whose records go to the platform log service.

        ``logger << message`` and ``logger.write(message)`` log at info,
        without the ``progname`` prefix. '''

    def __init__(self, platform, name='appengine', level=logbook.DEBUG, progname=None):
        super(Logger, self).__init__(name, level)
        self.platform = platform
        self.handler = LogServiceHandler(platform.logservice, progname)
        self.handlers.append(self.handler)

    def _get_progname(self):
        return self.handler.progname

    def _set_progname(self, progname):
        self.handler.progname = progname

    progname = property(_get_progname, _set_progname)

    def add(self, level, message=None, progname=None):

        ''' Log ``message`` at ``level``. With no message, ``progname`` is
            logged under the logger's own progname. '''

        if message is None:
            message, progname = progname, None
        if progname is None:
            progname = self.progname
        self.log(level, message, extra={'progname': progname or ''})

    def write(self, message):
        self.add(logbook.INFO, str(message), '')

    def __lshift__(self, message):
        self.write(message)
        return self
