# -*- coding: utf-8 -*-

'''

    appengine_apis platform: log service

    application log service. keeps the request's application log lines
    with their level and a microsecond timestamp.

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

# stdlib
import enum
import time
import threading
import collections


class Level(enum.Enum):

    ''' Application log levels. '''

    debug = 0
    info = 1
    warn = 2
    error = 3
    fatal = 4


LogRecord = collections.namedtuple('LogRecord', ['level', 'timestamp_usec', 'message'])


## LogService
class LogService(object):

    ''' Records application log lines in memory. '''

    def __init__(self, clock=None):
        self.clock = clock or time.time
        self.records = []
        self._lock = threading.Lock()

    def log(self, level, message):

        ''' Record ``message`` at ``level``. Trailing newlines are dropped and
            empty messages are skipped. Returns the record, if any. '''

        if not isinstance(level, Level):
            level = Level[level]
        message = (message or '').rstrip('\r\n')
        if not message:
            return None
        record = LogRecord(level, int(self.clock() * 1000000), message)
        with self._lock:
            self.records.append(record)
        return record

    def clear(self):
        with self._lock:
            del self.records[:]
