# -*- coding: utf-8 -*-

'''

    appengine_apis service tests: logger

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
from appengine_apis import logger
from appengine_apis.platform.logservice import Level

# appengine_apis tests
from appengine_apis.tests import AppEngineTestCase


## LoggerTests
class LoggerTests(AppEngineTestCase):

    ''' Tests `logger.Logger`. '''

    def setUp(self):
        super(LoggerTests, self).setUp()
        self.logger = logger.Logger(self.platform)

    @property
    def logs(self):
        return [(record.level, record.message) for record in self.platform.logservice.records]

    def test_log(self):
        self.logger.warn('foobar')
        self.assertEqual(self.logs, [(Level.warn, 'foobar')])

    def test_levels(self):

        ''' Records under the logger's level are dropped. '''

        self.logger.level = logbook.INFO
        self.logger.debug('debug')
        self.logger.info('info')
        self.logger.critical('fatal')
        self.assertEqual(self.logs, [(Level.info, 'info'), (Level.fatal, 'fatal')])

    def test_severities(self):

        ''' Every logbook level maps to a log service level. '''

        self.logger.level = logbook.TRACE
        self.logger.notice('notice')
        self.logger.error('error')
        self.logger.trace('trace')
        self.assertEqual([level for level, _ in self.logs], [Level.info, Level.error, Level.debug])

    def test_shift(self):

        ''' ``<<`` writes at info, without a program name. '''

        self.logger.progname = 'app'
        result = self.logger << 'flowers'
        self.assertIs(result, self.logger)
        self.logger.write('more')
        self.assertEqual(self.logs, [(Level.info, 'flowers'), (Level.info, 'more')])

    def test_progname(self):

        ''' Messages are prefixed with the program name, unless they are it. '''

        named = logger.Logger(self.platform, progname='robot')
        named.info('started')
        named.add(logbook.WARNING, 'careful', 'other')
        named.add(logbook.INFO, None, 'robot')
        named.add(logbook.INFO, 'no prefix', '')
        self.assertEqual(self.logs, [
            (Level.info, 'robot: started'),
            (Level.warn, 'other: careful'),
            (Level.info, 'robot'),
            (Level.info, 'no prefix')])

    def test_braces(self):

        ''' Messages are logged verbatim. '''

        self.logger.info('{"a": 1}')
        self.assertEqual(self.logs, [(Level.info, '{"a": 1}')])

    def test_no_bubbling(self):

        ''' Records stop at the log service handler. '''

        with logbook.TestHandler() as handler:
            self.logger.info('quiet')
        self.assertFalse(handler.records)
        self.assertEqual(len(self.logs), 1)
