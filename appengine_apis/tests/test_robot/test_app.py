# -*- coding: utf-8 -*-

'''

    appengine_apis robot tests: webhook app

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
import datetime

# 3rd party
import webapp2

# appengine_apis
from appengine_apis.util import json
from appengine_apis.robot import app
from appengine_apis.platform.logservice import Level

# appengine_apis tests
from appengine_apis.tests import AppEngineTestCase
from appengine_apis.tests.test_robot import event_bundle


class FixedClockRobot(app.Robot):

    ''' Sample robot that always reads the same time. '''

    clock_source = staticmethod(lambda: datetime.datetime(2009, 5, 1, 12, 0, 0))


## RobotAppTests
# Tests the robot's routes end to end.
class RobotAppTests(AppEngineTestCase):

    ''' Tests `robot.app.create_app`. '''

    def setUp(self):
        super(RobotAppTests, self).setUp()
        self.app = app.create_app(self.platform, robot_class=FixedClockRobot)

    def get(self, path):
        return webapp2.Request.blank(path).get_response(self.app)

    def post(self, path, body):
        request = webapp2.Request.blank(path)
        request.method = 'POST'
        request.content_type = 'application/json'
        request.body = body.encode('utf-8') if isinstance(body, str) else body
        return request.get_response(self.app)

    def operations(self, response):
        return json.loads(response.body)['operations']['list']

    def test_registry(self):
        self.assertIs(self.app.registry['platform'], self.platform)
        self.assertIs(self.app.registry['robot_class'], FixedClockRobot)

    def test_root(self):
        response = self.get('/')
        self.assertEqual(response.status_int, 200)
        self.assertEqual(response.content_type, 'text/plain')
        self.assertEqual(response.text, 'I AM WAVE ROBOT! I sing like Frank on JRuby!')

    def test_capabilities(self):
        response = self.get('/_wave/capabilities.xml')
        self.assertEqual(response.status_int, 200)
        self.assertEqual(response.content_type, 'text/xml')
        self.assertIn('<w:capability name="DOCUMENT_CHANGED" content="true" />', response.text)
        self.assertIn('<w:capability name="clock" content="true" />', response.text)

    def test_jsonrpc(self):

        ''' Posted events run, and the queued operations come back. '''

        response = self.post('/_wave/robot/jsonrpc', event_bundle())
        self.assertEqual(response.status_int, 200)
        self.assertEqual(response.content_type, 'application/json')

        operations = self.operations(response)
        self.assertEqual(len(operations), 1)
        self.assertEqual(operations[0]['type'], 'DOCUMENT_REPLACE')
        self.assertEqual(operations[0]['property'], 'Only I get to edit the top blip!')

    def test_jsonrpc_logging(self):

        ''' Input and output are written to the platform log service. '''

        self.post('/_wave/robot/jsonrpc', event_bundle())
        messages = [record.message for record in self.platform.logservice.records]
        self.assertEqual(len(messages), 2)
        self.assertTrue(messages[0].startswith('Input: '))
        self.assertTrue(messages[1].startswith('Output: '))
        self.assertEqual([record.level for record in self.platform.logservice.records], [Level.info, Level.info])

    def test_jsonrpc_unhandled(self):
        response = self.post('/_wave/robot/jsonrpc', event_bundle('BLIP_SUBMITTED'))
        self.assertEqual(response.status_int, 200)
        self.assertEqual(self.operations(response), [])

    def test_jsonrpc_bad_bundle(self):
        response = self.post('/_wave/robot/jsonrpc', '{nope')
        self.assertEqual(response.status_int, 400)

    def test_command(self):

        ''' Named commands run against the posted bundle. '''

        response = self.post('/_wave/robot/clock', event_bundle())
        self.assertEqual(response.status_int, 200)
        self.assertEqual(self.operations(response)[0]['property'], "It's Fri May 01 12:00:00 2009")

        response = self.post('/_wave/robot/name', event_bundle())
        self.assertEqual(self.operations(response), [])

    def test_command_errors(self):

        ''' Unknown commands are 404s; bad bundles are 400s. '''

        self.assertEqual(self.post('/_wave/robot/fly', event_bundle()).status_int, 404)
        self.assertEqual(self.post('/_wave/robot/clock', 'garbage').status_int, 400)
