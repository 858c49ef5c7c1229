# -*- coding: utf-8 -*-

'''

    appengine_apis robot: app

    the sample robot, and the webapp2 application that serves its
    webhook routes.

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
from appengine_apis import logger
from appengine_apis.robot import BadBundle
from appengine_apis.robot import AbstractRobot
from appengine_apis.robot import UnknownCommand


## Robot
# Sample robot: guards the root blip, and tells the time on request.
class Robot(AbstractRobot):

    clock_source = datetime.datetime.now

    def extra_commands(self):
        return ['clock', 'name', 'whine']

    def name(self, event=None, context=None):
        return self.robot_name

    def DOCUMENT_CHANGED(self, properties, context):
        wavelet = context.wavelets[0]
        context.get_blip_by_id(wavelet.root_blip_id).document.set_text('Only I get to edit the top blip!')

    def whine(self, event, context):
        return self.clock(event, context)

    def clock(self, event, context):
        wavelet = context.wavelets[0]
        now = self.clock_source().strftime('%a %b %d %H:%M:%S %Y')
        context.get_blip_by_id(wavelet.root_blip_id).document.set_text("It's %s" % now)


## RobotHandler
# Shared plumbing for the webhook handlers.
class RobotHandler(webapp2.RequestHandler):

    ''' Base handler: builds the robot and the platform logger from app
        registry entries. '''

    @webapp2.cached_property
    def robot(self):
        return self.app.registry['robot_class']()

    @webapp2.cached_property
    def logger(self):
        return logger.Logger(self.app.registry['platform'], name=self.robot.robot_name)

    def reply_json(self, context):
        output = self.robot.serialize_context(context)
        self.logger.info('Output: %s' % output)
        self.response.content_type = 'application/json'
        self.response.write(output)


class RootHandler(webapp2.RequestHandler):

    def get(self):
        self.response.content_type = 'text/plain'
        self.response.write('I AM WAVE ROBOT! I sing like Frank on JRuby!')


class CapabilitiesHandler(RobotHandler):

    def get(self):
        self.response.content_type = 'text/xml'
        self.response.write(self.robot.capabilities())


class JSONRPCHandler(RobotHandler):

    ''' Runs every event in the posted bundle. '''

    def post(self):
        body = self.request.body.decode('utf-8', 'replace')
        self.logger.info('Input: %s' % body)
        try:
            context = self.robot.execute_json_rpc(body)
        except BadBundle as e:
            self.logger.warning(str(e))
            return self.abort(400, detail=str(e))
        self.reply_json(context)


class CommandHandler(RobotHandler):

    ''' Runs one named command against the posted bundle. '''

    def post(self, command):
        body = self.request.body.decode('utf-8', 'replace')
        self.logger.info('Input: %s' % body)
        try:
            context = self.robot.run_command(command, body)
        except UnknownCommand as e:
            self.logger.warning(str(e))
            return self.abort(404, detail=str(e))
        except BadBundle as e:
            self.logger.warning(str(e))
            return self.abort(400, detail=str(e))
        self.reply_json(context)


def create_app(platform, robot_class=Robot, debug=False):

    ''' Build the robot's WSGI application over ``platform``. '''

    app = webapp2.WSGIApplication([
        webapp2.Route('/', RootHandler, name='robot-root', methods=['GET']),
        webapp2.Route('/_wave/capabilities.xml', CapabilitiesHandler, name='robot-capabilities', methods=['GET']),
        webapp2.Route('/_wave/robot/jsonrpc', JSONRPCHandler, name='robot-jsonrpc', methods=['POST']),
        webapp2.Route('/_wave/robot/<command>', CommandHandler, name='robot-command', methods=['POST'])
    ], debug=debug)
    app.registry['platform'] = platform
    app.registry['robot_class'] = robot_class
    return app
