# -*- coding: utf-8 -*-

'''

    appengine_apis platform tests: `appengine_apis.platform`

    testsuite for the local platform services, plus a canned transport
    adapter for exercising url fetches without a network.

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
import io

# 3rd party
import requests
from requests import adapters
from requests import structures

# appengine_apis tests
from appengine_apis.tests import AppEngineTestCase


## StaticAdapter
# Transport adapter that answers from a table of canned responses.
class StaticAdapter(adapters.BaseAdapter):

    ''' Serves ``routes``: url -> ``(status, headers, body)``, or an
        exception instance to raise. Unknown urls get a 404. Every
        request sent is kept in ``sent``. '''

    def __init__(self, routes=None):
        super(StaticAdapter, self).__init__()
        self.routes, self.sent = dict(routes or {}), []

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        self.sent.append(request)
        route = self.routes.get(request.url, (404, {}, b'not found'))
        if isinstance(route, Exception):
            raise route

        status, headers, body = route
        response = requests.Response()
        response.status_code = status
        response.headers = structures.CaseInsensitiveDict(headers)
        response.raw = io.BytesIO(body)
        response.url = request.url
        response.request = request
        response.encoding = 'utf-8'
        return response

    def close(self):
        pass


def static_session(routes=None):

    ''' ``requests.Session`` whose http(s) traffic goes to a
        :py:class:`StaticAdapter`. '''

    session, adapter = requests.Session(), StaticAdapter(routes)
    session.mount('http://', adapter)
    session.mount('https://', adapter)
    session.trust_env = False
    return session, adapter


## PlatformTests
# Tests the platform handle itself.
class PlatformTests(AppEngineTestCase):

    ''' Tests `platform.Platform`. '''

    def test_local(self):

        ''' A local platform wires every service to one environment. '''

        from appengine_apis.platform import Platform

        platform = Platform.local(app_id='myapp')
        self.assertEqual(platform.environment.app_id, 'myapp')
        self.assertIs(platform.datastore.environment, platform.environment)
        self.assertIs(platform.users.environment, platform.environment)
        self.assertEqual(repr(platform), "<Platform app_id='myapp'>")

    def test_separate_platforms(self):

        ''' Platforms never share storage. '''

        from appengine_apis.platform import Platform

        first, second = Platform.local(), Platform.local()
        first.memcache.put('a', 1)
        self.assertIsNone(second.memcache.get('a'))
        self.assertIsNot(first.datastore, second.datastore)

    def test_session(self):

        ''' Url fetches go through the supplied session. '''

        session, _ = static_session()
        platform = self.platform.local(self.environment, session=session)
        self.assertIs(platform.urlfetch.session, session)
