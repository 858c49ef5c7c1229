# -*- coding: utf-8 -*-

'''

    appengine_apis platform

    bundles one implementation of each platform service into a single
    handle, which every binding receives explicitly.

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
import webapp2

# appengine_apis util
from appengine_apis.util import debug

# platform services
from appengine_apis.platform.mail import LocalMailService
from appengine_apis.platform.users import UserService
from appengine_apis.platform.urlfetch import URLFetchService
from appengine_apis.platform.memcache import LocalMemcacheService
from appengine_apis.platform.datastore import LocalDatastoreService
from appengine_apis.platform.logservice import LogService
from appengine_apis.platform.environment import Environment


## Globals
logging = debug.APILogger('appengine_apis', 'platform')


## Platform
# A set of service implementations the bindings can sit upon.
class Platform(object):

    ''' Explicit handle over the platform services. '''

    def __init__(self, environment, datastore, memcache, mail, urlfetch, users, logservice):
        self.environment = environment
        self.datastore, self.memcache, self.mail = datastore, memcache, mail
        self.urlfetch, self.users, self.logservice = urlfetch, users, logservice

    @webapp2.cached_property
    def logging(self):

        ''' Named log pipe. '''

        return logging.extend(path='bridge', name=self.__class__.__name__)

    @classmethod
    def local(cls, environment=None, session=None, **environ):

        ''' Build a platform of in-process services.

            :param environment: :py:class:`Environment` to serve, or ``None``
            to build one from ``environ``.
            :param session: ``requests.Session`` for url fetches.
            :returns: New :py:class:`Platform`. '''

        environment = environment or Environment(**environ)
        return cls(
            environment=environment,
            datastore=LocalDatastoreService(environment),
            memcache=LocalMemcacheService(),
            mail=LocalMailService(),
            urlfetch=URLFetchService(session=session),
            users=UserService(environment),
            logservice=LogService())

    def __repr__(self):
        return '<Platform app_id=%r>' % self.environment.app_id
