# -*- coding: utf-8 -*-

'''

    appengine_apis platform: environment

    describes the request environment a platform instance serves: which
    app and version it runs as, the signed-in user and the active
    namespaces.

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

# appengine_apis util
from appengine_apis.util import decorators


## Environment
# Per-request environment info for the platform services.
@decorators.config(path='appengine_apis.environment')
class Environment(object):

    ''' Holds the app id, version, user and namespace info
        for a platform instance. '''

    app_id = None
    version_id = None
    email = ''
    admin = False
    auth_domain = None
    request_namespace = None
    default_namespace = None
    attributes = None

    def __init__(self, app_id=None, version_id=None, email='', admin=False,
                 auth_domain=None, request_namespace=None, default_namespace=None, **attributes):

        ''' Fill in the environment, defaulting from config. '''

        config = self.config
        self.app_id = app_id or config.get('app_id', 'test')
        self.version_id = version_id or config.get('version_id', '1.0')
        self.email, self.admin = email or '', bool(admin)
        self.auth_domain = auth_domain if auth_domain is not None else config.get('auth_domain', 'gmail.com')
        self.request_namespace = request_namespace if request_namespace is not None else self.auth_domain
        self.default_namespace = default_namespace if default_namespace is not None else config.get('default_namespace', '')
        self.attributes = dict(attributes)

    def __repr__(self):
        return '<Environment app_id=%r version_id=%r email=%r>' % (self.app_id, self.version_id, self.email)

    @property
    def is_logged_in(self):

        ''' ``True`` if a user is signed in for this environment. '''

        return bool(self.email) and bool(self.auth_domain)

    @property
    def is_admin(self):
        return self.admin

    def login(self, email, admin=False):

        ''' Sign ``email`` in. Returns this environment. '''

        self.email, self.admin = email or '', bool(admin)
        return self

    def logout(self):

        ''' Sign the current user out. Returns this environment. '''

        self.email, self.admin = '', False
        return self
