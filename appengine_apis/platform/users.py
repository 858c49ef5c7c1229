# -*- coding: utf-8 -*-

'''

    appengine_apis platform: users

    user service, answering who is signed in from the platform
    environment and building login/logout urls.

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
from urllib import parse

# appengine_apis util
from appengine_apis.util import decorators

# platform
from appengine_apis.platform.datastore import User
from appengine_apis.platform.errors import IllegalStateException
from appengine_apis.platform.errors import IllegalArgumentException


_URL_TEMPLATES = {
    'login_url': '/_ah/login?continue=%s',
    'logout_url': '/_ah/login?continue=%s&action=Logout'
}


## UserService
@decorators.config(path='appengine_apis.users')
class UserService(object):

    ''' Reads the current user from an :py:class:`Environment`. '''

    def __init__(self, environment):
        self.environment = environment

    def get_current_user(self):
        if not self.environment.is_logged_in:
            return None
        return User(self.environment.email, self.environment.auth_domain)

    def is_user_logged_in(self):
        return self.environment.is_logged_in

    def is_user_admin(self):
        if not self.environment.is_logged_in:
            raise IllegalStateException('Operation requires a logged in user.')
        return self.environment.is_admin

    def _url(self, template, destination_url):
        if destination_url is None:
            raise IllegalArgumentException('A destination URL is required.')
        return self.config.get(template, _URL_TEMPLATES[template]) % parse.quote(destination_url, safe='')

    def create_login_url(self, destination_url):
        return self._url('login_url', destination_url)

    def create_logout_url(self, destination_url):
        return self._url('logout_url', destination_url)
