# -*- coding: utf-8 -*-

'''

    appengine_apis users

    signed-in user identity, and login/logout url generation over the
    platform's user service.

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

# appengine_apis
from appengine_apis.util import decorators
from appengine_apis.exceptions import AppEngineAPIError
from appengine_apis.platform import errors as platform_errors


_DEFAULT_AUTH_DOMAIN = 'gmail.com'


class UserNotFoundError(AppEngineAPIError):

    ''' An operation needed a signed-in user, and there was none. '''


## User
# A user identity.
class User(object):

    ''' A user, identified by email and auth domain. '''

    def __init__(self, email, auth_domain=None, environment=None, user_id=None):

        ''' Build a user.

            :param email: User's email address.
            :param auth_domain: Auth domain. Defaults to ``environment``'s,
            or ``gmail.com`` with no environment.
            :param environment: :py:class:`Environment` for the default. '''

        if not isinstance(email, str):
            raise TypeError('User email must be a string, got %r.' % (email,))
        if auth_domain is None:
            auth_domain = getattr(environment, 'auth_domain', None) or _DEFAULT_AUTH_DOMAIN
        self.email, self.auth_domain, self.user_id = email, auth_domain, user_id

    @property
    def nickname(self):

        ''' Local part of the email when it belongs to the auth domain,
            otherwise the full email. '''

        suffix = '@' + self.auth_domain
        if self.email.endswith(suffix):
            return self.email[:-len(suffix)]
        return self.email

    def __eq__(self, other):
        if not isinstance(other, User):
            return NotImplemented
        return (self.email, self.auth_domain) == (other.email, other.auth_domain)

    def __ne__(self, other):
        result = self.__eq__(other)
        return result if result is NotImplemented else not result

    def __hash__(self):
        return hash((self.email, self.auth_domain))

    def __str__(self):
        return self.email

    def __repr__(self):
        return 'User(%r, %r)' % (self.email, self.auth_domain)


## Users
# Client over a platform's user service.
@decorators.config(path='appengine_apis.users')
class Users(object):

    ''' User service client for one :py:class:`Platform`. '''

    def __init__(self, platform):
        self.platform = platform

    @property
    def service(self):
        return self.platform.users

    def current_user(self):

        ''' Signed-in :py:class:`User`, or ``None``. '''

        user = self.service.get_current_user()
        if user is None:
            return None
        return User(user.email, user.auth_domain, user_id=user.user_id)

    def create_login_url(self, destination_url):

        ''' URL that signs a user in, then redirects to ``destination_url``. '''

        return self.service.create_login_url(destination_url)

    def create_logout_url(self, destination_url):
        return self.service.create_logout_url(destination_url)

    def is_logged_in(self):
        return self.service.is_user_logged_in()

    def is_admin(self):

        ''' ``True`` if the signed-in user is an app admin.

            :raises UserNotFoundError: If nobody is signed in. '''

        try:
            return self.service.is_user_admin()
        except platform_errors.IllegalStateException as e:
            raise UserNotFoundError(e.message) from e
