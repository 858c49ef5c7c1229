# -*- coding: utf-8 -*-

'''

    appengine_apis service tests

    testsuite for the memcache, mail, urlfetch, users and logger
    bindings, and the testing helpers.

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
import os

# appengine_apis tests
from appengine_apis.tests import AppEngineTestCase


## ServiceExportTests
# Tests that the service bindings import cleanly.
class ServiceExportTests(AppEngineTestCase):

    ''' Tests objects exported by the service modules. '''

    def test_concrete(self):

        ''' Test that we can import each binding's client class. '''

        try:
            from appengine_apis import mail
            from appengine_apis.mail import Mail
            from appengine_apis.users import Users
            from appengine_apis.logger import Logger
            from appengine_apis.urlfetch import URLFetch
            from appengine_apis.memcache import Memcache

        except ImportError:  # pragma: no cover
            return self.fail("Failed to import service bindings.")

        else:
            self.assertTrue(Mail)  # must export Mail
            self.assertTrue(Users)  # must export Users
            self.assertTrue(Logger)  # must export Logger
            self.assertTrue(URLFetch)  # must export URLFetch
            self.assertTrue(Memcache)  # must export Memcache
            self.assertIsInstance(mail, type(os))  # must be a module
