# -*- coding: utf-8 -*-

'''

    appengine_apis: testsuite

    base test cases and suite loaders for the bindings. every test case
    gets a fresh local platform, so no state leaks between tests.

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

# Base Imports
import sys
import unittest

# appengine_apis
from appengine_apis import testing


# Builtin Test Paths
_TEST_PATHS = [
    'appengine_apis.tests.test_util.test_appconfig',  # config layer
    'appengine_apis.tests.test_util.test_debug',  # logging channels
    'appengine_apis.tests.test_util.test_util',  # json, datastructures
    'appengine_apis.tests.test_platform',  # local platform
    'appengine_apis.tests.test_platform.test_datastore_service',
    'appengine_apis.tests.test_platform.test_memcache_service',
    'appengine_apis.tests.test_platform.test_services',
    'appengine_apis.tests.test_datastore',  # datastore binding
    'appengine_apis.tests.test_datastore.test_key',
    'appengine_apis.tests.test_datastore.test_entity',
    'appengine_apis.tests.test_datastore.test_query',
    'appengine_apis.tests.test_datastore.test_transaction',
    'appengine_apis.tests.test_datastore.test_errors',
    'appengine_apis.tests.test_services',  # service bindings
    'appengine_apis.tests.test_services.test_memcache',
    'appengine_apis.tests.test_services.test_mail',
    'appengine_apis.tests.test_services.test_urlfetch',
    'appengine_apis.tests.test_services.test_users',
    'appengine_apis.tests.test_services.test_logger',
    'appengine_apis.tests.test_services.test_testing',
    'appengine_apis.tests.test_robot.test_robot',  # sample robot
    'appengine_apis.tests.test_robot.test_app'
]


## AppEngineTestCase - Parent class for binding tests.
class AppEngineTestCase(unittest.TestCase):

    ''' A test case with its own local :py:class:`Platform`. '''

    ## == Platform == ##
    platform = None
    environment = None

    ## == Environment overrides == ##
    env = {}

    def setUp(self):

        ''' Build a fresh environment and platform. '''

        self.environment = testing.install_test_env(**self.env)
        self.platform = testing.install_test_platform(self.environment)

    def tearDown(self):

        ''' Drop the platform. '''

        self.platform = self.environment = None


## `load_test_module` - Load a single testsuite module.
def load_test_module(path):

    ''' Load every test under ``path``. '''

    suite = unittest.TestSuite()
    suite.addTest(unittest.TestLoader().loadTestsFromName(path))
    return suite


## `load_testsuite` - Gather binding testsuites.
def load_testsuite(paths=None):

    ''' __main__ entrypoint '''

    suite = unittest.TestSuite()
    for path in (paths if paths is not None else _TEST_PATHS[:]):
        suite.addTest(load_test_module(path))
    return suite


## `run_testsuite` - Run a suite of tests loaded via `load_testsuite`.
def run_testsuite(suite=None):

    ''' Run ``suite`` as text, or as XML with ``xml <output dir>`` on the
        command line. '''

    if suite is None:
        suite = load_testsuite()

    args = sys.argv[1:]
    if len(args) == 2 and args[0].lower().strip() == 'xml':
        import xmlrunner
        return xmlrunner.XMLTestRunner(output=args[1]).run(suite)
    return unittest.TextTestRunner(verbosity=2).run(suite)


if __name__ == '__main__':  # pragma: no cover
    run_testsuite(load_testsuite())
