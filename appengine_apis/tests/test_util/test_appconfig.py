# -*- coding: utf-8 -*-

'''

    appengine_apis util tests: config

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
import unittest

# appengine_apis
from appengine_apis import cfg
from appengine_apis.util import decorators
from appengine_apis.util import appconfig
from appengine_apis.util.debug import APILogger


@decorators.config(path='appengine_apis.memcache')
class Configured(object):
    pass


@decorators.config(debug=True)
class Unconfigured(object):
    pass


## ConfigProxyTests
class ConfigProxyTests(unittest.TestCase):

    ''' Tests `appconfig.ConfigProxy`. '''

    def setUp(self):
        self.config = appconfig.ConfigProxy(appconfig._DEFAULT_CONFIG)

    def test_defaults(self):
        self.assertEqual(self.config['appengine_apis.datastore']['transaction_retries'], 3)
        self.assertEqual(self.config['appengine_apis.environment']['app_id'], 'test')
        self.assertIn('appengine_apis.robot', self.config)
        self.assertEqual(len(self.config), len(appconfig._DEFAULT_CONFIG))

    def test_missing(self):

        ''' Unknown blocks raise on item access, and default on ``get``. '''

        with self.assertRaises(KeyError):
            self.config['appengine_apis.nope']
        self.assertIsNone(self.config.get('appengine_apis.nope'))
        self.assertEqual(self.config.get('appengine_apis.nope', {}), {})

    def test_write(self):
        self.config['appengine_apis.extra'] = {'debug': True}
        self.assertIn('appengine_apis.extra', self.config)
        self.assertEqual(self.config['appengine_apis.extra'], {'debug': True})

    def test_copies(self):

        ''' Proxies never write through to the mapping they wrap. '''

        self.config['appengine_apis.urlfetch']['deadline'] = 60
        self.assertEqual(appconfig._DEFAULT_CONFIG['appengine_apis.urlfetch']['deadline'], 5)

    def test_overlay(self):

        ''' Overlays merge nested blocks into a new proxy. '''

        overlaid = self.config.overlay({
            'appengine_apis.urlfetch': {'deadline': 10},
            'myapp': {'key': 'value'}})

        self.assertIsInstance(overlaid, appconfig.ConfigProxy)
        self.assertEqual(overlaid['appengine_apis.urlfetch']['deadline'], 10)
        self.assertEqual(overlaid['appengine_apis.urlfetch']['max_redirects'], 5)
        self.assertEqual(overlaid['myapp'], {'key': 'value'})
        self.assertEqual(self.config['appengine_apis.urlfetch']['deadline'], 5)
        self.assertNotIn('myapp', self.config)

    def test_iteration(self):
        self.assertEqual(sorted(self.config), sorted(appconfig._DEFAULT_CONFIG))
        self.assertEqual(dict(self.config.items())['appengine_apis.mail'], {'debug': False, 'admins': []})


## ConfigDecoratorTests
class ConfigDecoratorTests(unittest.TestCase):

    ''' Tests `decorators.config`. '''

    def test_config(self):
        self.assertEqual(Configured._config_path, 'appengine_apis.memcache')
        self.assertEqual(Configured.config, cfg.get('appengine_apis.memcache'))
        self.assertEqual(Configured().config['servers'], ['127.0.0.1:11211'])

    def test_default_config(self):

        ''' Classes without a config block get ``{'debug': <default>}``. '''

        self.assertEqual(Unconfigured._config_path, '%s.Unconfigured' % __name__)
        self.assertEqual(Unconfigured.config, {'debug': True})

    def test_logging(self):

        ''' Logging channels are named by config path, and toggled by ``debug``. '''

        channel = Configured.logging
        self.assertIsInstance(channel, APILogger)
        self.assertEqual(channel.name, 'appengine_apis.memcache')
        self.assertFalse(channel.conditional)
        self.assertTrue(Unconfigured.logging.conditional)
