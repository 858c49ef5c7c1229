# -*- coding: utf-8 -*-

'''

    appengine_apis util: config

    holds utilities for dealing with application config, and the default
    config set for every service binding.

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
import copy
import webapp2

# Constants
_DEFAULT_CONFIG = {

    'appengine_apis.system': {

        'config': {
            'debug': False
        }

    },

    'appengine_apis.environment': {
        'app_id': 'test',
        'version_id': '1.0',
        'auth_domain': 'gmail.com',
        'default_namespace': ''
    },

    'appengine_apis.datastore': {
        'debug': False,
        'transaction_retries': 3,   # retries after the first attempt
        'require_indexes': False    # raise NeedIndex for undeclared composite queries
    },

    'appengine_apis.memcache': {
        'debug': False,
        'raise_errors': False,      # strict handler vs. log-and-continue
        'servers': ['127.0.0.1:11211']
    },

    'appengine_apis.urlfetch': {
        'debug': False,
        'deadline': 5,              # seconds
        'max_redirects': 5,
        'max_response_size': 32 * 1024 * 1024
    },

    'appengine_apis.mail': {
        'debug': False,
        'admins': []
    },

    'appengine_apis.users': {
        'debug': False,
        'login_url': '/_ah/login?continue=%s',
        'logout_url': '/_ah/login?continue=%s&action=Logout'
    },

    'appengine_apis.logger': {
        'debug': False,
        'name': 'appengine'
    },

    'appengine_apis.robot': {
        'debug': True,
        'name': 'appengine-robot',
        'image_url': '',
        'profile_url': ''
    }

}


## ConfigProxy
# Wraps app configuration, enabling log messages on config access/write.
class ConfigProxy(object):

    ''' Wraps app configuration to enable debug features. '''

    debug = False
    _config = None
    _lookup = None

    def __init__(self, config):

        ''' Initialize this object. '''

        self._config = copy.deepcopy(dict(config))
        self._lookup = set(self._config.keys())

    @webapp2.cached_property
    def logging(self):

        ''' Named logging pipe. '''

        from appengine_apis.util import debug
        self.debug = self._config.get('appengine_apis.system', {}).get('config', {}).get('debug', False)
        return debug.APILogger(path='appengine_apis', name='Config')._setcondition(self.debug)

    def __iter__(self):

        ''' Iterate over config block names. '''

        return iter(list(self._config.keys()))

    def __len__(self):
        return len(self._config)

    def __getitem__(self, item):

        ''' Return an item in config. '''

        # redirect config access to dictionary
        self.logging.debug("Config access: '%s'." % item)
        if item in self._lookup:
            return self._config[item]
        else:
            raise KeyError("No config entry by the name '%s'." % item)

    def __setitem__(self, item, value):

        ''' Set an item in config. '''

        self._lookup.add(item)
        self.logging.debug("Config write: '%s'=>'%s'." % (item, value))
        self._config[item] = value
        return value

    def __contains__(self, item):

        ''' Contains redirect. '''

        return item in self._lookup

    def _overlay(self, mapping, rov=None):

        ''' Recursively update config, from target `mapping`. '''

        if not isinstance(mapping, dict):
            return mapping
        if rov is None:
            rov = copy.deepcopy(self._config)
        for k, v in mapping.items():
            if k in rov and isinstance(rov[k], dict):
                rov[k] = self._overlay(v, dict(rov[k]))
            else:
                rov[k] = v
        return rov

    def overlay(self, mapping):

        ''' Exported method for recursively updating config. '''

        return ConfigProxy(self._overlay(mapping))

    def get(self, name, default=None):

        ''' Retrieve an item from config without raising a KeyError. '''

        self.logging.debug("Config access: '%s'." % name)
        return self._config.get(name, default)

    def items(self):

        ''' Retrieve a list of (key, value) tuples. '''

        return list(self._config.items())
