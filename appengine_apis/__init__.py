# -*- coding: utf-8 -*-

'''

    appengine_apis

    bindings for App Engine style platform services (datastore, memcache,
    mail, url fetch, users and the log service), with local in-process
    implementations of each service.

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

__version__ = '0.0.4'

## Util
from appengine_apis.util import appconfig

try:
    import config

except ImportError as e:  # pragma: no cover
    cfg = appconfig.ConfigProxy(appconfig._DEFAULT_CONFIG)

else:  # pragma: no cover
    _app_config = getattr(config, 'config', None)
    if isinstance(_app_config, dict):
        cfg = appconfig.ConfigProxy(appconfig._DEFAULT_CONFIG).overlay(_app_config)
    else:
        cfg = appconfig.ConfigProxy(appconfig._DEFAULT_CONFIG)
