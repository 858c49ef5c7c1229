# -*- coding: utf-8 -*-

'''

    appengine_apis testing

    helpers for building a local platform in tests and scripts, with the
    app id read from the application's own config.

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
from xml.etree import ElementTree

# 3rd party
import yaml

# appengine_apis
from appengine_apis.platform import Platform
from appengine_apis.platform.environment import Environment


def install_test_env(**fields):

    ''' Build a test :py:class:`Environment`. ``fields`` override the
        configured defaults (app id ``test``, version ``1.0``, auth domain
        ``gmail.com``). '''

    return Environment(**fields)


def install_test_platform(environment=None, session=None, **fields):

    ''' Build a local :py:class:`Platform` with empty in-memory services. '''

    return Platform.local(environment or install_test_env(**fields), session=session)


def get_app_id(app_dir):

    ''' App id declared in ``app.yaml`` or ``WEB-INF/appengine-web.xml``
        under ``app_dir``, or ``None``. ``app.yaml`` wins if both exist. '''

    app_yaml_path = os.path.join(app_dir, 'app.yaml')
    aeweb_path = os.path.join(app_dir, 'WEB-INF', 'appengine-web.xml')

    if os.path.exists(app_yaml_path):
        with open(app_yaml_path) as app_yaml:
            config = yaml.safe_load(app_yaml) or {}
        return config.get('application')

    if os.path.exists(aeweb_path):
        root = ElementTree.parse(aeweb_path).getroot()
        for element in root:
            # tags carry the appengine-web namespace, if declared
            if element.tag.rsplit('}', 1)[-1] == 'application':
                return (element.text or '').strip() or None
    return None


def boot(app_dir=None, environment=None, session=None):

    ''' Build a local platform for the app in ``app_dir`` (default
        ``$APPLICATION_ROOT``, else the working directory). '''

    app_dir = app_dir or os.environ.get('APPLICATION_ROOT') or '.'
    if environment is None:
        environment = install_test_env()
        app_id = get_app_id(app_dir)
        if app_id:
            environment.app_id = app_id

    platform = install_test_platform(environment, session=session)
    platform.logging.info('Booted local platform for app "%s" from %s.' % (environment.app_id, os.path.abspath(app_dir)))
    return platform
