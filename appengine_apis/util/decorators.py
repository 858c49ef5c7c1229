# -*- coding: utf-8 -*-

'''

    appengine_apis util: decorators

    this package provides useful decorators that crosscut the regular
    functional bounds of the service bindings. stuff in here is
    generally used everywhere.

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


## ``classproperty`` - ``@property``, resolved against the class.
class classproperty(property):

    ''' Read-only property computed from the owning class, so it works
        on both the class and its instances. '''

    def __get__(self, instance, owner):
        return classmethod(self.fget).__get__(None, owner)()


## ``config`` - attach a config block and logging channel to a class.
def config(debug=False, path=None):

    ''' Class decorator giving ``klass`` two class properties:

        * ``config``: the block at ``path`` in :py:data:`appengine_apis.cfg`,
          or ``{'debug': debug}`` when there is none.
        * ``logging``: an :py:class:`debug.APILogger` channel named after
          ``path``, enabled by the block's ``debug`` flag.

        :param debug: Fallback ``debug`` flag.
        :param path: Dotted config path. Defaults to the class' module and
        name.
        :returns: Decorator that injects the properties. '''

    def inject(klass):

        def _config(cls):
            from appengine_apis import cfg
            return cfg.get(cls._config_path, {'debug': debug})

        def _logging(cls):
            from appengine_apis.util import debug as _debug

            # last path segment names the channel
            path, _, name = cls._config_path.rpartition('.')
            return _debug.APILogger(path=path or name, name=name)._setcondition(cls.config.get('debug', debug))

        klass._config_path = path or '.'.join((klass.__module__, klass.__name__))
        klass.config, klass.logging = classproperty(_config), classproperty(_logging)
        return klass

    return inject
