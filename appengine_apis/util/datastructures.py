# -*- coding: utf-8 -*-

'''

    appengine_apis util: datastructures

    holds small specialized datastructures used across the service
    bindings.

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


class DictProxy(object):

    ''' Handy little object that takes a dict and makes it accessible
        via var[item] and var.item formats. '''

    def __init__(self, struct=None, **kwargs):

        ''' Fill this proxy from ``struct`` and ``kwargs``.

            :param struct: ``dict`` or list of ``(k, v)`` pairs.
            :param kwargs: Extra entries to set. '''

        if struct is not None:
            items = struct.items() if isinstance(struct, dict) else struct
            for k, v in items:
                setattr(self, k, v)
        for k, v in kwargs.items():
            setattr(self, k, v)

    def __getitem__(self, name):

        ''' 'x = struct[item]' override. '''

        if name in self.__dict__:
            return getattr(self, name)
        raise KeyError(name)

    def __setitem__(self, name, value):

        ''' 'struct[item] = x' override. '''

        setattr(self, name, value)

    def __contains__(self, name):
        return name in self.__dict__

    def __repr__(self):
        return '<DictProxy %s>' % self.__dict__

    def keys(self):

        ''' get all keys from this struct. '''

        return list(self.__dict__.keys())

    def items(self):

        ''' get all tupled (k, v) pairs from this struct. '''

        return [(k, v) for k, v in self.__dict__.items()]

    def get(self, name, default_value=None):

        ''' Retrieve the named item, returning default_value
            if it cannot be found. '''

        return self.__dict__.get(name, default_value)
