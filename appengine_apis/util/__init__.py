# -*- coding: utf-8 -*-

'''

    appengine_apis util

    holds small utilities and useful pieces of code/functionality that don't
    belong anywhere specific.

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


## Base Imports
import base64
import datetime
import json as libjson

## Export Util Controllers
from appengine_apis.util.debug import APILogger

## Exported Datastructures
from appengine_apis.util.datastructures import DictProxy


class APIJSONEncoder(libjson.JSONEncoder):

    ''' Custom encoder that implements the __json__ method interface,
        and knows about datastore keys, entities and special types. '''

    def default(self, target):

        ''' Invoked when the JSON encoder can't encode something.

            :param target: Object to flatten.
            :returns: JSON-compatible structure. '''

        if hasattr(target, '__json__'):
            return target.__json__()

        from appengine_apis.datastore import types
        if isinstance(target, types.Key):
            return target.urlsafe()
        if isinstance(target, types.Entity):
            return target.to_dict()
        if isinstance(target, bytes):
            return base64.b64encode(target).decode('ascii')

        if isinstance(target, (datetime.datetime, datetime.date, datetime.time)):
            return target.isoformat()
        return libjson.JSONEncoder.default(self, target)


class JSONWrapper(object):

    ''' Utility wrapper for json.dumps/loads that proxies
        to the package's custom JSON codec. '''

    JSONDecoder = libjson.JSONDecoder
    JSONEncoder = APIJSONEncoder

    @classmethod
    def dumps(cls, struct, **kwargs):

        ''' Dump a structure to a JSON string.

            :param struct: Structure to serialize.
            :param kwargs: Encoder arguments.
            :returns: JSON string. '''

        return APIJSONEncoder(**kwargs).encode(struct)

    @classmethod
    def loads(cls, string, **kwargs):

        ''' Load via libjson. '''

        if isinstance(string, bytes):
            string = string.decode('utf-8')
        return libjson.loads(string, **kwargs)

json = JSONWrapper

__all__ = ['DictProxy', 'APILogger', 'json', 'JSONWrapper', 'APIJSONEncoder']
