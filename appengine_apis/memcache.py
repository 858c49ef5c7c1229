# -*- coding: utf-8 -*-

'''

    appengine_apis memcache

    memcache-client style API over the platform's memcache service. keys
    are stringified, and values the service can't hold natively are
    pickled behind a marker.

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
import pickle
import calendar
import datetime
import contextlib

# appengine_apis
from appengine_apis.util import decorators
from appengine_apis.exceptions import AppEngineAPIError
from appengine_apis.platform import errors as platform_errors
from appengine_apis.platform.memcache import SetPolicy
from appengine_apis.platform.memcache import Expiration
from appengine_apis.platform.memcache import StrictErrorHandler
from appengine_apis.platform.memcache import LogAndContinueErrorHandler


## Constants
ADD = SetPolicy.ADD_ONLY_IF_NOT_PRESENT
REPLACE = SetPolicy.REPLACE_ONLY_IF_PRESENT
SET = SetPolicy.SET_ALWAYS

MARSHAL_MARKER = '--Python Pickle Data--'
_NATIVE_TYPES = (bool, int, float, str, bytes, type(None))
_RELATIVE_LIMIT = 86400 * 30  # longer expirations are epoch seconds


class MemcacheError(AppEngineAPIError):

    ''' Base class for memcache errors. '''


class ServerError(MemcacheError):

    ''' The memcache service failed or is unavailable. '''


class InvalidValueError(MemcacheError):

    ''' A stored value can't be used for the operation (e.g. ``incr`` on a
        non-integral value). '''


class BadArgumentError(AppEngineAPIError, ValueError):

    ''' A key, delta or expiration was invalid. '''


@contextlib.contextmanager
def convert_exceptions():

    ''' Re-raise platform memcache failures as binding errors. '''

    try:
        yield
    except platform_errors.IllegalArgumentException as e:
        raise BadArgumentError(e.message) from e
    except platform_errors.InvalidValueException as e:
        raise InvalidValueError(e.message) from e
    except platform_errors.MemcacheServiceException as e:
        raise ServerError(e.message) from e


def memcache_key(key):

    ''' Stringify ``key``. ``None`` stays ``None``. '''

    if key is None or isinstance(key, str):
        return key
    if isinstance(key, bytes):
        return key.decode('utf-8')
    return str(key)


def memcache_value(value):

    ''' Value as stored by the service. '''

    if isinstance(value, _NATIVE_TYPES):
        return value
    return [MARSHAL_MARKER, pickle.dumps(value)]


def python_value(value):

    ''' Inverse of :py:func:`memcache_value`. '''

    if isinstance(value, list) and len(value) == 2 and value[0] == MARSHAL_MARKER:
        return pickle.loads(value[1])
    return value


def memcache_expiration(amount):

    ''' :py:class:`Expiration` for ``amount``: ``0``/``None`` never expires,
        a ``datetime`` is absolute, more than 30 days is absolute epoch
        seconds, anything else is relative seconds. '''

    if amount is None or amount == 0:
        return None
    if isinstance(amount, datetime.datetime):
        return Expiration.on_date(calendar.timegm(amount.utctimetuple()) + amount.microsecond / 1e6)
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        raise BadArgumentError('Invalid expiration: %r.' % (amount,))
    if amount > _RELATIVE_LIMIT:
        return Expiration.on_date(amount)
    return Expiration.by_delta_seconds(amount)


class _KeyMap(object):

    ''' Tracks the original key behind each stringified key. '''

    def __init__(self, keys=()):
        self.original, self.map = [], {}
        for key in keys:
            self.add(key)

    def add(self, key):
        string_key = memcache_key(key)
        self.original.append(key)
        self.map[string_key] = key
        return string_key

    @property
    def service_keys(self):
        return list(self.map.keys())

    def original_keys(self, service_keys):
        return [self.map[key] for key in service_keys]

    def missing_keys(self, service_keys):
        found = set(service_keys)
        return [key for key in self.original if memcache_key(key) not in found]


## Memcache
# Client over a platform's memcache service.
@decorators.config(path='appengine_apis.memcache')
class Memcache(object):

    ''' Memcache client for one :py:class:`Platform`. '''

    def __init__(self, platform, namespace=None, readonly=False):

        ''' Build a client.

            :param namespace: Namespace to switch the service to.
            :param readonly: Reject every write with :py:class:`MemcacheError`. '''

        self.platform = platform
        self._readonly = bool(readonly)
        if namespace is not None:
            self.namespace = namespace
        if self.config.get('raise_errors', False):
            self.raise_errors = True

    @property
    def service(self):
        return self.platform.memcache

    @property
    def active(self):
        return True

    @property
    def readonly(self):
        return self._readonly

    def _get_namespace(self):
        return self.service.namespace

    def _set_namespace(self, value):
        self.service.namespace = value or ''

    namespace = property(_get_namespace, _set_namespace)

    def _get_raise_errors(self):
        return isinstance(self.service.error_handler, StrictErrorHandler)

    def _set_raise_errors(self, should_raise):
        self.service.error_handler = StrictErrorHandler() if should_raise else LogAndContinueErrorHandler()

    raise_errors = property(_get_raise_errors, _set_raise_errors)

    def _check_write(self):
        if self._readonly:
            raise MemcacheError('readonly cache')

    @contextlib.contextmanager
    def _strict(self):

        ''' Raise service errors for the duration of the block. '''

        saved = self.service.error_handler
        self.service.error_handler = StrictErrorHandler()
        try:
            with convert_exceptions():
                yield
        finally:
            self.service.error_handler = saved

    ## == Reads == ##
    def get(self, *keys):

        ''' Value for one key, or a list of values for several (or a list).
            Missing keys read as ``None``. '''

        multiple = len(keys) != 1
        if not multiple and isinstance(keys[0], list):
            keys, multiple = keys[0], True
        found = self.get_hash(*keys)
        values = [found.get(key) for key in keys]
        return values if multiple else values[0]

    __getitem__ = get

    def get_hash(self, *keys):

        ''' Map each found key to its value. '''

        key_map = _KeyMap(keys)
        with convert_exceptions():
            found = self.service.get_all(key_map.service_keys)
        return dict((key_map.map[key], python_value(value)) for key, value in found.items())

    ## == Writes == ##
    def _put(self, key, value, expiration, policy):
        self._check_write()
        with convert_exceptions():
            return self.service.put(memcache_key(key), memcache_value(value), memcache_expiration(expiration), policy)

    def _put_many(self, pairs, expiration, policy):
        self._check_write()
        expiration = memcache_expiration(expiration)
        if isinstance(pairs, dict):
            pairs = pairs.items()
        key_map, mapping = _KeyMap(), {}
        for key, value in pairs:
            mapping[key_map.add(key)] = memcache_value(value)
        with convert_exceptions():
            stored = self.service.put_all(mapping, expiration, policy)
        return key_map.missing_keys(stored)

    def set(self, key, value, expiration=0):

        ''' Store ``value``. Returns ``True`` if stored. '''

        return self._put(key, value, expiration, SET)

    def add(self, key, value, expiration=0):

        ''' Store ``value`` only if ``key`` is absent. '''

        return self._put(key, value, expiration, ADD)

    def replace(self, key, value, expiration=0):

        ''' Store ``value`` only if ``key`` is present. '''

        return self._put(key, value, expiration, REPLACE)

    def set_many(self, pairs, expiration=0):

        ''' Store each ``(key, value)``. Returns the keys not stored. '''

        return self._put_many(pairs, expiration, SET)

    def add_many(self, pairs, expiration=0):
        return self._put_many(pairs, expiration, ADD)

    def replace_many(self, pairs, expiration=0):
        return self._put_many(pairs, expiration, REPLACE)

    def __setitem__(self, key, value):
        if isinstance(key, tuple) and isinstance(value, (list, tuple)):
            self.set_many(zip(key, value))
        else:
            self.set(key, value)

    def delete(self, key, time=0):

        ''' Remove ``key``, blocking ``add`` of it for ``time`` seconds.
            Returns ``True`` if it was present. '''

        self._check_write()
        with convert_exceptions():
            return self.service.delete(memcache_key(key), int((time or 0) * 1000))

    def delete_many(self, keys, time=0):

        ''' Remove ``keys``. Returns the keys that were present. '''

        self._check_write()
        key_map = _KeyMap(keys)
        with convert_exceptions():
            deleted = self.service.delete_all(key_map.service_keys, int((time or 0) * 1000))
        return key_map.original_keys(deleted)

    def incr(self, key, delta=1):

        ''' Add ``delta`` to an integral value. Returns the new value, or
            ``None`` if the key is missing. '''

        self._check_write()
        with convert_exceptions():
            return self.service.increment(memcache_key(key), delta)

    def decr(self, key, delta=1):

        ''' Subtract ``delta``, flooring at zero. '''

        self._check_write()
        if isinstance(delta, bool) or not isinstance(delta, int):
            raise BadArgumentError('Decrement delta must be an integer, got %r.' % (delta,))
        with convert_exceptions():
            return self.service.increment(memcache_key(key), -delta)

    def flush_all(self):

        ''' Drop every entry. Returns ``False`` if the service failed. '''

        self._check_write()
        try:
            with self._strict():
                self.service.clear_all()
        except ServerError as e:
            self.logging.warning('Memcache flush failed: %s' % e)
            return False
        return True

    clear = flush_all

    def stats(self):

        ''' Service statistics as a ``dict``, or ``None`` if the service
            failed. ``oldest_item_age`` is in seconds. '''

        try:
            with self._strict():
                stats = self.service.get_statistics()
        except ServerError as e:
            self.logging.warning('Memcache stats failed: %s' % e)
            return None
        if stats is None:
            return None
        return {
            'hits': stats.hit_count,
            'misses': stats.miss_count,
            'byte_hits': stats.bytes_returned_for_hits,
            'items': stats.item_count,
            'bytes': stats.total_item_bytes,
            'oldest_item_age': stats.max_time_without_access / 1000.0}

    def __repr__(self):
        return '<Memcache ns:%r, ro:%r>' % (self.namespace, self.readonly)
