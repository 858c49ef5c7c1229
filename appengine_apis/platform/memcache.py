# -*- coding: utf-8 -*-

'''

    appengine_apis platform: memcache

    memcache service implementations: a local, in-process cache with
    expiration, set policies, add-locks and statistics, and a service
    backed by real memcached servers through ``python-memcached``.

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
import copy
import enum
import time
import pickle
import threading
import collections

# 3rd party
import memcache

# appengine_apis util
from appengine_apis.util import decorators

# platform errors
from appengine_apis.platform.errors import InvalidValueException
from appengine_apis.platform.errors import IllegalArgumentException
from appengine_apis.platform.errors import MemcacheServiceException


## Constants
MAX_UNSIGNED = 2 ** 64


class SetPolicy(enum.Enum):

    ''' Conditions under which a put stores its value. '''

    SET_ALWAYS = 'set'
    ADD_ONLY_IF_NOT_PRESENT = 'add'
    REPLACE_ONLY_IF_PRESENT = 'replace'


## Expiration
# A point in time after which a cached value is gone.
class Expiration(object):

    ''' Relative or absolute expiration, in seconds. '''

    def __init__(self, seconds, absolute):
        self.seconds, self.absolute = seconds, absolute

    @classmethod
    def by_delta_seconds(cls, seconds):
        return cls(seconds, False)

    @classmethod
    def on_date(cls, epoch_seconds):
        return cls(epoch_seconds, True)

    def expires_at(self, now):

        ''' Absolute epoch time of expiration, measured from ``now``. '''

        return self.seconds if self.absolute else now + self.seconds

    def __eq__(self, other):
        if not isinstance(other, Expiration):
            return NotImplemented
        return (self.seconds, self.absolute) == (other.seconds, other.absolute)

    def __repr__(self):
        return '<Expiration %s %r>' % ('on' if self.absolute else 'in', self.seconds)


Stats = collections.namedtuple('Stats', [
    'hit_count', 'miss_count', 'bytes_returned_for_hits', 'item_count', 'total_item_bytes', 'max_time_without_access'])


## == Error handlers == ##

class StrictErrorHandler(object):

    ''' Re-raises every service error. '''

    def handle_service_error(self, error):
        raise error


@decorators.config(path='appengine_apis.memcache')
class LogAndContinueErrorHandler(object):

    ''' Logs service errors and lets the operation report a miss. '''

    def handle_service_error(self, error):
        self.logging.error('Memcache service error: %s' % error)


def _size(value):
    try:
        return len(pickle.dumps(value))
    except (pickle.PicklingError, TypeError, AttributeError) as e:
        raise IllegalArgumentException('Memcache values must be serializable: %s' % e)


class _Entry(object):

    __slots__ = ('value', 'expires', 'accessed', 'size')

    def __init__(self, value, expires, now):
        self.value, self.expires, self.accessed = value, expires, now
        self.size = _size(value)


## LocalMemcacheService
# In-process cache, like the development server's memcache stub.
@decorators.config(path='appengine_apis.memcache')
class LocalMemcacheService(object):

    ''' Namespaced in-memory cache. '''

    namespace = None
    error_handler = None
    available = True

    def __init__(self, namespace=None, clock=None, error_handler=None):
        self.namespace = namespace or ''
        self.clock = clock or time.time
        self.error_handler = error_handler or LogAndContinueErrorHandler()
        self._lock = threading.RLock()
        self._cache = {}
        self._locks = {}
        self._hits = self._misses = self._byte_hits = 0

    def _service_error(self, message):

        ''' Route an unavailable-service error through the error handler. '''

        self.error_handler.handle_service_error(MemcacheServiceException(message))

    def _check_available(self):
        if not self.available:
            self._service_error('Memcache service is not available.')
            return False
        return True

    def _key(self, key):
        if key is not None and not isinstance(key, str):
            raise IllegalArgumentException('Memcache keys must be strings or None, got %r.' % (key,))
        return self.namespace, key

    def _live(self, ckey, now):

        ''' Live entry for ``ckey``, evicting it if expired. '''

        entry = self._cache.get(ckey)
        if entry is not None and entry.expires is not None and entry.expires <= now:
            del self._cache[ckey]
            return None
        return entry

    ## == Reads == ##
    def get(self, key):
        return self.get_all([key]).get(key)

    def contains(self, key):
        with self._lock:
            return self._live(self._key(key), self.clock()) is not None

    def get_all(self, keys):

        ''' Map of each found key to a copy of its value. '''

        keys = list(keys)
        ckeys = [self._key(key) for key in keys]
        if not self._check_available():
            return {}
        found = {}
        with self._lock:
            now = self.clock()
            for key, ckey in zip(keys, ckeys):
                entry = self._live(ckey, now)
                if entry is None:
                    self._misses += 1
                    continue
                self._hits += 1
                self._byte_hits += entry.size
                entry.accessed = now
                found[key] = copy.deepcopy(entry.value)
        return found

    ## == Writes == ##
    def put(self, key, value, expiration=None, policy=SetPolicy.SET_ALWAYS):

        ''' Store ``value`` under ``key``. Returns ``True`` if stored. '''

        return key in self.put_all({key: value}, expiration, policy)

    def put_all(self, mapping, expiration=None, policy=SetPolicy.SET_ALWAYS):

        ''' Store each item of ``mapping``. Returns the set of stored keys. '''

        if not isinstance(policy, SetPolicy):
            raise IllegalArgumentException('Unknown set policy: %r.' % (policy,))
        items = [(key, self._key(key), value) for key, value in mapping.items()]
        if not self._check_available():
            return set()

        stored = set()
        with self._lock:
            now = self.clock()
            expires = expiration.expires_at(now) if expiration is not None else None
            for key, ckey, value in items:
                present = self._live(ckey, now) is not None
                if policy is SetPolicy.ADD_ONLY_IF_NOT_PRESENT:
                    locked = self._locks.get(ckey)
                    if present or (locked is not None and locked > now):
                        continue
                elif policy is SetPolicy.REPLACE_ONLY_IF_PRESENT and not present:
                    continue
                if expires is not None and expires <= now:
                    self._cache.pop(ckey, None)
                    continue
                self._cache[ckey] = _Entry(copy.deepcopy(value), expires, now)
                self._locks.pop(ckey, None)
                stored.add(key)
        return stored

    def delete(self, key, millis_no_readd=0):

        ''' Remove ``key``. Returns ``True`` if it was present. '''

        return key in self.delete_all([key], millis_no_readd)

    def delete_all(self, keys, millis_no_readd=0):

        ''' Remove ``keys``, blocking ADD for ``millis_no_readd``. Returns the
            keys that were present. '''

        keys = list(keys)
        ckeys = [self._key(key) for key in keys]
        if millis_no_readd < 0:
            raise IllegalArgumentException('Delete lock time must be non-negative.')
        if not self._check_available():
            return []

        deleted = []
        with self._lock:
            now = self.clock()
            for key, ckey in zip(keys, ckeys):
                if self._live(ckey, now) is not None:
                    del self._cache[ckey]
                    deleted.append(key)
                if millis_no_readd:
                    self._locks[ckey] = now + millis_no_readd / 1000.0
        return deleted

    def increment(self, key, delta):

        ''' Add ``delta`` to an integral value, flooring at zero and wrapping
            at 2**64. Returns the new value, or ``None`` if missing. '''

        if isinstance(delta, bool) or not isinstance(delta, int):
            raise IllegalArgumentException('Increment delta must be an integer, got %r.' % (delta,))
        ckey = self._key(key)
        if not self._check_available():
            return None

        with self._lock:
            now = self.clock()
            entry = self._live(ckey, now)
            if entry is None:
                return None

            value = entry.value
            if isinstance(value, int) and not isinstance(value, bool):
                current = value
            elif isinstance(value, str) and value.isdigit():
                current = int(value)
            else:
                raise InvalidValueException('Non-integral value for key %r: %r.' % (key, value))
            if current < 0:
                raise InvalidValueException('Cannot increment negative value for key %r.' % (key,))

            result = max(current + delta, 0) % MAX_UNSIGNED
            entry.value = str(result) if isinstance(value, str) else result
            entry.size, entry.accessed = _size(entry.value), now
            return result

    def clear_all(self):

        ''' Drop every entry, in all namespaces. '''

        if not self._check_available():
            return
        with self._lock:
            self._cache.clear()
            self._locks.clear()

    def get_statistics(self):

        ''' Current :py:class:`Stats`, or ``None`` when unavailable. '''

        if not self._check_available():
            return None
        with self._lock:
            now = self.clock()
            for ckey in list(self._cache.keys()):
                self._live(ckey, now)
            entries = list(self._cache.values())
            oldest = max([now - entry.accessed for entry in entries] or [0])
            return Stats(self._hits, self._misses, self._byte_hits, len(entries),
                         sum(entry.size for entry in entries), int(oldest * 1000))


## MemcachedService
# The same service interface, over real memcached servers.
@decorators.config(path='appengine_apis.memcache')
class MemcachedService(object):

    ''' Memcache service backed by a ``python-memcached`` client. '''

    namespace = None
    error_handler = None

    def __init__(self, servers=None, namespace=None, client=None, error_handler=None):
        self.client = client or memcache.Client(servers or self.config.get('servers', ['127.0.0.1:11211']))
        self.namespace = namespace or ''
        self.error_handler = error_handler or LogAndContinueErrorHandler()

    def _key(self, key):
        if not isinstance(key, str):
            raise IllegalArgumentException('Memcached keys must be strings, got %r.' % (key,))
        return self._prefix + key

    @property
    def _prefix(self):
        return '%s:' % self.namespace if self.namespace else ''

    @staticmethod
    def _time(expiration):
        return int(expiration.expires_at(time.time()) if expiration.absolute else expiration.seconds) if expiration else 0

    def get(self, key):
        return self.get_all([key]).get(key)

    def contains(self, key):
        return self.client.get(self._key(key)) is not None

    def get_all(self, keys):
        keys = list(keys)
        for key in keys:
            self._key(key)
        try:
            found = self.client.get_multi(keys, key_prefix=self._prefix)
        except memcache.Client.MemcachedKeyError as e:
            raise IllegalArgumentException(str(e))
        return dict((key, found[key]) for key in keys if key in found)

    def put(self, key, value, expiration=None, policy=SetPolicy.SET_ALWAYS):
        return key in self.put_all({key: value}, expiration, policy)

    def put_all(self, mapping, expiration=None, policy=SetPolicy.SET_ALWAYS):
        if not isinstance(policy, SetPolicy):
            raise IllegalArgumentException('Unknown set policy: %r.' % (policy,))
        writer = {
            SetPolicy.SET_ALWAYS: self.client.set,
            SetPolicy.ADD_ONLY_IF_NOT_PRESENT: self.client.add,
            SetPolicy.REPLACE_ONLY_IF_PRESENT: self.client.replace
        }[policy]

        stored, seconds = set(), self._time(expiration)
        for key, value in mapping.items():
            try:
                if writer(self._key(key), value, time=seconds):
                    stored.add(key)
            except memcache.Client.MemcachedKeyError as e:
                raise IllegalArgumentException(str(e))
        return stored

    def delete(self, key, millis_no_readd=0):
        return key in self.delete_all([key], millis_no_readd)

    def delete_all(self, keys, millis_no_readd=0):
        deleted = []
        for key in keys:
            ckey = self._key(key)
            if self.client.get(ckey) is not None and self.client.delete(ckey):
                deleted.append(key)
        return deleted

    def increment(self, key, delta):
        ckey = self._key(key)
        try:
            if delta >= 0:
                return self.client.incr(ckey, delta)
            return self.client.decr(ckey, -delta)
        except ValueError as e:
            raise InvalidValueException(str(e))

    def clear_all(self):
        self.client.flush_all()

    def get_statistics(self):

        ''' Aggregate :py:class:`Stats` across all servers. '''

        servers = self.client.get_stats()
        if not servers:
            self.error_handler.handle_service_error(MemcacheServiceException('No memcached servers answered.'))
            return None

        total = collections.Counter()
        for _, stats in servers:
            for name in ('get_hits', 'get_misses', 'bytes_read', 'curr_items', 'bytes'):
                total[name] += int(stats.get(name, 0))
        return Stats(total['get_hits'], total['get_misses'], total['bytes_read'], total['curr_items'], total['bytes'], 0)
