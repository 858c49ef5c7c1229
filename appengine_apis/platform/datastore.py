# -*- coding: utf-8 -*-

'''

    appengine_apis platform: datastore

    local, in-process datastore service. holds keys, entities and the
    native property value types, and runs queries and optimistic,
    entity-group scoped transactions against process memory.

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
import enum
import base64
import itertools
import threading
import collections

# appengine_apis util
from appengine_apis.util import decorators

# platform errors
from appengine_apis.platform.errors import IllegalStateException
from appengine_apis.platform.errors import EntityNotFoundException
from appengine_apis.platform.errors import TooManyResultsException
from appengine_apis.platform.errors import IllegalArgumentException
from appengine_apis.platform.errors import DatastoreNeedIndexException
from appengine_apis.platform.errors import ConcurrentModificationException


## Constants
MAX_STRING_LENGTH = 500
MAX_SHORT_BLOB_LENGTH = 500
MAX_INTEGER = 2 ** 63 - 1
MIN_INTEGER = -(2 ** 63)
KEY_SPECIAL_PROPERTY = '__key__'


def _default_app():

    ''' App id used for keys built without an explicit app. '''

    from appengine_apis import cfg
    return cfg.get('appengine_apis.environment', {}).get('app_id', 'test')


## == Reference codec == ##

def _encode_varint(value):

    ''' Encode a non-negative integer as a protobuf varint. '''

    out = bytearray()
    while True:
        bits = value & 0x7f
        value >>= 7
        if value:
            out.append(bits | 0x80)
        else:
            out.append(bits)
            return bytes(out)


def _tag(field, wire_type):
    return _encode_varint((field << 3) | wire_type)


def _length_delimited(field, data):
    if isinstance(data, str):
        data = data.encode('utf-8')
    return _tag(field, 2) + _encode_varint(len(data)) + data


class _Reader(object):

    ''' Minimal protobuf reader over a ``bytes`` buffer. '''

    def __init__(self, data):
        self.data, self.pos = data, 0

    def done(self):
        return self.pos >= len(self.data)

    def varint(self):
        shift, result = 0, 0
        while True:
            if self.pos >= len(self.data):
                raise IllegalArgumentException('Truncated varint in encoded key.')
            byte = self.data[self.pos]
            self.pos += 1
            result |= (byte & 0x7f) << shift
            if not byte & 0x80:
                return result
            shift += 7

    def tag(self):
        value = self.varint()
        return value >> 3, value & 0x07

    def chunk(self):
        size = self.varint()
        if self.pos + size > len(self.data):
            raise IllegalArgumentException('Truncated field in encoded key.')
        value = self.data[self.pos:self.pos + size]
        self.pos += size
        return value

    def skip(self, wire_type):
        if wire_type == 0:
            self.varint()
        elif wire_type == 1:
            self.pos += 8
        elif wire_type == 2:
            self.chunk()
        elif wire_type == 5:
            self.pos += 4
        else:
            raise IllegalArgumentException('Unsupported wire type %s in encoded key.' % wire_type)


## Key
# Ordered path of (kind, id or name) elements, scoped to an app and namespace.
class Key(object):

    ''' Identifies a single entity. Each path element holds a kind and either
        an integer id, a string name, or ``None`` while the key is incomplete. '''

    __slots__ = ('_app', '_namespace', '_path')

    def __init__(self, path, app=None, namespace=None):

        ''' Build a key from ``path``, a sequence of ``(kind, id_or_name)``
            pairs. Only the last element may be incomplete. '''

        path = tuple((kind, id_or_name) for kind, id_or_name in path)
        if not path:
            raise IllegalArgumentException('A key must have at least one path element.')
        for index, (kind, id_or_name) in enumerate(path):
            _validate_path_element(kind, id_or_name, incomplete_ok=(index == len(path) - 1))

        self._app = app or _default_app()
        self._namespace = namespace or ''
        self._path = path

    ## == Construction == ##
    @classmethod
    def create(cls, kind, id_or_name=None, parent=None, app=None, namespace=None):

        ''' Create a key of ``kind``, optionally as a child of ``parent``. '''

        if parent is not None:
            return parent.get_child(kind, id_or_name)
        return cls(((kind, id_or_name),), app=app, namespace=namespace)

    def get_child(self, kind, id_or_name=None):

        ''' Create a key for a child of this key. '''

        if not self.is_complete():
            raise IllegalStateException('Cannot get a child of an incomplete key.')
        return self.__class__(self._path + ((kind, id_or_name),), app=self._app, namespace=self._namespace)

    def _with_id(self, id):
        return self.__class__(self._path[:-1] + ((self.kind, id),), app=self._app, namespace=self._namespace)

    ## == Accessors == ##
    app = property(lambda self: self._app)
    namespace = property(lambda self: self._namespace)
    path = property(lambda self: self._path)
    kind = property(lambda self: self._path[-1][0])

    @property
    def id(self):
        value = self._path[-1][1]
        return value if isinstance(value, int) else None

    @property
    def name(self):
        value = self._path[-1][1]
        return value if isinstance(value, str) else None

    @property
    def parent(self):
        if len(self._path) == 1:
            return None
        return self.__class__(self._path[:-1], app=self._app, namespace=self._namespace)

    @property
    def root(self):

        ''' Key of the entity group this key belongs to. '''

        return self.__class__(self._path[:1], app=self._app, namespace=self._namespace)

    def is_complete(self):
        return self._path[-1][1] is not None

    def is_ancestor_of(self, other):

        ''' ``True`` if this key is a prefix of (or equal to) ``other``. '''

        return (self._app, self._namespace) == (other.app, other.namespace) and \
            other.path[:len(self._path)] == self._path

    ## == Protocol == ##
    def _identity(self):
        return self._app, self._namespace, self._path

    def __eq__(self, other):
        if not isinstance(other, Key):
            return NotImplemented
        return self._identity() == other._identity()

    def __ne__(self, other):
        result = self.__eq__(other)
        return result if result is NotImplemented else not result

    def __hash__(self):
        return hash(self._identity())

    def __lt__(self, other):
        return self._sort_key() < other._sort_key()

    def _sort_key(self):

        ''' Ordering: ids sort before names within a kind. '''

        elements = tuple((kind, 0 if isinstance(v, int) else 1, v if v is not None else 0) for kind, v in self._path)
        return self._app, self._namespace, elements

    def to_string(self):

        ''' Human readable path, like ``Parent(1)/Child("name")``. '''

        elements = []
        for kind, id_or_name in self._path:
            if id_or_name is None:
                elements.append('%s(no-id-yet)' % kind)
            elif isinstance(id_or_name, int):
                elements.append('%s(%d)' % (kind, id_or_name))
            else:
                elements.append('%s("%s")' % (kind, id_or_name))
        return '/'.join(elements)

    def __repr__(self):
        return self.to_string()

    ## == Encoding == ##
    def to_reference(self):

        ''' Serialize this key to a reference buffer. '''

        if not self.is_complete():
            raise IllegalArgumentException('Cannot encode an incomplete key: %s.' % self.to_string())

        path = bytearray()
        for kind, id_or_name in self._path:
            path += _tag(1, 3)
            path += _length_delimited(2, kind)
            if isinstance(id_or_name, int):
                path += _tag(3, 0) + _encode_varint(id_or_name)
            else:
                path += _length_delimited(4, id_or_name)
            path += _tag(1, 4)

        reference = _length_delimited(13, self._app) + _length_delimited(14, bytes(path))
        if self._namespace:
            reference += _length_delimited(20, self._namespace)
        return reference

    @classmethod
    def from_reference(cls, data):

        ''' Inflate a key from a reference buffer. '''

        reader, app, namespace, path = _Reader(data), None, None, []
        while not reader.done():
            field, wire_type = reader.tag()
            if field == 13 and wire_type == 2:
                app = reader.chunk().decode('utf-8')
            elif field == 20 and wire_type == 2:
                namespace = reader.chunk().decode('utf-8')
            elif field == 14 and wire_type == 2:
                path = _read_path(_Reader(reader.chunk()))
            else:
                reader.skip(wire_type)

        if not app or not path:
            raise IllegalArgumentException('Encoded key is missing its app or path.')
        return cls(path, app=app, namespace=namespace)

    def to_websafe(self):

        ''' Encode this key as unpadded web-safe base64. '''

        return base64.urlsafe_b64encode(self.to_reference()).rstrip(b'=').decode('ascii')

    @classmethod
    def from_websafe(cls, encoded):

        ''' Decode a key produced by :py:meth:`to_websafe`. '''

        if not isinstance(encoded, str) or not encoded:
            raise IllegalArgumentException('Cannot parse encoded key: %r.' % (encoded,))
        try:
            data = base64.b64decode(encoded + '=' * (-len(encoded) % 4), altchars=b'-_', validate=True)
        except (ValueError, TypeError) as e:
            raise IllegalArgumentException('Cannot parse encoded key "%s": %s' % (encoded, e))
        try:
            return cls.from_reference(data)
        except UnicodeDecodeError as e:
            raise IllegalArgumentException('Cannot parse encoded key "%s": %s' % (encoded, e))


def _read_path(reader):

    ''' Read the grouped path elements of a reference. '''

    path, kind, id_or_name = [], None, None
    while not reader.done():
        field, wire_type = reader.tag()
        if field == 1 and wire_type == 3:
            kind, id_or_name = None, None
        elif field == 1 and wire_type == 4:
            if kind is None or id_or_name is None:
                raise IllegalArgumentException('Encoded key has an incomplete path element.')
            path.append((kind, id_or_name))
        elif field == 2 and wire_type == 2:
            kind = reader.chunk().decode('utf-8')
        elif field == 3 and wire_type == 0:
            id_or_name = reader.varint()
        elif field == 4 and wire_type == 2:
            id_or_name = reader.chunk().decode('utf-8')
        else:
            reader.skip(wire_type)
    return path


def _validate_path_element(kind, id_or_name, incomplete_ok=False):

    ''' Check a single ``(kind, id_or_name)`` path element. '''

    if not isinstance(kind, str) or not kind:
        raise IllegalArgumentException('Key kind must be a non-empty string, got %r.' % (kind,))
    if id_or_name is None:
        if not incomplete_ok:
            raise IllegalArgumentException('Only the last element of a key path may be incomplete.')
    elif isinstance(id_or_name, bool):
        raise IllegalArgumentException('Key id must be an integer or a string, got %r.' % (id_or_name,))
    elif isinstance(id_or_name, int):
        if not 0 < id_or_name <= MAX_INTEGER:
            raise IllegalArgumentException('Key id must be between 1 and 2**63-1, got %d.' % id_or_name)
    elif isinstance(id_or_name, str):
        if not id_or_name:
            raise IllegalArgumentException('Key name cannot be empty.')
    else:
        raise IllegalArgumentException('Key id must be an integer or a string, got %r.' % (id_or_name,))


## == Native value types == ##

class _WrappedValue(object):

    ''' Base for native values that wrap a single string or byte string. '''

    __slots__ = ('value',)
    _backing = str

    def __init__(self, value):
        if not isinstance(value, self._backing):
            raise IllegalArgumentException('%s requires a %s value, got %r.' % (
                self.__class__.__name__, self._backing.__name__, type(value)))
        self.value = value

    def __eq__(self, other):
        if other.__class__ is not self.__class__:
            return NotImplemented
        return self.value == other.value

    def __ne__(self, other):
        result = self.__eq__(other)
        return result if result is NotImplemented else not result

    def __hash__(self):
        return hash((self.__class__.__name__, self.value))

    def __repr__(self):
        return '%s(%r)' % (self.__class__.__name__, self.value)


class Text(_WrappedValue):

    ''' Long, unindexed text. '''

    __slots__ = ()


class Link(_WrappedValue):

    ''' A URL, indexed like a string. '''

    __slots__ = ()


class Blob(_WrappedValue):

    ''' Long, unindexed binary data. '''

    __slots__ = ()
    _backing = bytes


class ShortBlob(_WrappedValue):

    ''' Short, indexed binary data. '''

    __slots__ = ()
    _backing = bytes

    def __init__(self, value):
        super(ShortBlob, self).__init__(value)
        if len(value) > MAX_SHORT_BLOB_LENGTH:
            raise IllegalArgumentException('ShortBlob values must be %d bytes or less.' % MAX_SHORT_BLOB_LENGTH)


class Date(object):

    ''' A timestamp, in microseconds since the epoch (UTC). '''

    __slots__ = ('usec',)

    def __init__(self, usec):
        if isinstance(usec, bool) or not isinstance(usec, int):
            raise IllegalArgumentException('Date requires integer microseconds, got %r.' % (usec,))
        self.usec = usec

    def __eq__(self, other):
        if not isinstance(other, Date):
            return NotImplemented
        return self.usec == other.usec

    def __ne__(self, other):
        result = self.__eq__(other)
        return result if result is NotImplemented else not result

    def __hash__(self):
        return hash(('Date', self.usec))

    def __repr__(self):
        return 'Date(%d)' % self.usec


class User(object):

    ''' A user identity stored as a property value. '''

    __slots__ = ('email', 'auth_domain', 'user_id')

    def __init__(self, email, auth_domain, user_id=None):
        if not isinstance(email, str) or not isinstance(auth_domain, str):
            raise IllegalArgumentException('User requires a string email and auth domain.')
        self.email, self.auth_domain, self.user_id = email, auth_domain, user_id

    def __eq__(self, other):
        if not isinstance(other, User):
            return NotImplemented
        return (self.email, self.auth_domain) == (other.email, other.auth_domain)

    def __ne__(self, other):
        result = self.__eq__(other)
        return result if result is NotImplemented else not result

    def __hash__(self):
        return hash(('User', self.email, self.auth_domain))

    def __repr__(self):
        return 'User(%r, %r)' % (self.email, self.auth_domain)


_UNINDEXED_TYPES = (Text, Blob)


def validate_value(value, in_list=False):

    ''' Raise :py:class:`IllegalArgumentException` if ``value`` cannot be stored. '''

    if value is None or isinstance(value, (bool, float, Text, Blob, ShortBlob, Link, Date, User)):
        return value
    if isinstance(value, int):
        if not MIN_INTEGER <= value <= MAX_INTEGER:
            raise IllegalArgumentException('Integer property values must fit in 64 bits, got %d.' % value)
        return value
    if isinstance(value, str):
        if len(value) > MAX_STRING_LENGTH:
            raise IllegalArgumentException(
                'String properties must be %d characters or less. Use Text for longer values.' % MAX_STRING_LENGTH)
        return value
    if isinstance(value, Key):
        if not value.is_complete():
            raise IllegalArgumentException('Key property values must be complete: %s.' % value.to_string())
        return value
    if isinstance(value, list) and not in_list:
        for item in value:
            validate_value(item, in_list=True)
        return value
    raise IllegalArgumentException('Unsupported property value type: %s.' % type(value).__name__)


def _order_key(value):

    ''' Total ordering over indexed property values, grouped by type. '''

    if value is None:
        return (0, 0)
    if isinstance(value, bool):
        return (2, value)
    if isinstance(value, int):
        return (1, value)
    if isinstance(value, Date):
        return (1, value.usec)
    if isinstance(value, ShortBlob):
        return (3, value.value)
    if isinstance(value, str):
        return (4, value)
    if isinstance(value, Link):
        return (4, value.value)
    if isinstance(value, float):
        return (5, value)
    if isinstance(value, User):
        return (6, (value.email, value.auth_domain))
    if isinstance(value, Key):
        return (7, value._sort_key())
    raise IllegalArgumentException('Unorderable property value: %r.' % (value,))


## Entity
# A keyed, mutable mapping of property names to native values.
class Entity(object):

    ''' Datastore entity: a key plus named properties. '''

    def __init__(self, kind, name=None, parent=None, app=None, namespace=None, key=None):

        ''' Build an entity of ``kind`` (optionally named and parented), or
            around an existing ``key``. '''

        if key is None:
            key = Key.create(kind, name, parent=parent, app=app, namespace=namespace)
        self.key = key
        self._properties = {}

    kind = property(lambda self: self.key.kind)
    parent = property(lambda self: self.key.parent)
    app = property(lambda self: self.key.app)
    namespace = property(lambda self: self.key.namespace)

    def get_property(self, name):
        return self._properties.get(name)

    def set_property(self, name, value):

        ''' Set property ``name`` to a native ``value``. '''

        if not isinstance(name, str) or not name:
            raise IllegalArgumentException('Property names must be non-empty strings, got %r.' % (name,))
        validate_value(value)
        self._properties[name] = list(value) if isinstance(value, list) else value

    def remove_property(self, name):
        self._properties.pop(name, None)

    def has_property(self, name):
        return name in self._properties

    def get_properties(self):
        return dict(self._properties)

    def copy(self):

        ''' Copy this entity, so callers never share state with storage. '''

        other = Entity(None, key=self.key)
        other._properties = dict((k, list(v) if isinstance(v, list) else v) for k, v in self._properties.items())
        return other

    def __eq__(self, other):
        if not isinstance(other, Entity):
            return NotImplemented
        if not (self.key.is_complete() and other.key.is_complete()):
            return self is other
        return self.key == other.key

    def __ne__(self, other):
        result = self.__eq__(other)
        return result if result is NotImplemented else not result

    def __hash__(self):
        return hash(self.key) if self.key.is_complete() else id(self)

    def __repr__(self):
        return '<Entity [%s] %r>' % (self.key.to_string(), self._properties)

    to_string = __repr__


## == Queries == ##

class FilterOperator(enum.Enum):

    ''' Property filter operators. '''

    EQUAL = '='
    LESS_THAN = '<'
    LESS_THAN_OR_EQUAL = '<='
    GREATER_THAN = '>'
    GREATER_THAN_OR_EQUAL = '>='

    def matches(self, left, right):
        if self is FilterOperator.EQUAL:
            return left == right
        if self is FilterOperator.LESS_THAN:
            return left < right
        if self is FilterOperator.LESS_THAN_OR_EQUAL:
            return left <= right
        if self is FilterOperator.GREATER_THAN:
            return left > right
        return left >= right


class SortDirection(enum.Enum):

    ''' Sort order directions. '''

    ASCENDING = 'asc'
    DESCENDING = 'desc'


FilterPredicate = collections.namedtuple('FilterPredicate', ['property_name', 'operator', 'value'])
SortPredicate = collections.namedtuple('SortPredicate', ['property_name', 'direction'])


## Query
# Describes a read. Holds no results; every preparation runs it anew.
class Query(object):

    ''' Kind and/or ancestor query with property filters and sort orders. '''

    def __init__(self, kind=None, ancestor=None, namespace=None):

        ''' Accepts ``Query()``, ``Query(kind)``, ``Query(ancestor)`` or
            ``Query(kind, ancestor)``. '''

        if isinstance(kind, Key) and ancestor is None:
            kind, ancestor = None, kind
        if kind is not None and (not isinstance(kind, str) or not kind):
            raise IllegalArgumentException('Query kind must be a non-empty string, got %r.' % (kind,))

        self.kind, self.ancestor, self._namespace = kind, None, namespace or ''
        self.filters, self.sorts = [], []
        if ancestor is not None:
            self.set_ancestor(ancestor)

    @property
    def namespace(self):
        return self.ancestor.namespace if self.ancestor is not None else self._namespace

    def set_ancestor(self, ancestor):

        ''' Scope this query to ``ancestor`` (``None`` clears it). '''

        if ancestor is None:
            if self.kind is None:
                raise IllegalArgumentException('Cannot clear the ancestor of a kindless query.')
        elif not isinstance(ancestor, Key):
            raise IllegalArgumentException('Query ancestor must be a Key, got %r.' % (ancestor,))
        elif not ancestor.is_complete():
            raise IllegalArgumentException('Query ancestor must be a complete key.')
        self.ancestor = ancestor
        return self

    def add_filter(self, property_name, operator, value):

        ''' Add a property filter. '''

        if not isinstance(operator, FilterOperator):
            raise IllegalArgumentException('Unsupported filter operator: %r.' % (operator,))
        if not isinstance(property_name, str) or not property_name:
            raise IllegalArgumentException('Filter property names must be non-empty strings.')
        validate_value(value)
        if isinstance(value, list) or isinstance(value, _UNINDEXED_TYPES):
            raise IllegalArgumentException('Cannot filter on %s values.' % type(value).__name__)
        self.filters.append(FilterPredicate(property_name, operator, value))
        return self

    def add_sort(self, property_name, direction=SortDirection.ASCENDING):

        ''' Add a sort order. '''

        if not isinstance(direction, SortDirection):
            raise IllegalArgumentException('Unsupported sort direction: %r.' % (direction,))
        if not isinstance(property_name, str) or not property_name:
            raise IllegalArgumentException('Sort property names must be non-empty strings.')
        self.sorts.append(SortPredicate(property_name, direction))
        return self

    def get_filter_predicates(self):
        return list(self.filters)

    def get_sort_predicates(self):
        return list(self.sorts)

    def inequality_property(self):

        ''' Name of the single property with inequality filters, if any. '''

        names = set(f.property_name for f in self.filters if f.operator is not FilterOperator.EQUAL)
        if len(names) > 1:
            raise IllegalArgumentException(
                'Only one inequality filter property per query is supported; got %s.' % ', '.join(sorted(names)))
        return names.pop() if names else None

    def validate(self):

        ''' Check the filter/sort combination is executable. '''

        inequality = self.inequality_property()
        if inequality is not None and self.sorts and self.sorts[0].property_name != inequality:
            raise IllegalArgumentException(
                'The first sort property must be the same as the property to which the inequality '
                'filter is applied. Inequality property: %s; first sort: %s.' % (inequality, self.sorts[0].property_name))
        if self.kind is None and (self.sorts or any(f.property_name != KEY_SPECIAL_PROPERTY for f in self.filters)):
            raise IllegalArgumentException('Kindless queries only support ancestor and __key__ filters.')
        return inequality

    def __repr__(self):
        return '<Query kind=%r ancestor=%r filters=%r sorts=%r>' % (self.kind, self.ancestor, self.filters, self.sorts)


## FetchOptions
# Limit, offset and chunk size for a single query execution.
class FetchOptions(object):

    ''' Options for fetching query results. '''

    DEFAULT_CHUNK_SIZE = 20

    limit = None
    offset = None
    chunk_size = DEFAULT_CHUNK_SIZE

    def __init__(self, limit=None, offset=None, chunk_size=None):
        if chunk_size is not None:
            self.set_chunk_size(chunk_size)
        if limit is not None:
            self.set_limit(limit)
        if offset is not None:
            self.set_offset(offset)

    @staticmethod
    def _check(name, value, minimum):
        if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
            raise IllegalArgumentException('%s must be an integer >= %d, got %r.' % (name, minimum, value))
        return value

    @classmethod
    def with_chunk_size(cls, chunk_size):
        return cls(chunk_size=chunk_size)

    def set_limit(self, limit):
        self.limit = self._check('Limit', limit, 0)
        return self

    def set_offset(self, offset):
        self.offset = self._check('Offset', offset, 0)
        return self

    def set_chunk_size(self, chunk_size):
        self.chunk_size = self._check('Chunk size', chunk_size, 1)
        return self

    def __eq__(self, other):
        if not isinstance(other, FetchOptions):
            return NotImplemented
        return (self.limit, self.offset, self.chunk_size) == (other.limit, other.offset, other.chunk_size)

    def __repr__(self):
        return '<FetchOptions limit=%r offset=%r chunk_size=%r>' % (self.limit, self.offset, self.chunk_size)


## Index
# A declared composite index.
class Index(object):

    ''' Composite index over ``kind``: ordered ``(name, direction)`` pairs. '''

    def __init__(self, kind, properties, ancestor=False):
        self.kind, self.ancestor = kind, bool(ancestor)
        self.properties = tuple(
            (p, SortDirection.ASCENDING) if isinstance(p, str) else (p[0], p[1]) for p in properties)

    def __repr__(self):
        return '<Index %s ancestor=%s %r>' % (self.kind, self.ancestor, self.properties)


## PreparedQuery
# A query bound to a service, ready to run.
class PreparedQuery(object):

    ''' Runs a :py:class:`Query` each time one of its result methods is called. '''

    def __init__(self, service, query, tx=None):
        self._service, self._query, self._tx = service, query, tx

    def _results(self, options=None):
        results = self._service._run_query(self._query, self._tx)
        options = options or FetchOptions()
        start = options.offset or 0
        if options.limit is not None:
            return results[start:start + options.limit]
        return results[start:]

    def as_list(self, options=None):
        return self._results(options)

    def as_iterator(self, options=None):

        ''' Iterate over results, pulled a chunk at a time. '''

        options = options or FetchOptions()
        results = self._results(options)
        for offset in range(0, len(results), options.chunk_size):
            for entity in results[offset:offset + options.chunk_size]:
                yield entity

    def count(self, options=None):
        return len(self._results(options))

    def as_single_entity(self):

        ''' The single result, ``None`` without results. '''

        results = self._results(FetchOptions(limit=2))
        if len(results) > 1:
            raise TooManyResultsException('Query returned more than one result: %r.' % self._query)
        return results[0] if results else None


## == Transactions == ##

## Transaction
# Buffers writes to a single entity group until commit.
class Transaction(object):

    ''' Optimistic transaction over one entity group. '''

    ACTIVE, COMMITTED, ROLLED_BACK = 'active', 'committed', 'rolled_back'

    def __init__(self, service, handle, app):
        self._service, self.id, self.app = service, handle, app
        self.state = self.ACTIVE
        self.group, self.version = None, None
        self.writes = collections.OrderedDict()

    def is_active(self):
        return self.state == self.ACTIVE

    def commit(self):
        return self._service._commit(self)

    def rollback(self):
        return self._service._rollback(self)

    def __repr__(self):
        return '<Transaction %s %s>' % (self.id, self.state)


## LocalDatastoreService
# Holds entities in RAM, like the development server's datastore stub.
@decorators.config(path='appengine_apis.datastore')
class LocalDatastoreService(object):

    ''' In-process datastore service. '''

    def __init__(self, environment=None, require_indexes=None, indexes=None):

        ''' Build an empty datastore.

            :param environment: :py:class:`Environment` providing the app id.
            :param require_indexes: Raise for composite queries with no
            declared :py:class:`Index`. Defaults to config.
            :param indexes: Iterable of declared indexes. '''

        config = self.config
        self.environment = environment
        self.require_indexes = config.get('require_indexes', False) if require_indexes is None else require_indexes
        self.indexes = list(indexes or [])

        self._lock = threading.RLock()
        self._entities = {}
        self._versions = collections.defaultdict(int)
        self._ids = collections.defaultdict(int)
        self._transactions = collections.OrderedDict()
        self._handles = itertools.count(1)
        self.ops = {'get': 0, 'put': 0, 'delete': 0, 'query': 0}

    @property
    def app_id(self):
        return self.environment.app_id if self.environment is not None else _default_app()

    def add_index(self, index):
        self.indexes.append(index)
        return index

    def clear(self):

        ''' Drop every stored entity. '''

        with self._lock:
            self._entities.clear()
            self._versions.clear()
            self._ids.clear()

    ## == Transactions == ##
    def begin_transaction(self):
        with self._lock:
            tx = Transaction(self, next(self._handles), self.app_id)
            self._transactions[tx.id] = tx
        self.logging.debug('Began transaction %s.' % tx.id)
        return tx

    def get_active_transactions(self):
        with self._lock:
            return [tx for tx in self._transactions.values() if tx.is_active()]

    def _enlist(self, tx, key):

        ''' Record ``key``'s entity group on ``tx`` on first touch. '''

        if not tx.is_active():
            raise IllegalStateException('Transaction %s is no longer active.' % tx.id)
        group = key.root
        if tx.group is None:
            tx.group, tx.version = group, self._versions[group]
        elif tx.group != group:
            raise IllegalArgumentException(
                "Can't operate on multiple entity groups in a single transaction: %r and %r." % (tx.group, group))

    def _commit(self, tx):
        with self._lock:
            if not tx.is_active():
                raise IllegalStateException('Transaction %s is not active.' % tx.id)
            tx.state = Transaction.ROLLED_BACK
            del self._transactions[tx.id]
            if tx.group is not None and self._versions[tx.group] != tx.version:
                self.logging.debug('Transaction %s collided on %r.' % (tx.id, tx.group))
                raise ConcurrentModificationException('Too much contention on these datastore entities. Please try again.')
            for key, entity in tx.writes.items():
                if entity is None:
                    self._entities.pop(key, None)
                else:
                    self._entities[key] = entity
            if tx.writes:
                self._versions[tx.group] += 1
            tx.state = Transaction.COMMITTED
        self.logging.debug('Committed transaction %s.' % tx.id)

    def _rollback(self, tx):
        with self._lock:
            if not tx.is_active():
                raise IllegalStateException('Transaction %s is not active.' % tx.id)
            tx.state = Transaction.ROLLED_BACK
            del self._transactions[tx.id]
        self.logging.debug('Rolled back transaction %s.' % tx.id)

    ## == Get / Put / Delete == ##
    def get(self, keys, tx=None):

        ''' Fetch entities. A single key returns an :py:class:`Entity` or raises
            :py:class:`EntityNotFoundException`; an iterable of keys returns
            a ``dict`` of the keys that were found. '''

        single = isinstance(keys, Key)
        keys = [keys] if single else list(keys)
        found = {}
        with self._lock:
            for key in keys:
                if not isinstance(key, Key):
                    raise IllegalArgumentException('Expected a Key, got %r.' % (key,))
                if not key.is_complete():
                    raise IllegalArgumentException('Cannot get an incomplete key: %s.' % key.to_string())
                if tx is not None:
                    self._enlist(tx, key)
                if key in self._entities:
                    found[key] = self._entities[key].copy()
            self.ops['get'] += len(keys)

        if single:
            if keys[0] not in found:
                raise EntityNotFoundException('No entity was found matching the key: %s' % keys[0].to_string())
            return found[keys[0]]
        return found

    def _complete(self, key):
        if key.is_complete():
            if key.id is not None:
                self._ids[key.kind] = max(self._ids[key.kind], key.id)
            return key
        self._ids[key.kind] += 1
        return key._with_id(self._ids[key.kind])

    def put(self, entities, tx=None):

        ''' Store entities, assigning ids to incomplete keys. Returns the key
            (or list of keys, for an iterable of entities). '''

        single = isinstance(entities, Entity)
        entities = [entities] if single else list(entities)
        keys = []
        with self._lock:
            for entity in entities:
                if not isinstance(entity, Entity):
                    raise IllegalArgumentException('Expected an Entity, got %r.' % (entity,))
            for entity in entities:
                entity.key = self._complete(entity.key)
                if tx is not None:
                    self._enlist(tx, entity.key)
                stored = entity.copy()
                if tx is not None:
                    tx.writes[stored.key] = stored
                else:
                    self._entities[stored.key] = stored
                    self._versions[stored.key.root] += 1
                keys.append(stored.key)
            self.ops['put'] += len(entities)
        return keys[0] if single else keys

    def delete(self, keys, tx=None):

        ''' Remove entities. Missing keys are ignored. '''

        keys = [keys] if isinstance(keys, Key) else list(keys)
        with self._lock:
            for key in keys:
                if not isinstance(key, Key) or not key.is_complete():
                    raise IllegalArgumentException('Expected a complete Key, got %r.' % (key,))
            for key in keys:
                if tx is not None:
                    self._enlist(tx, key)
                    tx.writes[key] = None
                elif self._entities.pop(key, None) is not None:
                    self._versions[key.root] += 1
            self.ops['delete'] += len(keys)

    ## == Queries == ##
    def prepare(self, query, tx=None):

        ''' Bind ``query`` to this service. Transactional queries must have
            an ancestor. '''

        if not isinstance(query, Query):
            raise IllegalArgumentException('Expected a Query, got %r.' % (query,))
        query.validate()
        if tx is not None:
            if query.ancestor is None:
                raise IllegalArgumentException('Only ancestor queries are allowed inside transactions.')
            with self._lock:
                self._enlist(tx, query.ancestor)
        if self.require_indexes:
            self._check_index(query)
        return PreparedQuery(self, query, tx)

    def _check_index(self, query):

        ''' Raise :py:class:`DatastoreNeedIndexException` when ``query`` needs a
            composite index that was never declared. '''

        equality = sorted(set(f.property_name for f in query.filters if f.operator is FilterOperator.EQUAL))
        inequality = query.inequality_property()
        tail = [(s.property_name, s.direction) for s in query.sorts]
        if inequality is not None and not tail:
            tail = [(inequality, SortDirection.ASCENDING)]

        builtin = (
            query.kind is None or
            (not tail and not (equality and inequality)) or
            (not equality and not query.ancestor and len(tail) == 1))
        if builtin:
            return

        for index in self.indexes:
            if index.kind != query.kind or index.ancestor != (query.ancestor is not None):
                continue
            head = index.properties[:len(equality)]
            if sorted(name for name, _ in head) == equality and list(index.properties[len(equality):]) == tail:
                return

        suggestion = Index(query.kind, [(name, SortDirection.ASCENDING) for name in equality] + tail,
                           ancestor=query.ancestor is not None)
        raise DatastoreNeedIndexException('No matching index found. Suggested index: %r' % suggestion)

    def _run_query(self, query, tx=None):

        ''' Evaluate ``query`` against current storage. '''

        inequality = query.validate()
        sorts = list(query.sorts)
        if inequality is not None and not sorts:
            sorts = [SortPredicate(inequality, SortDirection.ASCENDING)]

        with self._lock:
            self.ops['query'] += 1
            candidates = [entity for key, entity in self._entities.items() if self._in_scope(query, key)]

        results = []
        for entity in candidates:
            if all(self._matches(entity, f) for f in query.filters) and \
               all(_sort_values(entity, s.property_name) for s in sorts):
                results.append(entity)

        results.sort(key=lambda e: e.key._sort_key())
        for sort in reversed(sorts):
            descending = sort.direction is SortDirection.DESCENDING
            pick = max if descending else min
            results.sort(key=lambda e: pick(_sort_values(e, sort.property_name)), reverse=descending)
        return [entity.copy() for entity in results]

    def _in_scope(self, query, key):
        if key.namespace != query.namespace:
            return False
        if query.kind is not None and key.kind != query.kind:
            return False
        if query.ancestor is not None and not query.ancestor.is_ancestor_of(key):
            return False
        return True

    @staticmethod
    def _matches(entity, predicate):
        target = _order_key(predicate.value)
        return any(predicate.operator.matches(value, target) for value in _sort_values(entity, predicate.property_name))


def _sort_values(entity, name):

    ''' Indexed values of property ``name`` on ``entity``, as order keys. '''

    if name == KEY_SPECIAL_PROPERTY:
        return [_order_key(entity.key)]
    if not entity.has_property(name):
        return []
    value = entity.get_property(name)
    values = value if isinstance(value, list) else [value]
    return [_order_key(v) for v in values if not isinstance(v, _UNINDEXED_TYPES)]
