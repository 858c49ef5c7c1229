# -*- coding: utf-8 -*-

'''

    appengine_apis datastore: types

    keys, entities and the special value types, plus the codec that
    moves property values between python and the platform's native
    representation.

    every supported value falls into exactly one :py:class:`ValueKind`;
    the encoder and decoder tables below must cover every kind, which is
    checked when this module is imported.

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
import datetime

# appengine_apis
from appengine_apis import users
from appengine_apis.platform import datastore as native
from appengine_apis.datastore.errors import BadArgumentError
from appengine_apis.datastore.errors import IncompleteKeyError
from appengine_apis.datastore.errors import convert_exceptions


## Constants
_EPOCH = datetime.datetime(1970, 1, 1)


def _normalize_name(name):

    ''' Normalize symbolic property names and kinds to plain strings. '''

    if isinstance(name, enum.Enum):
        return name.name
    if isinstance(name, bytes):
        return name.decode('utf-8')
    return name


## == Special types == ##

class Text(str):

    ''' Long text. Not indexed, so it cannot be filtered or sorted on. '''

    def __repr__(self):
        return 'Text(%s)' % str.__repr__(self)


class Link(str):

    ''' A fully qualified URL. '''

    def __repr__(self):
        return 'Link(%s)' % str.__repr__(self)


class Blob(bytes):

    ''' Binary data. Not indexed. '''

    def __repr__(self):
        return '%s(%s)' % (self.__class__.__name__, bytes.__repr__(self))


class ByteString(Blob):

    ''' Short (up to 500 bytes), indexed binary data. '''


## Key
# Datastore key, with path construction and url-safe encoding.
class Key(native.Key):

    ''' Datastore key. ``str(key)`` is its url-safe encoding. '''

    __slots__ = ()

    @classmethod
    def from_path(cls, *args, **kwargs):

        ''' Build a key from a path: ``from_path([parent,] kind, id_or_name,
            [kind, id_or_name, ...], app=None, namespace=None)``.

            :raises BadArgumentError: If the path has an odd number of
            trailing arguments, or an unsupported keyword.
            :raises IncompleteKeyError: If ``parent`` has not been put.
            :returns: New :py:class:`Key`. '''

        app, namespace = kwargs.pop('app', None), kwargs.pop('namespace', None)
        if kwargs:
            raise BadArgumentError('Unsupported options %r.' % kwargs)

        args, parent = list(args), None
        if args and (args[0] is None or isinstance(args[0], native.Key)):
            parent = args.pop(0)

        if not args or len(args) % 2 != 0:
            raise BadArgumentError('Expected an even number of arguments '
                                   '(kind1, id1, kind2, id2, ...); received %r' % (args,))
        if parent is not None and not parent.is_complete():
            raise IncompleteKeyError('The parent key has not yet been Put.')

        current = cls._wrap(parent) if parent is not None else None
        with convert_exceptions():
            for index in range(0, len(args), 2):
                kind, id_or_name = _normalize_name(args[index]), args[index + 1]
                if current is not None:
                    current = current.get_child(kind, id_or_name)
                else:
                    current = cls.create(kind, id_or_name, app=app, namespace=namespace)
        return current

    @classmethod
    def from_urlsafe(cls, encoded):

        ''' Decode a key produced by :py:meth:`urlsafe`. '''

        with convert_exceptions():
            return cls.from_websafe(encoded)

    @classmethod
    def _wrap(cls, key):
        if key is None or isinstance(key, cls):
            return key
        return cls(key.path, app=key.app, namespace=key.namespace)

    def urlsafe(self):

        ''' Encode this key as a url-safe string. '''

        with convert_exceptions():
            return self.to_websafe()

    @property
    def id_or_name(self):
        return self.name if self.name is not None else self.id

    def __str__(self):
        return self.urlsafe()

    def __repr__(self):
        return 'Key(%s)' % self.to_string()

    def __json__(self):
        return self.urlsafe()


def encode_key(key):

    ''' Url-safe string for a complete ``key``. '''

    if not isinstance(key, native.Key):
        raise BadArgumentError('Expected a Key, got %r.' % (key,))
    return Key._wrap(key).urlsafe()


def decode_key(encoded):

    ''' Inverse of :py:func:`encode_key`. '''

    return Key.from_urlsafe(encoded)


## == Value codec == ##

class ValueKind(enum.Enum):

    ''' Every kind of value a property can hold. '''

    NONE = 'none'
    BOOLEAN = 'boolean'
    INTEGER = 'integer'
    FLOAT = 'float'
    STRING = 'string'
    TEXT = 'text'
    BLOB = 'blob'
    SHORT_BLOB = 'short_blob'
    LINK = 'link'
    TIMESTAMP = 'timestamp'
    USER = 'user'
    KEY = 'key'
    LIST = 'list'


def kind_of(value):

    ''' :py:class:`ValueKind` of a python ``value``. Checked most specific
        type first, since the special types subclass ``str``/``bytes``. '''

    if value is None:
        return ValueKind.NONE
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, int):
        return ValueKind.INTEGER
    if isinstance(value, float):
        return ValueKind.FLOAT
    if isinstance(value, Text):
        return ValueKind.TEXT
    if isinstance(value, Link):
        return ValueKind.LINK
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, ByteString):
        return ValueKind.SHORT_BLOB
    if isinstance(value, bytes):
        return ValueKind.BLOB
    if isinstance(value, datetime.datetime):
        return ValueKind.TIMESTAMP
    if isinstance(value, users.User):
        return ValueKind.USER
    if isinstance(value, native.Key):
        return ValueKind.KEY
    if isinstance(value, (list, tuple)):
        return ValueKind.LIST
    raise BadArgumentError('Unsupported property value type: %s.' % type(value).__name__)


def native_kind_of(value):

    ''' :py:class:`ValueKind` of a native platform ``value``. '''

    if isinstance(value, native.Text):
        return ValueKind.TEXT
    if isinstance(value, native.Blob):
        return ValueKind.BLOB
    if isinstance(value, native.ShortBlob):
        return ValueKind.SHORT_BLOB
    if isinstance(value, native.Link):
        return ValueKind.LINK
    if isinstance(value, native.Date):
        return ValueKind.TIMESTAMP
    if isinstance(value, native.User):
        return ValueKind.USER
    if isinstance(value, list):
        return ValueKind.LIST
    return kind_of(value)


def _timestamp_to_native(value):
    if value.tzinfo is not None:
        value = value.astimezone(datetime.timezone.utc).replace(tzinfo=None)
    delta = value - _EPOCH
    return native.Date((delta.days * 86400 + delta.seconds) * 1000000 + delta.microseconds)


def _timestamp_from_native(value):
    return _EPOCH + datetime.timedelta(microseconds=value.usec)


def _user_to_native(value):
    return native.User(value.email, value.auth_domain, value.user_id)


def _user_from_native(value):
    return users.User(value.email, value.auth_domain, user_id=value.user_id)


_ENCODERS = {
    ValueKind.NONE: lambda value: None,
    ValueKind.BOOLEAN: bool,
    ValueKind.INTEGER: int,
    ValueKind.FLOAT: float,
    ValueKind.STRING: str,
    ValueKind.TEXT: lambda value: native.Text(str(value)),
    ValueKind.BLOB: lambda value: native.Blob(bytes(value)),
    ValueKind.SHORT_BLOB: lambda value: native.ShortBlob(bytes(value)),
    ValueKind.LINK: lambda value: native.Link(str(value)),
    ValueKind.TIMESTAMP: _timestamp_to_native,
    ValueKind.USER: _user_to_native,
    ValueKind.KEY: lambda value: value,
    ValueKind.LIST: lambda value: [encode_value(item) for item in value]
}

_DECODERS = {
    ValueKind.NONE: lambda value: None,
    ValueKind.BOOLEAN: bool,
    ValueKind.INTEGER: int,
    ValueKind.FLOAT: float,
    ValueKind.STRING: str,
    ValueKind.TEXT: lambda value: Text(value.value),
    ValueKind.BLOB: lambda value: Blob(value.value),
    ValueKind.SHORT_BLOB: lambda value: ByteString(value.value),
    ValueKind.LINK: lambda value: Link(value.value),
    ValueKind.TIMESTAMP: _timestamp_from_native,
    ValueKind.USER: _user_from_native,
    ValueKind.KEY: Key._wrap,
    ValueKind.LIST: lambda value: [decode_value(item) for item in value]
}

for _table in (_ENCODERS, _DECODERS):
    if set(_table) != set(ValueKind):
        raise TypeError('Value codec does not cover: %s.' % ', '.join(
            sorted(kind.name for kind in set(ValueKind) - set(_table))))


def encode_value(value):

    ''' Convert a python value to its native platform representation. '''

    with convert_exceptions():
        return _ENCODERS[kind_of(value)](value)


def decode_value(value):

    ''' Convert a native platform value back to python. '''

    return _DECODERS[native_kind_of(value)](value)


## Entity
# Property mapping for a single datastore record.
class Entity(object):

    ''' A datastore entity. Iterating yields ``(name, value)`` pairs. '''

    def __init__(self, kind, parent=None, name=None, app=None, namespace=None):

        ''' Create an entity of ``kind``; ``kind`` may also be a complete
            :py:class:`Key` naming the entity. '''

        with convert_exceptions():
            if isinstance(kind, native.Key):
                self._entity = native.Entity(None, key=Key._wrap(kind))
            else:
                if parent is not None and not isinstance(parent, native.Key):
                    raise BadArgumentError('Expected None or a Key as a parent; received %r.' % (parent,))
                if parent is not None and not parent.is_complete():
                    raise IncompleteKeyError('The parent key has not yet been Put.')
                key = Key.create(_normalize_name(kind), name, parent=Key._wrap(parent), app=app, namespace=namespace)
                self._entity = native.Entity(None, key=key)

    @classmethod
    def _wrap(cls, entity):

        ''' Wrap a native platform entity. '''

        if entity is None:
            return None
        wrapped = cls.__new__(cls)
        wrapped._entity = entity
        return wrapped

    ## == Key == ##
    @property
    def key(self):
        return Key._wrap(self._entity.key)

    kind = property(lambda self: self._entity.kind)

    @property
    def parent(self):
        return Key._wrap(self._entity.parent)

    ## == Properties == ##
    def get_property(self, name):

        ''' Value of property ``name``, or ``None`` if unset. '''

        with convert_exceptions():
            return decode_value(self._entity.get_property(_normalize_name(name)))

    def set_property(self, name, value):

        ''' Set property ``name`` to ``value``. Timezone-aware ``datetime``
            values are converted to UTC and read back naive.

            :raises BadArgumentError: If ``value`` is not a supported type. '''

        value = encode_value(value)
        with convert_exceptions():
            self._entity.set_property(_normalize_name(name), value)

    def delete(self, name):

        ''' Remove property ``name``. Missing names are ignored. '''

        with convert_exceptions():
            self._entity.remove_property(_normalize_name(name))

    def has_property(self, name):
        with convert_exceptions():
            return self._entity.has_property(_normalize_name(name))

    __getitem__ = get_property
    __setitem__ = set_property
    __delitem__ = delete
    __contains__ = has_property

    def __iter__(self):
        for name, value in self._entity.get_properties().items():
            yield name, decode_value(value)

    each = __iter__

    def __len__(self):
        return len(self._entity.get_properties())

    def keys(self):
        return list(self._entity.get_properties().keys())

    def update(self, other):

        ''' Set every property in ``other`` (a mapping or ``(name, value)``
            pairs). Returns this entity. '''

        items = other.items() if hasattr(other, 'items') else other
        for name, value in items:
            self.set_property(name, value)
        return self

    def to_dict(self):
        return dict(self)

    def __json__(self):
        return self.to_dict()

    ## == Protocol == ##
    def __eq__(self, other):
        if not isinstance(other, Entity):
            return NotImplemented
        return self._entity == other._entity

    def __ne__(self, other):
        result = self.__eq__(other)
        return result if result is NotImplemented else not result

    def __hash__(self):
        return hash(self._entity)

    def __repr__(self):
        return '<Entity [%s] %r>' % (self._entity.key.to_string(), self.to_dict())
