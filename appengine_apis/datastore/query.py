# -*- coding: utf-8 -*-

'''

    appengine_apis datastore: query

    chainable datastore queries, and the translation of loose fetch
    option mappings into platform fetch options.

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

# appengine_apis
from appengine_apis.platform import datastore as native
from appengine_apis.datastore.types import Key
from appengine_apis.datastore.types import Entity
from appengine_apis.datastore.types import encode_value
from appengine_apis.datastore.types import decode_value
from appengine_apis.datastore.types import _normalize_name
from appengine_apis.datastore.errors import BadArgumentError
from appengine_apis.datastore.errors import convert_exceptions


## Constants
EQUAL = native.FilterOperator.EQUAL
GREATER_THAN = native.FilterOperator.GREATER_THAN
GREATER_THAN_OR_EQUAL = native.FilterOperator.GREATER_THAN_OR_EQUAL
LESS_THAN = native.FilterOperator.LESS_THAN
LESS_THAN_OR_EQUAL = native.FilterOperator.LESS_THAN_OR_EQUAL

ASCENDING = native.SortDirection.ASCENDING
DESCENDING = native.SortDirection.DESCENDING

# unknown operators pass through, for the platform to reject
OP_MAP = {
    '==': EQUAL,
    '>': GREATER_THAN,
    '>=': GREATER_THAN_OR_EQUAL,
    '<': LESS_THAN,
    '<=': LESS_THAN_OR_EQUAL
}

FetchOptions = native.FetchOptions
_OPTION_NAMES = frozenset(('limit', 'offset', 'chunk'))


def convert_options(options):

    ''' Build :py:class:`FetchOptions` from a mapping with the optional keys
        ``limit``, ``offset`` and ``chunk``.

        :raises BadArgumentError: For any other key, or an invalid value.
        :returns: New :py:class:`FetchOptions` (or ``options`` itself, if it
        already is one). '''

    if isinstance(options, FetchOptions):
        return options

    options = dict(options or {})
    unsupported = sorted(set(options) - _OPTION_NAMES)
    if unsupported:
        raise BadArgumentError('Unsupported options %s' % dict((k, options[k]) for k in unsupported))

    limit, offset = options.get('limit'), options.get('offset')
    chunk = options.get('chunk')
    if chunk is None:
        chunk = FetchOptions.DEFAULT_CHUNK_SIZE
    with convert_exceptions():
        fetch_options = FetchOptions.with_chunk_size(chunk)
        if offset is not None:
            fetch_options.set_offset(offset)
        if limit is not None:
            fetch_options.set_limit(limit)
    return fetch_options


## Query
# Chainable query over a Datastore.
class Query(object):

    ''' Query for entities by kind and/or ancestor, with filters and sort
        orders. Each execution reads from storage anew. '''

    EQUAL, GREATER_THAN, GREATER_THAN_OR_EQUAL = EQUAL, GREATER_THAN, GREATER_THAN_OR_EQUAL
    LESS_THAN, LESS_THAN_OR_EQUAL = LESS_THAN, LESS_THAN_OR_EQUAL
    ASCENDING, DESCENDING = ASCENDING, DESCENDING
    OP_MAP = OP_MAP

    def __init__(self, datastore, kind=None, ancestor=None, namespace=None, tx=None):

        ''' Build a query against ``datastore``.

            :param kind: Kind to query, or a :py:class:`Key` to use as the
            ancestor of a kindless query.
            :param ancestor: Complete :py:class:`Key` to scope results to.
            :param tx: Transaction to run inside (ancestor queries only). '''

        self.datastore, self.tx = datastore, tx
        with convert_exceptions():
            self._query = native.Query(_normalize_name(kind), ancestor, namespace=namespace)

    kind = property(lambda self: self._query.kind)

    def _get_ancestor(self):
        return Key._wrap(self._query.ancestor)

    def _set_ancestor(self, key):
        with convert_exceptions():
            self._query.set_ancestor(key)

    ancestor = property(_get_ancestor, _set_ancestor)

    def set_ancestor(self, key):

        ''' Set the ancestor (chainable). '''

        self.ancestor = key
        return self

    def filter(self, name, operator, value):

        ''' Add a filter (chainable). ``operator`` is one of ``'=='``,
            ``'<'``, ``'<='``, ``'>'``, ``'>='`` or a filter constant. '''

        name, operator = _normalize_name(name), _normalize_operator(operator)
        value = encode_value(value)
        with convert_exceptions():
            self._query.add_filter(name, operator, value)
        return self

    def sort(self, name, direction=ASCENDING):

        ''' Add a sort order (chainable). '''

        with convert_exceptions():
            self._query.add_sort(_normalize_name(name), direction)
        return self

    @property
    def filter_predicates(self):
        return [native.FilterPredicate(f.property_name, f.operator, decode_value(f.value))
                for f in self._query.get_filter_predicates()]

    @property
    def sort_predicates(self):
        return self._query.get_sort_predicates()

    ## == Execution == ##
    def _prepare(self):
        tx = self.tx._tx if self.tx is not None else None
        with convert_exceptions():
            return self.datastore.service.prepare(self._query, tx=tx)

    def count(self):

        ''' Number of matching entities. '''

        prepared = self._prepare()
        with convert_exceptions():
            return prepared.count()

    def entity(self):

        ''' The single matching entity, or ``None``.

            :raises TooManyResults: If more than one entity matches. '''

        prepared = self._prepare()
        with convert_exceptions():
            return Entity._wrap(prepared.as_single_entity())

    def fetch(self, options=None, **kwargs):

        ''' List of matching entities, bounded by ``limit``/``offset``. '''

        options = convert_options(_merge(options, kwargs))
        prepared = self._prepare()
        with convert_exceptions():
            return [Entity._wrap(entity) for entity in prepared.as_list(options)]

    def iterator(self, options=None, **kwargs):

        ''' Iterate over matching entities, fetched ``chunk`` at a time. '''

        options = convert_options(_merge(options, kwargs))
        return self._iterate(self._prepare(), options)

    @staticmethod
    def _iterate(prepared, options):
        with convert_exceptions():
            for entity in prepared.as_iterator(options):
                yield Entity._wrap(entity)

    def each(self, callback, options=None, **kwargs):

        ''' Call ``callback`` with each matching entity. '''

        for entity in self.iterator(options, **kwargs):
            callback(entity)

    def __iter__(self):
        return self.iterator()

    convert_options = staticmethod(convert_options)

    def __repr__(self):
        return '<Query %r>' % self._query


def _normalize_operator(operator):
    if isinstance(operator, native.FilterOperator):
        return operator
    operator = _normalize_name(operator)
    if isinstance(operator, str):
        return OP_MAP.get(operator, operator)
    return operator


def _merge(options, kwargs):
    if options is None:
        return kwargs
    if isinstance(options, FetchOptions):
        if kwargs:
            raise BadArgumentError('Unsupported options %r' % kwargs)
        return options
    merged = dict(options)
    merged.update(kwargs)
    return merged
