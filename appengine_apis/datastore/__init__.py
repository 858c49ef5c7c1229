# -*- coding: utf-8 -*-

'''

    appengine_apis datastore

    datastore client. marshals keys, entities and property values to and
    from the platform's datastore service, translates its failures into
    :py:mod:`appengine_apis.datastore.errors`, and runs callbacks in
    retried transactions.

    transactions are explicit: :py:meth:`Datastore.begin_transaction`
    returns a handle, which is passed to each operation as ``tx=``.

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

# appengine_apis util
from appengine_apis.util import decorators

# platform
from appengine_apis.platform import datastore as native
from appengine_apis.platform.errors import IllegalStateException
from appengine_apis.platform.errors import NoSuchElementException

# datastore types
from appengine_apis.datastore.types import Key
from appengine_apis.datastore.types import Text
from appengine_apis.datastore.types import Link
from appengine_apis.datastore.types import Blob
from appengine_apis.datastore.types import Entity
from appengine_apis.datastore.types import ValueKind
from appengine_apis.datastore.types import ByteString
from appengine_apis.datastore.types import encode_key
from appengine_apis.datastore.types import decode_key

# datastore queries
from appengine_apis.datastore.query import Query
from appengine_apis.datastore.query import FetchOptions
from appengine_apis.datastore.query import convert_options

# datastore errors
from appengine_apis.datastore.errors import Error
from appengine_apis.datastore.errors import Timeout
from appengine_apis.datastore.errors import Rollback
from appengine_apis.datastore.errors import NeedIndex
from appengine_apis.datastore.errors import ErrorKind
from appengine_apis.datastore.errors import InternalError
from appengine_apis.datastore.errors import EntityNotFound
from appengine_apis.datastore.errors import TooManyResults
from appengine_apis.datastore.errors import BadArgumentError
from appengine_apis.datastore.errors import TransactionFailed
from appengine_apis.datastore.errors import IncompleteKeyError
from appengine_apis.datastore.errors import NoSuchElementError
from appengine_apis.datastore.errors import classify
from appengine_apis.datastore.errors import translate
from appengine_apis.datastore.errors import convert_exceptions


def _collect(args, expected, noun):

    ''' Flatten ``*args`` into a list. Returns ``(items, single)``. '''

    if not args:
        raise BadArgumentError('Expected at least one %s.' % noun)
    if len(args) == 1 and isinstance(args[0], (list, tuple)):
        items, single = list(args[0]), False
    else:
        items, single = list(args), len(args) == 1
    for item in items:
        if not isinstance(item, expected):
            raise BadArgumentError('Expected a %s, got %r.' % (noun, item))
    return items, single


## Transaction
# Explicit handle for a datastore transaction.
class Transaction(object):

    ''' Wraps a platform transaction; pass it to operations as ``tx=``. '''

    def __init__(self, tx):
        self._tx = tx

    id = property(lambda self: self._tx.id)

    @property
    def is_active(self):
        return self._tx.is_active()

    def commit(self):

        ''' Apply buffered writes.

            :raises TransactionFailed: If the entity group changed since the
            transaction first touched it. '''

        with convert_exceptions():
            self._tx.commit()

    def rollback(self):
        with convert_exceptions():
            self._tx.rollback()

    def __eq__(self, other):
        if not isinstance(other, Transaction):
            return NotImplemented
        return self._tx is other._tx

    def __ne__(self, other):
        result = self.__eq__(other)
        return result if result is NotImplemented else not result

    def __hash__(self):
        return hash(self._tx.id)

    def __repr__(self):
        return '<Transaction %s active=%s>' % (self.id, self.is_active)


## Datastore
# Client over a platform's datastore service.
@decorators.config(path='appengine_apis.datastore')
class Datastore(object):

    ''' Datastore client for one :py:class:`Platform`. '''

    def __init__(self, platform):
        self.platform = platform

    @property
    def service(self):
        return self.platform.datastore

    @staticmethod
    def _native_tx(tx):
        if tx is None:
            return None
        if not isinstance(tx, Transaction):
            raise BadArgumentError('Expected a Transaction, got %r.' % (tx,))
        return tx._tx

    ## == Keys == ##
    def key(self, *args, **kwargs):

        ''' :py:meth:`Key.from_path`, defaulting to this platform's app id. '''

        kwargs.setdefault('app', self.platform.environment.app_id)
        return Key.from_path(*args, **kwargs)

    ## == Get / Put / Delete == ##
    def get(self, *keys, tx=None):

        ''' Fetch entities by key.

            With a single key, returns its :py:class:`Entity` or raises
            :py:class:`EntityNotFound`. With several keys (or a list), returns
            a list in key order, with ``None`` for each key not found. '''

        keys, single = _collect(keys, native.Key, 'Key')
        native_tx = self._native_tx(tx)
        with convert_exceptions():
            if single:
                return Entity._wrap(self.service.get(keys[0], tx=native_tx))
            found = self.service.get(keys, tx=native_tx)
        return [Entity._wrap(found.get(key)) for key in keys]

    def put(self, *entities, tx=None):

        ''' Store entities. Returns the key, or a list of keys. Incomplete
            keys are completed in place. '''

        entities, single = _collect(entities, Entity, 'Entity')
        native_tx = self._native_tx(tx)
        with convert_exceptions():
            if single:
                return Key._wrap(self.service.put(entities[0]._entity, tx=native_tx))
            keys = self.service.put([entity._entity for entity in entities], tx=native_tx)
        return [Key._wrap(key) for key in keys]

    def delete(self, *keys, tx=None):

        ''' Delete entities by key. Missing keys are ignored. '''

        keys, _ = _collect(keys, native.Key, 'Key')
        native_tx = self._native_tx(tx)
        with convert_exceptions():
            self.service.delete(keys, tx=native_tx)

    ## == Transactions == ##
    def begin_transaction(self):
        with convert_exceptions():
            return Transaction(self.service.begin_transaction())

    def active_transactions(self):

        ''' Transactions begun here that are neither committed nor rolled back. '''

        with convert_exceptions():
            return [Transaction(tx) for tx in self.service.get_active_transactions()]

    def transaction(self, callback, retries=None):

        ''' Run ``callback(tx)`` in a transaction and commit it.

            The transaction is rolled back if ``callback`` raises. Raising
            :py:class:`Rollback` rolls back and returns ``None``. On
            :py:class:`TransactionFailed` the callback runs again, up to
            ``retries`` more times (default from config, normally 3), so it
            must be safe to repeat.

            :returns: Return value of ``callback``. '''

        if retries is None:
            retries = self.config.get('transaction_retries', 3)
        if isinstance(retries, bool) or not isinstance(retries, int) or retries < 0:
            raise BadArgumentError('Transaction retries must be a non-negative integer, got %r.' % (retries,))

        while True:
            tx = self.begin_transaction()
            try:
                result = callback(tx)
                tx.commit()
                return result
            except Rollback:
                return None
            except TransactionFailed:
                if retries <= 0:
                    raise
                retries -= 1
                self.logging.info('Transaction %s failed; %d retries left.' % (tx.id, retries))
            finally:
                try:
                    tx._tx.rollback()
                except (IllegalStateException, NoSuchElementException):
                    pass

    ## == Queries == ##
    def query(self, kind=None, ancestor=None, namespace=None, tx=None):

        ''' New :py:class:`Query` over this datastore. '''

        return Query(self, kind, ancestor, namespace=namespace, tx=tx)


__all__ = [
    'Datastore', 'Transaction', 'Query', 'Key', 'Entity', 'Text', 'Link', 'Blob', 'ByteString', 'ValueKind',
    'FetchOptions', 'convert_options', 'encode_key', 'decode_key', 'ErrorKind', 'classify', 'translate',
    'convert_exceptions', 'Error', 'BadArgumentError', 'TransactionFailed', 'NoSuchElementError', 'NeedIndex',
    'Timeout', 'InternalError', 'EntityNotFound', 'TooManyResults', 'Rollback', 'IncompleteKeyError'
]
