# -*- coding: utf-8 -*-

'''

    appengine_apis datastore tests: transactions

    test cases for explicit transactions and the retrying transaction
    helper.

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

# appengine_apis datastore
from appengine_apis.datastore import Entity
from appengine_apis.datastore import Rollback
from appengine_apis.datastore import Transaction
from appengine_apis.datastore import EntityNotFound
from appengine_apis.datastore import BadArgumentError
from appengine_apis.datastore import TransactionFailed
from appengine_apis.platform.errors import IllegalStateException

# appengine_apis tests
from appengine_apis.tests.test_datastore import DatastoreTestCase


## ExplicitTransactionTests
# Tests transactions driven by hand.
class ExplicitTransactionTests(DatastoreTestCase):

    ''' Tests `Datastore.begin_transaction` and `Transaction`. '''

    def test_commit(self):

        ''' Writes are buffered until commit. '''

        tx = self.datastore.begin_transaction()
        self.assertIsInstance(tx, Transaction)
        self.assertTrue(tx.is_active)
        self.assertEqual(self.datastore.active_transactions(), [tx])

        key = self.datastore.put(Entity('Counter', name='c'), tx=tx)
        with self.assertRaises(EntityNotFound):
            self.datastore.get(key)

        tx.commit()
        self.assertFalse(tx.is_active)
        self.assertEqual(self.datastore.active_transactions(), [])
        self.assertEqual(self.datastore.get(key).key, key)

    def test_rollback(self):

        ''' Rolled back writes never land. '''

        tx = self.datastore.begin_transaction()
        key = self.datastore.put(Entity('Counter', name='c'), tx=tx)
        tx.rollback()
        self.assertFalse(tx.is_active)
        with self.assertRaises(EntityNotFound):
            self.datastore.get(key)

    def test_finished_transactions(self):

        ''' Finished transactions can't be used again. '''

        tx = self.datastore.begin_transaction()
        tx.commit()
        with self.assertRaises(IllegalStateException):
            tx.rollback()
        with self.assertRaises(IllegalStateException):
            self.datastore.put(Entity('Counter', name='c'), tx=tx)

    def test_single_entity_group(self):

        ''' A transaction spans one entity group. '''

        tx = self.datastore.begin_transaction()
        self.datastore.put(Entity('Counter', name='a'), tx=tx)
        with self.assertRaises(BadArgumentError):
            self.datastore.put(Entity('Counter', name='b'), tx=tx)
        tx.rollback()

    def test_transactional_query(self):

        ''' Queries in a transaction must have an ancestor. '''

        parent = self.datastore.put(Entity('Counter', name='c'))
        tx = self.datastore.begin_transaction()
        with self.assertRaises(BadArgumentError):
            self.datastore.query('Counter', tx=tx).fetch()
        self.assertEqual(self.datastore.query('Counter', parent, tx=tx).count(), 1)
        tx.rollback()

    def test_conflict(self):

        ''' A write outside the transaction makes its commit fail. '''

        key = self.datastore.put(Entity('Counter', name='c'))
        tx = self.datastore.begin_transaction()
        entity = self.datastore.get(key, tx=tx)
        self.datastore.put(entity)
        self.datastore.put(entity, tx=tx)
        with self.assertRaises(TransactionFailed):
            tx.commit()
        self.assertFalse(tx.is_active)


## TransactionHelperTests
# Tests `Datastore.transaction`.
class TransactionHelperTests(DatastoreTestCase):

    ''' Tests the retrying transaction helper. '''

    def setUp(self):
        super(TransactionHelperTests, self).setUp()
        counter = Entity('Counter', name='c')
        counter['count'] = 0
        self.key = self.datastore.put(counter)

    def increment(self, tx):
        counter = self.datastore.get(self.key, tx=tx)
        counter['count'] = counter['count'] + 1
        self.datastore.put(counter, tx=tx)
        return counter['count']

    def test_commits(self):

        ''' The callback gets the transaction, and its result is returned. '''

        seen = []

        def callback(tx):
            seen.append(tx)
            return self.increment(tx)

        self.assertEqual(self.datastore.transaction(callback), 1)
        self.assertEqual(self.datastore.get(self.key)['count'], 1)
        self.assertEqual(len(seen), 1)
        self.assertIsInstance(seen[0], Transaction)
        self.assertFalse(seen[0].is_active)
        self.assertEqual(self.datastore.active_transactions(), [])

    def test_rollback(self):

        ''' Raising `Rollback` discards the writes and returns None. '''

        def callback(tx):
            self.increment(tx)
            raise Rollback()

        self.assertIsNone(self.datastore.transaction(callback))
        self.assertEqual(self.datastore.get(self.key)['count'], 0)
        self.assertEqual(self.datastore.active_transactions(), [])

    def test_other_errors(self):

        ''' Other errors roll back and propagate. '''

        error = RuntimeError('boom')

        def callback(tx):
            self.increment(tx)
            raise error

        with self.assertRaises(RuntimeError) as raised:
            self.datastore.transaction(callback)
        self.assertIs(raised.exception, error)
        self.assertEqual(self.datastore.get(self.key)['count'], 0)
        self.assertEqual(self.datastore.active_transactions(), [])

    def collide(self, tx):

        ''' Read in the transaction, then write outside it. '''

        counter = self.datastore.get(self.key, tx=tx)
        self.datastore.put(counter)
        return self.increment(tx)

    def test_retries_exhausted(self):

        ''' With 3 retries, a callback that always collides runs 4 times. '''

        calls = []

        def callback(tx):
            calls.append(tx)
            return self.collide(tx)

        with self.assertRaises(TransactionFailed):
            self.datastore.transaction(callback)
        self.assertEqual(len(calls), 4)
        self.assertEqual(len(set(tx.id for tx in calls)), 4)
        self.assertEqual(self.datastore.active_transactions(), [])
        self.assertEqual(self.datastore.get(self.key)['count'], 0)

    def test_explicit_retries(self):

        ''' Retries can be set per call. '''

        calls = []

        def callback(tx):
            calls.append(tx)
            return self.collide(tx)

        with self.assertRaises(TransactionFailed):
            self.datastore.transaction(callback, retries=0)
        self.assertEqual(len(calls), 1)

    def test_retry_succeeds(self):

        ''' A callback that collides once succeeds on its second run. '''

        calls = []

        def callback(tx):
            calls.append(tx)
            if len(calls) == 1:
                return self.collide(tx)
            return self.increment(tx)

        self.assertEqual(self.datastore.transaction(callback), 1)
        self.assertEqual(len(calls), 2)
        self.assertEqual(self.datastore.get(self.key)['count'], 1)

    def test_bad_retries(self):

        ''' Retry counts must be non-negative integers. '''

        with self.assertRaises(BadArgumentError):
            self.datastore.transaction(self.increment, retries=-1)
        with self.assertRaises(BadArgumentError):
            self.datastore.transaction(self.increment, retries='3')
