# -*- coding: utf-8 -*-

'''

    appengine_apis datastore tests: `appengine_apis.datastore`

    testsuite for the datastore binding: keys, the property codec,
    queries, transactions and error translation.

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
import os

# appengine_apis tests
from appengine_apis.tests import AppEngineTestCase


## DatastoreTestCase
# Base for tests that talk to a datastore client.
class DatastoreTestCase(AppEngineTestCase):

    ''' Adds a :py:class:`Datastore` over the test platform. '''

    datastore = None

    def setUp(self):
        super(DatastoreTestCase, self).setUp()
        from appengine_apis.datastore import Datastore
        self.datastore = Datastore(self.platform)


## DatastoreExportTests
# Tests that things exported by the datastore package are there.
class DatastoreExportTests(AppEngineTestCase):

    ''' Tests objects exported by `datastore`. '''

    def test_concrete(self):

        ''' Test that we can import concrete classes. '''

        try:
            from appengine_apis import datastore
            from appengine_apis.datastore import Key
            from appengine_apis.datastore import Query
            from appengine_apis.datastore import Entity
            from appengine_apis.datastore import Datastore
            from appengine_apis.datastore import Transaction

        except ImportError:  # pragma: no cover
            return self.fail("Failed to import concrete classes exported by datastore.")

        else:
            self.assertTrue(Key)  # must export Key
            self.assertTrue(Query)  # must export Query
            self.assertTrue(Entity)  # must export Entity
            self.assertTrue(Datastore)  # must export Datastore
            self.assertTrue(Transaction)  # must export Transaction
            self.assertIsInstance(datastore, type(os))  # must be a module
