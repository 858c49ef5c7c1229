# -*- coding: utf-8 -*-

'''

    appengine_apis datastore: errors

    datastore error kinds, and the table that maps platform failures
    onto them.

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
import contextlib

# appengine_apis
from appengine_apis.exceptions import AppEngineAPIError
from appengine_apis.platform import errors as platform_errors


## Error
# Base datastore error.
class Error(AppEngineAPIError):

    ''' Base class for datastore errors. '''


class BadArgumentError(Error, ValueError):

    ''' An argument was invalid, as judged by the binding or the platform. '''


class TransactionFailed(Error):

    ''' A transaction collided with a concurrent write. '''


class NoSuchElementError(Error, IndexError):

    ''' An iterator or cursor ran past its end. '''


class NeedIndex(Error):

    ''' The query needs a composite index that was not declared. '''


class Timeout(Error):

    ''' The datastore did not answer in time. '''


class InternalError(Error):

    ''' The datastore failed internally. '''


class EntityNotFound(Error, KeyError):

    ''' No entity exists for the requested key. '''

    def __str__(self):
        return str(self.message)


class TooManyResults(Error):

    ''' A single-result query matched more than one entity. '''


class Rollback(Error):

    ''' Raise inside a transaction callback to roll back quietly. '''


class IncompleteKeyError(Error, KeyError):

    ''' A key was used as a parent before it was put. '''

    def __str__(self):
        return str(self.message)


class ErrorKind(enum.Enum):

    ''' Closed set of datastore failure kinds. '''

    INVALID_ARGUMENT = 'invalid_argument'
    TRANSACTION_FAILED = 'transaction_failed'
    NO_SUCH_ELEMENT = 'no_such_element'
    NEED_INDEX = 'need_index'
    TIMEOUT = 'timeout'
    INTERNAL_ERROR = 'internal_error'
    ENTITY_NOT_FOUND = 'entity_not_found'
    TOO_MANY_RESULTS = 'too_many_results'

    @property
    def error(self):

        ''' Binding error class raised for this kind. '''

        return _ERRORS[self]


_ERRORS = {
    ErrorKind.INVALID_ARGUMENT: BadArgumentError,
    ErrorKind.TRANSACTION_FAILED: TransactionFailed,
    ErrorKind.NO_SUCH_ELEMENT: NoSuchElementError,
    ErrorKind.NEED_INDEX: NeedIndex,
    ErrorKind.TIMEOUT: Timeout,
    ErrorKind.INTERNAL_ERROR: InternalError,
    ErrorKind.ENTITY_NOT_FOUND: EntityNotFound,
    ErrorKind.TOO_MANY_RESULTS: TooManyResults}


_KINDS = (
    (platform_errors.IllegalArgumentException, ErrorKind.INVALID_ARGUMENT),
    (platform_errors.ConcurrentModificationException, ErrorKind.TRANSACTION_FAILED),
    (platform_errors.NoSuchElementException, ErrorKind.NO_SUCH_ELEMENT),
    (platform_errors.DatastoreNeedIndexException, ErrorKind.NEED_INDEX),
    (platform_errors.DatastoreTimeoutException, ErrorKind.TIMEOUT),
    (platform_errors.DatastoreFailureException, ErrorKind.INTERNAL_ERROR),
    (platform_errors.EntityNotFoundException, ErrorKind.ENTITY_NOT_FOUND),
    (platform_errors.TooManyResultsException, ErrorKind.TOO_MANY_RESULTS))


def classify(error):

    ''' Map a platform error to its :py:class:`ErrorKind`, or ``None`` if
        the error is not a tabulated platform failure. '''

    for platform_error, kind in _KINDS:
        if isinstance(error, platform_error):
            return kind
    return None


def translate(error):

    ''' Binding error for ``error``, or ``error`` itself if untabulated. '''

    kind = classify(error)
    if kind is None:
        return error
    return kind.error(getattr(error, 'message', None) or str(error))


@contextlib.contextmanager
def convert_exceptions():

    ''' Re-raise tabulated platform errors as datastore errors. '''

    try:
        yield
    except platform_errors.PlatformException as e:
        translated = translate(e)
        if translated is e:
            raise
        raise translated from e
