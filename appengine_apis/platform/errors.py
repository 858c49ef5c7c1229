# -*- coding: utf-8 -*-

'''

    appengine_apis platform: errors

    exceptions raised by platform service implementations. bindings never
    let these escape untranslated when they appear in a binding's table.

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


## PlatformException
# Root of all errors raised by a platform service.
class PlatformException(Exception):

    ''' Raised by platform services. '''

    def __init__(self, message=''):

        ''' Keep ``message`` around for translation. '''

        super(PlatformException, self).__init__(message)
        self.message = message


# Generic
class IllegalArgumentException(PlatformException): pass
class IllegalStateException(PlatformException): pass
class NoSuchElementException(PlatformException): pass
class IOException(PlatformException): pass


# Datastore
class ConcurrentModificationException(PlatformException): pass
class DatastoreNeedIndexException(PlatformException): pass
class DatastoreTimeoutException(PlatformException): pass
class DatastoreFailureException(PlatformException): pass
class EntityNotFoundException(PlatformException): pass
class TooManyResultsException(PlatformException): pass


# Memcache
class MemcacheServiceException(PlatformException): pass
class InvalidValueException(PlatformException): pass


# URLFetch
class MalformedURLException(PlatformException): pass
class ResponseTooLargeException(PlatformException): pass
