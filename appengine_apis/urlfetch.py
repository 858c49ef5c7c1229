# -*- coding: utf-8 -*-

'''

    appengine_apis urlfetch

    fetches urls through the platform's urlfetch service.

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
import http

# 3rd party
from requests import structures

# appengine_apis
from appengine_apis.util import decorators
from appengine_apis.exceptions import AppEngineAPIError
from appengine_apis.platform import errors as platform_errors
from appengine_apis.platform.urlfetch import HTTPMethod
from appengine_apis.platform.urlfetch import HTTPRequest
from appengine_apis.platform.urlfetch import FetchOptions


_OPTIONS = frozenset(('method', 'payload', 'headers', 'allow_truncated', 'follow_redirects', 'deadline'))


class DownloadError(AppEngineAPIError):

    ''' The fetch failed on the network. '''


class InvalidURLError(AppEngineAPIError):

    ''' The URL was malformed, or not http(s). '''


class ResponseTooLargeError(AppEngineAPIError):

    ''' The response exceeded the size cap, and truncation was not allowed. '''


class BadArgumentError(AppEngineAPIError, ValueError):

    ''' An option or method was invalid. '''


## FetchResponse
class FetchResponse(object):

    ''' A fetched HTTP response. '''

    def __init__(self, status_code, message, headers, content, final_url=None):
        self.status_code, self.message = status_code, message
        self.headers = structures.CaseInsensitiveDict(headers or {})
        self.content, self.final_url = content, final_url

    @property
    def text(self):
        if self.content is None:
            return None
        return self.content.decode('utf-8', 'replace')

    def __repr__(self):
        return '<FetchResponse %s %s>' % (self.status_code, self.message)


def _message(status_code):
    try:
        return http.HTTPStatus(status_code).phrase
    except ValueError:
        return 'Unknown'


## URLFetch
# Client over a platform's urlfetch service.
@decorators.config(path='appengine_apis.urlfetch')
class URLFetch(object):

    ''' URL fetch client for one :py:class:`Platform`. '''

    def __init__(self, platform):
        self.platform = platform

    @property
    def service(self):
        return self.platform.urlfetch

    def build_request(self, url, **options):

        ''' Build a platform :py:class:`HTTPRequest` from fetch options. '''

        unsupported = sorted(set(options) - _OPTIONS)
        if unsupported:
            raise BadArgumentError('Unsupported options %s.' % ', '.join(unsupported))

        method = options.get('method') or 'GET'
        try:
            method = method if isinstance(method, HTTPMethod) else HTTPMethod.value_of(method)
        except platform_errors.IllegalArgumentException:
            raise BadArgumentError('Invalid method %r.' % (method,))

        follow_redirects = options.get('follow_redirects')
        fetch_options = FetchOptions(
            allow_truncate=bool(options.get('allow_truncated')),
            follow_redirects=True if follow_redirects is None else bool(follow_redirects),
            deadline=options.get('deadline'))

        request = HTTPRequest(url, method, fetch_options)
        headers = options.get('headers') or {}
        for name, value in (headers.items() if hasattr(headers, 'items') else headers):
            request.set_header(name, value)
        if options.get('payload') is not None:
            request.set_payload(options['payload'])
        return request

    def fetch(self, url, **options):

        ''' Fetch ``url``.

            :param options: ``method``, ``payload``, ``headers``,
            ``allow_truncated``, ``follow_redirects`` and ``deadline``.
            :returns: :py:class:`FetchResponse`. '''

        request = self.build_request(url, **options)
        try:
            response = self.service.fetch(request)
        except platform_errors.IllegalArgumentException as e:
            raise BadArgumentError(e.message) from e
        except platform_errors.MalformedURLException as e:
            raise InvalidURLError(e.message) from e
        except platform_errors.ResponseTooLargeException as e:
            raise ResponseTooLargeError(e.message) from e
        except platform_errors.IOException as e:
            raise DownloadError(e.message) from e

        self.logging.debug('Fetched %s: %s.' % (url, response.response_code))
        return FetchResponse(
            response.response_code, _message(response.response_code),
            response.headers, response.content, response.final_url)
