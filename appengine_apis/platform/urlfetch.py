# -*- coding: utf-8 -*-

'''

    appengine_apis platform: urlfetch

    url fetch service, executing HTTP requests through a ``requests``
    session with a deadline, redirect control and a response size cap.

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
from urllib import parse

# 3rd party
import requests

# appengine_apis util
from appengine_apis.util import decorators

# platform errors
from appengine_apis.platform.errors import IOException
from appengine_apis.platform.errors import MalformedURLException
from appengine_apis.platform.errors import IllegalArgumentException
from appengine_apis.platform.errors import ResponseTooLargeException


class HTTPMethod(enum.Enum):

    ''' Methods the fetch service can issue. '''

    GET = 'GET'
    POST = 'POST'
    HEAD = 'HEAD'
    PUT = 'PUT'
    DELETE = 'DELETE'

    @classmethod
    def value_of(cls, name):

        ''' Resolve a method by (case-insensitive) name. '''

        try:
            return cls[str(name).upper()]
        except KeyError:
            raise IllegalArgumentException('No such HTTP method: %s' % name)


## FetchOptions
# Per-request truncation, redirect and deadline settings.
class FetchOptions(object):

    ''' Options for a single fetch. '''

    def __init__(self, allow_truncate=False, follow_redirects=True, deadline=None):
        self.allow_truncate, self.follow_redirects, self.deadline = allow_truncate, follow_redirects, deadline

    def __repr__(self):
        return '<FetchOptions truncate=%s redirects=%s deadline=%r>' % (
            self.allow_truncate, self.follow_redirects, self.deadline)


## HTTPRequest
class HTTPRequest(object):

    ''' An outgoing request. '''

    def __init__(self, url, method=HTTPMethod.GET, options=None):
        if not isinstance(method, HTTPMethod):
            raise IllegalArgumentException('Expected an HTTPMethod, got %r.' % (method,))
        self.url, self.method = url, method
        self.options = options or FetchOptions()
        self.headers, self.payload = [], None

    def set_header(self, name, value):
        self.headers = [(n, v) for n, v in self.headers if n.lower() != name.lower()]
        self.headers.append((name, value))
        return self

    def add_header(self, name, value):
        self.headers.append((name, value))
        return self

    def set_payload(self, payload):
        if isinstance(payload, str):
            payload = payload.encode('utf-8')
        self.payload = payload
        return self


## HTTPResponse
class HTTPResponse(object):

    ''' A fetched response. '''

    def __init__(self, response_code, content, headers, final_url=None):
        self.response_code, self.content, self.headers, self.final_url = response_code, content, headers, final_url

    def __repr__(self):
        return '<HTTPResponse %s (%d bytes)>' % (self.response_code, len(self.content or b''))


def _validate_url(url):
    parts = parse.urlsplit(url) if isinstance(url, str) else None
    if parts is None or parts.scheme not in ('http', 'https') or not parts.netloc:
        raise MalformedURLException('Invalid URL specified: %r' % (url,))
    return url


## URLFetchService
# Executes HTTPRequests through a requests.Session.
@decorators.config(path='appengine_apis.urlfetch')
class URLFetchService(object):

    ''' HTTP fetch service. '''

    def __init__(self, session=None, deadline=None, max_response_size=None, max_redirects=None):
        config = self.config
        if session is None:
            session = requests.Session()
            max_redirects = max_redirects or config.get('max_redirects', 5)
        if max_redirects:
            session.max_redirects = max_redirects
        self.session = session
        self.deadline = deadline or config.get('deadline', 5)
        self.max_response_size = max_response_size or config.get('max_response_size', 32 * 1024 * 1024)

    def fetch(self, request):

        ''' Execute ``request``, returning an :py:class:`HTTPResponse`. '''

        url = _validate_url(request.url)
        options = request.options
        self.logging.debug('Fetching %s %s.' % (request.method.value, url))

        try:
            response = self.session.request(
                request.method.value, url,
                headers=dict(request.headers),
                data=request.payload,
                allow_redirects=options.follow_redirects,
                timeout=options.deadline or self.deadline,
                stream=True)
        except (requests.exceptions.InvalidURL, requests.exceptions.MissingSchema,
                requests.exceptions.InvalidSchema) as e:
            raise MalformedURLException(str(e))
        except requests.exceptions.RequestException as e:
            raise IOException('Could not fetch URL: %s (%s)' % (url, e))

        try:
            content = self._read(response, url, options.allow_truncate)
        except requests.exceptions.RequestException as e:
            raise IOException('Could not read response from %s: %s' % (url, e))
        finally:
            response.close()

        return HTTPResponse(response.status_code, content, list(response.headers.items()), response.url)

    def _read(self, response, url, allow_truncate):

        ''' Read the body, enforcing the response size cap. '''

        body, size = [], 0
        for chunk in response.iter_content(chunk_size=64 * 1024):
            body.append(chunk)
            size += len(chunk)
            if size > self.max_response_size:
                if not allow_truncate:
                    raise ResponseTooLargeException('The response from %s exceeded %d bytes.' % (url, self.max_response_size))
                return b''.join(body)[:self.max_response_size]
        return b''.join(body)
