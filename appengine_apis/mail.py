# -*- coding: utf-8 -*-

'''

    appengine_apis mail

    sends email through the platform's mail service.

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
import contextlib

# appengine_apis
from appengine_apis.util import decorators
from appengine_apis.exceptions import AppEngineAPIError
from appengine_apis.platform import errors as platform_errors
from appengine_apis.platform.mail import Message
from appengine_apis.platform.mail import Attachment


# option name -> message field
_OPTIONS = {
    'sender': 'sender',
    'to': 'to',
    'cc': 'cc',
    'bcc': 'bcc',
    'reply_to': 'reply_to',
    'subject': 'subject',
    'text': 'text_body',
    'html': 'html_body',
    'attachments': 'attachments'
}

_RECIPIENTS = ('to', 'cc', 'bcc')


class BadArgumentError(AppEngineAPIError, ValueError):

    ''' A message option was unknown or invalid. '''


class MailIOError(AppEngineAPIError, IOError):

    ''' The mail service could not deliver. '''


@contextlib.contextmanager
def convert_mail_exceptions():
    try:
        yield
    except platform_errors.IllegalArgumentException as e:
        raise BadArgumentError(e.message) from e
    except platform_errors.IOException as e:
        raise MailIOError(e.message) from e


def _attachments(attachments):

    ''' ``(filename, data)`` pairs, from a ``dict`` or an iterable. '''

    if isinstance(attachments, dict):
        attachments = attachments.items()
    converted = []
    for filename, data in attachments:
        if isinstance(data, str):
            data = data.encode('utf-8')
        converted.append(Attachment(filename, bytes(data)))
    return converted


## Mail
# Client over a platform's mail service.
@decorators.config(path='appengine_apis.mail')
class Mail(object):

    ''' Mail client for one :py:class:`Platform`. '''

    def __init__(self, platform):
        self.platform = platform

    @property
    def service(self):
        return self.platform.mail

    def create_message(self, **options):

        ''' Build a platform :py:class:`Message`.

            :param options: ``sender``, ``to``, ``cc``, ``bcc``, ``reply_to``,
            ``subject``, ``text``, ``html`` and ``attachments`` (a ``dict`` or
            list of ``(filename, data)``). A string recipient becomes a list.
            :raises BadArgumentError: For any other option. '''

        message = Message()
        for name, value in options.items():
            if name not in _OPTIONS:
                raise BadArgumentError('Invalid option %r.' % name)
            if value is None:
                continue
            if name in _RECIPIENTS and isinstance(value, str):
                value = [value]
            elif name in _RECIPIENTS:
                value = list(value)
            elif name == 'attachments':
                value = _attachments(value)
            message.set(_OPTIONS[name], value)
        return message

    def send(self, sender, to, subject, text, **options):

        ''' Send a message to ``to`` (plus any ``cc``/``bcc``). '''

        fields = {'sender': sender, 'to': to or [], 'subject': subject, 'text': text}
        fields.update(options)
        message = self.create_message(**fields)
        with convert_mail_exceptions():
            self.service.send(message)
        return message

    def send_to_admins(self, sender, subject, text, **options):

        ''' Send a message to the application's admins. '''

        fields = {'sender': sender, 'subject': subject, 'text': text}
        fields.update(options)
        message = self.create_message(**fields)
        with convert_mail_exceptions():
            self.service.send_to_admins(message)
        return message
