# -*- coding: utf-8 -*-

'''

    appengine_apis platform: mail

    local mail service. validates outgoing messages and keeps every sent
    message in an outbox instead of delivering it.

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
import threading
import collections

# appengine_apis util
from appengine_apis.util import decorators

# platform errors
from appengine_apis.platform.errors import IOException
from appengine_apis.platform.errors import IllegalArgumentException


## Constants
_BLOCKED_EXTENSIONS = frozenset(('ade', 'adp', 'bat', 'chm', 'cmd', 'com', 'cpl', 'exe', 'hta', 'ins',
                                 'isp', 'jse', 'lib', 'mde', 'msc', 'msp', 'mst', 'pif', 'scr', 'sct',
                                 'shb', 'sys', 'vb', 'vbe', 'vbs', 'vxd', 'wsc', 'wsf', 'wsh'))


Attachment = collections.namedtuple('Attachment', ['filename', 'data'])


## Message
# An outgoing email.
class Message(object):

    ''' Mutable mail message, filled through ``set_<field>`` calls. '''

    FIELDS = ('sender', 'to', 'cc', 'bcc', 'reply_to', 'subject', 'text_body', 'html_body', 'attachments')

    def __init__(self, **fields):
        self.sender = self.reply_to = self.subject = self.text_body = self.html_body = None
        self.to, self.cc, self.bcc, self.attachments = [], [], [], []
        for name, value in fields.items():
            self.set(name, value)

    def set(self, name, value):

        ''' Set field ``name``; unknown fields raise ``AttributeError``. '''

        if name not in self.FIELDS:
            raise AttributeError("Message has no field '%s'." % name)
        setattr(self, name, value)
        return self

    def __repr__(self):
        return '<Message from=%r to=%r subject=%r>' % (self.sender, self.to, self.subject)


## LocalMailService
# Records messages rather than delivering them.
@decorators.config(path='appengine_apis.mail')
class LocalMailService(object):

    ''' In-process mail service with an outbox. '''

    def __init__(self, admins=None):
        self.admins = list(admins if admins is not None else self.config.get('admins', []))
        self.outbox = []
        self.available = True
        self._lock = threading.Lock()

    def _validate(self, message, to_admins=False):
        if not message.sender:
            raise IllegalArgumentException('Mail messages require a sender.')
        if not to_admins and not (message.to or message.cc or message.bcc):
            raise IllegalArgumentException('Mail messages require at least one recipient.')
        if message.text_body is None and message.html_body is None:
            raise IllegalArgumentException('Mail messages require a text or html body.')
        for attachment in message.attachments or []:
            extension = attachment.filename.rsplit('.', 1)[-1].lower() if '.' in attachment.filename else ''
            if not extension or extension in _BLOCKED_EXTENSIONS:
                raise IllegalArgumentException('Invalid attachment filename: %s' % attachment.filename)

    def _deliver(self, message, recipients):
        if not self.available:
            raise IOException('Mail service is not available.')
        with self._lock:
            self.outbox.append((message, recipients))
        self.logging.info('Sent mail "%s" from %s to %s.' % (message.subject, message.sender, ', '.join(recipients)))

    def send(self, message):
        self._validate(message)
        self._deliver(message, list(message.to) + list(message.cc) + list(message.bcc))

    def send_to_admins(self, message):
        self._validate(message, to_admins=True)
        if not self.admins:
            raise IllegalArgumentException('No application admins are configured.')
        self._deliver(message, list(self.admins))
