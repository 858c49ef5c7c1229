# -*- coding: utf-8 -*-

'''

    appengine_apis service tests: mail

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
from appengine_apis import mail
from appengine_apis.platform.mail import Attachment
from appengine_apis.platform.mail import LocalMailService

# appengine_apis tests
from appengine_apis.tests import AppEngineTestCase


## MailTests
class MailTests(AppEngineTestCase):

    ''' Tests `mail.Mail`. '''

    def setUp(self):
        super(MailTests, self).setUp()
        self.mail = mail.Mail(self.platform)

    def test_send(self):

        ''' A plain text message reaches its recipient. '''

        message = self.mail.send('from@example.com', 'to@example.com', 'Hello', 'Hi there!')
        self.assertEqual(message.sender, 'from@example.com')
        self.assertEqual(message.to, ['to@example.com'])
        self.assertEqual(message.subject, 'Hello')
        self.assertEqual(message.text_body, 'Hi there!')
        self.assertEqual(self.platform.mail.outbox, [(message, ['to@example.com'])])

    def test_options(self):

        ''' Options map onto message fields. '''

        message = self.mail.send(
            'from@example.com', ['a@example.com', 'b@example.com'], 'Hello', 'text',
            html='<b>html</b>', cc='c@example.com', bcc=('d@example.com',), reply_to='reply@example.com',
            attachments={'notes.txt': 'some notes'})

        self.assertEqual(message.to, ['a@example.com', 'b@example.com'])
        self.assertEqual(message.cc, ['c@example.com'])
        self.assertEqual(message.bcc, ['d@example.com'])
        self.assertEqual(message.html_body, '<b>html</b>')
        self.assertEqual(message.reply_to, 'reply@example.com')
        self.assertEqual(message.attachments, [Attachment('notes.txt', b'some notes')])
        self.assertEqual(len(self.platform.mail.outbox[0][1]), 4)

    def test_html_only(self):

        ''' A message may carry only an html body. '''

        message = self.mail.send('from@example.com', 'to@example.com', 'Hello', None, html='<p>hi</p>')
        self.assertIsNone(message.text_body)
        self.assertEqual(message.html_body, '<p>hi</p>')

    def test_create_message(self):
        message = self.mail.create_message(sender='a@example.com', text='x', attachments=[('a.png', b'\x89PNG')])
        self.assertEqual(message.attachments[0].data, b'\x89PNG')
        self.assertEqual(self.platform.mail.outbox, [])

    def test_unknown_option(self):
        with self.assertRaises(mail.BadArgumentError):
            self.mail.send('from@example.com', 'to@example.com', 'Hello', 'text', body='nope')
        with self.assertRaises(ValueError):
            self.mail.create_message(flowers=True)

    def test_invalid_message(self):

        ''' Messages the service rejects raise argument errors. '''

        with self.assertRaises(mail.BadArgumentError):
            self.mail.send(None, 'to@example.com', 'Hello', 'text')
        with self.assertRaises(mail.BadArgumentError):
            self.mail.send('from@example.com', None, 'Hello', 'text')
        with self.assertRaises(mail.BadArgumentError):
            self.mail.send('from@example.com', 'to@example.com', 'Hello', 'text', attachments={'run.exe': b'MZ'})

    def test_send_to_admins(self):
        self.platform.mail = LocalMailService(admins=['admin@example.com'])
        message = self.mail.send_to_admins('from@example.com', 'Alert', 'Something happened')
        self.assertEqual(message.to, [])
        self.assertEqual(self.platform.mail.outbox, [(message, ['admin@example.com'])])

    def test_io_errors(self):
        self.platform.mail.available = False
        with self.assertRaises(mail.MailIOError):
            self.mail.send('from@example.com', 'to@example.com', 'Hello', 'text')
        with self.assertRaises(IOError):
            self.mail.send('from@example.com', 'to@example.com', 'Hello', 'text')
