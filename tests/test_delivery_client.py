"""
Tests for the Gmail delivery client, with a mocked API service
"""

import base64
from email import message_from_bytes
import unittest
from unittest.mock import MagicMock, patch

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from googleapiclient.errors import HttpError

from src.delivery.client import GmailDeliveryClient
from src.errors import DeliveryError, PerRecordFailure


class TestGmailDeliveryClient(unittest.TestCase):
    def setUp(self):
        self.service = MagicMock()
        self.send = self.service.users.return_value.messages.return_value.send
        self.send.return_value.execute.return_value = {'id': 'msg-1'}
        self.client = GmailDeliveryClient(self.service, sender='office@example.org')

    def decode(self, body):
        return message_from_bytes(base64.urlsafe_b64decode(body['raw']))

    def test_send_builds_raw_message(self):
        self.assertEqual(self.client.send('ada@example.com', 'Hello Ada', 'Dear Ada,'), 'msg-1')

        kwargs = self.send.call_args.kwargs
        self.assertEqual(kwargs['userId'], 'me')
        message = self.decode(kwargs['body'])
        self.assertEqual(message['to'], 'ada@example.com')
        self.assertEqual(message['subject'], 'Hello Ada')
        self.assertEqual(message['from'], 'office@example.org')
        self.assertEqual(message.get_payload(decode=True).decode(), 'Dear Ada,')

    def test_default_sender_omits_from_header(self):
        client = GmailDeliveryClient(self.service)
        message = self.decode(client.build_message('ada@example.com', 'Hi', 'Body'))
        self.assertIsNone(message['from'])

    def test_http_error_becomes_delivery_error(self):
        resp = MagicMock(status=400, reason='Bad Request')
        self.send.return_value.execute.side_effect = HttpError(resp, b'Invalid To header')

        with self.assertRaises(DeliveryError) as ctx:
            self.client.send('not-an-address', 'Hi', 'Body')
        self.assertIn('400', str(ctx.exception))
        self.assertIsInstance(ctx.exception, PerRecordFailure)

    def test_missing_recipient(self):
        with self.assertRaises(DeliveryError):
            self.client.send('', 'Hi', 'Body')
        self.send.assert_not_called()

    def test_without_credentials_uses_service_connection(self):
        self.client.send('ada@example.com', 'Hi', 'Body')
        self.send.return_value.execute.assert_called_once_with(http=None)

    @patch('src.delivery.client.httplib2.Http')
    @patch('src.delivery.client.AuthorizedHttp')
    def test_each_send_gets_its_own_connection(self, mock_authorized, mock_http):
        credentials = MagicMock()
        mock_authorized.side_effect = lambda creds, http: MagicMock(name='authorized')
        client = GmailDeliveryClient(self.service, credentials=credentials, timeout=2.5)

        client.send('ada@example.com', 'Hi', 'Body')
        client.send('grace@example.com', 'Hi', 'Body')

        mock_http.assert_called_with(timeout=2.5)
        self.assertEqual(mock_authorized.call_count, 2)
        connections = [c.kwargs['http'] for c in self.send.return_value.execute.call_args_list]
        self.assertIsNot(connections[0], connections[1])


if __name__ == '__main__':
    unittest.main()
