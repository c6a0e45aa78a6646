"""
Gmail API delivery of bulk notification emails
"""
import base64
from email.mime.text import MIMEText
import logging
from typing import Optional

import httplib2
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import Resource
from googleapiclient.errors import HttpError

from src.errors import DeliveryError

logger = logging.getLogger(__name__)


class GmailDeliveryClient:
    """Sends one plain-text email per call through the Gmail API.

    httplib2 connections are not thread-safe. When credentials are given, each
    send gets its own authorized connection, bounded by timeout seconds, so
    sends on different threads never share one.
    """

    def __init__(self, service: Resource, sender: str = 'me', credentials=None, timeout: Optional[float] = None):
        self.service = service
        self.user_id = 'me'
        self.sender = sender
        self.credentials = credentials
        self.timeout = timeout

    def build_message(self, recipient: str, subject: str, body: str) -> dict:
        """Build the raw message body expected by users.messages.send"""
        message = MIMEText(body)
        message['to'] = recipient
        message['subject'] = subject
        if self.sender and self.sender != 'me':
            message['from'] = self.sender
        raw = base64.urlsafe_b64encode(message.as_bytes()).decode()
        return {'raw': raw}

    def _http(self) -> Optional[AuthorizedHttp]:
        if self.credentials is None:
            return None
        return AuthorizedHttp(self.credentials, http=httplib2.Http(timeout=self.timeout))

    def send(self, recipient: str, subject: str, body: str) -> str:
        """Send a message and return its Gmail ID; raises DeliveryError on failure"""
        if not recipient:
            raise DeliveryError("No recipient address")

        try:
            result = self.service.users().messages().send(
                userId=self.user_id,
                body=self.build_message(recipient, subject, body)
            ).execute(http=self._http())
        except HttpError as e:
            logger.error(f"HTTP error sending to {recipient}: {e.resp.status} - {e.content}")
            raise DeliveryError(f"Delivery to {recipient} failed ({e.resp.status})") from e

        logger.debug(f"Sent message {result.get('id')} to {recipient}")
        return result.get('id')
