"""
Outbound email delivery over the Gmail API
"""
from .auth import get_credentials, get_gmail_service
from .client import GmailDeliveryClient

__all__ = ['get_credentials', 'get_gmail_service', 'GmailDeliveryClient']
