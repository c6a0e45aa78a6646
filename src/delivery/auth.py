"""
Gmail API authentication for outbound delivery
"""
import os

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build

# If modifying these scopes, delete the token file.
SCOPES = ['https://www.googleapis.com/auth/gmail.send']


def get_client_config():
    """Get OAuth client configuration from environment variables"""
    return {
        "installed": {
            "client_id": os.getenv("GMAIL_CLIENT_ID"),
            "project_id": os.getenv("GMAIL_PROJECT_ID"),
            "auth_uri": os.getenv("GMAIL_AUTH_URI", "https://accounts.google.com/o/oauth2/auth"),
            "token_uri": os.getenv("GMAIL_TOKEN_URI", "https://oauth2.googleapis.com/token"),
            "auth_provider_x509_cert_url": os.getenv("GMAIL_AUTH_PROVIDER_CERT_URL"),
            "client_secret": os.getenv("GMAIL_CLIENT_SECRET"),
            "redirect_uris": ["http://localhost"]
        }
    }


def get_credentials(token_file: str = None) -> Credentials:
    """Load cached OAuth credentials, refreshing or running the consent flow if needed"""
    token_file = token_file or os.getenv('GMAIL_TOKEN_FILE', '.secrets/token.json')
    token_dir = os.path.dirname(token_file)
    if token_dir:
        os.makedirs(token_dir, exist_ok=True)

    creds = None
    if os.path.exists(token_file):
        creds = Credentials.from_authorized_user_file(token_file, SCOPES)

    if not creds or not creds.valid:
        if creds and creds.expired and creds.refresh_token:
            creds.refresh(Request())
        else:
            flow = InstalledAppFlow.from_client_config(get_client_config(), SCOPES)
            creds = flow.run_local_server(port=0)

        with open(token_file, 'w') as token:
            token.write(creds.to_json())

    return creds


def get_gmail_service(credentials: Credentials = None):
    """Get an authorized Gmail API service instance"""
    return build('gmail', 'v1', credentials=credentials or get_credentials())
