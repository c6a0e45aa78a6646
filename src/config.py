"""
Environment-driven configuration
"""
import os
from typing import Mapping, Optional

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from src.errors import ValidationError


class Settings(BaseModel):
    """Runtime settings, read from the environment (and .env via python-dotenv)"""
    database_url: str = 'sqlite:///constituents.db'
    record_collection: str = 'member'
    bulk_call_timeout: Optional[float] = None  # Seconds per record; None means unbounded
    gmail_token_file: str = '.secrets/token.json'
    gmail_sender: str = 'me'
    log_level: str = 'INFO'

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = None) -> 'Settings':
        environ = os.environ if environ is None else environ
        values = {}
        for name in cls.model_fields:
            raw = environ.get(name.upper())
            if raw is not None and raw.strip():
                values[name] = raw.strip()

        # 0 disables the timeout
        if values.get('bulk_call_timeout') in ('0', '0.0'):
            values['bulk_call_timeout'] = None

        try:
            return cls(**values)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid configuration: {e}") from e
