"""Python client for the Proofpoint Secure Email Relay mail API."""

__version__ = "1.0.0"

from .attachment import Attachment, AttachmentOptionsStep, AttachmentSourceStep
from .auth import OAuthHttpClient, TokenCache
from .client import Client
from .config import Settings
from .exceptions import AuthenticationError, MessageBuildError, SerMailError, TransportError
from .message import Message, MessageBuilder
from .mime import DefaultMimeMapper, MimeMapper
from .models import Content, ContentType, Disposition, MailUser
from .region import Region
from .result import SendResult

__all__ = [
    "Attachment",
    "AttachmentOptionsStep",
    "AttachmentSourceStep",
    "AuthenticationError",
    "Client",
    "Content",
    "ContentType",
    "DefaultMimeMapper",
    "Disposition",
    "MailUser",
    "Message",
    "MessageBuildError",
    "MessageBuilder",
    "MimeMapper",
    "OAuthHttpClient",
    "Region",
    "SendResult",
    "SerMailError",
    "Settings",
    "TokenCache",
    "TransportError",
]
