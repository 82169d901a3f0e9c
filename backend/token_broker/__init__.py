"""Broker OAuth2 token exchange with the Spotify Accounts service."""

from .config import BrokerConfig
from .grants import TokenBroker

__all__ = ["BrokerConfig", "TokenBroker"]
