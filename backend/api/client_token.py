import os
import sys

# Deployed functions are not installed; make the backend package importable
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from token_broker.handlers import BrokerRequestHandler


class handler(BrokerRequestHandler):
    """Issue an app-only access token via the client-credentials grant (POST)."""

    operation = "client_token"
