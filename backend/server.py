import os
from http.server import ThreadingHTTPServer

from dotenv import load_dotenv

from token_broker.handlers import BrokerRequestHandler

# Load environment variables from .env.local file
load_dotenv(dotenv_path=os.path.join(os.path.dirname(os.path.abspath(__file__)), '.env.local'))


def run(server_class=ThreadingHTTPServer, handler_class=BrokerRequestHandler, port=None):
    port = port or int(os.getenv("PORT", 8000))
    server_address = ('', port)
    httpd = server_class(server_address, handler_class)
    print(f"Starting token broker on port {port}...")
    httpd.serve_forever()


if __name__ == '__main__':
    run()
