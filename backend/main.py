import os
import threading
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from token_broker.config import BrokerConfig
from token_broker.cors import OriginPolicy
from token_broker.errors import ConfigError, OriginNotAllowed, error_response
from token_broker.grants import TokenBroker
from token_broker.handlers import parse_body

# Correctly load .env.local from the backend directory
load_dotenv(dotenv_path=os.path.join(os.path.dirname(os.path.abspath(__file__)), '.env.local'))


def create_app(broker: Optional[TokenBroker] = None, origin_policy: Optional[OriginPolicy] = None) -> FastAPI:
    policy = origin_policy or OriginPolicy.from_env()
    broker_lock = threading.Lock()

    app = FastAPI(title="Spotify token broker")
    app.add_middleware(CORSMiddleware, **policy.middleware_options())
    app.state.broker = broker

    def get_broker() -> TokenBroker:
        if app.state.broker is None:
            with broker_lock:
                if app.state.broker is None:
                    app.state.broker = TokenBroker(BrokerConfig.from_env())
        return app.state.broker

    def respond(origin: Optional[str], operation: str, body: dict) -> JSONResponse:
        if not policy.is_allowed(origin):
            result = error_response(OriginNotAllowed(f"Origin '{origin}' is not allowed"))
            return JSONResponse(status_code=result.status_code, content=result.body)

        try:
            token_broker = get_broker()
        except ConfigError as e:
            result = error_response(e)
        else:
            result = token_broker.handle(operation, body)
        return JSONResponse(status_code=result.status_code, content=result.body)

    async def dispatch(request: Request, operation: str) -> JSONResponse:
        # Same body rules as the serverless handler: JSON or form, unreadable is empty
        body = parse_body(await request.body(), request.headers.get("content-type", ""))
        # The upstream call blocks; keep it off the event loop
        return await run_in_threadpool(respond, request.headers.get("origin"), operation, body)

    @app.post("/api/client_token")
    async def client_token(request: Request):
        """Client-credentials token for unauthenticated catalogue access"""
        return await dispatch(request, "client_token")

    @app.post("/api/exchange_code")
    async def exchange_code(request: Request):
        return await dispatch(request, "exchange_code")

    @app.post("/api/exchange_code_protocol")
    async def exchange_code_protocol(request: Request):
        return await dispatch(request, "exchange_code_protocol")

    @app.post("/api/refresh_token")
    async def refresh_token(request: Request):
        """Refresh a Spotify access token given an encrypted refresh token"""
        return await dispatch(request, "refresh_token")

    return app


app = create_app()                 # <- Vercel will pick this up
