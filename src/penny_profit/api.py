"""
Penny Profit - HTTP API
=======================

FastAPI service exposing the calculator and the chat assistant.

Routes
------
• POST /api/calculate
    - Body: {"stockPrice": number, "desiredProfit": number}
    - 200 {"investment": number}, 400 {"error": "Invalid input"}
• POST /api/chat
    - Body: {"query": str, "stockPrice"?, "desiredProfit"?, "investment"?}
    - 200 {"response": str}, 400 when query is missing, 429 while busy,
      500 with a user-safe message when the completion service fails.
• GET /health
    - Liveness probe with version and model name.

The service is stateless. Calculation history lives with the client.
"""

from typing import Optional, Union

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, StrictFloat, StrictInt, ValidationError, field_validator

from penny_profit import __version__
from penny_profit.engine import InvalidInputError, compute
from penny_profit.relay import (
    ChatBusyError,
    ChatContext,
    ChatRelay,
    ChatRelayError,
    EmptyQueryError,
)

INVALID_INPUT = "Invalid input"

# JSON numbers only: strings and booleans are rejected rather than coerced
JsonNumber = Union[StrictInt, StrictFloat]


# --------------------------------------------------------------------------- #
# Request / Response Models
# --------------------------------------------------------------------------- #

class CalculateRequest(BaseModel):
    stockPrice: Optional[JsonNumber] = None
    desiredProfit: Optional[JsonNumber] = None


class CalculateResponse(BaseModel):
    investment: float


class ChatRequest(BaseModel):
    """
    Chat request. The calculation fields are optional context for the assistant.
    """
    query: Optional[str] = None
    stockPrice: Optional[float] = None
    desiredProfit: Optional[float] = None
    investment: Optional[float] = None

    @field_validator("stockPrice", "desiredProfit", "investment", mode="wrap")
    @classmethod
    def drop_unparseable(cls, value, handler):
        # A bad context field only loses the context, never the question
        try:
            return handler(value)
        except ValidationError:
            logger.debug(f"Ignoring unparseable chat context value: {value!r}")
            return None


class ChatResponse(BaseModel):
    response: str


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


# --------------------------------------------------------------------------- #
# App Factory
# --------------------------------------------------------------------------- #

def create_app(relay: Optional[ChatRelay] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        relay: Chat relay to use. Defaults to one built from the loaded configuration.
    """
    app = FastAPI(
        title="Penny Profit API",
        version=__version__,
        description="Position sizing per 1¢ price move, plus an AI assistant for questions.",
    )
    app.state.relay = relay or ChatRelay()

    @app.exception_handler(RequestValidationError)
    async def invalid_body_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Rejected malformed body on {request.url.path}: {exc.errors()}")
        return _error(400, INVALID_INPUT)

    @app.get("/health")
    async def health():
        """Basic liveness probe."""
        return {
            "status": "ok",
            "version": app.version,
            "model": app.state.relay.model_name,
        }

    @app.post("/api/calculate", response_model=CalculateResponse)
    async def calculate(body: CalculateRequest):
        """Investment needed to earn desiredProfit per 1¢ gain at stockPrice."""
        # Any positive JSON number is accepted here; the typed-input caps apply to the CLI only
        try:
            result = compute(body.stockPrice, body.desiredProfit)
        except InvalidInputError as e:
            logger.info(f"Calculation rejected: {e}")
            return _error(400, INVALID_INPUT)

        logger.debug(f"Calculated ${result.investment:,.2f} for {result.shares_needed:g} shares")
        return {"investment": result.investment}

    @app.post("/api/chat", response_model=ChatResponse)
    def chat(body: ChatRequest):
        """
        Relay a question to the assistant.

        Sync handler: the completion call blocks, so it runs in the threadpool.
        """
        context = ChatContext(
            stock_price=body.stockPrice,
            profit_target=body.desiredProfit,
            investment=body.investment,
        )

        try:
            answer = app.state.relay.ask(body.query, context)
        except EmptyQueryError as e:
            return _error(400, e.user_message)
        except ChatBusyError as e:
            return _error(429, e.user_message)
        except ChatRelayError as e:
            logger.warning(f"Chat failed: {type(e).__name__}")
            return _error(500, e.user_message)

        return {"response": answer}

    return app
