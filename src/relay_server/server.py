"""FastAPI application relaying messaging-platform events to a completion API."""
from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from . import __version__
from .config import load_config
from .extract import classify_intent, extract_entities
from .llm import FALLBACK_REPLY, CompletionClient, CompletionError
from .llm import create_from_config as create_completion_client
from .memory import ConversationNotFound, ConversationStore
from .prompt import DEFAULT_PREAMBLE, build_prompt
from .relay import RelayClient, RelayError
from .relay import create_from_config as create_relay_client

logger = logging.getLogger(__name__)

SUCCESS_CONFIDENCE = 0.90
CAPABILITIES = ["conversation", "context-awareness", "multi-turn-dialogue", "ultra-fast-inference"]


# -----------------------------
# Pydantic request/response
# -----------------------------
class TelexMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    from_: str = Field(default="", alias="from")
    to: str = ""
    content: str = ""
    timestamp: Optional[datetime] = None
    type: Optional[str] = None


class TelexUser(BaseModel):
    id: str = ""
    username: str = ""
    name: str = ""


class TelexWebhook(BaseModel):
    event: str = ""
    message: TelexMessage = Field(default_factory=TelexMessage)
    user: TelexUser = Field(default_factory=TelexUser)


class DirectMessageRequest(BaseModel):
    userId: str = Field(..., min_length=1, description="Conversation key.")
    message: str = Field(..., min_length=1)


class AgentResponse(BaseModel):
    reply: str
    intent: str
    entities: Dict[str, str] = Field(default_factory=dict)
    confidence: float


# -----------------------------
# Utilities
# -----------------------------
def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _status(code: int, status: str, message: Optional[str] = None) -> JSONResponse:
    body: Dict[str, Any] = {"status": status}
    if message:
        body["message"] = message
    return JSONResponse(body, status_code=code)


def _make_store(cfg: Dict[str, Any]) -> ConversationStore:
    mem_cfg = cfg.get("memory") or {}
    max_conversations = mem_cfg.get("max_conversations", 10000)
    return ConversationStore(max_conversations=int(max_conversations) if max_conversations else None)


def _webhook_secret(cfg: Dict[str, Any], relay: Any) -> Optional[str]:
    relay_cfg = cfg.get("relay") or {}
    secret = relay_cfg.get("webhook_secret") or relay_cfg.get("api_key") or getattr(relay, "api_key", None)
    return str(secret) if secret else None


# -----------------------------
# App factory
# -----------------------------
def create_app(
    config_path: Optional[str] = None,
    completion: Optional[CompletionClient] = None,
    relay: Optional[RelayClient] = None,
    store: Optional[ConversationStore] = None,
    use_dotenv: bool = True,
) -> FastAPI:
    cfg = load_config(config_path, use_dotenv=use_dotenv)

    cors_origins = (cfg.get("server") or {}).get("cors_origins", ["*"])
    agent_cfg = cfg.get("agent") or {}
    comp_cfg = cfg.get("completion") or {}

    # Services
    completion = completion or create_completion_client(cfg)
    relay = relay or create_relay_client(cfg)
    store = store if store is not None else _make_store(cfg)

    agent_id = str(agent_cfg.get("id") or "ai-agent-001")
    agent_name = str(agent_cfg.get("name") or "Telex AI Assistant")
    preamble = str(agent_cfg.get("system_prompt") or DEFAULT_PREAMBLE)
    provider = str(comp_cfg.get("provider") or "Groq")
    model_name = str(getattr(completion, "model", None) or comp_cfg.get("model") or "")
    secret = _webhook_secret(cfg, relay)
    started = time.monotonic()

    app = FastAPI(title="Telex AI Agent", version=__version__)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def _bad_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors: List[str] = []
        for err in exc.errors():
            loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
            errors.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
        return JSONResponse({"error": "; ".join(errors) or "invalid request"}, status_code=400)

    # ---- core pipeline ----
    def respond(user_id: str, text: str) -> AgentResponse:
        """Update context, ask the completion API, fall back on failure."""
        ctx = store.update(user_id, text)
        prompt = build_prompt(ctx, text, preamble=preamble)
        intent = classify_intent(text)
        entities = extract_entities(text)
        try:
            reply = completion.complete(prompt)
            confidence = SUCCESS_CONFIDENCE
        except CompletionError as e:
            logger.warning("Error generating AI response for %s: %s", user_id, e)
            reply, confidence = FALLBACK_REPLY, 0.0
        return AgentResponse(reply=reply, intent=intent, entities=entities, confidence=confidence)

    def handle_incoming(msg: TelexMessage) -> JSONResponse:
        if msg.from_ == agent_id:
            return _status(200, "ignored")

        answer = respond(msg.from_, msg.content)
        try:
            relay.send(msg.from_, answer.reply)
        except RelayError as e:
            logger.error("Error sending message to Telex: %s", e)
            return _status(500, "error", "Failed to send response")

        logger.info("Sent reply to %s (confidence: %.2f)", msg.from_, answer.confidence)
        return _status(200, "success", "Message processed")

    def handle_user_joined(user: TelexUser) -> JSONResponse:
        welcome = (
            f"Welcome {user.name}! 👋 I'm an AI assistant here to help. "
            "Feel free to ask me anything!"
        )
        try:
            relay.send(user.id, welcome)
        except RelayError as e:
            logger.error("Error sending welcome message: %s", e)
            return _status(500, "error", "Failed to send welcome message")
        return _status(200, "success")

    def dispatch(webhook: TelexWebhook) -> JSONResponse:
        event = webhook.event
        if event in ("message.received", "message"):
            return handle_incoming(webhook.message)
        if event == "user.joined":
            return handle_user_joined(webhook.user)
        if event != "user.typing":
            logger.warning("Unknown event type: %s", event)
        return _status(200, "acknowledged")

    # ---- routes ----
    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {
            "status": "healthy",
            "service": "telex-ai-agent",
            "timestamp": _now(),
            "version": __version__,
            "ai_provider": provider,
        }

    @app.post("/webhook/telex")
    async def telex_webhook(request: Request) -> JSONResponse:
        if not secret or request.headers.get("authorization") != f"Bearer {secret}":
            logger.warning("Unauthorized webhook attempt")
            return _status(401, "error", "Unauthorized")

        try:
            webhook = TelexWebhook.model_validate(await request.json())
        except ValueError as e:
            logger.warning("Error parsing webhook: %s", e)
            return _status(400, "error", "Invalid payload")

        logger.info("Received webhook event: %s from %s", webhook.event, webhook.message.from_)
        # Outbound HTTP is blocking; keep it off the event loop.
        return await run_in_threadpool(dispatch, webhook)

    @app.post("/api/message", response_model=AgentResponse)
    def direct_message(req: DirectMessageRequest) -> AgentResponse:
        return respond(req.userId, req.message)

    @app.get("/api/agent/info")
    def agent_info() -> Dict[str, Any]:
        return {
            "agentId": agent_id,
            "name": agent_name,
            "version": __version__,
            "ai_provider": provider,
            "model": model_name,
            "capabilities": list(CAPABILITIES),
            "status": "online",
            "uptime": round(time.monotonic() - started, 3),
        }

    @app.get("/api/conversations/{user_id}")
    def conversation(user_id: str):
        try:
            ctx = store.get(user_id)
        except ConversationNotFound:
            return JSONResponse({"error": "No conversation found"}, status_code=404)
        return ctx.to_dict()

    @app.get("/api/metrics")
    def metrics() -> Dict[str, Any]:
        snap = store.snapshot()
        return {
            "totalConversations": snap.conversation_count,
            "totalMessages": snap.total_messages,
            "activeUsers": snap.conversation_count,
            "aiProvider": provider,
            "model": model_name,
            "timestamp": _now(),
        }

    return app
