import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from hooklab import repository
from hooklab.config import Settings, get_settings
from hooklab.database import get_db
from hooklab.llm_client import LLMClient, LLMServiceError
from hooklab.prompts import build_handler_prompt
from hooklab.schemas import (
    CaptureResponse,
    GenerateRequest,
    GenerateResponse,
    WebhookDetail,
    WebhookList,
    WebhookListItem,
)

logger = logging.getLogger(__name__)

MAX_BODY_SIZE = 5 * 1024 * 1024  # 5 MB limit
CAPTURE_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


def get_llm_client(request: Request) -> LLMClient:
    return request.app.state.llm_client


def create_app(settings: Settings | None = None, llm_client: LLMClient | None = None) -> FastAPI:
    settings = settings or get_settings()
    client = llm_client or LLMClient.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await app.state.llm_client.close()

    application = FastAPI(title="hooklab", lifespan=lifespan)
    application.state.settings = settings
    application.state.llm_client = client

    @application.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        # Missing or empty required input -> 400, wrong types/ranges -> 422
        errors = exc.errors()
        has_missing = any(e.get("type") in ("missing", "too_short") for e in errors)
        status_code = 400 if has_missing else 422
        return JSONResponse(status_code=status_code, content={"error": str(errors)})

    @application.get("/api/webhooks", response_model=WebhookList, tags=["Webhooks"])
    def list_webhooks(
        limit: int = Query(repository.DEFAULT_PAGE_SIZE, ge=1, le=repository.MAX_PAGE_SIZE),
        cursor: int | None = Query(None),
        db: Session = Depends(get_db),
    ) -> WebhookList:
        rows, next_cursor = repository.list_webhooks(db, limit=limit, cursor=cursor)
        return WebhookList(
            webhooks=[WebhookListItem.model_validate(row) for row in rows],
            next_cursor=next_cursor,
        )

    @application.get("/api/webhooks/{webhook_id}", response_model=WebhookDetail, tags=["Webhooks"])
    def get_webhook(webhook_id: int, db: Session = Depends(get_db)) -> Response:
        webhook = repository.get_webhook(db, webhook_id)
        if webhook is None:
            return JSONResponse(
                status_code=404, content={"error": f"Webhook '{webhook_id}' not found"}
            )
        return WebhookDetail.model_validate(webhook)

    @application.delete("/api/webhooks/{webhook_id}", status_code=204, tags=["Webhooks"])
    def delete_webhook(webhook_id: int, db: Session = Depends(get_db)) -> Response:
        if not repository.delete_webhook(db, webhook_id):
            return JSONResponse(
                status_code=404, content={"error": f"Webhook '{webhook_id}' not found"}
            )
        return Response(status_code=204)

    @application.post(
        "/api/generate",
        response_model=GenerateResponse,
        status_code=201,
        tags=["Webhooks"],
        summary="Generate a TypeScript handler",
    )
    async def generate_handler(
        payload: GenerateRequest,
        db: Session = Depends(get_db),
        llm: LLMClient = Depends(get_llm_client),
    ) -> Response:
        bodies = repository.fetch_bodies(db, payload.webhook_ids)
        if not bodies:
            return JSONResponse(
                status_code=404, content={"error": "No webhooks found for the given ids"}
            )

        prompt = build_handler_prompt(bodies)
        try:
            code = await llm.generate(prompt)
        except LLMServiceError as exc:
            logger.warning("Handler generation failed: %s", exc)
            return JSONResponse(status_code=502, content={"error": str(exc)})

        return JSONResponse(status_code=201, content=GenerateResponse(code=code).model_dump())

    @application.api_route(
        "/capture/{path:path}",
        methods=CAPTURE_METHODS,
        status_code=201,
        response_model=CaptureResponse,
    )
    async def capture_webhook(
        path: str,
        request: Request,
        db: Session = Depends(get_db),
    ) -> Response:
        body = await request.body()
        if len(body) > MAX_BODY_SIZE:
            logger.warning("Rejected capture on /%s: %d bytes", path, len(body))
            return JSONResponse(status_code=413, content={"error": "Payload too large"})

        webhook = repository.record_capture(
            db,
            method=request.method,
            pathname=f"/{path}",
            ip=request.client.host if request.client else "unknown",
            content_type=request.headers.get("content-type"),
            query_params=dict(request.query_params),
            headers=dict(request.headers),
            body=body,
        )
        return JSONResponse(status_code=201, content={"id": webhook.id})

    return application
