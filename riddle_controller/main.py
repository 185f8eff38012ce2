"""FastAPI entry-point for the riddle game controller."""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from fastapi import FastAPI, Query, Request, WebSocket, WebSocketDisconnect, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field

from .config import Settings, get_settings
from .errors import InvalidActionError
from .logging_config import configure_logging
from .session_manager import GameSessionManager

logger = logging.getLogger(__name__)


class StartSessionRequest(BaseModel):
    difficulty: str = Field(..., min_length=1, description="Difficulty tag forwarded to the backend")


def create_app(
    settings: Optional[Settings] = None,
    manager: Optional[GameSessionManager] = None,
    *,
    setup_logging: bool = True,
) -> FastAPI:
    settings = settings or get_settings()
    if setup_logging:
        configure_logging(settings.log_level, settings.log_directory, settings.log_retention_days)
    manager = manager or GameSessionManager(settings=settings)

    app = FastAPI(title="riddle-controller", version="0.1.0")
    app.state.manager = manager

    @app.exception_handler(InvalidActionError)
    async def invalid_action_handler(request: Request, exc: InvalidActionError) -> JSONResponse:
        logger.info(f"Rejected {exc.action} on {request.url.path}: {exc.reason}")
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": str(exc), "phase": manager.phase.value},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> PlainTextResponse:
        """Catch-all exception handler to prevent application crashes."""
        logger.exception(f"Unhandled exception in {request.url.path}: {exc}")
        return PlainTextResponse(
            f"Internal server error: {str(exc)}",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Handle request validation errors gracefully."""
        logger.warning(f"Validation error in {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": str(exc)},
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    async def on_startup() -> None:
        try:
            await manager.start()
            logger.info("Application started successfully")
        except Exception as e:
            logger.exception(f"Failed to start services: {e}")
            logger.error("Application startup failed - some features may not work")

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        try:
            await manager.stop()
            logger.info("Application shutdown complete")
        except Exception as e:
            logger.exception(f"Error during shutdown: {e}")

    @app.get("/healthz")
    async def healthcheck() -> JSONResponse:
        return JSONResponse({"status": "ok", "phase": manager.phase.value})

    @app.post("/session")
    async def start_session(payload: StartSessionRequest) -> JSONResponse:
        await manager.start_session(payload.difficulty)
        return JSONResponse(manager.snapshot())

    @app.get("/session")
    async def session_state() -> JSONResponse:
        return JSONResponse(manager.snapshot())

    @app.post("/session/prompt")
    async def refresh_prompt() -> JSONResponse:
        await manager.refresh_prompt()
        prompt = manager.current_prompt
        if prompt is None:
            return JSONResponse(
                {"status": "error", "message": "prompt unavailable"},
                status_code=status.HTTP_502_BAD_GATEWAY,
            )
        return JSONResponse({"riddle_id": prompt.riddle_id, "step": prompt.step, "guide": prompt.guide})

    @app.post("/session/capture")
    async def start_capture() -> JSONResponse:
        await manager.start_capture()
        return JSONResponse(manager.snapshot(), status_code=status.HTTP_202_ACCEPTED)

    @app.post("/session/confirm")
    async def confirm_success() -> JSONResponse:
        summary = await manager.confirm_success()
        return JSONResponse({"state": manager.snapshot(), "summary": summary.as_dict() if summary else None})

    @app.post("/session/skip")
    async def skip_question() -> JSONResponse:
        summary = await manager.skip_current_question()
        return JSONResponse({"state": manager.snapshot(), "summary": summary.as_dict() if summary else None})

    @app.post("/session/quit")
    async def quit_session() -> JSONResponse:
        await manager.quit_session()
        return JSONResponse({"status": "quit", "phase": manager.phase.value})

    @app.get("/session/summary")
    async def session_summary() -> JSONResponse:
        summary = manager.summary
        if summary is None:
            return JSONResponse(
                {"detail": "session not finished", "phase": manager.phase.value},
                status_code=status.HTTP_404_NOT_FOUND,
            )
        return JSONResponse(summary.as_dict())

    @app.get("/word-video")
    async def word_video(text: str = Query(..., min_length=1)) -> JSONResponse:
        video = await manager.fetch_word_video(text)
        if video is None:
            return JSONResponse(
                {"status": "error", "message": "video unavailable"},
                status_code=status.HTTP_502_BAD_GATEWAY,
            )
        return JSONResponse({"text": video.text, "url": video.url})

    @app.websocket("/ws/ui")
    async def ui_socket(ws: WebSocket) -> None:
        await ws.accept()
        queue = manager.register_ui()
        try:
            await ws.send_json({"type": "state", "phase": manager.phase.value, "data": manager.snapshot()})
            while True:
                try:
                    event = await queue.get()
                except asyncio.CancelledError:
                    break  # Clean shutdown

                payload = {
                    "type": event.type,
                    "phase": event.phase.value,
                    "data": event.data,
                }
                if event.error:
                    payload["error"] = event.error

                try:
                    await ws.send_json(payload)
                except Exception as e:
                    logger.debug(f"WebSocket send failed (client disconnected): {e}")
                    break
        except WebSocketDisconnect:
            pass
        except Exception as e:
            logger.error(f"Unexpected error in UI websocket: {e}")
        finally:
            manager.unregister_ui(queue)
            try:
                await ws.close()
            except Exception:
                pass

    return app


__all__ = ["create_app", "StartSessionRequest"]
