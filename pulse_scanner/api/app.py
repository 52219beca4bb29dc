"""
PULSE SCANNER: FastAPI Application
HTTP surface over the refresh loop, analytics and prediction path, with
/healthz and /metrics for monitoring.
"""
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from pulse_scanner.container import ServiceContainer, build_services
from pulse_scanner.data.models import Timeframe
from pulse_scanner.config.settings import get_settings
from pulse_scanner.utils.errors import AppError
from pulse_scanner.utils.helpers import utc_timestamp
from pulse_scanner.utils.logger import bind_instance, get_logger, setup_logging

logger = get_logger("api")


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


def create_app(services: Optional[ServiceContainer] = None, autostart: Optional[bool] = None) -> FastAPI:
    """
    Build the application. When `services` is None the container is built
    from settings during startup. `autostart` defaults to the AUTOSTART setting
    and controls whether the background loops run.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        container = services or build_services()
        setup_logging(container.settings)
        app.state.services = container
        app.state.instance_id = str(uuid.uuid4())[:8]
        app.state.started_at = utc_timestamp()
        bind_instance(app.state.instance_id, container.settings.app_name)
        start = container.settings.autostart if autostart is None else autostart

        logger.info("pulse_scanner_starting", version=container.settings.version, autostart=start)
        if start:
            await container.start()
        logger.info("pulse_scanner_ready")

        yield

        logger.info("pulse_scanner_shutting_down")
        await container.stop()

    settings = services.settings if services else get_settings()
    app = FastAPI(
        title=settings.app_name,
        description="Live market scanner with indicators, patterns and predictions",
        version=settings.version,
        lifespan=lifespan,
    )

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        logger.error("request_failed", path=request.url.path, code=exc.code, error=exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    # ─── Health & Metrics ───────────────────────────────────────

    @app.get("/healthz", tags=["System"])
    async def health_check(request: Request):
        return {
            "status": "healthy",
            "instance": request.app.state.instance_id,
            "uptime_since": request.app.state.started_at,
            "timestamp": utc_timestamp(),
        }

    @app.get("/metrics", tags=["System"])
    async def metrics(request: Request):
        svc = get_services(request)
        return {
            "app": {
                "name": svc.settings.app_name,
                "version": svc.settings.version,
                "instance_id": request.app.state.instance_id,
                "started_at": request.app.state.started_at,
            },
            "components": svc.stats,
            "timestamp": utc_timestamp(),
        }

    # ─── Live Snapshot ──────────────────────────────────────────

    @app.get("/api/v1/pairs", tags=["Market"])
    async def get_pairs(request: Request):
        pairs = get_services(request).refresh.get_current_data()
        return {"count": len(pairs), "pairs": [p.model_dump(mode="json") for p in pairs]}

    @app.get("/api/v1/progress", tags=["Market"])
    async def get_progress(request: Request):
        refresh = get_services(request).refresh
        return {
            "progress": refresh.get_current_progress(),
            "state": refresh.state.value,
            "last_refresh_time": refresh.last_refresh_time,
        }

    @app.post("/api/v1/refresh", tags=["Market"])
    async def force_refresh(request: Request):
        task = get_services(request).refresh.force_refresh()
        return {"triggered": task is not None}

    # ─── Analytics ──────────────────────────────────────────────

    async def _candles(request: Request, symbol: str, timeframe: Timeframe):
        df = await get_services(request).history.get_candles(symbol, timeframe)
        if df.empty:
            raise HTTPException(status_code=404, detail=f"No candles available for {symbol}")
        return df

    @app.get("/api/v1/indicators/{symbol}", tags=["Analytics"])
    async def get_indicators(request: Request, symbol: str, timeframe: Timeframe = Query(Timeframe.H1)):
        df = await _candles(request, symbol, timeframe)
        summary = get_services(request).indicators.summarize(df)
        return {"symbol": symbol, "timeframe": timeframe.value, "candles": len(df), "indicators": summary}

    @app.get("/api/v1/patterns/{symbol}", tags=["Analytics"])
    async def get_patterns(request: Request, symbol: str, timeframe: Timeframe = Query(Timeframe.H1)):
        df = await _candles(request, symbol, timeframe)
        patterns = get_services(request).patterns.analyze(df)
        return {
            "symbol": symbol,
            "timeframe": timeframe.value,
            "patterns": [p.model_dump(mode="json") for p in patterns],
        }

    # ─── Predictions ────────────────────────────────────────────

    @app.post("/api/v1/predictions/run", tags=["Predictions"])
    async def run_predictions(request: Request):
        result = await get_services(request).prediction_runner.run_once()
        return {
            "synced": result["synced"],
            "generated": result["generated"],
            "top_picks": [p.model_dump(mode="json") for p in result["top_picks"]],
        }

    @app.get("/api/v1/predictions/{timeframe}", tags=["Predictions"])
    async def get_predictions(request: Request, timeframe: Timeframe, limit: int = Query(5, ge=1, le=100)):
        ranked = await get_services(request).store.get_top_predictions(timeframe, limit)
        return {"timeframe": timeframe.value, "predictions": [p.model_dump(mode="json") for p in ranked]}

    @app.get("/api/v1/top-picks", tags=["Predictions"])
    async def get_top_picks(request: Request, limit: int = Query(10, ge=1, le=100)):
        picks = await get_services(request).store.get_top_picks(limit)
        return {"count": len(picks), "top_picks": [p.model_dump(mode="json") for p in picks]}

    return app


app = create_app()
