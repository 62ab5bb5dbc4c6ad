import asyncio
import logging
import os
from typing import Optional

import uvicorn
from fastapi import FastAPI, File, HTTPException, Query, UploadFile
from fastapi.responses import Response

from imgconv.pipeline import TranscodeConfig, TranscodeRequest, load_config, plan_geometry, process_bytes

logger = logging.getLogger(__name__)

app = FastAPI()

_config: TranscodeConfig | None = None
_semaphore: asyncio.Semaphore | None = None


@app.on_event("startup")
def startup() -> None:
    global _config, _semaphore
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s - %(name)-20s - %(levelname)-8s - %(message)s",
    )
    _config = load_config()
    _semaphore = asyncio.Semaphore(_config.max_concurrent)
    logger.info("imgconv ready (default resize %s, max concurrent %d)", _config.default_resize, _config.max_concurrent)


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/plan")
def plan(
    width: int = Query(..., ge=1),
    height: int = Query(..., ge=1),
    resize: Optional[str] = None,
    w: Optional[int] = Query(None, ge=1),
    h: Optional[int] = Query(None, ge=1),
    zoom: Optional[float] = None,
    fx: Optional[float] = Query(None, ge=0.0, le=100.0),
    fy: Optional[float] = Query(None, ge=0.0, le=100.0),
) -> dict:
    if _config is None:
        raise HTTPException(status_code=500, detail="Service not initialized")
    request = TranscodeRequest(resize=resize, w=w, h=h, zoom=zoom, fx=fx, fy=fy)
    try:
        resized, crop_rect = plan_geometry((width, height), request, _config)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {
        "resize": {"w": resized.w, "h": resized.h},
        "crop": {
            "top": crop_rect.top,
            "left": crop_rect.left,
            "bottom": crop_rect.bottom,
            "right": crop_rect.right,
        },
    }


@app.post("/transcode")
async def transcode(
    file: UploadFile = File(...),
    resize: Optional[str] = None,
    w: Optional[int] = Query(None, ge=1),
    h: Optional[int] = Query(None, ge=1),
    zoom: Optional[float] = None,
    fx: Optional[float] = Query(None, ge=0.0, le=100.0),
    fy: Optional[float] = Query(None, ge=0.0, le=100.0),
) -> Response:
    if _config is None or _semaphore is None:
        raise HTTPException(status_code=500, detail="Service not initialized")
    request = TranscodeRequest(resize=resize, w=w, h=h, zoom=zoom, fx=fx, fy=fy)
    try:
        async with _semaphore:
            content = await file.read()
            result = process_bytes(content, request, _config)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Transcoding %s failed", file.filename)
        raise HTTPException(status_code=500, detail="Processing failed") from exc
    return Response(content=result, media_type="image/png")


if __name__ == "__main__":
    uvicorn.run(app, host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "8080")))
