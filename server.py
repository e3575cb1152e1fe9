#!/usr/bin/env python3
"""
FaceSwap Lite Server
FastAPI batch face swap with ephemeral file storage
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Tuple

import uvicorn
from fastapi import BackgroundTasks, FastAPI, File, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.requests import Request

import config
from tools.batch import BatchProcessor, TargetImage
from tools.errors import FileTooLarge, InvalidBatch, UnsupportedFormat
from tools.storage import UPLOAD, EphemeralStore

logger = logging.getLogger(__name__)
logging.basicConfig(level=config.LOG_LEVEL)

MISSING_INPUT_ERROR = "Please upload both source face and target images"
FORMAT_ERROR = "Only JPG, PNG, WEBP images are allowed"


def read_upload(upload: UploadFile, max_file_size: int) -> Tuple[str, bytes]:
    """Check extension and size of one uploaded file; returns (extension, bytes)."""
    filename = upload.filename or ""
    ext = Path(filename).suffix.lower()
    if ext not in config.ALLOWED_EXTENSIONS:
        raise UnsupportedFormat(FORMAT_ERROR)

    data = upload.file.read(max_file_size + 1)
    if len(data) > max_file_size:
        raise FileTooLarge(f"File too large: {filename} (limit {max_file_size} bytes)")
    return ext, data


def describe_validation_error(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{field}: {err.get('msg')}" if field else str(err.get("msg")))
    return "Invalid request: " + "; ".join(parts)


async def sweep_periodically(store: EphemeralStore, interval: float, max_age: float):
    while True:
        await asyncio.sleep(interval)
        try:
            removed = await asyncio.to_thread(store.sweep, max_age)
        except Exception:
            logger.exception("Periodic cleanup failed")
            continue
        if removed:
            logger.info("Periodic cleanup removed %d files", removed)


def create_app(
    store: Optional[EphemeralStore] = None,
    *,
    max_items: int = config.MAX_TARGET_IMAGES,
    max_file_size: int = config.MAX_FILE_SIZE,
    max_workers: int = config.MAX_WORKERS,
    upload_cleanup_delay: float = config.UPLOAD_CLEANUP_DELAY,
    sweep_interval: float = config.SWEEP_INTERVAL_SECONDS,
    max_file_age: float = config.MAX_FILE_AGE_SECONDS,
    run_sweeper: bool = True,
) -> FastAPI:
    if store is None:
        store = EphemeralStore(config.UPLOAD_DIR, config.OUTPUT_DIR)
    processor = BatchProcessor(
        store,
        max_items=max_items,
        max_workers=max_workers,
        max_size=config.MAX_OUTPUT_SIZE,
        quality=config.JPEG_QUALITY,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        sweeper = None
        if run_sweeper:
            sweeper = asyncio.create_task(
                sweep_periodically(store, sweep_interval, max_file_age)
            )
        yield
        if sweeper is not None:
            sweeper.cancel()
            try:
                await sweeper
            except asyncio.CancelledError:
                pass

    app = FastAPI(title="FaceSwap Lite", lifespan=lifespan)
    app.state.store = store
    app.state.processor = processor

    # one source, max_items targets, plus room for multipart framing
    max_request_size = (max_items + 1) * max_file_size + 1024 * 1024

    @app.middleware("http")
    async def limit_request_size(request: Request, call_next):
        # reject oversized batches before the multipart body is spooled to disk
        length = request.headers.get("content-length")
        if request.method == "POST" and length and length.isdigit():
            if int(length) > max_request_size:
                return JSONResponse(
                    {"error": f"Request too large (limit {max_request_size} bytes)"},
                    status_code=413,
                )
        return await call_next(request)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse({"error": describe_validation_error(exc)}, status_code=400)

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.error("Unhandled error on %s: %s", request.url.path, exc)
        return JSONResponse(
            {"error": str(exc) or "Internal server error"}, status_code=500
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/health")
    def health():
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "message": "FaceSwap Lite API is running",
        }

    @app.post("/api/process-photos")
    def process_photos(
        background_tasks: BackgroundTasks,
        sourceFace: Optional[List[UploadFile]] = File(None),
        targetImages: Optional[List[UploadFile]] = File(None),
    ):
        if not sourceFace or not targetImages:
            return JSONResponse({"error": MISSING_INPUT_ERROR}, status_code=400)
        if len(sourceFace) > 1:
            return JSONResponse(
                {"error": "Please upload exactly one source face image"},
                status_code=400,
            )

        try:
            source_ext, source_data = read_upload(sourceFace[0], max_file_size)
            targets = []
            target_exts = []
            for upload in targetImages:
                ext, data = read_upload(upload, max_file_size)
                targets.append(TargetImage(name=upload.filename, data=data))
                target_exts.append(ext)
            processor.validate(source_data, targets)
        except (UnsupportedFormat, InvalidBatch) as e:
            return JSONResponse({"error": str(e)}, status_code=400)
        except FileTooLarge as e:
            return JSONResponse({"error": str(e)}, status_code=413)

        logger.info("Processing photos request: %d target images", len(targets))
        uploads = []
        try:
            uploads.append(store.put(UPLOAD, source_data, suffix=source_ext))
            for target, ext in zip(targets, target_exts):
                uploads.append(store.put(UPLOAD, target.data, suffix=ext))

            result = processor.process(source_data, targets)
        except Exception as e:
            logger.exception("Process photos error")
            return JSONResponse(
                {"error": f"Processing failed: {e}"}, status_code=500
            )
        finally:
            if uploads:
                background_tasks.add_task(
                    store.remove_later, uploads, upload_cleanup_delay
                )

        return {
            "success": True,
            "results": [item.to_dict() for item in result.items],
            "message": result.message,
        }

    app.mount("/uploads", StaticFiles(directory=store.upload_dir), name="uploads")
    app.mount("/outputs", StaticFiles(directory=store.output_dir), name="outputs")
    return app


app = create_app()


if __name__ == "__main__":
    print(f"Server started: http://localhost:{config.PORT}")
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
