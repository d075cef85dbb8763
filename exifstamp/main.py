from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from exifstamp.routers.watermark import close_http_client, router as watermark_router
from exifstamp.services.logging import init_logging
from exifstamp.services.settings import get_settings


@asynccontextmanager
async def lifespan(app: FastAPI):
	yield
	# shared geocoding/map client
	await close_http_client()


def create_app() -> FastAPI:
	settings = get_settings()
	init_logging(settings.log_dir, settings.log_level)

	app = FastAPI(title="EXIF Stamp - Photo Metadata Watermark API", version="0.1.0", lifespan=lifespan)

	# CORS (adjust origins in production)
	app.add_middleware(
		CORSMiddleware,
		allow_origins=["*"],
		allow_credentials=False,
		allow_methods=["*"],
		allow_headers=["*"],
	)

	# Routers
	app.include_router(watermark_router)

	return app


app = create_app()


if __name__ == "__main__":
	# Local dev server: uvicorn exifstamp.main:app --reload
	import uvicorn

	uvicorn.run("exifstamp.main:app", host="0.0.0.0", port=8000, reload=True)
