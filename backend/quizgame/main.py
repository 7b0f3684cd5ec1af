import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .cleanup import purge_expired
from .core.errors import CallerError
from .db import Base, SessionLocal, engine, ensure_schema
from .settings import settings
from .routers import auth
from .routers import admin
from .routers import ai
from .routers import game
from .routers import leaderboard
from .routers import questions
from .routers import user

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("quizgame")

CLEANUP_INTERVAL_SECONDS = 24 * 60 * 60


def _run_cleanup() -> None:
	db = SessionLocal()
	try:
		purge_expired(db)
	except SQLAlchemyError:
		db.rollback()
		logger.exception("Cleanup failed")
	finally:
		db.close()


async def _cleanup_watcher():
	# Startup already ran one pass; repeat daily
	while True:
		await asyncio.sleep(CLEANUP_INTERVAL_SECONDS)
		_run_cleanup()


def create_app() -> FastAPI:
	app = FastAPI(title="Quiz Game API")

	origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
	app.add_middleware(
		CORSMiddleware,
		allow_origins=origins,
		# Browsers reject credentials together with a wildcard origin
		allow_credentials="*" not in origins,
		allow_methods=["*"],
		allow_headers=["*"],
	)

	@app.exception_handler(CallerError)
	async def caller_error_handler(request: Request, exc: CallerError):
		return JSONResponse(status_code=400, content={"detail": str(exc)})

	app.include_router(auth.router)
	app.include_router(game.router)
	app.include_router(questions.router)
	app.include_router(leaderboard.router)
	app.include_router(user.router)
	app.include_router(admin.router)
	app.include_router(ai.router)

	@app.get("/")
	def root():
		return {"status": "ok", "gemini_configured": bool(settings.gemini_api_key)}

	@app.get("/health")
	def health():
		return {"status": "ok"}

	@app.on_event("startup")
	async def startup_event():
		# Initialize DB schema
		Base.metadata.create_all(bind=engine)
		# Add columns missing from databases created by older releases
		ensure_schema()
		db = SessionLocal()
		try:
			auth.ensure_seed_admin(db)
		finally:
			db.close()
		_run_cleanup()
		# Start periodic cleanup loop
		asyncio.create_task(_cleanup_watcher())

	return app


app = create_app()
