import asyncio
from typing import Optional

import uvicorn
from fastapi import FastAPI
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.cors import CORSMiddleware

from api import alarms, tasks
from core.alarms.lifecycle import AlarmLifecycleManager
from infrastructure.database.session import Database
from infrastructure.logging.logger import setup_logger
from infrastructure.utils.threading_tools import run_in_executor
from settings import settings

logger = setup_logger("alarm_keeper")


async def history_cleanup_worker(manager: AlarmLifecycleManager, interval_seconds: int):
    while True:
        try:
            await run_in_executor(manager.purge_expired)
        except Exception as e:
            logger.error(f"[cleanup] worker error: {e}", exc_info=True)
        await asyncio.sleep(interval_seconds)


def create_app(
        db: Optional[Database] = None,
        manager: Optional[AlarmLifecycleManager] = None,
        run_workers: bool = True,
) -> FastAPI:
    app = FastAPI(
        title="Alarm Keeper",
        version="0.1.0",
        description="Будильники и напоминания: разовые и повторяющиеся"
    )

    # Разрешаем доступ с телефона
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Подключаем эндпоинты
    app.include_router(alarms.router)
    app.include_router(tasks.router)

    app.state.db = db or Database()
    app.state.alarm_manager = manager or AlarmLifecycleManager(app.state.db)

    @app.get("/")
    def root():
        return {"status": "ok"}

    @app.on_event("startup")
    async def connect_database():
        # Подключаемся один раз; без БД сервису незачем стартовать
        try:
            app.state.db.ping()
        except SQLAlchemyError as e:
            logger.critical(f"[startup] База данных недоступна: {e}")
            raise
        app.state.db.create_schema()
        safe_url = make_url(app.state.db.db_url).render_as_string(hide_password=True)
        logger.info(f"[startup] База данных подключена: {safe_url}")

        if run_workers:
            app.state.cleanup_task = asyncio.create_task(
                history_cleanup_worker(app.state.alarm_manager, settings.CLEANUP_INTERVAL_SECONDS)
            )

    @app.on_event("shutdown")
    async def close_database():
        task = getattr(app.state, "cleanup_task", None)
        if task is not None:
            task.cancel()
        app.state.db.dispose()

    return app


app = create_app()


def run() -> None:
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
