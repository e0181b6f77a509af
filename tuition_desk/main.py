from contextlib import asynccontextmanager
import logging
import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tuition_desk.config import settings
from tuition_desk.db import Base, engine
from tuition_desk.route_logging import EndpointNameRoute
from tuition_desk.routers import assessments, attendance, auth, batches, courses, dashboard, routines, students, subscriptions

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s %(levelname)s %(name)s %(message)s',
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    Base.metadata.create_all(bind=engine)
    logger.info('startup app=%s env=%s', settings.app_name, settings.app_env)
    yield


app = FastAPI(title=settings.app_name, version='0.1.0', lifespan=lifespan)
app.router.route_class = EndpointNameRoute


@app.middleware('http')
async def slow_request_logger(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - started) * 1000.0
    if duration_ms >= settings.metrics_slow_ms:
        logging.getLogger('tuition_desk.request').info(
            'request_slow path=%s method=%s status_code=%s duration_ms=%.2f',
            request.url.path,
            request.method,
            response.status_code,
            duration_ms,
        )
    return response


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.exception('unhandled_error path=%s method=%s', request.url.path, request.method)
    return JSONResponse(status_code=500, content={'detail': 'Internal server error'})


app.include_router(auth.router)
app.include_router(batches.router)
app.include_router(students.router)
app.include_router(courses.router)
app.include_router(routines.router)
app.include_router(subscriptions.router)
app.include_router(attendance.router)
app.include_router(assessments.router)
app.include_router(dashboard.router)


@app.get('/')
def root():
    return {'app': settings.app_name, 'status': 'ok'}


@app.get('/health')
def healthcheck():
    return {'status': 'ok'}
