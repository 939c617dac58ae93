import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from pydantic import ValidationError

import settings
from controller import Controller
from kub import KubernetesClient, load_config
from model import Application
from reconciler import Reconciler
from validation import InvalidApplication, validate_application

logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(threadName)s %(message)s")

# Define Prometheus metrics
REQUEST_COUNT = Counter("flaiserator_request_count", "Total number of requests")
REQUEST_ERROR_COUNT = Counter("flaiserator_request_error_count", "Total number of failed requests")
REQUEST_LATENCY = Histogram("flaiserator_request_latency_seconds", "Request latency in seconds",
                            buckets=[0.1, 0.5, 1, 2, 5, 10, float("inf")])
ADMISSION_DENIED_COUNT = Counter("flaiserator_admission_denied_count", "Total number of rejected Applications")


@asynccontextmanager
async def lifespan(app: FastAPI):
    controller = None
    if settings.OPERATOR_ENABLED:
        load_config()
        kube = KubernetesClient()
        controller = Controller(kube, Reconciler(kube))
        controller.start()
    yield
    if controller is not None:
        controller.stop()


app = FastAPI(lifespan=lifespan)


@app.middleware("http")
async def add_metrics(request: Request, call_next):
    REQUEST_COUNT.inc()

    start_time = time.time()
    response = await call_next(request)
    REQUEST_LATENCY.observe(time.time() - start_time)

    if response.status_code >= 400:
        REQUEST_ERROR_COUNT.inc()

    return response


@app.get("/")
async def root():
    return {"status": "UP"}


@app.get("/metrics")
async def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


def admission_response(uid: str, error: Optional[InvalidApplication] = None) -> dict:
    response = {"uid": uid, "allowed": error is None}
    if error is not None:
        response["status"] = {"code": error.code, "reason": error.reason, "message": error.message}
    return {"apiVersion": "admission.k8s.io/v1", "kind": "AdmissionReview", "response": response}


@app.post("/validate")
async def validate(review: dict):
    request = review.get("request") or {}
    uid = request.get("uid", "")
    obj = request.get("object")

    # Deletions carry no object
    if obj is None:
        return admission_response(uid)

    try:
        application = Application.model_validate(obj)
        validate_application(application)
    except ValidationError as e:
        error = InvalidApplication(str(e))
    except InvalidApplication as e:
        error = e
    else:
        return admission_response(uid)

    ADMISSION_DENIED_COUNT.inc()
    logging.info(f"Rejected Application {obj.get('metadata', {}).get('name')}: {error.message}")
    return admission_response(uid, error)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.HTTP_HOST, port=settings.HTTP_PORT,
                ssl_certfile=settings.TLS_CERT_FILE, ssl_keyfile=settings.TLS_KEY_FILE)
