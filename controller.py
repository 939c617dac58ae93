import logging
import random
import threading
import time
from collections import deque
from typing import Callable, Dict, List, Optional

from kubernetes import watch
from kubernetes.client import ApiException
from prometheus_client import Counter, Gauge, Histogram
from pydantic import ValidationError

import settings
from kub import KubernetesClient
from model import Application
from reconciler import Reconciler

RECONCILE_COUNT = Counter("flaiserator_reconcile_count", "Total number of reconciliations", ["result"])
RECONCILE_LATENCY = Histogram("flaiserator_reconcile_latency_seconds", "Reconciliation latency in seconds",
                              buckets=[0.1, 0.5, 1, 2, 5, 10, float("inf")])
WATCH_ERROR_COUNT = Counter("flaiserator_watch_error_count", "Total number of watch errors")
QUEUE_DEPTH = Gauge("flaiserator_queue_depth", "Number of Applications waiting for reconciliation")

MAX_BACKOFF_SECONDS = 300


def object_key(obj: dict) -> str:
    metadata = obj.get("metadata") or {}
    return f"{metadata.get('namespace', 'default')}/{metadata.get('name')}"


class WorkQueue:
    """FIFO of object keys where a key is handed to at most one worker at a time.

    A key added while it is being processed is marked dirty and queued again
    once the worker calls ``done``. A key already waiting is not queued twice.
    """

    def __init__(self):
        self._cond = threading.Condition()
        self._queue = deque()
        self._queued = set()
        self._processing = set()
        self._dirty = set()
        self._shutdown = False

    def __len__(self):
        with self._cond:
            return len(self._queue)

    def _push(self, key: str):
        self._queued.add(key)
        self._queue.append(key)
        QUEUE_DEPTH.set(len(self._queue))
        self._cond.notify()

    def add(self, key: str):
        with self._cond:
            if self._shutdown:
                return
            if key in self._processing:
                self._dirty.add(key)
            elif key not in self._queued:
                self._push(key)

    def add_after(self, key: str, delay: float) -> threading.Timer:
        timer = threading.Timer(delay, self.add, args=(key,))
        timer.daemon = True
        timer.start()
        return timer

    def get(self, timeout: Optional[float] = None) -> Optional[str]:
        with self._cond:
            while not self._queue:
                if self._shutdown or not self._cond.wait(timeout):
                    return None
            key = self._queue.popleft()
            QUEUE_DEPTH.set(len(self._queue))
            self._queued.discard(key)
            self._processing.add(key)
            return key

    def done(self, key: str):
        with self._cond:
            self._processing.discard(key)
            if key in self._dirty:
                self._dirty.discard(key)
                if not self._shutdown:
                    self._push(key)

    def shutdown(self):
        with self._cond:
            self._shutdown = True
            self._cond.notify_all()


class Controller:
    def __init__(self, kube: KubernetesClient, reconciler: Reconciler,
                 namespace: str = settings.WATCH_NAMESPACE, workers: int = settings.WORKERS,
                 resync_seconds: int = settings.RESYNC_SECONDS):
        self.kube = kube
        self.reconciler = reconciler
        self.namespace = namespace
        self.workers = workers
        self.resync_seconds = resync_seconds
        self.queue = WorkQueue()
        self.cache: Dict[str, dict] = {}
        self._cache_lock = threading.Lock()
        self._failures: Dict[str, int] = {}
        self._stop = threading.Event()
        self._watcher: Optional[watch.Watch] = None
        self._threads: List[threading.Thread] = []

    # Events

    def handle_event(self, event_type: str, obj: dict):
        key = object_key(obj)
        if event_type == "DELETED":
            # Dependents are removed by the garbage collector through owner references
            with self._cache_lock:
                self.cache.pop(key, None)
                self._failures.pop(key, None)
            logging.info(f"Application {key} deleted.")
            return
        with self._cache_lock:
            self.cache[key] = obj
        self.queue.add(key)

    def resync(self):
        with self._cache_lock:
            keys = list(self.cache)
        for key in keys:
            self.queue.add(key)

    # Workers

    def process_next(self, timeout: Optional[float] = None) -> bool:
        key = self.queue.get(timeout)
        if key is None:
            return False
        try:
            self.reconcile_key(key)
        finally:
            self.queue.done(key)
        return True

    def reconcile_key(self, key: str):
        with self._cache_lock:
            obj = self.cache.get(key)
        if obj is None:
            return

        try:
            app = Application.model_validate(obj)
        except ValidationError as e:
            # Requeueing an unparseable object cannot succeed
            RECONCILE_COUNT.labels(result="invalid").inc()
            logging.error(f"Application {key} is invalid: {e}")
            return

        start_time = time.time()
        try:
            self.reconciler.reconcile(app)
        except Exception as e:
            RECONCILE_COUNT.labels(result="error").inc()
            delay = self._backoff(key)
            logging.error(f"Reconciliation of Application {key} failed, retrying in {delay}s: {e}")
            self.queue.add_after(key, delay)
            return
        finally:
            RECONCILE_LATENCY.observe(time.time() - start_time)

        RECONCILE_COUNT.labels(result="success").inc()
        with self._cache_lock:
            self._failures.pop(key, None)

    def _backoff(self, key: str) -> float:
        with self._cache_lock:
            attempts = self._failures.get(key, 0) + 1
            self._failures[key] = attempts
        return min(MAX_BACKOFF_SECONDS, 2 ** (attempts - 1))

    def _worker(self):
        while not self._stop.is_set():
            self.process_next(timeout=1)

    # Watch

    def _list_func(self) -> Callable:
        api = self.kube.custom_api
        if self.namespace:
            def list_namespaced(**kwargs):
                return api.list_namespaced_custom_object(
                    settings.GROUP, settings.VERSION, self.namespace, settings.PLURAL, **kwargs)
            return list_namespaced

        def list_cluster(**kwargs):
            return api.list_cluster_custom_object(settings.GROUP, settings.VERSION, settings.PLURAL, **kwargs)
        return list_cluster

    def relist(self) -> Optional[str]:
        result = self._list_func()()
        items = result.get("items") or []
        seen = set()
        for item in items:
            seen.add(object_key(item))
            self.handle_event("ADDED", item)
        with self._cache_lock:
            stale = [key for key in self.cache if key not in seen]
        for key in stale:
            namespace, name = key.split("/", 1)
            self.handle_event("DELETED", {"metadata": {"namespace": namespace, "name": name}})
        logging.info(f"Listed {len(items)} Applications.")
        return (result.get("metadata") or {}).get("resourceVersion")

    def run_watch(self):
        backoff = 1
        resource_version = None
        while not self._stop.is_set():
            try:
                if resource_version is None:
                    resource_version = self.relist()
                self._watcher = watch.Watch()
                for event in self._watcher.stream(self._list_func(), resource_version=resource_version,
                                                  timeout_seconds=300):
                    if self._stop.is_set():
                        break
                    obj = event["object"]
                    if event["type"] == "ERROR":
                        raise ApiException(status=obj.get("code"), reason=obj.get("message"))
                    resource_version = (obj.get("metadata") or {}).get("resourceVersion", resource_version)
                    self.handle_event(event["type"], obj)
                backoff = 1
            except ApiException as e:
                if e.status == 410:
                    logging.warning("Watch resource version expired, re-listing")
                    resource_version = None
                    continue
                WATCH_ERROR_COUNT.inc()
                if e.status in (401, 403):
                    logging.error(f"Access to Applications denied (status={e.status}), check RBAC.")
                    return
                logging.error(f"Watch of Applications failed: {e}")
                resource_version = None
                self._stop.wait(backoff * (0.5 + random.random()))
                backoff = min(backoff * 2, 30)
            except Exception as e:
                WATCH_ERROR_COUNT.inc()
                logging.error(f"Unexpected watch error: {e}")
                resource_version = None
                self._stop.wait(backoff * (0.5 + random.random()))
                backoff = min(backoff * 2, 30)

    def _resync_loop(self):
        while not self._stop.wait(self.resync_seconds):
            self.resync()

    # Lifecycle

    def start(self):
        targets = [self.run_watch, self._resync_loop] + [self._worker] * self.workers
        for i, target in enumerate(targets):
            thread = threading.Thread(target=target, name=f"flaiserator-{i}", daemon=True)
            thread.start()
            self._threads.append(thread)
        logging.info(f"Controller started with {self.workers} workers.")

    def stop(self):
        self._stop.set()
        if self._watcher is not None:
            self._watcher.stop()
        self.queue.shutdown()
        for thread in self._threads:
            thread.join(timeout=5)
        logging.info("Controller stopped.")
