import os

os.environ.setdefault("LOG_DISABLE_FILE", "true")

import json
from typing import Any, Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.models.service import ServiceDescriptor, TransferConfig
from app.services.factory import ServiceFactory
from app.services.registry import DestinationRegistry
from app.services.transfers_service import TransferDispatcher, get_dispatcher

FTS_URL = "https://fts.example.org:8446"
TOKEN = "Bearer test-token"

TERMINAL = {"FINISHED", "FINISHEDDIRTY", "FAILED", "CANCELED"}


class FakeBroker:
    """In-memory FTS3-style broker served through `httpx.MockTransport`."""

    def __init__(self):
        self.jobs: Dict[str, Dict[str, Any]] = {}
        self.files: Dict[str, List[Dict[str, Any]]] = {}
        self.requests: List[httpx.Request] = []
        self.fail_with: Optional[int] = None
        self.fail_body: Any = None
        self.raise_error: Optional[Exception] = None
        self.ignore_state_filter = False
        self._counter = 0

    def add_job(self, job_id: str, state: str = "ACTIVE", files: Optional[List[Dict[str, Any]]] = None, **fields: Any) -> Dict[str, Any]:
        job = {
            "job_id": job_id,
            "job_state": state,
            "submit_time": "2024-03-10T09:05:12",
            "vo_name": "dteam",
            "priority": 3,
            **fields,
        }
        self.jobs[job_id] = job
        self.files[job_id] = files if files is not None else [
            {
                "file_id": 1,
                "file_state": state,
                "source_surl": "https://source.example.org/data/file1",
                "dest_surl": "davs://dcache.example.org/data/file1",
                "filesize": 1024,
                "transferred": 512,
            }
        ]
        return job

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if self.raise_error is not None:
            raise self.raise_error
        if self.fail_with is not None:
            body = self.fail_body if self.fail_body is not None else {"status": str(self.fail_with), "message": "forced failure"}
            return httpx.Response(self.fail_with, json=body)

        parts = request.url.path.strip("/").split("/")
        if parts == ["jobs"]:
            if request.method == "POST":
                return self._submit(request)
            return self._search(request)

        job = self.jobs.get(parts[1]) if len(parts) > 1 else None
        if job is None:
            return httpx.Response(404, json={"status": "404 Not Found", "message": f"No job with the id {parts[-1]} has been found"})

        if request.method == "DELETE":
            if job["job_state"] not in TERMINAL:
                job["job_state"] = "CANCELED"
                for f in self.files[job["job_id"]]:
                    if f["file_state"] not in TERMINAL:
                        f["file_state"] = "CANCELED"
            return httpx.Response(200, json=job)
        if len(parts) == 3 and parts[2] == "files":
            return httpx.Response(200, json=self.files[job["job_id"]])
        return httpx.Response(200, json=job)

    def _submit(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self._counter += 1
        job_id = f"job-{self._counter}"
        self.add_job(job_id, state="SUBMITTED", files=[
            {"file_id": i, "file_state": "SUBMITTED", "source_surl": f["sources"][0], "dest_surl": f["destinations"][0]}
            for i, f in enumerate(body["files"], start=1)
        ])
        return httpx.Response(200, json={"job_id": job_id})

    def _search(self, request: httpx.Request) -> httpx.Response:
        states = request.url.params.get("state_in")
        limit = int(request.url.params.get("limit", 100))
        jobs = list(self.jobs.values())
        if states and not self.ignore_state_filter:
            wanted = set(states.split(","))
            jobs = [job for job in jobs if job["job_state"] in wanted]
        return httpx.Response(200, json=jobs[:limit])


@pytest.fixture()
def fts_descriptor() -> ServiceDescriptor:
    return ServiceDescriptor(key="fts", name="File Transfer Service", url=FTS_URL, kind="fts", timeout=5000)


@pytest.fixture()
def transfer_config(fts_descriptor) -> TransferConfig:
    return TransferConfig(
        default_destination="dcache",
        destinations={"dcache": "fts", "storm": "fts", "tape": "legacy", "broken": "nourl"},
        services={
            "fts": fts_descriptor,
            "legacy": ServiceDescriptor(key="legacy", name="Legacy", url="https://legacy.example.org", kind="gridftp"),
            "nourl": ServiceDescriptor(key="nourl", name="No URL", url="fts.example.org", kind="fts"),
        },
    )


@pytest.fixture()
def registry(transfer_config) -> DestinationRegistry:
    return DestinationRegistry.from_config(transfer_config)


@pytest.fixture()
def broker() -> FakeBroker:
    return FakeBroker()


@pytest.fixture()
def factory(broker) -> ServiceFactory:
    return ServiceFactory(transport=httpx.MockTransport(broker.handle))


@pytest.fixture()
def dispatcher(registry, factory) -> TransferDispatcher:
    return TransferDispatcher(registry, factory)


@pytest.fixture()
def client(dispatcher):
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def transfer_body() -> Dict[str, Any]:
    return {
        "files": [
            {
                "sources": ["https://source.example.org/data/file1"],
                "destinations": ["davs://dcache.example.org/data/file1"],
                "checksum": "adler32:a1b2c3d4",
                "filesize": 1024,
            }
        ],
        "params": {"overwrite": True, "priority": 4, "verifyChecksum": "both"},
    }
