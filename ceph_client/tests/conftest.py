"""
A small in-memory stand-in for the Ceph Dashboard API. Mutating block calls
record a finished task the way the manager does, so the client's task
polling runs against something realistic.
"""
from typing import Any, Dict, List, Optional, Set

import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from fastapi.testclient import TestClient

from ceph_client.src.client import CephClient
from ceph_client.src.config import Settings
from ceph_client.src.schemas import Server


class FakeCeph:
    def __init__(self):
        self.images: Dict[str, Dict[str, Any]] = {}
        self.namespaces: Dict[str, List[str]] = {}
        self.snapshots: Dict[str, List[str]] = {}
        self.quotas: Dict[str, Dict[str, Any]] = {}
        self.directories: Set[str] = set()
        self.executing: List[Dict[str, Any]] = []
        self.finished: List[Dict[str, Any]] = []
        self.requests: List[str] = []
        # knobs
        self.unavailable = 0          # next N requests answer 503
        self.failing_tasks = 0        # next N tasks finish unsuccessfully
        self.failing_code = "5"
        self.running_polls = 0        # a new task stays "executing" for N task polls
        self._clock = 0

    def _now(self) -> str:
        self._clock += 1
        return f"2024-01-01T00:{self._clock // 60:02d}:{self._clock % 60:02d}.000000Z"

    def record_task(self, name: str, metadata: Dict[str, Any]) -> bool:
        begin = self._now()
        success = self.failing_tasks == 0
        if not success:
            self.failing_tasks -= 1
        entry: Dict[str, Any] = {
            "name": name,
            "metadata": metadata,
            "begin_time": begin,
            "progress": 100,
            "success": success,
            "ret_value": None,
            "exception": None if success else {"detail": "[errno 5] io error", "code": self.failing_code},
        }
        if self.running_polls:
            entry["_polls_left"] = self.running_polls
            self.executing.append(entry)
        else:
            entry["end_time"] = self._now()
            self.finished.append(entry)
        return success

    def tick(self) -> None:
        still_running = []
        for entry in self.executing:
            entry["_polls_left"] -= 1
            if entry["_polls_left"] <= 0:
                entry.pop("_polls_left")
                entry["end_time"] = self._now()
                self.finished.append(entry)
            else:
                still_running.append(entry)
        self.executing = still_running


def _public(entry: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in entry.items() if not k.startswith("_")}


def _spec(pool: str, namespace: Optional[str], name: str) -> str:
    return f"{pool}/{namespace}/{name}" if namespace else f"{pool}/{name}"


def make_app(ceph: FakeCeph) -> FastAPI:
    app = FastAPI()

    @app.middleware("http")
    async def flaky(request: Request, call_next):
        ceph.requests.append(f"{request.method} {request.url.path}")
        if ceph.unavailable > 0 and request.url.path != "/api/task":
            ceph.unavailable -= 1
            return JSONResponse({"detail": "unavailable"}, status_code=503)
        return await call_next(request)

    @app.post("/api/auth")
    async def login(request: Request):
        body = await request.json()
        if body.get("password") != "secret":
            return JSONResponse({"detail": "Invalid credentials"}, status_code=400)
        return JSONResponse({"token": "tok-123", "username": body["username"], "permissions": {"rbd-image": ["read"]}}, status_code=201)

    @app.post("/api/auth/logout")
    async def logout():
        return Response(status_code=200)

    @app.get("/api/task")
    async def tasks(name: Optional[str] = None):
        ceph.tick()

        def keep(entry):
            return name is None or entry["name"] == name

        return {
            "executing_tasks": [_public(e) for e in ceph.executing if keep(e)],
            "finished_tasks": [_public(e) for e in ceph.finished if keep(e)],
        }

    @app.get("/api/block/image")
    async def list_images(pool_name: Optional[str] = None):
        pools: Dict[str, List[Dict[str, Any]]] = {}
        for image in ceph.images.values():
            if pool_name and image["pool_name"] != pool_name:
                continue
            pools.setdefault(image["pool_name"], []).append(image)
        return [{"status": 0, "pool_name": pool, "value": images} for pool, images in pools.items()]

    @app.post("/api/block/image")
    async def create_image(request: Request):
        body = await request.json()
        spec = _spec(body["pool_name"], body.get("namespace"), body["name"])
        metadata = {"pool_name": body["pool_name"], "namespace": body.get("namespace"), "image_name": body["name"]}
        if spec in ceph.images:
            return JSONResponse(
                {
                    "detail": "[errno 17] RBD image already exists (error creating image)",
                    "code": "17",
                    "component": None,
                    "status": 400,
                    "task": {"name": "rbd/create", "metadata": metadata},
                },
                status_code=400,
            )
        if ceph.record_task("rbd/create", metadata):
            ceph.images[spec] = {"name": body["name"], "pool_name": body["pool_name"],
                                 "namespace": body.get("namespace"), "size": body["size"], "id": f"id-{len(ceph.images)}"}
        return Response(status_code=202 if ceph.running_polls else 201)

    @app.post("/api/block/image/{image_spec:path}/copy")
    async def copy_image(image_spec: str, request: Request):
        body = await request.json()
        if image_spec not in ceph.images:
            return JSONResponse({"detail": "not found", "code": "2"}, status_code=404)
        if ceph.record_task("rbd/copy", {"image_spec": image_spec}):
            dest = _spec(body["dest_pool_name"], body.get("dest_namespace"), body["dest_image_name"])
            ceph.images[dest] = dict(ceph.images[image_spec], name=body["dest_image_name"], pool_name=body["dest_pool_name"])
        return Response(status_code=201)

    @app.post("/api/block/image/{image_spec:path}/move_trash")
    async def move_trash(image_spec: str):
        if image_spec not in ceph.images:
            return JSONResponse({"detail": "not found", "code": "2"}, status_code=404)
        if ceph.record_task("rbd/trash/move", {"image_spec": image_spec}):
            ceph.images.pop(image_spec)
        # pacific answers 200 although 201 is documented
        return Response(status_code=200)

    @app.post("/api/block/image/{image_spec:path}/snap")
    async def create_snapshot(image_spec: str, request: Request):
        body = await request.json()
        if ceph.record_task("rbd/snap/create", {"image_spec": image_spec, "snapshot_name": body["snapshot_name"]}):
            ceph.snapshots.setdefault(image_spec, []).append(body["snapshot_name"])
        return Response(status_code=201)

    @app.get("/api/block/image/{image_spec:path}")
    async def get_image(image_spec: str):
        if image_spec not in ceph.images:
            return JSONResponse({"detail": f"{image_spec} not found", "code": "2"}, status_code=404)
        return ceph.images[image_spec]

    @app.put("/api/block/image/{image_spec:path}")
    async def update_image(image_spec: str, request: Request):
        body = await request.json()
        if ceph.record_task("rbd/edit", {"image_spec": image_spec}):
            image = ceph.images.pop(image_spec)
            image.update(name=body["name"], size=body.get("size", image["size"]))
            ceph.images[_spec(image["pool_name"], image.get("namespace"), body["name"])] = image
        return Response(status_code=200)

    @app.delete("/api/block/image/{image_spec:path}")
    async def delete_image(image_spec: str):
        if image_spec not in ceph.images:
            return JSONResponse({"detail": "[errno 2] RBD image not found", "code": "2"}, status_code=404)
        if ceph.record_task("rbd/delete", {"image_spec": image_spec}):
            ceph.images.pop(image_spec)
        return Response(status_code=204)

    @app.get("/api/block/pool/{pool}/namespace")
    async def list_namespaces(pool: str):
        return [{"namespace": ns, "num_images": 0} for ns in ceph.namespaces.get(pool, [])]

    @app.post("/api/block/pool/{pool}/namespace")
    async def create_namespace(pool: str, request: Request):
        body = await request.json()
        existing = ceph.namespaces.setdefault(pool, [])
        if body["namespace"] in existing:
            return JSONResponse(
                {"detail": "Namespace already exists", "code": "namespace_already_exists", "component": "rbd", "status": 400},
                status_code=400,
            )
        existing.append(body["namespace"])
        return Response(status_code=201)

    @app.delete("/api/block/pool/{pool}/namespace/{namespace}")
    async def delete_namespace(pool: str, namespace: str):
        existing = ceph.namespaces.get(pool, [])
        if namespace not in existing:
            return JSONResponse({"detail": "Namespace not found", "code": "2"}, status_code=404)
        existing.remove(namespace)
        return Response(status_code=204)

    @app.get("/api/cephfs")
    async def list_fs():
        return [{"id": 1, "mdsmap": {"fs_name": "cephfs", "max_mds": 1}}]

    @app.get("/api/cephfs/{fs_id}")
    async def get_fs(fs_id: int):
        if fs_id != 1:
            return JSONResponse({"detail": f"cephfs {fs_id} not found", "code": "2"}, status_code=404)
        return {"cephfs": {"id": 1, "name": "cephfs"}, "clients": {"num_clients": 0}}

    @app.get("/api/cephfs/{fs_id}/get_root_directory")
    async def root_directory(fs_id: int):
        return {"name": "/", "path": "/", "parent": None, "snapshots": [],
                "quotas": ceph.quotas.get("/", {"max_bytes": 0, "max_files": 0})}

    @app.post("/api/cephfs/{fs_id}/tree")
    async def mkdir(fs_id: int, request: Request):
        body = await request.json()
        ceph.directories.add(body["path"])
        return Response(status_code=200)

    @app.delete("/api/cephfs/{fs_id}/tree")
    async def rmdir(fs_id: int, path: str):
        if path not in ceph.directories:
            return JSONResponse({"detail": f"{path} not found", "code": "2"}, status_code=404)
        ceph.directories.discard(path)
        return Response(status_code=204)

    @app.get("/api/cephfs/{fs_id}/quota")
    async def get_quota(fs_id: int, path: str):
        return ceph.quotas.get(path, {"max_bytes": 0, "max_files": 0})

    @app.put("/api/cephfs/{fs_id}/quota")
    async def set_quota(fs_id: int, request: Request):
        body = await request.json()
        ceph.quotas[body["path"]] = {"max_bytes": body["max_bytes"], "max_files": body["max_files"]}
        return Response(status_code=200)

    @app.get("/api/cephfs/{fs_id}/ls_dir")
    async def ls_dir(fs_id: int, path: str, depth: int = 1):
        return [{"name": "volumes", "path": f"{path.rstrip('/')}/volumes", "parent": path, "snapshots": [],
                 "quotas": {"max_bytes": 0, "max_files": 0}}]

    return app


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        transport_retry_count=2,
        transport_retry_wait_s=0,
        task_poll_interval_s=0,
        task_max_poll_cycles=5,
        max_attempts=3,
    )


@pytest.fixture
def fake_ceph() -> FakeCeph:
    return FakeCeph()


@pytest.fixture
def client(fake_ceph, test_settings) -> CephClient:
    http_client = TestClient(make_app(fake_ceph))
    ceph_client = CephClient(
        Server(address="ceph.test", port=8443, protocol="https", api_path="api"),
        test_settings,
        http_client=http_client,
    )
    ceph_client.session.login("admin", "secret")
    return ceph_client
