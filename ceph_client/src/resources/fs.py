from typing import Any, Dict, List

from ...common.log_calls import log_calls
from ..schemas import FS, Directory, Quota
from ..session import Session
from .tasks import raise_for_status


class FileSystems:
    """CephFS (/api/cephfs). Plain request/response, no background tasks."""

    def __init__(self, session: Session):
        self.session = session

    @log_calls("fs.list")
    def list(self) -> List[FS]:
        resp = self.session.request("GET", "cephfs")
        raise_for_status(resp, "could not list cephfs")
        return [FS.model_validate(item) for item in resp.json()]

    @log_calls("fs.get")
    def get(self, fs_id: int) -> Dict[str, Any]:
        resp = self.session.request("GET", f"cephfs/{fs_id}")
        raise_for_status(resp, f"could not get cephfs {fs_id}")
        return resp.json()

    @log_calls("fs.get_root_directory")
    def get_root_directory(self, fs_id: int) -> Directory:
        resp = self.session.request("GET", f"cephfs/{fs_id}/get_root_directory")
        raise_for_status(resp, f"could not get root directory of cephfs {fs_id}")
        return Directory.model_validate(resp.json())

    @log_calls("fs.list_dir")
    def list_dir(self, fs_id: int, path: str, depth: int = 1) -> List[Directory]:
        resp = self.session.request("GET", f"cephfs/{fs_id}/ls_dir", params={"path": path, "depth": depth})
        raise_for_status(resp, f"could not list {path} on cephfs {fs_id}")
        return [Directory.model_validate(item) for item in resp.json()]

    @log_calls("fs.create_dir")
    def create_dir(self, fs_id: int, path: str) -> int:
        resp = self.session.request("POST", f"cephfs/{fs_id}/tree", json={"path": path})
        raise_for_status(resp, f"could not create {path} on cephfs {fs_id}")
        return resp.status_code

    @log_calls("fs.delete_dir")
    def delete_dir(self, fs_id: int, path: str) -> int:
        resp = self.session.request("DELETE", f"cephfs/{fs_id}/tree", params={"path": path})
        raise_for_status(resp, f"could not delete {path} on cephfs {fs_id}")
        return resp.status_code

    @log_calls("fs.get_quota")
    def get_quota(self, fs_id: int, path: str) -> Quota:
        resp = self.session.request("GET", f"cephfs/{fs_id}/quota", params={"path": path})
        raise_for_status(resp, f"could not get quota of {path} on cephfs {fs_id}")
        quota = Quota.model_validate(resp.json())
        if quota.path is None:
            quota.path = path
        return quota

    @log_calls("fs.set_quota")
    def set_quota(self, fs_id: int, quota: Quota) -> int:
        resp = self.session.request("PUT", f"cephfs/{fs_id}/quota", json=quota.model_dump(exclude_none=True))
        raise_for_status(resp, f"could not set quota of {quota.path} on cephfs {fs_id}")
        return resp.status_code
