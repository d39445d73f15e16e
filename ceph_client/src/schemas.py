from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field

# -----------------------
# Session
# -----------------------

class Server(BaseModel):
    address: str
    port: int = 8443
    protocol: str = "https"
    api_path: str = "api"
    insecure_skip_verify: bool = False

    def url(self, sub_path: str) -> str:
        return f"{self.protocol}://{self.address}:{self.port}/{self.api_path}/{sub_path}"

class Credentials(BaseModel):
    username: str
    password: str

class Auth(BaseModel):
    model_config = ConfigDict(extra="allow")

    token: str = ""
    username: str = ""
    permissions: Dict[str, List[str]] = {}
    pwdExpirationDate: Optional[Any] = None
    sso: bool = False
    pwdUpdateRequired: bool = False

# -----------------------
# Errors and tasks
# -----------------------

class ApiErrorDetail(BaseModel):
    """Error body of a 4xx response, also the `exception` payload of a failed task."""

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    detail: Optional[str] = None
    code: Optional[str] = None
    component: Optional[str] = None
    status: Optional[int] = None
    task: Optional[Dict[str, Any]] = None

class TaskMetadata(BaseModel):
    model_config = ConfigDict(extra="allow")

    pool_name: Optional[str] = None
    namespace: Optional[str] = None
    image_name: Optional[str] = None
    image_spec: Optional[str] = None

class TaskEntry(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    metadata: TaskMetadata = Field(default_factory=TaskMetadata)
    begin_time: Optional[str] = None
    end_time: Optional[str] = None
    duration: Optional[float] = None
    progress: Optional[int] = None
    success: Optional[bool] = None
    ret_value: Optional[Any] = None
    exception: Optional[ApiErrorDetail] = None

class TaskList(BaseModel):
    executing_tasks: List[TaskEntry] = []
    finished_tasks: List[TaskEntry] = []

class TaskDescriptor(BaseModel):
    """
    Identifies the background task started by a mutating request.

    The API does not return task ids on submission, so tasks are correlated
    by name plus image spec, or by name plus pool/namespace/image for
    `rbd/create` where the image spec is always empty.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    resource_spec: str = ""
    pool_name: Optional[str] = None
    namespace: Optional[str] = None
    image_name: Optional[str] = None

    def same_task(self, other: "TaskDescriptor") -> bool:
        return self.name == other.name and self.resource_spec == other.resource_spec

    def matches(self, entry: TaskEntry) -> bool:
        if entry.name != self.name:
            return False
        meta = entry.metadata
        if self.resource_spec:
            return meta.image_spec == self.resource_spec
        return (
            meta.pool_name == self.pool_name
            and (meta.namespace or None) == (self.namespace or None)
            and meta.image_name == self.image_name
        )

class TaskState(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

class TaskOutcome(BaseModel):
    state: TaskState
    failure: Optional[ApiErrorDetail] = None
    entry: Optional[TaskEntry] = None

    @property
    def is_terminal(self) -> bool:
        return self.state is not TaskState.PENDING

class OperationAttempt(BaseModel):
    attempt_number: int
    submitted_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

class Operation(BaseModel):
    """One logical mutating call as handed to the executor by a resource adapter."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    submit: Callable[[], httpx.Response]
    descriptor: Optional[TaskDescriptor] = None
    in_flight: FrozenSet[int] = frozenset()
    success_status: int

# -----------------------
# Block images
# -----------------------

class RBDConfiguration(BaseModel):
    name: str
    value: Optional[str] = None
    source: Optional[int] = None

class RBDQosConfig(BaseModel):
    rbd_qos_bps_limit: Optional[int] = None
    rbd_qos_iops_limit: Optional[int] = None
    rbd_qos_read_bps_limit: Optional[int] = None
    rbd_qos_read_iops_limit: Optional[int] = None
    rbd_qos_write_bps_limit: Optional[int] = None
    rbd_qos_write_iops_limit: Optional[int] = None
    rbd_qos_bps_burst: Optional[int] = None
    rbd_qos_iops_burst: Optional[int] = None
    rbd_qos_read_bps_burst: Optional[int] = None
    rbd_qos_read_iops_burst: Optional[int] = None
    rbd_qos_write_bps_burst: Optional[int] = None
    rbd_qos_write_iops_burst: Optional[int] = None

class RBD(BaseModel):
    # Only the identifying fields; everything else the API sends is kept as extra.
    model_config = ConfigDict(extra="allow")

    name: str
    id: Optional[str] = None
    pool_name: Optional[str] = None
    namespace: Optional[str] = None
    size: Optional[int] = None
    obj_size: Optional[int] = None
    features_name: List[str] = []
    configuration: List[RBDConfiguration] = []

class RBDPoolImages(BaseModel):
    status: int = 0
    value: List[RBD] = []
    pool_name: str

class RBDCreate(BaseModel):
    pool_name: str
    name: str
    size: int
    namespace: Optional[str] = None
    features: Optional[List[str]] = None
    obj_size: Optional[int] = None
    stripe_unit: Optional[int] = None
    stripe_count: Optional[int] = None
    data_pool: Optional[str] = None
    configuration: Optional[RBDQosConfig] = None

class RBDCopy(BaseModel):
    dest_pool_name: str
    dest_image_name: str
    dest_namespace: Optional[str] = None
    snapshot_name: Optional[str] = None
    features: Optional[List[str]] = None
    obj_size: Optional[int] = None
    stripe_unit: Optional[int] = None
    stripe_count: Optional[int] = None
    data_pool: Optional[str] = None
    configuration: Optional[RBDQosConfig] = None

class RBDUpdate(BaseModel):
    name: str
    size: Optional[int] = None
    features: Optional[List[str]] = None
    configuration: Optional[RBDQosConfig] = None

class NameSpace(BaseModel):
    namespace: str
    num_images: Optional[int] = None

# -----------------------
# CephFS
# -----------------------

class FS(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int
    mdsmap: Dict[str, Any] = {}

class Quota(BaseModel):
    max_bytes: int = 0
    max_files: int = 0
    path: Optional[str] = None

class Directory(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    path: str
    parent: Optional[str] = None
    snapshots: List[Any] = []
    quotas: Optional[Quota] = None
