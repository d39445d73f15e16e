from typing import Optional

from ...common.log_calls import log_calls
from ..exceptions import ValidationError
from ..executor import OperationExecutor
from ..image_spec import create_image_spec, quote_segment
from ..schemas import Operation, TaskDescriptor
from ..session import Session


class BlockSnapshots:
    def __init__(self, session: Session, executor: OperationExecutor):
        self.session = session
        self.executor = executor

    @log_calls("snapshots.create")
    def create(self, pool_name: str, namespace: Optional[str], image_name: str, snapshot_name: str) -> int:
        """Create a snapshot of an RBD image (POST /api/block/image/{image_spec}/snap)."""
        if not snapshot_name:
            raise ValidationError("param snapshot_name can not be empty")
        image_spec = create_image_spec(pool_name, namespace, image_name)
        body = {"snapshot_name": snapshot_name}
        operation = Operation(
            name="snapshots.create",
            submit=lambda: self.session.request("POST", f"block/image/{quote_segment(image_spec)}/snap", json=body),
            descriptor=TaskDescriptor(name="rbd/snap/create", resource_spec=image_spec),
            in_flight={201, 202, 400},
            success_status=201,
        )
        return self.executor.execute(operation)
