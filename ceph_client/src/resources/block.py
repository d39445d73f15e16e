from typing import List, Optional

from ...common.log_calls import log_calls
from ..exceptions import ApiError, ValidationError
from ..executor import OperationExecutor
from ..image_spec import create_image_spec, quote_segment
from ..schemas import RBD, Operation, RBDCopy, RBDCreate, RBDPoolImages, RBDUpdate, TaskDescriptor
from ..session import Session
from .tasks import raise_for_status


class BlockImages:
    """
    RBD images (/api/block/image).

    Every mutating call goes through the OperationExecutor; the tables of
    in-flight statuses below follow what the API actually answers, which is
    not always what its documentation claims.
    """

    def __init__(self, session: Session, executor: OperationExecutor):
        self.session = session
        self.executor = executor

    @log_calls("block.list")
    def list(self, pool_name: Optional[str] = None) -> List[RBDPoolImages]:
        params = {"pool_name": pool_name} if pool_name else None
        resp = self.session.request("GET", "block/image", params=params)
        raise_for_status(resp, "could not list images")
        return [RBDPoolImages.model_validate(item) for item in resp.json()]

    @log_calls("block.get")
    def get(self, image_spec: str) -> RBD:
        if not image_spec:
            raise ValidationError("param image_spec can not be empty")
        resp = self.session.request("GET", f"block/image/{quote_segment(image_spec)}")
        if not resp.is_success:
            raise ApiError(f"could not get image {image_spec}: {resp.text[:512]}", status_code=resp.status_code)
        return RBD.model_validate(resp.json())

    @log_calls("block.create")
    def create(self, rbd: RBDCreate) -> int:
        if not rbd.pool_name:
            raise ValidationError("param pool_name can not be empty")
        if not rbd.name:
            raise ValidationError("param name can not be empty")

        body = rbd.model_dump(exclude_none=True)
        operation = Operation(
            name="block.create",
            submit=lambda: self.session.request("POST", "block/image", json=body),
            # The image spec of rbd/create is always empty; match on metadata
            descriptor=TaskDescriptor(
                name="rbd/create",
                pool_name=rbd.pool_name,
                namespace=rbd.namespace,
                image_name=rbd.name,
            ),
            in_flight={201, 202},
            success_status=201,
        )
        return self.executor.execute(operation)

    @log_calls("block.copy")
    def copy(self, pool_name: str, namespace: Optional[str], image_name: str, dst: RBDCopy) -> int:
        image_spec = create_image_spec(pool_name, namespace, image_name)
        body = dst.model_dump(exclude_none=True)
        operation = Operation(
            name="block.copy",
            submit=lambda: self.session.request("POST", f"block/image/{quote_segment(image_spec)}/copy", json=body),
            descriptor=TaskDescriptor(name="rbd/copy", resource_spec=image_spec),
            in_flight={201, 202},
            success_status=204,
        )
        return self.executor.execute(operation)

    @log_calls("block.delete")
    def delete(self, pool_name: str, namespace: Optional[str], image_name: str) -> int:
        image_spec = create_image_spec(pool_name, namespace, image_name)
        operation = Operation(
            name="block.delete",
            submit=lambda: self.session.request("DELETE", f"block/image/{quote_segment(image_spec)}"),
            descriptor=TaskDescriptor(name="rbd/delete", resource_spec=image_spec),
            in_flight={202, 204, 400},
            success_status=204,
        )
        return self.executor.execute(operation)

    @log_calls("block.move_to_trash")
    def move_to_trash(self, pool_name: str, namespace: Optional[str], image_name: str, delay_s: float = 0) -> int:
        """
        Move an image to the RBD trash.

        The API documents 201 here, pacific (16.2.x) answers 200; both are
        treated as in flight.
        """
        image_spec = create_image_spec(pool_name, namespace, image_name)
        body = {"delay": float(delay_s)}
        operation = Operation(
            name="block.move_to_trash",
            submit=lambda: self.session.request(
                "POST", f"block/image/{quote_segment(image_spec)}/move_trash", json=body
            ),
            descriptor=TaskDescriptor(name="rbd/trash/move", resource_spec=image_spec),
            in_flight={200, 201, 400},
            success_status=200,
        )
        return self.executor.execute(operation)

    @log_calls("block.update")
    def update(self, pool_name: str, namespace: Optional[str], image_name: str, rbd_update: RBDUpdate) -> int:
        if not rbd_update.name:
            raise ValidationError("param rbd_update.name can not be empty")
        image_spec = create_image_spec(pool_name, namespace, image_name)
        body = rbd_update.model_dump(exclude_none=True)
        operation = Operation(
            name="block.update",
            submit=lambda: self.session.request("PUT", f"block/image/{quote_segment(image_spec)}", json=body),
            descriptor=TaskDescriptor(name="rbd/edit", resource_spec=image_spec),
            in_flight={200, 202, 400},
            success_status=200,
        )
        return self.executor.execute(operation)
