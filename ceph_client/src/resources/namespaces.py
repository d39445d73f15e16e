from typing import List

from ...common.log_calls import log_calls
from ..exceptions import ValidationError
from ..executor import OperationExecutor
from ..image_spec import quote_segment
from ..schemas import NameSpace, Operation
from ..session import Session
from .tasks import raise_for_status


def _check(pool_name: str, namespace: str) -> None:
    if not pool_name:
        raise ValidationError("param pool_name can not be empty")
    if not namespace:
        raise ValidationError("param namespace can not be empty")


class BlockNamespaces:
    """
    RBD namespaces inside a pool.

    Namespace calls complete synchronously; they still run through the
    executor so a 400 `namespace_already_exists` maps to the same conflict
    error as everywhere else.
    """

    def __init__(self, session: Session, executor: OperationExecutor):
        self.session = session
        self.executor = executor

    @log_calls("namespaces.list")
    def list(self, pool_name: str) -> List[NameSpace]:
        if not pool_name:
            raise ValidationError("param pool_name can not be empty")
        resp = self.session.request("GET", f"block/pool/{quote_segment(pool_name)}/namespace")
        raise_for_status(resp, f"could not list namespaces of pool {pool_name}")
        return [NameSpace.model_validate(item) for item in resp.json()]

    @log_calls("namespaces.create")
    def create(self, pool_name: str, namespace: str) -> int:
        _check(pool_name, namespace)
        body = NameSpace(namespace=namespace).model_dump(exclude_none=True)
        operation = Operation(
            name="namespaces.create",
            submit=lambda: self.session.request("POST", f"block/pool/{quote_segment(pool_name)}/namespace", json=body),
            success_status=201,
        )
        return self.executor.execute(operation)

    @log_calls("namespaces.delete")
    def delete(self, pool_name: str, namespace: str) -> int:
        _check(pool_name, namespace)
        operation = Operation(
            name="namespaces.delete",
            submit=lambda: self.session.request(
                "DELETE", f"block/pool/{quote_segment(pool_name)}/namespace/{quote_segment(namespace)}"
            ),
            success_status=204,
        )
        return self.executor.execute(operation)
