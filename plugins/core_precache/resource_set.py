# plugins/core_precache/resource_set.py
import logging
from typing import Dict, Iterator, Tuple

from .classifier import classify
from .contracts import AddOutcome

logger = logging.getLogger(__name__)


class ResourceSet:
    """
    去重后的资源路径集合。

    成员总是规范化后的路径（正斜杠、无 `_c` 标记），其扩展名必属于资源类型白名单。
    保持插入顺序，因此在同一预缓存周期内的枚举顺序（以及报告中的序号）是稳定的。
    """

    def __init__(self):
        self._resources: Dict[str, None] = {}

    def add(self, resource_path: str) -> AddOutcome:
        classification = classify(resource_path)

        if not classification.accepted:
            logger.error(
                f"Resource type '{classification.extension}' can not be precached. ({classification.path})"
            )
            return AddOutcome.REJECTED_TYPE

        if classification.path in self._resources:
            return AddOutcome.DUPLICATE

        self._resources[classification.path] = None
        return AddOutcome.ADDED

    def remove(self, resource_path: str) -> bool:
        path = classify(resource_path).path
        if path not in self._resources:
            return False
        del self._resources[path]
        return True

    @property
    def count(self) -> int:
        return len(self._resources)

    def all(self) -> Tuple[str, ...]:
        return tuple(self._resources)

    def clear(self) -> None:
        self._resources.clear()

    def __len__(self) -> int:
        return len(self._resources)

    def __contains__(self, resource_path: object) -> bool:
        if not isinstance(resource_path, str):
            return False
        return classify(resource_path).path in self._resources

    def __iter__(self) -> Iterator[str]:
        return iter(self.all())
