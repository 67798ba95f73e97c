"""
Permission forest built from flat parent-referencing records.

Layout is arena + index: records live in one dict keyed by id and the edges
are an id -> ordered child ids mapping. Nodes never hold references to their
parent, and a PermissionTree is never mutated after materialize(); callers
that change permissions build a new tree.
"""
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Set, Tuple

from domain_admin.core.errors import CycleDetected, ValidationFailed


ROOT_PARENT_ID = 0

STATUS_DISABLED = 0
STATUS_ENABLED = 1


@dataclass(frozen=True)
class PermissionRecord:
    """Immutable copy of a permission row."""
    id: int
    parent_id: int
    name: str
    display_name: str
    resource: str
    type: str = "menu"
    action: Optional[str] = None
    description: Optional[str] = None
    sort: int = 0
    status: int = STATUS_ENABLED
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def of(cls, obj: Any) -> "PermissionRecord":
        """Copy any object exposing the permission attributes (e.g. the ORM model)."""
        if isinstance(obj, cls):
            return obj
        return cls(
            id=obj.id,
            parent_id=obj.parent_id or ROOT_PARENT_ID,
            name=obj.name,
            display_name=obj.display_name,
            resource=obj.resource,
            type=obj.type,
            action=obj.action,
            description=obj.description,
            sort=obj.sort,
            status=obj.status,
            created_at=obj.created_at,
            updated_at=obj.updated_at,
        )

    @property
    def enabled(self) -> bool:
        return self.status == STATUS_ENABLED

    @property
    def is_root(self) -> bool:
        return self.parent_id == ROOT_PARENT_ID


@dataclass(frozen=True)
class PermissionNode:
    permission: PermissionRecord
    children: Tuple["PermissionNode", ...] = ()

    @property
    def id(self) -> int:
        return self.permission.id

    @property
    def has_children(self) -> bool:
        return len(self.children) > 0


def _sibling_key(record: PermissionRecord) -> Tuple[int, int]:
    return (record.sort, record.id)


def _check_acyclic(records: Dict[int, PermissionRecord]) -> None:
    """Raise CycleDetected unless every node reaches a root within len(records) steps."""
    limit = len(records)
    grounded: Set[int] = set()

    for start in records:
        path: List[int] = []
        current = start
        steps = 0
        while current not in grounded:
            path.append(current)
            parent_id = records[current].parent_id
            if parent_id == ROOT_PARENT_ID or parent_id not in records:
                break
            steps += 1
            if steps >= limit:
                raise CycleDetected(start)
            current = parent_id
        grounded.update(path)


class PermissionTree:
    """
    Materialized permission forest.

    Usage:
        tree = PermissionTree.materialize(rows)
        for node in tree.roots:
            ...
        tree.can_delete(permission_id)
        tree.effective_of(role_permission_ids)
    """

    def __init__(
        self,
        records: Dict[int, PermissionRecord],
        children: Dict[int, Tuple[int, ...]],
        root_ids: Tuple[int, ...],
    ):
        self._records = records
        self._children = children
        self._root_ids = root_ids
        self._roots: Optional[Tuple[PermissionNode, ...]] = None

    @classmethod
    def materialize(cls, flat: Iterable[Any]) -> "PermissionTree":
        """
        Build the forest from flat records.

        Siblings are ordered by (sort, id). A node whose parent id is absent
        from ``flat`` becomes a root. Raises CycleDetected when parent
        references loop, ValidationFailed on duplicate ids.
        """
        records: Dict[int, PermissionRecord] = {}
        for item in flat:
            record = PermissionRecord.of(item)
            if record.id in records:
                raise ValidationFailed(f"Duplicate permission id {record.id}")
            records[record.id] = record

        _check_acyclic(records)

        groups: Dict[int, List[PermissionRecord]] = defaultdict(list)
        roots: List[PermissionRecord] = []
        for record in records.values():
            if record.is_root or record.parent_id not in records:
                roots.append(record)
            else:
                groups[record.parent_id].append(record)

        children = {
            parent_id: tuple(r.id for r in sorted(group, key=_sibling_key))
            for parent_id, group in groups.items()
        }
        root_ids = tuple(r.id for r in sorted(roots, key=_sibling_key))
        return cls(records, children, root_ids)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, permission_id: object) -> bool:
        return permission_id in self._records

    def get(self, permission_id: int) -> Optional[PermissionRecord]:
        return self._records.get(permission_id)

    def children_of(self, permission_id: int) -> List[PermissionRecord]:
        return [self._records[i] for i in self._children.get(permission_id, ())]

    def has_children(self, permission_id: int) -> bool:
        return bool(self._children.get(permission_id))

    def find_by_name(self, name: str) -> Optional[PermissionRecord]:
        for record in self._records.values():
            if record.name == name:
                return record
        return None

    @property
    def roots(self) -> Tuple[PermissionNode, ...]:
        if self._roots is None:
            self._roots = tuple(self._node(i) for i in self._root_ids)
        return self._roots

    def _node(self, permission_id: int) -> PermissionNode:
        return PermissionNode(
            permission=self._records[permission_id],
            children=tuple(self._node(i) for i in self._children.get(permission_id, ())),
        )

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def walk(self, start: Optional[int] = None) -> Iterator[PermissionRecord]:
        """Depth-first pre-order over the whole forest, or over the subtree at ``start``."""
        stack = [start] if start is not None else list(reversed(self._root_ids))
        while stack:
            current = stack.pop()
            yield self._records[current]
            stack.extend(reversed(self._children.get(current, ())))

    def query(self, predicate: Callable[[PermissionRecord], bool]) -> List[PermissionRecord]:
        return [record for record in self.walk() if predicate(record)]

    def search(self, keyword: str) -> List[PermissionRecord]:
        """Match ``keyword`` case-insensitively against name, display_name and resource."""
        needle = keyword.strip().lower()
        if not needle:
            return list(self.walk())
        return self.query(
            lambda r: needle in r.name.lower()
            or needle in r.display_name.lower()
            or needle in r.resource.lower()
        )

    def descendants(self, permission_id: int, include_self: bool = True) -> List[PermissionRecord]:
        if permission_id not in self._records:
            return []
        subtree = list(self.walk(permission_id))
        return subtree if include_self else subtree[1:]

    def is_descendant(self, permission_id: int, ancestor_id: int) -> bool:
        current = self._records.get(permission_id)
        while current is not None and not current.is_root:
            if current.parent_id == ancestor_id:
                return True
            current = self._records.get(current.parent_id)
        return False

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def effective_of(self, permission_ids: Iterable[int]) -> Set[PermissionRecord]:
        """Enabled permissions among ``permission_ids``; unknown ids are ignored."""
        effective = set()
        for permission_id in permission_ids:
            record = self._records.get(permission_id)
            if record is not None and record.enabled:
                effective.add(record)
        return effective

    def can_delete(self, permission_id: int) -> bool:
        return not self._children.get(permission_id)

    def would_cycle(self, permission_id: int, new_parent_id: int) -> bool:
        """True if re-parenting ``permission_id`` under ``new_parent_id`` closes a loop."""
        if new_parent_id == ROOT_PARENT_ID:
            return False
        if new_parent_id == permission_id:
            return True
        return self.is_descendant(new_parent_id, permission_id)
