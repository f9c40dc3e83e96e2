"""Side table recording which batch owns each suite, test and hook."""

from __future__ import annotations

from dataclasses import dataclass

from batch_snapshot_tester.execution_engine import Hook, Suite, Test


@dataclass(frozen=True)
class OwnershipTag:
    """Owning batch of one runnable."""

    batch_key: str
    is_batch_root: bool = False


class RunnableOwnership:
    """Maps runnable ids to ownership tags without mutating engine objects."""

    def __init__(self) -> None:
        self._tags: dict[str, OwnershipTag] = {}

    def __len__(self) -> int:
        return len(self._tags)

    def tag(self, runnable: Suite | Test, batch_key: str, *, batch_root: bool = False) -> None:
        self._tags[runnable.id] = OwnershipTag(batch_key=batch_key, is_batch_root=batch_root)

    def tag_of(self, runnable: Suite | Test | Hook) -> OwnershipTag | None:
        return self._tags.get(runnable.id)

    def batch_of(self, runnable: Suite | Test | Hook | None) -> str | None:
        """Return the owning batch, falling back to the nearest tagged ancestor."""
        current: Suite | Test | Hook | None = runnable
        while current is not None:
            tag = self._tags.get(current.id)
            if tag is not None:
                return tag.batch_key
            current = current.parent
        return None

    def is_batch_root(self, runnable: Suite | Test | Hook | None) -> bool:
        if runnable is None:
            return False
        tag = self._tags.get(runnable.id)
        return tag is not None and tag.is_batch_root

    def claim_subtree(self, suite: Suite, batch_key: str) -> None:
        """Tag every runnable below `suite` that was not tagged during registration."""
        for runnable in suite.walk():
            if runnable.id not in self._tags:
                self.tag(runnable, batch_key)

    def batch_roots(self) -> list[str]:
        return [runnable_id for runnable_id, tag in self._tags.items() if tag.is_batch_root]
