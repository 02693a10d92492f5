"""
Optimistic image reordering for community posts.

The new order is applied locally first, then persisted; if persisting
fails the previous order is restored and ``ReorderError`` is raised.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Generic, List, Optional, Sequence, TypeVar

from pydantic import BaseModel, Field

from telemetry.logging_utils import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

TEMP_PREFIX = "temp-"
REORDER_FAILED_MESSAGE = "이미지 순서 변경에 실패했습니다."
ROLLBACK_FAILED_MESSAGE = "이미지 순서 변경에 실패했습니다. 순서를 다시 확인해 주세요."


class PostImage(BaseModel):
    id: str
    post_id: Optional[str] = None
    storage_path: str = ""
    display_order: int = 0
    alt_text: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = {"extra": "allow"}

    @property
    def is_temporary(self) -> bool:
        return self.id.startswith(TEMP_PREFIX)


class ReorderError(RuntimeError):
    """Persisting a new image order failed.

    ``restored`` is False when writing the previous order back failed as well,
    leaving the stored order partially updated.
    """

    def __init__(self, message: str, *, restored: bool = True) -> None:
        super().__init__(message)
        self.restored = restored


class RollbackError(RuntimeError):
    """The compensating write after a failed commit also failed."""


class OptimisticList(Generic[T]):
    """A list whose updates are applied immediately and reverted if the commit fails."""

    def __init__(self, items: Sequence[T] = ()) -> None:
        self.items: List[T] = list(items)

    def apply(
        self,
        new_items: Sequence[T],
        commit: Callable[[List[T]], None],
        rollback: Optional[Callable[[List[T]], None]] = None,
    ) -> List[T]:
        """
        Apply ``new_items`` and ``commit`` them.

        On failure the snapshot is restored locally and, when given,
        ``rollback`` receives it so a partially applied commit can be
        compensated. The commit error is re-raised, or ``RollbackError`` when the
        rollback fails too.
        """
        snapshot = list(self.items)
        self.items = list(new_items)
        try:
            commit(self.items)
        except Exception:
            self.items = snapshot
            if rollback is not None:
                try:
                    rollback(snapshot)
                except Exception as rollback_exc:
                    raise RollbackError("Rollback after a failed commit did not complete.") from rollback_exc
            raise
        return self.items


def reorder_images(
    images: OptimisticList[PostImage],
    new_order: Sequence[str],
    persist: Callable[[List[Dict[str, Any]]], None],
) -> List[PostImage]:
    """
    Reorder ``images`` to match the ids in ``new_order``.

    Only images already stored (non-temporary ids) are sent to ``persist``,
    as ``{"id", "display_order"}`` rows numbered from 0. If ``persist`` fails
    the previous ``display_order`` values are sent back through ``persist``.
    """
    by_id = {img.id: img for img in images.items}
    if sorted(new_order) != sorted(by_id):
        raise ValueError("New order must contain exactly the current image ids.")

    reordered = [by_id[image_id].model_copy(update={"display_order": index}) for index, image_id in enumerate(new_order)]

    def commit(items: List[PostImage]) -> None:
        stored = [img for img in items if not img.is_temporary]
        rows = [{"id": img.id, "display_order": i} for i, img in enumerate(stored)]
        if rows:
            persist(rows)

    def rollback(previous: List[PostImage]) -> None:
        # Rows written before the failure keep their new order otherwise.
        rows = [{"id": img.id, "display_order": img.display_order} for img in previous if not img.is_temporary]
        if rows:
            persist(rows)

    try:
        return images.apply(reordered, commit, rollback)
    except RollbackError as exc:
        logger.error(
            "image_reorder_rollback_failed",
            extra={"images": len(reordered), "error": type(exc.__cause__).__name__},
        )
        raise ReorderError(ROLLBACK_FAILED_MESSAGE, restored=False) from exc
    except Exception as exc:
        logger.warning("image_reorder_reverted", extra={"images": len(reordered), "error": type(exc).__name__})
        raise ReorderError(REORDER_FAILED_MESSAGE) from exc
