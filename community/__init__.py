"""Community forum helpers."""

from community.images import OptimisticList, PostImage, ReorderError, RollbackError, reorder_images

__all__ = ["OptimisticList", "PostImage", "ReorderError", "RollbackError", "reorder_images"]
