"""Domain errors raised by the category taxonomy and its stores."""

from typing import Dict, List, Optional


class CategoryError(Exception):
    """Base class for taxonomy errors. ``status_code`` is used by the HTTP layer."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"detail": self.message, "error": type(self).__name__}


class CategoryValidationError(CategoryError):
    """Missing name/slug or a parent that would exceed the two-level depth."""

    status_code = 422

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.field:
            data["field"] = self.field
        return data


class CategoryConflictError(CategoryError):
    status_code = 409


class CategoryNotFoundError(CategoryError):
    status_code = 404

    def __init__(self, category_id: str):
        super().__init__(f"Category not found: {category_id}")
        self.category_id = category_id


class HasChildrenError(CategoryError):
    status_code = 409

    def __init__(self, category_id: str, child_count: int):
        super().__init__(
            f"Category {category_id} has {child_count} subcategories; "
            "remove or move them before deleting"
        )
        self.category_id = category_id
        self.child_count = child_count


class ReorderPreconditionError(CategoryError):
    """Moved and target categories are not in the same sibling group."""

    status_code = 400

    def __init__(self, moved_id: str, target_id: str):
        super().__init__(
            f"Cross-level move unsupported: {moved_id} and {target_id} "
            "do not share a parent"
        )
        self.moved_id = moved_id
        self.target_id = target_id


class ReorderInProgressError(CategoryError):
    status_code = 409

    def __init__(self):
        super().__init__("Another reorder is still being saved; try again shortly")


class PersistencePartialFailure(CategoryError):
    """Some order writes of a reorder batch failed; local state was refreshed."""

    status_code = 503

    def __init__(self, succeeded: List[str], failed: Dict[str, str]):
        super().__init__("Order may be out of sync, refreshed from the store")
        self.succeeded = succeeded
        self.failed = failed

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["succeeded"] = self.succeeded
        data["failed"] = self.failed
        return data
