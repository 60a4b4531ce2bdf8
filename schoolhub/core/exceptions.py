# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Error taxonomy shared by repositories, the enrollment coordinator and services.

Every error carries a human-readable message, a stable machine code and a
``details`` mapping with the numeric bound involved, so a caller can decide
whether retrying with different input makes sense.

Hierarchy:
    SchoolHubError
    ├── NotFoundError
    ├── ConflictError
    │   ├── DuplicateNameError
    │   ├── DuplicateKeyError
    │   ├── CapacityExceededError
    │   ├── CapacityBelowEnrollmentError
    │   ├── NegativeEnrollmentError
    │   ├── CrossSchoolAssignmentError
    │   ├── HasActiveStudentsError
    │   ├── HasActiveClassroomsError
    │   ├── NoOpTransferError
    │   └── ConcurrentModificationError
    ├── ValidationFailedError
    └── OperationAbortedError
"""

from typing import Any


class SchoolHubError(Exception):
    """Base exception for SchoolHub errors.

    Attributes:
        message: Human-readable error description.
        code: Stable machine-readable error code.
        details: Values involved in the failure.
    """

    code = "SCHOOLHUB_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize the error.

        Args:
            message: Human-readable error description.
            details: Values involved in the failure.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for logs or API payloads."""
        return {"code": self.code, "message": self.message, "details": self.details}


class NotFoundError(SchoolHubError):
    """Raised when a referenced entity is absent or inactive.

    The message is the same in both cases.
    """

    code = "NOT_FOUND"

    def __init__(self, entity: str) -> None:
        super().__init__(f"{entity} not found", {"entity": entity})
        self.entity = entity


class ConflictError(SchoolHubError):
    """Raised when an operation would violate a domain invariant."""

    code = "CONFLICT"


class DuplicateNameError(ConflictError):
    """Raised when an active entity with the same name exists in the scope."""

    code = "DUPLICATE_NAME"

    def __init__(self, entity: str, name: str) -> None:
        super().__init__(
            f"{entity} with this name already exists in this school",
            {"entity": entity, "name": name},
        )


class DuplicateKeyError(ConflictError):
    """Raised by a repository when a uniqueness constraint is violated."""

    code = "DUPLICATE_KEY"

    def __init__(self, entity: str, original_error: Exception | None = None) -> None:
        super().__init__(f"{entity} already exists", {"entity": entity})
        self.original_error = original_error


class CapacityExceededError(ConflictError):
    """Raised when an enrollment would exceed the classroom capacity."""

    code = "CAPACITY_EXCEEDED"

    def __init__(self, capacity: int, current_enrollment: int) -> None:
        super().__init__(
            f"Enrollment exceeds capacity ({capacity})",
            {"capacity": capacity, "current_enrollment": current_enrollment},
        )
        self.capacity = capacity
        self.current_enrollment = current_enrollment


class CapacityBelowEnrollmentError(ConflictError):
    """Raised when a capacity reduction would drop below current enrollment."""

    code = "CAPACITY_BELOW_ENROLLMENT"

    def __init__(self, capacity: int, current_enrollment: int) -> None:
        super().__init__(
            f"Cannot set capacity below current enrollment ({current_enrollment})",
            {"capacity": capacity, "current_enrollment": current_enrollment},
        )
        self.capacity = capacity
        self.current_enrollment = current_enrollment


class NegativeEnrollmentError(ConflictError):
    """Raised when a delta would make enrollment negative."""

    code = "NEGATIVE_ENROLLMENT"

    def __init__(self, current_enrollment: int, delta: int) -> None:
        super().__init__(
            "Enrollment cannot be negative",
            {"current_enrollment": current_enrollment, "delta": delta},
        )
        self.current_enrollment = current_enrollment
        self.delta = delta


class CrossSchoolAssignmentError(ConflictError):
    """Raised when a student would join a classroom of another school."""

    code = "CROSS_SCHOOL_ASSIGNMENT"

    def __init__(self, classroom_school_id: str, student_school_id: str) -> None:
        super().__init__(
            "Classroom does not belong to the student's school",
            {
                "classroom_school_id": classroom_school_id,
                "student_school_id": student_school_id,
            },
        )


class HasActiveStudentsError(ConflictError):
    """Raised when deleting an entity that still has active students."""

    code = "HAS_ACTIVE_STUDENTS"

    def __init__(self, entity: str, active_students: int) -> None:
        super().__init__(
            f"Cannot delete {entity.lower()} with active students ({active_students})",
            {"entity": entity, "active_students": active_students},
        )
        self.active_students = active_students


class HasActiveClassroomsError(ConflictError):
    """Raised when deleting a school that still has active classrooms."""

    code = "HAS_ACTIVE_CLASSROOMS"

    def __init__(self, active_classrooms: int) -> None:
        super().__init__(
            f"Cannot delete school with active classrooms ({active_classrooms})",
            {"active_classrooms": active_classrooms},
        )
        self.active_classrooms = active_classrooms


class NoOpTransferError(ConflictError):
    """Raised when a transfer targets the classroom the student is already in."""

    code = "NO_OP_TRANSFER"

    def __init__(self, classroom_id: str | None) -> None:
        super().__init__(
            "Student is already in this classroom",
            {"classroom_id": classroom_id},
        )


class ConcurrentModificationError(ConflictError):
    """Raised when a guarded write finds the row changed by another operation."""

    code = "CONCURRENT_MODIFICATION"

    def __init__(self, entity: str) -> None:
        super().__init__(
            f"{entity} was modified concurrently, retry the operation",
            {"entity": entity},
        )


class ValidationFailedError(SchoolHubError):
    """Raised by a repository when a storage constraint rejects the write."""

    code = "VALIDATION_FAILED"

    def __init__(self, entity: str, original_error: Exception | None = None) -> None:
        super().__init__(f"{entity} failed validation", {"entity": entity})
        self.original_error = original_error


class OperationAbortedError(SchoolHubError):
    """Raised when the durable store times out or aborts an operation."""

    code = "OPERATION_ABORTED"

    def __init__(self, operation: str, original_error: Exception | None = None) -> None:
        super().__init__(f"Operation aborted: {operation}", {"operation": operation})
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message
