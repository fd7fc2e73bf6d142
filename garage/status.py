"""VisitStatus enum for the visit lifecycle."""

from enum import Enum


class VisitStatus(Enum):
    """Visit lifecycle states. Completed is terminal."""

    DRAFT = "Draft"
    COMPLETED = "Completed"
