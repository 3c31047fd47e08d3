"""Repository classes for DynamoDB data access."""

from visteria.repositories.visitor import VisitorRepository

__all__ = [
    "VisitorRepository",
]
