"""Structured error payload shared by every pipeline stage."""
from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass
class ServiceError:
    """Structured error from a remote call or storage operation."""
    code: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
