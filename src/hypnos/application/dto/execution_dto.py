"""Execution DTOs."""

from dataclasses import dataclass


@dataclass
class GatedCallOutput:
    """Result of a gated execution: inner call outcome plus the record written."""

    success: bool
    return_data: bytes
    execution_id: str
