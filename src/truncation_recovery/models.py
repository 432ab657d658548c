"""Pydantic models for truncation recovery inputs and results."""

from __future__ import annotations

import math
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .exceptions import PlanFormatError

# Path -> content
FileSystem = Dict[str, str]

DEFAULT_BATCH_SIZE = 5


class FilePlan(BaseModel):
    """Files the model announced it would create/delete in this generation."""

    model_config = ConfigDict(extra="forbid")

    create: List[str] = Field(default_factory=list, description="Ordered paths to create")
    delete: List[str] = Field(default_factory=list, description="Paths to remove")
    total: int = Field(default=-1, description="Number of create entries")
    completed: Optional[List[str]] = Field(None, description="Paths confirmed in earlier batches")

    @model_validator(mode="after")
    def _default_total(self) -> "FilePlan":
        if self.total < 0:
            self.total = len(self.create)
        return self

    @classmethod
    def from_dict(cls, data: Any) -> "FilePlan":
        """Build a plan from caller-supplied JSON data.

        Raises:
            PlanFormatError: If the payload is not a valid plan
        """
        if not isinstance(data, dict):
            raise PlanFormatError(f"File plan must be an object, got {type(data).__name__}", data)
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise PlanFormatError(f"Invalid file plan: {e.error_count()} error(s)", data) from e


class PartialFile(BaseModel):
    """A file the structured extractor believes was cut short."""

    model_config = ConfigDict(extra="forbid")

    content: str
    truncated_at: Optional[int] = None


class ExtractionOutcome(BaseModel):
    """Output of the structured file extractor."""

    model_config = ConfigDict(extra="forbid")

    complete_files: FileSystem = Field(default_factory=dict)
    partial_files: Dict[str, Union[PartialFile, str]] = Field(default_factory=dict)
    summary: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.complete_files and not self.partial_files


class GenerationMeta(BaseModel):
    """Progress across continuation batches."""

    model_config = ConfigDict(extra="forbid")

    total_files_planned: int
    files_in_this_batch: List[str] = Field(default_factory=list)
    completed_files: List[str] = Field(default_factory=list)
    remaining_files: List[str] = Field(default_factory=list)
    current_batch: int = 1
    total_batches: int = 1
    is_complete: bool = False

    @classmethod
    def for_plan(
        cls,
        total: int,
        completed: List[str],
        remaining: List[str],
        batch_size: int = DEFAULT_BATCH_SIZE,
        current_batch: int = 1,
    ) -> "GenerationMeta":
        """Build progress metadata for a plan of ``total`` files."""
        return cls(
            total_files_planned=total,
            files_in_this_batch=list(completed),
            completed_files=list(completed),
            remaining_files=list(remaining),
            current_batch=current_batch,
            total_batches=math.ceil(total / batch_size) if batch_size > 0 else 1,
            is_complete=not remaining,
        )


class RecoveryAction(str, Enum):
    """What the orchestrator should do next."""

    NONE = "none"  # Nothing trustworthy recovered
    CONTINUATION = "continuation"  # Request the remaining files in a new batch
    SUCCESS = "success"  # Recovered files are complete
    PARTIAL = "partial"  # Only repaired partial files are available


class RecoveryResult(BaseModel):
    """Decision produced by the recovery engine."""

    model_config = ConfigDict(extra="forbid")

    action: RecoveryAction
    recovered_files: Optional[FileSystem] = None
    files_to_regenerate: Optional[List[str]] = None
    good_files: Optional[FileSystem] = None
    generation_meta: Optional[GenerationMeta] = None
    message: Optional[str] = None
    recovered_count: Optional[int] = None

    @classmethod
    def none(cls) -> "RecoveryResult":
        return cls(action=RecoveryAction.NONE)


class ContinuationState(BaseModel):
    """State the orchestrator carries between continuation batches."""

    model_config = ConfigDict(extra="forbid")

    is_active: bool = True
    original_prompt: str
    system_instruction: str
    generation_meta: GenerationMeta
    accumulated_files: FileSystem = Field(default_factory=dict)
    current_batch: int = 1
    retry_attempts: int = 0
