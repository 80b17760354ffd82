from __future__ import annotations

from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class ProcessedImage:
    """View image after upload processing, ready to be stored."""

    original_filename: str
    data_uri: str
    width: int
    height: int
    was_resized: bool
    warnings: List[str] = field(default_factory=list)
