from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional


@dataclass
class RunContext:
    """
    Shared run context.
    This object is passed between the CLI and the batch pipelines.
    """

    config: Any
    logger: Any

    store_path: Optional[Path] = None
    failures_path: Optional[Path] = None

    stats: Dict[str, Any] = field(default_factory=dict)
    errors: list = field(default_factory=list)

    dry_run: bool = False
    debug: bool = False

    def setting(self, section: str, name: str, default: Any = None) -> Any:
        values = getattr(self.config, section, None) or {}
        return values.get(name, default)
