"""
Kernel base classes for the ShipIt suggestion engine.

A kernel is one deterministic stage of the note-to-suggestion pipeline:
- it computes without calling any model on its primary path
- it persists a structured JSON result plus a short text summary
- identical input produces identical output (hashed for traceability)

Kernels are chained through the workspace: stage N reads the JSON that
stage N-1 wrote under ``stage<N-1>/<kernel>.json``.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List
import hashlib
import json
import logging
import time

logger = logging.getLogger(__name__)

SUMMARY_MAX_CHARS = 500


@dataclass
class KernelInput:
    """Standard input for a suggestion kernel.

    Attributes:
        workspace: Run workspace root directory
        config: Kernel configuration (note path, note id, generator options)
        dependencies: Output files of the kernels listed in ``requires``
    """
    workspace: Path
    config: Dict[str, Any]
    dependencies: Dict[str, Path] = field(default_factory=dict)

    def __post_init__(self):
        if isinstance(self.workspace, str):
            self.workspace = Path(self.workspace)
        self.dependencies = {k: Path(v) for k, v in self.dependencies.items()}

    def load_dependency(self, name: str) -> Dict[str, Any]:
        """Return the ``data`` payload persisted by a required kernel."""
        path = self.dependencies[name]
        envelope = json.loads(path.read_text(encoding="utf-8"))
        return envelope.get("data", {})


@dataclass
class KernelOutput:
    """Standard output of a suggestion kernel.

    ``data`` is the JSON-serializable result, ``summary`` a one-paragraph
    digest (at most 500 chars). Traceability fields record which kernel
    produced the result and from which input hash.
    """
    success: bool
    data: Dict[str, Any]
    summary: str
    output_file: Path

    kernel_name: str
    kernel_version: str
    execution_time_ms: int
    input_hash: str
    dependencies_used: List[str]

    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "summary": self.summary,
            "output_file": str(self.output_file),
            "kernel_name": self.kernel_name,
            "kernel_version": self.kernel_version,
            "execution_time_ms": self.execution_time_ms,
            "input_hash": self.input_hash,
            "dependencies_used": self.dependencies_used,
            "warnings": self.warnings,
            "errors": self.errors,
        }


class Kernel(ABC):
    """
    Abstract base class for suggestion kernels.

    Subclasses set the metadata attributes and implement:
        - compute(): the stage computation, returning a JSON-ready dict
        - summarize(): a short human-readable digest of that dict

    ``run()`` wraps both with validation, hashing, persistence and logging.
    """

    name: str = "base"
    version: str = "1.0.0"
    category: str = "suggest"
    stage: int = 0
    description: str = "Base kernel"

    requires: List[str] = []
    provides: List[str] = []

    @abstractmethod
    def compute(self, input: KernelInput) -> Dict[str, Any]:
        """Run the stage. Must be deterministic for a given input."""

    @abstractmethod
    def summarize(self, data: Dict[str, Any]) -> str:
        """Digest ``data`` in fewer than 500 characters."""

    def validate_input(self, input: KernelInput) -> List[str]:
        """Return a list of validation errors (empty when the input is usable)."""
        errors = []
        if not input.workspace.exists():
            errors.append(f"Workspace does not exist: {input.workspace}")
        for dep in self.requires:
            if dep not in input.dependencies:
                errors.append(f"Missing required dependency: {dep}")
            elif not input.dependencies[dep].exists():
                errors.append(f"Dependency file does not exist: {input.dependencies[dep]}")
        return errors

    def output_path(self, input: KernelInput) -> Path:
        return input.workspace / f"stage{self.stage}" / f"{self.name}.json"

    def run(self, input: KernelInput) -> KernelOutput:
        """
        Execute the kernel with full traceability.

        Do not override; override compute() and summarize() instead.
        Failures inside compute() are captured in the returned output
        (``success=False``) and still persisted for inspection.
        """
        validation_errors = self.validate_input(input)
        if validation_errors:
            for err in validation_errors:
                logger.error(f"[{self.name}] Validation error: {err}")
            return KernelOutput(
                success=False,
                data={"validation_errors": validation_errors},
                summary=f"Kernel {self.name} failed validation: {validation_errors[0]}",
                output_file=self.output_path(input),
                kernel_name=self.name,
                kernel_version=self.version,
                execution_time_ms=0,
                input_hash="",
                dependencies_used=[],
                errors=validation_errors,
            )

        started = time.perf_counter()
        input_hash = self._hash_input(input)
        warnings: List[str] = []
        errors: List[str] = []
        logger.info(f"[{self.name}] Starting computation (input_hash={input_hash[:8]})")

        try:
            data = self.compute(input)
            summary = self.summarize(data)
            if len(summary) > SUMMARY_MAX_CHARS:
                summary = summary[:SUMMARY_MAX_CHARS - 3] + "..."
                warnings.append(f"Summary truncated to {SUMMARY_MAX_CHARS} characters")
            success = True
        except Exception as e:
            logger.error(f"[{self.name}] Computation failed: {e}")
            data = {"error": str(e), "error_type": type(e).__name__}
            summary = f"Kernel {self.name} failed: {str(e)[:100]}"
            success = False
            errors.append(str(e))

        execution_time_ms = int((time.perf_counter() - started) * 1000)
        output_file = self._persist(input, data, summary, success, input_hash, execution_time_ms)
        logger.info(f"[{self.name}] Output saved to {output_file} ({execution_time_ms}ms)")

        return KernelOutput(
            success=success,
            data=data,
            summary=summary,
            output_file=output_file,
            kernel_name=self.name,
            kernel_version=self.version,
            execution_time_ms=execution_time_ms,
            input_hash=input_hash,
            dependencies_used=sorted(input.dependencies.keys()),
            warnings=warnings,
            errors=errors,
        )

    def _persist(
        self,
        input: KernelInput,
        data: Dict[str, Any],
        summary: str,
        success: bool,
        input_hash: str,
        execution_time_ms: int,
    ) -> Path:
        """Write ``stage<N>/<name>.json`` and its ``.summary.txt`` sibling."""
        output_file = self.output_path(input)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        envelope = {
            "_meta": {
                "kernel_name": self.name,
                "kernel_version": self.version,
                "execution_time_ms": execution_time_ms,
                "input_hash": input_hash,
                "timestamp": datetime.now().isoformat(),
                "success": success,
            },
            "data": data,
        }
        output_file.write_text(json.dumps(envelope, indent=2, default=str), encoding="utf-8")
        output_file.with_suffix(".summary.txt").write_text(summary, encoding="utf-8")
        return output_file

    def _hash_input(self, input: KernelInput) -> str:
        """16-char SHA-256 prefix over kernel identity, config and dependency paths."""
        content = json.dumps({
            "kernel": f"{self.name}@{self.version}",
            "config": input.config,
            "dependencies": {k: str(v) for k, v in sorted(input.dependencies.items())},
        }, sort_keys=True, default=str)
        return hashlib.sha256(content.encode()).hexdigest()[:16]

    def __repr__(self) -> str:
        return f"<Kernel {self.name}@{self.version} stage={self.stage}>"
