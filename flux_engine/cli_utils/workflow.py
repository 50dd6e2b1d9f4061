"""Utility functions to locate workflow definitions for the CLI."""

from __future__ import annotations

import sys
from importlib import import_module
from importlib.util import module_from_spec, spec_from_file_location
from pathlib import Path
from types import ModuleType

from ..builder import WorkflowBuilder
from ..contracts import WorkflowDefinition


def _import_target_module(module_ref: str) -> ModuleType:
    if module_ref.endswith(".py"):
        path = Path(module_ref).expanduser().resolve()
        if not path.exists():
            raise FileNotFoundError(f"Workflow file not found: {path}")
        existing = sys.modules.get(path.stem)
        if existing is not None and getattr(existing, "__file__", None) == str(path):
            return existing
        spec = spec_from_file_location(path.stem, str(path))
        if spec is None or spec.loader is None:
            raise ImportError(f"Cannot import workflow file: {path}")
        module = module_from_spec(spec)
        sys.modules[spec.name] = module
        spec.loader.exec_module(module)
        return module
    return import_module(module_ref)


def load_workflow(target: str) -> WorkflowDefinition:
    """Resolve ``module:attribute`` or ``path/to/file.py:attribute``.

    The attribute may be a built definition or a builder.
    """

    module_ref, sep, attr = target.rpartition(":")
    if not sep or not module_ref or not attr:
        raise ValueError(f"Expected 'module:attribute', got {target!r}")

    module = _import_target_module(module_ref)
    try:
        workflow = getattr(module, attr)
    except AttributeError:
        raise ValueError(f"{module_ref} has no attribute {attr!r}") from None

    if isinstance(workflow, WorkflowBuilder):
        return workflow.build()
    if isinstance(workflow, WorkflowDefinition):
        return workflow
    raise ValueError(f"{target} is not a workflow definition")
