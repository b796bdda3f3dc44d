"""
Specforge - Spec-driven project scaffolding

Walks a spec's document tree and renders every node through a sandboxed
Jinja2 environment into source stubs, mock data, and mock-server config.
"""

__version__ = "0.1.0"

from specforge.builder import Builder, build_project
from specforge.config import Action, BuildArgs, BuildConfig
from specforge.sandbox import Sandbox
from specforge.spec import DocNode, NormalizedSpec, RawSpec, normalize
from specforge.walker import DocumentWalker
from specforge.writer import GenerationResult, OutputWriter, WriteMode

__all__ = [
    "Action",
    "BuildArgs",
    "BuildConfig",
    "Builder",
    "DocNode",
    "DocumentWalker",
    "GenerationResult",
    "NormalizedSpec",
    "OutputWriter",
    "RawSpec",
    "Sandbox",
    "WriteMode",
    "build_project",
    "normalize",
]
