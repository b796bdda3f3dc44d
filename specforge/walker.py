"""
Specforge Walker - Interprets the spec's document tree

Each node resolves to zero, one, or many files depending on its kind and data
source. Failures stay inside the node that caused them: a bad template or
entity never stops its siblings from generating.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Iterable, Sequence

from specforge.constants import ENUM_FLAG, DataSource, NodeType
from specforge.diff import SpecDiff
from specforge.fs import FileSystem
from specforge.sandbox import Sandbox
from specforge.spec import DocNode, NormalizedSpec
from specforge.writer import GenerationResult, OutputWriter

logger = logging.getLogger(__name__)


def join_path(directory: str | Path, name: str) -> Path:
    """Join like a URL: a leading ``/`` in ``name`` stays under ``directory``."""
    return Path(os.path.normpath(f"{directory}/{name}"))


class DocumentWalker:
    """
    Depth-first generator over DocNode trees.

    Args:
        sandbox: The run's template sandbox, helpers already registered
        writer: Output writer carrying the overwrite policy
        fs: File-system collaborator
        context: Base render context shared by every node
        ds: Normalized spec providing the entities to expand over
        generate_normal_docs: Whether plain files and binary assets are written
        diff: Change flags for incremental runs, None on fresh builds
        purge_generated_dirs: Whether entity-bound directories are wiped
            and regenerated when interfaces or data types changed
    """

    def __init__(
        self,
        sandbox: Sandbox,
        writer: OutputWriter,
        fs: FileSystem,
        context: dict[str, Any],
        ds: NormalizedSpec,
        generate_normal_docs: bool = True,
        diff: SpecDiff | None = None,
        purge_generated_dirs: bool = False,
    ):
        self.sandbox = sandbox
        self.writer = writer
        self.fs = fs
        self.context = context
        self.ds = ds
        self.generate_normal_docs = generate_normal_docs
        self.diff = diff
        self.purge_generated_dirs = purge_generated_dirs

        self.purged: set[Path] = set()
        self.unavailable: set[Path] = set()
        self.tracked_dirs: list[Path] = []

    @property
    def result(self) -> GenerationResult:
        return self.writer.result

    def walk(self, nodes: Iterable[DocNode], output_dir: str | Path) -> None:
        for node in nodes:
            self.visit(node, Path(output_dir))

    def visit(self, node: DocNode, output_dir: Path) -> None:
        match node:
            case DocNode(type=NodeType.DIRECTORY):
                self._directory(node, output_dir)
            case DocNode(data_source=DataSource.HANDLEBAR):
                # Consumed when the sandbox was set up
                pass
            case DocNode() if not node.is_text and self.generate_normal_docs:
                # Binary assets are downloaded whatever their data source
                self._binary(node, output_dir)
            case DocNode(data_source=DataSource.NONE):
                self._document(node, output_dir)
            case DocNode(data_source=DataSource.INTERFACE):
                if self._prepare_generated_dir(output_dir):
                    self._expand(self.ds.interfaces, "interface", node.name, node, output_dir)
            case DocNode(data_source=DataSource.DATATYPE):
                if not self._prepare_generated_dir(output_dir):
                    return
                if ENUM_FLAG in node.name:
                    name = node.name.replace(ENUM_FLAG, "")
                    self._expand(self.ds.datatype_enums, "datatype", name, node, output_dir)
                else:
                    self._expand(self.ds.datatypes, "datatype", node.name, node, output_dir)
            case DocNode(data_source=DataSource.TEMPLATE):
                self._expand(self.ds.templates, "template", node.name, node, output_dir)
            case DocNode(data_source=DataSource.WEBVIEW):
                self._expand(self.ds.pages, "view", node.name, node, output_dir)

    # ═══════════════════════════════════════════════════════════════════════
    # NODE KINDS
    # ═══════════════════════════════════════════════════════════════════════

    def _directory(self, node: DocNode, output_dir: Path) -> None:
        name = self.sandbox.compile(node.name, self.context)
        if name is None:
            return
        directory = join_path(output_dir, name)
        if not self._mkdir(directory):
            return
        self.walk(node.children, directory)

    def _binary(self, node: DocNode, output_dir: Path) -> None:
        file = self._file_path(node.name, self.context, output_dir)
        if file is None:
            return

        # Downloads ignore the overwrite flag; delete the file to fetch it again
        if self.fs.exists(file):
            logger.debug("File exists, not downloading: %s", file)
            self.result.skipped.append(file)
            return

        logger.debug("Creating directory %s", file.parent)
        self._mkdir(file.parent)
        self.fs.download(node.content or "", file)

    def _document(self, node: DocNode, output_dir: Path) -> None:
        if not self.generate_normal_docs:
            return
        self._render_file(node.name, node.content, self.context, output_dir)

    def _expand(
        self,
        entities: Sequence[Any],
        key: str,
        name: str,
        node: DocNode,
        output_dir: Path,
    ) -> None:
        """One file per entity, the entity bound under ``key``."""
        for entity in entities:
            data = dict(self.context)
            data[key] = entity
            self._render_file(name, node.content, data, output_dir)

    # ═══════════════════════════════════════════════════════════════════════
    # SHARED STEPS
    # ═══════════════════════════════════════════════════════════════════════

    def _file_path(self, name: str, data: dict[str, Any], output_dir: Path) -> Path | None:
        filename = self.sandbox.compile(name, data)
        if filename is None:
            return None
        if not filename.strip():
            logger.debug("Name of file %s renders empty, not generating", name)
            return None
        return join_path(output_dir, filename)

    def _render_file(
        self,
        name: str,
        content: str | None,
        data: dict[str, Any],
        output_dir: Path,
    ) -> None:
        file = self._file_path(name, data, output_dir)
        if file is None:
            return
        rendered = self.sandbox.compile(content, data)
        if rendered is None:
            return
        self.writer.write(file, rendered)

    def _mkdir(self, directory: Path) -> bool:
        try:
            self.fs.mkdir(directory)
        except OSError as e:
            message = f"Failed to create directory {directory}: {e}"
            logger.error(message)
            self.result.errors.append(message)
            return False
        return True

    def _prepare_generated_dir(self, directory: Path) -> bool:
        """
        Purge once per run where required, and track for the project file.

        Returns False when the directory could not be recreated; the caller
        skips its expansion.
        """
        if directory in self.unavailable:
            return False
        if (
            self.purge_generated_dirs
            and self.diff is not None
            and self.diff.changed
            and directory not in self.purged
        ):
            logger.debug("Purging generated directory %s", directory)
            self.purged.add(directory)
            self.fs.rmdir(directory)
            if not self._mkdir(directory):
                self.unavailable.add(directory)
                return False

        if directory not in self.tracked_dirs:
            self.tracked_dirs.append(directory)
        return True
