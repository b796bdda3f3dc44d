"""
Specforge Builder - Orchestrates one generation run

Order of a run:
    helpers → well-known roots → (incremental) diff, mock data, view rules
    → document tree → (incremental) engine config, mock server config,
    project file
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Callable, Protocol

from jinja2 import Environment, FileSystemLoader

from specforge.config import Action, BuildArgs, BuildConfig
from specforge.constants import DEFAULT_MOCK_FILTER, DataFormat, NodeType
from specforge.diff import SNAPSHOT_FILE, SpecDiff, load_snapshot, snapshot_content
from specforge.fs import FileSystem, LocalFileSystem
from specforge.helpers import to_json
from specforge.mock import MockDataProvider, MockResult, ParameterMockData
from specforge.sandbox import Sandbox
from specforge.spec import DocNode, RawSpec, normalize
from specforge.walker import DocumentWalker, join_path
from specforge.writer import GenerationResult, OutputWriter

logger = logging.getLogger(__name__)

ENGINE_CONFIG_FILE = "specforge.json"
SERVER_CONFIG_FILE = "server.config.js"
SERVER_CONFIG_TEMPLATE = "server.config.js.j2"

# Settings users tune by hand; an update must not reset them
PRESERVED_SERVER_FIELDS = {
    "launch": "launch",
    "port": "port",
    "online": "online",
    "fmpp": "fmpp",
    "apiResHeaders": "api_res_headers",
}

_MOCK_PATH_CHARS = re.compile(r"[:?&=]")
_EXTENSION = re.compile(r"\.[^/]*?$")
_SERVER_CONFIG_BODY = re.compile(r"module\.exports\s*=\s*(\{.*\})\s*;?\s*\Z", re.DOTALL)


class ProjectUpdater(Protocol):
    def update(self, directories: list[Path]) -> None: ...


# (product name, project path, project file path) -> updater
ProjectUpdaterFactory = Callable[[str, Path, Path], ProjectUpdater]


def create_engine_env(templates_dir: Path | None = None) -> Environment:
    """Jinja2 environment for the engine's own (trusted) templates."""
    if templates_dir is None:
        templates_dir = Path(__file__).parent / "templates"

    env = Environment(
        loader=FileSystemLoader(str(templates_dir)),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.filters["to_json"] = to_json
    return env


def _dir_str(path: Path | None) -> str | None:
    return f"{path.as_posix()}/" if path is not None else None


def _strip_extension(path: str) -> str:
    return _EXTENSION.sub("", path)


class Builder:
    """
    Generates an output tree from a raw spec.

    Args:
        raw: Spec payload
        config: Output locations and action
        args: Command-line arguments
        fs: File-system collaborator, defaults to the local disk
        mock_data: Mock payload provider
        project_updater_factory: Builds the updater for iOS project files
        diff: Precomputed change flags; computed from the stored snapshot
            on incremental runs when omitted
    """

    def __init__(
        self,
        raw: RawSpec,
        config: BuildConfig,
        args: BuildArgs | None = None,
        *,
        fs: FileSystem | None = None,
        mock_data: MockDataProvider | None = None,
        project_updater_factory: ProjectUpdaterFactory | None = None,
        diff: SpecDiff | None = None,
    ):
        self.raw = raw
        self.config = config
        self.args = args or BuildArgs()
        self.fs = fs or LocalFileSystem()
        self.mock_data = mock_data or ParameterMockData()
        self.project_updater_factory = project_updater_factory
        self.diff = diff

        self.ds = normalize(raw)
        self.result = GenerationResult()
        self.writer = OutputWriter(self.fs, overwrite=self.args.overwrite, result=self.result)
        self.sandbox = Sandbox()
        self.walker: DocumentWalker | None = None

        self.template_mock_rules: list[dict[str, Any]] = []
        self.context: dict[str, Any] = {
            "args": self.args,
            "config": {},
            "project": self.ds.project,
            "spec": self.ds.spec,
            "interface_mock_rules": [],
            "datatype_enums": self.ds.datatype_enums,
            "ds": self.ds,
        }

    @property
    def incremental(self) -> bool:
        return bool(self.args.key)

    def run(self) -> GenerationResult:
        """Run every step; returns what was written, skipped, and failed."""
        try:
            self.sandbox.register_helpers(self.ds.docs)
            self.find_configs()
            self.set_config_to_data()

            if self.incremental:
                if self.diff is None:
                    snapshot = load_snapshot(self.config.engine_config_root / SNAPSHOT_FILE)
                    self.diff = SpecDiff.compare(snapshot, self.raw)
                self.build_interface_mock()
                self.build_template_mock()
                self.build_view_rules()

            self.build_docs_tree()

            if self.incremental:
                self.build_engine_config()
                self.build_server_config()
                if self.args.is_ios:
                    self.update_project_file()
        finally:
            # Wait for binary downloads before reporting
            self.fs.close()

        self.result.errors.extend(self.sandbox.errors)
        return self.result

    # ═══════════════════════════════════════════════════════════════════════
    # WELL-KNOWN ROOTS
    # ═══════════════════════════════════════════════════════════════════════

    def find_configs(self) -> None:
        """Locate the web/view/mock roots by directory node id."""
        attributes = self.ds.spec.attributes
        if attributes is None:
            return

        roots = {
            attributes.web_root: "web_root",
            attributes.view_root: "view_root",
            attributes.mock_api_root: "mock_api_root",
            attributes.mock_view_root: "mock_view_root",
        }
        roots.pop(None, None)

        def find(nodes: list[DocNode], directory: Path) -> None:
            for node in nodes:
                if node.type != NodeType.DIRECTORY:
                    continue
                name = self.sandbox.compile(node.name, self.context)
                if name is None:
                    # The walk skips this subtree as well
                    continue
                path = join_path(directory, name)
                if node.id in roots:
                    setattr(self.config, roots[node.id], path)
                find(node.children, path)

        find(self.ds.docs, self.config.output_root)

    def set_config_to_data(self) -> None:
        self.context["config"].update({
            "web_root": self.config.relative(self.config.web_root),
            "view_root": self.config.relative(self.config.view_root),
            "mock_api_root": self.config.relative(self.config.mock_api_root),
            "mock_view_root": self.config.relative(self.config.mock_view_root),
        })

    # ═══════════════════════════════════════════════════════════════════════
    # MOCK DATA
    # ═══════════════════════════════════════════════════════════════════════

    def _report(self, result: MockResult) -> None:
        if result.errors:
            message = ", ".join(result.errors)
            logger.error(message)
            self.result.errors.append(message)

    def build_interface_mock(self) -> None:
        """Mock JSON, a pass-through filter, and a routing rule per interface."""
        root = self.config.mock_api_root
        if root is None:
            return

        for itf in self.raw.interfaces:
            method = itf.method.lower()
            # Windows directory names cannot hold these characters
            name = _MOCK_PATH_CHARS.sub("/_/", itf.path) + "/data"
            file = join_path(root / method, name)

            mock = self.mock_data.synthesize(
                self.raw.constraints, itf.res_format, itf.params.outputs, self.raw.datatypes
            )
            self._report(mock)
            mock = self.mock_data.apply_script(self.raw.constraints, mock.json, itf)
            self._report(mock)

            self.writer.write(f"{file}.json", json.dumps(mock.json, indent=4, ensure_ascii=False))
            self.writer.write(f"{file}.js", DEFAULT_MOCK_FILTER)

            self.context["interface_mock_rules"].append({
                "id": itf.id,
                "path": itf.path,
                "mockFile": file.relative_to(root).as_posix().lstrip("/"),
                "method": method.upper(),
            })

    def build_template_mock(self) -> None:
        """Mock JSON for every page template actually used by a page."""
        root = self.config.mock_view_root
        if root is None:
            return

        view_ext = self.ds.spec.view_ext
        used = {tpl.path for tpl in self.ds.templates}

        for tpl in self.raw.templates:
            if tpl.path not in used and f"{tpl.path}.{view_ext}" not in used:
                continue

            file = join_path(root, _strip_extension(tpl.path))
            data: dict[str, Any] = {}
            if tpl.params:
                mock = self.mock_data.synthesize(
                    self.raw.constraints, DataFormat.HASH, tpl.params, self.raw.datatypes
                )
                self._report(mock)
                data = mock.json or {}

            data["title"] = data.get("title") or tpl.name
            data["description"] = data.get("description") or tpl.description

            self.writer.write(f"{file}.json", json.dumps(data, indent=4, ensure_ascii=False))
            self.writer.write(f"{file}.js", DEFAULT_MOCK_FILTER)

    def build_view_rules(self) -> None:
        for page in self.ds.pages:
            if not page.path or not page.templates:
                continue
            listing = [{"id": tpl.id, "path": _strip_extension(tpl.path)} for tpl in page.templates]
            self.template_mock_rules.append({
                "method": "GET",
                "path": page.path,
                "list": json.dumps(listing, separators=(",", ":"), ensure_ascii=False),
                "name": page.name,
            })

    # ═══════════════════════════════════════════════════════════════════════
    # DOCUMENT TREE
    # ═══════════════════════════════════════════════════════════════════════

    def build_docs_tree(self) -> None:
        self.walker = DocumentWalker(
            self.sandbox,
            self.writer,
            self.fs,
            self.context,
            self.ds,
            generate_normal_docs=self.config.can_generate_normal_docs(self.args),
            diff=self.diff,
            purge_generated_dirs=self.args.is_ios,
        )
        self.walker.walk(self.ds.docs, self.config.output_root)

    # ═══════════════════════════════════════════════════════════════════════
    # PERSISTED CONFIG
    # ═══════════════════════════════════════════════════════════════════════

    def build_engine_config(self) -> None:
        """Arguments needed to re-run ``update`` later, plus the spec snapshot."""
        root = self.config.engine_config_root
        args = {
            "specType": self.args.spec_type,
            "pid": self.config.pid,
            "key": self.args.key,
            "specKey": self.args.spec_key,
            "iosProjectPath": self.args.ios_project_path,
        }
        args = {k: v for k, v in args.items() if v is not None}
        self.writer.write(root / ENGINE_CONFIG_FILE, json.dumps({"args": args}, indent=4), True)
        self.writer.write(root / SNAPSHOT_FILE, snapshot_content(self.raw), True)

    def _existing_server_settings(self, path: Path) -> dict[str, Any]:
        if not self.fs.exists(path):
            return {}
        match = _SERVER_CONFIG_BODY.search(self.fs.read(path))
        try:
            if match is None:
                raise ValueError("no module.exports object")
            return json.loads(match.group(1))
        except ValueError as e:
            logger.warning("Cannot read existing server config %s, using defaults: %s", path, e)
            return {}

    def build_server_config(self) -> None:
        """Mock-server config holding the routing rules, most specific path first."""
        path = self.config.engine_config_root / SERVER_CONFIG_FILE
        rules = self.template_mock_rules + self.context["interface_mock_rules"]
        rules = sorted(rules, key=lambda rule: rule["path"], reverse=True)

        settings: dict[str, Any] = {
            "launch": True,
            "port": 8002,
            "online": False,
            "fmpp": None,
            "api_res_headers": None,
        }
        if self.config.action == Action.UPDATE:
            existing = self._existing_server_settings(path)
            for field, key in PRESERVED_SERVER_FIELDS.items():
                if field in existing:
                    settings[key] = existing[field]

        template = create_engine_env().get_template(SERVER_CONFIG_TEMPLATE)
        content = template.render(
            rules=rules,
            project_key=self.args.key,
            engine=self.ds.spec.engine,
            view_ext=self.ds.spec.view_ext,
            web_root=_dir_str(self.config.web_root),
            view_root=_dir_str(self.config.view_root),
            mock_api_root=_dir_str(self.config.mock_api_root),
            mock_view_root=_dir_str(self.config.mock_view_root),
            **settings,
        )
        self.writer.write(path, content, True)

    # ═══════════════════════════════════════════════════════════════════════
    # IOS PROJECT FILE
    # ═══════════════════════════════════════════════════════════════════════

    def update_project_file(self) -> None:
        """Tell the Xcode project about regenerated interface/data type dirs."""
        changed = self.diff is not None and self.diff.changed
        should_update = self.config.action == Action.BUILD or (
            self.config.action == Action.UPDATE and (changed or self.args.pbx_force)
        )
        if not (self.args.is_ios and should_update):
            logger.info("Interfaces and data types unchanged, project file left alone")
            return

        project_root = self.config.output_root
        if self.args.ios_project_path:
            project_root = self.config.output_root / self.args.ios_project_path

        product = None
        if project_root.is_dir():
            product = next(
                (p.name.split(".")[0] for p in sorted(project_root.iterdir()) if p.name.endswith(".xcodeproj")),
                None,
            )
        if product is None:
            logger.info("Can't find .xcodeproj file to update")
            return

        project_path = project_root / product
        project_file = project_root / f"{product}.xcodeproj" / "project.pbxproj"
        if not self.fs.exists(project_file):
            logger.info("No project.pbxproj in %s, nothing to update", project_file.parent)
            return
        if self.project_updater_factory is None:
            logger.info("No project updater configured, skipping %s", project_file)
            return

        tracked = self.walker.tracked_dirs if self.walker else []
        self.project_updater_factory(product, project_path, project_file).update(list(tracked))


# ═══════════════════════════════════════════════════════════════════════════
# PUBLIC API
# ═══════════════════════════════════════════════════════════════════════════


def build_project(
    spec: RawSpec | str | Path,
    output_dir: str | Path,
    args: BuildArgs | None = None,
    action: Action = Action.BUILD,
    **kwargs: Any,
) -> GenerationResult:
    """
    Generate an output tree from a spec.

    Args:
        spec: RawSpec object, YAML/JSON string, or path to a spec file
        output_dir: Output root
        args: Command-line arguments
        action: build or update
        **kwargs: Passed through to Builder (fs, mock_data, ...)

    Returns:
        GenerationResult with written and skipped files and errors
    """
    if isinstance(spec, Path) or (isinstance(spec, str) and "\n" not in spec and Path(spec).is_file()):
        spec = RawSpec.from_file(spec)
    elif isinstance(spec, str):
        spec = RawSpec.from_yaml(spec)

    config = BuildConfig(action=action, output_root=Path(output_dir))
    return Builder(spec, config, args, **kwargs).run()
