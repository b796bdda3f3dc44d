"""
Specforge Config - Run arguments and resolved paths

``BuildArgs`` is what the user asked for on the command line; ``BuildConfig``
is where things go. The well-known roots on ``BuildConfig`` are discovered
from the spec's document tree during the run.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field

from specforge.constants import IOS_SPEC_TYPE


class Action(str, Enum):
    BUILD = "build"
    UPDATE = "update"


class BuildArgs(BaseModel):
    """Command-line arguments, also exposed to templates as ``args``"""

    key: str | None = None
    spec_key: str | None = Field(None, alias="specKey")
    spec_type: str | None = Field(None, alias="specType")
    spec: bool = False  # regenerate plain documents on update
    overwrite: bool = False
    ios_project_path: str | None = Field(None, alias="iosProjectPath")
    pbx_force: bool = Field(False, alias="pbxForce")
    prefix: str = ""

    model_config = {"populate_by_name": True}

    @property
    def is_ios(self) -> bool:
        return self.spec_type == IOS_SPEC_TYPE


class BuildConfig(BaseModel):
    """Where a run writes"""

    action: Action = Action.BUILD
    output_root: Path
    pid: int | None = None
    engine_config_root: Path | None = Field(None, alias="engineConfigRoot")

    # Discovered from the document tree
    web_root: Path | None = Field(None, alias="webRoot")
    view_root: Path | None = Field(None, alias="viewRoot")
    mock_api_root: Path | None = Field(None, alias="mockApiRoot")
    mock_view_root: Path | None = Field(None, alias="mockViewRoot")

    model_config = {"populate_by_name": True}

    def model_post_init(self, __context) -> None:
        """Default the engine config directory under the output root"""
        if self.engine_config_root is None:
            self.engine_config_root = self.output_root / ".specforge"

    def relative(self, path: Path | None) -> str | None:
        """Output-root relative form used in templates: ``/src/web/``"""
        if path is None:
            return None
        rel = path.relative_to(self.output_root).as_posix()
        return "/" if rel == "." else f"/{rel}/"

    def can_generate_normal_docs(self, args: BuildArgs) -> bool:
        """Plain documents regenerate on build, or on update when asked to."""
        return self.action == Action.BUILD or (self.action == Action.UPDATE and args.spec)
