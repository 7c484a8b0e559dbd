from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from pixel.constants import MAIN_BRANCH, REPORT_ROOT


class RunType(str, Enum):
    reference = "reference"
    test = "test"


class ProcessOutcome(str, Enum):
    success = "success"
    diffs_found = "diffs_found"
    interrupted = "interrupted"
    failed = "failed"

    @classmethod
    def from_exit_code(cls, code: int) -> "ProcessOutcome":
        if code == 0:
            return cls.success
        if code == 1:
            return cls.diffs_found
        # Negative return codes mean the child was killed by a signal.
        if code == 130 or code < 0:
            return cls.interrupted
        return cls.failed


class ProcessResult(BaseModel):
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def outcome(self) -> ProcessOutcome:
        return ProcessOutcome.from_exit_code(self.exit_code)


class FeatureFlags(BaseModel):
    enable_wikilambda: bool = False

    model_config = {"frozen": True}

    def environment(self) -> Dict[str, str]:
        return {"ENABLE_WIKILAMBDA": "1" if self.enable_wikilambda else "0"}


class ScenarioPaths(BaseModel):
    bitmaps_test: str
    html_report: str

    model_config = {"frozen": True}

    @classmethod
    def for_group(cls, slug: str) -> "ScenarioPaths":
        root = f"{REPORT_ROOT}/{slug}"
        return cls(bitmaps_test=f"{root}/test", html_report=root)

    @field_validator("bitmaps_test", "html_report")
    @classmethod
    def validate_relative(cls, value: str) -> str:
        if not value or value.startswith("/") or ".." in value.split("/"):
            raise ValueError("Scenario paths must be relative to the project directory.")
        return value


class ScenarioConfig(BaseModel):
    id: str
    config_file: str
    paths: ScenarioPaths

    model_config = {"frozen": True}


class GroupDefinition(BaseModel):
    name: Optional[str] = None
    priority: int = Field(..., ge=1)
    config: ScenarioConfig
    a11y: bool = False
    log_results: bool = False
    features: FeatureFlags = Field(default_factory=FeatureFlags)

    model_config = {"frozen": True}


class ContextEntry(BaseModel):
    description: str = ""
    reference: Optional[str] = None
    test: Optional[str] = None


class CommandOptions(BaseModel):
    type: Optional[RunType] = None
    branch: str = MAIN_BRANCH
    change_id: List[str] = Field(default_factory=list, alias="changeId")
    repo_branch: List[str] = Field(default_factory=list, alias="repoBranch")
    group: str = "desktop"
    reset_db: bool = Field(default=False, alias="resetDb")
    a11y: bool = False
    log_results: bool = Field(default=False, alias="logResults")
    priority: int = Field(default=1, ge=1)
    directory: str = "."

    model_config = {"populate_by_name": True}

    @field_validator("repo_branch")
    @classmethod
    def validate_repo_branch(cls, value: List[str]) -> List[str]:
        for item in value:
            repo, sep, branch = item.partition(":")
            if not sep or not repo or not branch:
                raise ValueError(f"Repository branch '{item}' must use the repo:branch syntax.")
        return value

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude={"directory"})
