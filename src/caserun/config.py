"""Run configuration for caserun."""

import uuid
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field, field_validator

from caserun.models import SpeedLevel

if TYPE_CHECKING:
    from caserun.core.path import TestPath


def default_test_dir() -> Path:
    """Default directory for run logs: ``_build/_tests`` under the cwd."""
    return Path.cwd() / "_build" / "_tests"


def new_run_id() -> str:
    """Generate a fresh run identifier."""
    return str(uuid.uuid4()).upper()


class RunConfig(BaseModel):
    """Options controlling one run of a test binary."""

    name: str = Field(description="Name of the test binary, used for the run directory symlink")
    run_id: str = Field(default_factory=new_run_id, description="Identifier of this run")
    test_dir: Path = Field(default_factory=default_test_dir, description="Where to store the log files of the tests")
    verbose: bool = Field(default=False, description="Display test output instead of capturing it")
    compact: bool = Field(default=False, description="Condense per-test status to single characters")
    show_errors: bool = Field(default=False, description="Display every error report, not only the last one")
    json_output: bool = Field(default=False, description="Print only a machine-readable summary")
    speed_level: SpeedLevel = Field(default=SpeedLevel.SLOW, description="Minimum speed tier to run")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Test binary name cannot be empty")
        return v

    @field_validator("speed_level", mode="before")
    @classmethod
    def validate_speed_level(cls, v):
        if isinstance(v, str):
            return v.lower()
        return v

    @property
    def output_dir(self) -> Path:
        """Directory holding this run's output files."""
        return self.test_dir / self.run_id

    def output_file(self, path: "TestPath") -> Path:
        """Output file of one test in this run."""
        return self.output_dir / path.file_key()


def get_default_config(name: str) -> RunConfig:
    """Return a default configuration with a fresh run id."""
    return RunConfig(name=name)
