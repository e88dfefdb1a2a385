"""
esite.build - Build pipeline for esite projects.

Provides configuration, the step registry, the workspace manager and the
build runner.
"""

from esite.build.config import (
    CORE_OPTIONS,
    NO_DEPLOY,
    ConfigOption,
    Config,
    read_config_file,
    module_names,
    validate_config,
)
from esite.build.steps import (
    BuildStep,
    StepGroup,
    StepRegistry,
)
from esite.build.context import (
    BuildContext,
    EncryptedPaths,
)
from esite.build.workspace import (
    prepare_output,
    reset_output,
)
from esite.build.runner import (
    BuildMode,
    BuildOutcome,
    BuildError,
    StepFailure,
    BuildRunner,
)

__all__ = [
    # Configuration
    "CORE_OPTIONS",
    "NO_DEPLOY",
    "ConfigOption",
    "Config",
    "read_config_file",
    "module_names",
    "validate_config",
    # Steps
    "BuildStep",
    "StepGroup",
    "StepRegistry",
    # Context
    "BuildContext",
    "EncryptedPaths",
    # Workspace
    "prepare_output",
    "reset_output",
    # Runner
    "BuildMode",
    "BuildOutcome",
    "BuildError",
    "StepFailure",
    "BuildRunner",
]
