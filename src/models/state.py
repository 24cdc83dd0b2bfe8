"""
Program state model and pipeline helper

Defines ProgramState dataclass for the functional pipeline pattern and
the pipeline() helper for composing the command-line stages.
"""

from pathlib import Path
from argparse import Namespace
from typing import Any, Optional, Type, TypeVar, Dict, Callable
from dataclasses import dataclass, field


PS = TypeVar("PS", bound="ProgramState")


@dataclass
class ProgramState:
    """
    Central state container for the command-line pipeline (state bus pattern).

    This dataclass carries all program state through the functional pipeline,
    with each stage adding new fields as the run progresses.

    Pipeline stages and their state additions:
        - Initial: inputdir, outputdir, verbosity, inputFile, outputFile,
          theme, idleFlush
        - env_check: inputSource, htmlOutputFile, envOK
        - stream_render: streamResult
        - results_report: (no additions, terminal stage)

    Attributes:
        inputdir: Directory containing the Markdown source
        outputdir: Directory receiving the rendered document
        verbosity: Logging verbosity level (1-3)
        inputFile: Markdown file (relative to inputdir), or "-" for stdin
        outputFile: Name of the HTML file written in outputdir
        theme: Colour scheme override (light, dark, system)
        idleFlush: Idle flush period override in seconds
        envOK: Environment validation passed
        inputSource: Resolved Markdown path, None when reading stdin
        htmlOutputFile: Resolved output file path
        streamResult: Outcome of the run (snapshots, warnings, error)
    """

    # CLI arguments
    inputdir: Optional[Path] = field(default=None)
    outputdir: Optional[Path] = field(default=None)
    verbosity: int = field(default=1)
    inputFile: str = field(default="-")
    outputFile: str = field(default="index.html")
    theme: Optional[str] = field(default=None)
    idleFlush: Optional[float] = field(default=None)

    # Pipeline state
    envOK: bool = field(default=False)
    inputSource: Optional[Path] = field(default=None)
    htmlOutputFile: Path = field(default=Path("/"))
    streamResult: Optional[Dict[str, Any]] = field(default=None)

    @classmethod
    def state_createFromNamespace(
        cls: Type["ProgramState"], options: Namespace, inputdir: Path, outputdir: Path
    ) -> "ProgramState":
        """
        Create ProgramState from argparse Namespace and directory paths.

        Args:
            options: Parsed CLI arguments (inputFile, theme, etc.)
            inputdir: Directory containing source files
            outputdir: Directory for rendered output

        Returns:
            ProgramState instance with all CLI options as attributes
        """
        options_dict = vars(options)

        import dataclasses
        valid_fields = {f.name for f in dataclasses.fields(cls)}

        # Only keep options that are ProgramState fields
        filtered_options = {k: v for k, v in options_dict.items() if k in valid_fields}

        merged_args = {**filtered_options, "inputdir": inputdir, "outputdir": outputdir}
        return cls(**merged_args)

    def copy(self: PS) -> PS:
        """
        Creates a shallow copy of the ProgramState instance.

        Returns:
            A new ProgramState instance.
        """
        return type(self)(**self.__dict__)


def pipeline(
    initial_state: ProgramState, *stages: Callable[[ProgramState], ProgramState]
) -> ProgramState:
    """
    Execute a functional pipeline of state transformations.

    Each stage is a function (ProgramState) -> ProgramState that receives
    the output of the previous stage and returns a new state.

    Example:
        final_state = pipeline(initial_state, env_check, stream_render, results_report)

    is equivalent to:
        results_report(stream_render(env_check(initial_state)))
    """
    from functools import reduce
    return reduce(lambda state, stage: stage(state), stages, initial_state)
