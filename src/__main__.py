#!/usr/bin/env python3
"""
mdstream - Live Markdown stream renderer

Renders a Markdown file or a piped stream to a self-contained HTML document
that is rewritten while the text arrives. Re-renders happen only at safe
boundaries, so the document never shows a code fence, table or HTML block
cut in half.

As an aside, this codebase leverages the ChRIS "plugin" concept/pattern as
general purpose python app development framework.

Usage:
    mdstream inputdir/ outputdir/ --inputFile notes.md

    The rendered document is written to outputdir/index.html and replaced
    atomically after every safe re-render.

Examples:
    # Render a file
    mdstream . output/ --inputFile README.md

    # Follow a stream from stdin, dark theme
    llm-tool | mdstream . output/ --inputFile - --theme dark

    # Verbose output
    mdstream . output/ --inputFile notes.md -vv
"""

import sys
from pathlib import Path
from argparse import ArgumentParser, Namespace, ArgumentDefaultsHelpFormatter

from chris_plugin import chris_plugin
from .config import appsettings
from .lib import ContentChannel, StreamSession, __version__, LOG, state_connectToLogger
from .lib.sink import SnapshotFileSink
from .lib.theme import ThemeError
from .models import ProgramState, pipeline


DISPLAY_TITLE = r"""
               _     _
  _ __ ___  __| |___| |_ _ __ ___  __ _ _ __ ___
 | '_ ` _ \/ _` / __| __| '__/ _ \/ _` | '_ ` _ \
 | | | | | | (_| \__ \ |_| | |  __/ (_| | | | | | |
 |_| |_| |_|\__,_|___/\__|_|  \___|\__,_|_| |_| |_|

  Live Markdown stream renderer
"""

# Define CLI arguments
parser = ArgumentParser(
    description="mdstream - render a live Markdown stream to HTML",
    formatter_class=ArgumentDefaultsHelpFormatter,
)

parser.add_argument(
    "--inputFile",
    default="-",
    type=str,
    help="Markdown file (relative to inputdir); '-' reads standard input",
)

parser.add_argument(
    "--outputFile",
    default="index.html",
    type=str,
    help="Name of the HTML document written in outputdir",
)

parser.add_argument(
    "--theme",
    default=None,
    choices=["light", "dark", "system"],
    help="Colour scheme (defaults to MDSTREAM_THEME_MODE or 'system')",
)

parser.add_argument(
    "--idleFlush",
    default=None,
    type=float,
    help="Seconds of idle input after which a partial line is rendered",
)

parser.add_argument(
    "-v",
    "--verbosity",
    action="count",
    default=1,
    help="Increase output verbosity (can be repeated: -v, -vv, -vvv)",
)

parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")


def env_check(inputstate: ProgramState) -> ProgramState:
    """
    Validate environment and resolve all file paths.

    Args:
        inputstate: Initial program state with CLI options

    Returns:
        ProgramState with added fields:
            - inputSource: Resolved Markdown path (None for stdin)
            - htmlOutputFile: Output document path
            - envOK: True if environment is valid

    Exits:
        1 if the input file is not found
    """

    state = inputstate.copy()

    if state.verbosity >= 2:
        LOG(DISPLAY_TITLE, level=2)

    LOG("Checking environment...", level=2)

    if state.inputFile == "-":
        state.inputSource = None
        LOG("Input: standard input", level=2)
    else:
        input_file = state.inputdir / state.inputFile
        if not input_file.is_file():
            print(f"Error: Input file not found: {input_file}", file=sys.stderr)
            state.envOK = False
            sys.exit(1)
        state.inputSource = input_file
        LOG(f"Input file: {input_file}", level=2)

    state.outputdir.mkdir(parents=True, exist_ok=True)
    state.htmlOutputFile = state.outputdir / state.outputFile
    LOG(f"Output file: {state.htmlOutputFile}", level=2)

    state.envOK = True
    return state


def stream_render(inputstate: ProgramState) -> ProgramState:
    """
    Stream the Markdown input into the output document.

    The producer (StreamSession) runs on its own thread; the file sink
    consumes snapshots on this thread until the final one is written.

    Args:
        inputstate: Program state with inputSource and htmlOutputFile

    Returns:
        ProgramState with added field:
            - streamResult: Dict containing:
                - status: bool (input read to the end)
                - output_file: str
                - snapshots: int (snapshots published)
                - writes: int (document rewrites)
                - warnings: List[str] (warnings of the last snapshot)
                - error: Optional[str]

    Exits:
        1 if the configuration is invalid or the input cannot be opened
    """

    state = inputstate.copy()

    overrides = {}
    if state.theme:
        overrides["theme_mode"] = state.theme
    if state.idleFlush is not None:
        overrides["idle_flush_seconds"] = max(0.0, state.idleFlush)
    settings = appsettings.model_copy(update=overrides)

    if state.inputSource is None:
        source = sys.stdin.buffer
        title = settings.document_title
    else:
        try:
            source = state.inputSource.open("rb")
        except OSError as e:
            print(f"Error opening input file: {e}", file=sys.stderr)
            sys.exit(1)
        title = state.inputSource.name

    LOG("Streaming input...", level=1)

    channel = ContentChannel()
    try:
        session = StreamSession(source, channel, settings, title=title)
    except ThemeError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    sink = SnapshotFileSink(channel, state.htmlOutputFile)
    session.start()
    try:
        last = sink.run()
    except KeyboardInterrupt:
        LOG("Interrupted, stopping stream", level=1)
        session.cancel()
        last = channel.latest()
    finally:
        channel.close()
        session.join(timeout=5.0)

    error = str(session.failure) if session.failure else None
    state.streamResult = {
        "status": session.failure is None,
        "output_file": str(state.htmlOutputFile),
        "snapshots": session.published,
        "writes": sink.writes,
        "warnings": [str(w) for w in last.warnings] if last else [],
        "error": error,
    }
    LOG(f"Stream complete: {session.published} snapshots", level=2)
    return state


def results_report(inputstate: ProgramState) -> ProgramState:
    """
    Display streaming results to user.

    Args:
        inputstate: Program state with streamResult populated

    Returns:
        ProgramState unchanged (terminal pipeline stage)

    Exits:
        1 if streamResult is None or the input was lost
    """
    state: ProgramState = inputstate.copy()
    if not state.streamResult:
        print("Error: Streaming failed", file=sys.stderr)
        sys.exit(1)

    result = state.streamResult
    for warning in result["warnings"]:
        LOG(f"  warning: {warning}", level=2)

    if result["error"]:
        print(f"Error: {result['error']}", file=sys.stderr)
        sys.exit(1)

    if state.verbosity >= 1:
        LOG("\n✓ Stream rendered!", level=1)
        LOG(f"  Output: {result['output_file']}", level=1)
        LOG(f"  Snapshots: {result['snapshots']}", level=1)
        LOG(f"  Warnings: {len(result['warnings'])}", level=1)
    return state


@chris_plugin(
    parser=parser,
    title="mdstream - Live Markdown stream renderer",
    category="Visualization",
    min_memory_limit="100Mi",
    min_cpu_limit="500m",
)
def main(options: Namespace, inputdir: Path, outputdir: Path):
    """
    Main entry point - render a Markdown stream to a live HTML document.

    Orchestrates the pipeline:
        1. env_check: Validate paths and environment
        2. stream_render: Stream, render and write snapshots
        3. results_report: Display results to user

    Args:
        options: CLI arguments from argparse
        inputdir: Directory containing the Markdown source
        outputdir: Directory where the document is written

    Note:
        This function is wrapped by @chris_plugin which handles CLI
        argument parsing and invokes this function with parsed values.
    """

    state: ProgramState = ProgramState.state_createFromNamespace(
        options=options, inputdir=inputdir, outputdir=outputdir
    )

    # Connect state to logger for entire pipeline
    state_connectToLogger(state)

    pipeline(state, env_check, stream_render, results_report)


if __name__ == "__main__":
    main()  # type: ignore  # @chris_plugin decorator transforms signature
