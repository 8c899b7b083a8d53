"""External text editor invocation."""

import subprocess
import tempfile
from pathlib import Path

from loguru import logger

from nodekeeper.errors import EditorFailed


def run_editor(text: str, command: list[str]) -> str:
    """Let the user edit ``text`` in an external editor and return the result.

    The text is written to a temporary file which is passed as the last
    argument to ``command``. The call blocks until the editor exits.

    Raises:
        EditorFailed: The editor could not be started or exited non-zero.
    """
    with tempfile.NamedTemporaryFile(
        mode="w", suffix=".md", prefix="node-", encoding="utf-8", delete=False
    ) as tf:
        tf.write(text)
        path = Path(tf.name)

    try:
        logger.debug("Running editor {} on {}", command, path)
        try:
            result = subprocess.run([*command, str(path)], check=False)
        except OSError as e:
            msg = f"Cannot start editor {command[0]!r}: {e}"
            raise EditorFailed(msg) from e
        if result.returncode != 0:
            msg = f"Editor {command[0]!r} exited with status {result.returncode}"
            raise EditorFailed(msg)
        return path.read_text(encoding="utf-8")
    finally:
        path.unlink(missing_ok=True)


class ExternalEditor:
    """Editor that runs a configured command, e.g. ``["vim"]``."""

    def __init__(self, command: list[str]) -> None:
        if not command:
            msg = "Editor command must not be empty"
            raise ValueError(msg)
        self.command = command

    def __call__(self, text: str) -> str:
        return run_editor(text, self.command)
