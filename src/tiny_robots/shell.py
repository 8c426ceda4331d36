"""Run shell commands from async command handlers without blocking the loop."""

from __future__ import annotations

import asyncio
import functools
import logging
import subprocess
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    returncode: int
    output: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def _run(argv: tuple[str, ...], cwd: Optional[str], timeout: Optional[float]) -> CommandResult:
    try:
        proc = subprocess.run(
            argv,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        return CommandResult(127, str(e))
    except subprocess.TimeoutExpired as e:
        output = e.output if isinstance(e.output, str) else ""
        return CommandResult(124, output + f"\ntimed out after {timeout}s")
    return CommandResult(proc.returncode, proc.stdout or "")


async def run_command(
    *argv: str, cwd: Optional[str] = None, timeout: Optional[float] = 600.0,
) -> CommandResult:
    """Run *argv* with stdout and stderr merged into one output string."""
    logger.debug("Running %s (cwd=%s)", " ".join(argv), cwd)
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(_run, tuple(argv), cwd, timeout))
