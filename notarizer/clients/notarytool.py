from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from notarizer.clients.codecs import decode_error, decode_info, decode_log, decode_submit
from notarizer.domain.errors import StapleError, ToolInvocationError
from notarizer.domain.models import LogResult, StatusResult

logger = logging.getLogger("notarizer")

NOTARYTOOL_BASE_CMD = ("xcrun", "notarytool")
STAPLER_BASE_CMD = ("xcrun", "stapler")


@dataclass(frozen=True)
class NotarytoolService:
    """NotaryService backed by ``xcrun notarytool``.

    ``base_cmd`` can point at a different binary; tests use a fake script.
    """

    auth_args: tuple[str, ...]
    base_cmd: tuple[str, ...] = NOTARYTOOL_BASE_CMD

    async def submit(self, *, path: str, bundle_id: str | None = None) -> str:
        # notarytool reads the bundle id from the archive itself.
        del bundle_id
        stdout = await self._run("submit", [path])
        return decode_submit(stdout)

    async def query_status(self, *, submission_id: str) -> StatusResult:
        stdout = await self._run("info", [submission_id])
        return decode_info(stdout)

    async def query_log(self, *, submission_id: str) -> LogResult:
        stdout = await self._run("log", [submission_id])
        return decode_log(stdout)

    async def _run(self, subcommand: str, args: Sequence[str]) -> bytes:
        cmd = [*self.base_cmd, subcommand, *args, *self.auth_args, "--output-format", "json"]
        # Auth args carry secrets; keep them out of the log.
        logger.debug("running notarytool", extra={"command": " ".join([*self.base_cmd, subcommand, *args])})
        returncode, stdout, stderr = await _exec(cmd)

        remote_error = decode_error(stdout)
        if remote_error is None and returncode != 0:
            remote_error = decode_error(stderr)
        if remote_error is not None:
            raise remote_error
        if returncode != 0:
            raise ToolInvocationError(
                command=f"notarytool {subcommand}",
                returncode=returncode,
                stderr=stderr.decode("utf-8", errors="replace"),
            )
        return stdout


@dataclass(frozen=True)
class XcrunStapler:
    base_cmd: tuple[str, ...] = STAPLER_BASE_CMD

    async def staple(self, *, path: str) -> None:
        returncode, stdout, stderr = await _exec([*self.base_cmd, "staple", path])
        if returncode != 0:
            output = (stderr or stdout).decode("utf-8", errors="replace").strip()
            raise StapleError(f"stapling {path} failed with status {returncode}: {output}")
        logger.info("ticket stapled", extra={"artifact": path})


async def _exec(cmd: Sequence[str]) -> tuple[int | None, bytes, bytes]:
    proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await proc.communicate()
    return proc.returncode, stdout, stderr
