"""
Runs the external audit tool for the full analysis path.

The tool is a separate process: ``<node> <script> <url> <browser> [--html]``.
Its stdout carries one JSON object (success or error payload) amid free-form
diagnostics. The orchestrator spawns it, streams its output, maps the exit
code and payload onto ``AuditError`` subclasses and turns a success payload
into an ``AuditResult`` scored the same way as the quick path.
"""

from __future__ import annotations

import asyncio
import shutil
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple, Union

import structlog

from ecoaudit.analytics import compute_request_analytics
from ecoaudit.audit.payload import (
    AuditErrorPayload,
    AuditPayload,
    parse_error_payload,
    parse_tool_output,
)
from ecoaudit.audit.registry import ProcessRegistry, terminate_tree
from ecoaudit.browser.launcher import BrowserLauncher
from ecoaudit.config.config import AuditConfig
from ecoaudit.errors import (
    AnalysisFailed,
    AuditTimeout,
    BinaryNotFound,
    BrowserNotFound,
    CommunicationError,
    ProcessFailed,
    SpawnFailed,
)
from ecoaudit.protocols import (
    AccessibilityIssue,
    AuditResult,
    LighthouseScores,
    PageMetrics,
)
from ecoaudit.scoring import ScoreCalculator

logger = structlog.get_logger(__name__)

_READ_SIZE = 64 * 1024


class AuditState(Enum):
    IDLE = "idle"
    SPAWNING = "spawning"
    RUNNING = "running"
    TERMINATED = "terminated"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class StdoutChunk:
    data: bytes


@dataclass(frozen=True)
class StderrChunk:
    data: bytes


@dataclass(frozen=True)
class Terminated:
    exit_code: int


@dataclass(frozen=True)
class _StreamFailed:
    error: BaseException


AuditEvent = Union[StdoutChunk, StderrChunk, Terminated]


class _LineLogger:
    """Logs complete lines of a byte stream at debug level."""

    def __init__(self, stream: str) -> None:
        self.stream = stream
        self._pending = b""

    def feed(self, data: bytes) -> None:
        self._pending += data
        *lines, self._pending = self._pending.split(b"\n")
        for line in lines:
            self._emit(line)

    def flush(self) -> None:
        if self._pending:
            self._emit(self._pending)
            self._pending = b""

    def _emit(self, line: bytes) -> None:
        text = line.decode("utf-8", errors="replace").rstrip()
        if text:
            logger.debug("Audit tool output", stream=self.stream, line=text)


class AuditOrchestrator:
    """Spawns and supervises one audit process at a time."""

    def __init__(
        self,
        config: Optional[AuditConfig] = None,
        registry: Optional[ProcessRegistry] = None,
        launcher: Optional[BrowserLauncher] = None,
    ) -> None:
        self.config = config or AuditConfig()
        self.registry = registry or ProcessRegistry()
        self.launcher = launcher or BrowserLauncher()
        self._lock = asyncio.Lock()
        self._state = AuditState.IDLE

    @property
    def state(self) -> AuditState:
        return self._state

    def _transition(self, state: AuditState, **kw) -> None:
        self._state = state
        logger.debug("Audit state changed", state=state.value, **kw)

    def build_command(self, url: str, include_html: bool = False) -> List[str]:
        """
        Resolve the runtime, script and browser into the tool's argv.

        Raises:
            BinaryNotFound: any of the three cannot be located.
        """
        script = self.config.script_path
        if script is None:
            raise BinaryNotFound("audit.script_path is not configured")
        if not Path(script).exists():
            raise BinaryNotFound(str(script))

        node = shutil.which(self.config.node_path)
        if node is None:
            raise BinaryNotFound(self.config.node_path)

        try:
            browser = self.launcher.require_executable()
        except BrowserNotFound as e:
            raise BinaryNotFound(str(e)) from e

        argv = [node, str(script), url, str(browser)]
        if include_html:
            argv.append("--html")
        return argv

    async def run(self, url: str, include_html: bool = False) -> AuditResult:
        """
        Audit ``url`` with the external tool.

        Raises:
            AuditError: a subclass describing the first failure.
        """
        async with self._lock:
            try:
                result = await self._run(url, include_html)
            except BaseException:
                self._transition(AuditState.FAILED, url=url)
                raise
            self._transition(AuditState.SUCCEEDED, url=url, score=result.ecoindex.score)
            return result

    async def _run(self, url: str, include_html: bool) -> AuditResult:
        self._transition(AuditState.SPAWNING, url=url)
        argv = self.build_command(url, include_html)
        process = await self._spawn(argv)
        self.registry.register(process.pid)

        try:
            self._transition(AuditState.RUNNING, pid=process.pid)
            exit_code, stdout, stderr = await self._wait(process)
            self._transition(AuditState.TERMINATED, exit_code=exit_code)
        finally:
            if process.returncode is None:
                await asyncio.to_thread(terminate_tree, process.pid)
            self.registry.clear()

        return self._interpret(exit_code, stdout, stderr)

    async def _spawn(self, argv: List[str]) -> asyncio.subprocess.Process:
        logger.info("Spawning audit tool", argv=argv)
        try:
            return await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise SpawnFailed(str(e)) from e

    async def _wait(self, process: asyncio.subprocess.Process) -> Tuple[int, bytes, bytes]:
        timeout = self.config.timeout_seconds
        if timeout is None:
            return await self._consume(process)
        try:
            return await asyncio.wait_for(self._consume(process), timeout)
        except asyncio.TimeoutError:
            logger.warning("Audit tool timed out", pid=process.pid, timeout_seconds=timeout)
            await asyncio.to_thread(terminate_tree, process.pid)
            await process.wait()
            raise AuditTimeout(int(timeout * 1000)) from None

    async def _consume(self, process: asyncio.subprocess.Process) -> Tuple[int, bytes, bytes]:
        """Drain the ordered event stream until the process terminates."""
        queue: asyncio.Queue = asyncio.Queue()
        pumps = [
            asyncio.create_task(self._pump(process.stdout, StdoutChunk, queue)),
            asyncio.create_task(self._pump(process.stderr, StderrChunk, queue)),
        ]
        watcher = asyncio.create_task(self._watch(process, pumps, queue))

        stdout = bytearray()
        stderr = bytearray()
        out_log = _LineLogger("stdout")
        err_log = _LineLogger("stderr")
        try:
            while True:
                event = await queue.get()
                if isinstance(event, _StreamFailed):
                    raise CommunicationError(str(event.error)) from event.error
                if isinstance(event, StdoutChunk):
                    stdout += event.data
                    out_log.feed(event.data)
                elif isinstance(event, StderrChunk):
                    stderr += event.data
                    err_log.feed(event.data)
                elif isinstance(event, Terminated):
                    out_log.flush()
                    err_log.flush()
                    return event.exit_code, bytes(stdout), bytes(stderr)
        finally:
            for task in (*pumps, watcher):
                task.cancel()
            await asyncio.gather(*pumps, watcher, return_exceptions=True)

    @staticmethod
    async def _pump(stream, kind, queue: asyncio.Queue) -> None:
        while True:
            data = await stream.read(_READ_SIZE)
            if not data:
                return
            await queue.put(kind(data))

    @staticmethod
    async def _watch(process, pumps, queue: asyncio.Queue) -> None:
        try:
            await asyncio.gather(*pumps)
        except (OSError, ValueError) as e:
            await queue.put(_StreamFailed(e))
            return
        exit_code = await process.wait()
        await queue.put(Terminated(exit_code))

    def _interpret(self, exit_code: int, stdout: bytes, stderr: bytes) -> AuditResult:
        stdout_text = stdout.decode("utf-8", errors="replace")

        if exit_code != 0:
            error = parse_error_payload(stdout_text)
            if error is not None:
                raise AnalysisFailed(error.code, error.message, error.details)
            stderr_text = stderr.decode("utf-8", errors="replace").strip()
            raise ProcessFailed(exit_code, f"stderr: {stderr_text}, stdout: {stdout_text.strip()}")

        output = parse_tool_output(stdout_text)
        if isinstance(output, AuditErrorPayload):
            raise AnalysisFailed(output.code, output.message, output.details)
        return build_audit_result(output)


def build_audit_result(payload: AuditPayload) -> AuditResult:
    """Score a success payload and carry its auxiliary blocks through."""
    raw = payload.raw_metrics
    metrics = PageMetrics(
        dom_elements=raw.dom_elements,
        requests=raw.requests,
        size_kb=raw.total_transfer_size / 1000,
    )
    ecoindex = ScoreCalculator.compute(metrics, payload.url).rounded()

    return AuditResult(
        url=payload.url,
        ecoindex=ecoindex,
        lighthouse=LighthouseScores(**payload.lighthouse.model_dump()),
        accessibility_issues=[
            AccessibilityIssue(id=issue.id, title=issue.title, impact=issue.impact)
            for issue in payload.accessibility_issues
        ],
        resource_breakdown=payload.resource_breakdown,
        cache_analysis=payload.cache_analysis,
        html_report_path=payload.html_report_path,
        ttfb=payload.ttfb,
        coverage=payload.coverage,
        compression=payload.compression,
        image_formats=payload.image_formats,
        analytics=compute_request_analytics(payload.requests) if payload.requests else None,
        timestamp=ecoindex.timestamp,
    )
