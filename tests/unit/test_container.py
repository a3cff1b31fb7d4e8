"""Unit tests for the dependency container and its shutdown hooks."""

from __future__ import annotations

import asyncio
import os
import signal
import subprocess
import sys

import pytest

from ecoaudit.container import DependencyContainer, LazyInstance
from ecoaudit.pipeline import AnalysisPipeline


class TestLazyInstance:
    def test_created_once(self):
        calls = []
        lazy = LazyInstance(lambda: calls.append(1) or object())
        assert not lazy.created
        first = lazy.get()
        assert lazy.get() is first
        assert calls == [1]

    def test_reset_rebuilds_on_next_get(self):
        lazy = LazyInstance(object)
        first = lazy.get()
        lazy.reset()
        assert not lazy.created
        assert lazy.get() is not first


class TestDependencyContainer:
    def test_load_config_from_path(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text("browser:\n  settle_seconds: 0.5\n")
        container = DependencyContainer(config_path=path, log_level="warning")

        config = container.load_config()

        assert config.browser.settle_seconds == 0.5
        assert config.monitoring.log_level == "WARNING"

    def test_load_config_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        container = DependencyContainer()
        assert container.load_config().browser.settle_seconds == 3.0
        assert container.config_path is None

    @pytest.mark.asyncio
    async def test_components_share_registry(self, test_config):
        container = DependencyContainer(config=test_config, install_signal_handlers=False)
        async with container.lifecycle():
            pipeline = container.get_pipeline()
            assert isinstance(pipeline, AnalysisPipeline)
            assert pipeline.orchestrator is container.get_orchestrator()
            assert pipeline.launcher is container.get_launcher()
            assert pipeline.orchestrator.registry is container.registry
            status = container.get_health_status()
            assert status["is_running"] is True
            assert status["instances_created"] == ["launcher", "orchestrator", "pipeline"]
        assert container.is_running is False
        assert container.get_health_status()["instances_created"] == []

    @pytest.mark.asyncio
    async def test_shutdown_terminates_registered_process(self, test_config):
        proc = subprocess.Popen([sys.executable, "-c", "import time; time.sleep(30)"])
        try:
            container = DependencyContainer(config=test_config, install_signal_handlers=False)
            async with container.lifecycle():
                container.registry.register(proc.pid)
            assert proc.wait(timeout=5) is not None
            assert container.registry.current is None
        finally:
            if proc.poll() is None:
                proc.kill()
                proc.wait()

    async def _run_until_signalled(self, container, proc, send_signal):
        started = asyncio.Event()

        async def analysis():
            async with container.lifecycle():
                container.registry.register(proc.pid)
                started.set()
                await asyncio.sleep(30)

        task = asyncio.create_task(analysis())
        await started.wait()
        send_signal()
        with pytest.raises(asyncio.CancelledError):
            await asyncio.wait_for(task, timeout=10)

    @pytest.mark.asyncio
    async def test_signal_terminates_process_and_cancels_analysis(self, test_config):
        proc = subprocess.Popen([sys.executable, "-c", "import time; time.sleep(30)"])
        previous = signal.getsignal(signal.SIGTERM)
        container = DependencyContainer(config=test_config)
        try:
            await self._run_until_signalled(container, proc, lambda: os.kill(os.getpid(), signal.SIGTERM))

            assert proc.wait(timeout=5) is not None
            assert container.registry.current is None
            assert signal.getsignal(signal.SIGTERM) == previous
        finally:
            if proc.poll() is None:
                proc.kill()
                proc.wait()

    @pytest.mark.asyncio
    async def test_signal_during_registry_update_does_not_block(self, test_config):
        proc = subprocess.Popen([sys.executable, "-c", "import time; time.sleep(30)"])
        container = DependencyContainer(config=test_config)

        def signal_while_locked():
            # register() and clear() hold this lock
            with container.registry._lock:
                os.kill(os.getpid(), signal.SIGTERM)

        try:
            await self._run_until_signalled(container, proc, signal_while_locked)
            assert proc.wait(timeout=5) is not None
        finally:
            if proc.poll() is None:
                proc.kill()
                proc.wait()
