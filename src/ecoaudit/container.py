"""
Dependency injection container for EcoAudit components.
"""

from __future__ import annotations

import asyncio
import atexit
import signal
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any, AsyncIterator, Callable, Dict, Generic, List, Optional, TypeVar
from uuid import uuid4

import structlog

from ecoaudit.audit.registry import ProcessRegistry
from ecoaudit.config import Config, find_config_file
from ecoaudit.observability import configure_logging, start_metrics_server

if TYPE_CHECKING:
    from ecoaudit.audit.orchestrator import AuditOrchestrator
    from ecoaudit.browser.launcher import BrowserLauncher
    from ecoaudit.pipeline import AnalysisPipeline

T = TypeVar("T")


class LazyInstance(Generic[T]):
    """Lazy-loaded instance with lifecycle management."""

    def __init__(self, factory: Callable[..., T], *args: Any, **kwargs: Any) -> None:
        self._factory = factory
        self._args = args
        self._kwargs = kwargs
        self._instance: Optional[T] = None

    @property
    def created(self) -> bool:
        return self._instance is not None

    def get(self) -> T:
        """Get or create the instance."""
        if self._instance is None:
            self._instance = self._factory(*self._args, **self._kwargs)
        return self._instance

    def reset(self) -> None:
        """Drop the instance so the next get() builds a new one."""
        self._instance = None


class DependencyContainer:
    """
    Builds the configuration and the analysis components from it.

    The process registry is created eagerly because the shutdown hooks
    (signal handlers, atexit, container shutdown) all need it; everything
    else is created on first use.
    """

    def __init__(
        self,
        config_path: Optional[Path] = None,
        config: Optional[Config] = None,
        log_level: Optional[str] = None,
        install_signal_handlers: bool = True,
    ) -> None:
        self.config_path = config_path
        self.config = config
        self.log_level = log_level
        self.install_signal_handlers = install_signal_handlers
        self.logger = structlog.get_logger(self.__class__.__name__)

        self.registry = ProcessRegistry()
        self._instances: Dict[str, LazyInstance[Any]] = {}
        self._shutdown_handlers: List[Callable[[], Any]] = []
        self._previous_handlers: Dict[int, Any] = {}
        self._main_task: Optional[asyncio.Task[Any]] = None
        self._signal_loop: Optional[asyncio.AbstractEventLoop] = None

        self.container_id = str(uuid4())
        self.is_running = False

    def load_config(self) -> Config:
        """Load configuration from the given path, a file in the cwd, or defaults."""
        path = self.config_path or find_config_file()
        config = Config.from_yaml(path) if path is not None else Config()
        if self.log_level:
            config.monitoring = config.monitoring.model_copy(update={"log_level": self.log_level.upper()})
        self.config_path = path
        self.config = config
        return config

    async def initialize(self) -> None:
        """Load configuration, set up logging and metrics, create lazy instances."""
        if self.config is None:
            self.load_config()
        assert self.config is not None

        configure_logging(self.config.monitoring)
        start_metrics_server(self.config.monitoring)
        self._create_instances()

        self._main_task = asyncio.current_task()
        atexit.register(self.registry.terminate_registered)
        self.add_shutdown_handler(self.registry.terminate_registered)
        if self.install_signal_handlers:
            self._setup_signal_handlers()

        self.is_running = True
        self.logger.info(
            "Dependency container initialized",
            container_id=self.container_id,
            config_path=str(self.config_path) if self.config_path else "default",
        )

    def _create_instances(self) -> None:
        """Create lazy instances with current configuration."""
        if self.config is None:
            raise RuntimeError("Configuration must be loaded before creating instances")

        # Import modules only when needed to avoid circular imports
        from ecoaudit.audit.orchestrator import AuditOrchestrator
        from ecoaudit.browser.launcher import BrowserLauncher
        from ecoaudit.pipeline import AnalysisPipeline

        config = self.config
        launcher: LazyInstance[BrowserLauncher] = LazyInstance(BrowserLauncher, config.browser)
        orchestrator: LazyInstance[AuditOrchestrator] = LazyInstance(
            lambda: AuditOrchestrator(config.audit, registry=self.registry, launcher=launcher.get())
        )
        self._instances = {
            "launcher": launcher,
            "orchestrator": orchestrator,
            "pipeline": LazyInstance(
                lambda: AnalysisPipeline(config, launcher=launcher.get(), orchestrator=orchestrator.get())
            ),
        }

    def get_launcher(self) -> BrowserLauncher:
        return self._instances["launcher"].get()  # type: ignore[no-any-return]

    def get_orchestrator(self) -> AuditOrchestrator:
        return self._instances["orchestrator"].get()  # type: ignore[no-any-return]

    def get_pipeline(self) -> AnalysisPipeline:
        return self._instances["pipeline"].get()  # type: ignore[no-any-return]

    @asynccontextmanager
    async def lifecycle(self) -> AsyncIterator[DependencyContainer]:
        """Context manager for proper lifecycle management."""
        try:
            await self.initialize()
            yield self
        finally:
            await self.shutdown()

    async def shutdown(self) -> None:
        """Run shutdown handlers and release managed instances."""
        if not self.is_running:
            return

        self.logger.info("Shutting down dependency container", container_id=self.container_id)
        self._restore_signal_handlers()

        for handler in self._shutdown_handlers:
            try:
                result = handler()
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                self.logger.error("Error in shutdown handler", error=str(e))
        self._shutdown_handlers.clear()
        atexit.unregister(self.registry.terminate_registered)

        for instance in self._instances.values():
            instance.reset()

        self.is_running = False
        self.logger.info("Dependency container shutdown complete")

    def add_shutdown_handler(self, handler: Callable[[], Any]) -> None:
        """Add a custom shutdown handler."""
        self._shutdown_handlers.append(handler)

    def _setup_signal_handlers(self) -> None:
        """Terminate the audit process and cancel the running analysis on SIGINT/SIGTERM."""
        loop = asyncio.get_running_loop()

        def signal_handler(signum: int) -> None:
            self.logger.info(f"Received signal {signum}, initiating shutdown")
            self.registry.terminate_registered()
            if self._main_task is not None and not self._main_task.done():
                self._main_task.cancel()

        self._signal_loop = loop
        # Handlers run as loop callbacks, never in the middle of a registry update
        for sig in (signal.SIGINT, signal.SIGTERM):
            previous = signal.getsignal(sig)
            try:
                loop.add_signal_handler(sig, signal_handler, sig)
            except NotImplementedError:
                self.logger.warning("Signal handlers are not supported on this event loop", signal=int(sig))
                return
            self._previous_handlers[sig] = previous

    def _restore_signal_handlers(self) -> None:
        loop = self._signal_loop
        for sig, handler in self._previous_handlers.items():
            if loop is not None:
                loop.remove_signal_handler(sig)
            if handler is not None:
                signal.signal(sig, handler)
        self._previous_handlers.clear()
        self._signal_loop = None

    def get_health_status(self) -> Dict[str, Any]:
        """Get status of the container and its components."""
        return {
            "container_id": self.container_id,
            "is_running": self.is_running,
            "config_loaded": self.config is not None,
            "config_path": str(self.config_path) if self.config_path else None,
            "instances_created": sorted(name for name, inst in self._instances.items() if inst.created),
            "audit_pid": self.registry.current,
        }
