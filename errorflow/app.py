"""Application bootstrap for ErrorFlow.

Builds the component graph once per process and owns its lifecycle:

    config -> logging -> bus + memory -> LLM analyzer (optional)
           -> agent -> pipeline -> REST server -> pattern-analysis loop

``stop()`` unwinds in the opposite direction.  A component that fails to
close is logged and skipped; the remaining ones still close.
"""

from __future__ import annotations

import asyncio
import signal
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from errorflow.analysis.agent import ErrorAnalysisAgent
from errorflow.config import load_config
from errorflow.errors import StartupError
from errorflow.memory.store import MemoryStore
from errorflow.models.config import ErrorFlowConfig
from errorflow.observability.logging import get_logger, setup_logging
from errorflow.pipeline.worker import ProcessingPipeline
from errorflow.realtime.bus import EventBus

if TYPE_CHECKING:
    import structlog
    import uvicorn

    from errorflow.analysis.llm import LLMAnalyzer

_CLOSE_TIMEOUT_SECONDS = 10

Closer = Callable[[], Awaitable[None]]


class ErrorFlowApp:
    """Process root: owns the bus, memory, agent, pipeline and servers.

    The bus and memory store are created exactly once here and handed to
    the pipeline and the API, so every request and every stream shares them.
    ``stop()`` is safe to call before ``start()`` and more than once.
    """

    def __init__(self, config: ErrorFlowConfig | None = None) -> None:
        self.config = config

        self.bus: EventBus | None = None
        self.memory: MemoryStore | None = None
        self.agent: ErrorAnalysisAgent | None = None
        self.pipeline: ProcessingPipeline | None = None
        self._llm: LLMAnalyzer | None = None
        self._server: uvicorn.Server | None = None

        self._tasks: list[asyncio.Task[None]] = []
        # name -> async closer, in startup order; stop() walks it backwards
        self._closers: list[tuple[str, Closer]] = []

        self._stopped = asyncio.Event()
        self._running = False
        self._server_failed = False
        self._log: structlog.stdlib.BoundLogger = get_logger("app")

    @property
    def running(self) -> bool:
        return self._running

    @property
    def server_failed(self) -> bool:
        """True when the REST server exited on its own while the app was running."""
        return self._server_failed

    async def wait_stopped(self) -> None:
        await self._stopped.wait()

    async def start(self, serve: bool = True) -> None:
        """Build and start every component.

        Args:
            serve: Launch uvicorn.  Tests pass False and drive the pipeline
                   or the FastAPI app themselves.

        Raises:
            StartupError: a required component (the REST server) could not start.
        """
        if self.config is None:
            self.config = load_config()

        setup_logging(self.config.log.level, self.config.log.format)
        self._log = get_logger("app")
        self._log.info("errorflow_starting", version=_errorflow_version())

        self.bus = EventBus()
        self.memory = MemoryStore()

        self._llm = await self._connect_llm()
        self.agent = ErrorAnalysisAgent(llm=self._llm)
        self.pipeline = ProcessingPipeline(
            bus=self.bus,
            memory=self.memory,
            agent=self.agent,
            stage_delay=self.config.pipeline.stage_delay_ms / 1000,
        )

        if serve:
            self._launch_rest()
        self._launch_pattern_analysis()

        self._stopped.clear()
        self._running = True
        self._log.info(
            "errorflow_started",
            serving=serve,
            port=self.config.api.port,
            llm_enabled=self.agent.llm_enabled,
            stage_delay_ms=self.config.pipeline.stage_delay_ms,
        )

    async def _connect_llm(self) -> LLMAnalyzer | None:
        """Create the LLM analyzer when enabled.

        An unhealthy endpoint is logged but kept: each analysis falls back to
        the rules on its own until the endpoint recovers.
        """
        assert self.config is not None
        llm_cfg = self.config.llm
        if not llm_cfg.enabled:
            self._log.info("llm_disabled", reason="ERRORFLOW_LLM_ENABLED is false")
            return None

        from errorflow.analysis.llm import LLMAnalyzer

        try:
            analyzer = LLMAnalyzer(config=llm_cfg)
        except Exception as exc:
            self._log.warning("llm_init_failed", endpoint=llm_cfg.endpoint, error=str(exc))
            return None

        self._closers.append(("llm", analyzer.aclose))
        healthy = await analyzer.health_check()
        log_fn = self._log.info if healthy else self._log.warning
        log_fn("llm_connected", endpoint=llm_cfg.endpoint, model=llm_cfg.model, healthy=healthy)
        return analyzer

    def _launch_rest(self) -> None:
        assert self.config is not None
        assert self.pipeline is not None and self.bus is not None
        assert self.memory is not None and self.agent is not None
        try:
            import uvicorn

            from errorflow.api import build_app

            api = build_app(
                pipeline=self.pipeline,
                bus=self.bus,
                memory=self.memory,
                agent=self.agent,
                config=self.config,
            )
            server = uvicorn.Server(
                uvicorn.Config(
                    app=api,
                    host=self.config.api.host,
                    port=self.config.api.port,
                    log_config=None,
                    access_log=False,
                )
            )
        except Exception as exc:
            raise StartupError("rest", exc) from exc

        self._server = server
        task = asyncio.create_task(server.serve(), name="rest-server")
        task.add_done_callback(self._on_server_exit)
        self._tasks.append(task)
        self._log.info("rest_listening", host=self.config.api.host, port=self.config.api.port)

    def _on_server_exit(self, task: asyncio.Task[None]) -> None:
        # serve() only returns early when startup failed (e.g. port in use)
        if task.cancelled() or not self._running:
            return
        exc = task.exception()
        self._server_failed = True
        self._log.error("rest_server_exited", error=str(exc) if exc else "server stopped during startup")
        asyncio.get_running_loop().create_task(self.stop(), name="shutdown")

    def _launch_pattern_analysis(self) -> None:
        assert self.config is not None and self.agent is not None
        interval = self.config.agent.pattern_analysis_interval_seconds
        agent = self.agent
        log = self._log

        async def _loop() -> None:
            while True:
                await asyncio.sleep(interval)
                try:
                    await agent.analyze_patterns()
                except Exception as exc:
                    log.warning("pattern_analysis_failed", error=str(exc))

        self._tasks.append(asyncio.create_task(_loop(), name="pattern-analysis"))
        self._log.info("pattern_analysis_scheduled", interval_seconds=interval)

    async def stop(self) -> None:
        """Stop servers and loops, then close components newest-first."""
        if not self._running and not self._tasks and not self._closers:
            self._stopped.set()
            return

        self._log.info("errorflow_stopping", tasks=len(self._tasks))
        self._running = False

        if self._server is not None:
            # uvicorn finishes in-flight responses once it sees should_exit
            self._server.should_exit = True
            self._server = None

        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        closers, self._closers = self._closers, []
        for name, closer in reversed(closers):
            await self._close(name, closer)
        self._llm = None

        self._stopped.set()
        self._log.info("errorflow_stopped")

    async def _close(self, name: str, closer: Closer) -> None:
        try:
            await asyncio.wait_for(closer(), timeout=_CLOSE_TIMEOUT_SECONDS)
        except TimeoutError:
            self._log.warning("component_close_timeout", component=name, timeout=_CLOSE_TIMEOUT_SECONDS)
        except Exception as exc:
            self._log.error("component_close_failed", component=name, error=str(exc))


def _errorflow_version() -> str:
    from errorflow import __version__

    return __version__


async def main() -> None:
    """Run until SIGTERM/SIGINT, then shut down cleanly."""
    app = ErrorFlowApp()
    loop = asyncio.get_running_loop()

    def _on_signal(sig: signal.Signals) -> None:
        get_logger("app").info("signal_received", signal=sig.name)
        if app.running:
            loop.create_task(app.stop(), name="shutdown")

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _on_signal, sig)

    try:
        await app.start()
    except StartupError as exc:
        get_logger("app").critical("startup_failed", component=exc.component, error=str(exc.cause))
        await app.stop()
        raise SystemExit(1) from exc

    try:
        await app.wait_stopped()
    finally:
        if app.running:
            await app.stop()
    if app.server_failed:
        raise SystemExit(1)
