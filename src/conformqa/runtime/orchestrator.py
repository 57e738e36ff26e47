"""Orchestrator - builds the image and brings the service under test up."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from conformqa.config import HarnessSettings, IntegrationConfig
from conformqa.errors import BuildFailure, ErrorContext, StartupTimeout
from conformqa.infra import BUILD_TAG, SERVER_TAG, DockerCommands
from conformqa.runtime.context import InvocationContext, LifecycleState
from conformqa.runtime.logmux import HELPER_TAG, LogMultiplexer
from conformqa.runtime.probe import ReadinessProber
from conformqa.runtime.process import Spawner, spawn_process
from conformqa.runtime.service import HealthStatus, RunningService

logger = logging.getLogger(__name__)


class LifecycleOrchestrator:
    """Runs the build, launch and readiness sequence for one invocation.

    Every spawned process is adopted into the InvocationContext the moment
    it exists, so the caller never has to clean up after a failure here:
    whatever was started is stopped by ``context.cleanup()``.

    Example::

        orchestrator = LifecycleOrchestrator(settings, mux, ctx)
        service = await orchestrator.build_and_run(config, port=4000)
        print(service.base_url)

    Args:
        settings: Harness settings (probe window, settle delay, runtime).
        mux: Log multiplexer that renders the child processes' output.
        context: The invocation's cleanup registry.
        commands: Docker argv builder (default: built from settings).
        prober: Readiness prober (default: ReadinessProber()).
        spawner: Process spawner (default: spawn_process).
    """

    def __init__(
        self,
        settings: HarnessSettings,
        mux: LogMultiplexer,
        context: InvocationContext,
        commands: DockerCommands | None = None,
        prober: ReadinessProber | None = None,
        spawner: Spawner | None = None,
    ) -> None:
        self.settings = settings
        self.mux = mux
        self.context = context
        self.commands = commands or DockerCommands(settings)
        self.prober = prober or ReadinessProber()
        self._spawn: Spawner = spawner or spawn_process

    async def build(self, config: IntegrationConfig) -> None:
        """Build the integration image.

        Raises:
            BuildFailure: If the build exits non-zero.
        """
        self.context.transition(LifecycleState.BUILDING)
        self.mux.emit(BUILD_TAG, "Running Docker Build...")

        argv = self.commands.build_args(config)
        handle = await self._spawn(
            argv,
            tag=BUILD_TAG,
            cwd=config.project_dir,
            adopt=self.context.register_build,
        )
        consumer = self.mux.attach(handle)
        returncode = await handle.wait()
        await asyncio.wait({consumer})
        self.context.release_build(handle)

        if returncode != 0:
            self.context.transition(LifecycleState.BUILD_FAILED)
            self.mux.emit(BUILD_TAG, "Unable to build docker container", error=True)
            raise BuildFailure(
                returncode=returncode,
                context=ErrorContext(source=BUILD_TAG, command=argv, extra={"returncode": returncode}),
            )

        self.context.transition(LifecycleState.BUILT)
        logger.info(f"Built image {config.image_name}")

    async def launch(self, config: IntegrationConfig, port: int) -> RunningService:
        """Start the container and wait until its port is reachable.

        Raises:
            ContainerAlreadyRunningError: If this invocation already has one.
            StartupTimeout: If the port stays closed or the container exits.
        """
        self.context.ensure_container_slot_free()
        self.context.transition(LifecycleState.STARTING)

        argv = self.commands.run_args(config, port)
        started_at = datetime.now()
        handle = await self._spawn(
            argv,
            tag=SERVER_TAG,
            cwd=config.project_dir,
            adopt=self.context.register_container,
        )
        self.mux.attach(handle)
        self.mux.emit(HELPER_TAG, f"Starting echo server on port {port}...")

        service = RunningService(
            handle=handle,
            port=port,
            image_name=config.image_name,
            host=self.settings.probe_host,
            health=HealthStatus.STARTING,
            started_at=started_at,
        )

        await self._wait_ready(service, argv)
        if self.settings.settle_delay:
            await asyncio.sleep(self.settings.settle_delay)

        service.mark_healthy()
        self.context.transition(LifecycleState.READY)
        logger.info(f"Service ready at {service.base_url}")
        return service

    async def _wait_ready(self, service: RunningService, argv: list[str]) -> None:
        probe = asyncio.create_task(
            self.prober.wait(
                self.settings.probe_host,
                service.port,
                timeout=self.settings.probe_timeout,
                interval=self.settings.probe_interval,
                silent=True,
            )
        )
        exited = asyncio.create_task(service.handle.wait())
        try:
            done, _ = await asyncio.wait({probe, exited}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (probe, exited):
                if not task.done():
                    task.cancel()

        if probe in done and probe.result().open:
            return

        service.mark_unhealthy()
        self.context.transition(LifecycleState.STARTUP_TIMED_OUT)
        extra: dict[str, object] = {"port": service.port}
        if exited in done:
            message = f"Could not start echo server (container exited with code {exited.result()})"
            extra["returncode"] = exited.result()
            elapsed_ms = (datetime.now() - service.started_at).total_seconds() * 1000
        else:
            message = "Could not start echo server"
            elapsed_ms = probe.result().elapsed_ms
        self.mux.emit(SERVER_TAG, message, error=True)
        raise StartupTimeout(
            message=message,
            port=service.port,
            elapsed_ms=elapsed_ms,
            context=ErrorContext(source=SERVER_TAG, command=argv, extra=extra),
        )

    async def build_and_run(self, config: IntegrationConfig, port: int) -> RunningService:
        """Build the image, then launch it. The run is never spawned if the build fails."""
        await self.build(config)
        return await self.launch(config, port)


__all__ = ["LifecycleOrchestrator"]
