"""Simulation scheduler - drives registration and periodic ticks for a set
of devices against a ledger client.

One scheduler owns its registry reference, its run state and its counters.
Ticks are strictly serialized: the next tick is never started while any
device of the previous tick still has a ledger call outstanding.  Inside a
tick, devices are processed concurrently and independently of each other.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import random
import signal
import threading
import time
from typing import Any

from iot_ledger_sim.errors import LedgerCallError, RegistrationError
from iot_ledger_sim.ledger.base import LedgerClient, LedgerResult
from iot_ledger_sim.models import (
    Device,
    RunCounters,
    RunState,
    SimulationOptions,
    SimulationSummary,
    TerminationReason,
)
from iot_ledger_sim.patterns import propose
from iot_ledger_sim.registry import DeviceRegistry

__all__ = ["SimulationScheduler"]

logger = logging.getLogger("iot_ledger_sim.scheduler")

# Float slack for the duration check (n * interval may round just below).
_EPSILON = 1e-9


class SimulationScheduler:
    """High-level API: create devices, register them, run timed simulations.

    Example::

        from iot_ledger_sim import SimulationScheduler
        from iot_ledger_sim.ledger import InMemoryLedger

        ledger = InMemoryLedger()
        sched = SimulationScheduler(ledger, seed=7)
        await sched.connect()
        sched.create_device("porch-weather", "weather_station", "Porch", 0)
        summary = await sched.start(duration_s=30, interval_s=5)

    Parameters:
        ledger:
            The :class:`LedgerClient` every device talks to.
        registry:
            Device store.  A fresh :class:`DeviceRegistry` is created when
            omitted.
        rng:
            Random source for the pattern generator.
        seed:
            Seed for a private ``random.Random`` when *rng* is not given.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        registry: DeviceRegistry | None = None,
        *,
        rng: random.Random | None = None,
        seed: int | None = None,
    ) -> None:
        self._ledger = ledger
        self._registry = registry if registry is not None else DeviceRegistry()
        self._rng = rng if rng is not None else random.Random(seed)
        self._state = RunState.IDLE
        self._counters = RunCounters()
        self._summary: SimulationSummary | None = None

        self._loop: asyncio.AbstractEventLoop | None = None
        self._stop_event: asyncio.Event | None = None
        self._stop_requested = False
        self._driver_task: asyncio.Task[SimulationSummary] | None = None
        self._started_at = 0.0

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def registry(self) -> DeviceRegistry:
        return self._registry

    @property
    def ledger(self) -> LedgerClient:
        return self._ledger

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def counters(self) -> RunCounters:
        return self._counters

    # ------------------------------------------------------------------
    # Ledger connection
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Connect the ledger and load its identities if none are configured."""
        await self._ledger.connect()
        if self._registry.identities is None:
            identities = await self._ledger.list_identities()
            if identities:
                self._registry.set_identities(identities)
        logger.info("Connected to ledger %s", type(self._ledger).__name__)

    async def close(self) -> None:
        await self._ledger.close()

    async def __aenter__(self) -> SimulationScheduler:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Devices
    # ------------------------------------------------------------------

    def create_device(self, device_id: str, template: str, location: str, identity: str | int = 0) -> Device:
        """Create a device locally (no ledger call).  See :meth:`DeviceRegistry.create`."""
        return self._registry.create(device_id, template, location, identity)

    async def register_device(self, device_id: str) -> bool:
        """Make sure the ledger knows *device_id*.

        Already-registered devices are a no-op.  A device whose identity is
        already active on the ledger is marked registered without writing.
        Otherwise a register call is issued; on failure
        :class:`RegistrationError` is raised and the device stays
        unregistered.
        """
        device = self._registry.get(device_id)
        if device.registered:
            logger.info("Device %s already registered", device_id)
            return True

        try:
            active = await self._ledger.query_device_active(device.identity)
        except Exception as exc:
            logger.debug("Active-registration query for %s failed: %s", device_id, exc)
            active = False

        if active:
            logger.info("Device %s (%s) already registered on ledger", device_id, device.identity)
            self._registry.mark_registered(device_id)
            return True

        result = await self._call(self._ledger.register, device.identity, device.device_id, device.location)
        if not result.ok:
            raise RegistrationError(device_id, result.error or "unknown error")

        self._registry.mark_registered(device_id)
        logger.info("Registered device: %s (tx %s)", device_id, result.tx_hash)
        return True

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def start(
        self,
        options: SimulationOptions | dict[str, Any] | None = None,
        *,
        duration_s: float | None = None,
        interval_s: float | None = None,
        devices: list[str] | None = None,
        max_batch_size: int | None = None,
    ) -> SimulationSummary | None:
        """Register the selected devices, then tick until the duration
        elapses or :meth:`stop` is called.

        Keyword arguments override the matching fields of *options*.
        Returns the final :class:`SimulationSummary`, or ``None`` when a run
        is already in progress.
        """
        if self._state is RunState.RUNNING:
            logger.warning("Simulation already running")
            return None

        opts = _resolve_options(
            options,
            duration_s=duration_s,
            interval_s=interval_s,
            devices=devices,
            max_batch_size=max_batch_size,
        )
        selected = opts.devices if opts.devices is not None else self._registry.ids()
        for device_id in selected:
            self._registry.get(device_id)

        self._loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()
        self._stop_requested = False
        self._counters = RunCounters()
        self._summary = None
        self._started_at = time.time()
        self._state = RunState.RUNNING

        if not selected:
            logger.warning("No devices selected - ticks will do nothing. Call create_device() first.")
        logger.info("Starting simulation for %d devices", len(selected))
        logger.info("Duration: %.1fs, Interval: %.1fs", opts.duration_s, opts.interval_s)

        self._driver_task = asyncio.create_task(self._drive(selected, opts), name="simulation-driver")
        try:
            return await self._driver_task
        except asyncio.CancelledError:
            self._driver_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._driver_task
            raise
        finally:
            self._driver_task = None

    def stop(self) -> None:
        """Stop the current run.

        Safe to call from any thread.  No new tick starts after this call;
        ledger calls already in flight finish and their results are applied
        before the run settles into ``STOPPED``.
        """
        if self._state is not RunState.RUNNING:
            logger.debug("stop() ignored - scheduler is %s", self._state)
            return
        if self._stop_requested:
            return
        self._stop_requested = True
        logger.info("Stop requested")
        if self._loop is not None and self._stop_event is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._stop_event.set)

    def get_summary(self) -> SimulationSummary | None:
        """Summary of the last finished run, or a live snapshot while running."""
        if self._state is RunState.RUNNING:
            return self._snapshot(RunState.RUNNING, None, None)
        return self._summary

    def run(self, options: SimulationOptions | dict[str, Any] | None = None, **kwargs: Any) -> SimulationSummary | None:
        """Blocking entry point: connect, :meth:`start`, close.

        Works inside environments that already run an event loop (Jupyter,
        IPython) by spawning a dedicated thread with its own loop.  SIGINT
        and SIGTERM stop the run gracefully where signal handlers are
        supported.
        """

        async def _main() -> SimulationSummary | None:
            loop = asyncio.get_running_loop()
            # NotImplementedError on Windows, RuntimeError outside the main thread.
            for sig in (signal.SIGINT, signal.SIGTERM):
                with contextlib.suppress(NotImplementedError, RuntimeError):
                    loop.add_signal_handler(sig, self.stop)
            await self.connect()
            try:
                return await self.start(options, **kwargs)
            finally:
                await self.close()
                for sig in (signal.SIGINT, signal.SIGTERM):
                    with contextlib.suppress(NotImplementedError, RuntimeError):
                        loop.remove_signal_handler(sig)

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is None:
            try:
                return asyncio.run(_main())
            except KeyboardInterrupt:
                logger.info("Interrupted by user")
                return self._summary

        result: list[SimulationSummary | None] = [None]
        exc: list[BaseException | None] = [None]

        def _target() -> None:
            try:
                result[0] = asyncio.run(_main())
            except KeyboardInterrupt:
                logger.info("Interrupted by user")
            except BaseException as e:
                exc[0] = e

        t = threading.Thread(target=_target, daemon=True)
        t.start()
        t.join()
        if exc[0] is not None:
            raise exc[0]
        return result[0] if result[0] is not None else self._summary

    async def network_status(self) -> dict[str, Any]:
        """Device count on the ledger plus the active flag of every local device."""
        count = await self._ledger.query_device_count()
        active = {dev.device_id: await self._ledger.query_device_active(dev.identity) for dev in self._registry}
        return {"device_count": count, "devices": active}

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _drive(self, device_ids: list[str], opts: SimulationOptions) -> SimulationSummary:
        """Tick driver: registration, then serialized ticks until done."""
        try:
            await self._register_all(device_ids)

            loop = asyncio.get_running_loop()
            origin = loop.time()
            offset = opts.interval_s
            while not self._stop_requested:
                if await self._wait_until(origin + offset):
                    break
                await self._tick(device_ids, opts.max_batch_size)
                if self._stop_requested:
                    break

                elapsed = max(loop.time() - origin, offset)
                if elapsed + _EPSILON >= opts.duration_s:
                    logger.info("Duration reached (%.1fs) - stopping", opts.duration_s)
                    return self._finish(RunState.COMPLETED, TerminationReason.DURATION_REACHED)

                # An overrunning tick defers the next one instead of bunching them up.
                offset = max(offset + opts.interval_s, loop.time() - origin)

            return self._finish(RunState.STOPPED, TerminationReason.STOPPED)
        except asyncio.CancelledError:
            logger.info("Simulation cancelled")
            self._finish(RunState.STOPPED, TerminationReason.STOPPED)
            raise
        except Exception as exc:
            logger.exception("Simulation aborted by unexpected error")
            return self._finish(RunState.STOPPED, TerminationReason.ERROR, error=f"{type(exc).__name__}: {exc}")

    async def _register_all(self, device_ids: list[str]) -> None:
        for device_id in device_ids:
            if self._stop_requested:
                return
            try:
                await self.register_device(device_id)
            except RegistrationError as exc:
                self._counters.registration_failures += 1
                logger.warning("Failed to register %s: %s", device_id, exc.reason)

    async def _wait_until(self, deadline: float) -> bool:
        """Sleep until *deadline* (loop time) or a stop request.  Returns ``True`` if stopped."""
        if self._stop_event is None:
            raise RuntimeError("No simulation run is active")
        timeout = deadline - asyncio.get_running_loop().time()
        if timeout > 0:
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(self._stop_event.wait(), timeout)
        return self._stop_requested

    async def _tick(self, device_ids: list[str], max_batch_size: int | None) -> None:
        self._counters.ticks += 1
        results = await asyncio.gather(
            *(self._update_device(device_id, max_batch_size) for device_id in device_ids),
            return_exceptions=True,
        )

        fatal: BaseException | None = None
        for res in results:
            if isinstance(res, LedgerCallError):
                self._counters.update_failures += 1
                logger.warning("%s", res)
            elif isinstance(res, BaseException) and fatal is None:
                fatal = res
        if fatal is not None:
            raise fatal

        if self._counters.ticks % 100 == 0:
            logger.debug("Tick %d - %d devices", self._counters.ticks, len(device_ids))

    async def _update_device(self, device_id: str, max_batch_size: int | None) -> None:
        """Propose new values for one device and push whatever changed."""
        device = self._registry.get(device_id)
        if not device.registered:
            self._counters.skipped_unregistered += 1
            return

        changes: dict[str, str] = {}
        for sensor in device.sensors:
            candidate = propose(device.patterns[sensor], device.last_values[sensor], self._rng)
            if candidate != device.last_values[sensor]:
                changes[sensor] = candidate

        if not changes:
            self._counters.unchanged += 1
            return

        if max_batch_size is not None and len(changes) > max_batch_size:
            logger.debug(
                "%s: %d changed sensors exceed batch cap %d - deferring %s",
                device_id,
                len(changes),
                max_batch_size,
                ", ".join(list(changes)[max_batch_size:]),
            )
            changes = dict(list(changes.items())[:max_batch_size])

        sensors = list(changes)
        values = list(changes.values())
        if len(sensors) == 1:
            result = await self._call(self._ledger.update_one, device.identity, sensors[0], values[0])
        else:
            result = await self._call(self._ledger.update_batch, device.identity, sensors, values)
        if not result.ok:
            raise LedgerCallError(device_id, sensors, result.error or "unknown error")

        self._registry.apply_update(device_id, changes)
        if len(sensors) == 1:
            self._counters.single_updates += 1
        else:
            self._counters.batch_updates += 1
        logger.info("%s: Updated %d sensors (%s)", device_id, len(sensors), ", ".join(sensors))

    @staticmethod
    async def _call(method: Any, *args: Any) -> LedgerResult:
        """Invoke a ledger write; an adapter exception counts as a failed call."""
        try:
            return await method(*args)
        except Exception as exc:
            return LedgerResult.failure(str(exc) or type(exc).__name__)

    def _finish(
        self,
        state: RunState,
        reason: TerminationReason,
        error: str | None = None,
    ) -> SimulationSummary:
        self._state = state
        self._summary = self._snapshot(state, reason, error)
        logger.info(
            "Simulation %s (%s): %d ticks, %d single / %d batch updates, %d failures",
            state,
            reason,
            self._counters.ticks,
            self._counters.single_updates,
            self._counters.batch_updates,
            self._counters.update_failures,
        )
        return self._summary

    def _snapshot(
        self,
        state: RunState,
        reason: TerminationReason | None,
        error: str | None,
    ) -> SimulationSummary:
        now = time.time()
        return SimulationSummary(
            state=state,
            reason=reason,
            error=error,
            started_at=self._started_at,
            finished_at=None if state is RunState.RUNNING else now,
            elapsed_s=now - self._started_at,
            counters=self._counters.model_copy(),
            devices=[dev.summary() for dev in self._registry],
        )


def _resolve_options(
    options: SimulationOptions | dict[str, Any] | None,
    **overrides: Any,
) -> SimulationOptions:
    if isinstance(options, SimulationOptions):
        data = options.model_dump()
    else:
        data = dict(options or {})
    data.update({k: v for k, v in overrides.items() if v is not None})
    return SimulationOptions.model_validate(data)
