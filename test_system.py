"""
Complete system test demonstrating the full monitoring pipeline.

This script tests:
1. Configuration loading and validation
2. Reading acquisition and normalization
3. Classification and alert generation
4. Alert deduplication within the cooldown window
5. Error handling and connectivity reporting

No sensor is needed: scripted sources replay fixed payloads.

Run with: uv run python test_system.py
"""

import asyncio
from collections import deque
from datetime import UTC, datetime, timedelta
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from babyguard.config import AppConfig, MonitoringConfig, get_config
from babyguard.domain.errors import AcquisitionError
from babyguard.domain.models import Metric
from babyguard.services.data_source import Result
from babyguard.services.dispatcher import ConsoleNotificationSink
from babyguard.services.monitor import VitalMonitor

console = Console()

SCENARIOS: dict[str, dict[str, Any]] = {
    "normal": {
        "temperatura": 36.8,
        "batimentos": 120,
        "respiracao": 35,
        "saturacao": 98,
        "movimento": "dormindo",
    },
    "fever": {
        "temperature": 38.6,
        "heartRate": 130,
        "respiratoryRate": 35,
        "oxygenSaturation": 97,
        "movement": "restless",
    },
    "low_saturation": {
        "temperature": 36.8,
        "heartRate": 120,
        "respiratoryRate": 35,
        "oxygenSaturation": 92,
        "movement": "active",
    },
}


class ScriptedSource:
    """Sensor stand-in that replays named scenarios, then repeats the last one."""

    endpoint = "scripted://sensor/api/dados"

    def __init__(self, *steps: str | AcquisitionError) -> None:
        self.steps: deque[str | AcquisitionError] = deque(steps)
        self.last: str | AcquisitionError = "normal"

    async def fetch_latest(self) -> Result[Any, AcquisitionError]:
        await asyncio.sleep(0.01)  # Simulate network latency
        if self.steps:
            self.last = self.steps.popleft()
        if isinstance(self.last, AcquisitionError):
            return Result.err(self.last)
        return Result.ok(dict(SCENARIOS[self.last]))


class SteppingClock:
    """Clock advanced by the script so cooldowns can be exercised instantly."""

    def __init__(self) -> None:
        self.now = datetime.now(UTC)

    def __call__(self) -> datetime:
        return self.now


def _monitor(source: ScriptedSource, clock: SteppingClock | None = None) -> VitalMonitor:
    config = AppConfig(monitoring=MonitoringConfig(poll_interval_seconds=0.05))
    return VitalMonitor(
        config, source=source, sink=ConsoleNotificationSink(console), clock=clock or SteppingClock()
    )


async def test_configuration() -> bool:
    """Test configuration loading and validation."""

    console.print(Panel("🔧 Testing Configuration", style="blue"))

    try:
        config = get_config()

        table = Table(title="Active Configuration")
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="white")
        table.add_row("Environment", config.environment)
        table.add_row("Sensor", config.sensor.url)
        table.add_row("Poll interval", f"{config.monitoring.poll_interval_seconds}s")
        table.add_row("Alert cooldown", f"{config.alerts.cooldown_seconds:.0f}s")
        table.add_row("Log level", config.logging.level)
        console.print(table)

        console.print("✅ Configuration loaded successfully", style="green")
        return True

    except Exception as e:
        console.print(f"❌ Configuration test failed: {e}", style="red")
        return False


async def test_reading_acquisition() -> bool:
    """Test that localized payloads are fetched and normalized."""

    console.print(Panel("📡 Testing Reading Acquisition", style="blue"))

    monitor = _monitor(ScriptedSource("normal"))
    reading = await monitor.refresh_once()
    if reading is None:
        console.print(f"❌ No reading: {monitor.status.last_error}", style="red")
        return False

    table = Table(title="Latest Reading")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")
    for metric in Metric:
        table.add_row(metric.label, metric.format_value(reading.value_of(metric)))
    table.add_row("Movement", reading.movement_state.value)
    console.print(table)

    console.print(f"Status: {monitor.status.message}", style="green")
    return monitor.status.connected


async def test_alert_generation() -> bool:
    """Test that abnormal readings produce the expected alerts."""

    console.print(Panel("🚨 Testing Alert Generation", style="blue"))

    expected = {
        "fever": ["temperature:critical"],
        "low_saturation": ["oxygenSaturation:attention"],
        "normal": [],
    }
    ok = True
    for scenario, keys in expected.items():
        monitor = _monitor(ScriptedSource(scenario))
        await monitor.refresh_once()
        processed = monitor.loop.last_processed
        fired = [str(event.key) for event in processed.fired] if processed else []

        style = "green" if fired == keys else "red"
        console.print(f"{scenario}: fired {fired or 'nothing'}", style=style)
        ok = ok and fired == keys

    return ok


async def test_deduplication() -> bool:
    """Test that repeated alerts are suppressed until the cooldown expires."""

    console.print(Panel("🔁 Testing Alert Deduplication", style="blue"))

    clock = SteppingClock()
    monitor = _monitor(ScriptedSource("fever"), clock)
    fired = []

    for step in range(3):
        await monitor.refresh_once()
        processed = monitor.loop.last_processed
        fired.append(len(processed.fired) if processed else 0)
        clock.now += timedelta(seconds=20)
        console.print(f"Reading #{step + 1}: {fired[-1]} alert(s) fired", style="yellow")

    clock.now += timedelta(minutes=5)
    await monitor.refresh_once()
    processed = monitor.loop.last_processed
    fired.append(len(processed.fired) if processed else 0)
    console.print(f"After cooldown: {fired[-1]} alert(s) fired", style="yellow")

    if fired == [1, 0, 0, 1]:
        console.print("✅ Deduplication working correctly", style="green")
        return True
    console.print(f"❌ Unexpected alert counts: {fired}", style="red")
    return False


async def test_error_handling() -> bool:
    """Test that the loop survives sensor failures and recovers."""

    console.print(Panel("🛡️ Testing Error Handling", style="blue"))

    source = ScriptedSource(
        AcquisitionError("HTTP error 500"), AcquisitionError("timed out after 5.0s"), "normal"
    )
    async with _monitor(source) as monitor:
        await asyncio.sleep(0.02)
        console.print(
            f"During outage: {monitor.status.message} ({monitor.status.last_error})",
            style="yellow",
        )
        await asyncio.sleep(0.3)
        status = monitor.status

    if status.connected:
        console.print(f"✅ Recovered: {status.message}, {status.latency_ms} ms", style="green")
        return True
    console.print(f"❌ Still disconnected: {status.last_error}", style="red")
    return False


async def run_all_tests() -> None:
    """Run all system tests."""

    console.print(Panel("🧪 BabyGuard Monitor - System Tests", style="bold blue"))

    tests = [
        ("Configuration", test_configuration),
        ("Reading Acquisition", test_reading_acquisition),
        ("Alert Generation", test_alert_generation),
        ("Deduplication", test_deduplication),
        ("Error Handling", test_error_handling),
    ]

    results = []

    for test_name, test_func in tests:
        console.print(f"\n{'=' * 60}")
        try:
            result = await test_func()
            results.append((test_name, result))
        except KeyboardInterrupt:
            console.print("\n⏹️  Tests interrupted by user", style="yellow")
            break
        except Exception as e:
            console.print(f"❌ {test_name} failed with exception: {e}", style="red")
            results.append((test_name, False))

    # Summary
    console.print(f"\n{'=' * 60}")
    console.print(Panel("📋 Test Results Summary", style="bold"))

    summary_table = Table()
    summary_table.add_column("Test", style="cyan")
    summary_table.add_column("Result", style="white")

    passed = 0
    for test_name, result in results:
        if result:
            summary_table.add_row(test_name, "✅ PASSED")
            passed += 1
        else:
            summary_table.add_row(test_name, "❌ FAILED")

    console.print(summary_table)

    console.print(f"\n🎯 Results: {passed}/{len(results)} tests passed")

    if passed == len(results):
        console.print("🎉 All tests passed! The monitor is ready.", style="green")
    else:
        console.print("⚠️  Some tests failed. Check the output above.", style="yellow")


if __name__ == "__main__":
    try:
        asyncio.run(run_all_tests())
    except KeyboardInterrupt:
        console.print("\n👋 Tests stopped by user", style="yellow")
    except Exception as e:
        console.print(f"\n💥 Test suite failed: {e}", style="red")
